"""
Payments Router - Stripe and PayPal catalog and subscription endpoints
Webhook is defined FIRST; it is the only unauthenticated route here
"""

import logging
from typing import Dict, Optional

import stripe
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user
from config.settings import PROVIDER_PAYPAL, PROVIDER_STRIPE, settings
from crud.provider_subscription import ProviderSubscriptionRepository
from database import get_db
from dependencies import get_cache, get_idempotency_key, get_providers
from models.payments import (
    CancelRequest,
    PayPalSubscriptionRequest,
    PlanRequest,
    ProductRequest,
    StripeSubscriptionRequest,
)
from models.results import Found
from services.providers.base import BillingProvider, CustomerInfo, ProviderResult
from utils.cache import RedisCache
from utils.responses import error_response, result_response
from utils.shared_utils import log_endpoint_event

logger = logging.getLogger(__name__)

payments_router = APIRouter(prefix="/api/payments", tags=["payments"])

CATALOG_TTL_SECONDS = 300


def _stripe(providers: Dict[str, BillingProvider]) -> BillingProvider:
    return providers[PROVIDER_STRIPE]


def _paypal(providers: Dict[str, BillingProvider]) -> BillingProvider:
    return providers[PROVIDER_PAYPAL]


def _envelope(result: ProviderResult) -> dict:
    if result.success:
        return {"success": True, **result.data}
    return {"success": False, "error": result.error}


def _respond(result: ProviderResult, body: dict, status: int = 200) -> JSONResponse:
    if not result.success:
        return error_response(result.error or "Payment provider request failed", 400)
    return JSONResponse(status_code=status, content={"success": True, **body})


async def _record_handle(db: AsyncSession, user_id: int, provider: str, result: ProviderResult) -> None:
    if result.success and result.id:
        await ProviderSubscriptionRepository(db).record(user_id, provider, result.id)
        await db.commit()


async def _cached_catalog(cache: RedisCache, key: str, fetch) -> JSONResponse:
    async def load():
        return _envelope(await fetch())

    payload = await cache.get_cached(
        key, load, CATALOG_TTL_SECONDS, should_cache=lambda value: bool(value.get("success"))
    )
    if not payload.get("success"):
        return error_response(payload.get("error") or "Payment provider request failed", 400)
    return JSONResponse(status_code=200, content=payload)


# WEBHOOK ENDPOINT
@payments_router.post("/stripe/webhook")
async def stripe_webhook(request: Request):
    """
    Verify and log Stripe events.

    Local subscription records are not reconciled from events. Always returns
    200 so Stripe does not retry.
    """
    webhook_secret = settings.stripe_webhook_secret
    if not webhook_secret:
        logger.error("STRIPE_WEBHOOK_SECRET environment variable is not set")
        return JSONResponse(status_code=200, content={"received": True, "ok": False, "error": "Webhook secret not configured"})

    payload = await request.body()
    stripe_signature = request.headers.get("stripe-signature")
    if not stripe_signature:
        logger.error("Missing Stripe-Signature header")
        return JSONResponse(status_code=200, content={"received": True, "ok": False, "error": "Missing signature header"})

    try:
        event = stripe.Webhook.construct_event(payload, stripe_signature, webhook_secret)
    except stripe.SignatureVerificationError as e:
        logger.error(f"Stripe webhook signature verification failed: {e}")
        return JSONResponse(status_code=200, content={"received": True, "ok": False, "error": "Invalid webhook signature"})
    except ValueError as e:
        logger.error(f"Invalid webhook payload: {e}")
        return JSONResponse(status_code=200, content={"received": True, "ok": False, "error": "Invalid payload format"})

    logger.info(f"Stripe webhook received: {event['type']} ({event['id']})")
    return JSONResponse(status_code=200, content={"received": True, "ok": True, "event_type": event["type"]})


# ---------------------------------------------------------------------------
# Stripe
# ---------------------------------------------------------------------------

@payments_router.post("/stripe/subscription")
async def create_stripe_subscription(
    request: StripeSubscriptionRequest,
    current_user: dict = Depends(get_current_user),
    providers: Dict[str, BillingProvider] = Depends(get_providers),
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
    db: AsyncSession = Depends(get_db),
):
    result = await _stripe(providers).create_subscription(
        CustomerInfo(name=request.name, email=request.email),
        plan_ref=request.price_id,
        payment_method_ref=request.payment_method_id,
        trial_end=request.trial_end,
        idempotency_key=idempotency_key,
    )
    log_endpoint_event(
        "/api/payments/stripe/subscription",
        current_user["user_id"],
        "success" if result.success else "error",
        {"subscriptionId": result.id, "error": result.error},
    )
    await _record_handle(db, current_user["user_id"], PROVIDER_STRIPE, result)
    return _respond(result, {"subscriptionId": result.id}, status=201)


@payments_router.delete("/stripe/subscription/{subscription_id}")
async def cancel_stripe_subscription(
    subscription_id: str,
    current_user: dict = Depends(get_current_user),
    providers: Dict[str, BillingProvider] = Depends(get_providers),
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
    db: AsyncSession = Depends(get_db),
):
    owned = await ProviderSubscriptionRepository(db).lookup(subscription_id, current_user["user_id"])
    if not isinstance(owned, Found):
        return result_response(owned, as_error=True)
    result = await _stripe(providers).cancel_subscription(subscription_id, idempotency_key=idempotency_key)
    return _respond(result, {"subscriptionId": result.id, "status": result.status})


@payments_router.get("/stripe/products")
async def list_stripe_products(
    current_user: dict = Depends(get_current_user),
    providers: Dict[str, BillingProvider] = Depends(get_providers),
    cache: RedisCache = Depends(get_cache),
):
    return await _cached_catalog(cache, "stripe:products", _stripe(providers).list_products)


@payments_router.post("/stripe/products")
async def create_stripe_product(
    request: Optional[ProductRequest] = None,
    current_user: dict = Depends(get_current_user),
    providers: Dict[str, BillingProvider] = Depends(get_providers),
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
):
    request = request or ProductRequest()
    result = await _stripe(providers).create_product(request.name, request.description, idempotency_key=idempotency_key)
    return _respond(result, {"product": result.data.get("product")}, status=201)


@payments_router.get("/stripe/plans")
async def list_stripe_plans(
    current_user: dict = Depends(get_current_user),
    providers: Dict[str, BillingProvider] = Depends(get_providers),
    cache: RedisCache = Depends(get_cache),
):
    return await _cached_catalog(cache, "stripe:plans", _stripe(providers).list_plans)


@payments_router.post("/stripe/plans")
async def create_stripe_plan(
    request: PlanRequest,
    current_user: dict = Depends(get_current_user),
    providers: Dict[str, BillingProvider] = Depends(get_providers),
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
):
    result = await _stripe(providers).create_plan(request.period, request.product_id, idempotency_key=idempotency_key)
    return _respond(result, {"plan": result.data.get("plan")}, status=201)


# ---------------------------------------------------------------------------
# PayPal
# ---------------------------------------------------------------------------

@payments_router.get("/paypal/products")
async def list_paypal_products(
    current_user: dict = Depends(get_current_user),
    providers: Dict[str, BillingProvider] = Depends(get_providers),
):
    result = await _paypal(providers).list_products()
    return _respond(result, result.data)


@payments_router.post("/paypal/products")
async def create_paypal_product(
    request: Optional[ProductRequest] = None,
    current_user: dict = Depends(get_current_user),
    providers: Dict[str, BillingProvider] = Depends(get_providers),
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
):
    request = request or ProductRequest()
    result = await _paypal(providers).create_product(request.name, request.description, idempotency_key=idempotency_key)
    return _respond(result, {"product": result.data.get("product")}, status=201)


@payments_router.get("/paypal/plans")
async def list_paypal_plans(
    current_user: dict = Depends(get_current_user),
    providers: Dict[str, BillingProvider] = Depends(get_providers),
):
    result = await _paypal(providers).list_plans()
    return _respond(result, result.data)


@payments_router.post("/paypal/plans")
async def create_paypal_plan(
    request: PlanRequest,
    current_user: dict = Depends(get_current_user),
    providers: Dict[str, BillingProvider] = Depends(get_providers),
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
):
    result = await _paypal(providers).create_plan(request.period, request.product_id, idempotency_key=idempotency_key)
    return _respond(result, {"plan": result.data.get("plan")}, status=201)


@payments_router.post("/paypal/subscription")
async def create_paypal_subscription(
    request: PayPalSubscriptionRequest,
    current_user: dict = Depends(get_current_user),
    providers: Dict[str, BillingProvider] = Depends(get_providers),
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
    db: AsyncSession = Depends(get_db),
):
    customer = CustomerInfo(
        name=current_user.get("full_name"),
        email=request.subscriber.get("email_address") or current_user.get("email"),
        extra=request.subscriber,
    )
    result = await _paypal(providers).create_subscription(
        customer,
        plan_ref=request.plan_id,
        return_url=request.return_url,
        cancel_url=request.cancel_url,
        idempotency_key=idempotency_key,
    )
    log_endpoint_event(
        "/api/payments/paypal/subscription",
        current_user["user_id"],
        "success" if result.success else "error",
        {"subscriptionId": result.id, "error": result.error},
    )
    await _record_handle(db, current_user["user_id"], PROVIDER_PAYPAL, result)
    return _respond(
        result,
        {"subscriptionId": result.id, "status": result.status, "approveUrl": result.data.get("approveUrl")},
        status=201,
    )


@payments_router.post("/paypal/subscription/{subscription_id}/cancel")
async def cancel_paypal_subscription(
    subscription_id: str,
    request: Optional[CancelRequest] = None,
    current_user: dict = Depends(get_current_user),
    providers: Dict[str, BillingProvider] = Depends(get_providers),
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
    db: AsyncSession = Depends(get_db),
):
    owned = await ProviderSubscriptionRepository(db).lookup(subscription_id, current_user["user_id"])
    if not isinstance(owned, Found):
        return result_response(owned, as_error=True)

    request = request or CancelRequest()
    result = await _paypal(providers).cancel_subscription(
        subscription_id, reason=request.reason, idempotency_key=idempotency_key
    )
    return _respond(result, {"subscriptionId": result.id, "status": result.status})
