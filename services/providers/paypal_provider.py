"""
PayPal billing adapter (REST v1: catalogs/products, billing/plans, billing/subscriptions)
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import httpx

from config.settings import BILLING_PERIODS, PRICE_TABLE, PRODUCT_NAME, settings
from services.providers.base import (
    BillingProvider,
    CustomerInfo,
    ProviderNotConfigured,
    ProviderResult,
    request_key,
)

logger = logging.getLogger(__name__)

PAYMENT_PREFERENCES = {
    "auto_bill_outstanding": True,
    "setup_fee": {"value": "0", "currency_code": "USD"},
    "setup_fee_failure_action": "CONTINUE",
    "payment_failure_threshold": 3,
}

TAXES = {"percentage": "0", "inclusive": False}

REGULAR_CYCLES = {"Monthly": ("MONTH", 12), "Yearly": ("YEAR", 1)}


def build_plan_payload(period: str, product_id: str) -> Dict[str, Any]:
    """Billing plan with a free trial cycle followed by the regular price."""
    pricing = PRICE_TABLE[period]
    interval_unit, total_cycles = REGULAR_CYCLES[period]
    return {
        "product_id": product_id,
        "name": pricing["name"],
        "description": f"{pricing['name']} with a {pricing['trial_days']}-day free trial",
        "status": "ACTIVE",
        "billing_cycles": [
            {
                "frequency": {"interval_unit": "DAY", "interval_count": 1},
                "tenure_type": "TRIAL",
                "sequence": 1,
                "total_cycles": pricing["trial_days"],
                "pricing_scheme": {"fixed_price": {"value": "0", "currency_code": pricing["currency"]}},
            },
            {
                "frequency": {"interval_unit": interval_unit, "interval_count": 1},
                "tenure_type": "REGULAR",
                "sequence": 2,
                "total_cycles": total_cycles,
                "pricing_scheme": {
                    "fixed_price": {"value": str(pricing["amount"]), "currency_code": pricing["currency"]}
                },
            },
        ],
        "payment_preferences": PAYMENT_PREFERENCES,
        "taxes": TAXES,
    }


def build_http_client(
    client_id: Optional[str],
    secret_key: Optional[str],
    base_url: Optional[str] = None,
) -> Optional[httpx.AsyncClient]:
    """Construct the shared PayPal HTTP client, or None when credentials are missing."""
    if not client_id or not secret_key:
        logger.warning("PAYPAL_CLIENT_ID/PAYPAL_SECRET_KEY not set. PayPal functionality will be unavailable.")
        return None
    return httpx.AsyncClient(
        base_url=base_url or settings.paypal_base_url,
        auth=(client_id, secret_key),
        headers={
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Prefer": "return=representation",
        },
        timeout=30,
    )


def _error_message(error: Exception, fallback: str) -> str:
    if isinstance(error, httpx.HTTPStatusError):
        try:
            body = error.response.json()
        except ValueError:
            body = {}
        return body.get("message") or fallback
    return str(error) or fallback


class PayPalProvider(BillingProvider):
    """PayPal adapter; each write carries a PayPal-Request-Id for idempotent retries."""

    name = "PayPal"

    def __init__(self, client: Optional[httpx.AsyncClient] = None, brand_name: Optional[str] = None):
        self.client = client
        self.brand_name = brand_name or settings.paypal_brand_name

    def _require_client(self) -> httpx.AsyncClient:
        if self.client is None:
            raise ProviderNotConfigured("PayPal is not configured", provider=self.name)
        return self.client

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict] = None,
        request_id: Optional[str] = None,
        params: Optional[dict] = None,
    ) -> httpx.Response:
        client = self._require_client()
        headers = {"PayPal-Request-Id": request_id} if request_id else None
        response = await client.request(method, path, json=json, headers=headers, params=params)
        response.raise_for_status()
        return response

    async def create_subscription(
        self,
        customer: CustomerInfo,
        plan_ref: str,
        payment_method_ref: Optional[str] = None,
        trial_end: Optional[int] = None,
        return_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> ProviderResult:
        subscriber = dict(customer.extra)
        if customer.email and "email_address" not in subscriber:
            subscriber["email_address"] = customer.email

        start_time = datetime.now(timezone.utc) + timedelta(hours=1)
        payload = {
            "plan_id": plan_ref,
            "start_time": start_time.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "subscriber": subscriber,
            "application_context": {
                "brand_name": self.brand_name,
                "locale": "en-US",
                "shipping_preference": "NO_SHIPPING",
                "user_action": "SUBSCRIBE_NOW",
                "payment_method": {
                    "payer_selected": "PAYPAL",
                    "payee_preferred": "IMMEDIATE_PAYMENT_REQUIRED",
                },
                "return_url": return_url,
                "cancel_url": cancel_url,
            },
        }

        try:
            response = await self._request(
                "POST",
                "/billing/subscriptions",
                json=payload,
                request_id=request_key("SUBSCRIPTION", idempotency_key),
            )
            data = response.json()
            approve_url = next(
                (link.get("href") for link in data.get("links", []) if link.get("rel") == "approve"),
                None,
            )
            logger.info(f"PayPal subscription {data.get('id')} created ({data.get('status')})")
            return ProviderResult(
                success=True,
                id=data.get("id"),
                status=data.get("status"),
                data={"subscription": data, "approveUrl": approve_url},
            )
        except ProviderNotConfigured as e:
            return ProviderResult.failure(e.message)
        except httpx.HTTPError as e:
            logger.error(f"Error creating PayPal subscription: {e}")
            return ProviderResult.failure(_error_message(e, "Failed to create subscription"))

    async def cancel_subscription(
        self,
        provider_subscription_id: str,
        reason: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> ProviderResult:
        try:
            await self._request(
                "POST",
                f"/billing/subscriptions/{provider_subscription_id}/cancel",
                json={"reason": reason or "Canceled by customer"},
                request_id=request_key("CANCEL", idempotency_key),
            )
            logger.info(f"PayPal subscription {provider_subscription_id} canceled")
            return ProviderResult(success=True, id=provider_subscription_id, status="CANCELLED")
        except ProviderNotConfigured as e:
            return ProviderResult.failure(e.message)
        except httpx.HTTPError as e:
            logger.error(f"Error canceling PayPal subscription: {e}")
            return ProviderResult.failure(_error_message(e, "Failed to cancel subscription"))

    async def list_products(self) -> ProviderResult:
        try:
            response = await self._request("GET", "/catalogs/products", params={"total_required": "true"})
            data = response.json()
            return ProviderResult(
                success=True,
                data={"products": data.get("products", []), "total_items": data.get("total_items", 0)},
            )
        except ProviderNotConfigured as e:
            return ProviderResult.failure(e.message)
        except httpx.HTTPError as e:
            logger.error(f"Error getting PayPal products: {e}")
            return ProviderResult.failure(_error_message(e, "Failed to get products"))

    async def list_plans(self) -> ProviderResult:
        try:
            response = await self._request(
                "GET", "/billing/plans", params={"sort_by": "create_time", "sort_order": "desc"}
            )
            return ProviderResult(success=True, data={"plans": response.json().get("plans", [])})
        except ProviderNotConfigured as e:
            return ProviderResult.failure(e.message)
        except httpx.HTTPError as e:
            logger.error(f"Error fetching PayPal plans: {e}")
            return ProviderResult.failure(_error_message(e, "Failed to fetch the list of plans from PayPal"))

    async def create_product(
        self,
        name: Optional[str] = None,
        description: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> ProviderResult:
        payload = {
            "name": name or PRODUCT_NAME,
            "description": description or PRODUCT_NAME,
            "type": "SERVICE",
            "category": "SOFTWARE",
        }
        try:
            response = await self._request(
                "POST",
                "/catalogs/products",
                json=payload,
                request_id=request_key("PRODUCT", idempotency_key),
            )
            product = response.json()
            return ProviderResult(success=True, id=product.get("id"), data={"product": product})
        except ProviderNotConfigured as e:
            return ProviderResult.failure(e.message)
        except httpx.HTTPError as e:
            logger.error(f"Error creating PayPal product: {e}")
            return ProviderResult.failure(_error_message(e, "Failed to create product"))

    async def create_plan(
        self,
        period: str,
        product_ref: str,
        idempotency_key: Optional[str] = None,
    ) -> ProviderResult:
        if period not in BILLING_PERIODS:
            return ProviderResult.failure(f"Unknown billing period: {period}")
        try:
            response = await self._request(
                "POST",
                "/billing/plans",
                json=build_plan_payload(period, product_ref),
                request_id=request_key("PLAN", idempotency_key),
            )
            plan = response.json()
            return ProviderResult(success=True, id=plan.get("id"), status=plan.get("status"), data={"plan": plan})
        except ProviderNotConfigured as e:
            return ProviderResult.failure(e.message)
        except httpx.HTTPError as e:
            logger.error(f"Error creating billing plan: {e}")
            return ProviderResult.failure(_error_message(e, "Failed to create billing plan"))

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aclose()
