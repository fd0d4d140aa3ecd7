"""
Stripe billing adapter
"""

import asyncio
import logging
from typing import Optional

import stripe

from config.settings import BILLING_PERIODS, PRICE_TABLE, PRODUCT_NAME
from services.providers.base import (
    BillingProvider,
    CustomerInfo,
    ProviderNotConfigured,
    ProviderResult,
    request_key,
)

logger = logging.getLogger(__name__)


def _plain(obj) -> dict:
    return obj.to_dict()


class StripeProvider(BillingProvider):
    """
    Stripe adapter built around an explicitly constructed StripeClient.

    SDK calls are blocking, so they run in a worker thread.
    """

    name = "Stripe"

    def __init__(self, client: Optional[stripe.StripeClient] = None):
        self.client = client

    @classmethod
    def from_api_key(cls, api_key: Optional[str]) -> "StripeProvider":
        if not api_key:
            logger.warning("STRIPE_SECRET_KEY is not set. Stripe functionality will be unavailable.")
            return cls(client=None)
        return cls(client=stripe.StripeClient(api_key))

    def _require_client(self) -> stripe.StripeClient:
        if self.client is None:
            raise ProviderNotConfigured("Stripe is not configured", provider=self.name)
        return self.client

    async def _call(self, func, *args, **kwargs):
        return await asyncio.to_thread(func, *args, **kwargs)

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
        try:
            client = self._require_client()

            customer_params = {"name": customer.name, "email": customer.email}
            if payment_method_ref:
                customer_params["payment_method"] = payment_method_ref
                customer_params["invoice_settings"] = {"default_payment_method": payment_method_ref}

            stripe_customer = await self._call(
                client.customers.create,
                params=customer_params,
                options={"idempotency_key": request_key("CUSTOMER", idempotency_key)},
            )

            subscription_params = {
                "customer": stripe_customer.id,
                "items": [{"price": plan_ref}],
            }
            if trial_end:
                subscription_params["trial_end"] = trial_end

            subscription = await self._call(
                client.subscriptions.create,
                params=subscription_params,
                options={"idempotency_key": request_key("SUBSCRIPTION", idempotency_key)},
            )

            logger.info(f"Stripe subscription {subscription.id} created for customer {stripe_customer.id}")
            return ProviderResult(
                success=True,
                id=subscription.id,
                status=subscription.status,
                data={"customerId": stripe_customer.id},
            )
        except ProviderNotConfigured as e:
            return ProviderResult.failure(e.message)
        except stripe.StripeError as e:
            logger.error(f"Stripe subscription error: {e}")
            return ProviderResult.failure(e.user_message or str(e))

    async def cancel_subscription(
        self,
        provider_subscription_id: str,
        reason: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> ProviderResult:
        try:
            client = self._require_client()
            params = {}
            if reason:
                params["cancellation_details"] = {"comment": reason}

            subscription = await self._call(
                client.subscriptions.cancel,
                provider_subscription_id,
                params=params,
                options={"idempotency_key": request_key("CANCEL", idempotency_key)},
            )
            logger.info(f"Stripe subscription {subscription.id} is now {subscription.status}")
            return ProviderResult(success=True, id=subscription.id, status=subscription.status)
        except ProviderNotConfigured as e:
            return ProviderResult.failure(e.message)
        except stripe.StripeError as e:
            logger.error(f"Stripe subscription cancellation error: {e}")
            return ProviderResult.failure(e.user_message or str(e))

    async def list_products(self) -> ProviderResult:
        try:
            client = self._require_client()
            products = await self._call(client.products.list, params={"active": True, "limit": 100})
            items = [_plain(p) for p in products.data]
            return ProviderResult(success=True, data={"products": items, "total_items": len(items)})
        except ProviderNotConfigured as e:
            return ProviderResult.failure(e.message)
        except stripe.StripeError as e:
            logger.error(f"Error getting Stripe products: {e}")
            return ProviderResult.failure(e.user_message or str(e))

    async def list_plans(self) -> ProviderResult:
        try:
            client = self._require_client()
            prices = await self._call(
                client.prices.list, params={"active": True, "type": "recurring", "limit": 100}
            )
            return ProviderResult(success=True, data={"plans": [_plain(p) for p in prices.data]})
        except ProviderNotConfigured as e:
            return ProviderResult.failure(e.message)
        except stripe.StripeError as e:
            logger.error(f"Error getting Stripe prices: {e}")
            return ProviderResult.failure(e.user_message or str(e))

    async def create_product(
        self,
        name: Optional[str] = None,
        description: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> ProviderResult:
        try:
            client = self._require_client()
            product = await self._call(
                client.products.create,
                params={"name": name or PRODUCT_NAME, "description": description or PRODUCT_NAME},
                options={"idempotency_key": request_key("PRODUCT", idempotency_key)},
            )
            return ProviderResult(success=True, id=product.id, data={"product": _plain(product)})
        except ProviderNotConfigured as e:
            return ProviderResult.failure(e.message)
        except stripe.StripeError as e:
            logger.error(f"Error creating Stripe product: {e}")
            return ProviderResult.failure(e.user_message or str(e))

    async def create_plan(
        self,
        period: str,
        product_ref: str,
        idempotency_key: Optional[str] = None,
    ) -> ProviderResult:
        if period not in BILLING_PERIODS:
            return ProviderResult.failure(f"Unknown billing period: {period}")

        pricing = PRICE_TABLE[period]
        try:
            client = self._require_client()
            price = await self._call(
                client.prices.create,
                params={
                    "product": product_ref,
                    "nickname": pricing["name"],
                    "currency": pricing["currency"].lower(),
                    "unit_amount": int(pricing["amount"] * 100),
                    "recurring": {"interval": pricing["interval"]},
                },
                options={"idempotency_key": request_key("PLAN", idempotency_key)},
            )
            return ProviderResult(success=True, id=price.id, data={"plan": _plain(price)})
        except ProviderNotConfigured as e:
            return ProviderResult.failure(e.message)
        except stripe.StripeError as e:
            logger.error(f"Error creating Stripe price: {e}")
            return ProviderResult.failure(e.user_message or str(e))
