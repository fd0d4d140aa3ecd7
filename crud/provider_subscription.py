"""
ProviderSubscriptionRepository - ownership of provider subscription handles
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from database_models import ProviderSubscription
from models.results import Found, Result, Unauthorized

logger = logging.getLogger(__name__)

NOT_OWNED_MESSAGE = "User not authorized to use this provider subscription"


class ProviderSubscriptionRepository:
    """Handles are recorded when /api/payments creates them and never reassigned."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, provider_subscription_id: str) -> Optional[ProviderSubscription]:
        return await self.db.get(ProviderSubscription, provider_subscription_id)

    async def record(self, user_id: int, provider: str, provider_subscription_id: str) -> ProviderSubscription:
        """
        Remember that user_id created provider_subscription_id at provider.

        A retried create (same idempotency key, same handle) is a no-op.
        """
        handle = await self.get(provider_subscription_id)
        if handle is not None:
            if handle.user_id != user_id:
                logger.warning(
                    f"{provider} handle {provider_subscription_id} already recorded for user {handle.user_id}"
                )
            return handle

        handle = ProviderSubscription(id=provider_subscription_id, provider=provider, user_id=user_id)
        self.db.add(handle)
        await self.db.flush()
        return handle

    async def lookup(self, provider_subscription_id: str, user_id: int) -> Result:
        """
        Found(handle) only when user_id created it.

        Unknown and foreign handles both yield Unauthorized so other users'
        handles cannot be probed.
        """
        handle = await self.get(provider_subscription_id)
        if handle is None or handle.user_id != user_id:
            return Unauthorized(NOT_OWNED_MESSAGE)
        return Found(handle)
