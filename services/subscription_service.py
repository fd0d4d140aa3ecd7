"""
Subscription lifecycle: create, read, update and cancel a user's subscription.

Ordering rules:
- the database commit happens before anything is published to the outbox
- cancel talks to the billing provider first; a provider failure keeps the record
"""

import logging
import uuid
from typing import Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from crud.provider_subscription import ProviderSubscriptionRepository
from crud.subscription import SubscriptionAlreadyExists, SubscriptionIdTaken, SubscriptionRepository
from crud.user import UserRepository
from models.results import Conflict, Failed, Found, NotFound, Result
from services.notifications import LifecycleNotifier
from services.providers.base import BillingProvider

logger = logging.getLogger(__name__)

NO_SUBSCRIPTION_MESSAGE = "No subscription found for this user."
ALREADY_EXISTS_MESSAGE = "User already has a subscription"
ID_TAKEN_MESSAGE = "Subscription id already in use"
PROVIDER_MISMATCH_MESSAGE = "Provider does not match the provider subscription"


class SubscriptionService:
    """Orchestrates the record store, billing providers and lifecycle notifications."""

    def __init__(
        self,
        db: AsyncSession,
        providers: Dict[str, BillingProvider],
        notifier: LifecycleNotifier,
    ):
        self.db = db
        self.repo = SubscriptionRepository(db)
        self.user_repo = UserRepository(db)
        self.handles = ProviderSubscriptionRepository(db)
        self.providers = providers
        self.notifier = notifier

    async def get(self, user_id: int) -> Result:
        subscription = await self.repo.get_by_user_id(user_id)
        if subscription is None:
            return NotFound(NO_SUBSCRIPTION_MESSAGE)
        return Found(subscription.to_dict())

    async def create(self, user_id: int, payload: dict) -> Result:
        """
        Persist a new subscription for user_id.

        payload carries plan, billing_period, provider, start_date, end_date and an
        optional provider-issued id which becomes both the record id and
        provider_subscription_id. That id must be a handle the same user created
        through /api/payments at the same provider.
        """
        if await self.repo.exists(user_id):
            return Conflict(ALREADY_EXISTS_MESSAGE)

        fields = dict(payload)
        provider_ref = fields.pop("id", None)
        if provider_ref:
            owned = await self.handles.lookup(provider_ref, user_id)
            if not isinstance(owned, Found):
                logger.warning(f"User {user_id} referenced provider subscription {provider_ref} they do not own")
                return owned
            if owned.value.provider != fields["provider"]:
                return Conflict(PROVIDER_MISMATCH_MESSAGE)

        user = await self.user_repo.get_user_by_id(user_id)
        email = user.email if user else None

        fields["id"] = provider_ref or uuid.uuid4().hex
        fields["provider_subscription_id"] = provider_ref

        try:
            subscription = await self.repo.create(user_id, fields)
        except SubscriptionAlreadyExists:
            logger.info(f"Concurrent subscription create rejected for user {user_id}")
            return Conflict(ALREADY_EXISTS_MESSAGE)
        except SubscriptionIdTaken:
            return Conflict(ID_TAKEN_MESSAGE)

        record = subscription.to_dict()
        await self.db.commit()
        logger.info(f"Subscription {record['id']} created for user {user_id} ({record['provider']})")

        if email:
            self.notifier.subscription_created(email, record)
        return Found(record)

    async def update(self, subscription_id: str, user_id: int, fields: dict) -> Result:
        result = await self.repo.update(subscription_id, user_id, fields)
        if not isinstance(result, Found):
            return result

        record = result.value.to_dict()
        await self.db.commit()
        logger.info(f"Subscription {subscription_id} updated: {sorted(fields)}")
        return Found(record)

    async def cancel(
        self,
        subscription_id: str,
        user_id: int,
        idempotency_key: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> Result:
        """
        Cancel at the provider (when the record carries a provider handle), then
        delete locally, commit, and only then notify.

        Returns:
            Found(deleted record), NotFound, Unauthorized, or Failed when the provider
            refuses the cancellation
        """
        lookup = await self.repo.lookup(subscription_id, user_id)
        if not isinstance(lookup, Found):
            return lookup

        subscription = lookup.value
        record = subscription.to_dict()
        user = await self.user_repo.get_user_by_id(user_id)
        email = user.email if user else None
        username = user.full_name if user else ""

        if subscription.provider_subscription_id:
            # Issuing provider; PUT may have changed subscription.provider since
            handle = await self.handles.get(subscription.provider_subscription_id)
            provider_name = handle.provider if handle else subscription.provider
            provider = self.providers.get(provider_name)
            if provider is None:
                return Failed(f"Unsupported provider: {provider_name}", status_code=400)

            outcome = await provider.cancel_subscription(
                subscription.provider_subscription_id,
                reason=reason,
                idempotency_key=idempotency_key,
            )
            if not outcome.success:
                logger.warning(
                    f"{provider.name} refused cancellation of {subscription.provider_subscription_id}: {outcome.error}"
                )
                return Failed(outcome.error or "Failed to cancel subscription", status_code=400)

        deleted = await self.repo.delete(subscription_id, user_id)
        if not isinstance(deleted, Found):
            return deleted
        await self.db.commit()
        logger.info(f"Subscription {subscription_id} canceled for user {user_id}")

        if email:
            self.notifier.subscription_canceled(email, username, record)
        return Found(record)
