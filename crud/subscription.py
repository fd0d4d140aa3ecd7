"""
SubscriptionRepository - persistence for the subscriptions table
"""

import logging
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database_models import Subscription
from models.results import Found, NotFound, Result, Unauthorized

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = ("plan", "end_date", "start_date", "provider", "billing_period")


class SubscriptionAlreadyExists(Exception):
    """Raised when the unique user_id constraint rejects an insert."""

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User {user_id} already has a subscription")


class SubscriptionIdTaken(Exception):
    """Raised when the subscriptions.id primary key is already used by another record."""

    def __init__(self, subscription_id: str):
        self.subscription_id = subscription_id
        super().__init__(f"Subscription id {subscription_id} already in use")


class SubscriptionRepository:
    """
    Repository class for Subscription database operations.
    Every mutation is scoped by user_id.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def exists(self, user_id: int) -> bool:
        result = await self.db.execute(
            select(Subscription.id).where(Subscription.user_id == user_id)
        )
        return result.first() is not None

    async def get_by_user_id(self, user_id: int) -> Optional[Subscription]:
        result = await self.db.execute(
            select(Subscription).where(Subscription.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def create(self, user_id: int, fields: dict) -> Subscription:
        """
        Insert a subscription for user_id.

        Args:
            user_id: Owning user
            fields: id, plan, billing_period, provider, start_date, end_date and
                optionally provider_subscription_id

        Raises:
            SubscriptionAlreadyExists: if the user already owns a subscription
            SubscriptionIdTaken: if another record already uses fields["id"]
        """
        existing = await self.db.get(Subscription, fields["id"])
        if existing is not None:
            if existing.user_id == user_id:
                raise SubscriptionAlreadyExists(user_id)
            raise SubscriptionIdTaken(fields["id"])

        subscription = Subscription(user_id=user_id, **fields)
        self.db.add(subscription)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            if await self.get_by_user_id(user_id) is not None:
                raise SubscriptionAlreadyExists(user_id)
            if await self.db.get(Subscription, fields["id"]) is not None:
                raise SubscriptionIdTaken(fields["id"])
            raise
        await self.db.refresh(subscription)
        return subscription

    async def lookup(self, subscription_id: str, user_id: int) -> Result:
        """Find a subscription by id and check it belongs to user_id."""
        subscription = await self.db.get(Subscription, subscription_id)
        if subscription is None:
            return NotFound("Subscription not found")
        if subscription.user_id != user_id:
            return Unauthorized("User not authorized to modify this subscription")
        return Found(subscription)

    async def update(self, subscription_id: str, user_id: int, fields: dict) -> Result:
        """
        Partially update an owned subscription. Unknown keys are ignored.

        Returns:
            Found(subscription), NotFound or Unauthorized
        """
        lookup = await self.lookup(subscription_id, user_id)
        if not isinstance(lookup, Found):
            return lookup

        subscription = lookup.value
        for key, value in fields.items():
            if key in MUTABLE_FIELDS:
                setattr(subscription, key, value)

        await self.db.flush()
        await self.db.refresh(subscription)
        return Found(subscription)

    async def delete(self, subscription_id: str, user_id: int) -> Result:
        """
        Physically delete an owned subscription.

        Returns:
            Found(deleted subscription), NotFound or Unauthorized
        """
        lookup = await self.lookup(subscription_id, user_id)
        if not isinstance(lookup, Found):
            return lookup

        await self.db.execute(
            delete(Subscription).where(
                Subscription.id == subscription_id,
                Subscription.user_id == user_id,
            )
        )
        await self.db.flush()
        logger.info(f"Deleted subscription {subscription_id} for user {user_id}")
        return lookup
