"""
Notification outbox - best-effort email and analytics delivery.

Callers publish only after their database transaction has committed, so a
notification is never sent for a state change that did not happen. Delivery
runs as tracked background tasks; failures are logged and never reach the
request that triggered them.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

from services.analytics_service import (
    EVENT_SIGNED_UP,
    EVENT_SUBSCRIPTION_CANCELED,
    EVENT_SUBSCRIPTION_CREATED,
    AnalyticsService,
)
from services.email_service import EmailService

logger = logging.getLogger(__name__)

CoroFactory = Callable[[], Awaitable[object]]


class NotificationOutbox:
    """Runs side-effect coroutines in the background and keeps a handle on each task."""

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def publish(self, name: str, coro_factory: CoroFactory) -> Optional[asyncio.Task]:
        if self._closed:
            logger.warning(f"Outbox closed; dropping notification '{name}'")
            return None
        task = asyncio.create_task(self._deliver(name, coro_factory), name=f"notify:{name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _deliver(self, name: str, coro_factory: CoroFactory) -> None:
        try:
            await coro_factory()
            logger.info(f"Notification '{name}' delivered")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Notification '{name}' failed: {e}", exc_info=True)

    async def join(self) -> None:
        """Wait for everything published so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        await self.join()
        self._closed = True


async def _gather_logged(label: str, *aws: Awaitable[object]) -> None:
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, Exception):
            logger.warning(f"{label}: side effect failed: {result}")


class LifecycleNotifier:
    """
    Publishes the email and analytics pair for each lifecycle transition.

    The two deliveries for one transition are independent and run concurrently.
    """

    def __init__(self, outbox: NotificationOutbox, email: EmailService, analytics: AnalyticsService):
        self.outbox = outbox
        self.email = email
        self.analytics = analytics

    def signed_up(self, email: str, first_name: str, last_name: str, phone_number: Optional[str] = None):
        async def deliver():
            await _gather_logged(
                "signup",
                self.email.send_welcome(email, first_name),
                self._profile_then_event(email, first_name, last_name, phone_number),
            )

        return self.outbox.publish(f"signup:{email}", deliver)

    async def _profile_then_event(self, email, first_name, last_name, phone_number):
        await self.analytics.create_profile(email, first_name, last_name, phone_number)
        await self.analytics.track_event(EVENT_SIGNED_UP, email)

    def subscription_created(self, email: str, subscription: dict):
        async def deliver():
            await _gather_logged(
                "subscription_created",
                self.email.send_subscription_confirmation(
                    email,
                    subscription["plan"],
                    subscription["start_date"],
                    subscription["end_date"],
                    subscription["billing_period"],
                ),
                self.analytics.track_event(
                    EVENT_SUBSCRIPTION_CREATED,
                    email,
                    {"plan": subscription["plan"], "billing_period": subscription["billing_period"]},
                ),
            )

        return self.outbox.publish(f"subscription_created:{subscription['id']}", deliver)

    def subscription_canceled(self, email: str, username: str, subscription: dict):
        async def deliver():
            await _gather_logged(
                "subscription_canceled",
                self.email.send_subscription_canceled(
                    email,
                    username,
                    subscription["end_date"],
                    subscription["plan"],
                    subscription["billing_period"],
                ),
                self.analytics.track_event(
                    EVENT_SUBSCRIPTION_CANCELED,
                    email,
                    {"plan": subscription["plan"], "billing_period": subscription["billing_period"]},
                ),
            )

        return self.outbox.publish(f"subscription_canceled:{subscription['id']}", deliver)
