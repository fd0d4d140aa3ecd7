"""
FastAPI dependencies exposing the clients built in the application lifespan.

Every external client lives on app.state; nothing here constructs one.
"""

from typing import Dict, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from services.analytics_service import AnalyticsService
from services.cat_service import CatService
from services.chat_service import ChatService
from services.email_service import EmailService
from services.notifications import LifecycleNotifier, NotificationOutbox
from services.providers.base import BillingProvider
from services.recommendation_service import RecommendationService
from services.subscription_service import SubscriptionService
from utils.cache import RedisCache


def get_providers(request: Request) -> Dict[str, BillingProvider]:
    return request.app.state.providers


def get_cache(request: Request) -> RedisCache:
    return request.app.state.cache


def get_outbox(request: Request) -> NotificationOutbox:
    return request.app.state.outbox


def get_email_service(request: Request) -> EmailService:
    return request.app.state.email_service


def get_analytics_service(request: Request) -> AnalyticsService:
    return request.app.state.analytics_service


def get_recommendation_service(request: Request) -> RecommendationService:
    return request.app.state.recommendation_service


def get_notifier(
    outbox: NotificationOutbox = Depends(get_outbox),
    email: EmailService = Depends(get_email_service),
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> LifecycleNotifier:
    return LifecycleNotifier(outbox, email, analytics)


def get_idempotency_key(
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
) -> Optional[str]:
    """Client-supplied key forwarded to provider calls so retries don't duplicate work."""
    if idempotency_key:
        idempotency_key = idempotency_key.strip()
    return idempotency_key or None


def get_subscription_service(
    db: AsyncSession = Depends(get_db),
    providers: Dict[str, BillingProvider] = Depends(get_providers),
    notifier: LifecycleNotifier = Depends(get_notifier),
) -> SubscriptionService:
    return SubscriptionService(db, providers, notifier)


def get_cat_service(
    db: AsyncSession = Depends(get_db),
    recommender: RecommendationService = Depends(get_recommendation_service),
) -> CatService:
    return CatService(db, recommender)


def get_chat_service(db: AsyncSession = Depends(get_db)) -> ChatService:
    return ChatService(db)
