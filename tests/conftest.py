"""
Pytest configuration and fixtures for testing
"""
import os

# Settings are read at import time
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")

from datetime import date, timedelta
from typing import Optional

import httpx
import pytest
from sqlalchemy.pool import StaticPool

from auth_utils import create_jwt, hash_password
from crud.user import UserRepository
from database import build_engine, build_sessionmaker, get_db, init_db
from models.subscription import utc_today
from services.notifications import LifecycleNotifier, NotificationOutbox
from services.providers.base import BillingProvider, CustomerInfo, ProviderResult
from services.recommendation_service import ChatError, RecommendationError

# Create in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

STRONG_PASSWORD = "StrongPass123!"


def future_date(days: int = 30) -> date:
    return utc_today() + timedelta(days=days)


class FakeProvider(BillingProvider):
    """Records every call; fail_with makes every call fail with that message."""

    def __init__(self, name: str, fail_with: Optional[str] = None):
        self.name = name
        self.fail_with = fail_with
        self.calls = []

    def _result(self, method, **kwargs) -> ProviderResult:
        self.calls.append((method, kwargs))
        if self.fail_with:
            return ProviderResult.failure(self.fail_with)
        return None

    async def create_subscription(self, customer: CustomerInfo, plan_ref, payment_method_ref=None, trial_end=None,
                                  return_url=None, cancel_url=None, idempotency_key=None):
        failed = self._result("create_subscription", customer=customer, plan_ref=plan_ref,
                              payment_method_ref=payment_method_ref, trial_end=trial_end,
                              idempotency_key=idempotency_key)
        return failed or ProviderResult(success=True, id="sub_fake", status="active",
                                        data={"approveUrl": "https://example.com/approve"})

    async def cancel_subscription(self, provider_subscription_id, reason=None, idempotency_key=None):
        failed = self._result("cancel_subscription", provider_subscription_id=provider_subscription_id,
                              reason=reason, idempotency_key=idempotency_key)
        return failed or ProviderResult(success=True, id=provider_subscription_id, status="canceled")

    async def list_products(self):
        failed = self._result("list_products")
        return failed or ProviderResult(success=True, data={"products": [{"id": "prod_1"}], "total_items": 1})

    async def list_plans(self):
        failed = self._result("list_plans")
        return failed or ProviderResult(success=True, data={"plans": [{"id": "plan_1"}]})

    async def create_product(self, name=None, description=None, idempotency_key=None):
        failed = self._result("create_product", name=name, idempotency_key=idempotency_key)
        return failed or ProviderResult(success=True, id="prod_new", data={"product": {"id": "prod_new"}})

    async def create_plan(self, period, product_ref, idempotency_key=None):
        failed = self._result("create_plan", period=period, product_ref=product_ref, idempotency_key=idempotency_key)
        return failed or ProviderResult(success=True, id="plan_new", data={"plan": {"id": "plan_new"}})


class FakeEmailService:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def _send(self, kind, to_email, *args):
        if self.fail:
            raise RuntimeError("smtp down")
        self.sent.append((kind, to_email) + args)
        return True

    async def send_welcome(self, to_email, first_name):
        return await self._send("welcome", to_email, first_name)

    async def send_subscription_confirmation(self, to_email, plan, start_date, end_date, billing_period):
        return await self._send("subscription_confirmation", to_email, plan)

    async def send_subscription_canceled(self, to_email, username, end_date, plan, billing_period):
        return await self._send("subscription_canceled", to_email, username)


class FakeAnalyticsService:
    def __init__(self):
        self.profiles = []
        self.events = []

    async def create_profile(self, email, first_name=None, last_name=None, phone_number=None):
        self.profiles.append(email)
        return {"data": {"id": "profile_1"}}

    async def track_event(self, event_name, email, properties=None):
        self.events.append((event_name, email))
        return True

    async def aclose(self):
        return None


class FakeRecommendationService:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.profiles = []
        self.chats = []

    async def get_recommendations(self, cat_profile):
        self.profiles.append(cat_profile)
        if self.fail:
            raise RecommendationError("Failed to get AI recommendations")
        return {"food_bowls": 2.0, "treats": 1.5, "playtime": 30}

    async def chat(self, cat_details, messages, language="en"):
        if self.fail:
            raise ChatError("Failed to send messages to OpenAI")
        self.chats.append((cat_details, messages, language))
        return f"Reply in {language}"


class FakeCache:
    """Dict-backed stand-in for RedisCache."""

    def __init__(self):
        self.store = {}

    async def get_cached(self, key, fallback_func, ttl_seconds, should_cache=lambda value: True):
        if key in self.store:
            return self.store[key]
        value = await fallback_func()
        if should_cache(value):
            self.store[key] = value
        return value

    async def aclose(self):
        return None


@pytest.fixture
async def test_engine():
    """Fresh in-memory database per test; StaticPool keeps one shared connection."""
    engine = build_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_sessionmaker(test_engine)


@pytest.fixture
async def test_db(session_factory):
    """An AsyncSession for repository and service tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def outbox():
    return NotificationOutbox()


@pytest.fixture
def email_service():
    return FakeEmailService()


@pytest.fixture
def analytics_service():
    return FakeAnalyticsService()


@pytest.fixture
def notifier(outbox, email_service, analytics_service):
    return LifecycleNotifier(outbox, email_service, analytics_service)


@pytest.fixture
def providers():
    return {"Stripe": FakeProvider("Stripe"), "PayPal": FakeProvider("PayPal")}


@pytest.fixture
def recommender():
    return FakeRecommendationService()


@pytest.fixture
def cache():
    return FakeCache()


@pytest.fixture
def app(session_factory, providers, outbox, email_service, analytics_service, recommender, cache):
    """The FastAPI app with fakes on app.state and get_db bound to the test database."""
    from main import app as fastapi_app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.state.sessionmaker = session_factory
    fastapi_app.state.providers = providers
    fastapi_app.state.outbox = outbox
    fastapi_app.state.email_service = email_service
    fastapi_app.state.analytics_service = analytics_service
    fastapi_app.state.recommendation_service = recommender
    fastapi_app.state.cache = cache
    fastapi_app.dependency_overrides[get_db] = override_get_db

    yield fastapi_app

    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    """HTTP client talking to the app in-process (lifespan is not run)."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


@pytest.fixture
def make_user(session_factory):
    """Create a user directly in the database; returns (user_id, auth headers)."""
    counter = {"n": 0}

    async def _make_user(email: Optional[str] = None, first_name: str = "Ada", last_name: str = "Lovelace"):
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        async with session_factory() as session:
            user = await UserRepository(session).create_user({
                "email": email,
                "hashed_password": hash_password(STRONG_PASSWORD),
                "first_name": first_name,
                "last_name": last_name,
            })
            await session.commit()
            token, _ = create_jwt(user.id, user.email, user.full_name)
            return user.id, {"Authorization": f"Bearer {token}"}

    return _make_user
