"""
Tests for the notification outbox and the services behind it
"""
import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from services.analytics_service import AnalyticsService
from services.email_service import EmailService, subscription_cancel_template, welcome_template
from services.notifications import LifecycleNotifier, NotificationOutbox
from services.recommendation_service import RecommendationError, RecommendationService, clamp_kpi
from tests.conftest import FakeAnalyticsService, FakeEmailService
from utils.cache import RedisCache


async def test_outbox_failure_is_contained(caplog):
    outbox = NotificationOutbox()
    delivered = []

    async def boom():
        raise RuntimeError("provider down")

    async def ok():
        delivered.append("ok")

    outbox.publish("boom", boom)
    outbox.publish("ok", ok)
    await outbox.join()

    assert delivered == ["ok"]
    assert outbox.pending == 0
    assert "Notification 'boom' failed" in caplog.text


async def test_closed_outbox_drops_new_work():
    outbox = NotificationOutbox()
    await outbox.aclose()
    assert outbox.publish("late", AsyncMock()) is None


async def test_email_failure_does_not_stop_analytics():
    outbox = NotificationOutbox()
    analytics = FakeAnalyticsService()
    notifier = LifecycleNotifier(outbox, FakeEmailService(fail=True), analytics)

    notifier.subscription_canceled(
        "ada@example.com", "Ada Lovelace",
        {"id": "sub_1", "plan": "Basic", "billing_period": "Monthly", "end_date": "2030-01-01"},
    )
    await outbox.join()

    assert analytics.events == [("Subscription Canceled", "ada@example.com")]


async def test_email_and_analytics_run_concurrently():
    outbox = NotificationOutbox()
    both_started = asyncio.Event()
    started = []

    class SlowEmail(FakeEmailService):
        async def send_subscription_confirmation(self, *args):
            started.append("email")
            if len(started) == 2:
                both_started.set()
            await asyncio.wait_for(both_started.wait(), timeout=1)

    class SlowAnalytics(FakeAnalyticsService):
        async def track_event(self, *args):
            started.append("analytics")
            if len(started) == 2:
                both_started.set()
            await asyncio.wait_for(both_started.wait(), timeout=1)
            self.events.append(args[:2])

    analytics = SlowAnalytics()
    notifier = LifecycleNotifier(outbox, SlowEmail(), analytics)
    notifier.subscription_created(
        "ada@example.com",
        {"id": "sub_1", "plan": "Basic", "billing_period": "Monthly", "start_date": "2030-01-01", "end_date": "2030-02-01"},
    )
    await outbox.join()

    assert sorted(started) == ["analytics", "email"]
    assert analytics.events == [("Subscription Created", "ada@example.com")]


async def test_email_service_without_key_returns_false():
    service = EmailService(None, "noreply@example.com", "Kitty")
    assert await service.send_welcome("ada@example.com", "Ada") is False


async def test_email_service_sends_via_sendgrid():
    client = MagicMock()
    client.send.return_value = SimpleNamespace(status_code=202, body="")
    service = EmailService(client, "noreply@example.com", "Kitty")

    assert await service.send_subscription_confirmation("ada@example.com", "Premium", "2030-01-01", "2031-01-01", "Yearly") is True
    message = client.send.call_args.args[0].get()
    assert message["subject"] == "Subscription Confirmation"
    assert "$299.99 per year" in message["content"][0]["value"]


async def test_analytics_event_payload():
    captured = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append((request.url.path, json.loads(request.content)))
        return httpx.Response(202)

    client = httpx.AsyncClient(base_url="https://klaviyo.test/api", transport=httpx.MockTransport(handler))
    service = AnalyticsService(client)

    assert await service.track_event("Subscription Created", "ada@example.com", {"plan": "Basic"}) is True
    await service.aclose()

    path, payload = captured[0]
    attributes = payload["data"]["attributes"]
    assert path == "/api/events"
    assert attributes["metric"]["data"]["attributes"]["name"] == "Subscription Created"
    assert attributes["profile"]["data"]["attributes"]["email"] == "ada@example.com"
    assert attributes["properties"]["plan"] == "Basic"


async def test_analytics_disabled_without_client():
    assert await AnalyticsService(None).track_event("Signed Up", "ada@example.com") is False


@pytest.mark.parametrize(
    "key, raw, expected",
    [
        ("food_bowls", 0.2, 1.0),
        ("food_bowls", 2.34, 2.3),
        ("food_bowls", 9, 3.0),
        ("treats", 1.3, 1.5),
        ("treats", -2, 0.0),
        ("playtime", 75, 60),
        ("playtime", 12.6, 13),
    ],
)
def test_kpis_are_clamped_and_snapped(key, raw, expected):
    assert clamp_kpi(key, raw) == expected


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


async def test_recommendations_are_clamped():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(
        return_value=_completion('{"food_bowls": 4, "treats": 0.7, "playtime": 90}')
    )
    service = RecommendationService(client)

    result = await service.get_recommendations({"breed": "Siamese"})

    assert result == {"food_bowls": 3.0, "treats": 0.5, "playtime": 60}
    assert client.chat.completions.create.call_args.kwargs["response_format"] == {"type": "json_object"}


async def test_recommendations_reject_incomplete_json():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_completion('{"food_bowls": 2}'))
    with pytest.raises(RecommendationError):
        await RecommendationService(client).get_recommendations({})


async def test_recommendations_without_key():
    with pytest.raises(RecommendationError):
        await RecommendationService(None).get_recommendations({})


async def test_cache_without_redis_runs_fallback_every_time():
    cache = RedisCache(None)
    calls = []

    async def fallback():
        calls.append(1)
        return {"success": True}

    await cache.get_cached("k", fallback, 300)
    await cache.get_cached("k", fallback, 300)
    assert len(calls) == 2


async def test_cache_hit_skips_fallback():
    redis_client = MagicMock()
    redis_client.get = AsyncMock(return_value='{"success": true, "plans": []}')
    redis_client.setex = AsyncMock()
    fallback = AsyncMock()

    value = await RedisCache(redis_client).get_cached("stripe:plans", fallback, 300)

    assert value == {"success": True, "plans": []}
    fallback.assert_not_awaited()
    redis_client.setex.assert_not_awaited()


def test_email_templates_escape_user_values():
    welcome = welcome_template('<img src=x onerror="alert(1)">')
    canceled = subscription_cancel_template("<b>Eve</b>", "2030-01-01", "Basic", "Monthly")

    assert "<img" not in welcome
    assert "&lt;img src=x onerror=&quot;alert(1)&quot;&gt;" in welcome
    assert "<b>Eve</b>" not in canceled
    assert "&lt;b&gt;Eve&lt;/b&gt;" in canceled
