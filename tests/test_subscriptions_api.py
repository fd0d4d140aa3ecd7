"""
HTTP tests for /api/subscriptions
"""
from models.subscription import utc_today
from tests.conftest import future_date


def _body(**overrides):
    body = {
        "plan": "Basic",
        "start_date": utc_today().isoformat(),
        "end_date": future_date(60).isoformat(),
        "provider": "Stripe",
        "billing_period": "Monthly",
    }
    body.update(overrides)
    return body


async def _issue_handle(client, headers, provider="Stripe"):
    """Create a provider subscription through /api/payments; the fake provider issues "sub_fake"."""
    if provider == "Stripe":
        body = {"name": "Ada", "email": "ada@example.com", "paymentMethodId": "pm_1", "priceId": "price_1"}
        response = await client.post("/api/payments/stripe/subscription", json=body, headers=headers)
    else:
        body = {
            "planId": "P-1",
            "subscriber": {"email_address": "ada@example.com"},
            "returnUrl": "https://app.example.com/ok",
            "cancelUrl": "https://app.example.com/cancel",
        }
        response = await client.post("/api/payments/paypal/subscription", json=body, headers=headers)
    assert response.status_code == 201
    return response.json()["subscriptionId"]


async def test_requires_token(client):
    response = await client.get("/api/subscriptions")
    assert response.status_code == 401
    assert response.json() == {"message": "Authentication token is missing"}


async def test_rejects_bad_token(client):
    response = await client.get("/api/subscriptions", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json() == {"message": "Invalid token. User not authenticated."}


async def test_create_then_get(client, make_user, outbox, email_service):
    _, headers = await make_user()

    created = await client.post("/api/subscriptions", json=_body(), headers=headers)
    assert created.status_code == 201
    record = created.json()
    assert record["plan"] == "Basic"
    assert record["end_date"] == future_date(60).isoformat()

    fetched = await client.get("/api/subscriptions", headers=headers)
    assert fetched.status_code == 200
    assert fetched.json()["id"] == record["id"]

    await outbox.join()
    assert email_service.sent[0][0] == "subscription_confirmation"


async def test_get_without_subscription(client, make_user):
    _, headers = await make_user()
    response = await client.get("/api/subscriptions", headers=headers)
    assert response.status_code == 404
    assert response.json() == {"message": "No subscription found for this user."}


async def test_duplicate_create(client, make_user):
    _, headers = await make_user()
    assert (await client.post("/api/subscriptions", json=_body(), headers=headers)).status_code == 201

    response = await client.post("/api/subscriptions", json=_body(plan="Premium"), headers=headers)

    assert response.status_code == 400
    assert response.json() == {"message": "User already has a subscription"}


async def test_invalid_billing_period(client, make_user):
    _, headers = await make_user()
    response = await client.post("/api/subscriptions", json=_body(billing_period="Weekly"), headers=headers)
    assert response.status_code == 400
    assert "Billing period must be either Monthly or Yearly" in response.json()["errors"]


async def test_missing_fields_are_listed(client, make_user):
    _, headers = await make_user()
    body = _body()
    del body["plan"]
    del body["provider"]

    response = await client.post("/api/subscriptions", json=body, headers=headers)

    errors = response.json()["errors"]
    assert response.status_code == 400
    assert "Plan is required" in errors
    assert "Provider is required" in errors


async def test_end_date_today_is_rejected(client, make_user):
    _, headers = await make_user()
    response = await client.post(
        "/api/subscriptions", json=_body(end_date=utc_today().isoformat()), headers=headers
    )
    assert response.status_code == 400
    assert response.json() == {"errors": ["End date must be in the future"]}


async def test_partial_update_changes_only_plan(client, make_user):
    _, headers = await make_user()
    record = (await client.post("/api/subscriptions", json=_body(), headers=headers)).json()

    response = await client.put(f"/api/subscriptions/{record['id']}", json={"plan": "Premium"}, headers=headers)

    assert response.status_code == 200
    updated = response.json()
    assert updated["plan"] == "Premium"
    for field in ("start_date", "end_date", "provider", "billing_period"):
        assert updated[field] == record[field]


async def test_empty_update_is_rejected(client, make_user):
    _, headers = await make_user()
    record = (await client.post("/api/subscriptions", json=_body(), headers=headers)).json()

    response = await client.put(f"/api/subscriptions/{record['id']}", json={}, headers=headers)

    assert response.status_code == 400
    assert response.json()["errors"] == [
        "At least one of plan, end_date, start_date, provider or billing_period must be provided"
    ]


async def test_update_missing_and_foreign(client, make_user):
    _, owner_headers = await make_user()
    _, other_headers = await make_user()
    record = (await client.post("/api/subscriptions", json=_body(), headers=owner_headers)).json()

    missing = await client.put("/api/subscriptions/unknown", json={"plan": "Premium"}, headers=owner_headers)
    foreign = await client.put(f"/api/subscriptions/{record['id']}", json={"plan": "Premium"}, headers=other_headers)

    assert missing.status_code == 404
    assert missing.json() == {"message": "Subscription not found"}
    assert foreign.status_code == 403


async def test_delete_by_other_user_is_forbidden(client, make_user, outbox, email_service):
    _, owner_headers = await make_user()
    _, other_headers = await make_user()
    record = (await client.post("/api/subscriptions", json=_body(), headers=owner_headers)).json()

    response = await client.delete(f"/api/subscriptions/{record['id']}", headers=other_headers)
    await outbox.join()

    assert response.status_code == 403
    assert (await client.get("/api/subscriptions", headers=owner_headers)).status_code == 200
    assert all(kind != "subscription_canceled" for kind, *_ in email_service.sent)


async def test_owner_delete_then_get_is_404(client, make_user, outbox, email_service):
    _, headers = await make_user()
    record = (await client.post("/api/subscriptions", json=_body(), headers=headers)).json()

    response = await client.delete(f"/api/subscriptions/{record['id']}", headers=headers)
    await outbox.join()

    assert response.status_code == 200
    assert response.json() == {"message": "Subscription deleted successfully"}
    assert (await client.get("/api/subscriptions", headers=headers)).status_code == 404
    assert email_service.sent[-1][0] == "subscription_canceled"


async def test_delete_passes_idempotency_key_to_provider(client, make_user, providers):
    _, headers = await make_user()
    handle = await _issue_handle(client, headers)
    await client.post("/api/subscriptions", json=_body(id=handle), headers=headers)

    response = await client.delete(
        f"/api/subscriptions/{handle}", headers={**headers, "Idempotency-Key": "retry-42"}
    )

    assert response.status_code == 200
    method, kwargs = providers["Stripe"].calls[-1]
    assert method == "cancel_subscription"
    assert kwargs["idempotency_key"] == "retry-42"


async def test_delete_surfaces_provider_error(client, make_user, providers):
    _, headers = await make_user()
    handle = await _issue_handle(client, headers, provider="PayPal")
    await client.post("/api/subscriptions", json=_body(id=handle, provider="PayPal"), headers=headers)
    providers["PayPal"].fail_with = "Subscription already cancelled"

    response = await client.delete(f"/api/subscriptions/{handle}", headers=headers)

    assert response.status_code == 400
    assert response.json() == {"error": "Subscription already cancelled"}
    assert (await client.get("/api/subscriptions", headers=headers)).status_code == 200


async def test_create_with_another_users_handle(client, make_user, providers):
    _, owner = await make_user()
    _, other = await make_user()
    handle = await _issue_handle(client, owner)
    assert (await client.post("/api/subscriptions", json=_body(id=handle), headers=owner)).status_code == 201

    response = await client.post("/api/subscriptions", json=_body(id=handle), headers=other)

    assert response.status_code == 403
    assert response.json() == {"message": "User not authorized to use this provider subscription"}
    assert (await client.get("/api/subscriptions", headers=other)).status_code == 404
    assert (await client.get("/api/subscriptions", headers=owner)).json()["id"] == handle


async def test_create_with_unissued_handle_cannot_cancel_it(client, make_user, providers):
    _, headers = await make_user()

    response = await client.post("/api/subscriptions", json=_body(id="sub_someone_elses"), headers=headers)

    assert response.status_code == 403
    assert all(method != "cancel_subscription" for method, _ in providers["Stripe"].calls)


async def test_delete_after_switching_provider(client, make_user, providers):
    _, headers = await make_user()
    handle = await _issue_handle(client, headers)
    await client.post("/api/subscriptions", json=_body(id=handle), headers=headers)

    switched = await client.put(f"/api/subscriptions/{handle}", json={"provider": "PayPal"}, headers=headers)
    response = await client.delete(f"/api/subscriptions/{handle}", headers=headers)

    assert switched.json()["provider"] == "PayPal"
    assert response.status_code == 200
    assert providers["Stripe"].calls[-1] == (
        "cancel_subscription", {"provider_subscription_id": handle, "reason": None, "idempotency_key": None}
    )
    assert providers["PayPal"].calls == []
