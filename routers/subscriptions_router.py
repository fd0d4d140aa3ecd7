"""
Subscriptions Router - one subscription record per user
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from auth import get_current_user
from dependencies import get_idempotency_key, get_subscription_service
from models.results import Found
from models.subscription import SubscriptionCreate, SubscriptionUpdate
from services.subscription_service import SubscriptionService
from utils.responses import message_response, result_response
from utils.shared_utils import log_endpoint_event

logger = logging.getLogger(__name__)

subscriptions_router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


@subscriptions_router.get("")
async def get_subscription(
    current_user: dict = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    result = await service.get(current_user["user_id"])
    if isinstance(result, Found):
        return result.value
    return result_response(result)


@subscriptions_router.post("")
async def create_subscription(
    request: SubscriptionCreate,
    current_user: dict = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    user_id = current_user["user_id"]
    result = await service.create(user_id, request.model_dump())
    if isinstance(result, Found):
        log_endpoint_event("/api/subscriptions", user_id, "success", {"id": result.value["id"]})
        return JSONResponse(status_code=201, content=result.value)

    log_endpoint_event("/api/subscriptions", user_id, "rejected", {"reason": getattr(result, "message", None)})
    return result_response(result)


@subscriptions_router.put("/{subscription_id}")
async def update_subscription(
    subscription_id: str,
    request: SubscriptionUpdate,
    current_user: dict = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    result = await service.update(subscription_id, current_user["user_id"], request.changes())
    if isinstance(result, Found):
        return result.value
    return result_response(result)


@subscriptions_router.delete("/{subscription_id}")
async def delete_subscription(
    subscription_id: str,
    current_user: dict = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
):
    user_id = current_user["user_id"]
    result = await service.cancel(subscription_id, user_id, idempotency_key=idempotency_key)
    if isinstance(result, Found):
        log_endpoint_event(f"/api/subscriptions/{subscription_id}", user_id, "success", {"action": "cancel"})
        return message_response("Subscription deleted successfully")

    log_endpoint_event(f"/api/subscriptions/{subscription_id}", user_id, "error", {"action": "cancel"})
    return result_response(result)
