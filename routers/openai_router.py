"""
OpenAI Router - one-off recommendations and veterinary chat
"""

import logging

from fastapi import APIRouter, Depends

from auth import get_current_user
from dependencies import get_cat_service, get_recommendation_service
from models.cat import CatProfile
from models.chat import OpenAIChatRequest
from models.results import Found
from services.cat_service import CatService
from services.recommendation_service import ChatError, RecommendationError, RecommendationService
from utils.responses import message_response, result_response

logger = logging.getLogger(__name__)

openai_router = APIRouter(prefix="/api/openai", tags=["openai"])


@openai_router.post("/recommendations")
async def recommendations(
    request: CatProfile,
    current_user: dict = Depends(get_current_user),
    recommender: RecommendationService = Depends(get_recommendation_service),
):
    try:
        return await recommender.get_recommendations(request.model_dump())
    except RecommendationError as e:
        return message_response(str(e), 500)


@openai_router.post("/chat")
async def chat(
    request: OpenAIChatRequest,
    current_user: dict = Depends(get_current_user),
    service: CatService = Depends(get_cat_service),
):
    try:
        result = await service.chat(
            request.cat_id,
            current_user["user_id"],
            [turn.for_model() for turn in request.messages],
            request.language,
        )
    except ChatError as e:
        return message_response(str(e), 500)

    if isinstance(result, Found):
        return {"message": result.value}
    return result_response(result)
