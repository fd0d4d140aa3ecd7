"""
Chat Router - stored conversation history
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from auth import get_current_user
from dependencies import get_chat_service
from models.chat import ChatMessageRequest
from models.results import Found
from services.chat_service import ChatService
from utils.responses import message_response, result_response

chat_router = APIRouter(prefix="/api/chat", tags=["chat"])


@chat_router.get("")
async def get_conversations(
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    return await service.history(current_user["user_id"])


@chat_router.post("/conversation")
async def start_conversation(
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    conversation_id = await service.start(current_user["user_id"])
    return JSONResponse(status_code=201, content={"conversation_id": conversation_id})


@chat_router.post("")
async def add_message(
    request: ChatMessageRequest,
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    result = await service.add_message(
        request.conversation_id, current_user["user_id"], request.role, request.content
    )
    if isinstance(result, Found):
        return JSONResponse(
            status_code=201,
            content={"conversation_id": request.conversation_id, "message": result.value},
        )
    return result_response(result, as_error=True)


@chat_router.delete("/conversation/{conversation_id}")
async def delete_conversation(
    conversation_id: int,
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    result = await service.delete(conversation_id, current_user["user_id"])
    if isinstance(result, Found):
        return message_response("Conversation deleted successfully")
    return result_response(result, as_error=True)
