"""
Cats Router - cat profile CRUD with AI recommendations
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from auth import get_current_user
from dependencies import get_cat_service
from models.cat import CatProfile, CatUpdate
from models.results import Found
from services.cat_service import CatService
from utils.responses import message_response, result_response
from utils.shared_utils import log_endpoint_event

cats_router = APIRouter(prefix="/api/cats", tags=["cats"])


@cats_router.get("")
async def list_cats(
    current_user: dict = Depends(get_current_user),
    service: CatService = Depends(get_cat_service),
):
    result = await service.list_cats(current_user["user_id"])
    if isinstance(result, Found):
        return result.value
    return result_response(result)


@cats_router.post("")
async def create_cat(
    request: CatProfile,
    current_user: dict = Depends(get_current_user),
    service: CatService = Depends(get_cat_service),
):
    result = await service.create(current_user["user_id"], request.model_dump())
    log_endpoint_event("/api/cats", current_user["user_id"], "success", {"cat_id": result.value["id"]})
    return JSONResponse(status_code=201, content=result.value)


@cats_router.put("/{cat_id}")
async def update_cat(
    cat_id: int,
    request: CatUpdate,
    current_user: dict = Depends(get_current_user),
    service: CatService = Depends(get_cat_service),
):
    result = await service.update(cat_id, current_user["user_id"], request.changes())
    if isinstance(result, Found):
        return result.value
    return result_response(result)


@cats_router.delete("/{cat_id}")
async def delete_cat(
    cat_id: int,
    current_user: dict = Depends(get_current_user),
    service: CatService = Depends(get_cat_service),
):
    result = await service.delete(cat_id, current_user["user_id"])
    if isinstance(result, Found):
        return message_response("Cat deleted successfully")
    return result_response(result)
