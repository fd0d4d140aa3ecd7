"""
Authentication routes and dependencies
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from auth_utils import create_jwt, decode_jwt, hash_password, verify_password
from crud.user import EmailAlreadyRegistered, UserRepository
from database import get_db
from dependencies import get_notifier
from models.user import SigninRequest, SignupRequest
from services.notifications import LifecycleNotifier
from utils.responses import error_response
from utils.shared_utils import log_endpoint_event

logger = logging.getLogger(__name__)

# Create auth router
auth_router = APIRouter(prefix="/api/auth", tags=["auth"])

MISSING_TOKEN = "Authentication token is missing"
INVALID_TOKEN = "Invalid token. User not authenticated."
INVALID_CREDENTIALS = "Invalid email or password"


class AuthenticationError(Exception):
    """Rendered as 401 {"message": ...} by the handler registered in main."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def _token_response(token: str, expires_in: int, status: int) -> JSONResponse:
    return JSONResponse(status_code=status, content={"token": token, "expiresIn": expires_in})


@auth_router.post("/signup")
async def signup(
    request: SignupRequest,
    db: AsyncSession = Depends(get_db),
    notifier: LifecycleNotifier = Depends(get_notifier),
):
    """Create a new user account"""
    user_repo = UserRepository(db)

    if await user_repo.get_user_by_email(request.email):
        log_endpoint_event("/api/auth/signup", None, "conflict", {"email": request.email})
        return error_response("Email already in use", 409)

    try:
        user = await user_repo.create_user({
            "email": request.email,
            "hashed_password": hash_password(request.password),
            "first_name": request.first_name,
            "last_name": request.last_name,
            "phone_number": request.phone_number,
        })
    except EmailAlreadyRegistered:
        return error_response("Email already in use", 409)

    token, expires_in = create_jwt(user.id, user.email, user.full_name)
    await db.commit()

    notifier.signed_up(user.email, user.first_name, user.last_name, user.phone_number)
    log_endpoint_event("/api/auth/signup", user.id, "success")
    return _token_response(token, expires_in, 201)


@auth_router.post("/signin")
async def signin(request: SigninRequest, db: AsyncSession = Depends(get_db)):
    """Exchange email and password for a token"""
    user = await UserRepository(db).get_user_by_email(request.email)
    if not user or not verify_password(request.password, user.hashed_password):
        log_endpoint_event("/api/auth/signin", None, "unauthorized")
        return error_response(INVALID_CREDENTIALS, 401)

    token, expires_in = create_jwt(user.id, user.email, user.full_name)
    log_endpoint_event("/api/auth/signin", user.id, "success")
    return _token_response(token, expires_in, 200)


# Dependency for protected routes
async def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> dict:
    """
    Resolve the caller from an "Authorization: Bearer <token>" header.

    Returns:
        {"user_id": int, "email": str, "full_name": str}

    Raises:
        AuthenticationError: when the token is missing, malformed or expired
    """
    token = None
    if authorization and authorization.startswith("Bearer "):
        token = authorization[len("Bearer "):].strip()

    if not token:
        raise AuthenticationError(MISSING_TOKEN)

    payload = decode_jwt(token)
    if not payload:
        raise AuthenticationError(INVALID_TOKEN)

    # JWT stores the subject as a string
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise AuthenticationError(INVALID_TOKEN)

    return {
        "user_id": user_id,
        "email": payload.get("email"),
        "full_name": payload.get("full_name"),
    }


@auth_router.get("/me")
async def me(current_user: dict = Depends(get_current_user)):
    return current_user
