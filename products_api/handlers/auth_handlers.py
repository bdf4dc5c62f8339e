# products_api/handlers/auth_handlers.py
import logging
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from .base_handler import ValidatedRequest, get_auth_service, validated
from ..exceptions import NotFoundError
from ..middleware.auth import AuthContext, authenticate
from ..middleware.rate_limit import rate_limit
from ..services.auth_service import AuthService
from ..utils.formatters import (
    format_auth_result,
    format_datetime,
    format_timestamp,
    format_user,
    success_response,
    utc_now,
)
from ..validation.schemas import login_schema, register_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/register", dependencies=[Depends(rate_limit("register"))])
async def register(
    req: ValidatedRequest = Depends(validated(body=register_schema)),
    auth_service: AuthService = Depends(get_auth_service),
):
    logger.debug(f"User registration request: {req.body['username']}")
    result = await auth_service.register(
        req.body["username"], req.body["email"], req.body["password"]
    )
    return JSONResponse(
        success_response("User registered successfully", format_auth_result(result)),
        status_code=201,
    )


@router.post("/login", dependencies=[Depends(rate_limit("login"))])
async def login(
    req: ValidatedRequest = Depends(validated(body=login_schema)),
    auth_service: AuthService = Depends(get_auth_service),
):
    logger.debug(f"User login request: {req.body['username']}")
    result = await auth_service.login(req.body["username"], req.body["password"])
    return success_response("Login successful", format_auth_result(result))


@router.get("/profile")
async def profile(
    auth: AuthContext = Depends(authenticate),
    auth_service: AuthService = Depends(get_auth_service),
):
    user = await auth_service.get_user_by_id(auth.user.user_id)
    if user is None:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")
    return success_response("Profile retrieved successfully", {"user": format_user(user.public())})


@router.post("/refresh")
async def refresh(
    auth: AuthContext = Depends(authenticate),
    auth_service: AuthService = Depends(get_auth_service),
):
    logger.debug(f"Token refresh request for user: {auth.user.user_id}")
    result = await auth_service.refresh_token(auth.token)
    return success_response("Token refreshed successfully", format_auth_result(result))


@router.post("/logout")
async def logout(auth: AuthContext = Depends(authenticate)):
    # Tokens are stateless; the client discards its copy
    logger.debug(f"Logout request for user: {auth.user.user_id}")
    return success_response(
        "Logged out successfully",
        {"loggedOut": True, "timestamp": format_datetime(utc_now())},
    )


@router.get("/validate")
async def validate_token(auth: AuthContext = Depends(authenticate)):
    return success_response(
        "Token is valid",
        {
            "valid": True,
            "user": {
                "userId": auth.user.user_id,
                "username": auth.user.username,
                "email": auth.user.email,
            },
            "expiresAt": format_timestamp(auth.user.exp),
        },
    )
