# products_api/middleware/auth.py
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple
from fastapi import Depends, Request
from ..exceptions import AuthenticationError, TokenExpired, TokenInvalid
from ..models.user import TokenPayload

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    NO_HEADER = "no_header"
    MALFORMED_HEADER = "malformed_header"
    EMPTY_TOKEN = "empty_token"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_INVALID = "token_invalid"
    USER_MISSING = "user_missing"
    AUTHENTICATED = "authenticated"


# state -> (code, message) for every rejecting state
REJECTIONS = {
    AuthState.NO_HEADER: ("AUTH_HEADER_MISSING", "Authorization header missing"),
    AuthState.MALFORMED_HEADER: (
        "INVALID_AUTH_FORMAT",
        "Authorization header must be in format: Bearer <token>",
    ),
    AuthState.EMPTY_TOKEN: ("TOKEN_EMPTY", "Token cannot be empty"),
    AuthState.TOKEN_EXPIRED: ("TOKEN_EXPIRED", "Token has expired"),
    AuthState.TOKEN_INVALID: ("TOKEN_INVALID", "Invalid token provided"),
    AuthState.USER_MISSING: (
        "USER_NOT_FOUND",
        "The user associated with this token no longer exists",
    ),
}


@dataclass
class AuthContext:
    """Verified identity handed to route handlers"""
    user: TokenPayload
    token: str


@dataclass
class AuthOutcome:
    state: AuthState
    context: Optional[AuthContext] = None

    @property
    def authenticated(self) -> bool:
        return self.state is AuthState.AUTHENTICATED


def parse_authorization(header: Optional[str]) -> Tuple[Optional[AuthState], Optional[str]]:
    """Split ``Bearer <token>``; returns a rejecting state or the token"""
    if not header:
        return AuthState.NO_HEADER, None
    parts = header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        return AuthState.MALFORMED_HEADER, None
    if not parts[1]:
        return AuthState.EMPTY_TOKEN, None
    return None, parts[1]


class AuthenticationGate:
    """Turns an Authorization header into an ``AuthOutcome``"""

    def __init__(self, auth_service):
        self.auth_service = auth_service

    async def evaluate(self, header: Optional[str], check_user: bool = True) -> AuthOutcome:
        state, token = parse_authorization(header)
        if state is not None:
            return AuthOutcome(state)

        try:
            payload = self.auth_service.verify_token(token)
        except TokenExpired:
            return AuthOutcome(AuthState.TOKEN_EXPIRED)
        except TokenInvalid:
            return AuthOutcome(AuthState.TOKEN_INVALID)

        if check_user:
            user = await self.auth_service.get_user_by_id(payload.user_id)
            if user is None:
                return AuthOutcome(AuthState.USER_MISSING)

        return AuthOutcome(AuthState.AUTHENTICATED, AuthContext(user=payload, token=token))

    async def require(self, header: Optional[str]) -> AuthContext:
        outcome = await self.evaluate(header)
        if not outcome.authenticated:
            code, message = REJECTIONS[outcome.state]
            logger.info(f"Authentication rejected: {outcome.state.value}")
            raise AuthenticationError(message, code=code)
        return outcome.context

    async def optional(self, header: Optional[str]) -> Optional[AuthContext]:
        """Never rejects: a missing header is a no-op, failures are logged"""
        if header is None:
            return None
        try:
            outcome = await self.evaluate(header, check_user=False)
        except Exception as e:
            logger.warning(f"Optional authentication failed: {e}")
            return None
        if not outcome.authenticated:
            logger.warning(f"Optional authentication failed: {outcome.state.value}")
            return None
        return outcome.context


def _gate(request: Request) -> AuthenticationGate:
    return request.app.state.auth_gate


async def authenticate(request: Request) -> AuthContext:
    """Dependency for routes that require a bearer token"""
    return await _gate(request).require(request.headers.get("authorization"))


async def optional_authenticate(request: Request) -> Optional[AuthContext]:
    """Dependency for routes where a bearer token is optional"""
    return await _gate(request).optional(request.headers.get("authorization"))


def authorize(*roles: str):
    """Require an authenticated identity.

    ``roles`` is accepted for route declarations; every authenticated user
    passes until roles exist on accounts.
    """
    async def dependency(auth: Optional[AuthContext] = Depends(optional_authenticate)) -> AuthContext:
        if auth is None:
            raise AuthenticationError(
                "You must be authenticated to access this resource",
                code="AUTH_REQUIRED",
            )
        return auth

    return dependency
