# products_api/services/auth_service.py
import re
import logging
from datetime import datetime, timedelta
from typing import Optional
import pytz
from jose import jwt, ExpiredSignatureError, JWTError
from passlib.context import CryptContext
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from ..config import Config
from ..exceptions import (
    AppError,
    AuthenticationError,
    ConflictError,
    DatabaseError,
    TokenExpired,
    TokenInvalid,
)
from ..models.user import AuthResult, TokenPayload, User

ALGORITHM = "HS256"

_DURATION = re.compile(r"^\s*(\d*\.?\d+)\s*([a-z]*)\s*$", re.IGNORECASE)
_UNIT_ALIASES = {
    timedelta(milliseconds=1): ("ms", "msec", "msecs", "millisecond", "milliseconds"),
    timedelta(seconds=1): ("", "s", "sec", "secs", "second", "seconds"),
    timedelta(minutes=1): ("m", "min", "mins", "minute", "minutes"),
    timedelta(hours=1): ("h", "hr", "hrs", "hour", "hours"),
    timedelta(days=1): ("d", "day", "days"),
    timedelta(weeks=1): ("w", "week", "weeks"),
    timedelta(days=365.25): ("y", "yr", "yrs", "year", "years"),
}
_UNITS = {alias: unit for unit, aliases in _UNIT_ALIASES.items() for alias in aliases}


def parse_duration(value: str) -> timedelta:
    """Parse "24h", "1.5h", "2 days", "30m" or a bare number of seconds"""
    match = _DURATION.match(value)
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    unit = unit.lower()
    if unit not in _UNITS:
        raise ValueError(f"Invalid duration unit: {value!r}")
    return float(amount) * _UNITS[unit]


class AuthService:
    """Password hashing, bearer tokens and the account stored functions"""

    def __init__(self, db, config: Config):
        self.db = db
        self.config = config
        self.token_ttl = parse_duration(config.JWT_EXPIRES_IN)
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=config.BCRYPT_SALT_ROUNDS,
        )
        self.logger = logging.getLogger(__name__)

    # Credentials

    def hash_password(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify_password(self, password: str, password_hash: str) -> bool:
        try:
            return self.pwd_context.verify(password, password_hash)
        except ValueError:
            # Not a hash passlib recognises
            return False

    def issue_token(self, user: User, expires_in: Optional[timedelta] = None) -> str:
        """Sign a token for ``user``; expiry defaults to JWT_EXPIRES_IN"""
        now = datetime.now(pytz.utc)
        claims = {
            "userId": user.id,
            "username": user.username,
            "email": user.email,
            "iat": int(now.timestamp()),
            "exp": int((now + (expires_in if expires_in is not None else self.token_ttl)).timestamp()),
        }
        return jwt.encode(claims, self.config.JWT_SECRET, algorithm=ALGORITHM)

    def verify_token(self, token: str) -> TokenPayload:
        """Check signature and expiry.

        Raises:
            TokenExpired: the token is past its ``exp`` claim
            TokenInvalid: bad signature, malformed token or missing claims
        """
        try:
            claims = jwt.decode(token, self.config.JWT_SECRET, algorithms=[ALGORITHM])
        except ExpiredSignatureError:
            raise TokenExpired()
        except JWTError as e:
            self.logger.info(f"Token verification failed: {e}")
            raise TokenInvalid()

        try:
            return TokenPayload.model_validate(claims)
        except ValidationError:
            raise TokenInvalid()

    # Accounts

    async def register(self, username: str, email: str, password: str) -> AuthResult:
        password_hash = await run_in_threadpool(self.hash_password, password)

        try:
            rows = await self.db.execute_procedure("create_user", {
                "p_username": username,
                "p_email": email,
                "p_password_hash": password_hash,
            })
        except DatabaseError as e:
            if e.is_unique_violation():
                raise ConflictError("Username or email already exists", code="USER_ALREADY_EXISTS")
            self.logger.error(f"Registration failed for {username}: {e}")
            raise AppError("Registration failed", 500, "REGISTRATION_ERROR") from e

        if not rows:
            raise AppError("Failed to create user", 500, "REGISTRATION_ERROR")

        user = User.model_validate(rows[0])
        self.logger.info(f"User registered successfully: {username}")
        return self._auth_result(user)

    async def login(self, username: str, password: str) -> AuthResult:
        try:
            rows = await self.db.execute_procedure("get_user_by_username", {"p_username": username})
        except DatabaseError as e:
            self.logger.error(f"Login lookup failed for {username}: {e}")
            raise AppError("Login failed", 500, "LOGIN_ERROR") from e

        if not rows:
            raise AuthenticationError("Invalid credentials", code="INVALID_CREDENTIALS")

        user = User.model_validate(rows[0])
        if not user.password_hash:
            raise AuthenticationError("Invalid credentials", code="INVALID_CREDENTIALS")

        is_valid = await run_in_threadpool(self.verify_password, password, user.password_hash)
        if not is_valid:
            raise AuthenticationError("Invalid credentials", code="INVALID_CREDENTIALS")

        self.logger.info(f"User logged in successfully: {username}")
        return self._auth_result(user)

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        try:
            rows = await self.db.execute_query(
                """
                SELECT id, username, email, created_at, updated_at
                FROM users
                WHERE id = $1
                """,
                user_id,
            )
        except DatabaseError as e:
            self.logger.error(f"Failed to load user {user_id}: {e}")
            raise AppError("Failed to retrieve user", 500, "USER_FETCH_ERROR") from e

        return User.model_validate(rows[0]) if rows else None

    async def refresh_token(self, token: str) -> AuthResult:
        """Verify ``token``, reload the user and issue a fresh token"""
        payload = self.verify_token(token)

        user = await self.get_user_by_id(payload.user_id)
        if user is None:
            raise AuthenticationError(
                "The user associated with this token no longer exists",
                code="USER_NOT_FOUND",
            )

        return self._auth_result(user)

    def _auth_result(self, user: User) -> AuthResult:
        return AuthResult(
            user=user.public(),
            token=self.issue_token(user),
            expires_in=self.config.JWT_EXPIRES_IN,
        )
