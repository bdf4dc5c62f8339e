# products_api/models/user.py
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from .base import TimeStampedModel

class User(TimeStampedModel):
    """Account record; password_hash is only loaded for login"""
    id: int
    username: str
    email: str
    password_hash: Optional[str] = None

    def public(self) -> "PublicUser":
        return PublicUser(
            id=self.id,
            username=self.username,
            email=self.email,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class PublicUser(TimeStampedModel):
    """User shape that is safe to serialize"""
    id: int
    username: str
    email: str


class TokenPayload(BaseModel):
    """Claims carried by a bearer token"""
    user_id: int = Field(alias="userId")
    username: str
    email: str
    iat: Optional[int] = None
    exp: Optional[int] = None

    model_config = ConfigDict(populate_by_name=True)


class AuthResult(BaseModel):
    user: PublicUser
    token: str
    expires_in: str
