from datetime import timedelta

import pytest
from fastapi import Depends

from products_api.exceptions import AuthenticationError
from products_api.middleware.auth import (
    AuthState,
    AuthenticationGate,
    authorize,
    parse_authorization,
)


@pytest.mark.parametrize("header,state", [
    (None, AuthState.NO_HEADER),
    ("", AuthState.NO_HEADER),
    ("Token abc", AuthState.MALFORMED_HEADER),
    ("Bearer", AuthState.MALFORMED_HEADER),
    ("Bearer a b", AuthState.MALFORMED_HEADER),
    ("bearer abc", AuthState.MALFORMED_HEADER),
    ("Bearer ", AuthState.EMPTY_TOKEN),
])
def test_parse_authorization_rejections(header, state):
    assert parse_authorization(header) == (state, None)


def test_parse_authorization_token():
    assert parse_authorization("Bearer abc.def") == (None, "abc.def")


@pytest.fixture
def gate(auth_service):
    return AuthenticationGate(auth_service)


class TestGate:
    async def test_authenticated(self, gate, user, token):
        outcome = await gate.evaluate(f"Bearer {token}")

        assert outcome.authenticated
        assert outcome.context.user.user_id == user.id
        assert outcome.context.token == token

    async def test_expired(self, gate, auth_service, user):
        token = auth_service.issue_token(user, expires_in=timedelta(seconds=-5))

        assert (await gate.evaluate(f"Bearer {token}")).state is AuthState.TOKEN_EXPIRED

    async def test_invalid(self, gate):
        assert (await gate.evaluate("Bearer nonsense")).state is AuthState.TOKEN_INVALID

    async def test_user_missing(self, gate, token, db):
        db.users.clear()

        assert (await gate.evaluate(f"Bearer {token}")).state is AuthState.USER_MISSING

    @pytest.mark.parametrize("header,code,message", [
        (None, "AUTH_HEADER_MISSING", "Authorization header missing"),
        ("", "AUTH_HEADER_MISSING", "Authorization header missing"),
        ("Basic abc", "INVALID_AUTH_FORMAT", "Authorization header must be in format: Bearer <token>"),
        ("Bearer ", "TOKEN_EMPTY", "Token cannot be empty"),
        ("Bearer nonsense", "TOKEN_INVALID", "Invalid token provided"),
    ])
    async def test_require_rejects(self, gate, header, code, message):
        with pytest.raises(AuthenticationError) as exc_info:
            await gate.require(header)

        assert exc_info.value.status_code == 401
        assert exc_info.value.code == code
        assert exc_info.value.message == message

    async def test_optional_never_rejects(self, gate, user, token):
        assert await gate.optional(None) is None
        assert await gate.optional("Bearer nonsense") is None
        assert await gate.optional("garbage") is None
        assert (await gate.optional(f"Bearer {token}")).user.user_id == user.id

    async def test_optional_skips_user_lookup(self, gate, token, db):
        db.users.clear()

        context = await gate.optional(f"Bearer {token}")

        assert context is not None
        assert not any("FROM users" in name for name, _ in db.calls)


class TestAuthorize:
    @pytest.fixture
    def admin_client(self, app, client):
        @app.get("/admin-only")
        async def admin_only(auth=Depends(authorize("admin"))):
            return {"userId": auth.user.user_id}

        return client

    def test_requires_identity(self, admin_client):
        response = admin_client.get("/admin-only")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_REQUIRED"
        assert response.json()["error"]["message"] == "You must be authenticated to access this resource"

    def test_allows_authenticated_user(self, admin_client, auth_headers, user):
        response = admin_client.get("/admin-only", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"userId": user.id}
