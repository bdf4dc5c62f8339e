from datetime import datetime, timedelta
from decimal import Decimal

import pytest
import pytz
from fastapi.testclient import TestClient

from products_api.app import create_app
from products_api.config import Config
from products_api.exceptions import DatabaseError
from products_api.models.user import User

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=pytz.utc)
PASSWORD = "SecurePass123!"


class FakeDatabase:
    """In-memory stand-in for the stored functions and the raw queries.

    Every call is recorded in ``calls`` as ``(name_or_sql, params)``.
    ``query_results`` maps a SQL fragment to canned rows for execute_query.
    """

    def __init__(self):
        self.products = {}
        self.users = {}
        self.calls = []
        self.query_results = {}
        self.healthy = True
        self.fail_with = None
        self.connected = False
        self._next_product_id = 1
        self._next_user_id = 1
        self._tick = 0

    # Lifecycle

    async def connect(self):
        self.connected = True

    async def close(self):
        self.connected = False

    async def health_check(self):
        return self.healthy

    # Fixture helpers

    def _now(self):
        self._tick += 1
        return BASE_TIME + timedelta(minutes=self._tick)

    def add_product(self, name, price, category="Electronics", description=None):
        now = self._now()
        row = {
            "id": self._next_product_id,
            "name": name,
            "description": description,
            "price": Decimal(str(price)),
            "category": category,
            "created_at": now,
            "updated_at": now,
        }
        self.products[row["id"]] = row
        self._next_product_id += 1
        return dict(row)

    def add_user(self, username, email, password_hash):
        now = self._now()
        for user in self.users.values():
            if user["username"] == username or user["email"] == email:
                raise DatabaseError("Username or email already exists", sqlstate="23505")
        row = {
            "id": self._next_user_id,
            "username": username,
            "email": email,
            "password_hash": password_hash,
            "created_at": now,
            "updated_at": now,
        }
        self.users[row["id"]] = row
        self._next_user_id += 1
        return dict(row)

    def procedure_calls(self):
        return [name for name, _ in self.calls if not name.lstrip().upper().startswith("SELECT")]

    # Database interface

    async def execute_procedure(self, name, params=None):
        params = params or {}
        self.calls.append((name, params))
        if self.fail_with is not None:
            raise self.fail_with
        return getattr(self, f"_proc_{name}")(**params)

    async def execute_query(self, query, *args):
        self.calls.append((query, args))
        if self.fail_with is not None:
            raise self.fail_with
        for fragment, rows in self.query_results.items():
            if fragment in query:
                return rows
        if "FROM users" in query:
            user = self.users.get(args[0])
            if user is None:
                return []
            return [{k: v for k, v in user.items() if k != "password_hash"}]
        if "DISTINCT category" in query:
            return [{"category": c} for c in sorted({p["category"] for p in self.products.values()})]
        if "ILIKE" in query:
            term = args[1].lower()
            matches = [
                dict(p) for p in self.products.values()
                if term in p["name"].lower() or term in (p["description"] or "").lower()
            ]
            return matches[:args[3]]
        raise AssertionError(f"Unexpected query: {query}")

    # Stored functions

    def _proc_get_products(self, p_page_number, p_page_size, p_category, p_search_term):
        rows = list(self.products.values())
        if p_category is not None:
            rows = [r for r in rows if r["category"] == p_category]
        if p_search_term is not None:
            term = p_search_term.lower()
            rows = [
                r for r in rows
                if term in r["name"].lower() or term in (r["description"] or "").lower()
            ]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        total = len(rows)
        start = (p_page_number - 1) * p_page_size
        return [dict(r, total_count=total) for r in rows[start:start + p_page_size]]

    def _proc_get_product_by_id(self, p_id):
        row = self.products.get(p_id)
        return [dict(row)] if row else []

    def _proc_create_product(self, p_name, p_description, p_price, p_category):
        return [self.add_product(p_name, p_price, p_category, p_description)]

    def _proc_update_product(self, p_id, p_name, p_description, p_price, p_category):
        row = self.products.get(p_id)
        if row is None:
            raise DatabaseError("Product not found", sqlstate="P0002")
        row.update(
            name=p_name,
            description=p_description,
            price=Decimal(str(p_price)),
            category=p_category,
            updated_at=self._now(),
        )
        return [dict(row)]

    def _proc_delete_product(self, p_id):
        self.products.pop(p_id)
        return [{"message": "Product deleted successfully"}]

    def _proc_get_user_by_username(self, p_username):
        return [dict(u) for u in self.users.values() if u["username"] == p_username]

    def _proc_create_user(self, p_username, p_email, p_password_hash):
        row = self.add_user(p_username, p_email, p_password_hash)
        del row["password_hash"]
        return [row]


@pytest.fixture
def env(monkeypatch, tmp_path):
    """Environment for Config(); tests may override keys before building it"""
    values = {
        "APP_ENV": "test",
        "JWT_SECRET": "test-secret",
        "JWT_EXPIRES_IN": "24h",
        "BCRYPT_SALT_ROUNDS": "4",
        "LOG_DIR": str(tmp_path / "logs"),
    }
    for key, value in values.items():
        monkeypatch.setenv(key, value)
    return monkeypatch


@pytest.fixture
def config(env):
    return Config()


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def app(config, db):
    return create_app(config, db)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def auth_service(app):
    return app.state.auth_service


@pytest.fixture
def user(db, auth_service):
    row = db.add_user("johndoe", "john@example.com", auth_service.hash_password(PASSWORD))
    return User.model_validate(row)


@pytest.fixture
def token(auth_service, user):
    return auth_service.issue_token(user)


@pytest.fixture
def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}
