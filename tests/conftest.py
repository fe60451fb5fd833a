"""Shared fixtures: an in-memory Supabase stand-in and a FastAPI test client.

``FakeSupabase`` implements just the slice of the supabase-py query builder
and auth API the services call, so routes run end to end without a network.
"""
import itertools
import re
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from healthy_meal.app import app
from healthy_meal.core.deps import get_auth_supabase, get_openrouter_service, get_supabase


TEST_USER_ID = "user-1"
TEST_TOKEN = "token-1"
TEST_EMAIL = "cook@example.com"
OTHER_USER_ID = "user-2"

_SEARCH_RE = re.compile(r"^title\.ilike\.%(.*)%,content\.ilike\.%(.*)%$")


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.action = "select"
        self.payload = None
        self.count_mode = None
        self.filters = []
        self.sort = None
        self.bounds = None
        self.max_rows = None

    def select(self, *columns, count=None):
        self.count_mode = count
        return self

    def insert(self, record):
        self.action = "insert"
        self.payload = dict(record)
        return self

    def update(self, record):
        self.action = "update"
        self.payload = dict(record)
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def is_(self, column, value):
        assert value == "null"
        self.filters.append(lambda row: row.get(column) is None)
        return self

    def or_(self, expression):
        match = _SEARCH_RE.match(expression)
        assert match, expression
        term = match.group(1).lower()
        self.filters.append(
            lambda row: term in (row.get("title") or "").lower() or term in (row.get("content") or "").lower()
        )
        return self

    def order(self, column, desc=False):
        self.sort = (column, desc)
        return self

    def range(self, start, end):
        self.bounds = (start, end)
        return self

    def limit(self, count):
        self.max_rows = count
        return self

    def execute(self):
        self.db.executed.append((self.table, self.action))
        if self.table in self.db.failing_tables:
            raise RuntimeError("database unavailable")

        rows = self.db.tables.setdefault(self.table, [])
        if self.action == "insert":
            row = self.db.new_row(self.payload)
            rows.append(row)
            return SimpleNamespace(data=[dict(row)], count=None)

        matched = [row for row in rows if all(check(row) for check in self.filters)]
        if self.action == "update":
            for row in matched:
                row.update(self.payload)
            return SimpleNamespace(data=[dict(row) for row in matched], count=None)

        total = len(matched)
        if self.sort:
            column, desc = self.sort
            matched.sort(key=lambda row: (row.get(column) is None, row.get(column)), reverse=desc)
        if self.bounds:
            start, end = self.bounds
            matched = matched[start:end + 1]
        if self.max_rows is not None:
            matched = matched[:self.max_rows]
        return SimpleNamespace(
            data=[dict(row) for row in matched],
            count=total if self.count_mode == "exact" else None,
        )


class FakeAdmin:
    def __init__(self, auth: "FakeAuth"):
        self.auth = auth
        self.signed_out = []
        self.password_updates = []

    def sign_out(self, jwt, scope="global"):
        self.signed_out.append(jwt)

    def update_user_by_id(self, uid, attributes):
        if self.auth.fail_with:
            raise RuntimeError(self.auth.fail_with)
        self.password_updates.append((uid, attributes))
        return SimpleNamespace(user=SimpleNamespace(id=uid))


class FakeAuth:
    def __init__(self):
        self.sessions = {}
        self.passwords = {}
        self.reset_requests = []
        self.sign_ups = []
        self.fail_with = None
        self.admin = FakeAdmin(self)

    def add_user(self, token, user_id, email, password=None, confirmed=True):
        user = SimpleNamespace(
            id=user_id,
            email=email,
            email_confirmed_at="2024-01-01T00:00:00+00:00" if confirmed else None,
        )
        self.sessions[token] = user
        if password:
            self.passwords[email] = (password, token)
        return user

    def get_user(self, jwt=None):
        user = self.sessions.get(jwt)
        if user is None:
            raise RuntimeError("invalid JWT")
        return SimpleNamespace(user=user)

    def sign_in_with_password(self, credentials):
        entry = self.passwords.get(credentials["email"])
        if entry is None or entry[0] != credentials["password"]:
            raise RuntimeError("Invalid login credentials")
        token = entry[1]
        session = SimpleNamespace(access_token=token, refresh_token=f"refresh-{token}", expires_in=3600)
        return SimpleNamespace(user=self.sessions[token], session=session)

    def sign_up(self, credentials):
        if credentials["email"] in self.passwords:
            raise RuntimeError("User already registered")
        self.sign_ups.append(credentials)
        user = SimpleNamespace(id=f"new-{len(self.sign_ups)}", email=credentials["email"])
        return SimpleNamespace(user=user, session=None)

    def reset_password_for_email(self, email, options=None):
        if self.fail_with:
            raise RuntimeError(self.fail_with)
        self.reset_requests.append((email, options))


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.failing_tables = set()
        self.executed = []
        self.auth = FakeAuth()
        self._ids = itertools.count(1)

    def new_row(self, payload):
        n = next(self._ids)
        stamp = f"2024-01-01T00:00:{n:02d}+00:00"
        row = {"id": f"row-{n}", "created_at": stamp, "updated_at": stamp, "deleted_at": None}
        row.update(payload)
        return row

    def table(self, name):
        return FakeQuery(self, name)

    def seed(self, table, **values):
        row = self.new_row(values)
        self.tables.setdefault(table, []).append(row)
        return row

    def seed_recipe(self, title="Tomato Soup", content="Simmer tomatoes.", user_id=TEST_USER_ID,
                    content_json=None, **extra):
        return self.seed("recipes", title=title, content=content, content_json=content_json,
                         is_public=False, user_id=user_id, **extra)


class FakeOpenRouter:
    """Records generation calls and answers with ``recipe``."""

    def __init__(self):
        self.calls = []
        self.recipe = {
            "title": "Vegan Carbonara",
            "description": "A plant-based twist",
            "ingredients": [{"name": "pasta", "quantity": "400g"}],
            "instructions": ["Cook pasta", "Add sauce"],
        }

    async def generate_recipe_from_existing(self, existing_recipes, **kwargs):
        self.calls.append({"existing_recipes": existing_recipes, **kwargs})
        return {"choices": [{"index": 0, "message": {"role": "assistant", "content": self.recipe}}]}


@pytest.fixture
def fake_supabase():
    fake = FakeSupabase()
    fake.auth.add_user(TEST_TOKEN, TEST_USER_ID, TEST_EMAIL, password="Secret123")
    return fake


@pytest.fixture
def fake_openrouter():
    return FakeOpenRouter()


@pytest.fixture
def anon_client(fake_supabase, fake_openrouter):
    app.dependency_overrides[get_supabase] = lambda: fake_supabase
    app.dependency_overrides[get_auth_supabase] = lambda: fake_supabase
    app.dependency_overrides[get_openrouter_service] = lambda: fake_openrouter
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def client(anon_client):
    anon_client.headers.update({"Authorization": f"Bearer {TEST_TOKEN}"})
    return anon_client
