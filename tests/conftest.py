"""
Pytest configuration and fixtures for coachauth tests.

Provides a mock Supabase client, an in-memory table double, a manual
clock and session factories.
"""

import itertools
import re
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, Mock

import pytest

from coachauth.client import CoachAuth
from coachauth.config import CoachAuthConfig
from coachauth.scheduling import ManualClock
from coachauth.utils.supabase import CoachAuthSupabaseClient


def like_to_regex(pattern):
    """Compile a Postgres ILIKE pattern: % and _ are wildcards, backslash escapes."""
    parts = []
    chars = iter(pattern)
    for char in chars:
        if char == "\\":
            parts.append(re.escape(next(chars, "\\")))
        elif char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


class FakeQuery:
    """Chainable query against a FakeTable, mirroring the postgrest builder."""

    def __init__(self, table: "FakeTable", op: str, payload: Any = None, count: Optional[str] = None):
        self.table = table
        self.op = op
        self.payload = payload
        self.count = count
        self.filters = []
        self.row_limit = None

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def ilike(self, column, pattern):
        regex = like_to_regex(pattern)
        self.filters.append(lambda row: regex.fullmatch(row.get(column) or "") is not None)
        return self

    def is_(self, column, value):
        if value == "null":
            self.filters.append(lambda row: row.get(column) is None)
        else:
            self.filters.append(lambda row: row.get(column) == value)
        return self

    def lt(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) < value)
        return self

    def limit(self, n):
        self.row_limit = n
        return self

    async def execute(self):
        return self.table.run(self)


class FakeTable:
    """
    In-memory table.

    Set ``errors[op]`` to an exception to make every ``op`` query raise it.
    """

    _ids = itertools.count(1)

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None):
        self.rows = [dict(row) for row in rows or []]
        self.errors: Dict[str, Exception] = {}
        self.calls: List[str] = []

    def select(self, *columns, count=None):
        return FakeQuery(self, "select", count=count)

    def insert(self, row):
        return FakeQuery(self, "insert", row)

    def upsert(self, row):
        return FakeQuery(self, "upsert", row)

    def update(self, data):
        return FakeQuery(self, "update", data)

    def delete(self):
        return FakeQuery(self, "delete")

    def run(self, query: FakeQuery):
        self.calls.append(query.op)
        if query.op in self.errors:
            raise self.errors[query.op]

        matched = [row for row in self.rows if all(f(row) for f in query.filters)]

        if query.op == "select":
            data = [dict(row) for row in matched]
            if query.row_limit is not None:
                data = data[: query.row_limit]
            return SimpleNamespace(data=data, count=len(data) if query.count else None)

        if query.op == "insert":
            row = dict(query.payload)
            row.setdefault("id", str(next(self._ids)))
            self.rows.append(row)
            return SimpleNamespace(data=[dict(row)], count=None)

        if query.op == "upsert":
            for row in self.rows:
                if row.get("id") == query.payload.get("id"):
                    row.update(query.payload)
                    return SimpleNamespace(data=[dict(row)], count=None)
            self.rows.append(dict(query.payload))
            return SimpleNamespace(data=[dict(query.payload)], count=None)

        if query.op == "update":
            for row in matched:
                row.update(query.payload)
            return SimpleNamespace(data=[dict(row) for row in matched], count=None)

        if query.op == "delete":
            self.rows = [row for row in self.rows if row not in matched]
            return SimpleNamespace(data=[dict(row) for row in matched], count=None)

        raise AssertionError(f"unsupported op {query.op}")


@pytest.fixture
def mock_supabase_client():
    """Create a mock Supabase client."""
    client = AsyncMock()

    # Mock auth client
    auth_client = AsyncMock()
    auth_client.get_session = AsyncMock(return_value=None)
    auth_client.on_auth_state_change = Mock(return_value=Mock())
    client.auth = auth_client

    # Tables registered here are served by FakeTable, others by mock builders
    fake_tables: Dict[str, FakeTable] = {}
    query_builders = {}

    def table_mock(table_name: str):
        if table_name in fake_tables:
            return fake_tables[table_name]
        if table_name not in query_builders:
            query_builder = Mock()
            # Make all methods return self for chaining
            for method in ("select", "insert", "upsert", "update", "delete",
                           "eq", "ilike", "is_", "limit", "lt"):
                setattr(query_builder, method, Mock(return_value=query_builder))
            # Default execute returns empty result
            query_builder.execute = AsyncMock(return_value=Mock(data=[], count=0))
            query_builders[table_name] = query_builder
        return query_builders[table_name]

    client.table = Mock(side_effect=table_mock)

    rpc_builder = Mock()
    rpc_builder.execute = AsyncMock(return_value=Mock(data=None))
    client.rpc = Mock(return_value=rpc_builder)

    client._query_builders = query_builders  # Expose for test configuration
    client._fake_tables = fake_tables
    return client


@pytest.fixture
def coach_config():
    """Create a test CoachAuthConfig."""
    return CoachAuthConfig(
        supabase_url="https://test.supabase.co",
        supabase_key="test-anon-key-12345678901234567890",
        site_url="https://coach.example.com",
        debug=True,
    )


@pytest.fixture
def mock_coach_supabase_client(mock_supabase_client, coach_config):
    """Create a mock CoachAuthSupabaseClient."""
    return CoachAuthSupabaseClient(config=coach_config, client=mock_supabase_client)


@pytest.fixture
def clock():
    """Virtual clock starting at 2024-01-01T00:00:00Z."""
    return ManualClock()


@pytest.fixture
def coach(mock_coach_supabase_client, coach_config, clock):
    """Create a test CoachAuth instance."""
    return CoachAuth(config=coach_config, client=mock_coach_supabase_client, clock=clock)


@pytest.fixture
def auth(coach):
    """The mocked GoTrue client behind ``coach``."""
    return coach.client._client.auth


@pytest.fixture
def profiles_table(coach):
    """In-memory profiles table."""
    table = FakeTable()
    coach.client._client._fake_tables[coach.config.profiles_table] = table
    return table


@pytest.fixture
def tokens_table(coach):
    """In-memory verification_tokens table."""
    table = FakeTable()
    coach.client._client._fake_tables[coach.config.tokens_table] = table
    return table


def setup_table_mock(coach, table_name, execute_return_value):
    """
    Set up a mock query builder with a specific execute return value.

    Args:
        coach: CoachAuth instance
        table_name: Name of the table
        execute_return_value: Mock result (or exception) for execute()
    """
    mock_client = coach.client._client
    query_builder = mock_client.table(table_name)
    if isinstance(execute_return_value, BaseException):
        query_builder.execute = AsyncMock(side_effect=execute_return_value)
    else:
        query_builder.execute = AsyncMock(return_value=execute_return_value)
    return query_builder


@pytest.fixture
def table_mock():
    """Expose ``setup_table_mock`` to tests."""
    return setup_table_mock


def build_user(user_id="u1", email="a@x.com", confirmed=False, metadata=None):
    return SimpleNamespace(
        id=user_id,
        email=email,
        email_confirmed_at=datetime(2024, 1, 1, tzinfo=timezone.utc) if confirmed else None,
        user_metadata=metadata or {},
    )


def build_session(user=None, expires_at=None):
    return SimpleNamespace(
        access_token="access-token",
        refresh_token="refresh-token",
        expires_at=expires_at,
        expires_in=3600,
        token_type="bearer",
        user=user or build_user(),
    )


@pytest.fixture
def make_user():
    """Factory for supabase_auth-like User objects."""
    return build_user


@pytest.fixture
def make_session(clock):
    """Factory for supabase_auth-like Session objects expiring in an hour."""

    def factory(user_id="u1", email="a@x.com", confirmed=False, expires_in=3600):
        expires_at = int(clock.now().timestamp()) + expires_in
        return build_session(build_user(user_id, email, confirmed), expires_at=expires_at)

    return factory


@pytest.fixture
def emit(auth):
    """Deliver an identity-change notification as the backend would."""

    def deliver(event, session):
        callback = auth.on_auth_state_change.call_args[0][0]
        callback(event, session)

    return deliver


@pytest.fixture
def profile_row():
    """Factory for profiles table rows."""

    def factory(user_id="u1", email="a@x.com", **fields):
        row = {
            "id": user_id,
            "email": email,
            "full_name": None,
            "email_confirmed": False,
            "is_admin": False,
            "updated_at": "2024-01-01T00:00:00+00:00",
        }
        row.update(fields)
        return row

    return factory
