"""
Shared test fixtures.
"""

import os
import sys
from pathlib import Path

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

# Settings are loaded at import time and require Supabase credentials
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from unittest.mock import patch
from datetime import datetime, timezone
from typing import Generator


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods."""

    def __init__(self, client: "MockSupabaseClient", table: str, data: list = None, count: int = None):
        self._client = client
        self._table = table
        self._data = data or []
        self._count = count
        self._filters: list[tuple] = []
        self._operation = "select"
        self._payload = None
        self._on_conflict = None

    def select(self, *args, **kwargs):
        return self

    def insert(self, data):
        # Simulate insert - add id and timestamps
        rows = [data] if isinstance(data, dict) else data
        now = datetime.now(timezone.utc).isoformat()
        for position, item in enumerate(rows):
            item.setdefault("id", f"test-uuid-{position}")
            item.setdefault("created_at", now)
        self._operation = "insert"
        self._payload = rows
        self._data = rows
        return self

    def upsert(self, data, on_conflict: str = "id"):
        rows = [data] if isinstance(data, dict) else data
        self._operation = "upsert"
        self._payload = rows
        self._on_conflict = on_conflict
        self._data = rows
        return self

    def update(self, data):
        self._operation = "update"
        self._payload = data
        self._data = [{**item, **data} for item in self._data] or [data]
        return self

    def eq(self, column, value):
        self._filters.append(("eq", column, value))
        return self

    def order(self, column, **kwargs):
        return self

    def range(self, start, end):
        return self

    def limit(self, count):
        return self

    def execute(self) -> MockSupabaseResponse:
        error = self._client._errors.get((self._table, self._operation))
        if error is not None:
            raise error
        if self._operation != "select":
            self._client.calls.append({
                "table": self._table,
                "operation": self._operation,
                "payload": self._payload,
                "filters": list(self._filters),
                "on_conflict": self._on_conflict,
            })
            if self._operation == "upsert":
                self._client._merge_rows(self._table, self._payload, self._on_conflict)
        return MockSupabaseResponse(
            data=self._data,
            count=self._count if self._count is not None else len(self._data)
        )


class MockSupabaseTable:
    """Mock Supabase table with configurable responses."""

    def __init__(self, client: "MockSupabaseClient", name: str, data: list = None, count: int = None):
        self._client = client
        self._name = name
        self._data = data or []
        self._count = count

    def _query(self) -> MockSupabaseQuery:
        return MockSupabaseQuery(self._client, self._name, [dict(row) for row in self._data], self._count)

    def select(self, *args, **kwargs):
        return self._query()

    def insert(self, data):
        return self._query().insert(data)

    def update(self, data):
        return self._query().update(data)

    def upsert(self, data, on_conflict: str = "id"):
        return self._query().upsert(data, on_conflict=on_conflict)


class MockSupabaseClient:
    """
    Mock Supabase client.

    Writes are recorded in calls as {table, operation, payload, filters,
    on_conflict}. Upserts are also merged into the table data.
    """

    def __init__(self):
        self._tables = {}
        self._errors = {}
        self.calls: list[dict] = []

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table."""
        self._tables[table_name] = {"data": data, "count": count}

    def fail_on(self, table_name: str, operation: str, error: Exception):
        """Make an operation on a table raise."""
        self._errors[(table_name, operation)] = error

    def clear_failures(self):
        self._errors.clear()

    def writes(self, table_name: str) -> list[dict]:
        return [c for c in self.calls if c["table"] == table_name]

    def rows(self, table_name: str) -> list[dict]:
        """Current contents of a table, including upserted rows."""
        return list(self._tables.get(table_name, {"data": []})["data"])

    def _merge_rows(self, table_name: str, rows: list[dict], key: str):
        config = self._tables.setdefault(table_name, {"data": [], "count": None})
        stored = {row.get(key): position for position, row in enumerate(config["data"])}
        for row in rows:
            if row.get(key) in stored:
                config["data"][stored[row.get(key)]] = {**config["data"][stored[row.get(key)]], **row}
            else:
                stored[row.get(key)] = len(config["data"])
                config["data"].append(dict(row))

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        config = self._tables.get(name, {"data": [], "count": None})
        return MockSupabaseTable(self, name, config["data"], config["count"])


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("applications", [
                {"id": "1", "company": "Acme", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("applications", [...])
            # Now the store and history services get the mock
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.application_store.get_supabase_client", return_value=mock_supabase):
            with patch("services.import_history_service.get_supabase_client", return_value=mock_supabase):
                yield mock_supabase


@pytest.fixture(autouse=True)
def clear_import_sessions():
    """Every test starts with an empty session cache."""
    from services import session_cache_service

    session_cache_service.clear()
    yield
    session_cache_service.clear()


@pytest.fixture
def import_service(mock_db):
    """ImportSessionService wired to the mock database."""
    from services.application_store import ApplicationStore
    from services.import_history_service import ImportHistoryService
    from services.import_session_service import ImportSessionService

    return ImportSessionService(store=ApplicationStore(), history=ImportHistoryService())


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/api/csv/templates")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)


@pytest.fixture
def test_client_with_mock_db(import_service, monkeypatch):
    """
    Create FastAPI test client whose import routes use the mocked database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("applications", [...])
            response = test_client_with_mock_db.post("/api/imports", json={...})
    """
    from fastapi.testclient import TestClient
    from main import app
    import services.import_session_service as import_session_module

    monkeypatch.setattr(import_session_module, "_import_session_service", import_service)
    yield TestClient(app)
