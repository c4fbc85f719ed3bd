"""
Shared test fixtures.
"""

import os
import sys
from pathlib import Path

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

# Settings are loaded at import time; provide the required values
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from unittest.mock import AsyncMock, patch
from datetime import datetime
from typing import Any, Callable, Optional, Union

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: Any = None, count: int = None):
        self.data = data if data is not None else []
        self.count = count if count is not None else (len(self.data) if isinstance(self.data, list) else None)


class MockSupabaseQuery:
    """Mock async query builder with chainable methods."""

    def __init__(self, table: "MockSupabaseTable", data: list = None):
        self._table = table
        self._data = data or []
        self._filters: list[Callable[[dict], bool]] = []
        self._limit: Optional[int] = None
        self._is_single = False
        self._changes: Optional[dict] = None

    def select(self, *args, **kwargs):
        return self

    def insert(self, data):
        # Simulate insert - add id and timestamps
        if isinstance(data, dict):
            data = [data]
        inserted = []
        for item in data:
            row = dict(item)
            row.setdefault("id", self._table.next_id())
            row.setdefault("created_at", datetime.utcnow().isoformat() + "Z")
            inserted.append(row)
        self._table.rows.extend(inserted)
        self._data = inserted
        return self

    def update(self, changes: dict):
        # Applied at execute() to the rows matching the filters
        self._changes = dict(changes)
        self._data = self._table.rows
        return self

    def upsert(self, data, on_conflict: str = "", ignore_duplicates: bool = False, **kwargs):
        if isinstance(data, dict):
            data = [data]
        keys = [k.strip() for k in on_conflict.split(",") if k.strip()] or ["id"]
        self._table.upsert_calls.append({"on_conflict": on_conflict, "ignore_duplicates": ignore_duplicates})
        written = []
        for item in data:
            existing = next(
                (r for r in self._table.rows if all(r.get(k) == item.get(k) for k in keys)),
                None
            )
            if existing is None:
                row = dict(item)
                row.setdefault("id", self._table.next_id())
                self._table.rows.append(row)
                written.append(row)
            elif not ignore_duplicates:
                existing.update(item)
                written.append(existing)
        self._data = written
        return self

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        self._filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, **kwargs):
        return self

    def limit(self, count):
        self._limit = count
        return self

    def single(self):
        self._is_single = True
        return self

    async def execute(self) -> MockSupabaseResponse:
        if self._table.error:
            raise self._table.error
        rows = [r for r in self._data if all(f(r) for f in self._filters)]
        if self._changes is not None:
            for row in rows:
                row.update(self._changes)
            rows = [dict(r) for r in rows]
        if self._limit is not None:
            rows = rows[:self._limit]
        if self._is_single:
            return MockSupabaseResponse(data=rows[0] if rows else None)
        return MockSupabaseResponse(data=rows)


class MockSupabaseTable:
    """Mock table holding rows in memory."""

    def __init__(self, rows: list = None):
        self.rows = list(rows or [])
        self.error: Optional[Exception] = None
        self.upsert_calls: list[dict] = []
        self._next_id = 1000

    def next_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self, list(self.rows))

    def insert(self, data):
        return MockSupabaseQuery(self).insert(data)

    def update(self, changes: dict):
        return MockSupabaseQuery(self).update(changes)

    def upsert(self, data, **kwargs):
        return MockSupabaseQuery(self).upsert(data, **kwargs)


class MockRpcCall:
    """Pending RPC call; execute() runs the configured handler."""

    def __init__(self, client: "MockSupabaseClient", name: str, params: dict):
        self._client = client
        self._name = name
        self._params = params

    async def execute(self) -> MockSupabaseResponse:
        self._client.rpc_calls.append((self._name, self._params))
        handler = self._client.rpc_handlers.get(self._name)
        if handler is None:
            return MockSupabaseResponse(data=None)
        result = handler(self._params)
        if hasattr(result, "__await__"):
            result = await result
        return MockSupabaseResponse(data=result)


class MockStorageBucket:
    def __init__(self, storage: "MockStorage", bucket: str):
        self._storage = storage
        self._bucket = bucket

    async def upload(self, path, file, file_options=None):
        if self._storage.error:
            raise self._storage.error
        self._storage.uploads.append((self._bucket, path, file))
        return {"Key": f"{self._bucket}/{path}"}


class MockStorage:
    def __init__(self):
        self.uploads: list[tuple] = []
        self.error: Optional[Exception] = None

    def from_(self, bucket: str) -> MockStorageBucket:
        return MockStorageBucket(self, bucket)


class MockSupabaseClient:
    """Mock async Supabase client."""

    def __init__(self):
        self._tables: dict[str, MockSupabaseTable] = {}
        self.rpc_handlers: dict[str, Callable[[dict], Any]] = {}
        self.rpc_calls: list[tuple[str, dict]] = []
        self.storage = MockStorage()

    def set_table_data(self, table_name: str, data: list):
        """Configure mock rows for a table."""
        self._tables[table_name] = MockSupabaseTable(data)

    def set_rpc_handler(self, name: str, handler: Union[Callable[[dict], Any], Any]):
        """
        Configure an RPC.

        handler(params) returns the response data or raises. A non-callable
        is returned as-is for every call.
        """
        self.rpc_handlers[name] = handler if callable(handler) else (lambda params: handler)

    def calls_to(self, name: str) -> list[dict]:
        """Params of every call made to an RPC, in order."""
        return [params for rpc_name, params in self.rpc_calls if rpc_name == name]

    def table(self, name: str) -> MockSupabaseTable:
        return self._tables.setdefault(name, MockSupabaseTable())

    def rpc(self, name: str, params: dict = None) -> MockRpcCall:
        return MockRpcCall(self, name, params or {})


class MockAPIError(Exception):
    """Stands in for postgrest.APIError (has .message)."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("import_jobs", [{"id": 1, ...}])
            mock_supabase.set_rpc_handler("update_import_job_status", None)
    """
    return MockSupabaseClient()


@pytest.fixture
def sample_store() -> dict:
    return {"id": 7, "shop_domain": "autofit-demo.myshopify.com"}


@pytest.fixture
def sample_fitment_fields() -> list[dict]:
    return [
        {"id": 1, "store_id": 7, "label": "Year", "slug": "year", "field_type": "int", "required": True, "sort_order": 1},
        {"id": 2, "store_id": 7, "label": "Make", "slug": "make", "field_type": "string", "required": True, "sort_order": 2},
        {"id": 3, "store_id": 7, "label": "Model", "slug": "model", "field_type": "string", "required": False, "sort_order": 3},
    ]


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_supabase):
    """
    FastAPI test client whose services all use the mock Supabase client.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("import_jobs", [...])
            response = test_client_with_mock_db.get("/api/imports/1")
    """
    from fastapi.testclient import TestClient
    from main import app
    from services.import_job_service import ImportJobService
    from services.store_service import StoreService
    from services.import_file_service import ImportFileService
    from services.product_tag_service import ProductTagService

    jobs = ImportJobService(mock_supabase)
    stores = StoreService(mock_supabase)
    files = ImportFileService(mock_supabase, bucket="imports")
    tags = ProductTagService(None, delay_seconds=0, stores=stores)

    with patch("main.check_connection", AsyncMock(return_value={"status": "healthy", "stores_count": 1, "import_jobs_count": 0})), \
            patch("routes.imports.get_import_job_service", AsyncMock(return_value=jobs)), \
            patch("routes.imports.get_store_service", AsyncMock(return_value=stores)), \
            patch("routes.imports.get_import_file_service", AsyncMock(return_value=files)), \
            patch("routes.stores.get_store_service", AsyncMock(return_value=stores)), \
            patch("routes.stores.get_product_tag_service", AsyncMock(return_value=tags)):
        with TestClient(app) as client:
            yield client
