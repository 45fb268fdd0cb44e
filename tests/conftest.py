"""Shared fixtures: in-memory SQLite, a fake cache and a fake search server."""

import json
from typing import Any
from urllib.parse import unquote

import httpx
import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from cachedao.registry import get_registry, reset_daos
from cachedao.stores.search import SearchClient
from cachedao.stores.sql import forget_tables


class FakeCache:
    """Dict-backed cache with the RedisCache interface; records calls."""

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.get_multi_calls: list[list[str]] = []
        self.set_multi_calls: list[dict[str, Any]] = []
        self.delete_calls: list[str] = []

    def get_multi(self, keys):
        keys = list(keys)
        self.get_multi_calls.append(keys)
        return {key: json.loads(self.data[key]) for key in keys if key in self.data}

    def set_multi(self, items, ttl=None):
        self.set_multi_calls.append(dict(items))
        for key, value in items.items():
            self.data[key] = json.dumps(value, default=str)

    def delete(self, key):
        self.delete_calls.append(key)
        if key in self.data:
            del self.data[key]
            return True
        return False

    def flush(self):
        self.data.clear()


class FakeSearchServer:
    """Minimal Elasticsearch REST emulation for httpx.MockTransport."""

    def __init__(self) -> None:
        self.indices: set[str] = set()
        self.documents: dict[str, dict[str, dict[str, Any]]] = {}
        self.requests: list[tuple[str, str]] = []
        self.fail = False

    def handle(self, request: httpx.Request) -> httpx.Response:
        raw_path = request.url.raw_path.decode("ascii").split("?")[0]
        self.requests.append((request.method, raw_path))
        if self.fail:
            return httpx.Response(503, json={"error": "search unavailable"})

        parts = [unquote(part) for part in raw_path.split("/") if part]
        index = parts[0]

        if len(parts) == 1 and request.method == "PUT":
            if index in self.indices:
                return httpx.Response(
                    400,
                    json={"error": {"type": "resource_already_exists_exception"}, "status": 400},
                )
            self.indices.add(index)
            self.documents.setdefault(index, {})
            return httpx.Response(200, json={"acknowledged": True, "index": index})

        if len(parts) == 3 and parts[1] == "_doc":
            doc_id = parts[2]
            docs = self.documents.setdefault(index, {})
            if request.method == "PUT":
                docs[doc_id] = json.loads(request.content)
                return httpx.Response(200, json={"_id": doc_id, "result": "created"})
            if request.method == "DELETE":
                if docs.pop(doc_id, None) is None:
                    return httpx.Response(404, json={"_id": doc_id, "result": "not_found"})
                return httpx.Response(200, json={"_id": doc_id, "result": "deleted"})
            if request.method == "GET":
                if doc_id not in docs:
                    return httpx.Response(404, json={"_id": doc_id, "found": False})
                return httpx.Response(200, json={"_id": doc_id, "found": True, "_source": docs[doc_id]})

        return httpx.Response(400, json={"error": f"unsupported {request.method} {request.url.path}"})


@pytest.fixture(autouse=True)
def clean_registry():
    """Isolate the process-wide registry, DAO memo and table reflection."""
    get_registry().clear()
    reset_daos()
    forget_tables()
    yield
    get_registry().clear()
    reset_daos()
    forget_tables()


@pytest.fixture
def cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def search_server() -> FakeSearchServer:
    return FakeSearchServer()


@pytest.fixture
def search_client(search_server: FakeSearchServer):
    client = SearchClient("http://search.test", transport=httpx.MockTransport(search_server.handle))
    yield client
    client.close()


@pytest.fixture
def engine():
    """In-memory SQLite shared across connections."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    with engine.begin() as conn:
        conn.execute(
            text(
                "CREATE TABLE dao_tests ("
                " id INTEGER PRIMARY KEY AUTOINCREMENT,"
                " str_field VARCHAR(128),"
                " int_field INTEGER,"
                " null_field VARCHAR(8) DEFAULT NULL,"
                " created DATETIME,"
                " updated DATETIME"
                ")"
            )
        )
        conn.execute(
            text(
                "CREATE TABLE dao_natural_tests ("
                " id INTEGER PRIMARY KEY,"
                " str_field VARCHAR(128) NOT NULL"
                ")"
            )
        )
    yield engine
    engine.dispose()


@pytest.fixture
def spy_reads():
    """Record every backend read a DAO issues; returns the list of ID batches."""

    def install(dao) -> list[list[Any]]:
        backend = dao.get_backend()
        reads: list[list[Any]] = []
        original = backend.read

        def read(ids):
            reads.append(list(ids))
            return original(ids)

        backend.read = read
        return reads

    return install
