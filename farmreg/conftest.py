"""
Shared pytest fixtures.

Provides an in-memory stand-in for the remote location API (served through
httpx.MockTransport so the resolver's real HTTP code path runs), a small
hierarchy tree, and a fake Mongo-style database for app-level tests.
"""

import json
from typing import Any, Dict, List, Optional

import httpx
import pytest


@pytest.fixture
def anyio_backend():
    return "asyncio"


# --- Remote location API ---


class RemoteLocationAPI:
    """
    Serves {success, data} payloads keyed by (path, parent id).

    Unknown keys answer {success: false}. `fail_with` forces every request to
    raise the given exception (e.g. httpx.ConnectTimeout) or return a status code.
    """

    def __init__(self, routes: Optional[Dict[tuple, Any]] = None):
        self.routes = dict(routes or {})
        self.requests: List[httpx.Request] = []
        self.fail_with = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.fail_with, Exception):
            raise self.fail_with
        if isinstance(self.fail_with, int):
            return httpx.Response(self.fail_with, json={"success": False, "message": "server error"})
        parent_id = next(iter(request.url.params.values()), "")
        body = self.routes.get((request.url.path, parent_id))
        if body is None:
            return httpx.Response(200, json={"success": False, "message": "not found"})
        if isinstance(body, (bytes, str)):
            return httpx.Response(200, content=body)
        return httpx.Response(200, json=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def remote_api():
    def factory(routes: Optional[Dict[tuple, Any]] = None) -> RemoteLocationAPI:
        return RemoteLocationAPI(routes)

    return factory


# --- Hierarchy data ---


@pytest.fixture
def sample_tree() -> list:
    """Two-state tree: lagos with one fully populated LGA, abia with an empty one."""
    return [
        {
            "state": "lagos",
            "lgas": [
                {
                    "lga": "ikeja",
                    "wards": [
                        {"ward": "ojodu", "polling_units": ["ojodu-grammar-school", "berger-open-space"]},
                        {"ward": "onigbongbo", "polling_units": ["maryland-open-space"]},
                    ],
                },
                {"lga": "lagos-island", "wards": [{"ward": "olowogbowo", "polling_units": []}]},
            ],
        },
        {"state": "abia", "lgas": [{"lga": "bende", "wards": []}]},
    ]


@pytest.fixture
def sample_tree_path(tmp_path, sample_tree):
    path = tmp_path / "hierarchy.json"
    path.write_text(json.dumps(sample_tree))
    return path


# --- Geometry ---


@pytest.fixture
def ikeja_plot() -> list:
    """Roughly 1.2 ha quadrilateral in Ikeja, clockwise [lon, lat] ring."""
    return [
        [3.3500, 6.6000],
        [3.3510, 6.6000],
        [3.3510, 6.5990],
        [3.3500, 6.5990],
    ]


# --- Fake database ---


class FakeCursor:
    def __init__(self, docs):
        self.docs = docs

    async def to_list(self, length):
        return list(self.docs if length is None else self.docs[:length])


class FakeCollection:
    def __init__(self):
        self.docs: List[dict] = []

    @staticmethod
    def _matches(doc, query):
        return all(doc.get(k) == v for k, v in (query or {}).items())

    @staticmethod
    def _project(doc, projection):
        doc = dict(doc)
        if projection and projection.get("_id") == 0:
            doc.pop("_id", None)
        return doc

    async def insert_one(self, doc):
        doc.setdefault("_id", len(self.docs) + 1)
        self.docs.append(doc)

    def find(self, query=None, projection=None):
        return FakeCursor([self._project(d, projection) for d in self.docs if self._matches(d, query)])

    async def find_one(self, query=None, projection=None):
        for doc in self.docs:
            if self._matches(doc, query):
                return self._project(doc, projection)
        return None


class FakeMongoDB:
    def __init__(self, existing=None):
        self.collections = {name: FakeCollection() for name in (existing or [])}
        self.created: List[str] = []

    def __getitem__(self, name):
        return self.collections.setdefault(name, FakeCollection())

    async def list_collection_names(self):
        return list(self.collections)

    async def create_collection(self, name):
        self.collections[name] = FakeCollection()
        self.created.append(name)


class FakePlatformDatabase:
    """Duck-typed PlatformDatabase backed by FakeMongoDB."""

    def __init__(self):
        self.db = FakeMongoDB()
        self.connected = False
        self.closed = False

    def connect(self):
        self.connected = True

    def get_db(self):
        return self.db

    def farms(self):
        return self.db["farms"]

    def close(self):
        self.closed = True


@pytest.fixture
def fake_db():
    return FakePlatformDatabase()
