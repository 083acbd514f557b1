"""Pytest fixtures for testing"""

import json
from datetime import datetime
from itertools import count
from typing import Any, Callable, Dict, Generator, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from finance_hub.api.main import create_app
from finance_hub.infrastructure.clients.remote import RemoteClient
from finance_hub.infrastructure.database.models import Base
from finance_hub.infrastructure.database.session import get_db
from finance_hub.services.sync import SyncReconciler

# Wednesday
FIXED_NOW = datetime(2024, 5, 15, 12, 0, 0)


class FakeRemote:
    """
    In-memory remote backend speaking the JSON wire format.

    Rows are listed newest-created first. Set `down` to fail every call
    with 503, or `fail_when` to fail selected requests with 500.
    """

    def __init__(self):
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {"transactions": {}, "budgets": {}}
        self.requests: List[httpx.Request] = []
        self.down = False
        self.fail_when: Optional[Callable[[httpx.Request], bool]] = None
        self._ids = count(1)

    def seed(self, resource: str, row: Dict[str, Any]) -> str:
        remote_id = str(row.get("id") or f"{resource}-{next(self._ids)}")
        self.tables[resource][remote_id] = {**row, "id": remote_id}
        return remote_id

    def rows(self, resource: str) -> List[Dict[str, Any]]:
        return list(self.tables[resource].values())

    def calls(self, method: str, resource: Optional[str] = None) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and (resource is None or r.url.path.split("/")[1] == resource)
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.down:
            return httpx.Response(503, json={"error": "unavailable"})
        if self.fail_when is not None and self.fail_when(request):
            return httpx.Response(500, json={"error": "boom"})

        parts = request.url.path.strip("/").split("/")
        if parts == ["health"]:
            return httpx.Response(200, json={"status": "ok"})

        table = self.tables.get(parts[0])
        if table is None:
            return httpx.Response(404, json={"error": "unknown resource"})

        if len(parts) == 1 and request.method == "GET":
            offset = int(request.url.params.get("offset", 0))
            limit = int(request.url.params.get("limit", 100))
            newest_first = list(reversed(list(table.values())))
            return httpx.Response(200, json={"data": newest_first[offset:offset + limit]})

        if len(parts) == 1 and request.method == "POST":
            remote_id = self.seed(parts[0], json.loads(request.content))
            return httpx.Response(201, json={"data": {"id": remote_id}})

        remote_id = parts[1]
        if remote_id not in table:
            return httpx.Response(404, json={"error": "not found"})
        if request.method == "PUT":
            table[remote_id] = {**json.loads(request.content), "id": remote_id}
            return httpx.Response(200, json={"data": {"id": remote_id}})
        if request.method == "DELETE":
            del table[remote_id]
            return httpx.Response(200, json={"data": {"id": remote_id}})
        return httpx.Response(405)


@pytest.fixture
def db_engine() -> Generator[Engine, None, None]:
    """In-memory SQLite shared by every session of one test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(db_engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=db_engine)


@pytest.fixture
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Create test database session"""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock(now: datetime) -> Callable[[], datetime]:
    return lambda: now


@pytest.fixture
def fake_remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def remote_client(fake_remote: FakeRemote) -> RemoteClient:
    return RemoteClient(
        base_url="http://remote.test",
        timeout=1.0,
        api_key="test-key",
        transport=httpx.MockTransport(fake_remote.handler),
    )


@pytest.fixture
def reconciler(session_factory: sessionmaker, remote_client: RemoteClient, clock) -> SyncReconciler:
    return SyncReconciler(session_factory, remote_client, page_size=100, enabled=True, now=clock)


@pytest.fixture
def client(session_factory: sessionmaker, remote_client: RemoteClient, clock) -> TestClient:
    """Create FastAPI test client with test database and fake remote"""
    app = create_app(session_factory=session_factory, remote_client=remote_client, clock=clock)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)
