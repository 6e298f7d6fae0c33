import os
import tempfile

os.environ.setdefault("ML_CLIENT_ID", "test-client-id")
os.environ.setdefault("ML_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{tempfile.gettempdir()}/meli_scan_unused.db")
os.environ.setdefault("SCAN_SCHEDULE_ENABLED", "false")

import httpx
import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.db import init_db
from app.models import CategoryItem, OAuthToken, ScanJob


class FakeMercadoLibre:
    """Routes requests by URL fragment; each route replays its responses in order, the last one sticks."""

    def __init__(self):
        self.routes: list[tuple[str, list[httpx.Response]]] = []
        self.requests: list[httpx.Request] = []

    def on(self, fragment: str, *responses: httpx.Response) -> "FakeMercadoLibre":
        self.routes.append((fragment, list(responses)))
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for fragment, responses in self.routes:
            if fragment in str(request.url):
                template = responses.pop(0) if len(responses) > 1 else responses[0]
                return httpx.Response(template.status_code, headers=template.headers, content=template.content)
        return httpx.Response(404, json={"message": "not_found"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def calls(self, fragment: str) -> list[httpx.Request]:
        return [r for r in self.requests if fragment in str(r.url)]


class Db:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def add_jobs(self, *jobs: dict):
        async with self.session_factory() as s:
            s.add_all([ScanJob(**{"status": "pending", "attempts": 0, **j}) for j in jobs])
            await s.commit()

    async def add_token(self, **fields):
        async with self.session_factory() as s:
            s.add(OAuthToken(**fields))
            await s.commit()

    async def job(self, job_id: int) -> ScanJob:
        async with self.session_factory() as s:
            return await s.get(ScanJob, job_id)

    async def items(self) -> list[CategoryItem]:
        async with self.session_factory() as s:
            return list((await s.execute(select(CategoryItem).order_by(CategoryItem.item_id))).scalars().all())

    async def tokens(self) -> list[OAuthToken]:
        async with self.session_factory() as s:
            return list((await s.execute(select(OAuthToken).order_by(OAuthToken.id))).scalars().all())


@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'scan.db'}", poolclass=NullPool)
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def db(session_factory):
    return Db(session_factory)


@pytest.fixture
def ml():
    return FakeMercadoLibre()
