"""Shared fixtures: in-memory database, API client and a fake fund data source."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fundwatch.main import app
from fundwatch.models import user_fund  # noqa: F401  registers the tables
from fundwatch.models.database import Base, get_db
from fundwatch.services.cache import TTLCache
from fundwatch.services.fund_list import FundListService
from fundwatch.services.fund_source import DirectoryEntry, NavSnapshot


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFundSource:
    """Stands in for FundSourceAdapter; every NAV is 1.0 -> 1.02 unless overridden."""

    def __init__(self, entries, navs=None, failing=()):
        self.entries = list(entries)
        self.navs = navs or {}
        self.failing = set(failing)
        self.directory_calls = 0
        self.nav_calls: list[str] = []

    async def fetch_directory(self):
        self.directory_calls += 1
        return list(self.entries)

    async def fetch_nav(self, fund_code):
        self.nav_calls.append(fund_code)
        if fund_code in self.failing:
            return None
        if fund_code in self.navs:
            return self.navs[fund_code]
        return NavSnapshot(
            fundcode=fund_code,
            name=f"基金{fund_code}",
            jzrq="2025-11-11",
            dwjz=1.0,
            gsz=1.02,
            gszzl=2.0,
            gztime="2025-11-12 13:47",
        )


def make_entry(code: str, name: str, fund_type: str = "指数型-股票") -> DirectoryEntry:
    return DirectoryEntry(code=code, short_name="", name=name, type=fund_type, pinyin="")


SAMPLE_ENTRIES = [
    make_entry("000001", "华夏成长混合", "混合型-偏股"),
    make_entry("000002", "易方达沪深300联接C"),
    make_entry("000003", "南方中证500增强C"),
    make_entry("000004", "招商债券增强C", "债券型-混合二级"),
    make_entry("000005", "天弘余额宝货币", "货币型"),
    make_entry("000006", "广发纳斯达克100指数C", "QDII"),
]


@pytest.fixture
def fake_source():
    return FakeFundSource(SAMPLE_ENTRIES)


@pytest.fixture
def fund_list(fake_source):
    return FundListService(fake_source, TTLCache(default_ttl=3600))


@pytest_asyncio.fixture
async def db_session():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture
async def client():
    """API client backed by a fresh in-memory database."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
    await engine.dispose()
