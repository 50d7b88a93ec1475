"""
Test configuration and shared fixtures.

Each test gets its own SQLite database file under ``tmp_path``; the FastAPI
app is exercised in-process through httpx's ASGI transport.
"""

import datetime as dt
import os

# Tests never touch a real Postgres instance.
os.environ["DATABASE_URL"] = ""
os.environ.setdefault("DATABASE_URL_FALLBACK", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from backend.auth import create_session
from backend.database import get_session, init_db
from backend.models import (
    Company,
    FundingRound,
    Investment,
    Investor,
    Milestone,
    Office,
    User,
)
from plugin_system import build_plugin_service
from plugin_system.types import EntityType, PluginManifest, PluginModule, SlotSpec

ALICE = "user-alice"
BOB = "user-bob"

# Fixed "now" handed to plugin components through the render context
NOW = "2024-06-01T00:00:00"


# =============================================================================
# DATABASE
# =============================================================================


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(bind=eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest_asyncio.fixture
async def users(session_factory):
    async with session_factory() as s:
        s.add_all([
            User(id=ALICE, email="alice@example.com", name="Alice"),
            User(id=BOB, email="bob@example.com", name="Bob"),
        ])
        await s.commit()
    return [ALICE, BOB]


@pytest_asyncio.fixture
async def seeded(session_factory):
    """Two companies and one investor backing both."""
    async with session_factory() as s:
        s.add_all([
            Company(
                id="c1",
                permalink="acme",
                name="Acme",
                category_code="software",
                status="operating",
                founded_at=dt.datetime(2015, 3, 1),
                description="Acme builds developer tooling for teams that ship every single day.",
                homepage_url="https://acme.example",
            ),
            Company(
                id="c2",
                permalink="other-co",
                name="Other Co",
                category_code="biotech",
                status="closed",
                founded_at=dt.datetime(2019, 1, 1),
            ),
        ])
        s.add_all([
            FundingRound(id="r1", company_id="c1", round_code="seed", raised_amount=2_000_000,
                         funded_at=dt.datetime(2016, 5, 1)),
            FundingRound(id="r2", company_id="c1", round_code="a", raised_amount=10_000_000,
                         funded_at=dt.datetime(2023, 9, 1)),
            FundingRound(id="r3", company_id="c2", round_code="seed", raised_amount=500_000,
                         funded_at=dt.datetime(2020, 2, 1)),
        ])
        s.add_all([
            Milestone(company_id="c1", milestone_code="Product launch",
                      description="v1 released", milestone_at=dt.datetime(2017, 1, 10)),
            Milestone(company_id="c1", milestone_code="Won industry award",
                      milestone_at=dt.datetime(2022, 11, 5)),
            Office(company_id="c1", description="HQ", city="Berlin", country_code="DEU"),
        ])
        s.add(Investor(id="i1", permalink="first-fund", name="First Fund",
                       description="Early stage investor", founded_at=dt.datetime(2010, 1, 1)))
        await s.flush()
        s.add_all([
            Investment(funding_round_id="r1", investor_id="i1"),
            Investment(funding_round_id="r2", investor_id="i1"),
            Investment(funding_round_id="r3", investor_id="i1"),
        ])
        await s.commit()


@pytest_asyncio.fixture
async def alice_token(session_factory, users):
    async with session_factory() as s:
        row = await create_session(s, ALICE)
        await s.commit()
        return row.token


@pytest.fixture
def alice_headers(alice_token):
    return {"Authorization": f"Bearer {alice_token}"}


# =============================================================================
# PLUGINS
# =============================================================================


@pytest_asyncio.fixture
async def plugins():
    """Plugin service over the built-in plugins."""
    service = build_plugin_service()
    yield service
    await service.shutdown()


def make_manifest(plugin_id, slots=("CompanyProfile.Header",), entity_types=(EntityType.COMPANY,), version="1.0.0"):
    return PluginManifest(
        id=plugin_id,
        name=plugin_id.replace("-", " ").title(),
        version=version,
        entity_types=list(entity_types),
        slots=[SlotSpec(name=s) for s in slots],
    )


def make_plugin(plugin_id, slots=("CompanyProfile.Header",), **hooks):
    """A (manifest, factory) pair whose components echo their plugin id and settings."""
    manifest = make_manifest(plugin_id, slots)

    def _component(data, context, settings):
        return {"plugin": plugin_id, "settings": settings}

    def factory():
        return PluginModule(
            manifest=manifest,
            components={slot: _component for slot in slots},
            **hooks,
        )

    return manifest, factory


# =============================================================================
# HTTP
# =============================================================================


@pytest_asyncio.fixture
async def app(session_factory):
    from backend.app import create_app

    application = create_app()

    async def _session():
        async with session_factory() as s:
            yield s

    application.dependency_overrides[get_session] = _session
    yield application
    await application.state.plugins.shutdown()


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
