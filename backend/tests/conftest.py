"""Shared fixtures: a throwaway SQLite database per test and static scopes."""

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

import seo_urls.models  # noqa: F401  (registers tables)
from seo_urls.config import Settings
from seo_urls.database import Base
from seo_urls.repositories import PostgresSeoUrlRepository
from seo_urls.route_config import RouteRegistry, SeoUrlRoute
from seo_urls.services.locks import KeyLockRegistry
from seo_urls.services.reconciler import SeoUrlReconciler
from seo_urls.services.scope import SeoScope, StaticScopeResolver

ROUTE_NAME = "example.route.name"
ENTITY_NAME = "example_entity"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'seo.db'}",
        seo_conflict_policy="reject",
        scope_resolver="static",
        scope_resolution_timeout_seconds=1.0,
        default_sales_channel_id="C1",
        default_language_id="de",
        default_locale="de-DE",
        seed_static_routes_on_startup=False,
    )


@pytest_asyncio.fixture
async def engine(settings):
    engine = create_async_engine(settings.database_url)

    # pysqlite/aiosqlite need these hooks for SAVEPOINT to behave
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_implicit_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _explicit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def key_locks() -> KeyLockRegistry:
    return KeyLockRegistry()


@pytest.fixture
def resolver() -> StaticScopeResolver:
    return StaticScopeResolver([SeoScope("C1", "de", "de-DE")])


@pytest.fixture
def registry() -> RouteRegistry:
    return RouteRegistry([
        SeoUrlRoute(
            route_name=ROUTE_NAME,
            entity_name=ENTITY_NAME,
            path_info_template="/example-path/{id}",
        )
    ])


@pytest.fixture
def repository(session, key_locks) -> PostgresSeoUrlRepository:
    return PostgresSeoUrlRepository(session, conflict_policy="reject", lock_registry=key_locks)


@pytest.fixture
def make_reconciler(session, resolver, registry, settings, key_locks):
    """Build a reconciler; override any collaborator by keyword."""

    def _make(**overrides) -> SeoUrlReconciler:
        return SeoUrlReconciler(
            overrides.get("session", session),
            overrides.get("resolver", resolver),
            registry=overrides.get("registry", registry),
            settings=overrides.get("settings", settings),
            lock_registry=overrides.get("key_locks", key_locks),
        )

    return _make
