"""
Pytest configuration and fixtures for the asset tag engine tests.
"""

from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from app.config import Settings
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models import (
    Asset,
    AssetCategory,
    AssetCategoryClass,
    Form,
    FormField,
    FormFieldType,
)
from app.storage import LocalStorageBackend, get_storage

ENG_TAG_CONFIG = {
    "enabled": True,
    "separator": "-",
    "segments": [
        {"type": "field", "field_id": "10", "max_length": 3},
        {"type": "sequence", "length": 3, "start": 1},
    ],
}


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings pointing storage at a temporary directory."""
    return Settings(
        STORAGE_BACKEND="local",
        LOCAL_STORAGE_PATH=str(tmp_path / "storage"),
        ORGANIZATION_LOGO_URL=None,
        QR_PAYLOAD_FORMAT="text",
        QR_WIDTH=200,
    )


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """Create a test database engine backed by a per-test SQLite file."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def test_storage(tmp_path) -> LocalStorageBackend:
    """Create a test storage backend."""
    return LocalStorageBackend(base_path=str(tmp_path / "storage"))


@pytest_asyncio.fixture(scope="function")
async def client(db_session, test_storage) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db():
        yield db_session

    def override_get_storage():
        return test_storage

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = override_get_storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ===================
# Seed helpers
# ===================

@pytest_asyncio.fixture
async def eng_form(db_session) -> Form:
    """
    Form with a department field (id 10) and the ENG-001 style config:
    first three letters of the department, then a 3-digit sequence.
    """
    form = Form(form_id=1, name="Laptop intake", asset_tag_config=ENG_TAG_CONFIG, is_active=True)
    db_session.add(form)
    await db_session.flush()
    db_session.add_all(
        [
            FormField(id=10, form_id=1, label="Department", type=FormFieldType.TEXT, position=0),
            FormField(id=11, form_id=1, label="Serial", type=FormFieldType.TEXT, position=1),
            FormField(id=12, form_id=1, label="Photo", type=FormFieldType.CAMERA, position=2),
        ]
    )
    await db_session.commit()
    return form


@pytest_asyncio.fixture
async def classes(db_session) -> dict[str, Any]:
    """Two asset classes with one category each."""
    it = AssetCategoryClass(asset_class_id=1, name="IT Equipment", slug="it")
    furniture = AssetCategoryClass(asset_class_id=2, name="Furniture", slug="furniture")
    db_session.add_all([it, furniture])
    await db_session.flush()

    laptops = AssetCategory(category_id=100, name="Laptops", asset_class_id=1)
    chairs = AssetCategory(category_id=200, name="Chairs", asset_class_id=2)
    db_session.add_all([laptops, chairs])
    await db_session.commit()
    return {"it": it, "furniture": furniture, "laptops": laptops, "chairs": chairs}


@pytest.fixture
def seed_asset(db_session):
    """Factory persisting an asset with explicit identifiers."""

    async def _seed(
        asset_tag: str | None = None,
        asset_tag_group: str | None = None,
        category_id: int | None = None,
        **fields: Any,
    ) -> Asset:
        asset = Asset(
            asset_tag=asset_tag,
            asset_tag_group=asset_tag_group,
            category_id=category_id,
            **fields,
        )
        db_session.add(asset)
        await db_session.commit()
        return asset

    return _seed
