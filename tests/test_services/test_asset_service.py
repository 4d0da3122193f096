"""
Tests for asset creation, update, lookup and preview.
"""

import base64

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import (
    AssetNotFoundException,
    FormNotFoundException,
    GenerationError,
    TagConflictError,
)
from app.models.asset import Asset
from app.schemas.asset import AssetCreate, AssetUpdate
from app.schemas.tag_config import TagPreviewRequest
from app.services.asset_service import MAX_CREATE_ATTEMPTS, AssetService, is_tag_conflict
from app.services.code_service import CodeService
from app.services.sequence_allocator import SequenceAllocator
from app.services.tag_builder import TagBuilder

PIXEL = base64.b64encode(b"\x89PNG fake pixel").decode()


class StaleAllocator(SequenceAllocator):
    """Always answers 1, as if every concurrent writer read the same snapshot."""

    def __init__(self, db):
        super().__init__(db)
        self.calls = 0

    async def compute_sequence(self, prefix, separator, start=1, scope=None, column="asset_tag"):
        self.calls += 1
        return 1


@pytest.fixture
def make_service(db_session, test_storage, test_settings):
    def _make(allocator: SequenceAllocator | None = None) -> AssetService:
        return AssetService(
            db_session,
            test_storage,
            tag_builder=TagBuilder(db_session, allocator=allocator),
            code_service=CodeService(db_session, test_storage, test_settings),
        )

    return _make


async def _count_assets(db_session) -> int:
    return (await db_session.execute(select(func.count(Asset.id)))).scalar_one()


@pytest.mark.asyncio
async def test_create_generates_tag_and_codes(make_service, eng_form):
    service = make_service()

    asset = await service.create(
        AssetCreate(name="Dell Laptop", form_id=1, form_responses={"10": "Engineering", "11": "SN-9"})
    )

    assert asset.asset_tag == "ENG-001"
    assert asset.asset_tag_group is None
    assert asset.active_form_id == 1
    assert asset.barcode == f"codes/asset_{asset.id}_barcode.png"
    assert asset.qr_code == f"codes/asset_{asset.id}_qrcode.png"
    assert asset.codesheet_path == f"codes/asset_{asset.id}_codes.png"
    assert service.form_responses_for(asset) == {"10": "Engineering", "11": "SN-9"}


@pytest.mark.asyncio
async def test_create_uploads_camera_answers(make_service, eng_form, test_storage):
    service = make_service()

    asset = await service.create(
        AssetCreate(name="Dell", form_id=1, form_responses={"10": "Eng", "12": [PIXEL], "99": "x"})
    )

    responses = service.form_responses_for(asset)
    assert "99" not in responses
    assert len(responses["12"]) == 1
    assert responses["12"][0].startswith(f"/storage/assets/{asset.id}/camera/12/")


@pytest.mark.asyncio
async def test_retry_regenerates_colliding_tag(make_service, eng_form, seed_asset):
    await seed_asset(asset_tag="ENG-001")
    allocator = StaleAllocator(None)
    service = make_service(allocator)

    asset = await service.create(AssetCreate(name="Dell", form_id=1, form_responses={"10": "Engineering"}))

    assert asset.asset_tag == "ENG-002"
    assert allocator.calls == 2
    assert await _count_assets(service.db) == 2


@pytest.mark.asyncio
async def test_retry_budget_exhausted(make_service, eng_form, seed_asset):
    for n in range(1, MAX_CREATE_ATTEMPTS + 1):
        await seed_asset(asset_tag=f"ENG-{n:03d}")
    service = make_service(StaleAllocator(None))

    with pytest.raises(TagConflictError) as exc_info:
        await service.create(AssetCreate(name="Dell", form_id=1, form_responses={"10": "Engineering"}))

    assert exc_info.value.status_code == 409
    assert exc_info.value.attempts == MAX_CREATE_ATTEMPTS
    assert exc_info.value.asset_tag == "ENG-003"
    assert await _count_assets(service.db) == MAX_CREATE_ATTEMPTS


@pytest.mark.asyncio
async def test_other_integrity_errors_propagate(make_service, eng_form):
    allocator = StaleAllocator(None)
    service = make_service(allocator)

    with pytest.raises(IntegrityError):
        await service.create(
            AssetCreate(name="Dell", category_id=999, form_id=1, form_responses={"10": "Engineering"})
        )

    assert allocator.calls == 1
    assert await _count_assets(service.db) == 0


@pytest.mark.asyncio
async def test_generation_error_writes_nothing(make_service, eng_form):
    service = make_service()

    with pytest.raises(GenerationError):
        await service.create(AssetCreate(name="Dell", form_id=1, form_responses={"11": "SN"}))

    assert await _count_assets(service.db) == 0


@pytest.mark.asyncio
async def test_unknown_form(make_service):
    with pytest.raises(FormNotFoundException):
        await make_service().create(AssetCreate(name="Dell", form_id=404))


@pytest.mark.asyncio
async def test_create_without_form_uses_legacy_layout(make_service, classes):
    asset = await make_service().create(
        AssetCreate(name="Chair", category_id=200, asset_location="Lab 2")
    )

    assert asset.asset_tag == "LAB-CHAIRS-001"


def test_is_tag_conflict():
    sqlite_error = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: assets.asset_tag"))
    pg_error = IntegrityError(
        "INSERT",
        {},
        Exception('duplicate key value violates unique constraint "assets_asset_tag_group_key"'),
    )
    fk_error = IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))

    assert is_tag_conflict(sqlite_error)
    assert is_tag_conflict(pg_error)
    assert not is_tag_conflict(fk_error)


class TestUpdate:
    """Tests for the update path."""

    @pytest.mark.asyncio
    async def test_existing_tag_is_kept(self, make_service, eng_form):
        service = make_service()
        created = await service.create(
            AssetCreate(name="Dell", form_id=1, form_responses={"10": "Engineering"})
        )

        updated = await service.update(created.id, AssetUpdate(form_responses={"10": "Finance"}))

        assert updated.asset_tag == "ENG-001"
        assert service.form_responses_for(updated)["10"] == "Finance"

    @pytest.mark.asyncio
    async def test_missing_tag_is_filled(self, make_service, eng_form, seed_asset):
        seeded = await seed_asset(name="Untagged", active_form_id=1)
        service = make_service()

        updated = await service.update(seeded.id, AssetUpdate(form_responses={"10": "Engineering"}))

        assert updated.asset_tag == "ENG-001"
        assert updated.qr_code == f"codes/asset_{seeded.id}_qrcode.png"

    @pytest.mark.asyncio
    async def test_filled_tag_conflict(self, make_service, eng_form, seed_asset):
        await seed_asset(asset_tag="ENG-001")
        seeded = await seed_asset(name="Untagged", active_form_id=1)
        service = make_service(StaleAllocator(None))

        with pytest.raises(TagConflictError) as exc_info:
            await service.update(seeded.id, AssetUpdate(form_responses={"10": "Engineering"}))

        assert exc_info.value.status_code == 409
        assert exc_info.value.asset_tag == "ENG-001"
        assert exc_info.value.attempts == 1
        reloaded = await service.get_by_id(seeded.id)
        assert reloaded.asset_tag is None

    @pytest.mark.asyncio
    async def test_core_change_regenerates_codes(self, make_service, seed_asset):
        seeded = await seed_asset(asset_tag="MANUAL-7", name="Old name")
        service = make_service()

        updated = await service.update(seeded.id, AssetUpdate(name="New name"))

        assert updated.name == "New name"
        assert updated.asset_tag == "MANUAL-7"
        assert updated.barcode == f"codes/asset_{seeded.id}_barcode.png"

    @pytest.mark.asyncio
    async def test_notes_change_does_not_render(self, make_service, seed_asset):
        seeded = await seed_asset(asset_tag="MANUAL-8", name="Desk")
        service = make_service()

        updated = await service.update(seeded.id, AssetUpdate(notes="scratched"))

        assert updated.notes == "scratched"
        assert updated.barcode is None

    @pytest.mark.asyncio
    async def test_unknown_asset(self, make_service):
        with pytest.raises(AssetNotFoundException):
            await make_service().update(404, AssetUpdate(name="x"))


class TestLookup:
    """Tests for lookup by scannable identifiers."""

    @pytest.mark.asyncio
    async def test_by_tag_and_group(self, make_service, seed_asset):
        seeded = await seed_asset(asset_tag="ENG-001", asset_tag_group="HQ-IT-0001")
        service = make_service()

        assert (await service.get_by_tag("ENG-001")).id == seeded.id
        assert (await service.get_by_tag(" HQ-IT-0001 ")).id == seeded.id

    @pytest.mark.asyncio
    async def test_by_barcode_number(self, make_service, seed_asset):
        seeded = await seed_asset(name="No tag")
        service = make_service()

        found = await service.get_by_tag(f"ASSET-{seeded.id:06d}")

        assert found.id == seeded.id

    @pytest.mark.asyncio
    async def test_barcode_number_of_tagged_asset_not_matched(self, make_service, seed_asset):
        seeded = await seed_asset(asset_tag="ENG-001")

        with pytest.raises(AssetNotFoundException):
            await make_service().get_by_tag(f"ASSET-{seeded.id:06d}")


@pytest.mark.asyncio
async def test_preview_does_not_persist(make_service, eng_form):
    service = make_service()

    first = await service.preview_tags(1, TagPreviewRequest(form_responses={"10": "Engineering"}))
    second = await service.preview_tags(1, TagPreviewRequest(form_responses={"10": "Engineering"}))

    assert first.asset_tag == second.asset_tag == "ENG-001"
    assert first.asset_tag_group is None
    assert await _count_assets(service.db) == 0
