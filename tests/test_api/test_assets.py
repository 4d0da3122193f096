"""
Tests for asset endpoints.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_create_asset(client: AsyncClient, eng_form):
    """Creating an asset generates its tag and codes."""
    response = await client.post(
        "/api/v1/assets",
        json={"name": "Dell Laptop", "form_id": 1, "form_responses": {"10": "Engineering"}},
    )

    assert response.status_code == 201
    result = response.json()
    assert result["asset_tag"] == "ENG-001"
    assert result["status"] == "available"
    assert result["approval_status"] == "PENDING"
    assert result["form_responses"] == {"10": "Engineering"}
    assert result["qr_code"] == f"codes/asset_{result['id']}_qrcode.png"


@pytest.mark.asyncio
async def test_create_sequential_tags(client: AsyncClient, eng_form):
    body = {"name": "Dell Laptop", "form_id": 1, "form_responses": {"10": "Engineering"}}

    first = await client.post("/api/v1/assets", json=body)
    second = await client.post("/api/v1/assets", json=body)

    assert first.json()["asset_tag"] == "ENG-001"
    assert second.json()["asset_tag"] == "ENG-002"


@pytest.mark.asyncio
async def test_create_missing_field_is_422(client: AsyncClient, eng_form):
    response = await client.post(
        "/api/v1/assets",
        json={"name": "Dell Laptop", "form_id": 1, "form_responses": {}},
    )

    assert response.status_code == 422
    assert response.json()["error"] == "tag_generation_failed"


@pytest.mark.asyncio
async def test_create_unknown_form_is_404(client: AsyncClient):
    response = await client.post("/api/v1/assets", json={"name": "x", "form_id": 99})

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


@pytest.mark.asyncio
async def test_get_asset(client: AsyncClient, eng_form):
    created = await client.post(
        "/api/v1/assets",
        json={"name": "Dell Laptop", "form_id": 1, "form_responses": {"10": "Engineering"}},
    )
    asset_id = created.json()["id"]

    response = await client.get(f"/api/v1/assets/{asset_id}")

    assert response.status_code == 200
    assert response.json()["asset_tag"] == "ENG-001"


@pytest.mark.asyncio
async def test_get_asset_not_found(client: AsyncClient):
    response = await client.get("/api/v1/assets/12345")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_keeps_tag(client: AsyncClient, eng_form):
    created = await client.post(
        "/api/v1/assets",
        json={"name": "Dell Laptop", "form_id": 1, "form_responses": {"10": "Engineering"}},
    )
    asset_id = created.json()["id"]

    response = await client.patch(
        f"/api/v1/assets/{asset_id}",
        json={"name": "Dell XPS", "form_responses": {"10": "Finance"}},
    )

    assert response.status_code == 200
    result = response.json()
    assert result["name"] == "Dell XPS"
    assert result["asset_tag"] == "ENG-001"
    assert result["form_responses"]["10"] == "Finance"


@pytest.mark.asyncio
async def test_lookup(client: AsyncClient, eng_form):
    await client.post(
        "/api/v1/assets",
        json={"name": "Dell Laptop", "form_id": 1, "form_responses": {"10": "Engineering"}},
    )

    found = await client.get("/api/v1/assets/lookup", params={"tag": "ENG-001"})
    missing = await client.get("/api/v1/assets/lookup", params={"tag": "ENG-999"})

    assert found.status_code == 200
    assert found.json()["name"] == "Dell Laptop"
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_download_codes(client: AsyncClient, eng_form):
    created = await client.post(
        "/api/v1/assets",
        json={"name": "Dell Laptop", "form_id": 1, "form_responses": {"10": "Engineering"}},
    )
    asset_id = created.json()["id"]

    for kind in ("barcode", "qrcode", "codesheet"):
        response = await client.get(f"/api/v1/assets/{asset_id}/codes/{kind}")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content.startswith(b"\x89PNG")


@pytest.mark.asyncio
async def test_download_missing_code(client: AsyncClient, seed_asset):
    seeded = await seed_asset(asset_tag="MANUAL-1")

    response = await client.get(f"/api/v1/assets/{seeded.id}/codes/qrcode")
    invalid = await client.get(f"/api/v1/assets/{seeded.id}/codes/hologram")

    assert response.status_code == 404
    assert invalid.status_code == 422
