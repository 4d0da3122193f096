"""
Tests for QR payload construction.
"""

import pytest

from app.models.asset import ApprovalStatus, Asset, AssetStatus
from app.models.form import FormField, FormFieldType
from app.services.qr_payload import QrPayloadBuilder, build_structured_payload, format_human_readable_text


def _asset(**overrides) -> Asset:
    data = {
        "id": 7,
        "asset_tag": "ENG-001",
        "name": "Dell Laptop",
        "status": AssetStatus.AVAILABLE,
        "approval_status": ApprovalStatus.PENDING,
    }
    data.update(overrides)
    return Asset(**data)


def test_text_without_fields():
    text = format_human_readable_text(_asset(), [], {})

    assert text == "ASSET TAG: ENG-001\n\nNAME: Dell Laptop\n\nSTATUS: available"


def test_text_without_tag_starts_with_name():
    text = format_human_readable_text(_asset(asset_tag=None), [], None)

    assert text.startswith("NAME: Dell Laptop")


def test_text_field_lines_in_position_order():
    fields = [
        FormField(id=3, label="Colour", type=FormFieldType.SELECT, position=2),
        FormField(id=1, label="Photo", type=FormFieldType.CAMERA, position=0),
        FormField(id=2, label="Serial", type=FormFieldType.TEXT, position=1),
        FormField(id=4, label="Where", type=FormFieldType.LOCATION, position=3),
        FormField(id=5, label="Notes", type=FormFieldType.TEXT, position=4),
        FormField(id=6, label="Site", type=FormFieldType.HIERARCHICAL_SELECT, position=5),
    ]
    responses = {
        "1": ["https://img/1.png"],
        "2": "SN-1",
        "3": ["red", "blue"],
        "4": {"lat": 1, "lng": 2},
        "5": "  ",
        "6": {"resolved": [{"level": "Building", "label": "HQ"}, {"level": "Floor", "label": "2"}]},
    }

    text = format_human_readable_text(_asset(), fields, responses)

    assert text.split("\n\n")[3:] == ["Serial: SN-1", "Colour: red, blue", "Site: HQ / 2"]


def test_structured_payload_omits_empty_keys():
    payload = build_structured_payload(_asset(asset_location="Lab"), {"2": "SN-1"}, 1)

    assert payload["version"] == 1
    assert payload["asset_id"] == 7
    assert payload["asset_tag"] == "ENG-001"
    assert payload["status"] == "available"
    assert payload["approval_status"] == "PENDING"
    assert payload["asset_location"] == "Lab"
    assert payload["form_id"] == 1
    assert payload["form_responses"] == {"2": "SN-1"}
    assert "generated_at" in payload
    assert "asset_tag_group" not in payload
    assert "barcode" not in payload


def test_structured_payload_without_responses():
    payload = build_structured_payload(_asset(), {}, None)

    assert "form_responses" not in payload
    assert "form_id" not in payload


@pytest.mark.asyncio
async def test_builder_loads_form_fields(db_session, eng_form):
    builder = QrPayloadBuilder(db_session)

    text = await builder.build_human_readable_text(
        _asset(), eng_form.form_id, {"10": "Engineering", "12": "data:image/png;base64,AAAA"}
    )

    assert text.endswith("STATUS: available\n\nDepartment: Engineering")
