from __future__ import annotations

import json
import uuid
from datetime import datetime
from types import SimpleNamespace

import pytest

from equiptrack.services.nfc_payload import build_nfc_payload, parse_nfc_payload, serialize_nfc_payload


def _equipment(**overrides) -> SimpleNamespace:
    values = dict(
        id=uuid.UUID("11111111-2222-3333-4444-555555555555"),
        name="Drill",
        category="Tools",
        location=None,
        created_at=datetime(2025, 1, 1, 8, 0, 0),
        updated_at=datetime(2025, 1, 2, 9, 30, 0),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def test_payload_omits_missing_location() -> None:
    payload = build_nfc_payload(_equipment())

    assert payload == {
        "equipmentId": "11111111-2222-3333-4444-555555555555",
        "name": "Drill",
        "category": "Tools",
        "lastUpdated": "2025-01-02T09:30:00",
    }


def test_payload_includes_location_when_set() -> None:
    assert build_nfc_payload(_equipment(location="Workshop A"))["location"] == "Workshop A"


def test_serialized_payload_parses_back() -> None:
    parsed = parse_nfc_payload(serialize_nfc_payload(_equipment(location="Hangar B")))

    assert parsed is not None
    assert parsed.equipment_id == "11111111-2222-3333-4444-555555555555"
    assert parsed.name == "Drill"
    assert parsed.location == "Hangar B"
    assert parsed.last_updated == datetime(2025, 1, 2, 9, 30, 0)


def test_parse_accepts_bytes() -> None:
    raw = json.dumps({"equipmentId": "abc", "name": "Ladder"}).encode("utf-8")

    parsed = parse_nfc_payload(raw)

    assert parsed is not None
    assert parsed.name == "Ladder"
    assert parsed.category is None


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "",
        "plain text written by another app",
        "[1, 2, 3]",
        json.dumps({"name": "No id"}),
        json.dumps({"equipmentId": "abc"}),
        json.dumps({"equipmentId": "", "name": "Empty id"}),
    ],
)
def test_invalid_records_are_discarded(raw) -> None:
    assert parse_nfc_payload(raw) is None
