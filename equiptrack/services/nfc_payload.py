"""JSON snapshot exchanged with the web client's NFC reader/writer."""

from __future__ import annotations

import json
import logging
from typing import Optional

from pydantic import ValidationError

from ..models import Equipment
from ..schemas import NfcPayload

logger = logging.getLogger(__name__)


def build_nfc_payload(equipment: Equipment) -> dict:
    """Snapshot written onto a tag. `location` is omitted when unset."""
    payload: dict[str, str] = {
        "equipmentId": str(equipment.id),
        "name": equipment.name,
        "category": equipment.category,
    }
    if equipment.location:
        payload["location"] = equipment.location
    updated_at = equipment.updated_at or equipment.created_at
    if updated_at is not None:
        payload["lastUpdated"] = updated_at.isoformat()
    return payload


def serialize_nfc_payload(equipment: Equipment) -> str:
    return json.dumps(build_nfc_payload(equipment), ensure_ascii=False, separators=(",", ":"))


def parse_nfc_payload(raw: str | bytes | None) -> Optional[NfcPayload]:
    """Decode a scanned record; anything without `equipmentId` and `name` is discarded."""
    if not raw:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    try:
        data = json.loads(raw)
    except ValueError:
        logger.info("Discarding non-JSON NFC record: %r", raw[:200])
        return None
    if not isinstance(data, dict):
        logger.info("Discarding NFC record that is not an object: %r", raw[:200])
        return None
    if "lastUpdated" in data and not data["lastUpdated"]:
        data.pop("lastUpdated")
    try:
        return NfcPayload.model_validate(data)
    except ValidationError:
        logger.info("Discarding NFC record without equipmentId/name: %r", raw[:200])
        return None
