"""CSV rendering of the equipment inventory."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Iterable, Optional

from ..models import Equipment


CSV_HEADER: tuple[str, ...] = (
    "ID",
    "Nom",
    "Description",
    "Catégorie",
    "Statut",
    "Localisation",
    "Notes",
    "Créateur",
    "Date de création",
    "Tag NFC",
)


def quote_field(value: object) -> str:
    """Double-quote a field, doubling embedded quotes."""
    text = "" if value is None else str(value)
    return '"' + text.replace('"', '""') + '"'


def _date_only(value: Optional[datetime]) -> str:
    return value.date().isoformat() if value is not None else ""


def equipment_csv_row(equipment: Equipment) -> str:
    creator = equipment.creator
    creator_name = f"{creator.first_name} {creator.last_name}" if creator is not None else ""
    tag = equipment.tag
    fields = (
        equipment.id,
        equipment.name,
        equipment.description,
        equipment.category,
        equipment.status,
        equipment.location,
        equipment.notes,
        creator_name,
        _date_only(equipment.created_at),
        tag.tag_id if tag is not None else "",
    )
    return ",".join(quote_field(field) for field in fields)


def render_equipment_csv(equipments: Iterable[Equipment]) -> str:
    lines = [",".join(CSV_HEADER)]
    lines.extend(equipment_csv_row(equipment) for equipment in equipments)
    return "\n".join(lines) + "\n"


def export_filename(today: Optional[date] = None) -> str:
    day = today or datetime.now(timezone.utc).date()
    return f"equipments_export_{day.isoformat()}.csv"
