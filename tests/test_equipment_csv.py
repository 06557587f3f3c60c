from __future__ import annotations

from datetime import date, datetime
from types import SimpleNamespace

from equiptrack.services.equipment_csv import (
    CSV_HEADER,
    equipment_csv_row,
    export_filename,
    quote_field,
    render_equipment_csv,
)


def _equipment(**overrides) -> SimpleNamespace:
    values = dict(
        id="eq-1",
        name="Drill",
        description="Cordless 18V",
        category="Tools",
        status="IN_SERVICE",
        location="Workshop A",
        notes=None,
        creator=SimpleNamespace(first_name="Alice", last_name="Martin"),
        created_at=datetime(2025, 3, 14, 15, 9, 26),
        tag=SimpleNamespace(tag_id="NFC001"),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def test_header_is_fixed() -> None:
    csv_text = render_equipment_csv([])

    assert csv_text.splitlines() == [
        "ID,Nom,Description,Catégorie,Statut,Localisation,Notes,Créateur,Date de création,Tag NFC"
    ]
    assert len(CSV_HEADER) == 10


def test_row_quotes_every_field_and_formats_creator_and_date() -> None:
    row = equipment_csv_row(_equipment())

    assert row == (
        '"eq-1","Drill","Cordless 18V","Tools","IN_SERVICE","Workshop A","",'
        '"Alice Martin","2025-03-14","NFC001"'
    )


def test_embedded_quotes_are_doubled() -> None:
    assert quote_field('12" ladder') == '"12"" ladder"'
    assert '"Ladder ""pro"""' in equipment_csv_row(_equipment(name='Ladder "pro"'))


def test_untagged_equipment_has_empty_tag_column() -> None:
    row = equipment_csv_row(_equipment(tag=None))

    assert row.endswith(',""')


def test_one_line_per_equipment() -> None:
    csv_text = render_equipment_csv([_equipment(id="a"), _equipment(id="b")])

    lines = csv_text.splitlines()
    assert len(lines) == 3
    assert lines[1].startswith('"a"')
    assert lines[2].startswith('"b"')


def test_export_filename_uses_date() -> None:
    assert export_filename(date(2025, 1, 2)) == "equipments_export_2025-01-02.csv"
