from __future__ import annotations

import math

import pytest

from equiptrack.models import Equipment
from equiptrack.use_cases.equipment_use_cases import clamp_pagination, list_equipment_use_case


def _seed(db, user, count: int) -> set:
    ids = set()
    for index in range(count):
        # Few distinct names so that sorting by name produces many ties.
        equipment = Equipment(
            name=f"Item {index % 3}",
            category="Tools" if index % 2 else "Safety",
            status="IN_SERVICE",
            created_by=user.id,
        )
        db.add(equipment)
        db.flush()
        ids.add(equipment.id)
    db.commit()
    return ids


@pytest.mark.parametrize("total, limit", [(23, 5), (20, 5), (7, 20), (1, 1)])
@pytest.mark.parametrize("sort_by", ["name", "createdAt", "category"])
def test_pages_partition_the_result_set(db_session, make_user, total: int, limit: int, sort_by: str) -> None:
    ids = _seed(db_session, make_user(), total)

    first = list_equipment_use_case(db=db_session, page=1, limit=limit, sort_by=sort_by, sort_order="asc")
    total_pages = first.pagination.total_pages
    assert total_pages == math.ceil(total / limit)
    assert first.pagination.total_items == total

    seen: list = []
    for page in range(1, total_pages + 1):
        result = list_equipment_use_case(db=db_session, page=page, limit=limit, sort_by=sort_by, sort_order="asc")
        seen.extend(item.id for item in result.equipments)
        assert result.pagination.has_prev_page is (page > 1)
        assert result.pagination.has_next_page is (page < total_pages)

    assert len(seen) == len(set(seen)) == total
    assert set(seen) == ids


def test_page_past_the_end_is_empty(db_session, make_user) -> None:
    _seed(db_session, make_user(), 3)

    result = list_equipment_use_case(db=db_session, page=5, limit=2)

    assert result.equipments == []
    assert result.pagination.current_page == 5
    assert result.pagination.has_next_page is False
    assert result.pagination.has_prev_page is True


def test_empty_inventory_has_zero_pages(db_session) -> None:
    result = list_equipment_use_case(db=db_session)

    assert result.pagination.total_pages == 0
    assert result.pagination.total_items == 0
    assert result.pagination.has_next_page is False


@pytest.mark.parametrize(
    "page, limit, expected",
    [
        (1, 20, (1, 20)),
        (0, 10, (1, 10)),
        (-3, 10, (1, 10)),
        (2, 0, (2, 20)),
        (2, 101, (2, 20)),
        (2, 100, (2, 100)),
        ("3", "15", (3, 15)),
        ("abc", "xyz", (1, 20)),
        (None, None, (1, 20)),
    ],
)
def test_clamp_pagination(page, limit, expected) -> None:
    assert clamp_pagination(page, limit) == expected
