"""Equipment use-cases: CRUD with audit events, listing, statistics and export."""
from __future__ import annotations

import logging
import math
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session, joinedload

from ..config import settings
from ..domain_errors import ErrorCode, domain_error
from ..models import Equipment, EquipmentEvent, NfcTag, User
from ..schemas import (
    CategoryCount,
    DeleteResult,
    EquipmentCreate,
    EquipmentDetail,
    EquipmentFilters,
    EquipmentListResult,
    EquipmentOut,
    EquipmentStatistics,
    EquipmentUpdate,
    EventOut,
    Pagination,
    RecentActivityItem,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
DETAIL_EVENTS_LIMIT = 50
RECENT_ACTIVITY_LIMIT = 10

SORT_COLUMNS = {
    "name": Equipment.name,
    "createdAt": Equipment.created_at,
    "updatedAt": Equipment.updated_at,
    "category": Equipment.category,
}


def record_event(
    db: Session,
    *,
    equipment: Equipment,
    event_type: str,
    user_id: UUID,
    description: str | None,
    metadata: dict[str, Any],
) -> EquipmentEvent:
    event = EquipmentEvent(
        equipment=equipment,
        type=event_type,
        description=description,
        user_id=user_id,
        event_metadata=metadata,
    )
    db.add(event)
    return event


def _equipment_query(db: Session) -> Query:
    return db.query(Equipment).options(joinedload(Equipment.creator), joinedload(Equipment.tag))


def get_equipment_or_404(db: Session, equipment_id: UUID) -> Equipment:
    equipment = _equipment_query(db).filter(Equipment.id == equipment_id).first()
    if equipment is None:
        raise domain_error(ErrorCode.EQUIPMENT_NOT_FOUND, "Equipment not found")
    return equipment


def count_events(db: Session, equipment_id: UUID) -> int:
    return int(
        db.query(func.count(EquipmentEvent.id)).filter(EquipmentEvent.equipment_id == equipment_id).scalar() or 0
    )


def _event_counts(db: Session, equipment_ids: list[UUID]) -> dict[UUID, int]:
    if not equipment_ids:
        return {}
    rows = (
        db.query(EquipmentEvent.equipment_id, func.count(EquipmentEvent.id))
        .filter(EquipmentEvent.equipment_id.in_(equipment_ids))
        .group_by(EquipmentEvent.equipment_id)
        .all()
    )
    return {equipment_id: int(count) for equipment_id, count in rows}


def to_equipment_out(equipment: Equipment, event_count: int) -> EquipmentOut:
    return EquipmentOut.model_validate(equipment).model_copy(update={"event_count": event_count})


def reload_equipment_out(db: Session, equipment_id: UUID) -> EquipmentOut:
    equipment = get_equipment_or_404(db, equipment_id)
    return to_equipment_out(equipment, count_events(db, equipment.id))


def clamp_pagination(page: Any, limit: Any) -> tuple[int, int]:
    """Out-of-range or unparsable values fall back instead of failing the request."""
    try:
        page_int = int(page)
    except (TypeError, ValueError):
        page_int = 1
    try:
        limit_int = int(limit)
    except (TypeError, ValueError):
        limit_int = DEFAULT_PAGE_SIZE
    if page_int < 1:
        page_int = 1
    if limit_int < 1 or limit_int > MAX_PAGE_SIZE:
        limit_int = DEFAULT_PAGE_SIZE
    return page_int, limit_int


def _like_pattern(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def apply_filters(query: Query, filters: EquipmentFilters | None) -> Query:
    if filters is None:
        return query
    if filters.category:
        query = query.filter(Equipment.category == filters.category)
    if filters.status:
        query = query.filter(Equipment.status == filters.status)
    if filters.location:
        query = query.filter(Equipment.location.ilike(_like_pattern(filters.location), escape="\\"))
    if filters.search:
        pattern = _like_pattern(filters.search)
        query = query.filter(
            or_(
                Equipment.name.ilike(pattern, escape="\\"),
                Equipment.description.ilike(pattern, escape="\\"),
            )
        )
    return query


def _apply_sort(query: Query, sort_by: str, sort_order: str) -> Query:
    column = SORT_COLUMNS.get(sort_by, Equipment.created_at)
    if sort_order == "asc":
        return query.order_by(column.asc(), Equipment.id.asc())
    # Secondary key on id keeps page boundaries stable when the sort column ties.
    return query.order_by(column.desc(), Equipment.id.desc())


def create_equipment_use_case(*, db: Session, data: EquipmentCreate, current_user: User) -> EquipmentOut:
    status = data.status or settings.DEFAULT_EQUIPMENT_STATUS
    equipment = Equipment(
        name=data.name,
        description=data.description,
        category=data.category,
        status=status,
        location=data.location,
        notes=data.notes,
        created_by=current_user.id,
    )
    db.add(equipment)
    try:
        db.flush()
        record_event(
            db,
            equipment=equipment,
            event_type="STATUS_CHANGE",
            user_id=current_user.id,
            description=f"Equipment created with status {status}",
            metadata={"previousStatus": None, "newStatus": status, "action": "create"},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Equipment created: %s by user %s", equipment.id, current_user.id)
    return reload_equipment_out(db, equipment.id)


def list_equipment_use_case(
    *,
    db: Session,
    filters: EquipmentFilters | None = None,
    page: Any = 1,
    limit: Any = DEFAULT_PAGE_SIZE,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
) -> EquipmentListResult:
    page, limit = clamp_pagination(page, limit)

    total = int(apply_filters(db.query(func.count(Equipment.id)), filters).scalar() or 0)
    query = _apply_sort(apply_filters(_equipment_query(db), filters), sort_by, sort_order)
    equipments = query.offset((page - 1) * limit).limit(limit).all()

    counts = _event_counts(db, [equipment.id for equipment in equipments])
    total_pages = math.ceil(total / limit) if total else 0
    return EquipmentListResult(
        equipments=[to_equipment_out(equipment, counts.get(equipment.id, 0)) for equipment in equipments],
        pagination=Pagination(
            current_page=page,
            total_pages=total_pages,
            total_items=total,
            items_per_page=limit,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        ),
    )


def get_equipment_use_case(*, db: Session, equipment_id: UUID) -> EquipmentDetail:
    equipment = get_equipment_or_404(db, equipment_id)
    events = (
        db.query(EquipmentEvent)
        .options(joinedload(EquipmentEvent.user))
        .filter(EquipmentEvent.equipment_id == equipment.id)
        .order_by(EquipmentEvent.created_at.desc())
        .limit(DETAIL_EVENTS_LIMIT)
        .all()
    )
    base = to_equipment_out(equipment, count_events(db, equipment.id))
    return EquipmentDetail(
        **base.model_dump(),
        events=[EventOut.model_validate(event) for event in events],
    )


def get_equipment_by_tag_use_case(*, db: Session, tag_id: str) -> EquipmentDetail:
    """Resolve a scanned tag identifier to its equipment."""
    equipment_id = (
        db.query(NfcTag.equipment_id)
        .filter(NfcTag.tag_id == tag_id, NfcTag.is_active == True, NfcTag.equipment_id.isnot(None))  # noqa: E712
        .scalar()
    )
    if equipment_id is None:
        raise domain_error(ErrorCode.EQUIPMENT_NOT_FOUND, "No equipment is linked to this tag")
    return get_equipment_use_case(db=db, equipment_id=equipment_id)


def update_equipment_use_case(
    *,
    db: Session,
    equipment_id: UUID,
    data: EquipmentUpdate,
    current_user: User,
) -> EquipmentOut:
    equipment = get_equipment_or_404(db, equipment_id)
    changes = data.model_dump(exclude_unset=True)
    previous_status = equipment.status
    previous_location = equipment.location

    for field in ("name", "category", "status"):
        # Required columns: an explicit null leaves the value untouched.
        if changes.get(field) is not None:
            setattr(equipment, field, changes[field])
    for field in ("description", "location", "notes"):
        if field in changes:
            setattr(equipment, field, changes[field])

    try:
        if "status" in changes and changes["status"] is not None and changes["status"] != previous_status:
            record_event(
                db,
                equipment=equipment,
                event_type="STATUS_CHANGE",
                user_id=current_user.id,
                description=f"Status changed from {previous_status} to {equipment.status}",
                metadata={
                    "previousStatus": previous_status,
                    "newStatus": equipment.status,
                    "action": "status_update",
                },
            )
        if "location" in changes and changes["location"] != previous_location:
            record_event(
                db,
                equipment=equipment,
                event_type="STATUS_CHANGE",
                user_id=current_user.id,
                description=f"Location changed from {previous_location or 'none'} to {equipment.location or 'none'}",
                metadata={
                    "previousLocation": previous_location,
                    "newLocation": equipment.location,
                    "action": "location_update",
                },
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Equipment updated: %s by user %s", equipment_id, current_user.id)
    return reload_equipment_out(db, equipment_id)


def delete_equipment_use_case(*, db: Session, equipment_id: UUID, current_user: User) -> DeleteResult:
    equipment = get_equipment_or_404(db, equipment_id)
    tag = equipment.tag
    # Last-known state, including the tag binding released below.
    deleted = to_equipment_out(equipment, count_events(db, equipment.id))

    try:
        record_event(
            db,
            equipment=equipment,
            event_type="STATUS_CHANGE",
            user_id=current_user.id,
            description=f"Equipment {equipment.name} deleted",
            metadata={"action": "delete", "equipmentName": equipment.name, "hadTag": tag is not None},
        )
        if tag is not None:
            # The physical tag goes back to inventory, inactive and unbound.
            tag.is_active = False
            tag.equipment = None
        db.flush()
        db.delete(equipment)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Equipment deleted: %s (%s) by user %s, released tag=%s",
        deleted.id,
        deleted.name,
        current_user.id,
        tag.tag_id if tag is not None else None,
    )
    return DeleteResult(success=True, deleted_equipment=deleted)


def get_statistics_use_case(*, db: Session) -> EquipmentStatistics:
    total = int(db.query(func.count(Equipment.id)).scalar() or 0)

    by_status = {
        status: int(count)
        for status, count in db.query(Equipment.status, func.count(Equipment.id)).group_by(Equipment.status).all()
    }

    category_count = func.count(Equipment.id)
    by_category = [
        CategoryCount(category=category, count=int(count))
        for category, count in db.query(Equipment.category, category_count)
        .group_by(Equipment.category)
        .order_by(category_count.desc(), Equipment.category.asc())
        .all()
    ]

    recent_events = (
        db.query(EquipmentEvent)
        .options(joinedload(EquipmentEvent.equipment), joinedload(EquipmentEvent.user))
        .order_by(EquipmentEvent.created_at.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
        .all()
    )

    return EquipmentStatistics(
        total_equipments=total,
        by_status=by_status,
        by_category=by_category,
        recent_activity=[RecentActivityItem.model_validate(event) for event in recent_events],
    )


def list_equipment_for_export(*, db: Session, filters: EquipmentFilters | None = None) -> list[Equipment]:
    """Every matching row, newest first, with creator and tag loaded."""
    query = apply_filters(_equipment_query(db), filters)
    return query.order_by(Equipment.created_at.desc(), Equipment.id.desc()).all()
