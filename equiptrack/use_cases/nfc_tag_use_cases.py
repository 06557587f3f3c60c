"""NFC tag binding use-cases.

A tag is bound to at most one equipment and an equipment holds at most one tag.
Both sides are enforced by unique constraints on `nfc_tags`; binding itself is a
conditional UPDATE that only matches an unbound tag or one already bound to the
target, so two concurrent requests cannot both win the same tag.
"""
from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..domain_errors import DomainError, ErrorCode, domain_error
from ..models import Equipment, NfcTag, User, utcnow
from ..schemas import EquipmentOut
from ..services.nfc_payload import build_nfc_payload
from .equipment_use_cases import get_equipment_or_404, record_event, reload_equipment_out

logger = logging.getLogger(__name__)


def _tag_conflict(db: Session, tag_id: str) -> DomainError:
    owner_name = (
        db.query(Equipment.name)
        .join(NfcTag, NfcTag.equipment_id == Equipment.id)
        .filter(NfcTag.tag_id == tag_id)
        .scalar()
    )
    message = (
        f'Tag {tag_id} is already assigned to equipment "{owner_name}"'
        if owner_name
        else f"Tag {tag_id} is already assigned to another equipment"
    )
    return domain_error(ErrorCode.TAG_ALREADY_ASSIGNED, message, details={"tagId": tag_id})


def _release_tag(
    db: Session,
    *,
    equipment: Equipment,
    tag: NfcTag,
    user_id: UUID,
    reason: str | None = None,
) -> None:
    released_tag_id = tag.tag_id
    metadata = {"tagId": released_tag_id, "action": "tag_remove"}
    if reason:
        metadata["reason"] = reason
    tag.is_active = False
    tag.equipment = None
    record_event(
        db,
        equipment=equipment,
        event_type="TAG_REMOVED",
        user_id=user_id,
        description=f"NFC tag {released_tag_id} removed",
        metadata=metadata,
    )


def _bind_tag(db: Session, *, equipment_id: UUID, tag_id: str) -> bool:
    """Conditional bind; False when the tag is absent or bound elsewhere."""
    result = db.execute(
        update(NfcTag)
        .where(
            NfcTag.tag_id == tag_id,
            or_(NfcTag.equipment_id.is_(None), NfcTag.equipment_id == equipment_id),
        )
        .values(equipment_id=equipment_id, is_active=True, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def assign_nfc_tag_use_case(
    *,
    db: Session,
    equipment_id: UUID,
    tag_id: str,
    current_user: User,
) -> EquipmentOut:
    equipment = get_equipment_or_404(db, equipment_id)

    existing = db.query(NfcTag).filter(NfcTag.tag_id == tag_id).first()
    if existing is not None and existing.equipment_id is not None and existing.equipment_id != equipment.id:
        raise _tag_conflict(db, tag_id)

    try:
        current_tag = equipment.tag
        if current_tag is not None and current_tag.tag_id != tag_id:
            # One tag per equipment: the previous tag goes back to inventory.
            _release_tag(db, equipment=equipment, tag=current_tag, user_id=current_user.id, reason="replaced")
        db.flush()

        if not _bind_tag(db, equipment_id=equipment.id, tag_id=tag_id):
            if existing is not None:
                # Bound elsewhere between our read and the conditional write.
                db.rollback()
                raise _tag_conflict(db, tag_id)
            db.add(NfcTag(tag_id=tag_id, equipment_id=equipment.id, is_active=True))
            db.flush()

        record_event(
            db,
            equipment=equipment,
            event_type="TAG_ASSIGNED",
            user_id=current_user.id,
            description=f"NFC tag {tag_id} assigned",
            metadata={"tagId": tag_id, "action": "tag_assign"},
        )
        db.commit()
    except IntegrityError:
        # Concurrent insert of the same tag id (or of another tag for this equipment).
        db.rollback()
        raise _tag_conflict(db, tag_id)
    except DomainError:
        raise
    except Exception:
        db.rollback()
        raise

    logger.info("NFC tag %s assigned to equipment %s by user %s", tag_id, equipment_id, current_user.id)
    return reload_equipment_out(db, equipment_id)


def remove_nfc_tag_use_case(*, db: Session, equipment_id: UUID, current_user: User) -> EquipmentOut:
    equipment = get_equipment_or_404(db, equipment_id)
    tag = equipment.tag
    if tag is None:
        raise domain_error(ErrorCode.NO_TAG_ASSIGNED, "No NFC tag is assigned to this equipment")

    released_tag_id = tag.tag_id
    try:
        _release_tag(db, equipment=equipment, tag=tag, user_id=current_user.id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("NFC tag %s removed from equipment %s by user %s", released_tag_id, equipment_id, current_user.id)
    return reload_equipment_out(db, equipment_id)


def get_nfc_payload_use_case(*, db: Session, equipment_id: UUID) -> dict:
    """Snapshot the web client writes onto the physical tag."""
    return build_nfc_payload(get_equipment_or_404(db, equipment_id))
