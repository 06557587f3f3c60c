"""Equipment endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ..auth import require_auth
from ..database import get_db
from ..models import User
from ..schemas import (
    AssignTagRequest,
    DataResponse,
    DeleteResult,
    EquipmentCreate,
    EquipmentDetail,
    EquipmentFilters,
    EquipmentListResult,
    EquipmentOut,
    EquipmentStatistics,
    EquipmentStatus,
    EquipmentUpdate,
    NfcPayload,
    SortField,
    SortOrder,
)
from ..services.equipment_csv import export_filename, render_equipment_csv
from ..use_cases.equipment_use_cases import (
    DEFAULT_PAGE_SIZE,
    create_equipment_use_case,
    delete_equipment_use_case,
    get_equipment_by_tag_use_case,
    get_equipment_use_case,
    get_statistics_use_case,
    list_equipment_for_export,
    list_equipment_use_case,
    update_equipment_use_case,
)
from ..use_cases.nfc_tag_use_cases import (
    assign_nfc_tag_use_case,
    get_nfc_payload_use_case,
    remove_nfc_tag_use_case,
)

router = APIRouter(prefix="/equipments", tags=["equipments"])


def get_equipment_filters(
    category: Optional[str] = Query(None, max_length=50),
    status: Optional[EquipmentStatus] = Query(None),
    location: Optional[str] = Query(None, max_length=100),
    search: Optional[str] = Query(None, max_length=100),
) -> EquipmentFilters:
    return EquipmentFilters(category=category, status=status, location=location, search=search)


@router.get("", response_model=DataResponse[EquipmentListResult])
def list_equipments(
    # Raw strings: bad paging values are clamped, not rejected.
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    sort_by: SortField = Query("createdAt", alias="sortBy"),
    sort_order: SortOrder = Query("desc", alias="sortOrder"),
    filters: EquipmentFilters = Depends(get_equipment_filters),
    current_user: User = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """List equipment with filters, sorting and pagination."""
    result = list_equipment_use_case(
        db=db,
        filters=filters,
        page=page if page is not None else 1,
        limit=limit if limit is not None else DEFAULT_PAGE_SIZE,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return DataResponse[EquipmentListResult](message="Equipment retrieved successfully", data=result)


@router.post("", response_model=DataResponse[EquipmentOut], status_code=status.HTTP_201_CREATED)
def create_equipment(
    data: EquipmentCreate,
    current_user: User = Depends(require_auth),
    db: Session = Depends(get_db),
):
    equipment = create_equipment_use_case(db=db, data=data, current_user=current_user)
    return DataResponse[EquipmentOut](message="Equipment created successfully", data=equipment)


@router.get("/statistics", response_model=DataResponse[EquipmentStatistics])
def get_statistics(current_user: User = Depends(require_auth), db: Session = Depends(get_db)):
    stats = get_statistics_use_case(db=db)
    return DataResponse[EquipmentStatistics](message="Statistics retrieved successfully", data=stats)


@router.get("/export")
def export_equipments(
    filters: EquipmentFilters = Depends(get_equipment_filters),
    current_user: User = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """CSV dump of every matching row (no pagination)."""
    content = render_equipment_csv(list_equipment_for_export(db=db, filters=filters))
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@router.get("/by-tag/{tag_id}", response_model=DataResponse[EquipmentDetail])
def get_equipment_by_tag(
    tag_id: str,
    current_user: User = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """Lookup used after a physical tag scan."""
    equipment = get_equipment_by_tag_use_case(db=db, tag_id=tag_id)
    return DataResponse[EquipmentDetail](message="Equipment retrieved successfully", data=equipment)


@router.get("/{equipment_id}", response_model=DataResponse[EquipmentDetail])
def get_equipment(
    equipment_id: UUID,
    current_user: User = Depends(require_auth),
    db: Session = Depends(get_db),
):
    equipment = get_equipment_use_case(db=db, equipment_id=equipment_id)
    return DataResponse[EquipmentDetail](message="Equipment retrieved successfully", data=equipment)


@router.get("/{equipment_id}/nfc-payload", response_model=DataResponse[NfcPayload])
def get_nfc_payload(
    equipment_id: UUID,
    current_user: User = Depends(require_auth),
    db: Session = Depends(get_db),
):
    payload = get_nfc_payload_use_case(db=db, equipment_id=equipment_id)
    return DataResponse[NfcPayload](message="NFC payload generated", data=NfcPayload.model_validate(payload))


@router.put("/{equipment_id}", response_model=DataResponse[EquipmentOut])
def update_equipment(
    equipment_id: UUID,
    data: EquipmentUpdate,
    current_user: User = Depends(require_auth),
    db: Session = Depends(get_db),
):
    equipment = update_equipment_use_case(db=db, equipment_id=equipment_id, data=data, current_user=current_user)
    return DataResponse[EquipmentOut](message="Equipment updated successfully", data=equipment)


@router.delete("/{equipment_id}", response_model=DataResponse[DeleteResult])
def delete_equipment(
    equipment_id: UUID,
    current_user: User = Depends(require_auth),
    db: Session = Depends(get_db),
):
    result = delete_equipment_use_case(db=db, equipment_id=equipment_id, current_user=current_user)
    return DataResponse[DeleteResult](message="Equipment deleted successfully", data=result)


@router.post("/{equipment_id}/nfc-tag", response_model=DataResponse[EquipmentOut])
def assign_nfc_tag(
    equipment_id: UUID,
    data: AssignTagRequest,
    current_user: User = Depends(require_auth),
    db: Session = Depends(get_db),
):
    equipment = assign_nfc_tag_use_case(
        db=db,
        equipment_id=equipment_id,
        tag_id=data.tag_id,
        current_user=current_user,
    )
    return DataResponse[EquipmentOut](message="NFC tag assigned successfully", data=equipment)


@router.delete("/{equipment_id}/nfc-tag", response_model=DataResponse[EquipmentOut])
def remove_nfc_tag(
    equipment_id: UUID,
    current_user: User = Depends(require_auth),
    db: Session = Depends(get_db),
):
    equipment = remove_nfc_tag_use_case(db=db, equipment_id=equipment_id, current_user=current_user)
    return DataResponse[EquipmentOut](message="NFC tag removed successfully", data=equipment)
