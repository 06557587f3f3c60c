"""Pydantic schemas for API."""
import re
from datetime import datetime
from typing import Annotated, Any, Generic, Literal, Optional, TypeVar
from uuid import UUID

from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel


T = TypeVar("T")

UserRole = Literal["ADMIN", "USER"]
EquipmentStatus = Literal["IN_SERVICE", "OUT_OF_SERVICE", "MAINTENANCE", "LOANED"]
SortField = Literal["name", "createdAt", "updatedAt", "category"]
SortOrder = Literal["asc", "desc"]

_PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
TAG_ID_PATTERN = r"^[a-zA-Z0-9\-_]+$"

# bcrypt only reads the first 72 bytes of its input.
PASSWORD_MAX_BYTES = 72


def _check_password_composition(value: str) -> str:
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    if not _PASSWORD_PATTERN.match(value):
        raise ValueError("Password must contain at least one lowercase letter, one uppercase letter and one digit")
    return value


StrongPassword = Annotated[
    str, Field(min_length=8, max_length=PASSWORD_MAX_BYTES), AfterValidator(_check_password_composition)
]


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )


class DataResponse(BaseModel, Generic[T]):
    message: str
    data: T


class MessageResponse(BaseModel):
    message: str


# Users / auth
class RegisterRequest(ApiModel):
    email: EmailStr
    password: StrongPassword
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)
    role: Optional[UserRole] = None


class LoginRequest(ApiModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UpdateProfileRequest(ApiModel):
    first_name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    email: Optional[EmailStr] = None


class ChangePasswordRequest(ApiModel):
    current_password: str = Field(min_length=1)
    new_password: StrongPassword
    confirm_password: str

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Password confirmation does not match")
        return self


class ForgotPasswordRequest(ApiModel):
    email: EmailStr


class ResetPasswordRequest(ApiModel):
    token: str = Field(min_length=1, max_length=128)
    new_password: StrongPassword
    confirm_password: str

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Password confirmation does not match")
        return self


class UserProfile(ApiModel):
    id: UUID
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ProfileCounts(ApiModel):
    equipments_created: int
    events: int


class UserProfileWithCounts(UserProfile):
    counts: ProfileCounts


class AuthResult(ApiModel):
    user: UserProfile
    token: str


# Equipment
class EquipmentCreate(ApiModel):
    name: str = Field(min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    category: str = Field(min_length=2, max_length=50)
    status: Optional[EquipmentStatus] = None
    location: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = Field(default=None, max_length=1000)


class EquipmentUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    category: Optional[str] = Field(default=None, min_length=2, max_length=50)
    status: Optional[EquipmentStatus] = None
    location: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = Field(default=None, max_length=1000)


class AssignTagRequest(ApiModel):
    tag_id: str = Field(min_length=4, max_length=50, pattern=TAG_ID_PATTERN)


class EquipmentFilters(ApiModel):
    category: Optional[str] = None
    status: Optional[EquipmentStatus] = None
    location: Optional[str] = None
    search: Optional[str] = Field(default=None, max_length=100)


class CreatorSummary(ApiModel):
    id: UUID
    first_name: str
    last_name: str
    email: str


class ActorSummary(ApiModel):
    id: UUID
    first_name: str
    last_name: str


class TagOut(ApiModel):
    id: UUID
    tag_id: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class EventOut(ApiModel):
    id: UUID
    type: str
    description: Optional[str] = None
    # ORM attribute is `event_metadata`; the wire name stays `metadata`.
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("event_metadata", "metadata"),
        serialization_alias="metadata",
    )
    created_at: datetime
    user: ActorSummary


class EquipmentOut(ApiModel):
    id: UUID
    name: str
    description: Optional[str] = None
    category: str
    status: str
    location: Optional[str] = None
    notes: Optional[str] = None
    created_by: UUID
    created_at: datetime
    updated_at: datetime
    creator: CreatorSummary
    tag: Optional[TagOut] = None
    event_count: int = 0


class EquipmentDetail(EquipmentOut):
    events: list[EventOut] = Field(default_factory=list)


class Pagination(ApiModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool


class EquipmentListResult(ApiModel):
    equipments: list[EquipmentOut]
    pagination: Pagination


class EquipmentRef(ApiModel):
    id: UUID
    name: str


class DeleteResult(ApiModel):
    success: bool
    deleted_equipment: EquipmentOut


class CategoryCount(ApiModel):
    category: str
    count: int


class RecentActivityItem(ApiModel):
    id: UUID
    type: str
    description: Optional[str] = None
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("event_metadata", "metadata"),
        serialization_alias="metadata",
    )
    created_at: datetime
    equipment: EquipmentRef
    user: ActorSummary


class EquipmentStatistics(ApiModel):
    total_equipments: int
    by_status: dict[str, int]
    by_category: list[CategoryCount]
    recent_activity: list[RecentActivityItem]


class NfcPayload(ApiModel):
    """Snapshot written to / read from a physical tag."""

    equipment_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    category: Optional[str] = None
    location: Optional[str] = None
    last_updated: Optional[datetime] = None
