"""
Department and designation models and request schemas.
"""

import unicodedata
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField
from sqlalchemy import UniqueConstraint, event
from sqlmodel import Field, SQLModel

from managertc.models.common import iso, utcnow


class DepartmentStatus(str, Enum):
    """Status vocabulary shared by departments, designations and employees."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"
    ON_NOTICE = "On Notice"
    RESIGNED = "Resigned"
    TERMINATED = "Terminated"
    ON_LEAVE = "On Leave"


def normalize_status(status: Optional[str]) -> str:
    """Map any case-variant onto the vocabulary; unknown or empty is Active."""
    return parse_status(status) or DepartmentStatus.ACTIVE.value


def parse_status(status: Optional[str]) -> Optional[str]:
    """Canonical status for a known value, None for an unknown one; empty is Active."""
    if not status or not str(status).strip():
        return DepartmentStatus.ACTIVE.value
    lowered = str(status).strip().lower()
    for member in DepartmentStatus:
        if member.value.lower() == lowered:
            return member.value
    return None


def name_key(name: str) -> str:
    """Comparison key for names: NFC-normalised, trimmed, Unicode case-folded."""
    return unicodedata.normalize("NFC", name.strip()).casefold()


# Database Models


class Department(SQLModel, table=True):
    __tablename__ = "departments"
    __table_args__ = (
        UniqueConstraint("company_id", "department_key", name="uq_department_key"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: str = Field(max_length=50, index=True)

    department: str = Field(max_length=255)
    # name_key(department), kept in step by the flush listener below
    department_key: str = Field(default="", max_length=255)
    status: str = Field(default=DepartmentStatus.ACTIVE.value, max_length=50)

    created_by: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=utcnow)
    updated_by: Optional[str] = Field(default=None, max_length=255)
    updated_at: Optional[datetime] = Field(default=None)

    def to_public(self) -> dict:
        return {
            "_id": self.id,
            "department": self.department,
            "status": self.status,
            "createdBy": self.created_by,
            "createdAt": iso(self.created_at),
            "updatedBy": self.updated_by,
            "updatedAt": iso(self.updated_at),
        }


@event.listens_for(Department, "before_insert")
@event.listens_for(Department, "before_update")
def _sync_department_key(mapper, connection, target: Department) -> None:
    target.department_key = name_key(target.department or "")


class Designation(SQLModel, table=True):
    __tablename__ = "designations"

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: str = Field(max_length=50, index=True)

    designation: str = Field(max_length=255)
    department_id: int = Field(index=True)
    status: str = Field(default=DepartmentStatus.ACTIVE.value, max_length=50)

    created_by: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=utcnow)
    updated_by: Optional[str] = Field(default=None, max_length=255)
    updated_at: Optional[datetime] = Field(default=None)

    def to_public(self) -> dict:
        return {
            "_id": self.id,
            "designation": self.designation,
            "departmentId": self.department_id,
            "status": self.status,
            "createdBy": self.created_by,
            "createdAt": iso(self.created_at),
            "updatedBy": self.updated_by,
            "updatedAt": iso(self.updated_at),
        }


# Request Schemas


class DepartmentCreate(BaseModel):
    department: Optional[str] = None
    status: Optional[str] = None


class DepartmentUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    department_id: Optional[Any] = PydanticField(default=None, alias="departmentId")
    department: Optional[str] = None
    status: Optional[str] = None


class DepartmentReassign(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source_department_id: Optional[Any] = PydanticField(
        default=None, alias="sourceDepartmentId"
    )
    target_department_id: Optional[Any] = PydanticField(
        default=None, alias="targetDepartmentId"
    )


class DesignationCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    designation: Optional[str] = None
    department_id: Optional[Any] = PydanticField(default=None, alias="departmentId")
    status: Optional[str] = None


class DesignationUpdate(DesignationCreate):
    designation_id: Optional[Any] = PydanticField(default=None, alias="designationId")


class DesignationReassign(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source_designation_id: Optional[Any] = PydanticField(
        default=None, alias="sourceDesignationId"
    )
    target_designation_id: Optional[Any] = PydanticField(
        default=None, alias="targetDesignationId"
    )
