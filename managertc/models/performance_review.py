from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField
from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from managertc.models.common import iso, utcnow


class ReviewStatus(str, Enum):
    DRAFT = "Draft"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    APPROVED = "Approved"


# Set on soft delete only; never accepted from clients
CANCELLED = "Cancelled"

# Appraisal form sections stored as JSON, in form order: (column, camelCase key)
REVIEW_SECTIONS = (
    ("professional_excellence", "professionalExcellence"),
    ("personal_excellence", "personalExcellence"),
    ("special_initiatives", "specialInitiatives"),
    ("role_alterations", "roleAlterations"),
    ("strengths_and_improvements", "strengthsAndImprovements"),
    ("personal_goals", "personalGoals"),
    ("personal_updates", "personalUpdates"),
    ("professional_goals", "professionalGoals"),
    ("training_requirements", "trainingRequirements"),
    ("general_comments", "generalComments"),
    ("ro_use_only", "roUseOnly"),
    ("hrd_use_only", "hrdUseOnly"),
    ("signatures", "signatures"),
)


class PerformanceReview(SQLModel, table=True):
    __tablename__ = "performance_reviews"

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: str = Field(max_length=50, index=True)
    employee_id: str = Field(max_length=255, index=True)

    employee_info: dict = Field(default_factory=dict, sa_column=Column(JSON))
    # Copied out of employee_info for filtering
    department: str = Field(default="", max_length=255)
    designation: str = Field(default="", max_length=255)

    professional_excellence: list = Field(default_factory=list, sa_column=Column(JSON))
    personal_excellence: list = Field(default_factory=list, sa_column=Column(JSON))
    special_initiatives: list = Field(default_factory=list, sa_column=Column(JSON))
    role_alterations: list = Field(default_factory=list, sa_column=Column(JSON))
    strengths_and_improvements: dict = Field(default_factory=dict, sa_column=Column(JSON))
    personal_goals: list = Field(default_factory=list, sa_column=Column(JSON))
    personal_updates: list = Field(default_factory=list, sa_column=Column(JSON))
    professional_goals: dict = Field(default_factory=dict, sa_column=Column(JSON))
    training_requirements: list = Field(default_factory=list, sa_column=Column(JSON))
    general_comments: list = Field(default_factory=list, sa_column=Column(JSON))
    ro_use_only: list = Field(default_factory=list, sa_column=Column(JSON))
    hrd_use_only: list = Field(default_factory=list, sa_column=Column(JSON))
    signatures: dict = Field(default_factory=dict, sa_column=Column(JSON))

    status: str = Field(default=ReviewStatus.DRAFT.value, max_length=20, index=True)
    review_start: datetime = Field(default_factory=utcnow)
    review_end: datetime = Field(default_factory=utcnow)

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)
    is_deleted: bool = Field(default=False)
    deleted_at: Optional[datetime] = Field(default=None)

    def to_public(self) -> dict:
        result = {
            "_id": self.id,
            "companyId": self.company_id,
            "employeeId": self.employee_id,
            "employeeInfo": self.employee_info or {},
        }
        for column, key in REVIEW_SECTIONS:
            result[key] = getattr(self, column)
        result.update(
            {
                "status": self.status,
                "reviewPeriod": {
                    "startDate": iso(self.review_start),
                    "endDate": iso(self.review_end),
                },
                "createdAt": iso(self.created_at),
                "updatedAt": iso(self.updated_at),
                "isDeleted": self.is_deleted,
                "deletedAt": iso(self.deleted_at),
            }
        )
        return result


class PerformanceReviewCreate(BaseModel):
    """
    Appraisal form as the client sends it. Sections are taken loosely and
    normalised by the service: strings trimmed, scores clamped, unknown keys
    dropped.
    """

    model_config = ConfigDict(populate_by_name=True)

    employee_id: Optional[str] = PydanticField(default=None, alias="employeeId")
    employee_info: Optional[dict[str, Any]] = PydanticField(default=None, alias="employeeInfo")
    professional_excellence: Optional[list[dict[str, Any]]] = PydanticField(
        default=None, alias="professionalExcellence"
    )
    personal_excellence: Optional[list[dict[str, Any]]] = PydanticField(
        default=None, alias="personalExcellence"
    )
    special_initiatives: Optional[list[dict[str, Any]]] = PydanticField(
        default=None, alias="specialInitiatives"
    )
    role_alterations: Optional[list[dict[str, Any]]] = PydanticField(
        default=None, alias="roleAlterations"
    )
    strengths_and_improvements: Optional[dict[str, Any]] = PydanticField(
        default=None, alias="strengthsAndImprovements"
    )
    personal_goals: Optional[list[dict[str, Any]]] = PydanticField(
        default=None, alias="personalGoals"
    )
    personal_updates: Optional[list[dict[str, Any]]] = PydanticField(
        default=None, alias="personalUpdates"
    )
    professional_goals: Optional[dict[str, Any]] = PydanticField(
        default=None, alias="professionalGoals"
    )
    training_requirements: Optional[list[dict[str, Any]]] = PydanticField(
        default=None, alias="trainingRequirements"
    )
    general_comments: Optional[list[dict[str, Any]]] = PydanticField(
        default=None, alias="generalComments"
    )
    ro_use_only: Optional[list[dict[str, Any]]] = PydanticField(default=None, alias="roUseOnly")
    hrd_use_only: Optional[list[dict[str, Any]]] = PydanticField(default=None, alias="hrdUseOnly")
    signatures: Optional[dict[str, Any]] = None
    status: Optional[str] = None
    review_period: Optional[dict[str, Any]] = PydanticField(default=None, alias="reviewPeriod")


class PerformanceReviewUpdate(PerformanceReviewCreate):
    """Partial update: only the keys the client sent are applied."""


class PerformanceReviewFilters(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: Optional[str | list[str]] = None
    employee_id: Optional[str] = PydanticField(default=None, alias="employeeId")
    department: Optional[str] = None
    designation: Optional[str] = None
    start_date: Optional[datetime] = PydanticField(default=None, alias="startDate")
    end_date: Optional[datetime] = PydanticField(default=None, alias="endDate")
