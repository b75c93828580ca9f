"""
Company policy models.

A policy either applies to everyone (``apply_to_all``) or is targeted through
``PolicyAssignment`` rows, one per department, each optionally narrowed to a
list of designation ids.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField
from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from managertc.models.common import iso, utcnow


class Policy(SQLModel, table=True):
    __tablename__ = "policies"

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: str = Field(max_length=50, index=True)

    policy_name: str = Field(max_length=255)
    apply_to_all: bool = Field(default=False)
    policy_description: str = Field(max_length=5000)
    effective_date: datetime

    created_by: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=utcnow)
    updated_by: Optional[str] = Field(default=None, max_length=255)
    updated_at: Optional[datetime] = Field(default=None)

    def to_public(self, assign_to: Optional[list] = None) -> dict:
        return {
            "_id": self.id,
            "policyName": self.policy_name,
            "applyToAll": self.apply_to_all,
            "assignTo": assign_to if assign_to is not None else [],
            "policyDescription": self.policy_description,
            "effectiveDate": iso(self.effective_date),
            "createdBy": self.created_by,
            "createdAt": iso(self.created_at),
            "updatedBy": self.updated_by,
            "updatedAt": iso(self.updated_at),
        }


class PolicyAssignment(SQLModel, table=True):
    __tablename__ = "policy_assignments"

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: str = Field(max_length=50, index=True)
    policy_id: int = Field(index=True)
    department_id: int = Field(index=True)
    designation_ids: list[int] = Field(default_factory=list, sa_column=Column(JSON))


# Request Schemas


class PolicyCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    policy_name: Optional[str] = PydanticField(default=None, alias="policyName")
    apply_to_all: Optional[bool] = PydanticField(default=None, alias="applyToAll")
    assign_to: Optional[list[dict[str, Any]]] = PydanticField(
        default=None, alias="assignTo"
    )
    policy_description: Optional[str] = PydanticField(
        default=None, alias="policyDescription"
    )
    effective_date: Optional[datetime] = PydanticField(
        default=None, alias="effectiveDate"
    )


class PolicyUpdate(PolicyCreate):
    policy_id: Optional[Any] = PydanticField(default=None, alias="policyId")


class PolicyFilters(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    department: Optional[str] = None
    start_date: Optional[datetime] = PydanticField(default=None, alias="startDate")
    end_date: Optional[datetime] = PydanticField(default=None, alias="endDate")
