from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField
from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from managertc.models.common import iso, utcnow


class NotePriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class ProjectNote(SQLModel, table=True):
    __tablename__ = "project_notes"

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: str = Field(max_length=50, index=True)
    project_id: str = Field(max_length=100, index=True)

    title: str = Field(max_length=255)
    content: str = Field(max_length=10000)
    priority: str = Field(default=NotePriority.MEDIUM.value, max_length=10)
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON))

    created_by: str = Field(max_length=255, index=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)
    is_deleted: bool = Field(default=False)

    def to_public(self) -> dict:
        return {
            "_id": self.id,
            "projectId": self.project_id,
            "companyId": self.company_id,
            "title": self.title,
            "content": self.content,
            "priority": self.priority,
            "tags": self.tags or [],
            "createdBy": self.created_by,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
            "isDeleted": self.is_deleted,
        }


class ProjectNoteCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: Optional[str] = PydanticField(default=None, alias="projectId")
    title: Optional[str] = None
    content: Optional[str] = None
    priority: Optional[str] = None
    tags: Optional[list[str]] = None


class ProjectNoteUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    priority: Optional[str] = None
    tags: Optional[list[str]] = None


class ProjectNoteFilters(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    priority: Optional[str] = None
    search: Optional[str] = None
    sort_by: Optional[str] = PydanticField(default=None, alias="sortBy")
    sort_order: Optional[str] = PydanticField(default=None, alias="sortOrder")
    limit: int = PydanticField(default=50, ge=1, le=500)
    skip: int = PydanticField(default=0, ge=0)
