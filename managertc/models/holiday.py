from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField
from sqlmodel import Field, SQLModel

from managertc.models.common import iso, utcnow

DEFAULT_HOLIDAY_TYPES = [
    "Public (National) Holidays",
    "State / Regional Holidays",
    "Local Holidays",
    "Religious Holidays",
    "Government Holidays",
    "Company / Organization Holidays",
    "Special / Emergency Holidays",
    "Others",
]


def normalize_holiday_type_status(status: Optional[str]) -> str:
    if status and str(status).strip().lower() == "inactive":
        return "Inactive"
    return "Active"


class HolidayType(SQLModel, table=True):
    __tablename__ = "holiday_types"

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: str = Field(max_length=50, index=True)

    name: str = Field(max_length=255)
    status: str = Field(default="Active", max_length=20)

    created_by: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=utcnow)
    updated_by: Optional[str] = Field(default=None, max_length=255)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_public(self) -> dict:
        return {
            "_id": self.id,
            "name": self.name,
            "status": self.status,
            "createdBy": self.created_by,
            "createdAt": iso(self.created_at),
            "updatedBy": self.updated_by,
            "updatedAt": iso(self.updated_at),
        }


class Holiday(SQLModel, table=True):
    __tablename__ = "holidays"

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: str = Field(max_length=50, index=True)

    title: str = Field(max_length=255)
    holiday_date: date
    holiday_type_id: int = Field(index=True)
    description: Optional[str] = Field(default=None, max_length=1000)
    status: str = Field(default="Active", max_length=20)

    created_by: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=utcnow)

    def to_public(self) -> dict:
        return {
            "_id": self.id,
            "title": self.title,
            "date": iso(self.holiday_date),
            "holidayTypeId": self.holiday_type_id,
            "description": self.description,
            "status": self.status,
            "createdBy": self.created_by,
            "createdAt": iso(self.created_at),
        }


class HolidayTypeCreate(BaseModel):
    name: Optional[str] = None
    status: Optional[str] = None


class HolidayTypeUpdate(HolidayTypeCreate):
    model_config = ConfigDict(populate_by_name=True)

    type_id: Optional[Any] = PydanticField(default=None, alias="typeId")


class HolidayCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    holiday_date: Optional[date] = PydanticField(default=None, alias="date")
    holiday_type_id: Optional[Any] = PydanticField(default=None, alias="holidayTypeId")
    description: Optional[str] = None
    status: Optional[str] = None
