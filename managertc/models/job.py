"""
Job posting models and schemas.
"""

import random
import string
import time
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField
from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from managertc.models.common import iso, utcnow


class JobCategory(str, Enum):
    SOFTWARE = "Software"
    HARDWARE = "Hardware"
    NETWORKING = "Networking"
    DESIGN = "Design"
    MARKETING = "Marketing"
    SALES = "Sales"
    HR = "HR"
    FINANCE = "Finance"
    OPERATIONS = "Operations"


class JobType(str, Enum):
    FULL_TIME = "Full Time"
    PART_TIME = "Part Time"
    CONTRACT = "Contract"
    INTERNSHIP = "Internship"
    FREELANCE = "Freelance"


class JobLevel(str, Enum):
    ENTRY = "Entry Level"
    MID = "Mid Level"
    SENIOR = "Senior Level"
    LEAD = "Lead"
    MANAGER = "Manager"
    DIRECTOR = "Director"


class JobStatus(str, Enum):
    DRAFT = "Draft"
    PUBLISHED = "Published"
    CLOSED = "Closed"
    EXPIRED = "Expired"
    CANCELLED = "Cancelled"


EXPERIENCE_LEVELS = ["0-1 years", "1-3 years", "3-5 years", "5-10 years", "10+ years"]
QUALIFICATIONS = ["High School", "Bachelor Degree", "Master Degree", "PhD", "Others"]
GENDERS = ["Any", "Male", "Female"]
SALARY_PERIODS = ["monthly", "yearly"]
LOCATION_FIELDS = ["address", "country", "state", "city", "zipCode"]


def generate_job_id() -> str:
    """JOB-<last 6 digits of epoch ms>-<3 uppercase alphanumerics>."""
    timestamp = str(int(time.time() * 1000))[-6:]
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=3))
    return f"JOB-{timestamp}-{suffix}"


class Job(SQLModel, table=True):
    __tablename__ = "jobs"

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: str = Field(max_length=50, index=True)
    job_id: str = Field(max_length=30, unique=True, index=True)

    title: str = Field(max_length=255)
    description: str = Field(max_length=5000)
    category: str = Field(max_length=50, index=True)
    job_type: str = Field(default=JobType.FULL_TIME.value, max_length=50)
    job_level: str = Field(default=JobLevel.MID.value, max_length=50)
    experience: str = Field(default="1-3 years", max_length=50)
    qualification: str = Field(default="Bachelor Degree", max_length=50)
    gender: str = Field(default="Any", max_length=10)

    min_salary: float
    max_salary: float
    currency: str = Field(default="USD", max_length=3)
    salary_period: str = Field(default="monthly", max_length=10)

    required_skills: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    location: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))

    status: str = Field(default=JobStatus.DRAFT.value, max_length=20, index=True)
    posted_date: datetime = Field(default_factory=utcnow)
    expired_date: datetime
    closed_date: Optional[datetime] = Field(default=None)

    image: str = Field(default="assets/img/icons/default-job.svg", max_length=500)
    applicants_count: int = Field(default=0)
    views_count: int = Field(default=0)

    created_by: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    updated_by: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    department: str = Field(default="HR", max_length=255)
    is_remote: bool = Field(default=False)
    is_urgent: bool = Field(default=False)
    benefits: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    responsibilities: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    requirements: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) > self.expired_date

    @property
    def salary_range(self) -> str:
        def short(amount: float) -> str:
            if amount >= 1000:
                return f"{amount / 1000:.0f}k"
            return f"{amount:g}"

        period = "/year" if self.salary_period == "yearly" else "/month"
        return f"{short(self.min_salary)} - {short(self.max_salary)} {self.currency} {period}"

    @property
    def location_string(self) -> str:
        location = self.location or {}
        return ", ".join(
            str(location.get(key, "")) for key in ("city", "state", "country")
        )

    def to_public(self) -> dict:
        return {
            "_id": self.id,
            "jobId": self.job_id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "jobType": self.job_type,
            "jobLevel": self.job_level,
            "experience": self.experience,
            "qualification": self.qualification,
            "gender": self.gender,
            "minSalary": self.min_salary,
            "maxSalary": self.max_salary,
            "currency": self.currency,
            "salaryPeriod": self.salary_period,
            "salaryRange": self.salary_range,
            "requiredSkills": self.required_skills or [],
            "location": self.location or {},
            "locationString": self.location_string,
            "status": self.status,
            "postedDate": iso(self.posted_date),
            "expiredDate": iso(self.expired_date),
            "closedDate": iso(self.closed_date),
            "image": self.image,
            "applicantsCount": self.applicants_count,
            "viewsCount": self.views_count,
            "createdBy": self.created_by or {},
            "updatedBy": self.updated_by,
            "companyId": self.company_id,
            "department": self.department,
            "isRemote": self.is_remote,
            "isUrgent": self.is_urgent,
            "benefits": self.benefits or [],
            "responsibilities": self.responsibilities or [],
            "requirements": self.requirements or [],
            "tags": self.tags or [],
            "isActive": self.is_active,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


# Request Schemas


class JobCreate(BaseModel):
    """Job payload; required-field checks happen in the service."""

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    job_type: Optional[str] = PydanticField(default=None, alias="jobType")
    job_level: Optional[str] = PydanticField(default=None, alias="jobLevel")
    experience: Optional[str] = None
    qualification: Optional[str] = None
    gender: Optional[str] = None
    min_salary: Optional[float] = PydanticField(default=None, alias="minSalary")
    max_salary: Optional[float] = PydanticField(default=None, alias="maxSalary")
    currency: Optional[str] = None
    salary_period: Optional[str] = PydanticField(default=None, alias="salaryPeriod")
    required_skills: Optional[list[str]] = PydanticField(
        default=None, alias="requiredSkills"
    )
    location: Optional[dict[str, Any]] = None
    status: Optional[str] = None
    expired_date: Optional[datetime] = PydanticField(default=None, alias="expiredDate")
    image: Optional[str] = None
    department: Optional[str] = None
    is_remote: Optional[bool] = PydanticField(default=None, alias="isRemote")
    is_urgent: Optional[bool] = PydanticField(default=None, alias="isUrgent")
    benefits: Optional[list[str]] = None
    responsibilities: Optional[list[str]] = None
    requirements: Optional[list[str]] = None
    tags: Optional[list[str]] = None


class JobFilters(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: Optional[str] = None
    category: Optional[str] = None
    job_type: Optional[str] = PydanticField(default=None, alias="jobType")
    search: Optional[str] = None
    page: int = PydanticField(default=1, ge=1)
    limit: int = PydanticField(default=10, ge=1, le=100)
    sort_by: str = PydanticField(default="createdAt", alias="sortBy")
    sort_order: str = PydanticField(default="desc", alias="sortOrder")


class JobBulkDelete(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_ids: list[str] = PydanticField(default_factory=list, alias="jobIds")


class JobStatusUpdate(BaseModel):
    status: Optional[str] = None


class JobExportRequest(BaseModel):
    filters: JobFilters = PydanticField(default_factory=JobFilters)
