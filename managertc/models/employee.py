"""
Employee database models and schemas.

Employees are tenant-scoped and reference their department and designation
by integer id, with the names denormalised for display and filtering.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr
from pydantic import Field as PydanticField
from sqlmodel import Field, SQLModel

from managertc.models.common import iso, utcnow
from managertc.models.department import DepartmentStatus


# Database Models


class Employee(SQLModel, table=True):
    """
    ORM model for Employee table.

    Contains:
    - Basic identity info
    - Role and status
    - Department / designation references
    - Salary information
    """

    __tablename__ = "employees"

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: str = Field(max_length=50, index=True)

    # Link to the identity provider
    user_id: Optional[str] = Field(default=None, max_length=255, index=True)

    # Basic Identity
    first_name: str = Field(max_length=255, min_length=1)
    last_name: str = Field(max_length=255, min_length=1)
    email: str = Field(max_length=255, index=True)
    phone: Optional[str] = Field(default=None, max_length=20)

    # Role and Status
    role: str = Field(default="employee", max_length=50)
    status: str = Field(default=DepartmentStatus.ACTIVE.value, max_length=50)

    # Job Details
    department_id: Optional[int] = Field(default=None, index=True)
    department: Optional[str] = Field(default=None, max_length=255)
    designation_id: Optional[int] = Field(default=None, index=True)
    designation: Optional[str] = Field(default=None, max_length=255)
    date_of_hire: date = Field(default_factory=date.today)

    # Salary Information
    salary: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    salary_currency: str = Field(default="USD", max_length=3)

    # Bank Details (for payroll)
    bank_account_number: Optional[str] = Field(default=None, max_length=50)

    # Metadata
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_public(self) -> dict:
        return {
            "_id": self.id,
            "userId": self.user_id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "status": self.status,
            "departmentId": self.department_id,
            "department": self.department,
            "designationId": self.designation_id,
            "designation": self.designation,
            "dateOfHire": iso(self.date_of_hire),
            "salary": float(self.salary) if self.salary is not None else None,
            "salaryCurrency": self.salary_currency,
            "bankAccountNumber": self.bank_account_number,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


# Request Schemas


class EmployeeCreate(BaseModel):
    """Input schema for creating a new employee."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = PydanticField(default=None, alias="userId")
    first_name: str = PydanticField(min_length=1, max_length=255, alias="firstName")
    last_name: str = PydanticField(min_length=1, max_length=255, alias="lastName")
    email: EmailStr
    phone: Optional[str] = None
    role: str = PydanticField(default="employee", max_length=50)
    status: Optional[str] = None
    department_id: Optional[Any] = PydanticField(default=None, alias="departmentId")
    designation_id: Optional[Any] = PydanticField(default=None, alias="designationId")
    date_of_hire: Optional[date] = PydanticField(default=None, alias="dateOfHire")
    salary: Decimal = PydanticField(default=Decimal("0.00"), ge=0)
    salary_currency: str = PydanticField(default="USD", max_length=3, alias="salaryCurrency")


class EmployeeUpdate(BaseModel):
    """Input schema for updating an existing employee."""

    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = PydanticField(default=None, min_length=1, alias="firstName")
    last_name: Optional[str] = PydanticField(default=None, min_length=1, alias="lastName")
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    status: Optional[str] = None
    department_id: Optional[Any] = PydanticField(default=None, alias="departmentId")
    designation_id: Optional[Any] = PydanticField(default=None, alias="designationId")
    salary: Optional[Decimal] = PydanticField(default=None, ge=0)
    salary_currency: Optional[str] = PydanticField(default=None, alias="salaryCurrency")
    bank_account_number: Optional[str] = PydanticField(
        default=None, alias="bankAccountNumber"
    )
