"""
Employee records.

Employees point at their department and designation by canonical id; the
names are copied onto the record so listings and the department rename
cascade work without joins.
"""

from typing import Any, Optional

from sqlalchemy import func, or_
from sqlmodel import Session

from managertc.core.cache import clear_tenant_cache
from managertc.core.exceptions import ConflictError, NotFoundError, ValidationError
from managertc.core.logging import get_logger
from managertc.core.tenancy import TenantCollections, normalize_id, resolve
from managertc.models.common import utcnow
from managertc.models.department import normalize_status
from managertc.models.employee import Employee, EmployeeCreate, EmployeeUpdate

logger = get_logger(__name__)


def _email_taken(
    collections: TenantCollections, email: str, exclude_id: Optional[int] = None
) -> bool:
    where = [func.lower(Employee.email) == email.lower()]
    if exclude_id is not None:
        where.append(Employee.id != exclude_id)
    return collections.employees.count(*where) > 0


def _resolve_placement(
    collections: TenantCollections, department_id: Any, designation_id: Any
) -> dict:
    """Validate department/designation ids and return the columns to set."""
    values: dict[str, Any] = {}

    if department_id not in (None, ""):
        department_id = normalize_id(department_id, "department ID")
        department = collections.departments.get(department_id)
        if not department:
            raise NotFoundError("Department not found")
        values["department_id"] = department.id
        values["department"] = department.department

    if designation_id not in (None, ""):
        designation_id = normalize_id(designation_id, "designation ID")
        designation = collections.designations.get(designation_id)
        if not designation:
            raise NotFoundError("Designation not found")
        if "department_id" in values and designation.department_id != values["department_id"]:
            raise ValidationError("Designation does not belong to the selected department")
        values["designation_id"] = designation.id
        values["designation"] = designation.designation

    return values


def _require(collections: TenantCollections, employee_id: Any) -> Employee:
    employee_id = normalize_id(employee_id, "employee ID")
    employee = collections.employees.get(employee_id)
    if not employee:
        raise NotFoundError("Employee not found")
    return employee


def create(session: Session, company_id: str, payload: EmployeeCreate) -> dict:
    collections = resolve(session, company_id)
    logger.info(
        f"Creating employee {payload.first_name} {payload.last_name} for {company_id}"
    )

    if _email_taken(collections, payload.email):
        raise ConflictError("Employee with this email already exists")

    placement = _resolve_placement(
        collections, payload.department_id, payload.designation_id
    )
    data = payload.model_dump(exclude={"department_id", "designation_id", "status"})
    if data.get("date_of_hire") is None:
        data.pop("date_of_hire", None)

    employee = Employee(
        company_id=company_id,
        status=normalize_status(payload.status),
        **data,
        **placement,
    )
    collections.employees.add(employee)
    session.commit()
    session.refresh(employee)
    clear_tenant_cache("departments", company_id=company_id)

    logger.info(f"Employee created successfully with ID: {employee.id}")
    return employee.to_public()


def list_employees(
    session: Session,
    company_id: str,
    department_id: Any = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> dict:
    collections = resolve(session, company_id)

    where = []
    if department_id not in (None, ""):
        where.append(
            Employee.department_id == normalize_id(department_id, "department ID")
        )
    if status and status.lower() != "all":
        where.append(func.lower(Employee.status) == status.strip().lower())
    if search:
        pattern = f"%{search.strip().lower()}%"
        where.append(
            or_(
                func.lower(Employee.first_name).like(pattern),
                func.lower(Employee.last_name).like(pattern),
                func.lower(Employee.email).like(pattern),
            )
        )

    total = collections.employees.count(*where)
    statement = (
        collections.employees.select(*where)
        .order_by(Employee.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    employees = session.exec(statement).all()
    return {
        "employees": [e.to_public() for e in employees],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": (total + limit - 1) // limit,
        },
    }


def get(session: Session, company_id: str, employee_id: Any) -> Employee:
    return _require(resolve(session, company_id), employee_id)


def find_by_user(session: Session, company_id: str, user_id: str) -> Optional[Employee]:
    collections = resolve(session, company_id)
    return collections.employees.find_one(Employee.user_id == user_id)


def update(
    session: Session,
    company_id: str,
    employee_id: Any,
    payload: EmployeeUpdate,
    allowed_fields: set[str],
) -> dict:
    """
    Apply the subset of ``payload`` the caller may touch.

    Raises:
        ValidationError: nothing left to update after filtering
    """
    collections = resolve(session, company_id)
    employee = _require(collections, employee_id)

    update_data = payload.model_dump(exclude_unset=True)
    filtered = {k: v for k, v in update_data.items() if k in allowed_fields}
    if not filtered:
        raise ValidationError("No valid fields to update")

    if "email" in filtered and filtered["email"]:
        if _email_taken(collections, filtered["email"], exclude_id=employee.id):
            raise ConflictError("Employee with this email already exists")

    placement = _resolve_placement(
        collections,
        filtered.pop("department_id", None),
        filtered.pop("designation_id", None),
    )
    if "status" in filtered:
        filtered["status"] = normalize_status(filtered["status"])

    for key, value in {**filtered, **placement}.items():
        setattr(employee, key, value)
    employee.updated_at = utcnow()

    session.add(employee)
    session.commit()
    session.refresh(employee)
    clear_tenant_cache("departments", company_id=company_id)

    logger.info(f"Employee {employee.id} updated: {sorted(filtered) + sorted(placement)}")
    return employee.to_public()


def delete(session: Session, company_id: str, employee_id: Any) -> dict:
    collections = resolve(session, company_id)
    employee = _require(collections, employee_id)

    deleted = {"_id": employee.id, "email": employee.email}
    collections.employees.delete(Employee.id == employee.id)
    session.commit()
    clear_tenant_cache("departments", company_id=company_id)

    logger.info(f"Employee {deleted['_id']} deleted")
    return deleted
