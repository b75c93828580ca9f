"""
Department lifecycle.

Departments are referenced three ways: employees carry the canonical
``department_id`` (plus the display name), designations carry
``department_id``, and targeted policies carry assignment rows keyed on
``department_id``. Every guard below counts through those ids.
"""

from datetime import timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from managertc.core.cache import (
    clear_tenant_cache,
    get_cache_key,
    get_from_cache,
    set_to_cache,
)
from managertc.core.exceptions import ConflictError, NotFoundError, ValidationError
from managertc.core.logging import get_logger
from managertc.core.tenancy import TenantCollections, normalize_id, resolve
from managertc.models.common import utcnow
from managertc.models.department import (
    Department,
    DepartmentCreate,
    DepartmentReassign,
    DepartmentStatus,
    DepartmentUpdate,
    Designation,
    name_key,
    normalize_status,
    parse_status,
)
from managertc.models.employee import Employee
from managertc.models.policy import Policy, PolicyAssignment

logger = get_logger(__name__)

RECENT_DAYS = 30


def _is_active(column):
    return func.lower(column) == DepartmentStatus.ACTIVE.value.lower()


def _name_taken(
    collections: TenantCollections, name: str, exclude_id: Optional[int] = None
) -> bool:
    where = [Department.department_key == name_key(name)]
    if exclude_id is not None:
        where.append(Department.id != exclude_id)
    return collections.departments.count(*where) > 0


def _commit_named(session: Session, name: str) -> None:
    """Commit, mapping a lost race on the unique name key to a conflict."""
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.warning(f"Department '{name}' collided on commit")
        raise ConflictError("Department already exists")


def _invalidate(company_id: str) -> None:
    clear_tenant_cache("departments", "policies", company_id=company_id)


def _targeted_policy_ids(collections: TenantCollections, department_id: int) -> set[int]:
    """Non-global policies holding an assignment on the department."""
    statement = (
        select(PolicyAssignment.policy_id)
        .join(Policy, Policy.id == PolicyAssignment.policy_id)
        .where(
            PolicyAssignment.company_id == collections.company_id,
            PolicyAssignment.department_id == department_id,
            Policy.apply_to_all == False,  # noqa: E712
        )
    )
    return set(collections.session.exec(statement).all())


def _require(collections: TenantCollections, department_id: int) -> Department:
    department = collections.departments.get(department_id)
    if not department:
        logger.warning(
            f"Department {department_id} not found for company {collections.company_id}"
        )
        raise NotFoundError("Department not found")
    return department


def list_active(session: Session, company_id: str) -> list[dict]:
    """Active departments as ``{_id, department, status}``."""
    collections = resolve(session, company_id)

    cache_key = get_cache_key("departments", company_id, "active")
    cached = get_from_cache(cache_key)
    if cached is not None:
        logger.info(f"Cache hit for active departments of {company_id}")
        return cached

    departments = collections.departments.find(
        _is_active(Department.status), order_by=Department.department
    )
    result = [
        {"_id": d.id, "department": d.department, "status": d.status}
        for d in departments
    ]
    set_to_cache(cache_key, result)
    return result


def get(session: Session, company_id: str, department_id) -> dict:
    collections = resolve(session, company_id)
    department_id = normalize_id(department_id, "department ID")
    return _require(collections, department_id).to_public()


def create(
    session: Session,
    company_id: str,
    actor_id: Optional[str],
    payload: DepartmentCreate,
) -> dict:
    collections = resolve(session, company_id)

    name = (payload.department or "").strip()
    if not name:
        raise ValidationError("Department name is required")

    if _name_taken(collections, name):
        logger.warning(f"Duplicate department '{name}' for company {company_id}")
        raise ConflictError("Department already exists")

    department = Department(
        company_id=company_id,
        department=name,
        status=normalize_status(payload.status),
        created_by=actor_id,
    )
    collections.departments.add(department)
    _commit_named(session, name)
    session.refresh(department)
    _invalidate(company_id)

    logger.info(f"Department created: {department.id} - {department.department}")
    return {
        "_id": department.id,
        "department": department.department,
        "status": department.status,
        "createdBy": department.created_by,
        "createdAt": department.to_public()["createdAt"],
    }


def stats(session: Session, company_id: str) -> dict:
    collections = resolve(session, company_id)
    since = utcnow() - timedelta(days=RECENT_DAYS)
    return {
        "totalDepartments": collections.departments.count(),
        "activeCount": collections.departments.count(_is_active(Department.status)),
        "inactiveCount": collections.departments.count(
            func.lower(Department.status) == DepartmentStatus.INACTIVE.value.lower()
        ),
        "recentCount": collections.departments.count(Department.created_at >= since),
    }


def list_with_counts(
    session: Session, company_id: str, status: Optional[str] = None
) -> list[dict]:
    """
    Departments newest first, each with active employee, active designation
    and targeted policy counts.
    """
    collections = resolve(session, company_id)

    where = []
    if status and status.lower() != "none":
        where.append(func.lower(Department.status) == status.strip().lower())

    departments = collections.departments.find(
        *where, order_by=Department.created_at.desc()
    )

    result = []
    for department in departments:
        item = department.to_public()
        item["employeeCount"] = collections.employees.count(
            Employee.department_id == department.id, _is_active(Employee.status)
        )
        item["designationCount"] = collections.designations.count(
            Designation.department_id == department.id, _is_active(Designation.status)
        )
        item["policyCount"] = len(_targeted_policy_ids(collections, department.id))
        result.append(item)
    return result


def update(
    session: Session,
    company_id: str,
    actor_id: Optional[str],
    payload: DepartmentUpdate,
) -> dict:
    collections = resolve(session, company_id)

    if payload.department_id is None or not payload.department or not payload.status:
        raise ValidationError("Missing required fields")

    new_name = payload.department.strip()
    if not new_name:
        raise ValidationError("Department name is required")
    new_status = parse_status(payload.status)
    if new_status is None:
        raise ValidationError(f"Invalid status: {payload.status}")

    department_id = normalize_id(payload.department_id, "department ID")
    department = _require(collections, department_id)

    if (
        new_status == DepartmentStatus.INACTIVE.value
        and department.status.lower() != DepartmentStatus.INACTIVE.value.lower()
    ):
        active_employees = collections.employees.count(
            Employee.department_id == department.id, _is_active(Employee.status)
        )
        if active_employees > 0:
            logger.warning(
                f"Refusing to inactivate department {department.id}: "
                f"{active_employees} active employees"
            )
            raise ConflictError(
                "Cannot inactivate department with active employees",
                detail=f"{active_employees} active employees found",
            )

    renamed = 0
    old_name = department.department
    if new_name != old_name:
        if _name_taken(collections, new_name, exclude_id=department.id):
            raise ConflictError("Department already exists")
        renamed = collections.employees.update(
            (Employee.department == old_name,), {"department": new_name}
        )

    department.department = new_name
    department.status = new_status
    department.updated_by = actor_id
    department.updated_at = utcnow()
    session.add(department)
    _commit_named(session, new_name)
    session.refresh(department)
    _invalidate(company_id)

    logger.info(
        f"Department {department.id} updated ({old_name} -> {new_name}, "
        f"{renamed} employees renamed)"
    )
    return {
        "departmentId": department.id,
        "department": department.department,
        "status": department.status,
        "previousName": old_name,
        "employeesRenamed": renamed,
    }


def delete(session: Session, company_id: str, department_id) -> dict:
    """Hard delete, refused while anything still points at the department."""
    collections = resolve(session, company_id)
    department_id = normalize_id(department_id, "department ID")
    department = _require(collections, department_id)

    employees = collections.employees.count(Employee.department_id == department_id)
    if employees > 0:
        raise ConflictError(
            "Cannot delete department with assigned employees",
            detail=f"{employees} employees found",
        )

    designations = collections.designations.count(
        Designation.department_id == department_id
    )
    if designations > 0:
        raise ConflictError(
            "Cannot delete department with assigned designations",
            detail=f"{designations} designations found",
        )

    policies = len(_targeted_policy_ids(collections, department_id))
    if policies > 0:
        raise ConflictError(
            "Cannot delete department with assigned policies",
            detail=f"{policies} policies found",
        )

    name = department.department
    collections.departments.delete(Department.id == department_id)
    session.commit()
    _invalidate(company_id)

    logger.info(f"Department {department_id} ({name}) deleted")
    return {"_id": department_id, "department": name}


def _move_assignments(
    collections: TenantCollections, source_id: int, target_id: int, policy_ids: set[int]
) -> None:
    """
    Repoint the source's assignment rows at the target. A policy that already
    targets the target department keeps its one row there, widened with the
    source row's designations.
    """
    on_target = {
        row.policy_id: row
        for row in collections.policy_assignments.find(
            PolicyAssignment.department_id == target_id,
            PolicyAssignment.policy_id.in_(list(policy_ids)),
        )
    }
    merged = []
    for row in collections.policy_assignments.find(
        PolicyAssignment.department_id == source_id,
        PolicyAssignment.policy_id.in_(list(on_target)),
    ):
        keep = on_target[row.policy_id]
        if keep.designation_ids and row.designation_ids:
            ids = list(keep.designation_ids)
            ids.extend(i for i in row.designation_ids if i not in ids)
        else:
            # an empty list covers the whole department
            ids = []
        keep.designation_ids = ids
        collections.session.add(keep)
        merged.append(row.id)

    if merged:
        collections.policy_assignments.delete(PolicyAssignment.id.in_(merged))
    collections.policy_assignments.update(
        (
            PolicyAssignment.department_id == source_id,
            PolicyAssignment.policy_id.in_(list(policy_ids)),
        ),
        {"department_id": target_id},
    )


def reassign_and_delete(
    session: Session, company_id: str, payload: DepartmentReassign
) -> dict:
    """
    Move employees, designations and targeted policy assignments from the
    source department onto the target, then delete the source. All four
    steps commit together or not at all.
    """
    collections = resolve(session, company_id)

    if payload.source_department_id is None or payload.target_department_id is None:
        raise ValidationError("Missing required fields")

    source_id = normalize_id(payload.source_department_id, "source department ID")
    target_id = normalize_id(payload.target_department_id, "target department ID")
    if source_id == target_id:
        raise ValidationError("Source and target departments must be different")

    source = collections.departments.get(source_id)
    if not source:
        raise NotFoundError("Source department not found")
    target = collections.departments.get(target_id)
    if not target:
        raise NotFoundError("Target department not found")

    try:
        employees = collections.employees.update(
            (Employee.department_id == source_id,),
            {"department_id": target_id, "department": target.department},
        )
        designations = collections.designations.update(
            (Designation.department_id == source_id,), {"department_id": target_id}
        )
        policy_ids = _targeted_policy_ids(collections, source_id)
        if policy_ids:
            _move_assignments(collections, source_id, target_id, policy_ids)
        collections.departments.delete(Department.id == source_id)
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(
            f"Reassignment {source_id} -> {target_id} failed for company "
            f"{company_id}, rolled back: {e}"
        )
        raise

    _invalidate(company_id)
    result = {
        "employeesReassigned": employees,
        "designationsReassigned": designations,
        "policiesReassigned": len(policy_ids),
    }
    logger.info(f"Department {source_id} merged into {target_id}: {result}")
    return result
