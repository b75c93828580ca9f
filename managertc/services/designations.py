from typing import Optional

from sqlalchemy import func
from sqlmodel import Session

from managertc.core.cache import clear_tenant_cache
from managertc.core.exceptions import ConflictError, NotFoundError, ValidationError
from managertc.core.logging import get_logger
from managertc.core.tenancy import TenantCollections, normalize_id, resolve
from managertc.models.common import utcnow
from managertc.models.department import (
    Department,
    DepartmentStatus,
    Designation,
    DesignationCreate,
    DesignationReassign,
    DesignationUpdate,
    normalize_status,
    parse_status,
)
from managertc.models.employee import Employee
from managertc.models.policy import Policy, PolicyAssignment

logger = get_logger(__name__)


def _duplicate(
    collections: TenantCollections,
    name: str,
    department_id: int,
    exclude_id: Optional[int] = None,
) -> bool:
    where = [
        func.lower(Designation.designation) == name.lower(),
        Designation.department_id == department_id,
    ]
    if exclude_id is not None:
        where.append(Designation.id != exclude_id)
    return collections.designations.count(*where) > 0


def _require_department(collections: TenantCollections, department_id: int) -> Department:
    department = collections.departments.get(department_id)
    if not department:
        raise NotFoundError("Department not found")
    return department


def create(
    session: Session,
    company_id: str,
    actor_id: Optional[str],
    payload: DesignationCreate,
) -> dict:
    collections = resolve(session, company_id)

    name = (payload.designation or "").strip()
    if not name or payload.department_id is None:
        raise ValidationError("Designation and department are required")

    department_id = normalize_id(payload.department_id, "department ID")
    _require_department(collections, department_id)

    if _duplicate(collections, name, department_id):
        raise ConflictError("Designation already exists in this department")

    designation = Designation(
        company_id=company_id,
        designation=name,
        department_id=department_id,
        status=normalize_status(payload.status),
        created_by=actor_id,
    )
    collections.designations.add(designation)
    session.commit()
    session.refresh(designation)
    clear_tenant_cache("departments", company_id=company_id)

    logger.info(f"Designation created: {designation.id} - {designation.designation}")
    return designation.to_public()


def list_designations(
    session: Session,
    company_id: str,
    department_id=None,
    status: Optional[str] = None,
) -> list[dict]:
    collections = resolve(session, company_id)

    where = []
    if department_id is not None and department_id != "":
        try:
            where.append(
                Designation.department_id == normalize_id(department_id, "department ID")
            )
        except ValidationError:
            raise ValidationError("Invalid department ID format") from None
    if status and status.lower() not in ("none", "all"):
        where.append(func.lower(Designation.status) == status.strip().lower())

    designations = collections.designations.find(
        *where, order_by=Designation.created_at.desc()
    )
    names = {d.id: d.department for d in collections.departments.find()}

    result = []
    for designation in designations:
        item = designation.to_public()
        item["department"] = names.get(designation.department_id, "Unknown")
        item["employeeCount"] = collections.employees.count(
            Employee.designation_id == designation.id,
            func.lower(Employee.status) == DepartmentStatus.ACTIVE.value.lower(),
        )
        result.append(item)
    return result


def update(
    session: Session,
    company_id: str,
    actor_id: Optional[str],
    payload: DesignationUpdate,
) -> dict:
    collections = resolve(session, company_id)

    if payload.designation_id is None:
        raise ValidationError("Designation ID required")
    designation_id = normalize_id(payload.designation_id, "designation ID")

    designation = collections.designations.get(designation_id)
    if not designation:
        raise NotFoundError("Designation doesn't exist")

    department_id = designation.department_id
    if payload.department_id is not None:
        department_id = normalize_id(payload.department_id, "department ID")
        if department_id != designation.department_id:
            if not collections.departments.get(department_id):
                raise NotFoundError("New department doesn't exist")

    name = designation.designation
    if payload.designation is not None:
        name = payload.designation.strip()
        if not name:
            raise ValidationError("Designation name is required")

    status = designation.status
    if payload.status:
        status = parse_status(payload.status)
        if status is None:
            raise ValidationError(f"Invalid status: {payload.status}")

    if (name.lower(), department_id) != (
        designation.designation.lower(),
        designation.department_id,
    ) and _duplicate(collections, name, department_id, exclude_id=designation.id):
        raise ConflictError("Designation already exists in this department")

    if name != designation.designation:
        collections.employees.update(
            (Employee.designation_id == designation.id,), {"designation": name}
        )

    designation.designation = name
    designation.department_id = department_id
    designation.status = status
    designation.updated_by = actor_id
    designation.updated_at = utcnow()
    session.add(designation)
    session.commit()
    session.refresh(designation)
    clear_tenant_cache("departments", company_id=company_id)

    logger.info(f"Designation {designation.id} updated")
    return designation.to_public()


def delete(session: Session, company_id: str, designation_id) -> dict:
    collections = resolve(session, company_id)
    designation_id = normalize_id(designation_id, "designation ID")

    designation = collections.designations.get(designation_id)
    if not designation:
        raise NotFoundError("Designation not found")

    employees = collections.employees.count(Employee.designation_id == designation_id)
    if employees > 0:
        raise ConflictError(
            "Cannot delete designation with assigned employees",
            detail=f"{employees} employee(s) use '{designation.designation}'",
        )

    name = designation.designation
    collections.designations.delete(Designation.id == designation_id)
    session.commit()
    clear_tenant_cache("departments", company_id=company_id)

    logger.info(f"Designation {designation_id} deleted")
    return {"_id": designation_id, "designation": name}


def reassign_and_delete(
    session: Session, company_id: str, payload: DesignationReassign
) -> dict:
    """
    Move employees and policy assignments from one designation to another in
    the same department, then delete the source, in one transaction.
    """
    collections = resolve(session, company_id)

    if payload.source_designation_id is None or payload.target_designation_id is None:
        raise ValidationError("Missing required fields")

    source_id = normalize_id(payload.source_designation_id, "source designation ID")
    target_id = normalize_id(payload.target_designation_id, "target designation ID")
    if source_id == target_id:
        raise ValidationError("Source and target designations must be different")

    source = collections.designations.get(source_id)
    if not source:
        raise NotFoundError("Source designation not found")
    target = collections.designations.get(target_id)
    if not target:
        raise NotFoundError("Target designation not found")
    if source.department_id != target.department_id:
        raise ValidationError("Target designation must be in the same department")

    try:
        employees = collections.employees.update(
            (Employee.designation_id == source_id,),
            {"designation_id": target_id, "designation": target.designation},
        )

        policies = 0
        global_ids = {
            p.id for p in collections.policy.find(Policy.apply_to_all == True)  # noqa: E712
        }
        assignments = collections.policy_assignments.find(
            PolicyAssignment.department_id == source.department_id
        )
        for assignment in assignments:
            if assignment.policy_id in global_ids:
                continue
            ids = list(assignment.designation_ids or [])
            if source_id not in ids:
                continue
            rewritten = []
            for value in ids:
                value = target_id if value == source_id else value
                if value not in rewritten:
                    rewritten.append(value)
            assignment.designation_ids = rewritten
            session.add(assignment)
            policies += 1

        collections.designations.delete(Designation.id == source_id)
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(
            f"Designation reassignment {source_id} -> {target_id} failed, "
            f"rolled back: {e}"
        )
        raise

    clear_tenant_cache("departments", "policies", company_id=company_id)
    logger.info(f"Designation {source_id} merged into {target_id}")
    return {"employeesReassigned": employees, "policiesReassigned": policies}
