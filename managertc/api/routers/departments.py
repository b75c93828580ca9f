"""
Department API endpoints.

- List with employee/designation/policy counts and statistics
- Active department list for pickers
- Create, update (rename cascades onto employees), delete
- Reassign everything onto another department, then delete

Every route is scoped to the caller's own company.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from managertc.api.dependencies import CompanyIdDep, SessionDep, require_capability
from managertc.core.events import (
    DepartmentCreatedEvent,
    DepartmentDeletedEvent,
    DepartmentReassignedEvent,
    DepartmentUpdatedEvent,
    EventType,
    create_event,
)
from managertc.core.kafka import publish_event
from managertc.core.logging import get_logger
from managertc.core.rbac import MANAGE_DEPARTMENTS, VIEW_DEPARTMENTS
from managertc.core.security import TokenData
from managertc.core.topics import KafkaTopics
from managertc.models import DepartmentCreate, DepartmentReassign, DepartmentUpdate, ok
from managertc.services import departments as department_service

logger = get_logger(__name__)

router = APIRouter(
    prefix="/departments",
    tags=["departments"],
    responses={404: {"description": "Department not found"}},
)

ViewerDep = Annotated[TokenData, Depends(require_capability(VIEW_DEPARTMENTS))]
ManagerDep = Annotated[TokenData, Depends(require_capability(MANAGE_DEPARTMENTS))]


@router.get("/")
async def list_departments(
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ViewerDep,
    status_filter: Annotated[Optional[str], Query(alias="status")] = None,
):
    """Departments newest first with their counts, plus tenant statistics."""
    departments = department_service.list_with_counts(session, company_id, status_filter)
    stats = department_service.stats(session, company_id)
    return ok(
        departments,
        message="Departments retrieved successfully",
        totalCount=len(departments),
        stats=stats,
    )


@router.get("/active")
async def list_active_departments(
    session: SessionDep, company_id: CompanyIdDep, current_user: ViewerDep
):
    return ok(department_service.list_active(session, company_id))


@router.get("/{department_id}")
async def get_department(
    department_id: str,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ViewerDep,
):
    return ok(department_service.get(session, company_id, department_id))


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_department(
    payload: DepartmentCreate,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ManagerDep,
):
    logger.info(f"User {current_user.sub} creating department '{payload.department}'")
    result = department_service.create(session, company_id, current_user.sub, payload)

    event = create_event(
        EventType.DEPARTMENT_CREATED,
        DepartmentCreatedEvent(
            company_id=company_id,
            department_id=result["_id"],
            department=result["department"],
            status=result["status"],
            created_by=current_user.sub,
        ),
        actor_user_id=current_user.sub,
        actor_role=current_user.role,
    )
    await publish_event(KafkaTopics.DEPARTMENT_CREATED, event)

    return ok(result, message="Department created successfully")


@router.put("/{department_id}")
async def update_department(
    department_id: str,
    payload: DepartmentUpdate,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ManagerDep,
):
    payload.department_id = department_id
    result = department_service.update(session, company_id, current_user.sub, payload)

    event = create_event(
        EventType.DEPARTMENT_UPDATED,
        DepartmentUpdatedEvent(
            company_id=company_id,
            department_id=result["departmentId"],
            department=result["department"],
            status=result["status"],
            previous_name=result["previousName"],
            employees_renamed=result["employeesRenamed"],
            updated_by=current_user.sub,
        ),
        actor_user_id=current_user.sub,
        actor_role=current_user.role,
    )
    await publish_event(KafkaTopics.DEPARTMENT_UPDATED, event)

    return ok(result, message="Department updated successfully")


@router.delete("/{department_id}")
async def delete_department(
    department_id: str,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ManagerDep,
):
    result = department_service.delete(session, company_id, department_id)

    event = create_event(
        EventType.DEPARTMENT_DELETED,
        DepartmentDeletedEvent(
            company_id=company_id,
            department_id=result["_id"],
            department=result["department"],
        ),
        actor_user_id=current_user.sub,
        actor_role=current_user.role,
    )
    await publish_event(KafkaTopics.DEPARTMENT_DELETED, event)

    return ok(result, message="Department deleted successfully")


@router.post("/{department_id}/reassign-delete")
async def reassign_and_delete_department(
    department_id: str,
    payload: DepartmentReassign,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ManagerDep,
):
    """
    Move employees, designations and policy assignments onto
    ``targetDepartmentId`` and delete this department.
    """
    payload.source_department_id = department_id
    result = department_service.reassign_and_delete(session, company_id, payload)

    event = create_event(
        EventType.DEPARTMENT_REASSIGNED,
        DepartmentReassignedEvent(
            company_id=company_id,
            source_department_id=int(department_id),
            target_department_id=int(str(payload.target_department_id)),
            employees_reassigned=result["employeesReassigned"],
            designations_reassigned=result["designationsReassigned"],
            policies_reassigned=result["policiesReassigned"],
        ),
        actor_user_id=current_user.sub,
        actor_role=current_user.role,
    )
    await publish_event(KafkaTopics.DEPARTMENT_REASSIGNED, event)

    return ok(result, message="Department reassigned and deleted successfully")
