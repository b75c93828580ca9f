"""
Employee Management API endpoints.

RBAC Rules:
- admin / superadmin: full access to every employee of the company
- hr: manage everyone below admin
- manager / leads: view roles below their own
- employee: own record only (limited fields)
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from managertc.api.dependencies import (
    CompanyIdDep,
    CurrentUserDep,
    SessionDep,
    require_capability,
)
from managertc.core.exceptions import ForbiddenError, NotFoundError
from managertc.core.logging import get_logger
from managertc.core.rbac import (
    MANAGE_EMPLOYEES,
    VIEW_EMPLOYEES,
    can_delete_employee,
    can_update_employee,
    can_view_employee,
    filter_employee_data,
    get_allowed_fields_for_update,
)
from managertc.core.security import TokenData
from managertc.models import EmployeeCreate, EmployeeUpdate, ok
from managertc.services import employees as employee_service

logger = get_logger(__name__)

router = APIRouter(
    prefix="/employees",
    tags=["employees"],
    responses={404: {"description": "Employee not found"}},
)


@router.get("/me")
async def get_current_employee(
    session: SessionDep, company_id: CompanyIdDep, current_user: CurrentUserDep
):
    """Get the current authenticated user's employee profile."""
    employee = employee_service.find_by_user(session, company_id, current_user.sub)
    if not employee:
        raise NotFoundError("Employee profile not found")
    return ok(employee.to_public())


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_employee(
    payload: EmployeeCreate,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: Annotated[TokenData, Depends(require_capability(MANAGE_EMPLOYEES))],
):
    logger.info(
        f"Creating new employee: {payload.first_name} {payload.last_name} "
        f"by user: {current_user.sub}"
    )
    result = employee_service.create(session, company_id, payload)
    return ok(result, message="Employee created successfully")


@router.get("/")
async def list_employees(
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: Annotated[TokenData, Depends(require_capability(VIEW_EMPLOYEES))],
    department_id: Annotated[Optional[str], Query(alias="departmentId")] = None,
    status_filter: Annotated[Optional[str], Query(alias="status")] = None,
    search: Optional[str] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
):
    """
    List employees with pagination and filters.

    Salary and bank details are stripped for callers outside HR unless the
    row is their own.
    """
    result = employee_service.list_employees(
        session,
        company_id,
        department_id=department_id,
        status=status_filter,
        search=search,
        page=page,
        limit=limit,
    )
    result["employees"] = [
        filter_employee_data(
            item, current_user.role, is_own_record=item["userId"] == current_user.sub
        )
        for item in result["employees"]
    ]
    return ok(result["employees"], pagination=result["pagination"])


@router.get("/{employee_id}")
async def get_employee(
    employee_id: str,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: CurrentUserDep,
):
    employee = employee_service.get(session, company_id, employee_id)
    is_own = employee.user_id == current_user.sub

    if not is_own and not can_view_employee(current_user.role, employee.role):
        logger.warning(f"User {current_user.sub} denied view of employee {employee.id}")
        raise ForbiddenError("You don't have permission to view this employee")

    return ok(filter_employee_data(employee.to_public(), current_user.role, is_own))


@router.put("/{employee_id}")
async def update_employee(
    employee_id: str,
    payload: EmployeeUpdate,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: CurrentUserDep,
):
    employee = employee_service.get(session, company_id, employee_id)
    is_own = employee.user_id == current_user.sub

    if not can_update_employee(current_user.role, employee.role, is_own_record=is_own):
        logger.warning(f"User {current_user.sub} denied update of employee {employee.id}")
        raise ForbiddenError("You don't have permission to update this employee")

    allowed = get_allowed_fields_for_update(current_user.role, is_own_record=is_own)
    result = employee_service.update(session, company_id, employee.id, payload, allowed)
    return ok(result, message="Employee updated successfully")


@router.delete("/{employee_id}")
async def delete_employee(
    employee_id: str,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: Annotated[TokenData, Depends(require_capability(MANAGE_EMPLOYEES))],
):
    employee = employee_service.get(session, company_id, employee_id)
    if not can_delete_employee(current_user.role, employee.role):
        raise ForbiddenError("You don't have permission to delete this employee")

    result = employee_service.delete(session, company_id, employee.id)
    return ok(result, message="Employee deleted successfully")
