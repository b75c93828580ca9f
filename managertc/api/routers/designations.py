from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from managertc.api.dependencies import CompanyIdDep, SessionDep, require_capability
from managertc.core.logging import get_logger
from managertc.core.rbac import MANAGE_DEPARTMENTS, VIEW_DEPARTMENTS
from managertc.core.security import TokenData
from managertc.models import DesignationCreate, DesignationReassign, DesignationUpdate, ok
from managertc.services import designations as designation_service

logger = get_logger(__name__)

router = APIRouter(
    prefix="/designations",
    tags=["designations"],
    responses={404: {"description": "Designation not found"}},
)

ViewerDep = Annotated[TokenData, Depends(require_capability(VIEW_DEPARTMENTS))]
ManagerDep = Annotated[TokenData, Depends(require_capability(MANAGE_DEPARTMENTS))]


@router.get("/")
async def list_designations(
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ViewerDep,
    department_id: Annotated[Optional[str], Query(alias="departmentId")] = None,
    status_filter: Annotated[Optional[str], Query(alias="status")] = None,
):
    designations = designation_service.list_designations(
        session, company_id, department_id=department_id, status=status_filter
    )
    return ok(designations, totalCount=len(designations))


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_designation(
    payload: DesignationCreate,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ManagerDep,
):
    result = designation_service.create(session, company_id, current_user.sub, payload)
    return ok(result, message="Designation created successfully")


@router.put("/{designation_id}")
async def update_designation(
    designation_id: str,
    payload: DesignationUpdate,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ManagerDep,
):
    payload.designation_id = designation_id
    result = designation_service.update(session, company_id, current_user.sub, payload)
    return ok(result, message="Designation updated successfully")


@router.delete("/{designation_id}")
async def delete_designation(
    designation_id: str,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ManagerDep,
):
    result = designation_service.delete(session, company_id, designation_id)
    return ok(result, message="Designation deleted successfully")


@router.post("/{designation_id}/reassign-delete")
async def reassign_and_delete_designation(
    designation_id: str,
    payload: DesignationReassign,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ManagerDep,
):
    payload.source_designation_id = designation_id
    result = designation_service.reassign_and_delete(session, company_id, payload)
    logger.info(f"User {current_user.sub} merged designation {designation_id}: {result}")
    return ok(result, message="Designation reassigned and deleted successfully")
