from typing import Annotated

from fastapi import APIRouter, Depends, status

from managertc.api.dependencies import CompanyIdDep, SessionDep, require_capability
from managertc.core.rbac import MANAGE_HOLIDAYS, VIEW_HOLIDAYS
from managertc.core.security import TokenData
from managertc.models import HolidayCreate, HolidayTypeCreate, HolidayTypeUpdate, ok
from managertc.services import holidays as holiday_service

ViewerDep = Annotated[TokenData, Depends(require_capability(VIEW_HOLIDAYS))]
ManagerDep = Annotated[TokenData, Depends(require_capability(MANAGE_HOLIDAYS))]

types_router = APIRouter(prefix="/holiday-types", tags=["holidays"])
router = APIRouter(prefix="/holidays", tags=["holidays"])


# =============================================================================
# Holiday Types
# =============================================================================


@types_router.get("/")
async def list_holiday_types(
    session: SessionDep, company_id: CompanyIdDep, current_user: ViewerDep
):
    return ok(holiday_service.list_types(session, company_id))


@types_router.post("/", status_code=status.HTTP_201_CREATED)
async def create_holiday_type(
    payload: HolidayTypeCreate,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ManagerDep,
):
    result = holiday_service.create_type(session, company_id, current_user.sub, payload)
    return ok(result, message="Holiday type created successfully")


@types_router.post("/initialize", status_code=status.HTTP_201_CREATED)
async def initialize_holiday_types(
    session: SessionDep, company_id: CompanyIdDep, current_user: ManagerDep
):
    """Seed the default holiday types when the company has none yet."""
    created = holiday_service.initialize_default_types(
        session, company_id, current_user.sub
    )
    message = (
        f"Initialized {len(created)} default holiday types"
        if created
        else "Holiday types already exist"
    )
    return ok(created, message=message)


@types_router.put("/{type_id}")
async def update_holiday_type(
    type_id: str,
    payload: HolidayTypeUpdate,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ManagerDep,
):
    payload.type_id = type_id
    result = holiday_service.update_type(session, company_id, current_user.sub, payload)
    return ok(result, message="Holiday type updated successfully")


@types_router.delete("/{type_id}")
async def delete_holiday_type(
    type_id: str,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ManagerDep,
):
    result = holiday_service.delete_type(session, company_id, type_id)
    return ok(result, message="Holiday type deleted successfully")


# =============================================================================
# Holidays
# =============================================================================


@router.get("/")
async def list_holidays(
    session: SessionDep, company_id: CompanyIdDep, current_user: ViewerDep
):
    return ok(holiday_service.list_holidays(session, company_id))


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_holiday(
    payload: HolidayCreate,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ManagerDep,
):
    result = holiday_service.create_holiday(session, company_id, current_user.sub, payload)
    return ok(result, message="Holiday created successfully")


@router.delete("/{holiday_id}")
async def delete_holiday(
    holiday_id: str,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ManagerDep,
):
    result = holiday_service.delete_holiday(session, company_id, holiday_id)
    return ok(result, message="Holiday deleted successfully")
