"""
Performance review API endpoints.

Everyone in the company may read reviews; admins and managers write them,
and only admins delete (a soft delete that marks the review Cancelled).
"""

from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from managertc.api.dependencies import CompanyIdDep, SessionDep, require_capability
from managertc.core.logging import get_logger
from managertc.core.rbac import (
    DELETE_PERFORMANCE_REVIEWS,
    MANAGE_PERFORMANCE_REVIEWS,
    VIEW_PERFORMANCE_REVIEWS,
)
from managertc.core.security import TokenData
from managertc.models import (
    PerformanceReviewCreate,
    PerformanceReviewFilters,
    PerformanceReviewUpdate,
    ok,
)
from managertc.services import performance_reviews as review_service

logger = get_logger(__name__)

router = APIRouter(
    prefix="/performance-reviews",
    tags=["performance-reviews"],
    responses={404: {"description": "Performance review not found"}},
)

ViewerDep = Annotated[TokenData, Depends(require_capability(VIEW_PERFORMANCE_REVIEWS))]
ManagerDep = Annotated[TokenData, Depends(require_capability(MANAGE_PERFORMANCE_REVIEWS))]
AdminDep = Annotated[TokenData, Depends(require_capability(DELETE_PERFORMANCE_REVIEWS))]


@router.get("/")
async def list_performance_reviews(
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ViewerDep,
    status_filter: Annotated[Optional[list[str]], Query(alias="status")] = None,
    employee_id: Annotated[Optional[str], Query(alias="employeeId")] = None,
    department: Optional[str] = None,
    designation: Optional[str] = None,
    start_date: Annotated[Optional[datetime], Query(alias="startDate")] = None,
    end_date: Annotated[Optional[datetime], Query(alias="endDate")] = None,
):
    filters = PerformanceReviewFilters(
        status=status_filter[0] if status_filter and len(status_filter) == 1 else status_filter,
        employeeId=employee_id,
        department=department,
        designation=designation,
        startDate=start_date,
        endDate=end_date,
    )
    reviews = review_service.list_reviews(session, company_id, filters)
    return ok(reviews, totalCount=len(reviews))


@router.get("/{review_id}")
async def get_performance_review(
    review_id: str,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ViewerDep,
):
    return ok(review_service.get(session, company_id, review_id))


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_performance_review(
    payload: PerformanceReviewCreate,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ManagerDep,
):
    logger.info(f"User {current_user.sub} creating review for '{payload.employee_id}'")
    result = review_service.create(session, company_id, payload)
    return ok(result, message="Performance review created successfully")


@router.put("/{review_id}")
async def update_performance_review(
    review_id: str,
    payload: PerformanceReviewUpdate,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ManagerDep,
):
    result = review_service.update(session, company_id, review_id, payload)
    return ok(result, message="Performance review updated successfully")


@router.delete("/{review_id}")
async def delete_performance_review(
    review_id: str,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: AdminDep,
):
    result = review_service.delete(session, company_id, review_id)
    return ok(result, message="Performance review deleted successfully")
