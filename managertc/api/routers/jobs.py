"""
Job posting API endpoints.

Routes carry the company id in the path; it must match the caller's own
company. Exports write a file and schedule its removal.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from managertc.api.dependencies import CurrentUserDep, SessionDep, require_capability
from managertc.core.events import EventType, JobEvent, create_event
from managertc.core.kafka import publish_event
from managertc.core.logging import get_logger
from managertc.core.rbac import MANAGE_JOBS, VIEW_JOBS, ensure_same_tenant
from managertc.core.security import TokenData
from managertc.core.tenancy import validate_company_id
from managertc.core.topics import KafkaTopics
from managertc.models import (
    JobBulkDelete,
    JobCreate,
    JobExportRequest,
    JobFilters,
    JobStatusUpdate,
    ok,
)
from managertc.services import exports as export_service
from managertc.services import jobs as job_service

logger = get_logger(__name__)

router = APIRouter(
    prefix="/jobs",
    tags=["jobs"],
    responses={404: {"description": "Job not found"}},
)

ViewerDep = Annotated[TokenData, Depends(require_capability(VIEW_JOBS))]
ManagerDep = Annotated[TokenData, Depends(require_capability(MANAGE_JOBS))]


def path_company_id(company_id: str, current_user: CurrentUserDep) -> str:
    validate_company_id(company_id)
    ensure_same_tenant(current_user.company_id, company_id)
    return company_id


TenantDep = Annotated[str, Depends(path_company_id)]


async def _publish_job_event(
    event_type: EventType, topic: str, company_id: str, job: dict, user: TokenData
) -> None:
    event = create_event(
        event_type,
        JobEvent(
            company_id=company_id,
            job_id=job["jobId"],
            title=job["title"],
            status=job["status"],
            category=job.get("category"),
        ),
        actor_user_id=user.sub,
        actor_role=user.role,
    )
    await publish_event(topic, event, key=job["jobId"])


@router.get("/categories")
async def get_job_categories():
    return ok(job_service.categories())


@router.get("/types")
async def get_job_types():
    return ok(job_service.types())


@router.get("/{company_id}/stats")
async def get_jobs_stats(session: SessionDep, company_id: TenantDep, current_user: ViewerDep):
    return ok(job_service.stats(session, company_id))


@router.get("/{company_id}/list")
async def get_jobs_list(
    session: SessionDep,
    company_id: TenantDep,
    current_user: ViewerDep,
    status_filter: Annotated[Optional[str], Query(alias="status")] = None,
    category: Optional[str] = None,
    job_type: Annotated[Optional[str], Query(alias="jobType")] = None,
    search: Optional[str] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    sort_by: Annotated[str, Query(alias="sortBy")] = "createdAt",
    sort_order: Annotated[str, Query(alias="sortOrder")] = "desc",
):
    filters = JobFilters(
        status=status_filter,
        category=category,
        jobType=job_type,
        search=search,
        page=page,
        limit=limit,
        sortBy=sort_by,
        sortOrder=sort_order,
    )
    result = job_service.list_jobs(session, company_id, filters)
    return ok(result["jobs"], pagination=result["pagination"])


@router.get("/{company_id}/job/{job_id}")
async def get_job_details(
    job_id: str, session: SessionDep, company_id: TenantDep, current_user: ViewerDep
):
    return ok(job_service.details(session, company_id, job_id))


@router.post("/{company_id}/create", status_code=status.HTTP_201_CREATED)
async def create_job(
    payload: JobCreate,
    session: SessionDep,
    company_id: TenantDep,
    current_user: ManagerDep,
):
    job = job_service.create(session, company_id, current_user.snapshot(), payload)
    await _publish_job_event(
        EventType.JOB_CREATED, KafkaTopics.JOB_CREATED, company_id, job, current_user
    )
    return ok(job, message="Job created successfully")


@router.put("/{company_id}/job/{job_id}")
async def update_job(
    job_id: str,
    payload: JobCreate,
    session: SessionDep,
    company_id: TenantDep,
    current_user: ManagerDep,
):
    job = job_service.update(session, company_id, job_id, current_user.snapshot(), payload)
    return ok(job, message="Job updated successfully")


@router.delete("/{company_id}/job/{job_id}")
async def delete_job(
    job_id: str, session: SessionDep, company_id: TenantDep, current_user: ManagerDep
):
    result = job_service.delete(session, company_id, job_id)
    await _publish_job_event(
        EventType.JOB_DELETED, KafkaTopics.JOB_DELETED, company_id, result, current_user
    )
    return ok(result, message="Job deleted successfully")


@router.delete("/{company_id}/bulk-delete")
async def bulk_delete_jobs(
    payload: JobBulkDelete,
    session: SessionDep,
    company_id: TenantDep,
    current_user: ManagerDep,
):
    deleted = job_service.bulk_delete(session, company_id, payload.job_ids)
    return ok(
        {"deletedCount": deleted},
        message=f"{deleted} jobs deleted successfully",
    )


@router.patch("/{company_id}/job/{job_id}/status")
async def update_job_status(
    job_id: str,
    payload: JobStatusUpdate,
    session: SessionDep,
    company_id: TenantDep,
    current_user: ManagerDep,
):
    job = job_service.update_status(
        session, company_id, job_id, payload.status, current_user.snapshot()
    )
    return ok(job, message="Job status updated successfully")


@router.post("/{company_id}/export/pdf")
async def export_jobs_pdf(
    session: SessionDep,
    company_id: TenantDep,
    current_user: ViewerDep,
    payload: Optional[JobExportRequest] = None,
):
    filters = (payload or JobExportRequest()).filters
    result = export_service.export_pdf(session, company_id, current_user.sub, filters)
    export_service.schedule_file_cleanup(result["filePath"])
    return ok(result, message="PDF generated successfully")


@router.post("/{company_id}/export/excel")
async def export_jobs_excel(
    session: SessionDep,
    company_id: TenantDep,
    current_user: ViewerDep,
    payload: Optional[JobExportRequest] = None,
):
    filters = (payload or JobExportRequest()).filters
    result = export_service.export_excel(session, company_id, current_user.sub, filters)
    export_service.schedule_file_cleanup(result["filePath"])
    return ok(result, message="Excel file generated successfully")
