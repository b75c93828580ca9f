"""
Job postings.

Jobs are addressed by their public ``jobId`` (``JOB-123456-ABC``); deleting a
job only flips ``isActive`` so applicant history survives.
"""

from typing import Any, Iterable, Optional

from sqlalchemy import func, or_
from sqlmodel import Session, select

from managertc.core.exceptions import NotFoundError, ValidationError
from managertc.core.logging import get_logger
from managertc.core.tenancy import TenantCollections, resolve
from managertc.models.common import to_naive_utc, utcnow
from managertc.models.job import (
    EXPERIENCE_LEVELS,
    GENDERS,
    LOCATION_FIELDS,
    QUALIFICATIONS,
    SALARY_PERIODS,
    Job,
    JobCategory,
    JobCreate,
    JobFilters,
    JobLevel,
    JobStatus,
    JobType,
    generate_job_id,
)

logger = get_logger(__name__)

REQUIRED_FIELDS = {
    "title": "title",
    "description": "description",
    "category": "category",
    "min_salary": "minSalary",
    "max_salary": "maxSalary",
    "expired_date": "expiredDate",
}

SORT_COLUMNS = {
    "createdAt": Job.created_at,
    "updatedAt": Job.updated_at,
    "title": Job.title,
    "postedDate": Job.posted_date,
    "expiredDate": Job.expired_date,
    "minSalary": Job.min_salary,
    "maxSalary": Job.max_salary,
    "applicantsCount": Job.applicants_count,
    "status": Job.status,
}

# Payload attribute -> (allowed values, label)
CHOICES = {
    "category": ([c.value for c in JobCategory], "category"),
    "job_type": ([t.value for t in JobType], "job type"),
    "job_level": ([lvl.value for lvl in JobLevel], "job level"),
    "experience": (EXPERIENCE_LEVELS, "experience"),
    "qualification": (QUALIFICATIONS, "qualification"),
    "gender": (GENDERS, "gender"),
    "salary_period": (SALARY_PERIODS, "salary period"),
    "status": ([s.value for s in JobStatus], "status"),
}


def categories() -> list[str]:
    return [c.value for c in JobCategory]


def types() -> list[str]:
    return [t.value for t in JobType]


def _check_choices(values: dict[str, Any]) -> None:
    for field, (allowed, label) in CHOICES.items():
        value = values.get(field)
        if value is not None and value not in allowed:
            raise ValidationError(f"Invalid {label}: {value}")


def _check_salary(min_salary: Optional[float], max_salary: Optional[float]) -> None:
    if min_salary is not None and min_salary < 0:
        raise ValidationError("Minimum salary cannot be negative")
    if min_salary is not None and max_salary is not None and min_salary > max_salary:
        raise ValidationError("Minimum salary cannot be greater than maximum salary")


def _clean_location(location: Optional[dict]) -> dict:
    location = location or {}
    return {key: str(location.get(key) or "").strip() for key in LOCATION_FIELDS}


def _require(collections: TenantCollections, job_id: Any) -> Job:
    if not job_id:
        raise ValidationError("Job ID is required")
    where = [Job.job_id == str(job_id)]
    if str(job_id).isdigit():
        where = [or_(Job.job_id == str(job_id), Job.id == int(job_id))]
    job = collections.jobs.find_one(*where, Job.is_active == True)  # noqa: E712
    if not job:
        raise NotFoundError("Job not found")
    return job


def stats(session: Session, company_id: str) -> dict:
    collections = resolve(session, company_id)
    active = Job.is_active == True  # noqa: E712

    by_status = {
        status: collections.jobs.count(active, Job.status == status.value)
        for status in JobStatus
    }
    totals = session.exec(
        select(
            func.coalesce(func.sum(Job.applicants_count), 0),
            func.coalesce(func.sum(Job.views_count), 0),
        ).where(Job.company_id == company_id, active)
    ).one()
    return {
        "totalJobs": collections.jobs.count(active),
        "publishedJobs": by_status[JobStatus.PUBLISHED],
        "draftJobs": by_status[JobStatus.DRAFT],
        "closedJobs": by_status[JobStatus.CLOSED],
        "expiredJobs": by_status[JobStatus.EXPIRED],
        "cancelledJobs": by_status[JobStatus.CANCELLED],
        "urgentJobs": collections.jobs.count(active, Job.is_urgent == True),  # noqa: E712
        "remoteJobs": collections.jobs.count(active, Job.is_remote == True),  # noqa: E712
        "totalApplicants": int(totals[0]),
        "totalViews": int(totals[1]),
    }


def _filtered(filters: JobFilters) -> list:
    where = [Job.is_active == True]  # noqa: E712
    if filters.status and filters.status.lower() != "all":
        where.append(Job.status == filters.status)
    if filters.category and filters.category.lower() != "all":
        where.append(Job.category == filters.category)
    if filters.job_type and filters.job_type.lower() != "all":
        where.append(Job.job_type == filters.job_type)
    if filters.search:
        pattern = f"%{filters.search.strip().lower()}%"
        where.append(
            or_(
                func.lower(Job.title).like(pattern),
                func.lower(Job.description).like(pattern),
                func.lower(Job.department).like(pattern),
            )
        )
    return where


def list_jobs(session: Session, company_id: str, filters: Optional[JobFilters] = None) -> dict:
    collections = resolve(session, company_id)
    filters = filters or JobFilters()
    where = _filtered(filters)

    column = SORT_COLUMNS.get(filters.sort_by, Job.created_at)
    order = column.asc() if filters.sort_order.lower() == "asc" else column.desc()

    total = collections.jobs.count(*where)
    statement = (
        collections.jobs.select(*where)
        .order_by(order)
        .offset((filters.page - 1) * filters.limit)
        .limit(filters.limit)
    )
    jobs = session.exec(statement).all()
    return {
        "jobs": [job.to_public() for job in jobs],
        "pagination": {
            "page": filters.page,
            "limit": filters.limit,
            "total": total,
            "totalPages": (total + filters.limit - 1) // filters.limit,
        },
    }


def find_for_export(session: Session, company_id: str, filters: Optional[JobFilters]) -> list[Job]:
    collections = resolve(session, company_id)
    where = _filtered(filters or JobFilters())
    return collections.jobs.find(*where, order_by=Job.created_at.desc())


def details(session: Session, company_id: str, job_id: Any) -> dict:
    collections = resolve(session, company_id)
    return _require(collections, job_id).to_public()


def create(
    session: Session, company_id: str, created_by: dict, payload: JobCreate
) -> dict:
    collections = resolve(session, company_id)

    values = payload.model_dump(exclude_none=True)
    missing = [wire for attr, wire in REQUIRED_FIELDS.items() if values.get(attr) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    _check_choices(values)
    _check_salary(values["min_salary"], values["max_salary"])

    values["title"] = values["title"].strip()
    values["expired_date"] = to_naive_utc(values["expired_date"])
    values["location"] = _clean_location(values.get("location"))

    job = Job(
        company_id=company_id,
        job_id=generate_job_id(),
        created_by=created_by,
        **values,
    )
    collections.jobs.add(job)
    session.commit()
    session.refresh(job)

    logger.info(f"Job created: {job.job_id} - {job.title} for {company_id}")
    return job.to_public()


def update(
    session: Session,
    company_id: str,
    job_id: Any,
    updated_by: dict,
    payload: JobCreate,
) -> dict:
    collections = resolve(session, company_id)
    job = _require(collections, job_id)

    values = payload.model_dump(exclude_unset=True, exclude_none=True)
    _check_choices(values)
    _check_salary(
        values.get("min_salary", job.min_salary), values.get("max_salary", job.max_salary)
    )
    if "expired_date" in values:
        values["expired_date"] = to_naive_utc(values["expired_date"])
    if "location" in values:
        values["location"] = _clean_location(values["location"])
    if values.get("status") == JobStatus.CLOSED.value and job.status != JobStatus.CLOSED.value:
        job.closed_date = utcnow()

    for key, value in values.items():
        setattr(job, key, value)
    job.updated_by = updated_by
    job.updated_at = utcnow()

    session.add(job)
    session.commit()
    session.refresh(job)

    logger.info(f"Job {job.job_id} updated: {sorted(values)}")
    return job.to_public()


def delete(session: Session, company_id: str, job_id: Any) -> dict:
    collections = resolve(session, company_id)
    job = _require(collections, job_id)

    job.is_active = False
    job.updated_at = utcnow()
    session.add(job)
    session.commit()

    logger.info(f"Job {job.job_id} deleted")
    return {"jobId": job.job_id, "title": job.title, "status": job.status}


def bulk_delete(session: Session, company_id: str, job_ids: Iterable[Any]) -> int:
    collections = resolve(session, company_id)
    job_ids = [str(j) for j in (job_ids or []) if j]
    if not job_ids:
        raise ValidationError("Job IDs array is required")

    deleted = collections.jobs.update(
        (Job.job_id.in_(job_ids), Job.is_active == True),  # noqa: E712
        {"is_active": False, "updated_at": utcnow()},
    )
    session.commit()

    logger.info(f"Bulk deleted {deleted} of {len(job_ids)} jobs for {company_id}")
    return deleted


def update_status(
    session: Session,
    company_id: str,
    job_id: Any,
    status: Optional[str],
    updated_by: Optional[dict] = None,
) -> dict:
    collections = resolve(session, company_id)
    if not job_id or not status:
        raise ValidationError("Job ID and status are required")
    _check_choices({"status": status})

    job = _require(collections, job_id)
    if status == JobStatus.CLOSED.value and job.status != JobStatus.CLOSED.value:
        job.closed_date = utcnow()
    job.status = status
    if updated_by:
        job.updated_by = updated_by
    job.updated_at = utcnow()

    session.add(job)
    session.commit()
    session.refresh(job)

    logger.info(f"Job {job.job_id} status -> {status}")
    return job.to_public()
