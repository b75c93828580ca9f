"""Socket handlers for job postings (``jobs/*`` events)."""

from managertc.core.database import session_scope
from managertc.core.events import EventType, JobEvent, create_event
from managertc.core.exceptions import ValidationError
from managertc.core.kafka import publish_event
from managertc.core.rbac import MANAGE_JOBS, VIEW_JOBS
from managertc.core.topics import KafkaTopics
from managertc.models import JobCreate, JobFilters, ok
from managertc.services import exports as export_service
from managertc.services import jobs as job_service
from managertc.sockets.common import SocketContext, socket_handler


def _filters(raw) -> JobFilters:
    return JobFilters.model_validate(raw or {})


async def _publish(event_type: EventType, topic: str, ctx: SocketContext, job: dict) -> None:
    event = create_event(
        event_type,
        JobEvent(
            company_id=ctx.company_id,
            job_id=job["jobId"],
            title=job["title"],
            status=job["status"],
            category=job.get("category"),
        ),
        actor_user_id=ctx.user_id,
        actor_role=ctx.role,
    )
    await publish_event(topic, event, key=job["jobId"])


def register_job_handlers(server) -> None:
    @socket_handler(server, "jobs/dashboard/get-stats", capability=VIEW_JOBS)
    async def get_stats(ctx: SocketContext, data):
        with session_scope() as session:
            return ok(job_service.stats(session, ctx.company_id))

    @socket_handler(server, "jobs/list/get-jobs", capability=VIEW_JOBS)
    async def get_jobs(ctx: SocketContext, data):
        filters = _filters(data.get("filters", data))
        with session_scope() as session:
            result = job_service.list_jobs(session, ctx.company_id, filters)
        return ok(result["jobs"], pagination=result["pagination"])

    @socket_handler(server, "jobs/details/get-job", capability=VIEW_JOBS)
    async def get_job(ctx: SocketContext, data):
        with session_scope() as session:
            return ok(job_service.details(session, ctx.company_id, data.get("jobId")))

    @socket_handler(server, "jobs/create-job", capability=MANAGE_JOBS)
    async def create_job(ctx: SocketContext, data):
        payload = JobCreate.model_validate(data)
        with session_scope() as session:
            job = job_service.create(session, ctx.company_id, ctx.snapshot, payload)

        await server.emit(
            "jobs/job-created",
            {"job": job, "createdBy": ctx.user_id},
            room=ctx.room,
            skip_sid=ctx.sid,
        )
        await _publish(EventType.JOB_CREATED, KafkaTopics.JOB_CREATED, ctx, job)
        return ok(job, message="Job created successfully")

    @socket_handler(server, "jobs/update-job", capability=MANAGE_JOBS)
    async def update_job(ctx: SocketContext, data):
        updates = dict(data)
        job_id = updates.pop("jobId", None)
        if not job_id:
            raise ValidationError("Job ID is required")
        payload = JobCreate.model_validate(updates)
        with session_scope() as session:
            job = job_service.update(session, ctx.company_id, job_id, ctx.snapshot, payload)

        await server.emit(
            "jobs/job-updated",
            {"jobId": job_id, "job": job, "updatedBy": ctx.user_id},
            room=ctx.room,
            skip_sid=ctx.sid,
        )
        return ok(job, message="Job updated successfully")

    @socket_handler(server, "jobs/delete-job", capability=MANAGE_JOBS)
    async def delete_job(ctx: SocketContext, data):
        job_id = data.get("jobId")
        if not job_id:
            raise ValidationError("Job ID is required")
        with session_scope() as session:
            result = job_service.delete(session, ctx.company_id, job_id)

        await server.emit(
            "jobs/job-deleted",
            {"jobId": job_id, "deletedBy": ctx.user_id},
            room=ctx.room,
            skip_sid=ctx.sid,
        )
        await _publish(EventType.JOB_DELETED, KafkaTopics.JOB_DELETED, ctx, result)
        return ok(result, message="Job deleted successfully")

    @socket_handler(server, "jobs/bulk-delete-jobs", capability=MANAGE_JOBS)
    async def bulk_delete_jobs(ctx: SocketContext, data):
        job_ids = data.get("jobIds")
        if not isinstance(job_ids, list) or not job_ids:
            raise ValidationError("Job IDs array is required")
        with session_scope() as session:
            deleted = job_service.bulk_delete(session, ctx.company_id, job_ids)

        await server.emit(
            "jobs/jobs-bulk-deleted",
            {"jobIds": job_ids, "deletedBy": ctx.user_id, "deletedCount": deleted},
            room=ctx.room,
            skip_sid=ctx.sid,
        )
        return ok(
            {"deletedCount": deleted},
            message=f"{deleted} jobs deleted successfully",
        )

    @socket_handler(server, "jobs/update-job-status", capability=MANAGE_JOBS)
    async def update_job_status(ctx: SocketContext, data):
        job_id, status = data.get("jobId"), data.get("status")
        with session_scope() as session:
            job = job_service.update_status(
                session, ctx.company_id, job_id, status, ctx.snapshot
            )

        await server.emit(
            "jobs/job-status-updated",
            {"jobId": job_id, "status": status, "updatedBy": ctx.user_id},
            room=ctx.room,
            skip_sid=ctx.sid,
        )
        return ok(job, message="Job status updated successfully")

    @socket_handler(server, "jobs/get-categories", tenant=False)
    async def get_categories(ctx: SocketContext, data):
        return ok(job_service.categories())

    @socket_handler(server, "jobs/get-types", tenant=False)
    async def get_types(ctx: SocketContext, data):
        return ok(job_service.types())

    @socket_handler(server, "jobs/export-pdf", capability=VIEW_JOBS)
    async def export_pdf(ctx: SocketContext, data):
        with session_scope() as session:
            result = export_service.export_pdf(
                session, ctx.company_id, ctx.user_id, _filters(data.get("filters"))
            )
        export_service.schedule_file_cleanup(result["filePath"])
        return ok(result, message="PDF generated successfully")

    @socket_handler(server, "jobs/export-excel", capability=VIEW_JOBS)
    async def export_excel(ctx: SocketContext, data):
        with session_scope() as session:
            result = export_service.export_excel(
                session, ctx.company_id, ctx.user_id, _filters(data.get("filters"))
            )
        export_service.schedule_file_cleanup(result["filePath"])
        return ok(result, message="Excel file generated successfully")
