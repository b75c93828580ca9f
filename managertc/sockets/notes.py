"""Socket handlers for project notes (``project/notes:*`` events)."""

from managertc.core.database import session_scope
from managertc.core.rbac import MANAGE_NOTES, VIEW_NOTES
from managertc.models import ProjectNoteCreate, ProjectNoteFilters, ProjectNoteUpdate, ok
from managertc.services import notes as note_service
from managertc.sockets.common import SocketContext, socket_handler

DENIED = "Unauthorized: Admin or HR only"


def register_note_handlers(server) -> None:
    @socket_handler(
        server, "project/notes:create", capability=MANAGE_NOTES, denied_message=DENIED
    )
    async def create_note(ctx: SocketContext, data):
        payload = ProjectNoteCreate.model_validate(data)
        with session_scope() as session:
            note = note_service.create(session, ctx.company_id, ctx.user_id, payload)

        result = ok(note, message="Project note created successfully")
        await server.emit("project/notes:note-created", result, room=ctx.room)
        return result

    @socket_handler(server, "project/notes:getAll", capability=VIEW_NOTES)
    async def get_notes(ctx: SocketContext, data):
        filters = ProjectNoteFilters.model_validate(data.get("filters") or {})
        with session_scope() as session:
            result = note_service.list_notes(
                session, ctx.company_id, data.get("projectId"), filters
            )
        return ok(result["notes"], totalCount=result["totalCount"])

    @socket_handler(
        server, "project/notes:getById", capability=VIEW_NOTES, accepts_id=True
    )
    async def get_note(ctx: SocketContext, data):
        note_id = data.get("noteId") if isinstance(data, dict) else data
        with session_scope() as session:
            return ok(note_service.get(session, ctx.company_id, note_id))

    @socket_handler(
        server, "project/notes:update", capability=MANAGE_NOTES, denied_message=DENIED
    )
    async def update_note(ctx: SocketContext, data):
        payload = ProjectNoteUpdate.model_validate(data.get("update") or {})
        with session_scope() as session:
            note = note_service.update(session, ctx.company_id, data.get("noteId"), payload)

        result = ok(note, message="Project note updated successfully")
        await server.emit("project/notes:note-updated", result, room=ctx.room)
        return result

    @socket_handler(
        server, "project/notes:delete", capability=MANAGE_NOTES, denied_message=DENIED
    )
    async def delete_note(ctx: SocketContext, data):
        with session_scope() as session:
            note = note_service.delete(session, ctx.company_id, data.get("noteId"))

        result = ok(note, message="Project note deleted successfully")
        await server.emit("project/notes:note-deleted", result, room=ctx.room)
        return result
