"""
Socket handlers for invoices (``admin/invoices/*`` events).

Every successful mutation re-reads the company's invoices and pushes the
full list to the company room as ``admin/invoices/list-update``.
"""

from managertc.core.database import session_scope
from managertc.core.rbac import MANAGE_INVOICES, VIEW_INVOICES
from managertc.models import ok
from managertc.services import invoices as invoice_service
from managertc.sockets.common import SocketContext, socket_handler

LIST_UPDATE = "admin/invoices/list-update"


async def _broadcast_list(server, ctx: SocketContext, session) -> None:
    invoices = invoice_service.list_invoices(session, ctx.company_id)
    await server.emit(LIST_UPDATE, ok(invoices), room=ctx.room)


def register_invoice_handlers(server) -> None:
    @socket_handler(
        server, "admin/invoices/get", capability=VIEW_INVOICES, denied_message="Forbidden"
    )
    async def get_invoices(ctx: SocketContext, data):
        with session_scope() as session:
            return ok(invoice_service.list_invoices(session, ctx.company_id))

    @socket_handler(
        server,
        "admin/invoices/create",
        capability=MANAGE_INVOICES,
        denied_message="Forbidden",
        ack=True,
    )
    async def create_invoice(ctx: SocketContext, data):
        with session_scope() as session:
            invoice_service.create(session, ctx.company_id, data)
            await _broadcast_list(server, ctx, session)
        return ok()

    @socket_handler(
        server, "admin/invoices/update", capability=MANAGE_INVOICES, denied_message="Forbidden"
    )
    async def update_invoice(ctx: SocketContext, data):
        with session_scope() as session:
            invoice_service.update(
                session, ctx.company_id, data.get("invoiceId"), data.get("updatedData")
            )
            await _broadcast_list(server, ctx, session)
        return ok()

    @socket_handler(
        server, "admin/invoices/delete", capability=MANAGE_INVOICES, denied_message="Forbidden"
    )
    async def delete_invoice(ctx: SocketContext, data):
        with session_scope() as session:
            invoice_service.delete(session, ctx.company_id, data.get("invoiceId"))
            await _broadcast_list(server, ctx, session)
        return ok()
