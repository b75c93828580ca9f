"""
Socket handlers for the kanban board (``kanban/*`` events).

Card changes are pushed to the rest of the company; the sender already has
the result from its own response.
"""

from managertc.core.database import session_scope
from managertc.core.rbac import USE_KANBAN
from managertc.models import (
    KanbanBoardFilters,
    KanbanBulkStageMove,
    KanbanCardData,
    KanbanReorder,
    KanbanStageMove,
    ok,
)
from managertc.services import kanban as kanban_service
from managertc.sockets.common import SocketContext, socket_handler

DENIED = "Forbidden: role not allowed"


def register_kanban_handlers(server) -> None:
    async def tell_others(ctx: SocketContext, event: str, payload: dict) -> None:
        await server.emit(
            event,
            {**payload, "meta": {"actor": ctx.user_id}},
            room=ctx.room,
            skip_sid=ctx.sid,
        )

    def kanban_event(event: str):
        return socket_handler(server, event, capability=USE_KANBAN, denied_message=DENIED)

    @kanban_event("kanban/board/get-data")
    async def get_board(ctx: SocketContext, data):
        filters = KanbanBoardFilters.model_validate(data.get("filters") or {})
        with session_scope() as session:
            return ok(kanban_service.get_board_data(session, ctx.company_id, filters))

    @kanban_event("kanban/card/update-stage")
    async def update_stage(ctx: SocketContext, data):
        move = KanbanStageMove.model_validate(data)
        with session_scope() as session:
            card = kanban_service.update_card_stage(session, ctx.company_id, move, ctx.user_id)
        await tell_others(ctx, "kanban/card/updated", {"card": card})
        return ok(card)

    @kanban_event("kanban/card/bulk-update-stage")
    async def bulk_update_stage(ctx: SocketContext, data):
        move = KanbanBulkStageMove.model_validate(data)
        with session_scope() as session:
            cards = kanban_service.bulk_update_card_stage(
                session, ctx.company_id, move, ctx.user_id
            )
        await tell_others(ctx, "kanban/card/bulk-updated", {"cards": cards})
        return ok(cards)

    @kanban_event("kanban/card/reorder")
    async def reorder(ctx: SocketContext, data):
        request = KanbanReorder.model_validate(data)
        with session_scope() as session:
            return ok(kanban_service.reorder_column_cards(session, ctx.company_id, request))

    @kanban_event("kanban/columns/save")
    async def save_columns(ctx: SocketContext, data):
        with session_scope() as session:
            return ok(
                kanban_service.save_column_configuration(
                    session, ctx.company_id, data.get("columns")
                )
            )

    @kanban_event("kanban/card/create")
    async def create_card(ctx: SocketContext, data):
        card_data = KanbanCardData.model_validate(data.get("cardData") or {})
        with session_scope() as session:
            card = kanban_service.create_card(session, ctx.company_id, card_data, ctx.user_id)
        await tell_others(ctx, "kanban/card/created", {"card": card})
        return ok(card)

    @kanban_event("kanban/card/update")
    async def update_card(ctx: SocketContext, data):
        card_data = KanbanCardData.model_validate(data.get("cardData") or {})
        with session_scope() as session:
            card = kanban_service.update_card(
                session, ctx.company_id, data.get("cardId"), card_data
            )
        await tell_others(ctx, "kanban/card/updated", {"card": card})
        return ok(card)

    @kanban_event("kanban/card/delete")
    async def delete_card(ctx: SocketContext, data):
        with session_scope() as session:
            result = kanban_service.delete_card(session, ctx.company_id, data.get("cardId"))
        await tell_others(ctx, "kanban/card/deleted", result)
        return ok(result)
