"""
Kanban board for project cards.

Each company owns exactly one board, created with the four default columns
the first time anything touches it. Cards live in a column by key; moving a
card between columns appends to its history.
"""

import math
import time
from typing import Any, Optional

from sqlalchemy import String, cast, func, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from managertc.core.exceptions import NotFoundError, ValidationError
from managertc.core.logging import get_logger
from managertc.core.tenancy import TenantCollections, normalize_id, resolve
from managertc.models.common import to_naive_utc, utcnow
from managertc.models.kanban import (
    DEFAULT_KANBAN_COLUMNS,
    KanbanBoard,
    KanbanBoardFilters,
    KanbanBulkStageMove,
    KanbanCard,
    KanbanCardData,
    KanbanColumn,
    KanbanReorder,
    KanbanStageMove,
    normalize_stage_key,
)

logger = get_logger(__name__)

SYSTEM_ACTOR = "system"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _sort_order(sort_by: Optional[str]) -> list:
    if sort_by == "ascending":
        return [KanbanCard.title.asc()]
    if sort_by == "descending":
        return [KanbanCard.title.desc()]
    if sort_by in ("lastMonth", "last7Days"):
        return [KanbanCard.updated_at.desc(), KanbanCard.created_at.desc()]
    return [KanbanCard.position.asc(), KanbanCard.created_at.desc()]


def _add_default_columns(collections: TenantCollections, board_id: int) -> list[KanbanColumn]:
    columns = [
        collections.kanban_columns.add(
            KanbanColumn(
                company_id=collections.company_id,
                board_id=board_id,
                key=key,
                label=label,
                color=color,
                position=position,
                is_system=True,
            )
        )
        for position, (key, label, color) in enumerate(DEFAULT_KANBAN_COLUMNS)
    ]
    collections.session.flush()
    return columns


def _board(collections: TenantCollections) -> tuple[KanbanBoard, list[KanbanColumn]]:
    """The company's board and its columns in order, created on first use."""
    session = collections.session
    board = collections.kanban_boards.find_one()
    if board is None:
        board = collections.kanban_boards.add(KanbanBoard(company_id=collections.company_id))
        try:
            session.flush()
        except IntegrityError:
            # Another request created it first
            session.rollback()
            board = collections.kanban_boards.find_one()
        else:
            _add_default_columns(collections, board.id)
            session.commit()
            logger.info(f"Kanban board {board.id} created for company {collections.company_id}")

    columns = collections.kanban_columns.find(
        KanbanColumn.board_id == board.id, order_by=KanbanColumn.position
    )
    if not columns:
        columns = _add_default_columns(collections, board.id)
        session.commit()
    return board, columns


def _column(columns: list[KanbanColumn], key: Optional[str]) -> KanbanColumn:
    for column in columns:
        if column.key == key:
            return column
    raise NotFoundError("Destination column not found")


def _card(collections: TenantCollections, board: KanbanBoard, card_id: Any) -> KanbanCard:
    card = collections.kanban_cards.find_one(
        KanbanCard.id == normalize_id(card_id, "card ID"), KanbanCard.board_id == board.id
    )
    if not card:
        raise NotFoundError("Card not found")
    return card


def _move(card: KanbanCard, column: KanbanColumn, position: int, actor: Optional[str], reason=None):
    now = utcnow()
    entry = {
        "from": card.column_key,
        "to": column.key,
        "movedBy": actor or SYSTEM_ACTOR,
        "movedAt": now.isoformat(),
    }
    if reason is not None:
        entry["reason"] = reason
    card.history = [*(card.history or []), entry]
    card.column_key = column.key
    card.column_id = column.id
    card.position = position
    card.updated_at = now


def get_board_data(
    session: Session, company_id: str, filters: Optional[KanbanBoardFilters] = None
) -> dict:
    """
    The board with its columns, each holding one page of matching cards.

    Filters narrow the cards; ``status`` picks a column key and wins over
    ``columnKeys``. Totals count the cards on the page.
    """
    collections = resolve(session, company_id)
    filters = filters or KanbanBoardFilters()
    board, columns = _board(collections)

    page = filters.page if filters.page > 0 else 1
    limit = filters.limit if filters.limit > 0 else 100

    where = [KanbanCard.board_id == board.id]
    if filters.status and filters.status != "all":
        where.append(KanbanCard.column_key == filters.status)
    elif filters.column_keys:
        where.append(KanbanCard.column_key.in_(filters.column_keys))
    if filters.priority and filters.priority != "all":
        where.append(KanbanCard.priority == filters.priority)
    if filters.create_date:
        where.append(KanbanCard.created_at >= to_naive_utc(filters.create_date.start))
        where.append(KanbanCard.created_at <= to_naive_utc(filters.create_date.end))
    if filters.due_date:
        where.append(KanbanCard.due_date >= to_naive_utc(filters.due_date.start))
        where.append(KanbanCard.due_date <= to_naive_utc(filters.due_date.end))
    if filters.client:
        where.append(
            func.lower(cast(KanbanCard.team_members, String)).contains(
                filters.client.strip().lower(), autoescape=True
            )
        )
    if filters.search:
        needle = filters.search.strip().lower()
        where.append(
            or_(
                func.lower(KanbanCard.title).contains(needle, autoescape=True),
                func.lower(KanbanCard.project_id).contains(needle, autoescape=True),
                func.lower(cast(KanbanCard.tags, String)).contains(needle, autoescape=True),
            )
        )

    total = collections.kanban_cards.count(*where)
    statement = (
        collections.kanban_cards.select(*where)
        .order_by(*_sort_order(filters.sort_by))
        .offset((page - 1) * limit)
        .limit(limit)
    )
    cards = session.exec(statement).all()

    buckets = {
        column.key: {**column.to_public(), "cards": [], "totals": {"count": 0, "budget": 0}}
        for column in columns
    }
    for card in cards:
        bucket = buckets.get(card.column_key)
        if bucket is None:
            continue
        payload = card.to_public()
        bucket["cards"].append(payload)
        bucket["totals"]["count"] += 1
        bucket["totals"]["budget"] += payload["budget"]

    return {
        "board": board.to_public(),
        "columns": list(buckets.values()),
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": max(1, math.ceil(total / limit)),
        },
        "filtersApplied": filters.model_dump(mode="json", by_alias=True, exclude_none=True),
    }


def create_card(
    session: Session, company_id: str, data: KanbanCardData, actor: Optional[str] = None
) -> dict:
    """
    New card in ``columnKey`` (default ``new``). A key that names no column is
    read as a stage name such as "In Progress"; unknown stages land in ``new``.
    """
    collections = resolve(session, company_id)
    board, columns = _board(collections)

    wanted = data.column_key or "new"
    by_key = {c.key: c for c in columns}
    column = by_key.get(wanted) or by_key.get(normalize_stage_key(wanted), columns[0])

    card = KanbanCard(
        company_id=company_id,
        board_id=board.id,
        column_id=column.id,
        column_key=column.key,
        position=data.order if data.order is not None else _now_ms(),
        project_id=data.project_id or "",
        title=data.title or "Untitled Project",
        tags=data.tags or [],
        priority=data.priority or "Medium",
        budget=data.budget if data.budget is not None else 0,
        tasks=data.tasks or {"completed": 0, "total": 0},
        due_date=to_naive_utc(data.due_date) if data.due_date else None,
        team_members=data.team_members or [],
        chat_count=data.chat_count or 0,
        attachment_count=data.attachment_count or 0,
        card_metadata=data.card_metadata or {},
    )
    collections.kanban_cards.add(card)
    session.commit()
    session.refresh(card)

    logger.info(f"Kanban card {card.id} created in '{card.column_key}' by {actor or SYSTEM_ACTOR}")
    return card.to_public()


# Fields a card update may set; column and position change only through moves
UPDATABLE_FIELDS = (
    "project_id",
    "title",
    "tags",
    "priority",
    "budget",
    "tasks",
    "due_date",
    "team_members",
    "chat_count",
    "attachment_count",
    "card_metadata",
)


def update_card(session: Session, company_id: str, card_id: Any, data: KanbanCardData) -> dict:
    collections = resolve(session, company_id)
    board, _ = _board(collections)
    card = _card(collections, board, card_id)

    sent = data.model_fields_set
    for field in UPDATABLE_FIELDS:
        if field in sent:
            value = getattr(data, field)
            if field == "due_date" and value is not None:
                value = to_naive_utc(value)
            setattr(card, field, value)
    card.updated_at = utcnow()

    session.add(card)
    session.commit()
    session.refresh(card)

    logger.info(f"Kanban card {card.id} updated: {sorted(sent & set(UPDATABLE_FIELDS))}")
    return card.to_public()


def delete_card(session: Session, company_id: str, card_id: Any) -> dict:
    collections = resolve(session, company_id)
    board, _ = _board(collections)
    card = _card(collections, board, card_id)

    deleted_id = card.id
    collections.kanban_cards.delete(KanbanCard.id == deleted_id)
    session.commit()

    logger.info(f"Kanban card {deleted_id} deleted")
    return {"cardId": deleted_id}


def update_card_stage(
    session: Session, company_id: str, move: KanbanStageMove, actor: Optional[str] = None
) -> dict:
    if not move.card_id or not move.destination_key:
        raise ValidationError("Card ID and destination column are required")
    collections = resolve(session, company_id)
    board, columns = _board(collections)
    column = _column(columns, move.destination_key)
    card = _card(collections, board, move.card_id)

    position = move.order if move.order is not None else _now_ms()
    _move(card, column, position, actor, reason=move.reason)
    session.add(card)
    session.commit()
    session.refresh(card)

    logger.info(f"Kanban card {card.id} moved to '{column.key}'")
    return card.to_public()


def bulk_update_card_stage(
    session: Session, company_id: str, move: KanbanBulkStageMove, actor: Optional[str] = None
) -> list[dict]:
    """Move several cards into one column; positions count up from ``startingOrder``."""
    if not move.card_ids or not move.destination_key:
        raise ValidationError("Card IDs and destination column are required")
    collections = resolve(session, company_id)
    board, columns = _board(collections)
    column = _column(columns, move.destination_key)

    card_ids = [normalize_id(card_id, "card ID") for card_id in move.card_ids]
    cards = collections.kanban_cards.find(
        KanbanCard.id.in_(card_ids), KanbanCard.board_id == board.id, order_by=KanbanCard.id
    )
    by_id = {card.id: card for card in cards}

    position = move.starting_order if move.starting_order is not None else _now_ms()
    moved = []
    for card_id in dict.fromkeys(card_ids):
        card = by_id.get(card_id)
        if card is None:
            continue
        _move(card, column, position, actor)
        session.add(card)
        moved.append(card)
        position += 1
    session.commit()

    logger.info(f"{len(moved)} kanban cards moved to '{column.key}'")
    return [card.to_public() for card in moved]


def reorder_column_cards(session: Session, company_id: str, reorder: KanbanReorder) -> dict:
    """Positions follow the given id order; ids not on the board are skipped."""
    if not reorder.column_key or not reorder.ordered_card_ids:
        raise ValidationError("Column key and ordered card IDs are required")
    collections = resolve(session, company_id)
    board, _ = _board(collections)

    now = utcnow()
    for position, card_id in enumerate(reorder.ordered_card_ids):
        collections.kanban_cards.update(
            (KanbanCard.id == normalize_id(card_id, "card ID"), KanbanCard.board_id == board.id),
            {"position": position, "updated_at": now},
        )
    session.commit()

    logger.info(
        f"Reordered {len(reorder.ordered_card_ids)} cards in column '{reorder.column_key}'"
    )
    return {"done": True}


def save_column_configuration(
    session: Session, company_id: str, columns: Optional[list[dict]]
) -> list[dict]:
    """Relabel, recolour and reorder existing columns; missing ``order`` falls back to list index."""
    if not columns:
        raise ValidationError("Columns payload is required")
    collections = resolve(session, company_id)
    board, _ = _board(collections)

    now = utcnow()
    for index, column in enumerate(columns):
        if not isinstance(column, dict):
            raise ValidationError("Invalid column configuration")
        order = column.get("order")
        values = {
            "label": column.get("label"),
            "color": column.get("color"),
            "position": order if isinstance(order, int) and not isinstance(order, bool) else index,
            "updated_at": now,
        }
        collections.kanban_columns.update(
            (
                KanbanColumn.id == normalize_id(column.get("_id"), "column ID"),
                KanbanColumn.board_id == board.id,
            ),
            {key: value for key, value in values.items() if value is not None},
        )
    session.commit()

    logger.info(f"Kanban columns saved for board {board.id}")
    return [
        c.to_public()
        for c in collections.kanban_columns.find(
            KanbanColumn.board_id == board.id, order_by=KanbanColumn.position
        )
    ]
