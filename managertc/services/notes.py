from typing import Any, Optional

from sqlalchemy import String, cast, func, or_
from sqlmodel import Session

from managertc.core.exceptions import NotFoundError, ValidationError
from managertc.core.logging import get_logger
from managertc.core.tenancy import TenantCollections, normalize_id, resolve
from managertc.models.common import utcnow
from managertc.models.note import (
    NotePriority,
    ProjectNote,
    ProjectNoteCreate,
    ProjectNoteFilters,
    ProjectNoteUpdate,
)

logger = get_logger(__name__)

SORT_COLUMNS = {
    "createdAt": ProjectNote.created_at,
    "updatedAt": ProjectNote.updated_at,
    "title": ProjectNote.title,
    "priority": ProjectNote.priority,
}

PRIORITIES = [p.value for p in NotePriority]


def _check_priority(priority: Optional[str]) -> None:
    if priority is not None and priority not in PRIORITIES:
        raise ValidationError(f"Invalid priority: {priority}")


def _require(collections: TenantCollections, note_id: Any) -> ProjectNote:
    note_id = normalize_id(note_id, "note ID")
    note = collections.project_notes.find_one(
        ProjectNote.id == note_id, ProjectNote.is_deleted == False  # noqa: E712
    )
    if not note:
        raise NotFoundError("Project note not found")
    return note


def create(
    session: Session, company_id: str, created_by: str, payload: ProjectNoteCreate
) -> dict:
    collections = resolve(session, company_id)

    if not payload.title or not payload.content or not payload.project_id:
        raise ValidationError("Title, content, and projectId are required")
    _check_priority(payload.priority)

    note = ProjectNote(
        company_id=company_id,
        project_id=payload.project_id,
        title=payload.title.strip(),
        content=payload.content,
        priority=payload.priority or NotePriority.MEDIUM.value,
        tags=payload.tags or [],
        created_by=created_by,
    )
    collections.project_notes.add(note)
    session.commit()
    session.refresh(note)

    logger.info(f"Project note created: {note.id} on project {note.project_id}")
    return note.to_public()


def list_notes(
    session: Session,
    company_id: str,
    project_id: Optional[str],
    filters: Optional[ProjectNoteFilters] = None,
) -> dict:
    """
    Notes of one project, newest first unless ``sortBy`` says otherwise.

    Search matches title, content and tags case-insensitively.

    Returns:
        ``{"notes": [...], "totalCount": n}`` where the count ignores paging
    """
    if not project_id:
        raise ValidationError("projectId is required")
    collections = resolve(session, company_id)
    filters = filters or ProjectNoteFilters()

    where = [
        ProjectNote.project_id == str(project_id),
        ProjectNote.is_deleted == False,  # noqa: E712
    ]
    if filters.priority and filters.priority != "all":
        where.append(ProjectNote.priority == filters.priority)
    if filters.search:
        pattern = f"%{filters.search.strip().lower()}%"
        where.append(
            or_(
                func.lower(ProjectNote.title).like(pattern),
                func.lower(ProjectNote.content).like(pattern),
                func.lower(cast(ProjectNote.tags, String)).like(pattern),
            )
        )

    if filters.sort_by:
        column = SORT_COLUMNS.get(filters.sort_by, ProjectNote.created_at)
        order = column.desc() if filters.sort_order == "desc" else column.asc()
    else:
        order = ProjectNote.created_at.desc()

    total = collections.project_notes.count(*where)
    statement = (
        collections.project_notes.select(*where)
        .order_by(order)
        .offset(filters.skip)
        .limit(filters.limit)
    )
    notes = session.exec(statement).all()
    return {"notes": [n.to_public() for n in notes], "totalCount": total}


def get(session: Session, company_id: str, note_id: Any) -> dict:
    return _require(resolve(session, company_id), note_id).to_public()


def update(
    session: Session, company_id: str, note_id: Any, payload: ProjectNoteUpdate
) -> dict:
    collections = resolve(session, company_id)
    note = _require(collections, note_id)

    values = payload.model_dump(exclude_unset=True, exclude_none=True)
    _check_priority(values.get("priority"))
    for key, value in values.items():
        setattr(note, key, value)
    note.updated_at = utcnow()

    session.add(note)
    session.commit()
    session.refresh(note)

    logger.info(f"Project note {note.id} updated: {sorted(values)}")
    return note.to_public()


def delete(session: Session, company_id: str, note_id: Any) -> dict:
    collections = resolve(session, company_id)
    note = _require(collections, note_id)

    note.is_deleted = True
    note.updated_at = utcnow()
    session.add(note)
    session.commit()

    logger.info(f"Project note {note.id} deleted")
    return note.to_public()
