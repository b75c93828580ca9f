from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField
from sqlalchemy import JSON, BigInteger, Column
from sqlmodel import Field, SQLModel

from managertc.models.common import iso, utcnow

DEFAULT_BOARD_NAME = "Kanban Board"
DEFAULT_BOARD_DESCRIPTION = "Default kanban board for task management"

# key, label, color; a new board gets these in this order
DEFAULT_KANBAN_COLUMNS = (
    ("new", "New", "#EC4899"),
    ("inprogress", "Inprogress", "#3B82F6"),
    ("on_hold", "On-hold", "#EF4444"),
    ("completed", "Completed", "#22C55E"),
)

STAGE_ALIASES = {
    "new": "new",
    "in progress": "inprogress",
    "inprogress": "inprogress",
    "in-progress": "inprogress",
    "on hold": "on_hold",
    "on_hold": "on_hold",
    "on-hold": "on_hold",
    "completed": "completed",
    "done": "completed",
    "finished": "completed",
}


def normalize_stage_key(stage: Optional[str]) -> str:
    """Map a free-text stage name onto a default column key; unknown is ``new``."""
    return STAGE_ALIASES.get((stage or "").strip().lower(), "new")


class KanbanBoard(SQLModel, table=True):
    __tablename__ = "kanban_boards"

    id: Optional[int] = Field(default=None, primary_key=True)
    # One board per company
    company_id: str = Field(max_length=50, unique=True)

    name: str = Field(default=DEFAULT_BOARD_NAME, max_length=255)
    description: str = Field(default=DEFAULT_BOARD_DESCRIPTION, max_length=1000)
    settings: dict = Field(
        default_factory=lambda: {"allowBulkDrag": True, "allowCustomColumns": True, "filters": {}},
        sa_column=Column(JSON),
    )

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_public(self) -> dict:
        return {
            "_id": self.id,
            "companyId": self.company_id,
            "name": self.name,
            "description": self.description,
            "settings": self.settings or {},
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


class KanbanColumn(SQLModel, table=True):
    __tablename__ = "kanban_columns"

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: str = Field(max_length=50, index=True)
    board_id: int = Field(foreign_key="kanban_boards.id", index=True)

    key: str = Field(max_length=50)
    label: str = Field(max_length=100)
    color: str = Field(default="#6B7280", max_length=20)
    position: int = Field(default=0)
    is_system: bool = Field(default=False)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_public(self) -> dict:
        return {
            "_id": self.id,
            "boardId": self.board_id,
            "key": self.key,
            "label": self.label,
            "color": self.color,
            "order": self.position,
            "isSystem": self.is_system,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


class KanbanCard(SQLModel, table=True):
    __tablename__ = "kanban_cards"

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: str = Field(max_length=50, index=True)
    board_id: int = Field(foreign_key="kanban_boards.id", index=True)
    column_id: Optional[int] = Field(default=None, foreign_key="kanban_columns.id")
    column_key: str = Field(max_length=50, index=True)
    # Millisecond timestamps are used as positions when the client sends none
    position: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, default=0))

    project_id: str = Field(default="", max_length=100)
    title: str = Field(default="Untitled Project", max_length=255)
    tags: list = Field(default_factory=list, sa_column=Column(JSON))
    priority: str = Field(default="Medium", max_length=10)
    budget: float = Field(default=0)
    tasks: dict = Field(
        default_factory=lambda: {"completed": 0, "total": 0}, sa_column=Column(JSON)
    )
    due_date: Optional[datetime] = Field(default=None)
    team_members: list = Field(default_factory=list, sa_column=Column(JSON))
    chat_count: int = Field(default=0)
    attachment_count: int = Field(default=0)
    history: list = Field(default_factory=list, sa_column=Column(JSON))
    card_metadata: dict = Field(default_factory=dict, sa_column=Column("metadata", JSON))

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_public(self) -> dict:
        return {
            "_id": self.id,
            "cardId": self.id,
            "boardId": self.board_id,
            "columnId": self.column_id,
            "columnKey": self.column_key,
            "order": self.position,
            "projectId": self.project_id or "",
            "title": self.title or "Untitled Project",
            "tags": self.tags or [],
            "priority": self.priority or "Medium",
            "budget": self.budget or 0,
            "tasks": self.tasks or {"completed": 0, "total": 0},
            "dueDate": iso(self.due_date),
            "teamMembers": self.team_members or [],
            "chatCount": self.chat_count or 0,
            "attachmentCount": self.attachment_count or 0,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
            "metadata": self.card_metadata or {},
            "history": self.history or [],
        }


# Request Schemas


class KanbanCardData(BaseModel):
    """Card fields as sent on create and update; unset keys are left alone on update."""

    model_config = ConfigDict(populate_by_name=True)

    column_key: Optional[str] = PydanticField(default=None, alias="columnKey")
    project_id: Optional[str] = PydanticField(default=None, alias="projectId")
    title: Optional[str] = None
    tags: Optional[list[str]] = None
    priority: Optional[str] = None
    budget: Optional[float] = None
    tasks: Optional[dict[str, Any]] = None
    due_date: Optional[datetime] = PydanticField(default=None, alias="dueDate")
    team_members: Optional[list[dict[str, Any]]] = PydanticField(
        default=None, alias="teamMembers"
    )
    chat_count: Optional[int] = PydanticField(default=None, alias="chatCount")
    attachment_count: Optional[int] = PydanticField(default=None, alias="attachmentCount")
    order: Optional[int] = None
    card_metadata: Optional[dict[str, Any]] = PydanticField(default=None, alias="metadata")


class DateRange(BaseModel):
    start: datetime
    end: datetime


class KanbanBoardFilters(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int = 1
    limit: int = 100
    column_keys: Optional[list[str]] = PydanticField(default=None, alias="columnKeys")
    priority: Optional[str] = None
    create_date: Optional[DateRange] = PydanticField(default=None, alias="createDate")
    due_date: Optional[DateRange] = PydanticField(default=None, alias="dueDate")
    client: Optional[str] = None
    status: Optional[str] = None
    search: Optional[str] = None
    sort_by: Optional[str] = PydanticField(default=None, alias="sortBy")


class KanbanStageMove(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    card_id: Optional[Any] = PydanticField(default=None, alias="cardId")
    destination_key: Optional[str] = PydanticField(default=None, alias="destinationKey")
    order: Optional[int] = None
    reason: Optional[str] = None


class KanbanBulkStageMove(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    card_ids: list[Any] = PydanticField(default_factory=list, alias="cardIds")
    destination_key: Optional[str] = PydanticField(default=None, alias="destinationKey")
    starting_order: Optional[int] = PydanticField(default=None, alias="startingOrder")


class KanbanReorder(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    column_key: Optional[str] = PydanticField(default=None, alias="columnKey")
    ordered_card_ids: list[Any] = PydanticField(default_factory=list, alias="orderedCardIds")
