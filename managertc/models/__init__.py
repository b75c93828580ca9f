"""
manageRTC Models.

Exports all model classes for easy importing.
"""

from managertc.models.department import (
    Department,
    DepartmentCreate,
    DepartmentReassign,
    DepartmentStatus,
    DepartmentUpdate,
    Designation,
    DesignationCreate,
    DesignationReassign,
    DesignationUpdate,
    name_key,
    normalize_status,
    parse_status,
)
from managertc.models.employee import Employee, EmployeeCreate, EmployeeUpdate
from managertc.models.envelope import Envelope, ok
from managertc.models.holiday import (
    DEFAULT_HOLIDAY_TYPES,
    Holiday,
    HolidayCreate,
    HolidayType,
    HolidayTypeCreate,
    HolidayTypeUpdate,
)
from managertc.models.invoice import INVOICE_FIELDS, AddInvoice
from managertc.models.job import (
    Job,
    JobBulkDelete,
    JobCategory,
    JobCreate,
    JobExportRequest,
    JobFilters,
    JobLevel,
    JobStatus,
    JobStatusUpdate,
    JobType,
)
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
from managertc.models.note import (
    NotePriority,
    ProjectNote,
    ProjectNoteCreate,
    ProjectNoteFilters,
    ProjectNoteUpdate,
)
from managertc.models.performance_review import (
    PerformanceReview,
    PerformanceReviewCreate,
    PerformanceReviewFilters,
    PerformanceReviewUpdate,
    ReviewStatus,
)
from managertc.models.policy import (
    Policy,
    PolicyAssignment,
    PolicyCreate,
    PolicyFilters,
    PolicyUpdate,
)

__all__ = [
    # Database Models
    "AddInvoice",
    "Department",
    "Designation",
    "Employee",
    "Holiday",
    "HolidayType",
    "Job",
    "KanbanBoard",
    "KanbanCard",
    "KanbanColumn",
    "PerformanceReview",
    "Policy",
    "PolicyAssignment",
    "ProjectNote",
    # Enums and constants
    "DepartmentStatus",
    "JobCategory",
    "JobLevel",
    "JobStatus",
    "JobType",
    "NotePriority",
    "ReviewStatus",
    "DEFAULT_KANBAN_COLUMNS",
    "DEFAULT_HOLIDAY_TYPES",
    "INVOICE_FIELDS",
    "normalize_status",
    "parse_status",
    "name_key",
    "normalize_stage_key",
    # Request Schemas
    "DepartmentCreate",
    "DepartmentUpdate",
    "DepartmentReassign",
    "DesignationCreate",
    "DesignationUpdate",
    "DesignationReassign",
    "EmployeeCreate",
    "EmployeeUpdate",
    "HolidayCreate",
    "HolidayTypeCreate",
    "HolidayTypeUpdate",
    "JobCreate",
    "JobFilters",
    "JobBulkDelete",
    "JobStatusUpdate",
    "JobExportRequest",
    "PolicyCreate",
    "PolicyUpdate",
    "PolicyFilters",
    "ProjectNoteCreate",
    "ProjectNoteUpdate",
    "ProjectNoteFilters",
    "PerformanceReviewCreate",
    "PerformanceReviewUpdate",
    "PerformanceReviewFilters",
    "KanbanCardData",
    "KanbanBoardFilters",
    "KanbanStageMove",
    "KanbanBulkStageMove",
    "KanbanReorder",
    # Envelope
    "Envelope",
    "ok",
]
