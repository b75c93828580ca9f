"""
Tenant collection resolver.

Every tenant-owned table carries a ``company_id`` column. ``resolve`` binds a
session and a company id into a ``TenantCollections`` object whose handles
never read or write outside that company.
"""

import re
from typing import Any, Optional, Type

from sqlalchemy import delete as sa_delete
from sqlalchemy import func
from sqlalchemy import update as sa_update
from sqlmodel import Session, SQLModel, select

from managertc.core.exceptions import ValidationError

COMPANY_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{3,50}$")


def validate_company_id(company_id: Optional[str]) -> str:
    if not company_id:
        raise ValidationError("Company ID is required")
    if not COMPANY_ID_PATTERN.match(str(company_id)):
        raise ValidationError("Invalid company ID format")
    return str(company_id)


def normalize_id(value: Any, label: str = "ID") -> int:
    """Coerce an incoming identifier onto the canonical integer id."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"Invalid {label} format")
    if isinstance(value, int):
        if value <= 0:
            raise ValidationError(f"Invalid {label} format")
        return value
    text = str(value).strip()
    if not text.isdigit() or int(text) == 0:
        raise ValidationError(f"Invalid {label} format")
    return int(text)


class TenantCollection:
    """One table seen through a single company."""

    def __init__(self, session: Session, model: Type[SQLModel], company_id: str):
        self.session = session
        self.model = model
        self.company_id = company_id

    def _scoped(self, *where):
        return (self.model.company_id == self.company_id, *where)

    def select(self, *where):
        return select(self.model).where(*self._scoped(*where))

    def find(self, *where, order_by=None) -> list:
        statement = self.select(*where)
        if order_by is not None:
            statement = statement.order_by(order_by)
        return list(self.session.exec(statement).all())

    def find_one(self, *where):
        return self.session.exec(self.select(*where)).first()

    def get(self, record_id: int):
        return self.find_one(self.model.id == record_id)

    def count(self, *where) -> int:
        statement = (
            select(func.count()).select_from(self.model).where(*self._scoped(*where))
        )
        return self.session.exec(statement).one()

    def add(self, record):
        record.company_id = self.company_id
        self.session.add(record)
        return record

    def update(self, where: tuple, values: dict) -> int:
        statement = (
            sa_update(self.model)
            .where(*self._scoped(*where))
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        return self.session.exec(statement).rowcount

    def delete(self, *where) -> int:
        statement = (
            sa_delete(self.model)
            .where(*self._scoped(*where))
            .execution_options(synchronize_session="fetch")
        )
        return self.session.exec(statement).rowcount


class TenantCollections:
    """Named handles for one company's tables."""

    def __init__(self, session: Session, company_id: str):
        # Imported here so the models package can import core helpers freely.
        from managertc.models import (
            AddInvoice,
            Department,
            Designation,
            Employee,
            Holiday,
            HolidayType,
            Job,
            KanbanBoard,
            KanbanCard,
            KanbanColumn,
            PerformanceReview,
            Policy,
            PolicyAssignment,
            ProjectNote,
        )

        self.session = session
        self.company_id = company_id
        self.departments = TenantCollection(session, Department, company_id)
        self.employees = TenantCollection(session, Employee, company_id)
        self.designations = TenantCollection(session, Designation, company_id)
        self.policy = TenantCollection(session, Policy, company_id)
        self.policy_assignments = TenantCollection(session, PolicyAssignment, company_id)
        self.holiday_types = TenantCollection(session, HolidayType, company_id)
        self.holidays = TenantCollection(session, Holiday, company_id)
        self.jobs = TenantCollection(session, Job, company_id)
        self.add_invoices = TenantCollection(session, AddInvoice, company_id)
        self.project_notes = TenantCollection(session, ProjectNote, company_id)
        self.performance_reviews = TenantCollection(session, PerformanceReview, company_id)
        self.kanban_boards = TenantCollection(session, KanbanBoard, company_id)
        self.kanban_columns = TenantCollection(session, KanbanColumn, company_id)
        self.kanban_cards = TenantCollection(session, KanbanCard, company_id)


def resolve(session: Session, company_id: Optional[str]) -> TenantCollections:
    return TenantCollections(session, validate_company_id(company_id))
