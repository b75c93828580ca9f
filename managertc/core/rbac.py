"""
RBAC (Role-Based Access Control) utilities for the manageRTC backend.

One declarative table maps roles to capabilities; every HTTP route and socket
handler checks the same table:
- superadmin / admin: everything inside their company
- hr: people, organisation structure, recruitment, project notes and the kanban board
- manager: read access, project notes and performance reviews
- leads: read access, project notes and the kanban board
- employee: read-only access to what is shared with everyone

Employee-record rules (who may view or edit whose record, and which fields)
sit on top of the capability table.
"""

from typing import Optional

from managertc.core.exceptions import ForbiddenError
from managertc.core.logging import get_logger

logger = get_logger(__name__)

# Seniority, used for employee-record checks
ROLE_HIERARCHY = {
    "superadmin": 6,
    "admin": 5,
    "hr": 4,
    "manager": 3,
    "leads": 2,
    "employee": 1,
    "guest": 0,
}

MANAGE_DEPARTMENTS = "manage_departments"
VIEW_DEPARTMENTS = "view_departments"
MANAGE_POLICIES = "manage_policies"
VIEW_POLICIES = "view_policies"
MANAGE_HOLIDAYS = "manage_holidays"
VIEW_HOLIDAYS = "view_holidays"
MANAGE_EMPLOYEES = "manage_employees"
VIEW_EMPLOYEES = "view_employees"
MANAGE_JOBS = "manage_jobs"
VIEW_JOBS = "view_jobs"
MANAGE_INVOICES = "manage_invoices"
VIEW_INVOICES = "view_invoices"
MANAGE_NOTES = "manage_notes"
VIEW_NOTES = "view_notes"
MANAGE_PERFORMANCE_REVIEWS = "manage_performance_reviews"
DELETE_PERFORMANCE_REVIEWS = "delete_performance_reviews"
VIEW_PERFORMANCE_REVIEWS = "view_performance_reviews"
USE_KANBAN = "use_kanban"

_READ_ALL = {
    VIEW_DEPARTMENTS,
    VIEW_POLICIES,
    VIEW_HOLIDAYS,
    VIEW_JOBS,
    VIEW_PERFORMANCE_REVIEWS,
}

_ADMIN = _READ_ALL | {
    MANAGE_DEPARTMENTS,
    MANAGE_POLICIES,
    MANAGE_HOLIDAYS,
    MANAGE_EMPLOYEES,
    VIEW_EMPLOYEES,
    MANAGE_JOBS,
    MANAGE_INVOICES,
    VIEW_INVOICES,
    MANAGE_NOTES,
    VIEW_NOTES,
    MANAGE_PERFORMANCE_REVIEWS,
    DELETE_PERFORMANCE_REVIEWS,
    USE_KANBAN,
}

ROLE_CAPABILITIES: dict[str, set[str]] = {
    "superadmin": set(_ADMIN),
    "admin": set(_ADMIN),
    "hr": _READ_ALL
    | {
        MANAGE_DEPARTMENTS,
        MANAGE_POLICIES,
        MANAGE_HOLIDAYS,
        MANAGE_EMPLOYEES,
        VIEW_EMPLOYEES,
        MANAGE_JOBS,
        VIEW_INVOICES,
        MANAGE_NOTES,
        VIEW_NOTES,
        USE_KANBAN,
    },
    "manager": _READ_ALL | {VIEW_EMPLOYEES, VIEW_NOTES, MANAGE_PERFORMANCE_REVIEWS},
    "leads": _READ_ALL | {VIEW_EMPLOYEES, VIEW_NOTES, USE_KANBAN},
    "employee": set(_READ_ALL),
    "guest": set(),
}

# Roles that may edit HR fields on someone else's record
HR_ROLES = {"superadmin", "admin", "hr"}
COMPANY_ADMINS = {"superadmin", "admin"}

SELF_SERVICE_FIELDS = {"phone", "bank_account_number"}
HR_MANAGED_FIELDS = {
    "first_name",
    "last_name",
    "email",
    "role",
    "status",
    "department_id",
    "designation_id",
    "salary",
    "salary_currency",
}
PRIVATE_EMPLOYEE_KEYS = ("bankAccountNumber", "salary", "salaryCurrency")


def normalize_role(role: Optional[str]) -> str:
    """Lower-case the role; unknown roles collapse onto guest."""
    if not role:
        return "guest"
    role = str(role).strip().lower()
    return role if role in ROLE_HIERARCHY else "guest"


def get_role_level(role: Optional[str]) -> int:
    return ROLE_HIERARCHY[normalize_role(role)]


def get_highest_role(roles: list[str]) -> str:
    """Most senior of ``roles``; guest when the list is empty or unrecognised."""
    return max((normalize_role(r) for r in roles or []), key=get_role_level, default="guest")


def has_capability(role: Optional[str], capability: str) -> bool:
    return capability in ROLE_CAPABILITIES.get(normalize_role(role), set())


def authorize(role: Optional[str], capability: str) -> None:
    """Raise ForbiddenError unless ``role`` carries ``capability``."""
    if not has_capability(role, capability):
        logger.warning(f"Role '{role}' denied capability '{capability}'")
        raise ForbiddenError("Insufficient permissions")


def ensure_same_tenant(
    identity_company_id: Optional[str], requested_company_id: Optional[str]
) -> None:
    if str(identity_company_id) != str(requested_company_id):
        logger.warning(
            f"Tenant mismatch: identity {identity_company_id}, "
            f"requested {requested_company_id}"
        )
        raise ForbiddenError("Unauthorized: Company ID mismatch")


def _outranks(actor_role: str, target_role: str) -> bool:
    """Company admins reach every record; everyone else only strictly junior roles."""
    if actor_role in COMPANY_ADMINS:
        return True
    return get_role_level(target_role) < get_role_level(actor_role)


def can_view_employee(actor_role: str, target_employee_role: str) -> bool:
    """
    Whether ``actor_role`` may open someone else's record.

    Own-record access is decided by the caller, not here.
    """
    actor_role = normalize_role(actor_role)
    return has_capability(actor_role, VIEW_EMPLOYEES) and _outranks(
        actor_role, target_employee_role
    )


def can_update_employee(
    actor_role: str,
    target_employee_role: str,
    is_own_record: bool = False,
) -> bool:
    if is_own_record:
        return True
    actor_role = normalize_role(actor_role)
    return actor_role in HR_ROLES and _outranks(actor_role, target_employee_role)


def can_delete_employee(actor_role: str, target_employee_role: str) -> bool:
    return can_update_employee(actor_role, target_employee_role)


def get_allowed_fields_for_update(
    actor_role: str, is_own_record: bool = False
) -> set[str]:
    """Column names ``actor_role`` may write: contact fields on one's own record, placement and pay for HR."""
    if normalize_role(actor_role) in HR_ROLES:
        return SELF_SERVICE_FIELDS | HR_MANAGED_FIELDS
    return set(SELF_SERVICE_FIELDS) if is_own_record else set()


def filter_employee_data(
    employee_data: dict,
    actor_role: str,
    is_own_record: bool = False,
) -> dict:
    """Copy of a public employee dict without pay and bank details unless HR or self."""
    if is_own_record or normalize_role(actor_role) in HR_ROLES:
        return dict(employee_data)
    return {k: v for k, v in employee_data.items() if k not in PRIVATE_EMPLOYEE_KEYS}
