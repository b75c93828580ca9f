"""
Policy assignment.

A policy either applies to the whole company (``applyToAll``) or is targeted
at departments, each optionally narrowed to designations. Targets are stored
as canonical integer ids only; names are joined in at read time.
"""

from typing import Any, Optional

from sqlmodel import Session

from managertc.core.cache import (
    clear_tenant_cache,
    get_cache_key,
    get_from_cache,
    set_to_cache,
)
from managertc.core.exceptions import NotFoundError, ValidationError
from managertc.core.logging import get_logger
from managertc.core.tenancy import TenantCollections, normalize_id, resolve
from managertc.models.common import to_naive_utc, utcnow
from managertc.models.policy import (
    Policy,
    PolicyAssignment,
    PolicyCreate,
    PolicyFilters,
    PolicyUpdate,
)

logger = get_logger(__name__)

REQUIRED_TARGETED = (
    "Policy name, assign to (departments/designations), description and "
    "effective date are required"
)
REQUIRED_APPLY_TO_ALL = "Policy name, description and effective date are required"


def _validate(payload: PolicyCreate, require_future: bool) -> list[dict[str, Any]]:
    """Check a create/update payload and return normalised assignments."""
    apply_to_all = payload.apply_to_all is True
    assign_to = payload.assign_to or []

    if (
        not payload.policy_name
        or (not apply_to_all and len(assign_to) == 0)
        or payload.effective_date is None
        or not payload.policy_description
    ):
        raise ValidationError(REQUIRED_APPLY_TO_ALL if apply_to_all else REQUIRED_TARGETED)

    if require_future and to_naive_utc(payload.effective_date) <= utcnow():
        raise ValidationError("Effective date must be in the future")

    if apply_to_all and assign_to:
        raise ValidationError(
            "Cannot assign to specific departments when 'Apply to All' is enabled"
        )

    if apply_to_all:
        return []

    normalized = []
    try:
        for item in assign_to:
            if not isinstance(item, dict) or item.get("departmentId") in (None, ""):
                raise ValidationError("Each assignment must have a departmentId")
            designation_ids = item.get("designationIds") or []
            if not isinstance(designation_ids, list):
                raise ValidationError("designationIds must be a list")
            normalized.append(
                {
                    "departmentId": normalize_id(item["departmentId"], "department ID"),
                    "designationIds": [
                        normalize_id(value, "designation ID") for value in designation_ids
                    ],
                }
            )
    except ValidationError as e:
        raise ValidationError(f"Invalid ID format in assignTo: {e.message}") from None
    return normalized


def _write_assignments(
    collections: TenantCollections, policy_id: int, assignments: list[dict[str, Any]]
) -> None:
    collections.policy_assignments.delete(PolicyAssignment.policy_id == policy_id)
    for item in assignments:
        collections.policy_assignments.add(
            PolicyAssignment(
                company_id=collections.company_id,
                policy_id=policy_id,
                department_id=item["departmentId"],
                designation_ids=item["designationIds"],
            )
        )


def _assign_to(collections: TenantCollections, policy_id: int, names: dict) -> list[dict]:
    rows = collections.policy_assignments.find(
        PolicyAssignment.policy_id == policy_id, order_by=PolicyAssignment.id
    )
    return [
        {
            "departmentId": row.department_id,
            "departmentName": names.get(row.department_id, "Unknown"),
            "designationIds": list(row.designation_ids or []),
        }
        for row in rows
    ]


def create(
    session: Session, company_id: str, actor_id: Optional[str], payload: PolicyCreate
) -> dict:
    collections = resolve(session, company_id)
    assignments = _validate(payload, require_future=True)

    policy = Policy(
        company_id=company_id,
        policy_name=payload.policy_name,
        apply_to_all=payload.apply_to_all is True,
        policy_description=payload.policy_description,
        effective_date=to_naive_utc(payload.effective_date),
        created_by=actor_id,
    )
    collections.policy.add(policy)
    session.flush()
    _write_assignments(collections, policy.id, assignments)
    session.commit()
    session.refresh(policy)
    clear_tenant_cache("policies", "departments", company_id=company_id)

    logger.info(
        f"Policy created: {policy.id} - {policy.policy_name} "
        f"(applyToAll={policy.apply_to_all}, {len(assignments)} assignments)"
    )
    return policy.to_public(assign_to=assignments)


def list_policies(
    session: Session, company_id: str, filters: Optional[PolicyFilters] = None
) -> list[dict]:
    collections = resolve(session, company_id)
    filters = filters or PolicyFilters()

    cache_key = get_cache_key(
        "policies",
        company_id,
        f"{filters.department or 'all'}:{filters.start_date}:{filters.end_date}",
    )
    cached = get_from_cache(cache_key)
    if cached is not None:
        logger.info(f"Cache hit for policies of {company_id}")
        return cached

    where = []
    if filters.department:
        try:
            department_id = normalize_id(filters.department, "department ID")
        except ValidationError:
            raise ValidationError("Invalid department ID format") from None
        policy_ids = {
            row.policy_id
            for row in collections.policy_assignments.find(
                PolicyAssignment.department_id == department_id
            )
        }
        where.append(Policy.id.in_(list(policy_ids)))

    if filters.start_date and filters.end_date:
        where.append(Policy.created_at >= to_naive_utc(filters.start_date))
        where.append(Policy.created_at <= to_naive_utc(filters.end_date))

    policies = collections.policy.find(*where, order_by=Policy.effective_date.desc())
    names = {d.id: d.department for d in collections.departments.find()}
    result = [p.to_public(assign_to=_assign_to(collections, p.id, names)) for p in policies]

    set_to_cache(cache_key, result)
    return result


def update(
    session: Session, company_id: str, actor_id: Optional[str], payload: PolicyUpdate
) -> dict:
    collections = resolve(session, company_id)

    if payload.policy_id in (None, ""):
        raise ValidationError("Policy ID not found")
    assignments = _validate(payload, require_future=False)
    policy_id = normalize_id(payload.policy_id, "policy ID")

    policy = collections.policy.get(policy_id)
    if not policy:
        raise NotFoundError("Policy not found")

    policy.policy_name = payload.policy_name
    policy.apply_to_all = payload.apply_to_all is True
    policy.policy_description = payload.policy_description
    policy.effective_date = to_naive_utc(payload.effective_date)
    policy.updated_by = actor_id
    policy.updated_at = utcnow()
    session.add(policy)
    _write_assignments(collections, policy.id, assignments)
    session.commit()
    session.refresh(policy)
    clear_tenant_cache("policies", "departments", company_id=company_id)

    logger.info(f"Policy {policy.id} updated")
    return policy.to_public(assign_to=assignments)


def delete(session: Session, company_id: str, policy_id) -> dict:
    collections = resolve(session, company_id)
    policy_id = normalize_id(policy_id, "policy ID")

    policy = collections.policy.get(policy_id)
    if not policy:
        raise NotFoundError("Policy not found")

    deleted = {
        "policyId": policy_id,
        "policyName": policy.policy_name,
        "applyToAll": policy.apply_to_all,
    }
    department_ids = [
        row.department_id
        for row in collections.policy_assignments.find(
            PolicyAssignment.policy_id == policy_id
        )
    ]
    collections.policy_assignments.delete(PolicyAssignment.policy_id == policy_id)
    collections.policy.delete(Policy.id == policy_id)
    session.commit()
    clear_tenant_cache("policies", "departments", company_id=company_id)

    logger.info(f"Policy {policy_id} deleted")
    return {**deleted, "departmentIds": department_ids}
