"""
Policy API endpoints.

Policies apply either to the whole company or to specific departments (and
optionally designations inside them). Create, update and delete publish a
policy event.
"""

from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from managertc.api.dependencies import CompanyIdDep, SessionDep, require_capability
from managertc.core.events import EventType, PolicyEvent, create_event
from managertc.core.kafka import publish_event
from managertc.core.logging import get_logger
from managertc.core.rbac import MANAGE_POLICIES, VIEW_POLICIES
from managertc.core.security import TokenData
from managertc.core.topics import KafkaTopics
from managertc.models import PolicyCreate, PolicyFilters, PolicyUpdate, ok
from managertc.services import policies as policy_service

logger = get_logger(__name__)

router = APIRouter(
    prefix="/policies",
    tags=["policies"],
    responses={404: {"description": "Policy not found"}},
)

ViewerDep = Annotated[TokenData, Depends(require_capability(VIEW_POLICIES))]
ManagerDep = Annotated[TokenData, Depends(require_capability(MANAGE_POLICIES))]


def _policy_event(company_id: str, policy: dict) -> PolicyEvent:
    return PolicyEvent(
        company_id=company_id,
        policy_id=policy["_id"],
        policy_name=policy["policyName"],
        apply_to_all=policy["applyToAll"],
        effective_date=policy["effectiveDate"],
        department_ids=[item["departmentId"] for item in policy["assignTo"]],
    )


@router.get("/")
async def list_policies(
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ViewerDep,
    department: Optional[str] = None,
    start_date: Annotated[Optional[datetime], Query(alias="startDate")] = None,
    end_date: Annotated[Optional[datetime], Query(alias="endDate")] = None,
):
    filters = PolicyFilters(department=department, startDate=start_date, endDate=end_date)
    policies = policy_service.list_policies(session, company_id, filters)
    return ok(policies, totalCount=len(policies))


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_policy(
    payload: PolicyCreate,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ManagerDep,
):
    result = policy_service.create(session, company_id, current_user.sub, payload)

    event = create_event(
        EventType.POLICY_CREATED,
        _policy_event(company_id, result),
        actor_user_id=current_user.sub,
        actor_role=current_user.role,
    )
    await publish_event(KafkaTopics.POLICY_CREATED, event)

    return ok(result, message="Policy created successfully")


@router.put("/{policy_id}")
async def update_policy(
    policy_id: str,
    payload: PolicyUpdate,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ManagerDep,
):
    payload.policy_id = policy_id
    result = policy_service.update(session, company_id, current_user.sub, payload)

    event = create_event(
        EventType.POLICY_UPDATED,
        _policy_event(company_id, result),
        actor_user_id=current_user.sub,
        actor_role=current_user.role,
    )
    await publish_event(KafkaTopics.POLICY_UPDATED, event)

    return ok(result, message="Policy updated successfully")


@router.delete("/{policy_id}")
async def delete_policy(
    policy_id: str,
    session: SessionDep,
    company_id: CompanyIdDep,
    current_user: ManagerDep,
):
    result = policy_service.delete(session, company_id, policy_id)

    event = create_event(
        EventType.POLICY_DELETED,
        PolicyEvent(
            company_id=company_id,
            policy_id=result["policyId"],
            policy_name=result["policyName"],
            apply_to_all=result["applyToAll"],
            department_ids=result["departmentIds"],
        ),
        actor_user_id=current_user.sub,
        actor_role=current_user.role,
    )
    await publish_event(KafkaTopics.POLICY_DELETED, event)

    return ok(result, message="Policy deleted successfully")
