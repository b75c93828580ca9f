from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import select

from managertc.core.exceptions import NotFoundError, ValidationError
from managertc.models import PolicyAssignment, PolicyCreate, PolicyFilters, PolicyUpdate
from managertc.services import policies as policy_service
from tests.conftest import COMPANY


def in_days(days: int) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


def targeted(department_id, designation_ids=None, **overrides) -> PolicyCreate:
    values = {
        "policyName": "Remote work",
        "policyDescription": "Up to three remote days per week",
        "effectiveDate": in_days(7),
        "assignTo": [{"departmentId": department_id, "designationIds": designation_ids or []}],
    }
    values.update(overrides)
    return PolicyCreate(**values)


class TestCreate:
    def test_targeted_policy(self, session, seed):
        engineering = seed.department("Engineering")
        lead = seed.designation("Lead", engineering)

        result = policy_service.create(
            session, COMPANY, "user_1", targeted(str(engineering.id), [str(lead.id)])
        )

        assert result["applyToAll"] is False
        assert result["assignTo"] == [
            {"departmentId": engineering.id, "designationIds": [lead.id]}
        ]
        row = session.exec(select(PolicyAssignment)).one()
        assert row.designation_ids == [lead.id]

    def test_apply_to_all_needs_no_targets(self, session):
        result = policy_service.create(
            session,
            COMPANY,
            None,
            PolicyCreate(
                policyName="Code of conduct",
                policyDescription="Be kind",
                applyToAll=True,
                effectiveDate=in_days(1),
            ),
        )

        assert result["applyToAll"] is True
        assert result["assignTo"] == []

    def test_targeted_requires_assignments(self, session):
        with pytest.raises(ValidationError, match="assign to"):
            policy_service.create(session, COMPANY, None, targeted(1, assignTo=[]))

    def test_apply_to_all_message(self, session):
        with pytest.raises(ValidationError) as exc:
            policy_service.create(
                session, COMPANY, None, PolicyCreate(policyName="X", applyToAll=True)
            )
        assert exc.value.message == "Policy name, description and effective date are required"

    def test_effective_date_must_be_future(self, session, seed):
        engineering = seed.department("Engineering")

        with pytest.raises(ValidationError, match="Effective date must be in the future"):
            policy_service.create(
                session, COMPANY, None, targeted(engineering.id, effectiveDate=in_days(-1))
            )

    def test_apply_to_all_with_targets_rejected(self, session, seed):
        engineering = seed.department("Engineering")

        with pytest.raises(ValidationError, match="Apply to All"):
            policy_service.create(
                session, COMPANY, None, targeted(engineering.id, applyToAll=True)
            )

    def test_malformed_target_ids(self, session):
        with pytest.raises(ValidationError, match="Invalid ID format in assignTo"):
            policy_service.create(session, COMPANY, None, targeted("engineering"))

        with pytest.raises(ValidationError, match="Invalid ID format in assignTo"):
            policy_service.create(session, COMPANY, None, targeted(1, ["lead"]))


class TestList:
    def test_names_joined_at_read_time(self, session, seed):
        engineering = seed.department("Engineering")
        seed.policy("Remote work", engineering)

        [policy] = policy_service.list_policies(session, COMPANY)

        assert policy["assignTo"][0]["departmentName"] == "Engineering"

    def test_department_filter(self, session, seed):
        engineering = seed.department("Engineering")
        sales = seed.department("Sales")
        seed.policy("Remote work", engineering)
        seed.policy("Commission", sales)

        result = policy_service.list_policies(
            session, COMPANY, PolicyFilters(department=str(sales.id))
        )

        assert [p["policyName"] for p in result] == ["Commission"]

    def test_date_range_filter(self, session, seed):
        seed.policy("Remote work", seed.department("Engineering"))

        past = policy_service.list_policies(
            session, COMPANY, PolicyFilters(startDate=in_days(-30), endDate=in_days(-10))
        )
        current = policy_service.list_policies(
            session, COMPANY, PolicyFilters(startDate=in_days(-1), endDate=in_days(1))
        )

        assert past == []
        assert len(current) == 1

    def test_bad_department_filter(self, session):
        with pytest.raises(ValidationError, match="Invalid department ID format"):
            policy_service.list_policies(session, COMPANY, PolicyFilters(department="x"))


class TestUpdateDelete:
    def test_update_replaces_assignments(self, session, seed):
        engineering = seed.department("Engineering")
        sales = seed.department("Sales")
        policy = seed.policy("Remote work", engineering)
        sales_id = sales.id

        result = policy_service.update(
            session,
            COMPANY,
            "user_1",
            PolicyUpdate(
                policyId=policy.id,
                policyName="Hybrid work",
                policyDescription="Two office days",
                effectiveDate=in_days(-1),
                assignTo=[{"departmentId": sales_id}],
            ),
        )

        assert result["policyName"] == "Hybrid work"
        assert [a.department_id for a in session.exec(select(PolicyAssignment)).all()] == [
            sales_id
        ]

    def test_update_missing_policy(self, session):
        with pytest.raises(NotFoundError):
            policy_service.update(
                session,
                COMPANY,
                None,
                PolicyUpdate(
                    policyId=7,
                    policyName="X",
                    policyDescription="Y",
                    applyToAll=True,
                    effectiveDate=in_days(1),
                ),
            )

    def test_update_requires_id(self, session):
        with pytest.raises(ValidationError, match="Policy ID not found"):
            policy_service.update(session, COMPANY, None, PolicyUpdate(policyName="X"))

    def test_delete_removes_assignments(self, session, seed):
        engineering = seed.department("Engineering")
        policy = seed.policy("Remote work", engineering)
        policy_id, engineering_id = policy.id, engineering.id

        result = policy_service.delete(session, COMPANY, policy_id)

        assert result == {
            "policyId": policy_id,
            "policyName": "Remote work",
            "applyToAll": False,
            "departmentIds": [engineering_id],
        }
        assert session.exec(select(PolicyAssignment)).all() == []


class TestHttp:
    def test_create_and_list(self, client, seed):
        engineering = seed.department("Engineering")

        created = client.post(
            "/api/policies/",
            json={
                "policyName": "Remote work",
                "policyDescription": "Up to three remote days",
                "effectiveDate": in_days(5).isoformat(),
                "assignTo": [{"departmentId": engineering.id, "designationIds": []}],
            },
        )
        listed = client.get("/api/policies/", params={"department": engineering.id})

        assert created.status_code == 201
        assert listed.json()["totalCount"] == 1

    def test_targeted_policy_without_targets_is_rejected(self, client, session):
        response = client.post(
            "/api/policies/",
            json={
                "policyName": "Remote work",
                "policyDescription": "Up to three remote days",
                "effectiveDate": in_days(5).isoformat(),
                "applyToAll": False,
                "assignTo": [],
            },
        )

        assert response.status_code == 400
        assert response.json() == {
            "done": False,
            "error": policy_service.REQUIRED_TARGETED,
        }
        assert session.exec(select(PolicyAssignment)).all() == []

    def test_bad_date_query_is_400(self, client):
        response = client.get("/api/policies/", params={"startDate": "yesterday"})

        assert response.status_code == 400
        assert response.json()["done"] is False
        assert response.json()["error"].startswith("Invalid startDate")

    def test_employee_cannot_create(self, client, login):
        login(role="employee", sub="user_emp")

        response = client.post("/api/policies/", json={"policyName": "X"})

        assert response.status_code == 403
