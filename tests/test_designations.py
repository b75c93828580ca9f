import pytest
from sqlmodel import select

from managertc.core.exceptions import ConflictError, NotFoundError, ValidationError
from managertc.models import (
    DesignationCreate,
    DesignationReassign,
    DesignationUpdate,
    Employee,
    PolicyAssignment,
)
from managertc.services import designations as designation_service
from tests.conftest import COMPANY


def test_create_requires_name_and_department(session):
    with pytest.raises(ValidationError, match="Designation and department are required"):
        designation_service.create(session, COMPANY, None, DesignationCreate(designation="Lead"))


def test_create_under_unknown_department(session):
    with pytest.raises(NotFoundError, match="Department not found"):
        designation_service.create(
            session, COMPANY, None, DesignationCreate(designation="Lead", departmentId=42)
        )


def test_duplicate_is_per_department(session, seed):
    engineering = seed.department("Engineering")
    sales = seed.department("Sales")
    seed.designation("Lead", engineering)

    with pytest.raises(ConflictError):
        designation_service.create(
            session, COMPANY, None, DesignationCreate(designation="lead", departmentId=engineering.id)
        )

    created = designation_service.create(
        session, COMPANY, "user_1", DesignationCreate(designation="Lead", departmentId=sales.id)
    )
    assert created["departmentId"] == sales.id
    assert created["status"] == "Active"


def test_list_includes_department_name_and_counts(session, seed):
    engineering = seed.department("Engineering")
    lead = seed.designation("Lead", engineering)
    seed.designation("Intern", engineering, status="Inactive")
    seed.employee("ann@acme.io", engineering, lead)

    everything = designation_service.list_designations(session, COMPANY)
    active = designation_service.list_designations(
        session, COMPANY, department_id=str(engineering.id), status="active"
    )

    assert len(everything) == 2
    [item] = active
    assert item["designation"] == "Lead"
    assert item["department"] == "Engineering"
    assert item["employeeCount"] == 1


def test_list_rejects_malformed_department(session):
    with pytest.raises(ValidationError, match="Invalid department ID format"):
        designation_service.list_designations(session, COMPANY, department_id="abc")


def test_rename_cascades_to_employees(session, seed):
    engineering = seed.department("Engineering")
    lead = seed.designation("Lead", engineering)
    seed.employee("ann@acme.io", engineering, lead)

    result = designation_service.update(
        session,
        COMPANY,
        "user_1",
        DesignationUpdate(designationId=lead.id, designation="Tech Lead"),
    )

    assert result["designation"] == "Tech Lead"
    session.expire_all()
    assert session.exec(select(Employee)).one().designation == "Tech Lead"


def test_blank_rename_and_unknown_status_are_rejected(session, seed):
    lead = seed.designation("Lead", seed.department("Engineering"))
    lead_id = lead.id

    with pytest.raises(ValidationError, match="Designation name is required"):
        designation_service.update(
            session, COMPANY, None, DesignationUpdate(designationId=lead_id, designation="  ")
        )
    with pytest.raises(ValidationError, match="Invalid status: Actve"):
        designation_service.update(
            session, COMPANY, None, DesignationUpdate(designationId=lead_id, status="Actve")
        )

    [item] = designation_service.list_designations(session, COMPANY)
    assert (item["designation"], item["status"]) == ("Lead", "Active")


def test_move_to_missing_department(session, seed):
    lead = seed.designation("Lead", seed.department("Engineering"))

    with pytest.raises(NotFoundError, match="New department doesn't exist"):
        designation_service.update(
            session, COMPANY, None, DesignationUpdate(designationId=lead.id, departmentId=99)
        )


def test_delete_blocked_by_employees(session, seed):
    engineering = seed.department("Engineering")
    lead = seed.designation("Lead", engineering)
    seed.employee("ann@acme.io", engineering, lead)

    with pytest.raises(ConflictError, match="Cannot delete designation with assigned employees"):
        designation_service.delete(session, COMPANY, lead.id)


def test_reassign_rewrites_employees_and_policy_scopes(session, seed):
    engineering = seed.department("Engineering")
    junior = seed.designation("Junior", engineering)
    senior = seed.designation("Senior", engineering)
    seed.employee("ann@acme.io", engineering, junior)
    seed.policy("Mentoring", engineering, designation_ids=[junior.id, senior.id])
    junior_id, senior_id = junior.id, senior.id

    result = designation_service.reassign_and_delete(
        session,
        COMPANY,
        DesignationReassign(sourceDesignationId=junior_id, targetDesignationId=senior_id),
    )

    assert result == {"employeesReassigned": 1, "policiesReassigned": 1}
    session.expire_all()
    employee = session.exec(select(Employee)).one()
    assert (employee.designation_id, employee.designation) == (senior_id, "Senior")
    assert session.exec(select(PolicyAssignment)).one().designation_ids == [senior_id]


def test_reassign_across_departments_rejected(session, seed):
    junior = seed.designation("Junior", seed.department("Engineering"))
    rep = seed.designation("Rep", seed.department("Sales"))

    with pytest.raises(ValidationError, match="same department"):
        designation_service.reassign_and_delete(
            session,
            COMPANY,
            DesignationReassign(sourceDesignationId=junior.id, targetDesignationId=rep.id),
        )


def test_http_create_and_list(client, seed):
    engineering = seed.department("Engineering")

    created = client.post(
        "/api/designations/", json={"designation": "Lead", "departmentId": engineering.id}
    )
    listed = client.get("/api/designations/", params={"departmentId": engineering.id})

    assert created.status_code == 201
    assert listed.json()["totalCount"] == 1
    assert listed.json()["data"][0]["designation"] == "Lead"
