import pytest
from sqlmodel import select

from managertc.core.exceptions import ConflictError, NotFoundError, ValidationError
from managertc.models import (
    DepartmentCreate,
    DepartmentReassign,
    DepartmentUpdate,
    Designation,
    Employee,
    PolicyAssignment,
)
from managertc.services import departments as department_service
from managertc.services import policies as policy_service
from tests.conftest import COMPANY, OTHER_COMPANY


class TestCreate:
    def test_trims_and_defaults_to_active(self, session):
        result = department_service.create(
            session, COMPANY, "user_1", DepartmentCreate(department="  Engineering  ")
        )

        assert result["department"] == "Engineering"
        assert result["status"] == "Active"
        assert result["createdBy"] == "user_1"
        assert result["_id"] is not None

    def test_name_required(self, session):
        with pytest.raises(ValidationError, match="Department name is required"):
            department_service.create(session, COMPANY, None, DepartmentCreate(department="   "))

    def test_duplicate_is_case_insensitive(self, session, seed):
        seed.department("Engineering")

        with pytest.raises(ConflictError, match="Department already exists"):
            department_service.create(
                session, COMPANY, None, DepartmentCreate(department="ENGINEERING")
            )

    def test_duplicate_check_folds_non_ascii(self, session, seed):
        seed.department("Équipe")

        with pytest.raises(ConflictError, match="Department already exists"):
            department_service.create(
                session, COMPANY, None, DepartmentCreate(department="équipe")
            )
        with pytest.raises(ConflictError, match="Department already exists"):
            department_service.create(
                session, COMPANY, None, DepartmentCreate(department="  ÉQUIPE ")
            )

    def test_unique_key_backs_the_duplicate_check(self, session, seed, monkeypatch):
        seed.department("Straße")
        monkeypatch.setattr(department_service, "_name_taken", lambda *args, **kwargs: False)

        with pytest.raises(ConflictError, match="Department already exists"):
            department_service.create(
                session, COMPANY, None, DepartmentCreate(department="STRASSE")
            )

        assert [d["department"] for d in department_service.list_with_counts(session, COMPANY)] == [
            "Straße"
        ]

    def test_names_with_pattern_characters_are_literal(self, session, seed):
        seed.department("R&D (Labs)")

        result = department_service.create(
            session, COMPANY, None, DepartmentCreate(department="R&D .Labs.")
        )
        assert result["department"] == "R&D .Labs."

    def test_same_name_allowed_in_other_tenant(self, session, seed):
        seed.department("Engineering", company_id=OTHER_COMPANY)

        result = department_service.create(
            session, COMPANY, None, DepartmentCreate(department="Engineering")
        )
        assert result["department"] == "Engineering"

    def test_status_is_normalised(self, session):
        result = department_service.create(
            session, COMPANY, None, DepartmentCreate(department="Ops", status="on leave")
        )
        assert result["status"] == "On Leave"


class TestListing:
    def test_active_list(self, session, seed):
        seed.department("Sales")
        seed.department("Legacy", status="Inactive")
        seed.department("Support", status="active")

        names = [d["department"] for d in department_service.list_active(session, COMPANY)]

        assert names == ["Sales", "Support"]

    def test_counts(self, session, seed):
        engineering = seed.department("Engineering")
        backend = seed.designation("Backend", engineering)
        seed.designation("Retired", engineering, status="Inactive")
        seed.employee("ann@acme.io", engineering, backend)
        seed.employee("bob@acme.io", engineering, status="Resigned")
        seed.policy("Remote work", engineering)
        seed.policy("Everyone", apply_to_all=True)

        [item] = department_service.list_with_counts(session, COMPANY)

        assert item["employeeCount"] == 1
        assert item["designationCount"] == 1
        assert item["policyCount"] == 1

    def test_status_filter_and_newest_first(self, session, seed):
        seed.department("Old", days_old=40)
        seed.department("New")
        seed.department("Dormant", status="Inactive")

        active = department_service.list_with_counts(session, COMPANY, status="active")
        everything = department_service.list_with_counts(session, COMPANY, status="none")

        assert [d["department"] for d in active] == ["New", "Old"]
        assert len(everything) == 3

    def test_stats(self, session, seed):
        seed.department("Old", days_old=40)
        seed.department("New")
        seed.department("Dormant", status="Inactive")

        assert department_service.stats(session, COMPANY) == {
            "totalDepartments": 3,
            "activeCount": 2,
            "inactiveCount": 1,
            "recentCount": 2,
        }


class TestUpdate:
    def test_missing_fields(self, session, seed):
        department = seed.department("Engineering")

        with pytest.raises(ValidationError, match="Missing required fields"):
            department_service.update(
                session, COMPANY, None, DepartmentUpdate(departmentId=department.id, department="X")
            )

    def test_blank_name_is_rejected(self, session, seed):
        department = seed.department("Engineering")
        seed.employee("ann@acme.io", department)
        department_id = department.id

        with pytest.raises(ValidationError, match="Department name is required"):
            department_service.update(
                session,
                COMPANY,
                None,
                DepartmentUpdate(departmentId=department_id, department="   ", status="Active"),
            )

        session.expire_all()
        assert department_service.get(session, COMPANY, department_id)["department"] == "Engineering"
        assert session.exec(select(Employee)).one().department == "Engineering"

    def test_unknown_status_is_rejected(self, session, seed):
        department = seed.department("Engineering", status="Inactive")
        department_id = department.id

        with pytest.raises(ValidationError, match="Invalid status: Inactve"):
            department_service.update(
                session,
                COMPANY,
                None,
                DepartmentUpdate(departmentId=department_id, department="Engineering", status="Inactve"),
            )

        session.expire_all()
        assert department_service.get(session, COMPANY, department_id)["status"] == "Inactive"

    def test_status_case_variant_is_canonicalised(self, session, seed):
        department = seed.department("Engineering", status="Inactive")

        result = department_service.update(
            session,
            COMPANY,
            None,
            DepartmentUpdate(departmentId=department.id, department="Engineering", status="on leave"),
        )

        assert result["status"] == "On Leave"

    def test_rename_onto_unicode_case_variant_conflicts(self, session, seed):
        seed.department("Équipe")
        other = seed.department("Sales")

        with pytest.raises(ConflictError, match="Department already exists"):
            department_service.update(
                session,
                COMPANY,
                None,
                DepartmentUpdate(departmentId=other.id, department="ÉQUIPE", status="Active"),
            )

    def test_not_found(self, session):
        with pytest.raises(NotFoundError):
            department_service.update(
                session,
                COMPANY,
                None,
                DepartmentUpdate(departmentId=999, department="X", status="Active"),
            )

    def test_inactivate_blocked_by_active_employees(self, session, seed):
        department = seed.department("Engineering")
        seed.employee("ann@acme.io", department)
        seed.employee("bob@acme.io", department)

        with pytest.raises(ConflictError) as exc:
            department_service.update(
                session,
                COMPANY,
                None,
                DepartmentUpdate(
                    departmentId=department.id, department="Engineering", status="Inactive"
                ),
            )

        assert exc.value.message == "Cannot inactivate department with active employees"
        assert exc.value.detail == "2 active employees found"
        session.expire_all()
        assert session.get(type(department), department.id).status == "Active"

    def test_inactivate_allowed_when_employees_inactive(self, session, seed):
        department = seed.department("Engineering")
        seed.employee("ann@acme.io", department, status="Resigned")

        result = department_service.update(
            session,
            COMPANY,
            "user_1",
            DepartmentUpdate(departmentId=department.id, department="Engineering", status="inactive"),
        )
        assert result["status"] == "Inactive"

    def test_rename_cascades_to_employee_names(self, session, seed):
        department = seed.department("Engineering")
        seed.employee("ann@acme.io", department)
        seed.employee("other@globex.io", company_id=OTHER_COMPANY)

        result = department_service.update(
            session,
            COMPANY,
            "user_1",
            DepartmentUpdate(departmentId=department.id, department="Platform", status="Active"),
        )

        assert result["previousName"] == "Engineering"
        assert result["employeesRenamed"] == 1
        session.expire_all()
        employee = session.exec(select(Employee).where(Employee.email == "ann@acme.io")).one()
        assert employee.department == "Platform"

    def test_rename_to_existing_name_rejected(self, session, seed):
        seed.department("Sales")
        department = seed.department("Engineering")

        with pytest.raises(ConflictError, match="Department already exists"):
            department_service.update(
                session,
                COMPANY,
                None,
                DepartmentUpdate(departmentId=department.id, department="sales", status="Active"),
            )


class TestDelete:
    def test_delete_unreferenced(self, session, seed):
        department = seed.department("Engineering")
        department_id = department.id

        result = department_service.delete(session, COMPANY, department_id)

        assert result == {"_id": department_id, "department": "Engineering"}
        with pytest.raises(NotFoundError):
            department_service.get(session, COMPANY, department_id)

    @pytest.mark.parametrize(
        "reference, message",
        [
            ("employee", "Cannot delete department with assigned employees"),
            ("designation", "Cannot delete department with assigned designations"),
            ("policy", "Cannot delete department with assigned policies"),
        ],
    )
    def test_delete_blocked_while_referenced(self, session, seed, reference, message):
        department = seed.department("Engineering")
        if reference == "employee":
            seed.employee("ann@acme.io", department)
        elif reference == "designation":
            seed.designation("Backend", department)
        else:
            seed.policy("Remote work", department)

        with pytest.raises(ConflictError, match=message) as exc:
            department_service.delete(session, COMPANY, department.id)
        assert exc.value.detail.startswith("1 ")

    def test_global_policy_does_not_block(self, session, seed):
        department = seed.department("Engineering")
        seed.policy("Everyone", department, apply_to_all=True)

        department_service.delete(session, COMPANY, department.id)

    def test_malformed_id(self, session):
        with pytest.raises(ValidationError, match="Invalid department ID format"):
            department_service.delete(session, COMPANY, "abc")


class TestReassignAndDelete:
    def test_moves_everything_then_deletes_source(self, session, seed):
        source = seed.department("Engineering")
        target = seed.department("Platform")
        backend = seed.designation("Backend", source)
        seed.employee("ann@acme.io", source, backend)
        seed.employee("bob@acme.io", source)
        policy = seed.policy("Remote work", source)
        seed.policy("Everyone", apply_to_all=True)
        source_id, target_id = source.id, target.id

        result = department_service.reassign_and_delete(
            session,
            COMPANY,
            DepartmentReassign(sourceDepartmentId=source_id, targetDepartmentId=str(target_id)),
        )

        assert result == {
            "employeesReassigned": 2,
            "designationsReassigned": 1,
            "policiesReassigned": 1,
        }
        session.expire_all()
        employees = session.exec(select(Employee)).all()
        assert {e.department_id for e in employees} == {target_id}
        assert {e.department for e in employees} == {"Platform"}
        assert session.get(Designation, backend.id).department_id == target_id
        assignment = session.exec(
            select(PolicyAssignment).where(PolicyAssignment.policy_id == policy.id)
        ).one()
        assert assignment.department_id == target_id
        with pytest.raises(NotFoundError):
            department_service.get(session, COMPANY, source_id)

    def test_policy_on_both_departments_keeps_one_target_row(self, session, seed):
        source = seed.department("Engineering")
        target = seed.department("Platform")
        backend = seed.designation("Backend", source)
        sre = seed.designation("SRE", target)
        lead = seed.designation("Lead", target)
        policy = seed.policy("On-call", target, designation_ids=[sre.id, lead.id])
        session.add(
            PolicyAssignment(
                company_id=COMPANY,
                policy_id=policy.id,
                department_id=source.id,
                designation_ids=[backend.id, lead.id],
            )
        )
        session.commit()
        source_id, target_id, policy_id = source.id, target.id, policy.id
        expected = [sre.id, lead.id, backend.id]

        result = department_service.reassign_and_delete(
            session,
            COMPANY,
            DepartmentReassign(sourceDepartmentId=source_id, targetDepartmentId=target_id),
        )

        assert result["policiesReassigned"] == 1
        session.expire_all()
        [row] = session.exec(
            select(PolicyAssignment).where(PolicyAssignment.policy_id == policy_id)
        ).all()
        assert row.department_id == target_id
        assert row.designation_ids == expected
        [listed] = policy_service.list_policies(session, COMPANY)
        assert listed["assignTo"] == [
            {
                "departmentId": target_id,
                "departmentName": "Platform",
                "designationIds": expected,
            }
        ]

    def test_department_wide_assignment_stays_department_wide(self, session, seed):
        source = seed.department("Engineering")
        target = seed.department("Platform")
        backend = seed.designation("Backend", source)
        policy = seed.policy("Remote work", target)
        session.add(
            PolicyAssignment(
                company_id=COMPANY,
                policy_id=policy.id,
                department_id=source.id,
                designation_ids=[backend.id],
            )
        )
        session.commit()
        source_id, target_id, policy_id = source.id, target.id, policy.id

        department_service.reassign_and_delete(
            session,
            COMPANY,
            DepartmentReassign(sourceDepartmentId=source_id, targetDepartmentId=target_id),
        )

        session.expire_all()
        [row] = session.exec(
            select(PolicyAssignment).where(PolicyAssignment.policy_id == policy_id)
        ).all()
        assert row.department_id == target_id
        assert row.designation_ids == []

    def test_same_source_and_target(self, session, seed):
        department = seed.department("Engineering")

        with pytest.raises(ValidationError, match="must be different"):
            department_service.reassign_and_delete(
                session,
                COMPANY,
                DepartmentReassign(
                    sourceDepartmentId=department.id, targetDepartmentId=department.id
                ),
            )

    def test_missing_target(self, session, seed):
        source = seed.department("Engineering")

        with pytest.raises(NotFoundError, match="Target department not found"):
            department_service.reassign_and_delete(
                session,
                COMPANY,
                DepartmentReassign(sourceDepartmentId=source.id, targetDepartmentId=999),
            )

    def test_target_in_other_tenant_not_found(self, session, seed):
        source = seed.department("Engineering")
        foreign = seed.department("Platform", company_id=OTHER_COMPANY)

        with pytest.raises(NotFoundError, match="Target department not found"):
            department_service.reassign_and_delete(
                session,
                COMPANY,
                DepartmentReassign(sourceDepartmentId=source.id, targetDepartmentId=foreign.id),
            )

    def test_failure_rolls_back_every_step(self, session, seed, monkeypatch):
        source = seed.department("Engineering")
        target = seed.department("Platform")
        seed.employee("ann@acme.io", source)
        seed.designation("Backend", source)

        def boom(collections, department_id):
            raise RuntimeError("connection lost")

        monkeypatch.setattr(department_service, "_targeted_policy_ids", boom)

        with pytest.raises(RuntimeError):
            department_service.reassign_and_delete(
                session,
                COMPANY,
                DepartmentReassign(sourceDepartmentId=source.id, targetDepartmentId=target.id),
            )

        session.expire_all()
        assert session.exec(select(Employee)).one().department_id == source.id
        assert session.exec(select(Designation)).one().department_id == source.id
        assert department_service.get(session, COMPANY, source.id)["department"] == "Engineering"


class TestHttp:
    def test_create_returns_201(self, client):
        response = client.post("/api/departments/", json={"department": "Engineering"})

        assert response.status_code == 201
        body = response.json()
        assert body["done"] is True
        assert body["data"]["department"] == "Engineering"

    def test_duplicate_returns_400_envelope(self, client, seed):
        seed.department("Engineering")

        response = client.post("/api/departments/", json={"department": "engineering"})

        assert response.status_code == 400
        assert response.json() == {"done": False, "error": "Department already exists"}

    def test_list_with_stats(self, client, seed):
        seed.department("Engineering")

        body = client.get("/api/departments/").json()

        assert body["done"] is True
        assert body["totalCount"] == 1
        assert body["stats"]["totalDepartments"] == 1
        assert body["data"][0]["employeeCount"] == 0

    def test_tenant_comes_from_identity(self, client, seed):
        seed.department("Finance", company_id=OTHER_COMPANY)

        assert client.get("/api/departments/active").json()["data"] == []

    def test_not_found_is_404(self, client):
        response = client.get("/api/departments/999")

        assert response.status_code == 404
        assert response.json()["error"] == "Department not found"

    def test_update_conflict_carries_detail(self, client, seed):
        department = seed.department("Engineering")
        seed.employee("ann@acme.io", department)

        response = client.put(
            f"/api/departments/{department.id}",
            json={"department": "Engineering", "status": "Inactive"},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "1 active employees found"

    def test_reassign_route(self, client, seed):
        source = seed.department("Engineering")
        target = seed.department("Platform")
        seed.employee("ann@acme.io", source)

        response = client.post(
            f"/api/departments/{source.id}/reassign-delete",
            json={"targetDepartmentId": target.id},
        )

        assert response.status_code == 200
        assert response.json()["data"]["employeesReassigned"] == 1

    def test_employee_cannot_manage(self, client, login):
        login(role="employee", sub="user_emp")

        response = client.post("/api/departments/", json={"department": "Engineering"})

        assert response.status_code == 403
        assert response.json() == {"done": False, "error": "Insufficient permissions"}

    def test_employee_can_view(self, client, login, seed):
        login(role="employee", sub="user_emp")
        seed.department("Engineering")

        assert client.get("/api/departments/active").status_code == 200

    def test_identity_without_company(self, client, login):
        login(role="admin", company_id=None)

        response = client.get("/api/departments/")

        assert response.status_code == 403
        assert response.json()["error"] == "Company ID not found in user metadata"

    def test_unexpected_error_is_500(self, login, monkeypatch):
        from fastapi.testclient import TestClient

        from managertc.main import app

        login()

        def boom(*args, **kwargs):
            raise RuntimeError("database exploded")

        monkeypatch.setattr(department_service, "list_active", boom)
        client = TestClient(app, raise_server_exceptions=False)

        response = client.get("/api/departments/active")

        assert response.status_code == 500
        assert response.json() == {"done": False, "error": "Internal server error"}
