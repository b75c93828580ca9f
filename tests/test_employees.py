import pytest

from managertc.core.exceptions import ConflictError, NotFoundError, ValidationError
from managertc.core.rbac import (
    MANAGE_DEPARTMENTS,
    VIEW_EMPLOYEES,
    can_update_employee,
    can_view_employee,
    filter_employee_data,
    get_allowed_fields_for_update,
    get_highest_role,
    has_capability,
)
from managertc.models import EmployeeCreate, EmployeeUpdate
from managertc.services import employees as employee_service
from tests.conftest import COMPANY


class TestRbac:
    def test_highest_role_wins(self):
        assert get_highest_role(["employee", "HR", "unknown"]) == "hr"
        assert get_highest_role([]) == "guest"

    def test_capability_table(self):
        assert has_capability("admin", MANAGE_DEPARTMENTS)
        assert has_capability("hr", MANAGE_DEPARTMENTS)
        assert not has_capability("manager", MANAGE_DEPARTMENTS)
        assert not has_capability("employee", VIEW_EMPLOYEES)
        assert not has_capability(None, VIEW_EMPLOYEES)

    def test_view_rules(self):
        assert can_view_employee("admin", "admin")
        assert can_view_employee("hr", "manager")
        assert not can_view_employee("hr", "admin")
        assert not can_view_employee("manager", "manager")
        assert not can_view_employee("employee", "employee")

    def test_update_rules(self):
        assert can_update_employee("employee", "employee", is_own_record=True)
        assert not can_update_employee("manager", "employee")
        assert can_update_employee("hr", "manager")

    def test_field_limits(self):
        assert get_allowed_fields_for_update("employee", is_own_record=True) == {
            "phone",
            "bank_account_number",
        }
        assert get_allowed_fields_for_update("employee") == set()
        assert "salary" in get_allowed_fields_for_update("hr")

    def test_sensitive_fields_stripped(self):
        data = {"firstName": "Ann", "salary": 10.0, "bankAccountNumber": "X"}

        assert filter_employee_data(data, "manager") == {"firstName": "Ann"}
        assert filter_employee_data(data, "employee", is_own_record=True) == data


class TestService:
    def test_create_copies_placement_names(self, session, seed):
        engineering = seed.department("Engineering")
        lead = seed.designation("Lead", engineering)

        result = employee_service.create(
            session,
            COMPANY,
            EmployeeCreate(
                firstName="Ann",
                lastName="Lee",
                email="ann@acme.io",
                departmentId=str(engineering.id),
                designationId=lead.id,
            ),
        )

        assert result["department"] == "Engineering"
        assert result["designation"] == "Lead"
        assert result["status"] == "Active"

    def test_designation_outside_department(self, session, seed):
        engineering = seed.department("Engineering")
        rep = seed.designation("Rep", seed.department("Sales"))

        with pytest.raises(ValidationError, match="does not belong"):
            employee_service.create(
                session,
                COMPANY,
                EmployeeCreate(
                    firstName="Ann",
                    lastName="Lee",
                    email="ann@acme.io",
                    departmentId=engineering.id,
                    designationId=rep.id,
                ),
            )

    def test_duplicate_email(self, session, seed):
        seed.employee("ann@acme.io")

        with pytest.raises(ConflictError):
            employee_service.create(
                session,
                COMPANY,
                EmployeeCreate(firstName="Ann", lastName="Lee", email="ANN@acme.io"),
            )

    def test_update_ignores_disallowed_fields(self, session, seed):
        employee = seed.employee("ann@acme.io")

        with pytest.raises(ValidationError, match="No valid fields to update"):
            employee_service.update(
                session, COMPANY, employee.id, EmployeeUpdate(salary=9000), {"phone"}
            )

    def test_delete(self, session, seed):
        employee_id = seed.employee("ann@acme.io").id

        assert employee_service.delete(session, COMPANY, employee_id) == {
            "_id": employee_id,
            "email": "ann@acme.io",
        }
        with pytest.raises(NotFoundError):
            employee_service.get(session, COMPANY, employee_id)


class TestHttp:
    def test_me(self, client, login, seed):
        seed.employee("ann@acme.io", user_id="user_ann")
        login(role="employee", sub="user_ann")

        response = client.get("/api/employees/me")

        assert response.status_code == 200
        assert response.json()["data"]["email"] == "ann@acme.io"

    def test_me_without_profile(self, client):
        response = client.get("/api/employees/me")

        assert response.status_code == 404
        assert response.json()["error"] == "Employee profile not found"

    def test_list_strips_salary_for_managers(self, client, login, seed):
        seed.employee("ann@acme.io", user_id="user_ann")
        seed.employee("max@acme.io", user_id="user_max", role="manager")
        login(role="manager", sub="user_max")

        body = client.get("/api/employees/").json()

        rows = {row["email"]: row for row in body["data"]}
        assert "salary" not in rows["ann@acme.io"]
        assert "salary" in rows["max@acme.io"]
        assert body["pagination"]["total"] == 2

    def test_employee_sees_own_record_only(self, client, login, seed):
        own = seed.employee("ann@acme.io", user_id="user_ann")
        other = seed.employee("bob@acme.io", user_id="user_bob")
        login(role="employee", sub="user_ann")

        assert client.get(f"/api/employees/{own.id}").status_code == 200
        response = client.get(f"/api/employees/{other.id}")
        assert response.status_code == 403
        assert response.json()["error"] == "You don't have permission to view this employee"

    def test_employee_updates_own_phone(self, client, login, seed):
        own = seed.employee("ann@acme.io", user_id="user_ann")
        login(role="employee", sub="user_ann")

        response = client.put(
            f"/api/employees/{own.id}", json={"phone": "555-0100", "salary": 99999}
        )

        assert response.status_code == 200
        assert response.json()["data"]["phone"] == "555-0100"
        assert response.json()["data"]["salary"] == 0.0

    def test_hr_cannot_delete_admin(self, client, login, seed):
        admin = seed.employee("root@acme.io", role="admin")
        login(role="hr", sub="user_hr")

        response = client.delete(f"/api/employees/{admin.id}")

        assert response.status_code == 403
