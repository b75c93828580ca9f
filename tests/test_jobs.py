import asyncio
import os
from datetime import datetime, timedelta, timezone

import pytest
from openpyxl import load_workbook

from managertc.core.exceptions import NotFoundError, ValidationError
from managertc.models import JobCreate, JobFilters
from managertc.services import exports as export_service
from managertc.services import jobs as job_service
from tests.conftest import COMPANY, OTHER_COMPANY

CREATOR = {"_id": "user_admin", "firstName": "Ada", "lastName": "Admin"}


def job_payload(**overrides) -> JobCreate:
    values = {
        "title": "  Backend Engineer ",
        "description": "Build APIs",
        "category": "Software",
        "minSalary": 3000,
        "maxSalary": 5000,
        "expiredDate": datetime.now(timezone.utc) + timedelta(days=30),
        "location": {"city": "Colombo", "country": "Sri Lanka", "extra": "dropped"},
    }
    values.update(overrides)
    return JobCreate(**values)


class TestService:
    def test_create(self, session):
        job = job_service.create(session, COMPANY, CREATOR, job_payload())

        assert job["jobId"].startswith("JOB-")
        assert job["title"] == "Backend Engineer"
        assert job["status"] == "Draft"
        assert job["createdBy"] == CREATOR
        assert job["location"] == {
            "address": "",
            "country": "Sri Lanka",
            "state": "",
            "city": "Colombo",
            "zipCode": "",
        }

    def test_missing_fields_listed(self, session):
        with pytest.raises(ValidationError) as exc:
            job_service.create(
                session, COMPANY, CREATOR, job_payload(description=None, minSalary=None)
            )
        assert exc.value.message == "Missing required fields: description, minSalary"

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"category": "Astrology"}, "Invalid category: Astrology"),
            ({"jobType": "Gig"}, "Invalid job type: Gig"),
            ({"minSalary": -1}, "Minimum salary cannot be negative"),
            ({"minSalary": 9000}, "Minimum salary cannot be greater than maximum salary"),
        ],
    )
    def test_create_validation(self, session, overrides, message):
        with pytest.raises(ValidationError) as exc:
            job_service.create(session, COMPANY, CREATOR, job_payload(**overrides))
        assert exc.value.message == message

    def test_list_filters_and_paginates(self, session, seed):
        seed.job("Backend Engineer", job_id="JOB-000001-AAA")
        seed.job("Frontend Engineer", job_id="JOB-000002-AAA")
        seed.job("Recruiter", job_id="JOB-000003-AAA", category="HR")
        seed.job("Closed role", job_id="JOB-000004-AAA", status="Closed")
        seed.job("Other tenant", job_id="JOB-000005-AAA", company_id=OTHER_COMPANY)

        result = job_service.list_jobs(
            session,
            COMPANY,
            JobFilters(status="Published", category="Software", limit=1, sortBy="title", sortOrder="asc"),
        )

        assert [j["title"] for j in result["jobs"]] == ["Backend Engineer"]
        assert result["pagination"] == {"page": 1, "limit": 1, "total": 2, "totalPages": 2}

        searched = job_service.list_jobs(session, COMPANY, JobFilters(search="RECRUIT"))
        assert [j["title"] for j in searched["jobs"]] == ["Recruiter"]

    def test_stats(self, session, seed):
        seed.job("A", job_id="JOB-000001-AAA", applicants_count=3, is_urgent=True)
        seed.job("B", job_id="JOB-000002-AAA", status="Draft", views_count=10, is_remote=True)
        seed.job("C", job_id="JOB-000003-AAA", is_active=False, applicants_count=50)

        stats = job_service.stats(session, COMPANY)

        assert stats["totalJobs"] == 2
        assert stats["publishedJobs"] == 1
        assert stats["draftJobs"] == 1
        assert stats["urgentJobs"] == 1
        assert stats["remoteJobs"] == 1
        assert stats["totalApplicants"] == 3
        assert stats["totalViews"] == 10

    def test_update_to_closed_stamps_closed_date(self, session, seed):
        seed.job("A", job_id="JOB-000001-AAA")

        job = job_service.update_status(session, COMPANY, "JOB-000001-AAA", "Closed", CREATOR)

        assert job["status"] == "Closed"
        assert job["closedDate"] is not None
        assert job["updatedBy"] == CREATOR

    def test_update_status_rejects_unknown(self, session, seed):
        seed.job("A", job_id="JOB-000001-AAA")

        with pytest.raises(ValidationError, match="Invalid status: Archived"):
            job_service.update_status(session, COMPANY, "JOB-000001-AAA", "Archived")

    def test_delete_is_soft(self, session, seed):
        seed.job("A", job_id="JOB-000001-AAA")

        assert job_service.delete(session, COMPANY, "JOB-000001-AAA")["jobId"] == "JOB-000001-AAA"
        with pytest.raises(NotFoundError):
            job_service.details(session, COMPANY, "JOB-000001-AAA")

    def test_bulk_delete_counts_only_own_active_jobs(self, session, seed):
        seed.job("A", job_id="JOB-000001-AAA")
        seed.job("B", job_id="JOB-000002-AAA")
        seed.job("C", job_id="JOB-000003-AAA", company_id=OTHER_COMPANY)

        deleted = job_service.bulk_delete(
            session, COMPANY, ["JOB-000001-AAA", "JOB-000002-AAA", "JOB-000003-AAA"]
        )

        assert deleted == 2
        with pytest.raises(ValidationError, match="Job IDs array is required"):
            job_service.bulk_delete(session, COMPANY, [])


class TestExports:
    def test_excel(self, session, seed, export_dir):
        seed.job("Backend Engineer", job_id="JOB-000001-AAA")

        result = export_service.export_excel(session, COMPANY, "user_admin")

        assert result["totalJobs"] == 1
        assert os.path.dirname(result["filePath"]) == str(export_dir)
        sheet = load_workbook(result["filePath"]).active
        assert sheet.cell(row=1, column=1).value == "Job ID"
        assert sheet.cell(row=2, column=2).value == "Backend Engineer"

    def test_pdf(self, session, seed):
        seed.job("Backend Engineer", job_id="JOB-000001-AAA")

        result = export_service.export_pdf(session, COMPANY, "user_admin")

        with open(result["filePath"], "rb") as f:
            assert f.read(4) == b"%PDF"

    def test_remove_file(self, tmp_path):
        path = tmp_path / "jobs.pdf"
        path.write_bytes(b"%PDF")

        assert export_service.remove_file(str(path)) is True
        assert export_service.remove_file(str(path)) is False

    async def test_delayed_cleanup(self, tmp_path):
        path = tmp_path / "jobs.xlsx"
        path.write_bytes(b"data")

        export_service.schedule_file_cleanup(str(path), delay=0)
        await asyncio.sleep(0.05)

        assert not path.exists()


class TestHttp:
    def test_categories_and_types_are_public(self, client):
        assert "Software" in client.get("/api/jobs/categories").json()["data"]
        assert "Full Time" in client.get("/api/jobs/types").json()["data"]

    def test_tenant_mismatch(self, client):
        response = client.get(f"/api/jobs/{OTHER_COMPANY}/list")

        assert response.status_code == 403
        assert response.json()["error"] == "Unauthorized: Company ID mismatch"

    def test_malformed_company_in_path(self, client):
        response = client.get("/api/jobs/acme%20corp/stats")

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid company ID format"

    def test_create_and_list(self, client):
        created = client.post(
            f"/api/jobs/{COMPANY}/create",
            json={
                "title": "Backend Engineer",
                "description": "Build APIs",
                "category": "Software",
                "minSalary": 3000,
                "maxSalary": 5000,
                "expiredDate": "2031-01-01T00:00:00Z",
                "status": "Published",
            },
        )
        listed = client.get(f"/api/jobs/{COMPANY}/list", params={"status": "Published"})

        assert created.status_code == 201
        assert created.json()["data"]["createdBy"]["_id"] == "user_admin"
        assert listed.json()["pagination"]["total"] == 1

    def test_bulk_delete_message(self, client, seed):
        seed.job("A", job_id="JOB-000001-AAA")

        response = client.request(
            "DELETE", f"/api/jobs/{COMPANY}/bulk-delete", json={"jobIds": ["JOB-000001-AAA"]}
        )

        assert response.json()["message"] == "1 jobs deleted successfully"

    def test_export_excel(self, client, seed):
        seed.job("A", job_id="JOB-000001-AAA")

        response = client.post(f"/api/jobs/{COMPANY}/export/excel")

        body = response.json()
        assert body["message"] == "Excel file generated successfully"
        assert body["data"]["fileName"].endswith(".xlsx")

    def test_employee_cannot_create(self, client, login):
        login(role="employee", sub="user_emp")

        response = client.post(f"/api/jobs/{COMPANY}/create", json={})

        assert response.status_code == 403
