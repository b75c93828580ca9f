import pytest

from managertc.core.exceptions import ValidationError
from managertc.core.tenancy import normalize_id, resolve, validate_company_id
from managertc.models import Department
from tests.conftest import COMPANY, OTHER_COMPANY


class TestValidateCompanyId:
    def test_accepts_slug(self):
        assert validate_company_id("acme-corp_01") == "acme-corp_01"

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing(self, value):
        with pytest.raises(ValidationError, match="Company ID is required"):
            validate_company_id(value)

    @pytest.mark.parametrize("value", ["ab", "acme corp", "a" * 51, "acme;drop"])
    def test_malformed(self, value):
        with pytest.raises(ValidationError, match="Invalid company ID format"):
            validate_company_id(value)


class TestNormalizeId:
    @pytest.mark.parametrize("value, expected", [(5, 5), ("12", 12), (" 7 ", 7)])
    def test_canonical_integer(self, value, expected):
        assert normalize_id(value) == expected

    @pytest.mark.parametrize("value", [None, True, 0, -3, "abc", "0", "1.5"])
    def test_rejects(self, value):
        with pytest.raises(ValidationError, match="Invalid department ID format"):
            normalize_id(value, "department ID")


class TestTenantCollections:
    def test_reads_are_scoped_to_company(self, session, seed):
        seed.department("Engineering")
        seed.department("Finance", company_id=OTHER_COMPANY)

        acme = resolve(session, COMPANY)
        names = [d.department for d in acme.departments.find()]

        assert names == ["Engineering"]
        assert acme.departments.count() == 1

    def test_get_does_not_cross_tenants(self, session, seed):
        other = seed.department("Finance", company_id=OTHER_COMPANY)

        assert resolve(session, COMPANY).departments.get(other.id) is None
        assert resolve(session, OTHER_COMPANY).departments.get(other.id) is not None

    def test_add_stamps_company(self, session):
        acme = resolve(session, COMPANY)
        department = acme.departments.add(Department(company_id="ignored", department="Ops"))
        session.commit()

        assert department.company_id == COMPANY

    def test_update_and_delete_are_scoped(self, session, seed):
        seed.department("Shared", company_id=COMPANY)
        seed.department("Shared", company_id=OTHER_COMPANY)
        acme = resolve(session, COMPANY)

        assert acme.departments.update((Department.department == "Shared",), {"status": "Inactive"}) == 1
        assert acme.departments.delete(Department.department == "Shared") == 1
        session.commit()

        assert resolve(session, OTHER_COMPANY).departments.count() == 1

    def test_invalid_company_rejected(self, session):
        with pytest.raises(ValidationError):
            resolve(session, "x")
