import pytest

from managertc.core.exceptions import NotFoundError, ValidationError
from managertc.services import invoices as invoice_service
from tests.conftest import COMPANY, OTHER_COMPANY


def test_create_applies_defaults(session):
    invoice = invoice_service.create(
        session,
        COMPANY,
        {"invoiceNumber": "INV-001", "clientId": "12", "amount": "not a number"},
    )

    assert invoice["clientId"] == 12
    assert invoice["amount"] == 0.0
    assert invoice["status"] == "Draft"
    assert invoice["notes"] == ""
    assert invoice["invoiceDate"] is not None
    assert invoice["companyId"] == COMPANY


def test_create_parses_dates(session):
    invoice = invoice_service.create(
        session, COMPANY, {"amount": 120.5, "dueDate": "2031-03-01T10:00:00+02:00"}
    )

    assert invoice["dueDate"] == "2031-03-01T08:00:00"
    assert invoice["amount"] == 120.5


def test_bad_date_rejected(session):
    with pytest.raises(ValidationError, match="Invalid dueDate format"):
        invoice_service.create(session, COMPANY, {"dueDate": "next tuesday"})


def test_list_newest_first_and_hides_deleted(session):
    first = invoice_service.create(session, COMPANY, {"invoiceNumber": "INV-001"})
    invoice_service.create(session, COMPANY, {"invoiceNumber": "INV-002"})
    invoice_service.create(session, OTHER_COMPANY, {"invoiceNumber": "INV-X"})
    invoice_service.delete(session, COMPANY, first["_id"])

    numbers = [i["invoiceNumber"] for i in invoice_service.list_invoices(session, COMPANY)]

    assert numbers == ["INV-002"]


def test_update_ignores_identity_fields(session):
    invoice = invoice_service.create(session, COMPANY, {"invoiceNumber": "INV-001"})

    updated = invoice_service.update(
        session,
        COMPANY,
        invoice["_id"],
        {"_id": 999, "companyId": OTHER_COMPANY, "status": "Paid", "invoiceDate": None},
    )

    assert updated["_id"] == invoice["_id"]
    assert updated["companyId"] == COMPANY
    assert updated["status"] == "Paid"
    assert updated["invoiceDate"] == invoice["invoiceDate"]


def test_other_tenant_cannot_touch(session):
    invoice = invoice_service.create(session, COMPANY, {"invoiceNumber": "INV-001"})

    with pytest.raises(NotFoundError, match="Invoice not found"):
        invoice_service.delete(session, OTHER_COMPANY, invoice["_id"])
