from datetime import datetime
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session

from managertc.core.exceptions import NotFoundError, ValidationError
from managertc.core.logging import get_logger
from managertc.core.tenancy import normalize_id, resolve
from managertc.models.common import to_naive_utc, utcnow
from managertc.models.invoice import INVOICE_FIELDS, AddInvoice

logger = get_logger(__name__)

_datetime = TypeAdapter(datetime)

DATE_COLUMNS = {"due_date", "invoice_date"}
TEXT_DEFAULTS = {
    "client_name",
    "reference_no",
    "payment_type",
    "bank_details",
    "description",
    "notes",
}


def _amount(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _columns(payload: dict) -> dict:
    """Map wire keys onto columns, coercing ids, dates and the amount."""
    values = {}
    for wire, column in INVOICE_FIELDS.items():
        if wire not in payload:
            continue
        value = payload[wire]
        if column == "client_id":
            value = normalize_id(value, "client ID") if value not in (None, "") else None
        elif column == "amount":
            value = _amount(value)
        elif column in DATE_COLUMNS:
            if value in (None, ""):
                value = None
            else:
                try:
                    value = to_naive_utc(_datetime.validate_python(value))
                except PydanticValidationError:
                    raise ValidationError(f"Invalid {wire} format") from None
        elif column in TEXT_DEFAULTS:
            value = value or ""
        elif column == "items":
            value = list(value or [])
        values[column] = value
    return values


def list_invoices(session: Session, company_id: str) -> list[dict]:
    collections = resolve(session, company_id)
    invoices = collections.add_invoices.find(
        AddInvoice.is_deleted == False, order_by=AddInvoice.created_at.desc()  # noqa: E712
    )
    return [invoice.to_public() for invoice in invoices]


def create(session: Session, company_id: str, payload: dict) -> dict:
    collections = resolve(session, company_id)
    values = _columns(payload or {})
    values.setdefault("amount", 0.0)
    if not values.get("status"):
        values["status"] = "Draft"
    if values.get("invoice_date") is None:
        values.pop("invoice_date", None)

    invoice = AddInvoice(company_id=company_id, **values)
    collections.add_invoices.add(invoice)
    session.commit()
    session.refresh(invoice)

    logger.info(f"Invoice created: {invoice.id} ({invoice.invoice_number}) for {company_id}")
    return invoice.to_public()


def _require(session: Session, company_id: str, invoice_id: Any) -> AddInvoice:
    collections = resolve(session, company_id)
    invoice_id = normalize_id(invoice_id, "invoice ID")
    invoice = collections.add_invoices.find_one(
        AddInvoice.id == invoice_id, AddInvoice.is_deleted == False  # noqa: E712
    )
    if not invoice:
        raise NotFoundError("Invoice not found")
    return invoice


def update(session: Session, company_id: str, invoice_id: Any, updated_data: dict) -> dict:
    """Patch an invoice; ``_id`` and ``companyId`` in the payload are ignored."""
    invoice = _require(session, company_id, invoice_id)

    data = {k: v for k, v in (updated_data or {}).items() if k not in ("_id", "companyId")}
    for column, value in _columns(data).items():
        if column == "invoice_date" and value is None:
            continue
        setattr(invoice, column, value)
    invoice.updated_at = utcnow()

    session.add(invoice)
    session.commit()
    session.refresh(invoice)

    logger.info(f"Invoice {invoice.id} updated")
    return invoice.to_public()


def delete(session: Session, company_id: str, invoice_id: Any) -> dict:
    invoice = _require(session, company_id, invoice_id)

    invoice.is_deleted = True
    invoice.updated_at = utcnow()
    session.add(invoice)
    session.commit()

    logger.info(f"Invoice {invoice.id} deleted")
    return {"_id": invoice.id}
