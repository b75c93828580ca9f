from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from managertc.models.common import iso, utcnow


class AddInvoice(SQLModel, table=True):
    __tablename__ = "add_invoices"

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: str = Field(max_length=50, index=True)

    invoice_number: Optional[str] = Field(default=None, max_length=100)
    title: Optional[str] = Field(default=None, max_length=255)
    client_id: Optional[int] = Field(default=None)
    client_name: str = Field(default="", max_length=255)
    amount: float = Field(default=0)
    status: str = Field(default="Draft", max_length=30)
    due_date: Optional[datetime] = Field(default=None)
    invoice_date: datetime = Field(default_factory=utcnow)
    reference_no: str = Field(default="", max_length=100)
    payment_type: str = Field(default="", max_length=100)
    bank_details: str = Field(default="", max_length=1000)
    description: str = Field(default="", max_length=5000)
    notes: str = Field(default="", max_length=5000)
    items: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    is_deleted: bool = Field(default=False, index=True)

    def to_public(self) -> dict:
        return {
            "_id": self.id,
            "invoiceNumber": self.invoice_number,
            "title": self.title,
            "clientId": self.client_id,
            "clientName": self.client_name,
            "amount": self.amount,
            "status": self.status,
            "dueDate": iso(self.due_date),
            "invoiceDate": iso(self.invoice_date),
            "referenceNo": self.reference_no,
            "paymentType": self.payment_type,
            "bankDetails": self.bank_details,
            "description": self.description,
            "notes": self.notes,
            "items": self.items or [],
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
            "isDeleted": self.is_deleted,
            "companyId": self.company_id,
        }


# Wire names accepted on create/update, mapped to columns.
INVOICE_FIELDS = {
    "invoiceNumber": "invoice_number",
    "title": "title",
    "clientId": "client_id",
    "clientName": "client_name",
    "amount": "amount",
    "status": "status",
    "dueDate": "due_date",
    "invoiceDate": "invoice_date",
    "referenceNo": "reference_no",
    "paymentType": "payment_type",
    "bankDetails": "bank_details",
    "description": "description",
    "notes": "notes",
    "items": "items",
}
