"""
QuickBooks Online v3 payloads.

Entity fields are PascalCase on the wire; responses wrap each entity in an
object keyed by its type name ({"Customer": {...}}), and queries return
{"QueryResponse": {"Customer": [...], "startPosition", "maxResults"}}.
"""

from typing import Any

from pydantic import Field
from pydantic.alias_generators import to_camel, to_pascal

from integrations.providers.base import ProviderModel


class QuickBooksModel(ProviderModel):
    model_config = {"populate_by_name": True, "extra": "allow", "alias_generator": to_pascal}


class Ref(ProviderModel):
    value: str
    name: str | None = None


class EmailAddress(QuickBooksModel):
    address: str | None = None


class PhoneNumber(QuickBooksModel):
    free_form_number: str | None = None


class Address(QuickBooksModel):
    id: str | None = None
    line1: str | None = None
    city: str | None = None
    country_sub_division_code: str | None = None
    postal_code: str | None = None
    country: str | None = None


class MetaData(QuickBooksModel):
    create_time: str | None = None
    last_updated_time: str | None = None


class Entity(QuickBooksModel):
    id: str | None = None
    sync_token: str | None = None
    meta_data: MetaData | None = None


class Customer(Entity):
    display_name: str
    given_name: str | None = None
    family_name: str | None = None
    company_name: str | None = None
    fully_qualified_name: str | None = None
    active: bool | None = None
    primary_email_addr: EmailAddress | None = None
    primary_phone: PhoneNumber | None = None
    bill_addr: Address | None = None
    balance: float | None = None


class CompanyInfo(Entity):
    company_name: str
    legal_name: str | None = None
    company_addr: Address | None = None
    country: str | None = None
    email: EmailAddress | None = None
    fiscal_year_start_month: str | None = None


class LinkedTxn(QuickBooksModel):
    txn_id: str
    txn_type: str


class SalesItemLineDetail(QuickBooksModel):
    item_ref: Ref
    qty: float | None = None
    unit_price: float | None = None


class Line(QuickBooksModel):
    id: str | None = None
    amount: float
    description: str | None = None
    detail_type: str | None = None
    sales_item_line_detail: SalesItemLineDetail | None = None
    linked_txn: list[LinkedTxn] | None = None


class Invoice(Entity):
    customer_ref: Ref
    line: list[Line] = Field(default_factory=list)
    doc_number: str | None = None
    txn_date: str | None = None
    due_date: str | None = None
    total_amt: float | None = None
    balance: float | None = None
    bill_email: EmailAddress | None = None
    private_note: str | None = None


class Payment(Entity):
    customer_ref: Ref
    total_amt: float
    line: list[Line] = Field(default_factory=list)
    txn_date: str | None = None
    payment_ref_num: str | None = None
    private_note: str | None = None


class QueryResponse(ProviderModel):
    """Query result; entity lists stay under their type name (kept as extras)."""

    model_config = {"populate_by_name": True, "extra": "allow", "alias_generator": to_camel}

    start_position: int | None = None
    max_results: int | None = None
    total_count: int | None = None

    def entities(self, entity: str) -> list[dict[str, Any]]:
        items = (self.model_extra or {}).get(entity)
        return items if isinstance(items, list) else []


__all__ = [
    "Ref",
    "EmailAddress",
    "PhoneNumber",
    "Address",
    "MetaData",
    "Customer",
    "CompanyInfo",
    "LinkedTxn",
    "SalesItemLineDetail",
    "Line",
    "Invoice",
    "Payment",
    "QueryResponse",
]
