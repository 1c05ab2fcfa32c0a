"""QuickBooks Online accounting integration."""

from integrations.providers.quickbooks.auth import (
    DEFAULT_SCOPES,
    QuickBooksTokenRefresher,
    parse_quickbooks_error,
)
from integrations.providers.quickbooks.client import (
    QuickBooksClient,
    build_query,
    escape_query_value,
)
from integrations.providers.quickbooks.schemas import (
    CompanyInfo,
    Customer,
    EmailAddress,
    Invoice,
    Line,
    LinkedTxn,
    Payment,
    QueryResponse,
    Ref,
)

__all__ = [
    "QuickBooksClient",
    "QuickBooksTokenRefresher",
    "parse_quickbooks_error",
    "build_query",
    "escape_query_value",
    "DEFAULT_SCOPES",
    "CompanyInfo",
    "Customer",
    "EmailAddress",
    "Invoice",
    "Line",
    "LinkedTxn",
    "Payment",
    "QueryResponse",
    "Ref",
]
