"""QuickBooks Online accounting API client."""

import logging
from collections.abc import AsyncIterator, Iterable
from typing import Any

import aiohttp

from integrations.errors.classifiers import ParsedApiError
from integrations.errors.exceptions import IntegrationError
from integrations.http.pagination import Page
from integrations.http.request import RequestOptions
from integrations.oauth2.models import Environment
from integrations.providers.base import ProviderAdapter
from integrations.providers.quickbooks.auth import (
    QuickBooksTokenRefresher,
    parse_quickbooks_error,
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
from integrations.types import Clock

logger = logging.getLogger(__name__)

API_BASE_URLS = {
    Environment.PRODUCTION: "https://quickbooks.api.intuit.com/v3/company",
    Environment.SANDBOX: "https://sandbox-quickbooks.api.intuit.com/v3/company",
}

MAX_PAGE_SIZE = 1000


def escape_query_value(value: str) -> str:
    """Escape a string literal for the QuickBooks query language."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def build_query(
    statement: str,
    order_by: Iterable[str] | None = None,
    start_position: int | None = None,
    max_results: int | None = None,
) -> str:
    query = statement
    order = list(order_by or ())
    if order:
        query += f" ORDERBY {', '.join(order)}"
    if start_position:
        query += f" STARTPOSITION {start_position}"
    if max_results:
        query += f" MAXRESULTS {max_results}"
    return query


class QuickBooksClient(ProviderAdapter):
    """
    Client for the QuickBooks Online v3 API.

    Requires routing field realm_id (the company id returned on the OAuth
    redirect). The base URL follows the OAuth environment.
    """

    provider_name = "quickbooks"
    default_page_size = 100

    @classmethod
    def create_refresher(
        cls,
        session: aiohttp.ClientSession | None = None,
        clock: Clock | None = None,
    ) -> QuickBooksTokenRefresher:
        return QuickBooksTokenRefresher(session=session, clock=clock)

    @property
    def environment(self) -> Environment:
        return self.oauth_config.environment if self.oauth_config else Environment.PRODUCTION

    @property
    def realm_id(self) -> str:
        return self.routing_value("realm_id")

    def base_url(self) -> str:
        return f"{API_BASE_URLS[self.environment]}/{self.realm_id}"

    def parse_api_error(self, payload: Any) -> ParsedApiError:
        return parse_quickbooks_error(payload)

    def _unwrap(self, body: Any, entity: str, model: Any) -> Any:
        """Decode the entity wrapped under its type name."""
        wrapped = body.get(entity) if isinstance(body, dict) else None
        if wrapped is None:
            raise IntegrationError(
                f"QuickBooks response has no {entity} object",
                context={"provider": self.provider_name},
            )
        return self.pipeline.decode(wrapped, model)

    async def _get_entity(
        self, entity: str, entity_id: str, model: Any, options: RequestOptions | None
    ) -> Any:
        spec = self.request(
            "GET",
            f"/{entity.lower()}/{entity_id}",
            options,
            operation=f"quickbooks.get_{entity.lower()}",
        )
        return self._unwrap(await self.execute(spec), entity, model)

    async def _create_entity(
        self, entity: str, payload: dict[str, Any], model: Any, options: RequestOptions | None
    ) -> Any:
        spec = self.request(
            "POST",
            f"/{entity.lower()}",
            options,
            body=payload,
            operation=f"quickbooks.create_{entity.lower()}",
        )
        created = self._unwrap(await self.execute(spec), entity, model)
        logger.info(
            f"QuickBooks {entity} created",
            extra={"provider": self.provider_name, "resource_id": created.id},
        )
        return created

    # =========================================================================
    # Company and queries
    # =========================================================================

    async def get_company_info(self, options: RequestOptions | None = None) -> CompanyInfo:
        return await self._get_entity("CompanyInfo", self.realm_id, CompanyInfo, options)

    async def query(
        self,
        statement: str,
        order_by: Iterable[str] | None = None,
        start_position: int | None = None,
        max_results: int | None = None,
        options: RequestOptions | None = None,
    ) -> QueryResponse:
        """
        Run a query language statement.

        Args:
            statement: e.g. "SELECT * FROM Customer WHERE Active = true"
            start_position: 1-based offset (STARTPOSITION)
            max_results: Page size (MAXRESULTS)
        """
        spec = self.request(
            "GET",
            "/query",
            options,
            query={"query": build_query(statement, order_by, start_position, max_results)},
            operation="quickbooks.query",
        )
        body = await self.execute(spec)
        return self.pipeline.decode((body or {}).get("QueryResponse") or {}, QueryResponse)

    # =========================================================================
    # Customers
    # =========================================================================

    async def list_customers(
        self,
        where: str | None = None,
        start_position: int = 1,
        max_results: int | None = None,
        options: RequestOptions | None = None,
    ) -> list[Customer]:
        statement = "SELECT * FROM Customer"
        if where:
            statement += f" WHERE {where}"
        response = await self.query(
            statement,
            start_position=start_position,
            max_results=min(self.page_size(max_results), MAX_PAGE_SIZE),
            options=options,
        )
        return self.pipeline.decode(response.entities("Customer"), list[Customer])

    def iterate_customers(
        self, where: str | None = None, page_size: int | None = None
    ) -> AsyncIterator[Customer]:
        """Iterate customers with STARTPOSITION/MAXRESULTS paging."""
        size = min(self.page_size(page_size), MAX_PAGE_SIZE)
        statement = "SELECT * FROM Customer"
        if where:
            statement += f" WHERE {where}"

        def build(start: int):
            return self.request(
                "GET",
                "/query",
                query={"query": build_query(statement, None, start, size)},
                operation="quickbooks.iterate_customers",
            )

        def parse(body: Any, start: int) -> Page[Customer]:
            response = self.pipeline.decode((body or {}).get("QueryResponse") or {}, QueryResponse)
            items = self.pipeline.decode(response.entities("Customer"), list[Customer])
            return Page.from_sized(items, size, next_cursor=start + len(items))

        return self.iterate_pages(build, parse, first_cursor=1)

    async def get_customer(self, customer_id: str, options: RequestOptions | None = None) -> Customer:
        return await self._get_entity("Customer", customer_id, Customer, options)

    async def create_customer(
        self, customer: Customer, options: RequestOptions | None = None
    ) -> Customer:
        return await self._create_entity("Customer", customer.to_payload(), Customer, options)

    async def find_or_create_customer(
        self,
        email: str,
        name: str,
        options: RequestOptions | None = None,
    ) -> tuple[Customer, bool]:
        """
        Find a customer by primary email or create one named name.

        Returns:
            (customer, created)
        """
        existing = await self.list_customers(
            where=f"PrimaryEmailAddr = '{escape_query_value(email)}'",
            max_results=1,
            options=options,
        )
        if existing:
            return existing[0], False

        given_name, _, family_name = name.partition(" ")
        customer = Customer(
            display_name=name,
            given_name=given_name,
            family_name=family_name or None,
            primary_email_addr=EmailAddress(address=email),
        )
        return await self.create_customer(customer, options), True

    # =========================================================================
    # Invoices and payments
    # =========================================================================

    async def create_invoice(
        self,
        customer_id: str,
        lines: list[Line],
        options: RequestOptions | None = None,
        **fields: Any,
    ) -> Invoice:
        """Create an invoice; extra fields use model names (due_date, doc_number, ...)."""
        invoice = Invoice(customer_ref=Ref(value=customer_id), line=lines, **fields)
        return await self._create_entity("Invoice", invoice.to_payload(), Invoice, options)

    async def get_invoice(self, invoice_id: str, options: RequestOptions | None = None) -> Invoice:
        return await self._get_entity("Invoice", invoice_id, Invoice, options)

    async def create_payment(
        self,
        invoice_id: str,
        amount: float,
        customer_id: str,
        options: RequestOptions | None = None,
        **fields: Any,
    ) -> Payment:
        """Record a payment applied in full to one invoice."""
        payment = Payment(
            customer_ref=Ref(value=customer_id),
            total_amt=amount,
            line=[Line(amount=amount, linked_txn=[LinkedTxn(txn_id=invoice_id, txn_type="Invoice")])],
            **fields,
        )
        return await self._create_entity("Payment", payment.to_payload(), Payment, options)

    async def get_payment(self, payment_id: str, options: RequestOptions | None = None) -> Payment:
        return await self._get_entity("Payment", payment_id, Payment, options)


__all__ = ["QuickBooksClient", "API_BASE_URLS", "build_query", "escape_query_value"]
