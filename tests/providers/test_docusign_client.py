"""
Tests for providers.docusign module.

Tests cover:
- Account routing in the base URL and account discovery
- Offset pagination over templates and envelopes
- Envelope creation payloads in DocuSign wire naming
- Error body parsing and token endpoint wiring
"""

from unittest.mock import AsyncMock

import aiohttp
import pytest

from integrations.errors.exceptions import (
    AuthError,
    InvalidConfigurationError,
    NotFoundError,
    ValidationError,
)
from integrations.http.pagination import collect
from integrations.oauth2.models import OAuthConfig, Tokens
from integrations.providers.docusign import (
    CreateEnvelopeRequest,
    DocuSignClient,
    TemplateRole,
    parse_docusign_error,
)

BASE_URI = "https://demo.docusign.net"
ACCOUNT_URL = f"{BASE_URI}/restapi/v2.1/accounts/acct-1"


@pytest.fixture
def sandbox_config():
    return OAuthConfig("client-id", "client-secret", "https://app.example.com/cb", "sandbox")


@pytest.fixture
def client(fresh_tokens, sandbox_config, settings, session, clock):
    tokens = fresh_tokens.with_routing(account_id="acct-1", base_uri=BASE_URI)
    return DocuSignClient(tokens, sandbox_config, settings=settings, session=session, clock=clock)


def template(template_id, name=None):
    return {"templateId": template_id, "name": name or template_id, "shared": "false"}


class TestRouting:
    def test_base_url_includes_account(self, client):
        assert client.base_url() == ACCOUNT_URL

    @pytest.mark.asyncio
    async def test_missing_routing_fails_before_any_request(
        self, fresh_tokens, sandbox_config, session, clock
    ):
        client = DocuSignClient(fresh_tokens, sandbox_config, session=session, clock=clock)

        with pytest.raises(InvalidConfigurationError, match="account_id|base_uri"):
            await client.get_envelope("env-1")

        assert session.calls == []

    @pytest.mark.asyncio
    async def test_discover_account_uses_default_account(
        self, fresh_tokens, sandbox_config, session, respond, clock
    ):
        session.add(
            respond(
                {
                    "sub": "user-1",
                    "accounts": [
                        {
                            "account_id": "a1",
                            "is_default": False,
                            "base_uri": "https://na1.docusign.net",
                        },
                        {
                            "account_id": "a2",
                            "is_default": True,
                            "base_uri": "https://na2.docusign.net/",
                        },
                    ],
                }
            )
        )
        client = DocuSignClient(fresh_tokens, sandbox_config, session=session, clock=clock)

        account = await client.discover_account()

        assert session.calls[0].url == "https://account-d.docusign.com/oauth/userinfo"
        assert account.account_id == "a2"
        assert client.tokens.routing == {"account_id": "a2", "base_uri": "https://na2.docusign.net/"}
        assert client.base_url() == "https://na2.docusign.net/restapi/v2.1/accounts/a2"

    @pytest.mark.asyncio
    async def test_discovered_routing_is_persisted(
        self, fresh_tokens, sandbox_config, session, respond, clock
    ):
        session.add(
            respond(
                {
                    "accounts": [
                        {
                            "account_id": "a2",
                            "is_default": True,
                            "base_uri": "https://na2.docusign.net",
                        }
                    ]
                }
            )
        )
        save = AsyncMock()
        client = DocuSignClient(
            fresh_tokens, sandbox_config, on_token_refresh=save, session=session, clock=clock
        )

        await client.discover_account()

        save.assert_awaited_once()
        stored = save.await_args.args[0]
        assert stored.routing == {"account_id": "a2", "base_uri": "https://na2.docusign.net"}
        assert stored.access_token == fresh_tokens.access_token
        assert stored is client.tokens

    @pytest.mark.asyncio
    async def test_discover_unknown_account(self, client, session, respond):
        session.add(respond({"sub": "user-1", "accounts": []}))

        with pytest.raises(InvalidConfigurationError):
            await client.discover_account("missing")


class TestTemplates:
    @pytest.mark.asyncio
    async def test_list_templates(self, client, session, respond):
        session.add(
            respond({"envelopeTemplates": [template("t1", "NDA")], "resultSetSize": "1"})
        )

        response = await client.list_templates()

        assert session.calls[0].url == f"{ACCOUNT_URL}/templates?start_position=0&count=50"
        assert response.envelope_templates[0].template_id == "t1"
        assert response.envelope_templates[0].name == "NDA"
        assert response.result_set_size == "1"

    @pytest.mark.asyncio
    async def test_iterate_templates_advances_offset(self, client, session, respond):
        session.add(
            respond({"envelopeTemplates": [template("t1"), template("t2")]}),
            respond({"envelopeTemplates": [template("t3")]}),
        )

        templates = await collect(client.iterate_templates(page_size=2))

        assert [t.template_id for t in templates] == ["t1", "t2", "t3"]
        assert [call.url for call in session.calls] == [
            f"{ACCOUNT_URL}/templates?start_position=0&count=2",
            f"{ACCOUNT_URL}/templates?start_position=2&count=2",
        ]

    @pytest.mark.asyncio
    async def test_iterate_handles_missing_list(self, client, session, respond):
        session.add(respond({"resultSetSize": "0"}))

        assert await collect(client.iterate_templates()) == []


class TestEnvelopes:
    @pytest.mark.asyncio
    async def test_list_envelopes_filters(self, client, session, respond):
        session.add(respond({"envelopes": [{"envelopeId": "e1", "status": "sent"}]}))

        response = await client.list_envelopes(from_date="2026-01-01", status="sent", count=10)

        assert session.calls[0].url == (
            f"{ACCOUNT_URL}/envelopes?start_position=0&count=10&from_date=2026-01-01&status=sent"
        )
        assert response.envelopes[0].envelope_id == "e1"

    @pytest.mark.asyncio
    async def test_create_envelope_payload(self, client, session, respond):
        session.add(respond({"envelopeId": "e1", "status": "sent"}, status=201))

        created = await client.create_envelope(
            CreateEnvelopeRequest(
                email_subject="Please sign",
                template_id="t1",
                template_roles=[TemplateRole(email="a@example.com", name="Ann", role_name="Signer")],
            )
        )

        assert session.calls[0].method == "POST"
        assert session.calls[0].kwargs["json"] == {
            "emailSubject": "Please sign",
            "templateId": "t1",
            "templateRoles": [{"email": "a@example.com", "name": "Ann", "roleName": "Signer"}],
            "status": "sent",
        }
        assert created.envelope_id == "e1"

    @pytest.mark.asyncio
    async def test_download_documents(self, client, session, respond):
        session.add(respond(raw=b"%PDF-1.7", headers={"Content-Type": "application/pdf"}))

        content = await client.download_envelope_documents("e1")

        assert content == b"%PDF-1.7"
        assert session.calls[0].url == f"{ACCOUNT_URL}/envelopes/e1/documents/combined"
        assert session.calls[0].headers["Accept"] == "application/pdf"

    @pytest.mark.asyncio
    async def test_delete_envelope(self, client, session, respond):
        session.add(respond(status=204))

        assert await client.delete_envelope("e1") is None
        assert session.calls[0].method == "DELETE"


class TestErrors:
    @pytest.mark.asyncio
    async def test_auth_error_code_on_400(self, client, session, respond):
        session.add(
            respond(
                {
                    "errorCode": "USER_AUTHENTICATION_FAILED",
                    "message": "One or both of Username and Password are invalid.",
                },
                status=400,
            )
        )

        with pytest.raises(AuthError) as exc_info:
            await client.get_envelope("e1")

        assert exc_info.value.provider_error_code == "USER_AUTHENTICATION_FAILED"
        assert exc_info.value.provider == "docusign"

    @pytest.mark.asyncio
    async def test_validation_error_code(self, client, session, respond):
        session.add(respond({"errorCode": "INVALID_REQUEST_BODY", "message": "bad"}, status=400))

        with pytest.raises(ValidationError):
            await client.create_envelope(CreateEnvelopeRequest(email_subject="x"))

    @pytest.mark.asyncio
    async def test_not_found(self, client, session, respond):
        session.add(respond({"errorCode": "ENVELOPE_DOES_NOT_EXIST", "message": "nope"}, status=404))

        with pytest.raises(NotFoundError):
            await client.get_envelope("missing")

    def test_parser_falls_back_to_oauth_shape(self):
        parsed = parse_docusign_error({"error": "invalid_grant", "error_description": "expired"})

        assert parsed.message == "expired"
        assert parsed.code == "invalid_grant"
        assert not parsed.is_auth


class TestTokenRefresh:
    @pytest.mark.asyncio
    async def test_refresh_uses_sandbox_host_and_basic_auth(
        self, expiring_tokens, sandbox_config, settings, session, respond, clock, token_body
    ):
        tokens = expiring_tokens.with_routing(account_id="acct-1", base_uri=BASE_URI)
        client = DocuSignClient(tokens, sandbox_config, settings=settings, session=session, clock=clock)
        session.add(respond(token_body), respond({"envelopeId": "e1", "status": "sent"}))

        await client.get_envelope("e1")

        token_call = session.calls[0]
        assert token_call.url == "https://account-d.docusign.com/oauth/token"
        assert token_call.kwargs["auth"] == aiohttp.BasicAuth("client-id", "client-secret")
        assert client.tokens.routing["account_id"] == "acct-1"
        assert session.calls[1].headers["Authorization"] == "Bearer new-access"

    def test_api_key_style_tokens_without_config_never_refresh(self, clock, session):
        client = DocuSignClient(
            Tokens("access", "refresh", routing={"account_id": "a", "base_uri": BASE_URI}),
            session=session,
            clock=clock,
        )

        assert not client.token_manager.can_refresh
