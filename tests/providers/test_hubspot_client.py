"""
Tests for providers.hubspot module.

Tests cover:
- Cursor pagination over contacts
- Search by email and find-or-create
- Tasks and notes associated with contacts and deals
- Deals, owners and deal pipelines
- Token info and refresh token revocation
"""

import logging

import pytest

from integrations.errors.exceptions import AuthError, TransportError, ValidationError
from integrations.http.pagination import collect
from integrations.http.request import RequestOptions
from integrations.providers.hubspot import (
    ContactInput,
    DealInput,
    DealUpdate,
    HubSpotClient,
    HubSpotTokenRefresher,
    TaskInput,
    parse_hubspot_error,
)

API = "https://api.hubapi.com"


@pytest.fixture
def client(fresh_tokens, oauth_config, settings, session, clock):
    return HubSpotClient(fresh_tokens, oauth_config, settings=settings, session=session, clock=clock)


def contact(contact_id, email=None, **properties):
    return {
        "id": contact_id,
        "properties": {"email": email or f"{contact_id}@example.com", **properties},
        "createdAt": "2026-01-01T00:00:00Z",
        "updatedAt": "2026-01-02T00:00:00Z",
        "archived": False,
    }


class TestContacts:
    @pytest.mark.asyncio
    async def test_iterate_contacts_follows_after_cursor(self, client, session, respond):
        session.add(
            respond(
                {
                    "results": [contact("1"), contact("2")],
                    "paging": {"next": {"after": "2", "link": f"{API}/crm/v3/objects/contacts?after=2"}},
                }
            ),
            respond({"results": [contact("3")]}),
        )

        contacts = await collect(client.iterate_contacts(page_size=2))

        assert [c.id for c in contacts] == ["1", "2", "3"]
        assert contacts[0].email == "1@example.com"
        assert "after=" not in session.calls[0].url
        assert "after=2" in session.calls[1].url
        assert "limit=2" in session.calls[1].url

    @pytest.mark.asyncio
    async def test_list_contacts_caps_page_size(self, client, session, respond):
        session.add(respond({"results": []}))

        response = await client.list_contacts(limit=500)

        assert "limit=100" in session.calls[0].url
        assert response.next_after is None

    @pytest.mark.asyncio
    async def test_get_contact(self, client, session, respond):
        session.add(respond(contact("7", firstname="Ann")))

        result = await client.get_contact("7")

        assert session.calls[0].url.startswith(f"{API}/crm/v3/objects/contacts/7?properties=")
        assert result.properties["firstname"] == "Ann"
        assert result.created_at == "2026-01-01T00:00:00Z"

    @pytest.mark.asyncio
    async def test_get_contact_by_email_uses_search(self, client, session, respond):
        session.add(respond({"total": 1, "results": [contact("9", "ann@example.com")]}))

        result = await client.get_contact_by_email("ann@example.com")

        call = session.calls[0]
        assert call.method == "POST"
        assert call.url == f"{API}/crm/v3/objects/contacts/search"
        assert call.kwargs["json"]["filterGroups"] == [
            {"filters": [{"propertyName": "email", "operator": "EQ", "value": "ann@example.com"}]}
        ]
        assert call.kwargs["json"]["limit"] == 1
        assert result.id == "9"

    @pytest.mark.asyncio
    async def test_get_contact_by_email_not_found(self, client, session, respond):
        session.add(respond({"total": 0, "results": []}))

        assert await client.get_contact_by_email("nobody@example.com") is None

    @pytest.mark.asyncio
    async def test_find_or_create_returns_existing(self, client, session, respond):
        session.add(respond({"results": [contact("9", "ann@example.com")]}))

        result, created = await client.find_or_create_contact("ann@example.com", "Ann")

        assert result.id == "9"
        assert created is False
        assert len(session.calls) == 1

    @pytest.mark.asyncio
    async def test_find_or_create_creates_missing(self, client, session, respond):
        session.add(
            respond({"results": []}),
            respond(contact("10", "bob@example.com"), status=201),
        )

        result, created = await client.find_or_create_contact(
            "bob@example.com", "Bob", company="Acme"
        )

        assert created is True
        assert result.id == "10"
        create_call = session.calls[1]
        assert create_call.url == f"{API}/crm/v3/objects/contacts"
        assert create_call.kwargs["json"] == {
            "properties": {"email": "bob@example.com", "firstname": "Bob", "company": "Acme"}
        }

    @pytest.mark.asyncio
    async def test_create_contact(self, client, session, respond):
        session.add(respond(contact("11"), status=201))

        await client.create_contact(ContactInput(email="c@example.com", jobtitle="CTO"))

        assert session.calls[0].kwargs["json"] == {
            "properties": {"email": "c@example.com", "jobtitle": "CTO"}
        }


class TestEngagements:
    @pytest.mark.asyncio
    async def test_create_task_for_contact(self, client, session, respond):
        session.add(
            respond({"id": "t1", "properties": {"hs_task_subject": "Follow up"}}, status=201),
            respond({"fromObjectId": "t1", "toObjectId": "c1"}),
        )

        task = await client.create_task_for_contact(
            "c1", TaskInput(hs_task_subject="Follow up", hs_task_priority="HIGH")
        )

        assert task.id == "t1"
        create_call, associate_call = session.calls
        assert create_call.url == f"{API}/crm/v3/objects/tasks"
        assert create_call.kwargs["json"]["properties"] == {
            "hs_task_subject": "Follow up",
            "hs_task_priority": "HIGH",
            "hs_timestamp": "2026-01-15T12:00:00Z",
        }
        assert associate_call.method == "PUT"
        assert associate_call.url == (
            f"{API}/crm/v3/objects/tasks/t1/associations/contacts/c1/task_to_contact"
        )

    @pytest.mark.asyncio
    async def test_task_keeps_explicit_timestamp(self, client, session, respond):
        session.add(respond({"id": "t1"}, status=201), respond({}))

        await client.create_task_for_contact(
            "c1", TaskInput(hs_task_subject="Call", hs_timestamp="2026-02-01T09:00:00Z")
        )

        assert session.calls[0].kwargs["json"]["properties"]["hs_timestamp"] == "2026-02-01T09:00:00Z"

    @pytest.mark.asyncio
    async def test_add_note_to_contact(self, client, session, respond):
        session.add(respond({"id": "n1"}, status=201), respond({}))

        note = await client.add_note_to_contact("c1", "Signed the NDA")

        assert note.id == "n1"
        assert session.calls[0].kwargs["json"] == {
            "properties": {"hs_note_body": "Signed the NDA", "hs_timestamp": "2026-01-15T12:00:00Z"}
        }
        assert session.calls[1].url.endswith("/notes/n1/associations/contacts/c1/note_to_contact")

    @pytest.mark.asyncio
    async def test_engagement_options_reach_association(self, client, session, respond):
        session.add(
            respond({"id": "t1"}, status=201),
            respond({}),
            respond({"id": "n1"}, status=201),
            respond({}),
        )
        options = RequestOptions(headers={"X-Trace": "sync-42"}, timeout=5)

        await client.create_task_for_contact("c1", TaskInput(hs_task_subject="Call"), options)
        await client.add_note_to_contact("c1", "Called", options)

        assert [call.headers.get("X-Trace") for call in session.calls] == ["sync-42"] * 4
        assert session.calls[1].method == "PUT"
        assert session.calls[3].method == "PUT"


def deal(deal_id, name="Renewal", **properties):
    return {
        "id": deal_id,
        "properties": {"dealname": name, **properties},
        "createdAt": "2026-01-01T00:00:00Z",
        "archived": False,
    }


class TestDeals:
    @pytest.mark.asyncio
    async def test_create_deal(self, client, session, respond):
        session.add(respond(deal("d1", dealstage="appointmentscheduled"), status=201))

        result = await client.create_deal(
            DealInput(dealname="Renewal", amount="1200", pipeline="default")
        )

        call = session.calls[0]
        assert call.method == "POST"
        assert call.url == f"{API}/crm/v3/objects/deals"
        assert call.kwargs["json"] == {
            "properties": {"dealname": "Renewal", "amount": "1200", "pipeline": "default"}
        }
        assert result.id == "d1"
        assert result.name == "Renewal"
        assert result.stage == "appointmentscheduled"

    @pytest.mark.asyncio
    async def test_get_deal(self, client, session, respond):
        session.add(respond(deal("d1", amount="50")))

        result = await client.get_deal("d1", properties=["dealname", "amount"])

        assert session.calls[0].url == f"{API}/crm/v3/objects/deals/d1?properties=dealname%2Camount"
        assert result.properties["amount"] == "50"

    @pytest.mark.asyncio
    async def test_update_deal_sends_only_changes(self, client, session, respond):
        session.add(respond(deal("d1", dealstage="closedwon")))

        result = await client.update_deal("d1", DealUpdate(dealstage="closedwon"))

        call = session.calls[0]
        assert call.method == "PATCH"
        assert call.url == f"{API}/crm/v3/objects/deals/d1"
        assert call.kwargs["json"] == {"properties": {"dealstage": "closedwon"}}
        assert result.stage == "closedwon"

    @pytest.mark.asyncio
    async def test_iterate_deals_follows_after_cursor(self, client, session, respond):
        session.add(
            respond({"results": [deal("1"), deal("2")], "paging": {"next": {"after": "2"}}}),
            respond({"results": [deal("3")]}),
        )

        deals = await collect(client.iterate_deals(page_size=2))

        assert [d.id for d in deals] == ["1", "2", "3"]
        assert session.calls[0].url.startswith(f"{API}/crm/v3/objects/deals?limit=2")
        assert "after=2" in session.calls[1].url

    @pytest.mark.asyncio
    async def test_list_deals_caps_page_size(self, client, session, respond):
        session.add(respond({"results": [deal("1")]}))

        response = await client.list_deals(limit=250)

        assert "limit=100" in session.calls[0].url
        assert response.next_after is None

    @pytest.mark.asyncio
    async def test_associate_contact_with_deal(self, client, session, respond):
        session.add(respond({}))

        await client.associate_contact_with_deal("c1", "d1")

        call = session.calls[0]
        assert call.method == "PUT"
        assert call.url == f"{API}/crm/v3/objects/contacts/c1/associations/deals/d1/contact_to_deal"

    @pytest.mark.asyncio
    async def test_add_note_to_deal(self, client, session, respond):
        session.add(respond({"id": "n1"}, status=201), respond({}))

        note = await client.add_note_to_deal("d1", "Envelope completed")

        assert note.id == "n1"
        assert session.calls[0].kwargs["json"]["properties"]["hs_note_body"] == "Envelope completed"
        assert session.calls[1].url == (
            f"{API}/crm/v3/objects/notes/n1/associations/deals/d1/note_to_deal"
        )

    @pytest.mark.asyncio
    async def test_create_task_for_deal(self, client, session, respond):
        session.add(respond({"id": "t1"}, status=201), respond({}))

        task = await client.create_task_for_deal("d1", TaskInput(hs_task_subject="Send invoice"))

        assert task.id == "t1"
        assert session.calls[0].kwargs["json"]["properties"] == {
            "hs_task_subject": "Send invoice",
            "hs_timestamp": "2026-01-15T12:00:00Z",
        }
        assert session.calls[1].url.endswith("/tasks/t1/associations/deals/d1/task_to_deal")

    @pytest.mark.asyncio
    async def test_signed_contract_flow(self, client, session, respond):
        session.add(
            respond(deal("d9"), status=201),
            respond({}),
            respond({"id": "n1"}, status=201),
            respond({}),
        )

        created = await client.create_deal(DealInput(dealname="Acme MSA", dealstage="contractsent"))
        await client.associate_contact_with_deal("c1", created.id)
        await client.add_note_to_deal(created.id, "Signed by Ann")

        assert [call.method for call in session.calls] == ["POST", "PUT", "POST", "PUT"]
        assert "/contacts/c1/associations/deals/d9/" in session.calls[1].url
        assert "/notes/n1/associations/deals/d9/" in session.calls[3].url


def owner(owner_id, email):
    return {
        "id": owner_id,
        "email": email,
        "firstName": "Ann",
        "lastName": "Lee",
        "userId": 501,
        "archived": False,
    }


class TestOwnersAndPipelines:
    @pytest.mark.asyncio
    async def test_list_owners(self, client, session, respond):
        session.add(
            respond(
                {
                    "results": [owner("o1", "ann@example.com")],
                    "paging": {"next": {"after": "o1"}},
                }
            )
        )

        response = await client.list_owners(limit=10)

        assert session.calls[0].url == f"{API}/crm/v3/owners?limit=10"
        assert response.results[0].first_name == "Ann"
        assert response.results[0].user_id == 501
        assert response.next_after == "o1"

    @pytest.mark.asyncio
    async def test_get_owner_by_email(self, client, session, respond):
        session.add(respond({"results": [owner("o2", "Ann@Example.com")]}))

        result = await client.get_owner_by_email("ann@example.com")

        assert "email=ann%40example.com" in session.calls[0].url
        assert result.id == "o2"

    @pytest.mark.asyncio
    async def test_get_owner_by_email_not_found(self, client, session, respond):
        session.add(respond({"results": [owner("o3", "someone@example.com")]}))

        assert await client.get_owner_by_email("ann@example.com") is None

    @pytest.mark.asyncio
    async def test_list_deal_pipelines(self, client, session, respond):
        session.add(
            respond(
                {
                    "results": [
                        {
                            "id": "default",
                            "label": "Sales Pipeline",
                            "displayOrder": 0,
                            "stages": [
                                {
                                    "id": "contractsent",
                                    "label": "Contract Sent",
                                    "metadata": {"probability": "0.9"},
                                },
                                {
                                    "id": "closedwon",
                                    "label": "Closed Won",
                                    "metadata": {"isClosed": "true"},
                                },
                            ],
                        }
                    ]
                }
            )
        )

        pipelines = await client.list_deal_pipelines()

        assert session.calls[0].url == f"{API}/crm/v3/pipelines/deals"
        assert [p.label for p in pipelines] == ["Sales Pipeline"]
        assert [s.id for s in pipelines[0].stages] == ["contractsent", "closedwon"]
        assert pipelines[0].stage("closedwon").is_closed
        assert not pipelines[0].stage("contractsent").is_closed
        assert pipelines[0].stage("missing") is None

    @pytest.mark.asyncio
    async def test_get_deal_pipeline(self, client, session, respond):
        session.add(respond({"id": "p2", "label": "Renewals", "stages": []}))

        pipeline = await client.get_deal_pipeline("p2")

        assert session.calls[0].url == f"{API}/crm/v3/pipelines/deals/p2"
        assert pipeline.label == "Renewals"


class TestErrors:
    @pytest.mark.asyncio
    async def test_expired_authentication(self, client, session, respond):
        session.add(
            respond(
                {
                    "status": "error",
                    "message": "The OAuth token used to make this call expired",
                    "correlationId": "abc",
                    "category": "EXPIRED_AUTHENTICATION",
                },
                status=401,
            )
        )

        with pytest.raises(AuthError) as exc_info:
            await client.get_contact("1")

        assert exc_info.value.provider_error_code == "EXPIRED_AUTHENTICATION"
        assert "expired" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_validation_category(self, client, session, respond):
        session.add(
            respond(
                {
                    "status": "error",
                    "message": "Property values were not valid",
                    "category": "VALIDATION_ERROR",
                },
                status=400,
            )
        )

        with pytest.raises(ValidationError):
            await client.create_contact(ContactInput(email="not-an-email"))

    def test_parser_marks_invalid_authentication(self):
        assert parse_hubspot_error({"category": "INVALID_AUTHENTICATION", "message": "bad"}).is_auth


class TestTokenEndpoints:
    @pytest.fixture
    def refresher(self, session, clock):
        return HubSpotTokenRefresher(session=session, clock=clock)

    @pytest.mark.asyncio
    async def test_get_token_info(self, refresher, session, respond):
        session.add(respond({"hub_id": 123, "user": "ann@example.com", "scopes": ["oauth"]}))

        info = await refresher.get_token_info("access-token")

        assert session.calls[0].url == f"{API}/oauth/v1/access-tokens/access-token"
        assert info["hub_id"] == 123

    @pytest.mark.asyncio
    async def test_get_token_info_unreachable(self, refresher, session, respond):
        session.add(respond(raises=TimeoutError()))

        with pytest.raises(TransportError):
            await refresher.get_token_info("access-token")

    @pytest.mark.asyncio
    async def test_revoke_deletes_refresh_token(self, refresher, session, respond, oauth_config, caplog):
        session.add(respond(status=204))

        with caplog.at_level(logging.INFO, logger="integrations.providers.hubspot.auth"):
            await refresher.revoke(oauth_config, "refresh-token")

        assert session.calls[0].method == "DELETE"
        assert session.calls[0].url == f"{API}/oauth/v1/refresh-tokens/refresh-token"
        assert "Token revoked" in caplog.text

    @pytest.mark.asyncio
    async def test_revoke_failure_is_logged_not_raised(
        self, refresher, session, respond, oauth_config, caplog
    ):
        session.add(respond({"message": "not found"}, status=404))

        with caplog.at_level(logging.WARNING, logger="integrations.providers.hubspot.auth"):
            await refresher.revoke(oauth_config, "refresh-token")

        assert "Failed to revoke refresh token" in caplog.text

    @pytest.mark.asyncio
    async def test_refresh_uses_form_credentials(
        self, refresher, session, respond, oauth_config, token_body
    ):
        session.add(respond(token_body))

        tokens = await refresher.refresh(oauth_config, "refresh-token")

        assert session.calls[0].url == f"{API}/oauth/v1/token"
        assert session.calls[0].kwargs["data"]["client_secret"] == "client-secret"
        assert tokens.access_token == "new-access"
