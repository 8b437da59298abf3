"""Tests for Clerk user sync: signature check on the route and the upsert/delete handling."""

import json
import os
from datetime import datetime, timezone

import pytest
from app.models.clerk_webhook_models import ClerkWebhookEvent
from app.services.clerk_webhook_services import ClerkWebhookService
from svix.webhooks import Webhook

WEBHOOK_URL = "/api/v1/clerk/webhooks"


def _clerk_user(first_name="Ada", last_name="Lovelace", username=None):
    return {
        "id": "user_2abc",
        "email_addresses": [
            {"id": "idn_secondary", "email_address": "ada@old.example.com"},
            {"id": "idn_primary", "email_address": "ada@example.com"},
        ],
        "primary_email_address_id": "idn_primary",
        "first_name": first_name,
        "last_name": last_name,
        "username": username,
    }


def _signed(payload: dict):
    body = json.dumps(payload)
    now = datetime.now(timezone.utc)
    signature = Webhook(os.environ["CLERK_WEBHOOK_SECRET"]).sign("msg_1", now, body)
    headers = {"svix-id": "msg_1", "svix-timestamp": str(int(now.timestamp())), "svix-signature": signature}
    return body, headers


# =====================================================================================================
# SERVICE
# =====================================================================================================


@pytest.mark.asyncio
async def test_user_created_is_mirrored_with_primary_email(store):
    event = ClerkWebhookEvent(data=_clerk_user(), object="event", type="user.created")

    await ClerkWebhookService(store).handle_user_upserted(event)

    user = await store.find_user_by_clerk_id("user_2abc")
    assert user.email == "ada@example.com"
    assert user.name == "Ada Lovelace"


@pytest.mark.asyncio
async def test_user_updated_keeps_same_record(store):
    service = ClerkWebhookService(store)
    await service.handle_user_upserted(ClerkWebhookEvent(data=_clerk_user(), object="event", type="user.created"))
    created = await store.find_user_by_clerk_id("user_2abc")

    await service.handle_user_upserted(
        ClerkWebhookEvent(data=_clerk_user(first_name=None, last_name=None, username="ada"), object="event", type="user.updated")
    )

    updated = await store.find_user_by_clerk_id("user_2abc")
    assert updated.id == created.id
    assert updated.name == "ada"


@pytest.mark.asyncio
async def test_user_without_email_is_skipped(store):
    data = {**_clerk_user(), "email_addresses": []}

    await ClerkWebhookService(store).handle_user_upserted(ClerkWebhookEvent(data=data, object="event", type="user.created"))

    assert store.users == {}


@pytest.mark.asyncio
async def test_user_deleted_removes_their_gigs(store):
    service = ClerkWebhookService(store)
    await service.handle_user_upserted(ClerkWebhookEvent(data=_clerk_user(), object="event", type="user.created"))
    user = await store.find_user_by_clerk_id("user_2abc")
    await store.create_gig(user.id, "Logo design", "A logo", 300)

    await service.handle_user_deleted(ClerkWebhookEvent(data={"id": "user_2abc"}, object="event", type="user.deleted"))

    assert store.users == {}
    assert store.gigs == {}


# =====================================================================================================
# ROUTE
# =====================================================================================================


def test_signed_webhook_syncs_user(client):
    body, headers = _signed({"data": _clerk_user(), "object": "event", "type": "user.created"})

    response = client.post(WEBHOOK_URL, content=body, headers=headers)

    assert response.status_code == 200
    assert response.json() == {"status": "success"}
    users = list(client.app.state.entity_store.users.values())
    assert [u.clerk_user_id for u in users] == ["user_2abc"]


def test_unsigned_webhook_is_rejected(client):
    body, headers = _signed({"data": _clerk_user(), "object": "event", "type": "user.created"})
    headers["svix-signature"] = "v1,bm90IGEgc2lnbmF0dXJl"

    response = client.post(WEBHOOK_URL, content=body, headers=headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid webhook signature"
    assert client.app.state.entity_store.users == {}


def test_unhandled_event_type_is_acknowledged(client):
    body, headers = _signed({"data": {"id": "sess_1"}, "object": "event", "type": "session.created"})

    response = client.post(WEBHOOK_URL, content=body, headers=headers)

    assert response.status_code == 200
