"""Tests for live sessions: connection registry, notification dispatcher and client events."""

from unittest.mock import AsyncMock

import pytest
from app.models.bid_models import BidStatus
from app.models.gig_models import GigStatus
from app.models.notification_models import EventName, HiredEvent, StoppedTypingEvent
from app.models.user_models import UserUpsert
from app.realtime.connection_registry import gig_room
from app.services.realtime_services import RealtimeService

HIRED = HiredEvent(message="You have been hired for Logo design!", gig_id="gig-1", gig_title="Logo design", bid_id="bid-1")


def _socket(broken=False):
    websocket = AsyncMock()
    if broken:
        websocket.send_json.side_effect = RuntimeError("socket closed")
    return websocket


def _sent(websocket):
    return [c.args[0] for c in websocket.send_json.await_args_list]


# =====================================================================================================
# CONNECTION REGISTRY
# =====================================================================================================


def test_registry_tracks_several_sessions_per_user(registry):
    tab_1, tab_2 = _socket(), _socket()
    registry.register("user-1", tab_1)
    registry.register("user-1", tab_2)

    assert set(registry.connections_for_user("user-1")) == {tab_1, tab_2}

    registry.deregister("user-1", tab_1)
    assert registry.connections_for_user("user-1") == [tab_2]

    registry.deregister("user-1", tab_2)
    assert registry.connections_for_user("user-1") == []


def test_deregister_leaves_every_room(registry):
    websocket = _socket()
    registry.register("user-1", websocket)
    registry.join_room(gig_room("gig-1"), websocket)
    registry.join_room(gig_room("gig-2"), websocket)

    registry.deregister("user-1", websocket)

    assert registry.connections_for_room("gig_gig-1") == []
    assert registry.connections_for_room("gig_gig-2") == []


def test_discard_forgets_socket_everywhere(registry):
    websocket, other = _socket(), _socket()
    registry.register("user-1", websocket)
    registry.register("user-2", other)
    registry.join_room(gig_room("gig-1"), websocket)
    registry.join_room(gig_room("gig-1"), other)

    registry.discard(websocket)

    assert registry.connections_for_user("user-1") == []
    assert registry.connections_for_room(gig_room("gig-1")) == [other]


# =====================================================================================================
# NOTIFICATION DISPATCHER
# =====================================================================================================


@pytest.mark.asyncio
async def test_notify_without_live_session_drops_event(dispatcher):
    assert await dispatcher.notify("user-1", EventName.HIRED, HIRED) == 0


@pytest.mark.asyncio
async def test_notify_reaches_every_session_with_camel_case_payload(registry, dispatcher):
    tab_1, tab_2, stranger = _socket(), _socket(), _socket()
    registry.register("user-1", tab_1)
    registry.register("user-1", tab_2)
    registry.register("user-2", stranger)

    delivered = await dispatcher.notify("user-1", EventName.HIRED, HIRED)

    assert delivered == 2
    expected = {
        "event": "hired",
        "data": {"message": "You have been hired for Logo design!", "gigId": "gig-1", "gigTitle": "Logo design", "bidId": "bid-1"},
    }
    assert _sent(tab_1) == [expected]
    assert _sent(tab_2) == [expected]
    stranger.send_json.assert_not_awaited()


@pytest.mark.asyncio
async def test_broken_session_is_discarded_and_others_still_delivered(registry, dispatcher):
    healthy, broken = _socket(), _socket(broken=True)
    registry.register("user-1", healthy)
    registry.register("user-1", broken)

    delivered = await dispatcher.notify("user-1", EventName.HIRED, HIRED)

    assert delivered == 1
    assert registry.connections_for_user("user-1") == [healthy]


@pytest.mark.asyncio
async def test_dispatch_delivers_in_background(registry, dispatcher):
    websocket = _socket()
    registry.register("user-1", websocket)

    dispatcher.dispatch("user-1", EventName.HIRED, HIRED)
    await dispatcher.drain()

    assert _sent(websocket)[0]["event"] == "hired"


@pytest.mark.asyncio
async def test_broadcast_to_room_skips_excluded_sender(registry, dispatcher):
    sender, receiver = _socket(), _socket()
    registry.join_room(gig_room("gig-1"), sender)
    registry.join_room(gig_room("gig-1"), receiver)

    delivered = await dispatcher.broadcast_to_room(
        gig_room("gig-1"), EventName.USER_STOPPED_TYPING, StoppedTypingEvent(gig_id="gig-1", user_id="user-1"), exclude=sender
    )

    assert delivered == 1
    sender.send_json.assert_not_awaited()
    assert _sent(receiver) == [{"event": "user_stopped_typing", "data": {"gigId": "gig-1", "userId": "user-1"}}]


# =====================================================================================================
# CLIENT EVENTS
# =====================================================================================================


async def _assigned_gig(store):
    """Assigned gig with its owner, hired freelancer and a rejected freelancer."""
    owner = await store.upsert_user(UserUpsert(clerk_user_id="clerk_owner", email="owner@example.com", name="Owner"))
    hired = await store.upsert_user(UserUpsert(clerk_user_id="clerk_hired", email="hired@example.com", name="Hired"))
    rejected = await store.upsert_user(UserUpsert(clerk_user_id="clerk_rejected", email="rejected@example.com"))
    gig = await store.create_gig(owner.id, "Logo design", "A logo", 300)
    hired_bid = await store.create_bid(gig.id, hired.id, "Pick me", 250)
    rejected_bid = await store.create_bid(gig.id, rejected.id, "No, me", 200)
    store.gigs[gig.id] = gig.model_copy(update={"status": GigStatus.ASSIGNED})
    store.bids[hired_bid.id] = hired_bid.model_copy(update={"status": BidStatus.HIRED})
    store.bids[rejected_bid.id] = rejected_bid.model_copy(update={"status": BidStatus.REJECTED})
    return gig, owner, hired, rejected


@pytest.mark.asyncio
async def test_join_gig_room_for_participant(store, registry, dispatcher):
    gig, owner, _, _ = await _assigned_gig(store)
    websocket = _socket()
    service = RealtimeService(store, registry, dispatcher)

    await service.handle_client_event(websocket, owner, {"event": "join_gig_room", "data": {"gigId": gig.id}})

    assert registry.connections_for_room(gig_room(gig.id)) == [websocket]
    assert _sent(websocket) == [{"event": "joined_gig_room", "data": {"gigId": gig.id}}]


@pytest.mark.asyncio
async def test_join_gig_room_refused_for_rejected_freelancer(store, registry, dispatcher):
    gig, _, _, rejected = await _assigned_gig(store)
    websocket = _socket()
    service = RealtimeService(store, registry, dispatcher)

    await service.handle_client_event(websocket, rejected, {"event": "join_gig_room", "data": {"gigId": gig.id}})

    assert registry.connections_for_room(gig_room(gig.id)) == []
    assert _sent(websocket) == [{"event": "error", "data": {"message": "Not authorized to access this chat"}}]


@pytest.mark.asyncio
async def test_join_gig_room_requires_gig_id(store, registry, dispatcher):
    gig, owner, _, _ = await _assigned_gig(store)
    websocket = _socket()

    await RealtimeService(store, registry, dispatcher).handle_client_event(websocket, owner, {"event": "join_gig_room", "data": {}})

    assert _sent(websocket) == [{"event": "error", "data": {"message": "Gig ID is required"}}]


@pytest.mark.asyncio
async def test_typing_reaches_the_other_participant_only(store, registry, dispatcher):
    gig, owner, hired, _ = await _assigned_gig(store)
    owner_socket, hired_socket = _socket(), _socket()
    registry.join_room(gig_room(gig.id), owner_socket)
    registry.join_room(gig_room(gig.id), hired_socket)

    await RealtimeService(store, registry, dispatcher).handle_client_event(owner_socket, owner, {"event": "typing", "data": {"gigId": gig.id}})

    owner_socket.send_json.assert_not_awaited()
    assert _sent(hired_socket) == [{"event": "user_typing", "data": {"gigId": gig.id, "userId": owner.id, "userName": "Owner"}}]


@pytest.mark.asyncio
async def test_stop_typing_reaches_the_other_participant(store, registry, dispatcher):
    gig, owner, hired, _ = await _assigned_gig(store)
    owner_socket, hired_socket = _socket(), _socket()
    registry.join_room(gig_room(gig.id), owner_socket)
    registry.join_room(gig_room(gig.id), hired_socket)

    await RealtimeService(store, registry, dispatcher).handle_client_event(hired_socket, hired, {"event": "stop_typing", "data": {"gigId": gig.id}})

    hired_socket.send_json.assert_not_awaited()
    assert _sent(owner_socket) == [{"event": "user_stopped_typing", "data": {"gigId": gig.id, "userId": hired.id}}]


@pytest.mark.asyncio
@pytest.mark.parametrize("event", ["typing", "stop_typing"])
async def test_typing_events_from_outsider_reach_nobody(store, registry, dispatcher, event):
    gig, owner, _, rejected = await _assigned_gig(store)
    owner_socket, outsider_socket = _socket(), _socket()
    registry.join_room(gig_room(gig.id), owner_socket)

    await RealtimeService(store, registry, dispatcher).handle_client_event(outsider_socket, rejected, {"event": event, "data": {"gigId": gig.id}})

    owner_socket.send_json.assert_not_awaited()
    outsider_socket.send_json.assert_not_awaited()


@pytest.mark.asyncio
async def test_leave_gig_room(store, registry, dispatcher):
    gig, owner, _, _ = await _assigned_gig(store)
    websocket = _socket()
    registry.join_room(gig_room(gig.id), websocket)

    await RealtimeService(store, registry, dispatcher).handle_client_event(websocket, owner, {"event": "leave_gig_room", "data": {"gigId": gig.id}})

    assert registry.connections_for_room(gig_room(gig.id)) == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "message, error",
    [
        (None, "Malformed event"),
        ("join_gig_room", "Malformed event"),
        ({"data": {}}, "Malformed event"),
        ({"event": "dance", "data": {}}, "Unknown event: dance"),
    ],
)
async def test_bad_client_events_get_error_reply(store, registry, dispatcher, message, error):
    _, owner, _, _ = await _assigned_gig(store)
    websocket = _socket()

    await RealtimeService(store, registry, dispatcher).handle_client_event(websocket, owner, message)

    assert _sent(websocket) == [{"event": "error", "data": {"message": error}}]
