"""Tests for the Supabase-backed store against a mocked AsyncClient."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from app.models.bid_models import BidStatus
from app.models.gig_models import GigStatus
from app.stores.entity_store import CommitResult, DuplicateBidError, GigClosedForBidsError, StoreError, StoreUnavailableError
from app.stores.supabase_store import SupabaseEntityStore
from postgrest.exceptions import APIError

GIG_ROW = {
    "id": "6f1c2f1e-0000-4000-8000-000000000001",
    "title": "Logo design",
    "description": "A logo",
    "budget": 300,
    "status": "open",
    "owner_id": "6f1c2f1e-0000-4000-8000-0000000000aa",
    "created_at": "2026-01-05T10:00:00+00:00",
    "updated_at": "2026-01-05T10:00:00+00:00",
}

BID_ROW = {
    "id": "6f1c2f1e-0000-4000-8000-000000000002",
    "gig_id": GIG_ROW["id"],
    "freelancer_id": "6f1c2f1e-0000-4000-8000-0000000000bb",
    "message": "Pick me",
    "price": 250,
    "status": "pending",
    "created_at": "2026-01-05T11:00:00+00:00",
    "updated_at": "2026-01-05T11:00:00+00:00",
}


def _api_error(code, message="database error"):
    return APIError({"message": message, "code": code, "details": None, "hint": None})


def _client(data=None, error=None):
    """AsyncClient whose every table()/rpc() chain ends in an execute() returning `data` or raising `error`."""
    query = MagicMock()
    for method in ("select", "insert", "upsert", "delete", "eq", "in_", "or_", "order"):
        getattr(query, method).return_value = query
    query.execute = AsyncMock(return_value=MagicMock(data=data), side_effect=error)

    supabase_client = MagicMock()
    supabase_client.table.return_value = query
    supabase_client.rpc.return_value = query
    return supabase_client, query


async def _stage_hire(store):
    uow = store.unit_of_work()
    uow.conditional_update_gig_status(GIG_ROW["id"], expected_status=GigStatus.OPEN, new_status=GigStatus.ASSIGNED)
    uow.update_bid_status(BID_ROW["id"], BidStatus.HIRED)
    uow.bulk_reject_pending_bids_except(GIG_ROW["id"], except_bid_id=BID_ROW["id"])
    return uow


# =====================================================================================================
# UNIT OF WORK
# =====================================================================================================


@pytest.mark.asyncio
async def test_commit_ships_all_writes_in_one_rpc():
    supabase_client, _ = _client(data={"gig_rows_matched": 1, "bids_hired": 1, "bids_rejected": 3})
    uow = await _stage_hire(SupabaseEntityStore(supabase_client))

    result = await uow.commit()

    assert result == CommitResult(gig_rows_matched=1, bids_hired=1, bids_rejected=3)
    supabase_client.rpc.assert_called_once_with(
        "apply_gig_transition",
        {
            "p_gig_id": GIG_ROW["id"],
            "p_expected_status": "open",
            "p_new_status": "assigned",
            "p_bid_id": BID_ROW["id"],
            "p_bid_status": "hired",
            "p_reject_gig_id": GIG_ROW["id"],
            "p_reject_except_bid_id": BID_ROW["id"],
        },
    )
    supabase_client.table.assert_not_called()


@pytest.mark.asyncio
async def test_commit_reads_row_list_result():
    supabase_client, _ = _client(data=[{"gig_rows_matched": 0, "bids_hired": 0, "bids_rejected": 0}])
    uow = await _stage_hire(SupabaseEntityStore(supabase_client))

    assert (await uow.commit()).gig_rows_matched == 0


@pytest.mark.asyncio
async def test_commit_rolled_back_by_database_is_unavailable():
    supabase_client, _ = _client(error=_api_error("40001", "Bid is no longer pending"))
    uow = await _stage_hire(SupabaseEntityStore(supabase_client))

    with pytest.raises(StoreUnavailableError):
        await uow.commit()
    assert uow.closed


@pytest.mark.asyncio
async def test_commit_with_lost_connection_is_unavailable():
    supabase_client, _ = _client(error=httpx.ConnectError("connection refused"))
    uow = await _stage_hire(SupabaseEntityStore(supabase_client))

    with pytest.raises(StoreUnavailableError):
        await uow.commit()


@pytest.mark.asyncio
async def test_commit_with_empty_result_is_store_error():
    supabase_client, _ = _client(data=None)
    uow = await _stage_hire(SupabaseEntityStore(supabase_client))

    with pytest.raises(StoreError):
        await uow.commit()


# =====================================================================================================
# ENTITIES
# =====================================================================================================


@pytest.mark.asyncio
async def test_find_gig_by_id_maps_row():
    supabase_client, query = _client(data=[GIG_ROW])

    gig = await SupabaseEntityStore(supabase_client).find_gig_by_id(GIG_ROW["id"])

    assert gig.id == GIG_ROW["id"]
    assert gig.status == GigStatus.OPEN
    supabase_client.table.assert_called_once_with("gigs")
    query.eq.assert_called_once_with("id", GIG_ROW["id"])


@pytest.mark.asyncio
async def test_find_gig_by_id_missing_or_malformed_is_none():
    supabase_client, _ = _client(data=[])
    assert await SupabaseEntityStore(supabase_client).find_gig_by_id(GIG_ROW["id"]) is None

    supabase_client, _ = _client(error=_api_error("22P02", 'invalid input syntax for type uuid: "abc"'))
    assert await SupabaseEntityStore(supabase_client).find_gig_by_id("abc") is None


@pytest.mark.asyncio
async def test_duplicate_bid_is_translated():
    supabase_client, _ = _client(error=_api_error("23505", "duplicate key value violates unique constraint"))

    with pytest.raises(DuplicateBidError):
        await SupabaseEntityStore(supabase_client).create_bid(GIG_ROW["id"], BID_ROW["freelancer_id"], "Pick me", 250)


@pytest.mark.asyncio
async def test_bid_refused_by_gig_open_trigger_is_translated():
    supabase_client, _ = _client(error=_api_error("GF001", "gig is not open for bids"))

    with pytest.raises(GigClosedForBidsError):
        await SupabaseEntityStore(supabase_client).create_bid(GIG_ROW["id"], BID_ROW["freelancer_id"], "Pick me", 250)


@pytest.mark.asyncio
async def test_create_bid_inserts_pending_bid():
    supabase_client, query = _client(data=[BID_ROW])

    bid = await SupabaseEntityStore(supabase_client).create_bid(GIG_ROW["id"], BID_ROW["freelancer_id"], "Pick me", 250)

    assert bid.status == BidStatus.PENDING
    query.insert.assert_called_once_with(
        {"gig_id": GIG_ROW["id"], "freelancer_id": BID_ROW["freelancer_id"], "message": "Pick me", "price": 250, "status": "pending"}
    )


@pytest.mark.asyncio
async def test_list_open_gigs_search_strips_filter_syntax():
    supabase_client, query = _client(data=[GIG_ROW])

    gigs = await SupabaseEntityStore(supabase_client).list_open_gigs("logo(design)")

    assert [g.id for g in gigs] == [GIG_ROW["id"]]
    query.eq.assert_called_once_with("status", "open")
    query.or_.assert_called_once_with("title.ilike.%logo design%,description.ilike.%logo design%")
    query.order.assert_called_once_with("created_at", desc=True)


@pytest.mark.asyncio
async def test_network_failure_is_unavailable():
    supabase_client, _ = _client(error=httpx.ReadTimeout("timed out"))

    with pytest.raises(StoreUnavailableError):
        await SupabaseEntityStore(supabase_client).list_bids_by_gig(GIG_ROW["id"])


@pytest.mark.asyncio
async def test_other_database_errors_are_store_errors():
    supabase_client, _ = _client(error=_api_error("42P01", 'relation "bids" does not exist'))

    with pytest.raises(StoreError) as exc_info:
        await SupabaseEntityStore(supabase_client).list_bids_by_gig(GIG_ROW["id"])

    assert not isinstance(exc_info.value, StoreUnavailableError)


@pytest.mark.asyncio
async def test_find_users_by_ids_skips_query_for_empty_batch():
    supabase_client, _ = _client(data=[])

    assert await SupabaseEntityStore(supabase_client).find_users_by_ids([]) == []
    supabase_client.table.assert_not_called()
