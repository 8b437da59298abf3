from supabase import AsyncClient
from postgrest.exceptions import APIError
from app.models.bid_models import BidRecord, BidStatus
from app.models.gig_models import GigRecord, GigStatus
from app.models.message_models import MessageRecord, MessageType
from app.models.user_models import UserRecord, UserUpsert
from app.stores.entity_store import (
    CommitResult,
    DuplicateBidError,
    EntityStore,
    GigClosedForBidsError,
    StoreError,
    StoreUnavailableError,
    UnitOfWork,
)
from typing import List, Optional
import httpx
import logging
import re

logger = logging.getLogger(__name__)

USERS_TABLE = "users"
GIGS_TABLE = "gigs"
BIDS_TABLE = "bids"
MESSAGES_TABLE = "messages"

# Postgres error codes
UNIQUE_VIOLATION = "23505"
# raised by the bids_ensure_gig_open trigger
GIG_NOT_OPEN_FOR_BIDS = "GF001"
INVALID_TEXT_REPRESENTATION = "22P02"
# serialization failure, deadlock, lock timeout, statement timeout: the transaction rolled back and may be retried
RETRYABLE_CODES = {"40001", "40P01", "55P03", "57014"}


def _translate_error(e: Exception) -> StoreError:
    logger.error(f"Supabase store error - {str(e)}")
    if isinstance(e, httpx.HTTPError):
        return StoreUnavailableError(f"Supabase request failed: {str(e)}")
    if isinstance(e, APIError) and e.code in RETRYABLE_CODES:
        return StoreUnavailableError(f"Transaction rolled back ({e.code}): {e.message}")
    return StoreError(str(e))


async def _execute(query):
    """Run a PostgREST query and map transport/database failures to store errors"""
    try:
        return await query.execute()
    except (APIError, httpx.HTTPError) as e:
        raise _translate_error(e) from e


async def _find_one(query, model):
    """Point lookup: first row as `model`, or None when missing or when the id is not a valid uuid"""
    try:
        result = await query.execute()
    except APIError as e:
        if e.code == INVALID_TEXT_REPRESENTATION:
            return None
        raise _translate_error(e) from e
    except httpx.HTTPError as e:
        raise _translate_error(e) from e
    return model(**result.data[0]) if result.data else None


class SupabaseUnitOfWork(UnitOfWork):
    """
    Ships every staged write to the apply_gig_transition Postgres function in a single RPC.

    PostgREST runs each RPC inside its own transaction, so the guarded gig update and both bid writes
    either all commit or all roll back. See migrations/001_gigflow_schema.sql.
    """

    def __init__(self, supabase_client: AsyncClient):
        super().__init__()
        self.supabase_client = supabase_client

    async def _apply(self) -> CommitResult:
        params = {
            "p_gig_id": self.gig_update.gig_id,
            "p_expected_status": self.gig_update.expected_status.value,
            "p_new_status": self.gig_update.new_status.value,
            "p_bid_id": self.bid_update.bid_id if self.bid_update else None,
            "p_bid_status": self.bid_update.new_status.value if self.bid_update else None,
            "p_reject_gig_id": self.bulk_reject.gig_id if self.bulk_reject else None,
            "p_reject_except_bid_id": self.bulk_reject.except_bid_id if self.bulk_reject else None,
        }
        result = await _execute(self.supabase_client.rpc("apply_gig_transition", params))

        # a jsonb-returning function comes back as the object itself, a set-returning one as a list of rows
        data = result.data[0] if isinstance(result.data, list) and result.data else result.data
        if not data:
            raise StoreError("apply_gig_transition returned no result")

        return CommitResult(
            gig_rows_matched=int(data.get("gig_rows_matched", 0)),
            bids_hired=int(data.get("bids_hired", 0)),
            bids_rejected=int(data.get("bids_rejected", 0)),
        )


class SupabaseEntityStore(EntityStore):
    def __init__(self, supabase_client: AsyncClient):
        self.supabase_client = supabase_client

    def unit_of_work(self) -> UnitOfWork:
        return SupabaseUnitOfWork(self.supabase_client)

    # =====================================================================================================
    # USERS
    # =====================================================================================================

    async def find_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        return await _find_one(self.supabase_client.table(USERS_TABLE).select("id, clerk_user_id, email, name").eq("id", user_id), UserRecord)

    async def find_user_by_clerk_id(self, clerk_user_id: str) -> Optional[UserRecord]:
        result = await _execute(
            self.supabase_client.table(USERS_TABLE).select("id, clerk_user_id, email, name").eq("clerk_user_id", clerk_user_id)
        )
        return UserRecord(**result.data[0]) if result.data else None

    async def find_users_by_ids(self, user_ids: List[str]) -> List[UserRecord]:
        if not user_ids:
            return []
        result = await _execute(
            self.supabase_client.table(USERS_TABLE).select("id, clerk_user_id, email, name").in_("id", list(dict.fromkeys(user_ids)))
        )
        return [UserRecord(**row) for row in result.data]

    async def upsert_user(self, user: UserUpsert) -> UserRecord:
        result = await _execute(self.supabase_client.table(USERS_TABLE).upsert(user.model_dump(exclude_none=True), on_conflict="clerk_user_id"))
        if not result.data:
            raise StoreError(f"Failed to upsert user {user.clerk_user_id}")
        return UserRecord(**result.data[0])

    async def delete_user_by_clerk_id(self, clerk_user_id: str) -> bool:
        result = await _execute(self.supabase_client.table(USERS_TABLE).delete().eq("clerk_user_id", clerk_user_id))
        return bool(result.data)

    # =====================================================================================================
    # GIGS
    # =====================================================================================================

    async def create_gig(self, owner_id: str, title: str, description: str, budget: float) -> GigRecord:
        gig_record = {"owner_id": owner_id, "title": title, "description": description, "budget": budget, "status": GigStatus.OPEN.value}
        result = await _execute(self.supabase_client.table(GIGS_TABLE).insert(gig_record))
        if not result.data:
            raise StoreError("Failed to insert gig")
        return GigRecord(**result.data[0])

    async def find_gig_by_id(self, gig_id: str) -> Optional[GigRecord]:
        return await _find_one(self.supabase_client.table(GIGS_TABLE).select("*").eq("id", gig_id), GigRecord)

    async def find_gigs_by_ids(self, gig_ids: List[str]) -> List[GigRecord]:
        if not gig_ids:
            return []
        result = await _execute(self.supabase_client.table(GIGS_TABLE).select("*").in_("id", list(dict.fromkeys(gig_ids))))
        return [GigRecord(**row) for row in result.data]

    async def list_open_gigs(self, search: Optional[str] = None) -> List[GigRecord]:
        query = self.supabase_client.table(GIGS_TABLE).select("*").eq("status", GigStatus.OPEN.value)

        if search:
            # commas and parentheses are PostgREST filter syntax
            term = re.sub(r"[,()]", " ", search).strip()
            if term:
                query = query.or_(f"title.ilike.%{term}%,description.ilike.%{term}%")

        result = await _execute(query.order("created_at", desc=True))
        return [GigRecord(**row) for row in result.data]

    async def list_gigs_by_owner(self, owner_id: str) -> List[GigRecord]:
        result = await _execute(self.supabase_client.table(GIGS_TABLE).select("*").eq("owner_id", owner_id).order("created_at", desc=True))
        return [GigRecord(**row) for row in result.data]

    async def delete_gig(self, gig_id: str) -> bool:
        # bids and messages go with it through ON DELETE CASCADE
        result = await _execute(self.supabase_client.table(GIGS_TABLE).delete().eq("id", gig_id))
        return bool(result.data)

    # =====================================================================================================
    # BIDS
    # =====================================================================================================

    async def create_bid(self, gig_id: str, freelancer_id: str, message: str, price: float) -> BidRecord:
        bid_record = {"gig_id": gig_id, "freelancer_id": freelancer_id, "message": message, "price": price, "status": BidStatus.PENDING.value}
        try:
            result = await self.supabase_client.table(BIDS_TABLE).insert(bid_record).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise DuplicateBidError(f"Freelancer {freelancer_id} already bid on gig {gig_id}") from e
            if e.code == GIG_NOT_OPEN_FOR_BIDS:
                raise GigClosedForBidsError(f"Gig {gig_id} is not open for bids") from e
            raise _translate_error(e) from e
        except httpx.HTTPError as e:
            raise _translate_error(e) from e

        if not result.data:
            raise StoreError("Failed to insert bid")
        return BidRecord(**result.data[0])

    async def find_bid_by_id(self, bid_id: str) -> Optional[BidRecord]:
        return await _find_one(self.supabase_client.table(BIDS_TABLE).select("*").eq("id", bid_id), BidRecord)

    async def find_bid_by_gig_and_freelancer(self, gig_id: str, freelancer_id: str) -> Optional[BidRecord]:
        return await _find_one(self.supabase_client.table(BIDS_TABLE).select("*").eq("gig_id", gig_id).eq("freelancer_id", freelancer_id), BidRecord)

    async def find_hired_bid(self, gig_id: str) -> Optional[BidRecord]:
        return await _find_one(self.supabase_client.table(BIDS_TABLE).select("*").eq("gig_id", gig_id).eq("status", BidStatus.HIRED.value), BidRecord)

    async def list_bids_by_gig(self, gig_id: str) -> List[BidRecord]:
        result = await _execute(self.supabase_client.table(BIDS_TABLE).select("*").eq("gig_id", gig_id).order("created_at", desc=True))
        return [BidRecord(**row) for row in result.data]

    async def list_bids_by_freelancer(self, freelancer_id: str) -> List[BidRecord]:
        result = await _execute(
            self.supabase_client.table(BIDS_TABLE).select("*").eq("freelancer_id", freelancer_id).order("created_at", desc=True)
        )
        return [BidRecord(**row) for row in result.data]

    # =====================================================================================================
    # MESSAGES
    # =====================================================================================================

    async def create_message(
        self, gig_id: str, sender_id: str, message_type: MessageType, content: Optional[str], file_url: Optional[str]
    ) -> MessageRecord:
        message_record = {
            "gig_id": gig_id,
            "sender_id": sender_id,
            "type": message_type.value,
            "content": content,
            "file_url": file_url,
            "read_by": [sender_id],  # sender has read their own message
        }
        result = await _execute(self.supabase_client.table(MESSAGES_TABLE).insert(message_record))
        if not result.data:
            raise StoreError("Failed to insert message")
        return MessageRecord(**result.data[0])

    async def find_message_by_id(self, message_id: str) -> Optional[MessageRecord]:
        return await _find_one(self.supabase_client.table(MESSAGES_TABLE).select("*").eq("id", message_id), MessageRecord)

    async def list_messages_by_gig(self, gig_id: str) -> List[MessageRecord]:
        result = await _execute(self.supabase_client.table(MESSAGES_TABLE).select("*").eq("gig_id", gig_id).order("created_at"))
        return [MessageRecord(**row) for row in result.data]

    async def add_message_reader(self, message_id: str, user_id: str) -> MessageRecord:
        # array append happens in the database so two readers marking at once cannot overwrite each other
        result = await _execute(self.supabase_client.rpc("add_message_reader", {"p_message_id": message_id, "p_user_id": user_id}))
        data = result.data[0] if isinstance(result.data, list) and result.data else result.data
        if not data:
            raise StoreError(f"Message {message_id} not found")
        return MessageRecord(**data)
