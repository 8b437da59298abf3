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
from datetime import datetime, timezone
from typing import Dict, List, Optional
import asyncio
import logging
import uuid

logger = logging.getLogger(__name__)

# Process-local store used when ENTITY_STORE_BACKEND=memory and by the test suite.
# Reads snapshot the data and then yield to the event loop, the way a network round trip would, so concurrent
# requests interleave realistically. Writes never yield between their check and their mutation, which makes each
# write (and a whole unit-of-work commit) indivisible with respect to other coroutines.


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


async def _io_yield() -> None:
    await asyncio.sleep(0)


class InMemoryUnitOfWork(UnitOfWork):
    def __init__(self, store: "InMemoryEntityStore"):
        super().__init__()
        self.store = store

    async def _apply(self) -> CommitResult:
        store = self.store
        guard = self.gig_update

        # evaluate every precondition before touching anything
        gig = store.gigs.get(guard.gig_id)
        if gig is None or gig.status != guard.expected_status:
            logger.debug(f"Guarded update on gig {guard.gig_id} matched no row")
            await _io_yield()
            return CommitResult(gig_rows_matched=0)

        if self.bid_update is not None:
            target = store.bids.get(self.bid_update.bid_id)
            if target is None or target.gig_id != guard.gig_id or target.status != BidStatus.PENDING:
                # same outcome as the database function: the whole transaction rolls back
                raise StoreUnavailableError(f"Bid {self.bid_update.bid_id} is no longer pending on gig {guard.gig_id}")

        now = _now()
        store.gigs[gig.id] = gig.model_copy(update={"status": guard.new_status, "updated_at": now})

        bids_hired = 0
        if self.bid_update is not None:
            bid = store.bids[self.bid_update.bid_id]
            store.bids[bid.id] = bid.model_copy(update={"status": self.bid_update.new_status, "updated_at": now})
            bids_hired = 1 if self.bid_update.new_status == BidStatus.HIRED else 0

        bids_rejected = 0
        if self.bulk_reject is not None:
            for bid in list(store.bids.values()):
                if bid.gig_id == self.bulk_reject.gig_id and bid.id != self.bulk_reject.except_bid_id and bid.status == BidStatus.PENDING:
                    store.bids[bid.id] = bid.model_copy(update={"status": BidStatus.REJECTED, "updated_at": now})
                    bids_rejected += 1

        await _io_yield()
        return CommitResult(gig_rows_matched=1, bids_hired=bids_hired, bids_rejected=bids_rejected)


class InMemoryEntityStore(EntityStore):
    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.gigs: Dict[str, GigRecord] = {}
        self.bids: Dict[str, BidRecord] = {}
        self.messages: Dict[str, MessageRecord] = {}
        # preserves insertion order so equal timestamps still sort deterministically
        self._sequence: Dict[str, int] = {}

    def unit_of_work(self) -> UnitOfWork:
        return InMemoryUnitOfWork(self)

    def _track(self, record_id: str) -> None:
        self._sequence[record_id] = len(self._sequence)

    def _newest_first(self, records: list) -> list:
        return sorted(records, key=lambda r: (r.created_at, self._sequence.get(r.id, 0)), reverse=True)

    # =====================================================================================================
    # USERS
    # =====================================================================================================

    async def find_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        user = self.users.get(user_id)
        await _io_yield()
        return user

    async def find_user_by_clerk_id(self, clerk_user_id: str) -> Optional[UserRecord]:
        user = next((u for u in self.users.values() if u.clerk_user_id == clerk_user_id), None)
        await _io_yield()
        return user

    async def find_users_by_ids(self, user_ids: List[str]) -> List[UserRecord]:
        users = [self.users[user_id] for user_id in dict.fromkeys(user_ids) if user_id in self.users]
        await _io_yield()
        return users

    async def upsert_user(self, user: UserUpsert) -> UserRecord:
        existing = next((u for u in self.users.values() if u.clerk_user_id == user.clerk_user_id), None)
        if existing:
            record = existing.model_copy(update=user.model_dump(exclude_none=True))
        else:
            record = UserRecord(id=_new_id(), **user.model_dump())
        self.users[record.id] = record
        return record

    async def delete_user_by_clerk_id(self, clerk_user_id: str) -> bool:
        user = next((u for u in self.users.values() if u.clerk_user_id == clerk_user_id), None)
        if user is None:
            return False
        del self.users[user.id]
        # cascade like the foreign keys in the SQL schema
        for gig_id in [g.id for g in self.gigs.values() if g.owner_id == user.id]:
            await self.delete_gig(gig_id)
        for bid_id in [b.id for b in self.bids.values() if b.freelancer_id == user.id]:
            del self.bids[bid_id]
        for message_id in [m.id for m in self.messages.values() if m.sender_id == user.id]:
            del self.messages[message_id]
        return True

    # =====================================================================================================
    # GIGS
    # =====================================================================================================

    async def create_gig(self, owner_id: str, title: str, description: str, budget: float) -> GigRecord:
        now = _now()
        gig = GigRecord(
            id=_new_id(),
            title=title,
            description=description,
            budget=budget,
            status=GigStatus.OPEN,
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
        )
        self.gigs[gig.id] = gig
        self._track(gig.id)
        return gig

    async def find_gig_by_id(self, gig_id: str) -> Optional[GigRecord]:
        gig = self.gigs.get(gig_id)
        await _io_yield()
        return gig

    async def find_gigs_by_ids(self, gig_ids: List[str]) -> List[GigRecord]:
        gigs = [self.gigs[gig_id] for gig_id in dict.fromkeys(gig_ids) if gig_id in self.gigs]
        await _io_yield()
        return gigs

    async def list_open_gigs(self, search: Optional[str] = None) -> List[GigRecord]:
        gigs = [g for g in self.gigs.values() if g.status == GigStatus.OPEN]
        if search:
            needle = search.lower()
            gigs = [g for g in gigs if needle in g.title.lower() or needle in g.description.lower()]
        await _io_yield()
        return self._newest_first(gigs)

    async def list_gigs_by_owner(self, owner_id: str) -> List[GigRecord]:
        gigs = [g for g in self.gigs.values() if g.owner_id == owner_id]
        await _io_yield()
        return self._newest_first(gigs)

    async def delete_gig(self, gig_id: str) -> bool:
        if self.gigs.pop(gig_id, None) is None:
            return False
        # cascade like the foreign keys in the SQL schema
        for bid_id in [b.id for b in self.bids.values() if b.gig_id == gig_id]:
            del self.bids[bid_id]
        for message_id in [m.id for m in self.messages.values() if m.gig_id == gig_id]:
            del self.messages[message_id]
        return True

    # =====================================================================================================
    # BIDS
    # =====================================================================================================

    async def create_bid(self, gig_id: str, freelancer_id: str, message: str, price: float) -> BidRecord:
        # checked together with the insert, no await in between, so a hire commit cannot slip past it
        gig = self.gigs.get(gig_id)
        if gig is None or gig.status != GigStatus.OPEN:
            raise GigClosedForBidsError(f"Gig {gig_id} is not open for bids")
        if any(b.gig_id == gig_id and b.freelancer_id == freelancer_id for b in self.bids.values()):
            raise DuplicateBidError(f"Freelancer {freelancer_id} already bid on gig {gig_id}")

        now = _now()
        bid = BidRecord(
            id=_new_id(),
            gig_id=gig_id,
            freelancer_id=freelancer_id,
            message=message,
            price=price,
            status=BidStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        self.bids[bid.id] = bid
        self._track(bid.id)
        return bid

    async def find_bid_by_id(self, bid_id: str) -> Optional[BidRecord]:
        bid = self.bids.get(bid_id)
        await _io_yield()
        return bid

    async def find_bid_by_gig_and_freelancer(self, gig_id: str, freelancer_id: str) -> Optional[BidRecord]:
        bid = next((b for b in self.bids.values() if b.gig_id == gig_id and b.freelancer_id == freelancer_id), None)
        await _io_yield()
        return bid

    async def find_hired_bid(self, gig_id: str) -> Optional[BidRecord]:
        bid = next((b for b in self.bids.values() if b.gig_id == gig_id and b.status == BidStatus.HIRED), None)
        await _io_yield()
        return bid

    async def list_bids_by_gig(self, gig_id: str) -> List[BidRecord]:
        bids = [b for b in self.bids.values() if b.gig_id == gig_id]
        await _io_yield()
        return self._newest_first(bids)

    async def list_bids_by_freelancer(self, freelancer_id: str) -> List[BidRecord]:
        bids = [b for b in self.bids.values() if b.freelancer_id == freelancer_id]
        await _io_yield()
        return self._newest_first(bids)

    # =====================================================================================================
    # MESSAGES
    # =====================================================================================================

    async def create_message(
        self, gig_id: str, sender_id: str, message_type: MessageType, content: Optional[str], file_url: Optional[str]
    ) -> MessageRecord:
        message = MessageRecord(
            id=_new_id(),
            gig_id=gig_id,
            sender_id=sender_id,
            type=message_type,
            content=content,
            file_url=file_url,
            read_by=[sender_id],
            created_at=_now(),
        )
        self.messages[message.id] = message
        self._track(message.id)
        return message

    async def find_message_by_id(self, message_id: str) -> Optional[MessageRecord]:
        message = self.messages.get(message_id)
        await _io_yield()
        return message

    async def list_messages_by_gig(self, gig_id: str) -> List[MessageRecord]:
        messages = [m for m in self.messages.values() if m.gig_id == gig_id]
        await _io_yield()
        # chat reads oldest first
        return list(reversed(self._newest_first(messages)))

    async def add_message_reader(self, message_id: str, user_id: str) -> MessageRecord:
        message = self.messages.get(message_id)
        if message is None:
            raise StoreError(f"Message {message_id} not found")
        if user_id not in message.read_by:
            message = message.model_copy(update={"read_by": [*message.read_by, user_id]})
            self.messages[message_id] = message
        return message
