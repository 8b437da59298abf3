from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from app.models.bid_models import BidRecord, BidStatus
from app.models.gig_models import GigRecord, GigStatus
from app.models.message_models import MessageRecord, MessageType
from app.models.user_models import UserRecord, UserUpsert

# =====================================================================================================
# STORE ERRORS
# =====================================================================================================
# These never reach the caller directly: services translate them into the HTTP errors of app.custom_error


class StoreError(Exception):
    pass


class DuplicateBidError(StoreError):
    """A freelancer already holds a bid on this gig (unique gig/freelancer pair)"""


class GigClosedForBidsError(StoreError):
    """The gig was gone or no longer open at the moment the bid would have been inserted"""


class StoreUnavailableError(StoreError):
    """The store could not complete the request (timeout, deadlock, lost connection). Nothing was committed."""


# =====================================================================================================
# UNIT OF WORK
# =====================================================================================================


@dataclass(frozen=True)
class StagedGigStatusUpdate:
    gig_id: str
    expected_status: GigStatus
    new_status: GigStatus


@dataclass(frozen=True)
class StagedBidStatusUpdate:
    bid_id: str
    new_status: BidStatus


@dataclass(frozen=True)
class StagedBulkReject:
    gig_id: str
    except_bid_id: str


@dataclass(frozen=True)
class CommitResult:
    gig_rows_matched: int
    bids_hired: int = 0
    bids_rejected: int = 0


class UnitOfWork(ABC):
    """
    Collects status writes and applies them as one indivisible unit on commit().

    Nothing staged here is visible to other operations until commit() returns. The gig update is guarded:
    the store compares the stored status with expected_status at commit time, and when that guard matches
    zero rows no staged write is applied at all (CommitResult.gig_rows_matched == 0).
    """

    def __init__(self):
        self.gig_update: Optional[StagedGigStatusUpdate] = None
        self.bid_update: Optional[StagedBidStatusUpdate] = None
        self.bulk_reject: Optional[StagedBulkReject] = None
        self.closed = False

    def conditional_update_gig_status(self, gig_id: str, expected_status: GigStatus, new_status: GigStatus) -> None:
        self._ensure_open()
        self.gig_update = StagedGigStatusUpdate(gig_id, expected_status, new_status)

    def update_bid_status(self, bid_id: str, new_status: BidStatus) -> None:
        self._ensure_open()
        self.bid_update = StagedBidStatusUpdate(bid_id, new_status)

    def bulk_reject_pending_bids_except(self, gig_id: str, except_bid_id: str) -> None:
        self._ensure_open()
        self.bulk_reject = StagedBulkReject(gig_id, except_bid_id)

    async def commit(self) -> CommitResult:
        self._ensure_open()
        if self.gig_update is None:
            raise StoreError("A unit of work needs a guarded gig update to commit")
        try:
            return await self._apply()
        finally:
            self.closed = True

    async def abort(self) -> None:
        self.gig_update = None
        self.bid_update = None
        self.bulk_reject = None
        self.closed = True

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        # leaving without commit (exception or early return) discards everything staged
        if not self.closed:
            await self.abort()

    def _ensure_open(self) -> None:
        if self.closed:
            raise StoreError("Unit of work is already closed")

    @abstractmethod
    async def _apply(self) -> CommitResult:
        """Evaluate the guard and apply every staged write atomically."""


# =====================================================================================================
# ENTITY STORE
# =====================================================================================================


class EntityStore(ABC):
    """Persistence contract for users, gigs, bids and messages. Point lookups return None when missing."""

    @abstractmethod
    def unit_of_work(self) -> UnitOfWork: ...

    # users
    @abstractmethod
    async def find_user_by_id(self, user_id: str) -> Optional[UserRecord]: ...

    @abstractmethod
    async def find_user_by_clerk_id(self, clerk_user_id: str) -> Optional[UserRecord]: ...

    @abstractmethod
    async def find_users_by_ids(self, user_ids: List[str]) -> List[UserRecord]: ...

    @abstractmethod
    async def upsert_user(self, user: UserUpsert) -> UserRecord: ...

    @abstractmethod
    async def delete_user_by_clerk_id(self, clerk_user_id: str) -> bool: ...

    # gigs
    @abstractmethod
    async def create_gig(self, owner_id: str, title: str, description: str, budget: float) -> GigRecord: ...

    @abstractmethod
    async def find_gig_by_id(self, gig_id: str) -> Optional[GigRecord]: ...

    @abstractmethod
    async def find_gigs_by_ids(self, gig_ids: List[str]) -> List[GigRecord]: ...

    @abstractmethod
    async def list_open_gigs(self, search: Optional[str] = None) -> List[GigRecord]: ...

    @abstractmethod
    async def list_gigs_by_owner(self, owner_id: str) -> List[GigRecord]: ...

    @abstractmethod
    async def delete_gig(self, gig_id: str) -> bool: ...

    # bids
    @abstractmethod
    async def create_bid(self, gig_id: str, freelancer_id: str, message: str, price: float) -> BidRecord: ...

    @abstractmethod
    async def find_bid_by_id(self, bid_id: str) -> Optional[BidRecord]: ...

    @abstractmethod
    async def find_bid_by_gig_and_freelancer(self, gig_id: str, freelancer_id: str) -> Optional[BidRecord]: ...

    @abstractmethod
    async def find_hired_bid(self, gig_id: str) -> Optional[BidRecord]: ...

    @abstractmethod
    async def list_bids_by_gig(self, gig_id: str) -> List[BidRecord]: ...

    @abstractmethod
    async def list_bids_by_freelancer(self, freelancer_id: str) -> List[BidRecord]: ...

    # messages
    @abstractmethod
    async def create_message(
        self, gig_id: str, sender_id: str, message_type: MessageType, content: Optional[str], file_url: Optional[str]
    ) -> MessageRecord: ...

    @abstractmethod
    async def find_message_by_id(self, message_id: str) -> Optional[MessageRecord]: ...

    @abstractmethod
    async def list_messages_by_gig(self, gig_id: str) -> List[MessageRecord]: ...

    @abstractmethod
    async def add_message_reader(self, message_id: str, user_id: str) -> MessageRecord: ...
