from app.models.bid_models import BidRecord, BidResponse, BidStatus, HireResponse, BidGigInfo
from app.models.gig_models import GigRecord, GigResponse, GigStatus
from app.models.notification_models import EventName, HiredEvent
from app.realtime.notification_dispatcher import NotificationDispatcher
from app.services.bid_services import BidService
from app.services.user_services import UserService
from app.stores.entity_store import CommitResult, EntityStore, StoreError, StoreUnavailableError
from app.custom_error import (
    UserNotFoundError,
    NotFoundError,
    ForbiddenError,
    InvalidStateError,
    ConflictError,
    ServerError,
    TransientStoreError,
)
from typing import Optional, Tuple
import logging

logger = logging.getLogger(__name__)

HIRE_ERRORS = (UserNotFoundError, NotFoundError, ForbiddenError, InvalidStateError, ConflictError, TransientStoreError)


class HireService:
    """
    Hire transition: gig open -> assigned, chosen bid pending -> hired, every sibling pending bid -> rejected.

    Checks run in a fixed order and each failure is its own error: bid missing, gig missing (404), caller is not
    the gig owner (403), gig not open, bid not pending (400). Those checks read state that may be stale by the
    time we write, so the writes go through one unit of work whose gig update is guarded on the status still
    being "open". If another hire flipped the gig in between, the guard matches nothing, no bid is touched and
    the caller gets a 409. If the store cannot commit at all, nothing is applied and the caller gets a 503.

    Concurrency control lives entirely in the store's guarded commit, this class holds no locks.

    After the commit the hired freelancer is notified over their live sessions. That is fire-and-forget and
    can never turn a committed hire into a failure.
    """

    def __init__(self, entity_store: EntityStore, notification_dispatcher: NotificationDispatcher):
        self.entity_store = entity_store
        self.notification_dispatcher = notification_dispatcher
        self.user_service = UserService(entity_store)
        self.bid_service = BidService(entity_store)

    # =====================================================================================================
    # VALIDATION
    # =====================================================================================================

    async def _validate_hire(self, caller_id: str, bid_id: str, gig_id: Optional[str]) -> Tuple[GigRecord, BidRecord]:
        bid = await self.entity_store.find_bid_by_id(bid_id)
        if bid is None:
            raise NotFoundError("Bid not found")

        # addressed through /gigs/{gig_id}/bids/{bid_id}: the bid has to belong to that gig
        if gig_id is not None and bid.gig_id != gig_id:
            raise NotFoundError("Bid not found for this gig")

        gig = await self.entity_store.find_gig_by_id(bid.gig_id)
        if gig is None:
            raise NotFoundError("Gig not found")

        if gig.owner_id != caller_id:
            raise ForbiddenError("Not authorized to hire for this gig")

        if gig.status != GigStatus.OPEN:
            raise InvalidStateError("Gig is no longer open")

        if bid.status != BidStatus.PENDING:
            raise InvalidStateError("Bid is not pending")

        return gig, bid

    # =====================================================================================================
    # ATOMIC COMMIT
    # =====================================================================================================

    async def _commit_hire(self, gig: GigRecord, bid: BidRecord) -> CommitResult:
        try:
            async with self.entity_store.unit_of_work() as uow:
                uow.conditional_update_gig_status(gig.id, expected_status=GigStatus.OPEN, new_status=GigStatus.ASSIGNED)
                uow.update_bid_status(bid.id, BidStatus.HIRED)
                uow.bulk_reject_pending_bids_except(gig.id, except_bid_id=bid.id)
                result = await uow.commit()

        except StoreError as e:
            # covers StoreUnavailableError too: the unit rolled back as a whole
            logger.error(f"❌ Hire commit aborted for bid {bid.id} on gig {gig.id} - {str(e)}")
            raise TransientStoreError("Hire could not be completed and nothing was changed. Check the gig status before retrying")

        if result.gig_rows_matched == 0:
            logger.info(f"Hire of bid {bid.id} lost the race, gig {gig.id} was assigned by another request")
            raise ConflictError("Gig was already assigned")

        logger.info(f"✅ Gig {gig.id} assigned: bid {bid.id} hired, {result.bids_rejected} other bids rejected")
        return result

    # =====================================================================================================
    # POST-COMMIT
    # =====================================================================================================

    def _notify_hired_freelancer(self, gig: GigRecord, bid: BidRecord) -> None:
        """Best-effort: failures are logged and never reach the caller"""
        try:
            event = HiredEvent(
                message=f"You have been hired for {gig.title}!",
                gig_id=gig.id,
                gig_title=gig.title,
                bid_id=bid.id,
            )
            self.notification_dispatcher.dispatch(bid.freelancer_id, EventName.HIRED, event)
        except Exception as e:
            logger.error(f"❌ Failed to dispatch hired notification for bid {bid.id} - {str(e)}")

    async def _load_hire_result(self, gig: GigRecord, bid: BidRecord) -> HireResponse:
        """Re-read the committed gig and bid with display fields resolved"""
        try:
            updated_gig = await self.entity_store.find_gig_by_id(gig.id)
            updated_bid = await self.entity_store.find_bid_by_id(bid.id)
            if updated_gig is None or updated_bid is None:
                raise StoreError("Hired gig or bid vanished right after commit")

            owners = await self.user_service.get_user_summaries([updated_gig.owner_id])
            bid_response = (await self.bid_service.to_bid_responses([updated_bid]))[0]
            gig_response = GigResponse(**updated_gig.model_dump(), owner=owners.get(updated_gig.owner_id))

        except Exception as e:
            # the hire is committed whatever happens here, so answer from what we wrote instead of failing
            logger.error(f"Error re-reading hire result for bid {bid.id} - {str(e)}")
            gig_response = GigResponse(**gig.model_dump(exclude={"status"}), status=GigStatus.ASSIGNED)
            bid_response = BidResponse(**bid.model_dump(exclude={"status"}), status=BidStatus.HIRED, gig=BidGigInfo(id=gig.id, title=gig.title))

        return HireResponse(message="Freelancer hired successfully", bid=bid_response, gig=gig_response)

    # =====================================================================================================
    # HIRE
    # =====================================================================================================

    async def hire(self, clerk_user_id: str, bid_id: str, gig_id: Optional[str] = None) -> HireResponse:
        """Hire the freelancer behind bid_id, assigning its gig and rejecting every competing bid"""
        try:
            caller_id = await self.user_service.get_user_id(clerk_user_id)

            gig, bid = await self._validate_hire(caller_id, bid_id, gig_id)

            await self._commit_hire(gig, bid)

        except Exception as e:
            logger.error(f"Error hiring freelancer - {str(e)}")
            if isinstance(e, HIRE_ERRORS):
                raise e
            if isinstance(e, StoreUnavailableError):
                raise TransientStoreError("Hire is temporarily unavailable, please retry")
            raise ServerError(f"Failed to hire freelancer")

        # committed: nothing below may turn this into a failure
        self._notify_hired_freelancer(gig, bid)
        return await self._load_hire_result(gig, bid)
