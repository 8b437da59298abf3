from app.models.bid_models import BidCreate, BidGigInfo, BidRecord, BidResponse, MyBidResponse
from app.models.gig_models import GigStatus, GigSummary
from app.services.user_services import UserService
from app.stores.entity_store import DuplicateBidError, EntityStore, GigClosedForBidsError, StoreUnavailableError
from app.custom_error import UserNotFoundError, NotFoundError, ForbiddenError, InvalidStateError, ValidationError, ServerError, TransientStoreError
from typing import List
import logging

logger = logging.getLogger(__name__)


class BidService:
    def __init__(self, entity_store: EntityStore):
        self.entity_store = entity_store
        self.user_service = UserService(entity_store)

    async def to_bid_responses(self, bids: List[BidRecord]) -> List[BidResponse]:
        """Attach freelancer display info and gig title to bid records"""
        freelancers = await self.user_service.get_user_summaries([bid.freelancer_id for bid in bids])
        gigs = {gig.id: gig for gig in await self.entity_store.find_gigs_by_ids([bid.gig_id for bid in bids])}

        responses = []
        for bid in bids:
            gig = gigs.get(bid.gig_id)
            responses.append(
                BidResponse(
                    **bid.model_dump(),
                    freelancer=freelancers.get(bid.freelancer_id),
                    gig=BidGigInfo(id=gig.id, title=gig.title) if gig else None,
                )
            )
        return responses

    # =====================================================================================================
    # VALIDATION HELPERS
    # =====================================================================================================

    async def _validate_gig_available_for_bidding(self, gig_id: str, freelancer_id: str) -> None:
        """Gig must exist, be open, and belong to someone else"""
        gig = await self.entity_store.find_gig_by_id(gig_id)

        if gig is None:
            raise NotFoundError("Gig not found")

        if gig.status != GigStatus.OPEN:
            raise InvalidStateError("Gig is no longer open for bids")

        if gig.owner_id == freelancer_id:
            raise ValidationError("You cannot bid on your own gig")

    async def _validate_no_existing_bid(self, gig_id: str, freelancer_id: str) -> None:
        existing_bid = await self.entity_store.find_bid_by_gig_and_freelancer(gig_id, freelancer_id)
        if existing_bid is not None:
            raise ValidationError("You have already bid on this gig")

    # =====================================================================================================
    # CORE BID OPERATIONS
    # =====================================================================================================

    async def create_bid(self, clerk_user_id: str, bid_data: BidCreate) -> BidResponse:
        """Place a pending bid on an open gig"""
        try:
            freelancer_id = await self.user_service.get_user_id(clerk_user_id)

            await self._validate_gig_available_for_bidding(bid_data.gig_id, freelancer_id)
            await self._validate_no_existing_bid(bid_data.gig_id, freelancer_id)

            try:
                bid = await self.entity_store.create_bid(
                    gig_id=bid_data.gig_id,
                    freelancer_id=freelancer_id,
                    message=bid_data.message.strip(),
                    price=bid_data.price,
                )
            except DuplicateBidError:
                # a concurrent request from the same freelancer got there first, the unique pair caught it
                raise ValidationError("You have already bid on this gig")
            except GigClosedForBidsError:
                # the gig was assigned (or deleted) between the check above and the insert
                raise InvalidStateError("Gig is no longer open for bids")

            logger.info(f"✅ Bid created successfully: {bid.id}")
            return (await self.to_bid_responses([bid]))[0]

        except Exception as e:
            logger.error(f"Error creating bid - {str(e)}")
            if isinstance(e, (UserNotFoundError, NotFoundError, InvalidStateError, ValidationError, TransientStoreError)):
                raise e
            if isinstance(e, StoreUnavailableError):
                raise TransientStoreError("Could not place your bid right now, please retry")
            raise ServerError(f"Failed to create your bid")

    # =====================================================================================================
    # BID READING OPERATIONS
    # =====================================================================================================

    async def list_bids_for_gig(self, clerk_user_id: str, gig_id: str) -> List[BidResponse]:
        """All bids on a gig, newest first, visible to the gig owner only"""
        try:
            user_id = await self.user_service.get_user_id(clerk_user_id)

            gig = await self.entity_store.find_gig_by_id(gig_id)
            if gig is None:
                raise NotFoundError("Gig not found")

            if gig.owner_id != user_id:
                raise ForbiddenError("Not authorized to view these bids")

            bids = await self.entity_store.list_bids_by_gig(gig_id)

            logger.info(f"✅ Retrieved {len(bids)} bids for gig {gig_id}")
            return await self.to_bid_responses(bids)

        except Exception as e:
            logger.error(f"Error listing bids for gig - {str(e)}")
            if isinstance(e, (UserNotFoundError, NotFoundError, ForbiddenError, TransientStoreError)):
                raise e
            if isinstance(e, StoreUnavailableError):
                raise TransientStoreError("Could not load bids right now, please retry")
            raise ServerError(f"Failed to fetch bids")

    async def list_my_bids(self, clerk_user_id: str) -> List[MyBidResponse]:
        """Caller's own bids, newest first, each with a summary of its gig"""
        try:
            freelancer_id = await self.user_service.get_user_id(clerk_user_id)

            bids = await self.entity_store.list_bids_by_freelancer(freelancer_id)
            gigs = {gig.id: gig for gig in await self.entity_store.find_gigs_by_ids([bid.gig_id for bid in bids])}
            freelancers = await self.user_service.get_user_summaries([freelancer_id])

            my_bids = []
            for bid in bids:
                gig = gigs.get(bid.gig_id)
                my_bids.append(
                    MyBidResponse(
                        **bid.model_dump(),
                        freelancer=freelancers.get(freelancer_id),
                        gig=GigSummary(**gig.model_dump(include=set(GigSummary.model_fields))) if gig else None,
                    )
                )

            logger.info(f"✅ Retrieved {len(my_bids)} bids for freelancer {freelancer_id}")
            return my_bids

        except Exception as e:
            logger.error(f"Error listing own bids - {str(e)}")
            if isinstance(e, (UserNotFoundError, TransientStoreError)):
                raise e
            if isinstance(e, StoreUnavailableError):
                raise TransientStoreError("Could not load your bids right now, please retry")
            raise ServerError(f"Failed to fetch your bids")
