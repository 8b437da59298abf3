from fastapi import APIRouter, Depends
from app.utils.dependencies import get_entity_store, get_notification_dispatcher
from app.utils.user_auth import get_current_clerk_user_id
from app.services.hire_services import HireService
from app.models.bid_models import HireResponse
from app.realtime.notification_dispatcher import NotificationDispatcher
from app.stores.entity_store import EntityStore

hire_router = APIRouter(tags=["Hire"])


async def get_hire_service(
    entity_store: EntityStore = Depends(get_entity_store),
    notification_dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> HireService:
    """Dependency to get HireService instance"""
    return HireService(entity_store, notification_dispatcher)


########################################################################################################################

# 404 bid/gig missing, 403 not the gig owner, 400 gig not open / bid not pending,
# 409 another hire won the race, 503 nothing committed and safe to retry after re-checking the gig


@hire_router.patch("/bids/{bid_id}/hire", response_model=HireResponse)
async def hire_freelancer(
    bid_id: str,
    clerk_user_id: str = Depends(get_current_clerk_user_id),
    hire_service: HireService = Depends(get_hire_service),
):
    """Hire the freelancer behind a bid on one of the caller's gigs"""
    return await hire_service.hire(clerk_user_id, bid_id)


@hire_router.patch("/gigs/{gig_id}/bids/{bid_id}/hire", response_model=HireResponse)
async def hire_freelancer_for_gig(
    gig_id: str,
    bid_id: str,
    clerk_user_id: str = Depends(get_current_clerk_user_id),
    hire_service: HireService = Depends(get_hire_service),
):
    """Same as PATCH /bids/{bid_id}/hire, additionally checking the bid belongs to gig_id"""
    return await hire_service.hire(clerk_user_id, bid_id, gig_id=gig_id)
