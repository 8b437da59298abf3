from fastapi import APIRouter, Depends, Form, status
from app.utils.dependencies import get_entity_store
from app.utils.request_validation import build_request_model
from app.utils.user_auth import get_current_clerk_user_id
from app.services.bid_services import BidService
from app.models.bid_models import BidCreate, BidResponse, MyBidResponse
from app.stores.entity_store import EntityStore
from typing import List

bid_router = APIRouter(prefix="/bids", tags=["Bids"])


async def get_bid_service(entity_store: EntityStore = Depends(get_entity_store)) -> BidService:
    """Dependency to get BidService instance"""
    return BidService(entity_store)


########################################################################################################################


@bid_router.post("", response_model=BidResponse, status_code=status.HTTP_201_CREATED)
async def create_bid(
    gig_id: str = Form(...),
    message: str = Form(..., min_length=1),
    price: float = Form(..., gt=0),
    clerk_user_id: str = Depends(get_current_clerk_user_id),
    bid_service: BidService = Depends(get_bid_service),
):
    """Bid on an open gig"""
    bid_data = build_request_model(BidCreate, gig_id=gig_id, message=message, price=price)
    return await bid_service.create_bid(clerk_user_id, bid_data)


# ------------------------------------------------------------------------------------------------------------------------


# has to be declared before "/{gig_id}"
@bid_router.get("/my-bids", response_model=List[MyBidResponse])
async def list_my_bids(
    clerk_user_id: str = Depends(get_current_clerk_user_id),
    bid_service: BidService = Depends(get_bid_service),
):
    """Bids placed by the caller, with their gigs"""
    return await bid_service.list_my_bids(clerk_user_id)


@bid_router.get("/{gig_id}", response_model=List[BidResponse])
async def list_bids_for_gig(
    gig_id: str,
    clerk_user_id: str = Depends(get_current_clerk_user_id),
    bid_service: BidService = Depends(get_bid_service),
):
    """Bids on one of the caller's gigs"""
    return await bid_service.list_bids_for_gig(clerk_user_id, gig_id)
