from fastapi import APIRouter, Depends, Form, Query, status
from app.utils.dependencies import get_entity_store
from app.utils.request_validation import build_request_model
from app.utils.user_auth import get_current_clerk_user_id
from app.services.gig_services import GigService
from app.models.gig_models import GigCreate, GigDeleteResponse, GigResponse
from app.stores.entity_store import EntityStore
from typing import List, Optional

gig_router = APIRouter(prefix="/gigs", tags=["Gigs"])


async def get_gig_service(entity_store: EntityStore = Depends(get_entity_store)) -> GigService:
    """Dependency to get GigService instance"""
    return GigService(entity_store)


########################################################################################################################


@gig_router.get("", response_model=List[GigResponse])
async def list_open_gigs(
    search: Optional[str] = Query(None, description="Match against gig title and description"),
    gig_service: GigService = Depends(get_gig_service),
):
    """Browse open gigs (public)"""
    return await gig_service.list_open_gigs(search)


# has to be declared before "/{gig_id}" or it would be captured as a gig id
@gig_router.get("/my-gigs", response_model=List[GigResponse])
async def list_my_gigs(
    clerk_user_id: str = Depends(get_current_clerk_user_id),
    gig_service: GigService = Depends(get_gig_service),
):
    """Gigs posted by the caller"""
    return await gig_service.list_my_gigs(clerk_user_id)


@gig_router.get("/{gig_id}", response_model=GigResponse)
async def get_gig(gig_id: str, gig_service: GigService = Depends(get_gig_service)):
    """Single gig (public)"""
    return await gig_service.get_gig(gig_id)


# ------------------------------------------------------------------------------------------------------------------------


@gig_router.post("", response_model=GigResponse, status_code=status.HTTP_201_CREATED)
async def create_gig(
    title: str = Form(..., min_length=1),
    description: str = Form(..., min_length=1),
    budget: float = Form(..., gt=0),
    clerk_user_id: str = Depends(get_current_clerk_user_id),
    gig_service: GigService = Depends(get_gig_service),
):
    """Post a new gig"""
    gig_data = build_request_model(GigCreate, title=title, description=description, budget=budget)
    return await gig_service.create_gig(clerk_user_id, gig_data)


@gig_router.delete("/{gig_id}", response_model=GigDeleteResponse)
async def delete_gig(
    gig_id: str,
    clerk_user_id: str = Depends(get_current_clerk_user_id),
    gig_service: GigService = Depends(get_gig_service),
):
    """Delete own gig with its bids and chat"""
    return await gig_service.delete_gig(clerk_user_id, gig_id)
