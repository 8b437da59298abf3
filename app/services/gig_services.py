from app.models.gig_models import GigCreate, GigDeleteResponse, GigRecord, GigResponse
from app.services.user_services import UserService
from app.stores.entity_store import EntityStore, StoreUnavailableError
from app.custom_error import UserNotFoundError, NotFoundError, ForbiddenError, ServerError, TransientStoreError
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)


class GigService:
    def __init__(self, entity_store: EntityStore):
        self.entity_store = entity_store
        self.user_service = UserService(entity_store)

    async def _to_gig_responses(self, gigs: List[GigRecord]) -> List[GigResponse]:
        """Attach owner display info to gig records"""
        owners = await self.user_service.get_user_summaries([gig.owner_id for gig in gigs])
        return [GigResponse(**gig.model_dump(), owner=owners.get(gig.owner_id)) for gig in gigs]

    # =====================================================================================================
    # CORE GIG OPERATIONS
    # =====================================================================================================

    async def create_gig(self, clerk_user_id: str, gig_data: GigCreate) -> GigResponse:
        """Post a new open gig owned by the caller"""
        try:
            owner_id = await self.user_service.get_user_id(clerk_user_id)

            gig = await self.entity_store.create_gig(
                owner_id=owner_id,
                title=gig_data.title.strip(),
                description=gig_data.description.strip(),
                budget=gig_data.budget,
            )

            logger.info(f"✅ Gig created: {gig.id}")
            return (await self._to_gig_responses([gig]))[0]

        except Exception as e:
            logger.error(f"Error creating gig - {str(e)}")
            if isinstance(e, (UserNotFoundError, TransientStoreError)):
                raise e
            if isinstance(e, StoreUnavailableError):
                raise TransientStoreError("Could not create your gig right now, please retry")
            raise ServerError(f"Failed to create your gig")

    # --------------------------------------------------------------------------------------------------------------------------------------------

    async def delete_gig(self, clerk_user_id: str, gig_id: str) -> GigDeleteResponse:
        """Delete own gig together with its bids and messages"""
        try:
            user_id = await self.user_service.get_user_id(clerk_user_id)

            gig = await self.entity_store.find_gig_by_id(gig_id)
            if gig is None:
                raise NotFoundError("Gig not found")

            if gig.owner_id != user_id:
                raise ForbiddenError("Not authorized to delete this gig")

            await self.entity_store.delete_gig(gig_id)

            logger.info(f"✅ Gig deleted: {gig_id}")
            return GigDeleteResponse(message="Gig deleted successfully")

        except Exception as e:
            logger.error(f"Error deleting gig - {str(e)}")
            if isinstance(e, (UserNotFoundError, NotFoundError, ForbiddenError, TransientStoreError)):
                raise e
            if isinstance(e, StoreUnavailableError):
                raise TransientStoreError("Could not delete your gig right now, please retry")
            raise ServerError(f"Failed to delete your gig")

    # =====================================================================================================
    # GIG READING OPERATIONS
    # =====================================================================================================

    async def list_open_gigs(self, search: Optional[str] = None) -> List[GigResponse]:
        """Open gigs, newest first, optionally filtered by a search term on title and description"""
        try:
            gigs = await self.entity_store.list_open_gigs(search.strip() if search else None)

            logger.info(f"✅ Retrieved {len(gigs)} open gigs")
            return await self._to_gig_responses(gigs)

        except Exception as e:
            logger.error(f"Error listing open gigs - {str(e)}")
            if isinstance(e, StoreUnavailableError):
                raise TransientStoreError("Could not load gigs right now, please retry")
            raise ServerError(f"Failed to fetch gigs")

    async def get_gig(self, gig_id: str) -> GigResponse:
        try:
            gig = await self.entity_store.find_gig_by_id(gig_id)
            if gig is None:
                raise NotFoundError("Gig not found")

            return (await self._to_gig_responses([gig]))[0]

        except Exception as e:
            logger.error(f"Error getting gig - {str(e)}")
            if isinstance(e, NotFoundError):
                raise e
            if isinstance(e, StoreUnavailableError):
                raise TransientStoreError("Could not load this gig right now, please retry")
            raise ServerError(f"Failed to fetch gig")

    async def list_my_gigs(self, clerk_user_id: str) -> List[GigResponse]:
        try:
            owner_id = await self.user_service.get_user_id(clerk_user_id)
            gigs = await self.entity_store.list_gigs_by_owner(owner_id)

            logger.info(f"✅ Retrieved {len(gigs)} gigs for owner {owner_id}")
            return await self._to_gig_responses(gigs)

        except Exception as e:
            logger.error(f"Error listing own gigs - {str(e)}")
            if isinstance(e, (UserNotFoundError, TransientStoreError)):
                raise e
            if isinstance(e, StoreUnavailableError):
                raise TransientStoreError("Could not load your gigs right now, please retry")
            raise ServerError(f"Failed to fetch your gigs")
