from app.models.user_models import UserRecord, UserSummary
from app.stores.entity_store import EntityStore, StoreUnavailableError
from app.custom_error import UserNotFoundError, ServerError, TransientStoreError
from typing import Dict, List
import logging

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, entity_store: EntityStore):
        self.entity_store = entity_store

    async def get_user(self, clerk_user_id: str) -> UserRecord:
        """Resolve the internal user record from a clerk_user_id"""
        try:
            user = await self.entity_store.find_user_by_clerk_id(clerk_user_id)

            if user is None:
                raise UserNotFoundError()

            return user

        except Exception as e:
            logger.error(f"Error getting user - {str(e)}")
            if isinstance(e, UserNotFoundError):
                raise e
            if isinstance(e, StoreUnavailableError):
                raise TransientStoreError("User lookup is temporarily unavailable, please retry")
            raise ServerError(f"Failed to get user id")

    async def get_user_id(self, clerk_user_id: str) -> str:
        """Helper method to get user_id from clerk_user_id"""
        user = await self.get_user(clerk_user_id)
        return user.id

    # -----------------------------------------------------------------------------------------------------------------------

    async def get_user_summaries(self, user_ids: List[str]) -> Dict[str, UserSummary]:
        """Display fields for a batch of users, keyed by user id. Unknown ids are simply absent."""
        users = await self.entity_store.find_users_by_ids(user_ids)
        return {user.id: UserSummary(id=user.id, name=user.name, email=user.email) for user in users}
