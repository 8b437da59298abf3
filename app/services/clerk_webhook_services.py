from app.models.clerk_webhook_models import ClerkWebhookEvent, ClerkUser
from app.models.user_models import UserUpsert
from app.stores.entity_store import EntityStore
from app.custom_error import ServerError
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class ClerkWebhookService:
    """Mirrors Clerk users into the users table, which is where display names and emails are resolved from"""

    def __init__(self, entity_store: EntityStore):
        self.entity_store = entity_store

    def _get_primary_email(self, user: ClerkUser) -> Optional[str]:
        """Extract primary email using primary_email_address_id"""
        for email in user.email_addresses:
            if email.get("id") == user.primary_email_address_id:
                return email.get("email_address")

        # Fallback: return first email if primary not found
        if user.email_addresses:
            return user.email_addresses[0].get("email_address")

        return None

    def _get_display_name(self, user: ClerkUser) -> Optional[str]:
        name = " ".join(part for part in (user.first_name, user.last_name) if part)
        return name or user.username

    # --------------------------------------------------------------------------------------------------------------------

    async def handle_user_upserted(self, event: ClerkWebhookEvent):
        """Handle user.created and user.updated webhook events"""
        try:
            user = ClerkUser(**event.data)
            primary_email = self._get_primary_email(user)

            if not primary_email:
                logger.error(f"No email found for user {user.id}")
                return

            record = await self.entity_store.upsert_user(
                UserUpsert(clerk_user_id=user.id, email=primary_email, name=self._get_display_name(user))
            )
            logger.info(f"✅ User synced from {event.type}: {user.id} -> {record.id}")

        except Exception as e:
            logger.error(f"Error handling {event.type} webhook: {str(e)}")
            raise ServerError(f"Webhook processing failed: {str(e)}")

    # --------------------------------------------------------------------------------------------------------------------

    async def handle_user_deleted(self, event: ClerkWebhookEvent):
        """Handle user.deleted webhook event"""
        try:
            clerk_user_id = event.data.get("id")

            # their gigs, bids and messages go with them (ON DELETE CASCADE)
            deleted = await self.entity_store.delete_user_by_clerk_id(clerk_user_id)

            if deleted:
                logger.info(f"✅ User deleted: {clerk_user_id}")
            else:
                logger.error(f"❌ No user to delete for {clerk_user_id}")

        except Exception as e:
            logger.error(f"Error handling user.deleted webhook: {str(e)}")
            raise ServerError(f"Webhook processing failed: {str(e)}")
