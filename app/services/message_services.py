from app.models.bid_models import BidStatus
from app.models.gig_models import GigRecord, GigStatus
from app.models.message_models import MessageCreate, MessageReadResponse, MessageRecord, MessageResponse, MessageType
from app.models.notification_models import EventName, MessageReadEvent
from app.realtime.connection_registry import gig_room
from app.realtime.notification_dispatcher import NotificationDispatcher
from app.services.user_services import UserService
from app.stores.entity_store import EntityStore, StoreUnavailableError
from app.custom_error import UserNotFoundError, NotFoundError, ForbiddenError, ValidationError, ServerError, TransientStoreError
from typing import List, Optional, Tuple
from urllib.parse import urlparse
import logging

logger = logging.getLogger(__name__)

MAX_FILE_URL_LENGTH = 2048


class MessageService:
    def __init__(self, entity_store: EntityStore, notification_dispatcher: NotificationDispatcher):
        self.entity_store = entity_store
        self.notification_dispatcher = notification_dispatcher
        self.user_service = UserService(entity_store)

    async def _to_message_responses(self, messages: List[MessageRecord]) -> List[MessageResponse]:
        senders = await self.user_service.get_user_summaries([m.sender_id for m in messages])
        return [MessageResponse(**m.model_dump(), sender=senders.get(m.sender_id)) for m in messages]

    # =====================================================================================================
    # ACCESS CONTROL
    # =====================================================================================================

    async def check_chat_access(self, gig_id: str, user_id: str) -> Tuple[Optional[GigRecord], Optional[str]]:
        """
        Chat on a gig is open only once it is assigned, and only to its owner and its hired freelancer.
        Returns (gig, None) when allowed, (None, reason) otherwise.
        """
        gig = await self.entity_store.find_gig_by_id(gig_id)
        if gig is None:
            return None, "Gig not found"

        if gig.status != GigStatus.ASSIGNED:
            return None, "Chat is only available for assigned gigs"

        if gig.owner_id == user_id:
            return gig, None

        hired_bid = await self.entity_store.find_hired_bid(gig_id)
        if hired_bid is not None and hired_bid.freelancer_id == user_id and hired_bid.status == BidStatus.HIRED:
            return gig, None

        return None, "Not authorized to access this chat"

    async def _require_chat_access(self, gig_id: str, user_id: str) -> GigRecord:
        gig, error = await self.check_chat_access(gig_id, user_id)
        if error:
            raise ForbiddenError(error)
        return gig

    # =====================================================================================================
    # VALIDATION HELPERS
    # =====================================================================================================

    def _validate_message(self, message_data: MessageCreate) -> Tuple[Optional[str], Optional[str]]:
        """Returns the cleaned (content, file_url) pair for the message type"""
        if message_data.type == MessageType.TEXT:
            if not message_data.content or not message_data.content.strip():
                raise ValidationError("Message content is required")
            return message_data.content.strip(), None

        if not message_data.file_url or not message_data.file_url.strip():
            raise ValidationError("File URL is required")

        file_url = message_data.file_url.strip()
        parsed = urlparse(file_url)
        if not parsed.scheme or not parsed.netloc:
            raise ValidationError("Invalid URL format")
        if parsed.scheme != "https":
            raise ValidationError("File URL must use HTTPS")
        if len(file_url) > MAX_FILE_URL_LENGTH:
            raise ValidationError(f"File URL is too long (max {MAX_FILE_URL_LENGTH} characters)")

        return None, file_url

    # =====================================================================================================
    # MESSAGE OPERATIONS
    # =====================================================================================================

    async def list_messages(self, clerk_user_id: str, gig_id: str) -> List[MessageResponse]:
        """Whole chat history of a gig, oldest first"""
        try:
            user_id = await self.user_service.get_user_id(clerk_user_id)
            await self._require_chat_access(gig_id, user_id)

            messages = await self.entity_store.list_messages_by_gig(gig_id)
            return await self._to_message_responses(messages)

        except Exception as e:
            logger.error(f"Error listing messages - {str(e)}")
            if isinstance(e, (UserNotFoundError, ForbiddenError, TransientStoreError)):
                raise e
            if isinstance(e, StoreUnavailableError):
                raise TransientStoreError("Could not load messages right now, please retry")
            raise ServerError(f"Failed to fetch messages")

    # --------------------------------------------------------------------------------------------------------------------------------------------

    async def create_message(self, clerk_user_id: str, gig_id: str, message_data: MessageCreate) -> MessageResponse:
        """Post a text or file message to the gig chat and push it to the room"""
        try:
            user_id = await self.user_service.get_user_id(clerk_user_id)
            await self._require_chat_access(gig_id, user_id)

            content, file_url = self._validate_message(message_data)

            message = await self.entity_store.create_message(gig_id, user_id, message_data.type, content, file_url)
            message_response = (await self._to_message_responses([message]))[0]

            await self.notification_dispatcher.broadcast_to_room(gig_room(gig_id), EventName.NEW_MESSAGE, message_response)

            logger.info(f"✅ Message {message.id} posted to gig {gig_id}")
            return message_response

        except Exception as e:
            logger.error(f"Error creating message - {str(e)}")
            if isinstance(e, (UserNotFoundError, ForbiddenError, ValidationError, TransientStoreError)):
                raise e
            if isinstance(e, StoreUnavailableError):
                raise TransientStoreError("Could not send your message right now, please retry")
            raise ServerError(f"Failed to send your message")

    # --------------------------------------------------------------------------------------------------------------------------------------------

    async def mark_message_as_read(self, clerk_user_id: str, message_id: str) -> MessageReadResponse:
        """Add the caller to read_by (no-op when already there) and push a read receipt to the room"""
        try:
            user_id = await self.user_service.get_user_id(clerk_user_id)

            message = await self.entity_store.find_message_by_id(message_id)
            if message is None:
                raise NotFoundError("Message not found")

            await self._require_chat_access(message.gig_id, user_id)

            if user_id not in message.read_by:
                await self.entity_store.add_message_reader(message_id, user_id)

            await self.notification_dispatcher.broadcast_to_room(
                gig_room(message.gig_id),
                EventName.MESSAGE_READ,
                MessageReadEvent(gig_id=message.gig_id, message_id=message.id, read_by=user_id),
            )

            return MessageReadResponse(message="Message marked as read")

        except Exception as e:
            logger.error(f"Error marking message as read - {str(e)}")
            if isinstance(e, (UserNotFoundError, NotFoundError, ForbiddenError, TransientStoreError)):
                raise e
            if isinstance(e, StoreUnavailableError):
                raise TransientStoreError("Could not update the message right now, please retry")
            raise ServerError(f"Failed to mark message as read")
