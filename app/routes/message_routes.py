from fastapi import APIRouter, Depends, Form, status
from app.utils.dependencies import get_entity_store, get_notification_dispatcher
from app.utils.user_auth import get_current_clerk_user_id
from app.services.message_services import MessageService
from app.models.message_models import MessageCreate, MessageReadResponse, MessageResponse, MessageType
from app.realtime.notification_dispatcher import NotificationDispatcher
from app.stores.entity_store import EntityStore
from typing import List

message_router = APIRouter(prefix="/messages", tags=["Messages"])


async def get_message_service(
    entity_store: EntityStore = Depends(get_entity_store),
    notification_dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> MessageService:
    """Dependency to get MessageService instance"""
    return MessageService(entity_store, notification_dispatcher)


########################################################################################################################

# every route here is limited to the owner and the hired freelancer of an assigned gig


@message_router.get("/{gig_id}", response_model=List[MessageResponse])
async def list_messages(
    gig_id: str,
    clerk_user_id: str = Depends(get_current_clerk_user_id),
    message_service: MessageService = Depends(get_message_service),
):
    """Chat history for a gig, oldest first"""
    return await message_service.list_messages(clerk_user_id, gig_id)


@message_router.post("/{gig_id}", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def create_message(
    gig_id: str,
    type: MessageType = Form(MessageType.TEXT),
    content: str = Form(None),
    file_url: str = Form(None),
    clerk_user_id: str = Depends(get_current_clerk_user_id),
    message_service: MessageService = Depends(get_message_service),
):
    """Send a text or file message"""
    message_data = MessageCreate(type=type, content=content, file_url=file_url)
    return await message_service.create_message(clerk_user_id, gig_id, message_data)


@message_router.patch("/{message_id}/read", response_model=MessageReadResponse)
async def mark_message_as_read(
    message_id: str,
    clerk_user_id: str = Depends(get_current_clerk_user_id),
    message_service: MessageService = Depends(get_message_service),
):
    """Read receipt"""
    return await message_service.mark_message_as_read(clerk_user_id, message_id)
