from fastapi import WebSocket
from app.models.notification_models import (
    EventName,
    ErrorEvent,
    JoinedGigRoomEvent,
    StoppedTypingEvent,
    TypingEvent,
)
from app.models.user_models import UserRecord
from app.realtime.connection_registry import ConnectionRegistry, gig_room
from app.realtime.notification_dispatcher import NotificationDispatcher, build_event
from app.services.message_services import MessageService
from app.stores.entity_store import EntityStore
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


class RealtimeService:
    """
    Client-to-server events on a live session.

    Clients send {"event": <name>, "data": {"gigId": ...}}. Joining a gig room and typing indicators follow the
    same access rule as the chat HTTP routes: assigned gig, owner or hired freelancer only.
    """

    def __init__(self, entity_store: EntityStore, registry: ConnectionRegistry, notification_dispatcher: NotificationDispatcher):
        self.registry = registry
        self.notification_dispatcher = notification_dispatcher
        self.message_service = MessageService(entity_store, notification_dispatcher)

    async def _reply(self, websocket: WebSocket, event: EventName, payload) -> None:
        try:
            await websocket.send_json(build_event(event, payload))
        except Exception as e:
            logger.error(f"Failed to reply {event.value} on session - {str(e)}")

    async def _reply_error(self, websocket: WebSocket, message: str) -> None:
        await self._reply(websocket, EventName.ERROR, ErrorEvent(message=message))

    # --------------------------------------------------------------------------------------------------------------------

    async def join_gig_room(self, websocket: WebSocket, user: UserRecord, gig_id: Optional[str]) -> None:
        if not gig_id:
            await self._reply_error(websocket, "Gig ID is required")
            return

        gig, error = await self.message_service.check_chat_access(gig_id, user.id)
        if error:
            await self._reply_error(websocket, error)
            return

        self.registry.join_room(gig_room(gig.id), websocket)
        logger.info(f"User {user.id} joined chat room {gig_room(gig.id)}")
        await self._reply(websocket, EventName.JOINED_GIG_ROOM, JoinedGigRoomEvent(gig_id=gig.id))

    def leave_gig_room(self, websocket: WebSocket, user: UserRecord, gig_id: Optional[str]) -> None:
        if gig_id:
            self.registry.leave_room(gig_room(gig_id), websocket)
            logger.info(f"User {user.id} left chat room {gig_room(gig_id)}")

    async def typing(self, websocket: WebSocket, user: UserRecord, gig_id: Optional[str]) -> None:
        if not gig_id:
            return

        _, error = await self.message_service.check_chat_access(gig_id, user.id)
        if error:
            return

        # to the other participant only
        await self.notification_dispatcher.broadcast_to_room(
            gig_room(gig_id), EventName.USER_TYPING, TypingEvent(gig_id=gig_id, user_id=user.id, user_name=user.name), exclude=websocket
        )

    async def stop_typing(self, websocket: WebSocket, user: UserRecord, gig_id: Optional[str]) -> None:
        if not gig_id:
            return

        _, error = await self.message_service.check_chat_access(gig_id, user.id)
        if error:
            return

        await self.notification_dispatcher.broadcast_to_room(
            gig_room(gig_id), EventName.USER_STOPPED_TYPING, StoppedTypingEvent(gig_id=gig_id, user_id=user.id), exclude=websocket
        )

    # --------------------------------------------------------------------------------------------------------------------

    async def handle_client_event(self, websocket: WebSocket, user: UserRecord, message: Any) -> None:
        """Route one client event, anything malformed gets an error event back instead of closing the session"""
        if not isinstance(message, dict) or not isinstance(message.get("event"), str):
            await self._reply_error(websocket, "Malformed event")
            return

        data: Dict[str, Any] = message.get("data") if isinstance(message.get("data"), dict) else {}
        gig_id = data.get("gigId")
        gig_id = gig_id if isinstance(gig_id, str) else None
        event = message["event"]

        try:
            if event == "join_gig_room":
                await self.join_gig_room(websocket, user, gig_id)
            elif event == "leave_gig_room":
                self.leave_gig_room(websocket, user, gig_id)
            elif event == "typing":
                await self.typing(websocket, user, gig_id)
            elif event == "stop_typing":
                await self.stop_typing(websocket, user, gig_id)
            else:
                await self._reply_error(websocket, f"Unknown event: {event}")

        except Exception as e:
            logger.error(f"Error handling {event} from user {user.id} - {str(e)}")
            await self._reply_error(websocket, f"Failed to handle {event}")
