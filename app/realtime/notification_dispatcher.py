from fastapi import WebSocket
from pydantic import BaseModel
from app.realtime.connection_registry import ConnectionRegistry
from app.models.notification_models import EventName
from typing import Any, Dict, Optional, Set, Union
import asyncio
import logging

logger = logging.getLogger(__name__)

EventPayload = Union[BaseModel, Dict[str, Any]]


def build_event(event: EventName, payload: EventPayload) -> Dict[str, Any]:
    """Wire shape of every live event: {"event": <name>, "data": <camelCase payload>}"""
    data = payload.model_dump(mode="json", by_alias=True) if isinstance(payload, BaseModel) else payload
    return {"event": event.value, "data": data}


class NotificationDispatcher:
    """
    Best-effort delivery of events to live sessions.

    No queue, no retry, no persistence: if the target has no live session the event is dropped, since the
    state change it announces is already stored. Nothing in here raises to the caller.
    """

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry
        self._pending: Set[asyncio.Task] = set()

    async def _send(self, websocket: WebSocket, message: Dict[str, Any]) -> bool:
        try:
            await websocket.send_json(message)
            return True
        except Exception as e:
            logger.error(f"❌ Failed to deliver {message.get('event')} event - {str(e)}")
            # a socket that cannot be written to is dead, stop routing to it
            self.registry.discard(websocket)
            return False

    async def notify(self, target_user_id: str, event: EventName, payload: EventPayload) -> int:
        """Send to every live session of one user, returns how many sessions got it"""
        try:
            sessions = self.registry.connections_for_user(target_user_id)
            if not sessions:
                logger.info(f"No live session for user {target_user_id}, {event.value} event dropped")
                return 0

            message = build_event(event, payload)
            results = await asyncio.gather(*(self._send(ws, message) for ws in sessions))
            delivered = sum(1 for ok in results if ok)

            logger.info(f"✅ {event.value} event delivered to {delivered}/{len(sessions)} sessions of user {target_user_id}")
            return delivered

        except Exception as e:
            logger.error(f"Error notifying user {target_user_id} - {str(e)}")
            return 0

    def dispatch(self, target_user_id: str, event: EventName, payload: EventPayload) -> None:
        """Fire-and-forget notify(): schedules delivery on the running loop and returns immediately"""
        task = asyncio.get_running_loop().create_task(self.notify(target_user_id, event, payload))
        # keep a reference until it finishes, the loop only holds weak ones
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def broadcast_to_room(self, room: str, event: EventName, payload: EventPayload, exclude: Optional[WebSocket] = None) -> int:
        """Send to every socket in a room, optionally skipping the sender"""
        try:
            members = [ws for ws in self.registry.connections_for_room(room) if ws is not exclude]
            if not members:
                return 0

            message = build_event(event, payload)
            results = await asyncio.gather(*(self._send(ws, message) for ws in members))
            return sum(1 for ok in results if ok)

        except Exception as e:
            logger.error(f"Error broadcasting {event.value} to room {room} - {str(e)}")
            return 0

    async def drain(self) -> None:
        """Wait for dispatched notifications still in flight (shutdown, tests)"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
