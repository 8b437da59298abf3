from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from app.utils.dependencies import get_entity_store, get_connection_registry, get_notification_dispatcher
from app.utils.user_auth import SessionTokenError, verify_clerk_session_token
from app.services.realtime_services import RealtimeService
from app.realtime.connection_registry import ConnectionRegistry
from app.realtime.notification_dispatcher import NotificationDispatcher
from app.stores.entity_store import EntityStore
from typing import Optional
import logging

logger = logging.getLogger(__name__)

realtime_router = APIRouter(tags=["Realtime"])


@realtime_router.websocket("/ws")
async def live_session(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    entity_store: EntityStore = Depends(get_entity_store),
    registry: ConnectionRegistry = Depends(get_connection_registry),
    notification_dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """
    Live session for one signed-in user: receives that user's notifications (hired) and, after join_gig_room,
    the chat events of that gig. Authenticated with a Clerk session token in the "token" query parameter.
    """
    try:
        clerk_user_id = await verify_clerk_session_token(token)
        user = await entity_store.find_user_by_clerk_id(clerk_user_id)
    except SessionTokenError as e:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=str(e))
        return
    except Exception as e:
        logger.error(f"Error authenticating live session - {str(e)}")
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR, reason="Authentication unavailable")
        return

    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Authentication error: User not found")
        return

    await websocket.accept()
    registry.register(user.id, websocket)
    realtime_service = RealtimeService(entity_store, registry, notification_dispatcher)

    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                await realtime_service.handle_client_event(websocket, user, None)
                continue
            await realtime_service.handle_client_event(websocket, user, message)

    except WebSocketDisconnect:
        logger.info(f"User {user.id} disconnected")

    finally:
        registry.deregister(user.id, websocket)
