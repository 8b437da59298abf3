from fastapi import WebSocket
from collections import defaultdict
from typing import Dict, List, Set
import logging

logger = logging.getLogger(__name__)


def gig_room(gig_id: str) -> str:
    """Chat room name shared by a gig's owner and its hired freelancer"""
    return f"gig_{gig_id}"


class ConnectionRegistry:
    """
    Live websocket sessions, keyed by user id (notification channels) and by room (gig chats).

    One instance per application, created in the lifespan and reached through app.state, so tests can
    build their own without any network session. A user may hold several sessions at once (several tabs).
    """

    def __init__(self):
        self._user_channels: Dict[str, Set[WebSocket]] = defaultdict(set)
        self._rooms: Dict[str, Set[WebSocket]] = defaultdict(set)

    # --------------------------------------------------------------------------------------------------------------------
    # user channels

    def register(self, user_id: str, websocket: WebSocket) -> None:
        self._user_channels[user_id].add(websocket)
        logger.info(f"Session registered for user {user_id} ({len(self._user_channels[user_id])} live)")

    def deregister(self, user_id: str, websocket: WebSocket) -> None:
        sessions = self._user_channels.get(user_id)
        if sessions is not None:
            sessions.discard(websocket)
            if not sessions:
                del self._user_channels[user_id]
        self._leave_all_rooms(websocket)
        logger.info(f"Session deregistered for user {user_id}")

    def connections_for_user(self, user_id: str) -> List[WebSocket]:
        return list(self._user_channels.get(user_id, ()))

    # --------------------------------------------------------------------------------------------------------------------
    # rooms

    def join_room(self, room: str, websocket: WebSocket) -> None:
        self._rooms[room].add(websocket)

    def leave_room(self, room: str, websocket: WebSocket) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.discard(websocket)
            if not members:
                del self._rooms[room]

    def connections_for_room(self, room: str) -> List[WebSocket]:
        return list(self._rooms.get(room, ()))

    # --------------------------------------------------------------------------------------------------------------------

    def discard(self, websocket: WebSocket) -> None:
        """Forget a broken socket everywhere, without knowing which user owned it"""
        for user_id in [uid for uid, sessions in self._user_channels.items() if websocket in sessions]:
            self.deregister(user_id, websocket)
        self._leave_all_rooms(websocket)

    def _leave_all_rooms(self, websocket: WebSocket) -> None:
        for room in [name for name, members in self._rooms.items() if websocket in members]:
            self.leave_room(room, websocket)
