from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional
from enum import Enum

# Live-session events go out over the websocket with camelCase keys: {"event": <name>, "data": {...}}


class EventName(str, Enum):
    HIRED = "hired"
    NEW_MESSAGE = "new_message"
    MESSAGE_READ = "message_read"
    USER_TYPING = "user_typing"
    USER_STOPPED_TYPING = "user_stopped_typing"
    JOINED_GIG_ROOM = "joined_gig_room"
    ERROR = "error"


class CamelEvent(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HiredEvent(CamelEvent):
    message: str
    gig_id: str
    gig_title: str
    bid_id: str


class MessageReadEvent(CamelEvent):
    gig_id: str
    message_id: str
    read_by: str


class TypingEvent(CamelEvent):
    gig_id: str
    user_id: str
    user_name: Optional[str] = None


class StoppedTypingEvent(CamelEvent):
    gig_id: str
    user_id: str


class JoinedGigRoomEvent(CamelEvent):
    gig_id: str


class ErrorEvent(CamelEvent):
    message: str
