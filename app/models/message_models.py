from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from enum import Enum

from app.models.user_models import UserSummary


class MessageType(str, Enum):
    TEXT = "text"
    FILE = "file"


class MessageCreate(BaseModel):
    type: MessageType = MessageType.TEXT
    content: Optional[str] = None
    file_url: Optional[str] = None


class MessageRecord(BaseModel):
    id: str
    gig_id: str
    sender_id: str
    type: MessageType
    content: Optional[str] = None
    file_url: Optional[str] = None
    read_by: List[str] = []
    created_at: datetime


class MessageResponse(BaseModel):
    id: str
    gig_id: str
    sender_id: str
    type: MessageType
    content: Optional[str] = None
    file_url: Optional[str] = None
    read_by: List[str] = []
    created_at: datetime
    # sender display info
    sender: Optional[UserSummary] = None


class MessageReadResponse(BaseModel):
    message: str
