from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
from enum import Enum

from app.models.user_models import UserSummary


class GigStatus(str, Enum):
    OPEN = "open"
    ASSIGNED = "assigned"


class GigCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    budget: float = Field(gt=0)


class GigRecord(BaseModel):
    id: str
    title: str
    description: str
    budget: float
    status: GigStatus
    owner_id: str
    created_at: datetime
    updated_at: datetime


class GigResponse(BaseModel):
    id: str
    title: str
    description: str
    budget: float
    status: GigStatus
    owner_id: str
    created_at: datetime
    updated_at: datetime
    # owner display info
    owner: Optional[UserSummary] = None


class GigSummary(BaseModel):
    """Gig context attached to a freelancer's own bids"""

    id: str
    title: str
    description: str
    budget: float
    status: GigStatus
    owner_id: str


class GigDeleteResponse(BaseModel):
    message: str
