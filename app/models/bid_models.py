from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
from enum import Enum

from app.models.gig_models import GigResponse, GigSummary
from app.models.user_models import UserSummary


class BidStatus(str, Enum):
    PENDING = "pending"
    HIRED = "hired"
    REJECTED = "rejected"


class BidCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    gig_id: str
    message: str = Field(min_length=1)
    price: float = Field(gt=0)


class BidRecord(BaseModel):
    id: str
    gig_id: str
    freelancer_id: str
    message: str
    price: float
    status: BidStatus
    created_at: datetime
    updated_at: datetime


class BidGigInfo(BaseModel):
    id: str
    title: str


class BidResponse(BaseModel):
    id: str
    gig_id: str
    freelancer_id: str
    message: str
    price: float
    status: BidStatus
    created_at: datetime
    updated_at: datetime
    # Resolved display info
    freelancer: Optional[UserSummary] = None
    gig: Optional[BidGigInfo] = None


class MyBidResponse(BaseModel):
    """Freelancer's own bid with the gig it was placed on"""

    id: str
    gig_id: str
    freelancer_id: str
    message: str
    price: float
    status: BidStatus
    created_at: datetime
    updated_at: datetime
    freelancer: Optional[UserSummary] = None
    gig: Optional[GigSummary] = None


class HireResponse(BaseModel):
    message: str
    bid: BidResponse
    gig: GigResponse
