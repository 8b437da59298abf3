from pydantic import BaseModel
from typing import Optional


class UserRecord(BaseModel):
    id: str
    clerk_user_id: str
    email: str
    name: Optional[str] = None


class UserUpsert(BaseModel):
    clerk_user_id: str
    email: str
    name: Optional[str] = None


# display fields resolved onto gigs, bids and messages
class UserSummary(BaseModel):
    id: str
    name: Optional[str] = None
    email: str
