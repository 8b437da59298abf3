from pydantic import BaseModel
from typing import Dict, Any, List, Optional


class ClerkWebhookEvent(BaseModel):
    data: Dict[str, Any]
    object: str
    type: str


class ClerkUser(BaseModel):
    id: str
    email_addresses: List[Dict[str, Any]] = []
    primary_email_address_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
