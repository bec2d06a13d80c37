from typing import Literal, Optional

from pydantic import BaseModel, Field

Behavior = Literal["view", "like", "dislike", "checkout", "cart", "purchase"]


class TrackingEventIn(BaseModel):
    productId: int
    productName: str = Field(min_length=1)
    behavior: Behavior
    # client's last known session; the server decides whether it still applies
    sessionId: Optional[str] = None


class TrackingEventOut(BaseModel):
    message: str
    sessionId: str
