from pydantic import BaseModel, Field
from typing import Optional


class ReviewIn(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str = Field(min_length=1)
    name: str = Field(min_length=1)


class ReviewOut(BaseModel):
    id: int
    productId: int
    userId: int
    name: str
    rating: int
    comment: str
    createdAt: Optional[str] = None
