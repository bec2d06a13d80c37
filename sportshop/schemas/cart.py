from pydantic import BaseModel, Field
from typing import List, Optional


class CartItemIn(BaseModel):
    productId: int
    quantity: int = Field(gt=0)
    color: Optional[str] = None
    size: Optional[str] = None


class CartItemOut(BaseModel):
    productId: int
    quantity: int
    color: Optional[str] = None
    size: Optional[str] = None


class CartOut(BaseModel):
    items: List[CartItemOut]
