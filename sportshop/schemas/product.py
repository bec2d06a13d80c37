from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class ProductBase(BaseModel):
    name: str = Field(min_length=1)
    category: str
    brand: Optional[str] = None
    price: float = Field(ge=0)
    stock: int = Field(ge=0)
    image: Optional[str] = None


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    image: Optional[str] = None


class StockAdjustment(BaseModel):
    delta: int


class ProductOut(ProductBase):
    id: int

    # Pydantic v2 config
    model_config = ConfigDict(from_attributes=True)
