from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import List, Optional

from sportshop.models.product import Product
from sportshop.models.user import User, get_db
from sportshop.schemas.product import ProductCreate, ProductOut, ProductUpdate, StockAdjustment
from sportshop.utils.errors import NotFoundError, ValidationError
from sportshop.utils.security import get_current_admin

router = APIRouter()
admin_router = APIRouter()


def to_product_out(p: Product) -> ProductOut:
    return ProductOut(
        id=p.id,
        name=p.name,
        category=p.category,
        brand=p.brand,
        price=float(p.price or 0),
        stock=p.stock,
        image=p.image,
    )


def _get_product(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError("Product not found")
    return product


# List products with optional case-insensitive category filter and name search
@router.get("/", response_model=List[ProductOut])
def get_all_products(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    category: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    query = db.query(Product)
    if category:
        query = query.filter(func.lower(Product.category) == category.strip().lower())
    if search:
        query = query.filter(Product.name.ilike(f"%{search}%"))
    products = query.order_by(Product.id.asc()).offset(page * size).limit(size).all()
    return [to_product_out(p) for p in products]


@router.get("/categories", response_model=List[str])
def list_categories(db: Session = Depends(get_db)):
    """Return distinct product categories (lowercased, sorted)."""
    rows = db.query(func.lower(Product.category)).filter(Product.category.isnot(None)).distinct().all()
    return sorted({r[0] for r in rows if r and r[0]})


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return to_product_out(_get_product(db, product_id))


@admin_router.post("/", response_model=ProductOut, status_code=201)
def create_product(payload: ProductCreate, db: Session = Depends(get_db), admin: User = Depends(get_current_admin)):
    product = Product(**payload.model_dump())
    db.add(product)
    db.commit()
    db.refresh(product)
    return to_product_out(product)


@admin_router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    product = _get_product(db, product_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(product, field, value)
    db.commit()
    db.refresh(product)
    return to_product_out(product)


# Restock or write off units; applied as a relative update so concurrent orders are not lost
@admin_router.post("/{product_id}/stock", response_model=ProductOut)
def adjust_stock(
    product_id: int,
    payload: StockAdjustment,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    query = db.query(Product).filter(Product.id == product_id)
    if payload.delta < 0:
        query = query.filter(Product.stock >= -payload.delta)
    updated = query.update({Product.stock: Product.stock + payload.delta}, synchronize_session=False)
    if not updated:
        _get_product(db, product_id)
        raise ValidationError("Stock cannot go below zero")
    db.commit()
    return to_product_out(_get_product(db, product_id))
