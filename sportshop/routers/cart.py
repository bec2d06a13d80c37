from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional

from sportshop.models.user import User, get_db
from sportshop.models.cart import Cart, CartItem
from sportshop.models.product import Product
from sportshop.schemas.cart import CartItemIn, CartItemOut, CartOut
from sportshop.utils.errors import NotFoundError, ValidationError
from sportshop.utils.security import get_current_user


router = APIRouter()


def _variant(value: Optional[str]) -> Optional[str]:
    # "red " and "RED" are the same variant; blank means none
    value = (value or "").strip().upper()
    return value or None


def _user_cart(db: Session, user_id: int) -> Cart:
    cart = db.query(Cart).filter(Cart.user_id == user_id).one_or_none()
    if cart is None:
        cart = Cart(user_id=user_id)
        db.add(cart)
        db.flush()
    return cart


def _cart_line(db: Session, cart: Cart, product_id: int, color: Optional[str], size: Optional[str]):
    query = db.query(CartItem).filter(CartItem.cart_id == cart.id, CartItem.product_id == product_id)
    query = query.filter(CartItem.color.is_(None) if color is None else CartItem.color == color)
    query = query.filter(CartItem.size.is_(None) if size is None else CartItem.size == size)
    return query.one_or_none()


def _cart_out(db: Session, cart: Cart) -> CartOut:
    db.commit()
    db.refresh(cart)
    return CartOut(items=[
        CartItemOut(productId=line.product_id, quantity=line.quantity, color=line.color, size=line.size)
        for line in sorted(cart.items, key=lambda line: line.id)
    ])


@router.get("/", response_model=CartOut)
def get_cart(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _cart_out(db, _user_cart(db, user.id))


# Identical product/color/size lines are merged into one
@router.post("/", response_model=CartOut)
def add_to_cart(payload: CartItemIn, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    stock = db.query(Product.stock).filter(Product.id == payload.productId).scalar()
    if stock is None:
        raise NotFoundError("Product not found")

    cart = _user_cart(db, user.id)
    color, size = _variant(payload.color), _variant(payload.size)
    line = _cart_line(db, cart, payload.productId, color, size)
    wanted = payload.quantity + (line.quantity if line else 0)
    if wanted > stock:
        raise ValidationError(f"Not enough stock. Available: {stock}")

    if line:
        line.quantity = wanted
    else:
        db.add(CartItem(cart_id=cart.id, product_id=payload.productId, color=color, size=size, quantity=wanted))
    try:
        db.commit()
    except IntegrityError:
        # the same line was added by a parallel request
        db.rollback()
        cart = _user_cart(db, user.id)
        line = _cart_line(db, cart, payload.productId, color, size)
        if line is None:
            raise
        wanted = line.quantity + payload.quantity
        if wanted > stock:
            raise ValidationError(f"Not enough stock. Available: {stock}")
        line.quantity = wanted
    return _cart_out(db, cart)


@router.delete("/", response_model=CartOut)
def remove_from_cart(
    productId: int = Query(...),
    color: Optional[str] = Query(None),
    size: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    cart = _user_cart(db, user.id)
    line = _cart_line(db, cart, productId, _variant(color), _variant(size))
    if line is None:
        raise NotFoundError("Cart item not found")
    db.delete(line)
    return _cart_out(db, cart)


@router.delete("/clear", response_model=CartOut)
def clear_cart(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    cart = _user_cart(db, user.id)
    db.query(CartItem).filter(CartItem.cart_id == cart.id).delete(synchronize_session=False)
    return _cart_out(db, cart)
