from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from sportshop.models.product import Product
from sportshop.models.review import Review
from sportshop.models.user import User, get_db
from sportshop.schemas.review import ReviewIn, ReviewOut
from sportshop.utils.errors import NotFoundError, ValidationError
from sportshop.utils.security import get_current_user

router = APIRouter()


def to_review_out(r: Review) -> ReviewOut:
    return ReviewOut(
        id=r.id,
        productId=r.product_id,
        userId=r.user_id,
        name=r.name,
        rating=r.rating,
        comment=r.comment,
        createdAt=r.created_at.isoformat() if r.created_at else None,
    )


@router.get("/{product_id}", response_model=List[ReviewOut])
def get_reviews(product_id: int, db: Session = Depends(get_db)):
    reviews = db.query(Review).filter(Review.product_id == product_id).order_by(Review.created_at.desc()).all()
    return [to_review_out(r) for r in reviews]


@router.post("/{product_id}", response_model=ReviewOut, status_code=201)
def add_review(
    product_id: int,
    payload: ReviewIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not db.query(Product).filter(Product.id == product_id).first():
        raise NotFoundError("Product not found.")
    existing = db.query(Review).filter(Review.user_id == user.id, Review.product_id == product_id).first()
    if existing:
        raise ValidationError("You have already reviewed this product.")
    review = Review(
        product_id=product_id,
        user_id=user.id,
        name=payload.name,
        rating=payload.rating,
        comment=payload.comment,
    )
    db.add(review)
    db.commit()
    db.refresh(review)
    return to_review_out(review)
