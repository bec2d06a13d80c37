from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from sportshop.config import get_settings
from sportshop.models.user import User, get_db
from sportshop.services import analytics
from sportshop.utils.security import get_current_admin
from sportshop.utils.timeutils import utcnow


router = APIRouter()


# Paid revenue per month of the year (current year by default)
@router.get("/revenue/monthly")
def get_monthly_revenue(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    year = year or utcnow().year
    return {"year": year, "data": analytics.monthly_revenue(analytics.load_order_facts(db), year)}


# Paid revenue per day of the current Monday-Sunday week
@router.get("/revenue/weekly")
def get_weekly_revenue(db: Session = Depends(get_db), admin: User = Depends(get_current_admin)):
    offset = get_settings().BUSINESS_UTC_OFFSET_HOURS
    return {"data": analytics.weekly_revenue(analytics.load_order_facts(db), utcnow(), offset)}


@router.get("/revenue/comparison")
def get_revenue_comparison(db: Session = Depends(get_db), admin: User = Depends(get_current_admin)):
    return analytics.revenue_comparison(analytics.load_order_facts(db), utcnow())


@router.get("/orders/comparison")
def get_order_comparison(db: Session = Depends(get_db), admin: User = Depends(get_current_admin)):
    return analytics.order_comparison(analytics.load_order_facts(db), utcnow())


@router.get("/products/top-rated")
def get_top_rated_products(db: Session = Depends(get_db), admin: User = Depends(get_current_admin)):
    return analytics.top_rated_products(analytics.load_review_facts(db), analytics.load_products(db))


@router.get("/products/top-ordered")
def get_top_ordered_products(
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return analytics.top_ordered_products(
        analytics.load_line_items(db), analytics.load_products(db), category=category
    )
