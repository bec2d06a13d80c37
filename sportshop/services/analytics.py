"""
Admin dashboard aggregations.

Each aggregation is a pure function over plain row objects so it can be
exercised without a database; the ``load_*`` helpers are the only code that
touches SQLAlchemy.
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from sportshop.models.order import CANCELLED_STATUSES, Order, OrderItem, OrderStatus, PayingStatus, RefundStatus
from sportshop.models.product import Product
from sportshop.models.review import Review
from sportshop.utils.timeutils import to_business_time

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
TOP_LIMIT = 5


@dataclass(frozen=True)
class OrderFacts:
    total_price: float
    status: str
    paying_status: str
    refund_status: str
    created_at: Optional[datetime]
    paid_at: Optional[datetime] = None

    @property
    def revenue_time(self) -> Optional[datetime]:
        return self.paid_at or self.created_at


@dataclass(frozen=True)
class ProductFacts:
    id: int
    name: str
    category: Optional[str] = None
    price: float = 0.0
    image: Optional[str] = None


@dataclass(frozen=True)
class ReviewFacts:
    product_id: int
    rating: int


@dataclass(frozen=True)
class LineItemFacts:
    product_id: int
    quantity: int


def revenue_eligible(row: OrderFacts) -> bool:
    return (
        row.paying_status == PayingStatus.PAID.value
        and row.status not in CANCELLED_STATUSES
        and row.refund_status != RefundStatus.COMPLETED.value
    )


def previous_month(year: int, month: int) -> Tuple[int, int]:
    return (year - 1, 12) if month == 1 else (year, month - 1)


def percentage_change(current: float, previous: float) -> float:
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / previous * 100, 2)


def monthly_revenue(rows: Iterable[OrderFacts], year: int) -> List[dict]:
    """Paid revenue per calendar month (UTC) of ``year``."""
    buckets = [0.0] * 12
    for row in rows:
        moment = row.revenue_time
        if moment is None or moment.year != year or not revenue_eligible(row):
            continue
        buckets[moment.month - 1] += float(row.total_price or 0)
    return [{"month": index + 1, "revenue": round(value, 2)} for index, value in enumerate(buckets)]


def current_week_start(now: datetime, offset_hours: int = 7) -> date:
    local_today = to_business_time(now, offset_hours).date()
    return local_today - timedelta(days=local_today.weekday())


def weekly_revenue(rows: Iterable[OrderFacts], now: datetime, offset_hours: int = 7) -> List[dict]:
    """Paid revenue per day of the current Monday-Sunday week in business local time."""
    start = current_week_start(now, offset_hours)
    buckets = [0.0] * 7
    for row in rows:
        moment = row.revenue_time
        if moment is None or not revenue_eligible(row):
            continue
        offset = (to_business_time(moment, offset_hours).date() - start).days
        if 0 <= offset < 7:
            buckets[offset] += float(row.total_price or 0)
    return [
        {"day": WEEKDAYS[index], "date": (start + timedelta(days=index)).isoformat(), "revenue": round(value, 2)}
        for index, value in enumerate(buckets)
    ]


def _month_totals(rows: Iterable[OrderFacts], now: datetime, value, moment) -> dict:
    current_key = (now.year, now.month)
    previous_key = previous_month(now.year, now.month)
    totals = {current_key: 0.0, previous_key: 0.0}
    for row in rows:
        stamp = moment(row)
        if stamp is None:
            continue
        key = (stamp.year, stamp.month)
        if key in totals:
            totals[key] += value(row)
    current, previous = totals[current_key], totals[previous_key]
    return {
        "currentMonth": {"year": current_key[0], "month": current_key[1], "value": round(current, 2)},
        "previousMonth": {"year": previous_key[0], "month": previous_key[1], "value": round(previous, 2)},
        "percentageChange": percentage_change(current, previous),
    }


def revenue_comparison(rows: Iterable[OrderFacts], now: datetime) -> dict:
    eligible = [row for row in rows if revenue_eligible(row)]
    return _month_totals(eligible, now, lambda row: float(row.total_price or 0), lambda row: row.revenue_time)


def order_comparison(rows: Iterable[OrderFacts], now: datetime) -> dict:
    # drafts are checkouts in progress, not placed orders
    placed = [row for row in rows if row.status != OrderStatus.DRAFT.value]
    return _month_totals(placed, now, lambda row: 1, lambda row: row.created_at)


def top_rated_products(
    reviews: Iterable[ReviewFacts],
    products: Dict[int, ProductFacts],
    limit: int = TOP_LIMIT,
) -> List[dict]:
    ratings: Dict[int, List[int]] = defaultdict(list)
    for review in reviews:
        ratings[review.product_id].append(review.rating)

    ranked = []
    for product_id, values in ratings.items():
        product = products.get(product_id)
        if product is None:
            continue
        ranked.append({
            "productId": product.id,
            "name": product.name,
            "category": product.category,
            "price": product.price,
            "image": product.image,
            "averageRating": round(sum(values) / len(values), 2),
            "reviewCount": len(values),
        })
    ranked.sort(key=lambda entry: (-entry["averageRating"], -entry["reviewCount"], entry["productId"]))
    return ranked[:limit]


def top_ordered_products(
    items: Iterable[LineItemFacts],
    products: Dict[int, ProductFacts],
    category: Optional[str] = None,
    limit: int = TOP_LIMIT,
) -> List[dict]:
    wanted = category.strip().lower() if category else None
    quantities: Dict[int, int] = defaultdict(int)
    for item in items:
        product = products.get(item.product_id)
        if product is None:
            continue
        if wanted and (product.category or "").lower() != wanted:
            continue
        quantities[item.product_id] += item.quantity

    ranked = [
        {
            "productId": product_id,
            "name": products[product_id].name,
            "category": products[product_id].category,
            "price": products[product_id].price,
            "image": products[product_id].image,
            "totalOrdered": total,
        }
        for product_id, total in quantities.items()
    ]
    ranked.sort(key=lambda entry: (-entry["totalOrdered"], entry["productId"]))
    return ranked[:limit]


# ----- loaders -----

def load_order_facts(db: Session) -> List[OrderFacts]:
    rows = db.query(
        Order.total_price, Order.status, Order.paying_status, Order.refund_status, Order.created_at, Order.paid_at
    ).all()
    return [
        OrderFacts(
            total_price=float(row.total_price or 0),
            status=row.status,
            paying_status=row.paying_status,
            refund_status=row.refund_status,
            created_at=row.created_at,
            paid_at=row.paid_at,
        )
        for row in rows
    ]


def load_products(db: Session) -> Dict[int, ProductFacts]:
    rows = db.query(Product.id, Product.name, Product.category, Product.price, Product.image).all()
    return {
        row.id: ProductFacts(
            id=row.id, name=row.name, category=row.category, price=float(row.price or 0), image=row.image
        )
        for row in rows
    }


def load_review_facts(db: Session) -> List[ReviewFacts]:
    return [ReviewFacts(product_id=row.product_id, rating=row.rating)
            for row in db.query(Review.product_id, Review.rating).all()]


def load_line_items(db: Session) -> List[LineItemFacts]:
    return [LineItemFacts(product_id=row.product_id, quantity=row.quantity)
            for row in db.query(OrderItem.product_id, OrderItem.quantity).all()]
