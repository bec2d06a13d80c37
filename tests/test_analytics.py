from datetime import date, datetime

import pytest

from sportshop.services.analytics import (
    LineItemFacts,
    OrderFacts,
    ProductFacts,
    ReviewFacts,
    current_week_start,
    monthly_revenue,
    order_comparison,
    percentage_change,
    previous_month,
    revenue_comparison,
    revenue_eligible,
    top_ordered_products,
    top_rated_products,
    weekly_revenue,
)


def paid(total, paid_at, status="Confirmed", refund_status="NotInitiated", created_at=None):
    return OrderFacts(
        total_price=total,
        status=status,
        paying_status="Paid",
        refund_status=refund_status,
        created_at=created_at or paid_at,
        paid_at=paid_at,
    )


def placed(created_at, status="Pending"):
    return OrderFacts(total_price=50, status=status, paying_status="Unpaid",
                      refund_status="NotInitiated", created_at=created_at)


def test_last_second_of_month_stays_in_that_month():
    rows = [paid(100, datetime(2024, 1, 31, 23, 59, 59), created_at=datetime(2024, 1, 20))]
    result = monthly_revenue(rows, 2024)

    assert len(result) == 12
    assert result[0] == {"month": 1, "revenue": 100.0}
    assert result[1] == {"month": 2, "revenue": 0.0}


def test_monthly_revenue_skips_ineligible_orders():
    moment = datetime(2024, 3, 10, 9, 0)
    rows = [
        paid(100, moment),
        paid(40, moment, status="Cancelled"),
        paid(40, moment, status="CancelledByAdmin"),
        paid(40, moment, refund_status="Completed"),
        placed(moment),
        paid(30, datetime(2023, 3, 10)),
    ]
    assert monthly_revenue(rows, 2024)[2]["revenue"] == 100.0


def test_revenue_falls_back_to_creation_time():
    row = OrderFacts(total_price=75, status="Delivered", paying_status="Paid",
                     refund_status="NotInitiated", created_at=datetime(2024, 6, 1))
    assert monthly_revenue([row], 2024)[5]["revenue"] == 75.0


@pytest.mark.parametrize("status,paying,refund,expected", [
    ("Confirmed", "Paid", "NotInitiated", True),
    ("Delivered", "Paid", "Pending", True),
    ("Confirmed", "Unpaid", "NotInitiated", False),
    ("Cancelled", "Paid", "Pending", False),
    ("Delivered", "Paid", "Completed", False),
])
def test_revenue_eligibility(status, paying, refund, expected):
    row = OrderFacts(total_price=1, status=status, paying_status=paying, refund_status=refund,
                     created_at=datetime(2024, 1, 1))
    assert revenue_eligible(row) is expected


def test_week_starts_on_business_monday():
    # Sunday 18:00 UTC is already Monday in UTC+7
    assert current_week_start(datetime(2024, 5, 12, 18, 0), 7) == date(2024, 5, 13)
    assert current_week_start(datetime(2024, 5, 15, 12, 0), 7) == date(2024, 5, 13)


def test_weekly_revenue_uses_business_timezone():
    now = datetime(2024, 5, 15, 12, 0)
    rows = [
        paid(10, datetime(2024, 5, 12, 18, 0)),   # Mon 01:00 local
        paid(20, datetime(2024, 5, 12, 16, 0)),   # Sun 23:00 local, previous week
        paid(30, datetime(2024, 5, 19, 16, 0)),   # Sun 23:00 local
        paid(40, datetime(2024, 5, 19, 17, 30)),  # next Monday local
        paid(50, datetime(2024, 5, 15, 1, 0), status="Cancelled"),
    ]
    result = weekly_revenue(rows, now, 7)

    assert [d["day"] for d in result] == ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    assert result[0] == {"day": "Mon", "date": "2024-05-13", "revenue": 10.0}
    assert result[6]["revenue"] == 30.0
    assert sum(d["revenue"] for d in result) == 40.0


@pytest.mark.parametrize("current,previous,expected", [
    (150, 100, 50.0),
    (50, 100, -50.0),
    (5, 0, 100.0),
    (0, 0, 0.0),
    (1, 3, -66.67),
])
def test_percentage_change(current, previous, expected):
    assert percentage_change(current, previous) == expected


def test_previous_month_wraps_year():
    assert previous_month(2024, 1) == (2023, 12)
    assert previous_month(2024, 7) == (2024, 6)


def test_revenue_comparison_across_year_boundary():
    now = datetime(2024, 1, 10)
    rows = [
        paid(200, datetime(2024, 1, 2)),
        paid(100, datetime(2023, 12, 31, 23, 59, 59)),
        paid(999, datetime(2023, 11, 30)),
    ]
    result = revenue_comparison(rows, now)

    assert result["currentMonth"] == {"year": 2024, "month": 1, "value": 200.0}
    assert result["previousMonth"] == {"year": 2023, "month": 12, "value": 100.0}
    assert result["percentageChange"] == 100.0


def test_order_comparison_counts_placed_orders_by_creation():
    now = datetime(2024, 4, 20)
    rows = [
        placed(datetime(2024, 4, 1)),
        placed(datetime(2024, 4, 2), status="Cancelled"),
        placed(datetime(2024, 4, 3), status="Draft"),
        placed(datetime(2024, 3, 15)),
        placed(datetime(2024, 3, 16)),
        placed(datetime(2024, 3, 17)),
        placed(datetime(2024, 3, 18)),
    ]
    result = order_comparison(rows, now)

    assert result["currentMonth"]["value"] == 2
    assert result["previousMonth"]["value"] == 4
    assert result["percentageChange"] == -50.0


CATALOG = {
    1: ProductFacts(id=1, name="Running Shoe", category="Shoes", price=120.0),
    2: ProductFacts(id=2, name="Football", category="Balls", price=30.0),
    3: ProductFacts(id=3, name="Trail Shoe", category="Shoes", price=140.0),
    4: ProductFacts(id=4, name="Basketball", category="Balls", price=35.0),
}


def test_top_rated_orders_by_average_then_count():
    reviews = [
        ReviewFacts(1, 5), ReviewFacts(1, 4),
        ReviewFacts(2, 5),
        ReviewFacts(3, 5), ReviewFacts(3, 5), ReviewFacts(3, 2),
        ReviewFacts(4, 4), ReviewFacts(4, 5),
        ReviewFacts(99, 5),
    ]
    result = top_rated_products(reviews, CATALOG)

    assert [r["productId"] for r in result] == [2, 1, 4, 3]
    assert result[1]["averageRating"] == 4.5
    assert result[1]["reviewCount"] == 2
    assert result[3]["averageRating"] == 4.0


def test_top_rated_is_capped():
    catalog = {i: ProductFacts(id=i, name=f"P{i}") for i in range(1, 9)}
    reviews = [ReviewFacts(i, 5) for i in range(1, 9)]
    assert len(top_rated_products(reviews, catalog)) == 5


def test_top_ordered_sums_quantities_per_product():
    items = [
        LineItemFacts(1, 2), LineItemFacts(2, 1), LineItemFacts(1, 3),
        LineItemFacts(3, 4), LineItemFacts(4, 4), LineItemFacts(99, 100),
    ]
    result = top_ordered_products(items, CATALOG)

    assert [(r["productId"], r["totalOrdered"]) for r in result] == [(1, 5), (3, 4), (4, 4), (2, 1)]


def test_top_ordered_filters_category_case_insensitively():
    items = [LineItemFacts(1, 2), LineItemFacts(2, 7), LineItemFacts(3, 1)]
    result = top_ordered_products(items, CATALOG, category="  shoes ")

    assert [r["name"] for r in result] == ["Running Shoe", "Trail Shoe"]
