import enum

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.ext.orderinglist import ordering_list
from sportshop.models.user import Base
from sportshop.utils.timeutils import utcnow


class OrderStatus(str, enum.Enum):
    DRAFT = "Draft"
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    CANCELLED_BY_ADMIN = "CancelledByAdmin"


class PayingStatus(str, enum.Enum):
    UNPAID = "Unpaid"
    PAID = "Paid"
    FAILED = "Failed"


class RefundStatus(str, enum.Enum):
    NOT_INITIATED = "NotInitiated"
    PENDING = "Pending"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    FAILED = "Failed"


class PaymentMethod(str, enum.Enum):
    COD = "cod"
    MOMO = "momo"
    BANK_TRANSFER = "BankTransfer"


CANCELLED_STATUSES = (OrderStatus.CANCELLED.value, OrderStatus.CANCELLED_BY_ADMIN.value)


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        # One live checkout draft per user
        Index(
            "uq_orders_one_draft_per_user",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'Draft'"),
            sqlite_where=text("status = 'Draft'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_code = Column(String(100), index=True)  # client supplied orderID
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    shipping_address = Column(String(500), nullable=False)
    phone_number = Column(String(50))
    payment_method = Column(String(30), nullable=False)
    payment_url = Column(String(1000))
    total_price = Column(Numeric(12, 2))

    status = Column(String(20), nullable=False, default=OrderStatus.DRAFT.value)
    paying_status = Column(String(20), nullable=False, default=PayingStatus.UNPAID.value)
    refund_status = Column(String(20), nullable=False, default=RefundStatus.NOT_INITIATED.value)
    cancellation_reason = Column(String(500))

    # refund bank details, only accepted while refund_status is Pending
    refund_bank_name = Column(String(255))
    refund_account_number = Column(String(100))
    refund_account_name = Column(String(255))

    created_at = Column(DateTime, nullable=False, default=utcnow)
    deliver_at = Column(DateTime)  # delivery date requested at purchase
    delivered_at = Column(DateTime)
    paid_at = Column(DateTime)

    version = Column(Integer, nullable=False)

    user = relationship("User")

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
        collection_class=ordering_list("position"),
    )
    history = relationship(
        "OrderHistory",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderHistory.position",
        collection_class=ordering_list("position"),
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Order(id={self.id}, status={self.status}, paying={self.paying_status})>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    position = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")


class OrderHistory(Base):
    __tablename__ = "order_history"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    action = Column(String(500), nullable=False)
    date = Column(String(20), nullable=False)  # HH:MM:SS,MM/DD/YY business time

    order = relationship("Order", back_populates="history")
