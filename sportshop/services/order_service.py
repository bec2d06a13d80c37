"""
Order lifecycle: draft reconciliation, purchase, status transitions,
stock reservation, cancellation and refund tracking.

All writes for one operation go through a single commit, so a status change
and its history entry are never observed apart. The order row is locked for
the duration of an operation and its ``version`` column is checked on write;
stock is only ever moved with relative UPDATEs.
"""
import logging
from collections import Counter, OrderedDict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import or_, cast, String
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from sportshop.config import get_settings
from sportshop.models.cart import Cart, CartItem
from sportshop.models.order import (
    CANCELLED_STATUSES,
    Order,
    OrderHistory,
    OrderItem,
    OrderStatus,
    PayingStatus,
    PaymentMethod,
    RefundStatus,
)
from sportshop.models.product import Product
from sportshop.models.user import User
from sportshop.services.notifications import EmailNotifier
from sportshop.services.payment_gateway import MomoGateway, parse_gateway_order_id, whole_amount
from sportshop.utils.errors import (
    ConflictError,
    InsufficientStockError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from sportshop.utils.timeutils import format_history_date, utcnow

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[OrderStatus, Tuple[OrderStatus, ...]] = {
    OrderStatus.DRAFT: (OrderStatus.PENDING,),
    OrderStatus.PENDING: (OrderStatus.CONFIRMED, OrderStatus.CANCELLED, OrderStatus.CANCELLED_BY_ADMIN),
    OrderStatus.CONFIRMED: (OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.CANCELLED_BY_ADMIN),
    OrderStatus.DELIVERED: (),
    OrderStatus.CANCELLED: (),
    OrderStatus.CANCELLED_BY_ADMIN: (),
}

USER_CANCELLABLE = (OrderStatus.DRAFT.value, OrderStatus.PENDING.value)
REFUNDABLE_METHODS = (PaymentMethod.MOMO.value, PaymentMethod.BANK_TRANSFER.value)


def is_allowed_transition(current: str, requested: str) -> bool:
    return OrderStatus(requested) in ALLOWED_TRANSITIONS[OrderStatus(current)]


class OrderService:
    """Order business logic over one request-scoped session"""

    def __init__(
        self,
        db: Session,
        notifier: Optional[EmailNotifier] = None,
        gateway: Optional[MomoGateway] = None,
        utc_offset_hours: Optional[int] = None,
    ):
        self.db = db
        self.notifier = notifier or EmailNotifier()
        self.gateway = gateway
        if utc_offset_hours is None:
            utc_offset_hours = get_settings().BUSINESS_UTC_OFFSET_HOURS
        self.utc_offset_hours = utc_offset_hours

    # ----- helpers -----

    def _load_order(self, order_id: int, user_id: Optional[int] = None, lock: bool = True) -> Order:
        query = self.db.query(Order).filter(Order.id == order_id)
        if user_id is not None:
            query = query.filter(Order.user_id == user_id)
        if lock:
            query = query.with_for_update()
        order = query.first()
        if not order:
            raise NotFoundError("Order not found")
        return order

    def _append_history(self, order: Order, action: str, now: Optional[datetime] = None):
        order.history.append(
            OrderHistory(action=action, date=format_history_date(now or utcnow(), self.utc_offset_hours))
        )

    def _commit(self):
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            raise ConflictError()

    def _owner_email(self, order: Order) -> Optional[str]:
        user = self.db.query(User).filter(User.id == order.user_id).first()
        return user.email if user else None

    @staticmethod
    def _required_quantities(order: Order) -> "OrderedDict[int, int]":
        needed: "OrderedDict[int, int]" = OrderedDict()
        for item in order.items:
            needed[item.product_id] = needed.get(item.product_id, 0) + item.quantity
        return needed

    def _collect_shortfalls(self, needed: Dict[int, int]) -> List[dict]:
        rows = {
            row.id: row
            for row in self.db.query(Product.id, Product.name, Product.stock).filter(Product.id.in_(list(needed)))
        }
        shortfalls = []
        for product_id, quantity in needed.items():
            row = rows.get(product_id)
            if row is None:
                raise NotFoundError(f"Product {product_id} not found")
            if row.stock < quantity:
                shortfalls.append({
                    "productId": row.id,
                    "productName": row.name,
                    "availableStock": row.stock,
                    "requiredQuantity": quantity,
                })
        return shortfalls

    def _adjust_stock(self, product_id: int, delta: int) -> bool:
        query = self.db.query(Product).filter(Product.id == product_id)
        if delta < 0:
            query = query.filter(Product.stock >= -delta)
        updated = query.update({Product.stock: Product.stock + delta}, synchronize_session=False)
        return updated == 1

    def _reserve_stock(self, order: Order):
        needed = self._required_quantities(order)
        shortfalls = self._collect_shortfalls(needed)
        if shortfalls:
            logger.info("Order %s cannot be confirmed, %s item(s) short", order.id, len(shortfalls))
            raise InsufficientStockError(shortfalls)

        for product_id, quantity in needed.items():
            if not self._adjust_stock(product_id, -quantity):
                # another order took the stock between the check and the update
                self.db.rollback()
                shortfalls = self._collect_shortfalls(needed)
                if shortfalls:
                    raise InsufficientStockError(shortfalls)
                raise ConflictError("Stock changed while confirming the order, retry the request")

    def _restock(self, order: Order):
        for product_id, quantity in self._required_quantities(order).items():
            if not self._adjust_stock(product_id, quantity):
                self.db.rollback()
                raise NotFoundError(f"Product {product_id} not found")

    def _clear_cart(self, user_id: int, product_ids: Iterable[int]) -> int:
        cart = self.db.query(Cart).filter(Cart.user_id == user_id).first()
        if not cart:
            return 0
        removed = (
            self.db.query(CartItem)
            .filter(CartItem.cart_id == cart.id, CartItem.product_id.in_(list(product_ids)))
            .delete(synchronize_session=False)
        )
        logger.info("Cleared %s cart item(s) for user %s", removed, user_id)
        return removed

    # ----- creation -----

    def create_order(
        self,
        user_id: int,
        order_code: Optional[str],
        items: List[Tuple[int, int]],
        shipping_address: str,
        payment_method: str,
    ) -> Tuple[Order, bool]:
        """
        Create the user's checkout draft, or reconcile the one that already exists

        Returns:
            (order, is_updated)
        """
        if not items:
            raise ValidationError("Order must include at least one product")
        for product_id, quantity in items:
            if quantity <= 0:
                raise ValidationError(f"Quantity for product {product_id} must be positive")

        product_ids = {product_id for product_id, _ in items}
        found = {row.id for row in self.db.query(Product.id).filter(Product.id.in_(product_ids))}
        missing = sorted(product_ids - found)
        if missing:
            raise NotFoundError(f"Product with ID {missing[0]} not found")

        try:
            return self._upsert_draft(user_id, order_code, items, shipping_address, payment_method)
        except IntegrityError:
            # a concurrent request created the draft first
            self.db.rollback()
            logger.info("Draft for user %s created concurrently, reconciling", user_id)
            return self._upsert_draft(user_id, order_code, items, shipping_address, payment_method)

    def _upsert_draft(self, user_id, order_code, items, shipping_address, payment_method) -> Tuple[Order, bool]:
        existing = (
            self.db.query(Order)
            .filter(Order.user_id == user_id, Order.status == OrderStatus.DRAFT.value)
            .with_for_update()
            .first()
        )
        requested = Counter((product_id, quantity) for product_id, quantity in items)

        if existing:
            current = Counter((item.product_id, item.quantity) for item in existing.items)
            if current == requested:
                return existing, False
            existing.items = [OrderItem(product_id=p, quantity=q) for p, q in items]
            existing.shipping_address = shipping_address
            existing.payment_method = payment_method
            self._commit()
            logger.info("Draft order %s updated for user %s", existing.id, user_id)
            return existing, True

        order = Order(
            user_id=user_id,
            order_code=order_code,
            items=[OrderItem(product_id=p, quantity=q) for p, q in items],
            shipping_address=shipping_address,
            payment_method=payment_method,
            status=OrderStatus.DRAFT.value,
            paying_status=PayingStatus.UNPAID.value,
            refund_status=RefundStatus.NOT_INITIATED.value,
            created_at=utcnow(),
            delivered_at=None,
            history=[],
        )
        self.db.add(order)
        self.db.commit()
        logger.info("Draft order %s created for user %s", order.id, user_id)
        return order, False

    # ----- purchase -----

    def purchase_order(
        self,
        user_id: int,
        order_id: int,
        shipping_address: str,
        phone: str,
        deliver_at: Optional[datetime],
        payment_method: str,
        total_price: float,
    ) -> Order:
        if total_price is None or total_price <= 0:
            raise ValidationError("Total price must be greater than zero")
        if payment_method == PaymentMethod.MOMO.value:
            whole_amount(total_price)

        order = self._load_order(order_id, user_id)
        if order.status != OrderStatus.DRAFT.value:
            raise InvalidStateError(f"Order in status {order.status} cannot be purchased")

        order.shipping_address = shipping_address
        order.phone_number = phone
        order.payment_method = payment_method
        order.total_price = total_price
        order.deliver_at = deliver_at
        order.created_at = utcnow()
        order.paying_status = PayingStatus.UNPAID.value

        if payment_method == PaymentMethod.MOMO.value:
            order.status = OrderStatus.DRAFT.value
            if self.gateway is None:
                self.db.rollback()
                raise InvalidStateError("Payment gateway is not configured")
            try:
                order.payment_url = self.gateway.create_payment(order.id, total_price)
            except Exception:
                # nothing from this attempt may be persisted
                self.db.rollback()
                raise
        else:
            order.status = OrderStatus.PENDING.value
            order.payment_url = None
            if payment_method == PaymentMethod.COD.value:
                self._append_history(order, "Order placed and pending processing.")
            # gateway payments clear the cart once the callback confirms payment
            self._clear_cart(user_id, [item.product_id for item in order.items])

        self._commit()
        logger.info("Order %s purchased by user %s via %s", order.id, user_id, payment_method)
        return order

    def handle_payment_callback(self, gateway_order_id: str, result_code: int) -> Order:
        order = self._load_order(parse_gateway_order_id(gateway_order_id))
        if order.status != OrderStatus.DRAFT.value:
            logger.info("Ignoring payment callback for order %s in status %s", order.id, order.status)
            return order

        if result_code == 0:
            order.status = OrderStatus.PENDING.value
            order.paying_status = PayingStatus.PAID.value
            order.paid_at = utcnow()
            self._append_history(order, "Payment received, order pending processing.")
            self._clear_cart(order.user_id, [item.product_id for item in order.items])
        else:
            order.status = OrderStatus.DRAFT.value
            order.paying_status = PayingStatus.FAILED.value
            logger.warning("Payment for order %s failed with code %s", order.id, result_code)

        self._commit()
        return order

    # ----- status machine -----

    def update_order_status(
        self,
        order_id: int,
        new_status: str,
        cancellation_reason: Optional[str] = None,
    ) -> Tuple[Order, Optional[bool]]:
        """
        Move an order along the status table

        Returns:
            (order, email_sent); email_sent is None when no email was due
        """
        try:
            requested = OrderStatus(new_status)
        except ValueError:
            raise ValidationError(f"Invalid status: {new_status}")

        order = self._load_order(order_id)
        previous = order.status
        if not is_allowed_transition(previous, requested.value):
            raise InvalidTransitionError(previous, requested.value)

        reason = (cancellation_reason or "").strip()
        notify_refund = False
        action = f"Order is {requested.value}"

        if requested.value in CANCELLED_STATUSES:
            if not reason:
                raise ValidationError("Cancellation reason is required")
            if previous == OrderStatus.CONFIRMED.value:
                self._restock(order)
            order.cancellation_reason = reason
            action = f"{action} - Reason: {reason}"
            notify_refund = (
                requested == OrderStatus.CANCELLED_BY_ADMIN and order.paying_status == PayingStatus.PAID.value
            )
        elif requested == OrderStatus.CONFIRMED:
            self._reserve_stock(order)
        elif requested == OrderStatus.DELIVERED:
            order.delivered_at = utcnow()

        order.status = requested.value
        self._append_history(order, action)
        self._commit()
        logger.info("Order %s status updated: %s -> %s", order.id, previous, requested.value)

        email_sent = None
        if notify_refund:
            email_sent = self.notifier.send_refund_request_email(self._owner_email(order), order.id, reason)
            if not email_sent:
                logger.warning("Refund request email for order %s was not sent", order.id)
        return order, email_sent

    # ----- cancellation & refunds -----

    def cancel_order(self, order_id: int, user_id: int, reason: str) -> Tuple[Order, Optional[bool]]:
        order = self._load_order(order_id, user_id)
        if order.status not in USER_CANCELLABLE:
            raise InvalidStateError("Order cannot be canceled at this stage")
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Cancellation reason is required")

        order.status = OrderStatus.CANCELLED.value
        order.cancellation_reason = reason
        self._append_history(order, f"Order cancelled - Reason: {reason}")
        if order.payment_method in REFUNDABLE_METHODS:
            order.refund_status = RefundStatus.PENDING.value
        self._commit()
        logger.info("Order %s cancelled by user %s", order.id, user_id)

        email_sent = None
        if order.payment_method == PaymentMethod.COD.value:
            email_sent = self.notifier.send_cancellation_email(self._owner_email(order), order.id, reason)
            if not email_sent:
                logger.warning("Cancellation email for order %s was not sent", order.id)
        return order, email_sent

    def submit_refund_bank_details(
        self,
        order_id: int,
        user_id: int,
        bank_name: str,
        account_number: str,
        account_name: str,
    ) -> Order:
        if not all((bank_name, account_number, account_name)):
            raise ValidationError("All bank details are required")

        order = self._load_order(order_id, user_id)
        if order.status != OrderStatus.CANCELLED.value or order.refund_status != RefundStatus.PENDING.value:
            raise InvalidStateError(
                "Refund details can only be submitted for cancelled orders with pending refund"
            )
        order.refund_bank_name = bank_name
        order.refund_account_number = account_number
        order.refund_account_name = account_name
        self._commit()
        return order

    def update_refund_status(self, order_id: int, new_status: str) -> Tuple[Order, Optional[bool]]:
        try:
            requested = RefundStatus(new_status)
        except ValueError:
            raise ValidationError(f"Invalid refund status: {new_status}")

        order = self._load_order(order_id)
        # only user cancellations; CancelledByAdmin orders are not eligible
        if order.status != OrderStatus.CANCELLED.value or order.paying_status != PayingStatus.PAID.value:
            raise InvalidStateError("Refund status can only be updated for cancelled, paid orders")

        order.refund_status = requested.value
        self._commit()
        logger.info("Order %s refund status set to %s", order.id, requested.value)

        email_sent = None
        if requested == RefundStatus.COMPLETED:
            email_sent = self.notifier.send_refund_success_email(self._owner_email(order), order.id)
        elif requested == RefundStatus.FAILED:
            email_sent = self.notifier.send_refund_failed_email(self._owner_email(order), order.id)
        if email_sent is False:
            logger.warning("Refund %s email for order %s was not sent", requested.value, order.id)
        return order, email_sent

    def update_payment_status(self, order_id: int, paying_status: str) -> Order:
        try:
            requested = PayingStatus(paying_status)
        except ValueError:
            raise ValidationError(f"Invalid payment status: {paying_status}")

        order = self._load_order(order_id)
        order.paying_status = requested.value
        if requested == PayingStatus.PAID:
            order.paid_at = utcnow()
        self._commit()
        logger.info("Order %s payment status set to %s", order.id, requested.value)
        return order

    # ----- queries -----

    def get_order(self, order_id: int, user_id: Optional[int] = None) -> Order:
        return self._load_order(order_id, user_id, lock=False)

    def list_user_orders(self, user_id: int) -> List[Order]:
        return (
            self.db.query(Order)
            .filter(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
            .all()
        )

    def list_orders(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Tuple[List[Order], int]:
        query = self.db.query(Order).join(User, User.id == Order.user_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    cast(Order.id, String).like(pattern),
                    Order.order_code.ilike(pattern),
                    User.name.ilike(pattern),
                    User.email.ilike(pattern),
                )
            )
        if status and status != "All":
            query = query.filter(Order.status == status)

        total = query.count()
        orders = (
            query.order_by(Order.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return orders, total
