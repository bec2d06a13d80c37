from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import JSONResponse
from typing import List, Optional

from sportshop.dependencies import get_order_service
from sportshop.models.order import Order
from sportshop.models.user import User
from sportshop.schemas.order import (
    HistoryEntryOut,
    OrderCancel,
    OrderCreate,
    OrderItemOut,
    OrderOut,
    OrderPage,
    OrderPurchase,
    OrderResult,
    OrderStatusUpdate,
    PaymentStatusUpdate,
    RefundBankDetails,
    RefundInfoOut,
    RefundStatusUpdate,
)
from sportshop.services.order_service import OrderService
from sportshop.utils.security import get_current_admin, get_current_user


router = APIRouter()
admin_router = APIRouter()


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def map_order_to_out(order: Order) -> OrderOut:
    items = [
        OrderItemOut(
            product=i.product_id,
            productName=i.product.name if i.product else None,
            quantity=i.quantity,
        )
        for i in order.items
    ]
    refund_info = None
    if order.refund_bank_name or order.refund_account_number or order.refund_account_name:
        refund_info = RefundInfoOut(
            bankName=order.refund_bank_name,
            accountNumber=order.refund_account_number,
            accountName=order.refund_account_name,
        )
    return OrderOut(
        id=order.id,
        orderID=order.order_code,
        user=order.user_id,
        products=items,
        totalPrice=float(order.total_price) if order.total_price is not None else None,
        shippingAddress=order.shipping_address,
        phoneNumber=order.phone_number,
        paymentMethod=order.payment_method,
        paymentUrl=order.payment_url,
        status=order.status,  # type: ignore
        payingStatus=order.paying_status,  # type: ignore
        refundStatus=order.refund_status,  # type: ignore
        refundInfo=refund_info,
        cancellationReason=order.cancellation_reason,
        history=[HistoryEntryOut(action=h.action, date=h.date) for h in order.history],
        createdAt=_iso(order.created_at),
        deliverAt=_iso(order.deliver_at),
        deliveredAt=_iso(order.delivered_at),
        paidAt=_iso(order.paid_at),
    )


# Create or reconcile the checkout draft
@router.post("/", response_model=OrderResult, status_code=201)
def create_order(
    payload: OrderCreate,
    service: OrderService = Depends(get_order_service),
    user: User = Depends(get_current_user),
):
    order, is_updated = service.create_order(
        user_id=user.id,
        order_code=payload.orderID,
        items=[(item.product, item.quantity) for item in payload.products],
        shipping_address=payload.shippingAddress,
        payment_method=payload.paymentMethod.value,
    )
    if is_updated:
        result = OrderResult(message="Order updated successfully", data=map_order_to_out(order), isUpdated=True)
        return JSONResponse(status_code=200, content=result.model_dump(mode="json"))
    return OrderResult(message="Order created successfully", data=map_order_to_out(order), isUpdated=False)


# Submit the draft: cash on delivery goes straight to Pending, MoMo returns a payment URL
@router.post("/purchase", response_model=OrderResult)
def purchase_order(
    payload: OrderPurchase,
    service: OrderService = Depends(get_order_service),
    user: User = Depends(get_current_user),
):
    order = service.purchase_order(
        user_id=user.id,
        order_id=payload.orderId,
        shipping_address=payload.shippingAddress,
        phone=payload.phone,
        deliver_at=payload.deliverAt,
        payment_method=payload.paymentMethod.value,
        total_price=payload.totalPrice,
    )
    return OrderResult(message="Order purchased successfully", data=map_order_to_out(order))


@router.get("/", response_model=List[OrderOut])
def get_user_orders(
    service: OrderService = Depends(get_order_service),
    user: User = Depends(get_current_user),
):
    return [map_order_to_out(o) for o in service.list_user_orders(user.id)]


@router.get("/{order_id}", response_model=OrderOut)
def get_order_by_id(
    order_id: int = Path(gt=0),
    service: OrderService = Depends(get_order_service),
    user: User = Depends(get_current_user),
):
    return map_order_to_out(service.get_order(order_id, user.id))


@router.post("/{order_id}/cancel", response_model=OrderResult)
def cancel_order(
    payload: OrderCancel,
    order_id: int = Path(gt=0),
    service: OrderService = Depends(get_order_service),
    user: User = Depends(get_current_user),
):
    order, email_sent = service.cancel_order(order_id, user.id, payload.reason)
    return OrderResult(message="Order cancelled successfully", data=map_order_to_out(order), emailSent=email_sent)


@router.post("/{order_id}/refund-details", response_model=OrderResult)
def submit_refund_details(
    payload: RefundBankDetails,
    order_id: int = Path(gt=0),
    service: OrderService = Depends(get_order_service),
    user: User = Depends(get_current_user),
):
    order = service.submit_refund_bank_details(
        order_id, user.id, payload.bankName, payload.accountNumber, payload.accountName
    )
    return OrderResult(message="Refund details submitted successfully", data=map_order_to_out(order))


# ----- admin -----

@admin_router.get("/", response_model=OrderPage)
def get_admin_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    status: Optional[str] = None,
    service: OrderService = Depends(get_order_service),
    admin: User = Depends(get_current_admin),
):
    orders, total = service.list_orders(page=page, limit=limit, search=search, status=status)
    return OrderPage(orders=[map_order_to_out(o) for o in orders], totalOrders=total, page=page, limit=limit)


@admin_router.get("/{order_id}", response_model=OrderOut)
def get_admin_order(
    order_id: int = Path(gt=0),
    service: OrderService = Depends(get_order_service),
    admin: User = Depends(get_current_admin),
):
    return map_order_to_out(service.get_order(order_id))


@admin_router.put("/{order_id}/status", response_model=OrderResult)
def admin_update_order_status(
    payload: OrderStatusUpdate,
    order_id: int = Path(gt=0),
    service: OrderService = Depends(get_order_service),
    admin: User = Depends(get_current_admin),
):
    order, email_sent = service.update_order_status(
        order_id, payload.newStatus.value, payload.cancellationReason
    )
    return OrderResult(message="Order status updated", data=map_order_to_out(order), emailSent=email_sent)


@admin_router.put("/{order_id}/payment-status", response_model=OrderResult)
def admin_update_payment_status(
    payload: PaymentStatusUpdate,
    order_id: int = Path(gt=0),
    service: OrderService = Depends(get_order_service),
    admin: User = Depends(get_current_admin),
):
    order = service.update_payment_status(order_id, payload.payingStatus.value)
    return OrderResult(message="Payment status updated", data=map_order_to_out(order))


@admin_router.put("/{order_id}/refund-status", response_model=OrderResult)
def admin_update_refund_status(
    payload: RefundStatusUpdate,
    order_id: int = Path(gt=0),
    service: OrderService = Depends(get_order_service),
    admin: User = Depends(get_current_admin),
):
    order, email_sent = service.update_refund_status(order_id, payload.refundStatus.value)
    return OrderResult(message="Refund status updated", data=map_order_to_out(order), emailSent=email_sent)
