import logging

from fastapi import APIRouter, Depends

from sportshop.config import get_settings
from sportshop.dependencies import get_order_service, get_payment_gateway
from sportshop.schemas.order import MomoIpn
from sportshop.services.order_service import OrderService
from sportshop.services.payment_gateway import MomoGateway
from sportshop.utils.errors import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()


# MoMo IPN: payment result for an order created through /orders/purchase
@router.post("/momo/ipn")
def momo_ipn(
    payload: MomoIpn,
    service: OrderService = Depends(get_order_service),
    gateway: MomoGateway = Depends(get_payment_gateway),
):
    logger.info(f"Received MoMo IPN for {payload.orderId} with code {payload.resultCode}")
    if get_settings().MOMO_VERIFY_IPN and not gateway.verify_ipn_signature(payload.model_dump()):
        logger.warning(f"Rejected MoMo IPN for {payload.orderId}: bad signature")
        raise ValidationError("Invalid signature")
    order = service.handle_payment_callback(payload.orderId, payload.resultCode)
    return {"status": "success", "message": "Order updated", "orderId": order.id,
            "orderStatus": order.status, "payingStatus": order.paying_status}
