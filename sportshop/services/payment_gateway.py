"""
HTTP client for the MoMo payment gateway
"""
import hashlib
import hmac
import logging
import time
import uuid
from typing import Dict, Optional

import httpx

from sportshop.config import get_settings
from sportshop.utils.errors import GatewayError, ValidationError

logger = logging.getLogger(__name__)

REQUEST_TYPE = "payWithMethod"
ORDER_INFO = "pay with MoMo"

# Fields covered by the create-payment signature, in signing order
CREATE_SIGNATURE_FIELDS = (
    "accessKey", "amount", "extraData", "ipnUrl", "orderId", "orderInfo",
    "partnerCode", "redirectUrl", "requestId", "requestType",
)
# Fields covered by the IPN callback signature, in signing order
IPN_SIGNATURE_FIELDS = (
    "accessKey", "amount", "extraData", "message", "orderId", "orderInfo", "orderType",
    "partnerCode", "payType", "requestId", "responseTime", "resultCode", "transId",
)


def raw_signature(fields: Dict[str, object], keys) -> str:
    return "&".join(f"{key}={'' if fields.get(key) is None else fields.get(key)}" for key in sorted(keys))


def sign(raw: str, secret_key: str) -> str:
    return hmac.new(secret_key.encode(), raw.encode(), hashlib.sha256).hexdigest()


def gateway_order_id(order_id: int) -> str:
    """Gateway order ids must be unique per attempt, so the local id gets a time suffix."""
    return f"{order_id}-{int(time.time() * 1000)}"


def parse_gateway_order_id(value) -> int:
    head = str(value).split("-", 1)[0]
    if not head.isdigit():
        raise ValidationError(f"Malformed gateway order id: {value}")
    return int(head)


def whole_amount(total_price) -> int:
    """MoMo charges whole VND, so fractional totals are refused instead of truncated."""
    amount = int(total_price)
    if amount != total_price:
        raise ValidationError(f"MoMo amount must be a whole number of VND, got {total_price}")
    return amount


class MomoGateway:
    """Creates MoMo payment requests and checks callback signatures"""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        partner_code: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        redirect_url: Optional[str] = None,
        ipn_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ):
        settings = get_settings()
        self.endpoint = endpoint or settings.MOMO_ENDPOINT
        self.partner_code = partner_code or settings.MOMO_PARTNER_CODE
        self.access_key = access_key if access_key is not None else settings.MOMO_ACCESS_KEY
        self.secret_key = secret_key if secret_key is not None else settings.MOMO_SECRET_KEY
        self.redirect_url = redirect_url or settings.MOMO_REDIRECT_URL
        self.ipn_url = ipn_url or settings.MOMO_IPN_URL
        self.client = client or httpx.Client(timeout=timeout or settings.MOMO_TIMEOUT_SECONDS)

    def build_request(self, order_id: int, total_price: int) -> Dict[str, object]:
        momo_order_id = gateway_order_id(order_id)
        fields = {
            "accessKey": self.access_key,
            "amount": total_price,
            "extraData": "",
            "ipnUrl": self.ipn_url,
            "orderId": momo_order_id,
            "orderInfo": ORDER_INFO,
            "partnerCode": self.partner_code,
            "redirectUrl": self.redirect_url.format(order_id=order_id),
            "requestId": uuid.uuid4().hex,
            "requestType": REQUEST_TYPE,
        }
        signature = sign(raw_signature(fields, CREATE_SIGNATURE_FIELDS), self.secret_key)

        body = {key: value for key, value in fields.items() if key != "accessKey"}
        body.update({
            "partnerName": "Sport Ecommerce",
            "storeId": "SportEcommerceStore",
            "lang": "vi",
            "autoCapture": True,
            "signature": signature,
        })
        return body

    def create_payment(self, order_id: int, total_price) -> str:
        """
        Start a payment for an order

        Returns:
            The payUrl the customer must be redirected to

        Raises:
            GatewayError on transport failure or any non-zero result code
        """
        body = self.build_request(order_id, whole_amount(total_price))
        logger.info("Creating MoMo payment: order_id=%s request_id=%s amount=%s",
                    order_id, body["requestId"], body["amount"])
        try:
            response = self.client.post(self.endpoint, json=body)
            result = response.json()
        except httpx.HTTPError as e:
            logger.error("MoMo request failed for order %s: %s", order_id, e)
            raise GatewayError(f"Error while contacting MoMo: {e}")
        except ValueError:
            logger.error("MoMo returned a non-JSON body for order %s (HTTP %s)", order_id, response.status_code)
            raise GatewayError("MoMo payment initiation failed: malformed response")

        if result.get("resultCode") == 0 and result.get("payUrl"):
            logger.info("MoMo payment created for order %s", order_id)
            return result["payUrl"]

        logger.warning("MoMo rejected order %s: code=%s message=%s",
                       order_id, result.get("resultCode"), result.get("message"))
        raise GatewayError(f"MoMo payment initiation failed: {result.get('message') or result.get('resultMessage')}")

    def sign_ipn(self, payload: Dict[str, object]) -> str:
        fields = dict(payload, accessKey=self.access_key)
        return sign(raw_signature(fields, IPN_SIGNATURE_FIELDS), self.secret_key)

    def verify_ipn_signature(self, payload: Dict[str, object]) -> bool:
        provided = payload.get("signature")
        if not provided:
            return False
        return hmac.compare_digest(self.sign_ipn(payload), str(provided))

    def close(self):
        self.client.close()
