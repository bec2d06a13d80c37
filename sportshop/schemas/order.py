from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from sportshop.models.order import OrderStatus, PayingStatus, PaymentMethod, RefundStatus


class OrderItemIn(BaseModel):
    product: int = Field(gt=0, validation_alias=AliasChoices("product", "productId"))
    quantity: int = Field(gt=0)


class OrderCreate(BaseModel):
    orderID: Optional[str] = None
    products: List[OrderItemIn] = Field(default_factory=list)
    shippingAddress: str = Field(min_length=1)
    paymentMethod: PaymentMethod = Field(validation_alias=AliasChoices("PaymentMethod", "paymentMethod"))


class OrderPurchase(BaseModel):
    orderId: int = Field(gt=0)
    shippingAddress: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    deliverAt: Optional[datetime] = None
    paymentMethod: PaymentMethod
    totalPrice: float


class OrderStatusUpdate(BaseModel):
    newStatus: OrderStatus
    cancellationReason: Optional[str] = None


class OrderCancel(BaseModel):
    reason: str = ""


class RefundBankDetails(BaseModel):
    bankName: str = Field(min_length=1)
    accountNumber: str = Field(min_length=1)
    accountName: str = Field(min_length=1, validation_alias=AliasChoices("accountName", "accountHolderName"))


class PaymentStatusUpdate(BaseModel):
    payingStatus: PayingStatus


class RefundStatusUpdate(BaseModel):
    refundStatus: RefundStatus


class MomoIpn(BaseModel):
    # MoMo posts more fields than we read; all of them are kept for signature checks
    model_config = ConfigDict(extra="allow")

    orderId: str
    resultCode: int
    signature: Optional[str] = None


class OrderItemOut(BaseModel):
    product: int
    productName: Optional[str] = None
    quantity: int


class HistoryEntryOut(BaseModel):
    action: str
    date: str


class RefundInfoOut(BaseModel):
    bankName: Optional[str] = None
    accountNumber: Optional[str] = None
    accountName: Optional[str] = None


class OrderOut(BaseModel):
    id: int
    orderID: Optional[str] = None
    user: int
    products: List[OrderItemOut]
    totalPrice: Optional[float] = None
    shippingAddress: str
    phoneNumber: Optional[str] = None
    paymentMethod: str
    paymentUrl: Optional[str] = None
    status: OrderStatus
    payingStatus: PayingStatus
    refundStatus: RefundStatus
    refundInfo: Optional[RefundInfoOut] = None
    cancellationReason: Optional[str] = None
    history: List[HistoryEntryOut]
    createdAt: Optional[str] = None
    deliverAt: Optional[str] = None
    deliveredAt: Optional[str] = None
    paidAt: Optional[str] = None


class OrderResult(BaseModel):
    status: str = "success"
    message: str
    data: OrderOut
    isUpdated: Optional[bool] = None
    emailSent: Optional[bool] = None


class OrderPage(BaseModel):
    orders: List[OrderOut]
    totalOrders: int
    page: int
    limit: int
