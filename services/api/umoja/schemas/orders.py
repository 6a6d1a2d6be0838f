"""Schemas for orders, status transitions and payment callbacks."""

from datetime import datetime

from pydantic import BaseModel, Field

from umoja.models.enums import FulfillmentStatus, FulfillmentType, PaymentStatus


class CreateOrderRequest(BaseModel):
    """Buyer's purchase request."""

    listing_id: int = Field(alias="listingId")
    quantity: float = Field(gt=0)
    fulfillment_type: FulfillmentType = Field(alias="fulfillmentType", default=FulfillmentType.PICKUP)
    buyer_phone: str = Field(alias="buyerPhone", min_length=9, max_length=20)

    model_config = {"populate_by_name": True}


class OrderResponse(BaseModel):
    id: int
    reference_id: str | None = Field(alias="referenceId")
    listing_id: int = Field(alias="listingId")
    farmer_id: int = Field(alias="farmerId")
    buyer_id: int = Field(alias="buyerId")
    crop_name: str = Field(alias="cropName")
    quantity: float
    unit: str
    price_per_unit: float = Field(alias="pricePerUnit")
    total_amount: float = Field(alias="totalAmount")
    payment_status: PaymentStatus = Field(alias="paymentStatus")
    fulfillment_status: FulfillmentStatus = Field(alias="fulfillmentStatus")
    checkout_request_id: str | None = Field(alias="checkoutRequestId", default=None)

    model_config = {"populate_by_name": True, "from_attributes": True}


class StatusUpdateRequest(BaseModel):
    """Requested fulfillment status (IN_FULFILLMENT, RECEIVED/COMPLETED, ...)."""

    status: str = Field(min_length=1, max_length=32)


class StatusUpdateResponse(BaseModel):
    order_id: int = Field(alias="orderId")
    reference_id: str | None = Field(alias="referenceId")
    fulfillment_status: FulfillmentStatus = Field(alias="fulfillmentStatus")
    updated_at: datetime = Field(alias="updatedAt")

    model_config = {"populate_by_name": True}


class PaymentCallback(BaseModel):
    """Payment gateway callback body."""

    checkout_request_id: str = Field(alias="checkoutRequestId")
    result_code: int = Field(alias="resultCode")
    result_desc: str | None = Field(alias="resultDesc", default=None)
    transaction_id: str | None = Field(alias="transactionId", default=None)

    model_config = {"populate_by_name": True}


class PaymentAck(BaseModel):
    """Always returned with HTTP 200 so the gateway stops retrying."""

    result_code: int = Field(alias="ResultCode", default=0)
    result_desc: str = Field(alias="ResultDesc", default="Acknowledged")

    model_config = {"populate_by_name": True}
