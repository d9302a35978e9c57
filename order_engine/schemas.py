"""
Pydantic Schemas for Request/Response Validation

Checkout requests arrive from the site's JavaScript in camelCase
(``deliveryMode``, ``clientPhone``...); snake_case is accepted too.
Responses are snake_case; money is serialized as strings with two
decimals.

Author: Khalil Bannouri
Version: 1.0.0
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
import re

from order_engine.models import DeliveryMode, OrderStatus, PaymentMode


_EMAIL = re.compile(r'^[\w\.\+-]+@[\w\.-]+\.\w+$')


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class OrderCreate(CamelModel):
    """
    Request schema for creating an order from the current cart.

    Phone and address are only shape-checked here; the order pipeline
    validates them for real so the caller gets the specific error.
    """

    delivery_mode: DeliveryMode = Field(default=DeliveryMode.DELIVERY, examples=["delivery"])
    delivery_address: Optional[str] = Field(None, max_length=255, examples=["12 Quai du Port"])
    delivery_zip: Optional[str] = Field(None, max_length=10, examples=["13002"])
    delivery_instructions: Optional[str] = Field(None, max_length=500, examples=["Code porte 1234"])
    delivery_fee: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)

    payment_mode: PaymentMode = Field(default=PaymentMode.CARD, examples=["card"])

    client_first_name: str = Field(..., min_length=1, max_length=100, examples=["Jean"])
    client_last_name: str = Field(..., min_length=1, max_length=100, examples=["Dupont"])
    client_phone: str = Field(..., max_length=30, examples=["06 12 34 56 78"])
    client_email: Optional[str] = Field(None, max_length=255, examples=["jean.dupont@email.com"])

    coupon_id: Optional[int] = Field(None, gt=0)
    discount_amount: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)

    @field_validator('delivery_address', 'delivery_zip', 'delivery_instructions', mode='before')
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @field_validator('client_email')
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        if not _EMAIL.match(v):
            raise ValueError('Adresse e-mail invalide')
        return v


class OrderStatusUpdate(CamelModel):
    status: OrderStatus


class CouponValidateRequest(CamelModel):
    code: str = Field(..., min_length=1, max_length=50, examples=["BIENVENUE10"])
    order_amount: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2, examples=["35.00"])


class AddressValidateRequest(CamelModel):
    """Either a full address (zip optional) or a zip code alone."""
    address: Optional[str] = Field(None, max_length=255)
    zip_code: Optional[str] = Field(None, max_length=10)

    @model_validator(mode='after')
    def require_something(self) -> "AddressValidateRequest":
        if not (self.address or self.zip_code):
            raise ValueError('address or zipCode is required')
        return self


class CartLineIn(CamelModel):
    """Cart line as written by the simulation endpoint."""
    id: int = Field(..., gt=0)
    name: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    quantity: int = Field(..., ge=1, le=99)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class OrderItemResponse(BaseModel):
    """One line of a stored order."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    product_name: str
    unit_price: Decimal
    quantity: int
    total: Decimal


class OrderResponse(BaseModel):
    """Response schema for a single order."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    no: str
    status: OrderStatus
    delivery_mode: DeliveryMode
    delivery_address: Optional[str]
    delivery_zip: Optional[str]
    delivery_instructions: Optional[str]
    delivery_fee: Decimal
    payment_mode: PaymentMode
    client_first_name: str
    client_last_name: str
    client_phone: str
    client_email: Optional[str]
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total: Decimal
    coupon_id: Optional[int]
    created_at: datetime
    updated_at: Optional[datetime] = None
    items: List[OrderItemResponse]


class OrderCreateResponse(BaseModel):
    """Response after successfully creating (or replaying) an order."""
    success: bool = True
    message: str
    replayed: bool = False
    order: OrderResponse


class CouponQuoteResponse(BaseModel):
    success: bool = True
    coupon_id: int
    code: str
    discount_type: str
    discount_value: Decimal
    discount_amount: Decimal
    new_total: Decimal


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    cart_store: str
    address_validator: str
    notification_service: str
    timestamp: datetime
