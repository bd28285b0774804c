# gamesup/models/order.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from pydantic import AliasChoices, Field, field_validator
from .base import ShopModel, Money, coerce_money
from .product import DigitalItem

class OrderStatus(str, Enum):
    PENDING = "pending"
    PENDING_APPROVAL = "pending_approval"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    PAID = "paid"

class PaymentMethod(str, Enum):
    CARD = "card"
    COD = "cod"
    INSTAPAY = "instapay"

    @property
    def initial_status(self) -> OrderStatus:
        """Status every line of a new checkout starts in"""
        if self is PaymentMethod.INSTAPAY:
            return OrderStatus.PENDING_APPROVAL
        return OrderStatus.PENDING


class CartItem(ShopModel):
    """One cart line as submitted by the storefront or POS"""
    product_id: int = Field(validation_alias=AliasChoices('productId', 'product_id', 'id'))
    quantity: int = Field(default=1, ge=1)
    unit_price: Money = Field(validation_alias=AliasChoices('unitPrice', 'unit_price', 'price'))
    name: Optional[str] = None

    @field_validator('unit_price', mode='before')
    @classmethod
    def check_price(cls, value):
        return coerce_money(value)

    @field_validator('unit_price')
    @classmethod
    def check_not_negative(cls, value):
        if value < 0:
            raise ValueError("price cannot be negative")
        return value

    @property
    def label(self) -> str:
        return self.name or str(self.product_id)


class CheckoutRequest(ShopModel):
    customer_name: str
    customer_email: str
    items: List[CartItem] = Field(min_length=1)
    payment_method: PaymentMethod = PaymentMethod.CARD
    payment_proof: Optional[str] = None

    @field_validator('payment_method', mode='before')
    @classmethod
    def check_payment_method(cls, value):
        # older clients send the pre-PayTabs tag
        if value in (None, '', 'credit_card'):
            return PaymentMethod.CARD
        return value


class OrderLine(ShopModel):
    """A row of the orders table: one purchased unit, not a whole order"""
    id: Optional[int] = None
    order_number: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    product_id: Optional[int] = None
    product_name: Optional[str] = None
    amount: Money = Decimal(0)
    cost: Money = Decimal(0)
    status: str = OrderStatus.PENDING.value
    date: Optional[datetime] = None
    payment_method: Optional[str] = None
    payment_proof: Optional[str] = None
    transaction_ref: Optional[str] = None
    digital_email: Optional[str] = None
    digital_password: Optional[str] = None
    digital_code: Optional[str] = None
    inventory_id: Optional[int] = None

    @field_validator('amount', 'cost', mode='before')
    @classmethod
    def check_money(cls, value):
        return coerce_money(value)

    @field_validator('status', mode='before')
    @classmethod
    def check_status(cls, value):
        if isinstance(value, OrderStatus):
            return value.value
        return value or OrderStatus.PENDING.value

    @property
    def group_key(self) -> str:
        return self.order_number or f"ORD-{self.id}"

    @property
    def digital_item(self) -> Optional[DigitalItem]:
        item = DigitalItem(
            email=self.digital_email,
            password=self.digital_password,
            code=self.digital_code
        )
        return None if item.is_empty else item


class OrderItem(ShopModel):
    """A line as shown inside a grouped order"""
    name: Optional[str] = None
    price: Money = Decimal(0)
    quantity: int = 1
    image: Optional[str] = None
    digital_email: Optional[str] = None
    digital_password: Optional[str] = None
    digital_code: Optional[str] = None


class Order(ShopModel):
    """Read-side aggregate of all lines sharing an order number"""
    order_number: str
    date: Optional[datetime] = None
    status: str = OrderStatus.PENDING.value
    total: Money = Decimal(0)
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    payment_method: Optional[str] = None
    delivery_method: str = 'Standard Shipping'
    items: List[OrderItem] = []

    def to_json(self) -> dict:
        data = super().to_json()
        data['id'] = self.order_number
        return data


class PurchasedItem(ShopModel):
    product_name: str = Field(serialization_alias="name")
    image: Optional[str] = None
    price: Money
    digital_item: Optional[DigitalItem] = None


class CheckoutResult(ShopModel):
    order_number: str
    purchased_items: List[PurchasedItem]
