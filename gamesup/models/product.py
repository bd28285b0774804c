# gamesup/models/product.py
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import field_validator
from .base import TimeStampedModel, ShopModel, Money, parse_json_field, coerce_money

class DigitalItem(ShopModel):
    """One sellable credential: an account login or a license code"""
    email: Optional[str] = None
    password: Optional[str] = None
    code: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.email or self.password or self.code)


def _decode_digital_items(value: Any) -> list:
    items = parse_json_field(value, list, list)
    return [item for item in items if isinstance(item, (dict, DigitalItem))]


class Product(TimeStampedModel):
    """Catalog product; digital goods carry a pool of unsold credentials"""
    id: int
    name: str
    description: Optional[str] = ''
    category_slug: Optional[str] = 'games'
    sub_category_slug: Optional[str] = None
    price: Money
    cost: Money = Decimal(0)
    stock: int = 0
    image: Optional[str] = None
    attributes: Dict[str, Any] = {}
    digital_items: List[DigitalItem] = []

    @field_validator('price', 'cost', mode='before')
    @classmethod
    def check_money(cls, value):
        return coerce_money(value)

    @field_validator('attributes', mode='before')
    @classmethod
    def check_attributes(cls, value):
        return parse_json_field(value, dict, dict)

    @field_validator('digital_items', mode='before')
    @classmethod
    def check_digital_items(cls, value):
        return _decode_digital_items(value)

    @property
    def category(self) -> str:
        slug = self.category_slug or 'games'
        return slug[:1].upper() + slug[1:]

    @property
    def stock_status(self) -> str:
        return 'In Stock' if self.stock > 10 else 'Low Stock'

    def to_json(self) -> dict:
        data = super().to_json()
        data['category'] = self.category
        data['subCategory'] = data.pop('subCategorySlug')
        data['status'] = self.stock_status
        return data


class ProductInput(ShopModel):
    """Admin payload for creating or replacing a product"""
    name: str
    description: Optional[str] = ''
    category: Optional[str] = None
    sub_category: Optional[str] = None
    price: Money
    cost: Money = Decimal(0)
    stock: int = 0
    image: Optional[str] = None
    attributes: Dict[str, Any] = {}
    digital_items: List[DigitalItem] = []

    @field_validator('price', 'cost', mode='before')
    @classmethod
    def check_money(cls, value):
        return coerce_money(value)

    @field_validator('stock')
    @classmethod
    def check_stock(cls, value):
        if value < 0:
            raise ValueError("stock cannot be negative")
        return value

    @field_validator('attributes', mode='before')
    @classmethod
    def check_attributes(cls, value):
        return parse_json_field(value, dict, dict)

    @field_validator('digital_items', mode='before')
    @classmethod
    def check_digital_items(cls, value):
        return _decode_digital_items(value)

    @property
    def category_slug(self) -> str:
        return self.category.lower() if self.category else 'games'

    @property
    def credentials(self) -> List[DigitalItem]:
        return [item for item in self.digital_items if not item.is_empty]
