# gamesup/models/base.py
import json
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Callable, Optional
from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel
from ..utils.formatters import parse_money

# Prices travel as JSON numbers; Decimal is kept internally
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used='json')]


def parse_json_field(value: Any, expected: type, default: Callable[[], Any]) -> Any:
    """Decode a JSON column that may arrive decoded, as text, or double-encoded by older writers"""
    for _ in range(2):
        if not isinstance(value, (str, bytes)):
            break
        try:
            value = json.loads(value)
        except ValueError:
            return default()
    if not isinstance(value, expected):
        return default()
    return value


def coerce_money(value: Any) -> Any:
    if value is None:
        return Decimal(0)
    if isinstance(value, (str, int, float)):
        return parse_money(value)
    return value


class ShopModel(BaseModel):
    """Base model: built from asyncpg records, rendered with camelCase keys"""
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel
    )

    def to_json(self) -> dict:
        return self.model_dump(mode='json', by_alias=True)


class TimeStampedModel(ShopModel):
    """Base model with timestamp fields"""
    created_at: Optional[datetime] = None
