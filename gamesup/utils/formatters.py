# gamesup/utils/formatters.py
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Union
import pytz
from ..config import Config

def parse_money(value: Union[str, int, float, Decimal]) -> Decimal:
    """Parse a price that older admin screens may send as "$12.50" """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, str):
        value = value.strip().replace('$', '').replace(',', '')
        if not value:
            return Decimal(0)
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value!r}")

def localize(dt: datetime) -> datetime:
    """Naive timestamps are treated as UTC and shown in the shop time zone"""
    shop_tz = pytz.timezone(Config.TIMEZONE)
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(shop_tz)

def format_date(dt: Optional[datetime]) -> Optional[str]:
    """Admin list format, e.g. "Mar 5, 2025" """
    if dt is None:
        return None
    local = localize(dt)
    return f"{local:%b} {local.day}, {local.year}"

def format_month(dt: Optional[datetime]) -> str:
    """Customer join date, e.g. "Mar 2025" """
    local = localize(dt or datetime.now(pytz.utc))
    return local.strftime("%b %Y")
