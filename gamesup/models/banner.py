# gamesup/models/banner.py
from datetime import datetime
from typing import Optional
from .base import ShopModel

class Banner(ShopModel):
    id: int
    title: Optional[str] = None
    image_url: Optional[str] = None
    link: Optional[str] = None
    position: int = 0
    is_active: bool = True
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
