# gamesup/models/category.py
from typing import List, Optional
from pydantic import field_validator
from .base import TimeStampedModel, parse_json_field

class Category(TimeStampedModel):
    """Top level catalog category"""
    id: int
    name: str
    slug: str
    icon: Optional[str] = None
    display_order: int = 0
    is_active: bool = True


class SubCategory(TimeStampedModel):
    id: int
    category_id: int
    name: str
    slug: str
    description: Optional[str] = None
    display_order: int = 0
    is_active: bool = True


class AttributeDefinition(TimeStampedModel):
    """Product attribute the admin can fill in; select types enumerate options"""
    id: int
    name: str
    type: str
    options: List[str] = []
    is_required: bool = False
    display_order: int = 0
    is_active: bool = True

    @field_validator('options', mode='before')
    @classmethod
    def check_options(cls, value):
        return [str(option) for option in parse_json_field(value, list, list)]
