# gamesup/models/user.py
from typing import Any, Dict, Optional
from pydantic import field_validator
from .base import TimeStampedModel, ShopModel, parse_json_field

class Customer(TimeStampedModel):
    """Storefront account"""
    id: int
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None


class Role(ShopModel):
    """Staff role and the permission map it grants"""
    name: str
    description: Optional[str] = None
    permissions: Dict[str, Any] = {}

    @field_validator('permissions', mode='before')
    @classmethod
    def check_permissions(cls, value):
        return parse_json_field(value, dict, dict)

    def allows(self, permission: str) -> bool:
        return bool(self.permissions.get(permission))


class StaffUser(TimeStampedModel):
    """Admin console account"""
    id: int
    email: str
    name: Optional[str] = None
    role: Optional[str] = None
    job_title: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    identity_document: Optional[str] = None
    permissions: Dict[str, Any] = {}

    @field_validator('permissions', mode='before')
    @classmethod
    def check_permissions(cls, value):
        return parse_json_field(value, dict, dict)
