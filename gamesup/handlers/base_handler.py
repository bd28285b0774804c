# gamesup/handlers/base_handler.py
import functools
import logging
from typing import Any, Dict, Optional
from aiohttp import web
from ..exceptions import AuthenticationError, InvalidRequestError, PermissionDeniedError
from ..models.user import Role
from ..services import Services
from ..utils.security import verify_token

STAFF_SCOPE = 'staff'
CUSTOMER_SCOPE = 'customer'


def staff_required(permission: Optional[str] = None):
    """Reject requests without a staff bearer token granting `permission`"""
    def decorator(handler):
        @functools.wraps(handler)
        async def wrapper(self, request: web.Request):
            role = BaseHandler.staff_role(request)
            if role is None:
                raise AuthenticationError("Authentication required")

            if permission and not role.allows(permission):
                raise PermissionDeniedError(f"Missing permission: {permission}")

            return await handler(self, request)
        return wrapper
    return decorator


class BaseHandler:
    """Shared request helpers for the route handlers"""

    def __init__(self, services: Services):
        self.services = services
        self.logger = logging.getLogger(self.__class__.__module__)

    @staticmethod
    def token_claims(request: web.Request) -> Optional[Dict[str, Any]]:
        header = request.headers.get('Authorization', '')
        scheme, _, token = header.partition(' ')
        if scheme.lower() != 'bearer' or not token:
            return None
        return verify_token(token.strip())

    @classmethod
    def staff_role(cls, request: web.Request) -> Optional[Role]:
        """Role carried by a staff token, or None for anonymous and customer requests"""
        claims = cls.token_claims(request)
        if claims is None or claims.get('scope') != STAFF_SCOPE:
            return None
        return Role(name=claims.get('role') or STAFF_SCOPE, permissions=claims.get('permissions') or {})

    def is_staff(self, request: web.Request, permission: Optional[str] = None) -> bool:
        role = self.staff_role(request)
        if role is None:
            return False
        return not permission or role.allows(permission)

    @staticmethod
    async def read_json(request: web.Request) -> Dict[str, Any]:
        if not request.can_read_body:
            return {}
        try:
            data = await request.json()
        except ValueError:
            # covers JSONDecodeError and bodies that are not valid UTF-8
            raise InvalidRequestError("Request body is not valid JSON")
        if not isinstance(data, dict):
            raise InvalidRequestError("Request body must be a JSON object")
        return data

    @staticmethod
    def require(data: Dict[str, Any], *fields: str) -> Dict[str, Any]:
        missing = [field for field in fields if data.get(field) in (None, '')]
        if missing:
            raise InvalidRequestError(f"Missing required fields: {', '.join(missing)}")
        return data

    @staticmethod
    def int_param(request: web.Request, name: str = 'id') -> int:
        value = request.match_info.get(name)
        try:
            return int(value)
        except (TypeError, ValueError):
            raise InvalidRequestError(f"Invalid {name}: {value}")

    @staticmethod
    def json_response(data: Any, status: int = 200) -> web.Response:
        return web.json_response(data, status=status)

    @staticmethod
    def message(text: str, **extra) -> web.Response:
        return web.json_response(dict(message=text, **extra))

    @staticmethod
    def not_found(what: str) -> web.Response:
        return web.json_response({"error": f"{what} not found"}, status=404)
