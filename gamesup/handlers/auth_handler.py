# gamesup/handlers/auth_handler.py
from aiohttp import web
from ..config import Config
from ..utils.security import issue_token
from .base_handler import BaseHandler, CUSTOMER_SCOPE, STAFF_SCOPE

class AuthHandler(BaseHandler):
    """Staff and storefront logins"""

    async def staff_login(self, request: web.Request) -> web.Response:
        data = await self.read_json(request)
        email = data.get('email')
        self.logger.info(f"Login attempt for {email}")

        user = await self.services.users.authenticate(email, data.get('password'))

        token = issue_token({
            "sub": user.id,
            "email": user.email,
            "role": user.role,
            "permissions": user.permissions,
            "scope": STAFF_SCOPE,
            "user_metadata": {"name": user.name}
        })
        expires_in = Config.TOKEN_TTL_HOURS * 3600

        return self.json_response({
            "access_token": token,
            "token_type": "bearer",
            "expires_in": expires_in,
            "user": {
                "id": user.id,
                "aud": "authenticated",
                "role": "authenticated",
                "email": user.email,
                "user_metadata": {
                    "name": user.name,
                    "role": user.role,
                    "permissions": user.permissions
                },
                "app_metadata": {"provider": "email", "providers": ["email"]}
            },
            "session": {
                "access_token": token,
                "token_type": "bearer",
                "expires_in": expires_in,
                "user": {
                    "id": user.id,
                    "email": user.email,
                    "name": user.name,
                    "role": user.role,
                    "permissions": user.permissions
                }
            }
        })

    async def customer_signup(self, request: web.Request) -> web.Response:
        data = await self.read_json(request)
        customer = await self.services.customers.signup(
            data.get('email'),
            data.get('password'),
            name=data.get('name'),
            phone=data.get('phone')
        )
        return self._customer_session(customer)

    async def customer_login(self, request: web.Request) -> web.Response:
        data = await self.read_json(request)
        customer = await self.services.customers.login(data.get('email'), data.get('password'))
        return self._customer_session(customer)

    def _customer_session(self, customer) -> web.Response:
        token = issue_token({
            "id": customer.id,
            "email": customer.email,
            "name": customer.name,
            "scope": CUSTOMER_SCOPE
        })
        return self.json_response({
            "session": {
                "access_token": token,
                "user": {
                    "id": customer.id,
                    "email": customer.email,
                    "name": customer.name,
                    "phone": customer.phone
                }
            }
        })
