# gamesup/handlers/admin_handler.py
from aiohttp import web
from .base_handler import BaseHandler, staff_required

class AdminHandler(BaseHandler):
    """Team members, roles and the customer list"""

    @staff_required('team')
    async def list_roles(self, request: web.Request) -> web.Response:
        roles = await self.services.users.get_roles()
        return self.json_response([role.model_dump(mode='json') for role in roles])

    @staff_required('team')
    async def create_role(self, request: web.Request) -> web.Response:
        data = self.require(await self.read_json(request), 'name')
        created = await self.services.users.add_role(
            data['name'],
            data.get('description'),
            data.get('permissions')
        )
        if not created:
            return self.json_response({"error": "Role already exists"}, status=400)
        return self.message("Role created successfully")

    @staff_required('team')
    async def list_users(self, request: web.Request) -> web.Response:
        users = await self.services.users.get_users()
        # team screens read snake_case keys
        return self.json_response([
            user.model_dump(mode='json', exclude={'permissions'}) for user in users
        ])

    @staff_required('team')
    async def create_user(self, request: web.Request) -> web.Response:
        data = await self.read_json(request)
        user_id = await self.services.users.add_user(data)
        return self.message("User created successfully", id=user_id)

    @staff_required('team')
    async def update_user(self, request: web.Request) -> web.Response:
        user_id = self.int_param(request)
        if not await self.services.users.update_user(user_id, await self.read_json(request)):
            return self.not_found("User")
        return self.message("User updated successfully")

    @staff_required('team')
    async def delete_user(self, request: web.Request) -> web.Response:
        if not await self.services.users.delete_user(self.int_param(request)):
            return self.not_found("User")
        return self.message("User deleted successfully")

    @staff_required('customers')
    async def list_customers(self, request: web.Request) -> web.Response:
        customers = await self.services.customers.get_customers()
        return self.json_response({"customers": customers})
