# gamesup/handlers/system_handler.py
from aiohttp import web
from .base_handler import BaseHandler, staff_required

class SystemHandler(BaseHandler):
    """Taxonomy, banners and store settings"""

    # Categories

    async def list_categories(self, request: web.Request) -> web.Response:
        categories = await self.services.categories.get_categories()
        return self.json_response([category.to_json() for category in categories])

    @staff_required('products')
    async def create_category(self, request: web.Request) -> web.Response:
        data = self.require(await self.read_json(request), 'name', 'slug')
        category_id = await self.services.categories.add_category(data)
        return self.message("Category created successfully", id=category_id)

    @staff_required('products')
    async def update_category(self, request: web.Request) -> web.Response:
        category_id = self.int_param(request)
        data = self.require(await self.read_json(request), 'name', 'slug')
        if not await self.services.categories.update_category(category_id, data):
            return self.not_found("Category")
        return self.message("Category updated successfully")

    @staff_required('products')
    async def delete_category(self, request: web.Request) -> web.Response:
        if not await self.services.categories.delete_category(self.int_param(request)):
            return self.not_found("Category")
        return self.message("Category deleted successfully")

    # Sub-categories

    async def list_subcategories(self, request: web.Request) -> web.Response:
        subcategories = await self.services.categories.get_subcategories()
        return self.json_response([subcategory.to_json() for subcategory in subcategories])

    @staff_required('products')
    async def create_subcategory(self, request: web.Request) -> web.Response:
        data = self.require(await self.read_json(request), 'categoryId', 'name', 'slug')
        subcategory_id = await self.services.categories.add_subcategory(data)
        return self.message("Sub-category created successfully", id=subcategory_id)

    @staff_required('products')
    async def update_subcategory(self, request: web.Request) -> web.Response:
        subcategory_id = self.int_param(request)
        data = self.require(await self.read_json(request), 'categoryId', 'name', 'slug')
        if not await self.services.categories.update_subcategory(subcategory_id, data):
            return self.not_found("Sub-category")
        return self.message("Sub-category updated successfully")

    @staff_required('products')
    async def delete_subcategory(self, request: web.Request) -> web.Response:
        if not await self.services.categories.delete_subcategory(self.int_param(request)):
            return self.not_found("Sub-category")
        return self.message("Sub-category deleted successfully")

    # Attribute definitions

    async def list_attributes(self, request: web.Request) -> web.Response:
        attributes = await self.services.categories.get_attributes()
        return self.json_response([attribute.to_json() for attribute in attributes])

    @staff_required('products')
    async def create_attribute(self, request: web.Request) -> web.Response:
        data = self.require(await self.read_json(request), 'name', 'type')
        attribute_id = await self.services.categories.add_attribute(data)
        return self.message("Attribute created successfully", id=attribute_id)

    @staff_required('products')
    async def update_attribute(self, request: web.Request) -> web.Response:
        attribute_id = self.int_param(request)
        data = self.require(await self.read_json(request), 'name', 'type')
        if not await self.services.categories.update_attribute(attribute_id, data):
            return self.not_found("Attribute")
        return self.message("Attribute updated successfully")

    @staff_required('products')
    async def delete_attribute(self, request: web.Request) -> web.Response:
        if not await self.services.categories.delete_attribute(self.int_param(request)):
            return self.not_found("Attribute")
        return self.message("Attribute deleted successfully")

    # Banners

    async def list_banners(self, request: web.Request) -> web.Response:
        banners = await self.services.banners.get_banners()
        return self.json_response({"banners": [banner.to_json() for banner in banners]})

    @staff_required('products')
    async def create_banner(self, request: web.Request) -> web.Response:
        banner_id = await self.services.banners.add_banner(await self.read_json(request))
        return self.message("Banner created successfully", id=banner_id)

    @staff_required('products')
    async def update_banner(self, request: web.Request) -> web.Response:
        banner_id = self.int_param(request)
        if not await self.services.banners.update_banner(banner_id, await self.read_json(request)):
            return self.not_found("Banner")
        return self.message("Banner updated successfully")

    @staff_required('products')
    async def delete_banner(self, request: web.Request) -> web.Response:
        if not await self.services.banners.delete_banner(self.int_param(request)):
            return self.not_found("Banner")
        return self.message("Banner deleted successfully")

    # Settings

    async def get_settings(self, request: web.Request) -> web.Response:
        return self.json_response(await self.services.settings.get_all_settings())

    @staff_required('settings')
    async def update_settings(self, request: web.Request) -> web.Response:
        await self.services.settings.update_settings(await self.read_json(request))
        return self.message("Settings updated successfully")
