# gamesup/handlers/catalog_handler.py
from aiohttp import web
from ..exceptions import InvalidRequestError
from ..models.product import ProductInput
from .base_handler import BaseHandler, staff_required

PUBLIC_PRODUCT_FIELDS = ('id', 'name', 'description', 'price', 'stock', 'image', 'categorySlug', 'attributes')

class CatalogHandler(BaseHandler):
    """Products for the admin console, the storefront and the POS"""

    async def list_products(self, request: web.Request) -> web.Response:
        # credentials only go to staff who manage products
        include_items = self.is_staff(request, 'products')
        product_id = request.query.get('id')
        if product_id is not None and not product_id.isdigit():
            raise InvalidRequestError(f"Invalid id: {product_id}")

        products = await self.services.products.list_products(
            product_id=int(product_id) if product_id else None,
            category=request.query.get('category'),
            search=request.query.get('search'),
            include_items=include_items
        )

        result = []
        for product in products:
            data = product.to_json()
            if not include_items:
                data.pop('digitalItems', None)
            result.append(data)

        return self.json_response({"products": result})

    async def public_products(self, request: web.Request) -> web.Response:
        products = await self.services.products.list_products(
            category=request.query.get('category'),
            search=request.query.get('search')
        )
        return self.json_response({
            "products": [
                {key: value for key, value in product.to_json().items() if key in PUBLIC_PRODUCT_FIELDS}
                for product in products
            ]
        })

    @staff_required('products')
    async def create_product(self, request: web.Request) -> web.Response:
        data = ProductInput.model_validate(await self.read_json(request))
        product_id = await self.services.products.add_product(data)
        return self.message("Product created successfully", id=product_id)

    @staff_required('products')
    async def update_product(self, request: web.Request) -> web.Response:
        product_id = self.int_param(request)
        data = ProductInput.model_validate(await self.read_json(request))
        if not await self.services.products.update_product(product_id, data):
            return self.not_found("Product")
        return self.message("Product updated successfully")

    @staff_required('products')
    async def update_stock(self, request: web.Request) -> web.Response:
        product_id = self.int_param(request)
        data = await self.read_json(request)
        try:
            stock = int(data['stock'])
        except (KeyError, TypeError, ValueError):
            raise InvalidRequestError("stock must be a whole number")

        try:
            updated = await self.services.products.quick_update_stock(product_id, stock)
        except ValueError as e:
            raise InvalidRequestError(str(e))

        if not updated:
            return self.not_found("Product")
        return self.message("Stock updated successfully")

    @staff_required('products')
    async def delete_product(self, request: web.Request) -> web.Response:
        product_id = self.int_param(request)
        if not await self.services.products.delete_product(product_id):
            return self.not_found("Product")
        return self.message("Product deleted successfully")
