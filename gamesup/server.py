# gamesup/server.py
import asyncio
import logging
from typing import Optional
from aiohttp import web
from pydantic import ValidationError
from .config import Config
from .database import Database
from .exceptions import (
    AuthenticationError,
    CheckoutError,
    DuplicateEmailError,
    InvalidRequestError,
    OutOfStockError,
    PaymentGatewayError,
    PermissionDeniedError,
    ProductNotFoundError,
    ShippingProviderError,
    ShopError,
    TransientCheckoutError,
)
from .handlers import (
    AdminHandler,
    AuthHandler,
    CatalogHandler,
    OrderHandler,
    PaymentHandler,
    SystemHandler,
)
from .services import Services, build_services

logger = logging.getLogger(__name__)

# most specific first
ERROR_STATUS = (
    (ProductNotFoundError, 404),
    (OutOfStockError, 409),
    (TransientCheckoutError, 503),
    (CheckoutError, 400),
    (AuthenticationError, 401),
    (PermissionDeniedError, 403),
    (DuplicateEmailError, 400),
    (InvalidRequestError, 400),
    (PaymentGatewayError, 502),
    (ShippingProviderError, 502),
)

def error_status(error: ShopError) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 400


def validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    location = '.'.join(str(part) for part in first.get('loc', ()))
    return f"{location}: {first['msg']}" if location else first['msg']


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Map service exceptions to JSON error responses"""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except ShopError as e:
        body = {"error": e.reason}
        if isinstance(e, CheckoutError):
            body["retryable"] = e.retryable
            if e.product_name:
                body["product"] = e.product_name
        return web.json_response(body, status=error_status(e))
    except ValidationError as e:
        return web.json_response({"error": validation_message(e)}, status=400)
    except Exception as e:
        logger.error(f"Unhandled error on {request.method} {request.path}: {e}", exc_info=True)
        return web.json_response({"error": "Internal server error"}, status=500)


@web.middleware
async def cors_middleware(request: web.Request, handler):
    if request.method == 'OPTIONS':
        response = web.Response()
    else:
        try:
            response = await handler(request)
        except web.HTTPException as e:
            set_cors_headers(e.headers)
            raise

    set_cors_headers(response.headers)
    return response


def set_cors_headers(headers):
    headers['Access-Control-Allow-Origin'] = Config.CORS_ORIGIN
    headers['Access-Control-Allow-Methods'] = 'GET, POST, PUT, DELETE, OPTIONS'
    headers['Access-Control-Allow-Headers'] = 'Content-Type, Authorization'


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok", "message": "Server is running"})


def setup_routes(app: web.Application, services: Services):
    base = Config.BASE_PATH

    auth = AuthHandler(services)
    catalog = CatalogHandler(services)
    system = SystemHandler(services)
    orders = OrderHandler(services)
    payments = PaymentHandler(services)
    admin = AdminHandler(services)

    app.router.add_get('/health', health)
    app.router.add_get(f'{base}/health', health)

    # Auth
    app.router.add_post(f'{base}/auth/login', auth.staff_login)
    app.router.add_post(f'{base}/customer/signup', auth.customer_signup)
    app.router.add_post(f'{base}/customer/login', auth.customer_login)

    # Checkout and orders
    app.router.add_get(f'{base}/customer-orders', orders.customer_orders)
    app.router.add_post(f'{base}/customer-orders', orders.checkout)
    app.router.add_get(f'{base}/delivery-options', orders.delivery_options)
    app.router.add_get(f'{base}/orders', orders.list_orders)
    app.router.add_put(f'{base}/orders/{{id}}', orders.update_order)
    app.router.add_put(f'{base}/orders/number/{{order_number}}/status', orders.update_order_status)
    app.router.add_get(f'{base}/admin/sold-products', orders.sold_products)
    app.router.add_post(f'{base}/admin/shipments', orders.create_shipment)

    # Payments
    app.router.add_post(f'{base}/payment/create', payments.create_payment)
    app.router.add_post(f'{base}/payment/verify', payments.verify_payment)

    # Catalog
    app.router.add_get(f'{base}/products', catalog.list_products)
    app.router.add_post(f'{base}/products', catalog.create_product)
    app.router.add_put(f'{base}/products/{{id}}', catalog.update_product)
    app.router.add_put(f'{base}/products/{{id}}/stock', catalog.update_stock)
    app.router.add_delete(f'{base}/products/{{id}}', catalog.delete_product)
    app.router.add_get(f'{base}/public/products', catalog.public_products)

    # Taxonomy, banners, settings
    app.router.add_get(f'{base}/system/categories', system.list_categories)
    app.router.add_post(f'{base}/system/categories', system.create_category)
    app.router.add_put(f'{base}/system/categories/{{id}}', system.update_category)
    app.router.add_delete(f'{base}/system/categories/{{id}}', system.delete_category)
    app.router.add_get(f'{base}/system/subcategories', system.list_subcategories)
    app.router.add_post(f'{base}/system/subcategories', system.create_subcategory)
    app.router.add_put(f'{base}/system/subcategories/{{id}}', system.update_subcategory)
    app.router.add_delete(f'{base}/system/subcategories/{{id}}', system.delete_subcategory)
    app.router.add_get(f'{base}/system/attributes', system.list_attributes)
    app.router.add_post(f'{base}/system/attributes', system.create_attribute)
    app.router.add_put(f'{base}/system/attributes/{{id}}', system.update_attribute)
    app.router.add_delete(f'{base}/system/attributes/{{id}}', system.delete_attribute)
    app.router.add_get(f'{base}/banners', system.list_banners)
    app.router.add_post(f'{base}/banners', system.create_banner)
    app.router.add_put(f'{base}/banners/{{id}}', system.update_banner)
    app.router.add_delete(f'{base}/banners/{{id}}', system.delete_banner)
    app.router.add_get(f'{base}/settings', system.get_settings)
    app.router.add_post(f'{base}/settings', system.update_settings)

    # Team and customers
    app.router.add_get(f'{base}/roles', admin.list_roles)
    app.router.add_post(f'{base}/roles', admin.create_role)
    app.router.add_get(f'{base}/admin/users', admin.list_users)
    app.router.add_post(f'{base}/admin/users', admin.create_user)
    app.router.add_put(f'{base}/admin/users/{{id}}', admin.update_user)
    app.router.add_delete(f'{base}/admin/users/{{id}}', admin.delete_user)
    app.router.add_get(f'{base}/admin/customers', admin.list_customers)


def create_app(services: Services) -> web.Application:
    app = web.Application(middlewares=[cors_middleware, error_middleware])
    setup_routes(app, services)
    return app


class ShopServer:
    def __init__(self, db: Optional[Database] = None):
        """Wire the database, services and routes"""
        self.db = db or Database()
        self.runner: Optional[web.AppRunner] = None

    async def start(self):
        """Serve until cancelled"""
        await self.db.connect()
        app = create_app(build_services(self.db))

        self.runner = web.AppRunner(app)
        await self.runner.setup()
        site = web.TCPSite(self.runner, Config.HOST, Config.PORT)
        await site.start()
        logger.info(f"Server listening on {Config.HOST}:{Config.PORT}{Config.BASE_PATH}")

        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()

    async def stop(self):
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
        await self.db.close()
