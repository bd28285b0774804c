# gamesup/handlers/order_handler.py
from aiohttp import web
from ..exceptions import AuthenticationError, PermissionDeniedError
from ..models.order import CheckoutRequest, OrderLine
from ..utils.formatters import format_date
from .base_handler import BaseHandler, CUSTOMER_SCOPE, staff_required

def admin_line_json(line: OrderLine) -> dict:
    """Row shape of the admin order table"""
    return {
        "id": line.id,
        "orderNumber": line.order_number,
        "customer": line.customer_name,
        "email": line.customer_email,
        "product": line.product_name,
        "date": format_date(line.date),
        "status": line.status,
        "amount": float(line.amount),
        "items": 1,
        "payment_method": line.payment_method,
        "payment_proof": line.payment_proof,
        "transaction_ref": line.transaction_ref,
        "digital_email": line.digital_email,
        "digital_password": line.digital_password,
        "digital_code": line.digital_code,
        "inventory_id": line.inventory_id
    }


class OrderHandler(BaseHandler):
    """Checkout, customer order history and the admin order screens"""

    async def checkout(self, request: web.Request) -> web.Response:
        checkout = CheckoutRequest.model_validate(await self.read_json(request))
        result = await self.services.orders.create_order(checkout)
        return self.json_response(dict(message="Order placed successfully", **result.to_json()))

    async def customer_orders(self, request: web.Request) -> web.Response:
        email = request.query.get('email')
        if not email:
            return self.json_response({"error": "Email is required"}, status=400)

        self.check_order_access(request, email)

        orders = await self.services.orders.get_customer_orders(email)
        return self.json_response({"orders": [order.to_json() for order in orders]})

    def check_order_access(self, request: web.Request, email: str) -> None:
        """Order history carries sold credentials: only its owner or order staff may read it"""
        if self.is_staff(request, 'orders'):
            return

        claims = self.token_claims(request)
        if claims is None or claims.get('scope') != CUSTOMER_SCOPE:
            raise AuthenticationError("Authentication required")
        if (claims.get('email') or '').lower() != email.lower():
            raise PermissionDeniedError("Orders of another customer")

    async def delivery_options(self, request: web.Request) -> web.Response:
        options = await self.services.shipping.list_delivery_options(
            request.query.get('city') or 'Riyadh'
        )
        return self.json_response({"deliveryOptions": options})

    @staff_required('orders')
    async def list_orders(self, request: web.Request) -> web.Response:
        lines = await self.services.orders.list_lines(
            status=request.query.get('status'),
            search=request.query.get('search'),
            email=request.query.get('email')
        )
        return self.json_response({"orders": [admin_line_json(line) for line in lines]})

    @staff_required('orders')
    async def update_order(self, request: web.Request) -> web.Response:
        line_id = self.int_param(request)
        changes = await self.read_json(request)
        if not await self.services.orders.update_line(line_id, changes):
            return self.message("No changes applied")
        return self.message("Order updated successfully")

    @staff_required('orders')
    async def update_order_status(self, request: web.Request) -> web.Response:
        order_number = request.match_info['order_number']
        data = self.require(await self.read_json(request), 'status')
        updated = await self.services.orders.update_status(order_number, data['status'])
        if not updated:
            return self.not_found("Order")
        return self.message("Order status updated", updated=updated)

    @staff_required('orders')
    async def sold_products(self, request: web.Request) -> web.Response:
        lines = await self.services.orders.list_sold_items()
        return self.json_response([
            {
                "id": line.id,
                "orderNumber": line.order_number,
                "customerName": line.customer_name,
                "customerEmail": line.customer_email,
                "productName": line.product_name,
                "price": float(line.amount),
                "date": line.date.isoformat() if line.date else None,
                "digitalItem": {
                    "email": line.digital_email,
                    "password": line.digital_password,
                    "code": line.digital_code
                }
            }
            for line in lines
        ])

    @staff_required('orders')
    async def create_shipment(self, request: web.Request) -> web.Response:
        data = self.require(await self.read_json(request), 'orderNumber')
        shipment = await self.services.shipping.create_shipment(
            data['orderNumber'],
            data.get('shippingAddress') or {}
        )
        if shipment is None:
            return self.not_found("Order")
        return self.json_response(shipment)
