# gamesup/handlers/payment_handler.py
from aiohttp import web
from .base_handler import BaseHandler

DEFAULT_ORIGIN = 'http://localhost:5173'

class PaymentHandler(BaseHandler):
    async def create_payment(self, request: web.Request) -> web.Response:
        data = self.require(await self.read_json(request), 'orderNumber')

        # the gateway sends the shopper back to the storefront checkout page
        origin = request.headers.get('Origin') or request.headers.get('Referer') or DEFAULT_ORIGIN
        return_url = f"{origin.rstrip('/')}/checkout"

        payment = await self.services.payments.create_payment(data, return_url)
        return self.json_response(payment)

    async def verify_payment(self, request: web.Request) -> web.Response:
        data = self.require(await self.read_json(request), 'tranRef', 'orderNumber')
        result = await self.services.payments.verify_payment(data['tranRef'], data['orderNumber'])
        return self.json_response(result, status=200 if result['success'] else 400)
