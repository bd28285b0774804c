# gamesup/services/shipping_service.py
import asyncio
import logging
import random
from typing import Any, Dict, List, Optional
import aiohttp
from ..config import Config
from ..exceptions import ShippingProviderError
from .order_service import OrderService

STANDARD_SHIPPING = {
    "id": "standard",
    "name": "Standard Shipping",
    "description": "Delivery in 3-5 business days",
    "price": 0,
    "estimatedDays": "3-5 days"
}

class ShippingService:
    """Delivery options shown at checkout and shipments for paid orders"""

    def __init__(self, order_service: OrderService, carrier: Optional['OtoClient'] = None):
        self.order_service = order_service
        self.carrier = carrier or OtoClient()
        self.logger = logging.getLogger(__name__)

    async def list_delivery_options(self, city: str = 'Riyadh') -> List[Dict[str, Any]]:
        """Free standard shipping plus carrier quotes; quotes are best effort"""
        try:
            rates = await self.carrier.check_delivery(city)
        except (ShippingProviderError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.warning(f"Carrier rates unavailable for {city}: {e}")
            return [dict(STANDARD_SHIPPING)]

        options = [dict(STANDARD_SHIPPING)]
        for index, company in enumerate(rates.get("companies", [])):
            options.append({
                "id": f"oto_{index}",
                "name": f"{company['name']} (via OTO)",
                "description": f"Delivery in {company['time']}",
                "price": company['price'],
                "estimatedDays": company['time']
            })
        return options

    async def create_shipment(self, order_number: str, shipping_address: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Book a carrier shipment for a placed order; None if the order does not exist"""
        order = await self.order_service.get_order(order_number)
        if order is None:
            return None

        return await self.carrier.create_shipment({
            "orderNumber": order_number,
            "total": float(order.total),
            "customerName": order.customer_name,
            "customerEmail": order.customer_email,
            "shippingAddress": shipping_address,
            "items": [
                {"name": item.name, "price": float(item.price), "quantity": item.quantity}
                for item in order.items
            ]
        })


class OtoClient:
    """OTO shipping aggregator; mock answers when no refresh token is configured"""

    def __init__(self, refresh_token: Optional[str] = None, env: Optional[str] = None):
        self.refresh_token = refresh_token if refresh_token is not None else Config.OTO_REFRESH_TOKEN
        env = env or Config.OTO_ENV
        self.base_url = (
            "https://api.oto.sa/rest/v1" if env == "production"
            else "https://api-test.oto.sa/rest/v1"
        )
        self._access_token: Optional[str] = None
        self.logger = logging.getLogger(__name__)

    @property
    def is_mock(self) -> bool:
        return not self.refresh_token

    async def check_delivery(self, city: str) -> Dict[str, Any]:
        """Carrier list with flat prices; the rate card is static"""
        return {
            "available": True,
            "companies": [
                {"name": "Aramex", "price": 25, "time": "2-3 days"},
                {"name": "SMSA", "price": 30, "time": "1-2 days"}
            ]
        }

    async def get_access_token(self, session: aiohttp.ClientSession) -> str:
        if self._access_token:
            return self._access_token

        async with session.post(
            f"{self.base_url}/auth/refresh-token",
            json={"refresh_token": self.refresh_token}
        ) as response:
            if response.status != 200:
                raise ShippingProviderError(f"OTO authentication failed: {response.status}")
            data = await response.json()

        self._access_token = data["access_token"]
        return self._access_token

    async def create_shipment(self, order: Dict[str, Any]) -> Dict[str, Any]:
        """Returns {success, otoId, awb, labelUrl}"""
        if self.is_mock:
            self.logger.info(f"OTO mock: shipment for {order['orderNumber']}")
            return {
                "success": True,
                "otoId": f"OTO-{random.randint(0, 9999)}",
                "awb": f"AWB-{random.randint(0, 9999)}",
                "labelUrl": "https://example.com/label.pdf"
            }

        address = order.get("shippingAddress") or {}
        payload = {
            "orderId": order["orderNumber"],
            "payment_method": "paid",
            "amount": order["total"],
            "amount_due": 0,
            "customer": {
                "name": order.get("customerName"),
                "email": order.get("customerEmail"),
                "mobile": address.get("phone"),
                "address": address.get("address"),
                "city": address.get("city"),
                "country": address.get("country") or "SA"
            },
            "items": [
                {"name": item["name"], "price": item["price"], "qty": item["quantity"], "sku": "sku"}
                for item in order.get("items", [])
            ]
        }

        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=30)) as session:
                token = await self.get_access_token(session)
                async with session.post(
                    f"{self.base_url}/shipment/create",
                    json=payload,
                    headers={"Authorization": f"Bearer {token}"}
                ) as response:
                    if response.status != 200:
                        raise ShippingProviderError(f"OTO responded {response.status}")
                    data = await response.json()

        except (aiohttp.ClientError, asyncio.TimeoutError, KeyError, ValueError) as e:
            self.logger.error(f"OTO shipment for {order['orderNumber']} failed: {e}")
            raise ShippingProviderError("Shipment creation failed") from e

        return {
            "success": True,
            "otoId": data.get("otoId"),
            "awb": data.get("awb"),
            "labelUrl": data.get("labelUrl")
        }
