# gamesup/services/payment_service.py
import asyncio
import logging
from typing import Any, Dict, Optional
import aiohttp
from ..config import Config
from ..exceptions import PaymentGatewayError
from .order_service import OrderService

MOCK_TRAN_REF = 'mock_ref_123'

class PaymentService:
    """Hosted payment pages and payment verification"""

    def __init__(self, order_service: OrderService, gateway: Optional['PayTabsClient'] = None):
        self.order_service = order_service
        self.gateway = gateway or PayTabsClient()
        self.logger = logging.getLogger(__name__)

    async def create_payment(self, order_details: Dict[str, Any], return_url: str) -> Dict[str, Any]:
        """Open a payment page for an order already placed by checkout"""
        order = await self.order_service.get_order(order_details['orderNumber'])
        if order is not None:
            # charge what was recorded, not what the browser claims
            order_details = dict(order_details, total=float(order.total))

        return await self.gateway.create_payment_page(order_details, return_url)

    async def verify_payment(self, tran_ref: str, order_number: str) -> Dict[str, Any]:
        """Mark an order paid if the gateway confirms the transaction.

        A rejected payment is a normal outcome: lines keep their status and
        success is False. Gateway outages raise PaymentGatewayError instead.
        """
        current_status = await self.order_service.get_status(order_number)
        if current_status is None:
            return {
                "success": False,
                "status": None,
                "message": f"Order {order_number} not found"
            }

        verification = await self.gateway.verify_payment(tran_ref)
        cart_id = verification.get("cart_id")

        if not verification.get("success") or (cart_id and cart_id != order_number):
            self.logger.info(f"Payment {tran_ref} rejected for order {order_number}")
            return {
                "success": False,
                "status": current_status,
                "message": "Payment verification failed"
            }

        updated = await self.order_service.mark_paid(order_number, tran_ref)
        if updated:
            self.logger.info(f"Order {order_number} paid ({updated} lines, ref {tran_ref})")

        return {
            "success": True,
            "status": "paid",
            "updated": updated,
            "message": "Payment verified and order processed"
        }


class PayTabsClient:
    """PayTabs hosted payment page API; answers with fixed mock data when no profile is configured"""

    def __init__(self, profile_id: Optional[str] = None, server_key: Optional[str] = None,
                 region: Optional[str] = None, currency: Optional[str] = None):
        self.profile_id = profile_id if profile_id is not None else Config.PAYTABS_PROFILE_ID
        self.server_key = server_key if server_key is not None else Config.PAYTABS_SERVER_KEY
        self.region = region or Config.PAYTABS_REGION
        self.currency = currency or Config.PAYTABS_CURRENCY
        self.logger = logging.getLogger(__name__)

    @property
    def is_mock(self) -> bool:
        return not self.profile_id

    @property
    def base_url(self) -> str:
        if self.region == 'global':
            return "https://secure.paytabs.com"
        return f"https://secure-{self.region.lower()}.paytabs.com"

    def build_payment_request(self, order: Dict[str, Any], return_url: str) -> Dict[str, Any]:
        address = order.get('shippingAddress') or {}
        return {
            "profile_id": self.profile_id,
            "tran_type": "sale",
            "tran_class": "ecom",
            "cart_id": order['orderNumber'],
            "cart_description": f"Order {order['orderNumber']}",
            "cart_currency": self.currency,
            "cart_amount": order.get('total', 0),
            "callback": return_url,
            "return": return_url,
            "customer_details": {
                "name": order.get('customerName'),
                "email": order.get('customerEmail'),
                "phone": address.get('phone') or "0000000000",
                "street1": address.get('address') or address.get('street'),
                "city": address.get('city'),
                "state": address.get('state'),
                "country": address.get('country') or "SA",
                "zip": address.get('zipCode')
            }
        }

    async def create_payment_page(self, order: Dict[str, Any], return_url: str) -> Dict[str, Any]:
        """Returns {success, redirect_url, tran_ref}"""
        payload = self.build_payment_request(order, return_url)

        if self.is_mock:
            self.logger.info(f"PayTabs mock: payment page for {payload['cart_id']}")
            return {
                "success": True,
                "redirect_url": f"{return_url}?payment_ref={MOCK_TRAN_REF}&status=success",
                "tran_ref": MOCK_TRAN_REF
            }

        data = await self._post("/payment/request", payload)
        if not data.get("redirect_url"):
            raise PaymentGatewayError(data.get("message") or "Payment creation failed")

        return {
            "success": True,
            "redirect_url": data["redirect_url"],
            "tran_ref": data.get("tran_ref")
        }

    async def verify_payment(self, tran_ref: str) -> Dict[str, Any]:
        """Returns {success, status, cart_id}; status "A" means authorised"""
        if self.is_mock:
            return {"success": True, "status": "A"}

        data = await self._post("/payment/query", {
            "profile_id": self.profile_id,
            "tran_ref": tran_ref
        })
        result = data.get("payment_result") or {}
        status = result.get("response_status")

        return {
            "success": status == "A",
            "status": status,
            "cart_id": data.get("cart_id")
        }

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=30)) as session:
                async with session.post(
                    f"{self.base_url}{path}",
                    json=payload,
                    headers={"authorization": self.server_key}
                ) as response:
                    if response.status != 200:
                        body = await response.text()
                        raise PaymentGatewayError(
                            f"PayTabs responded {response.status}: {body[:200]}"
                        )
                    return await response.json()

        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            self.logger.error(f"PayTabs request {path} failed: {e}")
            raise PaymentGatewayError("Payment gateway unavailable") from e
