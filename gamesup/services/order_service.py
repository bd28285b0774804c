# gamesup/services/order_service.py
import asyncio
import logging
import time
import uuid
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional
from ..config import Config
from ..database.checkout_store import CheckoutStore, CheckoutUnitOfWork, PostgresCheckoutStore
from ..exceptions import (
    CheckoutError,
    InvalidRequestError,
    OrderNumberCollisionError,
    OutOfStockError,
    ProductNotFoundError,
    TransientCheckoutError,
)
from ..models.order import (
    CartItem,
    CheckoutRequest,
    CheckoutResult,
    Order,
    OrderItem,
    OrderLine,
    OrderStatus,
    PurchasedItem,
)

PLACEHOLDER_IMAGE = 'https://via.placeholder.com/150'
ORDER_NUMBER_ATTEMPTS = 5

# request field -> orders column
EDITABLE_LINE_FIELDS = {
    'customer': 'customer_name',
    'email': 'customer_email',
    'product': 'product_name',
    'digital_email': 'digital_email',
    'digital_password': 'digital_password',
    'digital_code': 'digital_code',
    'inventory_id': 'inventory_id',
    'status': 'status',
}


def generate_order_number() -> str:
    return f"ORD-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8].upper()}"


def group_order_lines(rows: Iterable[Mapping[str, Any]]) -> List[Order]:
    """Fold per-unit rows into orders, keeping the order rows arrive in"""
    orders: "OrderedDict[str, Order]" = OrderedDict()

    for row in rows:
        line = OrderLine.model_validate(dict(row))
        order = orders.get(line.group_key)
        if order is None:
            order = Order(
                order_number=line.group_key,
                date=line.date,
                status=line.status,
                customer_name=line.customer_name,
                customer_email=line.customer_email,
                payment_method=line.payment_method
            )
            orders[line.group_key] = order

        order.total += line.amount
        order.items.append(OrderItem(
            name=line.product_name,
            price=line.amount,
            image=row.get('image') or PLACEHOLDER_IMAGE,
            digital_email=line.digital_email,
            digital_password=line.digital_password,
            digital_code=line.digital_code
        ))

    return list(orders.values())


class OrderService:
    def __init__(self, db, checkout_store: Optional[CheckoutStore] = None,
                 timeout: Optional[float] = None):
        self.db = db
        self.checkout_store = checkout_store or PostgresCheckoutStore(db)
        self.timeout = timeout or Config.CHECKOUT_TIMEOUT_SECONDS
        self.logger = logging.getLogger(__name__)

    async def create_order(self, request: CheckoutRequest) -> CheckoutResult:
        """Turn a cart into order lines, consuming stock and credentials atomically.

        Every unit of every cart line is allocated inside one transaction.
        If any unit fails (unknown product, nothing left to sell) the whole
        checkout is rolled back and the error names the product.
        """
        status = request.payment_method.initial_status

        try:
            result = await asyncio.wait_for(
                self._allocate(request, status),
                timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            self.logger.warning(f"Checkout for {request.customer_email} timed out")
            raise TransientCheckoutError(
                "The order took too long to process, please try again"
            ) from e
        except CheckoutError as e:
            self.logger.info(f"Checkout for {request.customer_email} rolled back: {e.reason}")
            raise

        self.logger.info(
            f"Order {result.order_number} placed by {request.customer_email} "
            f"({len(result.purchased_items)} units, {status.value})"
        )
        return result

    async def _allocate(self, request: CheckoutRequest, status: OrderStatus) -> CheckoutResult:
        purchased: List[PurchasedItem] = []

        async with self.checkout_store.unit_of_work() as uow:
            order_number = await self._reserve_order_number(uow)
            placed_at = datetime.now(timezone.utc)

            for item in request.items:
                for _ in range(item.quantity):
                    purchased.append(await self._allocate_unit(
                        uow, item, request, order_number, status, placed_at
                    ))

        return CheckoutResult(order_number=order_number, purchased_items=purchased)

    async def _reserve_order_number(self, uow: CheckoutUnitOfWork) -> str:
        for _ in range(ORDER_NUMBER_ATTEMPTS):
            order_number = generate_order_number()
            if not await uow.order_number_exists(order_number):
                return order_number
            self.logger.warning(f"Order number {order_number} already taken, regenerating")
        raise OrderNumberCollisionError("Could not allocate an order number, please try again")

    async def _allocate_unit(self, uow: CheckoutUnitOfWork, item: CartItem,
                             request: CheckoutRequest, order_number: str,
                             status: OrderStatus, placed_at: datetime) -> PurchasedItem:
        product = await uow.lock_product(item.product_id)
        if product is None:
            raise ProductNotFoundError(item.label)

        taken = await uow.take_digital_item(product.id)
        if taken is None and product.stock <= 0:
            raise OutOfStockError(product.name)

        inventory_id, digital_item = taken if taken else (None, None)

        await uow.set_stock(product.id, max(0, product.stock - 1))

        await uow.insert_order_line(OrderLine(
            order_number=order_number,
            customer_name=request.customer_name,
            customer_email=request.customer_email,
            product_id=product.id,
            product_name=product.name,
            amount=item.unit_price,
            cost=product.cost,
            status=status.value,
            date=placed_at,
            payment_method=request.payment_method.value,
            payment_proof=request.payment_proof,
            digital_email=digital_item.email if digital_item else None,
            digital_password=digital_item.password if digital_item else None,
            digital_code=digital_item.code if digital_item else None,
            inventory_id=inventory_id
        ))

        return PurchasedItem(
            product_name=product.name,
            image=product.image,
            price=item.unit_price,
            digital_item=digital_item
        )

    async def list_lines(self, status: Optional[str] = None, search: Optional[str] = None,
                         email: Optional[str] = None) -> List[OrderLine]:
        """Admin order list: one entry per purchased unit, newest first"""
        query = "SELECT * FROM orders WHERE 1=1"
        params = []
        param_index = 1

        if status and status.lower() != 'all':
            query += f" AND status = ${param_index}"
            params.append(status.lower())
            param_index += 1

        if email:
            query += f" AND customer_email = ${param_index}"
            params.append(email)
            param_index += 1

        if search:
            query += f" AND (order_number ILIKE ${param_index} OR customer_name ILIKE ${param_index})"
            params.append(f"%{search}%")
            param_index += 1

        query += " ORDER BY date DESC, id"

        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch(query, *params)
            return [OrderLine.model_validate(dict(row)) for row in rows]

    async def get_customer_orders(self, email: str) -> List[Order]:
        """A customer's orders with their lines grouped under each order number"""
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT o.*,
                    (SELECT p.image FROM products p
                     WHERE p.id = o.product_id
                        OR (o.product_id IS NULL AND p.name = o.product_name)
                     ORDER BY p.id
                     LIMIT 1) AS image
                FROM orders o
                WHERE o.customer_email = $1
                ORDER BY o.date DESC, o.id
            """, email)
            return group_order_lines(rows)

    async def get_order(self, order_number: str) -> Optional[Order]:
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT o.*, p.image
                FROM orders o
                LEFT JOIN products p ON p.id = o.product_id
                WHERE o.order_number = $1
                ORDER BY o.id
            """, order_number)
            orders = group_order_lines(rows)
            return orders[0] if orders else None

    async def get_status(self, order_number: str) -> Optional[str]:
        async with self.db.pool.acquire() as conn:
            return await conn.fetchval("""
                SELECT status FROM orders
                WHERE order_number = $1
                ORDER BY id
                LIMIT 1
            """, order_number)

    async def update_line(self, line_id: int, changes: Dict[str, Any]) -> bool:
        """Admin edit of a single line; keys outside EDITABLE_LINE_FIELDS are ignored"""
        query_parts = []
        params = []
        param_count = 1

        for key, column in EDITABLE_LINE_FIELDS.items():
            if key not in changes:
                continue
            value = changes[key]
            if column == 'status':
                value = self._check_status(value)
            query_parts.append(f"{column} = ${param_count}")
            params.append(value)
            param_count += 1

        if not query_parts:
            return False

        params.append(line_id)
        query = f"""
            UPDATE orders
            SET {', '.join(query_parts)}
            WHERE id = ${param_count}
        """

        async with self.db.pool.acquire() as conn:
            result = await conn.execute(query, *params)
            return result == "UPDATE 1"

    async def update_status(self, order_number: str, status: str) -> int:
        """Move every line of an order to a new status; returns lines changed"""
        status = self._check_status(status)
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                UPDATE orders SET status = $1
                WHERE order_number = $2
            """, status, order_number)
            return int(result.split()[-1])

    async def mark_paid(self, order_number: str, transaction_ref: str) -> int:
        """Advance unpaid lines to paid; repeated calls change nothing"""
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                UPDATE orders
                SET status = $1, transaction_ref = $2
                WHERE order_number = $3 AND status <> $1
            """, OrderStatus.PAID.value, transaction_ref, order_number)
            return int(result.split()[-1])

    async def list_sold_items(self) -> List[OrderLine]:
        """Lines that carry a delivered credential"""
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT * FROM orders
                WHERE digital_email IS NOT NULL
                   OR digital_password IS NOT NULL
                   OR digital_code IS NOT NULL
                ORDER BY date DESC, id
            """)
            return [OrderLine.model_validate(dict(row)) for row in rows]

    @staticmethod
    def _check_status(status: Any) -> str:
        try:
            return OrderStatus(str(status).lower()).value
        except ValueError:
            raise InvalidRequestError(f"Unknown order status: {status}")
