# gamesup/database/checkout_store.py
"""Transactional storage used by the checkout allocation.

A unit of work wraps one database transaction. Leaving the ``async with``
block normally commits; any exception rolls back everything done inside it.
Product rows are locked with ``SELECT ... FOR UPDATE`` so checkouts touching
the same product serialize, and credentials are handed out oldest first.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional, Protocol, Tuple
import asyncpg
from ..config import Config
from ..exceptions import TransientCheckoutError
from ..models.order import OrderLine
from ..models.product import DigitalItem, Product

# Failures worth resubmitting the cart for
TRANSIENT_ERRORS = (
    asyncpg.exceptions.LockNotAvailableError,
    asyncpg.exceptions.QueryCanceledError,
    asyncpg.exceptions.SerializationError,
    asyncpg.exceptions.DeadlockDetectedError,
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.TooManyConnectionsError,
    asyncpg.exceptions.CannotConnectNowError,
    ConnectionError,
    asyncio.TimeoutError,
)


class CheckoutUnitOfWork(Protocol):
    async def lock_product(self, product_id: int) -> Optional[Product]:
        """Read the product and hold its row lock until the unit of work ends"""

    async def take_digital_item(self, product_id: int) -> Optional[Tuple[int, DigitalItem]]:
        """Mark the oldest available credential assigned and return (inventory id, credential)"""

    async def set_stock(self, product_id: int, stock: int) -> None:
        ...

    async def order_number_exists(self, order_number: str) -> bool:
        ...

    async def insert_order_line(self, line: OrderLine) -> int:
        ...


class CheckoutStore(Protocol):
    def unit_of_work(self):
        """Async context manager yielding a CheckoutUnitOfWork"""


class PostgresUnitOfWork:
    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def lock_product(self, product_id: int) -> Optional[Product]:
        row = await self.conn.fetchrow("""
            SELECT id, name, price, cost, stock, image
            FROM products
            WHERE id = $1
            FOR UPDATE
        """, product_id)
        return Product.model_validate(dict(row)) if row else None

    async def take_digital_item(self, product_id: int) -> Optional[Tuple[int, DigitalItem]]:
        row = await self.conn.fetchrow("""
            UPDATE digital_items
            SET status = 'assigned', assigned_at = NOW()
            WHERE id = (
                SELECT id FROM digital_items
                WHERE product_id = $1 AND status = 'available'
                ORDER BY id
                LIMIT 1
                FOR UPDATE SKIP LOCKED
            )
            RETURNING id, email, password, code
        """, product_id)
        if not row:
            return None
        return row['id'], DigitalItem(email=row['email'], password=row['password'], code=row['code'])

    async def set_stock(self, product_id: int, stock: int) -> None:
        await self.conn.execute("""
            UPDATE products SET stock = $1 WHERE id = $2
        """, stock, product_id)

    async def order_number_exists(self, order_number: str) -> bool:
        # held until commit so two checkouts cannot both claim the same number
        await self.conn.execute(
            "SELECT pg_advisory_xact_lock(hashtext($1))", order_number
        )
        return await self.conn.fetchval("""
            SELECT EXISTS (SELECT 1 FROM orders WHERE order_number = $1)
        """, order_number)

    async def insert_order_line(self, line: OrderLine) -> int:
        return await self.conn.fetchval("""
            INSERT INTO orders (
                order_number, customer_name, customer_email, product_id,
                product_name, amount, cost, status, date,
                digital_email, digital_password, digital_code, inventory_id,
                payment_method, payment_proof
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15)
            RETURNING id
        """,
            line.order_number,
            line.customer_name,
            line.customer_email,
            line.product_id,
            line.product_name,
            line.amount,
            line.cost,
            line.status,
            line.date or datetime.now().astimezone(),
            line.digital_email,
            line.digital_password,
            line.digital_code,
            line.inventory_id,
            line.payment_method,
            line.payment_proof
        )


class PostgresCheckoutStore:
    """CheckoutStore over the shared asyncpg pool (READ COMMITTED + row locks)"""

    def __init__(self, db, lock_timeout_ms: Optional[int] = None):
        self.db = db
        self.lock_timeout_ms = lock_timeout_ms or Config.CHECKOUT_LOCK_TIMEOUT_MS
        self.logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[PostgresUnitOfWork]:
        try:
            async with self.db.pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(
                        f"SET LOCAL lock_timeout = {int(self.lock_timeout_ms)}"
                    )
                    yield PostgresUnitOfWork(conn)
        except TRANSIENT_ERRORS as e:
            self.logger.warning(f"Checkout transaction aborted: {e!r}")
            raise TransientCheckoutError(
                "The store is busy, please submit the order again"
            ) from e
