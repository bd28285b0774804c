"""Allocation against a real PostgreSQL database.

Runs only when TEST_DATABASE_URL points at a disposable database; the
migrations are applied on connect.
"""
import asyncio
import os
import uuid

import pytest

from gamesup.database import Database, PostgresCheckoutStore
from gamesup.exceptions import OutOfStockError
from gamesup.models.order import CheckoutRequest
from gamesup.services.order_service import OrderService
from gamesup.services.payment_service import PaymentService

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

pytestmark = pytest.mark.skipif(not TEST_DATABASE_URL, reason="TEST_DATABASE_URL not set")


@pytest.fixture
async def db():
    database = Database(TEST_DATABASE_URL)
    await database.connect()
    yield database
    await database.close()


@pytest.fixture
async def product(db):
    """A product with stock 5 and credentials A, B; removed with its orders afterwards"""
    name = f"P1-{uuid.uuid4().hex[:6]}"
    async with db.pool.acquire() as conn:
        product_id = await conn.fetchval("""
            INSERT INTO products (name, price, cost, stock) VALUES ($1, 10, 4, 5) RETURNING id
        """, name)
        await conn.executemany("""
            INSERT INTO digital_items (product_id, code) VALUES ($1, $2)
        """, [(product_id, "A"), (product_id, "B")])

    yield product_id, name

    async with db.pool.acquire() as conn:
        await conn.execute("DELETE FROM orders WHERE product_id = $1", product_id)
        await conn.execute("DELETE FROM products WHERE id = $1", product_id)


def checkout(product_id, quantity=1):
    return CheckoutRequest.model_validate({
        "customerName": "Jane",
        "customerEmail": "jane@x.com",
        "paymentMethod": "cod",
        "items": [{"productId": product_id, "quantity": quantity, "unitPrice": 10}],
    })


async def product_state(db, product_id):
    async with db.pool.acquire() as conn:
        stock = await conn.fetchval("SELECT stock FROM products WHERE id = $1", product_id)
        available = await conn.fetch("""
            SELECT code FROM digital_items
            WHERE product_id = $1 AND status = 'available'
            ORDER BY id
        """, product_id)
        lines = await conn.fetch("""
            SELECT order_number, status, digital_code, inventory_id FROM orders
            WHERE product_id = $1
            ORDER BY id
        """, product_id)
    return stock, [row["code"] for row in available], lines


async def test_two_units_consume_both_credentials(db, product):
    product_id, _ = product
    service = OrderService(db, PostgresCheckoutStore(db))

    result = await service.create_order(checkout(product_id, quantity=2))

    stock, available, lines = await product_state(db, product_id)
    assert stock == 3
    assert available == []
    assert [line["digital_code"] for line in lines] == ["A", "B"]
    assert {line["order_number"] for line in lines} == {result.order_number}
    assert {line["status"] for line in lines} == {"pending"}


async def test_concurrent_checkouts_never_share_a_credential(db, product):
    product_id, _ = product
    async with db.pool.acquire() as conn:
        await conn.execute("UPDATE products SET stock = 0 WHERE id = $1", product_id)
    service = OrderService(db, PostgresCheckoutStore(db))

    results = await asyncio.gather(
        *[service.create_order(checkout(product_id)) for _ in range(3)],
        return_exceptions=True,
    )

    stock, available, lines = await product_state(db, product_id)
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(failures) == 1 and isinstance(failures[0], OutOfStockError)
    assert sorted(line["digital_code"] for line in lines) == ["A", "B"]
    assert len({line["inventory_id"] for line in lines}) == 2
    assert stock == 0


async def test_failed_checkout_leaves_no_trace(db, product):
    product_id, name = product
    async with db.pool.acquire() as conn:
        await conn.execute("DELETE FROM digital_items WHERE product_id = $1", product_id)
        await conn.execute("UPDATE products SET stock = 1 WHERE id = $1", product_id)
    service = OrderService(db, PostgresCheckoutStore(db))

    with pytest.raises(OutOfStockError) as excinfo:
        await service.create_order(checkout(product_id, quantity=2))

    stock, _, lines = await product_state(db, product_id)
    assert excinfo.value.product_name == name
    assert stock == 1
    assert lines == []


async def test_payment_verification_is_idempotent(db, product):
    product_id, _ = product
    orders = OrderService(db, PostgresCheckoutStore(db))
    result = await orders.create_order(checkout(product_id, quantity=2))
    payments = PaymentService(orders)
    payments.gateway.profile_id = ""

    first = await payments.verify_payment("T1", result.order_number)
    second = await payments.verify_payment("T1", result.order_number)

    assert first["updated"] == 2
    assert second["updated"] == 0
    assert await orders.get_status(result.order_number) == "paid"
