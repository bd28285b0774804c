import asyncio
from decimal import Decimal

import pytest

from gamesup.exceptions import (
    OrderNumberCollisionError,
    OutOfStockError,
    ProductNotFoundError,
    TransientCheckoutError,
)
from gamesup.models.order import CheckoutRequest, OrderStatus
from gamesup.services import order_service as order_module
from gamesup.services.order_service import OrderService


def checkout(items, payment_method='cod', name='Jane', email='jane@x.com'):
    return CheckoutRequest.model_validate({
        "customerName": name,
        "customerEmail": email,
        "paymentMethod": payment_method,
        "items": items,
    })


async def test_two_units_take_credentials_in_order(shop, order_service):
    shop.add_product(1, "P1", stock=5, credentials=[{"code": "A"}, {"code": "B"}])

    result = await order_service.create_order(
        checkout([{"productId": 1, "quantity": 2, "unitPrice": 10.00}])
    )

    lines = shop.lines_for(result.order_number)
    assert len(lines) == 2
    assert {line.order_number for line in lines} == {result.order_number}
    assert [line.status for line in lines] == ["pending", "pending"]
    assert [line.digital_code for line in lines] == ["A", "B"]
    assert shop.stock(1) == 3
    assert shop.available(1) == []
    assert [item.digital_item.code for item in result.purchased_items] == ["A", "B"]


async def test_out_of_stock_leaves_product_untouched(shop, order_service):
    shop.add_product(1, "P1", stock=1)

    with pytest.raises(OutOfStockError) as excinfo:
        await order_service.create_order(
            checkout([{"productId": 1, "quantity": 2, "unitPrice": 10.00}])
        )

    assert excinfo.value.product_name == "P1"
    assert "P1" in excinfo.value.reason
    assert shop.orders == []
    assert shop.stock(1) == 1


async def test_failure_on_second_line_rolls_back_first_line(shop, order_service):
    shop.add_product(1, "Headset", stock=3, credentials=[{"email": "a@x.com", "password": "pw"}])
    shop.add_product(2, "Controller", stock=0)

    with pytest.raises(OutOfStockError) as excinfo:
        await order_service.create_order(checkout([
            {"productId": 1, "quantity": 1, "unitPrice": 5},
            {"productId": 2, "quantity": 1, "unitPrice": 7},
        ]))

    assert excinfo.value.product_name == "Controller"
    assert shop.orders == []
    assert shop.stock(1) == 3
    assert [item.email for item in shop.available(1)] == ["a@x.com"]
    assert shop.rollbacks == 1
    assert shop.commits == 0


async def test_unknown_product_aborts_checkout(shop, order_service):
    shop.add_product(1, "P1", stock=2)

    with pytest.raises(ProductNotFoundError) as excinfo:
        await order_service.create_order(checkout([
            {"productId": 1, "quantity": 1, "unitPrice": 10},
            {"productId": 99, "quantity": 1, "unitPrice": 10, "name": "Ghost Game"},
        ]))

    assert excinfo.value.reason == "Product Ghost Game not found"
    assert shop.orders == []
    assert shop.stock(1) == 2


async def test_credential_is_sold_even_when_stock_counter_is_zero(shop, order_service):
    shop.add_product(1, "Gift Card", stock=0, credentials=[{"code": "GC-1"}])

    result = await order_service.create_order(
        checkout([{"productId": 1, "quantity": 1, "unitPrice": 25}])
    )

    assert result.purchased_items[0].digital_item.code == "GC-1"
    assert shop.stock(1) == 0


async def test_physical_goods_are_sold_without_credentials(shop, order_service):
    shop.add_product(1, "Console", stock=4, price='499.00', cost='420.00')

    result = await order_service.create_order(
        checkout([{"productId": 1, "quantity": 2, "unitPrice": "$499.00"}])
    )

    lines = shop.lines_for(result.order_number)
    assert [line.digital_item for line in lines] == [None, None]
    assert all(line.amount == Decimal("499.00") for line in lines)
    assert all(line.cost == Decimal("420.00") for line in lines)
    assert shop.stock(1) == 2


async def test_lines_of_one_checkout_share_number_customer_time_and_status(shop, order_service):
    shop.add_product(1, "P1", stock=5, credentials=[{"code": c} for c in "XYZ"])
    shop.add_product(2, "P2", stock=5)

    result = await order_service.create_order(checkout([
        {"productId": 1, "quantity": 3, "unitPrice": 10},
        {"productId": 2, "quantity": 1, "unitPrice": 3},
    ], payment_method='instapay'))

    lines = shop.lines_for(result.order_number)
    assert len(lines) == 4
    assert {line.customer_email for line in lines} == {"jane@x.com"}
    assert {line.date for line in lines} == {lines[0].date}
    assert {line.status for line in lines} == {OrderStatus.PENDING_APPROVAL.value}
    assert [line.digital_code for line in lines[:3]] == ["X", "Y", "Z"]
    assert [line.product_name for line in lines] == ["P1", "P1", "P1", "P2"]


async def test_card_is_the_default_payment_method(shop, order_service):
    shop.add_product(1, "P1", stock=1)

    result = await order_service.create_order(
        checkout([{"id": 1, "quantity": 1, "price": 10}], payment_method=None)
    )

    line = shop.lines_for(result.order_number)[0]
    assert line.payment_method == "card"
    assert line.status == "pending"


async def test_concurrent_checkouts_do_not_oversell(shop, order_service):
    shop.add_product(1, "Last Copy", stock=1)

    results = await asyncio.gather(
        order_service.create_order(checkout([{"productId": 1, "quantity": 1, "unitPrice": 10}])),
        order_service.create_order(checkout([{"productId": 1, "quantity": 1, "unitPrice": 10}])),
        return_exceptions=True,
    )

    failures = [r for r in results if isinstance(r, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], OutOfStockError)
    assert len(shop.orders) == 1
    assert shop.stock(1) == 0


async def test_each_credential_is_assigned_once_under_contention(shop, order_service):
    codes = [f"KEY-{n}" for n in range(5)]
    shop.add_product(1, "Game Key", stock=5, credentials=[{"code": code} for code in codes])

    results = await asyncio.gather(*[
        order_service.create_order(
            checkout([{"productId": 1, "quantity": 1, "unitPrice": 10}], email=f"buyer{n}@x.com")
        )
        for n in range(6)
    ], return_exceptions=True)

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assigned = [line.digital_code for line in shop.orders]

    assert len(successes) == 5
    assert len(failures) == 1 and isinstance(failures[0], OutOfStockError)
    assert sorted(assigned) == sorted(codes)
    assert len({line.inventory_id for line in shop.orders}) == 5
    assert len({r.order_number for r in successes}) == 5
    assert shop.stock(1) == 0


async def test_lock_wait_past_timeout_is_transient(shop):
    shop.add_product(1, "P1", stock=3)
    service = OrderService(db=None, checkout_store=shop.store(), timeout=0.05)

    # another checkout is holding the product row
    await shop.locks[1].acquire()
    try:
        with pytest.raises(TransientCheckoutError) as excinfo:
            await service.create_order(checkout([{"productId": 1, "quantity": 1, "unitPrice": 10}]))
    finally:
        shop.locks[1].release()

    assert excinfo.value.retryable is True
    assert shop.orders == []
    assert shop.stock(1) == 3
    assert shop.reserved_numbers == set()


async def test_order_number_collisions_give_up_after_retries(shop, order_service, monkeypatch):
    shop.add_product(1, "P1", stock=3)
    shop.reserved_numbers.add("ORD-1-TAKEN")
    monkeypatch.setattr(order_module, "generate_order_number", lambda: "ORD-1-TAKEN")

    with pytest.raises(OrderNumberCollisionError) as excinfo:
        await order_service.create_order(checkout([{"productId": 1, "quantity": 1, "unitPrice": 10}]))

    assert excinfo.value.retryable is True
    assert shop.stock(1) == 3


def test_generated_order_numbers_are_distinct():
    numbers = {order_module.generate_order_number() for _ in range(500)}
    assert len(numbers) == 500
    assert all(number.startswith("ORD-") for number in numbers)
