import json
from datetime import datetime, timezone
from decimal import Decimal

import asyncpg
import pytest

from gamesup.exceptions import AuthenticationError, DuplicateEmailError, InvalidRequestError
from gamesup.models.product import ProductInput
from gamesup.services.banner_service import BannerService
from gamesup.services.customer_service import CustomerService
from gamesup.services.order_service import OrderService
from gamesup.services.product_service import ProductService
from gamesup.services.settings_service import SettingsService
from gamesup.services.user_service import UserService
from gamesup.utils.security import hash_password


async def test_settings_fall_back_to_defaults(fake_db):
    fake_db.conn.fetch.return_value = [{"setting_key": "currency_code", "setting_value": "EGP"}]

    settings = await SettingsService(fake_db).get_all_settings()

    assert settings == {"currency_code": "EGP", "currency_symbol": "$", "tax_rate": "8.5"}


async def test_settings_are_written_as_text_in_one_transaction(fake_db):
    written = await SettingsService(fake_db).update_settings({"tax_rate": 10, "show_banner": True})

    rows = fake_db.conn.executemany.call_args.args[1]
    assert written == 2
    assert rows == [("tax_rate", "10"), ("show_banner", "true")]
    fake_db.conn.transaction.assert_called_once()


async def test_product_listing_filters(fake_db):
    fake_db.conn.fetch.return_value = [{
        "id": 1, "name": "Key", "price": Decimal("5.00"), "cost": Decimal(1), "stock": 3,
        "category_slug": "games", "attributes": "{}", "digital_items": '[{"code": "A"}]',
    }]

    products = await ProductService(fake_db).list_products(category="Games", search="ke", include_items=True)

    query, *params = fake_db.conn.fetch.call_args.args
    assert "p.category_slug = $1" in query
    assert "ILIKE $2" in query
    assert "json_agg" in query
    assert params == ["games", "%ke%"]
    assert products[0].digital_items[0].code == "A"


async def test_all_category_means_no_filter(fake_db):
    await ProductService(fake_db).list_products(category="All")

    query, *params = fake_db.conn.fetch.call_args.args
    assert "category_slug" not in query
    assert params == []


async def test_product_update_replaces_unsold_credentials_under_lock(fake_db):
    fake_db.conn.fetchval.return_value = 4
    data = ProductInput.model_validate({
        "name": "Key", "price": "$9.99", "stock": 2,
        "digitalItems": [{"code": "N1"}, {"code": "N2"}],
    })

    assert await ProductService(fake_db).update_product(4, data) is True

    lock_query = fake_db.conn.fetchval.call_args.args[0]
    statements = [call.args[0] for call in fake_db.conn.execute.call_args_list]
    inserted = fake_db.conn.executemany.call_args.args[1]
    assert "FOR UPDATE" in lock_query
    assert any("DELETE FROM digital_items" in s and "status = 'available'" in s for s in statements)
    assert inserted == [(4, None, None, "N1"), (4, None, None, "N2")]


async def test_update_of_missing_product(fake_db):
    fake_db.conn.fetchval.return_value = None
    data = ProductInput.model_validate({"name": "Key", "price": 1})

    assert await ProductService(fake_db).update_product(4, data) is False
    fake_db.conn.execute.assert_not_called()


async def test_new_product_stores_attributes_as_json(fake_db):
    fake_db.conn.fetchval.return_value = 11
    data = ProductInput.model_validate({"name": "Pad", "price": 20, "attributes": {"color": "black"}})

    product_id = await ProductService(fake_db).add_product(data)

    args = fake_db.conn.fetchval.call_args.args
    assert product_id == 11
    assert json.loads(args[-1]) == {"color": "black"}
    fake_db.conn.executemany.assert_not_called()


async def test_quick_stock_edit_rejects_negative(fake_db):
    with pytest.raises(ValueError):
        await ProductService(fake_db).quick_update_stock(1, -2)


async def test_line_edit_ignores_unknown_fields(fake_db):
    service = OrderService(fake_db)

    assert await service.update_line(5, {"hacker": "x"}) is False
    assert await service.update_line(5, {"customer": "Jo", "status": "Shipped"}) is True

    query, *params = fake_db.conn.execute.call_args.args
    assert "customer_name = $1" in query and "status = $2" in query
    assert params == ["Jo", "shipped", 5]


async def test_unknown_status_is_rejected(fake_db):
    with pytest.raises(InvalidRequestError):
        await OrderService(fake_db).update_status("ORD-1", "teleported")


async def test_duplicate_signup(fake_db):
    fake_db.conn.fetchrow.side_effect = asyncpg.UniqueViolationError("duplicate key")

    with pytest.raises(DuplicateEmailError):
        await CustomerService(fake_db).signup("jane@x.com", "pw")


async def test_customer_login_checks_password(fake_db):
    fake_db.conn.fetchrow.return_value = {
        "id": 1, "email": "jane@x.com", "name": "Jane", "phone": None,
        "password_hash": hash_password("right"),
    }
    service = CustomerService(fake_db)

    customer = await service.login("jane@x.com", "right")
    assert customer.id == 1

    with pytest.raises(AuthenticationError):
        await service.login("jane@x.com", "wrong")


async def test_customer_list_marks_big_spenders(fake_db):
    joined = datetime(2025, 1, 10, tzinfo=timezone.utc)
    fake_db.conn.fetch.return_value = [
        {"id": 1, "name": "Big", "email": "b@x.com", "phone": None, "created_at": joined,
         "orders_count": 12, "total_spent": Decimal("1500.00")},
        {"id": 2, "name": None, "email": "s@x.com", "phone": "055", "created_at": joined,
         "orders_count": 0, "total_spent": Decimal(0)},
    ]

    customers = await CustomerService(fake_db).get_customers()

    assert [c["status"] for c in customers] == ["VIP", "Regular"]
    assert customers[0]["spent"] == 1500.0
    assert customers[0]["phone"] == "N/A"
    assert customers[0]["joinDate"] == "Jan 2025"


async def test_staff_login_returns_role_permissions(fake_db):
    fake_db.conn.fetchrow.return_value = {
        "id": 3, "email": "admin@x.com", "name": "Admin", "role": "admin",
        "password_hash": hash_password("pw"), "permissions": '{"team": true}',
    }

    user = await UserService(fake_db).authenticate("admin@x.com", "pw")

    assert user.permissions == {"team": True}


async def test_staff_password_is_rehashed_on_update(fake_db):
    await UserService(fake_db).update_user(3, {"name": "New", "password": "changed"})

    query, *params = fake_db.conn.execute.call_args.args
    assert "name = $1" in query and "password_hash = $2" in query
    assert params[1].startswith("$2") and params[1] != "changed"
    assert params[-1] == 3


async def test_banner_dates_are_parsed(fake_db):
    await BannerService(fake_db).add_banner({"title": "Sale", "startDate": "2025-03-01T00:00:00Z", "endDate": ""})

    args = fake_db.conn.fetchval.call_args.args
    assert args[-2] == datetime(2025, 3, 1, tzinfo=timezone.utc)
    assert args[-1] is None


async def test_bad_banner_date(fake_db):
    with pytest.raises(InvalidRequestError):
        await BannerService(fake_db).add_banner({"startDate": "someday"})


async def test_get_product_is_none_when_missing(fake_db):
    fake_db.conn.fetch.return_value = []

    assert await ProductService(fake_db).get_product(99) is None

    query, *params = fake_db.conn.fetch.call_args.args
    assert "p.id = $1" in query
    assert params == [99]


async def test_signup_without_password_is_a_bad_request(fake_db):
    with pytest.raises(InvalidRequestError):
        await CustomerService(fake_db).signup("jane@x.com", "")

    fake_db.conn.fetchrow.assert_not_called()
