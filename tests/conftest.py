import pytest

from gamesup.services.order_service import OrderService

from .fakes import FakeDatabase, InMemoryShop


@pytest.fixture
def shop():
    return InMemoryShop()


@pytest.fixture
def order_service(shop):
    return OrderService(db=None, checkout_store=shop.store(), timeout=2)


@pytest.fixture
def fake_db():
    return FakeDatabase()
