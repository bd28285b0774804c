"""In-memory stand-ins for the database used by the test suite"""
import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

from gamesup.models.order import OrderLine
from gamesup.models.product import DigitalItem, Product


class InMemoryShop:
    """Products, credential pools and order lines with row-lock semantics.

    A product lock taken inside a unit of work is held until the unit of work
    ends, like SELECT ... FOR UPDATE inside a transaction. Every mutation
    records an undo step; a failed unit of work replays them in reverse.
    """

    def __init__(self):
        self.products: Dict[int, Dict[str, Any]] = {}
        self.digital_items: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
        self.orders: List[OrderLine] = []
        self.locks: Dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.reserved_numbers = set()
        self.commits = 0
        self.rollbacks = 0
        self._next_item_id = 1
        self._next_line_id = 1

    def add_product(self, product_id: int, name: str, stock: int, price='10.00',
                    cost='4.00', credentials: Optional[List[Dict[str, str]]] = None,
                    image: Optional[str] = None):
        self.products[product_id] = {
            "name": name,
            "price": Decimal(price),
            "cost": Decimal(cost),
            "stock": stock,
            "image": image or f"https://img.example/{product_id}.png",
        }
        for credential in credentials or []:
            self.digital_items[product_id].append({
                "id": self._next_item_id,
                "item": DigitalItem(**credential),
                "status": "available",
            })
            self._next_item_id += 1

    def stock(self, product_id: int) -> int:
        return self.products[product_id]["stock"]

    def available(self, product_id: int) -> List[DigitalItem]:
        return [
            entry["item"] for entry in self.digital_items[product_id]
            if entry["status"] == "available"
        ]

    def lines_for(self, order_number: str) -> List[OrderLine]:
        return [line for line in self.orders if line.order_number == order_number]

    def store(self) -> "InMemoryCheckoutStore":
        return InMemoryCheckoutStore(self)


class InMemoryUnitOfWork:
    def __init__(self, shop: InMemoryShop):
        self.shop = shop
        self.held: List[asyncio.Lock] = []
        self.undo: List[Any] = []

    async def lock_product(self, product_id: int) -> Optional[Product]:
        await asyncio.sleep(0)
        if product_id not in self.shop.products:
            return None

        lock = self.shop.locks[product_id]
        if lock not in self.held:
            await lock.acquire()
            self.held.append(lock)

        row = self.shop.products[product_id]
        return Product(id=product_id, **row)

    async def take_digital_item(self, product_id: int):
        await asyncio.sleep(0)
        for entry in self.shop.digital_items[product_id]:
            if entry["status"] == "available":
                entry["status"] = "assigned"
                self.undo.append(lambda entry=entry: entry.update(status="available"))
                return entry["id"], entry["item"]
        return None

    async def set_stock(self, product_id: int, stock: int) -> None:
        await asyncio.sleep(0)
        if stock < 0:
            raise ValueError("stock check constraint violated")
        row = self.shop.products[product_id]
        previous = row["stock"]
        row["stock"] = stock
        self.undo.append(lambda: row.update(stock=previous))

    async def order_number_exists(self, order_number: str) -> bool:
        await asyncio.sleep(0)
        taken = order_number in self.shop.reserved_numbers or any(
            line.order_number == order_number for line in self.shop.orders
        )
        if not taken:
            self.shop.reserved_numbers.add(order_number)
            self.undo.append(lambda: self.shop.reserved_numbers.discard(order_number))
        return taken

    async def insert_order_line(self, line: OrderLine) -> int:
        await asyncio.sleep(0)
        stored = line.model_copy(update={"id": self.shop._next_line_id})
        self.shop._next_line_id += 1
        self.shop.orders.append(stored)
        self.undo.append(lambda: self.shop.orders.remove(stored))
        return stored.id

    def rollback(self):
        for step in reversed(self.undo):
            step()
        self.undo.clear()

    def release(self):
        for lock in self.held:
            lock.release()
        self.held.clear()


class InMemoryCheckoutStore:
    def __init__(self, shop: InMemoryShop):
        self.shop = shop

    @asynccontextmanager
    async def unit_of_work(self):
        uow = InMemoryUnitOfWork(self.shop)
        try:
            yield uow
        except BaseException:
            uow.rollback()
            self.shop.rollbacks += 1
            raise
        else:
            self.shop.commits += 1
        finally:
            uow.release()


class FakeTransaction:
    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeConnection:
    """asyncpg connection double; configure return values per test"""

    def __init__(self):
        self.fetch = AsyncMock(return_value=[])
        self.fetchrow = AsyncMock(return_value=None)
        self.fetchval = AsyncMock(return_value=None)
        self.execute = AsyncMock(return_value="UPDATE 1")
        self.executemany = AsyncMock(return_value=None)
        self.transaction = MagicMock(side_effect=lambda: FakeTransaction())


class FakePool:
    def __init__(self, conn: FakeConnection):
        self.conn = conn

    @asynccontextmanager
    async def acquire(self):
        yield self.conn


class FakeDatabase:
    def __init__(self, conn: Optional[FakeConnection] = None):
        self.conn = conn or FakeConnection()
        self.pool = FakePool(self.conn)
