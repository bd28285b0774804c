# gamesup/services/product_service.py
import json
import logging
from typing import List, Optional
from ..models.product import DigitalItem, Product, ProductInput

# available credentials, oldest first, as a JSON array
DIGITAL_ITEMS_COLUMN = """
    COALESCE((
        SELECT json_agg(json_build_object(
            'email', d.email, 'password', d.password, 'code', d.code
        ) ORDER BY d.id)
        FROM digital_items d
        WHERE d.product_id = p.id AND d.status = 'available'
    ), '[]') AS digital_items
"""

class ProductService:
    def __init__(self, db):
        self.db = db
        self.logger = logging.getLogger(__name__)

    async def list_products(self, product_id: Optional[int] = None, category: Optional[str] = None,
                            search: Optional[str] = None, include_items: bool = False) -> List[Product]:
        """Catalog listing; credentials are only loaded for admin screens"""
        columns = f"p.*, {DIGITAL_ITEMS_COLUMN}" if include_items else "p.*"
        query = f"SELECT {columns} FROM products p WHERE 1=1"
        params = []
        param_index = 1

        if product_id is not None:
            query += f" AND p.id = ${param_index}"
            params.append(product_id)
            param_index += 1
        elif category and category.lower() != 'all':
            query += f" AND p.category_slug = ${param_index}"
            params.append(category.lower())
            param_index += 1

        if search:
            query += f" AND (p.name ILIKE ${param_index} OR p.description ILIKE ${param_index})"
            params.append(f"%{search}%")
            param_index += 1

        query += " ORDER BY p.id"

        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch(query, *params)
            return [Product.model_validate(dict(row)) for row in rows]

    async def get_product(self, product_id: int, include_items: bool = False) -> Optional[Product]:
        products = await self.list_products(product_id=product_id, include_items=include_items)
        return products[0] if products else None

    async def add_product(self, data: ProductInput) -> int:
        """Create a product together with its credential pool"""
        async with self.db.pool.acquire() as conn:
            async with conn.transaction():
                product_id = await conn.fetchval("""
                    INSERT INTO products (
                        name, category_slug, sub_category_slug, price, cost,
                        stock, image, description, attributes
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                    RETURNING id
                """,
                    data.name,
                    data.category_slug,
                    data.sub_category or None,
                    data.price,
                    data.cost,
                    data.stock,
                    data.image,
                    data.description or '',
                    json.dumps(data.attributes)
                )
                await self._insert_digital_items(conn, product_id, data.credentials)

        self.logger.info(f"Product {product_id} created with {len(data.credentials)} credentials")
        return product_id

    async def update_product(self, product_id: int, data: ProductInput) -> bool:
        """Replace a product and its unsold credentials.

        Takes the same row lock as checkout, so an edit waits for in-flight
        orders of this product and they in turn see the edited pool.
        Credentials already sold stay attached to their order lines.
        """
        async with self.db.pool.acquire() as conn:
            async with conn.transaction():
                exists = await conn.fetchval("""
                    SELECT id FROM products WHERE id = $1 FOR UPDATE
                """, product_id)
                if not exists:
                    return False

                await conn.execute("""
                    UPDATE products
                    SET name = $1, category_slug = $2, sub_category_slug = $3,
                        price = $4, cost = $5, stock = $6, image = $7,
                        description = $8, attributes = $9
                    WHERE id = $10
                """,
                    data.name,
                    data.category_slug,
                    data.sub_category or None,
                    data.price,
                    data.cost,
                    data.stock,
                    data.image,
                    data.description or '',
                    json.dumps(data.attributes),
                    product_id
                )

                await conn.execute("""
                    DELETE FROM digital_items
                    WHERE product_id = $1 AND status = 'available'
                """, product_id)
                await self._insert_digital_items(conn, product_id, data.credentials)

                return True

    async def quick_update_stock(self, product_id: int, stock: int) -> bool:
        """Quick stock edit from the product table"""
        if stock < 0:
            raise ValueError("stock cannot be negative")
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                UPDATE products SET stock = $1 WHERE id = $2
            """, stock, product_id)
            return result == "UPDATE 1"

    async def delete_product(self, product_id: int) -> bool:
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                DELETE FROM products WHERE id = $1
            """, product_id)
            return result == "DELETE 1"

    @staticmethod
    async def _insert_digital_items(conn, product_id: int, items: List[DigitalItem]):
        if not items:
            return
        await conn.executemany("""
            INSERT INTO digital_items (product_id, email, password, code)
            VALUES ($1, $2, $3, $4)
        """, [(product_id, item.email, item.password, item.code) for item in items])
