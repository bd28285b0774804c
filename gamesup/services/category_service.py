# gamesup/services/category_service.py
import json
from typing import Any, Dict, List
from ..models.category import AttributeDefinition, Category, SubCategory

class CategoryService:
    """Catalog taxonomy: categories, sub-categories and attribute definitions"""

    def __init__(self, db):
        self.db = db

    # Categories

    async def get_categories(self) -> List[Category]:
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT * FROM categories ORDER BY display_order ASC, id
            """)
            return [Category.model_validate(dict(row)) for row in rows]

    async def add_category(self, data: Dict[str, Any]) -> int:
        async with self.db.pool.acquire() as conn:
            return await conn.fetchval("""
                INSERT INTO categories (name, slug, icon, display_order, is_active)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING id
            """,
                data['name'],
                data['slug'],
                data.get('icon'),
                data.get('displayOrder') or 0,
                data.get('isActive', True)
            )

    async def update_category(self, category_id: int, data: Dict[str, Any]) -> bool:
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                UPDATE categories
                SET name = $1, slug = $2, icon = $3, display_order = $4, is_active = $5
                WHERE id = $6
            """,
                data['name'],
                data['slug'],
                data.get('icon'),
                data.get('displayOrder') or 0,
                data.get('isActive', True),
                category_id
            )
            return result == "UPDATE 1"

    async def delete_category(self, category_id: int) -> bool:
        """Sub-categories go with it (ON DELETE CASCADE)"""
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                DELETE FROM categories WHERE id = $1
            """, category_id)
            return result == "DELETE 1"

    # Sub-categories

    async def get_subcategories(self) -> List[SubCategory]:
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT * FROM sub_categories ORDER BY display_order ASC, id
            """)
            return [SubCategory.model_validate(dict(row)) for row in rows]

    async def add_subcategory(self, data: Dict[str, Any]) -> int:
        async with self.db.pool.acquire() as conn:
            return await conn.fetchval("""
                INSERT INTO sub_categories (
                    category_id, name, description, slug, display_order, is_active
                ) VALUES ($1, $2, $3, $4, $5, $6)
                RETURNING id
            """,
                int(data['categoryId']),
                data['name'],
                data.get('description'),
                data['slug'],
                data.get('displayOrder') or 0,
                data.get('isActive', True)
            )

    async def update_subcategory(self, subcategory_id: int, data: Dict[str, Any]) -> bool:
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                UPDATE sub_categories
                SET category_id = $1, name = $2, description = $3, slug = $4,
                    display_order = $5, is_active = $6
                WHERE id = $7
            """,
                int(data['categoryId']),
                data['name'],
                data.get('description'),
                data['slug'],
                data.get('displayOrder') or 0,
                data.get('isActive', True),
                subcategory_id
            )
            return result == "UPDATE 1"

    async def delete_subcategory(self, subcategory_id: int) -> bool:
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                DELETE FROM sub_categories WHERE id = $1
            """, subcategory_id)
            return result == "DELETE 1"

    # Attribute definitions

    async def get_attributes(self) -> List[AttributeDefinition]:
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT * FROM product_attributes ORDER BY display_order ASC, id
            """)
            return [AttributeDefinition.model_validate(dict(row)) for row in rows]

    async def add_attribute(self, data: Dict[str, Any]) -> int:
        async with self.db.pool.acquire() as conn:
            return await conn.fetchval("""
                INSERT INTO product_attributes (
                    name, type, options, is_required, display_order, is_active
                ) VALUES ($1, $2, $3, $4, $5, $6)
                RETURNING id
            """,
                data['name'],
                data['type'],
                json.dumps(data.get('options') or []),
                data.get('isRequired', False),
                data.get('displayOrder') or 0,
                data.get('isActive', True)
            )

    async def update_attribute(self, attribute_id: int, data: Dict[str, Any]) -> bool:
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                UPDATE product_attributes
                SET name = $1, type = $2, options = $3, is_required = $4,
                    display_order = $5, is_active = $6
                WHERE id = $7
            """,
                data['name'],
                data['type'],
                json.dumps(data.get('options') or []),
                data.get('isRequired', False),
                data.get('displayOrder') or 0,
                data.get('isActive', True),
                attribute_id
            )
            return result == "UPDATE 1"

    async def delete_attribute(self, attribute_id: int) -> bool:
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                DELETE FROM product_attributes WHERE id = $1
            """, attribute_id)
            return result == "DELETE 1"
