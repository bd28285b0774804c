# gamesup/services/banner_service.py
from datetime import datetime
from typing import Any, Dict, List, Optional
from ..exceptions import InvalidRequestError
from ..models.banner import Banner

def parse_date(value: Any) -> Optional[datetime]:
    """ISO date or datetime from the banner form; blank means no bound"""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise InvalidRequestError(f"Invalid date: {value}")


class BannerService:
    def __init__(self, db):
        self.db = db

    async def get_banners(self) -> List[Banner]:
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT * FROM banners ORDER BY position ASC, id
            """)
            return [Banner.model_validate(dict(row)) for row in rows]

    async def add_banner(self, data: Dict[str, Any]) -> int:
        async with self.db.pool.acquire() as conn:
            return await conn.fetchval("""
                INSERT INTO banners (title, image_url, link, position, is_active, start_date, end_date)
                VALUES ($1, $2, $3, $4, $5, $6, $7)
                RETURNING id
            """,
                data.get('title'),
                data.get('imageUrl'),
                data.get('link'),
                data.get('position') or 0,
                data.get('isActive', True),
                parse_date(data.get('startDate')),
                parse_date(data.get('endDate'))
            )

    async def update_banner(self, banner_id: int, data: Dict[str, Any]) -> bool:
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                UPDATE banners
                SET title = $1, image_url = $2, link = $3, position = $4,
                    is_active = $5, start_date = $6, end_date = $7
                WHERE id = $8
            """,
                data.get('title'),
                data.get('imageUrl'),
                data.get('link'),
                data.get('position') or 0,
                data.get('isActive', True),
                parse_date(data.get('startDate')),
                parse_date(data.get('endDate')),
                banner_id
            )
            return result == "UPDATE 1"

    async def delete_banner(self, banner_id: int) -> bool:
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                DELETE FROM banners WHERE id = $1
            """, banner_id)
            return result == "DELETE 1"
