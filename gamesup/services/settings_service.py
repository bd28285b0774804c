# gamesup/services/settings_service.py
from typing import Any, Dict, Optional

DEFAULT_SETTINGS = {
    'currency_code': 'USD',
    'currency_symbol': '$',
    'tax_rate': '8.5'
}

class SettingsService:
    """Store-wide key/value settings"""

    def __init__(self, db):
        self.db = db

    async def get_all_settings(self) -> Dict[str, Optional[str]]:
        """Stored settings layered over the defaults"""
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT setting_key, setting_value
                FROM settings
            """)

        settings = dict(DEFAULT_SETTINGS)
        settings.update({row['setting_key']: row['setting_value'] for row in rows})
        return settings

    async def update_settings(self, values: Dict[str, Any]) -> int:
        """Upsert every pair in one transaction; returns how many keys were written"""
        rows = [
            (str(key), self._to_text(value))
            for key, value in values.items()
        ]
        if not rows:
            return 0

        async with self.db.pool.acquire() as conn:
            async with conn.transaction():
                await conn.executemany("""
                    INSERT INTO settings (setting_key, setting_value)
                    VALUES ($1, $2)
                    ON CONFLICT (setting_key)
                    DO UPDATE SET setting_value = EXCLUDED.setting_value
                """, rows)

        return len(rows)

    @staticmethod
    def _to_text(value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, bool):
            return 'true' if value else 'false'
        return str(value)
