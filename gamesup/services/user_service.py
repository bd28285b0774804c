# gamesup/services/user_service.py
import json
import logging
from typing import Any, Dict, List, Optional
import asyncpg
from ..exceptions import AuthenticationError, DuplicateEmailError, InvalidRequestError
from ..models.user import Role, StaffUser
from ..utils.security import check_password, hash_password

# columns a staff edit may set directly
EDITABLE_USER_FIELDS = (
    'email', 'name', 'role', 'job_title', 'phone', 'avatar', 'identity_document'
)

class UserService:
    """Admin console accounts and their roles"""

    def __init__(self, db):
        self.db = db
        self.logger = logging.getLogger(__name__)

    async def authenticate(self, email: str, password: str) -> StaffUser:
        """Staff login; the returned user carries the permissions of its role"""
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow("""
                SELECT u.*, r.permissions
                FROM users u
                LEFT JOIN roles r ON r.name = u.role
                WHERE u.email = $1
            """, email)

        if not row or not check_password(password, row['password_hash']):
            self.logger.warning(f"Failed staff login for {email}")
            raise AuthenticationError("Invalid email or password")

        return StaffUser.model_validate(dict(row))

    async def get_users(self) -> List[StaffUser]:
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT id, email, name, role, job_title, phone, avatar,
                       identity_document, created_at
                FROM users
                ORDER BY id
            """)
            return [StaffUser.model_validate(dict(row)) for row in rows]

    async def add_user(self, data: Dict[str, Any]) -> int:
        if not data.get('email') or not data.get('password'):
            raise InvalidRequestError("Email and password are required")

        try:
            async with self.db.pool.acquire() as conn:
                user_id = await conn.fetchval("""
                    INSERT INTO users (
                        email, password_hash, name, role, job_title,
                        phone, avatar, identity_document
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                    RETURNING id
                """,
                    data['email'],
                    hash_password(data['password']),
                    data.get('name'),
                    data.get('role'),
                    data.get('job_title'),
                    data.get('phone'),
                    data.get('avatar'),
                    data.get('identity_document')
                )
        except asyncpg.UniqueViolationError:
            raise DuplicateEmailError("User already exists")
        except asyncpg.ForeignKeyViolationError:
            raise InvalidRequestError(f"Unknown role: {data.get('role')}")

        self.logger.info(f"Staff user {data['email']} created with role {data.get('role')}")
        return user_id

    async def update_user(self, user_id: int, data: Dict[str, Any]) -> bool:
        """Partial update; a non-empty password is re-hashed"""
        query_parts = []
        params = []
        param_count = 1

        for field in EDITABLE_USER_FIELDS:
            if field in data:
                query_parts.append(f"{field} = ${param_count}")
                params.append(data[field])
                param_count += 1

        if data.get('password'):
            query_parts.append(f"password_hash = ${param_count}")
            params.append(hash_password(data['password']))
            param_count += 1

        if not query_parts:
            return False

        params.append(user_id)
        query = f"""
            UPDATE users
            SET {', '.join(query_parts)}
            WHERE id = ${param_count}
        """

        try:
            async with self.db.pool.acquire() as conn:
                result = await conn.execute(query, *params)
        except asyncpg.UniqueViolationError:
            raise DuplicateEmailError("User already exists")
        except asyncpg.ForeignKeyViolationError:
            raise InvalidRequestError(f"Unknown role: {data.get('role')}")

        return result == "UPDATE 1"

    async def delete_user(self, user_id: int) -> bool:
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                DELETE FROM users WHERE id = $1
            """, user_id)
            return result == "DELETE 1"

    async def get_roles(self) -> List[Role]:
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT * FROM roles ORDER BY name
            """)
            return [Role.model_validate(dict(row)) for row in rows]

    async def add_role(self, name: str, description: Optional[str] = None,
                       permissions: Optional[Dict[str, Any]] = None) -> bool:
        if not name:
            raise InvalidRequestError("Role name is required")

        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                INSERT INTO roles (name, description, permissions)
                VALUES ($1, $2, $3)
                ON CONFLICT (name) DO NOTHING
            """, name, description, json.dumps(permissions or {}))
            return result == "INSERT 0 1"
