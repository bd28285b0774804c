# gamesup/services/customer_service.py
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional
from urllib.parse import quote
import asyncpg
from ..exceptions import AuthenticationError, DuplicateEmailError, InvalidRequestError
from ..models.user import Customer
from ..utils.formatters import format_month
from ..utils.security import check_password, hash_password

VIP_THRESHOLD = Decimal(1000)

class CustomerService:
    """Storefront accounts and the admin customer list"""

    def __init__(self, db):
        self.db = db
        self.logger = logging.getLogger(__name__)

    async def signup(self, email: str, password: str, name: Optional[str] = None,
                     phone: Optional[str] = None) -> Customer:
        if not email or not password:
            raise InvalidRequestError("Email and password are required")

        password_hash = hash_password(password)
        try:
            async with self.db.pool.acquire() as conn:
                row = await conn.fetchrow("""
                    INSERT INTO customers (email, password_hash, name, phone)
                    VALUES ($1, $2, $3, $4)
                    RETURNING *
                """, email, password_hash, name, phone)
        except asyncpg.UniqueViolationError:
            raise DuplicateEmailError("Email already registered")

        self.logger.info(f"Customer {email} signed up")
        return Customer.model_validate(dict(row))

    async def login(self, email: str, password: str) -> Customer:
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow("""
                SELECT * FROM customers WHERE email = $1
            """, email)

        if not row or not check_password(password, row['password_hash']):
            raise AuthenticationError("Invalid email or password")

        return Customer.model_validate(dict(row))

    async def get_customers(self) -> List[Dict[str, Any]]:
        """Admin list with order counts and lifetime spend"""
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT
                    c.id, c.name, c.email, c.phone, c.created_at,
                    COUNT(o.id) AS orders_count,
                    COALESCE(SUM(o.amount), 0) AS total_spent
                FROM customers c
                LEFT JOIN orders o ON o.customer_email = c.email
                GROUP BY c.id
                ORDER BY c.created_at DESC
            """)

        customers = []
        for row in rows:
            spent = Decimal(row['total_spent'] or 0)
            name = row['name'] or row['email']
            customers.append({
                "id": row['id'],
                "name": row['name'],
                "email": row['email'],
                "phone": row['phone'] or 'N/A',
                "location": 'N/A',
                "orders": row['orders_count'],
                "spent": float(spent),
                "status": 'VIP' if spent > VIP_THRESHOLD else 'Regular',
                "joinDate": format_month(row['created_at']),
                "avatar": f"https://ui-avatars.com/api/?name={quote(name)}&background=random"
            })
        return customers
