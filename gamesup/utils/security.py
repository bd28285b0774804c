# gamesup/utils/security.py
import base64
import hashlib
import hmac
import json
import time
from typing import Any, Dict, Optional
import bcrypt
from ..config import Config

def hash_password(password: str) -> str:
    """bcrypt hash for storage"""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=10)).decode()

def check_password(password: str, password_hash: Optional[str]) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # stored hash is not a bcrypt hash
        return False

def _sign(message: str) -> str:
    return hmac.new(
        Config.SECRET_KEY.encode(),
        message.encode(),
        hashlib.sha256
    ).hexdigest()

def issue_token(claims: Dict[str, Any], ttl_hours: Optional[int] = None) -> str:
    """Signed bearer token carrying the given claims"""
    ttl = ttl_hours if ttl_hours is not None else Config.TOKEN_TTL_HOURS
    payload = dict(claims, exp=int(time.time()) + ttl * 3600)
    message = base64.urlsafe_b64encode(
        json.dumps(payload, separators=(',', ':')).encode()
    ).decode()
    return f"{message}.{_sign(message)}"

def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Claims of a valid, unexpired token; None otherwise"""
    try:
        message, signature = token.rsplit('.', 1)
    except ValueError:
        return None

    if not hmac.compare_digest(signature, _sign(message)):
        return None

    try:
        claims = json.loads(base64.urlsafe_b64decode(message.encode()))
    except ValueError:
        return None

    if not isinstance(claims, dict) or int(claims.get('exp', 0)) < int(time.time()):
        return None

    return claims
