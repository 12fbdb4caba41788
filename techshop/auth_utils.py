# techshop/auth_utils.py
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from techshop.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES

PBKDF2_ITERATIONS = 260000


def hash_password(password: str, salt: Optional[str] = None) -> str:
    """Salted PBKDF2-SHA256 hash stored as `iterations$salt$hexdigest`."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS)
    return f"{PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        iterations, salt, expected = hashed_password.split("$")
        digest = hashlib.pbkdf2_hmac("sha256", plain_password.encode(), salt.encode(), int(iterations))
    except (AttributeError, ValueError):
        return False
    return hmac.compare_digest(digest.hex(), expected)


def create_access_token(data: dict, expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    """JWT carrying `data` that expires after `expires_minutes`."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_user_id(token: str) -> Optional[int]:
    """User ID from a valid token, None when the token is expired, forged or lacks it."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.InvalidTokenError:
        return None
    user_id = payload.get("id")
    return user_id if isinstance(user_id, int) else None
