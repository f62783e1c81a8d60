import hashlib
import hmac
import secrets
from typing import Optional


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode('utf-8')).hexdigest()


def verify_password(plain_password: Optional[str], hashed_password: Optional[str]) -> bool:
    if not plain_password or not hashed_password:
        return False
    return hmac.compare_digest(hash_password(plain_password), hashed_password)


def generate_session_token() -> str:
    """Opaque 64-char hex token; carries no claims, only looked up server-side."""
    return secrets.token_hex(32)
