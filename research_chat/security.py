# research_chat/security.py
import secrets
from typing import Optional

from passlib.context import CryptContext

# salted PBKDF2-HMAC-SHA512, fixed iteration count
pwd_context = CryptContext(
    schemes=["pbkdf2_sha512"],
    deprecated="auto",
    pbkdf2_sha512__default_rounds=10000,
)

SESSION_TOKEN_BYTES = 32


def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError:
        # unrecognized hash format stored on the row
        return False


def new_session_token() -> str:
    return secrets.token_hex(SESSION_TOKEN_BYTES)
