from typing import Optional, Tuple

from passlib.context import CryptContext

# plaintext only verifies rows written before passwords were hashed;
# such rows are re-hashed with pbkdf2_sha256 on the next successful login
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "plaintext"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def verify_and_update(plain: str, hashed: str) -> Tuple[bool, Optional[str]]:
    """Return (matched, new_hash); new_hash is set when the stored value is outdated."""
    return pwd_context.verify_and_update(plain, hashed)
