"""Password hashing for user accounts (bcrypt via passlib)."""
from functools import lru_cache

from passlib.context import CryptContext


@lru_cache()
def _pwd_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def hash_password(password: str, rounds: int = 10) -> str:
    return _pwd_context(rounds).hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    # Cost is read from the hash itself
    return _pwd_context(10).verify(plain_password, hashed_password)
