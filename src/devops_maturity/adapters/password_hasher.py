"""Argon2 password hashing via passlib."""

from passlib.context import CryptContext
from passlib.exc import UnknownHashError

from devops_maturity.observability import get_logger

logger = get_logger(__name__)


class Argon2PasswordHasher:
    """One-way salted password hasher backed by passlib's Argon2 scheme.

    Args:
        time_cost: Argon2 iterations.
        memory_cost: Argon2 memory in KiB.
        parallelism: Argon2 lanes.
    """

    def __init__(self, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4) -> None:
        self._context = CryptContext(
            schemes=["argon2"],
            deprecated="auto",
            argon2__time_cost=time_cost,
            argon2__memory_cost=memory_cost,
            argon2__parallelism=parallelism,
        )

    def hash(self, password: str) -> str:
        """Hash a password.

        Raises:
            ValueError: If the password is empty.
        """
        if not password:
            raise ValueError("Password cannot be empty")
        return self._context.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        """Verify a password against a stored hash in constant time."""
        if not password or not password_hash:
            return False
        try:
            return self._context.verify(password, password_hash)
        except UnknownHashError:
            logger.warning("Password hash in unknown format")
            return False
