from passlib.context import CryptContext


class PasswordManager:
    """Password hashing through a passlib context (argon2)."""

    def __init__(self):
        self._context = CryptContext(schemes=["argon2"], deprecated="auto")

    def hash_password(self, password: str) -> str:
        return self._context.hash(password)

    def verify_password(self, password: str, hashed_password: str) -> bool:
        try:
            return self._context.verify(password, hashed_password)
        except ValueError:
            # Malformed or unknown hash format
            return False

    def needs_rehash(self, hashed_password: str) -> bool:
        """True when the hash was made with outdated parameters."""
        return self._context.needs_update(hashed_password)


# Global password manager instance
password_manager = PasswordManager()
