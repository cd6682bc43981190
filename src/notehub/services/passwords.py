"""Password hashing with bcrypt."""

import bcrypt

from notehub.config import settings

# bcrypt only looks at the first 72 bytes; newer releases raise instead of truncating
MAX_PASSWORD_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:MAX_PASSWORD_BYTES]


class PasswordHasher:
    """bcrypt hasher with a configurable work factor."""

    def __init__(self, rounds: int | None = None):
        self.rounds = rounds or settings.password_hash_rounds
        # one bcrypt check per dummy_verify, the first call included
        self._dummy_hash = bcrypt.hashpw(b"dummy-password", bcrypt.gensalt(rounds=self.rounds))

    def hash(self, password: str) -> str:
        """Hash a password with a fresh random salt."""
        return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, password: str, hashed: str) -> bool:
        """Check a password against a stored hash.

        bcrypt.checkpw compares in constant time. Malformed hashes never match.
        """
        try:
            return bcrypt.checkpw(_encode(password), hashed.encode("utf-8"))
        except ValueError:
            return False

    def dummy_verify(self, password: str) -> bool:
        """Spend the same work as a real check when there is no hash to check against."""
        bcrypt.checkpw(_encode(password), self._dummy_hash)
        return False


password_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a password using the default hasher."""
    return password_hasher.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password using the default hasher."""
    return password_hasher.verify(password, hashed)
