"""
Password hashing utilities using bcrypt.
"""

import bcrypt

from loginvault.kernel.errors import HashingError

# Number of rounds for bcrypt hashing (12 is secure default)
BCRYPT_ROUNDS = 12

# bcrypt only uses the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """
    Password hashing service.

    The salt and work factor are embedded in the returned hash string
    (``$2b$<rounds>$<salt+digest>``), so verification needs nothing else.
    """

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        self.rounds = rounds

    @staticmethod
    def _truncate_password(password: str) -> bytes:
        """
        Truncate password to 72 bytes (bcrypt limit) and encode.

        Current bcrypt releases reject longer input instead of silently
        ignoring the tail.
        """
        return password.encode("utf-8")[:BCRYPT_MAX_BYTES]

    def hash(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password string

        Raises:
            HashingError: If salt generation or hashing fails
        """
        pwd_bytes = self._truncate_password(password)
        try:
            salt = bcrypt.gensalt(rounds=self.rounds)
            hashed = bcrypt.hashpw(pwd_bytes, salt)
        except (OSError, ValueError) as exc:
            raise HashingError() from exc
        return hashed.decode("utf-8")

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        bcrypt.checkpw compares digests in constant time.

        Args:
            plain_password: Plain text password to verify
            hashed_password: Stored hashed password

        Returns:
            True if password matches, False otherwise

        Raises:
            HashingError: If the stored hash is malformed
        """
        pwd_bytes = self._truncate_password(plain_password)
        try:
            return bcrypt.checkpw(pwd_bytes, hashed_password.encode("utf-8"))
        except ValueError as exc:
            raise HashingError("Stored password hash is malformed") from exc

    def needs_rehash(self, hashed_password: str) -> bool:
        """
        Check if a password hash needs to be upgraded.

        Currently checks if the hash uses a different number of rounds.

        Args:
            hashed_password: Existing password hash

        Returns:
            True if hash should be regenerated
        """
        # Format: $2b$XX$... where XX is the rounds
        parts = hashed_password.split("$")
        if len(parts) < 4 or not parts[2].isdigit():
            return True
        return int(parts[2]) != self.rounds

