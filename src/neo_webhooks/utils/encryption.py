"""Secret encryption utilities for neo-webhooks.

Subscription secrets are encrypted at rest (PostgreSQL and the Redis
resolve cache) with Fernet symmetric encryption. The Fernet key is derived
from the configured SECRET_ENCRYPTION_KEY string with PBKDF2.
"""

import base64
from typing import Optional, Union

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC


class SecretEncryption:
    """Encrypt and decrypt subscription secrets."""

    SALT = b"NeoWebhooks2024"
    ITERATIONS = 100000

    def __init__(self, encryption_key: Optional[str]):
        """
        Initialize encryption with the provided key.

        Args:
            encryption_key: Key material; any non-empty string.

        Raises:
            ValueError: If no key is given
        """
        if not encryption_key:
            raise ValueError("SECRET_ENCRYPTION_KEY is required to store webhook secrets")
        self._cipher = self._get_cipher(encryption_key)

    def _get_cipher(self, key_string: str) -> Fernet:
        """Derive a Fernet cipher from the key string."""
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=self.SALT,
            iterations=self.ITERATIONS,
        )
        derived_key = base64.urlsafe_b64encode(kdf.derive(key_string.encode("utf-8")))
        return Fernet(derived_key)

    def encrypt_secret(self, secret: Union[bytes, str]) -> str:
        """
        Encrypt a secret.

        Args:
            secret: Raw secret bytes (text is UTF-8 encoded)

        Returns:
            The Fernet token as ASCII text
        """
        if isinstance(secret, str):
            secret = secret.encode("utf-8")
        return self._cipher.encrypt(bytes(secret)).decode("ascii")

    def decrypt_secret(self, token: str) -> bytes:
        """
        Decrypt a token produced by ``encrypt_secret``.

        Raises:
            ValueError: If the token is malformed or was encrypted with another key
        """
        if not token:
            raise ValueError("Encrypted secret is empty")
        try:
            return self._cipher.decrypt(token.encode("ascii"))
        except (InvalidToken, UnicodeEncodeError) as e:
            raise ValueError("Failed to decrypt secret: invalid token or wrong key") from e

    @staticmethod
    def is_encrypted(value: str) -> bool:
        """Check if a value looks like a Fernet token."""
        return bool(value) and value.startswith("gAAAAA")
