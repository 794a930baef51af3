"""Symmetric encryption for credentials stored in the key-value store."""

import os
from pathlib import Path

from cryptography.fernet import Fernet, InvalidToken

from launcher_bootstrap.core.exceptions import CryptoError
from launcher_bootstrap.utils.logging import get_logger


class Crypto:
    """Encrypts and decrypts secrets with a Fernet key."""

    def __init__(self, key: str | bytes):
        """Initialize with Fernet encryption key.

        Args:
            key: Fernet key as string or bytes
        """
        if isinstance(key, str):
            key = key.encode()
        try:
            self._fernet = Fernet(key)
        except ValueError as e:
            raise CryptoError(f"Invalid encryption key: {e}") from e

    @classmethod
    def from_key_file(cls, key_file: Path) -> "Crypto":
        """Load the key from disk, generating it on first use.

        Args:
            key_file: Path of the file holding the key

        Returns:
            Crypto instance bound to that key
        """
        logger = get_logger(__name__)

        if not key_file.exists():
            key_file.parent.mkdir(parents=True, exist_ok=True)
            key_file.write_bytes(Fernet.generate_key())
            os.chmod(key_file, 0o600)
            logger.info(f"Generated new encryption key at {key_file}")

        return cls(key_file.read_bytes().strip())

    def encrypt(self, data: str) -> str:
        """Encrypt a string.

        Args:
            data: Plain text to encrypt

        Returns:
            Fernet token as text
        """
        return self._fernet.encrypt(data.encode()).decode()

    def decrypt(self, encrypted_data: str) -> str:
        """Decrypt a string produced by encrypt().

        Args:
            encrypted_data: Fernet token as text

        Returns:
            Decrypted plain text

        Raises:
            CryptoError: If decryption fails (wrong key or corrupted data)
        """
        try:
            return self._fernet.decrypt(encrypted_data.encode()).decode()
        except InvalidToken as e:
            raise CryptoError("Failed to decrypt value (wrong key or corrupted data)") from e
