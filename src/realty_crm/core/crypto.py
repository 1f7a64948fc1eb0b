"""Credential encryption for stored mailbox passwords."""

from __future__ import annotations

from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from realty_crm.config import get_settings
from realty_crm.core.exceptions import CredentialError
from realty_crm.core.logging_setup import get_logger

log = get_logger(__name__)


class CredentialCipher:
    """Encrypt/decrypt mailbox passwords and OAuth tokens."""

    def __init__(self, key: str | bytes | None = None):
        """Initialize encryption with key.

        Args:
            key: Fernet key (32 bytes, urlsafe base64). If None, a
                throwaway key is generated (development only).
        """
        if not key:
            key = Fernet.generate_key()
            log.warning("No encryption key configured, using generated key (not persistent!)")
        if isinstance(key, str):
            key = key.encode()

        try:
            self._fernet = Fernet(key)
        except ValueError as e:
            raise CredentialError("Encryption key must be 32 url-safe base64-encoded bytes", cause=e)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a secret."""
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a secret.

        Raises:
            CredentialError: If the ciphertext was produced with another key
        """
        try:
            return self._fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken as e:
            raise CredentialError("Stored credential could not be decrypted", cause=e)


@lru_cache
def get_cipher() -> CredentialCipher:
    """Get the process-wide cipher built from settings."""
    return CredentialCipher(get_settings().security.encryption_key or None)
