"""Exceptions raised by the sensitive-field vault."""
from typing import Optional


class VaultError(Exception):
    """Base exception for every vault failure."""


class ConfigurationError(VaultError):
    """Tenant salt is missing or malformed."""


class CryptoError(VaultError):
    """Invalid key material or a failed cryptographic operation."""

    def __init__(self, message: str, *, recoverable: Optional[bool] = None):
        super().__init__(message)
        self.recoverable = recoverable


class DecryptionError(CryptoError):
    """Envelope is malformed or failed its integrity check.

    Raised for a wrong key as well as for corrupted data: the two cases
    cannot be told apart by AES-GCM.
    """

    def __init__(self, message: str = "Unable to decrypt value"):
        super().__init__(message, recoverable=False)


class WrongPasswordError(VaultError):
    """Master password did not decrypt the verification sample."""

    def __init__(self, message: str = "Wrong master password"):
        super().__init__(message)


class NotConfiguredError(VaultError):
    """Tenant never set up encryption."""

    def __init__(self, tenant_id: Optional[str] = None):
        self.tenant_id = tenant_id
        super().__init__(
            f"Encryption is not configured for tenant {tenant_id}"
        )


class AlreadyConfiguredError(VaultError):
    """Setup attempted on a tenant that already has a salt."""

    def __init__(self, tenant_id: Optional[str] = None):
        self.tenant_id = tenant_id
        super().__init__(
            f"Encryption is already configured for tenant {tenant_id}"
        )


class LockedError(VaultError):
    """Sensitive write or migration attempted while the vault is locked."""

    def __init__(self, message: str = "Vault is locked, unlock it first"):
        super().__init__(message)


class RecordNotFoundError(VaultError):
    """Requested record does not exist for the tenant."""
