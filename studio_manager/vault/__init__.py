"""Studio Vault — Master-password encryption of sensitive record fields.

Security Note (Threat Model):
    The derived key is held in process memory while the session is
    unlocked. A memory dump of the running process exposes it. This is an
    accepted limitation: there is no hardware-backed key storage and no
    server-side enforcement beyond ciphertext opacity.
"""

from .config import VaultConfig
from .crypto import decrypt_value, derive_key, encrypt_value, generate_salt, is_envelope
from .codec import DecryptResult, FieldCodec
from .entities import CLIENT, ENTITY_KINDS, FISCAL_DRAWER, PORTAL_CREDENTIAL, EntityKind, get_kind
from .exceptions import (
    AlreadyConfiguredError,
    ConfigurationError,
    CryptoError,
    DecryptionError,
    LockedError,
    NotConfiguredError,
    RecordNotFoundError,
    VaultError,
    WrongPasswordError,
)
from .keystore import SessionKeyStore
from .migration import MigrationReport, MigrationRunner
from .store import RecordStore
from .tenant import TenantEncryptionConfig, TenantEncryptionSetting
from .unlock import UnlockProtocol

__all__ = [
    "VaultConfig",
    "derive_key",
    "generate_salt",
    "encrypt_value",
    "decrypt_value",
    "is_envelope",
    "DecryptResult",
    "FieldCodec",
    "EntityKind",
    "ENTITY_KINDS",
    "FISCAL_DRAWER",
    "PORTAL_CREDENTIAL",
    "CLIENT",
    "get_kind",
    "VaultError",
    "ConfigurationError",
    "CryptoError",
    "DecryptionError",
    "WrongPasswordError",
    "NotConfiguredError",
    "AlreadyConfiguredError",
    "LockedError",
    "RecordNotFoundError",
    "SessionKeyStore",
    "MigrationReport",
    "MigrationRunner",
    "RecordStore",
    "TenantEncryptionConfig",
    "TenantEncryptionSetting",
    "UnlockProtocol",
]
