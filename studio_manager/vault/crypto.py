"""
Vault Crypto Core — Key derivation and the ciphertext envelope.

- Key derivation: PBKDF2-HMAC-SHA256(master_password, tenant_salt) → 32-byte key
- Envelope: AES-256-GCM → "<iv hex>:<tag hex>:<payload hex>"

The envelope layout is the one already stored in tenant databases, so it
must not change: 16-byte IV, 16-byte GCM tag, hex-encoded UTF-8 payload.

Security Note:
    Never log plaintext, envelopes, salts or key material.
    IVs are random 128-bit; collision probability negligible under normal usage.
"""
import os
import re
import logging
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .config import DEFAULT_KDF_ITERATIONS
from .exceptions import ConfigurationError, CryptoError, DecryptionError

logger = logging.getLogger("studio.vault")

KEY_LENGTH = 32  # AES-256
IV_SIZE = 16  # 128-bit IV
TAG_SIZE = 16  # GCM tag
SALT_SIZE = 32

ENVELOPE_SEPARATOR = ":"

_HEX = r"[0-9a-fA-F]"
_ENVELOPE_PATTERN = re.compile(
    rf"{_HEX}{{{IV_SIZE * 2}}}:{_HEX}{{{TAG_SIZE * 2}}}:(?:{_HEX}{{2}})*"
)


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def generate_salt(length: int = SALT_SIZE) -> str:
    """Generate a random tenant salt, hex-encoded for storage."""
    return os.urandom(length).hex()


def derive_key(
    password: str,
    salt: str,
    iterations: int = DEFAULT_KDF_ITERATIONS,
) -> bytes:
    """Derive a 32-byte key from the master password and tenant salt.

    Args:
        password: Master password, must not be empty.
        salt: Hex-encoded tenant salt as stored on the tenant row.
        iterations: PBKDF2 iteration count.

    Returns:
        32-byte derived key.

    Raises:
        ValueError: If password is empty.
        ConfigurationError: If the salt is missing or not valid hex.
    """
    if not password:
        raise ValueError("Master password cannot be empty")
    if not salt or not isinstance(salt, str):
        raise ConfigurationError("Tenant salt is missing")
    try:
        salt_bytes = bytes.fromhex(salt)
    except ValueError:
        raise ConfigurationError("Tenant salt is not valid hex") from None
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt_bytes,
        iterations=iterations,
    )
    return kdf.derive(password.encode("utf-8"))


def _check_key(key: Any) -> bytes:
    if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_LENGTH:
        raise CryptoError(
            f"Key must be {KEY_LENGTH} bytes for AES-256", recoverable=False
        )
    return bytes(key)


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------

def encrypt_value(plaintext: str, key: bytes) -> str:
    """Encrypt a string into an envelope.

    Format: <iv 16B hex>:<tag 16B hex>:<payload hex>

    Args:
        plaintext: Value to encrypt.
        key: 32-byte derived key.

    Returns:
        Envelope string.

    Raises:
        CryptoError: If the key is not 32 bytes.
    """
    cipher = AESGCM(_check_key(key))
    iv = os.urandom(IV_SIZE)
    sealed = cipher.encrypt(iv, plaintext.encode("utf-8"), None)
    payload, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
    return ENVELOPE_SEPARATOR.join((iv.hex(), tag.hex(), payload.hex()))


def decrypt_value(envelope: str, key: bytes) -> str:
    """Decrypt an envelope produced by :func:`encrypt_value`.

    The GCM tag is verified before anything is returned.

    Args:
        envelope: Envelope string.
        key: 32-byte derived key.

    Returns:
        Decrypted plaintext.

    Raises:
        CryptoError: If the key is not 32 bytes.
        DecryptionError: If the envelope is malformed, the key is wrong,
            or the data was tampered with.
    """
    key = _check_key(key)
    if not is_envelope(envelope):
        raise DecryptionError("Invalid encrypted data format")
    iv_hex, tag_hex, payload_hex = envelope.split(ENVELOPE_SEPARATOR)
    iv = bytes.fromhex(iv_hex)
    tag = bytes.fromhex(tag_hex)
    payload = bytes.fromhex(payload_hex)
    try:
        data = AESGCM(key).decrypt(iv, payload + tag, None)
    except InvalidTag:
        raise DecryptionError(
            "Authentication failed - wrong key or corrupted data"
        ) from None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        raise DecryptionError("Decrypted payload is not valid UTF-8") from None


def is_envelope(value: Any) -> bool:
    """Return True when ``value`` has the envelope shape.

    Purely syntactic: no key needed, never raises.
    """
    if not isinstance(value, str) or not value:
        return False
    return _ENVELOPE_PATTERN.fullmatch(value) is not None
