"""
Vault Configuration — Validated settings for key derivation and sessions.

Reads optional overrides from environment variables:
    STUDIO_VAULT_KDF_ITERATIONS = <int, PBKDF2 iterations>
    STUDIO_VAULT_AUTO_LOCK = <int, idle seconds before auto-lock>
    STUDIO_VAULT_BATCH_SIZE = <int, rows per migration batch>

Changing the iteration count invalidates every key derived with the old
value, so it must stay fixed for the lifetime of a tenant's salt.

Security Note:
    Never log key material, salts or passwords.
"""
import os
import logging

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("studio.vault")

DEFAULT_KDF_ITERATIONS = 100_000
DEFAULT_AUTO_LOCK_TIMEOUT = 15 * 60
DEFAULT_BATCH_SIZE = 100


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable, falling back to ``default``.

    Raises:
        ValueError: If the variable is set but is not a valid integer.
    """
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    kdf_iterations: int = Field(default=DEFAULT_KDF_ITERATIONS, ge=10_000)
    auto_lock_timeout: int = Field(default=DEFAULT_AUTO_LOCK_TIMEOUT, ge=60)
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1, le=10_000)
    salt_length: int = Field(default=32)

    @field_validator("salt_length")
    @classmethod
    def validate_salt_length(cls, v: int) -> int:
        """Salts shorter than 16 bytes are not accepted."""
        if v < 16:
            raise ValueError(f"salt_length must be at least 16 bytes, got {v}")
        return v

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        config = cls(
            kdf_iterations=_env_int(
                "STUDIO_VAULT_KDF_ITERATIONS", DEFAULT_KDF_ITERATIONS
            ),
            auto_lock_timeout=_env_int(
                "STUDIO_VAULT_AUTO_LOCK", DEFAULT_AUTO_LOCK_TIMEOUT
            ),
            batch_size=_env_int("STUDIO_VAULT_BATCH_SIZE", DEFAULT_BATCH_SIZE),
        )
        logger.debug(
            "Vault config loaded: iterations=%d auto_lock=%ds batch_size=%d",
            config.kdf_iterations, config.auto_lock_timeout, config.batch_size,
        )
        return config
