"""
TenantEncryptionConfig — Access to a tenant's ``{salt, enabled}`` pair.

Encryption is opt-in per tenant: a missing row or a null flag counts as
"disabled". A failed read propagates, otherwise a save path could write
plaintext into an enabled tenant. Setup is one-shot; the only way to replace
the salt afterwards is :meth:`TenantEncryptionConfig.reset`, the final step
of the out-of-band master password recovery.

Security Note:
    Never log salts or passwords. Only log tenant ids.
"""
import logging
from typing import Optional

from pydantic import BaseModel

from .codec import FieldCodec
from .config import VaultConfig
from .crypto import derive_key, generate_salt
from .entities import EntityKind
from .exceptions import AlreadyConfiguredError, NotConfiguredError
from .keystore import SessionKeyStore
from .store import RecordStore

logger = logging.getLogger("studio.vault")


class TenantEncryptionSetting(BaseModel):
    """Persisted encryption state of one tenant."""

    tenant_id: str
    salt: Optional[str] = None
    enabled: bool = False

    @property
    def configured(self) -> bool:
        return bool(self.salt)


class TenantEncryptionConfig:
    """Reads and writes a tenant's encryption settings.

    Args:
        store: Record store used for the tenant row.
        keystore: Session key holder populated on setup and reset.
        config: Vault settings; defaults when omitted.
    """

    def __init__(
        self,
        store: RecordStore,
        keystore: SessionKeyStore,
        config: Optional[VaultConfig] = None,
    ):
        self._store = store
        self._keystore = keystore
        self._config = config or VaultConfig()

    async def get_setting(self, tenant_id: str) -> TenantEncryptionSetting:
        """Return the tenant's setting; a missing row reads as disabled."""
        row = await self._store.fetch_tenant(tenant_id)
        if row is None:
            return TenantEncryptionSetting(tenant_id=tenant_id)
        return TenantEncryptionSetting(
            tenant_id=tenant_id,
            salt=row.get("encryption_salt") or None,
            enabled=bool(row.get("encryption_enabled")),
        )

    async def is_enabled(self, tenant_id: str) -> bool:
        """Whether encryption is enabled; False for a missing row or null flag.

        Store errors propagate: a failed read is never taken as "disabled".
        """
        setting = await self.get_setting(tenant_id)
        return setting.enabled

    async def get_salt(self, tenant_id: str) -> Optional[str]:
        setting = await self.get_setting(tenant_id)
        return setting.salt

    async def setup(self, tenant_id: str, master_password: str) -> None:
        """Enable encryption for a tenant and unlock the session.

        Raises:
            AlreadyConfiguredError: If the tenant already has a salt.
            ValueError: If the master password is empty.
        """
        if await self.get_salt(tenant_id):
            raise AlreadyConfiguredError(tenant_id)
        salt = generate_salt(self._config.salt_length)
        key = derive_key(master_password, salt, self._config.kdf_iterations)
        if not await self._store.setup_tenant(tenant_id, salt):
            # Lost a race with another setup, or the tenant row is missing.
            if await self.get_salt(tenant_id):
                raise AlreadyConfiguredError(tenant_id)
            raise NotConfiguredError(tenant_id)
        self._keystore.store(key)
        logger.info("Encryption enabled for tenant=%s", tenant_id)

    async def reset(self, tenant_id: str, new_master_password: str) -> None:
        """Replace the tenant's salt after a verified password recovery.

        Values encrypted under the previous salt cannot be decrypted with
        the new key.

        Raises:
            NotConfiguredError: If the tenant never set up encryption.
        """
        if not await self.get_salt(tenant_id):
            raise NotConfiguredError(tenant_id)
        salt = generate_salt(self._config.salt_length)
        key = derive_key(new_master_password, salt, self._config.kdf_iterations)
        if not await self._store.reset_tenant_salt(tenant_id, salt):
            raise NotConfiguredError(tenant_id)
        self._keystore.clear()
        self._keystore.store(key)
        logger.warning(
            "Master password reset for tenant=%s: salt replaced, "
            "previously encrypted fields are no longer readable",
            tenant_id,
        )

    async def codec_for(self, tenant_id: str, kind: EntityKind) -> FieldCodec:
        """Build a codec honouring the tenant's ``enabled`` flag.

        Store errors propagate; no codec is built from an unknown flag.
        """
        setting = await self.get_setting(tenant_id)
        return FieldCodec(kind, self._keystore, enabled=setting.enabled)
