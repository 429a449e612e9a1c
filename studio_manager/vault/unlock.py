"""
UnlockProtocol — Verifies a master password and unlocks the session.

No password hash is stored, so the encrypted data itself is the only way
to check a candidate password: a key is accepted when it opens one existing
envelope of the tenant. A tenant with no encrypted value yet accepts any
password; this is a known limitation of the scheme.

Security Note:
    Never log passwords, keys or sample values. Only log tenant ids.
"""
import logging
from typing import Iterable, Optional

from .config import VaultConfig
from .crypto import decrypt_value, derive_key, is_envelope
from .entities import ENTITY_KINDS, EntityKind
from .exceptions import DecryptionError, NotConfiguredError, WrongPasswordError
from .keystore import SessionKeyStore
from .store import RecordStore
from .tenant import TenantEncryptionConfig

logger = logging.getLogger("studio.vault")

_SAMPLE_LIMIT = 5


class UnlockProtocol:
    """Lock/unlock entry point for a session.

    Args:
        store: Record store used to look for a verification sample.
        keystore: Session key holder to populate.
        config: Vault settings; defaults when omitted.
        kinds: Entity kinds searched for a sample, in order.
    """

    def __init__(
        self,
        store: RecordStore,
        keystore: SessionKeyStore,
        config: Optional[VaultConfig] = None,
        kinds: Optional[Iterable[EntityKind]] = None,
    ):
        self._store = store
        self._keystore = keystore
        self._config = config or VaultConfig()
        self._kinds = tuple(kinds) if kinds is not None else tuple(ENTITY_KINDS.values())
        self._tenants = TenantEncryptionConfig(store, keystore, self._config)

    async def find_sample(self, tenant_id: str) -> Optional[str]:
        """Return one envelope belonging to the tenant, or None.

        Primary fields are searched first, then every other sensitive field.
        The store only returns envelope-shaped values, so any number of
        legacy plaintext rows cannot hide an existing envelope.
        """
        candidates = [(kind, kind.primary_field) for kind in self._kinds]
        candidates += [
            (kind, name)
            for kind in self._kinds
            for name in kind.fields
            if name != kind.primary_field
        ]
        for kind, column in candidates:
            values = await self._store.fetch_samples(
                kind, tenant_id, column, limit=_SAMPLE_LIMIT,
            )
            for value in values:
                if is_envelope(value):
                    return value
        return None

    async def unlock(self, tenant_id: str, candidate_password: str) -> None:
        """Derive the key for ``candidate_password`` and hold it if it verifies.

        Raises:
            NotConfiguredError: If the tenant has no salt.
            WrongPasswordError: If the key does not open the tenant's sample.
                The session stays as it was.
        """
        salt = await self._tenants.get_salt(tenant_id)
        if not salt:
            raise NotConfiguredError(tenant_id)
        key = derive_key(candidate_password, salt, self._config.kdf_iterations)
        sample = await self.find_sample(tenant_id)
        if sample is None:
            logger.warning(
                "No encrypted value to verify against for tenant=%s, "
                "accepting master password unverified",
                tenant_id,
            )
        else:
            try:
                decrypt_value(sample, key)
            except DecryptionError:
                logger.warning("Wrong master password for tenant=%s", tenant_id)
                raise WrongPasswordError() from None
        self._keystore.store(key)
        logger.info("Vault unlocked for tenant=%s", tenant_id)

    def lock(self) -> None:
        """Wipe the session key."""
        self._keystore.clear()

    def is_unlocked(self) -> bool:
        """True while the session holds a key."""
        return self._keystore.is_unlocked()
