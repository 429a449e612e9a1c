"""
Vault Migration — Batch encryption of legacy plaintext records.

Walks every record of an entity kind for a tenant in batches and rewrites
the plaintext sensitive fields as envelopes. Rows whose primary field is
already an envelope, or that hold no plaintext, are skipped, which makes
the run idempotent and safe to resume after a partial failure. There is no
all-or-nothing guarantee across the batch.

Security Note:
    Plaintext exists in memory only while each row is re-encrypted.
    Never log plaintext or ciphertext values.
"""
import logging
from typing import Any, Iterable, Optional

from pydantic import BaseModel

from .codec import FieldCodec
from .config import VaultConfig
from .crypto import is_envelope
from .entities import ENTITY_KINDS, EntityKind
from .exceptions import LockedError, NotConfiguredError, RecordNotFoundError
from .keystore import SessionKeyStore
from .store import RecordStore
from .tenant import TenantEncryptionConfig

logger = logging.getLogger("studio.vault")


class MigrationReport(BaseModel):
    """Counters for one migration run."""

    kind: str
    total: int = 0
    migrated: int = 0
    skipped: int = 0
    errors: int = 0


class MigrationRunner:
    """Encrypts legacy plaintext rows with the session key.

    Args:
        store: Record store for reads and updates.
        keystore: Session key holder; must be unlocked.
        config: Vault settings (batch size); defaults when omitted.
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
        self._tenants = TenantEncryptionConfig(store, keystore, self._config)

    async def _codec(self, tenant_id: str, kind: EntityKind) -> FieldCodec:
        if not self._keystore.is_unlocked():
            raise LockedError()
        if not await self._tenants.is_enabled(tenant_id):
            raise NotConfiguredError(tenant_id)
        return FieldCodec(kind, self._keystore, enabled=True)

    @staticmethod
    def needs_migration(codec: FieldCodec, record: dict) -> bool:
        if is_envelope(record.get(codec.kind.primary_field)):
            return False
        return codec.has_plaintext(record)

    async def _migrate_row(
        self,
        codec: FieldCodec,
        tenant_id: str,
        record: dict,
    ) -> bool:
        pending = codec.plaintext_fields(record)
        encrypted = codec.encrypt_fields(record)
        updated = await self._store.update_fields(
            codec.kind,
            tenant_id,
            record["id"],
            {name: encrypted[name] for name in pending},
        )
        if not updated:
            raise RecordNotFoundError(
                f"{codec.kind.name} id={record['id']} disappeared during migration"
            )
        return True

    async def migrate_all(self, tenant_id: str, kind: EntityKind) -> MigrationReport:
        """Encrypt every plaintext record of ``kind`` for the tenant.

        Args:
            tenant_id: Tenant whose records are migrated.
            kind: Entity kind to walk.

        Returns:
            MigrationReport with total, migrated, skipped and errors.

        Raises:
            LockedError: If the session is locked, before or during the run.
            NotConfiguredError: If the tenant has encryption disabled.
        """
        codec = await self._codec(tenant_id, kind)
        batch_size = self._config.batch_size
        report = MigrationReport(kind=kind.name)
        offset = 0

        logger.info(
            "Starting %s migration for tenant=%s (batch_size=%d)",
            kind.name, tenant_id, batch_size,
        )

        while True:
            rows = await self._store.fetch_batch(
                kind, tenant_id, batch_size, offset,
            )
            if not rows:
                break

            batch_num = (offset // batch_size) + 1
            logger.debug("Processing batch %d (%d rows)", batch_num, len(rows))

            for row in rows:
                report.total += 1
                try:
                    if not self.needs_migration(codec, row):
                        report.skipped += 1
                        continue
                    await self._migrate_row(codec, tenant_id, row)
                    report.migrated += 1
                except LockedError:
                    logger.error(
                        "Session locked during %s migration for tenant=%s, "
                        "stopping after %d record(s)",
                        kind.name, tenant_id, report.migrated,
                    )
                    raise
                except Exception as err:
                    logger.error(
                        "Error migrating %s id=%s: %s",
                        kind.name, row.get("id"), err,
                    )
                    report.errors += 1

            offset += len(rows)

        logger.info("Migration complete for tenant=%s: %s", tenant_id, report)
        return report

    async def migrate_record(
        self,
        tenant_id: str,
        kind: EntityKind,
        record_id: Any,
    ) -> bool:
        """Encrypt one record.

        Returns:
            True if the record was rewritten, False if nothing needed it.

        Raises:
            LockedError: If the session is locked.
            NotConfiguredError: If the tenant has encryption disabled.
            RecordNotFoundError: If the record does not exist for the tenant.
        """
        codec = await self._codec(tenant_id, kind)
        record = await self._store.fetch_record(kind, tenant_id, record_id)
        if record is None:
            raise RecordNotFoundError(f"{kind.name} id={record_id} not found")
        if not self.needs_migration(codec, record):
            return False
        return await self._migrate_row(codec, tenant_id, record)

    async def migrate_tenant(
        self,
        tenant_id: str,
        kinds: Optional[Iterable[EntityKind]] = None,
    ) -> dict[str, MigrationReport]:
        """Run :meth:`migrate_all` for several kinds (all registered by default)."""
        kinds = tuple(kinds) if kinds is not None else tuple(ENTITY_KINDS.values())
        reports = {}
        for kind in kinds:
            reports[kind.name] = await self.migrate_all(tenant_id, kind)
        return reports
