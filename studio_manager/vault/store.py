"""
RecordStore — Reads and writes of tenant settings and sensitive columns.

The only module that talks to the database. Works with any
asyncpg-compatible pool (``pool.acquire()`` yielding a connection with
``fetch``, ``fetchrow`` and ``execute``). Values are always bound as
parameters; table and column names come from the EntityKind registry.

Security Note:
    Never log column values. Only log tenant ids, tables and record ids.
"""
import logging
from typing import Any, Optional

from .crypto import IV_SIZE, TAG_SIZE
from .entities import EntityKind

logger = logging.getLogger("studio.vault")

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_SELECT_TENANT = """
SELECT id, encryption_salt, encryption_enabled
FROM tbstudio
WHERE id = $1
"""

_SETUP_TENANT = """
UPDATE tbstudio
SET encryption_salt = $1, encryption_enabled = TRUE, updated_at = NOW()
WHERE id = $2 AND encryption_salt IS NULL
"""

_RESET_TENANT_SALT = """
UPDATE tbstudio
SET encryption_salt = $1, encryption_enabled = TRUE, updated_at = NOW()
WHERE id = $2
"""

_SELECT_BATCH = """
SELECT id, {columns}
FROM {table}
WHERE studio_id = $1
ORDER BY id
LIMIT $2
OFFSET $3
"""

_SELECT_RECORD = """
SELECT id, {columns}
FROM {table}
WHERE id = $1 AND studio_id = $2
"""

_SELECT_SAMPLES = """
SELECT {column}
FROM {table}
WHERE studio_id = $1 AND {column} ~ $2
ORDER BY id
LIMIT $3
"""

# POSIX regex of the envelope shape, bound as a parameter of _SELECT_SAMPLES.
ENVELOPE_SQL_PATTERN = (
    f"^[0-9a-fA-F]{{{IV_SIZE * 2}}}:[0-9a-fA-F]{{{TAG_SIZE * 2}}}:"
    "([0-9a-fA-F]{2})*$"
)

_UPDATE_FIELDS = """
UPDATE {table}
SET {assignments}, updated_at = NOW()
WHERE id = ${id_param} AND studio_id = ${tenant_param}
"""


def _affected_rows(status: Any) -> int:
    """Row count from an asyncpg command status such as ``'UPDATE 1'``."""
    if isinstance(status, str):
        try:
            return int(status.rsplit(" ", 1)[-1])
        except ValueError:
            return 0
    return 0


class RecordStore:
    """Persistence gateway for the vault.

    Args:
        db_pool: asyncpg-compatible connection pool.
    """

    def __init__(self, db_pool: Any):
        self._db = db_pool

    # ------------------------------------------------------------------
    # Tenant settings
    # ------------------------------------------------------------------

    async def fetch_tenant(self, tenant_id: str) -> Optional[dict]:
        """Return the tenant's encryption columns, or None if the row is missing."""
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_TENANT, tenant_id)
        return dict(row) if row is not None else None

    async def setup_tenant(self, tenant_id: str, salt: str) -> bool:
        """Store the salt and enable encryption, only if no salt exists yet.

        Returns:
            True if the row was updated, False if a salt was already set
            (or the tenant row does not exist).
        """
        async with self._db.acquire() as conn:
            status = await conn.execute(_SETUP_TENANT, salt, tenant_id)
        return _affected_rows(status) > 0

    async def reset_tenant_salt(self, tenant_id: str, salt: str) -> bool:
        """Overwrite the salt unconditionally. Returns True if a row changed."""
        async with self._db.acquire() as conn:
            status = await conn.execute(_RESET_TENANT_SALT, salt, tenant_id)
        return _affected_rows(status) > 0

    # ------------------------------------------------------------------
    # Entity records
    # ------------------------------------------------------------------

    async def fetch_batch(
        self,
        kind: EntityKind,
        tenant_id: str,
        limit: int,
        offset: int,
    ) -> list[dict]:
        """Return one page of records (id + sensitive columns), ordered by id."""
        sql = _SELECT_BATCH.format(
            columns=", ".join(kind.fields), table=kind.table,
        )
        async with self._db.acquire() as conn:
            rows = await conn.fetch(sql, tenant_id, limit, offset)
        return [dict(row) for row in rows]

    async def fetch_record(
        self,
        kind: EntityKind,
        tenant_id: str,
        record_id: Any,
    ) -> Optional[dict]:
        sql = _SELECT_RECORD.format(
            columns=", ".join(kind.fields), table=kind.table,
        )
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(sql, record_id, tenant_id)
        return dict(row) if row is not None else None

    async def fetch_samples(
        self,
        kind: EntityKind,
        tenant_id: str,
        column: str,
        limit: int = 1,
    ) -> list[str]:
        """Return up to ``limit`` envelope-shaped values of one sensitive column.

        The shape is matched in SQL, so plaintext rows never crowd envelopes
        out of the result.
        """
        if column not in kind.fields:
            raise ValueError(f"{column!r} is not a sensitive field of {kind.name}")
        sql = _SELECT_SAMPLES.format(column=column, table=kind.table)
        async with self._db.acquire() as conn:
            rows = await conn.fetch(sql, tenant_id, ENVELOPE_SQL_PATTERN, limit)
        return [row[column] for row in rows]

    async def update_fields(
        self,
        kind: EntityKind,
        tenant_id: str,
        record_id: Any,
        values: dict,
    ) -> bool:
        """Write sensitive columns of one record.

        Only columns declared by ``kind`` are accepted.

        Returns:
            True if the record was updated.

        Raises:
            ValueError: If ``values`` is empty or names a non-sensitive column.
        """
        if not values:
            raise ValueError("No fields to update")
        unknown = set(values) - set(kind.fields)
        if unknown:
            raise ValueError(
                f"Not sensitive fields of {kind.name}: {sorted(unknown)}"
            )
        columns = [f for f in kind.fields if f in values]
        assignments = ", ".join(
            f"{column} = ${idx}" for idx, column in enumerate(columns, start=1)
        )
        sql = _UPDATE_FIELDS.format(
            table=kind.table,
            assignments=assignments,
            id_param=len(columns) + 1,
            tenant_param=len(columns) + 2,
        )
        args = [values[column] for column in columns]
        async with self._db.acquire() as conn:
            status = await conn.execute(sql, *args, record_id, tenant_id)
        updated = _affected_rows(status) > 0
        if not updated:
            logger.warning(
                "Update matched no row: table=%s id=%s tenant=%s",
                kind.table, record_id, tenant_id,
            )
        return updated
