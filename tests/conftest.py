"""
Shared fixtures for the vault test suite.

``MemoryRecordStore`` mirrors the public API of
:class:`studio_manager.vault.store.RecordStore` on top of plain dicts so
component tests run without a database. SQL generation is covered
separately in ``test_store.py``.
"""
import pytest

from studio_manager.vault import (
    FISCAL_DRAWER,
    SessionKeyStore,
    VaultConfig,
    derive_key,
    encrypt_value,
    generate_salt,
    is_envelope,
)

TENANT = "T1"
OTHER_TENANT = "T2"
MASTER_PASSWORD = "MasterPass1"


class MemoryRecordStore:
    """In-memory stand-in for RecordStore."""

    def __init__(self):
        self.tenants: dict = {}
        self.tables: dict = {}
        self.updates: list = []
        self.fail_ids: set = set()

    # --- helpers used by tests ---

    def add_tenant(self, tenant_id, salt=None, enabled=False):
        self.tenants[tenant_id] = {
            "id": tenant_id,
            "encryption_salt": salt,
            "encryption_enabled": enabled,
        }

    def add_record(self, kind, tenant_id, record_id, **values):
        row = {"id": record_id, "studio_id": tenant_id}
        row.update({name: None for name in kind.fields})
        row.update(values)
        self.tables.setdefault(kind.table, {})[record_id] = row
        return row

    def row(self, kind, record_id):
        return self.tables[kind.table][record_id]

    def _project(self, kind, row):
        return {"id": row["id"], **{name: row[name] for name in kind.fields}}

    # --- RecordStore API ---

    async def fetch_tenant(self, tenant_id):
        row = self.tenants.get(tenant_id)
        return dict(row) if row is not None else None

    async def setup_tenant(self, tenant_id, salt):
        row = self.tenants.get(tenant_id)
        if row is None or row["encryption_salt"] is not None:
            return False
        row["encryption_salt"] = salt
        row["encryption_enabled"] = True
        return True

    async def reset_tenant_salt(self, tenant_id, salt):
        row = self.tenants.get(tenant_id)
        if row is None:
            return False
        row["encryption_salt"] = salt
        row["encryption_enabled"] = True
        return True

    async def fetch_batch(self, kind, tenant_id, limit, offset):
        rows = sorted(
            (r for r in self.tables.get(kind.table, {}).values()
             if r["studio_id"] == tenant_id),
            key=lambda r: r["id"],
        )
        return [self._project(kind, r) for r in rows[offset:offset + limit]]

    async def fetch_record(self, kind, tenant_id, record_id):
        row = self.tables.get(kind.table, {}).get(record_id)
        if row is None or row["studio_id"] != tenant_id:
            return None
        return self._project(kind, row)

    async def fetch_samples(self, kind, tenant_id, column, limit=1):
        rows = sorted(
            self.tables.get(kind.table, {}).values(), key=lambda r: r["id"],
        )
        values = [
            r[column] for r in rows
            if r["studio_id"] == tenant_id and is_envelope(r[column])
        ]
        return values[:limit]

    async def update_fields(self, kind, tenant_id, record_id, values):
        if record_id in self.fail_ids:
            raise RuntimeError(f"value too long for record {record_id}")
        row = self.tables.get(kind.table, {}).get(record_id)
        if row is None or row["studio_id"] != tenant_id:
            return False
        row.update(values)
        self.updates.append((kind.table, record_id, dict(values)))
        return True


@pytest.fixture
def config():
    """Low iteration count keeps key derivation fast in tests."""
    return VaultConfig(kdf_iterations=10_000, batch_size=2)


@pytest.fixture
def keystore():
    return SessionKeyStore()


@pytest.fixture
def key():
    return bytes(range(32))


@pytest.fixture
def store():
    """Store with an unconfigured tenant T1 and a disabled tenant T2."""
    memory = MemoryRecordStore()
    memory.add_tenant(TENANT)
    memory.add_tenant(OTHER_TENANT)
    return memory


@pytest.fixture
def configured_store(store, config):
    """T1 configured with MASTER_PASSWORD and one encrypted fiscal drawer.

    Returns:
        Tuple of (store, derived key).
    """
    salt = generate_salt()
    store.add_tenant(TENANT, salt=salt, enabled=True)
    derived = derive_key(MASTER_PASSWORD, salt, config.kdf_iterations)
    store.add_record(
        FISCAL_DRAWER, TENANT, 1,
        username="RSSMRA80A01H501U",
        password1=encrypt_value("Entratel2024!", derived),
        pin=encrypt_value("123456", derived),
    )
    return store, derived
