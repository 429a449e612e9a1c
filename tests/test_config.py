"""Tests for VaultConfig and the entity registry."""
import pytest
from pydantic import ValidationError

from studio_manager.vault import ENTITY_KINDS, EntityKind, VaultConfig, get_kind
from studio_manager.vault.config import DEFAULT_KDF_ITERATIONS


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "STUDIO_VAULT_KDF_ITERATIONS",
        "STUDIO_VAULT_AUTO_LOCK",
        "STUDIO_VAULT_BATCH_SIZE",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestVaultConfig:
    """Tests for defaults, validation and environment loading."""

    def test_defaults(self):
        config = VaultConfig()
        assert config.kdf_iterations == DEFAULT_KDF_ITERATIONS == 100_000
        assert config.auto_lock_timeout == 900
        assert config.batch_size == 100
        assert config.salt_length == 32

    def test_from_env_defaults(self, clean_env):
        assert VaultConfig.from_env() == VaultConfig()

    def test_from_env_overrides(self, clean_env):
        clean_env.setenv("STUDIO_VAULT_KDF_ITERATIONS", "200000")
        clean_env.setenv("STUDIO_VAULT_AUTO_LOCK", "300")
        clean_env.setenv("STUDIO_VAULT_BATCH_SIZE", "50")
        config = VaultConfig.from_env()
        assert config.kdf_iterations == 200_000
        assert config.auto_lock_timeout == 300
        assert config.batch_size == 50

    def test_from_env_rejects_non_integer(self, clean_env):
        clean_env.setenv("STUDIO_VAULT_BATCH_SIZE", "many")
        with pytest.raises(ValueError):
            VaultConfig.from_env()

    @pytest.mark.parametrize("kwargs", [
        {"kdf_iterations": 1000},
        {"auto_lock_timeout": 10},
        {"batch_size": 0},
        {"batch_size": 20_000},
        {"salt_length": 8},
    ])
    def test_validation(self, kwargs):
        with pytest.raises(ValidationError):
            VaultConfig(**kwargs)


class TestEntityKinds:
    """Tests for the sensitive field registry."""

    def test_registered_kinds(self):
        assert list(ENTITY_KINDS) == ["fiscal_drawer", "portal_credential", "client"]

    @pytest.mark.parametrize("name", list(ENTITY_KINDS))
    def test_primary_field_is_sensitive(self, name):
        kind = get_kind(name)
        assert kind.primary_field in kind.fields

    def test_unknown_kind(self):
        with pytest.raises(KeyError):
            get_kind("agenda")

    def test_primary_must_be_sensitive(self):
        with pytest.raises(ValueError):
            EntityKind(name="x", table="tbx", fields=("a",), primary_field="b")
