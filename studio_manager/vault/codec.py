"""
FieldCodec — Encrypts and decrypts the sensitive fields of a record.

Writes and reads are asymmetric:
- ``encrypt_fields`` refuses to run while locked, so a plaintext secret is
  never written into a tenant that has encryption enabled.
- ``decrypt_fields`` never fails on field content: envelopes it cannot open
  (locked session, corrupted value) are left in place and reported in
  ``DecryptResult.locked``, so listings still render.

Security Note:
    Never log field values. Only log kinds and field names.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from .crypto import decrypt_value, encrypt_value, is_envelope
from .entities import EntityKind
from .exceptions import DecryptionError, LockedError
from .keystore import SessionKeyStore

logger = logging.getLogger("studio.vault")


def _is_populated(name: str, value: Any) -> bool:
    if value is None or value == "":
        return False
    if not isinstance(value, str):
        raise TypeError(
            f"Sensitive field {name} must be a string, got {type(value).__name__}"
        )
    return True


@dataclass
class DecryptResult:
    """Outcome of :meth:`FieldCodec.decrypt_fields`.

    Attributes:
        record: Copy of the record with every openable envelope decrypted.
        locked: Names of fields still holding an envelope.
    """

    record: dict
    locked: set = field(default_factory=set)

    @property
    def is_locked(self) -> bool:
        return bool(self.locked)


class FieldCodec:
    """Maps one entity kind's sensitive fields through the envelope.

    Args:
        kind: Entity kind describing the sensitive columns.
        keystore: Session key holder, read on every call.
        enabled: Tenant's ``encryption_enabled`` flag. When False records
            are written as plaintext.
    """

    def __init__(self, kind: EntityKind, keystore: SessionKeyStore, enabled: bool = True):
        self.kind = kind
        self._keystore = keystore
        self.enabled = enabled

    def __repr__(self) -> str:
        return f"<FieldCodec kind={self.kind.name} enabled={self.enabled}>"

    def plaintext_fields(self, record: Mapping[str, Any]) -> list[str]:
        """Sensitive fields holding a non-empty value that is not an envelope.

        Raises:
            TypeError: If a sensitive field holds a non-string value.
        """
        return [
            name for name in self.kind.fields
            if _is_populated(name, record.get(name)) and not is_envelope(record[name])
        ]

    def has_plaintext(self, record: Mapping[str, Any]) -> bool:
        return bool(self.plaintext_fields(record))

    def is_encrypted(self, record: Mapping[str, Any]) -> bool:
        """True when any sensitive field holds an envelope."""
        return any(is_envelope(record.get(name)) for name in self.kind.fields)

    def encrypt_fields(self, record: Mapping[str, Any]) -> dict:
        """Return a copy of ``record`` with plaintext sensitive fields encrypted.

        Non-sensitive keys are copied as-is. Null and empty values are kept,
        and values that are already envelopes are never encrypted twice.
        The input mapping is not modified.

        Raises:
            LockedError: If a field needs encryption and no key is held.
                Nothing is encrypted in that case.
            TypeError: If a sensitive field holds a non-string value.
        """
        result = dict(record)
        if not self.enabled:
            return result
        pending = self.plaintext_fields(record)
        if not pending:
            return result
        key = self._keystore.get()
        if key is None:
            raise LockedError(
                f"Cannot save {self.kind.name} sensitive fields while locked"
            )
        encrypted = {name: encrypt_value(record[name], key) for name in pending}
        result.update(encrypted)
        self._keystore.touch()
        return result

    def decrypt_fields(self, record: Mapping[str, Any]) -> DecryptResult:
        """Return a copy of ``record`` with envelopes decrypted where possible."""
        result = DecryptResult(record=dict(record))
        envelopes = [
            name for name in self.kind.fields if is_envelope(record.get(name))
        ]
        if not envelopes:
            return result
        key = self._keystore.get()
        if key is None:
            result.locked.update(envelopes)
            return result
        for name in envelopes:
            try:
                result.record[name] = decrypt_value(record[name], key)
            except DecryptionError:
                logger.debug(
                    "Field %s of %s left encrypted: decryption failed",
                    name, self.kind.name,
                )
                result.locked.add(name)
        self._keystore.touch()
        return result
