"""
SessionKeyStore — Holder of the derived key for one unlocked session.

The store is an explicit object handed to every component that needs the
key; nothing in the package keeps a module-level key. It is never
persisted: a new process always starts locked and the key has to be derived
again from the master password.

Security Note:
    The key lives in process memory while unlocked. ``clear()`` overwrites
    the buffer before dropping it, which is best effort in CPython since
    copies returned by ``get()`` are immutable ``bytes``.
"""
import time
import logging
from typing import Optional

from .config import DEFAULT_AUTO_LOCK_TIMEOUT
from .crypto import KEY_LENGTH
from .exceptions import CryptoError

logger = logging.getLogger("studio.vault")


class SessionKeyStore:
    """Single-slot, last-write-wins key holder.

    Args:
        auto_lock_timeout: Idle seconds after which :meth:`lock_if_idle`
            clears the key.
        clock: Monotonic time source, replaceable in tests.
    """

    def __init__(
        self,
        auto_lock_timeout: int = DEFAULT_AUTO_LOCK_TIMEOUT,
        clock=time.monotonic,
    ):
        self._key: Optional[bytearray] = None
        self._last_activity: Optional[float] = None
        self._timeout = auto_lock_timeout
        self._clock = clock

    def __repr__(self) -> str:
        state = "unlocked" if self.is_unlocked() else "locked"
        return f"<SessionKeyStore {state}>"

    def store(self, key: bytes) -> None:
        """Hold ``key``, replacing (and wiping) any previous one.

        Raises:
            CryptoError: If the key is not 32 bytes.
        """
        if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_LENGTH:
            raise CryptoError(
                f"Key must be {KEY_LENGTH} bytes", recoverable=False
            )
        self._wipe()
        self._key = bytearray(key)
        self._last_activity = self._clock()
        logger.debug("Session key stored")

    def get(self) -> Optional[bytes]:
        """Return the held key, or None when locked."""
        if self._key is None:
            return None
        return bytes(self._key)

    def clear(self) -> None:
        """Wipe and drop the key."""
        was_unlocked = self._key is not None
        self._wipe()
        self._last_activity = None
        if was_unlocked:
            logger.info("Session key cleared")

    def is_unlocked(self) -> bool:
        """True while a key is held."""
        return self._key is not None

    # ------------------------------------------------------------------
    # Idle tracking
    # ------------------------------------------------------------------

    def touch(self) -> None:
        """Record user activity. No-op while locked."""
        if self._key is not None:
            self._last_activity = self._clock()

    def is_idle(self, now: Optional[float] = None) -> bool:
        """True when the idle timeout has elapsed, or nothing was ever stored."""
        if self._last_activity is None:
            return True
        now = self._clock() if now is None else now
        return (now - self._last_activity) > self._timeout

    def lock_if_idle(self) -> bool:
        """Clear the key when idle. Returns True if the store was locked now."""
        if self._key is not None and self.is_idle():
            logger.info("Auto-lock after %ds of inactivity", self._timeout)
            self.clear()
            return True
        return False

    def _wipe(self) -> None:
        if self._key is not None:
            for idx in range(len(self._key)):
                self._key[idx] = 0
            self._key = None
