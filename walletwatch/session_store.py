# walletwatch/session_store.py
import logging
import threading
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger("walletwatch.session")


class SessionStore:
    """Single-slot holder for the current Data API session token.

    All access goes through one re-entrant lock. Besides plain get/set/clear,
    ``acquire`` performs the whole reuse-or-create decision under that lock so
    concurrent callers never open two sessions for the same empty slot.
    Sessions opened through ``acquire`` are leased; ``release`` tells the last
    leaseholder to close it. Tokens placed with ``set`` are caller-managed and
    never handed back for closing.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._token: Optional[str] = None
        self._leases: Dict[str, int] = {}

    def get(self) -> Optional[str]:
        with self._lock:
            return self._token

    def set(self, token: str) -> None:
        with self._lock:
            self._token = token

    def clear(self) -> None:
        with self._lock:
            self._token = None

    def has(self) -> bool:
        with self._lock:
            return self._token is not None

    def acquire(self, factory: Callable[[], str]) -> Tuple[str, bool]:
        """Return ``(token, created)``, calling ``factory`` only if the slot is empty"""
        with self._lock:
            if self._token is not None:
                token = self._token
                if token in self._leases:
                    self._leases[token] += 1
                return token, False
            token = factory()
            self._token = token
            self._leases[token] = 1
            return token, True

    def release(self, token: str) -> bool:
        """Drop one lease; True when the caller must now close the session"""
        with self._lock:
            count = self._leases.get(token)
            if count is None:
                return False
            if count > 1:
                self._leases[token] = count - 1
                return False
            del self._leases[token]
            if self._token == token:
                self._token = None
            return True

    def forget(self, token: str) -> None:
        """Empty the slot and drop outstanding leases so nobody else closes ``token``"""
        with self._lock:
            self._leases.pop(token, None)
            if self._token == token:
                self._token = None

    def lease_count(self, token: str) -> int:
        with self._lock:
            return self._leases.get(token, 0)
