"""Per-client session store."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from devconsole_core.models import SessionCredentials


class SessionStore:
    """Holds the current SessionCredentials for one client instance.

    Credentials are frozen, so replace() swaps the whole value and a reader
    sees either the old session or the new one, never a mix of both.
    """

    def __init__(self, credentials: SessionCredentials | None = None):
        self._lock = threading.Lock()
        self._credentials = credentials

    def get(self) -> SessionCredentials | None:
        with self._lock:
            return self._credentials

    def replace(self, credentials: SessionCredentials | None) -> None:
        with self._lock:
            self._credentials = credentials

    def clear(self) -> None:
        self.replace(None)
