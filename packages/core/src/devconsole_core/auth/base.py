"""Base authenticator implementing the silent-authentication contract.

All credential sources share the same caching behaviour:
    authenticate_silently(invalidate) → cached session, or _login()

Subclasses implement _login only: one fresh exchange that returns
SessionCredentials, returns None when the exchange needs a step the caller
must complete interactively, or raises AuthenticationError / NetworkError.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from devconsole_core.models import SessionCredentials

logger = logging.getLogger(__name__)


class BaseAuthenticator(ABC):
    def __init__(self, account_name: str):
        self.account_name = account_name
        self._cached: SessionCredentials | None = None

    def authenticate_silently(self, invalidate: bool = False) -> SessionCredentials | None:
        """Return session credentials without user interaction.

        With invalidate=False a cached session is returned as-is and no
        request is made. With invalidate=True, or with nothing cached, a
        fresh login runs. None means an interactive step is required.
        """
        if invalidate:
            logger.debug("Dropping cached session for %s", self.account_name)
            self._cached = None
        elif self._cached is not None:
            return self._cached

        credentials = self._login()
        if credentials is None:
            logger.info("Silent authentication for %s needs an interactive step", self.account_name)
        self._cached = credentials
        return credentials

    @abstractmethod
    def _login(self) -> SessionCredentials | None:
        """Run one login exchange against the console."""
