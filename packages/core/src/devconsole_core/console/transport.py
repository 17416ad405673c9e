"""HTTP transport for console requests.

execute() never raises: every attempt comes back as a TransportResult tagged
OK, AUTH_EXPIRED or NETWORK_FAILURE, and the client branches on the tag.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import requests

if TYPE_CHECKING:
    from devconsole_core.console.protocol import ConsoleRequest

logger = logging.getLogger(__name__)

# Seconds, applied to both connect and read.
DEFAULT_TIMEOUT = 30


class Outcome(enum.Enum):
    OK = "ok"
    AUTH_EXPIRED = "auth_expired"
    NETWORK_FAILURE = "network_failure"


@dataclass(frozen=True)
class TransportResult:
    outcome: Outcome
    body: str | None = None
    status_code: int | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK


def create_http_session() -> requests.Session:
    """Session shared by the authenticator and the transport so cookies carry over."""
    session = requests.Session()
    session.headers.update({"Accept": "application/json, text/plain, */*"})
    return session


class RequestsTransport:
    """Posts console requests over a shared requests.Session."""

    def __init__(self, http_session: requests.Session | None = None, timeout: float = DEFAULT_TIMEOUT):
        self.http_session = http_session if http_session is not None else create_http_session()
        self.timeout = timeout

    def execute(self, request: ConsoleRequest) -> TransportResult:
        try:
            response = self.http_session.post(
                request.url,
                data=request.body.encode("utf-8"),
                headers=request.headers,
                timeout=(self.timeout, self.timeout),
            )
        except requests.exceptions.RequestException as e:
            logger.warning("POST %s failed: %s", request.url, e)
            return TransportResult(Outcome.NETWORK_FAILURE, error=e)

        if response.status_code == requests.codes.unauthorized:
            logger.debug("POST %s: session rejected (401)", request.url)
            return TransportResult(Outcome.AUTH_EXPIRED, status_code=response.status_code)

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            logger.warning("POST %s returned HTTP %d", request.url, response.status_code)
            return TransportResult(Outcome.NETWORK_FAILURE, status_code=response.status_code, error=e)

        return TransportResult(Outcome.OK, body=response.text, status_code=response.status_code)
