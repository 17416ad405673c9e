"""Request shaping for the developer console.

ConsoleProtocol turns domain calls into ConsoleRequest values (URL, JSON
body, headers) and hands raw response bodies to the decoder. Building a
request performs no I/O; executing it is the transport's job.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable
from urllib.parse import quote

from devconsole_core.console import decoder
from devconsole_core.console.decoder import (  # noqa: F401 - re-exported for callers
    STATS_TYPE_ACTIVE_DEVICE_INSTALLS,
    STATS_TYPE_TOTAL_USER_INSTALLS,
)
from devconsole_core.errors import AuthenticationError
from devconsole_core.session import SessionStore

if TYPE_CHECKING:
    from devconsole_core.models import AppInfo, AppStats, Comment, SessionCredentials


BASE_URL = "https://play.google.com/apps/publish/"
API_URL = BASE_URL + "v2/"
GWT_MODULE_BASE = BASE_URL + "gwt/"

APPS_PATH = "androidapps"
STATISTICS_PATH = "statistics"
REVIEWS_PATH = "reviews"

# fetch params: "2" selects the listing view, "3" the field mask
_FETCH_ALL_APPS_PARAMS = {"2": 1, "3": 7}
_FETCH_DETAILS_MASK = 1


@dataclass(frozen=True)
class ConsoleRequest:
    """A fully built POST: where to send it, what to send and with which headers."""

    url: str
    body: str
    headers: dict[str, str] = field(default_factory=dict)
    developer_id: str | None = None


class ConsoleProtocol:
    """Builds console requests from the current session and decodes replies.

    Session state lives in the SessionStore handed in by the owning client;
    the protocol only reads it when shaping a request.
    """

    def __init__(self, session_store: SessionStore | None = None, reply_enabled: bool = True):
        self.session_store = session_store if session_store is not None else SessionStore()
        self._reply_enabled = reply_enabled

    # ------------------------------------------------------------------ #
    # Session state                                                        #
    # ------------------------------------------------------------------ #

    def has_session_credentials(self) -> bool:
        return self.session_store.get() is not None

    def invalidate_session_credentials(self) -> None:
        self.session_store.clear()

    def set_session_credentials(self, credentials: SessionCredentials | None) -> None:
        self.session_store.replace(credentials)

    def get_session_credentials(self) -> SessionCredentials:
        credentials = self.session_store.get()
        if credentials is None:
            raise AuthenticationError("No session credentials; authenticate first")
        return credentials

    def can_reply_to_comments(self) -> bool:
        return self._reply_enabled

    # ------------------------------------------------------------------ #
    # URLs and headers                                                     #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _url(path: str, developer_id: str) -> str:
        return f"{API_URL}{path}?dev_acc={quote(developer_id, safe='')}"

    def create_fetch_apps_url(self, developer_id: str) -> str:
        return self._url(APPS_PATH, developer_id)

    def create_fetch_statistics_url(self, developer_id: str) -> str:
        return self._url(STATISTICS_PATH, developer_id)

    def create_comments_url(self, developer_id: str) -> str:
        return self._url(REVIEWS_PATH, developer_id)

    def build_headers(self, developer_id: str) -> dict[str, str]:
        # No Cookie header: the shared requests.Session jar sends the cookies.
        credentials = self.get_session_credentials()
        return {
            "Content-Type": "application/json; charset=utf-8",
            "Origin": "https://play.google.com",
            "X-GWT-Module-Base": GWT_MODULE_BASE,
            "Referer": f"{BASE_URL}?dev_acc={quote(developer_id, safe='')}",
            "X-Developer-Id": developer_id,
            "X-XSRF-Token": credentials.xsrf_token,
        }

    # ------------------------------------------------------------------ #
    # Request bodies                                                       #
    # ------------------------------------------------------------------ #

    def _body(self, method: str, params: dict) -> str:
        return json.dumps(
            {"method": method, "params": params, "xsrf": self.get_session_credentials().xsrf_token},
            separators=(",", ":"),
        )

    def create_fetch_app_infos_request(self, package_names: Iterable[str] | None = None) -> str:
        """Body for the app list; with package_names, the narrower details request."""
        if package_names is None:
            return self._body("fetch", dict(_FETCH_ALL_APPS_PARAMS))
        return self._body("fetch", {"1": list(package_names), "3": _FETCH_DETAILS_MASK})

    def create_fetch_ratings_request(self, package_name: str) -> str:
        return self._body("getRatings", {"1": [package_name]})

    def create_fetch_statistics_request(self, package_name: str, stats_type: int) -> str:
        return self._body("getCombinedStats", {"1": package_name, "2": 1, "3": stats_type})

    def create_fetch_comments_request(
        self, package_name: str, start: int, count: int, display_locale: str | None
    ) -> str:
        params: dict = {"1": package_name, "2": start, "3": count}
        if display_locale:
            params["8"] = display_locale
        return self._body("getReviews", params)

    def create_reply_to_comment_request(self, package_name: str, comment_id: str, reply: str) -> str:
        return self._body("sendReply", {"1": package_name, "2": comment_id, "3": reply})

    def build_request(self, url: str, body: str, developer_id: str) -> ConsoleRequest:
        return ConsoleRequest(url=url, body=body, headers=self.build_headers(developer_id), developer_id=developer_id)

    # ------------------------------------------------------------------ #
    # Response parsing (delegated to the decoder)                          #
    # ------------------------------------------------------------------ #

    def parse_app_infos_response(self, body: str, account_name: str, skip_incomplete: bool) -> list[AppInfo]:
        return decoder.decode_app_infos(body, account_name, skip_incomplete)

    def parse_ratings_response(self, body: str, stats: AppStats) -> AppStats:
        return decoder.decode_ratings(body, stats)

    def parse_statistics_response(self, body: str, stats: AppStats, stats_type: int) -> AppStats:
        return decoder.decode_statistics(body, stats, stats_type)

    def extract_comments_count(self, body: str) -> int:
        return decoder.decode_comments_count(body)

    def parse_comments_response(self, body: str, display_locale: str | None) -> list[Comment]:
        return decoder.decode_comments(body, display_locale)

    def parse_comment_reply_response(self, body: str) -> Comment:
        return decoder.decode_comment_reply(body)
