"""Developer console client: authentication retry and operation sequencing.

Every public operation runs through the same state machine:
    cached session → operation
    session rejected → fresh login → operation once more
A rejection on the retry propagates to the caller. When silent login needs
an interactive step the operation returns an empty result instead.

Public operations hold one lock for their whole duration, so two fetches
on the same client never interleave against the same session.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from devconsole_core.auth.password import PasswordAuthenticator
from devconsole_core.console.protocol import ConsoleProtocol
from devconsole_core.console.transport import DEFAULT_TIMEOUT, Outcome, RequestsTransport, create_http_session
from devconsole_core.errors import AuthenticationError, InvalidRequestError, NetworkError
from devconsole_core.models import AppStats
from devconsole_core.session import SessionStore

if TYPE_CHECKING:
    from devconsole_core.auth.base import BaseAuthenticator
    from devconsole_core.models import AppInfo, Comment, DeveloperConsoleAccount

logger = logging.getLogger(__name__)

COMMENTS_PAGE_SIZE = 50


@dataclass(frozen=True)
class Completed:
    value: Any


@dataclass(frozen=True)
class SessionRejected:
    error: AuthenticationError


@dataclass(frozen=True)
class InteractionRequired:
    pass


Attempt = Completed | SessionRejected | InteractionRequired


class ConsoleClient:
    def __init__(
        self,
        authenticator: BaseAuthenticator,
        protocol: ConsoleProtocol,
        transport: RequestsTransport,
        display_locale: str = "en",
    ):
        self.authenticator = authenticator
        self.protocol = protocol
        self.transport = transport
        self.account_name = authenticator.account_name
        self.display_locale = display_locale
        self._lock = threading.Lock()

    @classmethod
    def for_account_and_password(
        cls,
        account_name: str,
        password: str,
        timeout: float = DEFAULT_TIMEOUT,
        display_locale: str = "en",
        reply_enabled: bool = True,
        interactive_handler: Callable[[str], None] | None = None,
    ) -> ConsoleClient:
        http_session = create_http_session()
        authenticator = PasswordAuthenticator(
            account_name, password, http_session, interactive_handler=interactive_handler, timeout=timeout
        )
        protocol = ConsoleProtocol(SessionStore(), reply_enabled=reply_enabled)
        transport = RequestsTransport(http_session, timeout=timeout)
        return cls(authenticator, protocol, transport, display_locale=display_locale)

    # ------------------------------------------------------------------ #
    # Public operations                                                    #
    # ------------------------------------------------------------------ #

    def get_app_info(self) -> list[AppInfo]:
        """Return the published apps of every developer account, with statistics."""
        return self._run(self._fetch_app_infos_and_statistics, default=[])

    def get_comments(
        self,
        package_name: str,
        developer_id: str,
        start_index: int,
        count: int,
        display_locale: str | None = None,
    ) -> list[Comment]:
        locale = display_locale or self.display_locale
        return self._run(
            lambda: self._fetch_comments(package_name, developer_id, start_index, count, locale),
            default=[],
        )

    def reply_to_comment(self, package_name: str, developer_id: str, comment_id: str, reply: str) -> Comment | None:
        return self._run(
            lambda: self._reply_to_comment(package_name, developer_id, comment_id, reply),
            default=None,
        )

    def get_statistics(self, app: AppInfo, stats_type: int) -> AppStats | None:
        """Fetch one statistics series for app and merge its latest value.

        The app-list flow does not need this (install counts come with the
        list); it is kept for callers that want a single series refreshed.
        """

        def operation() -> AppStats:
            if app.latest_stats is None:
                app.latest_stats = AppStats()
            return self._fetch_statistics(app, app.latest_stats, stats_type)

        return self._run(operation, default=None)

    def can_reply_to_comments(self) -> bool:
        return self.protocol.can_reply_to_comments()

    def has_session_credentials(self) -> bool:
        return self.protocol.has_session_credentials()

    # ------------------------------------------------------------------ #
    # Authentication retry                                                 #
    # ------------------------------------------------------------------ #

    def _run(self, operation: Callable[[], Any], default: Any) -> Any:
        with self._lock:
            attempt = self._attempt(operation)
            if isinstance(attempt, Completed):
                return attempt.value
            if isinstance(attempt, InteractionRequired):
                return default

            logger.info("Session rejected (%s), authenticating from scratch", attempt.error)
            if not self._authenticate(invalidate=True):
                return default
            # A second rejection propagates.
            return operation()

    def _attempt(self, operation: Callable[[], Any]) -> Attempt:
        try:
            if not self._authenticate(invalidate=False):
                return InteractionRequired()
            return Completed(operation())
        except AuthenticationError as e:
            return SessionRejected(e)

    def _authenticate(self, invalidate: bool) -> bool:
        if invalidate:
            self.protocol.invalidate_session_credentials()

        if self.protocol.has_session_credentials():
            return True

        credentials = self.authenticator.authenticate_silently(invalidate)
        self.protocol.set_session_credentials(credentials)
        return self.protocol.has_session_credentials()

    def _post(self, url: str, body: str, developer_id: str) -> str:
        result = self.transport.execute(self.protocol.build_request(url, body, developer_id))
        if result.outcome is Outcome.OK:
            return result.body or ""
        if result.outcome is Outcome.AUTH_EXPIRED:
            raise AuthenticationError(f"Session rejected by {url}")
        raise NetworkError(f"Request to {url} failed: {result.error or result.status_code}") from result.error

    # ------------------------------------------------------------------ #
    # Operations                                                           #
    # ------------------------------------------------------------------ #

    def _fetch_app_infos_and_statistics(self) -> list[AppInfo]:
        apps = self._fetch_app_infos()
        # No batched endpoint: ratings and comment counts are fetched app by app.
        for app in apps:
            if app.latest_stats is None:
                app.latest_stats = AppStats()
            self._fetch_ratings(app, app.latest_stats)
            app.latest_stats.number_of_comments = self._fetch_comments_count(app, self.display_locale)
        return apps

    def _fetch_app_infos(self) -> list[AppInfo]:
        """Fetch the app list of every developer account in the session.

        Entries that come back without details are collected and re-requested
        once in a narrower details request; a second miss is dropped.
        """
        result: list[AppInfo] = []
        for account in self.protocol.get_session_credentials().developer_accounts:
            developer_id = account.developer_id
            logger.debug("Getting apps for %s", developer_id)
            url = self.protocol.create_fetch_apps_url(developer_id)

            body = self._post(url, self.protocol.create_fetch_app_infos_request(), developer_id)
            apps = self.protocol.parse_app_infos_response(body, self.account_name, skip_incomplete=False)
            for app in apps:
                _attach_owner(app, account)

            result.extend(app for app in apps if not app.incomplete)
            incomplete_packages = [app.package_name for app in apps if app.incomplete]
            logger.debug("Found %d apps for %s, %d incomplete", len(apps), developer_id, len(incomplete_packages))
            if not incomplete_packages:
                continue

            body = self._post(url, self.protocol.create_fetch_app_infos_request(incomplete_packages), developer_id)
            extra_apps = self.protocol.parse_app_infos_response(body, self.account_name, skip_incomplete=True)
            logger.debug("Got %d extra apps from details request", len(extra_apps))
            for app in extra_apps:
                _attach_owner(app, account)
            result.extend(extra_apps)

        return result

    def _fetch_ratings(self, app: AppInfo, stats: AppStats) -> AppStats:
        developer_id = _developer_id(app)
        body = self._post(
            self.protocol.create_comments_url(developer_id),
            self.protocol.create_fetch_ratings_request(app.package_name),
            developer_id,
        )
        return self.protocol.parse_ratings_response(body, stats)

    def _fetch_statistics(self, app: AppInfo, stats: AppStats, stats_type: int) -> AppStats:
        developer_id = _developer_id(app)
        body = self._post(
            self.protocol.create_fetch_statistics_url(developer_id),
            self.protocol.create_fetch_statistics_request(app.package_name, stats_type),
            developer_id,
        )
        return self.protocol.parse_statistics_response(body, stats, stats_type)

    def _fetch_comments_count(self, app: AppInfo, display_locale: str | None) -> int:
        """Estimate the number of comments the way the console page does.

        Fetch the first page and read the approximate total. A total that
        fits in one page is taken as is; otherwise a page near the end is
        requested and its reported total returned. The result is an
        approximation and does not always match the console's true count.
        """
        developer_id = _developer_id(app)
        url = self.protocol.create_comments_url(developer_id)

        body = self._post(
            url,
            self.protocol.create_fetch_comments_request(app.package_name, 0, COMMENTS_PAGE_SIZE, display_locale),
            developer_id,
        )
        approx_count = self.protocol.extract_comments_count(body)
        if approx_count <= COMMENTS_PAGE_SIZE:
            return approx_count

        body = self._post(
            url,
            self.protocol.create_fetch_comments_request(
                app.package_name, approx_count - COMMENTS_PAGE_SIZE, COMMENTS_PAGE_SIZE, display_locale
            ),
            developer_id,
        )
        return self.protocol.extract_comments_count(body)

    def _fetch_comments(
        self, package_name: str, developer_id: str, start_index: int, count: int, display_locale: str | None
    ) -> list[Comment]:
        body = self._post(
            self.protocol.create_comments_url(developer_id),
            self.protocol.create_fetch_comments_request(package_name, start_index, count, display_locale),
            developer_id,
        )
        return self.protocol.parse_comments_response(body, display_locale)

    def _reply_to_comment(self, package_name: str, developer_id: str, comment_id: str, reply: str) -> Comment:
        body = self._post(
            self.protocol.create_comments_url(developer_id),
            self.protocol.create_reply_to_comment_request(package_name, comment_id, reply),
            developer_id,
        )
        return self.protocol.parse_comment_reply_response(body)


def _attach_owner(app: AppInfo, account: DeveloperConsoleAccount) -> None:
    app.developer_id = account.developer_id
    app.developer_name = account.name


def _developer_id(app: AppInfo) -> str:
    if not app.developer_id:
        raise InvalidRequestError(f"App {app.package_name} has no developer id")
    return app.developer_id
