"""Account + password login against the developer console.

The exchange mirrors what a browser does: load the sign-in form, post the
credentials with the form's hidden fields, then read the console start page
whose embedded startup data carries the XSRF token and the developer
accounts. Cookies land in the shared requests.Session, which the transport
reuses for every console request.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable

import requests

from devconsole_core.auth.base import BaseAuthenticator
from devconsole_core.console.transport import DEFAULT_TIMEOUT
from devconsole_core.errors import AuthenticationError, NetworkError
from devconsole_core.models import DeveloperConsoleAccount, SessionCredentials

logger = logging.getLogger(__name__)

SIGN_IN_URL = "https://accounts.google.com/ServiceLogin"
SIGN_IN_AUTH_URL = "https://accounts.google.com/ServiceLoginAuth"
CONSOLE_START_URL = "https://play.google.com/apps/publish/"

_HIDDEN_INPUT_RE = re.compile(r"<input[^>]*type=[\"']hidden[\"'][^>]*>", re.IGNORECASE)
_INPUT_NAME_RE = re.compile(r"name=[\"']([^\"']+)[\"']")
_INPUT_VALUE_RE = re.compile(r"value=[\"']([^\"']*)[\"']")
# Startup values are JSON documents embedded as JSON strings.
_STARTUP_VALUE_TEMPLATE = r'"{name}":("(?:[^"\\]|\\.)*")'

_CHALLENGE_MARKERS = ("/challenge", "LoginVerification", "SecondFactor", "CaptchaRequired")


def _hidden_inputs(page: str) -> dict[str, str]:
    fields = {}
    for tag in _HIDDEN_INPUT_RE.findall(page):
        name = _INPUT_NAME_RE.search(tag)
        if name:
            value = _INPUT_VALUE_RE.search(tag)
            fields[name.group(1)] = value.group(1) if value else ""
    return fields


def _startup_value(page: str, name: str) -> Any:
    """Return the decoded startup value called name, or None."""
    match = re.search(_STARTUP_VALUE_TEMPLATE.format(name=re.escape(name)), page)
    if not match:
        return None
    try:
        return json.loads(json.loads(match.group(1)))
    except ValueError:
        logger.warning("Could not decode startup value %s", name)
        return None


def requires_interaction(url: str) -> bool:
    return any(marker in url for marker in _CHALLENGE_MARKERS)


class PasswordAuthenticator(BaseAuthenticator):
    def __init__(
        self,
        account_name: str,
        password: str,
        http_session: requests.Session,
        interactive_handler: Callable[[str], None] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(account_name)
        self._password = password
        self.http_session = http_session
        self.interactive_handler = interactive_handler
        self.timeout = timeout

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = self.http_session.request(method, url, timeout=(self.timeout, self.timeout), **kwargs)
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Login request to {url} failed: {e}") from e

        if response.status_code in (requests.codes.unauthorized, requests.codes.forbidden):
            raise AuthenticationError(f"Login rejected for {self.account_name} (HTTP {response.status_code})")
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise NetworkError(f"Login request to {url} failed: {e}") from e
        return response

    def _login(self) -> SessionCredentials | None:
        logger.debug("Logging in to the developer console as %s", self.account_name)
        form_page = self._request(
            "GET", SIGN_IN_URL, params={"service": "androiddeveloper", "continue": CONSOLE_START_URL}
        )
        form = _hidden_inputs(form_page.text)
        form.update({"Email": self.account_name, "Passwd": self._password, "continue": CONSOLE_START_URL})

        response = self._request("POST", SIGN_IN_AUTH_URL, data=form)
        if requires_interaction(response.url):
            if self.interactive_handler is not None:
                self.interactive_handler(response.url)
            return None

        page = response.text
        if not response.url.startswith(CONSOLE_START_URL):
            page = self._request("GET", CONSOLE_START_URL).text
        return self._parse_start_page(page)

    def _parse_start_page(self, page: str) -> SessionCredentials:
        xsrf = _startup_value(page, "XsrfToken")
        xsrf_token = xsrf.get("1") if isinstance(xsrf, dict) else None
        if not xsrf_token:
            raise AuthenticationError(f"Login rejected for {self.account_name}: no XSRF token on console page")

        accounts_value = _startup_value(page, "DeveloperConsoleAccounts")
        raw_accounts = accounts_value.get("1", []) if isinstance(accounts_value, dict) else []
        accounts = tuple(
            DeveloperConsoleAccount(developer_id=str(a["1"]), name=str(a.get("2", "")))
            for a in raw_accounts
            if isinstance(a, dict) and a.get("1")
        )
        if not accounts:
            raise AuthenticationError(f"No developer console account found for {self.account_name}")

        logger.debug("Logged in as %s with %d developer account(s)", self.account_name, len(accounts))
        return SessionCredentials(
            account_name=self.account_name,
            xsrf_token=xsrf_token,
            developer_accounts=accounts,
        )
