"""Tests for request shaping and session state in ConsoleProtocol."""

import json

import pytest

from devconsole_core.console.protocol import (
    API_URL,
    STATS_TYPE_TOTAL_USER_INSTALLS,
    ConsoleProtocol,
    ConsoleRequest,
)
from devconsole_core.errors import AuthenticationError
from devconsole_core.models import DeveloperConsoleAccount, SessionCredentials
from devconsole_core.session import SessionStore


def make_credentials(xsrf="xsrf-token"):
    return SessionCredentials(
        account_name="me@example.com",
        xsrf_token=xsrf,
        developer_accounts=(DeveloperConsoleAccount("123456", "Example Dev"),),
    )


@pytest.fixture
def protocol():
    p = ConsoleProtocol(SessionStore())
    p.set_session_credentials(make_credentials())
    return p


class TestSessionState:
    def test_new_protocol_has_no_session(self):
        assert ConsoleProtocol().has_session_credentials() is False

    def test_set_and_invalidate(self):
        p = ConsoleProtocol()
        p.set_session_credentials(make_credentials())
        assert p.has_session_credentials() is True
        p.invalidate_session_credentials()
        assert p.has_session_credentials() is False

    def test_session_store_shared_with_owner(self):
        store = SessionStore()
        p = ConsoleProtocol(store)
        p.set_session_credentials(make_credentials())
        assert store.get().xsrf_token == "xsrf-token"

    def test_replacement_is_whole_value(self):
        store = SessionStore(make_credentials("old"))
        before = store.get()
        store.replace(make_credentials("new"))
        assert before.xsrf_token == "old"
        assert store.get().xsrf_token == "new"

    def test_building_without_session_raises(self):
        with pytest.raises(AuthenticationError):
            ConsoleProtocol().create_fetch_ratings_request("com.example.app")

    def test_reply_capability_independent_of_session(self):
        assert ConsoleProtocol(reply_enabled=True).can_reply_to_comments() is True
        assert ConsoleProtocol(reply_enabled=False).can_reply_to_comments() is False


class TestUrls:
    def test_fetch_apps_url(self, protocol):
        assert protocol.create_fetch_apps_url("123456") == API_URL + "androidapps?dev_acc=123456"

    def test_statistics_url(self, protocol):
        assert protocol.create_fetch_statistics_url("123456") == API_URL + "statistics?dev_acc=123456"

    def test_comments_url(self, protocol):
        assert protocol.create_comments_url("123456") == API_URL + "reviews?dev_acc=123456"

    def test_developer_id_is_quoted(self, protocol):
        assert protocol.create_comments_url("a b&c").endswith("dev_acc=a%20b%26c")


class TestRequestBodies:
    def test_fetch_all_apps(self, protocol):
        body = json.loads(protocol.create_fetch_app_infos_request())
        assert body == {"method": "fetch", "params": {"2": 1, "3": 7}, "xsrf": "xsrf-token"}

    def test_fetch_details_for_packages(self, protocol):
        body = json.loads(protocol.create_fetch_app_infos_request(["com.a", "com.b"]))
        assert body["method"] == "fetch"
        assert body["params"] == {"1": ["com.a", "com.b"], "3": 1}

    def test_ratings(self, protocol):
        body = json.loads(protocol.create_fetch_ratings_request("com.a"))
        assert body["method"] == "getRatings"
        assert body["params"] == {"1": ["com.a"]}

    def test_statistics(self, protocol):
        body = json.loads(protocol.create_fetch_statistics_request("com.a", STATS_TYPE_TOTAL_USER_INSTALLS))
        assert body["method"] == "getCombinedStats"
        assert body["params"] == {"1": "com.a", "2": 1, "3": STATS_TYPE_TOTAL_USER_INSTALLS}

    def test_comments_with_locale(self, protocol):
        body = json.loads(protocol.create_fetch_comments_request("com.a", 50, 25, "fr_FR"))
        assert body["method"] == "getReviews"
        assert body["params"] == {"1": "com.a", "2": 50, "3": 25, "8": "fr_FR"}

    def test_comments_without_locale(self, protocol):
        body = json.loads(protocol.create_fetch_comments_request("com.a", 0, 10, None))
        assert "8" not in body["params"]

    def test_reply(self, protocol):
        body = json.loads(protocol.create_reply_to_comment_request("com.a", "gaia:1", "Thanks"))
        assert body["method"] == "sendReply"
        assert body["params"] == {"1": "com.a", "2": "gaia:1", "3": "Thanks"}
        assert body["xsrf"] == "xsrf-token"


class TestHeaders:
    def test_headers_carry_session_and_developer(self, protocol):
        headers = protocol.build_headers("123456")
        assert "Cookie" not in headers
        assert headers["X-XSRF-Token"] == "xsrf-token"
        assert headers["X-Developer-Id"] == "123456"
        assert "dev_acc=123456" in headers["Referer"]
        assert headers["Content-Type"].startswith("application/json")

    def test_build_request(self, protocol):
        request = protocol.build_request("https://x/y", "{}", "123456")
        assert isinstance(request, ConsoleRequest)
        assert request.url == "https://x/y"
        assert request.body == "{}"
        assert request.developer_id == "123456"
        assert request.headers["X-Developer-Id"] == "123456"


class TestParseDelegation:
    def test_comment_count_delegates_to_decoder(self, protocol):
        assert protocol.extract_comments_count(json.dumps({"result": {"2": 12}})) == 12

    def test_app_infos_delegates_to_decoder(self, protocol):
        assert protocol.parse_app_infos_response(json.dumps({"result": {}}), "me", False) == []
