"""Tests for the CLI entry point."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import yaml
from click.testing import CliRunner

from devconsole_cli.auth import resolve_credentials
from devconsole_cli.cli import main
from devconsole_core.client import ConsoleClient
from devconsole_core.errors import CommentReplyError, NetworkError
from devconsole_core.models import AppInfo, AppStats, Comment


def _make_config(account="me@example.com", password="secret", reply_enabled=True):
    return {
        "account": account,
        "password": password,
        "display_locale": "en",
        "timeout": 30,
        "reply_enabled": reply_enabled,
        "comments_page_size": 20,
    }


def _patch_common(mocker, config=None):
    """Patch load_config and _build_client for most tests."""
    cfg = config or _make_config()
    mocker.patch("devconsole_core.config.load_config", return_value=cfg)
    client = MagicMock(spec=ConsoleClient)
    client.account_name = cfg["account"]
    client.can_reply_to_comments.return_value = cfg["reply_enabled"]
    mocker.patch("devconsole_cli.cli._build_client", return_value=client)
    return cfg, client


WHEN = datetime(2012, 7, 30, 12, 55, tzinfo=timezone.utc)


class TestCLIValidation:
    def test_missing_credentials(self, mocker):
        mocker.patch("devconsole_core.config.load_config", return_value=_make_config(account=None, password=None))

        result = CliRunner().invoke(main, ["apps"])
        assert result.exit_code != 0
        assert "DEVCONSOLE_PASSWORD" in result.output

    def test_comments_requires_package(self, mocker):
        _patch_common(mocker)
        result = CliRunner().invoke(main, ["comments", "--developer-id", "111"])
        assert result.exit_code != 0
        assert "--package" in result.output

    def test_version(self, mocker):
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "devconsole" in result.output


class TestAppsCommand:
    def test_lists_apps(self, mocker):
        _, client = _patch_common(mocker)
        stats = AppStats(active_installs=12, total_downloads=34, number_of_comments=5)
        stats.set_ratings(0, 0, 0, 1, 1)
        client.get_app_info.return_value = [
            AppInfo(package_name="com.a", name="Ex", version_name="1.0", developer_name="Dev", latest_stats=stats)
        ]

        result = CliRunner().invoke(main, ["apps"])

        assert result.exit_code == 0
        assert "com.a" in result.output
        assert "4.50" in result.output
        client.get_app_info.assert_called_once_with()

    def test_no_apps(self, mocker):
        _, client = _patch_common(mocker)
        client.get_app_info.return_value = []

        result = CliRunner().invoke(main, ["apps"])
        assert result.exit_code == 0
        assert "No published apps found" in result.output

    def test_console_error_reported(self, mocker):
        _, client = _patch_common(mocker)
        client.get_app_info.side_effect = NetworkError("connection reset")

        result = CliRunner().invoke(main, ["apps"])
        assert result.exit_code == 1
        assert "connection reset" in result.output


class TestCommentsCommand:
    def test_shows_comments_with_translation_and_reply(self, mocker):
        _, client = _patch_common(mocker)
        reply = Comment(is_reply=True, text="Merci!", date=WHEN)
        client.get_comments.return_value = [
            Comment(
                unique_id="gaia:1",
                user="Alice",
                date=WHEN,
                rating=4,
                language="fr",
                original_text="Très bien",
                text="Very good",
                reply=reply,
            )
        ]

        result = CliRunner().invoke(main, ["comments", "--package", "com.a", "--developer-id", "111"])

        assert result.exit_code == 0
        assert "gaia:1" in result.output
        assert "Very good" in result.output
        assert "Très bien" in result.output
        assert "Merci!" in result.output

    def test_defaults_from_config(self, mocker):
        _, client = _patch_common(mocker)
        client.get_comments.return_value = []

        result = CliRunner().invoke(main, ["comments", "--package", "com.a", "--developer-id", "111"])

        assert "No comments found" in result.output
        client.get_comments.assert_called_once_with("com.a", "111", 0, 20, "en")

    def test_explicit_paging_and_locale(self, mocker):
        _, client = _patch_common(mocker)
        client.get_comments.return_value = []

        CliRunner().invoke(
            main,
            ["comments", "--package", "com.a", "--developer-id", "111", "--start", "40", "--count", "10", "--locale", "de_DE"],
        )
        client.get_comments.assert_called_once_with("com.a", "111", 40, 10, "de_DE")


class TestReplyCommand:
    ARGS = ["reply", "--package", "com.a", "--developer-id", "111", "--comment-id", "gaia:1", "--text", "Thanks!"]

    def test_reply_posted(self, mocker):
        _, client = _patch_common(mocker)
        client.reply_to_comment.return_value = Comment(is_reply=True, text="Thanks!", date=WHEN)

        result = CliRunner().invoke(main, self.ARGS + ["--yes"])

        assert result.exit_code == 0
        assert "Reply posted" in result.output
        client.reply_to_comment.assert_called_once_with("com.a", "111", "gaia:1", "Thanks!")

    def test_confirmation_declined(self, mocker):
        _, client = _patch_common(mocker)

        result = CliRunner().invoke(main, self.ARGS, input="n\n")

        assert "Aborted" in result.output
        client.reply_to_comment.assert_not_called()

    def test_confirmation_accepted(self, mocker):
        _, client = _patch_common(mocker)
        client.reply_to_comment.return_value = Comment(is_reply=True, text="Thanks!")

        result = CliRunner().invoke(main, self.ARGS, input="y\n")
        assert result.exit_code == 0
        client.reply_to_comment.assert_called_once()

    def test_reply_disabled(self, mocker):
        _, client = _patch_common(mocker, config=_make_config(reply_enabled=False))

        result = CliRunner().invoke(main, self.ARGS + ["--yes"])

        assert result.exit_code != 0
        assert "disabled" in result.output
        client.reply_to_comment.assert_not_called()

    def test_rejected_reply(self, mocker):
        _, client = _patch_common(mocker)
        client.reply_to_comment.side_effect = CommentReplyError(data="quota exceeded", code="429")

        result = CliRunner().invoke(main, self.ARGS + ["--yes"])

        assert result.exit_code == 1
        assert "429" in result.output
        assert "quota exceeded" in result.output

    def test_interactive_sign_in_needed(self, mocker):
        _, client = _patch_common(mocker)
        client.reply_to_comment.return_value = None

        result = CliRunner().invoke(main, self.ARGS + ["--yes"])
        assert result.exit_code == 0
        assert "Reply not sent" in result.output


class TestInitCommand:
    def test_writes_config_without_password(self, tmp_path, monkeypatch):
        monkeypatch.delenv("DEVCONSOLE_ACCOUNT", raising=False)
        monkeypatch.setenv("DEVCONSOLE_PASSWORD", "secret")
        cfg = tmp_path / ".devconsole.yml"

        result = CliRunner().invoke(main, ["--config", str(cfg), "init"], input="me@example.com\nde_DE\nn\n")

        assert result.exit_code == 0, result.output
        written = yaml.safe_load(cfg.read_text())
        assert written == {"account": "me@example.com", "display_locale": "de_DE", "reply_enabled": False}

    def test_preserves_existing_keys(self, tmp_path, monkeypatch):
        monkeypatch.delenv("DEVCONSOLE_ACCOUNT", raising=False)
        cfg = tmp_path / ".devconsole.yml"
        cfg.write_text("account: old@example.com\ntimeout: 10\n")

        # Accept every default.
        result = CliRunner().invoke(main, ["--config", str(cfg), "init"], input="\n\n\n")

        assert result.exit_code == 0, result.output
        written = yaml.safe_load(cfg.read_text())
        assert written["account"] == "old@example.com"
        assert written["timeout"] == 10
        assert written["reply_enabled"] is True


class TestResolveCredentials:
    def test_account_and_password_from_config(self):
        assert resolve_credentials(_make_config()) == ("me@example.com", "secret")

    def test_missing_account(self):
        assert resolve_credentials(_make_config(account=None)) is None

    def test_no_prompt_without_tty(self, mocker):
        mocker.patch("devconsole_cli.auth.sys").stdin.isatty.return_value = False
        prompt = mocker.patch("devconsole_cli.auth.click.prompt")

        assert resolve_credentials(_make_config(password=None)) is None
        prompt.assert_not_called()

    def test_prompts_for_password_on_tty(self, mocker):
        mocker.patch("devconsole_cli.auth.sys").stdin.isatty.return_value = True
        mocker.patch("devconsole_cli.auth.click.prompt", return_value="typed")

        assert resolve_credentials(_make_config(password=None)) == ("me@example.com", "typed")
