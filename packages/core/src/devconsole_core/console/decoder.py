"""Decoder for developer console responses.

The console answers with JSON objects whose fields are keyed by small
integer strings ("1", "2", ...) instead of names. Older revisions sent the
same data as positional arrays. Which position means what is pinned down
in the key tables below, one table per response kind, so a backend change
is a one-place edit here.

Only identity fields (package name, comment id) are required. Every other
lookup defaults, because the console adds and drops undocumented fields
without notice.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from devconsole_core.errors import CommentReplyError, ProtocolDecodeError
from devconsole_core.models import AppDetails, AppInfo, AppStats, Comment

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2

# Publish state codes seen so far: 1 published, 2 unpublished, 5 draft,
# 6 draft with in-app items. Only published apps are decoded.
PUBLISHED_STATE = 1

STATS_TYPE_ACTIVE_DEVICE_INSTALLS = 1
STATS_TYPE_TOTAL_USER_INSTALLS = 5

# ---------------------------------------------------------------------- #
# Key tables (schema version 2)                                            #
# ---------------------------------------------------------------------- #

APP_KEYS = {"list": "1", "info": "1", "stats": "3"}
APP_INFO_KEYS = {
    "package_name": "1",
    "details": "2",
    "versions": "4",
    "last_update": "6",
    "publish_state": "7",
}
# details: {"1": [{"1": locale, "2": name, "3": description, "4": promo, "5": what's new}]}
APP_DETAIL_KEYS = {"list": "1", "name": "2", "description": "3", "changelog": "5"}
# versions: {"1": [{"2": {"3": package, "4": version name, "6": {"3": icon url}}}]}
APP_VERSION_KEYS = {"list": "1", "details": "2", "version_name": "4", "icon": "6", "icon_url": "3"}
APP_STATS_KEYS = {"active_installs": "1", "errors": "4", "total_installs": "5"}
APP_STATS_MIN_FIELDS = 4

RATINGS_KEYS = {"list": "1", "stars": ("2", "3", "4", "5", "6")}

# result.1.1.1 is the history; each point carries its value at 2.1.
STATISTICS_KEYS = {"values": "1", "series": "1", "history": "1", "point": "2", "value": "1"}

COMMENT_LIST_KEYS = {"list": "1", "count": "2"}
COMMENT_KEYS = {
    "unique_id": "1",
    "user": "2",
    "date": "3",
    "rating": "4",
    "body": "5",
    "app_version": "7",
    "device": "8",
    "reply": "9",
    "translation": "11",
}
COMMENT_TEXT_KEYS = {"language": "1", "text": "3"}
COMMENT_DEVICE_KEYS = {"extra": "2", "model": "3"}
COMMENT_REPLY_KEYS = {"text": "1", "date": "3"}

REPLY_RESPONSE_KEYS = {"reply": "1", "text": "1", "date": "3"}
ERROR_KEYS = {"data": "data", "detail": "1", "code": "code"}

_DRAFT_PREFIX = "tmp."
_NULL_STRINGS = ("", "null")


# ---------------------------------------------------------------------- #
# Lookup helpers                                                           #
# ---------------------------------------------------------------------- #


def _field(node: Any, key: str, default: Any = None) -> Any:
    """Return node[key] for numeric-keyed objects or positional arrays."""
    if isinstance(node, dict):
        value = node.get(key)
    elif isinstance(node, list):
        try:
            index = int(key)
        except ValueError:
            return default
        value = node[index] if 0 <= index < len(node) else None
    else:
        return default
    return default if value is None else value


def _obj(node: Any, key: str) -> dict | list | None:
    value = _field(node, key)
    return value if isinstance(value, (dict, list)) else None


def _array(node: Any, key: str) -> list | None:
    value = _field(node, key)
    return value if isinstance(value, list) else None


def _int(node: Any, key: str, default: int = 0) -> int:
    try:
        return int(_field(node, key, default))
    except (TypeError, ValueError, OverflowError):
        return default


def _str(node: Any, key: str, default: str = "") -> str:
    value = _field(node, key)
    if value is None or isinstance(value, (dict, list)):
        return default
    return str(value)


def _optional_str(node: Any, key: str) -> str | None:
    """Like _str, but treats the console's "" and "null" placeholders as absent."""
    value = _str(node, key)
    return None if value in _NULL_STRINGS else value


def _populated(node: Any) -> int:
    values = node.values() if isinstance(node, dict) else node
    return sum(1 for v in values if v is not None)


def parse_epoch_millis(value: Any) -> datetime | None:
    """Convert an epoch-millisecond number (or numeric string) to an aware datetime."""
    try:
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def display_language(locale: str | None) -> str:
    """Return the language part of a locale: "en_US" and "en-US" both give "en"."""
    if not locale:
        return ""
    return locale.replace("-", "_").split("_")[0].lower()


def is_draft_package(package_name: str) -> bool:
    """Drafts get synthetic names such as "tmp.7238057230750432.2357285"."""
    return (
        package_name.startswith(_DRAFT_PREFIX)
        and len(package_name) > len(_DRAFT_PREFIX)
        and package_name[len(_DRAFT_PREFIX)].isdigit()
    )


def _load(body: str | bytes | dict) -> dict:
    if isinstance(body, dict):
        return body
    try:
        doc = json.loads(body)
    except (TypeError, ValueError) as e:
        raise ProtocolDecodeError(f"Response is not valid JSON: {e}") from e
    if not isinstance(doc, dict):
        raise ProtocolDecodeError(f"Expected a JSON object, got {type(doc).__name__}")
    return doc


def _result(doc: dict) -> dict | list:
    result = doc.get("result")
    if isinstance(result, (dict, list)):
        return result
    error = doc.get("error")
    if isinstance(error, dict):
        raise ProtocolDecodeError(
            "Console returned an error: code=%s, data=%s"
            % (_str(error, ERROR_KEYS["code"]), _str(_obj(error, ERROR_KEYS["data"]), ERROR_KEYS["detail"]))
        )
    raise ProtocolDecodeError(f"Response has no result object (schema v{SCHEMA_VERSION}, keys: {sorted(doc)})")


# ---------------------------------------------------------------------- #
# App list                                                                 #
# ---------------------------------------------------------------------- #


def decode_app_infos(
    body: str | bytes | dict,
    account_name: str,
    skip_incomplete: bool,
    now: datetime | None = None,
) -> list[AppInfo]:
    """Decode an app-list response.

    Drafts and unpublished apps are dropped. An entry without its details,
    versions or stats becomes an incomplete AppInfo (package name only), or
    is dropped when skip_incomplete is set. An entry that cannot be decoded
    at all is logged and skipped; the rest of the list still decodes.
    """
    now = now or datetime.now(timezone.utc)
    entries = _array(_result(_load(body)), APP_KEYS["list"])
    if entries is None:
        # no apps yet
        return []

    logger.debug("Found %d apps in response", len(entries))
    apps: list[AppInfo] = []
    for index, entry in enumerate(entries):
        try:
            app = _decode_app(entry, account_name, skip_incomplete, now)
        except ProtocolDecodeError as e:
            logger.warning("Skipping app entry %d: %s", index, e)
            continue
        if app is not None:
            apps.append(app)
    return apps


def _decode_app(entry: Any, account_name: str, skip_incomplete: bool, now: datetime) -> AppInfo | None:
    info = _obj(entry, APP_KEYS["info"])
    package_name = _optional_str(info, APP_INFO_KEYS["package_name"])
    if package_name is None:
        raise ProtocolDecodeError("app entry has no package name")

    if is_draft_package(package_name):
        logger.debug("Skipping draft app: %s", package_name)
        return None

    publish_state = _int(info, APP_INFO_KEYS["publish_state"])
    if publish_state != PUBLISHED_STATE:
        logger.debug("Skipping app %s with publish state %d", package_name, publish_state)
        return None

    detail_list = _array(_obj(info, APP_INFO_KEYS["details"]), APP_DETAIL_KEYS["list"])
    version_list = _array(_obj(info, APP_INFO_KEYS["versions"]), APP_VERSION_KEYS["list"])
    stats_obj = _obj(entry, APP_KEYS["stats"])

    missing = None
    if not detail_list:
        missing = "details"
    elif not version_list:
        missing = "versions"
    elif stats_obj is None:
        missing = "stats"
    if missing:
        if skip_incomplete:
            logger.debug("Skipping app %s because no %s found", package_name, missing)
            return None
        logger.debug("Adding incomplete app %s (no %s)", package_name, missing)
        return AppInfo(package_name=package_name, incomplete=True)

    detail = detail_list[0]
    version = _obj(version_list[-1], APP_VERSION_KEYS["details"])

    return AppInfo(
        package_name=package_name,
        name=_str(detail, APP_DETAIL_KEYS["name"]),
        account=account_name,
        publish_state=publish_state,
        details=AppDetails(
            description=_str(detail, APP_DETAIL_KEYS["description"]),
            changelog=_str(detail, APP_DETAIL_KEYS["changelog"]),
            last_store_update=parse_epoch_millis(_field(info, APP_INFO_KEYS["last_update"])),
        ),
        version_name=_str(version, APP_VERSION_KEYS["version_name"]),
        icon_url=_str(_obj(version, APP_VERSION_KEYS["icon"]), APP_VERSION_KEYS["icon_url"]),
        latest_stats=_decode_app_stats(stats_obj),
        last_update=now,
    )


def _decode_app_stats(stats_obj: dict | list) -> AppStats:
    if _populated(stats_obj) < APP_STATS_MIN_FIELDS:
        # A short stats object means "no data yet".
        return AppStats()
    return AppStats(
        active_installs=_int(stats_obj, APP_STATS_KEYS["active_installs"]),
        total_downloads=_int(stats_obj, APP_STATS_KEYS["total_installs"]),
        number_of_errors=_int(stats_obj, APP_STATS_KEYS["errors"]),
    )


# ---------------------------------------------------------------------- #
# Ratings and statistics                                                   #
# ---------------------------------------------------------------------- #


def decode_ratings(body: str | bytes | dict, stats: AppStats) -> AppStats:
    """Fill the 1-5 star histogram of stats from a ratings response."""
    rows = _array(_result(_load(body)), RATINGS_KEYS["list"])
    values = rows[0] if rows else None
    if values is None:
        logger.warning("Ratings response has no values, keeping existing ratings")
        return stats
    stats.set_ratings(*(_int(values, key) for key in RATINGS_KEYS["stars"]))
    return stats


def decode_statistics(body: str | bytes | dict, stats: AppStats, stats_type: int) -> AppStats:
    """Route the latest value of a statistics series into stats.

    Only today's scalar is read; the dimensioned and historical breakdowns
    in the same response are ignored.
    """
    values = _obj(_result(_load(body)), STATISTICS_KEYS["values"])
    history = _array(_obj(values, STATISTICS_KEYS["series"]), STATISTICS_KEYS["history"])
    if not history:
        logger.warning("Statistics response for type %d has no history", stats_type)
        return stats

    latest_value = _int(_obj(history[-1], STATISTICS_KEYS["point"]), STATISTICS_KEYS["value"])
    if stats_type == STATS_TYPE_TOTAL_USER_INSTALLS:
        stats.total_downloads = latest_value
    elif stats_type == STATS_TYPE_ACTIVE_DEVICE_INSTALLS:
        stats.active_installs = latest_value
    return stats


# ---------------------------------------------------------------------- #
# Comments                                                                 #
# ---------------------------------------------------------------------- #


def decode_comments_count(body: str | bytes | dict) -> int:
    """Return the console's own approximate comment total."""
    return _int(_result(_load(body)), COMMENT_LIST_KEYS["count"])


def decode_comments(body: str | bytes | dict, display_locale: str | None) -> list[Comment]:
    """Decode a comment page; comments without a unique id are skipped."""
    entries = _array(_result(_load(body)), COMMENT_LIST_KEYS["list"]) or []
    language = display_language(display_locale)
    comments: list[Comment] = []
    for index, entry in enumerate(entries):
        try:
            comments.append(_decode_comment(entry, language))
        except ProtocolDecodeError as e:
            logger.warning("Skipping comment %d: %s", index, e)
    return comments


def _decode_comment(entry: Any, language: str) -> Comment:
    unique_id = _optional_str(entry, COMMENT_KEYS["unique_id"])
    if unique_id is None:
        raise ProtocolDecodeError("comment has no unique id")

    date = parse_epoch_millis(_field(entry, COMMENT_KEYS["date"]))
    body = _obj(entry, COMMENT_KEYS["body"])
    original_text = _str(body, COMMENT_TEXT_KEYS["text"])

    text = original_text
    translation = _obj(entry, COMMENT_KEYS["translation"])
    if translation is not None and language:
        if language in _str(translation, COMMENT_TEXT_KEYS["language"]).lower():
            text = _str(translation, COMMENT_TEXT_KEYS["text"], original_text)

    return Comment(
        unique_id=unique_id,
        user=_optional_str(entry, COMMENT_KEYS["user"]),
        date=date,
        rating=_int(entry, COMMENT_KEYS["rating"]),
        app_version=_optional_str(entry, COMMENT_KEYS["app_version"]),
        language=_str(body, COMMENT_TEXT_KEYS["language"]),
        original_text=original_text,
        text=text,
        device=_decode_device(_obj(entry, COMMENT_KEYS["device"])),
        reply=_decode_reply(_obj(entry, COMMENT_KEYS["reply"]), date),
    )


def _decode_device(device: dict | list | None) -> str | None:
    if device is None:
        return None
    composed = _str(device, COMMENT_DEVICE_KEYS["model"])
    extra = _array(device, COMMENT_DEVICE_KEYS["extra"])
    if extra:
        composed += " " + _str(extra, "0")
    return composed.strip() or None


def _decode_reply(reply: dict | list | None, original_date: datetime | None) -> Comment | None:
    if reply is None:
        return None
    return Comment(
        is_reply=True,
        text=_str(reply, COMMENT_REPLY_KEYS["text"]),
        date=parse_epoch_millis(_field(reply, COMMENT_REPLY_KEYS["date"])),
        original_comment_date=original_date,
    )


def decode_comment_reply(body: str | bytes | dict) -> Comment:
    """Decode the response to a posted reply.

    {"result": {"1": {"1": REPLY, "3": "TIMESTAMP"}, "2": true}}, or an error
    envelope {"error": {"data": {"1": DETAIL}, "code": CODE}} which raises
    CommentReplyError.
    """
    doc = _load(body)
    error = doc.get("error")
    if isinstance(error, dict):
        raise CommentReplyError(
            data=_str(_obj(error, ERROR_KEYS["data"]), ERROR_KEYS["detail"]),
            code=_str(error, ERROR_KEYS["code"]),
        )

    reply = _obj(_result(doc), REPLY_RESPONSE_KEYS["reply"])
    if reply is None:
        raise ProtocolDecodeError("reply response has no reply object")
    return Comment(
        is_reply=True,
        text=_str(reply, REPLY_RESPONSE_KEYS["text"]),
        date=parse_epoch_millis(_field(reply, REPLY_RESPONSE_KEYS["date"])),
    )
