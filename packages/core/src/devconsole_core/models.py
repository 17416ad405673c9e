"""Domain model for the developer console.

Entities are produced by the decoder from raw console responses. They carry
no transport or wire-format knowledge, so the CLI (or any other caller) can
consume them without importing the protocol layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class DeveloperConsoleAccount:
    """A developer identity reachable under a session."""

    developer_id: str
    name: str


@dataclass(frozen=True)
class SessionCredentials:
    """Authentication state produced by a login exchange.

    Frozen: a re-authentication replaces the whole value, it never patches
    individual fields of a live session. Cookies are not part of it; they
    stay in the requests.Session jar, which scopes them by domain and keeps
    the ones the console rotates.
    """

    account_name: str
    xsrf_token: str
    developer_accounts: tuple[DeveloperConsoleAccount, ...] = ()


@dataclass
class AppDetails:
    description: str = ""
    changelog: str = ""
    last_store_update: datetime | None = None


@dataclass
class AppStats:
    """Latest statistics snapshot for one app.

    number_of_comments is an estimate from the comment-count probe, not an
    exact figure.
    """

    active_installs: int = 0
    total_downloads: int = 0
    number_of_errors: int = 0
    rating1: int = 0
    rating2: int = 0
    rating3: int = 0
    rating4: int = 0
    rating5: int = 0
    number_of_comments: int = 0

    def set_ratings(self, r1: int, r2: int, r3: int, r4: int, r5: int) -> None:
        self.rating1, self.rating2, self.rating3, self.rating4, self.rating5 = r1, r2, r3, r4, r5

    @property
    def rating_counts(self) -> tuple[int, int, int, int, int]:
        return (self.rating1, self.rating2, self.rating3, self.rating4, self.rating5)

    @property
    def number_of_ratings(self) -> int:
        return sum(self.rating_counts)

    @property
    def average_rating(self) -> float:
        total = self.number_of_ratings
        if not total:
            return 0.0
        return sum(stars * count for stars, count in enumerate(self.rating_counts, start=1)) / total


@dataclass
class AppInfo:
    """One application record from the app list.

    An incomplete entry only carries package_name (plus owner fields once
    the client attaches them); none of its other fields are populated.
    """

    package_name: str
    name: str = ""
    account: str = ""
    developer_id: str | None = None
    developer_name: str | None = None
    publish_state: int = 0
    details: AppDetails | None = None
    version_name: str = ""
    icon_url: str = ""
    latest_stats: AppStats | None = None
    # Wall-clock fetch time, excluded from equality so decoding is repeatable.
    last_update: datetime | None = field(default=None, compare=False)
    incomplete: bool = False


@dataclass(frozen=True)
class Comment:
    """A user review, or a developer reply when is_reply is set."""

    unique_id: str | None = None
    user: str | None = None
    date: datetime | None = None
    rating: int = 0
    app_version: str | None = None
    language: str = ""
    original_text: str = ""
    text: str = ""
    device: str | None = None
    reply: Comment | None = None
    is_reply: bool = False
    original_comment_date: datetime | None = None
