"""Error kinds raised by the console client.

Callers branch on the class, not the message: AuthenticationError drives
the client's one-shot re-authentication, everything else is surfaced as-is.
"""

from __future__ import annotations


class DevConsoleError(Exception):
    """Base class for every error raised by devconsole_core."""


class AuthenticationError(DevConsoleError):
    """The session or the account credentials were rejected."""


class NetworkError(DevConsoleError):
    """Transport failure: timeout, DNS, connection reset or an unexpected HTTP status."""


class ProtocolDecodeError(DevConsoleError):
    """A response did not have the shape required to decode it."""


class CommentReplyError(DevConsoleError):
    """The console rejected a comment reply with an error envelope."""

    def __init__(self, data: str, code: str):
        self.data = data
        self.code = code
        super().__init__(f"Error replying to comment: {data}, errorCode={code}")


class InvalidRequestError(DevConsoleError):
    """A request could not be built from the arguments given, e.g. an app without a developer id."""
