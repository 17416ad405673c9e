"""Console credential resolution.

Resolution order for the account (stops at first success):
  1. DEVCONSOLE_ACCOUNT environment variable
  2. `account` in .devconsole.yml

The password is only ever read from DEVCONSOLE_PASSWORD or typed at a
hidden prompt; it is never written to the config file.
"""

from __future__ import annotations

import logging
import sys

import click

logger = logging.getLogger(__name__)


def resolve_credentials(config: dict) -> tuple[str, str] | None:
    """Return (account, password) or None if either is unavailable.

    Never raises — callers should check for None and emit a UsageError.
    """
    account = config.get("account")
    if not account:
        return None

    password = config.get("password")
    if password:
        return account, password

    # Prompt only when someone is there to answer.
    if sys.stdin.isatty():
        password = click.prompt(f"Password for {account}", hide_input=True, default="", show_default=False)
        if password:
            logger.debug("Using password typed at the prompt for %s.", account)
            return account, password

    return None
