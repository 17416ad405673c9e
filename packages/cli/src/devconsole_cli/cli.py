"""CLI entry point for devconsole.

Commands:
  apps      — list published apps with their latest statistics
  comments  — show a page of user comments for one app
  reply     — reply to a user comment
  init      — interactive setup wizard that writes .devconsole.yml
"""

from __future__ import annotations

import functools
import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from devconsole_cli.commands.apps import apps_cmd
from devconsole_cli.commands.comments import comments_cmd
from devconsole_cli.commands.init import init_cmd
from devconsole_cli.commands.reply import reply_cmd

console = Console()


def _print_challenge(url: str) -> None:
    console.print(
        "[yellow]Sign-in needs an extra step (verification or CAPTCHA). "
        f"Complete it in a browser, then run the command again:[/yellow]\n  {url}"
    )


def _build_client(config: dict):
    """Instantiate a ConsoleClient from the resolved config.

    This factory lives in cli.py so devconsole_core does not know about the
    CLI config format or how the password is obtained.
    """
    from devconsole_core.client import ConsoleClient
    from devconsole_cli.auth import resolve_credentials

    credentials = resolve_credentials(config)
    if credentials is None:
        raise click.UsageError(
            "No console credentials found. Set DEVCONSOLE_ACCOUNT (or `account` in .devconsole.yml) "
            "and DEVCONSOLE_PASSWORD, or run `devconsole init` first."
        )
    account, password = credentials
    return ConsoleClient.for_account_and_password(
        account,
        password,
        timeout=config["timeout"],
        display_locale=config["display_locale"],
        reply_enabled=config["reply_enabled"],
        interactive_handler=_print_challenge,
    )


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("devconsole"),
    prog_name="devconsole",
)
@click.option(
    "--config",
    "config_path",
    default=".devconsole.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="DEVCONSOLE_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log protocol activity to stderr.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Command-line client for the app developer console."""
    from devconsole_core.config import load_config

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    config = load_config(config_path)
    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path
    # Built lazily: `init` must work before any credentials exist.
    ctx.obj["client_factory"] = functools.partial(_build_client, config)


main.add_command(apps_cmd)
main.add_command(comments_cmd)
main.add_command(reply_cmd)
main.add_command(init_cmd)
