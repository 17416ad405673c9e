"""init command — interactive setup wizard.

Writes .devconsole.yml with the console account and display preferences so
later commands only need DEVCONSOLE_PASSWORD (or a password prompt).
"""

from __future__ import annotations

from pathlib import Path

import click
import yaml
from rich.console import Console

console = Console()


@click.command("init")
@click.pass_context
def init_cmd(ctx):
    """Set up devconsole for this directory.

    Creates or updates .devconsole.yml. The password is never stored.
    """
    config_path = Path(ctx.obj.get("config_path", ".devconsole.yml")) if ctx.obj else Path(".devconsole.yml")
    current = ctx.obj.get("config", {}) if ctx.obj else {}

    console.print("\n[bold cyan]devconsole init[/bold cyan] — setup wizard\n")

    account = click.prompt("Console account (e-mail)", default=current.get("account") or None)
    display_locale = click.prompt("Display locale for comment translations", default=current.get("display_locale", "en"))
    reply_enabled = click.confirm("Allow replying to comments?", default=current.get("reply_enabled", True))

    _write_config(config_path, {"account": account, "display_locale": display_locale, "reply_enabled": reply_enabled})
    console.print(f"[green]Wrote {config_path}[/green]")

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print("Set DEVCONSOLE_PASSWORD, then run: [bold]devconsole apps[/bold]")


def _write_config(path: Path, config: dict) -> None:
    """Write or update the config file, preserving any existing keys."""
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))
