"""comments command — show a page of user comments for one app."""

from __future__ import annotations

import click
from rich.console import Console

from devconsole_core.errors import DevConsoleError

console = Console()


def _format_date(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "unknown date"


@click.command("comments")
@click.option("--package", "package_name", required=True, help="Package name of the app.")
@click.option("--developer-id", required=True, help="Developer account id that owns the app.")
@click.option("--start", default=0, show_default=True, help="Index of the first comment.")
@click.option("--count", type=int, default=None, help="Number of comments to fetch. Defaults to the config page size.")
@click.option("--locale", default=None, help="Display locale for translations, e.g. en_US.")
@click.pass_context
def comments_cmd(ctx, package_name: str, developer_id: str, start: int, count: int | None, locale: str | None):
    """Show user comments for an app, newest first.

    When the console has a translation into the display locale, the
    translated text is shown with the original underneath.
    """
    config = ctx.obj["config"]
    count = count or config["comments_page_size"]
    locale = locale or config["display_locale"]

    client = ctx.obj["client_factory"]()
    try:
        comments = client.get_comments(package_name, developer_id, start, count, locale)
    except DevConsoleError as e:
        raise click.ClickException(str(e))

    if not comments:
        console.print("[yellow]No comments found.[/yellow]")
        return

    console.print(f"\n[bold]{len(comments)} comment(s) for [cyan]{package_name}[/cyan][/bold]\n")
    for c in comments:
        meta = [c.user or "Anonymous", _format_date(c.date)]
        if c.app_version:
            meta.append(f"v{c.app_version}")
        if c.device:
            meta.append(c.device)
        console.print(f"[yellow]{'★' * c.rating}{'☆' * (5 - c.rating)}[/yellow]  " + " · ".join(meta))
        console.print(f"  [dim]id: {c.unique_id}[/dim]")
        console.print(f"  {c.text}")
        if c.text != c.original_text:
            console.print(f"  [dim]({c.language}) {c.original_text}[/dim]")
        if c.reply is not None:
            console.print(f"  [green]↳ Developer reply ({_format_date(c.reply.date)}):[/green] {c.reply.text}")
        console.print()
