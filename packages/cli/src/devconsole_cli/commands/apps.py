"""apps command — list published apps with their latest statistics."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from devconsole_core.errors import DevConsoleError

console = Console()


@click.command("apps")
@click.pass_context
def apps_cmd(ctx):
    """List published apps for every developer account on the console.

    Comment counts are estimates: the console only reports an approximate
    total, so the figure can differ slightly from the console page.
    """
    client = ctx.obj["client_factory"]()
    try:
        apps = client.get_app_info()
    except DevConsoleError as e:
        raise click.ClickException(str(e))

    if not apps:
        console.print("[yellow]No published apps found.[/yellow]")
        return

    table = Table(title=f"Apps — {client.account_name}", show_header=True, header_style="bold cyan")
    table.add_column("Package", style="bold")
    table.add_column("Name", max_width=30)
    table.add_column("Version", width=10)
    table.add_column("Developer", max_width=20)
    table.add_column("Active", justify="right")
    table.add_column("Downloads", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Rating", justify="right")
    table.add_column("Comments", justify="right")

    for app in apps:
        stats = app.latest_stats
        table.add_row(
            app.package_name,
            app.name,
            app.version_name,
            app.developer_name or "",
            str(stats.active_installs) if stats else "—",
            str(stats.total_downloads) if stats else "—",
            str(stats.number_of_errors) if stats else "—",
            f"{stats.average_rating:.2f} ({stats.number_of_ratings})" if stats else "—",
            f"~{stats.number_of_comments}" if stats else "—",
        )

    console.print(table)
