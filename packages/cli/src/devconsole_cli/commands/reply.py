"""reply command — reply to a user comment."""

from __future__ import annotations

import click
from rich.console import Console

from devconsole_core.errors import CommentReplyError, DevConsoleError

console = Console()


@click.command("reply")
@click.option("--package", "package_name", required=True, help="Package name of the app.")
@click.option("--developer-id", required=True, help="Developer account id that owns the app.")
@click.option("--comment-id", required=True, help="Unique id of the comment to reply to.")
@click.option("--text", required=True, help="Reply text.")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def reply_cmd(ctx, package_name: str, developer_id: str, comment_id: str, text: str, yes: bool):
    """Post a developer reply to a user comment.

    Replies are public on the store listing. A second reply to the same
    comment replaces the first.
    """
    client = ctx.obj["client_factory"]()
    if not client.can_reply_to_comments():
        raise click.UsageError("Replying to comments is disabled (reply_enabled: false in .devconsole.yml).")

    if not yes and not click.confirm(f"Post this reply to {comment_id}?\n  {text}\n", default=False):
        console.print("[yellow]Aborted.[/yellow]")
        return

    try:
        reply = client.reply_to_comment(package_name, developer_id, comment_id, text)
    except CommentReplyError as e:
        raise click.ClickException(f"The console rejected the reply (code {e.code}): {e.data}")
    except DevConsoleError as e:
        raise click.ClickException(str(e))

    if reply is None:
        console.print("[yellow]Reply not sent: sign-in needs an interactive step.[/yellow]")
        return

    when = reply.date.strftime("%Y-%m-%d %H:%M") if reply.date else "now"
    console.print(f"[green]Reply posted ({when}):[/green] {reply.text}")
