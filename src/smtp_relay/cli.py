"""Command-line interface for the SMTP relay.

The commands use the process-wide settings (environment, ``.env`` file and
``config.ini``); the per-request integration path is only reachable over
HTTP.

Usage:
    smtp-relay serve --port 3000
    smtp-relay verify
    smtp-relay show-config
    smtp-relay send --to user@example.com --subject "Hello" --text "Hi there"

Example:
    $ EMAIL_SERVICE=gmail EMAIL_USER=me@gmail.com EMAIL_PASSWORD=app-pass \\
        smtp-relay send --to a@example.com --to b@example.com \\
        --subject "Report" --text "See attachment" --attach report.pdf
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from smtp_relay import __version__
from smtp_relay.dispatcher import MailDispatcher
from smtp_relay.errors import RelayError
from smtp_relay.logger import configure_logging
from smtp_relay.models import Attachment, SendEmailRequest
from smtp_relay.settings import MailSettings, load_settings

console = Console()
err_console = Console(stderr=True)


def run_async(coro):
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    err_console.print(f"[red]Error:[/red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def _load(ctx: click.Context) -> MailSettings:
    try:
        settings = load_settings(config_path=ctx.obj.get("config"))
    except RelayError as exc:
        print_error(str(exc))
        sys.exit(1)
    configure_logging(ctx.obj.get("log_level") or settings.log_level)
    return settings


@click.group()
@click.version_option(__version__)
@click.option("--config", "-c", type=click.Path(dir_okay=False), default=None,
              help="INI file with [email], [server] and [logging] sections.")
@click.option("--log-level", default=None, help="Override RELAY_LOG_LEVEL.")
@click.pass_context
def main(ctx: click.Context, config: Optional[str], log_level: Optional[str]) -> None:
    """smtp-relay CLI - send email through a configured SMTP transport."""
    load_dotenv()
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["log_level"] = log_level


@main.command("serve")
@click.option("--host", "-h", default=None, help="Host to bind to (default: RELAY_HOST or 0.0.0.0).")
@click.option("--port", "-p", type=int, default=None, help="Port to listen on (default: PORT or 3000).")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development.")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int], reload: bool) -> None:
    """Start the HTTP server."""
    import uvicorn

    settings = _load(ctx)
    host = host or settings.http_host
    port = port or settings.http_port

    console.print("\n[bold cyan]Starting smtp-relay[/bold cyan]")
    console.print(f"  Listen:  {host}:{port}")
    console.print(f"  Static:  {settings.static_dir or '-'}")
    console.print()

    uvicorn.run(
        "smtp_relay.server:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@main.command("verify")
@click.pass_context
def verify(ctx: click.Context) -> None:
    """Check the environment SMTP credentials without sending anything."""
    settings = _load(ctx)
    ok = run_async(MailDispatcher(settings).verify_config())
    if ok:
        print_success("SMTP configuration verified.")
        return
    print_error("SMTP configuration check failed (see log for details).")
    sys.exit(1)


@main.command("show-config")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Show the transport resolved from the environment."""
    settings = _load(ctx)
    dispatcher = MailDispatcher(settings)
    try:
        profile = dispatcher.resolver.resolve()
    except RelayError as exc:
        print_error(str(exc))
        sys.exit(1)
    host, port, secure = profile.endpoint()

    table = Table(title="SMTP transport")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Service", profile.service or "-")
    table.add_row("Host", host)
    table.add_row("Port", str(port))
    table.add_row("Implicit TLS", "yes" if secure else "no")
    table.add_row("Require STARTTLS", "yes" if profile.require_tls else "no")
    table.add_row("User", profile.auth.user)
    table.add_row("Password", "********")
    timeouts = profile.timeouts
    table.add_row("Timeouts (ms)", f"connect={timeouts.connect} greeting={timeouts.greeting} socket={timeouts.socket}")
    console.print(table)


@main.command("send")
@click.option("--to", "to", multiple=True, required=True, help="Recipient (repeatable).")
@click.option("--cc", multiple=True, help="Cc recipient (repeatable).")
@click.option("--bcc", multiple=True, help="Bcc recipient (repeatable).")
@click.option("--subject", "-s", required=True, help="Subject line.")
@click.option("--text", "-t", default=None, help="Plain-text body.")
@click.option("--html", default=None, help="HTML body (defaults to the text body).")
@click.option("--attach", "-a", multiple=True, type=click.Path(exists=True, dir_okay=False),
              help="File to attach (repeatable).")
@click.option("--from", "from_email", default=None, help="Sender address override.")
@click.option("--from-name", default=None, help="Sender display name override.")
@click.pass_context
def send(
    ctx: click.Context,
    to: tuple[str, ...],
    cc: tuple[str, ...],
    bcc: tuple[str, ...],
    subject: str,
    text: Optional[str],
    html: Optional[str],
    attach: tuple[str, ...],
    from_email: Optional[str],
    from_name: Optional[str],
) -> None:
    """Send one email through the environment SMTP transport."""
    settings = _load(ctx)
    request = SendEmailRequest(
        to=list(to),
        cc=list(cc) or None,
        bcc=list(bcc) or None,
        subject=subject,
        text=text,
        html=html,
        attachments=[Attachment(filename=Path(p).name, path=p) for p in attach] or None,
        from_email=from_email,
        from_name=from_name,
    )
    try:
        run_async(MailDispatcher(settings).send_email(request))
    except RelayError as exc:
        print_error(str(exc))
        sys.exit(1)
    print_success(f"Email sent to {', '.join(to)}.")


if __name__ == "__main__":
    main()
