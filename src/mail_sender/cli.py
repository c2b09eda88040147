# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Command-line interface for mail-sender.

Usage:
    mail-sender --server smtp.example.com --port 587 --security start_tls \\
        --from reports@example.com --from-name "Reports" \\
        --to ops@example.com --bcc audit@example.com \\
        --subject "Nightly export" --body "<p>See attached.</p>" \\
        --attach export.xlsx --attach notes.txt --priority high

    # Everything not given on the command line comes from the config file
    # (--config or MAILSENDER_CONFIG) and MAILSENDER_* environment variables
    mail-sender --to ops@example.com --subject "Done" --body-file body.html
"""

from __future__ import annotations

import os
import sys
from typing import Optional

import click
from pydantic import ValidationError as SettingsValidationError
from rich.console import Console

from mail_sender.config_loader import load_settings
from mail_sender.errors import MailSenderError
from mail_sender.logger import configure_logging
from mail_sender.models import MEGABYTE, MessageRequest, Priority, SecurityMode
from mail_sender.sender import MailSender

console = Console()
err_console = Console(stderr=True)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    err_console.print(f"[red]Error:[/red] {message}")


def print_warning(message: str) -> None:
    err_console.print(f"[yellow]Warning:[/yellow] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


@click.command()
@click.version_option(package_name="mail-sender")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False), help="INI configuration file.")
@click.option("--server", "-s", help="SMTP server hostname.")
@click.option("--port", "-p", type=click.IntRange(1, 65535), help="SMTP port (default: 25).")
@click.option(
    "--security",
    type=click.Choice([mode.value for mode in SecurityMode], case_sensitive=False),
    help="Connection security (default: auto).",
)
@click.option("--from", "sender", help="Sender email address.")
@click.option("--from-name", "sender_name", help="Sender display name.")
@click.option("--to", "to", multiple=True, help="Recipient address (repeatable).")
@click.option("--bcc", "bcc", multiple=True, help="Blind-copy address (repeatable).")
@click.option("--subject", default="", help="Subject line.")
@click.option("--body", default=None, help="HTML body.")
@click.option("--body-file", type=click.File("r", encoding="utf-8"), help="Read the HTML body from a file.")
@click.option(
    "--priority",
    type=click.Choice([p.value for p in Priority], case_sensitive=False),
    help="Message priority (default: normal).",
)
@click.option("--attach", "-a", "attachments", multiple=True, help="File to attach (repeatable).")
@click.option("--max-attachment-mb", type=click.FloatRange(min=0, min_open=True), help="Attachment size budget in MB (default: 20).")
@click.option("--username", "-u", help="SMTP username (no authentication when omitted).")
@click.option("--password", help="SMTP password.", envvar="MAILSENDER_PASSWORD")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(
    config_path: Optional[str],
    server: Optional[str],
    port: Optional[int],
    security: Optional[str],
    sender: Optional[str],
    sender_name: Optional[str],
    to: tuple[str, ...],
    bcc: tuple[str, ...],
    subject: str,
    body: Optional[str],
    body_file,
    priority: Optional[str],
    attachments: tuple[str, ...],
    max_attachment_mb: Optional[float],
    username: Optional[str],
    password: Optional[str],
    verbose: bool,
) -> None:
    """Send one HTML email over SMTP with optional attachments."""
    configure_logging("DEBUG" if verbose else os.getenv("MAILSENDER_LOG_LEVEL", "WARNING"))

    if body is not None and body_file is not None:
        print_error("Use either --body or --body-file, not both.")
        sys.exit(2)
    body_html = body_file.read() if body_file is not None else (body or "")

    overrides = {
        "server": server,
        "port": port,
        "security_mode": security,
        "sender": sender,
        "sender_name": sender_name,
        "username": username,
        "password": password,
        "max_attachment_bytes": int(max_attachment_mb * MEGABYTE) if max_attachment_mb else None,
    }

    try:
        settings = load_settings(config_path, overrides)
        request = MessageRequest(
            to=list(to),
            bcc=list(bcc),
            subject=subject,
            body_html=body_html,
            priority=priority,
            attachments=list(attachments),
        )
        report = MailSender(settings).send(request)
    except SettingsValidationError as exc:
        print_error(f"Invalid settings: {exc}")
        sys.exit(1)
    except MailSenderError as exc:
        print_error(str(exc))
        sys.exit(1)

    for warning in report.warnings:
        print_warning(str(warning))
    if report.overflow_message:
        print_warning(report.overflow_message)
    for name in report.attached:
        console.print(f"  attached {name}")
    print_success(f"Email sent to {', '.join([*report.to, *report.bcc])}")


if __name__ == "__main__":
    main()
