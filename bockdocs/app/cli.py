"""
app/cli.py — Operator commands for the email setup.

    flask --app "bockdocs.app:create_app()" email check
    flask --app "bockdocs.app:create_app()" email send-test you@example.com

`check` shows what the dispatcher resolved from EMAIL_* settings (never the
password itself). `send-test` sends a password-reset email with a dummy
token and exits non-zero unless the server accepted it.
"""

from __future__ import annotations

import secrets

import click
from flask import current_app
from flask.cli import AppGroup

from bockdocs.app.services.email_service import DeliveryStatus

email_cli = AppGroup("email", help="Inspect and test outgoing email.")

# Gmail app passwords are 16 characters once the spaces are removed.
_GMAIL_APP_PASSWORD_LENGTH = 16


def _describe(value: str) -> str:
    return value if value else "not set"


@email_cli.command("check")
def check_email():
    """Print the resolved SMTP settings and whether email is configured."""
    mailer = current_app.extensions["email_dispatcher"]
    config = current_app.config

    click.echo(f"EMAIL_SERVICE:  {_describe(config.get('EMAIL_SERVICE') or '')}")
    click.echo(f"SMTP host:      {_describe(mailer.host)}:{mailer.port}")
    click.echo(f"EMAIL_USER:     {_describe(mailer.username)}")
    if mailer.password:
        click.echo(f"EMAIL_PASSWORD: set ({len(mailer.password)} chars)")
    else:
        click.echo("EMAIL_PASSWORD: not set")
    click.echo(f"Sender:         {mailer.sender}")
    click.echo(f"FRONTEND_URL:   {mailer.frontend_url}")

    if not mailer.is_configured:
        click.echo("Email is NOT configured. Set EMAIL_SERVICE or EMAIL_HOST, "
                   "EMAIL_USER and EMAIL_PASSWORD.")
        return

    click.echo("Email is configured.")
    if (config.get("EMAIL_SERVICE") or "").lower() == "gmail":
        if len(mailer.password.replace(" ", "")) != _GMAIL_APP_PASSWORD_LENGTH:
            click.echo("Warning: Gmail needs a 16-character app password, not the account password.")


@email_cli.command("send-test")
@click.argument("address")
def send_test_email(address: str):
    """Send a password-reset email with a dummy token to ADDRESS."""
    mailer = current_app.extensions["email_dispatcher"]
    token = f"test-token-{secrets.token_hex(8)}"

    click.echo(f"Sending test password-reset email to {address} (token {token})")
    result = mailer.send_password_reset(address, token)

    click.echo(f"Status: {result.status.value}")
    if result.reason:
        click.echo(f"Reason: {result.reason}")
    if result.status is not DeliveryStatus.SENT:
        raise click.ClickException("Test email was not sent.")
