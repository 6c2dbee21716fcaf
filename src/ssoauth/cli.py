"""Command line interface: log in, inspect the session and sign requests."""

import sys
from typing import NoReturn

import anyio
import click

from ssoauth.client.settings import SSOSettings
from ssoauth.client.sso import SSOClient
from ssoauth.shared.credentials import Placement
from ssoauth.shared.error_reporting import describe_error
from ssoauth.shared.exceptions import AuthError, AuthErrorKind
from ssoauth.utilities.logging import configure_logging


def create_client(settings: SSOSettings) -> SSOClient:
    return SSOClient(settings)


def _fail(error: AuthError) -> NoReturn:
    raise click.ClickException(describe_error(error))


@click.group()
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]), default=None)
@click.pass_context
def main(ctx: click.Context, log_level: str | None) -> None:
    """Single sign-on client."""
    settings = SSOSettings()
    configure_logging(log_level or settings.log_level)  # type: ignore[arg-type]
    ctx.obj = create_client(settings)


@main.command()
@click.option("--email", prompt=True, help="Account email")
@click.option("--password", prompt=True, hide_input=True, envvar="SSOAUTH_PASSWORD", help="Account password")
@click.option("--otp", default="", help="One-time code, if two-factor authentication is enabled")
@click.pass_obj
def login(client: SSOClient, email: str, password: str, otp: str) -> None:
    """Log in and store the issued credentials."""

    async def run() -> None:
        await client.login(email, password, otp)

    try:
        anyio.run(run)
    except AuthError as e:
        if e.kind is AuthErrorKind.TWO_FACTOR_REQUIRED:
            click.echo("Two-factor authentication required, retry with --otp", err=True)
        _fail(e)
    click.echo(f"Logged in as {email}")


@main.command()
@click.pass_obj
def status(client: SSOClient) -> None:
    """Report whether stored credentials are available."""
    try:
        credential = anyio.run(client.get_credentials)
    except AuthError as e:
        if e.kind is AuthErrorKind.NOT_LOGGED_IN:
            click.echo("Not logged in")
            sys.exit(1)
        _fail(e)
    click.echo(f"Logged in (token {credential.token_name or credential.token_key})")


@main.command()
@click.argument("method")
@click.argument("url")
@click.option("--query", "as_query", is_flag=True, help="Print query parameters instead of a header value")
@click.pass_obj
def sign(client: SSOClient, method: str, url: str, as_query: bool) -> None:
    """Print the signature for METHOD on URL."""
    try:
        anyio.run(client.get_credentials)
        click.echo(client.sign(method, url, Placement.QUERY if as_query else Placement.HEADER))
    except AuthError as e:
        _fail(e)
    except ValueError as e:
        raise click.BadParameter(str(e))


@main.command()
@click.pass_obj
def logout(client: SSOClient) -> None:
    """Delete stored credentials."""
    anyio.run(client.logout)
    click.echo("Logged out")
