"""
Rehab Platform command line interface.

    rehab --api-key key_123 clients list --status active
    rehab login --email therapist@clinic.example
    rehab programs status prog_1 completed
"""

import dataclasses
import functools
import json
import logging
from typing import Any, Callable, Dict

import click

from .client import RehabClient, create_rehab_client
from .config import Environment
from .errors import RehabError
from .models import LoginCredentials
from .resources import DEFAULT_PAGE_SIZE
from .storage import FileStorage
from .types import Envelope

logger = logging.getLogger("rehab_client.cli")


def _jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    return value


def _echo_envelope(envelope: Envelope[Any]) -> None:
    payload = envelope.to_dict()
    if "data" in payload:
        payload["data"] = _jsonable(payload["data"])
    click.echo(json.dumps(payload, indent=2, default=str))


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Report RehabErrors as ``<kind>: <message>`` on stderr and exit 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except RehabError as e:
            logger.debug(f"[Rehab] command failed: {e!r}")
            click.echo(f"{e.kind.value}: {e.message}", err=True)
            raise SystemExit(1)

    return wrapper


def get_client(ctx: click.Context) -> RehabClient:
    """Client built from the group options, created once per invocation."""
    obj = ctx.ensure_object(dict)
    if "CLIENT" not in obj:
        options: Dict[str, Any] = dict(obj["OPTIONS"])
        options["storage"] = FileStorage(obj.get("TOKEN_FILE"))
        client = create_rehab_client(**options)
        ctx.call_on_close(client.close)
        obj["CLIENT"] = client
    return obj["CLIENT"]


@click.group()
@click.option("--api-key", envvar="REHAB_API_KEY", default="", help="API key (or REHAB_API_KEY)")
@click.option(
    "--environment",
    "-e",
    envvar="REHAB_ENVIRONMENT",
    type=click.Choice([e.value for e in Environment]),
    default=Environment.PRODUCTION.value,
    show_default=True,
)
@click.option("--base-url", envvar="REHAB_BASE_URL", default=None, help="Override the API base URL")
@click.option("--timeout", type=float, default=30.0, show_default=True, help="Request timeout in seconds")
@click.option("--retries", type=int, default=3, show_default=True, help="Retries after the first attempt")
@click.option(
    "--token-file",
    envvar="REHAB_TOKEN_FILE",
    type=click.Path(dir_okay=False),
    default=None,
    help="Session token file (default ~/.rehab/tokens.json)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log requests and retries")
@click.pass_context
def cli(ctx, api_key, environment, base_url, timeout, retries, token_file, verbose):
    """Rehab Platform CLI - Manage users, clients and rehabilitation programs."""
    ctx.ensure_object(dict)
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    options: Dict[str, Any] = {
        "api_key": api_key,
        "environment": environment,
        "timeout": timeout,
        "max_retry_attempts": retries,
        "enable_logging": verbose,
    }
    if base_url:
        options["base_url"] = base_url
    ctx.obj["OPTIONS"] = options
    ctx.obj["TOKEN_FILE"] = token_file


# =============================================================================
# Session
# =============================================================================

@cli.command()
@click.option("--email", prompt=True)
@click.option("--password", prompt=True, hide_input=True)
@click.pass_context
@handle_errors
def login(ctx, email, password):
    """Log in and store the session tokens."""
    envelope = get_client(ctx).auth.login(LoginCredentials(email=email, password=password))
    user = envelope.data.user
    click.echo(f"Logged in as {user.email if user else email}")


@cli.command()
@click.pass_context
@handle_errors
def logout(ctx):
    """End the session and remove stored tokens."""
    get_client(ctx).auth.logout()
    click.echo("Logged out")


@cli.command()
@click.pass_context
@handle_errors
def me(ctx):
    """Show the current user."""
    _echo_envelope(get_client(ctx).auth.me())


# =============================================================================
# Users
# =============================================================================

@cli.group()
def users():
    """User management."""


@users.command("list")
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--limit", type=int, default=DEFAULT_PAGE_SIZE, show_default=True)
@click.option("--search", default=None)
@click.option("--role", default=None)
@click.pass_context
@handle_errors
def list_users(ctx, page, limit, search, role):
    """List users."""
    _echo_envelope(get_client(ctx).users.list(page=page, limit=limit, search=search, role=role))


@users.command("get")
@click.argument("user_id")
@click.pass_context
@handle_errors
def get_user(ctx, user_id):
    """Show one user."""
    _echo_envelope(get_client(ctx).users.get(user_id))


# =============================================================================
# Clients
# =============================================================================

@cli.group()
def clients():
    """Client (patient) records."""


@clients.command("list")
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--limit", type=int, default=DEFAULT_PAGE_SIZE, show_default=True)
@click.option("--search", default=None)
@click.option("--status", default=None)
@click.option("--therapist-id", default=None)
@click.pass_context
@handle_errors
def list_clients(ctx, page, limit, search, status, therapist_id):
    """List clients."""
    _echo_envelope(
        get_client(ctx).clients.list(
            page=page, limit=limit, search=search, status=status, therapist_id=therapist_id
        )
    )


@clients.command("get")
@click.argument("client_id")
@click.pass_context
@handle_errors
def get_client_record(ctx, client_id):
    """Show one client."""
    _echo_envelope(get_client(ctx).clients.get(client_id))


@clients.command("programs")
@click.argument("client_id")
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--limit", type=int, default=DEFAULT_PAGE_SIZE, show_default=True)
@click.pass_context
@handle_errors
def client_programs(ctx, client_id, page, limit):
    """List the programs of a client."""
    _echo_envelope(get_client(ctx).clients.programs(client_id, page=page, limit=limit))


# =============================================================================
# Programs
# =============================================================================

@cli.group()
def programs():
    """Rehabilitation programs."""


@programs.command("list")
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--limit", type=int, default=DEFAULT_PAGE_SIZE, show_default=True)
@click.option("--client-id", default=None)
@click.option("--status", default=None)
@click.pass_context
@handle_errors
def list_programs(ctx, page, limit, client_id, status):
    """List programs."""
    _echo_envelope(
        get_client(ctx).programs.list(page=page, limit=limit, client_id=client_id, status=status)
    )


@programs.command("get")
@click.argument("program_id")
@click.pass_context
@handle_errors
def get_program(ctx, program_id):
    """Show one program."""
    _echo_envelope(get_client(ctx).programs.get(program_id))


@programs.command("assign")
@click.argument("program_id")
@click.argument("client_id")
@click.pass_context
@handle_errors
def assign_program(ctx, program_id, client_id):
    """Assign a program to a client."""
    _echo_envelope(get_client(ctx).programs.assign(program_id, client_id))


@programs.command("status")
@click.argument("program_id")
@click.argument("status")
@click.pass_context
@handle_errors
def set_program_status(ctx, program_id, status):
    """Change the status of a program."""
    _echo_envelope(get_client(ctx).programs.set_status(program_id, status))


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
