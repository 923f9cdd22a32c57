"""CLI: restalexa parse|call"""

import json
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from restalexa.config import ServerConfig
from restalexa.registry import FunctionRegistry
from restalexa.server import RestAlexaServer
from restalexa.transport.request import parse_envelope
from restalexa.transport.response import ResponseFormat

console = Console()


def _load_config() -> dict:
    from restalexa.cli.main import _load_config
    return _load_config()


def _parse_query(pairs):
    from restalexa.cli.main import _parse_query
    return _parse_query(pairs)


def _get_validator(tokens, validator_url):
    from restalexa.cli.main import _get_validator
    return _get_validator(tokens, validator_url)


def _get_registry(spec):
    from restalexa.cli.main import _get_registry
    return _get_registry(spec)


def _token_label(token) -> str:
    if token is None:
        return "[dim]none[/dim]"
    return token if len(token) <= 12 else f"{token[:8]}…"


@click.command("parse")
@click.argument("body", type=click.File("rb"))
@click.option("-q", "--query", multiple=True, help="Query-string parameter as key=value.")
@click.option("--tokens", default=None, help="JSON file mapping tokens to identities.")
@click.option("--validator-url", default=None, help="Remote token endpoint base URL.")
@click.option("--json-output", "--json", is_flag=True)
def parse_cmd(body, query, tokens, validator_url, json_output):
    """Show how a request body is parsed and which token it runs under."""
    # Only reconciliation runs here; no function is looked up.
    raw = body.read()
    server = RestAlexaServer(FunctionRegistry(), _get_validator(tokens, validator_url))
    descriptor = server.prepare(raw, _parse_query(query))

    if json_output:
        click.echo(json.dumps({
            "function_name": descriptor.function_name,
            "service_token": descriptor.service_token,
            "user_token": descriptor.user_token,
            "auth_token": descriptor.auth_token,
            "token": descriptor.parameters.get("token"),
            "arguments": descriptor.arguments,
            "parse_error": descriptor.parse_error.model_dump(mode="json") if descriptor.parse_error else None,
        }, indent=2))
        return

    table = Table(title="Call descriptor")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Function", descriptor.function_name or "[red]missing[/red]")
    table.add_row("Service token", _token_label(descriptor.service_token))
    table.add_row("User token", _token_label(descriptor.user_token))
    table.add_row("Runs as", _token_label(descriptor.auth_token))
    table.add_row("Token marker", descriptor.parameters.get("token") or "[dim]\"\"[/dim]")

    envelope = parse_envelope(descriptor.arguments)
    user = envelope.context.System.user if envelope and envelope.context and envelope.context.System else None
    if user and user.userId:
        table.add_row("Assistant user", user.userId)
    if descriptor.parse_error:
        table.add_row("Parse error", f"[yellow]{descriptor.parse_error.message}[/yellow]")
    console.print(table)


@click.command("call")
@click.argument("body", type=click.File("rb"))
@click.option("--registry", "registry_spec", default=None, help="Registry as module:attribute.")
@click.option("-q", "--query", multiple=True, help="Query-string parameter as key=value.")
@click.option("--tokens", default=None, help="JSON file mapping tokens to identities.")
@click.option("--validator-url", default=None, help="Remote token endpoint base URL.")
@click.option("--format", "fmt", type=click.Choice([f.value for f in ResponseFormat]), default=None)
@click.option("--debug/--no-debug", default=None, help="Include debug info in error bodies.")
@click.option("--headers", "show_headers", is_flag=True, help="Print response headers too.")
def call_cmd(body, registry_spec: Optional[str], query, tokens, validator_url, fmt, debug, show_headers):
    """Run a request body through the registry and print the response."""
    cfg = _load_config()
    config = ServerConfig(
        format=ResponseFormat(fmt or cfg.get("format", ResponseFormat.JSON.value)),
        debug=bool(debug if debug is not None else cfg.get("debug", False)),
    )
    server = RestAlexaServer(_get_registry(registry_spec), _get_validator(tokens, validator_url), config)
    response = server.handle(body.read(), _parse_query(query))

    if show_headers:
        for name, value in response.headers.items():
            console.print(f"[dim]{name}:[/dim] {value}")
        console.print()
    click.echo(response.body.decode("utf-8"), nl=not response.body.endswith(b"\n"))
    if not response.ok:
        raise SystemExit(1)
