"""
restalexa CLI: `restalexa` command.

Commands:
  restalexa parse <body>   Show the parsed, reconciled call descriptor
  restalexa call <body>    Run a request through a function registry
"""

import importlib
import json
import logging
from pathlib import Path
from typing import Optional

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install restalexa[cli]")

from restalexa.auth import CredentialValidator, StaticTokenValidator
from restalexa.registry import FunctionRegistry

console = Console()
CONFIG_FILE = Path.home() / ".restalexa" / "config.json"


def _load_config() -> dict:
    try:
        cfg = json.loads(CONFIG_FILE.read_text())
    except (OSError, json.JSONDecodeError):
        return {}
    return cfg if isinstance(cfg, dict) else {}


def _parse_query(pairs: tuple[str, ...]) -> dict[str, str]:
    params: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint="--query")
        params[key] = value
    return params


def _get_validator(tokens: Optional[str], validator_url: Optional[str]) -> CredentialValidator:
    cfg = _load_config()
    tokens = tokens or cfg.get("tokens")
    validator_url = validator_url or cfg.get("validator_url")
    if validator_url:
        from restalexa.transport.http import RemoteTokenValidator
        validator = RemoteTokenValidator(validator_url)
        # Closed once the running command finishes.
        click.get_current_context().call_on_close(validator.close)
        return validator
    if tokens:
        try:
            return StaticTokenValidator(json.loads(Path(tokens).read_text()))
        except (OSError, json.JSONDecodeError) as e:
            raise click.ClickException(f"Cannot load token file {tokens}: {e}")
    return StaticTokenValidator({})


def _get_registry(spec: Optional[str]) -> FunctionRegistry:
    spec = spec or _load_config().get("registry")
    if not spec:
        raise click.UsageError("No registry given. Pass --registry module:attribute.")
    module_name, _, attr = spec.partition(":")
    try:
        registry = getattr(importlib.import_module(module_name), attr or "registry")
    except (ImportError, AttributeError) as e:
        raise click.ClickException(f"Cannot load registry {spec}: {e}")
    if not isinstance(registry, FunctionRegistry):
        raise click.ClickException(f"{spec} is not a FunctionRegistry")
    return registry


@click.group()
@click.version_option("0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Log pipeline steps to stderr.")
def main(verbose: bool):
    """restalexa CLI: run assistant webhook requests through a function registry."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


# Register subcommands from separate modules
from restalexa.cli.call import call_cmd, parse_cmd

main.add_command(parse_cmd)
main.add_command(call_cmd)


if __name__ == "__main__":
    main()
