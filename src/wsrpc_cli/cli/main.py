"""wsrpc CLI - main entry point."""

import logging
import sys
from pathlib import Path
from typing import NoReturn, Optional

import click
from rich.console import Console
from rich.markup import escape

from wsrpc_cli import __version__
from wsrpc_cli.config import AGENT_SOCKET_ENV, AGENT_TOKEN_ENV, build_config
from wsrpc_cli.errors import CallError, CancelledError
from wsrpc_cli.models import CallRequest
from wsrpc_cli.render import render_result
from wsrpc_cli.strategy import select_strategy

logger = logging.getLogger(__name__)
console = Console(stderr=True)

EXIT_FAILURE = 1
EXIT_CANCELLED = 130


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _fail(message: str, code: int = EXIT_FAILURE) -> NoReturn:
    console.print(f"[red]Error:[/red] {escape(message)}")
    sys.exit(code)


@click.command(
    context_settings={"help_option_names": ["-h", "--help"]},
    epilog=f"If {AGENT_SOCKET_ENV} or {AGENT_TOKEN_ENV} is set, the call is "
    "handed to the wsrpc agent listening on that socket.",
)
@click.version_option(version=__version__, prog_name="wsrpc")
@click.argument("address")
@click.argument("method")
@click.argument("params", required=False, default="")
@click.option("-c", "--root-cert", type=click.Path(path_type=Path), default=None,
              help="Root certificate PEM file")
@click.option("-u", "--user", default="", help="User")
@click.option("-p", "--pass", "password", default="", help="Password")
@click.option("-v", "--verbose", is_flag=True, help="Log protocol steps to stderr")
def cli(address: str, method: str, params: str, root_cert: Optional[Path],
        user: str, password: str, verbose: bool):
    """Call METHOD on the websocket JSON-RPC server at ADDRESS.

    PARAMS, when given, must be a JSON array of positional arguments.
    """
    _configure_logging(verbose)
    try:
        request = CallRequest.from_text(method, params)
        config = build_config(address, root_cert, user, password)
        strategy = select_strategy(config)
        result = strategy.execute(request)
        render_result(result)
    except CancelledError as e:
        _fail(str(e), EXIT_CANCELLED)
    except CallError as e:
        logger.debug("Call failed", exc_info=True)
        _fail(str(e))


if __name__ == "__main__":
    cli()
