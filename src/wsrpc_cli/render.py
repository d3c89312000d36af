"""Pretty-printing of call results."""

from __future__ import annotations

from typing import IO, Optional

import click

from wsrpc_cli import jsontext
from wsrpc_cli.models import RawJSON


def format_result(raw: RawJSON) -> str:
    """Re-indent a raw result; numbers and member order are left untouched."""
    return jsontext.dumps(jsontext.loads(raw, "result"), indent=2)


def render_result(raw: RawJSON, file: Optional[IO[str]] = None) -> None:
    """Write the indented result to stdout (or ``file``)."""
    click.echo(format_result(raw), file=file)
