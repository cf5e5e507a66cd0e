"""Custom Click group that shows contextual help on usage errors."""

import sys
from typing import Any

import click

_USAGE_ERRORS = (
    click.exceptions.UsageError,
    click.exceptions.BadParameter,
    click.exceptions.MissingParameter,
)


class DocRefreshGroup(click.Group):
    """Click group that prints the failing command's help after a usage error."""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except _USAGE_ERRORS as e:
            click.echo(f"Error: {e.format_message()}", err=True)

            error_ctx = e.ctx if getattr(e, "ctx", None) else ctx
            click.echo("", err=True)
            click.echo(error_ctx.get_help(), err=True)

            # ctx.exit() keeps CliRunner happy
            error_ctx.exit(getattr(e, "exit_code", 1))
            return None


def exit_with_error(message: str, code: int = 1) -> None:
    """Print an error to stderr and exit."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(code)
