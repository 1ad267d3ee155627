"""CLI error handling: wrap commands to report errors instead of tracebacks."""

from functools import wraps

import typer
from click.exceptions import Exit

from missiondeck.errors import DeckError, StoreError

# First match wins, so subclasses come before their bases.
ERROR_PREFIXES = (
    (StoreError, "Store error"),
    (DeckError, "Error"),
    ((ValueError, KeyError, TypeError), "Invalid input"),
    (OSError, "File error"),
)


def describe(error: Exception) -> str:
    prefix = next((p for types, p in ERROR_PREFIXES if isinstance(error, types)), "Error")
    return f"{prefix}: {error}"


def error_feedback(f):
    """Wrap a command so failures print one line to stderr and exit with status 1.

    Exits raised by the command itself (typer.Exit, SystemExit) pass through.
    """

    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except (SystemExit, Exit):
            raise
        except Exception as e:
            typer.echo(describe(e), err=True)
            raise typer.Exit(1) from e

    return wrapper
