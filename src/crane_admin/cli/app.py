"""Shared entry-point plumbing for the cacctmgr and ccontrol applications."""

from __future__ import annotations

import logging
from typing import Annotated, List, Optional, Sequence

import cyclopts
from rich.console import Console
from rich.markup import escape

from ..errors import (
    BackendDataError,
    BackendError,
    BackendTimeout,
    ConfigError,
    CraneError,
    ExitCode,
    RejectedError,
    TransportError,
    UsageError,
)
from ..models import AttributeChange

console = Console(stderr=True, soft_wrap=True)
logger = logging.getLogger(__name__)

ConfigOption = Annotated[
    Optional[str],
    cyclopts.Parameter(
        name=["--config", "-C"],
        help="Path to configuration file.",
    ),
]

VerboseOption = Annotated[
    bool,
    cyclopts.Parameter(
        name=["--verbose", "-v"],
        negative=(),
        help="Enable debug logging.",
    ),
]


def _get_version() -> str:
    """Get package version for --version flag."""
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("crane-admin")
    except PackageNotFoundError:
        return "unknown"


def _attribute_list(changes: Sequence[AttributeChange]) -> str:
    return ", ".join(change.attribute for change in changes) or "none"


def report_error(e: CraneError) -> None:
    """Print a one-line reason for ``e``, plus how far a modification got."""
    if isinstance(e, (UsageError, ConfigError)):
        console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
        if isinstance(e, ConfigError):
            console.print("\n[dim]Hint: Use --config or set CRANE_CONFIG to point at the configuration file.[/dim]")
    elif isinstance(e, BackendTimeout):
        console.print(f"[red]Connection Timeout:[/red] {escape(str(e))}", highlight=False)
        console.print("\n[dim]Hint: Check that the control daemon is running and reachable.[/dim]")
    elif isinstance(e, TransportError):
        console.print(f"[red]Connection Error:[/red] {escape(str(e))}", highlight=False)
    elif isinstance(e, RejectedError):
        console.print(f"[red]Failed:[/red] {escape(str(e))}", highlight=False)
    elif isinstance(e, BackendDataError):
        console.print(f"[red]Backend Error:[/red] {escape(str(e))}", highlight=False)
    else:
        console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)

    if isinstance(e, BackendError) and e.failed is not None:
        console.print(f"Applied: {_attribute_list(e.applied)}", markup=False, highlight=False)
        console.print(f"Failed: {e.failed.attribute}", markup=False, highlight=False)
        console.print(f"Not attempted: {_attribute_list(e.skipped)}", markup=False, highlight=False)


def run(app: cyclopts.App, tokens: Optional[List[str]] = None) -> int:
    """Run ``app`` and return the process exit code.

    Commands signal failure by raising; this is the only place where
    exceptions become exit codes.
    """
    try:
        app(tokens, exit_on_error=False)
    except SystemExit as e:
        if e.code is None:
            return ExitCode.SUCCESS
        return e.code if isinstance(e.code, int) else ExitCode.GENERIC
    except cyclopts.CycloptsError:
        return ExitCode.USAGE
    except CraneError as e:
        logger.debug("Command failed", exc_info=True)
        report_error(e)
        return e.exit_code
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        return ExitCode.INTERRUPTED
    except Exception as e:
        logger.debug("Unexpected failure", exc_info=True)
        console.print(f"[red]Error:[/red] {escape(str(e) or type(e).__name__)}", highlight=False)
        console.print("\n[dim]Hint: Run again with --verbose for details.[/dim]")
        return ExitCode.GENERIC
    return ExitCode.SUCCESS
