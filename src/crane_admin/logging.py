"""
Logging helpers for crane-admin.

Provides a single entrypoint `configure_logging`. Command output is written
through rich consoles; logging carries diagnostics only and stays quiet
unless ``--verbose`` is given.
"""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def _quiet_third_party() -> None:
    """Reduce verbosity of the HTTP stack."""
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_logging(level: int = logging.WARNING, use_rich: bool = True) -> None:
    """Configure application logging.

    Args:
        level: Root logging level (default: logging.WARNING).
        use_rich: If True, install a Rich handler on stderr with a concise
            format; otherwise a plain stream handler.
    """
    _quiet_third_party()

    # Remove any pre-existing handlers to avoid duplicate output
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)

    root.setLevel(level)

    handler: Optional[logging.Handler] = None
    if use_rich:
        handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
            enable_link_path=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))

    if handler is None:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))

    root.addHandler(handler)
