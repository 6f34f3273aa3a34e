"""Shared utilities for the crane-admin CLIs."""

from __future__ import annotations

import logging
import os
from typing import Optional

from ..api import BackendBase, get_backend_from_config
from ..config import load_client_config
from ..errors import ConfigInvalidError
from ..logging import configure_logging

logger = logging.getLogger(__name__)


def get_backend(config: Optional[str] = None) -> BackendBase:
    """Create a backend from the configuration file.

    Args:
        config: Path to the configuration file; falls back to
            ``$CRANE_CONFIG`` and then the system default.

    Returns:
        Connected backend, usable as a context manager.
    """
    client_config = load_client_config(config)
    logger.debug(
        "Using %s backend at %s:%s",
        client_config.backend,
        client_config.control_machine,
        client_config.port,
    )
    try:
        return get_backend_from_config(client_config.backend_config())
    except ValueError as exc:
        raise ConfigInvalidError(f"{exc} (configured in '{client_config.path}')") from exc


def operator_uid() -> int:
    """Return the uid sent with mutating requests."""
    return os.getuid()


def setup_logging(verbose: bool) -> None:
    configure_logging(logging.DEBUG if verbose else logging.WARNING)
