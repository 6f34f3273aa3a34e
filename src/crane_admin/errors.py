"""Custom error types and process exit codes for crane-admin."""

from __future__ import annotations

from enum import IntEnum
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .models import AttributeChange


class ExitCode(IntEnum):
    """Process exit codes. The exit code is the only machine-readable result."""

    SUCCESS = 0
    GENERIC = 1
    USAGE = 2
    TRANSPORT = 3
    REJECTED = 4
    BACKEND_DATA = 5
    INTERRUPTED = 130


class CraneError(Exception):
    """Base class for every error the CLI knows how to report.

    Each subclass carries the exit code the process ends with when the error
    reaches the command-line entry point.
    """

    exit_code: ExitCode = ExitCode.GENERIC


class UsageError(CraneError):
    """Raised when operator input is malformed or inconsistent.

    Detected before any remote call is made.

    Common causes:
        - Missing required flag (e.g. ``--name`` on modify commands)
        - Two operations for the same attribute (``--add_allowed_partition``
          together with ``--delete_allowed_partition``)
        - No modification flag at all on a modify command
        - Bad time limit (expected ``[D-]HH:MM:SS``) or unknown node state
        - Unknown directive in a ``--format`` string
    """

    exit_code = ExitCode.USAGE


class ConfigError(CraneError):
    """Base class for configuration file errors.

    The configuration file is YAML and names the control machine the client
    talks to.
    """

    exit_code = ExitCode.USAGE


class ConfigNotFoundError(ConfigError):
    """Raised when the configuration file cannot be read.

    What to check:
        - Pass the path explicitly with ``--config``
        - Set the ``CRANE_CONFIG`` environment variable
        - Ensure ``/etc/crane/config.yaml`` exists and is readable
    """


class ConfigInvalidError(ConfigError):
    """Raised when the configuration file is not valid YAML or lacks keys.

    What to check:
        - The top level must be a mapping
        - ``ControlMachine`` must name the host running the control daemon
    """


class BackendError(CraneError):
    """Base class for errors originating from the control daemon backend.

    Subclasses represent specific failure modes (transport failures,
    rejections, inconsistent replies). When the error interrupts a
    multi-attribute modification, ``applied``, ``failed`` and ``skipped``
    describe how far the modification got.
    """

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.applied: List["AttributeChange"] = []
        self.failed: Optional["AttributeChange"] = None
        self.skipped: List["AttributeChange"] = []

    def record_progress(
        self,
        applied: List["AttributeChange"],
        failed: "AttributeChange",
        skipped: List["AttributeChange"],
    ) -> "BackendError":
        self.applied = list(applied)
        self.failed = failed
        self.skipped = list(skipped)
        return self

    @property
    def is_partial(self) -> bool:
        """True when some changes of a multi-attribute request already took effect."""
        return bool(self.applied)


class TransportError(BackendError):
    """Raised when a remote call could not be completed.

    Common causes:
        - Control daemon not running or unreachable
        - TLS or protocol mismatch between client and daemon
        - Network failure in the middle of a call
    """

    exit_code = ExitCode.TRANSPORT


class BackendTimeout(TransportError, TimeoutError):
    """Raised when a remote call does not complete within the configured timeout."""


class BackendDataError(BackendError):
    """Raised when a reply is internally inconsistent (e.g. its ``ok`` flag is false)."""

    exit_code = ExitCode.BACKEND_DATA


class RejectedError(BackendError):
    """Raised when the daemon completed a call but refused it.

    Attributes:
        message: What the client asked for.
        reason: Human-readable reason supplied by the daemon.
    """

    exit_code = ExitCode.REJECTED

    def __init__(self, message: str, *, reason: str = "") -> None:
        super().__init__(message)
        self.reason = reason

    def __str__(self) -> str:
        if self.reason:
            return f"{self.message}: {self.reason}"
        return self.message
