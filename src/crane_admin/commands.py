"""Declarative table of command-line commands and their flag rules.

The CLI layer registers flags with cyclopts; this table states, per command,
which flags identify the target, which flags request a modification, which
flags may not be combined, and how many modification flags are needed. The
CLI checks an invocation against the table before it contacts the daemon.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Sequence, Tuple

from .errors import UsageError

PARTITION_OPERATION_FLAGS = (
    "set_allowed_partition",
    "add_allowed_partition",
    "delete_allowed_partition",
)
QOS_OPERATION_FLAGS = (
    "set_allowed_qos_list",
    "add_allowed_qos_list",
    "delete_allowed_qos_list",
)


@dataclass(frozen=True)
class CommandSpec:
    """Flag rules of one command.

    Attributes:
        path: Command words, e.g. ``("modify", "account")``.
        flags: Every flag the command accepts (long names, no dashes).
        required: Flags that must be present.
        modifications: Flags that count as modification requests.
        exclusive_groups: Groups of flags of which at most one may be present.
        min_modifications: Minimum number of modification flags.
    """

    path: Tuple[str, ...]
    flags: Tuple[str, ...] = ()
    required: Tuple[str, ...] = ()
    modifications: Tuple[str, ...] = ()
    exclusive_groups: Tuple[Tuple[str, ...], ...] = ()
    min_modifications: int = 0

    @property
    def label(self) -> str:
        return " ".join(self.path)


def _spec(path: str, **kwargs: Any) -> CommandSpec:
    kwargs.setdefault("flags", ())
    flags = tuple(kwargs.pop("flags")) + tuple(kwargs.get("modifications", ()))
    return CommandSpec(path=tuple(path.split()), flags=flags, **kwargs)


COMMAND_TABLE: Dict[Tuple[str, ...], CommandSpec] = {
    spec.path: spec
    for spec in (
        # cacctmgr
        _spec(
            "add account",
            flags=("name", "description", "parent", "partition", "default-qos", "qos"),
            required=("name",),
        ),
        _spec(
            "add user",
            flags=("name", "account", "partition", "level", "coordinate"),
            required=("name", "account"),
        ),
        _spec(
            "add qos",
            flags=(
                "name",
                "description",
                "priority",
                "max_jobs_per_user",
                "max_cpus_per_user",
                "max_time_limit_per_task",
            ),
            required=("name",),
        ),
        _spec("delete account", flags=("name",), required=("name",)),
        _spec("delete user", flags=("name", "account"), required=("name",)),
        _spec("delete qos", flags=("name",), required=("name",)),
        _spec(
            "modify account",
            flags=("name", "force"),
            required=("name",),
            modifications=("description", "default-qos")
            + PARTITION_OPERATION_FLAGS
            + QOS_OPERATION_FLAGS,
            exclusive_groups=(PARTITION_OPERATION_FLAGS, QOS_OPERATION_FLAGS),
            min_modifications=1,
        ),
        _spec(
            "modify user",
            flags=("name", "partition", "account", "force"),
            required=("name",),
            modifications=("default-qos", "admin_level")
            + PARTITION_OPERATION_FLAGS
            + QOS_OPERATION_FLAGS,
            exclusive_groups=(PARTITION_OPERATION_FLAGS, QOS_OPERATION_FLAGS),
            min_modifications=1,
        ),
        _spec(
            "modify qos",
            flags=("name",),
            required=("name",),
            modifications=(
                "description",
                "priority",
                "max_jobs_per_user",
                "max_cpus_per_user",
                "max_time_limit_per_task",
            ),
            min_modifications=1,
        ),
        _spec("show account", flags=("noheader", "format")),
        _spec("show user", flags=("account",)),
        _spec("show qos"),
        _spec("find account", flags=("name",), required=("name",)),
        _spec("find user", flags=("name", "account"), required=("name",)),
        _spec("find qos", flags=("name",), required=("name",)),
        _spec("block account", flags=("name",), required=("name",)),
        _spec("block user", flags=("name", "account"), required=("name", "account")),
        _spec("unblock account", flags=("name",), required=("name",)),
        _spec("unblock user", flags=("name", "account"), required=("name", "account")),
        # ccontrol
        _spec("show node", flags=("name",)),
        _spec("show partition", flags=("name",)),
        _spec("show job", flags=("job",)),
        _spec("show config"),
        _spec(
            "update job",
            flags=("job",),
            required=("job",),
            modifications=("time-limit", "priority"),
            min_modifications=1,
        ),
        _spec(
            "update node",
            flags=("name", "reason"),
            required=("name", "state"),
            modifications=("state",),
            min_modifications=1,
        ),
    )
}


def get_command_spec(path: Sequence[str]) -> CommandSpec:
    try:
        return COMMAND_TABLE[tuple(path)]
    except KeyError:
        raise UsageError(f"Unknown command: {' '.join(path)}") from None


def provided_flags(values: Mapping[str, Any]) -> Tuple[str, ...]:
    """Return the names of flags that were set; ``None`` and ``False`` mean unset."""
    return tuple(name for name, value in values.items() if value is not None and value is not False)


def validate_invocation(path: Sequence[str], values: Mapping[str, Any]) -> CommandSpec:
    """Check an invocation against :data:`COMMAND_TABLE`.

    Args:
        path: Command words.
        values: Flag name to parsed value; ``None`` marks an absent flag.

    Returns:
        The matching :class:`CommandSpec`.

    Raises:
        UsageError: On unknown or missing flags, on two flags from one
            exclusive group, or when too few modification flags are given.
    """
    spec = get_command_spec(path)
    present = provided_flags(values)

    unknown = [name for name in values if name not in spec.flags]
    if unknown:
        raise UsageError(f"{spec.label}: unknown flag(s) {_flag_list(unknown)}")

    missing = [name for name in spec.required if name not in present]
    if missing:
        raise UsageError(f"{spec.label}: required flag(s) {_flag_list(missing)} not set")

    for group in spec.exclusive_groups:
        chosen = [name for name in group if name in present]
        if len(chosen) > 1:
            raise UsageError(
                f"{spec.label}: flags {_flag_list(chosen)} are mutually exclusive"
            )

    modifications = [name for name in present if name in spec.modifications]
    if len(modifications) < spec.min_modifications:
        raise UsageError("you must specify at least one modification item")

    return spec


def _flag_list(names: Sequence[str]) -> str:
    return ", ".join(f"--{name}" for name in names)
