"""Rich output formatters for the cacctmgr and ccontrol CLIs.

Accounts, users and QoS are shown as rich tables. Nodes, partitions and jobs
are shown as ``Key=Value`` records, built by the pure ``render_*`` functions
so the text can be checked without a terminal.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence, Union

from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from ..errors import UsageError
from ..models import Account, Node, Partition, Qos, Task, TaskStatus, User
from ..query import AccountNode
from ..values import (
    MAX_DURATION_SECONDS,
    bytes_to_mb,
    format_duration,
    format_limit,
    join_list,
)

console = Console(soft_wrap=True)

# 1980-01-01T00:00:00Z; earlier timestamps are placeholders, not real times.
EPOCH_1980 = 315532800

FORMAT_FIELDS = {
    "n": ("Name", lambda account: account.name),
    "d": ("Description", lambda account: account.description),
    "P": ("AllowedPartition", lambda account: join_list(account.allowed_partitions)),
    "Q": ("DefaultQos", lambda account: account.default_qos),
    "q": ("AllowedQosList", lambda account: join_list(account.allowed_qos_list)),
}

_DIRECTIVE = re.compile(r"%(?:\.(\d+))?(.)", re.DOTALL)


def print_lines(lines: Iterable[str]) -> None:
    """Print plain text lines without rich markup or highlighting."""
    for line in lines:
        console.print(line, markup=False, highlight=False, soft_wrap=True)


def print_success(message: str) -> None:
    console.print(message, style="green", markup=False, highlight=False)


def print_not_found(message: str) -> None:
    console.print(message, style="dim", markup=False, highlight=False)


# ---------------------------------------------------------------------------
# Accounts, users and QoS
# ---------------------------------------------------------------------------


def print_accounts_table(accounts: Sequence[Account]) -> None:
    """Display accounts as a table.

    Args:
        accounts: Records returned by the daemon.
    """
    table = Table(title="Accounts")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Description")
    table.add_column("AllowedPartition")
    table.add_column("DefaultQos")
    table.add_column("AllowedQosList")
    table.add_column("Blocked", style="dim")

    for account in accounts:
        table.add_row(
            account.name,
            account.description,
            join_list(account.allowed_partitions),
            account.default_qos,
            join_list(account.allowed_qos_list),
            "yes" if account.blocked else "no",
        )

    console.print(table)


def build_account_tree_view(roots: Sequence[AccountNode]) -> Tree:
    tree = Tree("Accounts", guide_style="dim")

    def add(branch: Tree, node: AccountNode) -> None:
        child = branch.add(node.account.name)
        for grandchild in node.children:
            add(child, grandchild)

    for root in roots:
        add(tree, root)
    return tree


def print_account_tree(roots: Sequence[AccountNode]) -> None:
    console.print(build_account_tree_view(roots))


def print_users_table(users: Sequence[User]) -> None:
    """Display users, one row per allowed partition of each association."""
    table = Table(title="Users")
    table.add_column("Account", style="cyan", no_wrap=True)
    table.add_column("UserName", style="cyan", no_wrap=True)
    table.add_column("Uid", justify="right")
    table.add_column("AllowedPartition")
    table.add_column("AllowedQosList")
    table.add_column("DefaultQos")
    table.add_column("AdminLevel")
    table.add_column("Blocked", style="dim")

    for user in users:
        entries = user.allowed_partition_qos or [None]
        for entry in entries:
            table.add_row(
                user.account,
                user.name,
                str(user.uid),
                entry.partition if entry else "",
                join_list(entry.allowed_qos_list) if entry else "",
                entry.default_qos if entry else "",
                user.admin_level.value,
                "yes" if user.blocked else "no",
            )

    console.print(table)


def print_qos_table(qos_list: Sequence[Qos]) -> None:
    table = Table(title="QoS")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Description")
    table.add_column("Priority", justify="right")
    table.add_column("MaxJobsPerUser", justify="right")
    table.add_column("MaxCpusPerUser", justify="right")
    table.add_column("MaxTimeLimitPerTask", justify="right")

    for qos in qos_list:
        table.add_row(
            qos.name,
            qos.description,
            str(qos.priority),
            format_limit(qos.max_jobs_per_user),
            format_limit(qos.max_cpus_per_user),
            format_duration(qos.max_time_limit_per_task),
        )

    console.print(table)


# ---------------------------------------------------------------------------
# Account format strings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FormatField:
    """One ``%[.width]<char>`` directive of a format string."""

    char: str
    width: int = 0


FormatSegment = Union[str, FormatField]


def parse_format(fmt: str) -> List[FormatSegment]:
    """Split a format string into literal text and field directives.

    ``%%`` is a literal percent sign.

    Raises:
        UsageError: On an unknown directive character or a dangling ``%``.
    """
    segments: List[FormatSegment] = []
    literal: List[str] = []
    pos = 0

    while pos < len(fmt):
        char = fmt[pos]
        if char != "%":
            literal.append(char)
            pos += 1
            continue

        if fmt.startswith("%%", pos):
            literal.append("%")
            pos += 2
            continue

        match = _DIRECTIVE.match(fmt, pos)
        if match is None or (match.group(1) is None and fmt.startswith("%.", pos)):
            raise UsageError(f"Invalid format specifier at position {pos} of {fmt!r}")

        field_char = match.group(2)
        if field_char not in FORMAT_FIELDS:
            raise UsageError(
                f"Invalid format specifier '%{field_char}', "
                f"supported fields are: {', '.join('%' + c for c in FORMAT_FIELDS)}"
            )

        if literal:
            segments.append("".join(literal))
            literal = []
        width = int(match.group(1)) if match.group(1) else 0
        segments.append(FormatField(field_char, width))
        pos = match.end()

    if literal:
        segments.append("".join(literal))
    return segments


def _render_segments(segments: Sequence[FormatSegment], value_of) -> str:
    parts = []
    for segment in segments:
        if isinstance(segment, FormatField):
            parts.append(value_of(segment.char).ljust(segment.width))
        else:
            parts.append(segment)
    return "".join(parts)


def render_format_string(fmt: str, accounts: Sequence[Account], noheader: bool = False) -> List[str]:
    """Render accounts with a user supplied format string.

    Each field is padded on the right to at least its requested width. A
    header line with the field titles comes first unless ``noheader``.
    """
    segments = parse_format(fmt)
    lines = []
    if not noheader:
        lines.append(_render_segments(segments, lambda char: FORMAT_FIELDS[char][0]))
    for account in accounts:
        lines.append(_render_segments(segments, lambda char: FORMAT_FIELDS[char][1](account)))
    return lines


# ---------------------------------------------------------------------------
# Live state
# ---------------------------------------------------------------------------


def render_node(node: Node) -> str:
    return (
        f"NodeName={node.hostname} State={node.state} CPU={node.cpu:.2f} "
        f"AllocCPU={abs(node.alloc_cpu):.2f} FreeCPU={abs(node.free_cpu):.2f}\n"
        f"\tRealMemory={bytes_to_mb(node.real_mem)}M AllocMem={bytes_to_mb(node.alloc_mem)}M "
        f"FreeMem={bytes_to_mb(node.free_mem)}M\n"
        f"\tPartition={join_list(node.partition_names)} RunningJob={node.running_task_num}\n"
    )


def render_partition(partition: Partition) -> str:
    return (
        f"PartitionName={partition.name} State={partition.state}\n"
        f"\tTotalNodes={partition.total_nodes} AliveNodes={partition.alive_nodes}\n"
        f"\tTotalCPU={partition.total_cpu:.2f} AvailCPU={partition.avail_cpu:.2f} "
        f"AllocCPU={partition.alloc_cpu:.2f}\n"
        f"\tTotalMem={bytes_to_mb(partition.total_mem)}M AvailMem={bytes_to_mb(partition.avail_mem)}M "
        f"AllocMem={bytes_to_mb(partition.alloc_mem)}M\n"
        f"\tHostList={partition.hostlist}\n"
    )


def _known(timestamp: Optional[float]) -> bool:
    return timestamp is not None and timestamp >= EPOCH_1980


def format_timestamp(timestamp: Optional[float]) -> str:
    """Render an epoch timestamp in local time; missing or pre-1980 values are ``unknown``."""
    if not _known(timestamp):
        return "unknown"
    try:
        return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%dT%H:%M:%S")
    except (OverflowError, OSError, ValueError):
        return "unknown"


def render_task(task: Task, now: Optional[float] = None) -> str:
    """Render one job.

    Run time is end minus start for finished jobs and now minus start for
    running ones. A running job's end time is its start plus its time
    limit; an unlimited time limit leaves the end time unknown.
    """
    if now is None:
        now = time.time()

    submit = format_timestamp(task.submit_time)
    start = format_timestamp(task.start_time)
    end = "unknown"
    run_time = "unknown"

    if _known(task.start_time):
        run_time = format_duration(int(now - task.start_time))
        if _known(task.end_time) and task.end_time > task.start_time:
            end = format_timestamp(task.end_time)
            run_time = format_duration(int(task.end_time - task.start_time))
        if task.status == TaskStatus.RUNNING.value and task.time_limit < MAX_DURATION_SECONDS:
            end = format_timestamp(task.start_time + task.time_limit)

    if task.time_limit >= MAX_DURATION_SECONDS:
        time_limit = "unlimited"
        end = "unknown"
    else:
        time_limit = format_duration(task.time_limit)

    return (
        f"JobId={task.task_id} JobName={task.name}\n"
        f"\tUserId={task.uid} GroupId={task.gid} Account={task.account}\n"
        f"\tJobState={task.status} RunTime={run_time} TimeLimit={time_limit} SubmitTime={submit}\n"
        f"\tStartTime={start} EndTime={end} Partition={task.partition} "
        f"NodeList={task.craned_list} NumNodes={task.node_num}\n"
        f"\tCmdLine={task.cmd_line} Workdir={task.cwd}\n"
    )


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, int) and value == MAX_DURATION_SECONDS:
        return "unlimited"
    return str(value)


def flatten(tree: Any, prefix: str = "") -> List[str]:
    """Flatten nested mappings and sequences into ``key.path = value`` lines.

    Mapping keys are used by name and sequence items by index, in their
    original order.

    Examples:
        >>> flatten({"a": {"b": [1, 2]}})
        ['a.b.0 = 1', 'a.b.1 = 2']
    """
    lines: List[str] = []
    if isinstance(tree, dict):
        for key, value in tree.items():
            lines.extend(flatten(value, f"{prefix}.{key}" if prefix else str(key)))
    elif isinstance(tree, (list, tuple)):
        for index, value in enumerate(tree):
            lines.extend(flatten(value, f"{prefix}.{index}" if prefix else str(index)))
    else:
        lines.append(f"{prefix} = {_scalar(tree)}")
    return lines
