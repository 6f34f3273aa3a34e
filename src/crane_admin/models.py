"""Records exchanged with the control daemon.

Accounts, users and QoS policies are owned by the daemon; the client only
ever holds them for the duration of one command. Live-state records (nodes,
partitions, tasks) are read-only snapshots.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import UsageError
from .values import MAX_DURATION_SECONDS, UNLIMITED_UINT32


class EntityKind(str, Enum):
    ACCOUNT = "account"
    USER = "user"
    QOS = "qos"


class LiveStateKind(str, Enum):
    NODE = "node"
    PARTITION = "partition"
    TASK = "task"


class Operation(str, Enum):
    """How a modify request changes an attribute."""

    OVERWRITE = "overwrite"
    ADD = "add"
    DELETE = "delete"


class AdminLevel(str, Enum):
    NONE = "none"
    OPERATOR = "operator"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: str) -> "AdminLevel":
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = "/".join(level.value for level in cls)
            raise UsageError(f"Unknown admin level {value!r}, expected one of {choices}") from None


class NodeState(str, Enum):
    IDLE = "idle"
    MIX = "mix"
    ALLOC = "alloc"
    DOWN = "down"
    DRAIN = "drain"


class TaskStatus(str, Enum):
    PENDING = "Pending"
    RUNNING = "Running"
    COMPLETED = "Completed"
    FAILED = "Failed"
    EXCEED_TIME_LIMIT = "ExceedTimeLimit"
    CANCELLED = "Cancelled"


@dataclass(frozen=True)
class AttributeChange:
    """One attribute mutation, built per invocation and sent in one remote call."""

    attribute: str
    operation: Operation
    value: str

    def describe(self) -> str:
        return f"{self.operation.value} {self.attribute}={self.value}"


@dataclass
class Reply:
    """Outcome of a mutating remote call."""

    ok: bool
    reason: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reply":
        return cls(ok=bool(data.get("ok", False)), reason=str(data.get("reason", "") or ""))


@dataclass
class ModifyRequest:
    kind: EntityKind
    name: str
    attribute: str
    value: str
    operation: Operation
    uid: int
    account: str = ""
    partition: str = ""
    force: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        data["operation"] = self.operation.value
        return data


@dataclass
class Account:
    name: str
    description: str = ""
    parent_account: str = ""
    allowed_partitions: List[str] = field(default_factory=list)
    default_qos: str = ""
    allowed_qos_list: List[str] = field(default_factory=list)
    users: List[str] = field(default_factory=list)
    coordinators: List[str] = field(default_factory=list)
    blocked: bool = False

    def validate(self) -> None:
        if not self.name.strip():
            raise UsageError("Account name must not be empty")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        return cls(
            name=str(data.get("name", "")),
            description=str(data.get("description", "") or ""),
            parent_account=str(data.get("parent_account", "") or ""),
            allowed_partitions=list(data.get("allowed_partitions") or []),
            default_qos=str(data.get("default_qos", "") or ""),
            allowed_qos_list=list(data.get("allowed_qos_list") or []),
            users=list(data.get("users") or []),
            coordinators=list(data.get("coordinators") or []),
            blocked=bool(data.get("blocked", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PartitionQos:
    """Per-partition QoS settings of a user within one account."""

    partition: str
    allowed_qos_list: List[str] = field(default_factory=list)
    default_qos: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PartitionQos":
        return cls(
            partition=str(data.get("partition", "")),
            allowed_qos_list=list(data.get("allowed_qos_list") or []),
            default_qos=str(data.get("default_qos", "") or ""),
        )


@dataclass
class User:
    name: str
    account: str
    uid: int = 0
    admin_level: AdminLevel = AdminLevel.NONE
    allowed_partition_qos: List[PartitionQos] = field(default_factory=list)
    coordinator: bool = False
    blocked: bool = False

    @property
    def allowed_partitions(self) -> List[str]:
        return [item.partition for item in self.allowed_partition_qos]

    def validate(self) -> None:
        if not self.name.strip():
            raise UsageError("User name must not be empty")
        if not self.account.strip():
            raise UsageError("User account must not be empty")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            name=str(data.get("name", "")),
            account=str(data.get("account", "") or ""),
            uid=int(data.get("uid", 0) or 0),
            admin_level=AdminLevel(str(data.get("admin_level") or "none").strip().lower()),
            allowed_partition_qos=[
                PartitionQos.from_dict(item) for item in data.get("allowed_partition_qos") or []
            ],
            coordinator=bool(data.get("coordinator", False)),
            blocked=bool(data.get("blocked", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["admin_level"] = self.admin_level.value
        return data


@dataclass
class Qos:
    name: str
    description: str = ""
    priority: int = 0
    max_jobs_per_user: int = UNLIMITED_UINT32
    max_cpus_per_user: int = UNLIMITED_UINT32
    max_time_limit_per_task: int = MAX_DURATION_SECONDS

    def validate(self) -> None:
        if not self.name.strip():
            raise UsageError("QoS name must not be empty")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Qos":
        return cls(
            name=str(data.get("name", "")),
            description=str(data.get("description", "") or ""),
            priority=int(data.get("priority", 0) or 0),
            max_jobs_per_user=int(data.get("max_jobs_per_user", UNLIMITED_UINT32)),
            max_cpus_per_user=int(data.get("max_cpus_per_user", UNLIMITED_UINT32)),
            max_time_limit_per_task=int(
                data.get("max_time_limit_per_task", MAX_DURATION_SECONDS)
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Node:
    hostname: str
    state: str = "unknown"
    cpu: float = 0.0
    alloc_cpu: float = 0.0
    free_cpu: float = 0.0
    real_mem: int = 0
    alloc_mem: int = 0
    free_mem: int = 0
    partition_names: List[str] = field(default_factory=list)
    running_task_num: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        return cls(
            hostname=str(data.get("hostname", "")),
            state=str(data.get("state", "unknown")),
            cpu=float(data.get("cpu", 0.0)),
            alloc_cpu=float(data.get("alloc_cpu", 0.0)),
            free_cpu=float(data.get("free_cpu", 0.0)),
            real_mem=int(data.get("real_mem", 0)),
            alloc_mem=int(data.get("alloc_mem", 0)),
            free_mem=int(data.get("free_mem", 0)),
            partition_names=list(data.get("partition_names") or []),
            running_task_num=int(data.get("running_task_num", 0)),
        )


@dataclass
class Partition:
    name: str
    state: str = "unknown"
    total_nodes: int = 0
    alive_nodes: int = 0
    total_cpu: float = 0.0
    avail_cpu: float = 0.0
    alloc_cpu: float = 0.0
    total_mem: int = 0
    avail_mem: int = 0
    alloc_mem: int = 0
    hostlist: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Partition":
        return cls(
            name=str(data.get("name", "")),
            state=str(data.get("state", "unknown")),
            total_nodes=int(data.get("total_nodes", 0)),
            alive_nodes=int(data.get("alive_nodes", 0)),
            total_cpu=float(data.get("total_cpu", 0.0)),
            avail_cpu=float(data.get("avail_cpu", 0.0)),
            alloc_cpu=float(data.get("alloc_cpu", 0.0)),
            total_mem=int(data.get("total_mem", 0)),
            avail_mem=int(data.get("avail_mem", 0)),
            alloc_mem=int(data.get("alloc_mem", 0)),
            hostlist=str(data.get("hostlist", "") or ""),
        )


@dataclass
class Task:
    task_id: int
    name: str = ""
    uid: int = 0
    gid: int = 0
    account: str = ""
    status: str = TaskStatus.PENDING.value
    partition: str = ""
    craned_list: str = ""
    node_num: int = 0
    cmd_line: str = ""
    cwd: str = ""
    submit_time: Optional[float] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    time_limit: int = MAX_DURATION_SECONDS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        return cls(
            task_id=int(data.get("task_id", 0)),
            name=str(data.get("name", "") or ""),
            uid=int(data.get("uid", 0)),
            gid=int(data.get("gid", 0)),
            account=str(data.get("account", "") or ""),
            status=str(data.get("status", TaskStatus.PENDING.value)),
            partition=str(data.get("partition", "") or ""),
            craned_list=str(data.get("craned_list", "") or ""),
            node_num=int(data.get("node_num", 0)),
            cmd_line=str(data.get("cmd_line", "") or ""),
            cwd=str(data.get("cwd", "") or ""),
            submit_time=_optional_float(data.get("submit_time")),
            start_time=_optional_float(data.get("start_time")),
            end_time=_optional_float(data.get("end_time")),
            time_limit=int(data.get("time_limit", MAX_DURATION_SECONDS)),
        )


@dataclass
class QueryReply:
    """Reply to an entity or live-state query.

    When ``ok`` is false the daemon could not answer and ``records`` must not
    be read as "nothing matched".
    """

    ok: bool
    records: List[Any] = field(default_factory=list)
    reason: str = ""


ENTITY_RECORD_TYPES = {
    EntityKind.ACCOUNT: Account,
    EntityKind.USER: User,
    EntityKind.QOS: Qos,
}

LIVE_STATE_RECORD_TYPES = {
    LiveStateKind.NODE: Node,
    LiveStateKind.PARTITION: Partition,
    LiveStateKind.TASK: Task,
}


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)
