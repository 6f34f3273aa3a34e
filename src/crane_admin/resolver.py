"""Reduce modify-command flags to an ordered list of attribute changes.

Each ``*ModifyFlags`` structure holds one optional value per flag, filled in
by the command-line layer; ``None`` means the operator did not set the flag.
The resolver decides, per attribute, whether to overwrite, add, delete or
leave it alone, and emits the changes in a fixed order:

1. description
2. allowed partitions
3. allowed QoS list
4. default QoS
5. entity-specific attributes (admin level; QoS priority and limits)

The daemon receives changes one at a time in this order, so a failure part
way through always leaves the same prefix applied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .errors import UsageError
from .models import AdminLevel, AttributeChange, Operation
from .values import encode_duration, encode_uint, join_list, split_list

logger = logging.getLogger(__name__)

ATTR_DESCRIPTION = "description"
ATTR_ALLOWED_PARTITION = "allowed_partition"
ATTR_ALLOWED_QOS_LIST = "allowed_qos_list"
ATTR_DEFAULT_QOS = "default_qos"
ATTR_ADMIN_LEVEL = "admin_level"
ATTR_PRIORITY = "priority"
ATTR_MAX_JOBS_PER_USER = "max_jobs_per_user"
ATTR_MAX_CPUS_PER_USER = "max_cpus_per_user"
ATTR_MAX_TIME_LIMIT_PER_TASK = "max_time_limit_per_task"


@dataclass
class ListOperationFlags:
    """The overwrite/add/delete trio of flags for one list attribute."""

    set: Optional[str] = None
    add: Optional[str] = None
    delete: Optional[str] = None


@dataclass
class AccountModifyFlags:
    description: Optional[str] = None
    partitions: ListOperationFlags = field(default_factory=ListOperationFlags)
    qos_list: ListOperationFlags = field(default_factory=ListOperationFlags)
    default_qos: Optional[str] = None


@dataclass
class UserModifyFlags:
    partitions: ListOperationFlags = field(default_factory=ListOperationFlags)
    qos_list: ListOperationFlags = field(default_factory=ListOperationFlags)
    default_qos: Optional[str] = None
    admin_level: Optional[str] = None


@dataclass
class QosModifyFlags:
    description: Optional[str] = None
    priority: Optional[int] = None
    max_jobs_per_user: Optional[int] = None
    max_cpus_per_user: Optional[int] = None
    max_time_limit_per_task: Optional[int] = None


def resolve_list_operation(attribute: str, flags: ListOperationFlags) -> Optional[AttributeChange]:
    """Pick the single operation requested for a list attribute.

    The supplied list is forwarded as a whole for every operation; the
    daemon applies union or difference.

    Raises:
        UsageError: If more than one of set/add/delete is present.
    """
    candidates = [
        (operation, value)
        for operation, value in (
            (Operation.OVERWRITE, flags.set),
            (Operation.ADD, flags.add),
            (Operation.DELETE, flags.delete),
        )
        if value is not None
    ]
    if not candidates:
        return None
    if len(candidates) > 1:
        names = ", ".join(operation.value for operation, _ in candidates)
        raise UsageError(f"Conflicting operations ({names}) for {attribute}")

    operation, value = candidates[0]
    return AttributeChange(attribute, operation, join_list(split_list(value)))


def _overwrite(attribute: str, value: Optional[str]) -> Optional[AttributeChange]:
    if value is None:
        return None
    return AttributeChange(attribute, Operation.OVERWRITE, value)


def _finish(changes: Sequence[Optional[AttributeChange]]) -> List[AttributeChange]:
    resolved = [change for change in changes if change is not None]
    if not resolved:
        raise UsageError("you must specify at least one modification item")
    logger.debug("Resolved %d attribute change(s): %s", len(resolved), resolved)
    return resolved


def resolve_account_changes(flags: AccountModifyFlags) -> List[AttributeChange]:
    return _finish(
        [
            _overwrite(ATTR_DESCRIPTION, flags.description),
            resolve_list_operation(ATTR_ALLOWED_PARTITION, flags.partitions),
            resolve_list_operation(ATTR_ALLOWED_QOS_LIST, flags.qos_list),
            _overwrite(ATTR_DEFAULT_QOS, flags.default_qos),
        ]
    )


def resolve_user_changes(flags: UserModifyFlags) -> List[AttributeChange]:
    admin_level = None
    if flags.admin_level is not None:
        admin_level = AdminLevel.parse(flags.admin_level).value

    return _finish(
        [
            resolve_list_operation(ATTR_ALLOWED_PARTITION, flags.partitions),
            resolve_list_operation(ATTR_ALLOWED_QOS_LIST, flags.qos_list),
            _overwrite(ATTR_DEFAULT_QOS, flags.default_qos),
            _overwrite(ATTR_ADMIN_LEVEL, admin_level),
        ]
    )


def resolve_qos_changes(flags: QosModifyFlags) -> List[AttributeChange]:
    def uint(attribute: str, value: Optional[int]) -> Optional[AttributeChange]:
        if value is None:
            return None
        return AttributeChange(attribute, Operation.OVERWRITE, encode_uint(value, name=attribute))

    time_limit = None
    if flags.max_time_limit_per_task is not None:
        time_limit = AttributeChange(
            ATTR_MAX_TIME_LIMIT_PER_TASK,
            Operation.OVERWRITE,
            encode_duration(flags.max_time_limit_per_task, name=ATTR_MAX_TIME_LIMIT_PER_TASK),
        )

    return _finish(
        [
            _overwrite(ATTR_DESCRIPTION, flags.description),
            uint(ATTR_PRIORITY, flags.priority),
            uint(ATTR_MAX_JOBS_PER_USER, flags.max_jobs_per_user),
            uint(ATTR_MAX_CPUS_PER_USER, flags.max_cpus_per_user),
            time_limit,
        ]
    )
