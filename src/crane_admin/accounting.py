"""Create, delete, block and unblock accounts, users and QoS policies."""

from __future__ import annotations

import logging
from typing import List, Optional

from .api.base import BackendBase, EntityRecord
from .errors import RejectedError, UsageError
from .models import Account, AdminLevel, EntityKind, PartitionQos, Qos, User
from .values import MAX_DURATION_SECONDS, UNLIMITED_UINT32

logger = logging.getLogger(__name__)


def build_account(
    name: str,
    description: str = "",
    parent: str = "",
    partitions: Optional[List[str]] = None,
    default_qos: str = "",
    qos_list: Optional[List[str]] = None,
) -> Account:
    """Build and validate a new account.

    When an allowed QoS list is given without a default, the first entry
    becomes the default. A default outside the allowed list is rejected.
    """
    account = Account(
        name=name,
        description=description,
        parent_account=parent,
        allowed_partitions=list(partitions or []),
        default_qos=default_qos,
        allowed_qos_list=list(qos_list or []),
    )
    account.validate()

    if account.allowed_qos_list:
        if not account.default_qos:
            account.default_qos = account.allowed_qos_list[0]
        elif account.default_qos not in account.allowed_qos_list:
            raise UsageError(
                f"Default QoS {account.default_qos!r} is not in the allowed QoS list"
            )
    return account


def build_user(
    name: str,
    account: str,
    partitions: Optional[List[str]] = None,
    level: str = AdminLevel.NONE.value,
    coordinator: bool = False,
) -> User:
    user = User(
        name=name,
        account=account,
        admin_level=AdminLevel.parse(level),
        allowed_partition_qos=[PartitionQos(partition=p) for p in partitions or []],
        coordinator=coordinator,
    )
    user.validate()
    return user


def build_qos(
    name: str,
    description: str = "",
    priority: int = 0,
    max_jobs_per_user: int = UNLIMITED_UINT32,
    max_cpus_per_user: int = UNLIMITED_UINT32,
    max_time_limit_per_task: int = MAX_DURATION_SECONDS,
) -> Qos:
    qos = Qos(
        name=name,
        description=description,
        priority=priority,
        max_jobs_per_user=max_jobs_per_user,
        max_cpus_per_user=max_cpus_per_user,
        max_time_limit_per_task=max_time_limit_per_task,
    )
    qos.validate()
    for label, value in (
        ("priority", priority),
        ("max_jobs_per_user", max_jobs_per_user),
        ("max_cpus_per_user", max_cpus_per_user),
        ("max_time_limit_per_task", max_time_limit_per_task),
    ):
        if value < 0:
            raise UsageError(f"{label} must be a non-negative integer, got {value}")
    return qos


def add_entity(backend: BackendBase, kind: EntityKind, record: EntityRecord) -> None:
    """Create an entity.

    Raises:
        RejectedError: If the daemon refuses the record.
    """
    reply = backend.add_entity(kind, record)
    if not reply.ok:
        raise RejectedError(f"Add {kind.value} {record.name} failed", reason=reply.reason)
    logger.info("Added %s %s", kind.value, record.name)


def delete_entity(backend: BackendBase, kind: EntityKind, name: str, account: str = "") -> None:
    if not name.strip():
        raise UsageError(f"{kind.value.capitalize()} name must not be empty")
    reply = backend.delete_entity(kind, name, account=account)
    if not reply.ok:
        raise RejectedError(f"Remove {kind.value} {name} failed", reason=reply.reason)
    logger.info("Removed %s %s", kind.value, name)


def set_blocked(
    backend: BackendBase,
    kind: EntityKind,
    name: str,
    blocked: bool,
    uid: int,
    account: str = "",
) -> None:
    """Block or unblock an account, or a user under an account.

    QoS policies cannot be blocked.
    """
    if kind is EntityKind.QOS:
        raise UsageError("Only accounts and users can be blocked")
    if kind is EntityKind.USER and not account:
        raise UsageError("Blocking a user requires --account")

    verb = "Block" if blocked else "Unblock"
    reply = backend.set_entity_blocked(kind, name, blocked, uid, account=account)
    if not reply.ok:
        raise RejectedError(f"{verb} {kind.value} {name} failed", reason=reply.reason)
    logger.info("%sed %s %s", verb, kind.value, name)
