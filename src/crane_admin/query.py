"""Read-only queries against the control daemon.

An empty result is a normal outcome here. Callers decide how to tell the
operator that nothing matched. A reply the daemon flags as not ok is never
an empty result; it raises ``BackendDataError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .api.base import BackendBase
from .errors import BackendDataError
from .models import Account, EntityKind, LiveStateKind, Node, Partition, Qos, QueryReply, Task, User

logger = logging.getLogger(__name__)


@dataclass
class AccountNode:
    """One account in the account hierarchy."""

    account: Account
    children: List["AccountNode"] = field(default_factory=list)


def _records(reply: QueryReply, what: str) -> List[Any]:
    if not reply.ok:
        message = f"Failed to query {what} information from the control daemon"
        if reply.reason:
            message = f"{message}: {reply.reason}"
        raise BackendDataError(message)
    return list(reply.records)


def _entities(backend: BackendBase, kind: EntityKind, name: str = "", account: str = "") -> List[Any]:
    return _records(backend.query_entities(kind, name=name, account=account), kind.value)


def list_accounts(backend: BackendBase) -> List[Account]:
    return _entities(backend, EntityKind.ACCOUNT)


def list_users(backend: BackendBase, account: str = "") -> List[User]:
    return _entities(backend, EntityKind.USER, account=account)


def list_qos(backend: BackendBase) -> List[Qos]:
    return _entities(backend, EntityKind.QOS)


def find_account(backend: BackendBase, name: str) -> Optional[Account]:
    """Return the account called ``name``, or None if there is none."""
    for account in _entities(backend, EntityKind.ACCOUNT, name=name):
        if account.name == name:
            return account
    logger.debug("Account %s not found", name)
    return None


def find_users(backend: BackendBase, name: str, account: str = "") -> List[User]:
    """Return every association of user ``name``, optionally within one account.

    A user may belong to several accounts, so this is a list.
    """
    users = _entities(backend, EntityKind.USER, name=name, account=account)
    return [user for user in users if user.name == name and (not account or user.account == account)]


def find_qos(backend: BackendBase, name: str) -> Optional[Qos]:
    for qos in _entities(backend, EntityKind.QOS, name=name):
        if qos.name == name:
            return qos
    return None


def query_nodes(backend: BackendBase, name: str = "") -> List[Node]:
    return _records(backend.query_live_state(LiveStateKind.NODE, name=name), "node")


def query_partitions(backend: BackendBase, name: str = "") -> List[Partition]:
    return _records(backend.query_live_state(LiveStateKind.PARTITION, name=name), "partition")


def query_tasks(backend: BackendBase, task_id: Optional[int] = None) -> List[Task]:
    """Return running jobs, or the single job ``task_id``.

    Raises:
        BackendDataError: If the daemon flags the reply as not ok.
    """
    name = "" if task_id is None else str(task_id)
    return _records(backend.query_live_state(LiveStateKind.TASK, name=name), "job")


def build_account_tree(accounts: Sequence[Account]) -> List[AccountNode]:
    """Arrange accounts into a forest following ``parent_account``.

    Accounts whose parent is empty or not among ``accounts`` become roots.
    Accounts whose parent links form a cycle are unreachable from any root;
    one account of each cycle is promoted to a root, with a warning, so that
    none is dropped. Sibling order follows the input order.
    """
    nodes: Dict[str, AccountNode] = {account.name: AccountNode(account) for account in accounts}
    roots: List[AccountNode] = []

    for account in accounts:
        node = nodes[account.name]
        parent = nodes.get(account.parent_account) if account.parent_account else None
        if parent is None or parent is node:
            roots.append(node)
        else:
            parent.children.append(node)

    reached = set()

    def visit(node: AccountNode) -> None:
        if node.account.name in reached:
            return
        reached.add(node.account.name)
        for child in node.children:
            visit(child)

    for root in roots:
        visit(root)

    for account in accounts:
        if account.name in reached:
            continue
        # Unreached accounts always have a known parent; walk up to the cycle.
        name = account.name
        seen = set()
        while name not in seen:
            seen.add(name)
            name = nodes[name].account.parent_account
        node = nodes[name]
        logger.warning(
            "Account %s is part of a parent cycle (parent %s), showing it as a root",
            node.account.name,
            node.account.parent_account,
        )
        parent = nodes[node.account.parent_account]
        parent.children = [child for child in parent.children if child is not node]
        roots.append(node)
        visit(node)

    return roots
