"""Job and node mutations issued by ``ccontrol update``."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .api.base import BackendBase
from .config import PathLike, read_config_file, resolve_config_path
from .errors import RejectedError, UsageError
from .models import NodeState
from .values import encode_uint, parse_time_limit

logger = logging.getLogger(__name__)

TASK_ATTR_TIME_LIMIT = "time_limit"
TASK_ATTR_PRIORITY = "priority"


def change_task_time_limit(backend: BackendBase, task_id: int, time_limit: str, uid: int) -> int:
    """Set the time limit of a job from a ``[D-]HH:MM:SS`` string.

    Returns:
        The new limit in seconds.
    """
    seconds = parse_time_limit(time_limit)
    reply = backend.modify_task(task_id, TASK_ATTR_TIME_LIMIT, seconds, uid)
    if not reply.ok:
        raise RejectedError(f"Change time limit of job {task_id} failed", reason=reply.reason)
    logger.info("Time limit of job %s set to %ss", task_id, seconds)
    return seconds


def change_task_priority(backend: BackendBase, task_id: int, priority: int, uid: int) -> None:
    encode_uint(priority, name="priority")
    reply = backend.modify_task(task_id, TASK_ATTR_PRIORITY, priority, uid)
    if not reply.ok:
        raise RejectedError(f"Change priority of job {task_id} failed", reason=reply.reason)
    logger.info("Priority of job %s set to %s", task_id, priority)


def resolve_node_state(state: str, reason: str = "") -> NodeState:
    """Map a requested state to the state sent to the daemon.

    Raises:
        UsageError: For states other than drain and resume, or a drain without a reason.
    """
    requested = state.strip().lower()
    if requested == "drain":
        if not reason:
            raise UsageError("You must specify a reason by '-r' or '--reason' when draining a node.")
        return NodeState.DRAIN
    if requested == "resume":
        return NodeState.IDLE
    raise UsageError(f"Invalid state {state!r} given, valid states are: drain, resume")


def change_node_state(backend: BackendBase, node: str, state: str, reason: str = "") -> NodeState:
    """Drain or resume a node.

    ``drain`` needs a reason. ``resume`` puts the node back to idle.

    Returns:
        The state sent to the daemon.
    """
    if not node:
        raise UsageError("No valid node name in update node command. Specify node names by -n or --name.")

    target = resolve_node_state(state, reason)

    reply = backend.modify_node(node, target.value, reason=reason)
    if not reply.ok:
        raise RejectedError(f"Change state of node {node} failed", reason=reply.reason)
    logger.info("Node %s set to %s", node, target.value)
    return target


def load_config_tree(path: Optional[PathLike] = None) -> Dict[str, Any]:
    """Read the configuration file as a nested mapping for display."""
    return read_config_file(resolve_config_path(path))
