"""
Base module for control daemon backends.

This module defines the abstract base class for all backends, providing the
common interface through which the CLI talks to the control daemon.
"""

import abc
from typing import Any, Union

from ..models import (
    Account,
    EntityKind,
    LiveStateKind,
    QueryReply,
    ModifyRequest,
    Qos,
    Reply,
    User,
)

EntityRecord = Union[Account, User, Qos]


class BackendBase(abc.ABC):
    """
    Abstract base class for control daemon backends.

    Every method performs exactly one blocking remote call. Methods never
    retry; transport failures raise ``TransportError`` and the caller decides
    what to do next.
    """

    @abc.abstractmethod
    def add_entity(self, kind: EntityKind, record: EntityRecord) -> Reply:
        """
        Create an account, user or QoS.

        Args:
            kind: The entity kind.
            record: The record to create.

        Returns:
            Reply: ``ok`` and the daemon's reason on failure.
        """

    @abc.abstractmethod
    def delete_entity(self, kind: EntityKind, name: str, account: str = "") -> Reply:
        """
        Delete an entity by name.

        Args:
            kind: The entity kind.
            name: The entity name.
            account: For users, the account to remove the user from.

        Returns:
            Reply: ``ok`` and the daemon's reason on failure.
        """

    @abc.abstractmethod
    def modify_entity(self, request: ModifyRequest) -> Reply:
        """
        Change one attribute of one entity.

        Args:
            request: Target, attribute, string-encoded value and operation.

        Returns:
            Reply: ``ok`` and the daemon's reason on failure.
        """

    @abc.abstractmethod
    def query_entities(self, kind: EntityKind, name: str = "", account: str = "") -> QueryReply:
        """
        List entities of one kind.

        Args:
            kind: The entity kind.
            name: Optional name filter; empty means all.
            account: Optional parent-account filter (users only).

        Returns:
            QueryReply with the matching records; empty when nothing matches.
        """

    @abc.abstractmethod
    def query_live_state(self, kind: LiveStateKind, name: str = "") -> QueryReply:
        """
        Fetch node, partition or task snapshots.

        Args:
            kind: The live-state kind.
            name: Optional filter (node name, partition name or task id);
                empty means all.

        Returns:
            QueryReply with the matching records.
        """

    @abc.abstractmethod
    def set_entity_blocked(
        self, kind: EntityKind, name: str, blocked: bool, uid: int, account: str = ""
    ) -> Reply:
        """
        Block or unblock an account, or a user within an account.
        """

    @abc.abstractmethod
    def modify_task(self, task_id: int, attribute: str, value: Any, uid: int) -> Reply:
        """
        Change the time limit or priority of a job.
        """

    @abc.abstractmethod
    def modify_node(self, name: str, state: str, reason: str = "") -> Reply:
        """
        Drain or resume a node.
        """

    def close(self) -> None:
        """Release the connection, if the backend holds one."""

    def __enter__(self) -> "BackendBase":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
