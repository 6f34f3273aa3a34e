"""Issue attribute changes to the control daemon, one remote call per change."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

from .api.base import BackendBase
from .errors import BackendError, RejectedError
from .models import AttributeChange, EntityKind, ModifyRequest

logger = logging.getLogger(__name__)


@dataclass
class ModifyOutcome:
    kind: EntityKind
    name: str
    applied: List[AttributeChange] = field(default_factory=list)


def apply_changes(
    backend: BackendBase,
    kind: EntityKind,
    name: str,
    changes: Sequence[AttributeChange],
    uid: int,
    *,
    account: str = "",
    partition: str = "",
    force: bool = False,
) -> ModifyOutcome:
    """Apply ``changes`` to one entity, strictly in order, stopping at the first failure.

    Changes are never batched: a later change may depend on an earlier one
    (a default QoS has to be in the allowed list first), and each is its own
    remote call. Nothing is rolled back when a call fails.

    Args:
        backend: Connected backend.
        kind: Entity kind of the target.
        name: Entity name of the target.
        changes: Ordered changes, as produced by :mod:`crane_admin.resolver`.
        uid: Operator uid sent with every request.
        account: For users, the account the user belongs to.
        partition: For users, the partition the change is limited to.
        force: Ask the daemon to skip its own safety checks.

    Returns:
        ModifyOutcome listing every applied change.

    Raises:
        RejectedError: When the daemon refuses a change.
        TransportError: When a call cannot be completed.
        Both carry ``applied``, ``failed`` and ``skipped``.
    """
    outcome = ModifyOutcome(kind=kind, name=name)

    for index, change in enumerate(changes):
        request = ModifyRequest(
            kind=kind,
            name=name,
            attribute=change.attribute,
            value=change.value,
            operation=change.operation,
            uid=uid,
            account=account,
            partition=partition,
            force=force,
        )
        skipped = list(changes[index + 1 :])

        try:
            reply = backend.modify_entity(request)
        except BackendError as exc:
            logger.debug("Transport failure on %s of %s %s", change.attribute, kind.value, name)
            raise exc.record_progress(outcome.applied, change, skipped)

        if not reply.ok:
            logger.info(
                "Modify %s %s rejected at %s; %d applied, %d skipped",
                kind.value,
                name,
                change.attribute,
                len(outcome.applied),
                len(skipped),
            )
            raise RejectedError(
                f"Modify {kind.value} {name} ({change.describe()}) failed", reason=reply.reason
            ).record_progress(outcome.applied, change, skipped)

        logger.info("Modified %s %s: %s", kind.value, name, change.describe())
        outcome.applied.append(change)

    return outcome
