from typing import Any, Dict, List, Optional, Tuple

from crane_admin.api.base import BackendBase
from crane_admin.errors import TransportError
from crane_admin.models import EntityKind, LiveStateKind, ModifyRequest, QueryReply, Reply


class FakeBackend(BackendBase):
    """An in-memory backend that records every call.

    ``reject_modify_at`` and ``fail_modify_at`` make the Nth modify call
    (1-based) come back rejected, or raise a transport error. ``tasks_ok``
    and ``entities_ok`` set to False make job or entity queries come back
    flagged as not ok.
    """

    def __init__(
        self,
        entities: Optional[Dict[EntityKind, List[Any]]] = None,
        live_state: Optional[Dict[LiveStateKind, List[Any]]] = None,
        reject_modify_at: Optional[int] = None,
        fail_modify_at: Optional[int] = None,
        tasks_ok: bool = True,
        entities_ok: bool = True,
    ):
        self.entities = entities or {}
        self.live_state = live_state or {}
        self.reject_modify_at = reject_modify_at
        self.fail_modify_at = fail_modify_at
        self.tasks_ok = tasks_ok
        self.entities_ok = entities_ok
        self.reply = Reply(ok=True)
        self.calls: List[Tuple[str, Any]] = []
        self.closed = False

    @property
    def modify_requests(self) -> List[ModifyRequest]:
        return [args for name, args in self.calls if name == "modify_entity"]

    def add_entity(self, kind, record):
        self.calls.append(("add_entity", (kind, record)))
        return self.reply

    def delete_entity(self, kind, name, account=""):
        self.calls.append(("delete_entity", (kind, name, account)))
        return self.reply

    def modify_entity(self, request):
        self.calls.append(("modify_entity", request))
        count = len(self.modify_requests)
        if count == self.fail_modify_at:
            raise TransportError("connection reset by peer")
        if count == self.reject_modify_at:
            return Reply(ok=False, reason="permission denied")
        return Reply(ok=True)

    def query_entities(self, kind, name="", account=""):
        self.calls.append(("query_entities", (kind, name, account)))
        records = self.entities.get(kind, [])
        if name:
            records = [record for record in records if record.name == name]
        if account:
            records = [record for record in records if getattr(record, "account", "") == account]
        if not self.entities_ok:
            return QueryReply(ok=False, reason="permission denied")
        return QueryReply(ok=True, records=list(records))

    def query_live_state(self, kind, name=""):
        self.calls.append(("query_live_state", (kind, name)))
        records = self.live_state.get(kind, [])
        if name:
            key = {
                LiveStateKind.NODE: lambda r: r.hostname,
                LiveStateKind.PARTITION: lambda r: r.name,
                LiveStateKind.TASK: lambda r: str(r.task_id),
            }[kind]
            records = [record for record in records if key(record) == name]
        ok = self.tasks_ok if kind is LiveStateKind.TASK else True
        return QueryReply(ok=ok, records=list(records))

    def set_entity_blocked(self, kind, name, blocked, uid, account=""):
        self.calls.append(("set_entity_blocked", (kind, name, blocked, uid, account)))
        return self.reply

    def modify_task(self, task_id, attribute, value, uid):
        self.calls.append(("modify_task", (task_id, attribute, value, uid)))
        return self.reply

    def modify_node(self, name, state, reason=""):
        self.calls.append(("modify_node", (name, state, reason)))
        return self.reply

    def close(self):
        self.closed = True
