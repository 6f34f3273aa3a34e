"""
HTTP backend for the control daemon.

The daemon exposes its RPC methods through a JSON gateway: every call is a
``POST {base_url}/rpc/<Method>`` with a JSON body, answered by a JSON object.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from .base import BackendBase, EntityRecord
from ..errors import BackendDataError, BackendTimeout, TransportError
from ..models import (
    ENTITY_RECORD_TYPES,
    LIVE_STATE_RECORD_TYPES,
    EntityKind,
    LiveStateKind,
    ModifyRequest,
    QueryReply,
    Reply,
)

logger = logging.getLogger(__name__)


class HttpBackend(BackendBase):
    """
    Backend that issues one HTTP request per RPC method.

    A single ``httpx.Client`` is kept open for the lifetime of the backend so
    that the sequential calls of one command share a connection.
    """

    def __init__(
        self,
        hostname: str,
        port: int = 10011,
        use_tls: bool = False,
        timeout: float = 30.0,
        verify: bool = True,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the HTTP backend.

        Args:
            hostname: Host running the control daemon.
            port: Port of the daemon's gateway.
            use_tls: Use https instead of http.
            timeout: Per-request timeout in seconds.
            verify: Verify TLS certificates.
            client: Pre-built client, mainly for tests.
        """
        scheme = "https" if use_tls else "http"
        self.base_url = f"{scheme}://{hostname}:{port}"
        self.timeout = timeout
        self._client = client or httpx.Client(base_url=self.base_url, timeout=timeout, verify=verify)
        logger.debug("HttpBackend targeting %s (timeout=%ss)", self.base_url, timeout)

    def _call(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Invoke one RPC method.

        Raises:
            BackendTimeout: If the request times out.
            TransportError: On connection failures and non-2xx responses.
            BackendDataError: If the body is not a JSON object.
        """
        logger.debug("RPC %s %s", method, payload)
        try:
            response = self._client.post(f"/rpc/{method}", json=payload)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise BackendTimeout(f"{method} timed out after {self.timeout} seconds") from exc
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                f"{method} failed with HTTP {exc.response.status_code}: {exc.response.text.strip()}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise BackendDataError(f"{method} returned a body that is not JSON") from exc
        if not isinstance(body, dict):
            raise BackendDataError(f"{method} returned {type(body).__name__}, expected an object")

        logger.debug("RPC %s reply: %s", method, body)
        return body

    def add_entity(self, kind: EntityKind, record: EntityRecord) -> Reply:
        body = self._call("AddEntity", {"kind": kind.value, "record": record.to_dict()})
        return Reply.from_dict(body)

    def delete_entity(self, kind: EntityKind, name: str, account: str = "") -> Reply:
        body = self._call("DeleteEntity", {"kind": kind.value, "name": name, "account": account})
        return Reply.from_dict(body)

    def modify_entity(self, request: ModifyRequest) -> Reply:
        return Reply.from_dict(self._call("ModifyEntity", request.to_dict()))

    def query_entities(self, kind: EntityKind, name: str = "", account: str = "") -> QueryReply:
        body = self._call("QueryEntities", {"kind": kind.value, "name": name, "account": account})
        return self._query_reply(body, ENTITY_RECORD_TYPES[kind], "QueryEntities")

    def query_live_state(self, kind: LiveStateKind, name: str = "") -> QueryReply:
        body = self._call("QueryLiveState", {"kind": kind.value, "name": name})
        return self._query_reply(body, LIVE_STATE_RECORD_TYPES[kind], "QueryLiveState")

    def set_entity_blocked(
        self, kind: EntityKind, name: str, blocked: bool, uid: int, account: str = ""
    ) -> Reply:
        body = self._call(
            "SetEntityBlocked",
            {"kind": kind.value, "name": name, "blocked": blocked, "uid": uid, "account": account},
        )
        return Reply.from_dict(body)

    def modify_task(self, task_id: int, attribute: str, value: Any, uid: int) -> Reply:
        body = self._call(
            "ModifyTask", {"task_id": task_id, "attribute": attribute, "value": value, "uid": uid}
        )
        return Reply.from_dict(body)

    def modify_node(self, name: str, state: str, reason: str = "") -> Reply:
        body = self._call("ModifyNode", {"name": name, "state": state, "reason": reason})
        return Reply.from_dict(body)

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _query_reply(body: Dict[str, Any], record_type: Any, method: str) -> QueryReply:
        """
        Decode a query reply.

        Raises:
            BackendDataError: If the records are not a list of objects, or a
                record has fields of the wrong type.
        """
        ok = bool(body.get("ok", True))
        reason = str(body.get("reason", "") or "")
        records = body.get("records") or []
        if not isinstance(records, list) or not all(isinstance(item, dict) for item in records):
            raise BackendDataError(f"{method} returned malformed records")

        try:
            decoded = [record_type.from_dict(item) for item in records]
        except (TypeError, ValueError, KeyError) as exc:
            raise BackendDataError(
                f"{method} returned a malformed {record_type.__name__} record: {exc}"
            ) from exc
        return QueryReply(ok=ok, records=decoded, reason=reason)
