"""Tests for the HTTP backend against a mocked daemon gateway."""

import json

import httpx
import pytest
import respx

from crane_admin.api import HttpBackend, create_backend, get_backend_from_config
from crane_admin.errors import BackendDataError, BackendTimeout, TransportError
from crane_admin.models import (
    Account,
    EntityKind,
    LiveStateKind,
    ModifyRequest,
    Operation,
    Partition,
    Qos,
    User,
)

BASE_URL = "http://ctld.example.com:10011"


@pytest.fixture
def backend():
    with respx.mock(base_url=BASE_URL, assert_all_called=False) as mock:
        client = HttpBackend("ctld.example.com", port=10011, timeout=2.0)
        client.mock = mock
        yield client
        client.close()


class TestFactory:
    def test_create_http_backend(self):
        backend = create_backend("http", hostname="ctld", port=12345, use_tls=True, timeout=None)
        assert backend.base_url == "https://ctld:12345"
        assert backend.timeout == 30.0
        backend.close()

    def test_unsupported_backend(self):
        with pytest.raises(ValueError, match="Unsupported backend type"):
            create_backend("grpc", hostname="ctld")

    def test_from_config(self):
        backend = get_backend_from_config({"backend": "http", "backend_config": {"hostname": "ctld"}})
        assert isinstance(backend, HttpBackend)
        backend.close()

    def test_from_config_without_backend(self):
        with pytest.raises(ValueError):
            get_backend_from_config({})


class TestRemoteCalls:
    def test_modify_entity(self, backend):
        route = backend.mock.post("/rpc/ModifyEntity").mock(
            return_value=httpx.Response(200, json={"ok": True})
        )
        request = ModifyRequest(
            kind=EntityKind.ACCOUNT,
            name="physics",
            attribute="allowed_partition",
            value="GPU",
            operation=Operation.ADD,
            uid=1000,
        )

        reply = backend.modify_entity(request)

        assert reply.ok is True
        body = json.loads(route.calls.last.request.content)
        assert body["kind"] == "account"
        assert body["operation"] == "add"
        assert body["value"] == "GPU"
        assert body["uid"] == 1000

    def test_rejected_reply(self, backend):
        backend.mock.post("/rpc/DeleteEntity").mock(
            return_value=httpx.Response(200, json={"ok": False, "reason": "account has users"})
        )
        reply = backend.delete_entity(EntityKind.ACCOUNT, "physics")
        assert reply.ok is False
        assert reply.reason == "account has users"

    def test_add_entity_sends_record(self, backend):
        route = backend.mock.post("/rpc/AddEntity").mock(return_value=httpx.Response(200, json={"ok": True}))
        backend.add_entity(EntityKind.QOS, Qos("normal", priority=10))
        body = json.loads(route.calls.last.request.content)
        assert body["record"]["name"] == "normal"
        assert body["record"]["priority"] == 10

    def test_query_entities(self, backend):
        backend.mock.post("/rpc/QueryEntities").mock(
            return_value=httpx.Response(
                200,
                json={
                    "records": [
                        {"name": "alice", "account": "physics", "admin_level": "operator",
                         "allowed_partition_qos": [{"partition": "CPU", "allowed_qos_list": ["normal"]}]},
                    ]
                },
            )
        )
        reply = backend.query_entities(EntityKind.USER, name="alice")
        users = reply.records
        assert reply.ok is True
        assert users == [
            User.from_dict(
                {
                    "name": "alice",
                    "account": "physics",
                    "admin_level": "operator",
                    "allowed_partition_qos": [{"partition": "CPU", "allowed_qos_list": ["normal"]}],
                }
            )
        ]
        assert users[0].allowed_partitions == ["CPU"]

    def test_query_accounts(self, backend):
        backend.mock.post("/rpc/QueryEntities").mock(
            return_value=httpx.Response(200, json={"records": [{"name": "root"}]})
        )
        assert backend.query_entities(EntityKind.ACCOUNT).records == [Account("root")]

    def test_query_entities_not_ok(self, backend):
        backend.mock.post("/rpc/QueryEntities").mock(
            return_value=httpx.Response(200, json={"ok": False, "reason": "permission denied", "records": []})
        )
        reply = backend.query_entities(EntityKind.ACCOUNT, name="physics")
        assert reply.ok is False
        assert reply.reason == "permission denied"
        assert reply.records == []

    def test_query_live_state(self, backend):
        backend.mock.post("/rpc/QueryLiveState").mock(
            return_value=httpx.Response(
                200, json={"records": [{"name": "CPU", "total_mem": 1048576, "hostlist": "cn[01-04]"}]}
            )
        )
        reply = backend.query_live_state(LiveStateKind.PARTITION)
        assert reply.ok is True
        assert reply.records == [Partition("CPU", total_mem=1048576, hostlist="cn[01-04]")]


class TestTransportFailures:
    def test_timeout(self, backend):
        backend.mock.post("/rpc/ModifyNode").mock(side_effect=httpx.ConnectTimeout("timed out"))
        with pytest.raises(BackendTimeout):
            backend.modify_node("cn01", "drain", "maintenance")

    def test_connection_refused(self, backend):
        backend.mock.post("/rpc/ModifyTask").mock(side_effect=httpx.ConnectError("connection refused"))
        with pytest.raises(TransportError, match="ModifyTask failed"):
            backend.modify_task(1, "priority", 3, 0)

    def test_http_error_status(self, backend):
        backend.mock.post("/rpc/SetEntityBlocked").mock(return_value=httpx.Response(503, text="unavailable"))
        with pytest.raises(TransportError, match="HTTP 503"):
            backend.set_entity_blocked(EntityKind.ACCOUNT, "physics", True, 0)

    def test_body_not_json(self, backend):
        backend.mock.post("/rpc/DeleteEntity").mock(return_value=httpx.Response(200, text="<html>"))
        with pytest.raises(BackendDataError):
            backend.delete_entity(EntityKind.QOS, "normal")

    def test_malformed_records(self, backend):
        backend.mock.post("/rpc/QueryEntities").mock(
            return_value=httpx.Response(200, json={"records": "nope"})
        )
        with pytest.raises(BackendDataError):
            backend.query_entities(EntityKind.QOS)

    def test_null_numeric_field(self, backend):
        backend.mock.post("/rpc/QueryLiveState").mock(
            return_value=httpx.Response(200, json={"ok": True, "records": [{"hostname": "cn01", "real_mem": None}]})
        )
        with pytest.raises(BackendDataError, match="malformed Node record"):
            backend.query_live_state(LiveStateKind.NODE)

    def test_unknown_admin_level(self, backend):
        backend.mock.post("/rpc/QueryEntities").mock(
            return_value=httpx.Response(200, json={"records": [{"name": "alice", "admin_level": "root"}]})
        )
        with pytest.raises(BackendDataError):
            backend.query_entities(EntityKind.USER)
