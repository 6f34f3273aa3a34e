"""Tests for job and node control operations and account management."""

import sys
from pathlib import Path

import pytest

from crane_admin import accounting, control
from crane_admin.errors import ConfigNotFoundError, RejectedError, UsageError
from crane_admin.models import AdminLevel, EntityKind, NodeState, Reply
from crane_admin.values import MAX_DURATION_SECONDS, UNLIMITED_UINT32

# Allow importing test helpers as a simple module
HELPERS_DIR = Path(__file__).parent / "helpers"
if str(HELPERS_DIR) not in sys.path:
    sys.path.insert(0, str(HELPERS_DIR))
from fake_backend import FakeBackend  # type: ignore


class TestTaskControl:
    def test_time_limit(self):
        backend = FakeBackend()
        seconds = control.change_task_time_limit(backend, 42, "1-00:30:00", uid=1000)
        assert seconds == 86400 + 1800
        assert backend.calls == [("modify_task", (42, "time_limit", 88200, 1000))]

    def test_bad_time_limit_makes_no_call(self):
        backend = FakeBackend()
        with pytest.raises(UsageError):
            control.change_task_time_limit(backend, 42, "forever", uid=0)
        assert backend.calls == []

    def test_time_limit_rejected(self):
        backend = FakeBackend()
        backend.reply = Reply(ok=False, reason="job not found")
        with pytest.raises(RejectedError, match="job not found"):
            control.change_task_time_limit(backend, 42, "00:10:00", uid=0)

    def test_priority(self):
        backend = FakeBackend()
        control.change_task_priority(backend, 42, 5, uid=0)
        assert backend.calls == [("modify_task", (42, "priority", 5, 0))]


class TestNodeControl:
    def test_drain_requires_reason(self):
        backend = FakeBackend()
        with pytest.raises(UsageError, match="reason"):
            control.change_node_state(backend, "cn01", "drain")
        assert backend.calls == []

    def test_drain(self):
        backend = FakeBackend()
        assert control.change_node_state(backend, "cn01", "drain", "disk failure") is NodeState.DRAIN
        assert backend.calls == [("modify_node", ("cn01", "drain", "disk failure"))]

    def test_resume_maps_to_idle(self):
        backend = FakeBackend()
        assert control.change_node_state(backend, "cn01", "RESUME") is NodeState.IDLE
        assert backend.calls == [("modify_node", ("cn01", "idle", ""))]

    def test_unknown_state(self):
        with pytest.raises(UsageError, match="Invalid state"):
            control.change_node_state(FakeBackend(), "cn01", "reboot")

    def test_empty_node_name(self):
        with pytest.raises(UsageError, match="node name"):
            control.change_node_state(FakeBackend(), "", "resume")


class TestLoadConfigTree:
    def test_reads_mapping(self, config_file):
        tree = control.load_config_tree(str(config_file))
        assert tree["ControlMachine"] == "ctld.example.com"
        assert tree["Partitions"][0]["name"] == "CPU"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigNotFoundError):
            control.load_config_tree(str(tmp_path / "nope.yaml"))


class TestBuildRecords:
    def test_account_default_qos_from_list(self):
        account = accounting.build_account("physics", qos_list=["normal", "high"])
        assert account.default_qos == "normal"

    def test_account_default_qos_outside_list(self):
        with pytest.raises(UsageError, match="not in the allowed QoS list"):
            accounting.build_account("physics", default_qos="low", qos_list=["normal"])

    def test_account_empty_name(self):
        with pytest.raises(UsageError):
            accounting.build_account("  ")

    def test_user(self):
        user = accounting.build_user("alice", "physics", partitions=["CPU", "GPU"], level="operator")
        assert user.allowed_partitions == ["CPU", "GPU"]
        assert user.admin_level is AdminLevel.OPERATOR

    def test_user_needs_account(self):
        with pytest.raises(UsageError, match="account"):
            accounting.build_user("alice", "")

    def test_qos_defaults_unlimited(self):
        qos = accounting.build_qos("normal")
        assert qos.max_jobs_per_user == UNLIMITED_UINT32
        assert qos.max_time_limit_per_task == MAX_DURATION_SECONDS


class TestAccountingCalls:
    def test_add_rejected(self):
        backend = FakeBackend()
        backend.reply = Reply(ok=False, reason="parent account not found")
        with pytest.raises(RejectedError) as exc_info:
            accounting.add_entity(backend, EntityKind.ACCOUNT, accounting.build_account("hep", parent="x"))
        assert str(exc_info.value) == "Add account hep failed: parent account not found"

    def test_delete_user_from_account(self):
        backend = FakeBackend()
        accounting.delete_entity(backend, EntityKind.USER, "alice", account="physics")
        assert backend.calls == [("delete_entity", (EntityKind.USER, "alice", "physics"))]

    def test_block_user(self):
        backend = FakeBackend()
        accounting.set_blocked(backend, EntityKind.USER, "alice", True, uid=0, account="physics")
        assert backend.calls == [("set_entity_blocked", (EntityKind.USER, "alice", True, 0, "physics"))]

    def test_block_qos_not_supported(self):
        with pytest.raises(UsageError):
            accounting.set_blocked(FakeBackend(), EntityKind.QOS, "normal", True, uid=0)
