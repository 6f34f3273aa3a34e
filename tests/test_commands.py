"""Tests for the command table and invocation validation."""

import pytest

from crane_admin.commands import COMMAND_TABLE, get_command_spec, provided_flags, validate_invocation
from crane_admin.errors import UsageError


class TestCommandTable:
    def test_every_modify_command_needs_a_modification(self):
        for verb_kind in (("modify", "account"), ("modify", "user"), ("modify", "qos")):
            assert COMMAND_TABLE[verb_kind].min_modifications == 1

    def test_unknown_command(self):
        with pytest.raises(UsageError, match="Unknown command"):
            get_command_spec(("frobnicate", "account"))

    def test_provided_flags_ignores_unset(self):
        """None and False are unset; zero is a real value."""
        assert provided_flags({"a": None, "b": False, "c": 0, "d": "x"}) == ("c", "d")


class TestValidateInvocation:
    def test_valid_modify(self):
        spec = validate_invocation(
            ("modify", "account"),
            {"name": "physics", "description": "Physics department"},
        )
        assert spec.label == "modify account"

    def test_missing_name(self):
        with pytest.raises(UsageError, match="--name"):
            validate_invocation(("modify", "account"), {"name": None, "description": "x"})

    def test_name_only_is_not_enough(self):
        with pytest.raises(UsageError, match="at least one modification item"):
            validate_invocation(("modify", "qos"), {"name": "normal"})

    def test_force_does_not_count_as_modification(self):
        with pytest.raises(UsageError, match="at least one modification item"):
            validate_invocation(("modify", "user"), {"name": "alice", "force": True})

    @pytest.mark.parametrize(
        "flags",
        [
            ("set_allowed_partition", "add_allowed_partition"),
            ("add_allowed_partition", "delete_allowed_partition"),
            ("set_allowed_qos_list", "delete_allowed_qos_list"),
        ],
    )
    def test_exclusive_operations(self, flags):
        values = {"name": "physics"}
        values.update({flag: "CPU" for flag in flags})
        with pytest.raises(UsageError, match="mutually exclusive"):
            validate_invocation(("modify", "account"), values)

    def test_partition_and_qos_operations_combine(self):
        validate_invocation(
            ("modify", "user"),
            {"name": "alice", "add_allowed_partition": "GPU", "delete_allowed_qos_list": "low"},
        )

    def test_unknown_flag(self):
        with pytest.raises(UsageError, match="unknown flag"):
            validate_invocation(("modify", "qos"), {"name": "normal", "admin_level": "admin"})

    def test_block_user_requires_account(self):
        with pytest.raises(UsageError, match="--account"):
            validate_invocation(("block", "user"), {"name": "alice", "account": None})

    def test_update_node_requires_state(self):
        with pytest.raises(UsageError, match="--state"):
            validate_invocation(("update", "node"), {"name": "cn01", "state": None, "reason": None})
