"""Tests for CLI output formatting."""

from datetime import datetime

import pytest

from crane_admin.cli.formatters import (
    FormatField,
    flatten,
    format_timestamp,
    parse_format,
    print_accounts_table,
    print_qos_table,
    render_format_string,
    render_node,
    render_partition,
    render_task,
)
from crane_admin.errors import UsageError
from crane_admin.models import Account, Node, Partition, Qos, Task
from crane_admin.values import MAX_DURATION_SECONDS

MB = 1024 * 1024

ACCOUNTS = [
    Account("physics", description="Physics", allowed_partitions=["CPU", "GPU"], default_qos="normal",
            allowed_qos_list=["normal", "high"]),
    Account("hep", description="", allowed_partitions=["GPU"]),
]


class TestFlatten:
    def test_nested_sequence(self):
        assert flatten({"a": {"b": [1, 2]}}) == ["a.b.0 = 1", "a.b.1 = 2"]

    def test_preserves_key_order(self):
        assert flatten({"z": 1, "a": 2}) == ["z = 1", "a = 2"]

    def test_sentinel_renders_unlimited(self):
        assert flatten({"MaxTime": MAX_DURATION_SECONDS}) == ["MaxTime = unlimited"]

    def test_scalars(self):
        assert flatten({"UseTls": False, "Name": None, "Ratio": 0.5}) == [
            "UseTls = false",
            "Name = null",
            "Ratio = 0.5",
        ]

    def test_list_of_mappings(self):
        tree = {"Partitions": [{"name": "CPU", "nodes": "cn[01-04]"}]}
        assert flatten(tree) == ["Partitions.0.name = CPU", "Partitions.0.nodes = cn[01-04]"]


class TestFormatString:
    def test_directives_only(self):
        """Fields come out in directive order, each at least its width."""
        lines = render_format_string("%.10n%.8Q", ACCOUNTS, noheader=True)
        assert lines == ["physics   normal  ", "hep               "]

    def test_header(self):
        lines = render_format_string("%n|%P", ACCOUNTS)
        assert lines[0] == "Name|AllowedPartition"
        assert lines[1] == "physics|CPU,GPU"

    def test_width_is_minimum(self):
        assert render_format_string("%.3n", ACCOUNTS[:1], noheader=True) == ["physics"]

    def test_literal_percent(self):
        assert render_format_string("100%% %q", ACCOUNTS[:1], noheader=True) == ["100% normal,high"]

    def test_parse_segments(self):
        assert parse_format("[%.5n] %d") == ["[", FormatField("n", 5), "] ", FormatField("d", 0)]

    @pytest.mark.parametrize("fmt", ["%x", "%", "name %", "%.n", "%.5"])
    def test_invalid(self, fmt):
        with pytest.raises(UsageError):
            parse_format(fmt)


class TestLiveStateRecords:
    def test_node_memory_in_mb(self):
        node = Node(
            "cn01",
            state="idle",
            cpu=8,
            alloc_cpu=2,
            free_cpu=6,
            real_mem=16 * MB + 5,
            alloc_mem=MB - 1,
            free_mem=15 * MB,
            partition_names=["CPU", "GPU"],
            running_task_num=1,
        )
        text = render_node(node)
        assert text.startswith("NodeName=cn01 State=idle CPU=8.00 AllocCPU=2.00 FreeCPU=6.00\n")
        assert "RealMemory=16M AllocMem=0M FreeMem=15M" in text
        assert "Partition=CPU,GPU RunningJob=1" in text

    def test_partition(self):
        partition = Partition("CPU", state="up", total_nodes=4, alive_nodes=3, total_mem=64 * MB,
                              hostlist="cn[01-04]")
        text = render_partition(partition)
        assert "PartitionName=CPU State=up" in text
        assert "TotalNodes=4 AliveNodes=3" in text
        assert "TotalMem=64M" in text
        assert "HostList=cn[01-04]" in text


class TestTaskRecord:
    start = datetime(2024, 5, 1, 12, 0, 0).timestamp()

    def test_pre_1980_times_unknown(self):
        text = render_task(Task(1, submit_time=0.0, start_time=100.0, time_limit=3600))
        assert "SubmitTime=unknown" in text
        assert "StartTime=unknown" in text
        assert "RunTime=unknown" in text

    def test_unlimited_time_limit(self):
        task = Task(2, status="Running", start_time=self.start, time_limit=MAX_DURATION_SECONDS)
        text = render_task(task, now=self.start + 90)
        assert "TimeLimit=unlimited" in text
        assert "EndTime=unknown" in text
        assert "RunTime=0-00:01:30" in text

    def test_running_end_is_start_plus_limit(self):
        task = Task(3, status="Running", start_time=self.start, time_limit=3600)
        text = render_task(task, now=self.start + 60)
        assert f"EndTime={format_timestamp(self.start + 3600)}" in text
        assert "TimeLimit=0-01:00:00" in text

    def test_finished_run_time(self):
        task = Task(4, status="Completed", start_time=self.start, end_time=self.start + 7200,
                    time_limit=86400)
        text = render_task(task, now=self.start + 99999)
        assert "RunTime=0-02:00:00" in text
        assert f"EndTime={format_timestamp(self.start + 7200)}" in text


class TestTables:
    def test_accounts_table(self, capsys, wide_console):
        print_accounts_table(ACCOUNTS)
        out = capsys.readouterr().out
        assert "physics" in out
        assert "hep" in out

    def test_qos_table_sentinels(self, capsys, wide_console):
        print_qos_table([Qos("normal")])
        out = capsys.readouterr().out
        assert "unlimited" in out
