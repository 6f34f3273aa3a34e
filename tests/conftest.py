import os
import sys
import textwrap

import pytest


# Ensure 'src' is on sys.path for package imports in tests
TESTS_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(TESTS_DIR, os.pardir))
SRC_DIR = os.path.join(PROJECT_ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)


@pytest.fixture
def config_file(tmp_path):
    """A minimal client configuration file."""
    path = tmp_path / "config.yaml"
    path.write_text(
        textwrap.dedent(
            """
            ControlMachine: ctld.example.com
            CraneCtldListenPort: 10011
            UseTls: false
            Nodes:
              - name: cn[01-04]
                cpu: 8
            Partitions:
              - name: CPU
                nodes: cn[01-04]
            """
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture(autouse=True)
def _no_crane_config_env(monkeypatch):
    monkeypatch.delenv("CRANE_CONFIG", raising=False)


@pytest.fixture
def wide_console(monkeypatch):
    """Render rich tables wide enough that cells are never wrapped or truncated."""
    from rich.console import Console

    from crane_admin.cli import formatters

    console = Console(width=240, soft_wrap=True)
    monkeypatch.setattr(formatters, "console", console)
    return console
