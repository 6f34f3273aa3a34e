"""Command-line interfaces for crane-admin.

This package provides the `cacctmgr` and `ccontrol` commands.

Usage:
    cacctmgr add account --name NAME [--parent PARENT] [--config PATH]
    cacctmgr modify user --name NAME --account ACCOUNT --add_allowed_partition P
    cacctmgr find qos NAME
    ccontrol show node [NAME]
    ccontrol update node --name NODE --state drain --reason TEXT
"""

from . import acctmgr, control

__all__ = ["acctmgr", "control"]
