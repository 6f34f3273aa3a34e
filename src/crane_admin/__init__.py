# crane_admin/__init__.py

"""
This package provides administration tools for Crane clusters: account,
user and QoS management (``cacctmgr``) and live cluster control
(``ccontrol``).
"""

__version__ = "0.1.0"

from .api import BackendBase, create_backend, get_backend_from_config
from .config import ClientConfig, load_client_config
from .errors import CraneError, ExitCode
from .models import Account, AttributeChange, EntityKind, Operation, Qos, User
from .modify import apply_changes

__all__ = [
    "Account",
    "AttributeChange",
    "BackendBase",
    "ClientConfig",
    "CraneError",
    "EntityKind",
    "ExitCode",
    "Operation",
    "Qos",
    "User",
    "apply_changes",
    "create_backend",
    "get_backend_from_config",
    "load_client_config",
]
