"""Loading and resolving the client configuration file.

The configuration is the same YAML file the cluster daemons read; the client
only needs the location of the control daemon from it. ``ccontrol show
config`` prints the whole file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .errors import ConfigInvalidError, ConfigNotFoundError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CRANE_CONFIG"
DEFAULT_CONFIG_PATH = "/etc/crane/config.yaml"
DEFAULT_CTLD_PORT = 10011
DEFAULT_TIMEOUT = 30.0

PathLike = Union[str, "os.PathLike[str]"]


@dataclass
class ClientConfig:
    """Resolved settings for reaching the control daemon."""

    path: Path
    control_machine: str
    port: int = DEFAULT_CTLD_PORT
    use_tls: bool = False
    timeout: float = DEFAULT_TIMEOUT
    backend: str = "http"

    def backend_config(self) -> Dict[str, Any]:
        """Return the dictionary accepted by :func:`crane_admin.api.get_backend_from_config`."""
        return {
            "backend": self.backend,
            "backend_config": {
                "hostname": self.control_machine,
                "port": self.port,
                "use_tls": self.use_tls,
                "timeout": self.timeout,
            },
        }


def resolve_config_path(config: Optional[PathLike] = None) -> Path:
    """Pick the configuration file: explicit path, then ``$CRANE_CONFIG``, then the default."""

    if config is not None:
        return Path(config).expanduser()

    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()

    return Path(DEFAULT_CONFIG_PATH)


def read_config_file(path: PathLike) -> Dict[str, Any]:
    """Read a YAML configuration file into a dictionary.

    Raises:
        ConfigNotFoundError: If the file cannot be read.
        ConfigInvalidError: If it is not YAML or its top level is not a mapping.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigNotFoundError(f"Failed to read configuration file '{path}': {exc.strerror or exc}") from exc

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigInvalidError(f"Invalid YAML in configuration file '{path}': {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigInvalidError(f"Configuration file '{path}' must contain a top-level mapping.")
    return data


def load_client_config(config: Optional[PathLike] = None) -> ClientConfig:
    """Resolve, read and validate the configuration used to reach the daemon."""

    path = resolve_config_path(config)
    data = read_config_file(path)

    control_machine = data.get("ControlMachine")
    if not isinstance(control_machine, str) or not control_machine.strip():
        raise ConfigInvalidError(f"'ControlMachine' is not set in configuration file '{path}'.")

    try:
        port = int(data.get("CraneCtldListenPort", DEFAULT_CTLD_PORT))
        timeout = float(data.get("CraneCtldTimeout", DEFAULT_TIMEOUT))
    except (TypeError, ValueError) as exc:
        raise ConfigInvalidError(f"Invalid numeric setting in configuration file '{path}': {exc}") from exc

    resolved = ClientConfig(
        path=path,
        control_machine=control_machine.strip(),
        port=port,
        use_tls=bool(data.get("UseTls", False)),
        timeout=timeout,
        backend=str(data.get("Backend", "http")),
    )
    logger.debug("Loaded client configuration from %s: %s", path, resolved)
    return resolved
