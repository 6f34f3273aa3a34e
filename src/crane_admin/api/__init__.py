"""Backends that carry requests to the control daemon."""

from typing import Any, Dict

from .base import BackendBase
from .http import HttpBackend

BACKEND_TYPES = {"http": HttpBackend}


def create_backend(backend_type: str, **kwargs: Any) -> BackendBase:
    """Build a backend by type name.

    Keyword arguments that are None are dropped so the backend's own
    defaults apply.

    Raises:
        ValueError: If ``backend_type`` is not a known backend.
    """
    try:
        backend_class = BACKEND_TYPES[backend_type]
    except KeyError:
        known = ", ".join(sorted(BACKEND_TYPES))
        raise ValueError(f"Unsupported backend type: {backend_type} (known: {known})") from None
    return backend_class(**{key: value for key, value in kwargs.items() if value is not None})


def get_backend_from_config(config: Dict[str, Any]) -> BackendBase:
    """Build a backend from ``{"backend": <type>, "backend_config": {...}}``,
    as produced by ``ClientConfig.backend_config()``.
    """
    if "backend" not in config:
        raise ValueError("Configuration must specify a 'backend' key.")
    return create_backend(config["backend"], **config.get("backend_config", {}))


__all__ = ["BACKEND_TYPES", "BackendBase", "HttpBackend", "create_backend", "get_backend_from_config"]
