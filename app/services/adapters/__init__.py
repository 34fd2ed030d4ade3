"""Backend adapter registry."""
import logging
from typing import Dict, Type

from app.models.internal import Platform
from .base import AdapterOutput, BackendAdapter

logger = logging.getLogger(__name__)

_ADAPTER_REGISTRY: Dict[str, Type[BackendAdapter]] = {}


def register_adapter(adapter_class: Type[BackendAdapter]) -> None:
    """Register an adapter class under its name.

    Raises:
        ValueError: If an adapter is already registered under that name.
    """
    name = adapter_class.name
    if name in _ADAPTER_REGISTRY:
        raise ValueError(f"Adapter already registered under '{name}'")
    _ADAPTER_REGISTRY[name] = adapter_class


def create_adapter(name: str, cfg) -> BackendAdapter:
    """Instantiate a registered adapter from configuration.

    Raises:
        KeyError: If no adapter is registered under the name.
    """
    return _ADAPTER_REGISTRY[name].from_config(cfg)


def build_registry(cfg) -> Dict[Platform, BackendAdapter]:
    """Map each configured platform to one adapter instance; shared by name"""
    instances: Dict[str, BackendAdapter] = {}
    registry: Dict[Platform, BackendAdapter] = {}

    for platform in Platform:
        if platform is Platform.UNKNOWN:
            continue
        name = getattr(cfg.backends, platform.value, None)
        if not name:
            continue
        if name not in instances:
            instances[name] = create_adapter(name, cfg)
        registry[platform] = instances[name]
        logger.info("Platform %s -> adapter %s", platform.label, name)

    return registry


__all__ = [
    "AdapterOutput",
    "BackendAdapter",
    "build_registry",
    "create_adapter",
    "register_adapter",
]

# Auto-load adapters (triggers self-registration)
from . import cobalt  # noqa: E402,F401
from . import direct  # noqa: E402,F401
from . import library  # noqa: E402,F401
from . import process  # noqa: E402,F401
from . import tiered  # noqa: E402,F401
