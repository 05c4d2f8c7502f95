from __future__ import annotations
import logging
from importlib import import_module
from importlib.metadata import entry_points
from typing import Iterator

from .registry import CheckRegistry, builtin_registry

logger = logging.getLogger(__name__)

_ENTRY_POINT_GROUP = "s3audit.checks"


def iter_local_check_modules() -> Iterator[str]:
    """Yield the built-in check module names in declaration order.

    The order of ``s3audit.checks.__all__`` is the registry order, and
    therefore the order of results within every bucket report.
    """
    import s3audit.checks as root
    for name in getattr(root, "__all__", ()):
        yield f"{root.__name__}.{name}"


def iter_entrypoint_check_modules() -> Iterator[str]:
    """Yield check modules registered by external plugins.

    Uses the 's3audit.checks' entry point group; plugin modules call
    register_check at import time, after the built-in checks.
    """
    for ep in entry_points(group=_ENTRY_POINT_GROUP):
        yield ep.module


def default_registry(plugins: bool = True) -> CheckRegistry:
    """Import every check module and return the populated default registry."""
    for name in iter_local_check_modules():
        import_module(name)
    if plugins:
        for name in iter_entrypoint_check_modules():
            logger.debug("Loading check plugin %s", name)
            import_module(name)
    return builtin_registry()
