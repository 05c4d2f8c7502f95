from __future__ import annotations
from typing import Callable, Dict, Iterable, Iterator, List

from .base import CheckFunction, RegisteredCheck
from .models import ALL, CheckMeta, CheckName


class CheckRegistry:
    """Catalogue of known checks kept in declaration order.

    Lookups are case-insensitive and accept declared aliases.
    """

    def __init__(self, checks: Iterable[RegisteredCheck] = ()) -> None:
        self._checks: Dict[CheckName, RegisteredCheck] = {}
        self._names: Dict[str, CheckName] = {}
        for check in checks:
            self.add(check)

    def add(self, check: RegisteredCheck) -> RegisteredCheck:
        name = check.meta.name.lower()
        keys = [name, *(alias.lower() for alias in check.meta.aliases)]
        if ALL in keys:
            raise ValueError(f"'{ALL}' is reserved and cannot name a check")
        for key in keys:
            if key in self._names:
                raise ValueError(f"Check name '{key}' is already registered")
        self._checks[name] = check
        for key in keys:
            self._names[key] = name
        return check

    def register(self, meta: CheckMeta) -> Callable[[CheckFunction], CheckFunction]:
        """Decorator adding a check function under ``meta``."""
        def decorator(fn: CheckFunction) -> CheckFunction:
            self.add(RegisteredCheck(meta=meta, evaluate=fn))
            return fn
        return decorator

    def canonical(self, name: str) -> CheckName | None:
        """Return the canonical name for a name or alias, or None if unknown."""
        return self._names.get(name.strip().lower())

    def get(self, name: str) -> RegisteredCheck:
        canonical = self.canonical(name)
        if canonical is None:
            raise KeyError(name)
        return self._checks[canonical]

    def names(self) -> List[CheckName]:
        return list(self._checks)

    def ordered(self, active: Iterable[CheckName]) -> List[RegisteredCheck]:
        """Return the checks in ``active`` in declaration order."""
        wanted = {self.canonical(name) for name in active}
        return [check for name, check in self._checks.items() if name in wanted]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.canonical(name) is not None

    def __iter__(self) -> Iterator[RegisteredCheck]:
        return iter(self._checks.values())

    def __len__(self) -> int:
        return len(self._checks)


# Registry populated by the built-in check modules at import time
_REGISTRY = CheckRegistry()


def register_check(meta: CheckMeta) -> Callable[[CheckFunction], CheckFunction]:
    """Register a check function in the default registry.

    Checks are listed in the order their modules register them.
    """
    return _REGISTRY.register(meta)


def builtin_registry() -> CheckRegistry:
    """Return the default registry without triggering check discovery."""
    return _REGISTRY
