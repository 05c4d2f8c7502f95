from __future__ import annotations
from typing import Iterable, List, Sequence

from .errors import UnknownCheck
from .models import ActiveSet, Action, Directive
from .registry import CheckRegistry


def parse_directives(action: Action | str, raw: str) -> List[Directive]:
    """Build directives from a raw flag value.

    Comma-separated values expand into one directive per name, in order:
    ``parse_directives("disable", "acl,website")``.
    """
    action = Action(action)
    return [Directive(action, part.strip().lower()) for part in raw.split(",") if part.strip()]


def validate(directives: Iterable[Directive], registry: CheckRegistry) -> None:
    """Raise UnknownCheck listing every directive target missing from the registry."""
    unknown: List[str] = []
    for directive in directives:
        if directive.is_all or directive.target in registry:
            continue
        if directive.target not in unknown:
            unknown.append(directive.target)
    if unknown:
        raise UnknownCheck(unknown)


def resolve(directives: Sequence[Directive], registry: CheckRegistry) -> ActiveSet:
    """Fold directives left to right over the full registry.

    ``all`` resets the whole set; a later directive always overrides an
    earlier one for the same check. Unknown names fail the resolution
    wherever they appear.
    """
    validate(directives, registry)
    everything = registry.names()
    active = set(everything)
    for directive in directives:
        if directive.is_all:
            active = set(everything) if directive.action is Action.ENABLE else set()
            continue
        name = registry.canonical(directive.target)
        if directive.action is Action.ENABLE:
            active.add(name)
        else:
            active.discard(name)
    return frozenset(active)
