"""
Route table built from the manifest's HTTP triggers.

A route ending in "/..." matches its prefix and everything below it. Any
other route matches only itself. When several routes match a path, an exact
route wins over a wildcard, and a longer wildcard prefix wins over a shorter.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from manifest.errors import ManifestError, RouteConflictError
from manifest.models import HttpTrigger

logger = logging.getLogger(__name__)

WILDCARD_SUFFIX = "/..."


@dataclass(frozen=True)
class RoutePattern:
    """Parsed form of a trigger route."""
    route: str
    prefix: str
    wildcard: bool

    def matches(self, path: str) -> bool:
        if not self.wildcard:
            return path == self.prefix
        if not self.prefix:
            return True
        return path == self.prefix or path.startswith(self.prefix + "/")

    def sort_key(self) -> Tuple[bool, int]:
        return (self.wildcard, -len(self.prefix))


def parse_route(route: str) -> RoutePattern:
    """
    Parse a trigger route.

    Raises:
        ManifestError: If the route is empty, relative, or uses "..." anywhere
            other than as the final segment
    """
    if not route or not route.startswith("/"):
        raise ManifestError(f"Route must start with '/': {route!r}")

    if route.endswith(WILDCARD_SUFFIX):
        prefix = route[: -len(WILDCARD_SUFFIX)]
        if "..." in prefix:
            raise ManifestError(f"Wildcard '...' may only appear as the last segment: {route!r}")
        return RoutePattern(route=route, prefix=prefix.rstrip("/"), wildcard=True)

    if "..." in route:
        raise ManifestError(f"Wildcard '...' may only appear as the last segment: {route!r}")

    prefix = route.rstrip("/") or "/"
    return RoutePattern(route=route, prefix=prefix, wildcard=False)


class RouteTable:
    """Ordered mapping from route patterns to triggers."""

    def __init__(self, triggers: Iterable[HttpTrigger]):
        self._entries: List[Tuple[RoutePattern, HttpTrigger]] = []
        seen = {}

        for trigger in triggers:
            pattern = parse_route(trigger.route)
            key = (pattern.prefix, pattern.wildcard)
            if key in seen:
                raise RouteConflictError(
                    f"Route {trigger.route!r} for component '{trigger.component}' "
                    f"duplicates route {seen[key].route!r} for component '{seen[key].component}'"
                )
            seen[key] = trigger
            self._entries.append((pattern, trigger))

        self._entries.sort(key=lambda entry: entry[0].sort_key())

    def __len__(self) -> int:
        return len(self._entries)

    def ordered(self) -> List[Tuple[RoutePattern, HttpTrigger]]:
        """Entries most-specific first; first match in this order is the winner."""
        return list(self._entries)

    def match(self, path: str) -> Optional[HttpTrigger]:
        for pattern, trigger in self._entries:
            if pattern.matches(path):
                return trigger
        return None
