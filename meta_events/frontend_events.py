"""
Frontend Event Registry

Collects events the server wants the browser to be able to fire, already
resolved and merged, and renders them as a script for the browser-side
MetaEvents library:

    MetaEvents.registerFrontendEvent("foo_bar", {"distinct_id": ..., "event_name": ..., "properties": {...}});
"""

import copy
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Mapping, Optional

from .catalog import NameLike, name_of
from .tracker import Tracker

logger = logging.getLogger(__name__)

JS_NAMESPACE = "MetaEvents"
REGISTER_FUNCTION = "registerFrontendEvent"

# Characters that are valid in JSON but unsafe inside an inline <script>
_SCRIPT_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def script_safe_json(value: Any) -> str:
    """JSON-encode ``value`` so it can be embedded verbatim in a script tag."""
    encoded = json.dumps(value, ensure_ascii=False, allow_nan=False)
    for char, escaped in _SCRIPT_ESCAPES.items():
        encoded = encoded.replace(char, escaped)
    return encoded


@dataclass
class FrontendEventEntry:
    """One registered frontend event."""
    name: str
    distinct_id: Optional[str]
    event_name: str
    properties: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the dictionary the browser library receives."""
        return {
            "distinct_id": self.distinct_id,
            "event_name": self.event_name,
            "properties": copy.deepcopy(self.properties),
        }


class FrontendEventRegistry:
    """Per-request store of frontend events, keyed by logical name."""

    def __init__(self, tracker: Tracker, namespace: str = JS_NAMESPACE):
        """Initialize an empty registry.

        Args:
            tracker: Tracker used to resolve and merge registrations
            namespace: Global JavaScript object exposing registerFrontendEvent
        """
        self.tracker = tracker
        self.namespace = namespace
        self._entries: Dict[str, FrontendEventEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def register(
        self,
        category: NameLike,
        event: NameLike,
        properties: Optional[Mapping[str, Any]] = None,
        name: Optional[NameLike] = None,
    ) -> FrontendEventEntry:
        """Resolve an event and store it under a logical name.

        The logical name defaults to ``{category}_{event}``. Registering a
        name that already exists replaces the earlier entry.

        Raises:
            UnknownVersion, UnknownCategory, UnknownEvent: If the event does not
                resolve; the registry is left unchanged
        """
        event_name, merged = self.tracker.resolve_and_merge(category, event, properties)
        logical_name = name_of(name) if name is not None else f"{name_of(category)}_{name_of(event)}"

        if logical_name in self._entries:
            logger.debug("Replacing frontend event %r (was %s)", logical_name, self._entries[logical_name].event_name)

        entry = FrontendEventEntry(
            name=logical_name,
            distinct_id=self.tracker.distinct_id,
            event_name=event_name,
            properties=merged,
        )
        self._entries[logical_name] = entry
        return entry

    def all_entries(self) -> Dict[str, Dict[str, Any]]:
        """Snapshot of every entry as ``{name: {distinct_id, event_name, properties}}``."""
        return {name: entry.to_dict() for name, entry in self._entries.items()}

    def clear(self) -> None:
        self._entries.clear()

    def serialize_as_script(self) -> str:
        """Render every entry as a registerFrontendEvent call, one per line.

        Returns:
            The script text, or an empty string if nothing is registered
        """
        if not self._entries:
            return ""

        function = f"{self.namespace}.{REGISTER_FUNCTION}"
        lines = [
            f"{function}({script_safe_json(name)}, {script_safe_json(entry.to_dict())});"
            for name, entry in self._entries.items()
        ]
        return "\n".join(lines)
