"""
Auto-tracking attributes

Rewrites an HTML attribute mapping that carries a ``meta_event`` directive
into the attributes the browser-side library looks for:

    {"meta_event": {"category": "foo", "event": "bar", "properties": {...}},
     "href": "/somewhere"}

becomes

    {"href": "/somewhere",
     "class": ["mejtp_trk"],
     "data-mejtp_evt": "xy1_foo_bar",
     "data-mejtp_prp": "{...}"}

The key spellings below are shared with the browser library; do not change them.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .errors import InvalidType, MissingRequiredOption, UnrecognizedOption
from .tracker import Tracker

logger = logging.getLogger(__name__)

META_EVENT_KEY = "meta_event"
AUTO_TRACK_CLASS = "mejtp_trk"
EVENT_DATA_ATTRIBUTE = "data-mejtp_evt"
PROPERTIES_DATA_ATTRIBUTE = "data-mejtp_prp"

_ALLOWED_OPTIONS = frozenset({"category", "event", "properties"})
_REQUIRED_OPTIONS = ("category", "event")


@dataclass(frozen=True)
class AutoTrackDirective:
    """A parsed ``meta_event`` value."""
    category: Any
    event: Any
    properties: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_value(cls, value: Any) -> "AutoTrackDirective":
        """Validate and parse the raw ``meta_event`` value.

        Raises:
            InvalidType: If the value or its properties is not a mapping
            UnrecognizedOption: If it has keys other than category, event, properties
            MissingRequiredOption: If category or event is missing
        """
        if not isinstance(value, Mapping):
            raise InvalidType(f"{META_EVENT_KEY} must be a mapping, got {type(value).__name__}: {value!r}")

        options = {str(key): option for key, option in value.items()}
        unknown = sorted(set(options) - _ALLOWED_OPTIONS)
        if unknown:
            raise UnrecognizedOption(
                f"{META_EVENT_KEY} has unrecognized option(s) {', '.join(unknown)}; "
                f"allowed: {', '.join(sorted(_ALLOWED_OPTIONS))}"
            )
        for required in _REQUIRED_OPTIONS:
            if options.get(required) is None:
                raise MissingRequiredOption(f"{META_EVENT_KEY} requires {required!r}: {value!r}")

        properties = options.get("properties")
        if properties is None:
            properties = {}
        elif not isinstance(properties, Mapping):
            raise InvalidType(f"{META_EVENT_KEY} properties must be a mapping, got {type(properties).__name__}")

        return cls(category=options["category"], event=options["event"], properties=properties)


def _with_tracking_class(existing: Any) -> Any:
    if existing is None:
        return [AUTO_TRACK_CLASS]
    if isinstance(existing, (list, tuple)):
        return list(existing) + [AUTO_TRACK_CLASS]
    return [existing, AUTO_TRACK_CLASS]


def _find_meta_event_key(attributes: Mapping[Any, Any]) -> Optional[Any]:
    for key in attributes:
        if str(key) == META_EVENT_KEY:
            return key
    return None


def tracking_attributes_for(attributes: Mapping[Any, Any], tracker: Tracker) -> Mapping[Any, Any]:
    """Resolve a ``meta_event`` directive into auto-tracking attributes.

    Args:
        attributes: Attribute mapping destined for an HTML element
        tracker: Tracker used to resolve and merge the event (highest version)

    Returns:
        ``attributes`` itself if there is no directive; otherwise a new dict
        without the directive and with class, event and properties attributes
        added. All other keys are passed through untouched.

    Raises:
        InvalidType, UnrecognizedOption, MissingRequiredOption: If the directive is malformed
        UnknownVersion, UnknownCategory, UnknownEvent: If the event does not resolve
    """
    meta_key = _find_meta_event_key(attributes)
    if meta_key is None:
        return attributes

    directive = AutoTrackDirective.from_value(attributes[meta_key])
    event_name, merged = tracker.resolve_and_merge(directive.category, directive.event, directive.properties)

    out: Dict[Any, Any] = {key: value for key, value in attributes.items() if key != meta_key}
    class_key = next((key for key in out if str(key) == "class"), "class")
    existing_class = out.pop(class_key, None)
    out["class"] = _with_tracking_class(existing_class)
    out[EVENT_DATA_ATTRIBUTE] = event_name
    out[PROPERTIES_DATA_ATTRIBUTE] = json.dumps(merged, allow_nan=False)

    logger.debug("Auto-tracking attributes for %s", event_name)
    return out
