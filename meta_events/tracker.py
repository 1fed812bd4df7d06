"""
Tracker

Binds a caller identifier (the analytics ``distinct_id``) to a
DefinitionCatalog and turns event references into fully resolved,
fully merged events.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .catalog import DefinitionCatalog, NameLike
from .properties import merge_properties

logger = logging.getLogger(__name__)

# receiver(distinct_id, event_name, properties)
EventReceiver = Callable[[Optional[str], str, Dict[str, Any]], Any]


class Tracker:
    """Resolves and merges events on behalf of one caller."""

    def __init__(
        self,
        distinct_id: Optional[str],
        catalog: DefinitionCatalog,
        *,
        version: Optional[int] = None,
        implicit_properties: Optional[Mapping[str, Any]] = None,
        ip: Optional[str] = None,
        event_receivers: Iterable[EventReceiver] = (),
        warn_on_deprecated: bool = True,
    ):
        """Initialize the tracker.

        Args:
            distinct_id: Opaque caller identifier, passed through verbatim
            catalog: Shared event catalog
            version: Default catalog version; highest available when None
            implicit_properties: Properties added to every event this tracker resolves
            ip: Caller IP address, sent as the ``ip`` property when given
            event_receivers: Callables invoked synchronously by ``track``
            warn_on_deprecated: Log a warning when a deprecated event is used
        """
        self.distinct_id = distinct_id
        self.catalog = catalog
        self.version = version
        self.ip = ip
        self.warn_on_deprecated = warn_on_deprecated
        self._event_receivers: List[EventReceiver] = list(event_receivers)

        tracker_properties: Dict[str, Any] = {}
        if ip is not None:
            tracker_properties["ip"] = ip
        tracker_properties.update(implicit_properties or {})
        self._implicit_properties = tracker_properties

    @property
    def implicit_properties(self) -> Dict[str, Any]:
        return dict(self._implicit_properties)

    def add_event_receiver(self, receiver: EventReceiver) -> None:
        self._event_receivers.append(receiver)

    def resolve_and_merge(
        self,
        category: NameLike,
        event: NameLike,
        properties: Optional[Mapping[str, Any]] = None,
        version: Optional[int] = None,
    ) -> Tuple[str, Dict[str, Any]]:
        """Resolve an event reference and merge all property layers.

        Layers, lowest precedence first: catalog global implicit, tracker
        implicit, category implicit, event implicit, explicit ``properties``.

        Returns:
            Tuple of (canonical event name, flat merged properties)

        Raises:
            UnknownVersion, UnknownCategory, UnknownEvent: If the reference does not resolve
        """
        resolved = self.catalog.resolve_event(
            category, event, version if version is not None else self.version
        )
        if resolved.deprecated and self.warn_on_deprecated:
            logger.warning(
                "Event %s/%s (version %d) is deprecated; sending as %s",
                resolved.category, resolved.event, resolved.version, resolved.name,
            )

        merged = merge_properties(
            self.catalog.implicit_properties,
            self._implicit_properties,
            resolved.category_properties,
            resolved.event_properties,
            properties,
        )
        return resolved.name, merged

    def effective_properties(
        self,
        category: NameLike,
        event: NameLike,
        properties: Optional[Mapping[str, Any]] = None,
        version: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Return the ``distinct_id``/``event_name``/``properties`` triple for an event."""
        event_name, merged = self.resolve_and_merge(category, event, properties, version)
        return {
            "distinct_id": self.distinct_id,
            "event_name": event_name,
            "properties": merged,
        }

    def track(
        self,
        category: NameLike,
        event: NameLike,
        properties: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Resolve an event and hand it to every registered receiver.

        Receivers are called in registration order; an exception from a
        receiver propagates to the caller.

        Returns:
            The effective properties that were delivered
        """
        effective = self.effective_properties(category, event, properties)
        logger.debug(
            "Tracking %s for %r with %d properties",
            effective["event_name"], self.distinct_id, len(effective["properties"]),
        )
        for receiver in self._event_receivers:
            receiver(effective["distinct_id"], effective["event_name"], dict(effective["properties"]))
        return effective
