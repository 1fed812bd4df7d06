"""
meta_events

Versioned analytics event catalog, event name resolution, property merging,
frontend event registration and auto-tracking attribute synthesis.
"""

from .auto_tracking import (
    AUTO_TRACK_CLASS,
    EVENT_DATA_ATTRIBUTE,
    META_EVENT_KEY,
    PROPERTIES_DATA_ATTRIBUTE,
    AutoTrackDirective,
    tracking_attributes_for,
)
from .catalog import (
    CategoryDefinition,
    DefinitionCatalog,
    EventDefinition,
    ResolvedEvent,
    VersionDefinition,
    canonical_event_name,
)
from .errors import (
    ConstructionError,
    DirectiveError,
    InvalidPropertyValue,
    InvalidType,
    MetaEventsError,
    MissingRequiredOption,
    PropertyCollision,
    PropertyError,
    ResolutionError,
    UnknownCategory,
    UnknownEvent,
    UnknownVersion,
    UnrecognizedOption,
)
from .frontend_events import FrontendEventEntry, FrontendEventRegistry
from .logging_config import setup_logging, stop_logging
from .properties import flatten_properties, merge_properties
from .tracker import Tracker

__all__ = [
    # Catalog
    "DefinitionCatalog",
    "VersionDefinition",
    "CategoryDefinition",
    "EventDefinition",
    "ResolvedEvent",
    "canonical_event_name",

    # Properties
    "flatten_properties",
    "merge_properties",

    # Tracking surfaces
    "Tracker",
    "FrontendEventRegistry",
    "FrontendEventEntry",
    "AutoTrackDirective",
    "tracking_attributes_for",
    "META_EVENT_KEY",
    "AUTO_TRACK_CLASS",
    "EVENT_DATA_ATTRIBUTE",
    "PROPERTIES_DATA_ATTRIBUTE",

    # Logging
    "setup_logging",
    "stop_logging",

    # Errors
    "MetaEventsError",
    "ConstructionError",
    "ResolutionError",
    "UnknownVersion",
    "UnknownCategory",
    "UnknownEvent",
    "PropertyError",
    "InvalidPropertyValue",
    "PropertyCollision",
    "DirectiveError",
    "MissingRequiredOption",
    "UnrecognizedOption",
    "InvalidType",
]
