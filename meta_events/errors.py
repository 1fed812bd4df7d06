"""
Exceptions raised by the meta_events engine.

Every error derives from ``MetaEventsError``, which is a ``ValueError``:
callers that treat a bad event reference as an invalid argument can catch
``ValueError``; callers that need more detail can catch the narrower kinds.
"""

from typing import Optional


class MetaEventsError(ValueError):
    """Base exception for all meta_events errors."""

    def __init__(self, message: str = "meta_events error"):
        """Initialize with message."""
        self.message = message
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Catalog construction
# ---------------------------------------------------------------------------


class ConstructionError(MetaEventsError):
    """Duplicate identifiers, bad version numbers, or malformed dates in a catalog."""


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class ResolutionError(MetaEventsError):
    """Base exception for failures resolving (category, event, version)."""

    def __init__(
        self,
        message: str,
        category: Optional[str] = None,
        event: Optional[str] = None,
        version: Optional[int] = None,
    ):
        """Initialize with message and the reference that failed."""
        self.category = category
        self.event = event
        self.version = version
        super().__init__(message)


class UnknownVersion(ResolutionError):
    """The requested version does not exist, or the catalog has none."""


class UnknownCategory(ResolutionError):
    """The selected version has no such category."""


class UnknownEvent(ResolutionError):
    """The category exists but does not define the event."""


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class PropertyError(MetaEventsError):
    """Base exception for property values that cannot be merged."""


class InvalidPropertyValue(PropertyError):
    """A property value is not a scalar, a list of scalars, or a mapping."""


class PropertyCollision(PropertyError):
    """Two keys in one property layer flatten to the same name."""


# ---------------------------------------------------------------------------
# Auto-tracking directives
# ---------------------------------------------------------------------------


class DirectiveError(MetaEventsError):
    """Base exception for a malformed meta-event directive."""


class MissingRequiredOption(DirectiveError):
    """The directive lacks ``category`` or ``event``."""


class UnrecognizedOption(DirectiveError):
    """The directive contains a key other than category, event, properties."""


class InvalidType(DirectiveError):
    """The directive (or its properties) is not a mapping."""
