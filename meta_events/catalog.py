"""
Event Definition Catalog

The catalog is the single source of truth for which events exist. It is a
validated, immutable tree:

    prefix -> versions -> categories -> events

and resolves a (category, event, version) reference to the canonical wire
name ``{prefix}{version}_{category}_{event}``. Build it once at startup and
share it by reference; nothing in it changes after construction.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from .errors import ConstructionError, UnknownCategory, UnknownEvent, UnknownVersion
from .schemas import ISO_DATE, CatalogSpec

logger = logging.getLogger(__name__)

EMPTY_PROPERTIES: Mapping[str, Any] = MappingProxyType({})

NameLike = Union[str, Enum]


def canonical_event_name(prefix: str, version: int, category: str, event: str) -> str:
    """Build the wire name for an event, e.g. ``xy1_foo_bar``."""
    return f"{prefix}{version}_{category}_{event}"


def name_of(value: NameLike) -> str:
    """Normalize a category/event reference to its string name."""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _parse_date(value: Any, context: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        # fromisoformat also takes compact and week forms on newer Pythons
        if not ISO_DATE.match(value):
            raise ConstructionError(f"Malformed date {value!r} for {context}; expected YYYY-MM-DD")
        try:
            return date.fromisoformat(value)
        except ValueError as exc:
            raise ConstructionError(f"Malformed date {value!r} for {context}; expected YYYY-MM-DD") from exc
    raise ConstructionError(f"Malformed date {value!r} for {context}; expected YYYY-MM-DD")


def _parse_optional_date(value: Any, context: str) -> Optional[date]:
    if value is None:
        return None
    return _parse_date(value, context)


def _freeze_properties(properties: Optional[Mapping[str, Any]], context: str) -> Mapping[str, Any]:
    if properties is None:
        return EMPTY_PROPERTIES
    if not isinstance(properties, Mapping):
        raise ConstructionError(f"Implicit properties for {context} must be a mapping, got {type(properties).__name__}")
    return _freeze(properties)


def _freeze(value: Any) -> Any:
    """Copy ``value`` into read-only form: mappings become proxies, lists tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


@dataclass(frozen=True)
class EventDefinition:
    """A single allowed event within one category of one version."""
    category: str
    name: str
    version: int
    introduced: date
    description: str = ""
    implicit_properties: Mapping[str, Any] = field(default_factory=dict)
    deprecated: bool = False
    retired_at: Optional[date] = None
    external_name: Optional[str] = None

    def __post_init__(self):
        context = f"event {self.category}/{self.name} (version {self.version})"
        object.__setattr__(self, "introduced", _parse_date(self.introduced, context))
        object.__setattr__(self, "retired_at", _parse_optional_date(self.retired_at, context))
        object.__setattr__(self, "implicit_properties", _freeze_properties(self.implicit_properties, context))

    @property
    def is_deprecated(self) -> bool:
        return self.deprecated or self.retired_at is not None


@dataclass(frozen=True)
class CategoryDefinition:
    """A named group of events; its implicit properties apply to every event in it."""
    name: str
    events: Tuple[EventDefinition, ...] = ()
    implicit_properties: Mapping[str, Any] = field(default_factory=dict)
    retired_at: Optional[date] = None
    _events_by_name: Mapping[str, EventDefinition] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        context = f"category {self.name}"
        events = tuple(self.events)
        by_name: Dict[str, EventDefinition] = {}
        for event in events:
            if event.category != self.name:
                raise ConstructionError(
                    f"Event {event.name!r} declares category {event.category!r} but is listed under {self.name!r}"
                )
            if event.name in by_name:
                raise ConstructionError(f"Duplicate event {event.name!r} in category {self.name!r}")
            by_name[event.name] = event

        object.__setattr__(self, "events", events)
        object.__setattr__(self, "_events_by_name", MappingProxyType(by_name))
        object.__setattr__(self, "implicit_properties", _freeze_properties(self.implicit_properties, context))
        object.__setattr__(self, "retired_at", _parse_optional_date(self.retired_at, context))

    def event(self, name: NameLike) -> Optional[EventDefinition]:
        """Look up an event by name, or None."""
        return self._events_by_name.get(name_of(name))


@dataclass(frozen=True)
class VersionDefinition:
    """One released version of the catalog."""
    number: int
    introduced: date
    categories: Mapping[str, CategoryDefinition] = field(default_factory=dict)
    retired_at: Optional[date] = None

    def __post_init__(self):
        if isinstance(self.number, bool) or not isinstance(self.number, int) or self.number <= 0:
            raise ConstructionError(f"Version numbers must be positive integers, got {self.number!r}")

        context = f"version {self.number}"
        object.__setattr__(self, "introduced", _parse_date(self.introduced, context))
        object.__setattr__(self, "retired_at", _parse_optional_date(self.retired_at, context))

        categories = self.categories.values() if isinstance(self.categories, Mapping) else self.categories
        by_name: Dict[str, CategoryDefinition] = {}
        for category in categories:
            if category.name in by_name:
                raise ConstructionError(f"Duplicate category {category.name!r} in version {self.number}")
            for event in category.events:
                if event.version != self.number:
                    raise ConstructionError(
                        f"Event {category.name}/{event.name} declares version {event.version} "
                        f"but is listed under version {self.number}"
                    )
            by_name[category.name] = category
        object.__setattr__(self, "categories", MappingProxyType(by_name))

    def category(self, name: NameLike) -> Optional[CategoryDefinition]:
        """Look up a category by name, or None."""
        return self.categories.get(name_of(name))


@dataclass(frozen=True)
class ResolvedEvent:
    """Result of resolving a (category, event, version) reference."""
    name: str
    version: int
    category: str
    event: str
    category_properties: Mapping[str, Any]
    event_properties: Mapping[str, Any]
    deprecated: bool = False


class DefinitionCatalog:
    """Immutable, validated catalog of allowed analytics events."""

    def __init__(
        self,
        prefix: str = "",
        versions: Iterable[VersionDefinition] = (),
        implicit_properties: Optional[Mapping[str, Any]] = None,
    ):
        """Build and validate the catalog.

        Args:
            prefix: Global prefix prepended to every canonical event name
            versions: Version definitions; numbers must be unique
            implicit_properties: Properties included with every event

        Raises:
            ConstructionError: If any identifier is duplicated or any date is malformed
        """
        if not isinstance(prefix, str):
            raise ConstructionError(f"Catalog prefix must be a string, got {type(prefix).__name__}")

        by_number: Dict[int, VersionDefinition] = {}
        for version in versions:
            if version.number in by_number:
                raise ConstructionError(f"Duplicate version number {version.number}")
            by_number[version.number] = version

        self._prefix = prefix
        self._versions: Tuple[VersionDefinition, ...] = tuple(sorted(by_number.values(), key=lambda v: v.number))
        self._by_number: Mapping[int, VersionDefinition] = MappingProxyType(by_number)
        self._implicit_properties = _freeze_properties(implicit_properties, "catalog")

        logger.debug(
            "Built event catalog: prefix=%r versions=%s",
            self._prefix, [v.number for v in self._versions],
        )

    @classmethod
    def from_dict(cls, data: Union[Mapping[str, Any], CatalogSpec]) -> "DefinitionCatalog":
        """Build a catalog from its nested dictionary form.

        Raises:
            ConstructionError: If the structure does not validate
        """
        if isinstance(data, CatalogSpec):
            spec = data
        else:
            try:
                spec = CatalogSpec.model_validate(data)
            except ValidationError as exc:
                raise ConstructionError(f"Invalid catalog definition: {exc}") from exc

        versions: List[VersionDefinition] = []
        for version_spec in spec.versions:
            categories = []
            for category_spec in version_spec.categories:
                events = [
                    EventDefinition(
                        category=category_spec.name,
                        name=event_spec.name,
                        version=version_spec.number,
                        introduced=event_spec.introduced,
                        description=event_spec.description,
                        implicit_properties=event_spec.implicit_properties,
                        deprecated=event_spec.deprecated,
                        retired_at=event_spec.retired_at,
                        external_name=event_spec.external_name,
                    )
                    for event_spec in category_spec.events
                ]
                categories.append(CategoryDefinition(
                    name=category_spec.name,
                    events=tuple(events),
                    implicit_properties=category_spec.implicit_properties,
                    retired_at=category_spec.retired_at,
                ))
            versions.append(VersionDefinition(
                number=version_spec.number,
                introduced=version_spec.introduced,
                categories=categories,
                retired_at=version_spec.retired_at,
            ))

        return cls(prefix=spec.prefix, versions=versions, implicit_properties=spec.implicit_properties)

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def implicit_properties(self) -> Mapping[str, Any]:
        return self._implicit_properties

    @property
    def versions(self) -> Tuple[VersionDefinition, ...]:
        """Versions in ascending numeric order."""
        return self._versions

    @property
    def highest_version(self) -> Optional[int]:
        return self._versions[-1].number if self._versions else None

    def version(self, number: int) -> VersionDefinition:
        """Return the definition of a specific version.

        Raises:
            UnknownVersion: If the catalog does not define it
        """
        found = self._by_number.get(number)
        if found is None:
            known = ", ".join(str(v.number) for v in self._versions) or "none"
            raise UnknownVersion(
                f"Version {number!r} is not defined (known versions: {known})",
                version=number,
            )
        return found

    def iter_events(self, version: Optional[int] = None) -> Iterator[EventDefinition]:
        """Yield every event, optionally restricted to one version."""
        versions = self._versions if version is None else (self.version(version),)
        for version_def in versions:
            for category in version_def.categories.values():
                yield from category.events

    def _select_version(self, category: str, event: str) -> VersionDefinition:
        for version_def in reversed(self._versions):
            category_def = version_def.categories.get(category)
            if category_def is not None and category_def.event(event) is not None:
                return version_def
        # Nothing defines the pair: let the highest version report what is missing
        return self._versions[-1]

    def resolve_event(self, category: NameLike, event: NameLike, version: Optional[int] = None) -> ResolvedEvent:
        """Resolve an event reference to its canonical name and implicit properties.

        Args:
            category: Category name
            event: Event name
            version: Version number; when omitted, the highest version that
                defines this category and event is used

        Returns:
            ResolvedEvent with the canonical name, the category and event
            implicit properties, and a deprecation flag

        Raises:
            UnknownVersion: If the version does not exist or the catalog is empty
            UnknownCategory: If the selected version has no such category
            UnknownEvent: If the category has no such event
        """
        category_name = name_of(category)
        event_name = name_of(event)

        if not self._versions:
            raise UnknownVersion(
                f"Cannot resolve {category_name}/{event_name}: the catalog defines no versions",
                category=category_name, event=event_name, version=version,
            )

        if version is None:
            version_def = self._select_version(category_name, event_name)
        else:
            version_def = self.version(version)

        category_def = version_def.categories.get(category_name)
        if category_def is None:
            known = ", ".join(sorted(version_def.categories)) or "none"
            raise UnknownCategory(
                f"Version {version_def.number} has no category {category_name!r} "
                f"(known categories: {known})",
                category=category_name, event=event_name, version=version_def.number,
            )

        event_def = category_def.event(event_name)
        if event_def is None:
            known = ", ".join(e.name for e in category_def.events) or "none"
            raise UnknownEvent(
                f"Category {category_name!r} in version {version_def.number} has no event "
                f"{event_name!r} (known events: {known})",
                category=category_name, event=event_name, version=version_def.number,
            )

        name = event_def.external_name or canonical_event_name(
            self._prefix, version_def.number, category_name, event_name
        )
        deprecated = (
            event_def.is_deprecated
            or category_def.retired_at is not None
            or version_def.retired_at is not None
        )
        return ResolvedEvent(
            name=name,
            version=version_def.number,
            category=category_name,
            event=event_name,
            category_properties=category_def.implicit_properties,
            event_properties=event_def.implicit_properties,
            deprecated=deprecated,
        )

    def event_name(self, category: NameLike, event: NameLike, version: Optional[int] = None) -> str:
        """Return just the canonical name for an event reference."""
        return self.resolve_event(category, event, version).name
