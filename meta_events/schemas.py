"""
Input schemas for building a DefinitionCatalog.

These Pydantic models describe the nested in-memory structure a catalog is
built from. Where that structure comes from (a JSON file, a Python literal,
a database row) is up to the caller.
"""

import re
from datetime import date
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _require_iso_date(value: Any) -> Any:
    # pydantic would read an all-digit string as a unix timestamp
    if isinstance(value, str) and not ISO_DATE.match(value):
        raise ValueError(f"Malformed date {value!r}; expected YYYY-MM-DD")
    return value


IsoDate = Annotated[date, BeforeValidator(_require_iso_date)]


class EventSpec(BaseModel):
    """One event inside a category."""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, description="Event name, unique within its category")
    introduced: IsoDate = Field(description="Date the event was introduced (YYYY-MM-DD)")
    description: str = Field(default="", description="Free-text description of when the event fires")
    implicit_properties: Dict[str, Any] = Field(default_factory=dict, description="Properties sent with every firing of this event")
    deprecated: bool = Field(default=False, description="Whether using this event should log a warning")
    retired_at: Optional[IsoDate] = Field(default=None, description="Date the event was retired; implies deprecated")
    external_name: Optional[str] = Field(default=None, description="Wire name overriding the canonical name")


class CategorySpec(BaseModel):
    """A named group of events."""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, description="Category name, unique within its version")
    implicit_properties: Dict[str, Any] = Field(default_factory=dict, description="Properties sent with every event in the category")
    retired_at: Optional[IsoDate] = Field(default=None, description="Date the category was retired")
    events: List[EventSpec] = Field(default_factory=list)


class VersionSpec(BaseModel):
    """One version of the catalog."""
    model_config = ConfigDict(extra="forbid")

    number: int = Field(description="Positive version number, unique within the catalog")
    introduced: IsoDate = Field(description="Release date of this version (YYYY-MM-DD)")
    retired_at: Optional[IsoDate] = Field(default=None, description="Date the whole version was retired")
    categories: List[CategorySpec] = Field(default_factory=list)


class CatalogSpec(BaseModel):
    """Root of the catalog input structure."""
    model_config = ConfigDict(extra="forbid")

    prefix: str = Field(default="", description="Global prefix prepended to every event name")
    implicit_properties: Dict[str, Any] = Field(default_factory=dict, description="Properties sent with every event")
    versions: List[VersionSpec] = Field(default_factory=list)
