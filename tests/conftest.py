"""
Shared fixtures: a small two-version catalog and a tracker bound to it.
"""

import pytest

from meta_events.catalog import DefinitionCatalog
from meta_events.tracker import Tracker


SIMPLE_CATALOG = {
    "prefix": "xy",
    "versions": [
        {
            "number": 1,
            "introduced": "2014-01-31",
            "categories": [
                {
                    "name": "foo",
                    "events": [
                        {"name": "bar", "introduced": "2014-01-31", "description": "this is bar"},
                        {"name": "baz", "introduced": "2014-01-31", "description": "this is baz"},
                    ],
                },
            ],
        },
    ],
}


RICH_CATALOG = {
    "prefix": "ab",
    "implicit_properties": {"app": "digest", "env": {"name": "test"}},
    "versions": [
        {
            "number": 1,
            "introduced": "2014-01-31",
            "retired_at": "2014-06-01",
            "categories": [
                {
                    "name": "user",
                    "events": [
                        {"name": "signup", "introduced": "2014-01-31", "description": "old signup"},
                        {"name": "legacy_login", "introduced": "2014-01-31"},
                    ],
                },
            ],
        },
        {
            "number": 2,
            "introduced": "2014-06-01",
            "categories": [
                {
                    "name": "user",
                    "implicit_properties": {"area": "accounts", "source": "category"},
                    "events": [
                        {
                            "name": "signup",
                            "introduced": "2014-06-01",
                            "description": "user signed up",
                            "implicit_properties": {"source": "event", "flow": {"step": 1}},
                        },
                        {"name": "login", "introduced": "2014-06-01", "deprecated": True},
                    ],
                },
                {
                    "name": "paper",
                    "events": [
                        {"name": "open_pdf", "introduced": "2014-06-01", "external_name": "Open PDF"},
                    ],
                },
            ],
        },
    ],
}


@pytest.fixture
def catalog():
    """Catalog with prefix xy, version 1, category foo, events bar and baz."""
    return DefinitionCatalog.from_dict(SIMPLE_CATALOG)


@pytest.fixture
def rich_catalog():
    """Two-version catalog with implicit properties at every level."""
    return DefinitionCatalog.from_dict(RICH_CATALOG)


@pytest.fixture
def tracker(catalog):
    """Tracker for caller abc123 with one tracker-level implicit property."""
    return Tracker("abc123", catalog, implicit_properties={"imp1": "imp1val1"})
