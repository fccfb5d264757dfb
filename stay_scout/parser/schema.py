# File: stay_scout/parser/schema.py
"""Allow-list schemas and the generic helpers that apply them.

A schema is a plain mapping ``field name -> True | sub-schema``. ``True`` keeps
the value as is, a nested mapping keeps only the enumerated sub-fields. Lists
are handled transparently: the schema is applied to every element. Changing
what a tool returns is therefore a data change in this module, not a code
change in the extractor.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Dict, Optional, Union

__all__: Sequence[str] = (
    "Schema",
    "dig",
    "pick_by_schema",
    "flatten_arrays",
    "clean",
    "SEARCH_RESULT_SCHEMA",
    "SECTION_SCHEMAS",
    "REVIEW_SCHEMA",
    "PRICE_LINE_SCHEMA",
)

Schema = Mapping[str, Union[bool, "Schema"]]
PathStep = Union[str, int]

_DROP_KEYS = frozenset({"__typename"})


# ---------------------------------------------------------------------------
# Fallible navigation
# ---------------------------------------------------------------------------


def dig(obj: Any, *path: PathStep) -> Optional[Any]:
    """Follow *path* through nested dicts/lists; ``None`` as soon as a step is missing."""
    current = obj
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, list) or not -len(current) <= step < len(current):
                return None
            current = current[step]
        else:
            if not isinstance(current, Mapping) or step not in current:
                return None
            current = current[step]
        if current is None:
            return None
    return current


# ---------------------------------------------------------------------------
# Allow-list application
# ---------------------------------------------------------------------------


def pick_by_schema(obj: Any, schema: Schema) -> Any:
    """Keep only the fields enumerated in *schema* (recursively)."""
    if isinstance(obj, list):
        return [pick_by_schema(item, schema) for item in obj]
    if not isinstance(obj, Mapping):
        return obj
    result: Dict[str, Any] = {}
    for key, rule in schema.items():
        if key not in obj:
            continue
        if rule is True:
            result[key] = obj[key]
        elif isinstance(rule, Mapping):
            result[key] = pick_by_schema(obj[key], rule)
    return result


def flatten_arrays(value: Any, in_array: bool = False) -> Any:
    """Turn arrays into scalar-friendly strings.

    Lists become ``", "``-joined strings; a mapping inside a list becomes its
    values joined with ``": "``. Mappings outside lists keep their shape.
    """
    if isinstance(value, list):
        return ", ".join(str(flatten_arrays(item, True)) for item in value)
    if isinstance(value, Mapping):
        if in_array:
            return ": ".join(str(flatten_arrays(v, True)) for v in value.values())
        return {k: flatten_arrays(v, False) for k, v in value.items()}
    return value


def clean(value: Any) -> Any:
    """Drop ``None`` leaves and ``__typename`` keys, returning a new structure."""
    if isinstance(value, Mapping):
        return {
            k: clean(v)
            for k, v in value.items()
            if v is not None and k not in _DROP_KEYS
        }
    if isinstance(value, list):
        return [clean(item) for item in value if item is not None]
    return value


# ---------------------------------------------------------------------------
# Output contracts per tool
# ---------------------------------------------------------------------------

SEARCH_RESULT_SCHEMA: Schema = {
    "demandStayListing": {
        "id": True,
        "description": True,
        "location": True,
    },
    "badges": {
        "text": True,
    },
    "structuredContent": {
        "mapCategoryInfo": {"body": True},
        "mapSecondaryLine": {"body": True},
        "primaryLine": {"body": True},
        "secondaryLine": {"body": True},
    },
    "avgRatingA11yLabel": True,
    "listingParamOverrides": True,
    "structuredDisplayPrice": {
        "primaryLine": {"accessibilityLabel": True},
        "secondaryLine": {"accessibilityLabel": True},
        "explanationData": {
            "title": True,
            "priceDetails": {
                "items": {
                    "description": True,
                    "priceString": True,
                },
            },
        },
    },
}

SECTION_SCHEMAS: Mapping[str, Schema] = {
    "LOCATION_DEFAULT": {
        "lat": True,
        "lng": True,
        "subtitle": True,
        "title": True,
    },
    "POLICIES_DEFAULT": {
        "title": True,
        "houseRulesSections": {
            "title": True,
            "items": {"title": True},
        },
    },
    "HIGHLIGHTS_DEFAULT": {
        "highlights": {"title": True},
    },
    "DESCRIPTION_DEFAULT": {
        "htmlDescription": {"htmlText": True},
    },
    "AMENITIES_DEFAULT": {
        "title": True,
        "seeAllAmenitiesGroups": {
            "title": True,
            "amenities": {"title": True},
        },
    },
}

REVIEW_SCHEMA: Schema = {
    "comments": True,
    "rating": True,
    "localizedDate": True,
    "language": True,
    "reviewer": {"firstName": True},
    "response": True,
}

PRICE_LINE_SCHEMA: Schema = {
    "description": True,
    "priceString": True,
}
