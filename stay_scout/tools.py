# File: stay_scout/tools.py
"""Tool definitions, argument models and target URL builders.

Arguments arrive as loosely typed JSON. The pydantic models below coerce them
(guest counts become ints, listing ids become strings) and reject what cannot
be coerced; the engine turns a :class:`pydantic.ValidationError` into an
``InputError`` outcome before anything touches the network.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote, urlencode

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
)

from stay_scout.utils import coerce_count

__all__: Sequence[str] = (
    "SearchInput",
    "ListingInput",
    "CostBreakdownInput",
    "CompareInput",
    "DateRange",
    "ReviewsInput",
    "PhotosInput",
    "build_search_url",
    "build_listing_url",
    "TOOL_DEFINITIONS",
)

QueryParams = List[Tuple[str, str]]


# --------------------------------------------------------------------------- #
# Argument models                                                             #
# --------------------------------------------------------------------------- #


class _ToolInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    ignore_robots: bool = Field(
        False, validation_alias=AliasChoices("ignoreRobotsText", "ignoreRobotsTxt", "ignore_robots")
    )

    @field_validator("ignore_robots", mode="before")
    def _none_is_false(cls, v: Any) -> Any:
        return False if v is None else v


class _ListingRef(_ToolInput):
    id: str = Field(..., min_length=1)

    @field_validator("id", mode="before")
    def _id_to_str(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(int(v))
        return v.strip() if isinstance(v, str) else v


class _Guests(BaseModel):
    adults: int = Field(1, ge=0)
    children: int = Field(0, ge=0)
    infants: int = Field(0, ge=0)
    pets: int = Field(0, ge=0)

    @field_validator("adults", "children", "infants", "pets", mode="before")
    def _coerce(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            return cls.model_fields[info.field_name].default
        try:
            return coerce_count(v)
        except (TypeError, ValueError, OverflowError) as exc:
            raise ValueError(f"{info.field_name} must be a number") from exc

    def guest_params(self) -> QueryParams:
        """Guest query parameters; none at all when nobody (adults + children) travels."""
        if self.adults + self.children <= 0:
            return []
        return [
            ("adults", str(self.adults)),
            ("children", str(self.children)),
            ("infants", str(self.infants)),
            ("pets", str(self.pets)),
        ]


class SearchInput(_ToolInput, _Guests):
    location: str = Field(..., min_length=1)
    place_id: Optional[str] = Field(None, alias="placeId")
    checkin: Optional[str] = None
    checkout: Optional[str] = None
    min_price: Optional[float] = Field(None, alias="minPrice", ge=0)
    max_price: Optional[float] = Field(None, alias="maxPrice", ge=0)
    cursor: Optional[str] = None


class ListingInput(_ListingRef, _Guests):
    checkin: Optional[str] = None
    checkout: Optional[str] = None


class CostBreakdownInput(_ListingRef, _Guests):
    checkin: str = Field(..., min_length=1)
    checkout: str = Field(..., min_length=1)


class DateRange(BaseModel):
    checkin: str = Field(..., min_length=1)
    checkout: str = Field(..., min_length=1)


class CompareInput(_ListingRef, _Guests):
    date_ranges: List[DateRange] = Field(..., alias="dateRanges")

    @field_validator("date_ranges", mode="before")
    def _non_empty(cls, v: Any) -> Any:
        if not isinstance(v, list) or not v:
            raise ValueError("dateRanges must be a non-empty array")
        return v


class ReviewsInput(_ListingRef):
    pass


class PhotosInput(_ListingRef):
    pass


# --------------------------------------------------------------------------- #
# URL builders                                                                #
# --------------------------------------------------------------------------- #


def _number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _with_query(base: str, query: QueryParams) -> str:
    return f"{base}?{urlencode(query)}" if query else base


def build_search_url(origin: str, params: SearchInput) -> str:
    query: QueryParams = []
    if params.place_id:
        query.append(("place_id", params.place_id))
    if params.checkin:
        query.append(("checkin", params.checkin))
    if params.checkout:
        query.append(("checkout", params.checkout))
    query.extend(params.guest_params())
    if params.min_price:
        query.append(("price_min", _number(params.min_price)))
    if params.max_price:
        query.append(("price_max", _number(params.max_price)))
    if params.cursor:
        query.append(("cursor", params.cursor))
    return _with_query(f"{origin}/s/{quote(params.location, safe='')}/homes", query)


def build_listing_url(
    origin: str,
    listing_id: str,
    checkin: Optional[str] = None,
    checkout: Optional[str] = None,
    guests: Optional[QueryParams] = None,
) -> str:
    query: QueryParams = []
    if checkin:
        query.append(("check_in", checkin))
    if checkout:
        query.append(("check_out", checkout))
    query.extend(guests or [])
    return _with_query(f"{origin}/rooms/{quote(listing_id, safe='')}", query)


# --------------------------------------------------------------------------- #
# JSON-schema definitions exposed to the transport                            #
# --------------------------------------------------------------------------- #

_ID = {"type": "string", "description": "The listing ID"}
_CHECKIN = {"type": "string", "description": "Check-in date (YYYY-MM-DD)"}
_CHECKOUT = {"type": "string", "description": "Check-out date (YYYY-MM-DD)"}
_IGNORE_TEXT = {"type": "boolean", "description": "Ignore robots.txt rules for this request"}


def _guest_properties() -> Dict[str, Any]:
    return {
        "adults": {"type": "number", "description": "Number of adults"},
        "children": {"type": "number", "description": "Number of children"},
        "infants": {"type": "number", "description": "Number of infants"},
        "pets": {"type": "number", "description": "Number of pets"},
    }


TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "name": "search",
        "description": "Search for listings with various filters and pagination. Provide direct links to the user",
        "inputSchema": {
            "type": "object",
            "properties": {
                "location": {"type": "string", "description": "Location to search for (city, state, etc.)"},
                "placeId": {"type": "string", "description": "Google Maps Place ID (overrides the location parameter)"},
                "checkin": _CHECKIN,
                "checkout": _CHECKOUT,
                **_guest_properties(),
                "minPrice": {"type": "number", "description": "Minimum price for the stay"},
                "maxPrice": {"type": "number", "description": "Maximum price for the stay"},
                "cursor": {"type": "string", "description": "Base64-encoded string used for Pagination"},
                "ignoreRobotsText": _IGNORE_TEXT,
            },
            "required": ["location"],
        },
    },
    {
        "name": "listingDetails",
        "description": "Get detailed information about a specific listing. Provide direct links to the user",
        "inputSchema": {
            "type": "object",
            "properties": {
                "id": _ID,
                "checkin": _CHECKIN,
                "checkout": _CHECKOUT,
                **_guest_properties(),
                "ignoreRobotsText": _IGNORE_TEXT,
            },
            "required": ["id"],
        },
    },
    {
        "name": "comparePrices",
        "description": "Compare prices for a listing across multiple date ranges to find the best booking dates",
        "inputSchema": {
            "type": "object",
            "properties": {
                "id": _ID,
                "dateRanges": {
                    "type": "array",
                    "description": "Array of date ranges to compare, each with checkin and checkout dates",
                    "items": {
                        "type": "object",
                        "properties": {"checkin": _CHECKIN, "checkout": _CHECKOUT},
                        "required": ["checkin", "checkout"],
                    },
                },
                **_guest_properties(),
                "ignoreRobotsText": _IGNORE_TEXT,
            },
            "required": ["id", "dateRanges"],
        },
    },
    {
        "name": "getReviews",
        "description": "Extract reviews and ratings from a listing",
        "inputSchema": {
            "type": "object",
            "properties": {"id": _ID, "ignoreRobotsText": _IGNORE_TEXT},
            "required": ["id"],
        },
    },
    {
        "name": "costBreakdown",
        "description": "Get detailed cost breakdown including all fees for a booking",
        "inputSchema": {
            "type": "object",
            "properties": {
                "id": _ID,
                "checkin": _CHECKIN,
                "checkout": _CHECKOUT,
                **_guest_properties(),
                "ignoreRobotsText": _IGNORE_TEXT,
            },
            "required": ["id", "checkin", "checkout"],
        },
    },
    {
        "name": "getListingPhotos",
        "description": "Extract photo URLs from a listing",
        "inputSchema": {
            "type": "object",
            "properties": {
                "id": _ID,
                "ignoreRobotsTxt": {"type": "boolean", "description": "Ignore robots.txt rules for this request"},
            },
            "required": ["id"],
        },
    },
    {
        "name": "analyzeListingPhotos",
        "description": "Collect listing photos and build a prompt for assessing them",
        "inputSchema": {
            "type": "object",
            "properties": {
                "id": _ID,
                "ignoreRobotsTxt": {"type": "boolean", "description": "Ignore robots.txt rules for this request"},
            },
            "required": ["id"],
        },
    },
]
