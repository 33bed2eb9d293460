"""Builds an AnalyticsProfile from an updateProfile argument map.

Known keys become profile fields. Every other top-level key is a custom
attribute, and the nested ``properties`` map is unwrapped one level into that
same namespace afterwards, so a nested key overrides a top-level one.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from .models import AnalyticsProfile, Location
from .validation import coerce_coordinate, serializable_properties

PROFILE_PROPERTIES_KEY = "properties"

PROFILE_FIELDS = (
    "email",
    "phone_number",
    "external_id",
    "first_name",
    "last_name",
    "organization",
    "title",
    "image",
)

LOCATION_FIELDS = ("address1", "address2", "latitude", "longitude", "region")


def build_location(arguments: Mapping[str, Any]) -> Optional[Location]:
    """Return a Location only when every location field is present."""
    if any(arguments.get(key) is None for key in LOCATION_FIELDS):
        return None
    return Location(
        address1=arguments["address1"],
        address2=arguments["address2"],
        latitude=coerce_coordinate(arguments["latitude"], "latitude"),
        longitude=coerce_coordinate(arguments["longitude"], "longitude"),
        region=arguments["region"],
    )


def flatten_custom_properties(arguments: Mapping[str, Any]) -> Dict[str, Any]:
    reserved = set(PROFILE_FIELDS) | set(LOCATION_FIELDS) | {PROFILE_PROPERTIES_KEY}
    custom = {key: value for key, value in arguments.items() if key not in reserved}
    nested = arguments.get(PROFILE_PROPERTIES_KEY)
    if isinstance(nested, Mapping):
        custom.update(nested)
    return serializable_properties(custom)


def build_profile(arguments: Mapping[str, Any]) -> AnalyticsProfile:
    fields = {key: arguments.get(key) for key in PROFILE_FIELDS}
    return AnalyticsProfile(
        location=build_location(arguments),
        properties=flatten_custom_properties(arguments),
        **fields,
    )
