from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

OPENED_PUSH_METRIC = "$opened_push"
PUSH_SENTINEL_KEY = "_k"
PUSH_TOKEN_PROPERTY = "push_token"

ResultValue = Union[str, bool, None]


class ProfileKey(str, Enum):
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    ORGANIZATION = "organization"
    TITLE = "title"
    IMAGE = "image"
    ADDRESS1 = "address1"
    ADDRESS2 = "address2"
    CITY = "city"
    COUNTRY = "country"
    LATITUDE = "latitude"
    LONGITUDE = "longitude"
    REGION = "region"
    ZIP = "zip"
    TIMEZONE = "timezone"


@dataclass(frozen=True)
class Command:
    """A named request crossing the channel, with its loosely-typed arguments."""

    name: str
    arguments: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        if self.arguments is not None and not isinstance(self.arguments, MappingProxyType):
            if isinstance(self.arguments, Mapping):
                object.__setattr__(self, "arguments", MappingProxyType(dict(self.arguments)))


@dataclass(frozen=True)
class Location:
    address1: Optional[str] = None
    address2: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    region: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address1": self.address1,
            "address2": self.address2,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "region": self.region,
        }


@dataclass
class AnalyticsProfile:
    email: Optional[str] = None
    phone_number: Optional[str] = None
    external_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    organization: Optional[str] = None
    title: Optional[str] = None
    image: Optional[str] = None
    location: Optional[Location] = None
    properties: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Return only the fields that are set; absent fields mean "do not change"."""
        payload: Dict[str, Any] = {}
        for key in (
            "email",
            "phone_number",
            "external_id",
            "first_name",
            "last_name",
            "organization",
            "title",
            "image",
        ):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        if self.location is not None:
            payload["location"] = self.location.to_dict()
        if self.properties:
            payload["properties"] = dict(self.properties)
        return payload


@dataclass
class AnalyticsEvent:
    metric_name: str
    properties: Dict[str, Any] = field(default_factory=dict)
    profile: Optional[AnalyticsProfile] = None


class DispatchResult:
    ok = False
    implemented = True


@dataclass(frozen=True)
class Success(DispatchResult):
    value: ResultValue = None

    ok = True


@dataclass(frozen=True)
class Failure(DispatchResult):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None


class _NotImplemented(DispatchResult):
    implemented = False

    def __repr__(self) -> str:
        return "NOT_IMPLEMENTED"


NOT_IMPLEMENTED = _NotImplemented()
