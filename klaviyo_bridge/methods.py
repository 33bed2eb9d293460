from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .models import ProfileKey

CHANNEL_NAME = "com.rightbite.denisr/klaviyo"

METHOD_INITIALIZE = "initialize"
METHOD_SEND_TOKEN = "sendTokenToKlaviyo"
METHOD_SET_BADGE_COUNT = "setBadgeCount"
METHOD_UPDATE_PROFILE = "updateProfile"
METHOD_LOG_EVENT = "logEvent"
METHOD_HANDLE_PUSH = "handlePush"
METHOD_SET_EXTERNAL_ID = "setExternalId"
METHOD_GET_EXTERNAL_ID = "getExternalId"
METHOD_RESET_PROFILE = "resetProfile"
METHOD_SET_EMAIL = "setEmail"
METHOD_GET_EMAIL = "getEmail"
METHOD_SET_PHONE_NUMBER = "setPhoneNumber"
METHOD_GET_PHONE_NUMBER = "getPhoneNumber"
METHOD_SET_TIMEZONE = "setTimezone"
METHOD_SET_CUSTOM_ATTRIBUTE = "setCustomAttribute"

# Extra or malformed params are ignored by methods that take none.
NO_ARGUMENTS_SCHEMA: Dict[str, Any] = {}


@dataclass(frozen=True)
class Method:
    name: str
    description: str
    input_schema: Dict[str, Any]
    # Caller-facing text per invalid field; "*" covers a missing argument map.
    messages: Dict[str, str] = field(default_factory=dict)

    def message_for(self, field_name: Optional[str]) -> str:
        if field_name and field_name in self.messages:
            return self.messages[field_name]
        if "*" in self.messages:
            return self.messages["*"]
        if field_name:
            return f"'{field_name}' must be a non-null String"
        return f"Method {self.name} received invalid arguments"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass(frozen=True)
class ProfileAttribute:
    """A single-field setter: method name, profile key, label and argument key."""

    method: str
    key: ProfileKey
    label: str
    argument: str


PROFILE_ATTRIBUTES: List[ProfileAttribute] = [
    ProfileAttribute("setFirstName", ProfileKey.FIRST_NAME, "First name", "firstName"),
    ProfileAttribute("setLastName", ProfileKey.LAST_NAME, "Last name", "lastName"),
    ProfileAttribute("setOrganization", ProfileKey.ORGANIZATION, "Organization", "organization"),
    ProfileAttribute("setTitle", ProfileKey.TITLE, "Title", "title"),
    ProfileAttribute("setImage", ProfileKey.IMAGE, "Image", "image"),
    ProfileAttribute("setAddress1", ProfileKey.ADDRESS1, "Address 1", "address"),
    ProfileAttribute("setAddress2", ProfileKey.ADDRESS2, "Address 2", "address"),
    ProfileAttribute("setCity", ProfileKey.CITY, "City", "city"),
    ProfileAttribute("setCountry", ProfileKey.COUNTRY, "Country", "country"),
    ProfileAttribute("setLatitude", ProfileKey.LATITUDE, "Latitude", "latitude"),
    ProfileAttribute("setLongitude", ProfileKey.LONGITUDE, "Longitude", "longitude"),
    ProfileAttribute("setRegion", ProfileKey.REGION, "Region", "region"),
    ProfileAttribute("setZip", ProfileKey.ZIP, "Zip", "zip"),
    ProfileAttribute(METHOD_SET_TIMEZONE, ProfileKey.TIMEZONE, "Timezone", "timezone"),
]

PROFILE_ATTRIBUTE_MAP = {attr.method: attr for attr in PROFILE_ATTRIBUTES}


def _required_strings(*keys: str, min_length: int = 0) -> Dict[str, Any]:
    prop: Dict[str, Any] = {"type": "string"}
    if min_length:
        prop["minLength"] = min_length
    return {
        "type": "object",
        "properties": {key: dict(prop) for key in keys},
        "required": list(keys),
    }


_COORDINATE = {"type": ["string", "number", "null"]}

UPDATE_PROFILE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "email": {"type": ["string", "null"]},
        "phone_number": {"type": ["string", "null"]},
        "external_id": {"type": ["string", "null"]},
        "first_name": {"type": ["string", "null"]},
        "last_name": {"type": ["string", "null"]},
        "organization": {"type": ["string", "null"]},
        "title": {"type": ["string", "null"]},
        "image": {"type": ["string", "null"]},
        "address1": {"type": ["string", "null"]},
        "address2": {"type": ["string", "null"]},
        "latitude": _COORDINATE,
        "longitude": _COORDINATE,
        "region": {"type": ["string", "null"]},
        "properties": {"type": ["object", "null"]},
    },
    "additionalProperties": True,
}


METHODS: List[Method] = [
    Method(
        name=METHOD_INITIALIZE,
        description="Configure the analytics client with a public API key.",
        input_schema=_required_strings("apiKey", min_length=1),
        messages={"*": "API key must be provided"},
    ),
    Method(
        name=METHOD_SEND_TOKEN,
        description="Register the device push token.",
        input_schema=_required_strings("token", min_length=1),
        messages={"*": "Token must be provided"},
    ),
    Method(
        name=METHOD_SET_BADGE_COUNT,
        description="Set the application badge count (iOS).",
        input_schema={
            "type": "object",
            "properties": {"count": {"type": "integer"}},
            "required": ["count"],
        },
        messages={"*": "count must be an Int"},
    ),
    Method(
        name=METHOD_UPDATE_PROFILE,
        description="Update profile fields and custom properties in one call.",
        input_schema=UPDATE_PROFILE_SCHEMA,
        messages={
            "*": "Profile must be provided",
            "latitude": "latitude must be a number or numeric String",
            "longitude": "longitude must be a number or numeric String",
            "properties": "properties must be a Map",
        },
    ),
    Method(
        name=METHOD_LOG_EVENT,
        description="Create a custom event; metaData becomes event properties.",
        input_schema={
            "type": "object",
            "properties": {"name": {"type": "string", "minLength": 1}},
            "required": ["name"],
        },
        messages={"*": "Event name must be provided"},
    ),
    Method(
        name=METHOD_HANDLE_PUSH,
        description="Record an opened push when the payload carries the Klaviyo marker.",
        input_schema={
            "type": "object",
            "properties": {"message": {"type": "object"}},
            "required": ["message"],
        },
        messages={"*": "Push message must be provided"},
    ),
    Method(
        name=METHOD_SET_EXTERNAL_ID,
        description="Set the profile external id.",
        input_schema=_required_strings("id"),
        messages={"*": "External ID must be provided"},
    ),
    Method(
        name=METHOD_GET_EXTERNAL_ID,
        description="Return the profile external id, or null.",
        input_schema=NO_ARGUMENTS_SCHEMA,
    ),
    Method(
        name=METHOD_RESET_PROFILE,
        description="Clear the current profile identifiers.",
        input_schema=NO_ARGUMENTS_SCHEMA,
    ),
    Method(
        name=METHOD_SET_EMAIL,
        description="Set the profile email.",
        input_schema=_required_strings("email"),
        messages={"*": "Email must be provided"},
    ),
    Method(
        name=METHOD_GET_EMAIL,
        description="Return the profile email, or null.",
        input_schema=NO_ARGUMENTS_SCHEMA,
    ),
    Method(
        name=METHOD_SET_PHONE_NUMBER,
        description="Set the profile phone number.",
        input_schema=_required_strings("phoneNumber"),
        messages={"*": "Phone number must be provided"},
    ),
    Method(
        name=METHOD_GET_PHONE_NUMBER,
        description="Return the profile phone number, or null.",
        input_schema=NO_ARGUMENTS_SCHEMA,
    ),
]

METHODS.extend(
    Method(
        name=attr.method,
        description=f"Set the profile {attr.label.lower()}.",
        input_schema=_required_strings(attr.argument),
        messages={"*": f"{attr.label} must be a non-null String"},
    )
    for attr in PROFILE_ATTRIBUTES
)

METHODS.append(
    Method(
        name=METHOD_SET_CUSTOM_ATTRIBUTE,
        description="Set an arbitrary custom profile attribute.",
        input_schema=_required_strings("key", "value"),
        messages={
            "*": "Method setCustomAttribute requires arguments {key: String, value: String}",
            "key": "Key must not be null",
            "value": "Value must not be null",
        },
    )
)

METHOD_MAP = {method.name: method for method in METHODS}
