from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class Platform(str, Enum):
    IOS = "ios"
    ANDROID = "android"


@dataclass(frozen=True)
class PlatformPolicy:
    # APNs wants raw bytes, FCM takes the registration id as-is.
    push_token_as_bytes: bool
    # iOS reads the timezone from the device, setTimezone becomes a no-op.
    derives_timezone: bool
    supports_badge_count: bool


POLICIES: Dict[Platform, PlatformPolicy] = {
    Platform.IOS: PlatformPolicy(
        push_token_as_bytes=True,
        derives_timezone=True,
        supports_badge_count=True,
    ),
    Platform.ANDROID: PlatformPolicy(
        push_token_as_bytes=False,
        derives_timezone=False,
        supports_badge_count=False,
    ),
}


def resolve_platform(value: str | Platform) -> Platform:
    if isinstance(value, Platform):
        return value
    normalized = (value or "").strip().lower()
    try:
        return Platform(normalized)
    except ValueError:
        valid = ", ".join(p.value for p in Platform)
        raise ValueError(f"unknown platform '{value}', expected one of: {valid}") from None
