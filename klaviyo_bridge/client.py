"""Analytics client capability consumed by the dispatcher."""

from __future__ import annotations

import logging
from collections import deque
from copy import deepcopy
from threading import Lock
from typing import Any, Deque, Dict, Optional, Protocol, Union

from .errors import ClientNotInitialized
from .models import AnalyticsEvent, AnalyticsProfile

logger = logging.getLogger(__name__)

DEFAULT_MAX_EVENTS = 1000

PushToken = Union[bytes, str]

_PROFILE_FIELDS = frozenset(
    {
        "email",
        "phone_number",
        "external_id",
        "first_name",
        "last_name",
        "organization",
        "title",
        "image",
    }
)


class AnalyticsClient(Protocol):
    """Operations the bridge needs from the vendor SDK.

    Writes may be fire-and-forget; the dispatcher only waits for the call to
    return. Thread-safety is the implementation's concern.
    """

    def initialize(self, api_key: str) -> None: ...

    def set_push_token(self, token: PushToken) -> None: ...

    def get_push_token(self) -> Optional[PushToken]: ...

    def set_profile(self, profile: AnalyticsProfile) -> None: ...

    def create_event(self, event: AnalyticsEvent) -> None: ...

    def set_profile_attribute(self, key: str, value: Any) -> None: ...

    def set_external_id(self, external_id: str) -> None: ...

    def get_external_id(self) -> Optional[str]: ...

    def reset_profile(self) -> None: ...

    def set_email(self, email: str) -> None: ...

    def get_email(self) -> Optional[str]: ...

    def set_phone_number(self, phone_number: str) -> None: ...

    def get_phone_number(self) -> Optional[str]: ...

    def set_badge_count(self, count: int) -> None: ...


class InMemoryAnalyticsClient:
    """Keeps SDK state in-process; used for local runs and as a test double.

    Only the most recent ``max_events`` events are retained.
    """

    def __init__(self, max_events: int = DEFAULT_MAX_EVENTS) -> None:
        if max_events < 1:
            raise ValueError("max_events must be at least 1")
        self._lock = Lock()
        self.api_key: Optional[str] = None
        self.push_token: Optional[PushToken] = None
        self.badge_count: Optional[int] = None
        self.profile = AnalyticsProfile()
        self.events: Deque[AnalyticsEvent] = deque(maxlen=max_events)

    @property
    def initialized(self) -> bool:
        return self.api_key is not None

    def _require_initialized(self, operation: str) -> None:
        if self.api_key is None:
            raise ClientNotInitialized(f"{operation} called before initialize")

    def initialize(self, api_key: str) -> None:
        with self._lock:
            if self.api_key is not None and self.api_key != api_key:
                # Switching accounts starts a fresh profile.
                self.profile = AnalyticsProfile()
            self.api_key = api_key
        logger.info("analytics client initialized")

    def set_push_token(self, token: PushToken) -> None:
        with self._lock:
            self._require_initialized("set_push_token")
            self.push_token = token

    def get_push_token(self) -> Optional[PushToken]:
        return self.push_token

    def set_profile(self, profile: AnalyticsProfile) -> None:
        with self._lock:
            self._require_initialized("set_profile")
            current = self.profile
            for key, value in profile.to_dict().items():
                if key == "properties":
                    current.properties.update(value)
                elif key == "location":
                    current.location = profile.location
                else:
                    setattr(current, key, value)

    def create_event(self, event: AnalyticsEvent) -> None:
        with self._lock:
            self._require_initialized("create_event")
            self.events.append(deepcopy(event))
        logger.debug("event queued: %s (%d properties)", event.metric_name, len(event.properties))

    def set_profile_attribute(self, key: str, value: Any) -> None:
        with self._lock:
            self._require_initialized("set_profile_attribute")
            if key in _PROFILE_FIELDS:
                setattr(self.profile, key, value)
            else:
                self.profile.properties[key] = value

    def set_external_id(self, external_id: str) -> None:
        with self._lock:
            self._require_initialized("set_external_id")
            self.profile.external_id = external_id

    def get_external_id(self) -> Optional[str]:
        return self.profile.external_id

    def reset_profile(self) -> None:
        with self._lock:
            # The push token belongs to the device, not the profile.
            self.profile = AnalyticsProfile()

    def set_email(self, email: str) -> None:
        with self._lock:
            self._require_initialized("set_email")
            self.profile.email = email

    def get_email(self) -> Optional[str]:
        return self.profile.email

    def set_phone_number(self, phone_number: str) -> None:
        with self._lock:
            self._require_initialized("set_phone_number")
            self.profile.phone_number = phone_number

    def get_phone_number(self) -> Optional[str]:
        return self.profile.phone_number

    def set_badge_count(self, count: int) -> None:
        with self._lock:
            self._require_initialized("set_badge_count")
            self.badge_count = count

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            token = self.push_token
            return {
                "initialized": self.api_key is not None,
                "push_token": token.hex() if isinstance(token, bytes) else token,
                "badge_count": self.badge_count,
                "profile": self.profile.to_dict(),
                "event_count": len(self.events),
            }


_shared_client: Optional[InMemoryAnalyticsClient] = None
_shared_lock = Lock()


def get_shared_client() -> InMemoryAnalyticsClient:
    """Return the process-wide client, creating it on first use."""

    global _shared_client

    with _shared_lock:
        if _shared_client is None:
            _shared_client = InMemoryAnalyticsClient()
        return _shared_client


def reset_shared_client() -> None:
    global _shared_client

    with _shared_lock:
        _shared_client = None


__all__ = [
    "AnalyticsClient",
    "InMemoryAnalyticsClient",
    "PushToken",
    "get_shared_client",
    "reset_shared_client",
]
