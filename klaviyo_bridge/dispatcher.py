from __future__ import annotations

import logging
from functools import partial
from time import perf_counter
from typing import Any, Callable, Dict, Mapping, Optional

from .client import AnalyticsClient
from .errors import CLIENT_ERROR, BridgeError, ClientOperationFailure
from .methods import (
    METHOD_GET_EMAIL,
    METHOD_GET_EXTERNAL_ID,
    METHOD_GET_PHONE_NUMBER,
    METHOD_HANDLE_PUSH,
    METHOD_INITIALIZE,
    METHOD_LOG_EVENT,
    METHOD_MAP,
    METHOD_RESET_PROFILE,
    METHOD_SEND_TOKEN,
    METHOD_SET_BADGE_COUNT,
    METHOD_SET_CUSTOM_ATTRIBUTE,
    METHOD_SET_EMAIL,
    METHOD_SET_EXTERNAL_ID,
    METHOD_SET_PHONE_NUMBER,
    METHOD_UPDATE_PROFILE,
    PROFILE_ATTRIBUTES,
    ProfileAttribute,
)
from .models import (
    NOT_IMPLEMENTED,
    OPENED_PUSH_METRIC,
    PUSH_SENTINEL_KEY,
    PUSH_TOKEN_PROPERTY,
    AnalyticsEvent,
    Command,
    DispatchResult,
    Failure,
    ProfileKey,
    ResultValue,
    Success,
)
from .platforms import POLICIES, Platform, resolve_platform
from .profile import build_profile
from .tokens import decode_hex_token
from .validation import decode_arguments, serializable_properties

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], ResultValue]

PROFILE_UPDATE_ERROR = "Profile update error"
PROFILE_ATTRIBUTE_ERROR = "Set profile attribute error"
HANDLE_PUSH_ERROR = "Failed handle push metaData"

_CLIENT_ERROR_CODES = {
    METHOD_UPDATE_PROFILE: PROFILE_UPDATE_ERROR,
    METHOD_HANDLE_PUSH: HANDLE_PUSH_ERROR,
    METHOD_SET_CUSTOM_ATTRIBUTE: PROFILE_ATTRIBUTE_ERROR,
}
_CLIENT_ERROR_CODES.update({attr.method: PROFILE_ATTRIBUTE_ERROR for attr in PROFILE_ATTRIBUTES})


def is_klaviyo_push(payload: Any) -> bool:
    return isinstance(payload, Mapping) and PUSH_SENTINEL_KEY in payload


class CommandDispatcher:
    """Translates named channel commands into analytics client calls.

    The client must have been initialized (via the ``initialize`` command)
    before other commands are useful; the dispatcher does not enforce the
    ordering and reports whatever the client raises as a Failure.
    """

    def __init__(self, client: AnalyticsClient, platform: str | Platform = Platform.IOS):
        self.client = client
        self.platform = resolve_platform(platform)
        self.policy = POLICIES[self.platform]
        self.handlers: Dict[str, Handler] = {
            METHOD_INITIALIZE: self._initialize,
            METHOD_SEND_TOKEN: self._send_token,
            METHOD_UPDATE_PROFILE: self._update_profile,
            METHOD_LOG_EVENT: self._log_event,
            METHOD_HANDLE_PUSH: self._handle_push,
            METHOD_SET_EXTERNAL_ID: self._set_external_id,
            METHOD_GET_EXTERNAL_ID: lambda _: self.client.get_external_id(),
            METHOD_RESET_PROFILE: self._reset_profile,
            METHOD_SET_EMAIL: self._set_email,
            METHOD_GET_EMAIL: lambda _: self.client.get_email(),
            METHOD_SET_PHONE_NUMBER: self._set_phone_number,
            METHOD_GET_PHONE_NUMBER: lambda _: self.client.get_phone_number(),
            METHOD_SET_CUSTOM_ATTRIBUTE: self._set_custom_attribute,
        }
        for attr in PROFILE_ATTRIBUTES:
            self.handlers[attr.method] = partial(self._set_profile_attribute, attr)
        if self.policy.supports_badge_count:
            self.handlers[METHOD_SET_BADGE_COUNT] = self._set_badge_count

    def supports(self, name: str) -> bool:
        return name in self.handlers

    def invoke(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> DispatchResult:
        return self.dispatch(Command(name=name, arguments=arguments))

    def dispatch(self, command: Command) -> DispatchResult:
        name = command.name
        handler = self.handlers.get(name) if isinstance(name, str) else None
        if handler is None:
            logger.info("method not implemented on %s: %r", self.platform.value, name)
            return NOT_IMPLEMENTED

        started = perf_counter()
        try:
            arguments = decode_arguments(METHOD_MAP[name], command.arguments)
            value = handler(arguments)
        except BridgeError as exc:
            self._log_failure(name, exc.error_code, exc.message, started)
            return Failure(code=exc.error_code, message=exc.message, details=exc.details)
        except Exception as exc:  # pylint: disable=broad-except
            failure = ClientOperationFailure(_CLIENT_ERROR_CODES.get(name, CLIENT_ERROR), exc)
            self._log_failure(name, failure.error_code, failure.message, started, exc_info=True)
            return Failure(code=failure.error_code, message=failure.message, details=failure.details)

        logger.debug("%s ok in %dms", name, _elapsed_ms(started))
        return Success(value)

    def _log_failure(
        self,
        name: str,
        error_code: str,
        message: str,
        started: float,
        exc_info: bool = False,
    ) -> None:
        logger.warning(
            "%s failed: error_code=%s message=%s latency_ms=%d",
            name,
            error_code,
            message,
            _elapsed_ms(started),
            exc_info=exc_info,
        )

    def _initialize(self, arguments: Dict[str, Any]) -> ResultValue:
        self.client.initialize(arguments["apiKey"])
        return "initialized"

    def _send_token(self, arguments: Dict[str, Any]) -> ResultValue:
        token = arguments["token"]
        if self.policy.push_token_as_bytes:
            self.client.set_push_token(decode_hex_token(token))
        else:
            self.client.set_push_token(token)
        return "Token sent to Klaviyo"

    def _set_badge_count(self, arguments: Dict[str, Any]) -> ResultValue:
        self.client.set_badge_count(int(arguments["count"]))
        return "Badge count set"

    def _update_profile(self, arguments: Dict[str, Any]) -> ResultValue:
        profile = build_profile(arguments)
        self.client.set_profile(profile)
        logger.debug("profile updated: %s", sorted(profile.to_dict()))
        return "Profile updated"

    def _log_event(self, arguments: Dict[str, Any]) -> ResultValue:
        event_name = arguments["name"]
        meta_data = arguments.get("metaData")
        if not isinstance(meta_data, Mapping):
            # Missing or unreadable metaData sends nothing; callers check for a null result.
            logger.debug("logEvent %s skipped: metaData is %s", event_name, type(meta_data).__name__)
            return None
        event = AnalyticsEvent(metric_name=event_name, properties=serializable_properties(meta_data))
        self.client.create_event(event)
        return f"Event[{event_name}] created"

    def _handle_push(self, arguments: Dict[str, Any]) -> ResultValue:
        message = arguments["message"]
        if not is_klaviyo_push(message):
            return False

        properties = serializable_properties(message)
        push_token = self.client.get_push_token()
        if push_token:
            properties[PUSH_TOKEN_PROPERTY] = (
                push_token.hex() if isinstance(push_token, bytes) else push_token
            )
        self.client.create_event(AnalyticsEvent(metric_name=OPENED_PUSH_METRIC, properties=properties))
        return True

    def _set_external_id(self, arguments: Dict[str, Any]) -> ResultValue:
        self.client.set_external_id(arguments["id"])
        return "ID updated"

    def _reset_profile(self, arguments: Dict[str, Any]) -> ResultValue:
        self.client.reset_profile()
        return True

    def _set_email(self, arguments: Dict[str, Any]) -> ResultValue:
        self.client.set_email(arguments["email"])
        return "Email updated"

    def _set_phone_number(self, arguments: Dict[str, Any]) -> ResultValue:
        self.client.set_phone_number(arguments["phoneNumber"])
        return "Phone number updated"

    def _set_profile_attribute(self, attr: ProfileAttribute, arguments: Dict[str, Any]) -> ResultValue:
        if attr.key is ProfileKey.TIMEZONE and self.policy.derives_timezone:
            return "Success"
        self.client.set_profile_attribute(attr.key.value, arguments[attr.argument])
        return f"{attr.label} updated"

    def _set_custom_attribute(self, arguments: Dict[str, Any]) -> ResultValue:
        key = arguments["key"]
        self.client.set_profile_attribute(key, arguments["value"])
        return f"Attribute '{key}' updated"


def _elapsed_ms(started: float) -> int:
    return max(int((perf_counter() - started) * 1000), 0)
