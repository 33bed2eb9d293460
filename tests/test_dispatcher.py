import unittest
from typing import Any, Dict, Optional

from klaviyo_bridge.client import InMemoryAnalyticsClient
from klaviyo_bridge.dispatcher import CommandDispatcher
from klaviyo_bridge.methods import METHOD_MAP
from klaviyo_bridge.models import NOT_IMPLEMENTED, Command, Failure, Success
from klaviyo_bridge.platforms import Platform

SUPPORTED_METHODS = [
    "initialize",
    "sendTokenToKlaviyo",
    "setBadgeCount",
    "updateProfile",
    "logEvent",
    "handlePush",
    "setExternalId",
    "getExternalId",
    "resetProfile",
    "setEmail",
    "getEmail",
    "setPhoneNumber",
    "getPhoneNumber",
    "setFirstName",
    "setLastName",
    "setOrganization",
    "setTitle",
    "setImage",
    "setAddress1",
    "setAddress2",
    "setCity",
    "setCountry",
    "setLatitude",
    "setLongitude",
    "setRegion",
    "setZip",
    "setTimezone",
    "setCustomAttribute",
]

VALID_ARGUMENTS: Dict[str, Optional[Dict[str, Any]]] = {
    "initialize": {"apiKey": "pk_test"},
    "sendTokenToKlaviyo": {"token": "0xABCD"},
    "setBadgeCount": {"count": 3},
    "updateProfile": {"email": "a@example.com"},
    "logEvent": {"name": "Viewed Product", "metaData": {"sku": "A1"}},
    "handlePush": {"message": {"_k": "abc"}},
    "setExternalId": {"id": "user-1"},
    "getExternalId": None,
    "resetProfile": None,
    "setEmail": {"email": "a@example.com"},
    "getEmail": None,
    "setPhoneNumber": {"phoneNumber": "+15555550100"},
    "getPhoneNumber": None,
    "setFirstName": {"firstName": "Ada"},
    "setLastName": {"lastName": "Lovelace"},
    "setOrganization": {"organization": "Analytical"},
    "setTitle": {"title": "Engineer"},
    "setImage": {"image": "https://example.com/a.png"},
    "setAddress1": {"address": "1 Main St"},
    "setAddress2": {"address": "Suite 2"},
    "setCity": {"city": "Boston"},
    "setCountry": {"country": "US"},
    "setLatitude": {"latitude": "42.36"},
    "setLongitude": {"longitude": "-71.05"},
    "setRegion": {"region": "MA"},
    "setZip": {"zip": "02110"},
    "setTimezone": {"timezone": "America/New_York"},
    "setCustomAttribute": {"key": "plan", "value": "pro"},
}


class BrokenClient(InMemoryAnalyticsClient):
    def set_profile(self, profile) -> None:
        raise RuntimeError("backend unavailable")

    def set_profile_attribute(self, key, value) -> None:
        raise RuntimeError("attribute rejected")

    def create_event(self, event) -> None:
        raise RuntimeError("queue full")


class DispatcherContractTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = InMemoryAnalyticsClient()
        self.client.initialize("pk_test")
        self.dispatcher = CommandDispatcher(self.client, platform=Platform.IOS)

    def test_registry_covers_channel_methods(self) -> None:
        self.assertEqual(sorted(METHOD_MAP), sorted(SUPPORTED_METHODS))
        self.assertEqual(sorted(VALID_ARGUMENTS), sorted(SUPPORTED_METHODS))

    def test_every_method_succeeds_with_required_arguments(self) -> None:
        for name in SUPPORTED_METHODS:
            with self.subTest(method=name):
                result = self.dispatcher.dispatch(Command(name=name, arguments=VALID_ARGUMENTS[name]))
                self.assertIsInstance(result, Success, msg=repr(result))

    def test_missing_required_argument_names_the_field(self) -> None:
        for name in SUPPORTED_METHODS:
            required = METHOD_MAP[name].input_schema.get("required", [])
            for field_name in required:
                with self.subTest(method=name, field=field_name):
                    arguments = dict(VALID_ARGUMENTS[name] or {})
                    arguments.pop(field_name)
                    result = self.dispatcher.invoke(name, arguments)
                    self.assertIsInstance(result, Failure)
                    self.assertEqual(result.code, "invalid_args")
                    self.assertEqual(result.details["field"], field_name)

    def test_wrong_type_is_invalid(self) -> None:
        result = self.dispatcher.invoke("setEmail", {"email": 42})
        self.assertIsInstance(result, Failure)
        self.assertEqual(result.code, "invalid_args")
        self.assertEqual(result.message, "Email must be provided")
        self.assertEqual(result.details["field"], "email")

    def test_null_arguments_for_required_method(self) -> None:
        result = self.dispatcher.invoke("updateProfile", None)
        self.assertIsInstance(result, Failure)
        self.assertEqual(result.message, "Profile must be provided")

    def test_unknown_method_is_not_implemented(self) -> None:
        for name in ("doesNotExist", "", "INITIALIZE"):
            with self.subTest(name=name):
                result = self.dispatcher.invoke(name, {"apiKey": "x"})
                self.assertIs(result, NOT_IMPLEMENTED)
                self.assertFalse(result.implemented)
                self.assertFalse(result.ok)

    def test_non_string_name_is_not_implemented(self) -> None:
        self.assertIs(self.dispatcher.dispatch(Command(name=None)), NOT_IMPLEMENTED)  # type: ignore[arg-type]


class DispatcherBehaviourTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = InMemoryAnalyticsClient()
        self.dispatcher = CommandDispatcher(self.client)

    def test_initialize(self) -> None:
        result = self.dispatcher.invoke("initialize", {"apiKey": "pk_live"})
        self.assertEqual(result, Success("initialized"))
        self.assertEqual(self.client.api_key, "pk_live")

    def test_initialize_rejects_empty_key(self) -> None:
        result = self.dispatcher.invoke("initialize", {"apiKey": ""})
        self.assertEqual(result.code, "invalid_args")
        self.assertEqual(result.message, "API key must be provided")
        self.assertFalse(self.client.initialized)

    def test_write_before_initialize_is_reported(self) -> None:
        result = self.dispatcher.invoke("setEmail", {"email": "a@example.com"})
        self.assertIsInstance(result, Failure)
        self.assertEqual(result.code, "client_error")
        self.assertIn("before initialize", result.message)

    def test_getters_return_null_when_unset(self) -> None:
        self.dispatcher.invoke("initialize", {"apiKey": "pk"})
        for name in ("getExternalId", "getEmail", "getPhoneNumber"):
            with self.subTest(method=name):
                self.assertEqual(self.dispatcher.invoke(name), Success(None))

    def test_methods_without_arguments_ignore_malformed_params(self) -> None:
        self.dispatcher.invoke("setEmail", {"email": "a@example.com"})
        for params in ([], "x", 3, {"unexpected": True}):
            with self.subTest(params=params):
                self.assertEqual(self.dispatcher.invoke("getEmail", params), Success("a@example.com"))
                self.assertEqual(self.dispatcher.invoke("getExternalId", params), Success(None))
        self.assertTrue(self.dispatcher.invoke("resetProfile", "x").ok)
        self.assertIsNone(self.client.get_email())

    def test_identifier_round_trip_and_reset(self) -> None:
        self.dispatcher.invoke("initialize", {"apiKey": "pk"})
        self.assertEqual(self.dispatcher.invoke("setExternalId", {"id": "u-9"}), Success("ID updated"))
        self.assertEqual(self.dispatcher.invoke("setEmail", {"email": "e@x.io"}), Success("Email updated"))
        self.assertEqual(
            self.dispatcher.invoke("setPhoneNumber", {"phoneNumber": "+1"}),
            Success("Phone number updated"),
        )
        self.assertEqual(self.dispatcher.invoke("getExternalId"), Success("u-9"))
        self.assertEqual(self.dispatcher.invoke("getEmail"), Success("e@x.io"))
        self.assertEqual(self.dispatcher.invoke("getPhoneNumber"), Success("+1"))

        self.assertEqual(self.dispatcher.invoke("resetProfile"), Success(True))
        self.assertEqual(self.dispatcher.invoke("getEmail"), Success(None))

    def test_update_profile_merges_custom_properties(self) -> None:
        self.dispatcher.invoke("initialize", {"apiKey": "pk"})
        result = self.dispatcher.invoke(
            "updateProfile",
            {"first_name": "Ada", "city": "Top", "properties": {"city": "Nested"}},
        )
        self.assertEqual(result, Success("Profile updated"))
        self.assertEqual(self.client.profile.first_name, "Ada")
        self.assertEqual(self.client.profile.properties, {"city": "Nested"})

    def test_update_profile_client_failure(self) -> None:
        dispatcher = CommandDispatcher(BrokenClient())
        result = dispatcher.invoke("updateProfile", {"email": "a@example.com"})
        self.assertIsInstance(result, Failure)
        self.assertEqual(result.code, "Profile update error")
        self.assertEqual(result.message, "backend unavailable")
        self.assertEqual(result.details, {"exception": "RuntimeError"})

    def test_profile_attribute_client_failure(self) -> None:
        dispatcher = CommandDispatcher(BrokenClient())
        result = dispatcher.invoke("setCity", {"city": "Boston"})
        self.assertEqual(result.code, "Set profile attribute error")

    def test_profile_attribute_messages_name_the_field(self) -> None:
        self.dispatcher.invoke("initialize", {"apiKey": "pk"})
        self.assertEqual(self.dispatcher.invoke("setFirstName", {"firstName": "Ada"}), Success("First name updated"))
        self.assertEqual(self.dispatcher.invoke("setAddress2", {"address": "x"}), Success("Address 2 updated"))
        missing = self.dispatcher.invoke("setLastName", {})
        self.assertEqual(missing.message, "Last name must be a non-null String")
        self.assertEqual(self.client.profile.first_name, "Ada")
        self.assertEqual(self.client.profile.properties["address2"], "x")

    def test_custom_attribute(self) -> None:
        self.dispatcher.invoke("initialize", {"apiKey": "pk"})
        result = self.dispatcher.invoke("setCustomAttribute", {"key": "plan", "value": "pro"})
        self.assertEqual(result, Success("Attribute 'plan' updated"))
        self.assertEqual(self.client.profile.properties["plan"], "pro")

        missing_value = self.dispatcher.invoke("setCustomAttribute", {"key": "plan"})
        self.assertEqual(missing_value.message, "Value must not be null")

    def test_badge_count(self) -> None:
        self.dispatcher.invoke("initialize", {"apiKey": "pk"})
        self.assertEqual(self.dispatcher.invoke("setBadgeCount", {"count": 4}), Success("Badge count set"))
        self.assertEqual(self.client.badge_count, 4)
        self.assertEqual(self.dispatcher.invoke("setBadgeCount", {"count": True}).code, "invalid_args")
        self.assertEqual(self.dispatcher.invoke("setBadgeCount", {"count": "4"}).message, "count must be an Int")


class PlatformPolicyTests(unittest.TestCase):
    def setUp(self) -> None:
        self.ios_client = InMemoryAnalyticsClient()
        self.ios_client.initialize("pk")
        self.android_client = InMemoryAnalyticsClient()
        self.android_client.initialize("pk")
        self.ios = CommandDispatcher(self.ios_client, platform="ios")
        self.android = CommandDispatcher(self.android_client, platform="android")

    def test_push_token_encoding(self) -> None:
        self.assertEqual(self.ios.invoke("sendTokenToKlaviyo", {"token": "0xABCD"}), Success("Token sent to Klaviyo"))
        self.assertEqual(self.ios_client.push_token, b"\xab\xcd")

        self.android.invoke("sendTokenToKlaviyo", {"token": "fcm:token-1"})
        self.assertEqual(self.android_client.push_token, "fcm:token-1")

    def test_ios_rejects_token_without_hex_digits(self) -> None:
        result = self.ios.invoke("sendTokenToKlaviyo", {"token": "zz"})
        self.assertEqual(result.code, "invalid_args")
        self.assertIsNone(self.ios_client.push_token)

    def test_ios_rejects_single_nibble_token(self) -> None:
        result = self.ios.invoke("sendTokenToKlaviyo", {"token": "A"})
        self.assertEqual(result.code, "invalid_args")
        self.assertEqual(result.details["field"], "token")
        self.assertIsNone(self.ios_client.push_token)

    def test_timezone_is_derived_on_ios(self) -> None:
        self.assertEqual(self.ios.invoke("setTimezone", {"timezone": "UTC"}), Success("Success"))
        self.assertNotIn("timezone", self.ios_client.profile.properties)

        self.assertEqual(self.android.invoke("setTimezone", {"timezone": "UTC"}), Success("Timezone updated"))
        self.assertEqual(self.android_client.profile.properties["timezone"], "UTC")

    def test_badge_count_not_implemented_on_android(self) -> None:
        self.assertIs(self.android.invoke("setBadgeCount", {"count": 1}), NOT_IMPLEMENTED)
        self.assertFalse(self.android.supports("setBadgeCount"))

    def test_unknown_platform(self) -> None:
        with self.assertRaises(ValueError):
            CommandDispatcher(InMemoryAnalyticsClient(), platform="web")


if __name__ == "__main__":
    unittest.main()
