"""Klaviyo method channel bridge."""

__all__ = [
    "channel",
    "client",
    "config",
    "dispatcher",
    "errors",
    "methods",
    "models",
    "platforms",
    "profile",
    "push",
    "server",
    "tokens",
    "validation",
]
