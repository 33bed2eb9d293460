from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .platforms import Platform, resolve_platform

ENV_API_KEY = "KLAVIYO_API_KEY"
ENV_PLATFORM = "KLAVIYO_BRIDGE_PLATFORM"
ENV_LOG_LEVEL = "KLAVIYO_BRIDGE_LOG_LEVEL"
ENV_CLIENT = "KLAVIYO_BRIDGE_CLIENT"

DEFAULT_PLATFORM = Platform.IOS
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class BridgeConfig:
    api_key: Optional[str] = None
    platform: Platform = DEFAULT_PLATFORM
    log_level: str = DEFAULT_LOG_LEVEL
    # "package.module:factory" returning an AnalyticsClient.
    client_factory: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BridgeConfig":
        env = os.environ if environ is None else environ
        api_key = (env.get(ENV_API_KEY) or "").strip() or None
        platform = resolve_platform(env.get(ENV_PLATFORM) or DEFAULT_PLATFORM)
        log_level = (env.get(ENV_LOG_LEVEL) or DEFAULT_LOG_LEVEL).strip().upper()
        client_factory = (env.get(ENV_CLIENT) or "").strip() or None
        return cls(
            api_key=api_key,
            platform=platform,
            log_level=log_level,
            client_factory=client_factory,
        )
