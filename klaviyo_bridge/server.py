from __future__ import annotations

import argparse
import importlib
import logging
import sys
from dataclasses import replace
from typing import Optional, Sequence

from .channel import MethodChannel
from .client import AnalyticsClient, get_shared_client
from .config import BridgeConfig
from .dispatcher import CommandDispatcher
from .methods import METHOD_INITIALIZE
from .models import Success
from .platforms import Platform, resolve_platform

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Klaviyo method channel bridge")
    parser.add_argument(
        "--platform",
        choices=[p.value for p in Platform],
        default=None,
        help="Platform policy to apply, default: $KLAVIYO_BRIDGE_PLATFORM or ios",
    )
    parser.add_argument(
        "--api-key",
        default=None,
        help="Initialize the client on startup, default: $KLAVIYO_API_KEY",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level written to stderr, default: $KLAVIYO_BRIDGE_LOG_LEVEL or WARNING",
    )
    parser.add_argument(
        "--client",
        default=None,
        metavar="MODULE:FACTORY",
        help="Callable returning the analytics client, default: $KLAVIYO_BRIDGE_CLIENT or the in-memory client",
    )
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace, base: Optional[BridgeConfig] = None) -> BridgeConfig:
    config = base if base is not None else BridgeConfig.from_env()
    if args.platform:
        config = replace(config, platform=resolve_platform(args.platform))
    if args.api_key:
        config = replace(config, api_key=args.api_key)
    if args.log_level:
        config = replace(config, log_level=args.log_level.upper())
    if args.client:
        config = replace(config, client_factory=args.client)
    return config


def configure_logging(level: str) -> None:
    # stdout carries the channel, so logs go to stderr.
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def load_client(spec: str) -> AnalyticsClient:
    """Import ``module:factory`` and call it to build the analytics client."""

    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"client factory must look like 'module:factory', got '{spec}'")
    module = importlib.import_module(module_name)
    try:
        factory = getattr(module, attr)
    except AttributeError:
        raise ValueError(f"module '{module_name}' has no attribute '{attr}'") from None
    if not callable(factory):
        raise ValueError(f"client factory '{spec}' is not callable")
    return factory()


def build_channel(config: BridgeConfig, client: Optional[AnalyticsClient] = None) -> MethodChannel:
    if client is None:
        if config.client_factory:
            client = load_client(config.client_factory)
        else:
            client = get_shared_client()
    dispatcher = CommandDispatcher(client, platform=config.platform)
    if config.api_key:
        result = dispatcher.invoke(METHOD_INITIALIZE, {"apiKey": config.api_key})
        if not isinstance(result, Success):
            logger.error("startup initialize failed: %r", result)
    return MethodChannel(dispatcher)


def main(argv: Optional[Sequence[str]] = None) -> None:
    config = load_config(parse_args(argv))
    configure_logging(config.log_level)
    build_channel(config).run()


if __name__ == "__main__":
    main()
