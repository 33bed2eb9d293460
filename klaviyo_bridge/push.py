"""Notification lifecycle hooks for the host application shell.

A tapped notification that carries the Klaviyo marker is turned into a
``handlePush`` command. The return value tells the shell whether the
notification was ours; the completion callback is always invoked exactly once.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Mapping, Optional

from .dispatcher import CommandDispatcher, is_klaviyo_push
from .methods import METHOD_HANDLE_PUSH
from .models import Success

logger = logging.getLogger(__name__)

PRESENTATION_OPTIONS = ["list", "banner"]


class PushNotificationHooks:
    def __init__(self, dispatcher: CommandDispatcher):
        self.dispatcher = dispatcher

    def notification_opened(
        self,
        payload: Mapping[str, Any],
        completion: Optional[Callable[[], None]] = None,
    ) -> bool:
        handled = False
        if is_klaviyo_push(payload):
            result = self.dispatcher.invoke(METHOD_HANDLE_PUSH, {"message": dict(payload)})
            handled = isinstance(result, Success) and result.value is True
            if not handled:
                logger.warning("opened push was not recorded: %r", result)
        if completion is not None:
            completion()
        return handled

    def notification_will_present(self, payload: Mapping[str, Any]) -> List[str]:
        # Foreground delivery only decides how to show it; opening is recorded on tap.
        return list(PRESENTATION_OPTIONS)
