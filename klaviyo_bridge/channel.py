from __future__ import annotations

import json
import logging
import sys
from typing import Any, Dict, Optional, TextIO

from .dispatcher import CommandDispatcher
from .methods import CHANNEL_NAME, METHODS
from .models import Command, Failure, Success

logger = logging.getLogger(__name__)

DESCRIBE_METHOD = "channel/describe"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
CALL_FAILED = -32010
INTERNAL_ERROR = -32000


class MethodChannel:
    """Newline-delimited JSON-RPC transport in front of a CommandDispatcher."""

    def __init__(self, dispatcher: CommandDispatcher, name: str = CHANNEL_NAME):
        self.dispatcher = dispatcher
        self.name = name

    def run(self, stdin: TextIO = sys.stdin, stdout: TextIO = sys.stdout) -> None:
        logger.info("channel %s listening (%s)", self.name, self.dispatcher.platform.value)
        for raw in stdin:
            line = raw.strip()
            if not line:
                continue
            try:
                request = json.loads(line)
            except json.JSONDecodeError as exc:
                self._send(stdout, self._error(None, PARSE_ERROR, "Parse error", str(exc)))
                continue

            response = self.handle_request(request)
            if response is not None:
                self._send(stdout, response)

    def handle_request(self, request: Any) -> Optional[Dict[str, Any]]:
        if not isinstance(request, dict):
            return self._error(None, INVALID_REQUEST, "Invalid Request", "request must be an object")

        request_id = request.get("id")
        method = request.get("method")
        params = request.get("params")

        if not isinstance(method, str) or not method:
            return self._error(request_id, INVALID_REQUEST, "Invalid Request", "method must be a string")

        if method == DESCRIBE_METHOD:
            return self._result(request_id, self.describe())

        try:
            result = self.dispatcher.dispatch(Command(name=method, arguments=params))
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("unexpected error dispatching %s", method)
            return self._error(request_id, INTERNAL_ERROR, "Call failed", str(exc))

        if request_id is None:
            return None
        if isinstance(result, Success):
            return self._result(request_id, result.value)
        if isinstance(result, Failure):
            data: Dict[str, Any] = {"error_code": result.code, "message": result.message}
            if result.details:
                data["details"] = result.details
            return self._error(request_id, CALL_FAILED, result.message, data)
        return self._error(request_id, METHOD_NOT_FOUND, "Method not found", method)

    def describe(self) -> Dict[str, Any]:
        return {
            "channel": self.name,
            "platform": self.dispatcher.platform.value,
            "methods": [m.to_dict() for m in METHODS if self.dispatcher.supports(m.name)],
        }

    @staticmethod
    def _result(request_id: Any, result: Any) -> Dict[str, Any]:
        return {"jsonrpc": "2.0", "id": request_id, "result": result}

    @staticmethod
    def _error(request_id: Any, code: int, message: str, data: Any = None) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": code, "message": message}
        if data is not None:
            error["data"] = data
        return {"jsonrpc": "2.0", "id": request_id, "error": error}

    @staticmethod
    def _send(stdout: TextIO, payload: Dict[str, Any]) -> None:
        stdout.write(json.dumps(payload, ensure_ascii=False) + "\n")
        stdout.flush()
