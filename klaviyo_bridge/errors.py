from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

INVALID_ARGS = "invalid_args"
CLIENT_ERROR = "client_error"


@dataclass
class BridgeError(Exception):
    error_code: str
    message: str
    details: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        return f"{self.error_code}: {self.message}"

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidArguments(BridgeError):
    """A required argument is missing or has the wrong type."""

    def __init__(self, message: str, *, field: Optional[str] = None, reason: Optional[str] = None):
        details: Dict[str, Any] = {}
        if field:
            details["field"] = field
        if reason:
            details["reason"] = reason
        super().__init__(error_code=INVALID_ARGS, message=message, details=details or None)


class ClientOperationFailure(BridgeError):
    """The analytics client raised while handling a write."""

    def __init__(self, error_code: str, cause: BaseException):
        super().__init__(
            error_code=error_code,
            message=str(cause) or type(cause).__name__,
            details={"exception": type(cause).__name__},
        )


class ClientNotInitialized(RuntimeError):
    pass
