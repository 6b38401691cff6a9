"""
Exceptions for the Frappe DB client.
"""

from typing import Any, NoReturn, Optional


class RemoteOperationError(Exception):
    """
    Raised when a document operation fails.

    Carries the server's error body merged with the HTTP status and a
    human-readable message naming the operation that failed.
    """

    def __init__(
        self,
        message: str,
        exception: str = "",
        http_status: Optional[int] = None,
        http_status_text: Optional[str] = None,
        response_data: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.exception = exception
        self.http_status = http_status
        self.http_status_text = http_status_text
        self.response_data = response_data or {}

    def __str__(self) -> str:
        if self.http_status:
            return f"[{self.http_status}] {self.message}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Return the error envelope: server body plus the normalized fields."""
        return {
            **self.response_data,
            "httpStatus": self.http_status,
            "httpStatusText": self.http_status_text,
            "message": self.message,
            "exception": self.exception,
        }


class TransportError(RemoteOperationError):
    """Raised when a request fails before any response was received."""

    def __init__(self, message: str, exception: str = ""):
        super().__init__(message, exception=exception)


class RequestTimeoutError(TransportError):
    """Raised when a request times out."""


def error_body(payload: Any) -> dict[str, Any]:
    """Coerce a decoded error payload into a dict."""
    if isinstance(payload, dict):
        return payload
    return {"error": payload}


def raise_for_status(
    status_code: int,
    status_text: Optional[str],
    response_data: dict[str, Any],
    message: str,
    prefer_server_message: bool = False,
) -> NoReturn:
    """
    Raise a RemoteOperationError for a failed response.

    Args:
        status_code: HTTP status code of the response.
        status_text: Reason phrase of the response.
        response_data: Decoded error body.
        message: Default message for the failed operation.
        prefer_server_message: Use the body's ``message`` when present.
    """
    server_message = response_data.get("message")
    if prefer_server_message and server_message is not None:
        message = str(server_message)

    exception = response_data.get("exception")
    if exception is None:
        exception = response_data.get("exc_type")
    if exception is None:
        exception = ""

    raise RemoteOperationError(
        message,
        exception=exception,
        http_status=status_code,
        http_status_text=status_text,
        response_data=response_data,
    )
