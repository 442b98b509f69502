"""Application exception classes."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, code: str, status_code: int = 400) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)


# --- REST requests ---


class RequestFailedError(AppException):
    """Backend answered with a non-success status."""

    def __init__(self, status_code: int, detail: str | None = None) -> None:
        message = "Request failed"
        if detail:
            message = f"Request failed: {detail}"
        super().__init__(message=message, code="REQUEST_FAILED", status_code=status_code)
        self.detail = detail


class NetworkError(AppException):
    """Backend could not be reached."""

    def __init__(self, message: str = "Network error") -> None:
        super().__init__(message=message, code="NETWORK_ERROR", status_code=503)


class InvalidResponseError(AppException):
    """Backend body did not match the expected shape."""

    def __init__(self, message: str = "Invalid response body") -> None:
        super().__init__(message=message, code="INVALID_RESPONSE", status_code=502)


# --- Event stream ---


class StreamConnectError(AppException):
    """Event stream endpoint refused the connection."""

    def __init__(self, status_code: int) -> None:
        super().__init__(
            message=f"Event stream rejected with status {status_code}",
            code="STREAM_CONNECT_FAILED",
            status_code=status_code,
        )


class InvalidEventError(AppException):
    """Event payload could not be parsed."""

    def __init__(self, event: str, reason: str) -> None:
        super().__init__(
            message=f"Invalid '{event}' event: {reason}",
            code="INVALID_EVENT",
            status_code=422,
        )
        self.event = event
