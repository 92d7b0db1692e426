class CompareError(RuntimeError):
    """Base exception for comparison errors."""


class UpstreamError(CompareError):
    """Raised when an exchange endpoint could not deliver usable data."""


class UpstreamHTTPError(UpstreamError):
    """Raised when an exchange answers with a non-2xx status."""

    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self.body = body
        super().__init__(f"Upstream request failed with status {status}.")


class UpstreamTransportError(UpstreamError):
    """Raised on network-level failures (DNS, timeout, connection reset)."""


class MalformedResponseError(UpstreamError):
    """Raised when a JSON payload is invalid or has an unknown envelope."""


class InvalidDateRangeError(CompareError, ValueError):
    """Raised when the end date is before the start date."""
