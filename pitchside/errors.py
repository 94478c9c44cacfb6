"""
Error taxonomy for upstream access and ingestion.

Only genuinely unexpected errors reach the request handler; these are
recovered (or surfaced with dedicated wording) by the aggregation layer.
"""
from typing import Optional


class UpstreamUnavailable(Exception):
    """Raised when an upstream API returns non-2xx or the transport fails."""

    def __init__(self, source: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message
        self.status_code = status_code


class RateLimited(Exception):
    """
    Raised when an upstream API answers 429.

    Kept apart from UpstreamUnavailable so view paths that degrade on
    outages still surface it with its own wording.
    """

    USER_MESSAGE = "Too many requests to the data provider. Please wait a minute and try again."

    def __init__(self, source: str, retry_after: Optional[float] = None):
        super().__init__(f"{source}: rate limit exceeded")
        self.source = source
        self.retry_after = retry_after


class MalformedRecord(ValueError):
    """Raised when an upstream record lacks the nested fields we need."""
    pass
