"""
Gateway exceptions.

Every failure that leaves the gateway is a GatewayError carrying enough
structure for the route layer to pick an HTTP status without inspecting
internals.
"""

from enum import Enum
from typing import Any


class ErrorClassification(str, Enum):
    """How a failure should be treated by callers."""

    TERMINAL = "terminal"
    TRANSIENT = "transient"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"


# Human-readable messages for upstream statuses
STATUS_MESSAGES: dict[int, str] = {
    401: "API token is invalid or expired. Check the integration token.",
    403: "Insufficient permissions. Check the integration's access settings.",
    404: "Database or page not found. Make sure the integration has been granted access.",
    429: "Too many requests to the content service, try again later.",
}

GENERIC_MESSAGE = "Request to the content service failed"


def message_for_status(status_code: int) -> str:
    return STATUS_MESSAGES.get(status_code, f"{GENERIC_MESSAGE} (HTTP {status_code})")


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        self.message = message
        super().__init__(message)


class GatewayError(ServiceError):
    """A classified failure surfaced by the content gateway."""

    classification: ErrorClassification = ErrorClassification.TERMINAL
    retryable: bool = False

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        service_id: str | None = None,
    ):
        self.status_code = status_code
        self.attempts = 0
        super().__init__(message, service_id=service_id)

    def to_dict(self) -> dict[str, Any]:
        """Boundary shape handed to the route layer."""
        return {
            "classification": self.classification.value,
            "httpStatusEquivalent": self.status_code,
            "message": self.message,
            "attempts": self.attempts,
        }


class ValidationError(GatewayError):
    """Malformed caller input, rejected before any cache or network work."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class ClientError(GatewayError):
    """Upstream rejected the request (400/401/403/404). Never retried."""

    def __init__(self, status_code: int, detail: str = "", service_id: str | None = None):
        self.detail = detail
        super().__init__(message_for_status(status_code), status_code, service_id)


class MalformedResponseError(GatewayError):
    """Upstream answered 2xx with a body that is not JSON."""

    def __init__(self, detail: str, service_id: str | None = None):
        super().__init__(
            f"Content service returned a malformed response: {detail}",
            status_code=502,
            service_id=service_id,
        )


class TransientUpstreamError(GatewayError):
    """429, 5xx or a transport failure; eligible for retry."""

    classification = ErrorClassification.TRANSIENT
    retryable = True

    def __init__(
        self,
        message: str,
        status_code: int = 502,
        service_id: str | None = None,
        retry_after: float | None = None,
    ):
        self.retry_after = retry_after
        super().__init__(message, status_code, service_id)

    @classmethod
    def from_status(
        cls, status_code: int, service_id: str | None = None
    ) -> "TransientUpstreamError":
        return cls(message_for_status(status_code), status_code, service_id)


class RequestTimeoutError(GatewayError):
    """A single upstream attempt exceeded its time budget."""

    classification = ErrorClassification.TIMEOUT
    retryable = True

    def __init__(self, service_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Request to service '{service_id}' timed out after {timeout}s",
            status_code=504,
            service_id=service_id,
        )


class UpstreamUnavailableError(GatewayError):
    """Retryable failures persisted through every allowed attempt."""

    classification = ErrorClassification.TRANSIENT

    def __init__(self, last_error: GatewayError, attempts: int):
        self.last_error = last_error
        self.classification = last_error.classification
        status_code = 504 if isinstance(last_error, RequestTimeoutError) else 503
        super().__init__(
            f"Content service unavailable after {attempts} attempts: {last_error.message}",
            status_code=status_code,
            service_id=last_error.service_id,
        )
        self.attempts = attempts


class RateLimitExceededError(GatewayError):
    """Local admission control denied the call; the network was not touched."""

    classification = ErrorClassification.RATE_LIMITED

    def __init__(self, client_id: str, retry_after: float | None = None):
        self.client_id = client_id
        self.retry_after = retry_after
        msg = f"Rate limit exceeded for client '{client_id}'"
        if retry_after:
            msg += f", retry after {retry_after:.1f}s"
        super().__init__(msg, status_code=429)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["retryAfter"] = self.retry_after
        return data
