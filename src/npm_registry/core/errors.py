"""Registry error taxonomy.

Every failure of the registry access layer surfaces as one of these.
Transient kinds (rate limit, timeout, network) are retried before they are
raised; the rest are raised on the first attempt.
"""

from __future__ import annotations

from typing import Optional


class RegistryError(Exception):
    """Base class for registry access errors."""

    code = "registry_error"
    retryable = False

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.url = url
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict:
        body = {"code": self.code, "message": self.message}
        if self.url:
            body["url"] = self.url
        if self.status_code is not None:
            body["status_code"] = self.status_code
        return body


class PackageNotFoundError(RegistryError):
    """Registry answered 404 for the requested name or version."""

    code = "not_found"

    def __init__(self, resource: str, url: Optional[str] = None):
        self.resource = resource
        super().__init__(f"Package not found: {resource}", url=url, status_code=404)


class RateLimitedError(RegistryError):
    """Registry kept answering 429 until the retry budget ran out."""

    code = "rate_limited"
    retryable = True

    def __init__(self, url: Optional[str] = None):
        super().__init__(
            "Rate limit exceeded. Please try again later.",
            url=url,
            status_code=429,
        )


class RegistryServerError(RegistryError):
    """Any other non-2xx status. Not retried."""

    code = "server_error"


class RequestTimeoutError(RegistryError):
    """The per-attempt deadline elapsed on the last attempt."""

    code = "timeout"
    retryable = True

    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None):
        self.timeout = timeout
        message = "Request timeout"
        if timeout is not None:
            message = f"Request timeout after {timeout:g}s"
        super().__init__(message, url=url)


class NetworkError(RegistryError):
    """Transport-level failure: connection reset, DNS, generic fetch failure."""

    code = "network_error"
    retryable = True


class MalformedResponseError(RegistryError):
    """A 2xx response whose body is not valid JSON."""

    code = "malformed_response"
