"""
Error types for Gaia Thread Miner.

Two families live here:

- ``ThreadMinerError`` and its subclasses describe why a thread lookup
  failed. Each carries the HTTP-style ``status`` and ``reason`` the outcome
  is finalized with, so the pipeline can translate any of them into an
  ``Outcome`` the same way.
- ``OverrideError``, ``UnknownFieldError`` and ``ResponseFinalizedError``
  signal misuse of the ``ApiResponse`` accumulator. They are programming
  errors and are never turned into outcomes by the pipeline.
"""

from typing import Any


class ThreadMinerError(Exception):
    """Base class for failures that finalize a thread lookup."""

    status: int = 500
    reason: str = "Internal Server Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ThreadMinerError):
    """The caller supplied an identifier that is not a positive integer."""

    status = 400
    reason = "Bad Request"


class NotFoundError(ThreadMinerError):
    """The upstream site answered 404 for a thread page."""

    status = 404
    reason = "Not Found"


class UpstreamMalformedError(ThreadMinerError):
    """The upstream site failed, or a page lacked the data we expected."""

    status = 502
    reason = "Bad Gateway"


class InternalError(ThreadMinerError):
    """The page structure was not as expected, or an unexpected fault occurred."""

    status = 500
    reason = "Internal Server Error"


class OverrideError(KeyError):
    """Raised when a write-once value is set a second time."""

    def __init__(self, key: str, stored_value: Any, new_value: Any):
        super().__init__(key)
        self.key = key
        self.stored_value = stored_value
        self.new_value = new_value

    def __str__(self) -> str:
        return (
            f"Unable to set {self.key}; Value already set with {self.stored_value!r} "
            f"(attempted {self.new_value!r})"
        )


class UnknownFieldError(KeyError):
    """Raised when writing a field outside the response's declared shape."""

    def __init__(self, key: str, allowed: Any):
        super().__init__(key)
        self.key = key
        self.allowed = tuple(allowed)

    def __str__(self) -> str:
        if not self.allowed:
            return f"Unable to set {self.key}; This response carries no data"
        return f"Unable to set {self.key}; Expected one of {', '.join(self.allowed)}"


class ResponseFinalizedError(RuntimeError):
    """Raised when data or headers are written to a finalized response, or it is finalized again."""
