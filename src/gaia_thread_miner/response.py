"""
Result accumulator for thread lookups.

``ApiResponse`` collects the output of one operation while it runs: data
fields, errors, warnings and headers. Exactly one finalizer (``ok``,
``failed`` or one of the named failure helpers) runs at the end and returns
an immutable ``Outcome`` snapshot. After that the accumulator refuses data
and header writes; errors and warnings can still be appended but never reach
the snapshot.

Typical use:
    response = ApiResponse(fields=ThreadRecord.keys())
    response.data("name", "Edge of Oblivion")
    response.add_warning("No pages detected; Defaulting to 1 page")
    outcome = response.ok()
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .errors import (
    OverrideError,
    ResponseFinalizedError,
    ThreadMinerError,
    UnknownFieldError,
)
from .utils import to_utc_iso

# Data key that marks the payload as a raw response body rather than JSON
RAW_BODY_KEY = "body"


def utc_timestamp() -> str:
    """Current UTC instant as ISO 8601 with millisecond precision."""
    return to_utc_iso(datetime.now(timezone.utc))


@dataclass(frozen=True)
class Outcome:
    """
    The finalized result of one operation.

    ``data`` is a read-only copy taken at finalization time, so nothing done
    to the accumulator afterwards can leak into an outcome already handed out.
    """
    status: int
    reason: str
    success: bool
    timestamp: str
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    headers: Mapping[str, str] = field(default_factory=dict)
    data: Mapping[str, Any] = field(default_factory=dict)

    @property
    def has_raw_body(self) -> bool:
        return RAW_BODY_KEY in self.data

    def to_dict(self) -> dict:
        """Caller-facing shape: status, success, reason, timestamp, errors, warnings, data?"""
        d = {
            "status": self.status,
            "success": self.success,
            "reason": self.reason,
            "timestamp": self.timestamp,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }
        if self.data:
            d["data"] = dict(self.data)
        return d

    def to_response(self) -> dict:
        """HTTP-facing shape: status and headers plus at most one of body / json_body."""
        init = {"status": self.status, "headers": dict(self.headers)}
        if self.data and self.has_raw_body:
            init["body"] = self.data[RAW_BODY_KEY]
        elif self.data:
            init["json_body"] = dict(self.data)
        return init

    def __str__(self) -> str:
        return f"{self.status}: {self.reason}"


class ApiResponse:
    """
    Mutable accumulator for an in-progress operation.

    Args:
        fields: Data keys this operation may write. Leave empty for an
                operation that returns no data (every write is then refused).

    Mutators return ``self`` so step code can chain:
        return response.add_error(message).internal_server_error()
    """

    def __init__(self, fields: Iterable[str] = ()):
        self._fields: Tuple[str, ...] = tuple(fields)
        self._data: Dict[str, Any] = {}
        self._errors: List[str] = []
        self._warnings: List[str] = []
        self._headers: Dict[str, str] = {}
        self._outcome: Optional[Outcome] = None

    # -------------------------------------------------------
    # State checks
    # -------------------------------------------------------

    @property
    def finalized(self) -> bool:
        return self._outcome is not None

    def _ensure_open(self):
        if self._outcome is not None:
            raise ResponseFinalizedError(
                f"Response already finalized as {self._outcome}"
            )

    def _ensure_field(self, key: str):
        if key not in self._fields:
            raise UnknownFieldError(key, self._fields)

    # -------------------------------------------------------
    # Errors and warnings
    # -------------------------------------------------------
    # Appends never fail, even after finalizing

    def add_error(self, error: str) -> "ApiResponse":
        self._errors.append(error)
        return self

    def add_errors(self, *errors: Union[str, Iterable[str]]) -> "ApiResponse":
        """Append several errors, given either as arguments or as one list."""
        self._errors.extend(_flatten(errors))
        return self

    def add_warning(self, warning: str) -> "ApiResponse":
        self._warnings.append(warning)
        return self

    def add_warnings(self, *warnings: Union[str, Iterable[str]]) -> "ApiResponse":
        self._warnings.extend(_flatten(warnings))
        return self

    # -------------------------------------------------------
    # Data
    # -------------------------------------------------------

    def data(self, key: str, value: Any) -> "ApiResponse":
        """Set or replace a data field."""
        self._ensure_open()
        self._ensure_field(key)
        self._data[key] = value
        return self

    def set(self, key: str, value: Any) -> "ApiResponse":
        """Set a data field exactly once; a second write raises ``OverrideError``."""
        self._ensure_open()
        self._ensure_field(key)
        if key in self._data:
            raise OverrideError(key, self._data[key], value)
        self._data[key] = value
        return self

    def get(self, key: str) -> Optional[Any]:
        self._ensure_field(key)
        return self._data.get(key)

    def set_header(self, header: str, value: str, override_if_set: bool = False) -> "ApiResponse":
        self._ensure_open()
        name = header.lower()
        if name in self._headers and not override_if_set:
            raise OverrideError(name, self._headers[name], value)
        self._headers[name] = value
        return self

    # -------------------------------------------------------
    # Finalizers
    # -------------------------------------------------------

    def _build(self, reason: str, status: int) -> Outcome:
        self._ensure_open()
        self._outcome = Outcome(
            status=status,
            reason=reason,
            success=200 <= status <= 299,
            timestamp=utc_timestamp(),
            errors=tuple(self._errors),
            warnings=tuple(self._warnings),
            headers=MappingProxyType(dict(self._headers)),
            data=MappingProxyType(dict(self._data)),
        )
        return self._outcome

    def successful(self, reason: str, status: int) -> Outcome:
        if not 200 <= status <= 299:
            raise ValueError(f"Success status must be 2xx, got {status}")
        return self._build(reason, status)

    def failed(self, reason: str, status: int, errors: Optional[Iterable[str]] = None) -> Outcome:
        """Finalize as a failure, optionally appending ``errors`` first."""
        self._ensure_open()
        if not 400 <= status <= 599:
            raise ValueError(f"Failure status must be 4xx or 5xx, got {status}")
        if errors:
            self.add_errors(list(errors))
        return self._build(reason, status)

    def fail_with(self, error: ThreadMinerError) -> Outcome:
        """Record ``error`` as the failure and finalize with its status."""
        return self.failed(error.reason, error.status, [error.message])

    def ok(self) -> Outcome:
        return self.successful("OK", 200)

    def bad_request(self) -> Outcome:
        return self.failed("Bad Request", 400)

    def not_found(self) -> Outcome:
        return self.failed("Not Found", 404)

    def internal_server_error(self) -> Outcome:
        return self.failed("Internal Server Error", 500)

    def proxy_request_failed(self) -> Outcome:
        return self.failed("Bad Gateway", 502)

    # -------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------

    @property
    def outcome(self) -> Optional[Outcome]:
        return self._outcome

    @property
    def errors(self) -> Tuple[str, ...]:
        return tuple(self._errors)

    @property
    def warnings(self) -> Tuple[str, ...]:
        return tuple(self._warnings)

    @property
    def headers(self) -> Mapping[str, str]:
        return MappingProxyType(self._headers)

    @property
    def status(self) -> Optional[int]:
        return self._outcome.status if self._outcome else None

    @property
    def reason(self) -> Optional[str]:
        return self._outcome.reason if self._outcome else None

    @property
    def success(self) -> Optional[bool]:
        return self._outcome.success if self._outcome else None

    @property
    def timestamp(self) -> Optional[str]:
        return self._outcome.timestamp if self._outcome else None

    def __str__(self) -> str:
        return str(self._outcome) if self._outcome else "ApiResponse (pending)"


def _flatten(items: Tuple[Union[str, Iterable[str]], ...]) -> List[str]:
    flat: List[str] = []
    for item in items:
        if isinstance(item, str):
            flat.append(item)
        else:
            flat.extend(item)
    return flat
