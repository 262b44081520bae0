"""Data models for a single poll of the hub."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from util.const import ErrorKind


class Connectivity(Enum):
    """Broadband link state as reported by `link_status`."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    UNKNOWN = "unknown"


class PollState(Enum):
    """Where a single poll ended up."""

    INIT = "init"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    UNKNOWN = "unknown"
    PARSE_FAILED = "parse_failed"
    STRUCTURAL_ERROR = "structural_error"
    FETCH_FAILED = "fetch_failed"


# Failures that mean we never got a usable status document
_FETCH_KINDS = (ErrorKind.TIMEOUT, ErrorKind.TRANSPORT, ErrorKind.HTTP_STATUS)


@dataclass(frozen=True)
class FieldError:
    """One thing that went wrong during a poll, tied to the field it came from (if any)."""

    kind: ErrorKind
    field: str | None
    message: str

    def describe(self) -> str:
        if self.field is None:
            return f"{self.kind.value}: {self.message}"
        return f"{self.field}: {self.kind.value}: {self.message}"


@dataclass(frozen=True)
class PollResult:
    """Immutable snapshot of one poll.

    Built once per poll attempt and handed to the metrics collector; nothing here is carried over
    from an earlier poll.
    """

    connectivity: Connectivity = Connectivity.UNKNOWN
    connection_uptime_seconds: int = 0
    system_uptime_seconds: int = 0
    upload_rate_bps: int = 0
    download_rate_bps: int = 0
    upload_bytes_total: int = 0
    download_bytes_total: int = 0
    status_code: int | None = None
    errors: tuple[FieldError, ...] = ()
    # Filled in by the poller, the extractor leaves these alone
    polled_at: datetime | None = None
    poll_duration_seconds: float = 0.0
    parse_duration_seconds: float = 0.0

    @property
    def decode_error(self) -> str | None:
        """All errors for this poll as a single string, or None if there were none."""
        if not self.errors:
            return None
        return "; ".join(e.describe() for e in self.errors)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def state(self) -> PollState:
        kinds = {e.kind for e in self.errors}
        if kinds & set(_FETCH_KINDS):
            return PollState.FETCH_FAILED
        if ErrorKind.PARSE_FAILURE in kinds:
            return PollState.PARSE_FAILED
        # A missing <status> node is the only structural error without a field
        if any(e.kind is ErrorKind.STRUCTURAL and e.field is None for e in self.errors):
            return PollState.STRUCTURAL_ERROR
        if self.connectivity is Connectivity.CONNECTED:
            return PollState.CONNECTED
        if self.connectivity is Connectivity.DISCONNECTED:
            return PollState.DISCONNECTED
        return PollState.UNKNOWN

    @property
    def has_link_fields(self) -> bool:
        """True if the throughput / uptime fields were read from the document."""
        return self.state in (PollState.CONNECTED, PollState.UNKNOWN)
