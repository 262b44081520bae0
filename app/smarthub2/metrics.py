"""All the metric definitions and the collector that serves them.

Unlike the usual module-level Gauge() / Counter() objects, everything is built at scrape time from the most
recent PollResult. The poll loop and the metrics server run in different threads; building the families from
one locked snapshot means a scrape can never see half of one poll and half of the next.
"""

import threading
from collections import Counter as Tally

import structlog
from prometheus_client.core import (
    CounterMetricFamily,
    GaugeMetricFamily,
    StateSetMetricFamily,
    SummaryMetricFamily,
)
from smarthub2.models import Connectivity, PollResult, PollState
from util.const import METRICS_NS, ErrorKind

log = structlog.get_logger(__name__)


class HubCollector:
    """Prometheus collector for the hub.

    Call record() with each new PollResult; prometheus_client calls collect() on every scrape.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._last: PollResult | None = None
        # Cumulative state that has to survive across polls
        self._polls = 0
        self._status_codes: Tally = Tally()
        self._errors: Tally = Tally()
        self._poll_duration_sum = 0.0
        self._parse_duration_sum = 0.0
        self._last_good_poll: float | None = None
        self._last_error_time: float | None = None
        self._last_error_kind: ErrorKind | None = None
        # Fetch failures never get as far as a parse
        self._parses = 0

    def record(self, result: PollResult) -> None:
        """Fold a new poll into the exposed state."""
        polled_at = result.polled_at.timestamp() if result.polled_at is not None else None

        with self._lock:
            self._last = result
            self._polls += 1
            self._poll_duration_sum += result.poll_duration_seconds
            if result.state is not PollState.FETCH_FAILED:
                self._parses += 1
                self._parse_duration_sum += result.parse_duration_seconds
            if result.status_code is not None:
                self._status_codes[str(result.status_code)] += 1

            for error in result.errors:
                self._errors[(error.kind.value, error.field or "")] += 1

            if result.errors:
                self._last_error_time = polled_at
                self._last_error_kind = result.errors[-1].kind
            elif result.state is PollState.CONNECTED:
                self._last_good_poll = polled_at

            polls = self._polls

        log.debug("Recorded poll", state=result.state.value, polls=polls)

    @property
    def last(self) -> PollResult | None:
        with self._lock:
            return self._last

    @property
    def state(self) -> PollState:
        """State of the most recent poll, INIT until the first one is recorded"""
        with self._lock:
            return self._last.state if self._last is not None else PollState.INIT

    def collect(self):
        """Yield every metric family from a consistent snapshot."""
        with self._lock:
            last = self._last
            polls = self._polls
            status_codes = dict(self._status_codes)
            errors = dict(self._errors)
            poll_duration_sum = self._poll_duration_sum
            parse_duration_sum = self._parse_duration_sum
            last_good_poll = self._last_good_poll
            last_error_time = self._last_error_time
            last_error_kind = self._last_error_kind
            parses = self._parses

        ##
        # Meta metrics; always present so we can tell the exporter is alive even if the hub isn't
        ##
        c_polls = CounterMetricFamily(
            f"{METRICS_NS}_polls", "Number of polls we have attempted"
        )
        c_polls.add_metric([], polls)
        yield c_polls

        c_status_code = CounterMetricFamily(
            f"{METRICS_NS}_status_code",
            "Count of each HTTP status code returned by the hub",
            labels=["status_code"],
        )
        for code, count in sorted(status_codes.items()):
            c_status_code.add_metric([code], count)
        yield c_status_code

        c_errors = CounterMetricFamily(
            f"{METRICS_NS}_errors",
            "Count of poll errors by kind and the field they came from",
            labels=["kind", "field"],
        )
        for (kind, field), count in sorted(errors.items()):
            c_errors.add_metric([kind, field], count)
        yield c_errors

        # Summary without quantiles is just _count and _sum which is all we need
        s_poll = SummaryMetricFamily(
            f"{METRICS_NS}_poll_duration_seconds",
            "Time spent waiting for the hub to respond",
            count_value=polls,
            sum_value=poll_duration_sum,
        )
        yield s_poll

        s_parse = SummaryMetricFamily(
            f"{METRICS_NS}_parse_duration_seconds",
            "Time spent decoding the status page",
            count_value=parses,
            sum_value=parse_duration_sum,
        )
        yield s_parse

        if last is None:
            return

        if last.polled_at is not None:
            yield _gauge(
                "last_poll_seconds",
                "The UNIX timestamp in seconds of the last poll",
                last.polled_at.timestamp(),
            )
        if last_good_poll is not None:
            yield _gauge(
                "last_good_poll_seconds",
                "The UNIX timestamp in seconds of the last good poll",
                last_good_poll,
            )
        if last_error_time is not None:
            yield _gauge(
                "last_error_time_seconds",
                "The UNIX timestamp in seconds of the last error",
                last_error_time,
            )
        if last.status_code is not None:
            yield _gauge(
                "last_status_code", "The HTTP status code of the last poll", last.status_code
            )

        if last_error_kind is not None:
            ss_error = StateSetMetricFamily(
                f"{METRICS_NS}_last_error_kind",
                "Kind of the most recent poll error",
                value={kind.value: kind is last_error_kind for kind in ErrorKind},
            )
            yield ss_error

        ##
        # Connection metrics
        ##
        yield _gauge(
            "connected",
            "Whether the Broadband is connected",
            1 if last.connectivity is Connectivity.CONNECTED else 0,
        )

        ss_connectivity = StateSetMetricFamily(
            f"{METRICS_NS}_connectivity_state",
            "Broadband link state as reported by the hub",
            value={c.value: c is last.connectivity for c in Connectivity},
        )
        yield ss_connectivity

        # Only a link_status we could read says anything about the connection uptime
        if last.connectivity in (Connectivity.CONNECTED, Connectivity.DISCONNECTED) and not any(
            e.field == "link_status" for e in last.errors
        ):
            yield _gauge(
                "connuptime_seconds",
                "The connuptime of the BB connection in seconds",
                last.connection_uptime_seconds,
            )

        # A disconnected (or failed) poll never reads these so there is nothing to report
        if not last.has_link_fields:
            return

        yield _gauge(
            "sysuptime_seconds",
            "The sysuptime of the BB router in seconds",
            last.system_uptime_seconds,
        )
        yield _gauge("bb_speed_up", "The upload broadband speed in bps", last.upload_rate_bps)
        yield _gauge("bb_speed_down", "The download broadband speed in bps", last.download_rate_bps)
        yield _gauge("bb_bytes_up", "The number of bytes uploaded", last.upload_bytes_total)
        yield _gauge("bb_bytes_down", "The number of bytes downloaded", last.download_bytes_total)


def _gauge(name: str, documentation: str, value: float) -> GaugeMetricFamily:
    return GaugeMetricFamily(f"{METRICS_NS}_{name}", documentation, value=value)
