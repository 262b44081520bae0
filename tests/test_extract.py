"""Tests for building a PollResult from the status page."""

import pytest

from smarthub2.extract import extract, parse_link_status
from smarthub2.models import Connectivity, PollState
from util.const import ErrorKind

RATE = "[['0%3B0%3B0%3B0'], ['18567000%3B65059000%3B0%3B0'], null]"
VOLUME = "[['0%3B0%3B0'], ['81650478525%3B67192513981%3B14457964544'], null]"


def _kinds(result) -> list[tuple[ErrorKind, str | None]]:
    return [(e.kind, e.field) for e in result.errors]


class TestConnectedPage:
    """Tests against a captured page from a connected hub."""

    @pytest.fixture
    def result(self, connected_xml: bytes):
        return extract(connected_xml, 200)

    def test_connectivity(self, result):
        assert result.connectivity is Connectivity.CONNECTED
        assert result.state is PollState.CONNECTED

    def test_uptimes(self, result):
        assert result.connection_uptime_seconds == 462385
        assert result.system_uptime_seconds == 973412

    def test_rates(self, result):
        assert result.upload_rate_bps == 18567000
        assert result.download_rate_bps == 65059000

    def test_bytes(self, result):
        assert result.download_bytes_total == 67192513981
        assert result.upload_bytes_total == 14457964544

    def test_no_errors(self, result):
        assert result.errors == ()
        assert result.decode_error is None
        assert result.ok

    def test_status_code(self, result):
        assert result.status_code == 200

    def test_str_input(self, connected_xml: bytes):
        assert extract(connected_xml.decode("utf-8")) == extract(connected_xml)

    def test_idempotent(self, connected_xml: bytes):
        assert extract(connected_xml, 200) == extract(connected_xml, 200)


class TestDisconnectedPage:
    """Tests against a captured page from a hub with no line."""

    def test_disconnected(self, disconnected_xml: bytes):
        result = extract(disconnected_xml, 200)
        assert result.connectivity is Connectivity.DISCONNECTED
        assert result.state is PollState.DISCONNECTED
        assert result.connection_uptime_seconds == 0
        assert result.errors == ()

    def test_other_fields_are_not_read(self, disconnected_xml: bytes):
        result = extract(disconnected_xml)
        # sysuptime is in the page but a disconnected poll stops before it
        assert result.system_uptime_seconds == 0
        assert result.upload_rate_bps == 0
        assert result.download_rate_bps == 0
        assert result.upload_bytes_total == 0
        assert result.download_bytes_total == 0

    def test_broken_fields_after_disconnect_are_ignored(self, make_status_page):
        page = make_status_page(
            link_status="disconnected%3Badsl%3B0", sysuptime="nope", status_rate="[['x']]"
        )
        result = extract(page)
        assert result.connectivity is Connectivity.DISCONNECTED
        assert result.errors == ()


class TestDocumentFailures:
    """Tests for pages that can't be used at all."""

    def test_truncated(self, truncated_xml: bytes):
        result = extract(truncated_xml, 200)
        assert result.state is PollState.PARSE_FAILED
        assert _kinds(result) == [(ErrorKind.PARSE_FAILURE, None)]
        assert result.status_code == 200
        assert result.decode_error is not None

    def test_not_xml(self):
        result = extract("<html><body>Login</body")
        assert result.state is PollState.PARSE_FAILED

    def test_unencodable_str(self):
        result = extract("<status>\ud800</status>")
        assert result.state is PollState.PARSE_FAILED
        assert _kinds(result) == [(ErrorKind.PARSE_FAILURE, None)]

    def test_no_status_node(self):
        result = extract("<root><link_status value='connected%3Bvdsl%3B1'/></root>")
        assert result.state is PollState.STRUCTURAL_ERROR
        assert _kinds(result) == [(ErrorKind.STRUCTURAL, None)]
        assert result.connectivity is Connectivity.UNKNOWN

    def test_nested_status_node(self):
        page = (
            "<wrapper><status>"
            "<link_status value='connected%3Badsl%3B10'/><sysuptime value='20'/>"
            f'<status_rate value="{RATE}"/><wan_conn_volume_list value="{VOLUME}"/>'
            "</status></wrapper>"
        )
        result = extract(page)
        assert result.state is PollState.CONNECTED
        assert result.connection_uptime_seconds == 10
        assert result.system_uptime_seconds == 20


class TestFieldFailures:
    """A broken field is reported against that field and doesn't stop the others."""

    def test_missing_sysuptime(self, make_status_page):
        page = make_status_page(
            link_status="connected%3Bvdsl%3B5", status_rate=RATE, wan_conn_volume_list=VOLUME
        )
        result = extract(page)
        assert _kinds(result) == [(ErrorKind.STRUCTURAL, "sysuptime")]
        assert result.errors[0].message == "no <sysuptime> node"
        assert result.connectivity is Connectivity.CONNECTED
        assert result.upload_rate_bps == 18567000
        assert result.download_bytes_total == 67192513981

    def test_missing_link_status(self, make_status_page):
        page = make_status_page(sysuptime="7", status_rate=RATE, wan_conn_volume_list=VOLUME)
        result = extract(page)
        assert _kinds(result) == [(ErrorKind.STRUCTURAL, "link_status")]
        assert result.connectivity is Connectivity.UNKNOWN
        assert result.system_uptime_seconds == 7

    def test_missing_everything(self, make_status_page):
        result = extract(make_status_page())
        assert _kinds(result) == [
            (ErrorKind.STRUCTURAL, "link_status"),
            (ErrorKind.STRUCTURAL, "sysuptime"),
            (ErrorKind.STRUCTURAL, "status_rate"),
            (ErrorKind.STRUCTURAL, "wan_conn_volume_list"),
        ]

    def test_node_without_value(self):
        result = extract(
            "<status><link_status/><sysuptime value='1'/>"
            f'<status_rate value="{RATE}"/><wan_conn_volume_list value="{VOLUME}"/></status>'
        )
        assert _kinds(result) == [(ErrorKind.STRUCTURAL, "link_status")]
        assert result.errors[0].message == "no value on <link_status>"

    def test_bad_sysuptime(self, make_status_page):
        page = make_status_page(
            link_status="connected%3Bvdsl%3B5",
            sysuptime="12a",
            status_rate=RATE,
            wan_conn_volume_list=VOLUME,
        )
        result = extract(page)
        assert _kinds(result) == [(ErrorKind.FORMAT, "sysuptime")]
        assert result.system_uptime_seconds == 0
        assert result.connection_uptime_seconds == 5

    def test_ambiguous_rate(self, make_status_page):
        page = make_status_page(
            link_status="connected%3Bvdsl%3B5",
            sysuptime="1",
            status_rate="[['1%3B2%3B0%3B0'], ['3%3B4%3B0%3B0'], null]",
            wan_conn_volume_list=VOLUME,
        )
        result = extract(page)
        assert _kinds(result) == [(ErrorKind.AMBIGUOUS, "status_rate")]
        assert result.upload_rate_bps == 0
        assert result.upload_bytes_total == 14457964544
        assert "status_rate" in result.decode_error

    def test_bad_volume_arity(self, make_status_page):
        page = make_status_page(
            link_status="connected%3Bvdsl%3B5",
            sysuptime="1",
            status_rate=RATE,
            wan_conn_volume_list="[['1%3B2'], null]",
        )
        result = extract(page)
        assert _kinds(result) == [(ErrorKind.ARITY, "wan_conn_volume_list")]
        assert result.download_rate_bps == 65059000

    def test_bad_connection_uptime(self, make_status_page):
        page = make_status_page(
            link_status="connected%3Bvdsl%3Bsoon",
            sysuptime="1",
            status_rate=RATE,
            wan_conn_volume_list=VOLUME,
        )
        result = extract(page)
        assert _kinds(result) == [(ErrorKind.FORMAT, "link_status")]
        assert result.connectivity is Connectivity.CONNECTED
        assert result.connection_uptime_seconds == 0
        assert result.system_uptime_seconds == 1

    def test_bad_link_status_encoding(self, make_status_page):
        page = make_status_page(
            link_status="connected%3Bvdsl%3B1%", sysuptime="1", status_rate=RATE, wan_conn_volume_list=VOLUME
        )
        result = extract(page)
        assert _kinds(result) == [(ErrorKind.ENCODING, "link_status")]
        assert result.connectivity is Connectivity.UNKNOWN

    def test_unknown_link_status_is_not_an_error(self, make_status_page):
        page = make_status_page(
            link_status="training%3Bvdsl%3B0",
            sysuptime="1",
            status_rate=RATE,
            wan_conn_volume_list=VOLUME,
        )
        result = extract(page)
        assert result.errors == ()
        assert result.connectivity is Connectivity.UNKNOWN
        assert result.state is PollState.UNKNOWN
        assert result.upload_rate_bps == 18567000


class TestParseLinkStatus:
    """Tests for the link_status value on its own."""

    def test_connected_vdsl(self):
        assert parse_link_status("connected%3Bvdsl%3B462385") == (Connectivity.CONNECTED, 462385)

    def test_connected_adsl(self):
        assert parse_link_status("connected;adsl;12") == (Connectivity.CONNECTED, 12)

    def test_disconnected(self):
        assert parse_link_status("disconnected%3Badsl%3B0") == (Connectivity.DISCONNECTED, 0)

    def test_disconnected_ignores_uptime(self):
        assert parse_link_status("disconnected%3Bvdsl%3B999") == (Connectivity.DISCONNECTED, 0)

    def test_unknown_medium(self):
        assert parse_link_status("connected%3Bfibre%3B100") == (Connectivity.UNKNOWN, 0)

    def test_unknown_prefix(self):
        assert parse_link_status("connecting%3Bvdsl%3B0") == (Connectivity.UNKNOWN, 0)

    def test_newline_in_value(self):
        assert parse_link_status("connected%3Bvdsl%3B46%0A2385") == (Connectivity.CONNECTED, 462385)
