"""
Pulls the handful of values we care about out of the hub's status XML and turns them into a PollResult.

Here's a trimmed down example of what the hub sends back:

    <status>
      <link_status value="connected%3Bvdsl%3B462385"/>
      <sysuptime value="973412"/>
      <status_rate type="array" value="[['0%3B0%3B0%3B0'], ['18567000%3B65059000%3B0%3B0'], null]"/>
      <wan_conn_volume_list type="array" value="[['0%3B0%3B0'], ['81650478525%3B67192513981%3B14457964544'], null]"/>
    </status>

A problem with one field doesn't stop us from reading the others; each problem is recorded against
the field it came from.
"""

import structlog
from err.exceptions import FieldDecodeError
from lxml import etree
from smarthub2.decode import (
    STATUS_RATE_ARITY,
    VOLUME_LIST_ARITY,
    decode_bracketed_field,
    strip_newlines,
    unescape_value,
)
from smarthub2.models import Connectivity, FieldError, PollResult
from util.const import ErrorKind

log = structlog.get_logger(__name__)

LINK_STATUS = "link_status"
SYSUPTIME = "sysuptime"
STATUS_RATE = "status_rate"
VOLUME_LIST = "wan_conn_volume_list"

# Only media we've actually seen. Anything else (fibre?) is reported as unknown until we have a sample.
KNOWN_MEDIA = ("vdsl", "adsl")

# The hub is on the LAN but there's no reason to let it pull in entities or anything off the network
_XML_PARSER = etree.XMLParser(resolve_entities=False, no_network=True)


def parse_document(raw_xml: str | bytes) -> etree._Element:
    """Strictly parse the response body.

    Raises etree.XMLSyntaxError on anything not well-formed, UnicodeEncodeError for a str that isn't encodable.
    """
    # lxml refuses str input that carries an encoding declaration, so always hand it bytes
    if isinstance(raw_xml, str):
        raw_xml = raw_xml.encode("utf-8")
    return etree.fromstring(raw_xml, parser=_XML_PARSER)


def find_status_node(root: etree._Element) -> etree._Element | None:
    """The <status> node may be the root or buried further down"""
    found = root.xpath("//status")
    return found[0] if found else None


def find_field_value(status: etree._Element, name: str) -> str | None:
    """Value attribute of the named node, or None if either is missing."""
    node = status.find(f".//{name}")
    if node is None:
        return None
    return node.get("value")


def parse_link_status(raw: str) -> tuple[Connectivity, int]:
    """Turn `connected%3Bvdsl%3B462385` into (CONNECTED, 462385).

    A bad uptime raises FieldDecodeError. Prefixes / media we don't recognise are logged and come back as UNKNOWN.
    """
    value = strip_newlines(unescape_value(raw))

    if value.startswith("disconnected;"):
        return Connectivity.DISCONNECTED, 0

    if value.startswith("connected;"):
        # connected;<medium>;<uptime>
        parts = value.split(";")
        if len(parts) != 3:
            raise FieldDecodeError(
                ErrorKind.FORMAT, f"expected connected;<medium>;<uptime>, got {value!r}", LINK_STATUS
            )
        _, medium, uptime = parts
        if medium not in KNOWN_MEDIA:
            log.warning("Unexpected link medium", link_status=value, medium=medium)
            return Connectivity.UNKNOWN, 0
        try:
            return Connectivity.CONNECTED, _strict_int(uptime)
        except ValueError as e:
            raise FieldDecodeError(
                ErrorKind.FORMAT, f"connection uptime is not an integer: {uptime!r}", LINK_STATUS
            ) from e

    log.warning("Unexpected link_status value", link_status=value)
    return Connectivity.UNKNOWN, 0


def _strict_int(value: str) -> int:
    # int() is happy with surrounding whitespace and underscores; the hub never sends either
    if not value.isascii() or not value.isdigit():
        raise ValueError(value)
    return int(value)


def extract(raw_xml: str | bytes, status_code: int | None = None) -> PollResult:
    """Build a PollResult from the raw status page.

    Never raises for bad input; everything that went wrong ends up in PollResult.errors.
    """
    try:
        root = parse_document(raw_xml)
    # A str body can carry lone surrogates that will never encode
    except (etree.XMLSyntaxError, UnicodeEncodeError) as e:
        log.error("Failed to parse status XML", error=str(e))
        return PollResult(
            status_code=status_code,
            errors=(FieldError(ErrorKind.PARSE_FAILURE, None, str(e)),),
        )

    status = find_status_node(root)
    if status is None:
        log.error("No <status> node in document", root=root.tag)
        return PollResult(
            status_code=status_code,
            errors=(FieldError(ErrorKind.STRUCTURAL, None, "no <status> node"),),
        )

    errors: list[FieldError] = []
    values: dict[str, int] = {}

    def _missing(name: str) -> None:
        if status.find(f".//{name}") is None:
            reason = f"no <{name}> node"
        else:
            reason = f"no value on <{name}>"
        errors.append(FieldError(ErrorKind.STRUCTURAL, name, reason))

    def _failed(name: str, e: FieldDecodeError) -> None:
        errors.append(FieldError(e.kind, e.field or name, e.message))

    ##
    # link_status decides whether there's anything else worth reading
    ##
    connectivity = Connectivity.UNKNOWN
    if (raw := find_field_value(status, LINK_STATUS)) is None:
        _missing(LINK_STATUS)
    else:
        try:
            connectivity, values["connection_uptime_seconds"] = parse_link_status(raw)
        except FieldDecodeError as e:
            # Only a `connected;` value with a bad uptime is a FORMAT error. The prefix still
            #   told us we're connected, we just don't know for how long.
            if e.kind is ErrorKind.FORMAT:
                connectivity = Connectivity.CONNECTED
            _failed(LINK_STATUS, e)

    # When the line is down, the rest of the page is stale / zeroed so don't bother
    if connectivity is Connectivity.DISCONNECTED:
        log.info("Broadband is disconnected")
        return PollResult(
            connectivity=connectivity,
            connection_uptime_seconds=0,
            status_code=status_code,
            errors=tuple(errors),
        )

    ##
    # sysuptime is a plain integer, no escaping
    ##
    if (raw := find_field_value(status, SYSUPTIME)) is None:
        _missing(SYSUPTIME)
    else:
        try:
            values["system_uptime_seconds"] = _strict_int(raw.strip())
        except ValueError:
            errors.append(FieldError(ErrorKind.FORMAT, SYSUPTIME, f"not an integer: {raw!r}"))

    ##
    # status_rate: up, down, unused, unused
    ##
    if (raw := find_field_value(status, STATUS_RATE)) is None:
        _missing(STATUS_RATE)
    else:
        try:
            up, down, _, _ = decode_bracketed_field(raw, STATUS_RATE_ARITY)
            values["upload_rate_bps"] = up
            values["download_rate_bps"] = down
        except FieldDecodeError as e:
            _failed(STATUS_RATE, e)

    ##
    # wan_conn_volume_list: total, down, up
    # Yes, down comes before up here. Swapping these silently inverts the byte counters.
    ##
    if (raw := find_field_value(status, VOLUME_LIST)) is None:
        _missing(VOLUME_LIST)
    else:
        try:
            _total, down, up = decode_bracketed_field(raw, VOLUME_LIST_ARITY)
            values["download_bytes_total"] = down
            values["upload_bytes_total"] = up
        except FieldDecodeError as e:
            _failed(VOLUME_LIST, e)

    for error in errors:
        log.error("Field error", field=error.field, kind=error.kind.value, reason=error.message)

    return PollResult(
        connectivity=connectivity,
        status_code=status_code,
        errors=tuple(errors),
        **values,
    )
