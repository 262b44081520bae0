import logging
from enum import Enum

# The hub only serves the status page to requests that look like they came from its own UI
REQUEST_HEADERS = {
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64; rv:123.4) Gecko/20100101 Firefox/123.4",
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.5",
    "Pragma": "no-cache",
    "Cache-Control": "no-cache",
}

# Every metric we expose is prefixed with this
METRICS_NS = "btsmarthub2"


class LogLevel(Enum):
    """Simple enum of supported log levels for easy validation"""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


class ErrorKind(Enum):
    """Everything that can go wrong with a single poll.

    The first six come from decoding the status document, the rest from fetching it.
    """

    ENCODING = "encoding"
    FORMAT = "format"
    ARITY = "arity"
    AMBIGUOUS = "ambiguous"
    STRUCTURAL = "structural"
    PARSE_FAILURE = "parse_failure"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"
