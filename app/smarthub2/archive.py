"""Optional archive of the raw status pages, handy for building new test fixtures when the hub firmware changes."""

from datetime import datetime
from pathlib import Path

import structlog

log = structlog.get_logger(__name__)

# Sorts lexically in time order and is unique enough at one poll every few seconds
ARCHIVE_NAME_FORMAT = "%Y%m%d%H%M%S.%f"


def archive_path(datastore: Path, polled_at: datetime) -> Path:
    return datastore / polled_at.strftime(ARCHIVE_NAME_FORMAT)


def archive_response(datastore: Path, polled_at: datetime, body: bytes) -> Path | None:
    """Write the body verbatim, keyed by poll time.

    Failing to archive is not a reason to fail the poll so OSError is logged and swallowed.
    """
    path = archive_path(datastore, polled_at)
    try:
        path.write_bytes(body)
    except OSError as e:
        log.error("Failed to archive response", path=str(path), error=str(e))
        return None
    log.debug("Archived response", path=str(path), size=len(body))
    return path
