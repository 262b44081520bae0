"""
Fetches the status page from the hub and hands it to the extractor.

Whatever happens, poll_router() returns a PollResult; a hub that's rebooting or unreachable is
something to graph, not something to crash over.
"""

import asyncio
import time
from dataclasses import replace
from datetime import datetime, timezone

import structlog
from aiohttp import ClientError, ClientSession, ClientTimeout
from err.exceptions import RouterNotOkError
from smarthub2.archive import archive_response
from smarthub2.extract import extract
from smarthub2.models import FieldError, PollResult
from util.config import Settings
from util.const import ErrorKind

log = structlog.get_logger(__name__)


async def fetch_status_page(
    cs: ClientSession, url: str, referer: str, timeout: float
) -> tuple[int, bytes]:
    """GET the status page. Returns (status, body); raises RouterNotOkError for anything but a 200."""
    async with cs.request(
        method="GET",
        url=url,
        headers={"Referer": referer},
        timeout=ClientTimeout(total=timeout),
    ) as resp:
        body = await resp.read()
        if resp.status != 200:
            raise RouterNotOkError(
                f"Failed to get status page. Status={resp.status}.",
                status_code=resp.status,
                payload=body,
            )
        return resp.status, body


async def poll_router(cs: ClientSession, settings: Settings) -> PollResult:
    """One full poll: fetch, optionally archive, decode."""
    polled_at = datetime.now(timezone.utc)
    started = time.perf_counter()

    def _failed(kind: ErrorKind, message: str, status_code: int | None = None) -> PollResult:
        return PollResult(
            status_code=status_code,
            errors=(FieldError(kind, None, message),),
            polled_at=polled_at,
            poll_duration_seconds=time.perf_counter() - started,
        )

    try:
        status_code, body = await fetch_status_page(
            cs, settings.poll_url, settings.referer, settings.poll_timeout_seconds
        )
    except RouterNotOkError as e:
        log.error("Hub did not return OK", url=settings.poll_url, status=e.status_code)
        if settings.datastore_dir is not None and e.payload:
            archive_response(settings.datastore_dir, polled_at, e.payload)
        return _failed(ErrorKind.HTTP_STATUS, e.message, e.status_code)
    # Needs to come before ClientError; aiohttp's timeout errors are both
    except asyncio.TimeoutError:
        log.error("Timed out polling hub", url=settings.poll_url, timeout=settings.poll_timeout_seconds)
        return _failed(ErrorKind.TIMEOUT, f"no response within {settings.poll_timeout_seconds}s")
    except ClientError as e:
        log.error("Failed to poll hub", url=settings.poll_url, error=str(e))
        return _failed(ErrorKind.TRANSPORT, str(e) or type(e).__name__)

    poll_duration = time.perf_counter() - started
    log.debug("Got status page", status=status_code, size=len(body), duration=poll_duration)

    if settings.datastore_dir is not None:
        archive_response(settings.datastore_dir, polled_at, body)

    parse_started = time.perf_counter()
    result = extract(body, status_code)
    parse_duration = time.perf_counter() - parse_started

    return replace(
        result,
        polled_at=polled_at,
        poll_duration_seconds=poll_duration,
        parse_duration_seconds=parse_duration,
    )
