#!/usr/bin/env python3
"""
Main / entry point for the BT Smart Hub 2 exporter.

"""
import asyncio
import sys
from os import getenv

import structlog
from aiohttp import ClientSession
from prometheus_client import CollectorRegistry, generate_latest, start_http_server
from prometheus_client.core import REGISTRY
from smarthub2.extract import extract
from smarthub2.metrics import HubCollector
from smarthub2.poll import poll_router
from util.config import Settings
from util.const import REQUEST_HEADERS, LogLevel

settings = Settings.from_env()

if getenv("LOG_LEVEL") not in LogLevel.__members__:
    print(f"Defaulting to {settings.log_level} log level")
else:
    print(f"Using log level {settings.log_level.value}")


structlog.configure(
    wrapper_class=structlog.make_filtering_bound_logger(settings.log_level.value)
)

log = structlog.get_logger(__name__)


def parse_file(cfg: Settings) -> str:
    """Decode a saved status page once and return the metrics it would produce.

    Mostly useful against files from the datastore when the hub firmware changes.
    """
    body = cfg.parse_file.read_bytes()
    result = extract(body)
    log.info(
        "Parsed file",
        path=str(cfg.parse_file),
        state=result.state.value,
        error=result.decode_error,
    )

    # Keep this away from the default registry; we only want our own metrics in the output
    registry = CollectorRegistry()
    collector = HubCollector()
    collector.record(result)
    registry.register(collector)
    return generate_latest(registry).decode("utf-8")


async def main():
    """Main entry point."""
    log.info("Starting up", url=settings.poll_url)

    collector = HubCollector()
    REGISTRY.register(collector)

    # In testing, server responds to requests on / and /metrics so there's no real
    #   need to allow customizing the path, I think.
    server, _ = start_http_server(port=settings.metrics_port)
    log.info("Metrics server started", server=server.server_address)

    async with ClientSession(headers=REQUEST_HEADERS) as client:
        while True:
            try:
                result = await poll_router(client, settings)
                collector.record(result)
                if result.ok:
                    log.info(
                        "Poll complete",
                        state=result.state.value,
                        speed_up=result.upload_rate_bps,
                        speed_down=result.download_rate_bps,
                    )
                else:
                    log.error(
                        "Poll failed", state=result.state.value, error=result.decode_error
                    )
            # pylint: disable=broad-exception-caught
            except Exception as e:
                _e = "Unforeseen exception. Treating as non-fatal."
                log.error(_e, error=e)

            log.debug(f"Sleeping {settings.poll_interval_seconds} seconds before next poll")
            await asyncio.sleep(settings.poll_interval_seconds)


if __name__ == "__main__":
    if settings.parse_file is not None:
        sys.stdout.write(parse_file(settings))
    else:
        asyncio.run(main())
