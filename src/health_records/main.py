"""Main entry point for the health records read API."""

import asyncio
import platform
import signal
import sys

import structlog

from . import __version__
from .api import RecordsAPI
from .config import get_settings
from .logging import setup_logging
from .metrics import SERVICE_INFO
from .store import create_store
from .tracing import setup_tracing

logger = structlog.get_logger(__name__)


async def main() -> None:
    """Serve the API until SIGINT or SIGTERM."""
    settings = get_settings()
    setup_logging(settings.app)
    setup_tracing(settings.tracing, settings.http.document_kinds)

    logger.info("service_starting", version=__version__, backend=settings.store.backend)
    SERVICE_INFO.info({"version": __version__, "python": platform.python_version()})

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def signal_handler() -> None:
        logger.info("shutdown_signal_received")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    async with create_store(settings) as store:
        api = RecordsAPI(settings.http, store)
        try:
            await api.start()
            logger.info("service_started")
            await shutdown_event.wait()
        except Exception as e:
            logger.exception("service_error", error=str(e))
            raise
        finally:
            await api.stop()

    logger.info("service_stopped")


def run() -> None:
    """Entry point for the CLI."""
    asyncio.run(main())


def health_check_cli() -> None:
    """Health check CLI for Docker HEALTHCHECK.

    Loads configuration and verifies the document store is reachable.
    Exits with code 0 on success, 1 on failure.
    """

    async def check() -> bool:
        try:
            settings = get_settings()
            async with create_store(settings) as store:
                health = await asyncio.wait_for(store.health_check(), timeout=5.0)
            if not health.get("healthy", False):
                print(f"Store unhealthy: {health.get('error', 'unknown error')}")
                return False
            print("Health check passed")
            return True
        except Exception as e:
            print(f"Health check failed: {e}")
            return False

    success = asyncio.run(check())
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    run()
