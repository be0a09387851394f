"""Public scrape provider utilities."""

from services.scrapers.client import ScrapeProviderClient, build_scrape_client
from services.scrapers.polling import poll_until_terminal
from services.scrapers.types import (
    PlatformKey,
    ProviderFailedError,
    ProviderRun,
    ProviderTimeoutError,
    ProviderUnavailableError,
    RunStatus,
    TerminalStatus,
)

__all__ = [
    "PlatformKey",
    "ProviderFailedError",
    "ProviderRun",
    "ProviderTimeoutError",
    "ProviderUnavailableError",
    "RunStatus",
    "ScrapeProviderClient",
    "TerminalStatus",
    "build_scrape_client",
    "poll_until_terminal",
]
