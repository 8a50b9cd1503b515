"""Fetching the auction listing page."""

import logging
from abc import ABC, abstractmethod

import requests

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "cs-CZ,cs;q=0.9,en;q=0.8",
    "Cache-Control": "no-cache",
}


class FetchError(Exception):
    """Upstream page unreachable or answered with a non-2xx status."""


class BaseFetcher(ABC):
    """Retrieves raw HTML for a URL."""

    @abstractmethod
    def fetch(self, url: str) -> str:
        """
        Fetch the document at url.

        Raises:
            FetchError: On network or HTTP failure
        """
        pass


class HttpFetcher(BaseFetcher):
    """Fetcher backed by requests. A single attempt, no retries."""

    def __init__(self, timeout: float = 30, headers: dict = None):
        self.timeout = timeout
        self.headers = {**DEFAULT_HEADERS, **(headers or {})}

    def fetch(self, url: str) -> str:
        logger.info(f"Fetching {url}")
        try:
            response = requests.get(url, headers=self.headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FetchError(f"Failed to fetch {url}: {e}") from e

        # The page declares its charset in a meta tag requests does not read
        if response.encoding is None or response.encoding.lower() == "iso-8859-1":
            response.encoding = response.apparent_encoding

        logger.debug(f"Fetched {len(response.text)} characters from {url}")
        return response.text
