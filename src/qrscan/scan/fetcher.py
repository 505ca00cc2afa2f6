"""Fetching the resource behind a decoded URL."""

from __future__ import annotations

import logging

import requests

from qrscan.config import DEFAULT_FETCH_TIMEOUT
from qrscan.errors import ResourceUnreachable

LOGGER = logging.getLogger(__name__)


class HttpResourceFetcher:
    """Blocking HTTP GET returning the response body as text."""

    def __init__(self, *, timeout: float = DEFAULT_FETCH_TIMEOUT, session: requests.Session | None = None) -> None:
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, url: str) -> str:
        try:
            response = self.session.get(url, timeout=self.timeout)
            LOGGER.debug("GET %s -> %s", url, response.status_code)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ResourceUnreachable(f"Unable to fetch {url}: {exc}") from exc
        return response.text

    def close(self) -> None:
        self.session.close()
