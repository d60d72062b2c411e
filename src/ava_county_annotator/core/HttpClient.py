from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import requests

from ava_county_annotator.core.constants import (
    HTTP_BACKOFF,
    HTTP_CHUNK_SIZE,
    HTTP_RETRIES,
    HTTP_TIMEOUT,
)

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpConfig:
    timeout: int = HTTP_TIMEOUT
    retries: int = HTTP_RETRIES
    backoff_seconds: float = HTTP_BACKOFF


class HttpClient:
    """
    Very small helper: consistent retries/backoff for GET and file downloads.
    Keeps services clean; not a heavy abstraction.
    """

    def __init__(self, cfg: HttpConfig | None = None, session: requests.Session | None = None) -> None:
        self.cfg = cfg or HttpConfig()
        self.session = session or requests.Session()

    def get(self, url: str, *, headers: Optional[Dict[str, str]] = None, stream: bool = False) -> requests.Response:
        return self._request("GET", url, headers=headers, stream=stream)

    def download(self, url: str, destination: Path) -> Path:
        """
        Stream `url` into `destination`. Writes to a `.part` file first so an
        interrupted download never leaves a truncated archive behind.
        """
        destination.parent.mkdir(parents=True, exist_ok=True)
        partial = destination.with_name(destination.name + ".part")

        r = self.get(url, stream=True)
        try:
            with partial.open("wb") as f:
                for chunk in r.iter_content(chunk_size=HTTP_CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
        finally:
            r.close()

        partial.replace(destination)
        return destination

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        last_exc: Exception | None = None

        for attempt in range(self.cfg.retries + 1):
            LOG.debug("%s %s (attempt %d/%d)", method, url, attempt + 1, self.cfg.retries + 1)
            try:
                r = self.session.request(method, url, timeout=self.cfg.timeout, **kwargs)
            except requests.RequestException as e:
                last_exc = e
                time.sleep(self.cfg.backoff_seconds * (attempt + 1))
                continue

            # Retry only on transient 5xx
            if 500 <= r.status_code <= 599:
                r.close()
                last_exc = requests.HTTPError(f"{r.status_code} from {url}")
                time.sleep(self.cfg.backoff_seconds * (attempt + 1))
                continue

            # 4xx will not improve on retry
            if r.status_code >= 400:
                r.close()
                raise RuntimeError(f"HTTP {method} {url} returned {r.status_code}")

            return r

        raise RuntimeError(f"HTTP {method} failed after retries: {url}. Last error: {last_exc}")
