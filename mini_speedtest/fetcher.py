"""
HTTP transport for the speedtest. Thin wrapper over requests that can GET a
resource to a file, POST a file as the request body, and time a small GET.

Transfer helpers report failure with a False return instead of raising, so
the worker loops never have to care; latency probes raise TransferFailure
because the selector needs to tell a failed probe from a slow one.
"""

import logging
import time
from typing import Optional

import requests

from .errors import TransferFailure

_logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_BYTES = 64 * 1024

HEADERS = {
    "Accept-Encoding": "identity",
    "Cache-Control": "no-cache",
}


def cache_buster() -> str:
    """Millisecond timestamp with 2 decimal places, ("nnnnnnnnnnnnn.nn")."""
    return f"{time.time() * 1000:.2f}"


def download_url(host: str, size: int) -> str:
    return f"http://{host}/speedtest/random{size}x{size}.jpg?x={cache_buster()}"


def upload_url(host: str) -> str:
    return f"http://{host}/upload.php?x={cache_buster()}"


def latency_url(host: str) -> str:
    return f"http://{host}/speedtest/latency.txt?x={cache_buster()}"


class RequestsFetcher:
    """
    Fetcher built on a requests Session.

    Instances are handed to worker processes, so the session is created lazily
    and dropped when pickling. A forked worker inherits the parent's session
    along with its pooled keep-alive sockets and must call reset() before its
    first request.
    """

    def __init__(self, timeout: int = 15):
        self.timeout = timeout
        self._session: Optional[requests.Session] = None

    def __getstate__(self):
        state = self.__dict__.copy()
        state["_session"] = None
        return state

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update(HEADERS)
        return self._session

    def reset(self) -> None:
        """Forget the current session without closing it, (its sockets belong to another process)."""
        self._session = None

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def _fetch(self, method: str, url: str, stream: bool = False, data=None, headers=None) -> requests.Response:
        r = self.session.request(method, url, timeout=self.timeout, stream=stream, data=data, headers=headers)
        r.raise_for_status()
        return r

    def fetch_to_file(self, url: str, path: Optional[str] = None) -> bool:
        """
        GET a resource, saving it to path, (or discarding it when path is None).

        Returns:
            True if the whole body was received
        """
        try:
            with self._fetch("GET", url, stream=True) as r:
                if path is None:
                    for _ in r.iter_content(chunk_size=DOWNLOAD_CHUNK_BYTES):
                        pass
                else:
                    with open(path, "wb") as f:
                        for chunk in r.iter_content(chunk_size=DOWNLOAD_CHUNK_BYTES):
                            f.write(chunk)
            return True
        except (requests.RequestException, OSError) as e:
            _logger.debug("GET %s failed: %s", url, e)
            return False

    def post_file(self, url: str, path: str) -> bool:
        """POST the contents of path as the request body."""
        try:
            with open(path, "rb") as f:
                r = self._fetch(
                    "POST",
                    url,
                    data=f,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
            r.close()
            return True
        except (requests.RequestException, OSError) as e:
            _logger.debug("POST %s failed: %s", url, e)
            return False

    def probe_latency(self, url: str) -> float:
        """Time a small GET, returning elapsed seconds."""
        try:
            t0 = time.perf_counter()
            r = self._fetch("GET", url)
            elapsed = time.perf_counter() - t0
            r.close()
        except requests.RequestException as e:
            raise TransferFailure(url, e) from e
        return elapsed
