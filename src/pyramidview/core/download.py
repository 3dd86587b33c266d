"""Single-slot, versioned download results for manifest and image descriptions.

Fetches run on background threads and report into a :class:`DownloadChannel`.
The frame loop reads the channel once per frame. Each ``begin`` bumps a
request token; a completion carrying an older token is dropped, so only
the latest request of a stream can ever be observed.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

import requests

from pyramidview.config import HTTP_TIMEOUT_SECS

logger = logging.getLogger(__name__)

InfoT = TypeVar("InfoT")


@dataclass(frozen=True)
class DownloadIdle:
    pass


@dataclass(frozen=True)
class DownloadInProgress(Generic[InfoT]):
    url: str
    token: int
    info: InfoT


@dataclass(frozen=True)
class DownloadDone(Generic[InfoT]):
    url: str
    token: int
    info: InfoT
    payload: bytes


@dataclass(frozen=True)
class DownloadFailed(Generic[InfoT]):
    url: str
    token: int
    info: InfoT
    message: str


DownloadState = Union[DownloadIdle, DownloadInProgress, DownloadDone, DownloadFailed]


class DownloadChannel(Generic[InfoT]):
    """Latest-request-wins result cell shared with a fetch thread."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._lock = threading.Lock()
        self._state: DownloadState = DownloadIdle()
        self._token = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> DownloadState:
        with self._lock:
            return self._state

    @property
    def in_progress(self) -> bool:
        with self._lock:
            return isinstance(self._state, DownloadInProgress)

    def begin(self, url: str, info: InfoT) -> int:
        """Start a new request, superseding any earlier one.

        Returns:
            Token the fetch thread must present on completion
        """
        with self._lock:
            self._token += 1
            self._state = DownloadInProgress(url, self._token, info)
            return self._token

    def _finish(self, token: int, make_state: Callable[[DownloadInProgress], DownloadState]) -> bool:
        with self._lock:
            current = self._state
            if not isinstance(current, DownloadInProgress) or current.token != token:
                logger.debug("Discarding stale %s download (token %d)", self._name, token)
                return False
            self._state = make_state(current)
            return True

    def complete(self, token: int, payload: bytes) -> bool:
        """Store a successful result if ``token`` is still the latest request."""
        return self._finish(
            token, lambda cur: DownloadDone(cur.url, cur.token, cur.info, payload)
        )

    def fail(self, token: int, message: str) -> bool:
        """Store a failure if ``token`` is still the latest request."""
        return self._finish(
            token, lambda cur: DownloadFailed(cur.url, cur.token, cur.info, message)
        )

    def take(self) -> DownloadDone | DownloadFailed | None:
        """Return a finished result exactly once, resetting the channel to idle."""
        with self._lock:
            if isinstance(self._state, (DownloadDone, DownloadFailed)):
                finished = self._state
                self._state = DownloadIdle()
                return finished
            return None


def fetch_bytes(url: str, timeout: float = HTTP_TIMEOUT_SECS) -> bytes:
    """Blocking GET returning the response body."""
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    return response.content


def start_download(
    url: str,
    channel: DownloadChannel,
    info: Any,
    fetch: Callable[[str], bytes] = fetch_bytes,
) -> threading.Thread:
    """Fetch ``url`` on a background thread, reporting into ``channel``."""
    token = channel.begin(url, info)

    def worker() -> None:
        try:
            payload = fetch(url)
        except requests.RequestException as e:
            logger.warning("Failed to download %s: %s", url, e)
            channel.fail(token, str(e))
        except Exception as e:
            logger.exception("Unexpected error downloading %s", url)
            channel.fail(token, str(e))
        else:
            channel.complete(token, payload)

    thread = threading.Thread(target=worker, name=f"download-{channel.name}", daemon=True)
    thread.start()
    return thread
