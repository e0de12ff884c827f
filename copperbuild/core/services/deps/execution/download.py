"""
L4 Execution — Archive download with bounded retry.

Streams a URL to disk. Transient failures (non-2xx status, network
errors, timeouts) are retried with linear backoff: after failed
attempt *n* the caller waits ``n * backoff_step`` seconds. After the
last attempt a ``DownloadError`` carries the final failure reason.
"""

from __future__ import annotations

import http.client
import logging
import time
import urllib.error
import urllib.request
from collections.abc import Callable
from pathlib import Path

from copperbuild.core.errors import DownloadError
from copperbuild.core.services.deps.data.constants import (
    DOWNLOAD_CHUNK_SIZE,
    DOWNLOAD_USER_AGENT,
)

logger = logging.getLogger(__name__)


def _fmt_size(n: int | float) -> str:
    """Format byte count to human-readable string."""
    for unit in ("B", "KB", "MB", "GB"):
        if n < 1024:
            return f"{n:.1f} {unit}"
        n /= 1024
    return f"{n:.1f} TB"


def _fetch_once(url: str, dest: Path, timeout: int) -> int:
    """Single attempt. Returns bytes written, raises on any failure."""
    req = urllib.request.Request(url, headers={"User-Agent": DOWNLOAD_USER_AGENT})
    part = dest.with_name(dest.name + ".part")

    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            status = getattr(resp, "status", None) or resp.getcode()
            if status is not None and not 200 <= int(status) < 300:
                raise urllib.error.HTTPError(url, int(status), f"HTTP {status}", resp.headers, None)

            total = int(resp.headers.get("Content-Length", 0) or 0)
            downloaded = 0
            last_progress = -1
            with open(part, "wb") as f:
                while True:
                    chunk = resp.read(DOWNLOAD_CHUNK_SIZE)
                    if not chunk:
                        break
                    f.write(chunk)
                    downloaded += len(chunk)

                    # Progress tracking (log every 5%)
                    if total > 0:
                        pct = int(downloaded * 100 / total)
                        if pct >= last_progress + 5:
                            last_progress = pct
                            logger.info(
                                "Download progress: %d%% (%s / %s)",
                                pct, _fmt_size(downloaded), _fmt_size(total),
                            )

        if total and downloaded < total:
            raise OSError(f"truncated transfer: got {downloaded} of {total} bytes")
    except Exception:
        part.unlink(missing_ok=True)
        raise

    part.replace(dest)
    return downloaded


def _describe(exc: BaseException) -> str:
    if isinstance(exc, urllib.error.HTTPError):
        return f"HTTP {exc.code} {exc.reason}"
    if isinstance(exc, urllib.error.URLError):
        return f"network error: {exc.reason}"
    if isinstance(exc, TimeoutError):
        return "timed out"
    if isinstance(exc, http.client.IncompleteRead):
        return f"connection closed early: got {len(exc.partial)} bytes"
    return f"{type(exc).__name__}: {exc}"


def download(
    url: str,
    dest: Path,
    *,
    attempts: int = 3,
    backoff_step: float = 2.0,
    timeout: int = 60,
    sleep: Callable[[float], None] = time.sleep,
) -> Path:
    """Download ``url`` to ``dest``.

    Args:
        url: Source URL.
        dest: Target file. Parent directories are created.
        attempts: Maximum number of tries.
        backoff_step: Seconds per attempt number to wait before retrying.
        timeout: Per-attempt socket timeout in seconds.
        sleep: Injected for tests.

    Returns:
        ``dest``.

    Raises:
        DownloadError: Every attempt failed.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    last_reason = "no attempt made"

    for attempt in range(1, attempts + 1):
        logger.info("Downloading %s (attempt %d/%d)", url, attempt, attempts)
        try:
            size = _fetch_once(url, dest, timeout)
        except (urllib.error.URLError, http.client.HTTPException, OSError, ValueError) as e:
            last_reason = _describe(e)
            logger.warning("Download attempt %d/%d failed: %s", attempt, attempts, last_reason)
            if attempt < attempts:
                delay = attempt * backoff_step
                logger.info("Retrying in %.0fs", delay)
                sleep(delay)
            continue

        logger.info("Downloaded %s to %s", _fmt_size(size), dest)
        return dest

    dest.unlink(missing_ok=True)
    raise DownloadError(url, attempts, last_reason)
