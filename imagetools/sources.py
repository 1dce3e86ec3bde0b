"""
Fetching and decoding source images.

A *fetcher* is any callable ``fetch(src) -> (bytes, mime_type | None)``
that raises :class:`~imagetools.exceptions.FetchError` on network-class
failures.  :func:`http_fetch` (requests) and :func:`file_fetch` (local
paths) are provided; :func:`default_fetch` picks between them.
"""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

import requests

from .codec import decode, sniff_mime
from .exceptions import (DecodeError, FetchError, FetchImageFailed,
                         InvalidImage, MissingImage)
from .processing import DEFAULT_WORKERS, ordered_map
from .types import ImageModel

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Tuple[bytes, Optional[str]]]

DEFAULT_TIMEOUT_S = 30.0


def http_fetch(url: str, timeout: float = DEFAULT_TIMEOUT_S) -> Tuple[bytes, Optional[str]]:
    """GET *url*; the MIME type comes from the Content-Type header."""
    try:
        resp = requests.get(url, timeout=timeout)
    except requests.RequestException as exc:
        raise FetchError(f"GET {url} failed: {exc}") from exc
    if not 200 <= resp.status_code < 300:
        raise FetchError(f"GET {url} returned {resp.status_code}",
                         status=resp.status_code)
    content_type = resp.headers.get("Content-Type")
    mime = content_type.split(";", 1)[0].strip() if content_type else None
    return resp.content, mime


def file_fetch(path: str) -> Tuple[bytes, Optional[str]]:
    p = Path(path)
    try:
        data = p.read_bytes()
    except OSError as exc:
        raise FetchError(f"Cannot read {path}: {exc}") from exc
    mime, _ = mimetypes.guess_type(p.name)
    return data, mime or sniff_mime(data)


def default_fetch(src: str, timeout: float = DEFAULT_TIMEOUT_S) -> Tuple[bytes, Optional[str]]:
    if src.startswith(("http://", "https://")):
        return http_fetch(src, timeout)
    return file_fetch(src)


def read_image(fetch: Fetcher, src: str) -> ImageModel:
    """Fetch and decode one source, mapping failures to typed errors."""
    try:
        data, mime = fetch(src)
    except FetchError as exc:
        logger.warning("Fetching %s failed: %s", src, exc)
        raise FetchImageFailed() from exc
    try:
        return decode(data, mime)
    except DecodeError as exc:
        logger.warning("Decoding %s failed: %s", src, exc)
        raise InvalidImage() from exc


def fetch_sources(fetch: Fetcher, sources: Sequence[str],
                  workers: int = DEFAULT_WORKERS) -> List[ImageModel]:
    """Fetch every source concurrently; results keep source order."""
    if not sources:
        raise MissingImage()
    return ordered_map(lambda src: read_image(fetch, src), list(sources), workers)
