"""Source-specific image acquisition: network, inline data URI, filesystem."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re
from pathlib import Path

import httpx

from md2docx.config.defaults import DEFAULT_FETCH_TIMEOUT
from md2docx.errors.exceptions import ImageResolutionError, TransientError
from md2docx.errors.retry import build_retrying, classify_http_error
from md2docx.types import RetryConfig
from md2docx.utils.image import load_image

logger = logging.getLogger(__name__)

DATA_URI_RE = re.compile(r"^data:image/([a-zA-Z+]+);base64,(.+)$")
_WHITESPACE_RE = re.compile(r"\s")

_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)
_MAX_REDIRECTS = 5


def normalize_data_uri(source: str) -> str:
    """Strip embedded whitespace so line-wrapped data URIs decode cleanly."""
    return _WHITESPACE_RE.sub("", source)


def decode_data_uri(source: str) -> bytes:
    """Decode a ``data:image/<fmt>;base64,<payload>`` URI.

    Raises ImageResolutionError(error_type="format") on any mismatch; inline
    data is never retried.
    """
    normalized = normalize_data_uri(source)
    match = DATA_URI_RE.match(normalized)
    if not match:
        raise ImageResolutionError(
            "Invalid base64 image format",
            source=source,
            error_type="format",
        )
    try:
        return base64.b64decode(match.group(2), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageResolutionError(
            f"Invalid base64 image payload: {e}",
            source=source,
            error_type="format",
            cause=e,
        ) from e


class ImageFetcher:
    """Fetches raw image bytes from URLs and local paths.

    Network fetches are retried per ``retry`` (3 attempts, linear backoff by
    default); every failed attempt counts, including non-2xx responses.

    ``max_concurrent`` caps simultaneous HTTP requests. A slot is held for one
    attempt only, never across a backoff wait; None means no cap.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        retry: RetryConfig | None = None,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        base_dir: Path | None = None,
        max_concurrent: int | None = None,
    ) -> None:
        if max_concurrent is not None and max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            max_redirects=_MAX_REDIRECTS,
            headers={"User-Agent": _USER_AGENT},
        )
        self._retry = retry or RetryConfig()
        self._base_dir = base_dir
        self._slots = asyncio.Semaphore(max_concurrent) if max_concurrent else None

    async def fetch_url(self, url: str) -> bytes:
        """Download ``url``, retrying transient failures."""
        try:
            async for attempt in build_retrying(self._retry):
                with attempt:
                    return await self._get_once(url)
        except TransientError as e:
            raise ImageResolutionError(
                f"Failed to download image after {self._retry.max_attempts} attempts: "
                f"{url}: {e}",
                source=url,
                error_type="network",
                cause=e,
            ) from e
        raise ImageResolutionError(f"No download attempt made for {url}", source=url)

    def read_path(self, source: str) -> bytes:
        """Read a local image, resolving relative paths against ``base_dir``."""
        path = self.resolve_path(source)
        try:
            return load_image(path)
        except (OSError, ValueError) as e:
            raise ImageResolutionError(
                f"Failed to read local image {path}: {e}",
                source=source,
                error_type="read",
                cause=e,
            ) from e

    def resolve_path(self, source: str) -> Path:
        path = Path(source).expanduser()
        if not path.is_absolute() and self._base_dir is not None:
            path = self._base_dir / path
        return path

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> ImageFetcher:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _get_once(self, url: str) -> bytes:
        if self._slots is None:
            return await self._request(url)
        async with self._slots:
            return await self._request(url)

    async def _request(self, url: str) -> bytes:
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            raise classify_http_error(e) from e
        if not response.is_success:
            raise TransientError(
                f"HTTP {response.status_code} from {url}",
                error_type="http_status",
                http_status=response.status_code,
            )
        logger.debug("Downloaded %s (%d bytes)", url, len(response.content))
        return response.content
