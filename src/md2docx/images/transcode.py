"""Resize/re-encode images, memoized through the CacheStore."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from md2docx.cache.keys import hash_source
from md2docx.cache.store import CacheStore
from md2docx.config.defaults import DEFAULT_IMAGE_MAX_WIDTH, DEFAULT_IMAGE_QUALITY
from md2docx.types import ResolvedImage
from md2docx.utils.image import (
    encode_image,
    open_image,
    probe_image,
    resize_to_width,
    target_format,
)

logger = logging.getLogger(__name__)


class ImageTranscoder:
    """Shrinks images wider than ``max_width`` and re-encodes them."""

    def __init__(
        self,
        max_width: int = DEFAULT_IMAGE_MAX_WIDTH,
        quality: int = DEFAULT_IMAGE_QUALITY,
    ) -> None:
        self._max_width = max_width
        self._quality = quality

    def transcode(self, data: bytes) -> ResolvedImage:
        """Return re-encoded bytes and their dimensions.

        jpeg, png and webp keep their family; other formats become jpeg.
        Raises ValueError if the bytes are not a decodable image.
        """
        img = open_image(data)
        fmt = target_format(img.format or "")
        img = resize_to_width(img, self._max_width)
        encoded = encode_image(img, fmt, self._quality)
        return ResolvedImage(data=encoded, width=img.width, height=img.height, format=fmt)


class CachingTranscoder:
    """Memoizing wrapper: looks up the source key before loading any bytes."""

    def __init__(self, transcoder: ImageTranscoder, store: CacheStore | None = None) -> None:
        self._transcoder = transcoder
        self._store = store

    @property
    def store(self) -> CacheStore | None:
        return self._store

    async def get_or_transcode(
        self,
        source_id: str,
        load: Callable[[], Awaitable[bytes]],
    ) -> ResolvedImage:
        """Return the cached transcode for ``source_id`` or load and transcode.

        ``load`` is awaited only on a cache miss.
        """
        key = hash_source(source_id)
        if self._store is not None:
            cached = await asyncio.to_thread(self._store.get, key)
            if cached is not None:
                hit = await asyncio.to_thread(self._from_cache, key, cached)
                if hit is not None:
                    logger.info("Using cached image for %s", _short(source_id))
                    return hit

        raw = await load()
        result = await asyncio.to_thread(self._transcoder.transcode, raw)
        if self._store is not None:
            await asyncio.to_thread(
                self._store.set,
                key,
                result.data,
                {"width": result.width, "height": result.height, "format": result.format},
            )
        return result

    def _from_cache(self, key: str, data: bytes) -> ResolvedImage | None:
        try:
            info = probe_image(data)
        except ValueError as e:
            logger.warning("Cached blob %s is not a valid image (%s), discarding", key, e)
            if self._store is not None:
                self._store.remove(key)
            return None
        return ResolvedImage(
            data=data,
            width=info.width,
            height=info.height,
            format=target_format(info.format),
            cached=True,
        )


def _short(source_id: str) -> str:
    return source_id if len(source_id) <= 80 else source_id[:77] + "..."
