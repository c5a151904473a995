"""Resolve every image reference of a document concurrently."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from md2docx.concurrency.pool import ConcurrencyPool
from md2docx.config.defaults import DEFAULT_DISPLAY_MAX_WIDTH
from md2docx.document.builder import make_image_block, make_image_placeholder
from md2docx.errors.exceptions import ImageResolutionError
from md2docx.images.fetch import ImageFetcher, decode_data_uri, normalize_data_uri
from md2docx.images.transcode import CachingTranscoder
from md2docx.types import (
    ImageBlock,
    ImageRef,
    ImageReport,
    ParagraphBlock,
    ResolvedImage,
    SourceKind,
)

logger = logging.getLogger(__name__)


class ImageResolver:
    """Turns one ImageRef into transcoded bytes, consulting the cache first.

    URL sources are keyed by the URL and local files by their absolute path,
    both looked up before any I/O. Data URIs are decoded first (a malformed
    one fails without touching the cache) and keyed by their normalized text.
    """

    def __init__(self, fetcher: ImageFetcher, transcoder: CachingTranscoder) -> None:
        self._fetcher = fetcher
        self._transcoder = transcoder

    async def resolve(self, ref: ImageRef) -> ResolvedImage:
        kind = ref.kind
        if kind == SourceKind.URL:
            source_id = ref.source

            async def load() -> bytes:
                return await self._fetcher.fetch_url(ref.source)

        elif kind == SourceKind.DATA:
            raw = decode_data_uri(ref.source)
            source_id = normalize_data_uri(ref.source)

            async def load() -> bytes:
                return raw

        else:
            # Relative paths depend on the document's directory
            source_id = str(self._fetcher.resolve_path(ref.source).resolve())

            async def load() -> bytes:
                return await asyncio.to_thread(self._fetcher.read_path, ref.source)

        try:
            return await self._transcoder.get_or_transcode(source_id, load)
        except ValueError as e:
            raise ImageResolutionError(
                f"Failed to process image {ref.label}: {e}",
                source=ref.source,
                error_type="transcode",
                cause=e,
            ) from e


class ImagePipeline:
    """Fans references out over a ConcurrencyPool and collects blocks.

    One reference failing never affects the others; it becomes a visible
    placeholder paragraph in the same position.
    """

    def __init__(
        self,
        resolver: ImageResolver,
        pool: ConcurrencyPool | None = None,
        display_max_width: int = DEFAULT_DISPLAY_MAX_WIDTH,
    ) -> None:
        self._resolver = resolver
        self._pool = pool or ConcurrencyPool()
        self._display_max_width = display_max_width

    async def run(
        self, refs: Sequence[ImageRef]
    ) -> tuple[list[ImageBlock | ParagraphBlock], ImageReport]:
        """Resolve ``refs``; the returned blocks are in input order."""
        if not refs:
            return [], ImageReport()

        logger.info("Processing %d image(s)", len(refs))
        outcomes = await self._pool.settle(self._resolver.resolve, refs)

        blocks: list[ImageBlock | ParagraphBlock] = []
        report = ImageReport()
        for ref, outcome in zip(refs, outcomes, strict=True):
            if isinstance(outcome, Exception):
                logger.warning("Image %s failed: %s", ref.label, outcome)
                blocks.append(make_image_placeholder(ref))
                report.failed += 1
                report.failed_sources.append(ref.source)
            else:
                blocks.append(make_image_block(ref, outcome, self._display_max_width))
                report.succeeded += 1

        logger.info(
            "Image processing complete: %d succeeded, %d failed",
            report.succeeded,
            report.failed,
        )
        return blocks, report
