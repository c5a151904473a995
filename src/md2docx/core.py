"""Top-level entry points: convert(), convert_text(), Md2Docx."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Any

import httpx

from md2docx.cache.store import CacheStore
from md2docx.concurrency.pool import ConcurrencyPool
from md2docx.config.defaults import (
    DEFAULT_CACHE_DIR,
    DEFAULT_CACHE_MAX_AGE,
    DEFAULT_CACHE_MAX_SIZE,
    DEFAULT_PARSER_PRESET,
)
from md2docx.config.hierarchy import load_config_hierarchy
from md2docx.config.styles import StyleTable, load_styles
from md2docx.document.compiler import TokenStreamCompiler
from md2docx.document.render import DocxRenderer
from md2docx.document.tokenize import tokenize
from md2docx.errors.exceptions import ConversionError
from md2docx.images.fetch import ImageFetcher
from md2docx.images.pipeline import ImagePipeline, ImageResolver
from md2docx.images.refs import extract_image_refs
from md2docx.images.transcode import CachingTranscoder, ImageTranscoder
from md2docx.types import (
    ConversionResult,
    ConversionStage,
    ImageBlock,
    ImageOptions,
    ImageRef,
    ImageReport,
    ParagraphBlock,
    RetryConfig,
)

logger = logging.getLogger(__name__)


class Md2Docx:
    """Markdown to DOCX converter with full lifecycle control.

    A fresh CacheStore is opened for every conversion run and handed to the
    image pipeline explicitly; nothing is shared between converter instances.
    """

    def __init__(
        self,
        styles: StyleTable | None = None,
        image_options: ImageOptions | None = None,
        cache_dir: str | Path | None = None,
        cache_max_age: float = DEFAULT_CACHE_MAX_AGE,
        cache_max_size: int = DEFAULT_CACHE_MAX_SIZE,
        no_cache: bool = False,
        parser_preset: str = DEFAULT_PARSER_PRESET,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._styles = styles or StyleTable()
        self._image_options = image_options or ImageOptions()
        self._cache_dir = Path(cache_dir) if cache_dir is not None else Path.cwd() / DEFAULT_CACHE_DIR
        self._cache_max_age = cache_max_age
        self._cache_max_size = cache_max_size
        self._no_cache = no_cache
        self._parser_preset = parser_preset
        self._http_client = http_client

    @classmethod
    def from_config(cls, **overrides: Any) -> Md2Docx:
        """Build a converter from the merged configuration hierarchy.

        ``overrides`` take precedence over every file and environment layer;
        None values are ignored.
        """
        config = load_config_hierarchy(**overrides)
        styles_path = config.get("styles_path")
        styles = load_styles(styles_path) if styles_path else StyleTable()
        if config.get("toc"):
            styles = styles.model_copy(update={"toc": styles.toc.model_copy(update={"enabled": True})})

        image_options = ImageOptions(
            max_width=config["image_max_width"],
            quality=config["image_quality"],
            display_max_width=config["display_max_width"],
            temp_dir=Path(config["temp_dir"]),
            timeout_seconds=config["fetch_timeout"],
            max_concurrent_fetches=config["max_concurrent_fetches"],
            retry=RetryConfig(
                max_attempts=config["max_retries"],
                strategy=config["retry_strategy"],
                initial_wait=config["retry_wait"],
            ),
        )
        return cls(
            styles=styles,
            image_options=image_options,
            cache_dir=config["cache_dir"],
            cache_max_age=config["cache_max_age"],
            cache_max_size=config["cache_max_size"],
            no_cache=config["cache_disabled"],
            parser_preset=config["parser_preset"],
        )

    @property
    def styles(self) -> StyleTable:
        return self._styles

    @property
    def image_options(self) -> ImageOptions:
        return self._image_options

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def open_cache(self) -> CacheStore | None:
        """Open the cache for one run, or None when caching is disabled."""
        if self._no_cache:
            return None
        return CacheStore(
            self._cache_dir,
            max_age=self._cache_max_age,
            max_size=self._cache_max_size,
        )

    async def convert_text_async(
        self,
        markdown: str,
        base_dir: str | Path | None = None,
    ) -> ConversionResult:
        """Convert markdown text to DOCX bytes without writing a file.

        Relative image paths are resolved against ``base_dir``.

        Raises:
            ConversionError: a fatal error occurred; ``stage`` says where.
        """
        start = time.monotonic()
        base = Path(base_dir) if base_dir is not None else None

        stage = ConversionStage.PARSING
        try:
            tokens = tokenize(markdown, self._parser_preset)
            refs = extract_image_refs(tokens)
            image_blocks, report = await self._resolve_images(refs, base)
            blocks = TokenStreamCompiler().compile(tokens, image_blocks)

            stage = ConversionStage.GENERATION
            renderer = DocxRenderer(self._styles, temp_dir=self._image_options.temp_dir)
            data = await asyncio.to_thread(renderer.render, blocks)
        except Exception as e:
            raise _wrap(stage, e) from e

        duration = time.monotonic() - start
        logger.info(
            "Converted %d blocks in %.2fs (%d images, %d failed)",
            len(blocks),
            duration,
            report.succeeded,
            report.failed,
        )
        return ConversionResult(
            data=data,
            block_count=len(blocks),
            images=report,
            duration_seconds=duration,
        )

    async def convert_async(
        self,
        input_path: str | Path,
        output_path: str | Path | None = None,
    ) -> ConversionResult:
        """Convert a markdown file and write the .docx next to it (or to ``output_path``)."""
        input_path = Path(input_path)
        try:
            markdown = input_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise _wrap(ConversionStage.PARSING, e) from e

        result = await self.convert_text_async(markdown, base_dir=input_path.parent)

        target = Path(output_path) if output_path is not None else input_path.with_suffix(".docx")
        try:
            result.save(target)
        except OSError as e:
            raise _wrap(ConversionStage.SAVING, e) from e
        logger.info("Wrote %s", target)
        return result

    def convert(
        self,
        input_path: str | Path,
        output_path: str | Path | None = None,
    ) -> ConversionResult:
        """Synchronous wrapper around :meth:`convert_async`."""
        return asyncio.run(self.convert_async(input_path, output_path))

    async def _resolve_images(
        self, refs: list[ImageRef], base_dir: Path | None
    ) -> tuple[list[ImageBlock | ParagraphBlock], ImageReport]:
        if not refs:
            return [], ImageReport()

        opts = self._image_options
        store = self.open_cache()
        transcoder = CachingTranscoder(
            ImageTranscoder(max_width=opts.max_width, quality=opts.quality),
            store,
        )
        async with ImageFetcher(
            client=self._http_client,
            retry=opts.retry,
            timeout=opts.timeout_seconds,
            base_dir=base_dir,
            max_concurrent=opts.max_concurrent_fetches,
        ) as fetcher:
            pipeline = ImagePipeline(
                ImageResolver(fetcher, transcoder),
                ConcurrencyPool(),
                display_max_width=opts.display_max_width,
            )
            return await pipeline.run(refs)


def _wrap(stage: ConversionStage, exc: Exception) -> ConversionError:
    if isinstance(exc, ConversionError):
        return exc
    return ConversionError(
        f"Conversion failed during {stage.value}: {exc}",
        stage=stage,
        inner=exc,
    )


# ── Module-level convenience functions ──


def convert(
    input_path: str | Path,
    output_path: str | Path | None = None,
    styles_path: str | Path | None = None,
    no_cache: bool = False,
    **overrides: Any,
) -> ConversionResult:
    """Convert a markdown file to DOCX (sync wrapper)."""
    converter = Md2Docx.from_config(
        styles_path=str(styles_path) if styles_path else None,
        cache_disabled=no_cache or None,
        **overrides,
    )
    return converter.convert(input_path, output_path)


def convert_text(markdown: str, base_dir: str | Path | None = None, **overrides: Any) -> bytes:
    """Convert markdown text and return the .docx bytes (sync wrapper)."""
    converter = Md2Docx.from_config(**overrides)
    result = asyncio.run(converter.convert_text_async(markdown, base_dir=base_dir))
    return result.data
