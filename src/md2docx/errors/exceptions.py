"""Custom exception hierarchy for md2docx."""

from __future__ import annotations

from typing import Any


class Md2DocxError(Exception):
    """Base exception for all md2docx errors."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message


class TokenizerContractViolation(Md2DocxError):
    """The token stream broke open/close pairing — fatal for compilation."""

    def __init__(
        self,
        message: str = "",
        index: int | None = None,
        token_type: str | None = None,
    ) -> None:
        super().__init__(message)
        self.index = index
        self.token_type = token_type


class TransientError(Md2DocxError):
    """Transient network error — safe to retry with backoff.

    Examples: timeout, connection reset, non-2xx response.
    """

    def __init__(
        self,
        message: str = "",
        error_type: str = "server_error",
        http_status: int | None = None,
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.http_status = http_status
        self.original = original


class ImageResolutionError(Md2DocxError):
    """A single image could not be fetched, decoded or transcoded.

    Isolated to that image: the document gets a placeholder block instead.
    """

    def __init__(
        self,
        message: str = "",
        source: str = "",
        error_type: str = "network",
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.source = source
        self.error_type = error_type
        self.cause = cause


class CacheIOError(Md2DocxError):
    """Disk failure while reading or writing the image cache."""

    def __init__(self, message: str = "", key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class SerializationError(Md2DocxError):
    """The DOCX library failed to produce the final document bytes."""


class ConversionError(Md2DocxError):
    """Fatal error wrapped with the stage it happened in."""

    def __init__(
        self,
        message: str = "",
        stage: str = "parsing",
        inner: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.inner = inner
