"""Error handling — exceptions and retry policy."""

from md2docx.errors.exceptions import (
    CacheIOError,
    ConversionError,
    ImageResolutionError,
    Md2DocxError,
    SerializationError,
    TokenizerContractViolation,
    TransientError,
)

__all__ = [
    "Md2DocxError",
    "TokenizerContractViolation",
    "TransientError",
    "ImageResolutionError",
    "CacheIOError",
    "SerializationError",
    "ConversionError",
]
