"""Shared Pydantic models for md2docx."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

# ── Enums ──


class RetryStrategy(StrEnum):
    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    FIXED = "fixed"


class SourceKind(StrEnum):
    URL = "url"
    DATA = "data"
    PATH = "path"


class ConversionStage(StrEnum):
    PARSING = "parsing"
    GENERATION = "generation"
    SAVING = "saving"


# ── Config models ──


class RetryConfig(BaseModel):
    max_attempts: int = 3
    strategy: RetryStrategy = RetryStrategy.LINEAR
    initial_wait: float = 1.0


class ImageOptions(BaseModel):
    max_width: int = 800
    quality: int = 85
    display_max_width: int = 600
    temp_dir: Path = Field(default_factory=lambda: Path.cwd() / "temp")
    timeout_seconds: float = 30.0
    max_concurrent_fetches: int | None = None
    retry: RetryConfig = Field(default_factory=RetryConfig)


# ── Inline / image models ──


class InlineRun(BaseModel):
    """A contiguous span of text sharing one combination of emphasis flags."""

    model_config = ConfigDict(frozen=True)

    text: str
    bold: bool = False
    italic: bool = False
    is_code: bool = False
    color: str | None = None


class ImageRef(BaseModel):
    """An image reference found in the markdown source."""

    model_config = ConfigDict(frozen=True)

    source: str
    alt: str = ""
    title: str = ""

    @property
    def kind(self) -> SourceKind:
        if self.source.startswith(("http://", "https://")):
            return SourceKind.URL
        if self.source.startswith("data:image/"):
            return SourceKind.DATA
        return SourceKind.PATH

    @property
    def label(self) -> str:
        """Short human-readable name used in logs and placeholders."""
        if self.alt:
            return self.alt
        if self.kind == SourceKind.DATA:
            return self.source[:32] + "..."
        return self.source


class ResolvedImage(BaseModel):
    data: bytes
    width: int
    height: int
    format: str
    cached: bool = False


# ── Block nodes ──


class HeadingBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["heading"] = "heading"
    level: int = Field(ge=1, le=6)
    runs: tuple[InlineRun, ...] = ()


class ParagraphBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["paragraph"] = "paragraph"
    runs: tuple[InlineRun, ...] = ()
    is_quote: bool = False
    # Set only on the placeholder emitted for an image that failed to resolve
    failed_source: str | None = None


class ListItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    level: int = 0
    runs: tuple[InlineRun, ...] = ()


class ListBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["list"] = "list"
    items: tuple[ListItem, ...] = ()
    ordered: bool = False
    level: int = 0


class TaskItemBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["task_item"] = "task_item"
    text: str
    checked: bool = False
    level: int = 0
    runs: tuple[InlineRun, ...] = ()


class CodeBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["code"] = "code"
    code: str
    language: str = ""


class TableBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["table"] = "table"
    rows: list[list[str]] = Field(default_factory=list)


class ImageBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["image"] = "image"
    data: bytes
    format: str
    display_width: int
    display_height: int
    caption: str = ""
    source: str = ""


BlockNode = Annotated[
    HeadingBlock
    | ParagraphBlock
    | ListBlock
    | TaskItemBlock
    | CodeBlock
    | TableBlock
    | ImageBlock,
    Field(discriminator="kind"),
]


# ── Runtime models ──


class ImageReport(BaseModel):
    """Aggregate outcome of one image pipeline run."""

    succeeded: int = 0
    failed: int = 0
    failed_sources: list[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed


class ConversionResult(BaseModel):
    output_path: Path | None = None
    data: bytes = b""
    block_count: int = 0
    images: ImageReport = Field(default_factory=ImageReport)
    duration_seconds: float = 0.0

    def save(self, path: str | Path) -> Path:
        """Write the generated document bytes to ``path``."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.data)
        self.output_path = path
        return path
