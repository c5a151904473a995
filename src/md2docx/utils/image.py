"""Image loading, probing and re-encoding helpers built on Pillow."""

from __future__ import annotations

import io
from pathlib import Path

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel

_SUPPORTED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp", ".tif", ".tiff"}
_MAX_IMAGE_SIZE_BYTES = 50 * 1024 * 1024  # 50 MB

# Formats re-encoded in their own family; anything else becomes JPEG
_PRESERVED_FORMATS = {"jpeg", "png", "webp"}
_EXTENSIONS = {"jpeg": ".jpg", "png": ".png", "webp": ".webp"}


class ImageInfo(BaseModel):
    width: int
    height: int
    format: str


def load_image(path: str | Path) -> bytes:
    """Load an image file and return raw bytes."""
    path = Path(path)
    _validate_path(path)
    return path.read_bytes()


def open_image(data: bytes) -> Image.Image:
    """Decode bytes into a Pillow image, raising ValueError if unreadable."""
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Cannot decode image data: {e}") from e
    return img


def probe_image(data: bytes) -> ImageInfo:
    """Return width, height and normalized format of encoded image bytes."""
    img = open_image(data)
    return ImageInfo(width=img.width, height=img.height, format=(img.format or "").lower())


def target_format(source_format: str) -> str:
    """Map a decoded format to the format it is re-encoded in."""
    fmt = source_format.lower()
    if fmt == "jpg":
        fmt = "jpeg"
    return fmt if fmt in _PRESERVED_FORMATS else "jpeg"


def extension_for(fmt: str) -> str:
    return _EXTENSIONS.get(target_format(fmt), ".jpg")


def resize_to_width(img: Image.Image, max_width: int) -> Image.Image:
    """Shrink proportionally so the width fits ``max_width``; never enlarges."""
    if img.width <= max_width:
        return img
    ratio = max_width / img.width
    height = max(1, round(img.height * ratio))
    return img.resize((max_width, height), Image.Resampling.LANCZOS)


def encode_image(img: Image.Image, fmt: str, quality: int) -> bytes:
    """Encode ``img`` as jpeg, png or webp at the given quality."""
    fmt = target_format(fmt)
    buf = io.BytesIO()
    if fmt == "jpeg":
        if img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        img.save(buf, format="JPEG", quality=quality, optimize=True)
    elif fmt == "png":
        img.save(buf, format="PNG", optimize=True)
    else:
        img.save(buf, format="WEBP", quality=quality)
    return buf.getvalue()


def _validate_path(path: Path) -> None:
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    if not path.is_file():
        raise ValueError(f"Not a file: {path}")
    if path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ValueError(f"Unsupported file type: {path.suffix}")
    size = path.stat().st_size
    if size > _MAX_IMAGE_SIZE_BYTES:
        raise ValueError(f"File too large ({size} bytes, max {_MAX_IMAGE_SIZE_BYTES})")
