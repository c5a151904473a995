import base64
import io

import pytest
from PIL import Image


def make_image_bytes(width: int = 10, height: int = 10, fmt: str = "PNG", color=(200, 30, 30)) -> bytes:
    """Encode a solid-colour image of the given size."""
    img = Image.new("RGB", (width, height), color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def sample_image_bytes():
    """Minimal valid PNG for testing (1x1 white pixel)."""
    return base64.b64decode(
        "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR4"
        "nGP4z8BQDwAEgAF/pooBPQAAAABJRU5ErkJggg=="
    )


@pytest.fixture
def png_bytes():
    return make_image_bytes(40, 20)


@pytest.fixture
def wide_png_bytes():
    """A PNG wider than both the resize and display ceilings."""
    return make_image_bytes(1200, 600)


@pytest.fixture
def data_uri(png_bytes):
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode()


@pytest.fixture
def local_png(tmp_path, png_bytes):
    path = tmp_path / "pic.png"
    path.write_bytes(png_bytes)
    return path


@pytest.fixture
def sample_styles_yaml(tmp_path):
    """Write a minimal style override YAML and return its path."""
    content = """
styles:
  heading1:
    font: Arial
    size: 40
  toc:
    enabled: true
    title: Table of Contents
  document:
    title: Test Document
    author: Tester
"""
    path = tmp_path / "styles.yaml"
    path.write_text(content)
    return path


@pytest.fixture
def image_factory():
    return make_image_bytes
