"""Image acquisition — fetch, transcode, cache and splice into the document."""

from md2docx.images.fetch import ImageFetcher, decode_data_uri
from md2docx.images.pipeline import ImagePipeline, ImageResolver
from md2docx.images.refs import extract_image_refs, find_image_refs, strip_image_markup
from md2docx.images.transcode import CachingTranscoder, ImageTranscoder

__all__ = [
    "ImageFetcher",
    "ImageTranscoder",
    "CachingTranscoder",
    "ImageResolver",
    "ImagePipeline",
    "decode_data_uri",
    "extract_image_refs",
    "find_image_refs",
    "strip_image_markup",
]
