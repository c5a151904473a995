"""Tests for custom exception hierarchy."""

from md2docx.errors.exceptions import (
    CacheIOError,
    ConversionError,
    ImageResolutionError,
    Md2DocxError,
    SerializationError,
    TokenizerContractViolation,
    TransientError,
)


class TestExceptionHierarchy:
    def test_all_inherit_from_base(self):
        for cls in (
            TokenizerContractViolation,
            TransientError,
            ImageResolutionError,
            CacheIOError,
            SerializationError,
            ConversionError,
        ):
            assert issubclass(cls, Md2DocxError)

    def test_all_inherit_from_exception(self):
        assert issubclass(Md2DocxError, Exception)


class TestTransientError:
    def test_attributes(self):
        err = TransientError("Bad gateway", error_type="http_status", http_status=502)
        assert err.error_type == "http_status"
        assert err.http_status == 502
        assert "Bad gateway" in str(err)

    def test_defaults(self):
        err = TransientError("test")
        assert err.error_type == "server_error"
        assert err.http_status is None


class TestImageResolutionError:
    def test_attributes(self):
        cause = OSError("boom")
        err = ImageResolutionError("failed", source="a.png", error_type="read", cause=cause)
        assert err.source == "a.png"
        assert err.error_type == "read"
        assert err.cause is cause

    def test_default_type_is_network(self):
        assert ImageResolutionError("x").error_type == "network"


class TestTokenizerContractViolation:
    def test_carries_index(self):
        err = TokenizerContractViolation("unbalanced", index=7, token_type="paragraph_close")
        assert err.index == 7
        assert err.token_type == "paragraph_close"


class TestConversionError:
    def test_stage_and_inner(self):
        inner = SerializationError("docx broke")
        err = ConversionError("Conversion failed during generation: docx broke", stage="generation", inner=inner)
        assert err.stage == "generation"
        assert err.inner is inner
        assert err.message.startswith("Conversion failed during generation")


class TestCacheIOError:
    def test_key(self):
        assert CacheIOError("disk full", key="abc").key == "abc"
