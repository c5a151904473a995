"""Tests for source-specific image fetching."""

import asyncio
import base64
import time

import httpx
import pytest

from md2docx.errors.exceptions import ImageResolutionError
from md2docx.images.fetch import ImageFetcher, decode_data_uri, normalize_data_uri
from md2docx.types import RetryConfig

FAST_RETRY = RetryConfig(max_attempts=3, initial_wait=0.0)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestDecodeDataUri:
    def test_valid(self, png_bytes, data_uri):
        assert decode_data_uri(data_uri) == png_bytes

    def test_whitespace_stripped(self, png_bytes, data_uri):
        wrapped = data_uri[:40] + "\n  " + data_uri[40:]
        assert decode_data_uri(wrapped) == png_bytes

    def test_normalize(self):
        assert normalize_data_uri("data:image/png;base64, AA\nBB ") == "data:image/png;base64,AABB"

    def test_wrong_prefix(self):
        with pytest.raises(ImageResolutionError) as exc_info:
            decode_data_uri("data:text/plain;base64,aGVsbG8=")
        assert exc_info.value.error_type == "format"

    def test_bad_base64(self):
        with pytest.raises(ImageResolutionError) as exc_info:
            decode_data_uri("data:image/png;base64,@@@not-base64@@@")
        assert exc_info.value.error_type == "format"


class TestFetchUrl:
    async def test_success(self, png_bytes):
        def handler(request):
            return httpx.Response(200, content=png_bytes)

        async with ImageFetcher(client=_client(handler), retry=FAST_RETRY) as fetcher:
            assert await fetcher.fetch_url("https://example.com/a.png") == png_bytes

    async def test_retries_then_succeeds(self, png_bytes):
        calls = 0

        def handler(request):
            nonlocal calls
            calls += 1
            if calls < 3:
                return httpx.Response(500)
            return httpx.Response(200, content=png_bytes)

        async with ImageFetcher(client=_client(handler), retry=FAST_RETRY) as fetcher:
            assert await fetcher.fetch_url("https://example.com/a.png") == png_bytes
        assert calls == 3

    async def test_gives_up_after_max_attempts(self):
        calls = 0

        def handler(request):
            nonlocal calls
            calls += 1
            return httpx.Response(404)

        async with ImageFetcher(client=_client(handler), retry=FAST_RETRY) as fetcher:
            with pytest.raises(ImageResolutionError) as exc_info:
                await fetcher.fetch_url("https://example.com/missing.png")

        assert calls == 3
        err = exc_info.value
        assert err.error_type == "network"
        assert err.source == "https://example.com/missing.png"
        assert "after 3 attempts" in str(err)

    async def test_connection_errors_retried(self, png_bytes):
        calls = 0

        def handler(request):
            nonlocal calls
            calls += 1
            if calls == 1:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, content=png_bytes)

        async with ImageFetcher(client=_client(handler), retry=FAST_RETRY) as fetcher:
            assert await fetcher.fetch_url("https://example.com/a.png") == png_bytes
        assert calls == 2

    async def test_injected_client_not_closed(self, png_bytes):
        client = _client(lambda request: httpx.Response(200, content=png_bytes))
        async with ImageFetcher(client=client, retry=FAST_RETRY):
            pass
        assert not client.is_closed
        await client.aclose()


class TestConcurrentFetches:
    async def test_uncapped_by_default(self, png_bytes):
        in_flight = 0
        peak = 0

        async def handler(request):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.05)
            in_flight -= 1
            return httpx.Response(200, content=png_bytes)

        async with ImageFetcher(client=_client(handler), retry=FAST_RETRY) as fetcher:
            await asyncio.gather(*(fetcher.fetch_url(f"https://example.com/{i}.png") for i in range(12)))
        assert peak == 12

    async def test_cap_limits_requests_in_flight(self, png_bytes):
        in_flight = 0
        peak = 0

        async def handler(request):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.02)
            in_flight -= 1
            return httpx.Response(200, content=png_bytes)

        async with ImageFetcher(client=_client(handler), retry=FAST_RETRY, max_concurrent=3) as fetcher:
            await asyncio.gather(*(fetcher.fetch_url(f"https://example.com/{i}.png") for i in range(10)))
        assert peak <= 3

    async def test_backoff_wait_releases_slot(self, png_bytes):
        """A retrying fetch must not hold its slot while it waits."""
        start = time.monotonic()
        finished = {}
        flaky_calls = 0

        def handler(request):
            nonlocal flaky_calls
            if "flaky" in str(request.url):
                flaky_calls += 1
                if flaky_calls == 1:
                    return httpx.Response(503)
            return httpx.Response(200, content=png_bytes)

        async def fetch(fetcher, url):
            await fetcher.fetch_url(url)
            finished[url] = time.monotonic() - start

        slow_retry = RetryConfig(max_attempts=2, initial_wait=0.5)
        async with ImageFetcher(client=_client(handler), retry=slow_retry, max_concurrent=1) as fetcher:
            await asyncio.gather(
                fetch(fetcher, "https://example.com/flaky.png"),
                fetch(fetcher, "https://example.com/ok.png"),
            )

        assert finished["https://example.com/ok.png"] < 0.3
        assert finished["https://example.com/flaky.png"] >= 0.5

    def test_invalid_cap(self):
        with pytest.raises(ValueError):
            ImageFetcher(client=_client(None), max_concurrent=0)


class TestReadPath:
    def test_absolute(self, local_png, png_bytes):
        assert ImageFetcher(client=_client(None)).read_path(str(local_png)) == png_bytes

    def test_relative_to_base_dir(self, local_png, png_bytes):
        fetcher = ImageFetcher(client=_client(None), base_dir=local_png.parent)
        assert fetcher.read_path("pic.png") == png_bytes

    def test_missing(self, tmp_path):
        fetcher = ImageFetcher(client=_client(None), base_dir=tmp_path)
        with pytest.raises(ImageResolutionError) as exc_info:
            fetcher.read_path("nope.png")
        assert exc_info.value.error_type == "read"

    def test_unsupported_extension(self, tmp_path):
        (tmp_path / "notes.txt").write_text("hi")
        fetcher = ImageFetcher(client=_client(None), base_dir=tmp_path)
        with pytest.raises(ImageResolutionError, match="Unsupported"):
            fetcher.read_path("notes.txt")
