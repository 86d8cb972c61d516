# ABOUTME: Unit tests for cover candidate gathering and image validation.
# ABOUTME: Covers ISBN candidate placement, dedupe-before-fetch, the cap, and dropped thumbnails.

import pytest

from lectern.metadata.covers import (
    CoverGatherer,
    dedupe_candidates,
    download_image,
    is_valid_image,
)
from lectern.metadata.http import MetadataFetchError
from lectern.metadata.types import CoverSource
from tests.fixtures.fakes import FakeHttpClient, FakeProvider, make_candidate
from tests.fixtures.images import (
    GIF_BYTES,
    HTML_BYTES,
    JPEG_BYTES,
    PNG_BYTES,
    TRUNCATED_JPEG_BYTES,
    WEBP_BYTES,
)

ALL_IMAGES = {"img.example": JPEG_BYTES, "covers.openlibrary.org": PNG_BYTES}


class TestIsValidImage:
    """Tests for decode-based image validation."""

    @pytest.mark.parametrize("data", [PNG_BYTES, JPEG_BYTES, GIF_BYTES, WEBP_BYTES])
    def test_decodable_formats(self, data: bytes) -> None:
        assert is_valid_image(data)

    @pytest.mark.parametrize(
        "data",
        [
            b"",
            HTML_BYTES,
            b"RIFF\x00\x00\x00\x00WAVE",
            TRUNCATED_JPEG_BYTES,
            b"\xff\xd8\xff<html>502 Bad Gateway</html>",
        ],
    )
    def test_rejected(self, data: bytes) -> None:
        assert not is_valid_image(data)


class TestDownloadImage:
    """Tests for download_image."""

    @pytest.mark.asyncio
    async def test_returns_image_bytes(self) -> None:
        client = FakeHttpClient(byte_responses={"img.example": PNG_BYTES})
        assert await download_image(client, "https://img.example/a.png") == PNG_BYTES

    @pytest.mark.asyncio
    async def test_non_image_body_is_none(self) -> None:
        client = FakeHttpClient(byte_responses={"img.example": HTML_BYTES})
        assert await download_image(client, "https://img.example/a.png") is None

    @pytest.mark.asyncio
    async def test_truncated_jpeg_is_none(self) -> None:
        client = FakeHttpClient(byte_responses={"img.example": TRUNCATED_JPEG_BYTES})
        assert await download_image(client, "https://img.example/a.jpg") is None

    @pytest.mark.asyncio
    async def test_error_page_with_jpeg_header_is_none(self) -> None:
        body = b"\xff\xd8\xff<html>502 Bad Gateway</html>"
        client = FakeHttpClient(byte_responses={"img.example": body})
        assert await download_image(client, "https://img.example/a.jpg") is None

    @pytest.mark.asyncio
    async def test_fetch_error_is_none(self) -> None:
        client = FakeHttpClient(byte_responses={"img.example": MetadataFetchError("HTTP 404")})
        assert await download_image(client, "https://img.example/a.png") is None


class TestDedupeCandidates:
    """Tests for dedupe_candidates."""

    def test_first_wins_by_thumbnail_url(self) -> None:
        first = make_candidate("a")
        duplicate = make_candidate("a", CoverSource.OPEN_LIBRARY)
        other = make_candidate("b")
        assert dedupe_candidates([first, duplicate, other]) == [first, other]


class TestCoverGatherer:
    """Tests for CoverGatherer.gather."""

    @pytest.mark.asyncio
    async def test_no_terms_returns_empty_without_requests(self) -> None:
        provider = FakeProvider(covers=[make_candidate("a")])
        client = FakeHttpClient(byte_responses=ALL_IMAGES)
        gatherer = CoverGatherer([provider], client)
        assert await gatherer.gather("  ", None, "") == []
        assert provider.cover_requests == []
        assert client.requests == []

    @pytest.mark.asyncio
    async def test_candidates_in_provider_order_with_thumbnails(self) -> None:
        google = FakeProvider("googlebooks", covers=[make_candidate("g1"), make_candidate("g2")])
        openlib = FakeProvider(
            "openlibrary",
            covers=[make_candidate("o1", CoverSource.OPEN_LIBRARY)],
            source=CoverSource.OPEN_LIBRARY,
        )
        gatherer = CoverGatherer([google, openlib], FakeHttpClient(byte_responses=ALL_IMAGES))
        result = await gatherer.gather("Dune", "Frank Herbert")
        assert [c.identity for c in result] == [
            "googlebooks:g1",
            "googlebooks:g2",
            "openlibrary:o1",
        ]
        assert all(c.thumbnail == JPEG_BYTES for c in result)

    @pytest.mark.asyncio
    async def test_isbn_candidate_is_first(self) -> None:
        google = FakeProvider("googlebooks", covers=[make_candidate("g1")])
        gatherer = CoverGatherer([google], FakeHttpClient(byte_responses=ALL_IMAGES))
        result = await gatherer.gather("Dune", isbn="9780441013593")
        assert result[0].identity == "openlibrary:isbn:9780441013593"
        assert result[0].thumbnail == PNG_BYTES
        assert result[1].identity == "googlebooks:g1"

    @pytest.mark.asyncio
    async def test_providers_see_per_provider_limit(self) -> None:
        covers = [make_candidate(f"g{i}") for i in range(10)]
        google = FakeProvider("googlebooks", covers=covers)
        gatherer = CoverGatherer(
            [google], FakeHttpClient(byte_responses=ALL_IMAGES), per_provider_limit=3
        )
        result = await gatherer.gather("Dune")
        assert len(result) == 3

    @pytest.mark.asyncio
    async def test_capped_at_max_candidates(self) -> None:
        google = FakeProvider("googlebooks", covers=[make_candidate(f"g{i}") for i in range(4)])
        openlib = FakeProvider(
            "openlibrary",
            covers=[make_candidate(f"o{i}", CoverSource.OPEN_LIBRARY) for i in range(4)],
        )
        gatherer = CoverGatherer(
            [google, openlib], FakeHttpClient(byte_responses=ALL_IMAGES), max_candidates=8
        )
        result = await gatherer.gather("Dune", isbn="9780441013593")
        assert len(result) == 8
        # ISBN candidate plus seven provider candidates; the last one is cut
        assert result[-1].identity == "openlibrary:o2"

    @pytest.mark.asyncio
    async def test_duplicates_removed_before_download(self) -> None:
        google = FakeProvider("googlebooks", covers=[make_candidate("same")])
        openlib = FakeProvider("openlibrary", covers=[make_candidate("same")])
        client = FakeHttpClient(byte_responses=ALL_IMAGES)
        gatherer = CoverGatherer([google, openlib], client)
        result = await gatherer.gather("Dune")
        assert len(result) == 1
        assert client.count("same-thumb.jpg") == 1

    @pytest.mark.asyncio
    async def test_failed_thumbnails_are_dropped(self) -> None:
        google = FakeProvider(
            "googlebooks",
            covers=[
                make_candidate("ok"),
                make_candidate("broken"),
                make_candidate("html"),
                make_candidate("truncated"),
            ],
        )
        client = FakeHttpClient(
            byte_responses={
                "broken-thumb": MetadataFetchError("HTTP 404"),
                "html-thumb": HTML_BYTES,
                "truncated-thumb": TRUNCATED_JPEG_BYTES,
                "img.example": JPEG_BYTES,
            }
        )
        result = await CoverGatherer([google], client).gather("Dune")
        assert [c.identity for c in result] == ["googlebooks:ok"]
        assert client.count("-thumb.jpg") == 4

    @pytest.mark.asyncio
    async def test_missing_isbn_cover_is_dropped(self) -> None:
        """The ISBN candidate 404s when the CDN has no cover for it."""
        google = FakeProvider("googlebooks", covers=[make_candidate("g1")])
        client = FakeHttpClient(
            byte_responses={
                "covers.openlibrary.org": MetadataFetchError("HTTP 404"),
                "img.example": JPEG_BYTES,
            }
        )
        result = await CoverGatherer([google], client).gather(isbn="9780000000002")
        assert [c.identity for c in result] == ["googlebooks:g1"]

    @pytest.mark.asyncio
    async def test_full_size_images_not_downloaded(self) -> None:
        google = FakeProvider("googlebooks", covers=[make_candidate("g1")])
        client = FakeHttpClient(byte_responses=ALL_IMAGES)
        await CoverGatherer([google], client).gather("Dune")
        assert client.count("-full.jpg") == 0
