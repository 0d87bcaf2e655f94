"""Tests for ImageEmbedder, the capture-level image pipeline."""

import base64
import os
import threading
from unittest.mock import patch

import aiohttp
import pytest

from pageclip import (
    ClipperConfig,
    EmbedType,
    EventType,
    ImageEmbedder,
    ImageFormat,
    ImageHandlingSettings,
    ImagePreference,
    process_images,
    process_images_blocking,
)
from pageclip.images.transcoder import ImageTranscoder

IMG1 = "https://example.com/img1.jpg"
IMG2 = "https://example.com/img2.jpg"
IMG3 = "https://example.com/img3.jpg"


def article(*urls):
    return "<article>" + "".join(f'<p><img src="{u}" alt="alt {i}"></p>' for i, u in enumerate(urls)) + "</article>"


def serve_pngs(http_client, *urls):
    for url in urls:
        http_client.serve(url)


async def run(http_client, html, settings=None, **kwargs):
    async with ImageEmbedder(http_client=http_client, **kwargs.pop("embedder_kwargs", {})) as embedder:
        return await embedder.process(html, settings, **kwargs)


class TestScenarios:
    """End-to-end behaviour of the embedding run."""

    @pytest.mark.asyncio
    async def test_budget_limits_embedded_count(self, http_client):
        """Three small images, ALWAYS, budget of two."""
        serve_pngs(http_client, IMG1, IMG2, IMG3)
        settings = ImageHandlingSettings(preference=ImagePreference.ALWAYS, max_embedded_images=2)

        results = await run(http_client, article(IMG1, IMG2, IMG3), settings)

        assert [r.embed_type for r in results] == [EmbedType.BASE64, EmbedType.BASE64, EmbedType.EXTERNAL]
        assert results[2].error is None
        # The third image is never downloaded
        assert http_client.get.await_count == 2

    @pytest.mark.asyncio
    async def test_featured_image_first(self, http_client):
        """Featured second image is moved first and embedded."""
        serve_pngs(http_client, IMG1, IMG2)
        settings = ImageHandlingSettings(preference=ImagePreference.SMART)

        results = await run(http_client, article(IMG1, IMG2), settings, featured_url=IMG2)

        assert [r.original_url for r in results] == [IMG2, IMG1]
        assert results[0].is_featured is True
        assert results[0].embed_type == EmbedType.BASE64
        assert results[1].is_featured is False

    @pytest.mark.asyncio
    async def test_network_error_isolated(self, http_client):
        """One failing download leaves the others unaffected."""
        serve_pngs(http_client, IMG1, IMG3)
        http_client.routes[IMG2] = aiohttp.ClientConnectionError("connection reset")

        results = await run(http_client, article(IMG1, IMG2, IMG3))

        assert results[1].embed_type == EmbedType.EXTERNAL
        assert results[1].data_url is None
        assert results[1].error
        assert results[0].embed_type == EmbedType.BASE64
        assert results[2].embed_type == EmbedType.BASE64
        assert results[0].error is None

    @pytest.mark.asyncio
    async def test_transcode_deadline_keeps_original_bytes(self, http_client, png_factory):
        """A stalled transcode embeds the untouched original bytes."""
        png = png_factory(12, 12, "green")
        http_client.serve(IMG1, png)
        release = threading.Event()

        def stalled_codec(data, quality):
            release.wait(timeout=5)
            return b"never used"

        transcoder = ImageTranscoder(deadline=0.05, codec=stalled_codec)
        try:
            results = await run(http_client, article(IMG1), embedder_kwargs={"transcoder": transcoder})
        finally:
            release.set()

        image = results[0]
        assert image.embed_type == EmbedType.BASE64
        assert image.format == ImageFormat.ORIGINAL
        assert image.mime_type == "image/png"
        prefix = "data:image/png;base64,"
        assert image.data_url.startswith(prefix)
        assert base64.b64decode(image.data_url[len(prefix) :]) == png


class TestPolicyProperties:
    """Policy guarantees over a whole run."""

    @pytest.mark.asyncio
    async def test_never_does_not_fetch(self, http_client):
        """NEVER keeps everything external without any download."""
        serve_pngs(http_client, IMG1, IMG2)
        settings = ImageHandlingSettings(preference=ImagePreference.NEVER)

        results = await run(http_client, article(IMG1, IMG2), settings, featured_url=IMG2)

        assert len(results) == 2
        assert all(r.embed_type == EmbedType.EXTERNAL for r in results)
        assert all(r.error is None for r in results)
        http_client.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_smart_large_non_featured_external(self, http_client):
        """SMART keeps images over the threshold external."""
        http_client.serve(IMG1, os.urandom(600_000))
        settings = ImageHandlingSettings(preference=ImagePreference.SMART, size_threshold_bytes=500_000)

        results = await run(http_client, article(IMG1), settings)

        assert results[0].embed_type == EmbedType.EXTERNAL
        assert results[0].error is None

    @pytest.mark.asyncio
    async def test_smart_large_featured_embedded(self, http_client):
        """SMART embeds the featured image regardless of size."""
        http_client.serve(IMG1, os.urandom(600_000), content_type="image/jpeg")
        settings = ImageHandlingSettings(preference=ImagePreference.SMART, size_threshold_bytes=500_000)

        results = await run(http_client, article(IMG1), settings, featured_url=IMG1)

        assert results[0].embed_type == EmbedType.BASE64
        assert results[0].format == ImageFormat.ORIGINAL

    @pytest.mark.asyncio
    async def test_output_ceiling_applies_to_featured(self, http_client):
        """Data URLs over the ceiling fall back even for the featured image."""
        http_client.serve(IMG1, os.urandom(1_600_000))
        settings = ImageHandlingSettings(preference=ImagePreference.ALWAYS)

        results = await run(http_client, article(IMG1), settings, featured_url=IMG1)

        assert results[0].embed_type == EmbedType.EXTERNAL
        assert results[0].data_url is None
        assert "too large" in results[0].error

    @pytest.mark.asyncio
    async def test_failed_images_do_not_use_budget(self, http_client):
        """Only successful embeds count against the budget."""
        http_client.serve(IMG1, b"", status_code=500)
        serve_pngs(http_client, IMG2, IMG3)
        settings = ImageHandlingSettings(preference=ImagePreference.ALWAYS, max_embedded_images=2)

        results = await run(http_client, article(IMG1, IMG2, IMG3), settings)

        assert [r.embed_type for r in results] == [EmbedType.EXTERNAL, EmbedType.BASE64, EmbedType.BASE64]

    @pytest.mark.asyncio
    async def test_zero_budget_binds_featured(self, http_client):
        """A zero budget keeps even the featured image external, without downloading."""
        serve_pngs(http_client, IMG1, IMG2)
        settings = ImageHandlingSettings(preference=ImagePreference.SMART, max_embedded_images=0)

        results = await run(http_client, article(IMG1, IMG2), settings, featured_url=IMG2)

        assert results[0].is_featured is True
        assert all(r.embed_type == EmbedType.EXTERNAL for r in results)
        assert all(r.error is None for r in results)
        http_client.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_budget_invariant_many_images(self, http_client):
        """The embedded count never exceeds the budget."""
        urls = [f"https://example.com/{i}.png" for i in range(8)]
        serve_pngs(http_client, *urls)
        settings = ImageHandlingSettings(preference=ImagePreference.ALWAYS, max_embedded_images=3)

        results = await run(http_client, article(*urls), settings, featured_url=urls[5])

        assert len(results) == len(urls)
        assert sum(r.embed_type == EmbedType.BASE64 for r in results) == 3
        assert results[0].original_url == urls[5]

    @pytest.mark.asyncio
    async def test_data_url_iff_base64(self, http_client):
        """data_url is present exactly for inlined images."""
        serve_pngs(http_client, IMG1)
        http_client.routes[IMG2] = aiohttp.ClientError("boom")

        results = await run(http_client, article(IMG1, IMG2, IMG3))

        for image in results:
            assert (image.data_url is not None) == (image.embed_type == EmbedType.BASE64)

    @pytest.mark.asyncio
    async def test_relative_urls_kept_external(self, http_client):
        """Relative srcs are reported, not fetched."""
        results = await run(http_client, article("/images/a.png"))

        assert results[0].embed_type == EmbedType.EXTERNAL
        assert "invalid_url" in results[0].error
        http_client.get.assert_not_called()


class TestImageEmbedder:
    """Tests for ImageEmbedder plumbing."""

    @pytest.mark.asyncio
    async def test_requires_context(self):
        """Test that process() needs the async context."""
        with pytest.raises(RuntimeError):
            await ImageEmbedder().process("<img src='https://example.com/a.png'>")

    @pytest.mark.asyncio
    async def test_alt_and_timing(self, http_client):
        """Test that alt text and processing time are recorded."""
        serve_pngs(http_client, IMG1)

        results = await run(http_client, article(IMG1, IMG2))

        assert results[0].alt == "alt 0"
        assert all(r.processing_time_ms is not None and r.processing_time_ms >= 0 for r in results)

    @pytest.mark.asyncio
    async def test_featured_from_metadata(self, http_client):
        """Test featured URL taken from page metadata."""
        serve_pngs(http_client, IMG1, IMG2)

        results = await run(http_client, article(IMG1, IMG2), metadata={"image": IMG2})

        assert results[0].original_url == IMG2
        assert results[0].is_featured

    @pytest.mark.asyncio
    async def test_settings_default_to_config(self, http_client):
        """Test that config.images applies when no settings are passed."""
        serve_pngs(http_client, IMG1)
        config = ClipperConfig(images=ImageHandlingSettings(preference=ImagePreference.NEVER))

        async with ImageEmbedder(config, http_client=http_client) as embedder:
            results = await embedder.process(article(IMG1))

        assert results[0].embed_type == EmbedType.EXTERNAL
        http_client.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_detection_failure_empty_result(self, http_client):
        """Test that a detection failure yields an empty run, not an exception."""
        with patch("pageclip.images.detector.BeautifulSoup", side_effect=RuntimeError("bad html")):
            results = await run(http_client, article(IMG1))

        assert results == []

    @pytest.mark.asyncio
    async def test_events_and_stats(self, http_client):
        """Test emitted events and run statistics."""
        serve_pngs(http_client, IMG1)
        events = []

        async with ImageEmbedder(http_client=http_client, on_event=events.append) as embedder:
            await embedder.process(article(IMG1, IMG2))
            stats = embedder.stats

        types = [e.type for e in events]
        assert types[:2] == [EventType.STARTED, EventType.IMAGES_DETECTED]
        assert types[-1] == EventType.COMPLETED
        assert EventType.IMAGE_EMBEDDED in types
        assert EventType.IMAGE_FETCH_FAILED in types
        assert stats.images_detected == 2
        assert stats.images_embedded == 1
        assert stats.images_external == 1
        assert stats.images_failed == 1
        assert stats.to_dict()["embed_rate"] == 50.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failing_type", list(EventType))
    async def test_listener_errors_do_not_change_results(self, http_client, failing_type):
        """Test that a raising event listener affects neither outcomes nor the run."""
        serve_pngs(http_client, IMG1)
        seen = []

        def on_event(event):
            seen.append(event.type)
            if event.type == failing_type:
                raise RuntimeError("listener broke")

        settings = ImageHandlingSettings(preference=ImagePreference.ALWAYS, max_embedded_images=1)
        results = await run(
            http_client,
            article(IMG1, IMG2, IMG3),
            settings,
            embedder_kwargs={"on_event": on_event},
        )

        assert [r.embed_type for r in results] == [EmbedType.BASE64, EmbedType.EXTERNAL, EmbedType.EXTERNAL]
        assert results[0].error is None
        assert results[0].format == ImageFormat.WEBP
        assert seen[-1] == EventType.COMPLETED

    @pytest.mark.asyncio
    async def test_listener_error_is_logged(self, http_client):
        """Test that listener failures are reported as warnings."""
        serve_pngs(http_client, IMG1)

        def on_event(event):
            raise ValueError("bad listener")

        with patch("pageclip.core.embedder.logger") as mock_logger:
            results = await run(http_client, article(IMG1), embedder_kwargs={"on_event": on_event})

        assert results[0].embed_type == EmbedType.BASE64
        assert mock_logger.warning.called
        assert "Event listener failed" in mock_logger.warning.call_args[0][0]
        assert mock_logger.warning.call_args[1]["exc_info"] is True

    @pytest.mark.asyncio
    async def test_unexpected_step_error_degrades(self, http_client):
        """Test that an unexpected exception inside a step stays local."""
        serve_pngs(http_client, IMG1, IMG2)

        with patch("pageclip.pipeline.steps.encode.to_data_url", side_effect=[RuntimeError("oops"), "data:image/webp;base64,AAAA"]):
            results = await run(http_client, article(IMG1, IMG2))

        assert results[0].embed_type == EmbedType.EXTERNAL
        assert results[0].error == "encode: oops"
        assert results[1].embed_type == EmbedType.BASE64

    @pytest.mark.asyncio
    async def test_process_images_helper(self, http_client):
        """Test the one-shot async helper."""
        serve_pngs(http_client, IMG1)

        results = await process_images(article(IMG1), http_client=http_client)

        assert results[0].embed_type == EmbedType.BASE64

    def test_blocking_helper(self, http_client):
        """Test the blocking wrapper."""
        serve_pngs(http_client, IMG1)

        results = process_images_blocking(article(IMG1), http_client=http_client)

        assert results[0].embed_type == EmbedType.BASE64

    @pytest.mark.asyncio
    async def test_blocking_helper_rejects_running_loop(self):
        """Test that the blocking wrapper refuses to nest event loops."""
        with pytest.raises(RuntimeError):
            process_images_blocking("<p></p>")
