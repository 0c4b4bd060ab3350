"""Tests for end-to-end loop generation.

Tests cover:
- The "Crunchy kinetic sand ASMR" scenario through the real pipeline
- Temp workspace removed exactly once on success and on every failure path
- Blank prompts rejected before any filesystem write
- Platform failures reported without failing the run
"""

from functools import partial

import pytest

from backend import generation
from backend.models import PlatformName, PostStatus, TriggerType
from backend.pipeline import workspace
from backend.pipeline.video_encoder import EncodingError
from backend.pipeline.visual_renderer import render_visual_loop

SMALL_SIZE = (90, 160)


class FailingPublisher:
    platform = PlatformName.TIKTOK
    display_name = "TikTok"

    def is_configured(self):
        return True

    async def publish(self, video_path, cover_path, caption):
        raise RuntimeError("TikTok is down")


def fake_render(interpretation, paths):
    return interpretation.frame_count


def fake_synthesize(interpretation, paths):
    paths.audio_path.write_bytes(b"wav")
    return paths.audio_path


def fake_encode(paths, interpretation, settings):
    paths.video_path.write_bytes(b"mp4")
    paths.cover_path.write_bytes(b"jpg")
    return paths.video_path


@pytest.fixture
def teardown_calls(monkeypatch):
    """Record every temp-workspace removal."""
    calls = []
    original = workspace.remove_generation_temp

    async def recording_remove(paths):
        calls.append(paths.token)
        await original(paths)

    monkeypatch.setattr(workspace, "remove_generation_temp", recording_remove)
    return calls


@pytest.fixture
def fast_stages(monkeypatch):
    monkeypatch.setattr(generation, "render_visual_loop", fake_render)
    monkeypatch.setattr(generation, "synthesize_loop_audio", fake_synthesize)
    monkeypatch.setattr(generation, "encode_video_with_audio", fake_encode)


def _temp_entries(settings):
    return list(settings.temp_dir.iterdir()) if settings.temp_dir.exists() else []


class TestEndToEnd:
    """Real rendering, synthesis and encoding at a tiny frame size."""

    @pytest.mark.asyncio
    async def test_kinetic_sand_scenario(self, settings, monkeypatch, teardown_calls):
        """Full run produces assets, captions and one post result per platform."""
        monkeypatch.setattr(generation, "render_visual_loop", partial(render_visual_loop, size=SMALL_SIZE))

        result = await generation.generate_loop("Crunchy kinetic sand ASMR", settings)

        assert result.interpretation.trigger == TriggerType.KINETIC_SAND
        assert 6 <= result.duration_seconds <= 15
        assert result.fps == 30
        token = result.video_url.split("/")[-2]
        for url in (result.video_url, result.audio_url, result.cover_url):
            assert url.startswith(f"/generated/{token}/")
            assert (settings.public_dir / token / url.rsplit("/", 1)[-1]).stat().st_size > 0
        assert "#kineticsand" in result.tiktok_caption
        assert "#kineticsand" in result.youtube_caption
        assert [p.platform for p in result.posts] == [PlatformName.TIKTOK, PlatformName.YOUTUBE]
        assert all(p.status == PostStatus.SKIPPED for p in result.posts)
        assert teardown_calls == [token]
        assert _temp_entries(settings) == []


class TestTeardown:
    """The temp workspace never outlives the request."""

    @pytest.mark.asyncio
    async def test_success_cleans_once(self, settings, fast_stages, teardown_calls):
        """A successful run removes its workspace exactly once."""
        result = await generation.generate_loop("slime stretch", settings, publishers=[])
        assert len(teardown_calls) == 1
        assert _temp_entries(settings) == []
        assert result.posts == []

    @pytest.mark.asyncio
    async def test_encode_failure_cleans_and_raises(self, settings, fast_stages, teardown_calls, monkeypatch):
        """A stage failure propagates after teardown."""
        def failing_encode(paths, interpretation, settings):
            raise EncodingError("No frames found")

        monkeypatch.setattr(generation, "encode_video_with_audio", failing_encode)

        with pytest.raises(EncodingError, match="No frames found"):
            await generation.generate_loop("slime stretch", settings, publishers=[])
        assert len(teardown_calls) == 1
        assert _temp_entries(settings) == []
        assert not settings.public_dir.exists() or list(settings.public_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_render_failure_waits_for_synthesis(self, settings, fast_stages, teardown_calls, monkeypatch):
        """A render failure still lets synthesis settle before teardown."""
        synthesized = []

        def failing_render(interpretation, paths):
            raise OSError("disk full")

        def recording_synthesize(interpretation, paths):
            fake_synthesize(interpretation, paths)
            synthesized.append(paths.audio_path.exists())

        monkeypatch.setattr(generation, "render_visual_loop", failing_render)
        monkeypatch.setattr(generation, "synthesize_loop_audio", recording_synthesize)

        with pytest.raises(OSError, match="disk full"):
            await generation.generate_loop("rain on glass", settings, publishers=[])
        assert synthesized == [True]
        assert len(teardown_calls) == 1
        assert _temp_entries(settings) == []

    @pytest.mark.asyncio
    async def test_blank_prompt_touches_nothing(self, settings, teardown_calls):
        """Validation happens before any workspace exists."""
        with pytest.raises(ValueError, match="Prompt is required"):
            await generation.generate_loop("   ", settings)
        assert teardown_calls == []
        assert not settings.temp_dir.exists()


class TestPlatformIsolation:
    """Platform failures are data, not errors."""

    @pytest.mark.asyncio
    async def test_failed_post_keeps_success(self, settings, fast_stages, teardown_calls):
        """A failing platform shows up as a failed post in a successful result."""
        result = await generation.generate_loop("bubble pour", settings, publishers=[FailingPublisher()])

        assert result.video_url.endswith("/loop.mp4")
        assert len(result.posts) == 1
        assert result.posts[0].status == PostStatus.FAILED
        assert "TikTok is down" in result.posts[0].detail
        assert len(teardown_calls) == 1
