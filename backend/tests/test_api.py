"""Tests for the HTTP surface.

Tests cover:
- 400 for missing, blank, non-string prompts and malformed bodies
- 200 payload shape for a successful generation
- 500 with the error message when the pipeline fails
- Health check
- Schema examples and frozen interpretations
"""

import httpx
import pytest
from pydantic import ValidationError

from backend import main
from backend.models import (
    GenerateRequest,
    GenerationResult,
    PlatformName,
    PlatformPostResult,
    PostStatus,
)


@pytest.fixture
def client():
    transport = httpx.ASGITransport(app=main.app)
    return httpx.AsyncClient(transport=transport, base_url="http://test")


@pytest.fixture
def fake_result(sand_interpretation):
    return GenerationResult(
        prompt="Crunchy kinetic sand ASMR",
        interpretation=sand_interpretation,
        video_url="/generated/abc/loop.mp4",
        audio_url="/generated/abc/loop.wav",
        cover_url="/generated/abc/cover.jpg",
        duration_seconds=6,
        fps=24,
        tiktok_caption="tiktok #asmr",
        youtube_caption="Title #shorts\n\nbody",
        posts=[
            PlatformPostResult(platform=PlatformName.TIKTOK, status=PostStatus.SKIPPED, detail="not configured"),
            PlatformPostResult(platform=PlatformName.YOUTUBE, status=PostStatus.FAILED, detail="quota"),
        ],
    )


class TestGenerateValidation:
    """Bad requests never reach the pipeline."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"prompt": ""}, {"prompt": "   "}, {"prompt": 42}, {"prompt": None}])
    async def test_invalid_prompt(self, client, monkeypatch, payload):
        """Missing or unusable prompts return 400."""
        calls = []

        async def fake_generate(*args, **kwargs):
            calls.append(args)

        monkeypatch.setattr(main, "generate_loop", fake_generate)

        async with client:
            response = await client.post("/api/generate", json=payload)

        assert response.status_code == 400
        assert response.json() == {"error": "Prompt is required"}
        assert calls == []

    @pytest.mark.asyncio
    async def test_malformed_json(self, client):
        """A body that is not JSON is a 400 too."""
        async with client:
            response = await client.post(
                "/api/generate", content=b"not json", headers={"Content-Type": "application/json"}
            )
        assert response.status_code == 400
        assert response.json()["error"] == "Prompt is required"


class TestGenerate:
    """Successful and failing generations."""

    @pytest.mark.asyncio
    async def test_success_payload(self, client, monkeypatch, fake_result):
        """The full result is returned as JSON."""
        seen = []

        async def fake_generate(prompt, settings, publishers=None):
            seen.append(prompt)
            return fake_result

        monkeypatch.setattr(main, "generate_loop", fake_generate)

        async with client:
            response = await client.post("/api/generate", json={"prompt": "Crunchy kinetic sand ASMR"})

        assert response.status_code == 200
        data = response.json()
        assert seen == ["Crunchy kinetic sand ASMR"]
        assert data["video_url"] == "/generated/abc/loop.mp4"
        assert data["interpretation"]["trigger"] == "kinetic_sand"
        assert data["interpretation"]["palette"][0] == "#f4d6b0"
        assert [p["status"] for p in data["posts"]] == ["skipped", "failed"]
        assert data["posts"][0]["platform"] == "tiktok"

    @pytest.mark.asyncio
    async def test_pipeline_failure(self, client, monkeypatch):
        """Pipeline errors become a 500 with the message."""
        async def fake_generate(*args, **kwargs):
            raise RuntimeError("ffmpeg exploded")

        monkeypatch.setattr(main, "generate_loop", fake_generate)

        async with client:
            response = await client.post("/api/generate", json={"prompt": "slime"})

        assert response.status_code == 500
        assert response.json() == {"error": "ffmpeg exploded"}


class TestHealth:
    """Health endpoint."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        """Health check reports ok."""
        async with client:
            response = await client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestModels:
    """Request and response schemas."""

    def test_schema_examples(self):
        """Docs examples are attached to the request and response schemas."""
        assert GenerateRequest.model_json_schema()["example"] == {"prompt": "Crunchy kinetic sand ASMR"}
        assert GenerationResult.model_json_schema()["example"]["fps"] == 30

    def test_interpretation_is_frozen(self, sand_interpretation):
        """Interpretations cannot be mutated after classification."""
        with pytest.raises(ValidationError):
            sand_interpretation.fps = 60
