"""End-to-end orchestration of a single loop generation run."""
import asyncio
import logging
from typing import Optional, Sequence

from backend.config import Settings
from backend.models import GenerationResult, PlatformName
from backend.pipeline import (
    build_publishers,
    build_tiktok_caption,
    build_youtube_caption,
    cleanup_frames,
    distribute_to_platforms,
    encode_video_with_audio,
    finalize_public_assets,
    generation_workspace,
    interpret_prompt,
    render_visual_loop,
    synthesize_loop_audio,
)
from backend.pipeline.publishers import PlatformPublisher

logger = logging.getLogger(__name__)


async def _settle_all(*aws) -> None:
    """Await every awaitable, then re-raise the first failure if any."""
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result


async def generate_loop(
    prompt: str,
    settings: Settings,
    publishers: Optional[Sequence[PlatformPublisher]] = None,
) -> GenerationResult:
    """
    Run the full pipeline for one prompt.

    Steps:
        1. Interpret the prompt (no filesystem access)
        2. Render frames and synthesize audio concurrently
        3. Encode video + cover, then drop the intermediate frames
        4. Move outputs to the public area
        5. Build captions and publish to every platform
    The temp workspace is removed on every exit path.

    Raises:
        ValueError: If the prompt is blank
        Exception: Any stage failure, after teardown has run
    """
    trimmed = prompt.strip()
    interpretation = interpret_prompt(trimmed)
    if publishers is None:
        publishers = build_publishers(settings)

    async with generation_workspace(settings) as paths:
        logger.info(
            "Generation %s: %s (%s, %ds @ %dfps, %d frames)",
            paths.token, interpretation.title, interpretation.trigger.value,
            interpretation.duration_seconds, interpretation.fps, interpretation.frame_count,
        )

        await _settle_all(
            asyncio.to_thread(render_visual_loop, interpretation, paths),
            asyncio.to_thread(synthesize_loop_audio, interpretation, paths),
        )
        await asyncio.to_thread(encode_video_with_audio, paths, interpretation, settings)
        await asyncio.to_thread(cleanup_frames, paths)

        assets = await finalize_public_assets(paths, settings)

        tiktok_caption = build_tiktok_caption(trimmed, interpretation)
        youtube_caption = build_youtube_caption(trimmed, interpretation)

        posts = await distribute_to_platforms(
            publishers,
            assets,
            interpretation,
            {
                PlatformName.TIKTOK: tiktok_caption,
                PlatformName.YOUTUBE: youtube_caption,
            },
            timeout=settings.publish_timeout_seconds,
        )

        return GenerationResult(
            prompt=trimmed,
            interpretation=interpretation,
            video_url=assets.video_url,
            audio_url=assets.audio_url,
            cover_url=assets.cover_url,
            duration_seconds=interpretation.duration_seconds,
            fps=interpretation.fps,
            tiktok_caption=tiktok_caption,
            youtube_caption=youtube_caption,
            posts=posts,
        )
