"""Muxing rendered frames and synthesized audio into the final loop video."""
import asyncio
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

import aiofiles.os
from moviepy import AudioFileClip, ImageSequenceClip, VideoFileClip
from PIL import Image

from backend.config import Settings
from backend.models import Interpretation
from backend.pipeline.workspace import GenerationPaths

logger = logging.getLogger(__name__)


class EncodingError(RuntimeError):
    """Raised when the encoder inputs are incomplete or the mux fails."""


@dataclass(frozen=True)
class PublicAssets:
    """Final, publicly addressable outputs of a run."""
    video_url: str
    audio_url: str
    cover_url: str
    video_path: Path
    audio_path: Path
    cover_path: Path


def extract_cover(frame_path: Path, cover_path: Path) -> Path:
    """Save the given frame as a JPEG cover image."""
    with Image.open(frame_path) as frame:
        frame.convert("RGB").save(cover_path, "JPEG", quality=90)
    return cover_path


def encode_video_with_audio(
    paths: GenerationPaths,
    interpretation: Interpretation,
    settings: Settings,
) -> Path:
    """
    Mux the frame sequence and loop audio into an H.264/AAC MP4.

    Args:
        paths: Workspace holding the rendered frames and audio
        interpretation: Supplies the fps and the expected frame count
        settings: Encoder preset and thread count

    Returns:
        Path to the encoded video

    Raises:
        EncodingError: If frames are missing or incomplete, or audio is missing
    """
    frames = paths.frame_files()
    if not frames:
        raise EncodingError(f"No frames found in {paths.frames_dir}")
    if len(frames) != interpretation.frame_count:
        raise EncodingError(
            f"Expected {interpretation.frame_count} frames, found {len(frames)}"
        )
    if not paths.audio_path.exists():
        raise EncodingError(f"Audio file missing: {paths.audio_path}")

    paths.video_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info(
        "Encoding %d frames @ %dfps with %s into %s",
        len(frames), interpretation.fps, paths.audio_path.name, paths.video_path,
    )

    audio = AudioFileClip(str(paths.audio_path))
    video = ImageSequenceClip([str(frame) for frame in frames], fps=interpretation.fps)
    final_video = video.with_audio(audio)
    # moviepy temp audio track stays inside the run workspace
    temp_audio = str(paths.temp_dir / "loop_audio_tmp.m4a")

    try:
        try:
            final_video.write_videofile(
                str(paths.video_path),
                fps=interpretation.fps,
                codec="libx264",
                audio_codec="aac",
                preset=settings.video_preset,
                threads=settings.encoder_threads,
                temp_audiofile=temp_audio,
                logger=None,
            )
        except (BrokenPipeError, OSError) as e:
            if settings.video_preset == "ultrafast":
                raise EncodingError(f"Video encoding failed: {e}") from e
            logger.exception(
                "write_videofile failed (preset=%s), retrying with ultrafast: %s",
                settings.video_preset, e,
            )
            final_video.write_videofile(
                str(paths.video_path),
                fps=interpretation.fps,
                codec="libx264",
                audio_codec="aac",
                preset="ultrafast",
                threads=settings.encoder_threads,
                temp_audiofile=temp_audio,
                logger=None,
            )
    finally:
        for clip_obj in (audio, video, final_video):
            try:
                clip_obj.close()
            except Exception:
                logger.debug("Ignoring error while closing clip", exc_info=True)

    extract_cover(frames[0], paths.cover_path)
    return paths.video_path


def probe_duration(video_path: Path) -> float:
    """Return the container duration in seconds."""
    clip = VideoFileClip(str(video_path))
    try:
        return float(clip.duration)
    finally:
        clip.close()


def cleanup_frames(paths: GenerationPaths) -> None:
    """Remove the intermediate frame sequence. Failures are logged only."""
    try:
        shutil.rmtree(paths.frames_dir)
        logger.info("Removed frames in %s", paths.frames_dir)
    except FileNotFoundError:
        pass
    except OSError:
        logger.warning("Could not remove frames in %s", paths.frames_dir, exc_info=True)


async def finalize_public_assets(paths: GenerationPaths, settings: Settings) -> PublicAssets:
    """
    Move the encoder outputs to the public area keyed by the run token.

    After this returns the externally visible artifacts of the run are fixed.
    """
    sources = (paths.video_path, paths.audio_path, paths.cover_path)
    for source in sources:
        if not await aiofiles.os.path.exists(source):
            raise EncodingError(f"Missing output for publishing: {source}")

    await aiofiles.os.makedirs(paths.public_dir, exist_ok=True)
    moved = {}
    try:
        for source in sources:
            target = paths.public_dir / source.name
            await asyncio.to_thread(shutil.move, str(source), str(target))
            moved[source] = target
    except OSError:
        # A partial set of public files must not outlive the run
        await asyncio.to_thread(shutil.rmtree, paths.public_dir, ignore_errors=True)
        raise

    base = f"{settings.public_base_url}/{paths.token}"
    assets = PublicAssets(
        video_url=f"{base}/{paths.video_path.name}",
        audio_url=f"{base}/{paths.audio_path.name}",
        cover_url=f"{base}/{paths.cover_path.name}",
        video_path=moved[paths.video_path],
        audio_path=moved[paths.audio_path],
        cover_path=moved[paths.cover_path],
    )
    logger.info("Published assets for %s at %s", paths.token, base)
    return assets
