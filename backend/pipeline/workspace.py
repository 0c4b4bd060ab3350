"""Per-run temporary workspace: path layout and guaranteed teardown."""
import asyncio
import logging
import shutil
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator
from uuid import uuid4

import aiofiles.os

from backend.config import Settings

logger = logging.getLogger(__name__)

FRAME_PATTERN = "frame_{index:05d}.png"
VIDEO_FILENAME = "loop.mp4"
AUDIO_FILENAME = "loop.wav"
COVER_FILENAME = "cover.jpg"


@dataclass(frozen=True)
class GenerationPaths:
    """Filesystem locations owned by a single generation run."""

    token: str
    temp_dir: Path
    frames_dir: Path
    audio_path: Path
    video_path: Path
    cover_path: Path
    public_dir: Path

    def frame_path(self, index: int) -> Path:
        return self.frames_dir / FRAME_PATTERN.format(index=index)

    def frame_files(self) -> list[Path]:
        """Rendered frames in playback order."""
        if not self.frames_dir.exists():
            return []
        return sorted(self.frames_dir.glob("frame_*.png"))


def new_generation_token() -> str:
    return uuid4().hex


def build_generation_paths(token: str, settings: Settings) -> GenerationPaths:
    temp_dir = Path(settings.temp_dir) / token
    return GenerationPaths(
        token=token,
        temp_dir=temp_dir,
        frames_dir=temp_dir / "frames",
        audio_path=temp_dir / AUDIO_FILENAME,
        video_path=temp_dir / VIDEO_FILENAME,
        cover_path=temp_dir / COVER_FILENAME,
        public_dir=Path(settings.public_dir) / token,
    )


async def prepare_generation_paths(token: str, settings: Settings) -> GenerationPaths:
    """Create the temp directory tree for a run and return its paths."""
    paths = build_generation_paths(token, settings)
    await aiofiles.os.makedirs(paths.frames_dir, exist_ok=True)
    logger.info("Prepared workspace %s", paths.temp_dir)
    return paths


async def remove_generation_temp(paths: GenerationPaths) -> None:
    """Delete the temp portion of a run. Failures are logged, never raised."""
    try:
        if await aiofiles.os.path.exists(paths.temp_dir):
            await asyncio.to_thread(shutil.rmtree, paths.temp_dir)
            logger.info("Removed workspace %s", paths.temp_dir)
    except OSError:
        logger.exception("Failed to remove workspace %s", paths.temp_dir)


@asynccontextmanager
async def generation_workspace(settings: Settings) -> AsyncIterator[GenerationPaths]:
    """Acquire a fresh workspace and release its temp files on every exit path."""
    paths = await prepare_generation_paths(new_generation_token(), settings)
    try:
        yield paths
    finally:
        await remove_generation_temp(paths)
