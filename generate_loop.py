#!/usr/bin/env python3
"""Generate a single ASMR loop from the command line."""

import asyncio
import logging
import sys

from backend.config import Settings
from backend.generation import generate_loop

DEFAULT_PROMPT = "Crunchy kinetic sand ASMR"


async def main():
    prompt = " ".join(sys.argv[1:]).strip() or DEFAULT_PROMPT
    settings = Settings.from_env()
    settings.temp_dir.mkdir(parents=True, exist_ok=True)
    settings.public_dir.mkdir(parents=True, exist_ok=True)

    print(f"Generating loop for: {prompt!r}")
    result = await generate_loop(prompt, settings)

    interpretation = result.interpretation
    print("-" * 60)
    print(f"{interpretation.title}: {result.duration_seconds}s @ {result.fps}fps")
    print(f"Trigger : {interpretation.trigger.value}")
    print(f"Mood    : {interpretation.visual_mood}")
    print(f"Palette : {', '.join(interpretation.palette)}")
    print(f"Video   : {result.video_url} (files in {settings.public_dir})")
    print("-" * 60)
    print("TikTok caption:\n" + result.tiktok_caption)
    print("-" * 60)
    print("YouTube caption:\n" + result.youtube_caption)
    print("-" * 60)
    for post in result.posts:
        print(f"{post.platform.value:8s} {post.status.value:8s} {post.detail}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(main())
