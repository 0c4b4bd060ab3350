"""Loop generation pipeline modules."""
from .prompt_interpreter import interpret_prompt
from .workspace import GenerationPaths, generation_workspace, prepare_generation_paths, remove_generation_temp
from .visual_renderer import render_visual_loop
from .audio_synthesizer import synthesize_loop_audio
from .video_encoder import (
    EncodingError,
    PublicAssets,
    cleanup_frames,
    encode_video_with_audio,
    finalize_public_assets,
)
from .captions import build_tiktok_caption, build_youtube_caption
from .publishers import PublishError, build_publishers, distribute_to_platforms

__all__ = [
    "interpret_prompt",
    "GenerationPaths",
    "generation_workspace",
    "prepare_generation_paths",
    "remove_generation_temp",
    "render_visual_loop",
    "synthesize_loop_audio",
    "EncodingError",
    "PublicAssets",
    "cleanup_frames",
    "encode_video_with_audio",
    "finalize_public_assets",
    "build_tiktok_caption",
    "build_youtube_caption",
    "PublishError",
    "build_publishers",
    "distribute_to_platforms",
]
