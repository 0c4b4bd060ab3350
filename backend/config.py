"""Configuration container for the loop ASMR generator."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

BASE_DIR = Path(__file__).parent


@dataclass
class Settings:
    """Static configuration applied to every generation run."""

    temp_dir: Path = BASE_DIR / "temp"
    public_dir: Path = BASE_DIR / "output"
    public_base_url: str = "/generated"
    static_dir: Optional[Path] = None
    video_preset: str = "medium"
    encoder_threads: int = 2
    publish_timeout_seconds: float = 120.0
    tiktok_access_token: Optional[str] = None
    tiktok_privacy_level: str = "SELF_ONLY"
    youtube_client_id: Optional[str] = None
    youtube_client_secret: Optional[str] = None
    youtube_refresh_token: Optional[str] = None
    youtube_privacy_status: str = "private"

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings populated from environment variables."""
        static_dir = os.getenv("STATIC_DIR", str(BASE_DIR.parent / "frontend" / "dist"))
        return cls(
            temp_dir=Path(os.getenv("ASMR_TEMP_DIR", str(BASE_DIR / "temp"))),
            public_dir=Path(os.getenv("ASMR_PUBLIC_DIR", str(BASE_DIR / "output"))),
            public_base_url=os.getenv("ASMR_PUBLIC_BASE_URL", "/generated").rstrip("/"),
            static_dir=Path(static_dir) if static_dir else None,
            video_preset=os.getenv("ASMR_VIDEO_PRESET", "medium"),
            publish_timeout_seconds=float(os.getenv("ASMR_PUBLISH_TIMEOUT", "120")),
            tiktok_access_token=os.getenv("TIKTOK_ACCESS_TOKEN") or None,
            tiktok_privacy_level=os.getenv("TIKTOK_PRIVACY_LEVEL", "SELF_ONLY"),
            youtube_client_id=os.getenv("YT_CLIENT_ID") or None,
            youtube_client_secret=os.getenv("YT_CLIENT_SECRET") or None,
            youtube_refresh_token=os.getenv("YT_REFRESH_TOKEN") or None,
            youtube_privacy_status=os.getenv("YT_PRIVACY_STATUS", "private"),
        )
