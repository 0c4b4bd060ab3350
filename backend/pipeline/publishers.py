"""Fan-out publishing of finished loops to TikTok and YouTube Shorts."""
import asyncio
import logging
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import aiofiles
import httpx
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload

from backend.config import Settings
from backend.models import Interpretation, PlatformName, PlatformPostResult, PostStatus
from backend.pipeline.captions import youtube_title
from backend.pipeline.video_encoder import PublicAssets

logger = logging.getLogger(__name__)

TIKTOK_INIT_URL = "https://open.tiktokapis.com/v2/post/publish/video/init/"
YOUTUBE_TOKEN_URI = "https://oauth2.googleapis.com/token"
YOUTUBE_SCOPES = [
    "https://www.googleapis.com/auth/youtube.upload",
    "https://www.googleapis.com/auth/youtube",
]
YOUTUBE_CATEGORY_ENTERTAINMENT = "24"


class PublishError(RuntimeError):
    """Raised by a publisher when the platform rejects or fails an upload."""


class PlatformPublisher(ABC):
    """One external destination able to publish a finished loop."""

    platform: PlatformName
    display_name: str

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether credentials for this platform are present."""

    @abstractmethod
    async def publish(self, video_path: Path, cover_path: Path, caption: str) -> str:
        """Upload the video and return a human-readable success detail."""


class TikTokPublisher(PlatformPublisher):
    """TikTok Content Posting API, single-chunk direct post."""

    platform = PlatformName.TIKTOK
    display_name = "TikTok"

    def __init__(
        self,
        access_token: Optional[str],
        privacy_level: str = "SELF_ONLY",
        timeout: float = 120.0,
    ):
        self.access_token = access_token
        self.privacy_level = privacy_level
        self.timeout = timeout

    def is_configured(self) -> bool:
        return bool(self.access_token)

    @staticmethod
    def _error_message(response: httpx.Response) -> Optional[str]:
        try:
            error = response.json().get("error") or {}
        except ValueError:
            return f"HTTP {response.status_code}"
        code = error.get("code", "ok")
        if response.status_code >= 400 or code != "ok":
            return f"{code}: {error.get('message') or 'HTTP %d' % response.status_code}"
        return None

    async def publish(self, video_path: Path, cover_path: Path, caption: str) -> str:
        async with aiofiles.open(video_path, "rb") as f:
            video_bytes = await f.read()
        size = len(video_bytes)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                TIKTOK_INIT_URL,
                headers={
                    "Authorization": f"Bearer {self.access_token}",
                    "Content-Type": "application/json; charset=UTF-8",
                },
                json={
                    "post_info": {
                        "title": caption,
                        "privacy_level": self.privacy_level,
                        "disable_duet": False,
                        "disable_comment": False,
                        "disable_stitch": False,
                        "video_cover_timestamp_ms": 0,
                    },
                    "source_info": {
                        "source": "FILE_UPLOAD",
                        "video_size": size,
                        "chunk_size": size,
                        "total_chunk_count": 1,
                    },
                },
            )
            error = self._error_message(response)
            if error:
                raise PublishError(f"TikTok upload init failed ({error})")

            data = response.json().get("data") or {}
            upload_url = data.get("upload_url")
            if not upload_url:
                raise PublishError("TikTok did not return an upload URL")

            upload = await client.put(
                upload_url,
                headers={
                    "Content-Type": "video/mp4",
                    "Content-Range": f"bytes 0-{size - 1}/{size}",
                },
                content=video_bytes,
            )
            if upload.status_code >= 400:
                raise PublishError(f"TikTok video upload failed (HTTP {upload.status_code})")

        return f"Uploaded to TikTok inbox (publish_id={data.get('publish_id', 'unknown')})"


class YouTubePublisher(PlatformPublisher):
    """YouTube Data API v3 upload with the cover set as thumbnail."""

    platform = PlatformName.YOUTUBE
    display_name = "YouTube"

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        refresh_token: Optional[str],
        privacy_status: str = "private",
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.privacy_status = privacy_status

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.refresh_token)

    def _client(self):
        creds = Credentials(
            token=None,
            refresh_token=self.refresh_token,
            token_uri=YOUTUBE_TOKEN_URI,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=YOUTUBE_SCOPES,
        )
        creds.refresh(Request())
        return build("youtube", "v3", credentials=creds, cache_discovery=False)

    def _upload(self, video_path: Path, cover_path: Path, caption: str) -> str:
        youtube = self._client()
        tags = [tag.lstrip("#") for tag in re.findall(r"#\w+", caption)]
        body = {
            "snippet": {
                "title": youtube_title(caption).replace("#shorts", "").strip() or "ASMR loop",
                "description": caption,
                "tags": list(dict.fromkeys(tags)),
                "categoryId": YOUTUBE_CATEGORY_ENTERTAINMENT,
            },
            "status": {
                "privacyStatus": self.privacy_status,
                "selfDeclaredMadeForKids": False,
            },
        }
        media = MediaFileUpload(str(video_path), mimetype="video/mp4", resumable=True, chunksize=512 * 1024)
        request = youtube.videos().insert(part="snippet,status", body=body, media_body=media)

        response = None
        while response is None:
            _, response = request.next_chunk()
        video_id = response["id"]

        # Custom thumbnails need a verified channel; a failure here keeps the upload
        if cover_path and os.path.exists(cover_path):
            try:
                youtube.thumbnails().set(
                    videoId=video_id,
                    media_body=MediaFileUpload(str(cover_path), mimetype="image/jpeg", resumable=False),
                ).execute()
            except HttpError as e:
                logger.warning("YouTube thumbnail not set for %s: %s", video_id, e)

        return f"Uploaded to YouTube: https://www.youtube.com/shorts/{video_id}"

    async def publish(self, video_path: Path, cover_path: Path, caption: str) -> str:
        return await asyncio.to_thread(self._upload, video_path, cover_path, caption)


def build_publishers(settings: Settings) -> List[PlatformPublisher]:
    """One publisher per supported platform, configured from settings."""
    return [
        TikTokPublisher(
            access_token=settings.tiktok_access_token,
            privacy_level=settings.tiktok_privacy_level,
            timeout=settings.publish_timeout_seconds,
        ),
        YouTubePublisher(
            client_id=settings.youtube_client_id,
            client_secret=settings.youtube_client_secret,
            refresh_token=settings.youtube_refresh_token,
            privacy_status=settings.youtube_privacy_status,
        ),
    ]


async def _attempt(
    publisher: PlatformPublisher,
    assets: PublicAssets,
    caption: str,
    timeout: float,
) -> PlatformPostResult:
    if not publisher.is_configured():
        return PlatformPostResult(
            platform=publisher.platform,
            status=PostStatus.SKIPPED,
            detail=f"{publisher.display_name} credentials not configured",
        )

    try:
        detail = await asyncio.wait_for(
            publisher.publish(assets.video_path, assets.cover_path, caption),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.warning("%s publish timed out after %.0fs", publisher.display_name, timeout)
        return PlatformPostResult(
            platform=publisher.platform,
            status=PostStatus.FAILED,
            detail=f"{publisher.display_name} publish timed out after {timeout:.0f}s",
        )
    except Exception as e:
        logger.warning("%s publish failed: %s", publisher.display_name, e, exc_info=True)
        return PlatformPostResult(
            platform=publisher.platform,
            status=PostStatus.FAILED,
            detail=str(e) or e.__class__.__name__,
        )

    return PlatformPostResult(platform=publisher.platform, status=PostStatus.SUCCESS, detail=detail)


async def distribute_to_platforms(
    publishers: Sequence[PlatformPublisher],
    assets: PublicAssets,
    interpretation: Interpretation,
    captions: Dict[PlatformName, str],
    timeout: float = 120.0,
) -> List[PlatformPostResult]:
    """
    Attempt every platform independently and wait for all of them to settle.

    One result is returned per publisher, in publisher order. A failing or
    slow platform is recorded as ``failed`` and never affects the others.
    """
    logger.info("Distributing '%s' to %d platforms", interpretation.title, len(publishers))
    results = await asyncio.gather(
        *(_attempt(p, assets, captions.get(p.platform, ""), timeout) for p in publishers)
    )
    for result in results:
        logger.info("%s: %s (%s)", result.platform.value, result.status.value, result.detail)
    return list(results)
