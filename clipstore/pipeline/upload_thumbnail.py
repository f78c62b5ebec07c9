import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Optional

from clipstore.core.config import Settings
from clipstore.core.exceptions import PayloadTooLargeError, PersistenceError
from clipstore.database.repositories import VideoRepository
from clipstore.database.schemas.metadata import VideoRecord
from clipstore.media.keys import thumbnail_filename
from clipstore.media.stager import copy_stream, remove_quietly
from clipstore.pipeline.upload_video import authorize_owner

logger = logging.getLogger(__name__)


@dataclass
class ThumbnailRequest:
    owner_id: str
    video_id: str
    stream: BinaryIO
    content_type: str
    size: Optional[int] = None


class ThumbnailUploadPipeline:
    """Stores thumbnails as static files under the assets root."""

    def __init__(self, settings: Settings, videos: VideoRepository):
        self.settings = settings
        self.videos = videos
        self.assets_root = Path(settings.ASSETS_ROOT)

    def run(self, request: ThumbnailRequest) -> VideoRecord:
        video = authorize_owner(self.videos, request.video_id, request.owner_id)

        limit = self.settings.MAX_THUMBNAIL_BYTES
        if request.size is not None and request.size > limit:
            raise PayloadTooLargeError(detail=f"thumbnail declared size {request.size} > {limit}")

        filename = thumbnail_filename(request.content_type)
        self.assets_root.mkdir(parents=True, exist_ok=True)
        asset_path = self.assets_root / filename

        try:
            with open(asset_path, "wb") as target:
                written = copy_stream(request.stream, target, limit)
        except Exception:
            remove_quietly(asset_path)
            raise
        logger.info(f"Thumbnail stored | video_id={video.id} path={asset_path} bytes={written}")

        updated = video.model_copy(
            update={
                "thumbnail_url": f"{self.settings.BASE_URL.rstrip('/')}/assets/{filename}",
                "updated_at": datetime.utcnow(),
            }
        )
        try:
            self.videos.update(updated)
        except PersistenceError:
            remove_quietly(asset_path)
            raise
        return updated
