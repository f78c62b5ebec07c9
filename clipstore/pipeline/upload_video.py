"""
Video upload pipeline.

An upload runs through a fixed sequence of stages, one after the other:

    AUTHORIZING → STAGING → PROBING → REMUXING → KEY_DERIVATION
        → UPLOADING → PERSISTING → DONE

Each stage reads and extends an ``UploadContext``. The first stage that
raises moves the context to FAILED and the error propagates to the caller;
nothing is retried. Local files created along the way are registered on the
context's ExitStack and removed whichever way the run ends.
"""

import logging
from contextlib import ExitStack
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, List, Optional, Tuple

from clipstore.core.config import Settings
from clipstore.core.exceptions import ForbiddenError, PersistenceError, UnsupportedMediaTypeError
from clipstore.database.repositories import VideoRepository
from clipstore.database.schemas.metadata import VideoRecord
from clipstore.media.keys import media_type, video_key
from clipstore.media.prober import AspectRatioLabel, MediaProber
from clipstore.media.remuxer import FastStartRemuxer
from clipstore.media.stager import TempStager, remove_quietly
from clipstore.pipeline.pointers import expand_video_pointer, make_pointer
from clipstore.storage.s3_gateway import ObjectStore

logger = logging.getLogger(__name__)

VIDEO_CONTENT_TYPE = "video/mp4"


class UploadStage(str, Enum):
    AUTHORIZING = "authorizing"
    STAGING = "staging"
    PROBING = "probing"
    REMUXING = "remuxing"
    KEY_DERIVATION = "key_derivation"
    UPLOADING = "uploading"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class UploadRequest:
    owner_id: str
    video_id: str
    stream: BinaryIO
    content_type: str
    size: Optional[int] = None


@dataclass
class UploadContext:
    request: UploadRequest
    files: ExitStack
    stage: UploadStage = UploadStage.AUTHORIZING
    video: Optional[VideoRecord] = None
    scratch_path: Optional[Path] = None
    label: Optional[AspectRatioLabel] = None
    remuxed_path: Optional[str] = None
    key: Optional[str] = None
    result: Optional[VideoRecord] = None


def authorize_owner(videos: VideoRepository, video_id: str, owner_id: str) -> VideoRecord:
    video = videos.get(video_id)
    if video.user_id != owner_id:
        raise ForbiddenError(detail=f"user_id={owner_id} video_id={video_id} owner={video.user_id}")
    return video


class VideoUploadPipeline:
    def __init__(
        self,
        settings: Settings,
        videos: VideoRepository,
        stager: TempStager,
        prober: MediaProber,
        remuxer: FastStartRemuxer,
        store: ObjectStore,
    ):
        self.settings = settings
        self.videos = videos
        self.stager = stager
        self.prober = prober
        self.remuxer = remuxer
        self.store = store

    def steps(self) -> List[Tuple[UploadStage, Callable[[UploadContext], None]]]:
        return [
            (UploadStage.AUTHORIZING, self.authorize),
            (UploadStage.STAGING, self.stage),
            (UploadStage.PROBING, self.probe),
            (UploadStage.REMUXING, self.remux),
            (UploadStage.KEY_DERIVATION, self.derive_key),
            (UploadStage.UPLOADING, self.upload),
            (UploadStage.PERSISTING, self.persist),
            (UploadStage.DONE, self.finish),
        ]

    def run(self, request: UploadRequest) -> VideoRecord:
        """
        Runs one upload end to end.

        Returns:
            VideoRecord: The saved record with its video pointer expanded to
            a presigned URL

        Raises:
            ClipstoreError: Whatever the failing stage raised
        """
        with ExitStack() as files:
            ctx = UploadContext(request=request, files=files)
            for stage, step in self.steps():
                ctx.stage = stage
                logger.info(f"Video upload | video_id={request.video_id} stage={stage.value}")
                try:
                    step(ctx)
                except Exception:
                    ctx.stage = UploadStage.FAILED
                    logger.warning(
                        f"Video upload failed | video_id={request.video_id} stage={stage.value}"
                    )
                    raise
            return ctx.result

    def authorize(self, ctx: UploadContext) -> None:
        ctx.video = authorize_owner(self.videos, ctx.request.video_id, ctx.request.owner_id)

    def stage(self, ctx: UploadContext) -> None:
        mtype = media_type(ctx.request.content_type)
        if mtype != VIDEO_CONTENT_TYPE:
            raise UnsupportedMediaTypeError("Video must be an MP4 file", detail=mtype)

        ctx.scratch_path = ctx.files.enter_context(
            self.stager.stage(
                ctx.request.stream,
                limit=self.settings.MAX_VIDEO_BYTES,
                declared_size=ctx.request.size,
            )
        )

    def probe(self, ctx: UploadContext) -> None:
        ctx.label = self.prober.classify(str(ctx.scratch_path))

    def remux(self, ctx: UploadContext) -> None:
        ctx.remuxed_path = self.remuxer.remux(str(ctx.scratch_path))
        ctx.files.callback(remove_quietly, Path(ctx.remuxed_path))

    def derive_key(self, ctx: UploadContext) -> None:
        ctx.key = video_key(ctx.label)

    def upload(self, ctx: UploadContext) -> None:
        self.store.put(
            self.settings.AWS_S3_BUCKET, ctx.key, ctx.remuxed_path, VIDEO_CONTENT_TYPE
        )

    def persist(self, ctx: UploadContext) -> None:
        updated = ctx.video.model_copy(
            update={
                "video_url": make_pointer(self.settings.AWS_S3_BUCKET, ctx.key),
                "updated_at": datetime.utcnow(),
            }
        )
        try:
            self.videos.update(updated)
        except PersistenceError:
            # the object is already in the bucket with nothing pointing at it
            logger.error(
                f"Orphaned object | bucket={self.settings.AWS_S3_BUCKET} key={ctx.key} "
                f"video_id={ctx.video.id}"
            )
            raise
        ctx.video = updated

    def finish(self, ctx: UploadContext) -> None:
        ctx.result = expand_video_pointer(ctx.video, self.store, self.settings.PRESIGN_TTL_SECONDS)
