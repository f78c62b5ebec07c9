"""
FastAPI dependency providers.

Everything a route needs is built here from the cached Settings, so tests
can swap any piece through ``app.dependency_overrides``.
"""

import uuid
from datetime import timedelta
from functools import lru_cache

from fastapi import Depends, Request

from clipstore.core.config import Settings, get_settings
from clipstore.core.database_sync import mongodb_sync
from clipstore.core.exceptions import BadRequestError
from clipstore.core.security import get_bearer_token, validate_access_token
from clipstore.database.repositories import UserRepository, VideoRepository
from clipstore.media.commands import SubprocessRunner
from clipstore.media.prober import MediaProber
from clipstore.media.remuxer import FastStartRemuxer
from clipstore.media.stager import TempStager
from clipstore.pipeline.upload_thumbnail import ThumbnailUploadPipeline
from clipstore.pipeline.upload_video import VideoUploadPipeline
from clipstore.storage.s3_gateway import ObjectStore, get_object_store as build_object_store


def get_video_repository(settings: Settings = Depends(get_settings)) -> VideoRepository:
    mongodb_sync.connect(settings)
    return VideoRepository(mongodb_sync.db["videos"])


def get_user_repository(settings: Settings = Depends(get_settings)) -> UserRepository:
    mongodb_sync.connect(settings)
    return UserRepository(mongodb_sync.db["users"])


@lru_cache
def _cached_object_store(settings: Settings) -> ObjectStore:
    return build_object_store(settings)


def get_object_store(settings: Settings = Depends(get_settings)) -> ObjectStore:
    return _cached_object_store(settings)


def get_prober(settings: Settings = Depends(get_settings)) -> MediaProber:
    return MediaProber(SubprocessRunner(), ffprobe_bin=settings.FFPROBE_BIN)


def get_remuxer(settings: Settings = Depends(get_settings)) -> FastStartRemuxer:
    return FastStartRemuxer(SubprocessRunner(), ffmpeg_bin=settings.FFMPEG_BIN)


def get_video_pipeline(
    settings: Settings = Depends(get_settings),
    videos: VideoRepository = Depends(get_video_repository),
    prober: MediaProber = Depends(get_prober),
    remuxer: FastStartRemuxer = Depends(get_remuxer),
    store: ObjectStore = Depends(get_object_store),
) -> VideoUploadPipeline:
    return VideoUploadPipeline(
        settings=settings,
        videos=videos,
        stager=TempStager(settings.SCRATCH_DIR),
        prober=prober,
        remuxer=remuxer,
        store=store,
    )


def get_thumbnail_pipeline(
    settings: Settings = Depends(get_settings),
    videos: VideoRepository = Depends(get_video_repository),
) -> ThumbnailUploadPipeline:
    return ThumbnailUploadPipeline(settings=settings, videos=videos)


def get_current_user_id(request: Request, settings: Settings = Depends(get_settings)) -> str:
    token = get_bearer_token(request.headers)
    return validate_access_token(token, settings.JWT_SECRET)


def parse_video_id(video_id: str) -> str:
    try:
        return str(uuid.UUID(video_id))
    except ValueError as e:
        raise BadRequestError("Invalid ID", detail=video_id) from e


def access_token_ttl(settings: Settings) -> timedelta:
    return timedelta(minutes=settings.ACCESS_TOKEN_TTL_MINUTES)
