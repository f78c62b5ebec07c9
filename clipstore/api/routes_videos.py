import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from starlette.datastructures import FormData, UploadFile
from starlette.types import Message

from clipstore.api.dependencies import (
    get_current_user_id,
    get_object_store,
    get_thumbnail_pipeline,
    get_video_pipeline,
    get_video_repository,
    parse_video_id,
)
from clipstore.core.config import Settings, get_settings
from clipstore.core.exceptions import BadRequestError, PayloadTooLargeError
from clipstore.database.repositories import VideoRepository
from clipstore.database.schemas.metadata import VideoCreate, VideoRecord
from clipstore.pipeline.pointers import expand_video_pointer
from clipstore.pipeline.upload_thumbnail import ThumbnailRequest, ThumbnailUploadPipeline
from clipstore.pipeline.upload_video import UploadRequest, VideoUploadPipeline, authorize_owner
from clipstore.storage.s3_gateway import ObjectStore

logger = logging.getLogger(__name__)
router = APIRouter()


def enforce_content_length(request: Request, limit: int) -> None:
    declared = request.headers.get("content-length")
    if declared is None:
        return
    try:
        length = int(declared)
    except ValueError as e:
        raise BadRequestError("Invalid Content-Length", detail=declared) from e
    if length > limit:
        raise PayloadTooLargeError(detail=f"Content-Length {length} > {limit}")


def limit_body(request: Request, limit: int) -> Request:
    """
    Returns a view of ``request`` whose body stops being read once more than
    ``limit`` bytes have arrived, whether or not a Content-Length was sent.
    """
    received = 0

    async def receive() -> Message:
        nonlocal received
        message = await request.receive()
        if message["type"] == "http.request":
            received += len(message.get("body", b""))
            if received > limit:
                raise PayloadTooLargeError(detail=f"request body passed {limit} bytes")
        return message

    return Request(request.scope, receive)


def form_file(form: FormData, field: str) -> UploadFile:
    upload = form.get(field)
    if not isinstance(upload, UploadFile):
        raise BadRequestError("Unable to parse form file", detail=f"missing form field '{field}'")
    return upload


def expand_all(records: List[VideoRecord], store: ObjectStore, ttl: int) -> List[VideoRecord]:
    return [expand_video_pointer(video, store, ttl) for video in records]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_video(
    payload: VideoCreate,
    user_id: str = Depends(get_current_user_id),
    videos: VideoRepository = Depends(get_video_repository),
):
    video = VideoRecord(
        _id=str(uuid.uuid4()),
        user_id=user_id,
        title=payload.title,
        description=payload.description,
    )
    await run_in_threadpool(videos.create, video)
    return video.to_response()


@router.get("")
async def list_videos(
    user_id: str = Depends(get_current_user_id),
    videos: VideoRepository = Depends(get_video_repository),
    store: ObjectStore = Depends(get_object_store),
    settings: Settings = Depends(get_settings),
):
    records = await run_in_threadpool(videos.list_for_owner, user_id)
    expanded = await run_in_threadpool(expand_all, records, store, settings.PRESIGN_TTL_SECONDS)
    return [video.to_response() for video in expanded]


@router.get("/{video_id}")
async def get_video(
    video_id: str,
    user_id: str = Depends(get_current_user_id),
    videos: VideoRepository = Depends(get_video_repository),
    store: ObjectStore = Depends(get_object_store),
    settings: Settings = Depends(get_settings),
):
    video = await run_in_threadpool(authorize_owner, videos, parse_video_id(video_id), user_id)
    expanded = await run_in_threadpool(
        expand_video_pointer, video, store, settings.PRESIGN_TTL_SECONDS
    )
    return expanded.to_response()


@router.delete("/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_video(
    video_id: str,
    user_id: str = Depends(get_current_user_id),
    videos: VideoRepository = Depends(get_video_repository),
):
    video = await run_in_threadpool(authorize_owner, videos, parse_video_id(video_id), user_id)
    await run_in_threadpool(videos.delete, video.id)
    logger.info(f"Video deleted | video_id={video.id} user_id={user_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{video_id}/thumbnail")
async def upload_thumbnail(
    video_id: str,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    videos: VideoRepository = Depends(get_video_repository),
    pipeline: ThumbnailUploadPipeline = Depends(get_thumbnail_pipeline),
    settings: Settings = Depends(get_settings),
):
    video_id = parse_video_id(video_id)
    enforce_content_length(request, settings.MAX_THUMBNAIL_BYTES)
    # owner check happens before any of the body is read
    await run_in_threadpool(authorize_owner, videos, video_id, user_id)
    logger.info(f"Uploading thumbnail | video_id={video_id} user_id={user_id}")

    form = await limit_body(request, settings.MAX_THUMBNAIL_BYTES).form()
    try:
        upload = form_file(form, "thumbnail")
        video = await run_in_threadpool(
            pipeline.run,
            ThumbnailRequest(
                owner_id=user_id,
                video_id=video_id,
                stream=upload.file,
                content_type=upload.content_type or "",
                size=upload.size,
            ),
        )
    finally:
        await form.close()

    return video.to_response()


@router.post("/{video_id}/video")
async def upload_video(
    video_id: str,
    request: Request,
    user_id: str = Depends(get_current_user_id),
    videos: VideoRepository = Depends(get_video_repository),
    pipeline: VideoUploadPipeline = Depends(get_video_pipeline),
    settings: Settings = Depends(get_settings),
):
    video_id = parse_video_id(video_id)
    enforce_content_length(request, settings.MAX_VIDEO_BYTES)
    # owner check happens before any of the body is read
    await run_in_threadpool(authorize_owner, videos, video_id, user_id)
    logger.info(f"Uploading video | video_id={video_id} user_id={user_id}")

    form = await limit_body(request, settings.MAX_VIDEO_BYTES).form()
    try:
        upload = form_file(form, "video")
        video = await run_in_threadpool(
            pipeline.run,
            UploadRequest(
                owner_id=user_id,
                video_id=video_id,
                stream=upload.file,
                content_type=upload.content_type or "",
                size=upload.size,
            ),
        )
    finally:
        await form.close()

    return video.to_response()
