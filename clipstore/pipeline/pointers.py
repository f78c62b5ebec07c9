from typing import Tuple

from clipstore.core.exceptions import InvalidPointerFormatError
from clipstore.database.schemas.metadata import VideoRecord
from clipstore.storage.s3_gateway import ObjectStore


def make_pointer(bucket: str, key: str) -> str:
    return f"{bucket},{key}"


def parse_pointer(value: str) -> Tuple[str, str]:
    bucket, sep, key = value.partition(",")
    if not sep or not bucket or not key:
        raise InvalidPointerFormatError(detail=f"bad video pointer: {value!r}")
    return bucket, key


def expand_video_pointer(video: VideoRecord, store: ObjectStore, ttl: int) -> VideoRecord:
    """
    Returns a copy of ``video`` whose ``video_url`` is a presigned URL.

    Records without a video yet come back unchanged. The signed URL is
    rebuilt on every call and never written back.
    """
    if not video.video_url:
        return video

    bucket, key = parse_pointer(video.video_url)
    return video.model_copy(update={"video_url": store.presign(bucket, key, ttl)})
