import io
from pathlib import Path

import pytest

from clipstore.core.exceptions import (
    BadRequestError,
    ForbiddenError,
    PayloadTooLargeError,
    PersistenceError,
    UnsupportedMediaTypeError,
)
from clipstore.pipeline.upload_thumbnail import ThumbnailRequest, ThumbnailUploadPipeline

from doubles import OWNER_ID, STRANGER_ID

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def thumbnails(settings, video_repo):
    return ThumbnailUploadPipeline(settings, video_repo)


def make_request(video_id, owner_id=OWNER_ID, content_type="image/png", payload=PNG, size=None):
    return ThumbnailRequest(
        owner_id=owner_id,
        video_id=video_id,
        stream=io.BytesIO(payload),
        content_type=content_type,
        size=size,
    )


def assets(settings):
    root = Path(settings.ASSETS_ROOT)
    return list(root.iterdir()) if root.exists() else []


def test_thumbnail_saved_as_static_asset(thumbnails, video_record, video_repo, settings):
    result = thumbnails.run(make_request(video_record.id))

    stored = assets(settings)
    assert len(stored) == 1
    assert stored[0].suffix == ".png"
    assert stored[0].read_bytes() == PNG
    assert result.thumbnail_url == f"http://localhost:8000/assets/{stored[0].name}"
    assert video_repo.records[video_record.id].thumbnail_url == result.thumbnail_url


def test_thumbnail_rejects_other_owner(thumbnails, video_record, settings):
    with pytest.raises(ForbiddenError):
        thumbnails.run(make_request(video_record.id, owner_id=STRANGER_ID))

    assert assets(settings) == []


def test_thumbnail_rejects_unsupported_type(thumbnails, video_record, settings):
    with pytest.raises(UnsupportedMediaTypeError):
        thumbnails.run(make_request(video_record.id, content_type="image/gif"))

    assert assets(settings) == []


def test_thumbnail_requires_content_type(thumbnails, video_record):
    with pytest.raises(BadRequestError):
        thumbnails.run(make_request(video_record.id, content_type=""))


def test_thumbnail_size_limit(thumbnails, video_record, settings):
    with pytest.raises(PayloadTooLargeError):
        thumbnails.run(make_request(video_record.id, size=settings.MAX_THUMBNAIL_BYTES + 1))

    small = settings.model_copy(update={"MAX_THUMBNAIL_BYTES": 16})
    with pytest.raises(PayloadTooLargeError):
        ThumbnailUploadPipeline(small, thumbnails.videos).run(make_request(video_record.id))

    assert assets(settings) == []


def test_thumbnail_removed_when_record_update_fails(thumbnails, video_record, video_repo, settings):
    video_repo.fail_updates = True

    with pytest.raises(PersistenceError):
        thumbnails.run(make_request(video_record.id))

    assert assets(settings) == []
    assert video_repo.records[video_record.id].thumbnail_url is None
