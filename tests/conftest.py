import os
import tempfile
import uuid
from datetime import timedelta

import pytest

# Set test environment before anything imports the app
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only"
os.environ["AWS_S3_BUCKET"] = "test-bucket"
os.environ["AWS_REGION"] = "us-east-1"
os.environ["SCRATCH_DIR"] = tempfile.mkdtemp(prefix="clipstore-scratch-")
os.environ["ASSETS_ROOT"] = tempfile.mkdtemp(prefix="clipstore-assets-")

from clipstore.core.config import Settings  # noqa: E402
from clipstore.core.security import create_access_token  # noqa: E402
from clipstore.database.schemas.metadata import VideoRecord  # noqa: E402
from clipstore.media.stager import TempStager  # noqa: E402
from clipstore.pipeline.upload_video import VideoUploadPipeline  # noqa: E402

from doubles import (  # noqa: E402
    OWNER_ID,
    FakeObjectStore,
    FakeProber,
    FakeRemuxer,
    FakeVideoRepository,
)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        JWT_SECRET="test-secret-key-for-testing-only",
        AWS_S3_BUCKET="test-bucket",
        SCRATCH_DIR=str(tmp_path / "scratch"),
        ASSETS_ROOT=str(tmp_path / "assets"),
        BASE_URL="http://localhost:8000",
    )


@pytest.fixture
def video_record() -> VideoRecord:
    return VideoRecord(
        _id=str(uuid.uuid4()),
        user_id=OWNER_ID,
        title="Boots demo",
        description="fresh out of the camera",
    )


@pytest.fixture
def video_repo(video_record) -> FakeVideoRepository:
    return FakeVideoRepository([video_record])


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def prober() -> FakeProber:
    return FakeProber()


@pytest.fixture
def remuxer() -> FakeRemuxer:
    return FakeRemuxer()


@pytest.fixture
def pipeline(settings, video_repo, prober, remuxer, object_store) -> VideoUploadPipeline:
    return VideoUploadPipeline(
        settings=settings,
        videos=video_repo,
        stager=TempStager(settings.SCRATCH_DIR),
        prober=prober,
        remuxer=remuxer,
        store=object_store,
    )


@pytest.fixture
def make_token():
    def _make(user_id: str = OWNER_ID, ttl: timedelta = timedelta(minutes=5)) -> str:
        return create_access_token(user_id, os.environ["JWT_SECRET"], ttl)

    return _make
