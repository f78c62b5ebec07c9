"""
Tests for the video upload pipeline stages and their failure isolation.
"""

import io
import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from clipstore.core.exceptions import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    PayloadTooLargeError,
    PersistenceError,
    ProbeError,
    RemuxError,
    StoreError,
    UnsupportedMediaTypeError,
)
from clipstore.media.prober import AspectRatioLabel
from clipstore.media.stager import TempStager
from clipstore.pipeline.upload_video import UploadRequest, UploadStage, VideoUploadPipeline

from doubles import OWNER_ID, STRANGER_ID

PAYLOAD = b"\x00\x00\x00\x18ftypmp42" + b"\x01" * 2048


def make_request(video_id, owner_id=OWNER_ID, payload=PAYLOAD, content_type="video/mp4", size=None):
    return UploadRequest(
        owner_id=owner_id,
        video_id=video_id,
        stream=io.BytesIO(payload),
        content_type=content_type,
        size=size,
    )


def scratch_files(settings):
    scratch = Path(settings.SCRATCH_DIR)
    return list(scratch.iterdir()) if scratch.exists() else []


class TestHappyPath:
    def test_upload_stores_pointer_and_returns_signed_url(
        self, pipeline, video_record, video_repo, object_store, settings
    ):
        result = pipeline.run(make_request(video_record.id))

        assert len(object_store.puts) == 1
        put = object_store.puts[0]
        assert put["bucket"] == "test-bucket"
        assert put["key"].startswith("landscape/")
        assert put["key"].endswith(".mp4")
        assert put["content_type"] == "video/mp4"
        assert put["body"] == PAYLOAD

        stored = video_repo.records[video_record.id]
        assert stored.video_url == f"test-bucket,{put['key']}"
        assert stored.updated_at >= video_record.updated_at

        assert result.video_url == f"https://test-bucket.s3.test/{put['key']}?X-Amz-Expires=600"
        assert result.id == video_record.id

    def test_uploads_the_remuxed_file(self, pipeline, video_record, object_store, remuxer):
        pipeline.run(make_request(video_record.id))

        assert object_store.puts[0]["path"] == remuxer.outputs[0]
        assert remuxer.outputs[0].endswith(".processing")

    def test_key_prefix_follows_classification(self, pipeline, video_record, object_store, prober):
        prober.label = AspectRatioLabel.PORTRAIT

        pipeline.run(make_request(video_record.id))

        assert object_store.puts[0]["key"].startswith("portrait/")

    def test_scratch_and_remuxed_files_removed(self, pipeline, video_record, remuxer, settings):
        pipeline.run(make_request(video_record.id))

        assert not Path(remuxer.calls[0]).exists()
        assert not Path(remuxer.outputs[0]).exists()
        assert scratch_files(settings) == []

    def test_content_type_parameters_are_accepted(self, pipeline, video_record, object_store):
        pipeline.run(make_request(video_record.id, content_type="video/mp4; codecs=avc1"))

        assert len(object_store.puts) == 1

    def test_stages_run_in_order(self, pipeline, video_record, caplog):
        with caplog.at_level(logging.INFO, logger="clipstore.pipeline.upload_video"):
            pipeline.run(make_request(video_record.id))

        stages = [
            record.getMessage().rsplit("stage=", 1)[1]
            for record in caplog.records
            if "stage=" in record.getMessage()
        ]
        assert stages == [stage.value for stage in UploadStage if stage is not UploadStage.FAILED]


class TestAuthorization:
    def test_wrong_owner_is_rejected_before_staging(
        self, settings, video_repo, video_record, prober, remuxer, object_store
    ):
        stager = MagicMock(spec=TempStager)
        pipeline = VideoUploadPipeline(settings, video_repo, stager, prober, remuxer, object_store)

        with pytest.raises(ForbiddenError):
            pipeline.run(make_request(video_record.id, owner_id=STRANGER_ID))

        stager.stage.assert_not_called()
        assert prober.calls == []
        assert remuxer.calls == []
        assert object_store.puts == []
        assert scratch_files(settings) == []
        assert video_repo.updates == []

    def test_unknown_video_is_not_found(self, pipeline, prober, object_store):
        with pytest.raises(NotFoundError):
            pipeline.run(make_request("00000000-0000-0000-0000-000000000000"))

        assert prober.calls == []
        assert object_store.puts == []


class TestStagingRejections:
    def test_body_over_one_gib_rejected_before_remux_or_upload(
        self, pipeline, video_record, remuxer, prober, object_store, settings
    ):
        assert settings.MAX_VIDEO_BYTES == 1 << 30

        with pytest.raises(PayloadTooLargeError):
            pipeline.run(make_request(video_record.id, payload=b"", size=(1 << 30) + 1))

        assert prober.calls == []
        assert remuxer.calls == []
        assert object_store.puts == []
        assert scratch_files(settings) == []

    def test_stream_longer_than_limit_rejected(
        self, settings, video_repo, video_record, prober, remuxer, object_store
    ):
        small = settings.model_copy(update={"MAX_VIDEO_BYTES": 1024})
        pipeline = VideoUploadPipeline(
            small, video_repo, TempStager(small.SCRATCH_DIR), prober, remuxer, object_store
        )

        with pytest.raises(PayloadTooLargeError):
            pipeline.run(make_request(video_record.id, payload=b"x" * 1025))

        assert remuxer.calls == []
        assert object_store.puts == []
        assert scratch_files(small) == []

    def test_missing_content_type_is_bad_request(self, pipeline, video_record, prober):
        with pytest.raises(BadRequestError):
            pipeline.run(make_request(video_record.id, content_type=""))

        assert prober.calls == []

    def test_non_mp4_is_unsupported(self, pipeline, video_record, prober):
        with pytest.raises(UnsupportedMediaTypeError):
            pipeline.run(make_request(video_record.id, content_type="video/quicktime"))

        assert prober.calls == []


class TestFailureIsolation:
    def test_probe_failure_aborts_before_upload(
        self, pipeline, video_record, video_repo, prober, remuxer, object_store, settings
    ):
        prober.fail = True

        with pytest.raises(ProbeError):
            pipeline.run(make_request(video_record.id))

        assert remuxer.calls == []
        assert object_store.puts == []
        assert video_repo.records[video_record.id].video_url is None
        assert scratch_files(settings) == []

    def test_remux_failure_leaves_pointer_unchanged(
        self, pipeline, video_record, video_repo, remuxer, object_store, settings
    ):
        before = video_record.model_copy(update={"video_url": "test-bucket,landscape/old.mp4"})
        video_repo.records[video_record.id] = before
        remuxer.fail = True

        with pytest.raises(RemuxError):
            pipeline.run(make_request(video_record.id))

        assert object_store.puts == []
        assert video_repo.updates == []
        assert video_repo.records[video_record.id].video_url == "test-bucket,landscape/old.mp4"
        assert scratch_files(settings) == []

    def test_store_failure_leaves_metadata_untouched(
        self, pipeline, video_record, video_repo, object_store, settings
    ):
        object_store.fail_put = True

        with pytest.raises(StoreError):
            pipeline.run(make_request(video_record.id))

        assert video_repo.updates == []
        assert video_repo.records[video_record.id].video_url is None
        assert scratch_files(settings) == []

    def test_persistence_failure_after_upload_is_reported(
        self, pipeline, video_record, video_repo, object_store, settings
    ):
        video_repo.fail_updates = True

        with pytest.raises(PersistenceError):
            pipeline.run(make_request(video_record.id))

        # the object made it to the bucket; only the record write failed
        assert len(object_store.puts) == 1
        assert video_repo.records[video_record.id].video_url is None
        assert scratch_files(settings) == []
