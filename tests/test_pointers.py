import boto3
import pytest

from clipstore.core.exceptions import InvalidPointerFormatError
from clipstore.pipeline.pointers import expand_video_pointer, make_pointer, parse_pointer
from clipstore.storage.s3_gateway import S3ObjectStore

from doubles import FakeObjectStore


def test_make_and_parse_pointer():
    pointer = make_pointer("mybucket", "landscape/abc.mp4")

    assert pointer == "mybucket,landscape/abc.mp4"
    assert parse_pointer(pointer) == ("mybucket", "landscape/abc.mp4")


def test_parse_pointer_splits_on_first_comma_only():
    assert parse_pointer("mybucket,odd,key.mp4") == ("mybucket", "odd,key.mp4")


@pytest.mark.parametrize("value", ["onlyonepart", ",key.mp4", "mybucket,", ","])
def test_parse_pointer_rejects_malformed_values(value):
    with pytest.raises(InvalidPointerFormatError):
        parse_pointer(value)


def test_expand_round_trip_with_real_signer(video_record):
    client = boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="AKIDEXAMPLE",
        aws_secret_access_key="wJalrXUtnFEMI/K7MDENG/bPxRfiCYEXAMPLEKEY",
    )
    stored = video_record.model_copy(update={"video_url": "mybucket,myvideo123.mp4"})

    expanded = expand_video_pointer(stored, S3ObjectStore(client), ttl=600)

    assert expanded.video_url.startswith("https://")
    assert "mybucket" in expanded.video_url
    assert "myvideo123.mp4" in expanded.video_url
    # stored form is untouched
    assert stored.video_url == "mybucket,myvideo123.mp4"


@pytest.mark.parametrize("pointer", [None, ""])
def test_expand_without_video_returns_record_unchanged(video_record, pointer):
    record = video_record.model_copy(update={"video_url": pointer})

    assert expand_video_pointer(record, FakeObjectStore(), ttl=600) == record


def test_expand_rejects_corrupt_pointer(video_record):
    record = video_record.model_copy(update={"video_url": "onlyonepart"})

    with pytest.raises(InvalidPointerFormatError):
        expand_video_pointer(record, FakeObjectStore(), ttl=600)
