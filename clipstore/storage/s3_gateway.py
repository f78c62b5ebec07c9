import logging
from typing import Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from clipstore.core.config import Settings
from clipstore.core.exceptions import StoreError


class ObjectStore(Protocol):
    def put(self, bucket: str, key: str, local_path: str, content_type: str) -> None:
        ...

    def presign(self, bucket: str, key: str, ttl: int) -> str:
        ...


class S3ObjectStore:
    def __init__(self, client):
        self.client = client
        self.logger = logging.getLogger(__name__)

    def put(self, bucket: str, key: str, local_path: str, content_type: str) -> None:
        """
        Upload a local file as a single object.

        The body is handed to boto3 as an open file so it is streamed from
        disk rather than read into memory.

        Args:
            bucket (str): Target bucket.
            key (str): Object key.
            local_path (str): File to upload.
            content_type (str): Stored as the object's Content-Type.
        Raises:
            StoreError: On any transport or authorization failure.
        """
        try:
            with open(local_path, "rb") as body:
                self.client.put_object(
                    Bucket=bucket,
                    Key=key,
                    Body=body,
                    ContentType=content_type,
                )
        except (ClientError, BotoCoreError) as e:
            self.logger.error(f"S3 put_object failed: bucket='{bucket}' key='{key}' error={e!r}")
            raise StoreError("Couldn't upload the video to bucket", detail=repr(e)) from e

        self.logger.info(f"Uploaded object: bucket='{bucket}' key='{key}'")

    def presign(self, bucket: str, key: str, ttl: int) -> str:
        """
        Generate a presigned GET URL that expires ``ttl`` seconds from now.

        Args:
            bucket (str): Bucket holding the object.
            key (str): Object key.
            ttl (int): Lifetime of the URL in seconds.
        Returns:
            str: Presigned URL.
        """
        try:
            url = self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=ttl,
            )
        except (ClientError, BotoCoreError) as e:
            self.logger.error(f"Failed to generate presigned URL: key='{key}' error={e!r}")
            raise StoreError("Couldn't sign the video URL", detail=repr(e)) from e

        self.logger.debug(f"Generated presigned URL: bucket='{bucket}' key='{key}' ttl={ttl}")
        return url


def get_object_store(settings: Settings) -> S3ObjectStore:
    client = boto3.client(
        "s3",
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        region_name=settings.AWS_REGION,
        endpoint_url=settings.AWS_ENDPOINT_URL,
    )
    return S3ObjectStore(client)
