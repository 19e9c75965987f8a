"""
Attachment Storage Infrastructure
==================================

S3 adapter for submission attachments.

Objects are written to a private bucket and exposed through presigned GET
URLs; no public ACL or bucket policy is ever applied. boto3 is synchronous,
so uploads run in worker threads and fan out with asyncio.gather.
"""

import asyncio
import re
import time
import uuid
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from issue_intake.config import settings
from issue_intake.core import StorageException
from issue_intake.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

_MISSING_BUCKET_CODES = {"404", "NoSuchBucket", "NotFound"}


@dataclass(frozen=True)
class UploadResult:
    """Location of a stored attachment."""
    url: str
    key: str


def sanitize_filename(name: str) -> str:
    """Lower-case and reduce a filename to ``[a-z0-9.-]``."""
    safe = re.sub(r"[^a-z0-9.\-]+", "-", (name or "").lower())
    safe = re.sub(r"-+", "-", safe)
    safe = re.sub(r"^-|-$|\.+$", "", safe)
    return safe or "file"


def build_object_key(filename: str) -> str:
    """Timestamp-prefixed key; the random token keeps concurrent same-name uploads apart."""
    timestamp = int(time.time() * 1000)
    return f"uploads/{timestamp}-{uuid.uuid4().hex[:8]}-{sanitize_filename(filename)}"


class S3StorageAdapter:
    """
    Uploads attachment bytes to S3 and returns signed URLs.

    The bucket is checked (and created when missing) once per process;
    the set of verified buckets only ever grows.
    """

    def __init__(
        self,
        bucket: Optional[str] = None,
        region: Optional[str] = None,
        url_expiry_seconds: Optional[int] = None,
        client=None
    ):
        self._bucket = bucket or settings.s3_bucket
        self._region = region or settings.aws_region
        self._url_expiry = url_expiry_seconds or settings.s3_url_expiry_seconds
        self._client = client or boto3.client("s3", region_name=self._region)
        self._known_buckets: Set[str] = set()

    def _ensure_bucket(self) -> None:
        if self._bucket in self._known_buckets:
            return

        try:
            self._client.head_bucket(Bucket=self._bucket)
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code not in _MISSING_BUCKET_CODES:
                raise StorageException(f"Cannot access bucket '{self._bucket}': {e}")
            self._create_bucket()

        self._known_buckets.add(self._bucket)

    def _create_bucket(self) -> None:
        logger.info("Creating attachment bucket", extra={"bucket": self._bucket, "region": self._region})
        params = {"Bucket": self._bucket}
        # us-east-1 rejects an explicit location constraint
        if self._region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": self._region}
        try:
            self._client.create_bucket(**params)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") != "BucketAlreadyOwnedByYou":
                raise StorageException(
                    f"Bucket '{self._bucket}' not found and could not be created in '{self._region}'. "
                    "Create it or point S3_BUCKET at an existing bucket."
                )

    def _upload_sync(self, data: bytes, filename: str, content_type: str) -> UploadResult:
        key = build_object_key(filename)
        try:
            self._ensure_bucket()
            self._client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType=content_type
            )
            url = self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self._bucket, "Key": key},
                ExpiresIn=self._url_expiry
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageException(f"Upload of '{filename}' failed: {e}")

        logger.debug("Attachment stored", extra={"key": key, "size_bytes": len(data)})
        return UploadResult(url=url, key=key)

    async def upload(self, data: bytes, filename: str, content_type: str) -> UploadResult:
        """Store one attachment."""
        return await asyncio.to_thread(self._upload_sync, data, filename, content_type)

    async def upload_many(self, attachments: Iterable) -> List[UploadResult]:
        """
        Store attachments concurrently.

        Results keep the input order. The first failure propagates; no
        partial result list is ever returned.
        """
        return list(await asyncio.gather(*(
            self.upload(item.data, item.filename, item.content_type)
            for item in attachments
        )))
