"""
S3 content store for generated report PDFs.
Set AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, AWS_REGION, S3_BUCKET.
"""
from __future__ import annotations

import logging
import os

from reporting.errors import ArtifactStoreError

S3_BUCKET = os.environ.get("S3_BUCKET", "")
AWS_REGION = os.environ.get("AWS_REGION", "us-east-1")

_LOG = logging.getLogger(__name__)


def _client():
    import boto3
    return boto3.client("s3", region_name=AWS_REGION)


class S3ContentStore:
    """Objects live at <bucket>/<key>; writing the same key again overwrites it."""

    def __init__(self, bucket: str | None = None, client=None):
        self.bucket = bucket if bucket is not None else S3_BUCKET
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = _client()
        return self._client

    def upsert(self, key: str, body: bytes, content_type: str = "application/pdf") -> str:
        if not self.bucket:
            raise ArtifactStoreError("S3_BUCKET is not configured")
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=body, ContentType=content_type)
        except Exception as e:
            raise ArtifactStoreError(f"Upload failed for {key}: {e}") from e
        return key

    def delete(self, key: str) -> None:
        if not self.bucket:
            raise ArtifactStoreError("S3_BUCKET is not configured")
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except Exception as e:
            raise ArtifactStoreError(f"Delete failed for {key}: {e}") from e

    def presigned_url(self, key: str, expires_in: int = 3600) -> str | None:
        if not self.bucket:
            return None
        try:
            return self.client.generate_presigned_url(
                "get_object", Params={"Bucket": self.bucket, "Key": key}, ExpiresIn=expires_in
            )
        except Exception as e:
            _LOG.warning("S3_PRESIGN_FAILED key=%s err=%s", key, e)
            return None
