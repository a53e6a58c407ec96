"""
S3-based event source.

Reads every object under {bucket}/{prefix} in key order, one object at a
time, each object holding JSON lines (gzipped when the key ends in .gz).

Object listing uses the list_objects_v2 paginator (max 1000 keys per call).
"""

import gzip
import os
import zlib
from contextlib import closing
from typing import Iterator, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..core.errors import SourceError
from .store import LineEventSource


class S3EventSource(LineEventSource):
    """
    JSON-lines event source backed by S3 objects.

    Objects are streamed lazily; only one object body is open at a time.
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        timestamp_field: str = "dropoff_datetime",
        endpoint_url: Optional[str] = None,
        region: str = "us-east-1",
        client=None,
    ) -> None:
        """
        Initialize S3 event source.

        Args:
            bucket: S3 bucket name
            prefix: Key prefix of the objects holding the raw events
            endpoint_url: S3 endpoint URL (for MinIO, localstack, etc.)
            region: AWS region of the bucket
            client: Pre-built S3 client (overrides endpoint_url/region)

        Raises:
            SourceError: If the S3 client cannot be created or the bucket is not accessible
        """
        super().__init__(timestamp_field)
        self.bucket = bucket
        self.prefix = prefix

        if client is not None:
            self.s3_client = client
        else:
            try:
                self.s3_client = boto3.client("s3", endpoint_url=endpoint_url, region_name=region)
            except BotoCoreError as e:
                raise SourceError(f"Failed to create S3 client: {e}") from e

        if os.getenv("REPLAY_SKIP_BUCKET_CHECK", "").lower() != "true":
            try:
                self.s3_client.head_bucket(Bucket=bucket)
            except ClientError as e:
                error_code = e.response.get("Error", {}).get("Code", "Unknown")
                raise SourceError(
                    f"Bucket '{bucket}' not accessible (code: {error_code})"
                ) from e
            except BotoCoreError as e:
                raise SourceError(f"Bucket '{bucket}' not accessible: {e}") from e

    def list_keys(self) -> List[str]:
        """List object keys under the prefix in lexicographic order."""
        try:
            paginator = self.s3_client.get_paginator("list_objects_v2")
            keys = []
            for page in paginator.paginate(Bucket=self.bucket, Prefix=self.prefix):
                for obj in page.get("Contents", []):
                    if obj["Key"].endswith("/"):
                        continue
                    keys.append(obj["Key"])
        except (BotoCoreError, ClientError) as e:
            raise SourceError(f"Failed to list s3://{self.bucket}/{self.prefix}: {e}") from e
        keys.sort()
        return keys

    def _lines(self) -> Iterator[bytes]:
        for key in self.list_keys():
            try:
                response = self.s3_client.get_object(Bucket=self.bucket, Key=key)
                with closing(response["Body"]) as body:
                    if key.endswith(".gz"):
                        lines = gzip.GzipFile(fileobj=body)
                    else:
                        lines = body.iter_lines()
                    for line in lines:
                        yield line
            except (BotoCoreError, ClientError, OSError, EOFError, zlib.error) as e:
                raise SourceError(f"Failed to read s3://{self.bucket}/{key}: {e}") from e
