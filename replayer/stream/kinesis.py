"""
Amazon Kinesis Data Streams destination.

Domain events go through the batching KinesisProducer; watermark records are
written synchronously with put_record and an ExplicitHashKey so each lands in
a specific shard.

Shard listing: list_shards returns at most MaxResults shards per call. The
first call names the stream, follow-up calls pass only NextToken.
"""

import os
from concurrent.futures import Future
from typing import List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..core.errors import DestinationError, ThrottledError
from ..core.events import PartitionDescriptor
from .aws import THROTTLING_ERROR_CODES, error_code
from .destination import PutResult, StreamDestination
from .producer import KinesisProducer


class KinesisDestination(StreamDestination):
    """
    Kinesis-backed destination stream.

    Throttling on shard listing or watermark writes raises ThrottledError;
    any other service error raises DestinationError.
    """

    def __init__(
        self,
        stream_name: str,
        region: str = "eu-west-1",
        endpoint_url: Optional[str] = None,
        client=None,
        record_max_buffered_time_ms: int = 3_000,
        max_retries: int = 3,
        list_shards_page_size: Optional[int] = None,
        verify_stream: Optional[bool] = None,
    ) -> None:
        """
        Initialize Kinesis destination.

        Args:
            stream_name: Destination stream name
            region: AWS region of the stream
            endpoint_url: Kinesis endpoint URL (for localstack, etc.)
            client: Pre-built Kinesis client (overrides region/endpoint_url)
            record_max_buffered_time_ms: Producer batching window
            max_retries: Producer resends per record
            list_shards_page_size: MaxResults per list_shards call (None = service default)
            verify_stream: Check the stream exists at startup
                (default: on unless REPLAY_SKIP_STREAM_CHECK=true)

        Raises:
            DestinationError: If the client cannot be created or the stream is not accessible
        """
        self.stream_name = stream_name
        self.list_shards_page_size = list_shards_page_size

        if client is not None:
            self.kinesis_client = client
        else:
            try:
                self.kinesis_client = boto3.client(
                    "kinesis",
                    endpoint_url=endpoint_url,
                    region_name=region,
                )
            except BotoCoreError as e:
                raise DestinationError(f"Failed to create Kinesis client: {e}") from e

        if verify_stream is None:
            verify_stream = os.getenv("REPLAY_SKIP_STREAM_CHECK", "").lower() != "true"
        if verify_stream:
            self.verify()

        self.producer = KinesisProducer(
            self.kinesis_client,
            stream_name,
            record_max_buffered_time_ms=record_max_buffered_time_ms,
            max_retries=max_retries,
        )

    def verify(self) -> None:
        """
        Raises:
            DestinationError: If the stream does not exist or is not readable
        """
        try:
            self.kinesis_client.describe_stream_summary(StreamName=self.stream_name)
        except ClientError as e:
            code = error_code(e)
            raise DestinationError(
                f"Stream '{self.stream_name}' not accessible (code: {code})", code=code
            ) from e
        except BotoCoreError as e:
            raise DestinationError(f"Stream '{self.stream_name}' not accessible: {e}") from e

    def _raise_for(self, action: str, e: Exception) -> None:
        if isinstance(e, ClientError):
            code = error_code(e)
            if code in THROTTLING_ERROR_CODES:
                raise ThrottledError(f"{action} throttled (code: {code})", code=code) from e
            raise DestinationError(
                f"{action} failed on stream '{self.stream_name}' (code: {code})", code=code
            ) from e
        raise DestinationError(f"{action} failed on stream '{self.stream_name}': {e}") from e

    def submit(self, partition_key: str, data: bytes) -> "Future[PutResult]":
        return self.producer.add_user_record(partition_key, data)

    def list_partitions(self) -> List[PartitionDescriptor]:
        partitions: List[PartitionDescriptor] = []
        params = {"StreamName": self.stream_name}
        try:
            while True:
                if self.list_shards_page_size:
                    params["MaxResults"] = self.list_shards_page_size
                response = self.kinesis_client.list_shards(**params)
                for shard in response.get("Shards", []):
                    if "EndingSequenceNumber" in shard.get("SequenceNumberRange", {}):
                        # Closed by a reshard; its hash range now belongs to a child.
                        continue
                    partitions.append(
                        PartitionDescriptor(
                            shard_id=shard["ShardId"],
                            starting_hash_key=shard["HashKeyRange"]["StartingHashKey"],
                        )
                    )
                next_token = response.get("NextToken")
                if not next_token:
                    break
                params = {"NextToken": next_token}
        except (BotoCoreError, ClientError) as e:
            self._raise_for("list_shards", e)
        return partitions

    def put_explicit(self, data: bytes, partition_key: str, explicit_hash_key: str) -> str:
        try:
            response = self.kinesis_client.put_record(
                StreamName=self.stream_name,
                Data=data,
                PartitionKey=partition_key,
                ExplicitHashKey=explicit_hash_key,
            )
        except (BotoCoreError, ClientError) as e:
            self._raise_for("put_record", e)
        return response["ShardId"]

    def flush(self, timeout: Optional[float] = None) -> bool:
        return self.producer.flush_sync(timeout)

    def close(self) -> None:
        self.producer.destroy()
