"""
Object Storage Sink
===================

Publishes to an S3-compatible bucket with boto3. All writes of a cycle are
dispatched concurrently (boto3 calls run in worker threads) and joined
before the cycle completes; each write reports its own UploadResult.
"""

import asyncio
from typing import Any, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..config.settings import StorageSettings
from ..processing.manifest import Manifest
from ..utils.logging import get_logger_for_component
from .base import (
    ItemBatch,
    PersistenceSink,
    UploadResult,
    WriteOutcome,
    item_key,
    manifest_key,
)

_MISSING_OBJECT_CODES = {"404", "NoSuchKey", "NotFound"}
_PRECONDITION_CODES = {"412", "PreconditionFailed"}


def get_s3_client(storage: StorageSettings):
    """Create an S3 client from storage settings."""
    return boto3.client(
        "s3",
        endpoint_url=storage.endpoint_url,
        region_name=storage.region,
        aws_access_key_id=storage.access_key_id,
        aws_secret_access_key=storage.secret_access_key,
    )


class ObjectStoreSink(PersistenceSink):
    """Writes ``items/<source>/<hash>.json`` and ``feeds/<source>.json`` objects."""

    name = "s3"

    def __init__(
        self,
        client: Any,
        bucket: str,
        key_prefix: str = "",
        items_root: str = "items",
        feeds_root: str = "feeds",
        cache_control: str = "max-age=3600",
        max_concurrent: int = 16,
    ):
        self.client = client
        self.bucket = bucket
        self.key_prefix = key_prefix.strip("/")
        self.items_root = items_root.strip("/")
        self.feeds_root = feeds_root.strip("/")
        self.cache_control = cache_control
        self.max_concurrent = max_concurrent
        self.logger = get_logger_for_component("storage.s3")

    @classmethod
    def from_settings(cls, storage: StorageSettings, items_root: str, feeds_root: str) -> "ObjectStoreSink":
        return cls(
            client=get_s3_client(storage),
            bucket=storage.bucket,
            key_prefix=storage.key_prefix,
            items_root=items_root,
            feeds_root=feeds_root,
            cache_control=storage.cache_control,
            max_concurrent=storage.max_concurrent_uploads,
        )

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}/{key}" if self.key_prefix else key

    def item_key(self, source_id: str, item_hash: str) -> str:
        return self._key(item_key(self.items_root, source_id, item_hash))

    def manifest_key(self, source_id: str) -> str:
        return self._key(manifest_key(self.feeds_root, source_id))

    def _exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_OBJECT_CODES:
                return False
            raise
        return True

    def _put(self, key: str, body: str, **conditions) -> None:
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=body.encode("utf-8"),
            ContentType="application/json",
            CacheControl=self.cache_control,
            **conditions,
        )

    def _put_if_absent(self, key: str, body: str) -> WriteOutcome:
        if self._exists(key):
            return WriteOutcome.SKIPPED
        # A concurrent writer may create the key after the head check
        try:
            self._put(key, body, IfNoneMatch="*")
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in _PRECONDITION_CODES:
                return WriteOutcome.SKIPPED
            raise
        return WriteOutcome.WRITTEN

    async def _guarded(
        self,
        semaphore: asyncio.Semaphore,
        key: str,
        operation,
        *args,
        is_manifest: bool = False,
        source_id: Optional[str] = None,
    ) -> UploadResult:
        """Run one blocking write in a thread; failures become results."""
        async with semaphore:
            try:
                outcome = await asyncio.to_thread(operation, key, *args)
            except (ClientError, BotoCoreError) as e:
                self.logger.error(
                    f"Upload failed for {key}: {e}", extra={"source_id": source_id}
                )
                return UploadResult(
                    key=key, outcome=WriteOutcome.FAILED, error=str(e), is_manifest=is_manifest
                )
            except Exception as e:
                self.logger.error(
                    f"Unexpected upload error for {key}: {e}",
                    extra={"source_id": source_id},
                    exc_info=True,
                )
                return UploadResult(
                    key=key, outcome=WriteOutcome.FAILED, error=str(e), is_manifest=is_manifest
                )
        return UploadResult(
            key=key, outcome=outcome or WriteOutcome.WRITTEN, is_manifest=is_manifest
        )

    async def persist(
        self, source_id: str, items: ItemBatch, manifest: Manifest
    ) -> List[UploadResult]:
        semaphore = asyncio.Semaphore(self.max_concurrent)

        tasks = [
            self._guarded(
                semaphore,
                self.item_key(source_id, item_hash),
                self._put_if_absent,
                item.to_json(),
                source_id=source_id,
            )
            for item_hash, item in items
        ]
        tasks.append(
            self._guarded(
                semaphore,
                self.manifest_key(source_id),
                self._put,
                manifest.to_json(),
                is_manifest=True,
                source_id=source_id,
            )
        )

        results = await asyncio.gather(*tasks)
        return list(results)
