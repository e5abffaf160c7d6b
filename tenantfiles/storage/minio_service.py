"""MinIO storage adapter built on the MinIO Python SDK."""

from __future__ import annotations

import io
import logging
from datetime import timedelta
from typing import BinaryIO
from urllib.parse import urlsplit

from minio import Minio
from minio.commonconfig import Tags
from minio.deleteobjects import DeleteObject
from minio.error import MinioException
from minio.versioningconfig import ENABLED, SUSPENDED, VersioningConfig

from tenantfiles.core.exceptions import MinIOObjectError
from tenantfiles.core.structured_logging import log_json
from tenantfiles.storage.base import (
    DEFAULT_REGION,
    ObjectInfo,
    ObjectStorageService,
    StorageConfig,
    TagFilterOperator,
    matches_tags,
    validate_file,
    validate_not_blank,
)

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _object_tags(tags: dict[str, str]) -> Tags:
    object_tags = Tags.new_object_tags()
    for key, value in tags.items():
        object_tags[key] = value
    return object_tags


class MinIOStorageService(ObjectStorageService[Minio]):
    """Bucket and object operations against a MinIO server."""

    backend = "minio"
    error_type = MinIOObjectError
    vendor_errors = (MinioException, ValueError, OSError)

    def _create_client(self, config: StorageConfig) -> Minio:
        parts = urlsplit(config.url)
        endpoint = parts.netloc or parts.path
        return Minio(
            endpoint=endpoint,
            access_key=config.username,
            secret_key=config.password,
            secure=parts.scheme == "https",
            region=config.region or DEFAULT_REGION,
        )

    def bucket_exists(self, config: StorageConfig, bucket: str) -> bool:
        validate_not_blank("Bucket name", bucket)
        client = self.get_connection(config)
        return self._execute("bucket_exists", lambda: client.bucket_exists(bucket_name=bucket))

    def set_versioning_bucket(self, config: StorageConfig, bucket: str, enabled: bool) -> None:
        validate_not_blank("Bucket name", bucket)
        client = self.get_connection(config)
        versioning = VersioningConfig(ENABLED if enabled else SUSPENDED)
        self._execute(
            "set_versioning_bucket",
            lambda: client.set_bucket_versioning(bucket_name=bucket, config=versioning),
        )

    def make_bucket(self, config: StorageConfig, bucket: str) -> None:
        """Create the bucket unless it already exists."""
        if self.bucket_exists(config, bucket):
            return
        client = self.get_connection(config)
        self._execute("make_bucket", lambda: client.make_bucket(bucket_name=bucket))
        log_json(logger, logging.INFO, "bucket_created", backend=self.backend, bucket=bucket)

    def upload_file(
        self,
        config: StorageConfig,
        bucket: str,
        path: str | None,
        object_name: str,
        data: bytes | BinaryIO,
        content_type: str | None = None,
        tags: dict[str, str] | None = None,
    ) -> ObjectInfo:
        """Store an object under ``<path>/<object_name>``, creating the bucket if needed."""
        validate_not_blank("Bucket name", bucket)
        validate_not_blank("Object name", object_name)
        validate_file(data)
        self.make_bucket(config, bucket)

        client = self.get_connection(config)
        key = self.object_key(path, object_name)
        payload = data if isinstance(data, bytes) else data.read()

        result = self._execute(
            "upload_file",
            lambda: client.put_object(
                bucket_name=bucket,
                object_name=key,
                data=io.BytesIO(payload),
                length=len(payload),
                content_type=content_type or DEFAULT_CONTENT_TYPE,
                tags=_object_tags(tags) if tags else None,
            ),
        )
        log_json(logger, logging.INFO, "object_uploaded", backend=self.backend, bucket=bucket, key=key)
        return ObjectInfo(
            name=key,
            size=len(payload),
            etag=getattr(result, "etag", None),
            version_id=getattr(result, "version_id", None),
            tags=dict(tags or {}),
        )

    def get_object(
        self,
        config: StorageConfig,
        bucket: str,
        object_name: str,
        version_id: str | None = None,
    ) -> bytes:
        validate_not_blank("Bucket name", bucket)
        validate_not_blank("Object name", object_name)
        client = self.get_connection(config)

        def call() -> bytes:
            response = client.get_object(bucket_name=bucket, object_name=object_name, version_id=version_id)
            try:
                return response.read()
            finally:
                response.close()
                response.release_conn()

        return self._execute("get_object", call)

    def get_presigned_object_url(
        self,
        config: StorageConfig,
        bucket: str,
        object_name: str,
        expires: int | None = None,
    ) -> str:
        validate_not_blank("Bucket name", bucket)
        validate_not_blank("Object name", object_name)
        client = self.get_connection(config)
        expiry = timedelta(seconds=expires or self.settings.storage_presigned_url_expiry_seconds)
        return self._execute(
            "get_presigned_object_url",
            lambda: client.presigned_get_object(bucket_name=bucket, object_name=object_name, expires=expiry),
        )

    def delete_object(self, config: StorageConfig, bucket: str, object_name: str) -> None:
        validate_not_blank("Bucket name", bucket)
        validate_not_blank("Object name", object_name)
        client = self.get_connection(config)
        self._execute(
            "delete_object",
            lambda: client.remove_object(bucket_name=bucket, object_name=object_name),
        )
        log_json(logger, logging.INFO, "object_deleted", backend=self.backend, bucket=bucket, key=object_name)

    def delete_objects(self, config: StorageConfig, bucket: str, object_names: list[str]) -> None:
        """Delete several objects; any per-object error reported by the server raises."""
        validate_not_blank("Bucket name", bucket)
        if not object_names:
            raise ValueError("Object names must not be empty")
        client = self.get_connection(config)

        def call() -> None:
            # remove_objects is lazy; errors only show up while iterating
            errors = list(
                client.remove_objects(
                    bucket_name=bucket,
                    delete_object_list=[DeleteObject(name) for name in object_names],
                )
            )
            if errors:
                failed = ", ".join(f"{e.name} ({e.message})" for e in errors)
                raise self.error_type(f"delete_objects failed for {failed}")

        self._execute("delete_objects", call)

    def get_objects(self, config: StorageConfig, bucket: str, prefix: str = "") -> list[ObjectInfo]:
        validate_not_blank("Bucket name", bucket)
        client = self.get_connection(config)
        return self._execute(
            "get_objects",
            lambda: [
                ObjectInfo(
                    name=item.object_name,
                    size=item.size or 0,
                    etag=item.etag,
                    last_modified=item.last_modified,
                    version_id=item.version_id,
                    is_dir=item.is_dir,
                )
                for item in client.list_objects(bucket_name=bucket, prefix=prefix or None, recursive=True)
            ],
        )

    def get_object_tags(self, config: StorageConfig, bucket: str, object_name: str) -> dict[str, str]:
        validate_not_blank("Bucket name", bucket)
        validate_not_blank("Object name", object_name)
        client = self.get_connection(config)
        return self._execute(
            "get_object_tags",
            lambda: dict(client.get_object_tags(bucket_name=bucket, object_name=object_name) or {}),
        )

    def get_object_by_tags(
        self,
        config: StorageConfig,
        bucket: str,
        tags: dict[str, str],
        operator: TagFilterOperator = TagFilterOperator.AND,
    ) -> list[ObjectInfo]:
        """Return the objects whose tags match; fetches tags object by object."""
        if not tags:
            raise ValueError("Tags must not be empty")
        matched = []
        for info in self.get_objects(config, bucket):
            if info.is_dir:
                continue
            info.tags = self.get_object_tags(config, bucket, info.name)
            if matches_tags(info.tags, tags, operator):
                matched.append(info)
        return matched

    def update_tags(self, config: StorageConfig, bucket: str, object_name: str, tags: dict[str, str]) -> None:
        validate_not_blank("Bucket name", bucket)
        validate_not_blank("Object name", object_name)
        if tags is None:
            raise ValueError("Tags must not be null")
        client = self.get_connection(config)
        self._execute(
            "update_tags",
            lambda: client.set_object_tags(bucket_name=bucket, object_name=object_name, tags=_object_tags(tags)),
        )

    def delete_bucket(self, config: StorageConfig, bucket: str) -> None:
        if not self.bucket_exists(config, bucket):
            return
        client = self.get_connection(config)
        self._execute("delete_bucket", lambda: client.remove_bucket(bucket_name=bucket))
        log_json(logger, logging.INFO, "bucket_deleted", backend=self.backend, bucket=bucket)

    def get_buckets(self, config: StorageConfig) -> list[str]:
        client = self.get_connection(config)
        return self._execute("get_buckets", lambda: [bucket.name for bucket in client.list_buckets()])


_minio_storage: MinIOStorageService | None = None


def get_minio_storage() -> MinIOStorageService:
    global _minio_storage
    if _minio_storage is None:
        _minio_storage = MinIOStorageService()
    return _minio_storage
