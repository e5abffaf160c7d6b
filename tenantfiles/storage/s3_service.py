"""S3 compatible storage adapters (Garage, OxiCloud) built on boto3."""

from __future__ import annotations

import logging
from typing import Any, BinaryIO
from urllib.parse import urlencode

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from tenantfiles.core.exceptions import GarageObjectError, OxiCloudObjectError
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

MISSING_BUCKET_CODES = {"404", "NoSuchBucket", "NotFound"}


class S3CompatibleStorageService(ObjectStorageService[Any]):
    """Bucket and object operations against an S3 compatible endpoint.

    Clients use path-style addressing and SigV4 signatures, which is what
    self-hosted S3 servers expect.
    """

    vendor_errors = (ClientError, BotoCoreError)

    def _create_client(self, config: StorageConfig) -> Any:
        return boto3.client(
            "s3",
            endpoint_url=config.url,
            aws_access_key_id=config.username,
            aws_secret_access_key=config.password,
            region_name=config.region or DEFAULT_REGION,
            config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
        )

    def bucket_exists(self, config: StorageConfig, bucket: str) -> bool:
        validate_not_blank("Bucket name", bucket)
        client = self.get_connection(config)

        def call() -> bool:
            try:
                client.head_bucket(Bucket=bucket)
            except ClientError as exc:
                if exc.response.get("Error", {}).get("Code") in MISSING_BUCKET_CODES:
                    return False
                raise
            return True

        return self._execute("bucket_exists", call)

    def set_versioning_bucket(self, config: StorageConfig, bucket: str, enabled: bool) -> None:
        validate_not_blank("Bucket name", bucket)
        client = self.get_connection(config)
        self._execute(
            "set_versioning_bucket",
            lambda: client.put_bucket_versioning(
                Bucket=bucket,
                VersioningConfiguration={"Status": "Enabled" if enabled else "Suspended"},
            ),
        )

    def make_bucket(self, config: StorageConfig, bucket: str) -> None:
        """Create the bucket unless it already exists."""
        if self.bucket_exists(config, bucket):
            return
        client = self.get_connection(config)
        kwargs: dict[str, Any] = {"Bucket": bucket}
        if config.region and config.region != DEFAULT_REGION:
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": config.region}
        self._execute("make_bucket", lambda: client.create_bucket(**kwargs))
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
        """Store an object under ``<path>/<object_name>``, creating the bucket if needed.

        Args:
            config: Tenant connection settings
            bucket: Target bucket
            path: Optional key prefix
            object_name: Object name below the prefix
            data: Object content
            content_type: MIME type stored with the object
            tags: Object tags

        Returns:
            ObjectInfo with the key, etag and version id of the new object
        """
        validate_not_blank("Bucket name", bucket)
        validate_not_blank("Object name", object_name)
        validate_file(data)
        self.make_bucket(config, bucket)

        client = self.get_connection(config)
        key = self.object_key(path, object_name)
        kwargs: dict[str, Any] = {"Bucket": bucket, "Key": key, "Body": data}
        if content_type:
            kwargs["ContentType"] = content_type
        if tags:
            kwargs["Tagging"] = urlencode(tags)

        def call() -> dict[str, Any]:
            if hasattr(data, "seek"):
                data.seek(0)
            return client.put_object(**kwargs)

        response = self._execute("upload_file", call)
        log_json(logger, logging.INFO, "object_uploaded", backend=self.backend, bucket=bucket, key=key)
        return ObjectInfo(
            name=key,
            size=len(data) if isinstance(data, bytes) else 0,
            etag=(response.get("ETag") or "").strip('"') or None,
            version_id=response.get("VersionId"),
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
        kwargs: dict[str, Any] = {"Bucket": bucket, "Key": object_name}
        if version_id:
            kwargs["VersionId"] = version_id
        return self._execute("get_object", lambda: client.get_object(**kwargs)["Body"].read())

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
        expires_in = expires or self.settings.storage_presigned_url_expiry_seconds
        return self._execute(
            "get_presigned_object_url",
            lambda: client.generate_presigned_url(
                "get_object",
                Params={"Bucket": bucket, "Key": object_name},
                ExpiresIn=expires_in,
            ),
        )

    def delete_object(self, config: StorageConfig, bucket: str, object_name: str) -> None:
        validate_not_blank("Bucket name", bucket)
        validate_not_blank("Object name", object_name)
        client = self.get_connection(config)
        self._execute("delete_object", lambda: client.delete_object(Bucket=bucket, Key=object_name))
        log_json(logger, logging.INFO, "object_deleted", backend=self.backend, bucket=bucket, key=object_name)

    def delete_objects(self, config: StorageConfig, bucket: str, object_names: list[str]) -> None:
        """Delete several objects in one request.

        Raises:
            ObjectStorageError: If the server reports a failure for any object
        """
        validate_not_blank("Bucket name", bucket)
        if not object_names:
            raise ValueError("Object names must not be empty")
        client = self.get_connection(config)

        def call() -> None:
            response = client.delete_objects(
                Bucket=bucket,
                Delete={"Objects": [{"Key": name} for name in object_names], "Quiet": True},
            )
            errors = response.get("Errors") or []
            if errors:
                failed = ", ".join(f"{e.get('Key')} ({e.get('Message')})" for e in errors)
                raise self.error_type(f"delete_objects failed for {failed}")

        self._execute("delete_objects", call)

    def get_objects(self, config: StorageConfig, bucket: str, prefix: str = "") -> list[ObjectInfo]:
        validate_not_blank("Bucket name", bucket)
        client = self.get_connection(config)

        def call() -> list[ObjectInfo]:
            paginator = client.get_paginator("list_objects_v2")
            objects = []
            for page in paginator.paginate(Bucket=bucket, Prefix=prefix or ""):
                for item in page.get("Contents", []):
                    objects.append(
                        ObjectInfo(
                            name=item["Key"],
                            size=item.get("Size", 0),
                            etag=(item.get("ETag") or "").strip('"') or None,
                            last_modified=item.get("LastModified"),
                        )
                    )
            return objects

        return self._execute("get_objects", call)

    def get_object_tags(self, config: StorageConfig, bucket: str, object_name: str) -> dict[str, str]:
        validate_not_blank("Bucket name", bucket)
        validate_not_blank("Object name", object_name)
        client = self.get_connection(config)

        def call() -> dict[str, str]:
            response = client.get_object_tagging(Bucket=bucket, Key=object_name)
            return {tag["Key"]: tag["Value"] for tag in response.get("TagSet", [])}

        return self._execute("get_object_tags", call)

    def get_object_by_tags(
        self,
        config: StorageConfig,
        bucket: str,
        tags: dict[str, str],
        operator: TagFilterOperator = TagFilterOperator.AND,
    ) -> list[ObjectInfo]:
        """Return the objects of a bucket whose tags match ``tags``.

        Tags are fetched object by object, so this lists the whole bucket.
        """
        if not tags:
            raise ValueError("Tags must not be empty")
        matched = []
        for info in self.get_objects(config, bucket):
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
            lambda: client.put_object_tagging(
                Bucket=bucket,
                Key=object_name,
                Tagging={"TagSet": [{"Key": k, "Value": v} for k, v in tags.items()]},
            ),
        )

    def delete_bucket(self, config: StorageConfig, bucket: str) -> None:
        """Delete the bucket when it exists."""
        if not self.bucket_exists(config, bucket):
            return
        client = self.get_connection(config)
        self._execute("delete_bucket", lambda: client.delete_bucket(Bucket=bucket))
        log_json(logger, logging.INFO, "bucket_deleted", backend=self.backend, bucket=bucket)

    def get_buckets(self, config: StorageConfig) -> list[str]:
        client = self.get_connection(config)
        return self._execute(
            "get_buckets",
            lambda: [bucket["Name"] for bucket in client.list_buckets().get("Buckets", [])],
        )


class GarageStorageService(S3CompatibleStorageService):
    backend = "garage"
    error_type = GarageObjectError


class OxiCloudStorageService(S3CompatibleStorageService):
    backend = "oxicloud"
    error_type = OxiCloudObjectError


_garage_storage: GarageStorageService | None = None
_oxicloud_storage: OxiCloudStorageService | None = None


def get_garage_storage() -> GarageStorageService:
    global _garage_storage
    if _garage_storage is None:
        _garage_storage = GarageStorageService()
    return _garage_storage


def get_oxicloud_storage() -> OxiCloudStorageService:
    global _oxicloud_storage
    if _oxicloud_storage is None:
        _oxicloud_storage = OxiCloudStorageService()
    return _oxicloud_storage
