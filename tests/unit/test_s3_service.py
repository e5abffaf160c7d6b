"""Unit tests for the Garage and OxiCloud adapters with a mocked boto3 client."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from tenantfiles.core.exceptions import GarageObjectError, OxiCloudObjectError
from tenantfiles.storage.base import StorageConfig, TagFilterOperator
from tenantfiles.storage.s3_service import GarageStorageService, OxiCloudStorageService


def client_error(code: str, operation: str = "HeadBucket") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def config():
    return StorageConfig(tenant="acme", url="http://garage:3900", username="key", password="secret")


@pytest.fixture
def s3_client():
    return MagicMock()


@pytest.fixture
def garage(s3_client):
    service = GarageStorageService(max_retries=2, retry_delay=0, sleep=lambda seconds: None)
    service._create_client = lambda config: s3_client
    return service


class TestBuckets:
    def test_bucket_exists(self, garage, s3_client, config):
        assert garage.bucket_exists(config, "docs") is True
        s3_client.head_bucket.assert_called_once_with(Bucket="docs")

    def test_missing_bucket(self, garage, s3_client, config):
        s3_client.head_bucket.side_effect = client_error("404")

        assert garage.bucket_exists(config, "docs") is False

    def test_make_bucket_skips_existing(self, garage, s3_client, config):
        garage.make_bucket(config, "docs")

        s3_client.create_bucket.assert_not_called()

    def test_make_bucket_sets_location_outside_default_region(self, garage, s3_client):
        s3_client.head_bucket.side_effect = client_error("NoSuchBucket")
        config = StorageConfig(
            tenant="acme", url="http://garage:3900", username="key", password="secret", region="garage"
        )

        garage.make_bucket(config, "docs")

        s3_client.create_bucket.assert_called_once_with(
            Bucket="docs", CreateBucketConfiguration={"LocationConstraint": "garage"}
        )

    def test_set_versioning(self, garage, s3_client, config):
        garage.set_versioning_bucket(config, "docs", enabled=False)

        s3_client.put_bucket_versioning.assert_called_once_with(
            Bucket="docs", VersioningConfiguration={"Status": "Suspended"}
        )

    def test_delete_bucket_only_when_present(self, garage, s3_client, config):
        s3_client.head_bucket.side_effect = client_error("404")

        garage.delete_bucket(config, "docs")

        s3_client.delete_bucket.assert_not_called()

    def test_get_buckets(self, garage, s3_client, config):
        s3_client.list_buckets.return_value = {"Buckets": [{"Name": "a"}, {"Name": "b"}]}

        assert garage.get_buckets(config) == ["a", "b"]

    def test_blank_bucket_name(self, garage, config):
        with pytest.raises(ValueError, match="Bucket name must not be empty"):
            garage.bucket_exists(config, " ")


class TestObjects:
    def test_upload_file(self, garage, s3_client, config):
        s3_client.put_object.return_value = {"ETag": '"abc123"', "VersionId": "v1"}

        info = garage.upload_file(
            config,
            "docs",
            "contracts/2024",
            "lease.pdf",
            b"%PDF",
            content_type="application/pdf",
            tags={"project": "alpha"},
        )

        s3_client.put_object.assert_called_once_with(
            Bucket="docs",
            Key="contracts/2024/lease.pdf",
            Body=b"%PDF",
            ContentType="application/pdf",
            Tagging="project=alpha",
        )
        assert info.name == "contracts/2024/lease.pdf"
        assert info.etag == "abc123"
        assert info.version_id == "v1"
        assert info.size == 4

    def test_upload_requires_data(self, garage, config):
        with pytest.raises(ValueError, match="File must not be null"):
            garage.upload_file(config, "docs", None, "lease.pdf", None)

    def test_get_object_with_version(self, garage, s3_client, config):
        s3_client.get_object.return_value = {"Body": MagicMock(read=MagicMock(return_value=b"Hello"))}

        assert garage.get_object(config, "docs", "a.txt", version_id="v2") == b"Hello"
        s3_client.get_object.assert_called_once_with(Bucket="docs", Key="a.txt", VersionId="v2")

    def test_presigned_url_uses_configured_expiry(self, garage, s3_client, config):
        s3_client.generate_presigned_url.return_value = "http://garage/docs/a.txt?sig"

        url = garage.get_presigned_object_url(config, "docs", "a.txt")

        assert url == "http://garage/docs/a.txt?sig"
        s3_client.generate_presigned_url.assert_called_once_with(
            "get_object",
            Params={"Bucket": "docs", "Key": "a.txt"},
            ExpiresIn=garage.settings.storage_presigned_url_expiry_seconds,
        )

    def test_delete_objects_reports_failures(self, garage, s3_client, config):
        s3_client.delete_objects.return_value = {
            "Errors": [{"Key": "b.txt", "Message": "AccessDenied"}]
        }

        with pytest.raises(GarageObjectError, match="b.txt"):
            garage.delete_objects(config, "docs", ["a.txt", "b.txt"])

        assert s3_client.delete_objects.call_count == 2

    def test_delete_objects_requires_names(self, garage, config):
        with pytest.raises(ValueError):
            garage.delete_objects(config, "docs", [])

    def test_get_object_by_tags(self, garage, s3_client, config):
        s3_client.get_paginator.return_value.paginate.return_value = [
            {"Contents": [{"Key": "a.txt", "Size": 1}, {"Key": "b.txt", "Size": 2}]}
        ]
        tag_sets = {
            "a.txt": [{"Key": "project", "Value": "alpha"}],
            "b.txt": [{"Key": "project", "Value": "beta"}],
        }
        s3_client.get_object_tagging.side_effect = lambda Bucket, Key: {"TagSet": tag_sets[Key]}

        matched = garage.get_object_by_tags(
            config, "docs", {"project": "alpha"}, TagFilterOperator.AND
        )

        assert [info.name for info in matched] == ["a.txt"]
        assert matched[0].tags == {"project": "alpha"}

    def test_get_object_by_tags_is_repeatable(self, garage, s3_client, config):
        s3_client.get_paginator.return_value.paginate.return_value = [
            {"Contents": [{"Key": "a.txt", "Size": 1}, {"Key": "b.txt", "Size": 2}]}
        ]
        tag_sets = {
            "a.txt": [{"Key": "project", "Value": "alpha"}, {"Key": "stage", "Value": "final"}],
            "b.txt": [{"Key": "project", "Value": "alpha"}],
        }
        s3_client.get_object_tagging.side_effect = lambda Bucket, Key: {"TagSet": tag_sets[Key]}
        wanted = {"project": "alpha", "stage": "final"}

        first = garage.get_object_by_tags(config, "docs", wanted, TagFilterOperator.AND)
        second = garage.get_object_by_tags(config, "docs", wanted, TagFilterOperator.AND)

        assert [info.name for info in first] == [info.name for info in second] == ["a.txt"]
        assert first[0] is not second[0]
        assert second[0].tags == {"project": "alpha", "stage": "final"}
        assert wanted == {"project": "alpha", "stage": "final"}

    def test_update_tags(self, garage, s3_client, config):
        garage.update_tags(config, "docs", "a.txt", {"stage": "final"})

        s3_client.put_object_tagging.assert_called_once_with(
            Bucket="docs",
            Key="a.txt",
            Tagging={"TagSet": [{"Key": "stage", "Value": "final"}]},
        )

    def test_vendor_error_is_wrapped_after_retries(self, garage, s3_client, config):
        s3_client.list_buckets.side_effect = client_error("InternalError", "ListBuckets")

        with pytest.raises(GarageObjectError, match="get_buckets failed"):
            garage.get_buckets(config)

        assert s3_client.list_buckets.call_count == 2


def test_oxicloud_uses_its_own_error_type(config):
    client = MagicMock()
    client.list_buckets.side_effect = client_error("InternalError", "ListBuckets")
    service = OxiCloudStorageService(max_retries=1, retry_delay=0)
    service._create_client = lambda cfg: client

    with pytest.raises(OxiCloudObjectError):
        service.get_buckets(config)
