"""Unit tests for the LakeFS adapter against a mocked REST API."""

import json

import httpx
import pytest

from tenantfiles.core.exceptions import LakeFSObjectError
from tenantfiles.storage.base import StorageConfig, TagFilterOperator
from tenantfiles.storage.lakefs_service import LakeFSStorageService


class FakeLakeFS:
    """Route table standing in for the LakeFS API; records every request."""

    def __init__(self):
        self.routes: dict[tuple[str, str], tuple[int, dict]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, status_code: int = 200, **kwargs) -> None:
        self.routes[(method, "/api/v1" + path)] = (status_code, kwargs)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "not found"})
        status_code, kwargs = route
        return httpx.Response(status_code, **kwargs)

    def last(self, method: str, path: str) -> httpx.Request:
        for request in reversed(self.requests):
            if request.method == method and request.url.path == "/api/v1" + path:
                return request
        raise AssertionError(f"no {method} {path} request")


@pytest.fixture
def config():
    return StorageConfig(tenant="acme", url="http://lakefs:8000/", username="AKIA", password="secret")


@pytest.fixture
def lakefs_api():
    return FakeLakeFS()


@pytest.fixture
def lakefs(lakefs_api):
    return LakeFSStorageService(
        transport=httpx.MockTransport(lakefs_api),
        max_retries=2,
        retry_delay=0,
        sleep=lambda seconds: None,
    )


class TestRepositories:
    def test_create_repository(self, lakefs, lakefs_api, config):
        lakefs_api.add("POST", "/repositories", 201, json={"id": "data"})

        lakefs.create_repository(config, "data", "s3://bucket/data")

        request = lakefs_api.last("POST", "/repositories")
        assert json.loads(request.content) == {
            "name": "data",
            "storage_namespace": "s3://bucket/data",
            "default_branch": "main",
        }
        assert request.headers["authorization"].startswith("Basic ")

    def test_create_repository_skips_existing(self, lakefs, lakefs_api, config):
        lakefs_api.add("GET", "/repositories/data", json={"id": "data"})

        lakefs.create_repository(config, "data", "local://data")

        assert [r.method for r in lakefs_api.requests] == ["GET"]

    def test_namespace_must_have_known_scheme(self, lakefs, config):
        with pytest.raises(ValueError, match="s3:// or local://"):
            lakefs.create_repository(config, "data", "gs://bucket")

    def test_repository_name_without_slashes(self, lakefs, config):
        with pytest.raises(ValueError, match="slashes"):
            lakefs.repository_exists(config, "a/b")

    def test_get_repositories(self, lakefs, lakefs_api, config):
        lakefs_api.add("GET", "/repositories", json={"results": [{"id": "data"}, {"id": "logs"}]})

        assert lakefs.get_repositories(config) == ["data", "logs"]

    def test_delete_repository_with_force(self, lakefs, lakefs_api, config):
        lakefs_api.add("DELETE", "/repositories/data", 204)

        lakefs.delete_repository(config, "data", force=True)

        assert lakefs_api.last("DELETE", "/repositories/data").url.params["force"] == "true"


class TestBranches:
    def test_missing_branch(self, lakefs, config):
        assert lakefs.branch_exists(config, "data", "feature") is False

    def test_create_branch(self, lakefs, lakefs_api, config):
        lakefs_api.add("POST", "/repositories/data/branches", 201, text="feature")

        lakefs.create_branch(config, "data", "feature")

        body = json.loads(lakefs_api.last("POST", "/repositories/data/branches").content)
        assert body == {"name": "feature", "source": "main"}

    def test_get_branches(self, lakefs, lakefs_api, config):
        lakefs_api.add("GET", "/repositories/data/branches", json={"results": [{"id": "main"}]})

        assert lakefs.get_branches(config, "data") == ["main"]


class TestObjects:
    def test_upload_file_with_metadata(self, lakefs, lakefs_api, config):
        lakefs_api.add(
            "POST",
            "/repositories/data/branches/main/objects",
            201,
            json={"path": "docs/a.txt", "size_bytes": 5, "checksum": "c1"},
        )
        lakefs_api.add("PUT", "/repositories/data/branches/main/objects/stat/user_metadata", 201)

        info = lakefs.upload_file(
            config, "data", "main", "docs", "a.txt", b"Hello", metadata={"owner": "ana"}
        )

        upload = lakefs_api.last("POST", "/repositories/data/branches/main/objects")
        assert upload.url.params["path"] == "docs/a.txt"
        assert b"Hello" in upload.content
        metadata = lakefs_api.last("PUT", "/repositories/data/branches/main/objects/stat/user_metadata")
        assert json.loads(metadata.content) == {"set": {"owner": "ana"}}
        assert info.name == "docs/a.txt"
        assert info.size == 5
        assert info.etag == "c1"

    def test_upload_rejects_empty_content(self, lakefs, config):
        with pytest.raises(ValueError, match="File must not be empty"):
            lakefs.upload_file(config, "data", "main", None, "a.txt", b"")

    def test_get_object(self, lakefs, lakefs_api, config):
        lakefs_api.add("GET", "/repositories/data/refs/main/objects", content=b"Hello")

        assert lakefs.get_object(config, "data", "main", "a.txt") == b"Hello"

    def test_presigned_url(self, lakefs, lakefs_api, config):
        lakefs_api.add(
            "GET",
            "/repositories/data/refs/main/objects/stat",
            json={"physical_address": "https://s3/bucket/a.txt?sig"},
        )

        url = lakefs.get_presigned_object_url(config, "data", "main", "a.txt", expires=30)

        assert url == "https://s3/bucket/a.txt?sig"
        params = lakefs_api.last("GET", "/repositories/data/refs/main/objects/stat").url.params
        assert params["presign"] == "true"
        assert params["expiry"] == "30"

    def test_delete_objects(self, lakefs, lakefs_api, config):
        lakefs_api.add("POST", "/repositories/data/branches/main/objects/delete", 200)

        lakefs.delete_objects(config, "data", "main", ["a.txt", "b.txt"])

        request = lakefs_api.last("POST", "/repositories/data/branches/main/objects/delete")
        assert json.loads(request.content) == {"paths": ["a.txt", "b.txt"]}

    def test_get_objects_and_metadata_filter(self, lakefs, lakefs_api, config):
        lakefs_api.add(
            "GET",
            "/repositories/data/refs/main/objects/ls",
            json={
                "results": [
                    {"path": "docs/", "path_type": "common_prefix"},
                    {
                        "path": "docs/a.txt",
                        "path_type": "object",
                        "size_bytes": 5,
                        "mtime": 1700000000,
                        "metadata": {"owner": "ana"},
                    },
                    {"path": "docs/b.txt", "path_type": "object", "size_bytes": 3},
                ]
            },
        )

        objects = lakefs.get_objects(config, "data", "main")
        matched = lakefs.get_object_by_metadata(
            config, "data", "main", {"owner": "ana"}, TagFilterOperator.AND
        )

        assert [o.is_dir for o in objects] == [True, False, False]
        assert objects[1].last_modified.year == 2023
        assert [o.name for o in matched] == ["docs/a.txt"]

    def test_metadata_filter_is_repeatable(self, lakefs, lakefs_api, config):
        lakefs_api.add(
            "GET",
            "/repositories/data/refs/main/objects/ls",
            json={
                "results": [
                    {"path": "a.txt", "path_type": "object", "metadata": {"owner": "ana", "stage": "final"}},
                    {"path": "b.txt", "path_type": "object", "metadata": {"owner": "ana"}},
                ]
            },
        )
        wanted = {"owner": "ana", "stage": "final"}

        first = lakefs.get_object_by_metadata(config, "data", "main", wanted, TagFilterOperator.AND)
        second = lakefs.get_object_by_metadata(config, "data", "main", wanted, TagFilterOperator.AND)

        assert [o.name for o in first] == [o.name for o in second] == ["a.txt"]
        assert wanted == {"owner": "ana", "stage": "final"}

    def test_get_object_metadata(self, lakefs, lakefs_api, config):
        lakefs_api.add(
            "GET", "/repositories/data/refs/main/objects/stat", json={"metadata": {"owner": "ana"}}
        )

        assert lakefs.get_object_metadata(config, "data", "main", "a.txt") == {"owner": "ana"}


class TestVersioning:
    def test_commit_returns_id(self, lakefs, lakefs_api, config):
        lakefs_api.add("POST", "/repositories/data/branches/main/commits", 201, json={"id": "c0ffee"})

        assert lakefs.commit(config, "data", "main", "Add docs") == "c0ffee"

    def test_commit_without_id(self, lakefs, lakefs_api, config):
        lakefs_api.add("POST", "/repositories/data/branches/main/commits", 201, json={})

        with pytest.raises(LakeFSObjectError, match="Commit id not found"):
            lakefs.commit(config, "data", "main", "Add docs")

    def test_merge_returns_reference(self, lakefs, lakefs_api, config):
        lakefs_api.add("POST", "/repositories/data/refs/feature/merge/main", json={"reference": "abc"})

        assert lakefs.merge(config, "data", "feature", "main", "Merge feature") == "abc"

    def test_get_diff_uses_large_page(self, lakefs, lakefs_api, config):
        lakefs_api.add(
            "GET", "/repositories/data/refs/main/diff/feature", json={"results": [{"path": "a.txt"}]}
        )

        assert lakefs.get_diff(config, "data", "main", "feature") == [{"path": "a.txt"}]
        request = lakefs_api.last("GET", "/repositories/data/refs/main/diff/feature")
        assert request.url.params["amount"] == "1000"

    def test_revert(self, lakefs, lakefs_api, config):
        lakefs_api.add("POST", "/repositories/data/branches/main/revert", 204)

        lakefs.revert(config, "data", "main", "c0ffee")

        body = json.loads(lakefs_api.last("POST", "/repositories/data/branches/main/revert").content)
        assert body == {"ref": "c0ffee", "parent_number": 1}


class TestAuth:
    def test_create_user_ignores_conflict(self, lakefs, lakefs_api, config):
        lakefs_api.add("POST", "/auth/users", 409, json={"message": "exists"})

        lakefs.create_user(config, "ana")

        assert json.loads(lakefs_api.last("POST", "/auth/users").content) == {
            "id": "ana",
            "invite_user": True,
        }

    def test_group_membership_and_policies(self, lakefs, lakefs_api, config):
        lakefs_api.add("PUT", "/auth/groups/devs/members/ana", 201)
        lakefs_api.add("PUT", "/auth/groups/devs/policies/read", 201)
        lakefs_api.add("GET", "/auth/groups/devs/policies", json={"results": [{"id": "read"}]})

        lakefs.add_group_member(config, "devs", "ana")
        lakefs.attach_policy_to_group(config, "devs", "read")

        assert lakefs.get_group_policies(config, "devs") == [{"id": "read"}]
        params = lakefs_api.last("GET", "/auth/groups/devs/policies").url.params
        assert params["amount"] == "100"

    def test_create_policy_requires_statement(self, lakefs, config):
        with pytest.raises(ValueError):
            lakefs.create_policy(config, "read", [])


def test_setup_and_health_check(lakefs, lakefs_api, config):
    lakefs_api.add("POST", "/setup_lakefs", json={"access_key_id": "AKIA"})
    lakefs_api.add("GET", "/healthcheck", 204)

    assert lakefs.setup_lakefs(config, "admin", "AKIA", "secret") == {"access_key_id": "AKIA"}
    assert lakefs.health_check(config) is True


def test_server_errors_are_retried_and_wrapped(lakefs, lakefs_api, config):
    lakefs_api.add("GET", "/repositories", 500, json={"message": "boom"})

    with pytest.raises(LakeFSObjectError, match="get_repositories failed"):
        lakefs.get_repositories(config)

    assert len(lakefs_api.requests) == 2
