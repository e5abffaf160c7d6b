"""LakeFS storage adapter using the LakeFS REST API over httpx."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, BinaryIO

import httpx

from tenantfiles.core.exceptions import LakeFSObjectError
from tenantfiles.core.structured_logging import log_json
from tenantfiles.storage.base import (
    ObjectInfo,
    ObjectStorageService,
    StorageConfig,
    TagFilterOperator,
    matches_tags,
    validate_file,
    validate_not_blank,
)

logger = logging.getLogger(__name__)

API_PATH_PREFIX = "/api/v1"
DEFAULT_BRANCH = "main"
DEFAULT_PAGINATION_LIMIT = 100
DIFF_PAGINATION_LIMIT = 1000
STORAGE_NAMESPACE_PREFIXES = ("s3://", "local://")


def validate_repository_name(repository: str) -> None:
    validate_not_blank("Repository name", repository)
    if "/" in repository:
        raise ValueError("Repository name must not contain slashes")


def validate_reference(reference: str) -> None:
    validate_not_blank("Branch name or reference", reference)


def validate_object_params(repository: str, reference: str, object_name: str) -> None:
    validate_repository_name(repository)
    validate_reference(reference)
    validate_not_blank("Object name", object_name)


class LakeFSStorageService(ObjectStorageService[httpx.Client]):
    """Repositories, branches, objects, commits and auth entities on LakeFS.

    LakeFS has no object tags; user metadata plays that role and
    :meth:`get_object_by_metadata` filters on it.
    """

    backend = "lakefs"
    error_type = LakeFSObjectError
    vendor_errors = (httpx.HTTPError,)

    def __init__(self, *, transport: httpx.BaseTransport | None = None, **kwargs: Any):
        super().__init__(**kwargs)
        self._transport = transport

    def _create_client(self, config: StorageConfig) -> httpx.Client:
        return httpx.Client(
            base_url=config.url.rstrip("/") + API_PATH_PREFIX,
            auth=(config.username, config.password),
            timeout=httpx.Timeout(
                self.settings.lakefs_read_timeout_seconds,
                connect=self.settings.lakefs_connect_timeout_seconds,
            ),
            transport=self._transport,
        )

    def _request(
        self,
        config: StorageConfig,
        name: str,
        method: str,
        url: str,
        *,
        missing: Callable[[], Any] | None = None,
        **kwargs: Any,
    ) -> httpx.Response | Any:
        """Send one request through the retry loop.

        When ``missing`` is given a 404 answer returns ``missing()`` instead of
        raising.
        """
        client = self.get_connection(config)

        def call() -> httpx.Response | Any:
            response = client.request(method, url, **kwargs)
            if missing is not None and response.status_code == httpx.codes.NOT_FOUND:
                return missing()
            response.raise_for_status()
            return response

        return self._execute(name, call)

    def _json(self, config: StorageConfig, name: str, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        response = self._request(config, name, method, url, **kwargs)
        if not response.content:
            raise self.error_type(f"{name} returned an empty response body")
        return response.json()

    def _results(self, config: StorageConfig, name: str, url: str, **params: Any) -> list[dict[str, Any]]:
        body = self._json(config, name, "GET", url, params=params or None)
        return body.get("results") or []

    # setup

    def setup_lakefs(self, config: StorageConfig, username: str, access_key: str, secret_key: str) -> dict[str, Any]:
        """Initialize a fresh LakeFS installation with its first admin user."""
        validate_not_blank("Username", username)
        response = self._request(
            config,
            "setup_lakefs",
            "POST",
            "/setup_lakefs",
            json={
                "username": username,
                "key": {"access_key_id": access_key, "secret_access_key": secret_key},
            },
        )
        log_json(logger, logging.INFO, "lakefs_setup_completed", url=config.url)
        return response.json() if response.content else {}

    def health_check(self, config: StorageConfig) -> bool:
        self._request(config, "health_check", "GET", "/healthcheck")
        return True

    # repositories

    def repository_exists(self, config: StorageConfig, repository: str) -> bool:
        validate_repository_name(repository)
        result = self._request(
            config, "repository_exists", "GET", f"/repositories/{repository}", missing=lambda: False
        )
        return result is not False

    def create_repository(
        self,
        config: StorageConfig,
        repository: str,
        storage_namespace: str,
        default_branch: str = DEFAULT_BRANCH,
    ) -> None:
        """Create a repository unless it exists.

        Raises:
            ValueError: If the namespace is not an ``s3://`` or ``local://`` uri
        """
        validate_repository_name(repository)
        validate_not_blank("Storage namespace", storage_namespace)
        if not storage_namespace.startswith(STORAGE_NAMESPACE_PREFIXES):
            raise ValueError("Storage namespace must start with s3:// or local://")
        if self.repository_exists(config, repository):
            return
        self._request(
            config,
            "create_repository",
            "POST",
            "/repositories",
            json={
                "name": repository,
                "storage_namespace": storage_namespace,
                "default_branch": default_branch or DEFAULT_BRANCH,
            },
        )
        log_json(
            logger,
            logging.INFO,
            "lakefs_repository_created",
            repository=repository,
            storage_namespace=storage_namespace,
        )

    def delete_repository(self, config: StorageConfig, repository: str, force: bool = False) -> None:
        validate_repository_name(repository)
        params = {"force": "true"} if force else None
        self._request(config, "delete_repository", "DELETE", f"/repositories/{repository}", params=params)
        log_json(logger, logging.INFO, "lakefs_repository_deleted", repository=repository)

    def get_repositories(self, config: StorageConfig) -> list[str]:
        results = self._results(config, "get_repositories", "/repositories", amount=DEFAULT_PAGINATION_LIMIT)
        return [item["id"] for item in results]

    # branches

    def branch_exists(self, config: StorageConfig, repository: str, branch: str) -> bool:
        validate_repository_name(repository)
        validate_reference(branch)
        result = self._request(
            config,
            "branch_exists",
            "GET",
            f"/repositories/{repository}/branches/{branch}",
            missing=lambda: False,
        )
        return result is not False

    def create_branch(
        self,
        config: StorageConfig,
        repository: str,
        branch: str,
        source: str = DEFAULT_BRANCH,
    ) -> None:
        validate_repository_name(repository)
        validate_reference(branch)
        validate_reference(source)
        if self.branch_exists(config, repository, branch):
            return
        self._request(
            config,
            "create_branch",
            "POST",
            f"/repositories/{repository}/branches",
            json={"name": branch, "source": source},
        )
        log_json(logger, logging.INFO, "lakefs_branch_created", repository=repository, branch=branch, source=source)

    def delete_branch(self, config: StorageConfig, repository: str, branch: str) -> None:
        validate_repository_name(repository)
        validate_reference(branch)
        self._request(config, "delete_branch", "DELETE", f"/repositories/{repository}/branches/{branch}")
        log_json(logger, logging.INFO, "lakefs_branch_deleted", repository=repository, branch=branch)

    def get_branches(self, config: StorageConfig, repository: str) -> list[str]:
        validate_repository_name(repository)
        results = self._results(
            config, "get_branches", f"/repositories/{repository}/branches", amount=DEFAULT_PAGINATION_LIMIT
        )
        return [item["id"] for item in results]

    # objects

    def upload_file(
        self,
        config: StorageConfig,
        repository: str,
        branch: str,
        path: str | None,
        object_name: str,
        data: bytes | BinaryIO,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> ObjectInfo:
        """Upload an object to ``<path>/<object_name>`` on a branch.

        Metadata is attached with a second call once the content is stored.
        """
        validate_object_params(repository, branch, object_name)
        validate_file(data)
        payload = data if isinstance(data, bytes) else data.read()
        if not payload:
            raise ValueError("File must not be empty")

        key = self.object_key(path, object_name)
        response = self._request(
            config,
            "upload_file",
            "POST",
            f"/repositories/{repository}/branches/{branch}/objects",
            params={"path": key},
            files={"content": (object_name, payload, content_type or "application/octet-stream")},
        )
        if metadata:
            self.update_metadata(config, repository, branch, key, metadata)

        body = response.json() if response.content else {}
        log_json(logger, logging.INFO, "object_uploaded", backend=self.backend, repository=repository, key=key)
        return ObjectInfo(
            name=key,
            size=body.get("size_bytes", len(payload)),
            etag=body.get("checksum"),
            tags=dict(metadata or {}),
        )

    def get_object(self, config: StorageConfig, repository: str, reference: str, object_name: str) -> bytes:
        validate_object_params(repository, reference, object_name)
        response = self._request(
            config,
            "get_object",
            "GET",
            f"/repositories/{repository}/refs/{reference}/objects",
            params={"path": object_name},
        )
        return response.content

    def get_presigned_object_url(
        self,
        config: StorageConfig,
        repository: str,
        reference: str,
        object_name: str,
        expires: int | None = None,
    ) -> str:
        validate_object_params(repository, reference, object_name)
        body = self._json(
            config,
            "get_presigned_object_url",
            "GET",
            f"/repositories/{repository}/refs/{reference}/objects/stat",
            params={
                "path": object_name,
                "presign": "true",
                "expiry": expires or self.settings.storage_presigned_url_expiry_seconds,
            },
        )
        url = body.get("physical_address") or body.get("url")
        if not url:
            raise self.error_type(f"No presigned url returned for {object_name}")
        return url

    def delete_object(self, config: StorageConfig, repository: str, branch: str, object_name: str) -> None:
        validate_object_params(repository, branch, object_name)
        self._request(
            config,
            "delete_object",
            "DELETE",
            f"/repositories/{repository}/branches/{branch}/objects",
            params={"path": object_name},
        )
        log_json(logger, logging.INFO, "object_deleted", backend=self.backend, repository=repository, key=object_name)

    def delete_objects(self, config: StorageConfig, repository: str, branch: str, object_names: list[str]) -> None:
        validate_repository_name(repository)
        validate_reference(branch)
        if not object_names:
            raise ValueError("Object names must not be empty")
        self._request(
            config,
            "delete_objects",
            "POST",
            f"/repositories/{repository}/branches/{branch}/objects/delete",
            json={"paths": list(object_names)},
        )

    def get_objects(
        self,
        config: StorageConfig,
        repository: str,
        reference: str,
        prefix: str = "",
    ) -> list[ObjectInfo]:
        validate_repository_name(repository)
        validate_reference(reference)
        results = self._results(
            config,
            "get_objects",
            f"/repositories/{repository}/refs/{reference}/objects/ls",
            prefix=prefix or "",
            amount=DEFAULT_PAGINATION_LIMIT,
        )
        return [
            ObjectInfo(
                name=item["path"],
                size=item.get("size_bytes") or 0,
                etag=item.get("checksum"),
                last_modified=datetime.fromtimestamp(item["mtime"], UTC) if item.get("mtime") else None,
                is_dir=item.get("path_type") == "common_prefix",
                tags=dict(item.get("metadata") or {}),
            )
            for item in results
        ]

    def get_object_metadata(
        self,
        config: StorageConfig,
        repository: str,
        reference: str,
        object_name: str,
    ) -> dict[str, str]:
        validate_object_params(repository, reference, object_name)
        body = self._json(
            config,
            "get_object_metadata",
            "GET",
            f"/repositories/{repository}/refs/{reference}/objects/stat",
            params={"path": object_name, "user_metadata": "true"},
        )
        return dict(body.get("metadata") or {})

    def get_object_by_metadata(
        self,
        config: StorageConfig,
        repository: str,
        reference: str,
        metadata: dict[str, str],
        operator: TagFilterOperator = TagFilterOperator.AND,
    ) -> list[ObjectInfo]:
        """Return the objects whose user metadata matches ``metadata``.

        Lists the whole reference; objects without metadata never match.
        """
        if not metadata:
            raise ValueError("Metadata must not be empty")
        return [
            info
            for info in self.get_objects(config, repository, reference)
            if info.tags and matches_tags(info.tags, metadata, operator)
        ]

    def update_metadata(
        self,
        config: StorageConfig,
        repository: str,
        branch: str,
        object_name: str,
        metadata: dict[str, str],
    ) -> None:
        validate_object_params(repository, branch, object_name)
        if metadata is None:
            raise ValueError("Metadata must not be null")
        self._request(
            config,
            "update_metadata",
            "PUT",
            f"/repositories/{repository}/branches/{branch}/objects/stat/user_metadata",
            params={"path": object_name},
            json={"set": metadata},
        )

    # versioning

    def commit(
        self,
        config: StorageConfig,
        repository: str,
        branch: str,
        message: str,
        metadata: dict[str, str] | None = None,
    ) -> str:
        """Commit the staged changes of a branch.

        Returns:
            The commit id
        """
        validate_repository_name(repository)
        validate_reference(branch)
        validate_not_blank("Commit message", message)
        payload: dict[str, Any] = {"message": message}
        if metadata:
            payload["metadata"] = metadata
        body = self._json(
            config, "commit", "POST", f"/repositories/{repository}/branches/{branch}/commits", json=payload
        )
        commit_id = body.get("id")
        if not commit_id:
            raise self.error_type("Commit id not found in response")
        log_json(logger, logging.INFO, "lakefs_commit_created", repository=repository, branch=branch, commit_id=commit_id)
        return commit_id

    def merge(
        self,
        config: StorageConfig,
        repository: str,
        source: str,
        destination: str,
        message: str,
    ) -> str:
        """Merge ``source`` into ``destination``.

        Returns:
            The merge reference
        """
        validate_repository_name(repository)
        validate_reference(source)
        validate_reference(destination)
        validate_not_blank("Merge message", message)
        body = self._json(
            config,
            "merge",
            "POST",
            f"/repositories/{repository}/refs/{source}/merge/{destination}",
            json={"message": message},
        )
        reference = body.get("reference")
        if not reference:
            raise self.error_type("Merge reference not found in response")
        log_json(
            logger,
            logging.INFO,
            "lakefs_branches_merged",
            repository=repository,
            source=source,
            destination=destination,
            reference=reference,
        )
        return reference

    def get_commit_history(
        self,
        config: StorageConfig,
        repository: str,
        branch: str,
        limit: int = 0,
    ) -> list[dict[str, Any]]:
        validate_repository_name(repository)
        validate_reference(branch)
        params = {"amount": limit} if limit > 0 else {}
        return self._results(
            config, "get_commit_history", f"/repositories/{repository}/refs/{branch}/commits", **params
        )

    def get_diff(self, config: StorageConfig, repository: str, left: str, right: str) -> list[dict[str, Any]]:
        validate_repository_name(repository)
        validate_reference(left)
        validate_reference(right)
        return self._results(
            config,
            "get_diff",
            f"/repositories/{repository}/refs/{left}/diff/{right}",
            amount=DIFF_PAGINATION_LIMIT,
        )

    def revert(
        self,
        config: StorageConfig,
        repository: str,
        branch: str,
        reference: str,
        parent_number: int = 1,
    ) -> None:
        validate_repository_name(repository)
        validate_reference(branch)
        validate_not_blank("Commit id", reference)
        self._request(
            config,
            "revert",
            "POST",
            f"/repositories/{repository}/branches/{branch}/revert",
            json={"ref": reference, "parent_number": parent_number},
        )
        log_json(logger, logging.INFO, "lakefs_branch_reverted", repository=repository, branch=branch, reference=reference)

    # auth

    def _page(self, amount: int, after: str | None) -> dict[str, Any]:
        params: dict[str, Any] = {"amount": amount if amount > 0 else DEFAULT_PAGINATION_LIMIT}
        if after:
            params["after"] = after
        return params

    def user_exists(self, config: StorageConfig, user_id: str) -> bool:
        validate_not_blank("User id", user_id)
        result = self._request(config, "user_exists", "GET", f"/auth/users/{user_id}", missing=lambda: False)
        return result is not False

    def create_user(self, config: StorageConfig, user_id: str) -> None:
        """Create a user unless it exists; a conflict from a concurrent creation is ignored."""
        validate_not_blank("User id", user_id)
        if self.user_exists(config, user_id):
            return
        client = self.get_connection(config)

        def call() -> None:
            response = client.post("/auth/users", json={"id": user_id, "invite_user": True})
            if response.status_code == httpx.codes.CONFLICT:
                log_json(logger, logging.WARNING, "lakefs_user_exists", user_id=user_id)
                return
            response.raise_for_status()

        self._execute("create_user", call)

    def get_user(self, config: StorageConfig, user_id: str) -> dict[str, Any]:
        validate_not_blank("User id", user_id)
        return self._json(config, "get_user", "GET", f"/auth/users/{user_id}")

    def delete_user(self, config: StorageConfig, user_id: str) -> None:
        validate_not_blank("User id", user_id)
        self._request(config, "delete_user", "DELETE", f"/auth/users/{user_id}")

    def get_users(self, config: StorageConfig, amount: int = 0, after: str | None = None) -> list[dict[str, Any]]:
        return self._results(config, "get_users", "/auth/users", **self._page(amount, after))

    def create_group(self, config: StorageConfig, group_id: str) -> None:
        validate_not_blank("Group id", group_id)
        self._request(config, "create_group", "POST", "/auth/groups", json={"id": group_id})

    def delete_group(self, config: StorageConfig, group_id: str) -> None:
        validate_not_blank("Group id", group_id)
        self._request(config, "delete_group", "DELETE", f"/auth/groups/{group_id}")

    def get_groups(self, config: StorageConfig, amount: int = 0, after: str | None = None) -> list[dict[str, Any]]:
        return self._results(config, "get_groups", "/auth/groups", **self._page(amount, after))

    def add_group_member(self, config: StorageConfig, group_id: str, user_id: str) -> None:
        validate_not_blank("Group id", group_id)
        validate_not_blank("User id", user_id)
        self._request(config, "add_group_member", "PUT", f"/auth/groups/{group_id}/members/{user_id}")

    def remove_group_member(self, config: StorageConfig, group_id: str, user_id: str) -> None:
        validate_not_blank("Group id", group_id)
        validate_not_blank("User id", user_id)
        self._request(config, "remove_group_member", "DELETE", f"/auth/groups/{group_id}/members/{user_id}")

    def get_group_members(
        self, config: StorageConfig, group_id: str, amount: int = 0, after: str | None = None
    ) -> list[dict[str, Any]]:
        validate_not_blank("Group id", group_id)
        return self._results(
            config, "get_group_members", f"/auth/groups/{group_id}/members", **self._page(amount, after)
        )

    def create_policy(self, config: StorageConfig, policy_id: str, statement: list[dict[str, Any]]) -> None:
        validate_not_blank("Policy id", policy_id)
        if not statement:
            raise ValueError("Policy statement must not be empty")
        self._request(
            config, "create_policy", "POST", "/auth/policies", json={"id": policy_id, "statement": statement}
        )

    def get_policy(self, config: StorageConfig, policy_id: str) -> dict[str, Any]:
        validate_not_blank("Policy id", policy_id)
        return self._json(config, "get_policy", "GET", f"/auth/policies/{policy_id}")

    def delete_policy(self, config: StorageConfig, policy_id: str) -> None:
        validate_not_blank("Policy id", policy_id)
        self._request(config, "delete_policy", "DELETE", f"/auth/policies/{policy_id}")

    def get_policies(self, config: StorageConfig, amount: int = 0, after: str | None = None) -> list[dict[str, Any]]:
        return self._results(config, "get_policies", "/auth/policies", **self._page(amount, after))

    def attach_policy_to_group(self, config: StorageConfig, group_id: str, policy_id: str) -> None:
        validate_not_blank("Group id", group_id)
        validate_not_blank("Policy id", policy_id)
        self._request(
            config, "attach_policy_to_group", "PUT", f"/auth/groups/{group_id}/policies/{policy_id}"
        )

    def detach_policy_from_group(self, config: StorageConfig, group_id: str, policy_id: str) -> None:
        validate_not_blank("Group id", group_id)
        validate_not_blank("Policy id", policy_id)
        self._request(
            config, "detach_policy_from_group", "DELETE", f"/auth/groups/{group_id}/policies/{policy_id}"
        )

    def get_group_policies(
        self, config: StorageConfig, group_id: str, amount: int = 0, after: str | None = None
    ) -> list[dict[str, Any]]:
        validate_not_blank("Group id", group_id)
        return self._results(
            config, "get_group_policies", f"/auth/groups/{group_id}/policies", **self._page(amount, after)
        )


_lakefs_storage: LakeFSStorageService | None = None


def get_lakefs_storage() -> LakeFSStorageService:
    global _lakefs_storage
    if _lakefs_storage is None:
        _lakefs_storage = LakeFSStorageService()
    return _lakefs_storage
