"""Shared building blocks for the object storage adapters.

Every adapter keeps one client per tenant, validates its inputs before any
network call and runs remote calls through :func:`with_retry`.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from tenantfiles.core.config import Settings, get_settings
from tenantfiles.core.exceptions import ObjectStorageError
from tenantfiles.core.metrics import observe_storage_operation
from tenantfiles.core.structured_logging import log_json

logger = logging.getLogger(__name__)

T = TypeVar("T")
C = TypeVar("C")

DEFAULT_REGION = "us-east-1"


@dataclass(frozen=True)
class StorageConfig:
    """Connection settings of one tenant on one storage backend."""

    tenant: str
    url: str
    username: str
    password: str = field(repr=False)
    region: str = DEFAULT_REGION


class TagFilterOperator(str, Enum):
    AND = "AND"
    OR = "OR"


@dataclass
class ObjectInfo:
    name: str
    size: int = 0
    etag: str | None = None
    last_modified: datetime | None = None
    version_id: str | None = None
    is_dir: bool = False
    tags: dict[str, str] = field(default_factory=dict)


def validate_not_blank(name: str, value: Any) -> None:
    if value is None or not str(value).strip():
        raise ValueError(f"{name} must not be empty")


def validate_config(config: StorageConfig | None) -> None:
    """Check that a storage config carries a tenant, an url and credentials.

    Raises:
        ValueError: If the config or one of its required fields is missing
    """
    if config is None:
        raise ValueError("Storage config must not be null")
    validate_not_blank("Tenant", config.tenant)
    validate_not_blank("Url", config.url)
    validate_not_blank("Username", config.username)
    validate_not_blank("Password", config.password)


def validate_file(data: Any) -> None:
    if data is None:
        raise ValueError("File must not be null")


def matches_tags(
    object_tags: Mapping[str, str] | None,
    filter_tags: Mapping[str, str],
    operator: TagFilterOperator,
) -> bool:
    """Match the tags of one object against a tag filter.

    With ``AND`` every filter entry must be present on the object. With ``OR``
    it is enough that one filter value appears among the object's tag values.
    """
    object_tags = object_tags or {}
    if operator == TagFilterOperator.AND:
        return all(object_tags.get(key) == value for key, value in filter_tags.items())
    values = set(object_tags.values())
    return any(value in values for value in filter_tags.values())


class TenantClientCache(Generic[C]):
    """Process-wide map of tenant to storage client."""

    def __init__(self) -> None:
        self._clients: dict[str, C] = {}
        self._lock = threading.Lock()

    def get(self, config: StorageConfig, factory: Callable[[StorageConfig], C]) -> C:
        with self._lock:
            client = self._clients.get(config.tenant)
            if client is None:
                client = factory(config)
                self._clients[config.tenant] = client
            return client

    def replace(self, config: StorageConfig, factory: Callable[[StorageConfig], C]) -> C:
        client = factory(config)
        with self._lock:
            self._clients[config.tenant] = client
        return client

    def evict(self, tenant: str) -> None:
        with self._lock:
            self._clients.pop(tenant, None)

    def __contains__(self, tenant: object) -> bool:
        with self._lock:
            return tenant in self._clients

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)


def with_retry(
    operation: Callable[[], T],
    *,
    error_type: type[Exception],
    backend: str,
    name: str,
    max_retries: int = 3,
    delay: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run a storage call, retrying on ``error_type`` with linear backoff.

    Attempt ``n`` that fails is followed by a pause of ``delay * n`` seconds.
    Other exceptions propagate immediately.

    Raises:
        error_type: The last failure once ``max_retries`` attempts are used
    """
    attempt = 1
    while True:
        try:
            result = operation()
        except error_type as exc:
            if attempt >= max_retries:
                observe_storage_operation(backend=backend, operation=name, outcome="failure")
                log_json(
                    logger,
                    logging.ERROR,
                    "storage_retry_exhausted",
                    backend=backend,
                    operation=name,
                    attempts=attempt,
                    error=str(exc),
                )
                raise
            log_json(
                logger,
                logging.WARNING,
                "storage_retry",
                backend=backend,
                operation=name,
                attempt=attempt,
                error=str(exc),
            )
            sleep(delay * attempt)
            attempt += 1
        else:
            observe_storage_operation(backend=backend, operation=name, outcome="success")
            return result


class ObjectStorageService(Generic[C]):
    """Base class of the storage adapters.

    Subclasses set ``backend`` and ``error_type``, build SDK clients in
    ``_create_client`` and list the SDK exceptions to translate in
    ``vendor_errors``.
    """

    backend: str = "object-storage"
    error_type: type[ObjectStorageError] = ObjectStorageError
    vendor_errors: tuple[type[BaseException], ...] = ()

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        settings = settings or get_settings()
        self.settings = settings
        self.max_retries = max_retries if max_retries is not None else settings.storage_max_retries
        self.retry_delay = (
            retry_delay if retry_delay is not None else settings.storage_retry_delay_seconds
        )
        self._sleep = sleep
        self._clients: TenantClientCache[C] = TenantClientCache()

    def _create_client(self, config: StorageConfig) -> C:
        raise NotImplementedError

    def get_connection(self, config: StorageConfig) -> C:
        """Return the cached client of the config's tenant, creating it once."""
        validate_config(config)
        return self._clients.get(config, self._create_client)

    def update_connection(self, config: StorageConfig) -> C:
        """Replace the client of the config's tenant with a fresh one."""
        validate_config(config)
        client = self._clients.replace(config, self._create_client)
        log_json(logger, logging.INFO, "storage_connection_updated", backend=self.backend, tenant=config.tenant)
        return client

    def _execute(self, name: str, call: Callable[[], T]) -> T:
        def attempt() -> T:
            try:
                return call()
            except self.error_type:
                raise
            except self.vendor_errors as exc:
                raise self.error_type(f"{name} failed: {exc}") from exc

        return with_retry(
            attempt,
            error_type=self.error_type,
            backend=self.backend,
            name=name,
            max_retries=self.max_retries,
            delay=self.retry_delay,
            sleep=self._sleep,
        )

    @staticmethod
    def object_key(path: str | None, object_name: str) -> str:
        if path and path.strip("/"):
            return f"{path.strip('/')}/{object_name}"
        return object_name
