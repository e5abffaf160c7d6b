"""Interceptor hooks invoked around tenant service operations.

Subclass ``ServiceHooks`` and override what you need, then pass an instance
to the service constructor. ``before_*``/``after_*`` methods that receive an
entity return the entity to continue with.
"""

from __future__ import annotations

from typing import Any


class ServiceHooks:
    """No-op hooks."""

    async def before_create(self, tenant: str, entity: Any) -> Any:
        return entity

    async def after_create(self, tenant: str, entity: Any) -> Any:
        return entity

    async def before_update(self, tenant: str, entity: Any) -> Any:
        return entity

    async def after_update(self, tenant: str, entity: Any) -> Any:
        return entity

    async def before_delete(self, tenant: str, entity: Any) -> None:
        return None

    async def after_delete(self, tenant: str, entity: Any) -> None:
        return None

    async def after_find_all(self, tenant: str, entities: list[Any]) -> list[Any]:
        return entities

    async def after_find_by_id(self, tenant: str, entity: Any | None) -> Any | None:
        return entity

    async def before_upload(self, tenant: str, entity: Any, data: bytes) -> Any:
        return entity

    async def after_upload(self, tenant: str, entity: Any, stored_name: str | None) -> Any:
        return entity
