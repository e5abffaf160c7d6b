"""Tenant-aware CRUD service shared by all entity services."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tenantfiles.core.config import Settings, get_settings
from tenantfiles.core.criteria import QueryCriteria, build_criteria_clause, parse_criteria
from tenantfiles.core.exceptions import (
    BadArgumentError,
    CreateConstraintsViolationError,
    EmptyListError,
    NullIdentifierError,
    ObjectNotFoundError,
    TenantNotAllowedError,
    UpdateConstraintsViolationError,
)
from tenantfiles.core.structured_logging import log_json
from tenantfiles.models.mixins import (
    FILE_ATTRIBUTES,
    CancelableMixin,
    CodeMixin,
    FileMixin,
    ImageMixin,
    TenantMixin,
)
from tenantfiles.services.hooks import ServiceHooks
from tenantfiles.services.next_code_service import CodeGenerator, NextCodeService

logger = logging.getLogger(__name__)

# Columns an update never copies from the incoming object
_PROTECTED_COLUMNS = frozenset({"id", "tenant", "created_at", "updated_at"})


class CrudTenantService:
    """Generic create/read/update/delete operations scoped by tenant.

    The entity class is passed explicitly (or set as the ``model`` class
    attribute of a subclass). Callers acting as the super tenant bypass
    ownership checks and see every tenant's rows.
    """

    model: type | None = None

    def __init__(
        self,
        db: AsyncSession,
        model: type | None = None,
        *,
        hooks: ServiceHooks | None = None,
        code_generator: CodeGenerator | None = None,
        settings: Settings | None = None,
    ):
        """Initialize the service.

        Args:
            db: Database session
            model: Entity class handled by the service
            hooks: Interceptors called around each operation
            code_generator: Async callable producing a new code for a tenant;
                defaults to the ``next_codes`` sequence for code entities
            settings: Settings override (defaults to the cached settings)
        """
        self.db = db
        self.model = model or type(self).model
        if self.model is None:
            raise ValueError(f"{type(self).__name__} requires an entity model")
        self.hooks = hooks or ServiceHooks()
        self.settings = settings or get_settings()
        if code_generator is None and issubclass(self.model, CodeMixin):
            code_generator = NextCodeService(db).generator_for(self.model)
        self.code_generator = code_generator

    @property
    def entity_name(self) -> str:
        return self.model.__name__

    # Tenant helpers

    def is_super_tenant(self, tenant: str | None) -> bool:
        return bool(tenant) and tenant.strip().lower() == self.settings.super_tenant.lower()

    def _is_tenant_entity(self) -> bool:
        return issubclass(self.model, TenantMixin)

    @staticmethod
    def _validate_tenant(tenant: str | None) -> None:
        if not tenant or not tenant.strip():
            raise BadArgumentError("Tenant must not be blank")

    def _validate_object(self, entity: Any) -> None:
        if entity is None:
            raise BadArgumentError(f"{self.entity_name} must not be null")

    def _tenant_scoped(self, query, tenant: str):
        if self.is_super_tenant(tenant) or not self._is_tenant_entity():
            return query
        return query.where(func.lower(self.model.tenant) == tenant.strip().lower())

    def _assign_tenant(self, tenant: str, entity: Any) -> None:
        if not self._is_tenant_entity():
            return
        if not self.is_super_tenant(tenant):
            entity.tenant = tenant
        elif not entity.tenant:
            entity.tenant = self.settings.super_tenant

    def validate_tenant_access(self, tenant: str, entity: Any) -> None:
        """Reject access to another tenant's record.

        Raises:
            TenantNotAllowedError: If the record belongs to another tenant
                and the caller is not the super tenant
        """
        if self.is_super_tenant(tenant) or not self._is_tenant_entity():
            return
        if (entity.tenant or "").lower() != tenant.strip().lower():
            log_json(
                logger,
                logging.WARNING,
                "tenant_not_allowed",
                entity=self.entity_name,
                entity_id=entity.id,
                tenant=tenant,
                owner=entity.tenant,
            )
            raise TenantNotAllowedError(
                f"Tenant '{tenant}' is not allowed to access this {self.entity_name}"
            )

    async def assign_code_if_empty(self, entity: Any) -> None:
        if not isinstance(entity, CodeMixin) or entity.code:
            return
        if self.code_generator is not None:
            entity.code = await self.code_generator(entity.tenant or self.settings.default_tenant)

    async def _load(self, entity_id: UUID) -> Any | None:
        return await self.db.get(self.model, entity_id)

    # Reads

    async def count(self, tenant: str) -> int:
        self._validate_tenant(tenant)
        query = self._tenant_scoped(select(func.count()).select_from(self.model), tenant)
        result = await self.db.execute(query)
        return result.scalar_one()

    async def exists_by_id(self, tenant: str, entity_id: UUID) -> bool:
        self._validate_tenant(tenant)
        query = self._tenant_scoped(
            select(func.count()).select_from(self.model).where(self.model.id == entity_id),
            tenant,
        )
        result = await self.db.execute(query)
        return result.scalar_one() > 0

    async def find_all(
        self,
        tenant: str,
        page: int | None = None,
        size: int | None = None,
    ) -> list[Any]:
        """List the tenant's entities, optionally paginated (page is zero based)."""
        self._validate_tenant(tenant)
        query = self._tenant_scoped(select(self.model), tenant).order_by(self.model.created_at)
        if page is not None and size:
            query = query.offset(page * size).limit(size)
        result = await self.db.execute(query)
        entities = list(result.scalars().all())
        return await self.hooks.after_find_all(tenant, entities)

    async def find_by_id(self, tenant: str, entity_id: UUID) -> Any | None:
        self._validate_tenant(tenant)
        query = self._tenant_scoped(select(self.model).where(self.model.id == entity_id), tenant)
        result = await self.db.execute(query)
        entity = result.scalar_one_or_none()
        return await self.hooks.after_find_by_id(tenant, entity)

    async def get_by_id(self, tenant: str, entity_id: UUID) -> Any:
        entity = await self.find_by_id(tenant, entity_id)
        if entity is None:
            raise ObjectNotFoundError(f"{self.entity_name} with id {entity_id} not found")
        return entity

    def get_criteria_fields(self) -> dict[str, str]:
        """Filterable fields of the entity and their Python type names."""
        columns = inspect(self.model).columns
        fields: dict[str, str] = {}
        for name in sorted(getattr(self.model, "__criteria__", ())):
            try:
                fields[name] = columns[name].type.python_type.__name__
            except NotImplementedError:
                fields[name] = "str"
        return fields

    async def find_all_by_criteria_filter(
        self,
        tenant: str,
        criteria: str | list[QueryCriteria],
        page: int | None = None,
        size: int | None = None,
    ) -> list[Any]:
        """List entities matching a criteria filter.

        Raises:
            EmptyCriteriaFilterError: If no criteria are given
            WrongCriteriaFilterError: If a criterion is not filterable
        """
        self._validate_tenant(tenant)
        if isinstance(criteria, str):
            criteria = parse_criteria(criteria)
        clause = build_criteria_clause(
            self.model,
            criteria,
            getattr(self.model, "__criteria__", frozenset()),
        )
        query = (
            self._tenant_scoped(select(self.model).where(clause), tenant)
            .order_by(self.model.created_at)
        )
        if page is not None and size:
            query = query.offset(page * size).limit(size)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # Writes

    async def create(self, tenant: str, entity: Any) -> Any:
        """Persist a new entity for the tenant.

        Raises:
            BadArgumentError: If tenant is blank or entity is None
            CreateConstraintsViolationError: If a unique constraint fails
        """
        self._validate_tenant(tenant)
        self._validate_object(entity)
        self._assign_tenant(tenant, entity)
        await self.assign_code_if_empty(entity)

        entity = await self.hooks.before_create(tenant, entity)
        self.db.add(entity)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            await self.db.rollback()
            raise CreateConstraintsViolationError(
                f"{self.entity_name} violates a database constraint",
                details={"reason": str(exc.orig)},
            ) from None

        log_json(
            logger,
            logging.INFO,
            "entity_created",
            entity=self.entity_name,
            entity_id=entity.id,
            tenant=getattr(entity, "tenant", tenant),
        )
        return await self.hooks.after_create(tenant, entity)

    async def create_batch(self, tenant: str, entities: list[Any]) -> list[Any]:
        self._validate_tenant(tenant)
        if not entities:
            raise EmptyListError(f"{self.entity_name} list must not be empty")
        return [await self.create(tenant, entity) for entity in entities]

    def _keep_original_attributes(self, incoming: Any, stored: Any) -> None:
        if isinstance(stored, FileMixin) and stored.path:
            for attribute in FILE_ATTRIBUTES:
                setattr(incoming, attribute, getattr(stored, attribute))
        if isinstance(stored, ImageMixin) and stored.image_path:
            incoming.image_path = stored.image_path

    def _merge(self, incoming: Any, stored: Any) -> None:
        provided = inspect(incoming).dict
        for column in inspect(self.model).column_attrs:
            if column.key in _PROTECTED_COLUMNS or column.key not in provided:
                continue
            setattr(stored, column.key, provided[column.key])

    async def update(self, tenant: str, entity: Any) -> Any:
        """Update an existing entity owned by the tenant.

        ``entity`` is either the persistent instance itself or a transient
        instance carrying the id and the attributes to change. Stored file
        and image attributes are preserved.

        Raises:
            BadArgumentError: If tenant is blank or entity is None
            NullIdentifierError: If the entity has no id
            ObjectNotFoundError: If no entity has that id
            TenantNotAllowedError: If the entity belongs to another tenant
            UpdateConstraintsViolationError: If a unique constraint fails
        """
        self._validate_tenant(tenant)
        self._validate_object(entity)
        if entity.id is None:
            raise NullIdentifierError(f"{self.entity_name} id must not be null for update")

        stored = await self._load(entity.id)
        if stored is None:
            raise ObjectNotFoundError(f"{self.entity_name} with id {entity.id} not found")
        self.validate_tenant_access(tenant, stored)

        if stored is not entity:
            self._keep_original_attributes(entity, stored)
            self._merge(entity, stored)
        await self.assign_code_if_empty(stored)

        stored = await self.hooks.before_update(tenant, stored)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            await self.db.rollback()
            raise UpdateConstraintsViolationError(
                f"{self.entity_name} violates a database constraint",
                details={"reason": str(exc.orig)},
            ) from None

        log_json(
            logger,
            logging.INFO,
            "entity_updated",
            entity=self.entity_name,
            entity_id=stored.id,
        )
        return await self.hooks.after_update(tenant, stored)

    async def update_batch(self, tenant: str, entities: list[Any]) -> list[Any]:
        self._validate_tenant(tenant)
        if not entities:
            raise EmptyListError(f"{self.entity_name} list must not be empty")
        return [await self.update(tenant, entity) for entity in entities]

    async def save_or_update(self, tenant: str, entity: Any) -> Any:
        """Create the entity when it has no (known) id, update it otherwise."""
        self._validate_object(entity)
        if entity.id is None or await self._load(entity.id) is None:
            return await self.create(tenant, entity)
        return await self.update(tenant, entity)

    async def save_or_update_batch(self, tenant: str, entities: list[Any]) -> list[Any]:
        if not entities:
            raise EmptyListError(f"{self.entity_name} list must not be empty")
        return [await self.save_or_update(tenant, entity) for entity in entities]

    async def _handle_entity_deletion(self, entity: Any) -> bool:
        """Cancel or delete the entity; returns True when the row was removed."""
        if isinstance(entity, CancelableMixin) and not entity.check_cancel:
            entity.check_cancel = True
            entity.cancel_date = datetime.now(UTC)
            await self.db.flush()
            log_json(
                logger,
                logging.INFO,
                "entity_canceled",
                entity=self.entity_name,
                entity_id=entity.id,
            )
            return False

        await self.db.delete(entity)
        await self.db.flush()
        log_json(
            logger,
            logging.INFO,
            "entity_deleted",
            entity=self.entity_name,
            entity_id=entity.id,
        )
        return True

    async def delete(self, tenant: str, entity_id: UUID) -> None:
        """Delete (or cancel) an entity owned by the tenant.

        Raises:
            BadArgumentError: If tenant is blank
            ObjectNotFoundError: If no entity has that id
            TenantNotAllowedError: If the entity belongs to another tenant
        """
        self._validate_tenant(tenant)
        if entity_id is None:
            raise NullIdentifierError(f"{self.entity_name} id must not be null for delete")

        entity = await self._load(entity_id)
        if entity is None:
            raise ObjectNotFoundError(f"{self.entity_name} with id {entity_id} not found")
        self.validate_tenant_access(tenant, entity)

        await self.hooks.before_delete(tenant, entity)
        await self._handle_entity_deletion(entity)
        await self.hooks.after_delete(tenant, entity)

    async def delete_batch(self, tenant: str, entity_ids: list[UUID]) -> None:
        self._validate_tenant(tenant)
        if not entity_ids:
            raise EmptyListError(f"{self.entity_name} id list must not be empty")
        for entity_id in entity_ids:
            await self.delete(tenant, entity_id)
