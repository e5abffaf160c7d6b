"""Business code generation backed by the ``next_codes`` table."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tenantfiles.core.structured_logging import log_json
from tenantfiles.models.mixins import CodeMixin
from tenantfiles.models.next_code import NextCode

logger = logging.getLogger(__name__)

CodeGenerator = Callable[[str], Awaitable[str]]


class NextCodeService:
    """Service handing out sequential codes per tenant and entity."""

    def __init__(self, db: AsyncSession):
        """Initialize next code service.

        Args:
            db: Database session
        """
        self.db = db

    async def get_next_code(
        self,
        tenant: str,
        entity: str,
        *,
        prefix: str = "",
        suffix: str = "",
        value_length: int = 6,
        increment: int = 1,
        attribute: str = "code",
    ) -> str:
        """Advance the counter of an entity attribute and return the new code.

        The counter row is created on first use.

        Args:
            tenant: Tenant the code belongs to
            entity: Entity class name
            prefix: Code prefix (e.g. ``CTR``)
            suffix: Code suffix
            value_length: Zero padded width of the numeric part
            increment: Step between two codes
            attribute: Attribute the code is generated for

        Returns:
            Generated code, e.g. ``CTR000001``
        """
        query = (
            select(NextCode)
            .where(NextCode.tenant == tenant)
            .where(NextCode.entity == entity)
            .where(NextCode.attribute == attribute)
            .with_for_update()
        )
        result = await self.db.execute(query)
        next_code = result.scalar_one_or_none()

        if next_code is None:
            next_code = NextCode(
                tenant=tenant,
                entity=entity,
                attribute=attribute,
                prefix=prefix,
                suffix=suffix,
                value=0,
                value_length=value_length,
                increment=increment,
            )
            self.db.add(next_code)
            log_json(logger, logging.INFO, "next_code_registered", entity=entity, tenant=tenant)

        code = next_code.advance()
        await self.db.flush()
        return code

    def generator_for(self, model: type[CodeMixin]) -> CodeGenerator:
        """Build a code generator for a model using its code settings."""

        async def generate(tenant: str) -> str:
            return await self.get_next_code(
                tenant,
                model.__name__,
                prefix=model.code_prefix,
                suffix=model.code_suffix,
                value_length=model.code_length,
            )

        return generate
