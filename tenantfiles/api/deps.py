"""FastAPI dependencies shared by the resource routers."""

import re

from fastapi import Request

from tenantfiles.core.config import get_settings
from tenantfiles.core.exceptions import InvalidTenantError, MissingTenantError

# Tenants name directories below the upload root
TENANT_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,99}$")


async def get_tenant(request: Request) -> str:
    """Read the calling tenant from the tenant header (``X-Tenant-ID``).

    Raises:
        MissingTenantError: 400 if the header is missing or blank
        InvalidTenantError: 400 if the value is not a plain identifier
    """
    header = get_settings().tenant_header
    tenant = (request.headers.get(header) or "").strip()
    if not tenant:
        raise MissingTenantError(f"Header {header} is required")
    if not TENANT_PATTERN.match(tenant) or ".." in tenant:
        raise InvalidTenantError(
            f"Header {header} must contain only letters, digits, '.', '_' or '-'",
            details={"tenant": tenant},
        )
    return tenant
