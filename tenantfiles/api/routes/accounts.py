"""API routes for accounts."""

from tenantfiles.api.routers import build_crud_router
from tenantfiles.schemas.account import AccountCreate, AccountResponse, AccountUpdate
from tenantfiles.services.account_service import AccountService

router = build_crud_router(
    AccountService,
    create_schema=AccountCreate,
    update_schema=AccountUpdate,
    response_schema=AccountResponse,
)
