"""API routes for contracts and their signed documents."""

from fastapi import APIRouter

from tenantfiles.api.routers import build_crud_router, build_file_router
from tenantfiles.schemas.contract import ContractCreate, ContractResponse, ContractUpdate
from tenantfiles.services.contract_service import ContractService

schemas = {
    "create_schema": ContractCreate,
    "update_schema": ContractUpdate,
    "response_schema": ContractResponse,
}

router = APIRouter()
build_file_router(ContractService, router=router, **schemas)
build_crud_router(ContractService, router=router, **schemas)
