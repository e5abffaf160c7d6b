"""Contract service: contracts with their signed document."""

from tenantfiles.models.contract import Contract
from tenantfiles.services.file_service import FileTenantService


class ContractService(FileTenantService):
    model = Contract
