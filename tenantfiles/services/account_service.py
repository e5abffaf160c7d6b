"""Account service."""

from typing import Any

from tenantfiles.models.account import Account
from tenantfiles.services.crud_tenant_service import CrudTenantService
from tenantfiles.services.hooks import ServiceHooks


class AccountHooks(ServiceHooks):
    """Normalize login and email before they are stored."""

    @staticmethod
    def _normalize(account: Account) -> Account:
        if account.login:
            account.login = account.login.strip()
        if account.email:
            account.email = account.email.strip().lower()
        return account

    async def before_create(self, tenant: str, entity: Any) -> Any:
        return self._normalize(entity)

    async def before_update(self, tenant: str, entity: Any) -> Any:
        return self._normalize(entity)


class AccountService(CrudTenantService):
    model = Account

    def __init__(self, db, **kwargs):
        kwargs.setdefault("hooks", AccountHooks())
        super().__init__(db, **kwargs)
