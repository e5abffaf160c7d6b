"""Account model: a plain tenant entity with soft cancellation."""

from sqlalchemy import Boolean, Column, String

from tenantfiles.models.base import BaseModel
from tenantfiles.models.mixins import CancelableMixin, CodeMixin, TenantMixin


class Account(TenantMixin, CodeMixin, CancelableMixin, BaseModel):
    """User account scoped to a tenant.

    Deleting an account cancels it; the row is kept with ``check_cancel``
    set and ``cancel_date`` stamped.
    """

    __tablename__ = "accounts"
    __criteria__ = frozenset({"login", "email", "first_name", "last_name", "active"})

    code_prefix = "ACC"

    login = Column(String(100), nullable=False, unique=True)
    email = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    active = Column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, login={self.login}, tenant={self.tenant})>"
