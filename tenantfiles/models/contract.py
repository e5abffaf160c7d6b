"""Contract model with a single attached document."""

from sqlalchemy import Boolean, Column, DateTime, String, Text

from tenantfiles.models.base import BaseModel
from tenantfiles.models.mixins import CodeMixin, FileMixin, TenantMixin


class Contract(TenantMixin, CodeMixin, FileMixin, BaseModel):
    """Contract entity; the signed document is stored through the file service."""

    __tablename__ = "contracts"
    __criteria__ = frozenset({"title", "description", "start_date", "end_date", "active"})

    code_prefix = "CTR"

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    active = Column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Contract(id={self.id}, code={self.code}, tenant={self.tenant})>"
