"""Persistent state of the business code generators."""

from sqlalchemy import BigInteger, Column, Integer, String, UniqueConstraint

from tenantfiles.models.base import BaseModel


class NextCode(BaseModel):
    """Counter used to generate codes for one entity attribute of a tenant.

    The generated code is ``prefix`` + counter left-padded with zeros to
    ``value_length`` + ``suffix``.
    """

    __tablename__ = "next_codes"

    tenant = Column(String(100), nullable=False)
    entity = Column(String(100), nullable=False)
    attribute = Column(String(100), nullable=False, default="code")
    prefix = Column(String(20), nullable=True)
    suffix = Column(String(20), nullable=True)
    value = Column(BigInteger, nullable=False, default=0)
    value_length = Column(Integer, nullable=False, default=6)
    increment = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint("tenant", "entity", "attribute", name="uc_next_code_entity"),
    )

    def format_code(self) -> str:
        prefix = (self.prefix or "").strip()
        suffix = (self.suffix or "").strip()
        width = self.value_length or 6
        return f"{prefix}{str(self.value or 0).zfill(width)}{suffix}"

    def advance(self) -> str:
        """Move the counter forward and return the new code."""
        self.value = (self.value or 0) + (self.increment or 1)
        return self.format_code()

    def __repr__(self) -> str:
        return f"<NextCode(entity={self.entity}, tenant={self.tenant}, value={self.value})>"
