"""SQLAlchemy models."""

from tenantfiles.models.account import Account
from tenantfiles.models.base import Base, BaseModel
from tenantfiles.models.contract import Contract
from tenantfiles.models.mixins import (
    CancelableMixin,
    CodeMixin,
    FileMixin,
    ImageMixin,
    LinkedFileMixin,
    MultiFileMixin,
    TenantMixin,
)
from tenantfiles.models.next_code import NextCode
from tenantfiles.models.resume import Resume, ResumeLinkedFile

__all__ = [
    "Base",
    "BaseModel",
    "TenantMixin",
    "CodeMixin",
    "FileMixin",
    "ImageMixin",
    "CancelableMixin",
    "LinkedFileMixin",
    "MultiFileMixin",
    "Account",
    "Contract",
    "Resume",
    "ResumeLinkedFile",
    "NextCode",
]
