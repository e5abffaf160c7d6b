"""Capability mixins for tenant-scoped entities.

Services inspect these with ``issubclass``/``isinstance`` to decide which
behaviour applies: tenant assignment, code generation, file and image
attributes, soft cancellation and additional-file collections.
"""

from sqlalchemy import JSON, BigInteger, Boolean, Column, DateTime, Integer, String

FILE_ATTRIBUTES = ("type", "file_name", "original_file_name", "path", "extension")


class TenantMixin:
    """Entity owned by a tenant."""

    tenant = Column(String(100), nullable=False, index=True)


class CodeMixin:
    """Entity carrying a generated business code (``CTR000001``)."""

    code = Column(String(50), nullable=True, index=True)

    code_prefix: str = ""
    code_suffix: str = ""
    code_length: int = 6


class FileMixin:
    """Entity with one attached file."""

    file_name = Column(String(255), nullable=True)
    original_file_name = Column(String(255), nullable=True)
    path = Column(String(1024), nullable=True)
    extension = Column(String(50), nullable=True)
    type = Column(String(255), nullable=True)
    tags = Column(JSON, nullable=True)


class ImageMixin:
    """Entity with an image."""

    image_path = Column(String(1024), nullable=True)


class CancelableMixin:
    """Entity whose deletion sets a cancel flag instead of removing the row."""

    check_cancel = Column(Boolean, nullable=False, default=False)
    cancel_date = Column(DateTime(timezone=True), nullable=True)


class LinkedFileMixin(TenantMixin, CodeMixin):
    """One file of a parent entity's ``additional_files`` collection."""

    path = Column(String(1024), nullable=True)
    original_file_name = Column(String(255), nullable=True)
    file_name = Column(String(255), nullable=True)
    extension = Column(String(50), nullable=True)
    mimetype = Column(String(255), nullable=True)
    crc16 = Column(Integer, nullable=True)
    crc32 = Column(BigInteger, nullable=True)
    size = Column(BigInteger, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)
    tags = Column(JSON, nullable=True)


class MultiFileMixin:
    """Entity exposing an ``additional_files`` relationship of linked files.

    Concrete models declare the relationship themselves with
    ``cascade="all, delete-orphan"`` and ``lazy="selectin"``.
    """
