"""Resume model with a photo, a main file and additional files."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from tenantfiles.models.base import BaseModel
from tenantfiles.models.mixins import (
    CodeMixin,
    FileMixin,
    ImageMixin,
    LinkedFileMixin,
    MultiFileMixin,
    TenantMixin,
)


class Resume(TenantMixin, CodeMixin, ImageMixin, FileMixin, MultiFileMixin, BaseModel):
    """Resume entity.

    The candidate photo goes through the image service and supporting
    documents through the multi-file service.
    """

    __tablename__ = "resumes"
    __criteria__ = frozenset({"title", "description", "start_date", "end_date", "active"})

    code_prefix = "RSM"

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    active = Column(Boolean, nullable=False, default=False)

    additional_files = relationship(
        "ResumeLinkedFile",
        back_populates="resume",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ResumeLinkedFile.created_at",
    )

    def __repr__(self) -> str:
        return f"<Resume(id={self.id}, code={self.code}, tenant={self.tenant})>"


class ResumeLinkedFile(LinkedFileMixin, BaseModel):
    """Additional file attached to a resume."""

    __tablename__ = "resume_linked_files"

    code_prefix = "RLF"

    resume_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("resumes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    resume = relationship("Resume", back_populates="additional_files")

    def __repr__(self) -> str:
        return f"<ResumeLinkedFile(id={self.id}, code={self.code}, version={self.version})>"
