"""Pydantic schemas for resume endpoints and their additional files."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ResumeCreate(BaseModel):
    """Request schema for creating a resume."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    active: bool = True
    code: str | None = Field(None, max_length=50)
    tenant: str | None = Field(None, max_length=100)
    tags: list[str] | None = None


class ResumeUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    active: bool | None = None
    tags: list[str] | None = None


class LinkedFileResponse(BaseModel):
    """One additional file of a resume, with its checksums."""

    id: UUID
    tenant: str
    code: str | None = None
    original_file_name: str | None = None
    file_name: str | None = None
    extension: str | None = None
    path: str | None = None
    mimetype: str | None = None
    crc16: int | None = None
    crc32: int | None = None
    size: int
    version: int
    tags: list[str] | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ResumeResponse(BaseModel):
    id: UUID
    tenant: str
    code: str | None = None
    title: str
    description: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    active: bool
    image_path: str | None = None
    file_name: str | None = None
    original_file_name: str | None = None
    path: str | None = None
    extension: str | None = None
    type: str | None = None
    tags: list[str] | None = None
    additional_files: list[LinkedFileResponse] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
