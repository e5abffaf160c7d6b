"""Pydantic schemas for contract endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ContractCreate(BaseModel):
    """Request schema for creating a contract (JSON part of the multipart form)."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    active: bool = True
    code: str | None = Field(None, max_length=50)
    tenant: str | None = Field(None, max_length=100)
    tags: list[str] | None = None


class ContractUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    active: bool | None = None
    tags: list[str] | None = None


class ContractResponse(BaseModel):
    id: UUID
    tenant: str
    code: str | None = None
    title: str
    description: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    active: bool
    file_name: str | None = None
    original_file_name: str | None = None
    path: str | None = None
    extension: str | None = None
    type: str | None = None
    tags: list[str] | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
