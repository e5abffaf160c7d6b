"""Pydantic schemas for account endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AccountCreate(BaseModel):
    """Request schema for creating an account.

    ``tenant`` is only honoured for the super tenant; everyone else creates
    accounts in their own tenant.
    """

    login: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    active: bool = True
    code: str | None = Field(None, max_length=50)
    tenant: str | None = Field(None, max_length=100)


class AccountUpdate(BaseModel):
    login: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    active: bool | None = None


class AccountResponse(BaseModel):
    id: UUID
    tenant: str
    code: str | None = None
    login: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    active: bool
    check_cancel: bool
    cancel_date: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
