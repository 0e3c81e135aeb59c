"""Pydantic schemas for account management."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class AccountCreate(BaseModel):
    username: str = Field(
        ...,
        min_length=3,
        max_length=30,
        pattern=r"^[a-zA-Z0-9_-]+$",
        description="Public portfolio handle (letters, digits, '-' and '_').",
    )
    display_name: str | None = Field(default=None, max_length=255)
    is_public: bool = Field(default=False, description="Whether the portfolio is visible to everyone.")


class VisibilityUpdate(BaseModel):
    is_public: bool


class AccountRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    display_name: str | None = None
    is_public: bool
    credit_balance: int
    credits_used: int
    created_at: datetime
