"""Pydantic schemas for the credit balance display."""

from pydantic import BaseModel, Field


class CreditBalanceRead(BaseModel):
    balance: int = Field(..., description="Credits available to spend.")
    used: int = Field(..., description="Credits spent so far.")


class CreditPricesRead(BaseModel):
    prices: dict[str, int] = Field(..., description="Cost in credits per metered feature.")
