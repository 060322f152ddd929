from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from .scheduler import CheckResult


class CheckResponse(BaseModel):
    outcome: str
    message: str = Field(..., description="Short human-readable summary of the run.")
    latest_date: Optional[str] = Field(None, description="Newest scraped draw date, ISO format.")

    @classmethod
    def from_result(cls, result: CheckResult) -> "CheckResponse":
        return cls(outcome=result.outcome.value, message=result.body, latest_date=result.latest_date)
