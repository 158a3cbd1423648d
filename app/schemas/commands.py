"""
Command Schemas
===============

Request schema for operator-issued pump commands.
"""

from pydantic import BaseModel, Field, field_validator


class ManualCommandRequest(BaseModel):
    """Request schema for a manual command (``{"action": "TURN_PUMP_ON"}``)."""

    action: str = Field(..., min_length=1, description="Command forwarded verbatim to the pump controller")

    @field_validator("action", mode="before")
    @classmethod
    def strip_action(cls, v):
        return v.strip() if isinstance(v, str) else v
