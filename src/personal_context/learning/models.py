"""Pydantic v2 models for incremental profile updates."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from personal_context.email.models import EmailThread


class ContextUpdateInput(BaseModel):
    """A single new interaction to fold into an existing profile."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    email_content: str = ""
    recipient_email: str
    user_reply: str = ""
    thread_context: EmailThread | None = None

    @field_validator("user_id")
    @classmethod
    def user_id_must_not_be_empty(cls, v: str) -> str:
        """Ensure user_id is not empty or whitespace-only."""
        if not v.strip():
            raise ValueError("user_id must not be empty")
        return v

    @field_validator("recipient_email")
    @classmethod
    def normalize_recipient(cls, v: str) -> str:
        """Lower-case the address so it matches profile contact keys."""
        v = v.strip().lower()
        if not v:
            raise ValueError("recipient_email must not be empty")
        return v


class ContextUpdateResult(BaseModel):
    success: bool
    updates: list[str] = Field(default_factory=list)
    error: str | None = None
