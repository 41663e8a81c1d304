"""
Evaluator ORM model.

An evaluator is an LLM-judge configuration. Its access_token_id is a
credential reference and never leaves the owner's account.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from agent_eval.models.orm.base import Base, utcnow


class Evaluator(Base):
    """Evaluator database table."""

    __tablename__ = "evaluators"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    access_token_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("access_tokens.id", ondelete="SET NULL"), default=None
    )
    model: Mapped[str] = mapped_column(String(255))
    system_prompt: Mapped[str] = mapped_column(Text)
    reasoning_model: Mapped[bool] = mapped_column(Boolean, default=False)
    reasoning_effort: Mapped[str | None] = mapped_column(String(20), default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )
