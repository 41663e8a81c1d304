"""
Run ORM model.

A run captures the answers collected while executing a test. Runs have
no natural key; identical runs are legitimate.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agent_eval.models.enums import RunStatus
from agent_eval.models.orm.base import Base, utcnow

if TYPE_CHECKING:
    from agent_eval.models.orm.conversations import Conversation
    from agent_eval.models.orm.tests import Test


class Run(Base):
    """Run database table."""

    __tablename__ = "runs"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    test_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("tests.id", ondelete="SET NULL"), default=None
    )
    question_set_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("question_sets.id", ondelete="SET NULL"), default=None
    )
    status: Mapped[str] = mapped_column(String(20), default=RunStatus.PENDING.value)
    results: Mapped[list] = mapped_column(JSON, default=list)
    error_message: Mapped[str | None] = mapped_column(Text, default=None)
    total_questions: Mapped[int] = mapped_column(Integer, default=0)
    completed_questions: Mapped[int] = mapped_column(Integer, default=0)
    # Conversation runs only
    total_scenarios: Mapped[int | None] = mapped_column(Integer, default=None)
    completed_scenarios: Mapped[int | None] = mapped_column(Integer, default=None)
    is_fully_evaluated: Mapped[bool] = mapped_column(Boolean, default=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    evaluated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Relationships
    test: Mapped["Test | None"] = relationship(lazy="selectin")
    conversations: Mapped[list["Conversation"]] = relationship(
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="Conversation.started_at",
        lazy="selectin",
    )
