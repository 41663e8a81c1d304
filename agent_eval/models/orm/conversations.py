"""
Conversation ORM model.

One simulated conversation per scenario of a conversation-test run.
Turns are stored as a JSON list of {index, role, message, timestamp}.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agent_eval.models.enums import ConversationStatus
from agent_eval.models.orm.base import Base

if TYPE_CHECKING:
    from agent_eval.models.orm.runs import Run
    from agent_eval.models.orm.tests import Scenario


class Conversation(Base):
    """Conversation database table."""

    __tablename__ = "conversations"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    run_id: Mapped[UUID] = mapped_column(ForeignKey("runs.id", ondelete="CASCADE"), index=True)
    scenario_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("scenarios.id", ondelete="SET NULL"), default=None
    )
    status: Mapped[str] = mapped_column(String(30), default=ConversationStatus.RUNNING.value)
    turns: Mapped[list] = mapped_column(JSON, default=list)
    summary: Mapped[str | None] = mapped_column(Text, default=None)
    end_reason: Mapped[str | None] = mapped_column(Text, default=None)
    goal_achieved: Mapped[bool | None] = mapped_column(Boolean, default=None)
    human_evaluation: Mapped[str | None] = mapped_column(String(20), default=None)
    human_evaluation_notes: Mapped[str | None] = mapped_column(Text, default=None)
    total_turns: Mapped[int] = mapped_column(Integer, default=0)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    # Relationships
    run: Mapped["Run"] = relationship(back_populates="conversations")
    scenario: Mapped["Scenario | None"] = relationship(lazy="selectin")
