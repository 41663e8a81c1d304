"""
Test and Scenario ORM models.

A test ties a flow configuration to either a question set (QA tests) or
a list of persona-driven scenarios (conversation tests).
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agent_eval.models.enums import TestType
from agent_eval.models.orm.base import Base, utcnow
from agent_eval.models.orm.tags import Tag, test_tags


class Test(Base):
    """Test database table."""

    __tablename__ = "tests"
    __test__ = False  # not a pytest class

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    type: Mapped[str] = mapped_column(String(20), default=TestType.QA.value)

    flow_config_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("flow_configs.id", ondelete="SET NULL"), default=None
    )
    question_set_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("question_sets.id", ondelete="SET NULL"), default=None
    )
    webhook_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("webhooks.id", ondelete="SET NULL"), default=None
    )
    evaluator_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("evaluators.id", ondelete="SET NULL"), default=None
    )

    # Credential references, owner-local
    access_token_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("access_tokens.id", ondelete="SET NULL"), default=None
    )
    simulated_user_access_token_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("access_tokens.id", ondelete="SET NULL"), default=None
    )

    multi_step_evaluation: Mapped[bool] = mapped_column(Boolean, default=False)
    repeat_count: Mapped[int] = mapped_column(Integer, default=1)
    response_variable_key: Mapped[str | None] = mapped_column(String(255), default=None)

    # Conversation tests
    execution_mode: Mapped[str | None] = mapped_column(String(20), default=None)
    delay_between_turns: Mapped[int | None] = mapped_column(Integer, default=0)
    simulated_user_model: Mapped[str | None] = mapped_column(String(255), default=None)
    simulated_user_model_config: Mapped[dict | None] = mapped_column(JSON, default=None)
    simulated_user_reasoning_model: Mapped[bool] = mapped_column(Boolean, default=False)
    simulated_user_reasoning_effort: Mapped[str | None] = mapped_column(String(20), default=None)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Relationships
    tags: Mapped[list[Tag]] = relationship(secondary=test_tags, lazy="selectin")
    scenarios: Mapped[list["Scenario"]] = relationship(
        back_populates="test",
        cascade="all, delete-orphan",
        order_by="Scenario.order_index",
        lazy="selectin",
    )


class Scenario(Base):
    """Conversation scenario belonging to a test."""

    __tablename__ = "scenarios"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    test_id: Mapped[UUID] = mapped_column(ForeignKey("tests.id", ondelete="CASCADE"), index=True)
    persona_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("personas.id", ondelete="SET NULL"), default=None
    )
    name: Mapped[str] = mapped_column(String(255))
    goal: Mapped[str] = mapped_column(Text)
    max_turns: Mapped[int] = mapped_column(Integer, default=30)
    order_index: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    test: Mapped[Test] = relationship(back_populates="scenarios")
