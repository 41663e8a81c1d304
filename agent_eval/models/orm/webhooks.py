"""
Webhook ORM model.

The signing secret is stored encrypted and is never exported.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from agent_eval.models.enums import WebhookMethod
from agent_eval.models.orm.base import Base, utcnow


class Webhook(Base):
    """Webhook database table."""

    __tablename__ = "webhooks"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(255))
    url: Mapped[str] = mapped_column(String(2048))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    events: Mapped[list] = mapped_column(JSON, default=list)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    method: Mapped[str] = mapped_column(String(10), default=WebhookMethod.POST.value)
    headers: Mapped[dict | None] = mapped_column(JSON, default=None)
    query_params: Mapped[dict | None] = mapped_column(JSON, default=None)
    body_template: Mapped[dict | None] = mapped_column(JSON, default=None)
    secret: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )
