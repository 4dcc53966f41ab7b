"""Feedback model."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from cqas.database import Base, JSONType


class Feedback(Base):
    """Per-call analysis result. Written at most once per call."""

    __tablename__ = "feedback"

    feedback_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True)
    call_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("calls.call_id", ondelete="CASCADE"),
        nullable=False,
    )
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    positive: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    negative: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    opportunities: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    behaviors_analysis: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    # NULL while the row is a score-less placeholder
    generated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (UniqueConstraint("call_id", name="uq_feedback_call_id"),)
