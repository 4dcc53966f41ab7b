"""Call model."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from cqas.database import Base, JSONType


class Call(Base):
    """Call recording metadata and its transcript (written by the transcription stage)."""

    __tablename__ = "calls"

    call_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    # list of {speaker, text, start, end} segments, or a plain string
    transcription: Mapped[Any | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
