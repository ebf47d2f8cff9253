"""
Relational schema.

Three tables: ``voices``, ``generations`` and ``profiles``. Timestamps
are stored as naive UTC datetimes so SQLite and PostgreSQL compare them
the same way.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

VOICE_TYPES = ("cloned", "designed", "default")

# Identity-provider subjects are not always UUIDs (auth0|..., e-mail)
USER_ID_LENGTH = 255


def utcnow() -> datetime:
    """Current UTC time without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc).isoformat()


class Base(DeclarativeBase):
    pass


class Voice(Base):
    """A voice profile; ``user_id`` is NULL for shared default voices."""
    __tablename__ = "voices"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[Optional[str]] = mapped_column(String(USER_ID_LENGTH), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    source_model: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    language: Mapped[str] = mapped_column(String(8), nullable=False, default="auto")
    reference_audio_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    qwen_params: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "type": self.type,
            "source_model": self.source_model,
            "description": self.description,
            "language": self.language,
            "reference_audio_url": self.reference_audio_url,
            "qwen_params": dict(self.qwen_params or {}),
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }


class Generation(Base):
    """One successful synthesis. Written once, removed only with its voice."""
    __tablename__ = "generations"
    __table_args__ = (Index("ix_generations_user_created", "user_id", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(USER_ID_LENGTH), nullable=False)
    voice_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("voices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    language: Mapped[str] = mapped_column(String(8), nullable=False, default="auto")
    audio_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    audio_path: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "voice_id": self.voice_id,
            "text": self.text,
            "language": self.language,
            "audio_url": self.audio_url,
            "created_at": _isoformat(self.created_at),
        }


class Profile(Base):
    """Per-user plan, optional limit override and running generation counter."""
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(USER_ID_LENGTH), nullable=False, unique=True)
    plan: Mapped[str] = mapped_column(String(16), nullable=False, default="free")
    daily_generation_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    generation_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
