"""
Data access for voices, generations and profiles.

The services depend on the Repository interface only; SqlRepository is
the SQLAlchemy implementation. Every method opens its own short session
and returns detached rows, so nothing holds a connection across the
provider call.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, List, Optional, Tuple

from sqlalchemy import delete, func, select, text, update
from sqlalchemy.orm import Session, sessionmaker

from voiso.db.models import Generation, Profile, Voice, utcnow


class Repository(ABC):
    """Storage operations needed by the services."""

    # Voices
    @abstractmethod
    def get_voice(self, voice_id: str) -> Optional[Voice]: ...

    @abstractmethod
    def list_user_voices(self, user_id: str) -> List[Voice]: ...

    @abstractmethod
    def list_default_voices(self) -> List[Voice]: ...

    @abstractmethod
    def create_voice(self, **fields: Any) -> Voice: ...

    @abstractmethod
    def rename_voice(self, voice_id: str, name: str) -> Optional[Voice]: ...

    @abstractmethod
    def delete_voice(self, voice_id: str) -> int:
        """Delete a voice and its generations; returns generations removed."""

    # Generations
    @abstractmethod
    def count_generations_since(self, user_id: str, since: datetime) -> int: ...

    @abstractmethod
    def insert_generation(
        self,
        user_id: str,
        voice_id: str,
        text: str,
        language: str,
        audio_url: Optional[str],
        audio_path: Optional[str] = None,
    ) -> Generation: ...

    @abstractmethod
    def list_generations(self, user_id: str, limit: int = 10) -> List[Tuple[Generation, Optional[Voice]]]: ...

    # Profiles
    @abstractmethod
    def get_profile(self, user_id: str) -> Optional[Profile]: ...

    @abstractmethod
    def set_plan(self, user_id: str, plan: str) -> Profile: ...

    @abstractmethod
    def increment_generation_count(self, user_id: str) -> None: ...

    def ping(self) -> bool:
        return True


class SqlRepository(Repository):
    """
    Repository backed by a SQLAlchemy sessionmaker.

    Args:
        session_factory: sessionmaker created with expire_on_commit=False.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ─────────────────────────────────────────────────────────────────────────
    # Voices
    # ─────────────────────────────────────────────────────────────────────────

    def get_voice(self, voice_id: str) -> Optional[Voice]:
        with self._session() as s:
            return s.get(Voice, voice_id)

    def list_user_voices(self, user_id: str) -> List[Voice]:
        with self._session() as s:
            stmt = select(Voice).where(Voice.user_id == user_id).order_by(Voice.created_at.desc())
            return list(s.scalars(stmt))

    def list_default_voices(self) -> List[Voice]:
        with self._session() as s:
            stmt = (
                select(Voice)
                .where(Voice.user_id.is_(None), Voice.type == "default")
                .order_by(Voice.name)
            )
            return list(s.scalars(stmt))

    def create_voice(self, **fields: Any) -> Voice:
        with self._session() as s:
            voice = Voice(**fields)
            s.add(voice)
            s.flush()
            s.refresh(voice)
            return voice

    def rename_voice(self, voice_id: str, name: str) -> Optional[Voice]:
        with self._session() as s:
            voice = s.get(Voice, voice_id)
            if voice is None:
                return None
            voice.name = name
            voice.updated_at = utcnow()
            s.flush()
            return voice

    def delete_voice(self, voice_id: str) -> int:
        with self._session() as s:
            removed = s.execute(delete(Generation).where(Generation.voice_id == voice_id)).rowcount
            s.execute(delete(Voice).where(Voice.id == voice_id))
            return int(removed or 0)

    # ─────────────────────────────────────────────────────────────────────────
    # Generations
    # ─────────────────────────────────────────────────────────────────────────

    def count_generations_since(self, user_id: str, since: datetime) -> int:
        with self._session() as s:
            stmt = (
                select(func.count())
                .select_from(Generation)
                .where(Generation.user_id == user_id, Generation.created_at >= since)
            )
            return int(s.scalar(stmt) or 0)

    def insert_generation(
        self,
        user_id: str,
        voice_id: str,
        text: str,
        language: str,
        audio_url: Optional[str],
        audio_path: Optional[str] = None,
    ) -> Generation:
        with self._session() as s:
            generation = Generation(
                user_id=user_id,
                voice_id=voice_id,
                text=text,
                language=language,
                audio_url=audio_url,
                audio_path=audio_path,
            )
            s.add(generation)
            s.flush()
            return generation

    def list_generations(self, user_id: str, limit: int = 10) -> List[Tuple[Generation, Optional[Voice]]]:
        with self._session() as s:
            stmt = (
                select(Generation, Voice)
                .join(Voice, Voice.id == Generation.voice_id, isouter=True)
                .where(Generation.user_id == user_id)
                .order_by(Generation.created_at.desc())
                .limit(limit)
            )
            return [(gen, voice) for gen, voice in s.execute(stmt).all()]

    # ─────────────────────────────────────────────────────────────────────────
    # Profiles
    # ─────────────────────────────────────────────────────────────────────────

    def get_profile(self, user_id: str) -> Optional[Profile]:
        with self._session() as s:
            return s.scalars(select(Profile).where(Profile.user_id == user_id)).first()

    def set_plan(self, user_id: str, plan: str) -> Profile:
        with self._session() as s:
            profile = s.scalars(select(Profile).where(Profile.user_id == user_id)).first()
            if profile is None:
                profile = Profile(user_id=user_id, plan=plan, generation_count=0)
                s.add(profile)
            else:
                profile.plan = plan
                profile.daily_generation_limit = None
                profile.updated_at = utcnow()
            s.flush()
            return profile

    def increment_generation_count(self, user_id: str) -> None:
        with self._session() as s:
            result = s.execute(
                update(Profile)
                .where(Profile.user_id == user_id)
                .values(
                    generation_count=func.coalesce(Profile.generation_count, 0) + 1,
                    updated_at=utcnow(),
                )
            )
            if not result.rowcount:
                s.add(Profile(user_id=user_id, plan="free", generation_count=1))

    def ping(self) -> bool:
        with self._session() as s:
            s.execute(text("SELECT 1"))
        return True

