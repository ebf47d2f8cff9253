"""
Persistence layer.

    - models.py: SQLAlchemy tables (voices, generations, profiles)
    - session.py: Engine and session factory setup
    - repository.py: Repository interface and SQL implementation
"""
from voiso.db.models import Generation, Profile, Voice
from voiso.db.repository import Repository, SqlRepository

__all__ = ["Generation", "Profile", "Repository", "SqlRepository", "Voice"]
