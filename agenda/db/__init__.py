"""Database utilities and models."""

from agenda.db.base import Base
from agenda.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
