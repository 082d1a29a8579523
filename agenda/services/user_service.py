"""Helpers for working with users."""
from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agenda.db.models.user import User

logger = logging.getLogger(__name__)


def get_or_create_user(db: Session, user_id: UUID) -> User:
    """Fetch the owner row for projects/agenda, inserting it on first use."""
    user = db.get(User, user_id)
    if user:
        return user

    user = User(id=user_id)
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        # Another request inserted the same user concurrently.
        db.rollback()
        existing = db.get(User, user_id)
        if existing:
            return existing
        raise
    logger.debug("Created user row %s", user_id)
    return user
