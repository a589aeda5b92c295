"""User-to-user block list."""

from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import BadRequestError, NotFoundError
from app.core.logger import logger
from app.models.auth import User, UserBlock


def is_blocked(session: Session, blocker_id: int, candidate_id: int) -> bool:
    """True when ``blocker_id`` has blocked ``candidate_id``."""
    return session.get(UserBlock, (blocker_id, candidate_id)) is not None


def block(session: Session, blocker_id: int, blocked_id: int) -> UserBlock:
    if blocker_id == blocked_id:
        raise BadRequestError("You cannot block yourself")
    if not session.get(User, blocked_id):
        raise NotFoundError("There is no user with such id")

    existing = session.get(UserBlock, (blocker_id, blocked_id))
    if existing:
        return existing

    relation = UserBlock(blocker_id=blocker_id, blocked_id=blocked_id)
    session.add(relation)
    session.flush()
    logger.info(f"User {blocker_id} blocked user {blocked_id}")
    return relation


def unblock(session: Session, blocker_id: int, blocked_id: int) -> None:
    relation = session.get(UserBlock, (blocker_id, blocked_id))
    if not relation:
        raise NotFoundError("This user is not in your block list")
    session.delete(relation)
    session.flush()
    logger.info(f"User {blocker_id} unblocked user {blocked_id}")


def blocked_by(session: Session, blocker_id: int) -> List[User]:
    return list(
        session.execute(
            select(User)
            .join(UserBlock, UserBlock.blocked_id == User.id)
            .where(UserBlock.blocker_id == blocker_id)
            .order_by(UserBlock.created_at.desc())
        ).scalars().all()
    )
