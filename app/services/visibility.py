"""Per-user deletion ledger and the visibility filter built on it."""

from typing import Collection, Iterable, List, Sequence, Set

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from app.models.message import DeletedMessage, Message


def deleted_ids_for(session: Session, user_id: int, message_ids: Iterable[int]) -> Set[int]:
    """Ids among ``message_ids`` that ``user_id`` has deleted for themselves, in one query."""
    ids = list(message_ids)
    if not ids:
        return set()
    rows = session.execute(
        select(DeletedMessage.message_id).where(
            DeletedMessage.user_id == user_id,
            DeletedMessage.message_id.in_(ids),
        )
    ).scalars()
    return set(rows)


def filter_visible(messages: Sequence[Message], deleted_ids: Set[int]) -> List[Message]:
    return [message for message in messages if message.id not in deleted_ids]


def visible_for(session: Session, user_id: int, messages: Sequence[Message]) -> List[Message]:
    deleted = deleted_ids_for(session, user_id, (message.id for message in messages))
    return filter_visible(messages, deleted)


def is_visible(session: Session, user_id: int, message: Message) -> bool:
    return bool(visible_for(session, user_id, [message]))


def hidden_from(session: Session, message_id: int) -> Set[int]:
    """Users who deleted ``message_id`` for themselves."""
    return set(
        session.execute(
            select(DeletedMessage.user_id).where(DeletedMessage.message_id == message_id)
        ).scalars()
    )


def hidden_by_all(session: Session, conversation_id: int, user_ids: Collection[int]) -> List[int]:
    """Ids of messages in ``conversation_id`` that every one of ``user_ids`` has deleted."""
    if not user_ids:
        return []
    return list(
        session.execute(
            select(DeletedMessage.message_id)
            .join(Message, Message.id == DeletedMessage.message_id)
            .where(
                Message.conversation_id == conversation_id,
                DeletedMessage.user_id.in_(list(user_ids)),
            )
            .group_by(DeletedMessage.message_id)
            .having(func.count() >= len(user_ids))
        ).scalars().all()
    )


def add_marker(session: Session, user_id: int, message_id: int) -> DeletedMessage:
    marker = DeletedMessage(user_id=user_id, message_id=message_id)
    session.add(marker)
    session.flush()
    return marker


def count_markers(session: Session, message_id: int) -> int:
    return session.execute(
        select(func.count()).select_from(DeletedMessage).where(DeletedMessage.message_id == message_id)
    ).scalar_one()


def clear_markers(session: Session, message_id: int) -> None:
    session.execute(delete(DeletedMessage).where(DeletedMessage.message_id == message_id))
