"""Conversation gate: membership resolution and conversation setup."""

from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.core.errors import BadRequestError, NotFoundError
from app.core.logger import logger
from app.models.auth import User
from app.models.chat import Conversation, ConversationType, conversation_participants


def resolve(session: Session, conversation_id: int) -> Conversation:
    conversation = session.get(
        Conversation, conversation_id, options=[selectinload(Conversation.participants)]
    )
    if not conversation:
        raise NotFoundError("There is no conversation with such id")
    return conversation


def authorize(session: Session, conversation_id: int, user_id: int) -> Conversation:
    """Return the conversation if ``user_id`` takes part in it.

    A non-participant gets the same NotFound as a missing conversation so the
    existence of other people's conversations is not leaked.
    """
    conversation = session.get(
        Conversation, conversation_id, options=[selectinload(Conversation.participants)]
    )
    if not conversation or user_id not in conversation.participant_ids:
        raise NotFoundError("There is no conversation with such id for this user")
    return conversation


def is_participant(conversation: Conversation, user_id: int) -> bool:
    return user_id in conversation.participant_ids


def other_participant(conversation: Conversation, user_id: int) -> Optional[User]:
    for participant in conversation.participants:
        if participant.id != user_id:
            return participant
    return None


def _active_users(session: Session, user_ids: Iterable[int]) -> List[User]:
    ids = set(user_ids)
    users = session.execute(
        select(User).where(
            User.id.in_(ids),
            User.is_active.is_(True),
            User.is_verified.is_(True),
        )
    ).scalars().all()
    if len(users) != len(ids):
        raise NotFoundError("There is no user with such id")
    return list(users)


def find_private(session: Session, user_id: int, other_id: int) -> Optional[Conversation]:
    mine = select(conversation_participants.c.conversation_id).where(
        conversation_participants.c.user_id == user_id
    )
    theirs = select(conversation_participants.c.conversation_id).where(
        conversation_participants.c.user_id == other_id
    )
    return session.execute(
        select(Conversation)
        .where(
            Conversation.type == ConversationType.private,
            Conversation.id.in_(mine),
            Conversation.id.in_(theirs),
        )
        .limit(1)
    ).scalar_one_or_none()


def create_private(session: Session, user_id: int, other_id: int) -> tuple[Conversation, bool]:
    """Open (or reuse) the private conversation between two users.

    Returns the conversation and whether it was created by this call.
    """
    if user_id == other_id:
        raise BadRequestError("You cannot start a conversation with yourself")

    existing = find_private(session, user_id, other_id)
    if existing:
        return existing, False

    conversation = Conversation(
        type=ConversationType.private,
        participants=_active_users(session, [user_id, other_id]),
    )
    session.add(conversation)
    session.flush()
    logger.info(f"Private conversation {conversation.id} opened by user {user_id} with user {other_id}")
    return conversation, True


def create_group(session: Session, user_id: int, title: Optional[str], member_ids: Iterable[int]) -> Conversation:
    members = set(member_ids) - {user_id}
    if not members:
        raise BadRequestError("A group conversation needs at least one other participant")

    conversation = Conversation(
        type=ConversationType.group,
        title=title.strip() if title else None,
        participants=_active_users(session, members | {user_id}),
    )
    session.add(conversation)
    session.flush()
    logger.info(f"Group conversation {conversation.id} created by user {user_id} with {len(members)} members")
    return conversation


def list_for_user(session: Session, user_id: int) -> List[Conversation]:
    mine = select(conversation_participants.c.conversation_id).where(
        conversation_participants.c.user_id == user_id
    )
    return list(
        session.execute(
            select(Conversation)
            .where(Conversation.id.in_(mine))
            .options(selectinload(Conversation.participants))
            .order_by(Conversation.created_at.desc(), Conversation.id.desc())
        ).scalars().all()
    )
