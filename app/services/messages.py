"""
Message lifecycle engine.

A message is Active once sent, becomes partially deleted as participants hide
it for themselves, and is purged (message, attachments, reactions and
markers) when every participant has hidden it. The sender may instead unsend
it while nobody has read it yet.

Every operation receives the TransactionScope it runs in; nothing here
commits on its own. Rows that get mutated are re-read with ``FOR UPDATE``
inside that scope, so the existence/visibility checks and the write happen
under the same lock.
"""

import enum
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from app.core.errors import BadRequestError, BlockedError, ForbiddenError, NotFoundError
from app.core.logger import logger
from app.core.media_handle.cloudinary import MediaProcessor
from app.database import TransactionScope
from app.models.chat import ConversationType
from app.models.message import Message, MessageReaction
from app.services import attachments, blocks, conversations, visibility


class ReactionOutcome(str, enum.Enum):
    created = "created"
    updated = "updated"
    removed = "removed"


def can_react(message: Message, user_id: int) -> bool:
    # Reacting is limited to one's own messages for now.
    return message.sender_id == user_id


def _has_content(body: Optional[str], files: Sequence[bytes]) -> bool:
    return bool(body and body.strip()) or bool(files)


def _locked_message(tx: TransactionScope, conversation_id: int, message_id: int, sender_id: Optional[int] = None) -> Optional[Message]:
    query = select(Message).where(
        Message.id == message_id,
        Message.conversation_id == conversation_id,
    )
    if sender_id is not None:
        query = query.where(Message.sender_id == sender_id)
    return tx.session.execute(
        query.with_for_update().execution_options(populate_existing=True)
    ).scalar_one_or_none()


class MessageLifecycle:

    def __init__(self, media: MediaProcessor):
        self.media = media

    def create(
        self,
        tx: TransactionScope,
        user_id: int,
        conversation_id: int,
        body: Optional[str] = None,
        replied_message_id: Optional[int] = None,
        files: Sequence[bytes] = (),
    ) -> Message:
        if not _has_content(body, files):
            raise BadRequestError("Message must contain text or at least one attachment")

        session = tx.session
        conversation = conversations.authorize(session, conversation_id, user_id)

        if conversation.type == ConversationType.private:
            receiver = conversations.other_participant(conversation, user_id)
            if receiver and blocks.is_blocked(session, receiver.id, user_id):
                raise BlockedError("You were blocked by selected user")
        # TODO: group conversations have no block-list check yet

        if replied_message_id is not None:
            replied = session.get(Message, replied_message_id)
            if (
                not replied
                or replied.conversation_id != conversation_id
                or not visibility.is_visible(session, user_id, replied)
            ):
                raise BadRequestError("There is no message to reply with such id")

        message = Message(
            conversation_id=conversation_id,
            sender_id=user_id,
            body=body.strip() if body else None,
            replied_message_id=replied_message_id,
        )
        session.add(message)
        session.flush()

        if files:
            attachments.attach(tx, self.media, message, files)

        logger.info(f"Message {message.id} sent by user {user_id} in conversation {conversation_id} with {len(files)} attachments")
        return message

    def edit(
        self,
        tx: TransactionScope,
        user_id: int,
        conversation_id: int,
        message_id: int,
        body: Optional[str],
        files: Sequence[bytes] = (),
    ) -> Message:
        if not _has_content(body, files):
            raise BadRequestError("Message must contain text or at least one attachment")

        message = _locked_message(tx, conversation_id, message_id, sender_id=user_id)
        if not message:
            raise NotFoundError("There is no such message that you can edit")

        if not visibility.is_visible(tx.session, user_id, message):
            raise NotFoundError("There is no message with such id")

        message.body = body.strip() if body else None
        message.is_edited = True
        attachments.detach_all(tx, self.media, message)
        if files:
            attachments.attach(tx, self.media, message, files)

        logger.info(f"Message {message.id} edited by user {user_id}")
        return message

    def delete(self, tx: TransactionScope, user_id: int, conversation_id: int, message_id: int) -> bool:
        """Hide a message for ``user_id``; purge it once every participant hid it.

        Returns whether the message got purged. Callers answer the same way
        in both cases.
        """
        session = tx.session
        conversation = conversations.authorize(session, conversation_id, user_id)

        message = _locked_message(tx, conversation_id, message_id)
        if not message:
            raise NotFoundError("There is no such message that you can delete")

        if not visibility.is_visible(session, user_id, message):
            raise NotFoundError("There is no message with such id")

        try:
            visibility.add_marker(session, user_id, message.id)
        except IntegrityError:
            raise NotFoundError("There is no message with such id")

        # recount under the row lock taken above
        if visibility.count_markers(session, message.id) < len(conversation.participants):
            logger.info(f"Message {message.id} deleted for user {user_id}")
            return False

        self._purge(tx, message)
        logger.info(f"Message {message.id} purged after deletion by every participant")
        return True

    def unsend(self, tx: TransactionScope, user_id: int, conversation_id: int, message_id: int) -> None:
        message = _locked_message(tx, conversation_id, message_id, sender_id=user_id)
        if not message or message.is_read:
            raise NotFoundError("There is no such message that you can unsend")

        self._purge(tx, message)
        logger.info(f"Message {message_id} unsent by user {user_id}")

    def react(self, tx: TransactionScope, user_id: int, conversation_id: int, message_id: int, reaction: str) -> ReactionOutcome:
        session = tx.session
        message = _locked_message(tx, conversation_id, message_id)
        if not message or not can_react(message, user_id):
            raise NotFoundError("There is no such message to react to")

        existing = session.execute(
            select(MessageReaction)
            .where(MessageReaction.user_id == user_id, MessageReaction.message_id == message.id)
            .with_for_update()
        ).scalar_one_or_none()

        if existing is None:
            session.add(MessageReaction(user_id=user_id, message_id=message.id, reaction=reaction))
            session.flush()
            return ReactionOutcome.created

        if existing.reaction == reaction:
            session.delete(existing)
            session.flush()
            return ReactionOutcome.removed

        existing.reaction = reaction
        session.flush()
        return ReactionOutcome.updated

    def list_for_conversation(
        self,
        tx: TransactionScope,
        user_id: int,
        conversation_id: int,
        search: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> List[Message]:
        session = tx.session
        conversations.authorize(session, conversation_id, user_id)

        query = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .options(selectinload(Message.attachments), selectinload(Message.reactions))
            .order_by(Message.created_at.desc(), Message.id.desc())
        )
        if search:
            query = query.where(Message.body.icontains(search, autoescape=True))
        if since is not None:
            query = query.where(Message.created_at >= since)

        found = session.execute(query).scalars().all()
        visible = visibility.visible_for(session, user_id, found)
        if not visible:
            raise NotFoundError("There are no messages for such conversation")
        return visible

    def get_one(self, tx: TransactionScope, user_id: int, conversation_id: int, message_id: int) -> Message:
        session = tx.session
        message = session.execute(
            select(Message)
            .where(Message.id == message_id, Message.conversation_id == conversation_id)
            .options(selectinload(Message.attachments), selectinload(Message.reactions))
        ).scalar_one_or_none()
        if not message:
            raise NotFoundError("There is no message with such id")

        if not conversations.is_participant(conversations.resolve(session, conversation_id), user_id):
            raise ForbiddenError("This message is not yours")

        if not visibility.is_visible(session, user_id, message):
            raise NotFoundError("There is no message with such id")
        return message

    def mark_read(self, tx: TransactionScope, user_id: int, conversation_id: int, message_id: int) -> Message:
        session = tx.session
        conversations.authorize(session, conversation_id, user_id)

        message = _locked_message(tx, conversation_id, message_id)
        if (
            not message
            or message.sender_id == user_id
            or not visibility.is_visible(session, user_id, message)
        ):
            raise NotFoundError("There is no such message that you can mark as read")

        if not message.is_read:
            message.is_read = True
            session.flush()
            logger.info(f"Message {message.id} read by user {user_id}")
        return message

    def purge_left_behind(self, tx: TransactionScope, leaving_user_id: int) -> int:
        """Purge messages that every remaining participant already deleted.

        Run before ``leaving_user_id`` drops out of their conversations, since
        their departure lowers the participant count a purge waits for. Their
        own messages are skipped; those go with the account.
        """
        session = tx.session
        purged = 0
        for conversation in conversations.list_for_user(session, leaving_user_id):
            remaining = conversation.participant_ids - {leaving_user_id}
            for message_id in visibility.hidden_by_all(session, conversation.id, remaining):
                message = _locked_message(tx, conversation.id, message_id)
                if not message or message.sender_id == leaving_user_id:
                    continue
                # recount under the lock, the leaving user's marker excluded
                if len(visibility.hidden_from(session, message.id) & remaining) < len(remaining):
                    continue
                self._purge(tx, message)
                purged += 1

        if purged:
            logger.info(f"{purged} messages purged as user {leaving_user_id} left their conversations")
        return purged

    def _purge(self, tx: TransactionScope, message: Message) -> None:
        visibility.clear_markers(tx.session, message.id)
        attachments.detach_all(tx, self.media, message)
        tx.session.delete(message)
        tx.session.flush()
