"""Attachment store glue between messages and the media processor."""

from typing import List, Sequence

from app.core.config import settings
from app.core.errors import MediaProcessingError
from app.core.media_handle.cloudinary import MediaProcessor
from app.database import TransactionScope
from app.models.message import Attachment, Message


ATTACHMENT_SIZE = (settings.ATTACHMENT_WIDTH, settings.ATTACHMENT_HEIGHT)


def attach(tx: TransactionScope, media: MediaProcessor, message: Message, files: Sequence[bytes]) -> List[Attachment]:
    """Process every file and attach the stored references to ``message``.

    The first failing upload raises, which aborts the surrounding scope. Files
    already uploaded for this message are removed again before re-raising.
    """
    attached = []
    try:
        for raw in files:
            stored = media.process(raw, ATTACHMENT_SIZE, settings.ATTACHMENT_FORMAT)
            attachment = Attachment(file_url=stored.url, public_id=stored.public_id)
            message.attachments.append(attachment)
            attached.append(attachment)
    except MediaProcessingError:
        for attachment in attached:
            media.remove(attachment.public_id)
        raise
    tx.session.flush()
    return attached


def detach_all(tx: TransactionScope, media: MediaProcessor, message: Message) -> None:
    """Drop every attachment of ``message``; remote files go once the scope commits."""
    public_ids = [a.public_id for a in message.attachments if a.public_id]
    message.attachments.clear()
    tx.session.flush()
    for public_id in public_ids:
        tx.after_commit(lambda public_id=public_id: media.remove(public_id))
