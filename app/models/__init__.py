from app.models.auth import User, UserBlock
from app.models.chat import Conversation, ConversationType, conversation_participants
from app.models.message import Message, Attachment, DeletedMessage, MessageReaction


__all__ = [
    "User",
    "UserBlock",
    "Conversation",
    "ConversationType",
    "conversation_participants",
    "Message",
    "Attachment",
    "DeletedMessage",
    "MessageReaction",
]
