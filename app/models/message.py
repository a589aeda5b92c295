from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from app.models.base import Base, BigId, TimestampMixin, utcnow


class Message(Base, TimestampMixin):
    __tablename__ = "messages"
    
    id = Column(BigId, primary_key=True, index=True, autoincrement=True)
    conversation_id = Column(BigId, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    body = Column(Text, nullable=True)
    replied_message_id = Column(BigId, ForeignKey("messages.id", ondelete="SET NULL"), nullable=True, index=True)
    is_edited = Column(Boolean, default=False, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    
    
    conversation = relationship("Conversation", back_populates="messages")
    sender = relationship("User", foreign_keys=[sender_id], back_populates="sent_messages")
    replied_message = relationship("Message", remote_side=[id])
    attachments = relationship("Attachment", back_populates="message", order_by="Attachment.id", cascade="all, delete-orphan", passive_deletes=True)
    reactions = relationship("MessageReaction", back_populates="message", cascade="all, delete-orphan", passive_deletes=True)
    
    
    __table_args__ = (
        Index('ix_messages_conversation_created', 'conversation_id', 'created_at'),
    )
    
    def __repr__(self):
        return f"<Message(id={self.id}, conversation_id={self.conversation_id}, sender_id={self.sender_id}, is_edited={self.is_edited}, is_read={self.is_read})>"



class Attachment(Base, TimestampMixin):
    __tablename__ = "attachments"
    
    id = Column(BigId, primary_key=True, index=True, autoincrement=True)
    message_id = Column(BigId, ForeignKey("messages.id", ondelete="CASCADE"), nullable=False, index=True)
    file_url = Column(String, nullable=False)
    public_id = Column(String, nullable=True)
    
    message = relationship("Message", back_populates="attachments")
    
    def __repr__(self):
        return f"<Attachment(id={self.id}, message_id={self.message_id})>"



class DeletedMessage(Base, TimestampMixin):
    __tablename__ = "deleted_messages"
    
    user_id = Column(BigId, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    message_id = Column(BigId, ForeignKey("messages.id", ondelete="CASCADE"), primary_key=True, index=True)
    
    def __repr__(self):
        return f"<DeletedMessage(user_id={self.user_id}, message_id={self.message_id})>"



class MessageReaction(Base, TimestampMixin):
    __tablename__ = "message_reactions"
    
    id = Column(BigId, primary_key=True, index=True, autoincrement=True)
    user_id = Column(BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    message_id = Column(BigId, ForeignKey("messages.id", ondelete="CASCADE"), nullable=False, index=True)
    reaction = Column(String(32), nullable=False)
    
    message = relationship("Message", back_populates="reactions")
    
    __table_args__ = (
        UniqueConstraint('user_id', 'message_id', name='uq_message_reactions_user_message'),
    )
    
    def __repr__(self):
        return f"<MessageReaction(user_id={self.user_id}, message_id={self.message_id}, reaction='{self.reaction}')>"
