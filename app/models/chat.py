import enum

from sqlalchemy import Column, Enum, ForeignKey, String, Table
from sqlalchemy.orm import relationship
from app.models.base import Base, BigId, TimestampMixin


class ConversationType(str, enum.Enum):
    private = "private"
    group = "group"


conversation_participants = Table(
    "conversation_participants",
    Base.metadata,
    Column("conversation_id", BigId, ForeignKey("conversations.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", BigId, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True),
)


class Conversation(Base, TimestampMixin):
    __tablename__ = "conversations"
    
    id = Column(BigId, primary_key=True, index=True, autoincrement=True)
    type = Column(Enum(ConversationType, name="conversation_type"), default=ConversationType.private, nullable=False)
    title = Column(String, nullable=True)
    
    
    participants = relationship("User", secondary=conversation_participants, back_populates="conversations")
    messages = relationship("Message", back_populates="conversation", order_by="Message.created_at", cascade="all, delete-orphan", passive_deletes=True)
    
    
    @property
    def participant_ids(self):
        return {user.id for user in self.participants}
    
    def __repr__(self):
        return f"<Conversation(id={self.id}, type='{self.type.value}', participants={sorted(self.participant_ids)})>"
