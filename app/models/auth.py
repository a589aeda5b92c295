from sqlalchemy.orm import relationship
from sqlalchemy import Column, BigInteger, String, Boolean, DateTime, ForeignKey, Text
from app.models.base import Base, BigId, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"
    
    id = Column(BigId, primary_key=True, index=True, autoincrement=True)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, default="user", nullable=False)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    bio = Column(Text, nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_blocked = Column(Boolean, default=False, nullable=False)
    otp_code = Column(String, index=True, nullable=True)
    otp_expires_at = Column(DateTime(timezone=True), nullable=True)
    otp_attempts = Column(BigInteger, default=0, nullable=False)
    
    
    conversations = relationship("Conversation", secondary="conversation_participants", back_populates="participants")
    sent_messages = relationship("Message", foreign_keys="Message.sender_id", back_populates="sender", passive_deletes="all")
    
    
    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', email='{self.email}', role='{self.role}')>"



class UserBlock(Base, TimestampMixin):
    __tablename__ = "user_blocks"
    
    blocker_id = Column(BigId, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    blocked_id = Column(BigId, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True)
    
    blocker = relationship("User", foreign_keys=[blocker_id])
    blocked = relationship("User", foreign_keys=[blocked_id])
    
    def __repr__(self):
        return f"<UserBlock(blocker_id={self.blocker_id}, blocked_id={self.blocked_id})>"
