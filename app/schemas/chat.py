from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime
from app.models.chat import ConversationType


class AttachmentOut(BaseModel):
    id: int
    file_url: str
    
    model_config = ConfigDict(from_attributes=True)



class ReactionOut(BaseModel):
    user_id: int
    reaction: str
    
    model_config = ConfigDict(from_attributes=True)



class MessageOut(BaseModel):
    id: int
    conversation_id: int
    sender_id: int
    body: Optional[str] = None
    replied_message_id: Optional[int] = None
    is_edited: bool
    is_read: bool
    created_at: datetime
    attachments: List[AttachmentOut] = []
    reactions: List[ReactionOut] = []
    
    model_config = ConfigDict(from_attributes=True)



class MessageList(BaseModel):
    messages: List[MessageOut]



class ReactRequest(BaseModel):
    reaction: str = Field(..., max_length=32)
    
    @field_validator('reaction')
    @classmethod
    def reaction_not_empty(cls, v: str):
        if not v.strip():
            raise ValueError('Reaction must not be empty')
        return v.strip()
    
    
    
class ParticipantOut(BaseModel):
    id: int
    username: str
    
    model_config = ConfigDict(from_attributes=True)



class ConversationOut(BaseModel):
    id: int
    type: ConversationType
    title: Optional[str] = None
    created_at: datetime
    participants: List[ParticipantOut]
    
    model_config = ConfigDict(from_attributes=True)



class PrivateConversationCreate(BaseModel):
    user_id: int



class GroupConversationCreate(BaseModel):
    title: Optional[str] = None
    member_ids: List[int] = Field(..., min_length=1)
