from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field

from backend.models.pet import PetSummary


class ChatParticipant(BaseModel):
    pet: PetSummary
    is_current_user: bool


class LastMessagePreview(BaseModel):
    content: str
    created_at: datetime
    unread: bool = False


class ChatOut(BaseModel):
    id: int
    match_id: int
    participants: list[ChatParticipant]
    last_message: LastMessagePreview | None = None
    created_at: datetime


class ChatListResponse(BaseModel):
    success: bool = True
    count: int
    chats: list[ChatOut]


class MessageSender(BaseModel):
    id: int
    is_current_user: bool


class ChatMessageOut(BaseModel):
    id: int
    chat_id: int
    content: str
    created_at: datetime
    sender: MessageSender
    attachments: list[str] = Field(default_factory=list)


class ChatDetailResponse(BaseModel):
    success: bool = True
    chat: ChatOut
    messages: list[ChatMessageOut]


class SendMessageRequest(BaseModel):
    content: str | None = None
    attachments: list[str] = Field(default_factory=list)


class SendMessageResponse(BaseModel):
    success: bool = True
    message: ChatMessageOut


class ChatForMatchRequest(BaseModel):
    match_id: int | None = Field(
        default=None, validation_alias=AliasChoices("match_id", "matchId")
    )
