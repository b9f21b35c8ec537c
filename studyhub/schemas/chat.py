from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from studyhub.schemas.user import CamelModel, UserSummary


class ReadReceiptOut(CamelModel):

    participant_id: str
    read_at: datetime


class MessageOut(CamelModel):

    id: str
    sender: UserSummary
    content: str
    kind: Literal["text", "file", "image"]
    attachment_url: Optional[str] = None
    attachment_name: Optional[str] = None
    created_at: datetime
    read_by: List[ReadReceiptOut] = Field(default_factory=list)


class ConversationSummary(CamelModel):

    id: str
    kind: Literal["individual", "group"]
    display_name: Optional[str] = None
    other_participants: List[UserSummary]
    last_message: Optional[MessageOut] = None
    unread_count: int = 0
    updated_at: datetime
    is_group: bool


class ConversationDetail(CamelModel):

    id: str
    kind: Literal["individual", "group"]
    display_name: Optional[str] = None
    admin_id: Optional[str] = None
    participants: List[UserSummary]
    other_participants: List[UserSummary]
    messages: List[MessageOut]
    last_message_id: Optional[str] = None
    unread_count: int = 0
    updated_at: datetime


class CreateChatRequest(CamelModel):

    participant_id: str


class CreateGroupRequest(CamelModel):

    chat_name: str
    participant_ids: List[str]


class SendMessageRequest(CamelModel):

    content: str = ""
    kind: Literal["text", "file", "image"] = "text"
    attachment_url: Optional[str] = None
    attachment_name: Optional[str] = None
