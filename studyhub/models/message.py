from datetime import datetime
from typing import List, Literal, Optional, TypedDict

from bson import ObjectId


MessageKind = Literal["text", "file", "image"]


class ReadReceipt(TypedDict):
    participant_id: str
    read_at: datetime


class MessageDocument(TypedDict, total=False):
    _id: ObjectId
    sender_id: str
    content: str
    kind: MessageKind
    # set together, only for file and image messages
    attachment_url: Optional[str]
    attachment_name: Optional[str]
    created_at: datetime
    read_by: List[ReadReceipt]
