from datetime import datetime
from typing import Dict, List, Literal, Optional, TypedDict

from bson import ObjectId

from studyhub.models.message import MessageDocument


ConversationKind = Literal["individual", "group"]


class ConversationDocument(TypedDict, total=False):
    _id: ObjectId
    kind: ConversationKind
    participants: List[str]
    # individual only: "<low id>:<high id>"
    pair_key: Optional[str]
    # group only
    name: Optional[str]
    admin_id: Optional[str]
    messages: List[MessageDocument]
    message_count: int
    last_message_id: Optional[ObjectId]
    # per-user unread counters (user_id -> count)
    unread_counts: Dict[str, int]
    active: bool
    created_at: datetime
    updated_at: datetime
