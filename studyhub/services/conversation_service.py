from typing import Dict, Iterator, List, Optional

from bson import ObjectId
from bson.errors import InvalidId

from studyhub.models.conversation import ConversationDocument
from studyhub.models.message import MessageDocument
from studyhub.repositories.conversation_repository import ConversationRepository
from studyhub.schemas.chat import ConversationDetail, ConversationSummary, MessageOut, ReadReceiptOut
from studyhub.schemas.user import UserPublic
from studyhub.services.chat_service import parse_conversation_id
from studyhub.services.user_service import UserService
from studyhub.utils.exceptions import InvalidArgumentError, NotFoundError


def to_message_out(message: MessageDocument, users: Dict[str, UserPublic]) -> MessageOut:
    sender = users[message["sender_id"]]
    return MessageOut(
        id=str(message["_id"]),
        sender=sender.summary(),
        content=message.get("content", ""),
        kind=message.get("kind", "text"),
        attachment_url=message.get("attachment_url"),
        attachment_name=message.get("attachment_name"),
        created_at=message["created_at"],
        read_by=[
            ReadReceiptOut(participant_id=r["participant_id"], read_at=r["read_at"])
            for r in message.get("read_by", [])
        ],
    )


def messages_after(messages: List[MessageDocument], after_id: Optional[ObjectId]) -> Iterator[MessageDocument]:
    """Yield the messages that follow ``after_id`` in log order.

    An unknown id yields the whole log so a client with a stale mark resyncs.
    """
    start = 0
    if after_id is not None:
        for index, message in enumerate(messages):
            if message["_id"] == after_id:
                start = index + 1
                break
    for message in messages[start:]:
        yield message


def _display_name(convo: ConversationDocument, others: List[UserPublic]) -> Optional[str]:
    if convo.get("kind") == "group":
        return convo.get("name")
    return others[0].display_name if others else None


class ConversationQueryService:
    """Read side of the chat: listings, a single conversation, polling."""

    def __init__(self, conversation_repo: ConversationRepository, user_service: UserService) -> None:
        self._conversation_repo = conversation_repo
        self._user_service = user_service

    async def list_for_user(self, user_id: str) -> List[ConversationSummary]:
        conversations = await self._conversation_repo.list_for_user(user_id)
        user_ids = set()
        for convo in conversations:
            user_ids.update(convo.get("participants", []))
            last = self._last_message(convo)
            if last:
                user_ids.add(last["sender_id"])
        users = await self._user_service.resolve_many(user_ids)

        items = []
        for convo in conversations:
            others = [users[p] for p in convo.get("participants", []) if p != user_id]
            last = self._last_message(convo)
            items.append(ConversationSummary(
                id=str(convo["_id"]),
                kind=convo.get("kind", "individual"),
                display_name=_display_name(convo, others),
                other_participants=[u.summary() for u in others],
                last_message=to_message_out(last, users) if last else None,
                unread_count=convo.get("unread_counts", {}).get(user_id, 0),
                updated_at=convo["updated_at"],
                is_group=convo.get("kind") == "group",
            ))
        return items

    async def get_conversation(self, conversation_id: str, user_id: str) -> ConversationDetail:
        convo = await self._load_for_member(conversation_id, user_id)
        return await self.describe(convo, user_id)

    async def describe(self, convo: ConversationDocument, user_id: str) -> ConversationDetail:
        """Hydrate an already loaded conversation document for ``user_id``."""
        messages = convo.get("messages", [])
        users = await self._user_service.resolve_many(
            list(convo.get("participants", [])) + [m["sender_id"] for m in messages]
        )
        participants = [users[p] for p in convo.get("participants", [])]
        others = [u for u in participants if u.id != user_id]
        last_message_id = convo.get("last_message_id")
        return ConversationDetail(
            id=str(convo["_id"]),
            kind=convo.get("kind", "individual"),
            display_name=_display_name(convo, others),
            admin_id=convo.get("admin_id"),
            participants=[u.summary() for u in participants],
            other_participants=[u.summary() for u in others],
            messages=[to_message_out(m, users) for m in messages],
            last_message_id=str(last_message_id) if last_message_id else None,
            unread_count=convo.get("unread_counts", {}).get(user_id, 0),
            updated_at=convo["updated_at"],
        )

    async def list_newer_than(self, conversation_id: str, user_id: str, after_message_id: Optional[str] = None) -> List[MessageOut]:
        after_oid = None
        if after_message_id:
            try:
                after_oid = ObjectId(after_message_id)
            except (InvalidId, TypeError) as exc:
                raise InvalidArgumentError("Invalid message id") from exc
        convo = await self._load_for_member(conversation_id, user_id)
        newer = list(messages_after(convo.get("messages", []), after_oid))
        users = await self._user_service.resolve_many(m["sender_id"] for m in newer)
        return [to_message_out(m, users) for m in newer]

    async def present_message(self, message: MessageDocument) -> MessageOut:
        users = await self._user_service.resolve_many([message["sender_id"]])
        return to_message_out(message, users)

    async def _load_for_member(self, conversation_id: str, user_id: str) -> ConversationDocument:
        convo = await self._conversation_repo.find_for_member(parse_conversation_id(conversation_id), user_id)
        if not convo:
            raise NotFoundError()
        return convo

    @staticmethod
    def _last_message(convo: ConversationDocument) -> Optional[MessageDocument]:
        last_id = convo.get("last_message_id")
        if last_id is None:
            return None
        for message in reversed(convo.get("messages", [])):
            if message["_id"] == last_id:
                return message
        return None
