import logging
from typing import List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId

from studyhub.models.conversation import ConversationDocument
from studyhub.models.message import MessageDocument
from studyhub.repositories.conversation_repository import ConversationRepository
from studyhub.services.user_service import UserService
from studyhub.utils.clock import Clock, utc_now
from studyhub.utils.exceptions import ForbiddenError, InvalidArgumentError, NotFoundError


logger = logging.getLogger(__name__)

MESSAGE_KINDS = ("text", "file", "image")


def parse_conversation_id(conversation_id: str) -> ObjectId:
    try:
        return ObjectId(conversation_id)
    except (InvalidId, TypeError) as exc:
        raise NotFoundError() from exc


class ChatService:
    """Commands on the conversation aggregate."""

    def __init__(self, conversation_repo: ConversationRepository, user_service: UserService, clock: Clock = utc_now) -> None:
        self._conversation_repo = conversation_repo
        self._user_service = user_service
        self._clock = clock

    async def create_individual(self, initiator_id: str, other_id: str) -> Tuple[ConversationDocument, bool]:
        """Return the active one-to-one conversation for the pair, creating it if needed.

        The second element tells whether a new conversation was created.
        """
        if not other_id:
            raise InvalidArgumentError("Participant ID is required")
        if initiator_id == other_id:
            raise InvalidArgumentError("Cannot start a chat with yourself")
        await self._user_service.require_active_users([other_id])
        convo, created = await self._conversation_repo.get_or_create_individual(initiator_id, other_id, self._clock())
        if created:
            logger.info("Created individual chat %s for %s and %s", convo["_id"], initiator_id, other_id)
        return convo, created

    async def create_group(self, initiator_id: str, name: str, member_ids: List[str]) -> ConversationDocument:
        name = (name or "").strip()
        if not name:
            raise InvalidArgumentError("Chat name is required")
        members = [m for m in dict.fromkeys(member_ids or []) if m and m != initiator_id]
        if not members:
            raise InvalidArgumentError("At least one other participant is required")
        await self._user_service.require_active_users(members)
        participants = [initiator_id] + members
        convo = await self._conversation_repo.insert_group(participants, name, initiator_id, self._clock())
        logger.info("Created group chat %s (%d participants) by %s", convo["_id"], len(participants), initiator_id)
        return convo

    async def require_member(self, conversation_id: str, user_id: str) -> ConversationDocument:
        convo = await self._conversation_repo.find_for_member(parse_conversation_id(conversation_id), user_id)
        if not convo:
            raise NotFoundError()
        return convo

    async def append_message(
        self,
        conversation_id: str,
        sender_id: str,
        content: Optional[str],
        kind: str = "text",
        attachment: Optional[Tuple[str, str]] = None,
    ) -> MessageDocument:
        content = (content or "").strip()
        if kind not in MESSAGE_KINDS:
            raise InvalidArgumentError(f"Unknown message kind: {kind}")
        if kind != "text" and not attachment:
            raise InvalidArgumentError("File and image messages need an attachment")
        if not content and not attachment:
            raise InvalidArgumentError("Message content is required")

        convo_oid = parse_conversation_id(conversation_id)
        convo = await self._conversation_repo.find_for_member(convo_oid, sender_id)
        if not convo:
            raise NotFoundError()

        now = self._clock()
        attachment_url, attachment_name = attachment if attachment else (None, None)
        message: MessageDocument = {
            "_id": ObjectId(),
            "sender_id": sender_id,
            "content": content,
            "kind": kind,
            "attachment_url": attachment_url,
            "attachment_name": attachment_name,
            "created_at": now,
            "read_by": [],
        }
        applied = await self._conversation_repo.append_message(convo_oid, convo["participants"], message, now)
        if not applied:
            # deactivated between the membership check and the write
            raise NotFoundError()
        return message

    async def mark_read(self, conversation_id: str, user_id: str) -> ConversationDocument:
        """Stamp every message as read by ``user_id`` and zero their counter.

        Returns the conversation as stored after the update.
        """
        convo = await self._conversation_repo.mark_read(parse_conversation_id(conversation_id), user_id, self._clock())
        if not convo:
            raise NotFoundError()
        return convo

    async def deactivate(self, conversation_id: str, requester_id: str) -> None:
        convo_oid = parse_conversation_id(conversation_id)
        convo = await self._conversation_repo.find_active(convo_oid)
        if not convo:
            raise NotFoundError()
        if requester_id not in convo.get("participants", []):
            raise ForbiddenError("Only participants can delete a chat")
        if convo.get("kind") == "group":
            raise ForbiddenError("Group chats cannot be deleted")
        if not await self._conversation_repo.deactivate_individual(convo_oid, requester_id, self._clock()):
            # someone else deactivated it first
            raise NotFoundError()
        logger.info("Chat %s deactivated by %s", conversation_id, requester_id)
