from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from studyhub.models.conversation import ConversationDocument
from studyhub.models.message import MessageDocument


def pair_key_for(user_a: str, user_b: str) -> str:
    return ":".join(sorted([user_a, user_b]))


class ConversationRepository:
    """Atomic document operations on the ``conversations`` collection.

    Every mutation is a single ``update_one``/``find_one_and_update`` against the
    stored document. Nothing here loads a conversation, edits it in memory and
    writes it back.
    """

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["conversations"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("participants", ASCENDING)])
        await self.collection.create_index([("updated_at", DESCENDING)])
        # at most one active individual conversation per user pair
        await self.collection.create_index(
            [("pair_key", ASCENDING)],
            unique=True,
            partialFilterExpression={"kind": "individual", "active": True},
        )

    async def find_individual(self, user_a: str, user_b: str) -> Optional[ConversationDocument]:
        return await self.collection.find_one(
            {"pair_key": pair_key_for(user_a, user_b), "kind": "individual", "active": True}
        )

    async def get_or_create_individual(self, user_a: str, user_b: str, now: datetime) -> Tuple[ConversationDocument, bool]:
        existing = await self.find_individual(user_a, user_b)
        if existing:
            return existing, False
        participants = sorted([user_a, user_b])
        query = {"pair_key": pair_key_for(user_a, user_b), "kind": "individual", "active": True}
        try:
            doc = await self.collection.find_one_and_update(
                query,
                {
                    "$setOnInsert": {
                        "participants": participants,
                        "messages": [],
                        "message_count": 0,
                        "last_message_id": None,
                        "unread_counts": {},
                        "created_at": now,
                        "updated_at": now,
                    }
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # lost the race against a concurrent creator; theirs wins
            return await self.collection.find_one(query), False
        return doc, True

    async def insert_group(self, participants: Sequence[str], name: str, admin_id: str, now: datetime) -> ConversationDocument:
        doc: ConversationDocument = {
            "kind": "group",
            "participants": list(participants),
            "name": name,
            "admin_id": admin_id,
            "messages": [],
            "message_count": 0,
            "last_message_id": None,
            "unread_counts": {},
            "active": True,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    async def find_active(self, conversation_id: ObjectId) -> Optional[ConversationDocument]:
        return await self.collection.find_one({"_id": conversation_id, "active": True})

    async def find_for_member(self, conversation_id: ObjectId, user_id: str) -> Optional[ConversationDocument]:
        return await self.collection.find_one({"_id": conversation_id, "active": True, "participants": user_id})

    async def list_for_user(self, user_id: str) -> List[ConversationDocument]:
        query = {"participants": user_id, "active": True}
        sort = [("updated_at", DESCENDING), ("_id", DESCENDING)]
        items = []
        async for doc in self.collection.find(query).sort(sort):
            items.append(doc)
        return items

    async def append_message(
        self,
        conversation_id: ObjectId,
        participants: Sequence[str],
        message: MessageDocument,
        now: datetime,
    ) -> bool:
        """Push ``message`` and update the derived fields in one write.

        ``participants`` must be the stored list; the filter matches it exactly so
        the counters incremented here are those of the current membership.
        """
        inc: Dict[str, int] = {"message_count": 1}
        for participant_id in participants:
            if participant_id != message["sender_id"]:
                inc[f"unread_counts.{participant_id}"] = 1
        result = await self.collection.update_one(
            {"_id": conversation_id, "active": True, "participants": list(participants)},
            {
                "$push": {"messages": message},
                "$set": {"last_message_id": message["_id"], "updated_at": now},
                "$inc": inc,
            },
        )
        return result.matched_count == 1

    async def mark_read(self, conversation_id: ObjectId, user_id: str, now: datetime) -> Optional[ConversationDocument]:
        """Stamp every message lacking a receipt from ``user_id`` and zero their counter.

        One write, no prior read: the array filter picks the unread messages at the
        moment the update applies. Returns the updated document, or None when the
        conversation is missing, inactive or ``user_id`` is not a participant.
        """
        return await self.collection.find_one_and_update(
            {"_id": conversation_id, "active": True, "participants": user_id},
            {
                "$push": {"messages.$[unread].read_by": {"participant_id": user_id, "read_at": now}},
                "$set": {f"unread_counts.{user_id}": 0},
            },
            array_filters=[{"unread.read_by.participant_id": {"$ne": user_id}}],
            return_document=ReturnDocument.AFTER,
        )

    async def deactivate_individual(self, conversation_id: ObjectId, user_id: str, now: datetime) -> bool:
        result = await self.collection.update_one(
            {"_id": conversation_id, "active": True, "kind": "individual", "participants": user_id},
            {"$set": {"active": False, "updated_at": now}},
        )
        return result.matched_count == 1
