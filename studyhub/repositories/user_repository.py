from typing import Iterable, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from studyhub.models.user import UserDocument


def _to_object_ids(user_ids: Iterable[str]) -> List[ObjectId]:
    oids = []
    for user_id in user_ids:
        try:
            oids.append(ObjectId(user_id))
        except (InvalidId, TypeError):
            continue
    return oids


class UserRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db.get_collection("users")

    async def ensure_indexes(self) -> None:
        await self._collection.create_index([("name", ASCENDING)])

    async def get_user_by_id(self, user_id: str) -> Optional[UserDocument]:
        oids = _to_object_ids([user_id])
        if not oids:
            return None
        user = await self._collection.find_one({"_id": oids[0]})
        if user:
            user["_id"] = str(user["_id"])  # normalize to string for API layer
        return user

    async def get_users_by_ids(self, user_ids: Iterable[str]) -> List[UserDocument]:
        oids = _to_object_ids(user_ids)
        if not oids:
            return []
        cursor = self._collection.find({"_id": {"$in": oids}})
        users = await cursor.to_list(length=len(oids))
        for user in users:
            user["_id"] = str(user["_id"])
        return users

    async def list_active_except(self, user_id: str, limit: int = 500) -> List[UserDocument]:
        query: dict = {"is_active": {"$ne": False}}
        oids = _to_object_ids([user_id])
        if oids:
            query["_id"] = {"$ne": oids[0]}
        cursor = self._collection.find(query).sort("name", ASCENDING).limit(limit)
        users = await cursor.to_list(length=limit)
        for user in users:
            user["_id"] = str(user["_id"])
        return users
