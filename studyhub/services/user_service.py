import logging
from typing import Dict, Iterable, List, Optional

from pymongo.errors import PyMongoError

from studyhub.repositories.user_repository import UserRepository
from studyhub.schemas.user import UserPublic
from studyhub.utils.exceptions import InvalidArgumentError, UpstreamFailureError


logger = logging.getLogger(__name__)

UNKNOWN_USER_NAME = "Unknown user"


def to_public(user: dict) -> UserPublic:
    return UserPublic(
        id=str(user["_id"]),
        display_name=user.get("name") or user.get("email") or UNKNOWN_USER_NAME,
        avatar_url=user.get("avatar"),
        email=user.get("email"),
        is_active=user.get("is_active", True),
    )


class UserService:
    """Identity lookups the chat core depends on."""

    def __init__(self, user_repository: UserRepository):
        self.user_repository = user_repository

    async def get_user(self, user_id: str) -> Optional[UserPublic]:
        try:
            user = await self.user_repository.get_user_by_id(user_id)
        except PyMongoError as exc:
            logger.error("User lookup failed for %s", user_id, exc_info=True)
            raise UpstreamFailureError("Identity service unavailable") from exc
        return to_public(user) if user else None

    async def require_active_users(self, user_ids: Iterable[str]) -> Dict[str, UserPublic]:
        """
        Confirm every id belongs to an active user
        - Unknown ids and deactivated users are rejected together
        - Returns the resolved users keyed by id
        """
        wanted = list(dict.fromkeys(user_ids))
        found = await self._load(wanted)
        missing = [uid for uid in wanted if uid not in found or not found[uid].is_active]
        if missing:
            raise InvalidArgumentError(f"Unknown or inactive user(s): {', '.join(missing)}")
        return found

    async def resolve_many(self, user_ids: Iterable[str]) -> Dict[str, UserPublic]:
        """
        Hydrate ids for display
        - Never fails on unknown ids: they get a placeholder name
        """
        wanted = list(dict.fromkeys(user_ids))
        found = await self._load(wanted)
        for uid in wanted:
            if uid not in found:
                found[uid] = UserPublic(id=uid, display_name=UNKNOWN_USER_NAME, is_active=False)
        return found

    async def list_chat_candidates(self, user_id: str) -> List[UserPublic]:
        try:
            users = await self.user_repository.list_active_except(user_id)
        except PyMongoError as exc:
            logger.error("Listing chat candidates failed", exc_info=True)
            raise UpstreamFailureError("Identity service unavailable") from exc
        return [to_public(u) for u in users]

    async def _load(self, user_ids: List[str]) -> Dict[str, UserPublic]:
        if not user_ids:
            return {}
        try:
            users = await self.user_repository.get_users_by_ids(user_ids)
        except PyMongoError as exc:
            logger.error("Bulk user lookup failed", exc_info=True)
            raise UpstreamFailureError("Identity service unavailable") from exc
        return {str(u["_id"]): to_public(u) for u in users}
