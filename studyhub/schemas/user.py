from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserSummary(CamelModel):
    """Identity fields embedded in chat payloads (message senders, participants)."""

    id: str
    display_name: str
    avatar_url: Optional[str] = None


class UserPublic(UserSummary):

    # stored value, not re-validated
    email: Optional[str] = None
    is_active: bool = True

    def summary(self) -> UserSummary:
        return UserSummary(id=self.id, display_name=self.display_name, avatar_url=self.avatar_url)


class TokenPayload(BaseModel):

    sub: str
    exp: int
