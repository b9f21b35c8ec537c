from typing import Optional, TypedDict


class UserDocument(TypedDict, total=False):

    _id: str
    email: str
    name: str
    avatar: Optional[str]
    role: str
    is_active: bool
