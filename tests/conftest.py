from datetime import datetime, timedelta, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient

from fakes.async_mongo import AsyncMockDatabase
from studyhub.database.connection import mongo_db_dependency
from studyhub.main import app
from studyhub.repositories.conversation_repository import ConversationRepository
from studyhub.repositories.user_repository import UserRepository
from studyhub.services.chat_service import ChatService
from studyhub.services.conversation_service import ConversationQueryService
from studyhub.services.storage_service import LocalBlobStorage, get_blob_storage
from studyhub.services.user_service import UserService
from studyhub.utils.dependencies import get_clock
from studyhub.utils.security import create_access_token


class FakeClock:
    """Strictly increasing clock: every reading is one second after the last."""

    def __init__(self, start: datetime = datetime(2024, 9, 2, 8, 0, tzinfo=timezone.utc)) -> None:
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def mongo_db():
    client = mongomock.MongoClient(tz_aware=True)
    db = client["studyhub_test"]
    _create_conversation_indexes(db)
    return db


def _create_conversation_indexes(db) -> None:
    # same unique pair index ConversationRepository.ensure_indexes builds
    db["conversations"].create_index([("participants", 1)])
    db["conversations"].create_index(
        [("pair_key", 1)],
        unique=True,
        partialFilterExpression={"kind": "individual", "active": True},
    )


@pytest.fixture
def db(mongo_db):
    return AsyncMockDatabase(mongo_db)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def users(mongo_db):
    """Seed the identity collection; returns name -> user id."""
    docs = {
        "ana": {"name": "Ana Lima", "email": "ana@studyhub.edu", "avatar": "/img/ana.png", "is_active": True},
        "ben": {"name": "Ben Okafor", "email": "ben@studyhub.edu", "avatar": None, "is_active": True},
        "cleo": {"name": "Cleo Park", "email": "cleo@studyhub.edu", "avatar": None, "is_active": True},
        "dan": {"name": "Dan Ruiz", "email": "dan@studyhub.edu", "avatar": None, "is_active": False},
        "eve": {"name": "Eve Stone", "email": "eve@studyhub.edu", "avatar": None, "is_active": True},
    }
    ids = {}
    for key, doc in docs.items():
        ids[key] = str(mongo_db["users"].insert_one(dict(doc)).inserted_id)
    return ids


@pytest.fixture
def user_service(db):
    return UserService(UserRepository(db))


@pytest.fixture
def chat_service(db, user_service, clock):
    return ChatService(ConversationRepository(db), user_service, clock=clock)


@pytest.fixture
def query_service(db, user_service):
    return ConversationQueryService(ConversationRepository(db), user_service)


@pytest.fixture
def storage(tmp_path):
    return LocalBlobStorage(str(tmp_path / "uploads"), "/uploads/chat", max_bytes=1024)


@pytest.fixture
def client(db, clock, storage):
    app.dependency_overrides[mongo_db_dependency] = lambda: db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_blob_storage] = lambda: storage
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth():
    def _headers(user_id: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}
    return _headers
