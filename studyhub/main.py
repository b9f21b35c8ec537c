import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from studyhub.config import get_settings
from studyhub.database.connection import close_mongo_connection, connect_to_mongo, get_database
from studyhub.repositories.conversation_repository import ConversationRepository
from studyhub.repositories.user_repository import UserRepository
from studyhub.routers.chat import router as chat_router
from studyhub.routers.conversations import router as conversations_router
from studyhub.utils.exceptions import ChatError
from studyhub.utils.logging import configure_logging


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):

    configure_logging(get_settings().log_level)
    await connect_to_mongo()
    db = get_database()
    await ConversationRepository(db).ensure_indexes()
    await UserRepository(db).ensure_indexes()
    try:
        yield
    finally:
        await close_mongo_connection()


app = FastAPI(title="StudyHub Chat", lifespan=lifespan)


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


app.include_router(chat_router)
app.include_router(conversations_router)

_settings = get_settings()
app.mount(
    _settings.upload_url_prefix,
    StaticFiles(directory=_settings.upload_dir, check_dir=False),
    name="chat-uploads",
)


@app.get("/health")
async def health():
    return {"status": "ok"}
