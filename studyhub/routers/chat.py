import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile

from studyhub.database.connection import mongo_db_dependency
from studyhub.repositories.conversation_repository import ConversationRepository
from studyhub.repositories.user_repository import UserRepository
from studyhub.schemas.chat import CreateChatRequest, CreateGroupRequest, SendMessageRequest
from studyhub.services.chat_service import ChatService
from studyhub.services.conversation_service import ConversationQueryService
from studyhub.services.storage_service import LocalBlobStorage, get_blob_storage
from studyhub.services.user_service import UserService
from studyhub.utils.clock import Clock
from studyhub.utils.dependencies import get_clock, get_current_user


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


def get_user_service(db = Depends(mongo_db_dependency)) -> UserService:
    return UserService(UserRepository(db))


def get_chat_service(db = Depends(mongo_db_dependency), clock: Clock = Depends(get_clock)) -> ChatService:
    return ChatService(ConversationRepository(db), UserService(UserRepository(db)), clock=clock)


def get_query_service(db = Depends(mongo_db_dependency)) -> ConversationQueryService:
    return ConversationQueryService(ConversationRepository(db), UserService(UserRepository(db)))


@router.get("/users")
async def chat_candidates(current_user: dict = Depends(get_current_user), users: UserService = Depends(get_user_service)):
    candidates = await users.list_chat_candidates(current_user["_id"])
    return {"success": True, "users": candidates}


@router.post("/create")
async def create_chat(body: CreateChatRequest, current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    convo, created = await service.create_individual(current_user["_id"], body.participant_id)
    return {
        "success": True,
        "chatId": str(convo["_id"]),
        "created": created,
        "message": "Chat created successfully" if created else "Chat already exists",
    }


@router.post("/create-group")
async def create_group_chat(body: CreateGroupRequest, current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    convo = await service.create_group(current_user["_id"], body.chat_name, body.participant_ids)
    return {"success": True, "chatId": str(convo["_id"]), "message": "Group chat created successfully"}


@router.post("/{chat_id}/message")
async def send_message(
    chat_id: str,
    body: SendMessageRequest,
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
    query: ConversationQueryService = Depends(get_query_service),
):
    attachment = None
    if body.attachment_url:
        attachment = (body.attachment_url, body.attachment_name or body.attachment_url.rsplit("/", 1)[-1])
    message = await service.append_message(chat_id, current_user["_id"], body.content, body.kind, attachment)
    return {"success": True, "message": await query.present_message(message), "chatId": chat_id}


@router.post("/{chat_id}/upload")
async def upload_attachment(
    chat_id: str,
    file: UploadFile = File(...),
    content: str = Form(""),
    current_user: dict = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
    query: ConversationQueryService = Depends(get_query_service),
    storage: LocalBlobStorage = Depends(get_blob_storage),
):
    # check membership before anything lands on disk
    await service.require_member(chat_id, current_user["_id"])
    # one byte over the ceiling is enough to reject
    data = await file.read(storage.max_bytes + 1)
    blob = await storage.store(data, file.content_type, file.filename)
    message = await service.append_message(
        chat_id, current_user["_id"], content, blob.kind, (blob.url, blob.original_filename)
    )
    return {
        "success": True,
        "message": await query.present_message(message),
        "fileUrl": blob.url,
        "fileName": blob.original_filename,
    }


@router.post("/{chat_id}/read")
async def mark_read(chat_id: str, current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    await service.mark_read(chat_id, current_user["_id"])
    return {"success": True}


@router.delete("/{chat_id}")
async def delete_chat(chat_id: str, current_user: dict = Depends(get_current_user), service: ChatService = Depends(get_chat_service)):
    await service.deactivate(chat_id, current_user["_id"])
    return {"success": True, "message": "Chat deleted successfully"}
