from typing import Optional

from fastapi import APIRouter, Depends, Query

from studyhub.routers.chat import get_chat_service, get_query_service
from studyhub.schemas.chat import ConversationDetail
from studyhub.services.chat_service import ChatService
from studyhub.services.conversation_service import ConversationQueryService
from studyhub.utils.dependencies import get_current_user


router = APIRouter(prefix="/conversations", tags=["chat"])


@router.get("")
async def list_conversations(current_user: dict = Depends(get_current_user), query: ConversationQueryService = Depends(get_query_service)):
    items = await query.list_for_user(current_user["_id"])
    return {"items": items}


@router.get("/{conversation_id}", response_model=ConversationDetail)
async def open_conversation(
    conversation_id: str,
    current_user: dict = Depends(get_current_user),
    query: ConversationQueryService = Depends(get_query_service),
    service: ChatService = Depends(get_chat_service),
):
    # viewing a conversation reads it; mark_read also checks membership
    convo = await service.mark_read(conversation_id, current_user["_id"])
    return await query.describe(convo, current_user["_id"])


@router.get("/{conversation_id}/messages")
async def list_messages(
    conversation_id: str,
    last_id: Optional[str] = Query(None, alias="lastId"),
    current_user: dict = Depends(get_current_user),
    query: ConversationQueryService = Depends(get_query_service),
):
    messages = await query.list_newer_than(conversation_id, current_user["_id"], last_id)
    return {"success": True, "messages": messages}
