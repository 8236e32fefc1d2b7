import logging

from fastapi import APIRouter, Depends, HTTPException

from storefront.config import settings
from storefront.dependencies import (
    check_session_owner,
    chat_factory,
    get_catalog,
    get_completions,
    get_db_path,
    get_identity,
    get_registry,
)
from storefront.models.database import get_session, log_event, save_message
from storefront.models.schemas import ChatStateResponse, SendMessageRequest
from storefront.services.auth import Identity
from storefront.services.catalog import CatalogStore
from storefront.services.chat import FALLBACK_REPLY, ChatAssistant
from storefront.services.completions import CompletionClient
from storefront.services.registry import ControllerRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions/{session_id}", tags=["chat"])


async def get_assistant(
    session_id: str,
    db_path: str = Depends(get_db_path),
    identity: Identity | None = Depends(get_identity),
    registry: ControllerRegistry = Depends(get_registry),
    catalog: CatalogStore = Depends(get_catalog),
    completions: CompletionClient = Depends(get_completions),
) -> ChatAssistant:
    session = await get_session(db_path, session_id)
    if session is None or session["status"] != "active":
        raise HTTPException(status_code=404, detail="Session not found")
    check_session_owner(session, identity)

    assistant = await registry.chat_for(session_id, chat_factory(catalog, completions))
    # the owner's live cart, re-read each request so logins and logouts show up
    owner = session["user_id"]
    assistant.cart = registry.carts.get(owner) if owner else None
    return assistant


def _state(session_id: str, assistant: ChatAssistant) -> ChatStateResponse:
    return ChatStateResponse(
        session_id=session_id,
        is_expanded=assistant.is_expanded,
        is_loading=assistant.is_loading,
        show_popup=assistant.show_popup,
        messages=assistant.messages,
    )


async def _persist(db_path: str, session_id: str, assistant: ChatAssistant, since: int):
    for message in assistant.messages[since:]:
        await save_message(
            db_path, session_id, message.role, message.text, message.created_at.isoformat()
        )


@router.get("/state", response_model=ChatStateResponse)
async def chat_state(session_id: str, assistant: ChatAssistant = Depends(get_assistant)):
    return _state(session_id, assistant)


@router.post("/toggle", response_model=ChatStateResponse)
async def toggle_chat(
    session_id: str,
    assistant: ChatAssistant = Depends(get_assistant),
    db_path: str = Depends(get_db_path),
):
    before = len(assistant.messages)
    assistant.toggle()
    await _persist(db_path, session_id, assistant, before)
    return _state(session_id, assistant)


@router.post("/messages", response_model=ChatStateResponse)
async def send_message(
    session_id: str,
    payload: SendMessageRequest,
    assistant: ChatAssistant = Depends(get_assistant),
    db_path: str = Depends(get_db_path),
):
    turns = sum(1 for m in assistant.messages if m.is_user)
    if turns >= settings.MAX_CONVERSATION_TURNS:
        raise HTTPException(status_code=429, detail="Conversation limit reached")

    before = len(assistant.messages)
    reply = await assistant.send(payload.message)
    await _persist(db_path, session_id, assistant, before)

    if reply is not None and assistant.last_intent is not None:
        await log_event(db_path, session_id, "intent_classified", {"intent": assistant.last_intent.value})
    if reply is not None and reply.text == FALLBACK_REPLY:
        await log_event(db_path, session_id, "chat_fallback")
    return _state(session_id, assistant)
