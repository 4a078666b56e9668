# research_chat/routers/chats.py
from typing import Annotated, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import ChatAppError, http_error
from ..schemas import (
    AiChatRequest,
    ConversationOut,
    MessageCreate,
    MessageOut,
    ResearchSourceOut,
    StartConversationOut,
    StartConversationRequest,
)
from ..services import messages as message_service
from ..services import research
from ..services.research import ResearchProvider, ResponseGenerator

router = APIRouter(
    prefix="/chat", tags=["chat"]
)

chat_db = Annotated[Session, Depends(get_db)]
research_provider = Annotated[ResearchProvider, Depends(research.get_research_provider)]
response_generator = Annotated[ResponseGenerator, Depends(research.get_response_generator)]


@router.post("/messages", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
def create_message(body: MessageCreate, db: chat_db):
    sources = None
    if body.sources is not None:
        sources = [s.model_dump() for s in body.sources]
    try:
        return message_service.create_message(
            db,
            conversation_id=body.conversation_id,
            role=body.role,
            content=body.content,
            sources=sources,
        )
    except ChatAppError as e:
        raise http_error(e)


@router.get("/messages/{message_id}/sources", response_model=List[ResearchSourceOut])
def get_message_sources(message_id: int, db: chat_db):
    return message_service.list_message_sources(db, message_id)


@router.post("/research", response_model=MessageOut)
def chat_research(
    body: AiChatRequest,
    db: chat_db,
    provider: research_provider,
    generator: response_generator,
):
    try:
        return research.ai_chat_research(
            db,
            conversation_id=body.conversation_id,
            message=body.message,
            enable_research=body.enable_research,
            provider=provider,
            generator=generator,
        )
    except ChatAppError as e:
        raise http_error(e)


@router.post("/start", response_model=StartConversationOut, status_code=status.HTTP_201_CREATED)
def start_conversation(
    body: StartConversationRequest,
    db: chat_db,
    provider: research_provider,
    generator: response_generator,
):
    try:
        conversation, message = research.start_conversation(
            db,
            user_id=body.user_id,
            message=body.message,
            enable_research=body.enable_research,
            provider=provider,
            generator=generator,
        )
    except ChatAppError as e:
        raise http_error(e)
    return StartConversationOut(
        conversation=ConversationOut.model_validate(conversation),
        message=MessageOut.model_validate(message),
    )
