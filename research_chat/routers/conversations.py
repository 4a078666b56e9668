# research_chat/routers/conversations.py
from typing import Annotated, List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import ChatAppError, http_error
from ..schemas import ConversationCreate, ConversationOut, ConversationUpdate, MessageOut
from ..services import conversations as conversation_service
from ..services import messages as message_service

router = APIRouter(prefix="/conversations", tags=["conversations"])

conversation_db = Annotated[Session, Depends(get_db)]


@router.post("", response_model=ConversationOut, status_code=status.HTTP_201_CREATED)
def create_conversation(payload: ConversationCreate, db: conversation_db):
    try:
        return conversation_service.create_conversation(db, user_id=payload.user_id, title=payload.title)
    except ChatAppError as e:
        raise http_error(e)


@router.get("", response_model=List[ConversationOut])
def list_conversations(db: conversation_db, user_id: int = Query(...)):
    return conversation_service.list_conversations(db, user_id)


# declared before /{conversation_id} routes so "search" is not read as an id
@router.get("/search", response_model=List[ConversationOut])
def search_conversations(
    db: conversation_db,
    user_id: int = Query(...),
    query: str = Query(default=""),
):
    return conversation_service.search_conversations(db, user_id, query)


@router.patch("/{conversation_id}", response_model=ConversationOut)
def update_conversation(conversation_id: int, payload: ConversationUpdate, db: conversation_db):
    try:
        return conversation_service.update_conversation(
            db, conversation_id, payload.user_id, title=payload.title
        )
    except ChatAppError as e:
        raise http_error(e)


@router.delete("/{conversation_id}", response_model=bool)
def delete_conversation(conversation_id: int, db: conversation_db, user_id: int = Query(...)):
    return conversation_service.delete_conversation(db, conversation_id, user_id)


@router.get("/{conversation_id}/messages", response_model=List[MessageOut])
def get_conversation_messages(conversation_id: int, db: conversation_db):
    return message_service.list_messages(db, conversation_id)
