# research_chat/services/messages.py
from typing import Any, Dict, List, Optional

from sqlalchemy import asc, desc
from sqlalchemy.orm import Session

from ..database import commit_or_rollback
from ..errors import NotFoundError
from ..models import ChatMessage, Conversation, ResearchSource, utcnow


def save_message(
    db: Session,
    *,
    conversation_id: int,
    role: str,
    content: str,
    sources: Optional[List[Dict[str, Any]]] = None,
) -> ChatMessage:
    """Stage a message in the current transaction; the caller commits."""
    if db.get(Conversation, conversation_id) is None:
        raise NotFoundError(f"Conversation with id {conversation_id} not found")
    msg = ChatMessage(
        conversation_id=conversation_id,
        role=role,
        content=content,
        # [] stays [], only a missing list becomes NULL
        sources=list(sources) if sources is not None else None,
        created_at=utcnow(),
    )
    db.add(msg)
    db.flush()
    return msg


def create_message(
    db: Session,
    *,
    conversation_id: int,
    role: str,
    content: str,
    sources: Optional[List[Dict[str, Any]]] = None,
) -> ChatMessage:
    msg = save_message(db, conversation_id=conversation_id, role=role, content=content, sources=sources)
    commit_or_rollback(db, "Message creation")
    db.refresh(msg)
    return msg


def list_messages(db: Session, conversation_id: int) -> List[ChatMessage]:
    return (
        db.query(ChatMessage)
        .filter(ChatMessage.conversation_id == conversation_id)
        .order_by(asc(ChatMessage.created_at), asc(ChatMessage.id))
        .all()
    )


def list_message_sources(db: Session, message_id: int) -> List[ResearchSource]:
    return (
        db.query(ResearchSource)
        .filter(ResearchSource.message_id == message_id)
        .order_by(desc(ResearchSource.relevance_score), asc(ResearchSource.id))
        .all()
    )
