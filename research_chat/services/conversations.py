# research_chat/services/conversations.py
import logging
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ..database import commit_or_rollback
from ..errors import AccessDeniedError, NotFoundError
from ..models import ChatMessage, Conversation, Users, utcnow

logger = logging.getLogger(__name__)


def get_owned_conversation(db: Session, conversation_id: int, user_id: int) -> Optional[Conversation]:
    """Fetch by id *and* owner; a foreign conversation looks exactly like a missing one."""
    return (
        db.query(Conversation)
        .filter(Conversation.id == conversation_id, Conversation.user_id == user_id)
        .first()
    )


def require_active_user(db: Session, user_id: int) -> Users:
    user = db.get(Users, user_id)
    if user is None:
        raise NotFoundError(f"User with id {user_id} does not exist")
    if not user.is_active:
        raise NotFoundError(f"User with id {user_id} is not active")
    return user


def add_conversation(db: Session, *, user_id: int, title: str) -> Conversation:
    require_active_user(db, user_id)
    now = utcnow()
    conversation = Conversation(user_id=user_id, title=title, created_at=now, updated_at=now)
    db.add(conversation)
    db.flush()
    return conversation


def create_conversation(db: Session, *, user_id: int, title: str) -> Conversation:
    conversation = add_conversation(db, user_id=user_id, title=title)
    commit_or_rollback(db, "Conversation creation")
    db.refresh(conversation)
    return conversation


def list_conversations(db: Session, user_id: int) -> List[Conversation]:
    return (
        db.query(Conversation)
        .filter(Conversation.user_id == user_id)
        .order_by(desc(Conversation.updated_at), desc(Conversation.id))
        .all()
    )


def update_conversation(
    db: Session, conversation_id: int, user_id: int, *, title: Optional[str] = None
) -> Conversation:
    conversation = get_owned_conversation(db, conversation_id, user_id)
    if conversation is None:
        raise AccessDeniedError()
    if title is not None:
        conversation.title = title
    conversation.updated_at = utcnow()
    commit_or_rollback(db, "Conversation update")
    db.refresh(conversation)
    return conversation


def delete_conversation(db: Session, conversation_id: int, user_id: int) -> bool:
    conversation = get_owned_conversation(db, conversation_id, user_id)
    if conversation is None:
        return False
    db.delete(conversation)  # messages and their sources go with it
    commit_or_rollback(db, "Conversation deletion")
    logger.info("Deleted conversation %s of user %s", conversation_id, user_id)
    return True


def search_conversations(db: Session, user_id: int, query: str) -> List[Conversation]:
    """
    Case-insensitive substring search over the user's conversation titles and
    message contents. A blank query matches nothing.
    """
    term = (query or "").strip()
    if not term:
        return []

    by_title = (
        db.query(Conversation.id)
        .filter(
            Conversation.user_id == user_id,
            Conversation.title.icontains(term, autoescape=True),
        )
        .all()
    )
    by_content = (
        db.query(Conversation.id)
        .join(ChatMessage, ChatMessage.conversation_id == Conversation.id)
        .filter(
            Conversation.user_id == user_id,
            ChatMessage.content.icontains(term, autoescape=True),
        )
        .distinct()
        .all()
    )

    matched_ids = {row.id for row in by_title} | {row.id for row in by_content}
    if not matched_ids:
        return []
    return (
        db.query(Conversation)
        .filter(Conversation.id.in_(matched_ids))
        .order_by(desc(Conversation.updated_at), desc(Conversation.id))
        .all()
    )
