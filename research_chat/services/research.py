# research_chat/services/research.py
"""
AI chat with optional research.

One request stores the user's message, optionally gathers sources from a
``ResearchProvider``, asks a ``ResponseGenerator`` for the reply and stores
the assistant message with its citations. Both messages are written in a
single transaction: if anything after the user message fails, neither row
survives.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from .. import config
from ..clients import get_openai
from ..database import commit_or_rollback
from ..errors import ChatAppError, ResearchFailedError
from ..models import ChatMessage, Conversation, ResearchSource, utcnow
from .conversations import add_conversation
from .messages import save_message

logger = logging.getLogger(__name__)

TITLE_MAX_CHARS = 50

RESEARCH_SYSTEM = (
    "You are a careful research assistant. Answer the user's question clearly. "
    "When sources are provided, ground the answer in them and cite them as [1], [2], ..."
)


@dataclass
class ResearchResult:
    title: str
    url: str
    snippet: str
    relevance_score: float = 1.0

    def __post_init__(self):
        self.relevance_score = max(0.0, min(1.0, float(self.relevance_score)))

    def citation(self) -> dict:
        return {"title": self.title, "url": self.url, "snippet": self.snippet}


class ResearchProvider(ABC):
    @abstractmethod
    def fetch_sources(self, query: str) -> List[ResearchResult]:
        ...


class ResponseGenerator(ABC):
    @abstractmethod
    def generate(self, message: str, sources: Optional[List[ResearchResult]]) -> str:
        ...


class MockResearchProvider(ResearchProvider):
    """Stand-in until a real search backend is wired up."""

    def fetch_sources(self, query: str) -> List[ResearchResult]:
        return [
            ResearchResult(
                title="Example Research Source",
                url="https://example.com",
                snippet="This is a relevant snippet from the research.",
                relevance_score=0.9,
            )
        ]


class TemplateResponseGenerator(ResponseGenerator):
    def generate(self, message: str, sources: Optional[List[ResearchResult]]) -> str:
        reply = f'AI response to: "{message}".'
        if sources:
            reply += f" This answer draws on {len(sources)} research source(s)."
        return reply


class OpenAIResponseGenerator(ResponseGenerator):
    def __init__(self, model: Optional[str] = None, max_output_tokens: Optional[int] = None, client=None):
        self.model = model or config.OPENAI_MODEL
        self.max_output_tokens = max_output_tokens or config.AI_MAX_OUTPUT_TOKENS
        self._client = client

    @property
    def client(self):
        return self._client or get_openai()

    @staticmethod
    def _context(sources: Optional[List[ResearchResult]]) -> str:
        if not sources:
            return ""
        lines = [f"[{i}] {s.title} ({s.url}): {s.snippet}" for i, s in enumerate(sources, start=1)]
        return "Sources:\n" + "\n".join(lines)

    def generate(self, message: str, sources: Optional[List[ResearchResult]]) -> str:
        user_input = message
        context = self._context(sources)
        if context:
            user_input = f"{context}\n\nQuestion: {message}"

        resp = self.client.responses.create(
            model=self.model,
            input=[
                {"role": "system", "content": RESEARCH_SYSTEM},
                {"role": "user", "content": user_input},
            ],
            max_output_tokens=self.max_output_tokens,
        )

        # Prefer output_text; fall back to assembling text from output parts
        reply = getattr(resp, "output_text", "") or ""
        if not reply and hasattr(resp, "output"):
            parts: List[str] = []
            for item in resp.output:
                if getattr(item, "type", "") == "message":
                    for c in getattr(item, "content", []):
                        if getattr(c, "type", "") == "output_text":
                            parts.append(getattr(c, "text", ""))
            reply = "".join(parts)

        if not reply:
            raise RuntimeError("No text returned by model")
        return reply


def get_research_provider() -> ResearchProvider:
    return MockResearchProvider()


def get_response_generator() -> ResponseGenerator:
    if config.AI_BACKEND == "openai":
        return OpenAIResponseGenerator()
    return TemplateResponseGenerator()


def conversation_title(message: str) -> str:
    text = message.strip()
    if len(text) > TITLE_MAX_CHARS:
        return text[:TITLE_MAX_CHARS] + "..."
    return text


def _answer(
    db: Session,
    *,
    conversation_id: int,
    message: str,
    enable_research: bool,
    provider: ResearchProvider,
    generator: ResponseGenerator,
) -> ChatMessage:
    save_message(db, conversation_id=conversation_id, role="user", content=message)

    results: Optional[List[ResearchResult]] = None
    try:
        if enable_research:
            results = list(provider.fetch_sources(message))
        reply = generator.generate(message, results)
    except ChatAppError:
        raise
    except Exception as e:
        logger.exception("Research reply failed for conversation %s", conversation_id)
        raise ResearchFailedError("Could not produce a reply") from e

    assistant = save_message(
        db,
        conversation_id=conversation_id,
        role="assistant",
        content=reply,
        sources=[r.citation() for r in results] if results is not None else None,
    )
    for r in results or []:
        db.add(
            ResearchSource(
                message_id=assistant.id,
                title=r.title,
                url=r.url,
                snippet=r.snippet,
                relevance_score=r.relevance_score,
                created_at=utcnow(),
            )
        )
    return assistant


def ai_chat_research(
    db: Session,
    *,
    conversation_id: int,
    message: str,
    enable_research: bool = True,
    provider: ResearchProvider,
    generator: ResponseGenerator,
) -> ChatMessage:
    logger.info(
        "Research chat in conversation %s (research=%s)", conversation_id, enable_research
    )
    try:
        assistant = _answer(
            db,
            conversation_id=conversation_id,
            message=message,
            enable_research=enable_research,
            provider=provider,
            generator=generator,
        )
    except Exception:
        db.rollback()
        raise
    commit_or_rollback(db, "Research chat")
    db.refresh(assistant)
    return assistant


def start_conversation(
    db: Session,
    *,
    user_id: int,
    message: str,
    enable_research: bool = True,
    provider: ResearchProvider,
    generator: ResponseGenerator,
) -> Tuple[Conversation, ChatMessage]:
    """Open a conversation named after the first message and answer it."""
    try:
        conversation = add_conversation(db, user_id=user_id, title=conversation_title(message))
        assistant = _answer(
            db,
            conversation_id=conversation.id,
            message=message,
            enable_research=enable_research,
            provider=provider,
            generator=generator,
        )
    except Exception:
        db.rollback()
        raise
    commit_or_rollback(db, "Conversation start")
    db.refresh(conversation)
    db.refresh(assistant)
    return conversation, assistant
