# research_chat/schemas.py
from datetime import datetime
from typing import Annotated, List, Literal, Optional

from pydantic import (
    AfterValidator, BaseModel, EmailStr, Field, HttpUrl, TypeAdapter, ValidationError, field_validator,
)

_http_url = TypeAdapter(HttpUrl)


def _check_url(value: str) -> str:
    try:
        _http_url.validate_python(value)
    except ValidationError:
        raise ValueError("must be a valid http(s) URL")
    return value  # stored exactly as sent, not the normalized form


UrlStr = Annotated[str, AfterValidator(_check_url)]


class SourceCitation(BaseModel):
    title: str
    url: str
    snippet: str


# ---- users / auth ----

class UserRequest(BaseModel):
    email: EmailStr
    password: Optional[str] = Field(default=None, min_length=8, max_length=120)
    display_name: str = Field(..., min_length=1, max_length=255)
    avatar_url: Optional[UrlStr] = None
    google_id: Optional[str] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class GoogleAuthRequest(BaseModel):
    google_id: str = Field(..., min_length=1)
    email: EmailStr
    display_name: str
    avatar_url: Optional[UrlStr] = None


class SessionTokenRequest(BaseModel):
    session_token: str


class UserUpdateRequest(BaseModel):
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    avatar_url: Optional[UrlStr] = None


class UserOut(BaseModel):
    id: int
    email: EmailStr
    display_name: str
    avatar_url: Optional[str]
    google_id: Optional[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True  # Pydantic v2


class SessionOut(BaseModel):
    id: int
    user_id: int
    session_token: str
    expires_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True


# ---- conversations ----

class ConversationCreate(BaseModel):
    user_id: int
    title: str = Field(..., min_length=1, max_length=255)


class ConversationUpdate(BaseModel):
    user_id: int
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)


class ConversationOut(BaseModel):
    id: int
    user_id: int
    title: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ---- messages / chat ----

class MessageCreate(BaseModel):
    conversation_id: int
    content: str = Field(..., min_length=1)
    role: Literal["user", "assistant"]
    sources: Optional[List[SourceCitation]] = None


class MessageOut(BaseModel):
    id: int
    conversation_id: int
    content: str
    role: Literal["user", "assistant"]
    sources: Optional[List[SourceCitation]]
    created_at: datetime

    class Config:
        from_attributes = True


class ResearchSourceOut(BaseModel):
    id: int
    message_id: int
    title: str
    url: str
    snippet: str
    relevance_score: float
    created_at: datetime

    class Config:
        from_attributes = True


class AiChatRequest(BaseModel):
    conversation_id: int
    message: str = Field(..., min_length=1)
    enable_research: bool = True


class StartConversationRequest(BaseModel):
    user_id: int
    message: str = Field(..., min_length=1)
    enable_research: bool = True

    @field_validator("message")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be blank")
        return value


class StartConversationOut(BaseModel):
    conversation: ConversationOut
    message: MessageOut
