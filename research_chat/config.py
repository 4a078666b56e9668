# research_chat/config.py
import os

from dotenv import load_dotenv

# Load .env once here
load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./research_chat.db")
SQL_ECHO = _flag("SQL_ECHO")  # set True to log SQL in dev

SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", "24"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# "template" works offline, "openai" needs OPENAI_API_KEY
AI_BACKEND = os.getenv("AI_BACKEND", "template").strip().lower()
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = (os.getenv("OPENAI_MODEL") or "").strip() or "gpt-4o-mini"
AI_MAX_OUTPUT_TOKENS = int(os.getenv("AI_MAX_OUTPUT_TOKENS", "600"))
