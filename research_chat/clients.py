# research_chat/clients.py
from functools import lru_cache

from openai import OpenAI

from . import config


@lru_cache(maxsize=1)
def get_openai() -> OpenAI:
    # built on first use so the template backend never needs a key
    return OpenAI(api_key=config.OPENAI_API_KEY)
