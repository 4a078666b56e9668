# research_chat/main.py
import logging
from datetime import datetime, timezone

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from . import config
from .database import init_db
from .routers import auth, chats, conversations

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Research Chat API")

init_db()  # create tables
app.include_router(auth.authRoutes)
app.include_router(auth.userRoutes)
app.include_router(conversations.router)
app.include_router(chats.router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/healthcheck")
def healthcheck() -> dict:
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("research_chat.main:app", host="0.0.0.0", port=8000, reload=True)
