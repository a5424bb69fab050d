import logging
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from yamifit_chatbot.core.logging_config import setup_logging

setup_logging()

from yamifit_chatbot.core.config import settings
from yamifit_chatbot.core.exceptions import register_exception_handlers
from yamifit_chatbot.database import Base, engine
from yamifit_chatbot.routers import chat
from yamifit_chatbot.services.prompts import IDENTITY_CONTRACT_VERSION
import yamifit_chatbot.models  # noqa: F401  registers tables on Base

logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)
app = FastAPI(title="YamiFit Chatbot API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ALLOW_ORIGINS.split(",") if o.strip()],
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

app.include_router(chat.router)

logger.info(f"YamiFit Chatbot API ready (identity contract {IDENTITY_CONTRACT_VERSION})")

@app.get("/")
async def root():
    return {"message": "YamiFit Chatbot API is running"}

@app.get("/health")
async def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
