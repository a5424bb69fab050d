from datetime import timedelta
from dotenv import load_dotenv
from pydantic_settings import BaseSettings
from typing import Optional

load_dotenv()

# Fixed by deployment, not by environment
MESSAGE_TTL = timedelta(hours=24)
MAX_INPUT_CHARS = 4000

class Settings(BaseSettings):
    # Session window
    WINDOW_LIMIT: int = 40          # max messages returned per load
    HISTORY_LIMIT: int = 20         # max historical turns replayed to the model
    HISTORY_MAX_LIMIT: int = 100    # upper clamp for GET /history?limit=

    # Generative model
    GOOGLE_CHAT_BOT_API_KEY: Optional[str] = None
    MODEL_NAME: str = "gemini-2.5-flash"
    MODEL_TIMEOUT_SECONDS: float = 30.0

    # Identity (Supabase Auth)
    SUPABASE_URL: Optional[str] = None
    SUPABASE_KEY: Optional[str] = None  # service role key, server side only
    IDENTITY_TIMEOUT_SECONDS: float = 10.0

    # Message store (Supabase Postgres). DATABASE_URL wins when set.
    DATABASE_URL: Optional[str] = None
    SUPABASE_DB_HOST: Optional[str] = None
    SUPABASE_DB_PORT: int = 5432
    SUPABASE_DB_NAME: str = "postgres"
    SUPABASE_DB_USER: str = "postgres"
    SUPABASE_DB_PASSWORD: Optional[str] = None
    SUPABASE_DB_SSL_MODE: str = "require"
    DB_STATEMENT_TIMEOUT_MS: int = 10000

    # Privileged cleanup endpoint; unset means every call is refused
    CLEANUP_SECRET: Optional[str] = None

    # Per-client request budget on /api/ routes
    RATE_LIMIT_REQUESTS: int = 30
    RATE_LIMIT_WINDOW_SECONDS: float = 60.0

    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "yamifit_chatbot.log"
    CORS_ALLOW_ORIGINS: str = "*"

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
