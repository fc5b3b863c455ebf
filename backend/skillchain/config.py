import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


class Settings(BaseModel):
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_api_base: str = DEFAULT_GEMINI_API_BASE
    gemini_timeout: float = 60.0
    gemini_max_retries: int = 0
    mongodb_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "skillchain"

    @property
    def has_api_key(self) -> bool:
        return bool(self.gemini_api_key and self.gemini_api_key.strip())

    @property
    def gemini_endpoint(self) -> str:
        return f"{self.gemini_api_base.rstrip('/')}/models/{self.gemini_model}:generateContent"


def load_settings() -> Settings:
    """Read settings from the environment (and .env, loaded on import)."""
    retries = int(os.getenv("GEMINI_MAX_RETRIES", "0"))
    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"),
        gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
        gemini_api_base=os.getenv("GEMINI_API_BASE", DEFAULT_GEMINI_API_BASE),
        gemini_timeout=float(os.getenv("GEMINI_TIMEOUT", "60")),
        # at most one retry
        gemini_max_retries=max(0, min(retries, 1)),
        mongodb_uri=os.getenv("MONGODB_URI", "mongodb://localhost:27017"),
        mongo_db=os.getenv("MONGO_DB", "skillchain"),
    )
