"""
Runtime configuration.

Everything the service needs from the environment is read once, here, into a
``Settings`` object that is handed to the app factory. Handlers never call
``os.getenv`` themselves.
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv

DEFAULT_AI_MODEL = "google/gemini-2.0-flash-thinking-exp-1219:free"
DEFAULT_AI_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_PHOTOROOM_URL = "https://sdk.photoroom.com/v1/segment"

# legacy single-key variables, in failover priority order
LEGACY_AI_KEY_VARS = (
    "OPENROUTER_API_KEY",
    "GEMINI_API_KEY_1",
    "GEMINI_API_KEY_2",
    "GEMINI_API_KEY_3",
    "GEMINI_API_KEY_4",
)


@dataclass(frozen=True)
class Settings:
    jwt_secret: str
    mongo_uri: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    mongo_db: str = "wardrobe"
    mongo_tls: bool = False

    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    cloudinary_folder: str = "wardrobe"

    photoroom_api_key: Optional[str] = None
    photoroom_url: str = DEFAULT_PHOTOROOM_URL

    ai_api_keys: Tuple[str, ...] = field(default_factory=tuple)
    ai_model: str = DEFAULT_AI_MODEL
    ai_base_url: str = DEFAULT_AI_BASE_URL
    ai_app_url: str = "http://localhost:3000"
    ai_app_title: str = "Fashion AI Wardrobe Assistant"
    ai_max_retries: int = 3
    ai_backoff_seconds: float = 1.0
    ai_max_backoff_seconds: float = 30.0

    http_timeout_seconds: float = 30.0
    environment: str = "development"
    log_level: str = "INFO"

    @property
    def cookie_secure(self) -> bool:
        return self.environment == "production"

    @property
    def token_max_age(self) -> int:
        return self.access_token_expire_minutes * 60


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _ai_keys_from_env() -> Tuple[str, ...]:
    listed = os.getenv("AI_API_KEYS")
    if listed:
        return tuple(k.strip() for k in listed.split(",") if k.strip())
    return tuple(os.getenv(name) for name in LEGACY_AI_KEY_VARS if os.getenv(name))


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Build ``Settings`` from ``.env`` and the process environment."""
    load_dotenv(env_file)

    jwt_secret = os.getenv("JWT_SECRET")
    mongo_uri = os.getenv("MONGO_URI")
    if not jwt_secret:
        raise RuntimeError("Missing JWT_SECRET in .env")
    if not mongo_uri:
        raise RuntimeError("Missing MONGO_URI in .env")

    return Settings(
        jwt_secret=jwt_secret,
        mongo_uri=mongo_uri,
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24)),
        mongo_db=os.getenv("MONGO_DB", "wardrobe"),
        mongo_tls=_as_bool(os.getenv("MONGO_TLS"), mongo_uri.startswith("mongodb+srv://")),
        cloudinary_cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME"),
        cloudinary_api_key=os.getenv("CLOUDINARY_API_KEY"),
        cloudinary_api_secret=os.getenv("CLOUDINARY_API_SECRET"),
        cloudinary_folder=os.getenv("CLOUDINARY_FOLDER", "wardrobe"),
        photoroom_api_key=os.getenv("PHOTOROOM_API_KEY"),
        photoroom_url=os.getenv("PHOTOROOM_URL", DEFAULT_PHOTOROOM_URL),
        ai_api_keys=_ai_keys_from_env(),
        ai_model=os.getenv("AI_MODEL", DEFAULT_AI_MODEL),
        ai_base_url=os.getenv("AI_BASE_URL", DEFAULT_AI_BASE_URL),
        ai_app_url=os.getenv("AI_APP_URL", "http://localhost:3000"),
        ai_app_title=os.getenv("AI_APP_TITLE", "Fashion AI Wardrobe Assistant"),
        ai_max_retries=int(os.getenv("AI_MAX_RETRIES", 3)),
        ai_backoff_seconds=float(os.getenv("AI_BACKOFF_SECONDS", 1.0)),
        ai_max_backoff_seconds=float(os.getenv("AI_MAX_BACKOFF_SECONDS", 30.0)),
        http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", 30.0)),
        environment=os.getenv("ENVIRONMENT", "development"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
