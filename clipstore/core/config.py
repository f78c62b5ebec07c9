import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent.parent  # go up to project root
env_path = BASE_DIR / ".env.development"

# Load .env only if it exists
if env_path.exists():
    load_dotenv(env_path)


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    JWT_SECRET: str
    ACCESS_TOKEN_TTL_MINUTES: int = 60

    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "clipstore_db"

    AWS_S3_BUCKET: str
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_ENDPOINT_URL: Optional[str] = None
    PRESIGN_TTL_SECONDS: int = 600

    MAX_VIDEO_BYTES: int = 1 << 30
    MAX_THUMBNAIL_BYTES: int = 10 << 20
    SCRATCH_DIR: str = tempfile.gettempdir()
    ASSETS_ROOT: str = "./assets"

    PORT: int = 8000
    BASE_URL: str = "http://localhost:8000"

    FFPROBE_BIN: str = "ffprobe"
    FFMPEG_BIN: str = "ffmpeg"


def load_settings() -> Settings:
    """
    Builds the settings from the process environment.

    Raises:
        RuntimeError: If a required variable is missing
    """
    required_vars = ["JWT_SECRET", "AWS_S3_BUCKET"]
    missing = [v for v in required_vars if not os.getenv(v)]
    if missing:
        raise RuntimeError(f"Missing env vars: {missing}")

    port = os.getenv("PORT", "8000")
    values = {
        name: os.environ[name]
        for name in Settings.model_fields
        if os.getenv(name)
    }
    values.setdefault("BASE_URL", f"http://localhost:{port}")
    return Settings(**values)


@lru_cache
def get_settings() -> Settings:
    return load_settings()
