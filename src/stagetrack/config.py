import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()  # loads .env for local dev

DEFAULT_DB_PATH = "tender_project.db"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    db_path: str = os.getenv("STAGETRACK_DB", DEFAULT_DB_PATH)
    host: str = os.getenv("HOST", "127.0.0.1")
    port: int = _env_int("PORT", 3000)
    public_dir: str = os.getenv("STAGETRACK_PUBLIC_DIR", "public")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

settings = Settings()
