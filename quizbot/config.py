"""Process settings from the environment (.env supported)."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .llm_providers import DEFAULT_PROVIDER


def _env_path(name: str) -> Optional[Path]:
    value = (os.environ.get(name) or "").strip()
    return Path(value) if value else None


def _env_bool(name: str, default: bool = False) -> bool:
    value = (os.environ.get(name) or "").strip().lower()
    if not value:
        return default
    return value in ("1", "true", "yes", "on")


@dataclass
class Settings:
    host: str = "0.0.0.0"
    port: int = 3000
    provider: str = DEFAULT_PROVIDER
    model: str = ""
    log_dir: Optional[Path] = None
    screenshot_dir: Optional[Path] = None
    results_dir: Optional[Path] = None
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            host=os.environ.get("HOST", "0.0.0.0"),
            port=int(os.environ.get("PORT", "3000")),
            provider=(os.environ.get("QUIZBOT_PROVIDER") or DEFAULT_PROVIDER).lower(),
            model=os.environ.get("QUIZBOT_MODEL", ""),
            log_dir=_env_path("QUIZBOT_LOG_DIR"),
            screenshot_dir=_env_path("QUIZBOT_SCREENSHOT_DIR"),
            results_dir=_env_path("QUIZBOT_RESULTS_DIR"),
            verbose=_env_bool("QUIZBOT_VERBOSE"),
        )
