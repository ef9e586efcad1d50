"""Session config, questions, answers and session result; JSON writer."""
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

from .errors import ConfigError

logger = logging.getLogger("quizbot")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class QuestionKind(str, Enum):
    SINGLE_CHOICE = "single-choice"
    MULTI_SELECT = "multi-select"
    BOOLEAN = "boolean"
    SHORT_TEXT = "short-text"
    LONG_TEXT = "long-text"
    UNKNOWN = "unknown"

    @property
    def is_choice(self) -> bool:
        return self in (QuestionKind.SINGLE_CHOICE, QuestionKind.BOOLEAN, QuestionKind.MULTI_SELECT)

    @property
    def is_text(self) -> bool:
        return self in (QuestionKind.SHORT_TEXT, QuestionKind.LONG_TEXT)


class SessionState(str, Enum):
    CREATED = "created"
    INITIALIZING = "initializing"
    AUTHENTICATING = "authenticating"
    LOCATING_QUIZ = "locating-quiz"
    EXTRACTING = "extracting"
    ANSWERING = "answering"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (SessionState.COMPLETED, SessionState.FAILED)


@dataclass(frozen=True)
class SessionConfig:
    reasoning_api_key: str
    target_url: str
    auth_entry_url: Optional[str] = None
    identity: Optional[str] = None
    secret: Optional[str] = None
    delay_min: float = 2.0
    delay_max: float = 5.0
    headless: bool = True
    auto_submit: bool = True
    provider: str = "groq"
    model: str = ""  # empty -> provider default
    screenshot_dir: Optional[Path] = None
    scoped_text_fields: bool = False

    def __post_init__(self) -> None:
        if not (self.reasoning_api_key or "").strip():
            raise ConfigError("Reasoning API key is required")
        if not (self.target_url or "").strip():
            raise ConfigError("Target URL is required")
        if self.delay_min < 0 or self.delay_max < 0:
            raise ConfigError("Delays must be non-negative")
        if self.delay_min > self.delay_max:
            raise ConfigError(f"delay_min ({self.delay_min}) is greater than delay_max ({self.delay_max})")

    @property
    def has_credentials(self) -> bool:
        return bool(self.identity and self.secret)


@dataclass(frozen=True)
class Option:
    text: str
    token: str  # element id, else input value


@dataclass(frozen=True)
class Question:
    id: str
    text: str
    kind: QuestionKind
    options: tuple[Option, ...] = ()
    element_token: str = ""  # CSS selector of the container

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "type": self.kind.value,
            "options": [{"text": o.text, "token": o.token} for o in self.options],
            "element": self.element_token,
        }


@dataclass
class AnsweredQuestion:
    question_id: str
    question: str
    answer: str
    timestamp: str = field(default_factory=utc_now_iso)
    ok: bool = True
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "questionId": self.question_id,
            "question": self.question,
            "answer": self.answer,
            "timestamp": self.timestamp,
            "ok": self.ok,
            "error": self.error,
        }


@dataclass
class SessionResult:
    session_id: str
    success: bool
    answers: list[AnsweredQuestion] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def questions_answered(self) -> int:
        return len(self.answers)

    @property
    def failed_count(self) -> int:
        return sum(1 for a in self.answers if not a.ok)

    def to_dict(self) -> dict:
        d = {
            "sessionId": self.session_id,
            "success": self.success,
            "questionsAnswered": self.questions_answered,
            "failedCount": self.failed_count,
            "answers": [a.to_dict() for a in self.answers],
        }
        if self.error:
            d["error"] = self.error
        return d


def write_results(out_dir: Path, result: SessionResult) -> Path:
    """Write result to <out_dir>/results.json and return the path."""
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / "results.json"
    data = result.to_dict()
    data["writtenAt"] = utc_now_iso()
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    logger.info("Wrote %s", path)
    return path
