# Quiz Bot – public API

from .errors import (
    AnswerParseError,
    AuthenticationError,
    ConfigError,
    ExtractionError,
    InjectionError,
    NavigationError,
    QuestionError,
    QuizBotError,
    ReasoningError,
    SetupError,
    SubmissionError,
)
from .events import EventBroadcaster, SessionEvent
from .locator import Match, MatchRule, locate
from .models import (
    AnsweredQuestion,
    Option,
    Question,
    QuestionKind,
    SessionConfig,
    SessionResult,
    SessionState,
    write_results,
)
from .reasoning import ReasoningClient, build_prompt
from .registry import SessionRegistry, new_session_id
from .session import QuizSession

__all__ = [
    "QuizSession",
    "SessionConfig",
    "SessionResult",
    "SessionState",
    "Question",
    "QuestionKind",
    "Option",
    "AnsweredQuestion",
    "write_results",
    "MatchRule",
    "Match",
    "locate",
    "ReasoningClient",
    "build_prompt",
    "SessionRegistry",
    "new_session_id",
    "EventBroadcaster",
    "SessionEvent",
    "QuizBotError",
    "ConfigError",
    "SetupError",
    "AuthenticationError",
    "NavigationError",
    "ExtractionError",
    "QuestionError",
    "ReasoningError",
    "AnswerParseError",
    "InjectionError",
    "SubmissionError",
]
