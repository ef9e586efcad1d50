"""Error taxonomy for quiz sessions: fatal stage errors vs per-question errors."""


class QuizBotError(Exception):
    """Base class for every error raised by a quiz session."""


class ConfigError(QuizBotError):
    """Invalid session configuration; raised before a session starts."""


class SetupError(QuizBotError):
    """Browser context could not be acquired."""


class AuthenticationError(QuizBotError):
    """Login field/button missing, or still on a login URL after the retry."""


class NavigationError(QuizBotError):
    """Target quiz document could not be reached."""


class ExtractionError(QuizBotError):
    """The question-extraction page evaluation itself failed."""


class QuestionError(QuizBotError):
    """Per-question failure: recorded on the answer, never aborts the session."""


class ReasoningError(QuestionError):
    """Reasoning service call failed."""


class AnswerParseError(QuestionError):
    """Reasoning output held no usable option letter."""


class InjectionError(QuestionError):
    """Answer control or text field not found on the page."""


class SubmissionError(QuizBotError):
    """Quiz submit failed; only ever logged as a warning."""
