"""Reasoning client: build a per-question prompt, ask the model, parse option letters from the reply."""
import logging
import re
from string import ascii_uppercase
from typing import Optional

from .errors import AnswerParseError
from .llm_providers import DEFAULT_PROVIDER, call_llm, default_model
from .models import Question, QuestionKind

logger = logging.getLogger("quizbot")

SYSTEM_PROMPT = "You are a helpful assistant taking a quiz. Provide concise, accurate answers."

SINGLE_LETTER_INSTRUCTION = "Provide ONLY the letter of the correct answer (A, B, C, D, etc.). No explanation."
MULTI_LETTER_INSTRUCTION = (
    "Provide ONLY the letters of ALL correct answers separated by commas (e.g., A,C,D). No explanation."
)
TEXT_INSTRUCTION = "Provide a concise answer to this question."

CAPITAL_LETTER = re.compile(r"[A-Z]")


def option_letter(index: int) -> str:
    return ascii_uppercase[index] if index < len(ascii_uppercase) else f"#{index + 1}"


def build_prompt(question: Question) -> str:
    """Question text, lettered options for choice kinds, then the instruction for the kind."""
    prompt = f"You are taking a quiz. Answer the following question:\n\n{question.text}\n\n"
    if question.kind.is_choice:
        prompt += "Options:\n"
        for i, opt in enumerate(question.options):
            prompt += f"{option_letter(i)}. {opt.text}\n"
        if question.kind == QuestionKind.MULTI_SELECT:
            prompt += f"\n{MULTI_LETTER_INSTRUCTION}"
        else:
            prompt += f"\n{SINGLE_LETTER_INSTRUCTION}"
    else:
        prompt += f"\n{TEXT_INSTRUCTION}"
    return prompt


def parse_single_choice(answer: str, option_count: int) -> int:
    """First capital letter -> zero-based option index. Raises AnswerParseError if absent or out of range."""
    m = CAPITAL_LETTER.search(answer or "")
    if not m:
        raise AnswerParseError(f"Could not extract answer letter from: {answer!r}")
    index = ord(m.group(0)) - ord("A")
    if index >= option_count:
        raise AnswerParseError(f"Invalid answer index {index} ({m.group(0)}) for {option_count} options")
    return index


def parse_multi_select(answer: str, option_count: int) -> list[int]:
    """All capital letters that map to an option, in order, without repeats; the rest are skipped."""
    indexes: list[int] = []
    for letter in CAPITAL_LETTER.findall(answer or ""):
        index = ord(letter) - ord("A")
        if index < option_count and index not in indexes:
            indexes.append(index)
    return indexes


class ReasoningClient:
    """Stateless wrapper: one completion request per prompt, no conversation carried over."""

    def __init__(self, api_key: str, provider: str = DEFAULT_PROVIDER, model: Optional[str] = None):
        self.api_key = api_key
        self.provider = (provider or DEFAULT_PROVIDER).lower()
        self.model = model or default_model(self.provider)
        self.token_usage: dict[str, int] = {}

    async def complete(self, prompt: str) -> str:
        raw, usage = await call_llm(
            self.provider,
            self.model,
            self.api_key,
            prompt,
            system=SYSTEM_PROMPT,
        )
        if usage:
            for k, v in usage.items():
                self.token_usage[k] = self.token_usage.get(k, 0) + v
            logger.debug("LLM usage %s: %s", self.model, usage)
        return raw