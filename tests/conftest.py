"""Fakes for the Playwright-backed browser session and the reasoning service."""
import asyncio
from pathlib import Path
from typing import Any, Optional

import pytest

from quizbot.errors import ReasoningError
from quizbot.events import EventBroadcaster
from quizbot.extractors import (
    DUMP_FORMS_JS,
    EXTRACT_QUESTIONS_JS,
    FILL_TEXT_JS,
    SCROLL_INTO_VIEW_JS,
    SELECT_OPTION_JS,
)
from quizbot.models import SessionConfig

QUIZ_URL = "https://canvas.example.edu/courses/7/quizzes/42"


class FakeElement:
    def __init__(self, name: str, visible: bool = True):
        self.name = name
        self.visible = visible

    def __repr__(self) -> str:
        return f"FakeElement({self.name!r})"


class FakeBrowser:
    """In-memory stand-in for BrowserSession: selectors map to elements, scripts map to canned results."""

    def __init__(
        self,
        url: str = "about:blank",
        elements: Optional[dict[str, FakeElement]] = None,
        raw_questions: Optional[list[dict[str, Any]]] = None,
        redirects: Optional[dict[str, str]] = None,
        nav_on_click: Optional[dict[str, str]] = None,
        controls: Optional[set[str]] = None,
        text_fields: Optional[list[dict[str, Any]]] = None,
        start_error: Optional[Exception] = None,
        extract_error: Optional[Exception] = None,
        goto_error: Optional[Exception] = None,
    ):
        self.url = url
        self.elements = elements or {}
        self.raw_questions = raw_questions or []
        self.redirects = redirects or {}
        self.nav_on_click = nav_on_click or {}
        self.controls = controls if controls is not None else set()
        self.text_fields = text_fields if text_fields is not None else []
        self.start_error = start_error
        self.extract_error = extract_error
        self.goto_error = goto_error
        self.started = False
        self.closed = False
        self.visited: list[str] = []
        self.queries: list[str] = []
        self.typed: list[tuple[str, str]] = []
        self.clicks: list[str] = []
        self.pressed: list[tuple[str, str]] = []
        self.selected: list[str] = []
        self.scrolled: list[str] = []
        self.screenshots: list[Path] = []

    async def start(self) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    async def goto(self, url: str, timeout_ms: int = 60000) -> None:
        self.visited.append(url)
        if self.goto_error is not None:
            raise self.goto_error
        self.url = self.redirects.get(url, url)

    async def query(self, selector: str, timeout_ms: int) -> Optional[FakeElement]:
        self.queries.append(selector)
        return self.elements.get(selector)

    async def is_visible(self, element: FakeElement) -> bool:
        return element.visible

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        if script is EXTRACT_QUESTIONS_JS:
            if self.extract_error is not None:
                raise self.extract_error
            return self.raw_questions
        if script is SCROLL_INTO_VIEW_JS:
            self.scrolled.append(arg)
            return True
        if script is SELECT_OPTION_JS:
            token, _container = arg
            if token not in self.controls:
                return False
            self.selected.append(token)
            return True
        if script is FILL_TEXT_JS:
            answer, container = arg
            fields = [f for f in self.text_fields if container and f.get("container") == container]
            if not fields:
                fields = self.text_fields
            if not fields:
                return False
            field = fields[-1]
            field["value"] = answer
            field.setdefault("events", []).extend(["input", "change"])
            return True
        if script is DUMP_FORMS_JS:
            return []
        raise AssertionError(f"unexpected script: {script[:40]}")

    async def clear_and_type(self, element: FakeElement, text: str, delay_ms: int = 100) -> None:
        self.typed.append((element.name, text))

    async def click(self, element: FakeElement) -> None:
        self.clicks.append(element.name)
        if element.name in self.nav_on_click:
            self.url = self.nav_on_click[element.name]

    async def press(self, element: FakeElement, key: str) -> None:
        self.pressed.append((element.name, key))

    async def wait_for_navigation(self, from_url: str, timeout_ms: int) -> bool:
        return self.url != from_url

    async def wait(self, ms: int) -> None:
        return None

    async def screenshot(self, path: Path) -> None:
        self.screenshots.append(path)

    async def close(self) -> None:
        self.closed = True


class FakeReasoning:
    """Returns canned answers in order; an Exception in the list is raised instead."""

    def __init__(self, answers: list[Any], gate: Optional[asyncio.Event] = None):
        self.answers = list(answers)
        self.prompts: list[str] = []
        self.gate = gate

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.gate is not None:
            await self.gate.wait()
        answer = self.answers.pop(0) if self.answers else ""
        if isinstance(answer, Exception):
            raise answer
        return answer


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def radio_question(index: int, text: str, options: list[str], qid: str = "") -> dict[str, Any]:
    return {
        "id": qid,
        "index": index,
        "className": "question",
        "text": text,
        "radios": len(options),
        "checkboxes": 0,
        "textInputs": 0,
        "textareas": 0,
        "options": [{"text": t, "id": f"{qid or index}_opt{i}", "value": str(i)} for i, t in enumerate(options)],
    }


def checkbox_question(index: int, text: str, options: list[str], qid: str = "") -> dict[str, Any]:
    raw = radio_question(index, text, options, qid)
    raw.update(radios=0, checkboxes=len(options))
    return raw


def text_question(index: int, text: str, inputs: int = 1, textareas: int = 0, qid: str = "") -> dict[str, Any]:
    return {
        "id": qid,
        "index": index,
        "className": "question",
        "text": text,
        "radios": 0,
        "checkboxes": 0,
        "textInputs": inputs,
        "textareas": textareas,
        "options": [],
    }


def make_config(**overrides: Any) -> SessionConfig:
    values: dict[str, Any] = dict(
        reasoning_api_key="test-key",
        target_url=QUIZ_URL,
        delay_min=0.5,
        delay_max=1.5,
        auto_submit=False,
    )
    values.update(overrides)
    return SessionConfig(**values)


class EventLog:
    """Observer that drains a broadcaster queue synchronously."""

    def __init__(self, broadcaster: EventBroadcaster):
        self.queue = broadcaster.subscribe()

    def drain(self) -> list:
        events = []
        while not self.queue.empty():
            events.append(self.queue.get_nowait())
        return events


@pytest.fixture
def broadcaster() -> EventBroadcaster:
    return EventBroadcaster()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()
