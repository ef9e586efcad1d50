"""Quiz session: initialize -> authenticate -> locate quiz -> extract -> answer each question -> submit."""
import asyncio
import logging
import random
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Sequence

from .browser import BrowserSession
from .errors import (
    AuthenticationError,
    ExtractionError,
    InjectionError,
    NavigationError,
    QuizBotError,
    SetupError,
    SubmissionError,
)
from .events import EventBroadcaster, SessionEvent
from .extractors import (
    dump_forms,
    extract_questions,
    fill_text_answer,
    scroll_to_question,
    select_option,
)
from .locator import Match, MatchRule, locate
from .models import (
    AnsweredQuestion,
    Question,
    QuestionKind,
    SessionConfig,
    SessionResult,
    SessionState,
    write_results,
)
from .reasoning import (
    ReasoningClient,
    build_prompt,
    option_letter,
    parse_multi_select,
    parse_single_choice,
)
from .registry import SessionRegistry, new_session_id
from .site import (
    CONFIRM_RULES,
    CONFIRM_TIMEOUT_MS,
    FIELD_TIMEOUT_MS,
    IDENTITY_FIELD_RULES,
    LOGIN_NAVIGATION_TIMEOUT_MS,
    LOGIN_SUBMIT_RULES,
    LOGIN_SUBMIT_TIMEOUT_MS,
    NAVIGATION_TIMEOUT_MS,
    QUIZ_START_RULES,
    QUIZ_START_TIMEOUT_MS,
    QUIZ_SUBMIT_RULES,
    QUIZ_SUBMIT_TIMEOUT_MS,
    SCROLL_SETTLE_MS,
    SECRET_FIELD_RULES,
    SETTLE_MS,
    SUBMIT_SETTLE_MS,
    TYPE_DELAY_MS,
    derive_login_url,
    is_auth_url,
    is_authenticated_url,
)

logger = logging.getLogger("quizbot")


class QuizSession:
    """
    One end-to-end run against one quiz: owns its browser session, its question list and its answers.
    Stages run strictly in order; any stage error except per-question and submit errors is fatal.
    On a terminal state the browser is always released and the registry entry removed.
    """

    def __init__(
        self,
        config: SessionConfig,
        broadcaster: EventBroadcaster,
        registry: Optional[SessionRegistry] = None,
        reasoning: Optional[Any] = None,
        browser_factory: Optional[Callable[[], Any]] = None,
        results_dir: Optional[Path] = None,
        rng: Optional[random.Random] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.config = config
        self.session_id = new_session_id()
        self.broadcaster = broadcaster
        self.registry = registry
        self.reasoning = reasoning or ReasoningClient(
            config.reasoning_api_key, provider=config.provider, model=config.model or None
        )
        self._browser_factory = browser_factory or (lambda: BrowserSession(headless=config.headless))
        self.results_dir = results_dir
        self._rng = rng or random.Random()
        self._sleep = sleep or asyncio.sleep
        self.browser: Optional[Any] = None
        self.state = SessionState.CREATED
        self.questions: list[Question] = []
        self.answers: list[AnsweredQuestion] = []
        self.result: Optional[SessionResult] = None
        self._task: Optional[asyncio.Task] = None
        self._claimed = False

    # ---- events ----

    def _emit(self, kind: str, message: Optional[str] = None, **payload: Any) -> None:
        self.broadcaster.publish(SessionEvent(kind=kind, session_id=self.session_id, message=message, payload=payload))

    def log(self, message: str, kind: str = "info") -> None:
        self._emit(kind, message)

    def _set_state(self, state: SessionState) -> None:
        if self.state.terminal:
            raise RuntimeError(f"Session {self.session_id} already {self.state.value}")
        logger.debug("Session %s: %s -> %s", self.session_id, self.state.value, state.value)
        self.state = state

    # ---- lifecycle ----

    def start(self) -> asyncio.Task:
        """Register and run the pipeline as a background task; returns the task."""
        self._claim()
        if self.registry is not None:
            self.registry.register(self)
        self._task = asyncio.create_task(self._run_in_background(), name=f"quiz-session-{self.session_id}")
        return self._task

    async def _run_in_background(self) -> None:
        try:
            await self._execute()
        except Exception:
            # Already logged and broadcast by the pipeline; nobody awaits this task's exception
            logger.debug("Session %s ended with failure", self.session_id, exc_info=True)

    def _claim(self) -> None:
        # A session runs its pipeline at most once
        if self._claimed:
            raise RuntimeError(f"Session {self.session_id} already started")
        self._claimed = True

    async def run(self) -> SessionResult:
        """Run the pipeline in the caller's task and return the result; fatal errors propagate."""
        self._claim()
        return await self._execute()

    async def _execute(self) -> SessionResult:
        ok = False
        error: Optional[str] = None
        try:
            await self.initialize()
            if self.config.has_credentials:
                await self.authenticate()
            await self.open_quiz()
            await self.extract_questions()
            await self.answer_all()
            if self.config.auto_submit:
                await self.submit()
            ok = True
            self.log("Quiz completed successfully!")
        except Exception as e:
            error = str(e) or type(e).__name__
            self.log(f"Fatal error: {error}", "error")
            raise
        finally:
            await self._release_browser()
            self.result = SessionResult(
                session_id=self.session_id,
                success=ok,
                answers=list(self.answers),
                error=None if ok else (error or "interrupted"),
            )
            self._set_state(SessionState.COMPLETED if ok else SessionState.FAILED)
            if self.registry is not None:
                self.registry.unregister(self.session_id)
            self._save_results()
            self._emit("complete", result=self.result.to_dict())
        return self.result

    async def _release_browser(self) -> None:
        if self.browser is None:
            return
        try:
            await self.browser.close()
            self.log("Browser closed")
        except Exception as e:
            logger.warning("Browser close failed for session %s: %s", self.session_id, e)
        finally:
            self.browser = None

    def _save_results(self) -> None:
        if self.results_dir is None or self.result is None:
            return
        try:
            write_results(self.results_dir / self.session_id, self.result)
        except OSError as e:
            logger.warning("Could not write results for session %s: %s", self.session_id, e)

    # ---- stages ----

    async def initialize(self) -> None:
        self._set_state(SessionState.INITIALIZING)
        self.log("Initializing browser...")
        browser = self._browser_factory()
        try:
            await browser.start()
        except SetupError:
            raise
        except Exception as e:
            raise SetupError(f"Could not start browser: {e}") from e
        self.browser = browser
        self.log("Browser initialized")

    async def authenticate(self) -> None:
        """
        Log in with identity + secret. Short-circuits when the entry URL already lands on an
        authenticated page; retries the secret step once for multi-step login flows.
        """
        self._set_state(SessionState.AUTHENTICATING)
        cfg = self.config
        self.log("Logging in...")
        if cfg.auth_entry_url:
            entry = cfg.auth_entry_url
            self.log(f"Using custom login URL: {entry}")
        else:
            entry = derive_login_url(cfg.target_url)
            self.log(f"Auto-detected login URL: {entry}")

        await self._goto(entry)
        current = self.browser.url
        self.log(f"Current URL after navigation: {current}")
        if is_authenticated_url(current):
            self.log("Already logged in")
            await self._return_to_target(entry)
            return

        await self._screenshot("login-page.png")
        await self._log_forms()

        identity = await self._require(IDENTITY_FIELD_RULES, "email/username field", AuthenticationError)
        await self.browser.clear_and_type(identity.element, cfg.identity, TYPE_DELAY_MS)
        self.log(f"Entered username using selector: {identity.rule.selector}")

        await self._enter_secret_and_submit()
        if is_auth_url(self.browser.url):
            self.log("Still on a login page; retrying password step (multi-step login)", "warning")
            await self._enter_secret_and_submit()
            if is_auth_url(self.browser.url):
                await self._screenshot("login-error.png")
                raise AuthenticationError("Login failed - still on login page")

        self.log("Successfully logged in!")
        await self._return_to_target(entry)

    async def _enter_secret_and_submit(self) -> None:
        secret = await self._require(SECRET_FIELD_RULES, "password field", AuthenticationError)
        await self.browser.clear_and_type(secret.element, self.config.secret, TYPE_DELAY_MS)
        self.log(f"Entered password using selector: {secret.rule.selector}")

        before = self.browser.url
        button = await locate(self.browser, LOGIN_SUBMIT_RULES, LOGIN_SUBMIT_TIMEOUT_MS)
        if button is not None:
            self.log(f"Found submit button: {button.rule.selector}")
            await self.browser.click(button.element)
        else:
            self.log("No submit button found, pressing Enter as fallback", "warning")
            await self.browser.press(secret.element, "Enter")

        self.log("Waiting for login to complete...")
        if not await self.browser.wait_for_navigation(before, LOGIN_NAVIGATION_TIMEOUT_MS):
            self.log("Navigation timeout, checking if login succeeded anyway", "warning")
        await self.browser.wait(SETTLE_MS)
        self.log(f"URL after login attempt: {self.browser.url}")
        await self._screenshot("after-login.png")

    async def _return_to_target(self, entry: str) -> None:
        target = self.config.target_url
        if entry != target and self.browser.url != target:
            await self._goto(target)

    async def open_quiz(self) -> None:
        self._set_state(SessionState.LOCATING_QUIZ)
        self.log("Navigating to quiz...")
        if self.browser.url != self.config.target_url:
            await self._goto(self.config.target_url)
        await self.browser.wait(SETTLE_MS)

        button = await locate(self.browser, QUIZ_START_RULES, QUIZ_START_TIMEOUT_MS)
        if button is None:
            self.log("Could not find quiz start button, assuming already in quiz", "warning")
            return
        self.log(f"Found start button: {button.rule.selector}")
        before = self.browser.url
        try:
            await self.browser.click(button.element)
        except Exception as e:
            self.log(f"Start button click failed ({e}), assuming already in quiz", "warning")
            return
        if await self.browser.wait_for_navigation(before, LOGIN_NAVIGATION_TIMEOUT_MS):
            self.log("Quiz started successfully")
        else:
            self.log("No navigation after start click; continuing on current page", "warning")

    async def extract_questions(self) -> list[Question]:
        self._set_state(SessionState.EXTRACTING)
        self.log("Extracting questions from quiz...")
        await self.browser.wait(SETTLE_MS)
        try:
            questions = await extract_questions(self.browser)
        except Exception as e:
            raise ExtractionError(f"Error extracting questions: {e}") from e
        self.questions = questions
        self.log(f"Extracted {len(questions)} questions")
        for i, q in enumerate(questions, 1):
            self.log(f"Q{i}: {q.kind.value} - {q.text[:60]}...")
        return questions

    async def answer_all(self) -> None:
        self._set_state(SessionState.ANSWERING)
        total = len(self.questions)
        self.log(f"Processing {total} questions...")
        for i, question in enumerate(self.questions, 1):
            self._emit("progress", current=i, total=total, question=question.to_dict())
            self.answers.append(await self.answer_question(question))

    async def answer_question(self, question: Question) -> AnsweredQuestion:
        """Ask, wait, inject. Never raises: failures come back as a failed AnsweredQuestion."""
        answer = ""
        try:
            self.log(f"Analyzing question with AI: {question.text[:50]}...")
            prompt = build_prompt(question)
            logger.debug("Prompt for %s:\n%s", question.id, prompt)
            answer = await self.reasoning.complete(prompt)
            self.log(f"AI answer: {answer}")
            await self._human_delay()
            await self.inject_answer(question, answer)
        except Exception as e:
            message = str(e) or type(e).__name__
            self.log(f"Error answering question {question.id}: {message}", "error")
            return AnsweredQuestion(question.id, question.text, answer, ok=False, error=message)
        return AnsweredQuestion(question.id, question.text, answer)

    async def _human_delay(self) -> None:
        delay = self._rng.uniform(self.config.delay_min, self.config.delay_max)
        logger.debug("Session %s: waiting %.2fs before answering", self.session_id, delay)
        await self._sleep(delay)

    async def inject_answer(self, question: Question, answer: str) -> None:
        self.log(f"Answering question: {question.text[:50]}...")
        if question.element_token and await scroll_to_question(self.browser, question):
            await self.browser.wait(SCROLL_SETTLE_MS)

        kind = question.kind
        if kind in (QuestionKind.SINGLE_CHOICE, QuestionKind.BOOLEAN):
            index = parse_single_choice(answer, len(question.options))
            option = question.options[index]
            if not await select_option(self.browser, question, option):
                raise InjectionError(f"Option control {option.token!r} not found")
            self.log(f"Selected option {option_letter(index)}: {option.text}")
        elif kind == QuestionKind.MULTI_SELECT:
            for index in parse_multi_select(answer, len(question.options)):
                option = question.options[index]
                if await select_option(self.browser, question, option):
                    self.log(f"Selected option {option_letter(index)}: {option.text}")
                else:
                    self.log(f"Option control {option.token!r} not found", "warning")
        elif kind.is_text:
            container = question.element_token if self.config.scoped_text_fields else None
            if not await fill_text_answer(self.browser, answer, container):
                raise InjectionError("No text input or textarea found for answer")
            self.log(f"Entered answer: {answer[:50]}...")
        else:
            raise InjectionError(f"Unsupported question type: {kind.value}")

    async def submit(self) -> None:
        """Click the quiz submit control and a confirmation if one shows up. Problems are warnings only."""
        self._set_state(SessionState.SUBMITTING)
        self.log("Submitting quiz...")
        try:
            await self._submit_quiz()
        except Exception as e:
            self.log(f"Submit error: {e}", "warning")

    async def _submit_quiz(self) -> None:
        button = await locate(self.browser, QUIZ_SUBMIT_RULES, QUIZ_SUBMIT_TIMEOUT_MS)
        if button is None:
            raise SubmissionError("Could not find submit button")
        try:
            await self.browser.click(button.element)
        except Exception as e:
            raise SubmissionError(f"Submit click failed: {e}") from e
        self.log("Clicked submit button")
        await self.browser.wait(SUBMIT_SETTLE_MS)

        # No confirmation dialog is normal
        confirm = await locate(self.browser, CONFIRM_RULES, CONFIRM_TIMEOUT_MS)
        if confirm is not None:
            await self.browser.click(confirm.element)
            self.log("Confirmed submission")

    # ---- helpers ----

    async def _goto(self, url: str) -> None:
        try:
            await self.browser.goto(url, timeout_ms=NAVIGATION_TIMEOUT_MS)
        except Exception as e:
            raise NavigationError(f"Could not reach {url}: {e}") from e

    async def _require(
        self,
        rules: Sequence[MatchRule],
        what: str,
        error_cls: type[QuizBotError],
        timeout_ms: int = FIELD_TIMEOUT_MS,
    ) -> Match:
        match = await locate(self.browser, rules, timeout_ms)
        if match is None:
            await self._screenshot("login-error.png")
            raise error_cls(f"Could not find {what}")
        self.log(f"Found {what} with selector: {match.rule.selector}")
        return match

    async def _screenshot(self, name: str) -> None:
        if self.config.screenshot_dir is None or self.browser is None:
            return
        path = Path(self.config.screenshot_dir) / f"{self.session_id}-{name}"
        try:
            await self.browser.screenshot(path)
            logger.debug("Screenshot saved to %s", path)
        except Exception as e:
            logger.debug("Screenshot %s failed: %s", name, e)

    async def _log_forms(self) -> None:
        forms = await dump_forms(self.browser)
        logger.debug("Found %d forms on page", len(forms))
        for i, form in enumerate(forms, 1):
            logger.debug('Form %d: id="%s" name="%s" action="%s"', i, form.get("id"), form.get("name"), form.get("action"))
            for inp in form.get("inputs") or []:
                logger.debug(
                    '  Input: type="%s" name="%s" id="%s" placeholder="%s"',
                    inp.get("type"), inp.get("name"), inp.get("id"), inp.get("placeholder"),
                )
