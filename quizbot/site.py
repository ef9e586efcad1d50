"""Match rules, URL markers and timeouts for Canvas-style quiz pages."""
import re
from urllib.parse import urlparse

from .locator import MatchRule

# Login path appended to the target origin when no auth entry URL is given
DEFAULT_LOGIN_PATH = "/login/canvas"

# Identity field: generic first for broad compatibility, app-specific and structural after
IDENTITY_FIELD_RULES = [
    MatchRule.css('input[type="email"]'),
    MatchRule.css('input[autocomplete="username"]'),
    MatchRule.css('input[type="text"][name*="username" i]'),
    MatchRule.css('input[type="text"][name*="email" i]'),
    MatchRule.css('input[placeholder*="Email" i]'),
    MatchRule.css('input[placeholder*="Username" i]'),
    MatchRule.css('input[name="pseudonym_session[unique_id]"]'),
    MatchRule.css("#pseudonym_session_unique_id"),
    MatchRule.css('#login_form input[type="text"]'),
    MatchRule.css('form input[type="text"]'),
]

SECRET_FIELD_RULES = [
    MatchRule.css('input[type="password"]'),
    MatchRule.css('input[autocomplete="current-password"]'),
    MatchRule.css('input[name="pseudonym_session[password]"]'),
    MatchRule.css("#pseudonym_session_password"),
    MatchRule.css('#login_form input[type="password"]'),
]

# Login submit (order matters: text/role-specific first so a generic button is never clicked by mistake)
LOGIN_SUBMIT_RULES = [
    MatchRule.text("button", "Log In"),
    MatchRule.text("button", "Login"),
    MatchRule.text("button", "Sign In"),
    MatchRule.role("button", "Log In"),
    MatchRule.role("button", "Sign In"),
    MatchRule.css("button.Button--login"),
    MatchRule.css("button.login_button"),
    MatchRule.css('#login_form button[type="submit"]'),
    MatchRule.css('button[type="submit"]'),
    MatchRule.css('input[type="submit"]'),
]

QUIZ_START_RULES = [
    MatchRule.text("a", "Take the Quiz"),
    MatchRule.text("button", "Take the Quiz"),
    MatchRule.text("a", "Resume Quiz"),
    MatchRule.text("button", "Resume"),
    MatchRule.css(".take_quiz_button"),
    MatchRule.css("#take_quiz_link"),
]

QUIZ_SUBMIT_RULES = [
    MatchRule.css("button.submit_quiz_button"),
    MatchRule.css("#submit_quiz_button"),
    MatchRule.text("button", "Submit Quiz"),
    MatchRule.css('input[value="Submit Quiz"]'),
    MatchRule.css(".quiz_submit"),
]

# Secondary "are you sure" dialog after submit; must never match the quiz submit button itself
CONFIRM_RULES = [
    MatchRule.css('.ui-dialog button:has-text("Submit")'),
    MatchRule.css('[role=dialog] button:has-text("Submit")'),
    MatchRule.css('.ui-dialog button:has-text("OK")'),
    MatchRule.css('[role=dialog] button:has-text("OK")'),
    MatchRule.css('.ui-dialog button:has-text("Yes")'),
    MatchRule.css('[role=dialog] button:has-text("Yes")'),
]

# Question containers and their text sub-elements
QUESTION_CONTAINER_SELECTOR = ".question"
QUESTION_TEXT_SELECTORS = [".question_text", ".text"]

# Canvas question class names -> kind value
QUESTION_CLASS_HINTS = [
    ("multiple_answers_question", "multi-select"),
    ("true_false_question", "boolean"),
    ("multiple_choice_question", "single-choice"),
    ("short_answer_question", "short-text"),
    ("essay_question", "long-text"),
]

BOOLEAN_OPTION_PATTERN = re.compile(r"^\s*(true|false|yes|no)\s*$", re.I)

# Timeouts (ms)
NAVIGATION_TIMEOUT_MS = 60000
LOGIN_NAVIGATION_TIMEOUT_MS = 30000
LOGIN_SUBMIT_TIMEOUT_MS = 1000
FIELD_TIMEOUT_MS = 3000
QUIZ_START_TIMEOUT_MS = 5000
QUIZ_SUBMIT_TIMEOUT_MS = 5000
CONFIRM_TIMEOUT_MS = 1000
SETTLE_MS = 2000
SUBMIT_SETTLE_MS = 3000
SCROLL_SETTLE_MS = 1000
TYPE_DELAY_MS = 100


def derive_login_url(target_url: str) -> str:
    """Origin of the target URL plus the conventional login path."""
    u = urlparse(target_url)
    return f"{u.scheme}://{u.netloc}{DEFAULT_LOGIN_PATH}"


def is_authenticated_url(url: str) -> bool:
    """URL is a post-login destination: a course quiz page, the dashboard, or a login-success marker."""
    if not url:
        return False
    if "/courses/" in url and "/quizzes/" in url:
        return True
    return "/dashboard" in url or "login_success=1" in url


def is_auth_url(url: str) -> bool:
    """URL still belongs to the login flow."""
    if not url:
        return False
    lower = url.lower()
    if "login_success" in lower:
        return False
    return "login" in lower or "signin" in lower or "sign_in" in lower
