"""Question extraction from the quiz DOM and answer injection back into it."""
import logging
from typing import Any, Optional

from .models import Option, Question, QuestionKind
from .site import (
    BOOLEAN_OPTION_PATTERN,
    QUESTION_CLASS_HINTS,
    QUESTION_CONTAINER_SELECTOR,
    QUESTION_TEXT_SELECTORS,
)

logger = logging.getLogger("quizbot")

# Data attribute stamped on each container so it can be found again for scroll-into-view
CONTAINER_MARK = "data-quizbot-index"

# Returns raw structural facts per container; classification happens in Python
EXTRACT_QUESTIONS_JS = """([containerSel, textSels, mark]) => {
    const out = [];
    document.querySelectorAll(containerSel).forEach((el, index) => {
        el.setAttribute(mark, String(index));
        let text = '';
        for (const sel of textSels) {
            const t = el.querySelector(sel);
            if (t && (t.innerText || '').trim()) { text = t.innerText; break; }
        }
        const options = [];
        const seen = new Set();
        const pushOption = (label, input) => {
            if (!label || !input || seen.has(input)) return;
            seen.add(input);
            options.push({ text: (label.innerText || '').trim(), id: input.id || '', value: input.value || '' });
        };
        el.querySelectorAll('.answer').forEach(answer => {
            pushOption(answer.querySelector('label'), answer.querySelector('input'));
        });
        if (options.length === 0) {
            el.querySelectorAll('input[type=radio], input[type=checkbox]').forEach(input => {
                const label = (input.id && el.querySelector('label[for="' + CSS.escape(input.id) + '"]')) || input.closest('label');
                pushOption(label, input);
            });
        }
        out.push({
            id: el.id || '',
            index,
            className: el.className || '',
            text: text || '',
            radios: el.querySelectorAll('input[type=radio]').length,
            checkboxes: el.querySelectorAll('input[type=checkbox]').length,
            textInputs: el.querySelectorAll('input[type=text]').length,
            textareas: el.querySelectorAll('textarea').length,
            options,
        });
    });
    return out;
}"""

SCROLL_INTO_VIEW_JS = """(selector) => {
    const el = document.querySelector(selector);
    if (el) el.scrollIntoView({ behavior: 'smooth', block: 'center' });
    return !!el;
}"""

# Click by element id, else by input value inside the question container
SELECT_OPTION_JS = """([token, containerSel]) => {
    const scope = (containerSel && document.querySelector(containerSel)) || document;
    const input = document.getElementById(token) ||
        scope.querySelector('input[value="' + CSS.escape(token) + '"]');
    if (!input) return false;
    input.click();
    input.checked = true;
    return true;
}"""

# Last text input/textarea on the page (or in the container when scoped); fires input + change
FILL_TEXT_JS = """([answer, containerSel]) => {
    const sel = 'input[type="text"], textarea';
    let fields = [];
    if (containerSel) {
        const container = document.querySelector(containerSel);
        if (container) fields = Array.from(container.querySelectorAll(sel));
    }
    if (fields.length === 0) fields = Array.from(document.querySelectorAll(sel));
    if (fields.length === 0) return false;
    const input = fields[fields.length - 1];
    input.value = answer;
    input.dispatchEvent(new Event('input', { bubbles: true }));
    input.dispatchEvent(new Event('change', { bubbles: true }));
    return true;
}"""

DUMP_FORMS_JS = """() => Array.from(document.querySelectorAll('form')).map(form => ({
    id: form.id,
    name: form.getAttribute('name') || '',
    action: form.action,
    inputs: Array.from(form.querySelectorAll('input')).map(i => ({
        type: i.type, name: i.name, id: i.id, placeholder: i.placeholder,
    })),
}))"""


def classify(raw: dict[str, Any]) -> QuestionKind:
    """
    Pick the kind from Canvas class names first, then structural cues:
    checkboxes -> multi-select; two options or true/false wording -> boolean; radios -> single-choice;
    textarea -> long-text; text input -> short-text.
    """
    class_name = str(raw.get("className") or "")
    for hint, kind in QUESTION_CLASS_HINTS:
        if hint in class_name:
            return QuestionKind(kind)
    options = raw.get("options") or []
    if raw.get("checkboxes"):
        return QuestionKind.MULTI_SELECT
    if options and (
        len(options) == 2 or all(BOOLEAN_OPTION_PATTERN.match(str(o.get("text") or "")) for o in options)
    ):
        return QuestionKind.BOOLEAN
    if raw.get("radios"):
        return QuestionKind.SINGLE_CHOICE
    if raw.get("textareas"):
        return QuestionKind.LONG_TEXT
    if raw.get("textInputs"):
        return QuestionKind.SHORT_TEXT
    return QuestionKind.UNKNOWN


def container_selector(index: int) -> str:
    return f'{QUESTION_CONTAINER_SELECTOR}[{CONTAINER_MARK}="{index}"]'


def question_from_raw(raw: dict[str, Any]) -> Optional[Question]:
    """Build a Question from one container's facts; None when the text is empty."""
    text = str(raw.get("text") or "").strip()
    if not text:
        return None
    index = int(raw.get("index") or 0)
    options = tuple(
        Option(text=str(o.get("text") or "").strip(), token=str(o.get("id") or o.get("value") or ""))
        for o in raw.get("options") or []
    )
    return Question(
        id=str(raw.get("id") or f"question_{index}"),
        text=text,
        kind=classify(raw),
        options=options,
        element_token=container_selector(index),
    )


async def extract_questions(browser: Any) -> list[Question]:
    """All non-empty questions on the page, in DOM order."""
    raw_list = await browser.evaluate(
        EXTRACT_QUESTIONS_JS,
        [QUESTION_CONTAINER_SELECTOR, QUESTION_TEXT_SELECTORS, CONTAINER_MARK],
    )
    questions = []
    for raw in raw_list or []:
        q = question_from_raw(raw)
        if q is None:
            logger.debug("Skipping container %s with empty text", raw.get("id") or raw.get("index"))
            continue
        questions.append(q)
    return questions


async def scroll_to_question(browser: Any, question: Question) -> bool:
    if not question.element_token:
        return False
    return bool(await browser.evaluate(SCROLL_INTO_VIEW_JS, question.element_token))


async def select_option(browser: Any, question: Question, option: Option) -> bool:
    return bool(await browser.evaluate(SELECT_OPTION_JS, [option.token, question.element_token]))


async def fill_text_answer(browser: Any, answer: str, container: Optional[str] = None) -> bool:
    return bool(await browser.evaluate(FILL_TEXT_JS, [answer, container]))


async def dump_forms(browser: Any) -> list[dict[str, Any]]:
    try:
        return list(await browser.evaluate(DUMP_FORMS_JS) or [])
    except Exception as e:
        logger.debug("Form dump failed: %s", e)
        return []
