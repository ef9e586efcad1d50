"""Ordered multi-candidate element lookup: first rule resolving to a visible element wins."""
import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

logger = logging.getLogger("quizbot")

DEFAULT_TIMEOUT_MS = 3000


@dataclass(frozen=True)
class MatchRule:
    """
    Declarative description of how to find one page element.
    `selector` is a Playwright selector string; build rules with css(), text() or role().
    """

    selector: str
    label: str = ""

    @classmethod
    def css(cls, selector: str) -> "MatchRule":
        return cls(selector=selector, label=f"css {selector}")

    @classmethod
    def text(cls, tag: str, text: str) -> "MatchRule":
        """Element of `tag` whose text contains `text` (case-insensitive)."""
        return cls(selector=f'{tag}:has-text("{text}")', label=f'{tag} with text "{text}"')

    @classmethod
    def role(cls, role: str, name: str) -> "MatchRule":
        return cls(selector=f'role={role}[name="{name}" i]', label=f'{role} named "{name}"')

    def __str__(self) -> str:
        return self.label or self.selector


@dataclass
class Match:
    rule: MatchRule
    element: Any  # engine element handle
    index: int  # position of the winning rule in the candidate list


async def locate(
    browser: Any,
    candidates: Sequence[MatchRule],
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> Optional[Match]:
    """
    Try each rule in order. For each, wait up to timeout_ms for an element, then require it to be
    visible; an invisible match counts as a miss. Returns the first visible Match, or None (not found).
    """
    for i, rule in enumerate(candidates):
        try:
            element = await browser.query(rule.selector, timeout_ms=timeout_ms)
        except Exception as e:
            # Malformed selector for this engine version: skip the rule, keep probing
            logger.debug("Rule %s failed: %s", rule, e)
            continue
        if element is None:
            logger.debug("No element for rule %s", rule)
            continue
        if not await browser.is_visible(element):
            logger.debug("Element found but not visible: %s", rule)
            continue
        logger.debug("Matched rule %s (#%d)", rule, i + 1)
        return Match(rule=rule, element=element, index=i)
    return None
