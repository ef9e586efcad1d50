from conftest import FakeBrowser, FakeElement

from quizbot.locator import MatchRule, locate


class RaisingBrowser(FakeBrowser):
    async def query(self, selector, timeout_ms):
        if selector == "bad[":
            raise ValueError("malformed selector")
        return await super().query(selector, timeout_ms)


async def test_invisible_match_is_skipped_for_next_visible_rule():
    r1, r2, r3 = MatchRule.css("#hidden"), MatchRule.css("#shown"), MatchRule.css("#also")
    browser = FakeBrowser(elements={
        "#hidden": FakeElement("hidden", visible=False),
        "#shown": FakeElement("shown"),
        "#also": FakeElement("also"),
    })
    match = await locate(browser, [r1, r2, r3], timeout_ms=10)
    assert match is not None
    assert match.rule == r2
    assert match.element.name == "shown"
    assert match.index == 1
    # early exit: r3 never probed
    assert browser.queries == ["#hidden", "#shown"]


async def test_not_found_returns_none():
    browser = FakeBrowser(elements={"#x": FakeElement("x", visible=False)})
    assert await locate(browser, [MatchRule.css("#x"), MatchRule.css("#y")], timeout_ms=10) is None
    assert browser.queries == ["#x", "#y"]


async def test_failing_rule_does_not_stop_the_search():
    browser = RaisingBrowser(elements={"#ok": FakeElement("ok")})
    match = await locate(browser, [MatchRule("bad["), MatchRule.css("#ok")], timeout_ms=10)
    assert match is not None and match.element.name == "ok"


async def test_empty_candidates():
    assert await locate(FakeBrowser(), [], timeout_ms=10) is None


def test_rule_constructors_render_selectors():
    assert MatchRule.css("#a").selector == "#a"
    assert MatchRule.text("button", "Log In").selector == 'button:has-text("Log In")'
    assert MatchRule.role("button", "Submit").selector == 'role=button[name="Submit" i]'
    assert str(MatchRule.text("a", "Take the Quiz")) == 'a with text "Take the Quiz"'
