"""One isolated Playwright browser context + page per quiz session."""
import logging
from pathlib import Path
from typing import Any, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Dialog,
    ElementHandle,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .errors import SetupError

logger = logging.getLogger("quizbot")

VIEWPORT = {"width": 1920, "height": 1080}
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
# Upper bound on the post-navigation network-idle wait
NETWORK_IDLE_TIMEOUT_MS = 10000

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--window-size=1920,1080",
]

# Non-zero box, displayed, not hidden, not fully transparent
IS_VISIBLE_JS = """el => {
    const style = window.getComputedStyle(el);
    const rect = el.getBoundingClientRect();
    return rect.width > 0 && rect.height > 0 &&
        style.display !== 'none' &&
        style.visibility !== 'hidden' &&
        parseFloat(style.opacity || '1') > 0;
}"""


class BrowserSession:
    """
    Browser Session Handle: owns one Playwright instance, browser, context and page.
    Everything the pipeline does to the page goes through these methods.
    """

    def __init__(self, headless: bool = True, slow_mo: Optional[int] = None):
        self.headless = headless
        self.slow_mo = slow_mo
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def start(self) -> None:
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                slow_mo=self.slow_mo,
                args=LAUNCH_ARGS,
            )
            self._context = await self._browser.new_context(
                viewport=VIEWPORT,
                user_agent=USER_AGENT,
                ignore_https_errors=True,
            )
            self._page = await self._context.new_page()
        except Exception as e:
            await self.close()
            raise SetupError(f"Could not start browser: {e}") from e
        # Native confirm()/alert() would block the page; accept them
        self._page.on("dialog", self._accept_dialog)

    @staticmethod
    async def _accept_dialog(dialog: Dialog) -> None:
        logger.debug("Accepting %s dialog: %s", dialog.type, dialog.message)
        try:
            await dialog.accept()
        except Exception as e:
            logger.debug("Dialog accept failed: %s", e)

    @property
    def page(self) -> Page:
        if self._page is None:
            raise SetupError("Browser session not started")
        return self._page

    @property
    def url(self) -> str:
        return self._page.url if self._page is not None else ""

    async def goto(self, url: str, timeout_ms: int = 60000) -> None:
        await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        await self._settle(timeout_ms)

    async def _settle(self, timeout_ms: int) -> None:
        """Best-effort network idle; pages that keep polling never reach it."""
        timeout_ms = min(timeout_ms, NETWORK_IDLE_TIMEOUT_MS)
        try:
            await self.page.wait_for_load_state("networkidle", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            logger.warning("Network still busy after %dms at %s; continuing", timeout_ms, self.url)

    async def query(self, selector: str, timeout_ms: int) -> Optional[ElementHandle]:
        """Wait up to timeout_ms for an element attached to the DOM; None on timeout."""
        try:
            return await self.page.wait_for_selector(selector, state="attached", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            return None

    async def is_visible(self, element: ElementHandle) -> bool:
        try:
            return bool(await element.evaluate(IS_VISIBLE_JS))
        except Exception:
            # Element detached between lookup and check
            return False

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        return await self.page.evaluate(script, arg)

    async def clear_and_type(self, element: ElementHandle, text: str, delay_ms: int = 100) -> None:
        await element.click(click_count=3)
        await self.page.keyboard.press("Backspace")
        await element.fill("")
        await element.focus()
        await self.page.keyboard.type(text, delay=delay_ms)

    async def click(self, element: ElementHandle) -> None:
        await element.click()

    async def press(self, element: ElementHandle, key: str) -> None:
        await element.press(key)

    async def wait_for_navigation(self, from_url: str, timeout_ms: int) -> bool:
        """Wait until the URL changes from from_url, then for the network to settle. False if the URL never changes."""
        try:
            await self.page.wait_for_url(lambda u: u != from_url, timeout=timeout_ms)
        except PlaywrightTimeoutError:
            return False
        await self._settle(timeout_ms)
        return True

    async def wait(self, ms: int) -> None:
        await self.page.wait_for_timeout(ms)

    async def screenshot(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        await self.page.screenshot(path=path)

    async def close(self) -> None:
        """Release context, browser and driver; safe to call more than once."""
        for name, closer in (
            ("context", self._context.close if self._context else None),
            ("browser", self._browser.close if self._browser else None),
            ("playwright", self._playwright.stop if self._playwright else None),
        ):
            if closer is None:
                continue
            try:
                await closer()
            except Exception as e:
                logger.debug("Error closing %s: %s", name, e)
        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None
