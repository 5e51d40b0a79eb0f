"""
Browser surface backed by Playwright.

Uses a persistent Chromium profile so a login performed manually in the
browser window survives between runs, plus the usual automation-hiding
tweaks for boards with bot detection.
"""

import asyncio
import os
from pathlib import Path
from typing import Optional, List, Any
from playwright.async_api import async_playwright, BrowserContext, Page
import logging

from ..base import NavigableSurface, BrowserUnavailableError, NavigationError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)

LAUNCH_ARGS = [
    '--disable-blink-features=AutomationControlled',
    '--disable-dev-shm-usage',
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-background-timer-throttling',
    '--disable-backgrounding-occluded-windows',
    '--disable-renderer-backgrounding',
]

HIDE_AUTOMATION_SCRIPT = """
    Object.defineProperty(navigator, 'webdriver', {
        get: () => undefined
    });
    Object.defineProperty(navigator, 'languages', {
        get: () => ['en-US', 'en']
    });
"""


class BrowserSurface(NavigableSurface):
    """
    One Chromium tab in a persistent profile.

    Usage:
        surface = await BrowserSurface.launch(Path('data/browser'), headless=False)
        try:
            await surface.navigate('https://www.naukri.com/python-jobs')
        finally:
            await surface.close()
    """

    def __init__(
        self,
        user_data_dir: Path,
        headless: bool = False,
        user_agent: str = DEFAULT_USER_AGENT,
        default_timeout: float = 60.0,
    ):
        """
        Args:
            user_data_dir: Directory holding the persistent browser profile
            headless: Run without a window (logins need a visible window)
            user_agent: User agent reported to sites
            default_timeout: Navigation timeout in seconds when none is given
        """
        self.user_data_dir = Path(user_data_dir)
        self.headless = headless
        self.user_agent = user_agent
        self.default_timeout = default_timeout
        self._playwright = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    @classmethod
    async def launch(cls, user_data_dir: Path, **kwargs) -> 'BrowserSurface':
        """Create and start a surface. Raises BrowserUnavailableError."""
        surface = cls(user_data_dir, **kwargs)
        await surface.start()
        return surface

    async def start(self):
        """Start Playwright and open the persistent context."""
        try:
            self.user_data_dir.mkdir(parents=True, exist_ok=True)
            self._playwright = await async_playwright().start()

            chromium_path = self._playwright.chromium.executable_path
            if not chromium_path or not os.path.exists(chromium_path):
                raise BrowserUnavailableError("Chromium browser not found. Run: playwright install chromium")

            logger.debug(f"Launching Chromium with profile {self.user_data_dir}...")
            self._context = await self._playwright.chromium.launch_persistent_context(
                str(self.user_data_dir),
                headless=self.headless,
                args=LAUNCH_ARGS,
                viewport={'width': 1920, 'height': 1080},
                user_agent=self.user_agent,
                locale='en-US',
                handle_sigint=False,
                handle_sigterm=False,
                handle_sighup=False,
            )
            await self._context.add_init_script(HIDE_AUTOMATION_SCRIPT)

            pages = self._context.pages
            self._page = pages[0] if pages else await self._context.new_page()
            logger.debug("Browser initialization successful")

        except BrowserUnavailableError:
            await self._cleanup()
            raise
        except Exception as e:
            logger.error(f"Failed to initialize browser: {e}")
            await self._cleanup()
            raise BrowserUnavailableError(f"Failed to launch browser: {e}") from e

    @property
    def page(self) -> Page:
        if self._page is None:
            raise BrowserUnavailableError("Browser surface is not started")
        return self._page

    async def navigate(self, url: str, timeout: Optional[float] = None) -> None:
        timeout = timeout if timeout is not None else self.default_timeout
        try:
            response = await self.page.goto(
                url,
                wait_until='domcontentloaded',
                timeout=int(timeout * 1000),
            )
        except Exception as e:
            raise NavigationError(f"Navigation to {url} failed: {e}") from e

        if response and response.status >= 400:
            raise NavigationError(f"HTTP {response.status} for {url}")

    async def wait_for_selector(self, selector: str, timeout: float) -> bool:
        try:
            await self.page.wait_for_selector(selector, timeout=int(timeout * 1000))
            return True
        except Exception as e:
            logger.debug(f"Selector {selector} not found: {e}")
            return False

    async def query_all(self, selector: str) -> List[Any]:
        return await self.page.query_selector_all(selector)

    async def element_html(self, selector: str, index: int) -> Optional[str]:
        handles = await self.page.query_selector_all(selector)
        if index >= len(handles):
            return None
        return await handles[index].evaluate('el => el.outerHTML')

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        return await self.page.evaluate(script, arg)

    async def click(self, selector: str) -> bool:
        locator = self.page.locator(selector).first
        try:
            if await locator.count() == 0:
                return False
            await locator.click(timeout=5000)
            return True
        except Exception as e:
            logger.debug(f"Click on {selector} failed: {e}")
            return False

    async def scroll_to_bottom(self) -> None:
        await self.page.evaluate("window.scrollTo(0, document.body.scrollHeight)")

    async def current_height(self) -> int:
        return int(await self.page.evaluate("document.body.scrollHeight") or 0)

    async def content(self) -> str:
        return await self.page.content()

    async def close(self) -> None:
        await self._cleanup()

    async def _cleanup(self):
        """Release browser resources with timeouts to prevent hanging."""
        cleanup_timeout = 2.0

        if self._context:
            try:
                await asyncio.wait_for(self._context.close(), timeout=cleanup_timeout)
            except asyncio.TimeoutError:
                logger.warning("Context close timed out, forcing cleanup")
            except Exception as e:
                logger.warning(f"Error closing context: {e}")
            self._context = None
            self._page = None

        if self._playwright:
            try:
                await asyncio.wait_for(self._playwright.stop(), timeout=cleanup_timeout)
            except asyncio.TimeoutError:
                logger.warning("Playwright stop timed out, forcing cleanup")
            except Exception as e:
                logger.warning(f"Error stopping playwright: {e}")
            self._playwright = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self._cleanup()
