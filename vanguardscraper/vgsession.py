"""
vanguardscraper.vgsession.

Browser session management and the small set of page operations the
holdings scraper needs.

Helpers
-------
- Portal: capability protocol {navigate, find_element, find_elements, click,
    type_text, read_text} the scraper drives. Tests supply an in-memory stub.
- PlaywrightPortal: :class:`Portal` over a Playwright async ``Page``.
- browser_session(cfg): async context manager launching a browser, opening
    a page, and running the per-attempt event pump. Teardown happens on every
    exit path.
- pump_events(queue, stop): drain queued page events into the log until the
    one-shot ``stop`` event is set.
- wait_for_element(portal, selector): bounded polling for an element that
    renders asynchronously.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TYPE_CHECKING, Any, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from .vgconfig import BROWSERS
from .vgerrors import ConfigError, ElementNotFoundError, ExtractionError, PortalError

if TYPE_CHECKING:
    from playwright.async_api import Browser, ElementHandle, Page

    from .vgconfig import Config

logger = logging.getLogger(__name__)

# Poll cadence used while draining the event queue
_PUMP_POLL_S = 0.25


class Portal(Protocol):
    """Page operations used by :class:`~vanguardscraper.vgscraper.HoldingsScraper`."""

    async def navigate(self, url: str) -> None: ...

    async def find_element(self, selector: str, root: Any = None) -> Any | None: ...

    async def find_elements(self, selector: str, root: Any = None) -> list[Any]: ...

    async def click(self, element: Any) -> None: ...

    async def type_text(self, element: Any, text: str) -> None: ...

    async def read_text(self, element: Any) -> str | None: ...


class PlaywrightPortal:
    """
    :class:`Portal` backed by a Playwright ``Page``.

    Element lookups return ``None`` when nothing matches; Playwright errors
    (navigation failures, detached nodes, closed targets) are re-raised as
    :class:`PortalError` so callers only deal with the scraper's own
    exception family.
    """

    def __init__(self, page: Page) -> None:
        self.page = page

    async def navigate(self, url: str) -> None:
        try:
            await self.page.goto(url, wait_until="domcontentloaded")
        except PlaywrightError as e:
            msg = f"failed to navigate to {url}: {e}"
            raise PortalError(msg) from e

    async def find_element(
        self, selector: str, root: ElementHandle | None = None,
    ) -> ElementHandle | None:
        try:
            return await (root or self.page).query_selector(selector)
        except PlaywrightError as e:
            msg = f"failed to query {selector!r}: {e}"
            raise PortalError(msg) from e

    async def find_elements(
        self, selector: str, root: ElementHandle | None = None,
    ) -> list[ElementHandle]:
        try:
            return await (root or self.page).query_selector_all(selector)
        except PlaywrightError as e:
            msg = f"failed to query {selector!r}: {e}"
            raise PortalError(msg) from e

    async def click(self, element: ElementHandle) -> None:
        # Invoke the DOM click() so overlays cannot intercept a pointer event
        try:
            await element.evaluate("el => el.click()")
        except PlaywrightError as e:
            msg = f"failed to click element: {e}"
            raise PortalError(msg) from e

    async def type_text(self, element: ElementHandle, text: str) -> None:
        try:
            await element.click()
            await element.fill(text)
        except PlaywrightError as e:
            # The text may be a credential; keep it out of the message
            msg = f"failed to type into element: {e}"
            raise PortalError(msg) from e

    async def read_text(self, element: ElementHandle) -> str | None:
        try:
            return await element.evaluate("el => el.innerText")
        except PlaywrightError as e:
            msg = f"failed to read element text: {e}"
            raise PortalError(msg) from e


def _watch_page(page: Page, queue: asyncio.Queue[tuple[str, str]]) -> None:
    """Forward the page events worth logging into ``queue``."""
    page.on("console", lambda msg: queue.put_nowait(("console", msg.text)))
    page.on("pageerror", lambda err: queue.put_nowait(("pageerror", str(err))))
    page.on(
        "requestfailed",
        lambda req: queue.put_nowait(("requestfailed", f"{req.method} {req.url}")),
    )
    page.on("crash", lambda _page: queue.put_nowait(("crash", "page crashed")))


def _log_event(kind: str, detail: str) -> None:
    if kind == "console":
        logger.debug("browser console: %s", detail)
    else:
        logger.warning("browser %s: %s", kind, detail)


async def pump_events(
    queue: asyncio.Queue[tuple[str, str]],
    stop: asyncio.Event,
) -> int:
    """
    Log events from ``queue`` until ``stop`` is set, then drain what is left.

    Returns the number of events handled.
    """
    handled = 0
    while not stop.is_set():
        try:
            kind, detail = await asyncio.wait_for(queue.get(), timeout=_PUMP_POLL_S)
        except asyncio.TimeoutError:
            continue
        _log_event(kind, detail)
        handled += 1
    while not queue.empty():
        _log_event(*queue.get_nowait())
        handled += 1
    return handled


async def _open_page(browser: Browser, cfg: Config) -> Page:
    try:
        page = await browser.new_page()
        page.set_default_navigation_timeout(cfg.portal.navigation_timeout_ms)
    except PlaywrightError as e:
        msg = f"failed to launch browser: could not open a page: {e}"
        raise ExtractionError(msg) from e
    return page


@contextlib.asynccontextmanager
async def browser_session(cfg: Config) -> AsyncIterator[PlaywrightPortal]:
    """
    Launch a browser and yield a :class:`PlaywrightPortal` on a fresh page.

    Any Playwright failure while starting the driver, launching the browser
    or opening the page is raised as :class:`ExtractionError`, so the job
    retry policy applies to it. An unknown ``cfg.browser`` is a
    :class:`ConfigError`.

    A pump task logs browser events for the lifetime of the session. On exit
    (normal, error or cancellation) the page is closed, the pump is signalled
    and awaited, and the browser and Playwright driver are shut down.
    """
    if cfg.browser not in BROWSERS:
        msg = f"unsupported browser {cfg.browser!r}, expected one of {list(BROWSERS)}"
        raise ConfigError(msg)

    logger.info("launching browser")
    try:
        play = await async_playwright().start()
    except PlaywrightError as e:
        msg = f"failed to launch browser: {e}"
        raise ExtractionError(msg) from e

    try:
        try:
            browser = await getattr(play, cfg.browser).launch(headless=cfg.headless)
        except PlaywrightError as e:
            msg = f"failed to launch browser: {e}"
            raise ExtractionError(msg) from e

        try:
            page = await _open_page(browser, cfg)

            queue: asyncio.Queue[tuple[str, str]] = asyncio.Queue()
            stop = asyncio.Event()
            _watch_page(page, queue)
            logger.info("starting event pump")
            pump = asyncio.create_task(pump_events(queue, stop), name="browser-event-pump")
            try:
                yield PlaywrightPortal(page)
            finally:
                # Only suppress Playwright errors while closing a possibly-dead page
                with contextlib.suppress(PlaywrightError):
                    await page.close()
                stop.set()
                handled = await pump
                logger.debug("event pump stopped after %s events", handled)
        finally:
            with contextlib.suppress(PlaywrightError):
                await browser.close()
    finally:
        with contextlib.suppress(PlaywrightError):
            await play.stop()


async def wait_for_element(
    portal: Portal,
    selector: str,
    attempts: int = 10,
    interval_s: float = 1.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Any:
    """
    Poll ``portal`` for ``selector`` until it resolves.

    Makes up to ``attempts`` lookups spaced ``interval_s`` seconds apart. A
    missing element or a :class:`PortalError` during lookup (for example a
    navigation tearing down the document) counts as a failed poll. Raises
    :class:`ElementNotFoundError` after the last failed poll.
    """
    for attempt in range(1, attempts + 1):
        try:
            element = await portal.find_element(selector)
        except PortalError as exc:
            logger.debug("wait_for_element: lookup of %r raised: %s", selector, exc)
            element = None
        if element is not None:
            return element
        if attempt < attempts:
            await sleep(interval_s)
    raise ElementNotFoundError(selector, attempts)
