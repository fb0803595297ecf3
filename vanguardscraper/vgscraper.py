"""
vanguardscraper.vgscraper.

Holdings extraction against the investor portal.

The flow of one extraction attempt:

- open a browser session (see :func:`vanguardscraper.vgsession.browser_session`);
- navigate to the login page and resolve the login form controls, which must
  be present immediately;
- type the credentials and submit the form with a programmatic click;
- wait for and open the "Investments" section, then switch to the detailed
  view and wait for the holdings table and its first data row;
- read every row, skipping the cash row, and parse the seven money cells of
  each holding concurrently.

The public contract:

- HoldingsScraper(cfg).run(credentials) -> list[HoldingRecord]

Any failure raises :class:`~vanguardscraper.vgerrors.ExtractionError` (or a
subclass). Nothing is returned for a partially parsed table.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING, Any

from .vgerrors import ExtractionError, ParseError
from .vgmodels import CASH_NAME, MONEY_FIELDS, HoldingRecord
from .vgsession import Portal, browser_session, wait_for_element
from .vgvalues import parse_value

if TYPE_CHECKING:
    from decimal import Decimal

    from .vgconfig import Config, Credentials

logger = logging.getLogger(__name__)

SessionFactory = Callable[["Config"], AbstractAsyncContextManager[Portal]]


class HoldingsScraper:
    """
    Drive one login-and-scrape attempt per :meth:`run` call.

    ``session_factory`` yields the :class:`Portal` to drive; it defaults to a
    real Playwright browser. ``sleep`` is the pause used between element-wait
    polls.
    """

    def __init__(
        self,
        cfg: Config,
        session_factory: SessionFactory | None = None,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ) -> None:
        self.cfg = cfg
        self.selectors = cfg.portal.selectors
        self.session_factory = session_factory or browser_session
        self.sleep = sleep

    async def run(self, credentials: Credentials) -> list[HoldingRecord]:
        async with self.session_factory(self.cfg) as portal:
            await self._login(portal, credentials)
            await self._open_detailed_view(portal)
            return await self._read_holdings(portal)

    async def _wait_for(self, portal: Portal, selector: str) -> Any:
        return await wait_for_element(
            portal,
            selector,
            attempts=self.cfg.portal.wait_attempts,
            interval_s=self.cfg.portal.wait_interval_s,
            sleep=self.sleep,
        )

    async def _require(self, portal: Portal, selector: str, what: str) -> Any:
        element = await portal.find_element(selector)
        if element is None:
            msg = f"{what} not found on login page: {selector!r}"
            raise ExtractionError(msg)
        return element

    async def _login(self, portal: Portal, credentials: Credentials) -> None:
        sel = self.selectors

        logger.info("navigating to login page")
        await portal.navigate(self.cfg.portal.login_url)

        logger.info("looking for login form elements")
        username_input = await self._require(portal, sel.username, "username field")
        password_input = await self._require(portal, sel.password, "password field")
        submit = await self._require(portal, sel.submit, "login button")

        logger.info("entering login credentials")
        await portal.type_text(username_input, credentials.username)
        await portal.type_text(password_input, credentials.password)
        await portal.click(submit)

    async def _open_detailed_view(self, portal: Portal) -> None:
        sel = self.selectors

        logger.info("waiting for login")
        await portal.click(await self._wait_for(portal, sel.investments_nav))

        logger.info("loading investments page")
        await portal.click(await self._wait_for(portal, sel.detail_toggle))

        logger.info("switching to detailed view")
        await self._wait_for(portal, sel.table)
        # The table mounts before its rows are populated
        await self._wait_for(portal, sel.first_row)

    async def _read_holdings(self, portal: Portal) -> list[HoldingRecord]:
        logger.info("finding table rows")
        rows = await portal.find_elements(self.selectors.rows)
        logger.info("found %s rows in table", len(rows))

        holdings: list[HoldingRecord] = []
        for index, row in enumerate(rows):
            name = await self._read_name(portal, row, index)
            if name == CASH_NAME:
                continue
            values = await self._read_money_cells(portal, row, name)
            holdings.append(HoldingRecord.from_cells(name, values))

        logger.info("extracted %s holdings", len(holdings))
        return holdings

    async def _read_name(self, portal: Portal, row: Any, index: int) -> str:
        cell = await portal.find_element(self.selectors.name_cell, root=row)
        text = await portal.read_text(cell) if cell is not None else None
        if text is None:
            msg = f"failed to get product name for row {index}"
            raise ExtractionError(msg)
        return text.strip()

    async def _read_money_cells(
        self, portal: Portal, row: Any, name: str,
    ) -> list[Decimal]:
        cells = await portal.find_elements(self.selectors.money_cell, root=row)
        if len(cells) != len(MONEY_FIELDS):
            msg = f"expected {len(MONEY_FIELDS)} money cells for {name!r}, found {len(cells)}"
            raise ExtractionError(msg)

        async def parse_cell(cell: Any) -> Decimal:
            return parse_value(await portal.read_text(cell))

        try:
            return list(await asyncio.gather(*(parse_cell(c) for c in cells)))
        except ParseError as e:
            msg = f"failed to parse money cell for {name!r}: {e}"
            raise ExtractionError(msg) from e
