import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from datetime import datetime
from decimal import Decimal

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel

from vanguardscraper import (
    Config,
    Credentials,
    HoldingsScraper,
    HoldingStore,
    StorageError,
    build_scheduler,
)

logger = logging.getLogger(__name__)


class Investment(BaseModel):
    id: int
    scraped_at: datetime | None = None
    name: str
    ongoing_charge: Decimal
    units: Decimal
    avg_unit_cost: Decimal
    last_price: Decimal
    total_cost: Decimal
    value: Decimal
    change: Decimal


def create_app(
    cfg: Config,
    store: HoldingStore,
    credentials: Credentials | None = None,
    scraper: HoldingsScraper | None = None,
) -> FastAPI:
    """
    Build the read API.

    When ``credentials`` are given the scrape scheduler runs as a background
    task for the lifetime of the app. On shutdown the task is cancelled and
    awaited (unwinding any open browser session) before the store is closed.
    """

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        task: asyncio.Task | None = None
        if credentials is not None:
            scheduler = build_scheduler(cfg, credentials, store, scraper)
            task = asyncio.create_task(scheduler.run(), name="scrape-scheduler")
            logger.info("scheduler started with schedule %r", cfg.schedule)
        try:
            yield
        finally:
            if task is not None:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
                logger.info("scheduler stopped")
            store.close()

    server = FastAPI(title="vanguardscraper", lifespan=lifespan)
    server.state.store = store

    @server.get("/api/investments", response_model=list[Investment])
    def get_investments(request: Request):
        try:
            rows = request.app.state.store.fetch_all()
        except StorageError:
            logger.exception("Failed to read investments")
            raise HTTPException(500, "Failed to read investments") from None
        return [Investment(**row.as_dict()) for row in rows]

    return server
