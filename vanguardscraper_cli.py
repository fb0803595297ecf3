import argparse
import asyncio
import logging
from pathlib import Path

import pandas as pd

from vanguardscraper import (
    HoldingsScraper,
    HoldingStore,
    ScraperError,
    load_config,
    load_credentials,
    records_to_frame,
    run_with_retry,
)

logger = logging.getLogger(__name__)


def _export(dframe: pd.DataFrame, csv: str) -> None:
    logger.info("Rows: %s | Cols: %s", len(dframe), len(dframe.columns))
    logger.info("\n%s", dframe.head(20).to_string(index=False))
    if csv:
        out = Path(csv)
        out.parent.mkdir(parents=True, exist_ok=True)
        dframe.to_csv(out, index=False, encoding="utf-8")
        logger.info("Saved CSV to: %s", out)


def cmd_serve(args: argparse.Namespace) -> None:
    import uvicorn

    from vanguardscraper.web import create_app

    cfg = load_config(args.cfg)
    credentials = load_credentials()
    store = HoldingStore.connect(cfg.database_url)
    server = create_app(cfg, store, credentials=credentials)
    # uvicorn handles SIGINT/SIGTERM and runs the app's shutdown sequence
    uvicorn.run(
        server,
        host=args.host or cfg.host,
        port=args.port or cfg.port,
        log_level=args.log_level.lower(),
    )


def cmd_scrape(args: argparse.Namespace) -> None:
    cfg = load_config(args.cfg)
    if args.headed:
        cfg.headless = False
    credentials = load_credentials()

    scraper = HoldingsScraper(cfg)
    if args.retry:
        records = asyncio.run(
            run_with_retry(
                scraper,
                credentials,
                max_attempts=cfg.retry.max_attempts,
                backoff_s=cfg.retry.backoff_s,
            ),
        )
    else:
        records = asyncio.run(scraper.run(credentials))

    if args.save:
        store = HoldingStore.connect(cfg.database_url)
        try:
            store.insert(records)
        finally:
            store.close()

    _export(records_to_frame(records), args.csv)


def cmd_list(args: argparse.Namespace) -> None:
    cfg = load_config(args.cfg)
    store = HoldingStore.connect(cfg.database_url)
    try:
        rows = store.fetch_all()
    finally:
        store.close()
    _export(records_to_frame(rows), args.csv)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Scrape and store Vanguard holdings")
    ap.add_argument("--cfg", type=str, default="", help="Optional path to config JSON")
    ap.add_argument("--log-level", default="INFO", help="Logging level (default INFO)")
    sub = ap.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the scheduler and the read API")
    serve.add_argument("--host", default="", help="Bind address (overrides config)")
    serve.add_argument("--port", type=int, default=0, help="Bind port (overrides config)")
    serve.set_defaults(func=cmd_serve)

    scrape = sub.add_parser("scrape", help="Run one extraction now")
    scrape.add_argument("--csv", type=str, default="", help="Optional path to export CSV")
    scrape.add_argument("--save", action="store_true", help="Persist the snapshot")
    scrape.add_argument("--retry", action="store_true", help="Apply the job retry policy")
    scrape.add_argument("--headed", action="store_true", help="Show the browser window")
    scrape.set_defaults(func=cmd_scrape)

    lst = sub.add_parser("list", help="Print stored snapshots")
    lst.add_argument("--csv", type=str, default="", help="Optional path to export CSV")
    lst.set_defaults(func=cmd_list)
    return ap


def main() -> None:
    args = build_parser().parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))
    try:
        args.func(args)
    except ScraperError as e:
        logger.error("%s", e)
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()
