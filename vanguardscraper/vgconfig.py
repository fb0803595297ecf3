"""
vanguardscraper.vgconfig
========================

Configuration dataclasses and helpers used to coerce an optional JSON
configuration into the typed objects consumed by the scraper runtime.

The primary public surface is :class:`Config`. :func:`load_config` reads a
JSON file (or starts from defaults when no file is given) and applies
environment overrides; :func:`load_credentials` reads the portal login from
the environment. Credentials are never part of the JSON file.
"""

from __future__ import annotations

import json
import os
from dataclasses import MISSING, dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal, get_args, get_type_hints

from .vgerrors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_SCHEDULE = "0 0 0,12 * * * *"
DEFAULT_DATABASE_URL = "sqlite:///vanguard.db"

BrowserName = Literal["chromium", "firefox", "webkit"]
BROWSERS: tuple[str, ...] = get_args(BrowserName)

ENV_USERNAME = "VANGUARD_USERNAME"
ENV_PASSWORD = "VANGUARD_PASSWORD"  # noqa: S105 - env var name, not a secret
ENV_DATABASE = "VANGUARD_DB"
ENV_SCHEDULE = "VANGUARD_SCHEDULE"


@dataclass
class PortalSelectors:
    """
    CSS selectors for the fixed portal layout.

    Fields
    ------
    username, password, submit: login form controls, resolved once without
        polling; absence means the page layout changed.
    investments_nav: side navigation link shown after login.
    detail_toggle: switch between the summary and detailed holdings views.
    table: detailed holdings table container.
    first_row: a populated data row; the table can mount before its rows.
    rows: every data row of the table.
    name_cell: product name cell, relative to a row.
    money_cell: numeric cells, relative to a row.
    """

    username: str = 'div.form-group.username input[type="text"]'
    password: str = 'div.form-group.password input[type="password"]'  # noqa: S105
    submit: str = 'form.form-login button[type="submit"]'
    investments_nav: str = "nav.side-navigation ul.secondary-navigation > li:nth-child(2) a"
    detail_toggle: str = "div.toggle-switch label"
    table: str = "table.table-investments-detailed"
    first_row: str = "table.table-investments-detailed tr.product-row"
    rows: str = "table.table-investments-detailed tbody tr.product-row"
    name_cell: str = "td.cell-product-name .content-product-name"
    money_cell: str = "td.cell-money"


@dataclass
class PortalConfig:
    """
    Portal location and element-wait tuning.

    ``wait_attempts`` polls spaced ``wait_interval_s`` seconds apart are made
    before a selector is reported missing.
    """

    login_url: str = "https://secure.vanguardinvestor.co.uk/Login"
    selectors: PortalSelectors = field(default_factory=PortalSelectors)
    wait_attempts: int = 10
    wait_interval_s: float = 1.0
    navigation_timeout_ms: int = 90_000


@dataclass
class RetryConfig:
    """Job-level retry policy: attempts per trigger and the pause between them."""

    max_attempts: int = 3
    backoff_s: float = 300.0


@dataclass
class Config:
    """
    Top-level runtime configuration.

    Mirrors the keys accepted by the JSON file read with :func:`load_config`.
    """

    browser: BrowserName = "chromium"
    headless: bool = True

    portal: PortalConfig = field(default_factory=PortalConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)

    schedule: str = DEFAULT_SCHEDULE
    database_url: str = DEFAULT_DATABASE_URL

    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8000


@dataclass(frozen=True)
class Credentials:
    """Portal login, loaded once at startup and passed down the job chain."""

    username: str
    password: str = field(repr=False)


def coerce_value(val: Any, target_type: Any) -> Any:
    if is_dataclass(target_type) and isinstance(val, dict):
        return coerce_nested(val, target_type)

    # Plain scalars: JSON has no float/int distinction worth keeping here
    if target_type is float and isinstance(val, int) and not isinstance(val, bool):
        return float(val)

    return val


def coerce_nested(obj: dict, cls: type[Any]) -> Any:
    """
    Build dataclass ``cls`` from ``obj``, recursing into nested dataclasses.

    Unknown keys are rejected so a typo in a config file fails loudly
    instead of silently falling back to a default.
    """
    if not is_dataclass(cls):
        return obj

    hints = get_type_hints(cls)
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(obj) - known)
    if unknown:
        msg = f"unknown {cls.__name__} keys: {unknown}"
        raise ConfigError(msg)

    kwargs = {}
    for f in fields(cls):
        if f.name not in obj:
            continue
        val = obj[f.name]
        if val is MISSING:
            continue
        kwargs[f.name] = coerce_value(val, hints[f.name])

    return cls(**kwargs)


def load_config(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """
    Return a :class:`Config` from ``path`` (if any) plus environment overrides.

    ``VANGUARD_DB`` overrides ``database_url``; a bare filesystem path is
    turned into a SQLite URL. ``VANGUARD_SCHEDULE`` overrides ``schedule``.
    """
    env = os.environ if environ is None else environ
    if path:
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            msg = f"failed to read config {path}: {e}"
            raise ConfigError(msg) from e
        if not isinstance(raw, dict):
            msg = f"config {path} must contain a JSON object"
            raise ConfigError(msg)
        cfg = coerce_nested(raw, Config)
    else:
        cfg = Config()

    if cfg.browser not in BROWSERS:
        msg = f"unsupported browser {cfg.browser!r}, expected one of {list(BROWSERS)}"
        raise ConfigError(msg)

    if db := env.get(ENV_DATABASE):
        cfg.database_url = db if "://" in db else f"sqlite:///{db}"
    if schedule := env.get(ENV_SCHEDULE):
        cfg.schedule = schedule
    return cfg


def load_credentials(environ: Mapping[str, str] | None = None) -> Credentials:
    """Read the portal login from ``VANGUARD_USERNAME``/``VANGUARD_PASSWORD``."""
    env = os.environ if environ is None else environ
    username = env.get(ENV_USERNAME, "")
    password = env.get(ENV_PASSWORD, "")
    if not username:
        msg = f"{ENV_USERNAME} env var is required"
        raise ConfigError(msg)
    if not password:
        msg = f"{ENV_PASSWORD} env var is required"
        raise ConfigError(msg)
    return Credentials(username, password)
