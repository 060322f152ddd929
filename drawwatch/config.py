from __future__ import annotations

import os
import pathlib
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/113.0.0.0 Safari/537.36"
)


class ConfigurationError(RuntimeError):
    """Raised when a setting in the environment is missing or invalid."""


def _bool_from_env(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int_from_env(value: Optional[str], default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigurationError(f"Expected an integer setting, got {value!r}") from exc


def _optional_env(key: str) -> Optional[str]:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return None
    return value.strip()


@dataclass(frozen=True)
class ScraperSettings:
    url: str = "https://www.superenalotto.it/archivio-estrazioni"
    user_agent: str = DEFAULT_USER_AGENT
    timeout_seconds: int = 10
    table_selector: str = "section#archivioEstrazioni table tbody"


@dataclass(frozen=True)
class StoreSettings:
    backend: str = "supabase"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    database_url: Optional[str] = None
    table: str = "app_state"
    key: str = "last_processed_date"


@dataclass(frozen=True)
class NotifierSettings:
    topic: Optional[str] = None
    server: str = "https://ntfy.sh"
    timeout_seconds: int = 10


@dataclass(frozen=True)
class WatchSettings:
    store: StoreSettings
    scraper: ScraperSettings = ScraperSettings()
    notifier: NotifierSettings = NotifierSettings()
    poll_interval_seconds: int = 3600
    alert_on_empty_table: bool = False

    def copy(self, **updates) -> "WatchSettings":
        return replace(self, **updates)


def _store_from_environment() -> StoreSettings:
    backend = (os.getenv("STATE_BACKEND") or "supabase").strip().lower()
    store = StoreSettings(
        backend=backend,
        supabase_url=_optional_env("SUPABASE_URL"),
        supabase_key=_optional_env("SUPABASE_SERVICE_KEY"),
        database_url=_optional_env("DATABASE_URL"),
        table=os.getenv("STATE_TABLE", "app_state"),
        key=os.getenv("STATE_KEY", "last_processed_date"),
    )

    if backend == "supabase":
        if not store.supabase_url or not store.supabase_key:
            raise ConfigurationError("Supabase credentials missing.")
    elif backend == "sql":
        if not store.database_url:
            raise ConfigurationError("DATABASE_URL missing for the sql state backend.")
        try:
            make_url(store.database_url)
        except ArgumentError as exc:
            raise ConfigurationError(f"Invalid DATABASE_URL: {exc}") from exc
    else:
        raise ConfigurationError(f"Unknown STATE_BACKEND: {backend}")
    return store


def load_from_environment() -> WatchSettings:
    store = _store_from_environment()

    scraper = ScraperSettings(
        url=os.getenv("SCRAPER__URL", ScraperSettings.url),
        user_agent=os.getenv("SCRAPER__USER_AGENT", DEFAULT_USER_AGENT),
        timeout_seconds=_int_from_env(os.getenv("SCRAPER__TIMEOUT_SECONDS"), 10),
        table_selector=os.getenv("SCRAPER__TABLE_SELECTOR", ScraperSettings.table_selector),
    )

    notifier = NotifierSettings(
        topic=_optional_env("NTFY_TOPIC"),
        server=os.getenv("NTFY_SERVER", "https://ntfy.sh").rstrip("/"),
        timeout_seconds=_int_from_env(os.getenv("NTFY_TIMEOUT_SECONDS"), 10),
    )

    return WatchSettings(
        store=store,
        scraper=scraper,
        notifier=notifier,
        poll_interval_seconds=_int_from_env(os.getenv("POLL_INTERVAL_SECONDS"), 3600),
        alert_on_empty_table=_bool_from_env(os.getenv("ALERT_ON_EMPTY_TABLE"), False),
    )


@lru_cache(maxsize=1)
def load_config(dotenv_path: Optional[str] = None) -> WatchSettings:
    if dotenv_path:
        load_dotenv(dotenv_path)
    else:
        default_path = pathlib.Path(".env")
        if default_path.exists():
            load_dotenv(default_path)
    return load_from_environment()
