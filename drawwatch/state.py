from __future__ import annotations

import abc
import asyncio
import logging
from typing import Optional

import requests
from sqlalchemy.exc import SQLAlchemyError

from .config import StoreSettings
from .db import make_engine, make_session_factory, session_scope
from .models import AppState, Base

logger = logging.getLogger("drawwatch.state")


class StateStore(abc.ABC):
    """Single key/value record holding the last notified draw date.

    Both operations are soft: failures are logged and reported through the
    return value so that a persistence outage never aborts a check.
    """

    def __init__(self, key: str) -> None:
        self.key = key

    @abc.abstractmethod
    async def get_last_date(self) -> Optional[str]:
        """Return the stored date, or None when it is unknown."""

    @abc.abstractmethod
    async def set_last_date(self, date: str) -> bool:
        """Insert or update the stored date; return True on success."""

    async def close(self) -> None:
        return None


class SupabaseStateStore(StateStore):
    """State kept in a Supabase table through its PostgREST endpoint."""

    def __init__(
        self,
        url: str,
        service_key: str,
        table: str = "app_state",
        key: str = "last_processed_date",
        timeout_seconds: int = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        super().__init__(key)
        self._endpoint = f"{url.rstrip('/')}/rest/v1/{table}"
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "apikey": service_key,
                "Authorization": f"Bearer {service_key}",
            }
        )

    async def get_last_date(self) -> Optional[str]:
        logger.info("Querying Supabase for key: %s", self.key)
        try:
            rows = await asyncio.to_thread(self._select)
        except (requests.RequestException, ValueError) as exc:
            logger.error("Supabase query failed: %s", exc)
            return None

        value = rows[0].get("value") if rows else None
        if value is None:
            logger.info("No record found for key %s in Supabase. First run?", self.key)
            return None
        logger.info("Found last processed date in Supabase: %s", value)
        return value

    async def set_last_date(self, date: str) -> bool:
        logger.info("Upserting Supabase key: %s with value: %s", self.key, date)
        try:
            await asyncio.to_thread(self._upsert, date)
        except requests.RequestException as exc:
            logger.error("Supabase upsert failed: %s", exc)
            return False
        logger.info("Successfully updated last processed date in Supabase.")
        return True

    def _select(self) -> list:
        resp = self._session.get(
            self._endpoint,
            params={"select": "value", "key": f"eq.{self.key}"},
            headers={"Accept": "application/json"},
            timeout=self._timeout,
        )
        resp.raise_for_status()
        rows = resp.json()
        if not isinstance(rows, list):
            raise ValueError("Supabase returned a non-list payload")
        return rows

    def _upsert(self, date: str) -> None:
        resp = self._session.post(
            self._endpoint,
            params={"on_conflict": "key"},
            json={"key": self.key, "value": date},
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
            timeout=self._timeout,
        )
        resp.raise_for_status()

    async def close(self) -> None:
        self._session.close()


class SqlStateStore(StateStore):
    """State kept in the ``app_state`` table of any SQLAlchemy database."""

    def __init__(self, database_url: str, key: str = "last_processed_date") -> None:
        super().__init__(key)
        self._engine = make_engine(database_url)
        self._factory = make_session_factory(self._engine)
        self._schema_ready = False

    def _ensure_schema(self) -> None:
        if not self._schema_ready:
            Base.metadata.create_all(self._engine)
            self._schema_ready = True

    async def get_last_date(self) -> Optional[str]:
        try:
            value = await asyncio.to_thread(self._sync_get)
        except SQLAlchemyError as exc:
            logger.error("State query failed: %s", exc)
            return None
        if value is None:
            logger.info("No record found for key %s. First run?", self.key)
        else:
            logger.info("Found last processed date: %s", value)
        return value

    async def set_last_date(self, date: str) -> bool:
        logger.info("Upserting key: %s with value: %s", self.key, date)
        try:
            await asyncio.to_thread(self._sync_set, date)
        except SQLAlchemyError as exc:
            logger.error("State upsert failed: %s", exc)
            return False
        return True

    def _sync_get(self) -> Optional[str]:
        self._ensure_schema()
        with session_scope(self._factory) as session:
            row = session.get(AppState, self.key)
            return row.value if row is not None else None

    def _sync_set(self, date: str) -> None:
        self._ensure_schema()
        with session_scope(self._factory) as session:
            row = session.get(AppState, self.key)
            if row is None:
                session.add(AppState(key=self.key, value=date))
            else:
                row.value = date

    async def close(self) -> None:
        self._engine.dispose()


def build_state_store(settings: StoreSettings) -> StateStore:
    if settings.backend == "sql":
        return SqlStateStore(settings.database_url or "", key=settings.key)
    return SupabaseStateStore(
        settings.supabase_url or "",
        settings.supabase_key or "",
        table=settings.table,
        key=settings.key,
    )
