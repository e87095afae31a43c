"""Read access to the three input record sets.

The stock, visit and sale tables are owned upstream and their column sets
drifted over time, so they are reflected at read time and rows come back as
plain dicts. Field resolution happens later in the domain layer.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, tzinfo
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy import Date, DateTime, MetaData, Select, Table, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from fullstock.core.config import Settings
from fullstock.core.metrics import store_fetch_duration_seconds, store_fetch_errors_total
from fullstock.domain.decisions.dates import Window

logger = logging.getLogger(__name__)

DATASET_STOCK = "stock"
DATASET_VISITS = "visits"
DATASET_SALES = "sales"


class StoreFetchError(RuntimeError):
    """A dataset could not be read from the backing store."""

    def __init__(self, dataset: str, message: str):
        super().__init__(f"Failed to fetch {dataset}: {message}")
        self.dataset = dataset


class RecordStore:
    """Reads stock, visits and sales rows from reflected tables."""

    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        stock_table: str = "full_stock_min",
        visits_table: str = "visits_raw",
        sales_table: str = "sales_raw",
        row_limit: int = 50000,
        date_column: str = "date",
        order_columns: tuple[str, ...] = ("item_id", "date"),
        tz: tzinfo = ZoneInfo("America/Argentina/Buenos_Aires"),
    ):
        self._session_factory = session_factory
        self.tables = {
            DATASET_STOCK: stock_table,
            DATASET_VISITS: visits_table,
            DATASET_SALES: sales_table,
        }
        self.row_limit = row_limit
        self.date_column = date_column
        self.order_columns = order_columns
        # Calendar of the window; used to bind bounds on timezone-aware columns
        self.tz = tz

    @classmethod
    def from_settings(cls, settings: Settings, session_factory: sessionmaker) -> RecordStore:
        """Build a store with table names and limits from settings."""
        return cls(
            session_factory,
            stock_table=settings.stock_table,
            visits_table=settings.visits_table,
            sales_table=settings.sales_table,
            row_limit=settings.fetch_row_limit,
            tz=settings.tz,
        )

    def fetch_stock(self) -> list[dict[str, Any]]:
        """All current stock rows."""
        return self._fetch(DATASET_STOCK)

    def fetch_visits(self, window: Window | None) -> list[dict[str, Any]]:
        """Visit rows, pre-filtered to the window where the column type allows.

        A window of None reads the table without a date filter.
        """
        return self._fetch(DATASET_VISITS, window)

    def fetch_sales(self, window: Window | None) -> list[dict[str, Any]]:
        """Sale rows, pre-filtered to the window where the column type allows."""
        return self._fetch(DATASET_SALES, window)

    def _fetch(self, dataset: str, window: Window | None = None) -> list[dict[str, Any]]:
        table_name = self.tables[dataset]
        try:
            with store_fetch_duration_seconds.labels(dataset=dataset).time():
                with self._session_factory() as session:
                    rows = self._select(session, table_name, window)
        except SQLAlchemyError as e:
            store_fetch_errors_total.labels(dataset=dataset).inc()
            logger.error(
                "store_fetch_failed",
                extra={"dataset": dataset, "table": table_name, "error": str(e)},
            )
            raise StoreFetchError(dataset, str(e)) from e

        if len(rows) >= self.row_limit:
            logger.warning(
                "store_fetch_truncated",
                extra={"dataset": dataset, "table": table_name, "row_limit": self.row_limit},
            )
        logger.debug("store_fetch_done", extra={"dataset": dataset, "rows": len(rows)})
        return rows

    def _select(
        self, session: Session, table_name: str, window: Window | None
    ) -> list[dict[str, Any]]:
        table = Table(table_name, MetaData(), autoload_with=session.connection())
        stmt = self._build_select(table, window)
        return [dict(row) for row in session.execute(stmt).mappings().all()]

    def _build_select(self, table: Table, window: Window | None) -> Select:
        stmt = select(table)

        date_col = table.c.get(self.date_column)
        if window is not None and date_col is not None:
            # Only typed columns compare correctly in SQL; text dates are
            # filtered in-process by the window filter.
            if isinstance(date_col.type, DateTime):
                # Aware columns get local midnights with their offset
                tz = self.tz if date_col.type.timezone else None
                stmt = stmt.where(
                    date_col >= datetime.combine(window.from_date, time.min, tzinfo=tz),
                    date_col < datetime.combine(window.to_date, time.min, tzinfo=tz),
                )
            elif isinstance(date_col.type, Date):
                stmt = stmt.where(date_col >= window.from_date, date_col < window.to_date)

        order_by = [table.c[name] for name in self.order_columns if name in table.c]
        if order_by:
            stmt = stmt.order_by(*order_by)

        return stmt.limit(self.row_limit)
