"""Tests for the reflected-table record store."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import Column, DateTime, Integer, MetaData, String, Table, create_engine
from sqlalchemy.orm import sessionmaker

from fullstock.core.config import Settings
from fullstock.db.records import RecordStore, StoreFetchError
from fullstock.domain.decisions.dates import Window

WINDOW = Window(from_date=date(2024, 5, 2), to_date=date(2024, 6, 1))


def test_fetch_stock_returns_plain_dicts(sqlite_store):
    rows = sqlite_store.fetch_stock()

    assert [r["item_id"] for r in rows] == ["MLA2", "mla1"]
    assert all(isinstance(r, dict) for r in rows)
    assert {"id", "item_id", "total", "title"} <= set(rows[0])


def test_fetch_visits_prefilters_date_column(sqlite_store):
    """A DATE column is filtered in SQL to [from, to)."""
    rows = sqlite_store.fetch_visits(WINDOW)

    assert len(rows) == 1
    assert rows[0]["date"] == date(2024, 5, 2)
    assert rows[0]["visits"] == 4


def test_fetch_sales_prefilters_datetime_column(sqlite_store):
    rows = sqlite_store.fetch_sales(WINDOW)

    assert len(rows) == 1
    assert rows[0]["item_id"] == "MLA1 "
    assert rows[0]["date"] == datetime(2024, 5, 20, 10, 0)


def test_text_date_columns_are_not_prefiltered(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'text.db'}")
    metadata = MetaData()
    table = Table(
        "sales_raw",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("item_id", String),
        Column("date", String),
        Column("quantity", Integer),
    )
    metadata.create_all(engine)
    with engine.begin() as conn:
        conn.execute(
            table.insert(),
            [
                {"item_id": "A", "date": "15/05/2024", "quantity": 1},
                {"item_id": "A", "date": "01/01/2020", "quantity": 1},
            ],
        )

    store = RecordStore(sessionmaker(bind=engine))

    assert len(store.fetch_sales(WINDOW)) == 2
    engine.dispose()


def test_row_limit_caps_results(sqlite_engine, caplog):
    store = RecordStore(sessionmaker(bind=sqlite_engine), row_limit=1)

    with caplog.at_level("WARNING"):
        rows = store.fetch_stock()

    assert len(rows) == 1
    assert any(r.message == "store_fetch_truncated" for r in caplog.records)


def test_missing_table_raises_store_fetch_error(sqlite_engine):
    store = RecordStore(sessionmaker(bind=sqlite_engine), sales_table="no_such_table")

    with pytest.raises(StoreFetchError) as exc_info:
        store.fetch_sales(WINDOW)

    assert exc_info.value.dataset == "sales"
    assert "Failed to fetch sales" in str(exc_info.value)


def test_from_settings_uses_configured_tables(sqlite_engine):
    settings = Settings(
        _env_file=None,
        api_token="t",
        stock_table="stock_v2",
        visits_table="visits_v2",
        sales_table="sales_v2",
        fetch_row_limit=10,
    )

    store = RecordStore.from_settings(settings, sessionmaker(bind=sqlite_engine))

    assert store.tables == {"stock": "stock_v2", "visits": "visits_v2", "sales": "sales_v2"}
    assert store.row_limit == 10


def _datetime_bounds(store: RecordStore, timezone_aware: bool) -> list[datetime]:
    table = Table(
        "sales_raw",
        MetaData(),
        Column("id", Integer, primary_key=True),
        Column("item_id", String),
        Column("date", DateTime(timezone=timezone_aware)),
    )
    params = store._build_select(table, WINDOW).compile().params
    return sorted(v for v in params.values() if isinstance(v, datetime))


def test_timezone_aware_column_binds_local_midnights():
    tz = ZoneInfo("America/Argentina/Buenos_Aires")
    store = RecordStore(sessionmaker(), tz=tz)

    bounds = _datetime_bounds(store, timezone_aware=True)

    assert bounds == [datetime(2024, 5, 2, tzinfo=tz), datetime(2024, 6, 1, tzinfo=tz)]
    assert all(b.utcoffset() == timedelta(hours=-3) for b in bounds)


def test_naive_datetime_column_binds_naive_midnights():
    store = RecordStore(sessionmaker(), tz=ZoneInfo("America/Argentina/Buenos_Aires"))

    bounds = _datetime_bounds(store, timezone_aware=False)

    assert bounds == [datetime(2024, 5, 2), datetime(2024, 6, 1)]
    assert all(b.tzinfo is None for b in bounds)


def test_from_settings_uses_configured_timezone(sqlite_engine):
    settings = Settings(_env_file=None, api_token="t", app_timezone="Europe/Madrid")

    store = RecordStore.from_settings(settings, sessionmaker(bind=sqlite_engine))

    assert store.tz == ZoneInfo("Europe/Madrid")


def test_fetch_without_window_reads_all_dated_rows(sqlite_store):
    assert len(sqlite_store.fetch_visits(None)) == 3
    assert len(sqlite_store.fetch_sales(None)) == 2
