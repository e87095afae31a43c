"""Shared pytest fixtures and configuration."""

from __future__ import annotations

import os
import tempfile
from datetime import date, datetime
from pathlib import Path
from zoneinfo import ZoneInfo

# Required settings must exist before fullstock.db.session / fullstock.web.main import
os.environ["API_TOKEN"] = "test-token"
os.environ["APP_TIMEZONE"] = "America/Argentina/Buenos_Aires"
os.environ["DATABASE_URL"] = f"sqlite:///{Path(tempfile.gettempdir()) / 'fullstock_test.db'}"
os.environ["ENVIRONMENT"] = "test"

import pytest  # noqa: E402
from sqlalchemy import (  # noqa: E402
    Column,
    Date,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
)
from sqlalchemy.orm import sessionmaker  # noqa: E402

from fullstock.core.config import Settings, get_settings  # noqa: E402
from fullstock.db.records import RecordStore  # noqa: E402
from fullstock.domain.decisions.dates import Window  # noqa: E402

TZ = ZoneInfo("America/Argentina/Buenos_Aires")

# Frozen "now": window=30 gives [2024-05-02, 2024-06-01)
NOW = datetime(2024, 5, 31, 15, 0, tzinfo=TZ)


class FakeStore:
    """In-memory record source that remembers the windows it was asked for."""

    def __init__(self, stock=None, visits=None, sales=None):
        self.stock = list(stock or [])
        self.visits = list(visits or [])
        self.sales = list(sales or [])
        self.windows: dict[str, Window | None] = {}

    def fetch_stock(self):
        return list(self.stock)

    def fetch_visits(self, window):
        self.windows["visits"] = window
        return list(self.visits)

    def fetch_sales(self, window):
        self.windows["sales"] = window
        return list(self.sales)


@pytest.fixture
def tz():
    return TZ


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def settings() -> Settings:
    """Explicit settings, independent of any .env file."""
    return Settings(
        _env_file=None,
        api_token="test-token",
        app_timezone="America/Argentina/Buenos_Aires",
        sales_history_days=180,
        fetch_timeout_seconds=5.0,
    )


@pytest.fixture(autouse=True)
def _fresh_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def sample_records():
    """Stock, visits and sales covering the common decision scenarios.

    X: stock 100, 30 sales, 300 visits -> coverage 100, ok, send 0
    Y: stock 5, 30 sales -> coverage 5, risk, send 9
    Z: stock only -> infinite coverage
    """
    stock = [
        {"item_id": "X", "total": 100, "title": "Item X"},
        {"item_id": "Y", "qty": 5},
        {"item_id": "Z", "available_quantity": 12},
    ]
    visits = [
        {"item_id": "X", "date": "2024-05-10", "visits": 150},
        {"item_id": "X", "date": "2024-05-20", "visits": 150},
    ]
    sales = [
        {"item_id": "X", "date": "2024-05-15", "quantity": 30},
        {"item_id": "Y", "date": "2024-05-16", "orders": 30},
    ]
    return stock, visits, sales


@pytest.fixture
def fake_store(sample_records):
    stock, visits, sales = sample_records
    return FakeStore(stock, visits, sales)


@pytest.fixture
def sqlite_engine(tmp_path):
    """File-backed SQLite engine with the three upstream tables."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'records.db'}",
        connect_args={"check_same_thread": False},
    )
    metadata = MetaData()
    Table(
        "full_stock_min",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("item_id", String),
        Column("total", Integer),
        Column("title", String),
    )
    Table(
        "visits_raw",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("item_id", String),
        Column("date", Date),
        Column("visits", Integer),
    )
    Table(
        "sales_raw",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("item_id", String),
        Column("date", DateTime),
        Column("quantity", Integer),
    )
    metadata.create_all(engine)

    with engine.begin() as conn:
        conn.execute(
            metadata.tables["full_stock_min"].insert(),
            [
                {"item_id": "mla1", "total": 10, "title": "One"},
                {"item_id": "MLA2", "total": 0, "title": "Two"},
            ],
        )
        conn.execute(
            metadata.tables["visits_raw"].insert(),
            [
                {"item_id": "MLA1", "date": date(2024, 5, 2), "visits": 4},
                {"item_id": "MLA1", "date": date(2024, 6, 1), "visits": 100},
                {"item_id": "MLA2", "date": date(2024, 4, 1), "visits": 7},
            ],
        )
        conn.execute(
            metadata.tables["sales_raw"].insert(),
            [
                {"item_id": "MLA1 ", "date": datetime(2024, 5, 20, 10, 0), "quantity": 3},
                {"item_id": "MLA2", "date": datetime(2024, 3, 1, 9, 0), "quantity": 1},
            ],
        )

    yield engine
    engine.dispose()


@pytest.fixture
def sqlite_store(sqlite_engine) -> RecordStore:
    return RecordStore(sessionmaker(bind=sqlite_engine))


@pytest.fixture
def store_factory():
    """Build a FakeStore from explicit record lists."""
    return FakeStore
