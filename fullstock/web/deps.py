"""FastAPI dependencies for authentication, settings and the record store."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from fullstock.core.config import Settings, get_settings
from fullstock.db.records import RecordStore
from fullstock.db.session import SessionLocal
from fullstock.web.auth import require_auth


def get_store(settings: Annotated[Settings, Depends(get_settings)]) -> RecordStore:
    """Record store bound to the application session factory."""
    return RecordStore.from_settings(settings, SessionLocal)


# Type aliases for cleaner endpoints
AppSettings = Annotated[Settings, Depends(get_settings)]
Store = Annotated[RecordStore, Depends(get_store)]
Authenticated = Annotated[str, Depends(require_auth)]
