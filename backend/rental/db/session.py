from __future__ import annotations

from fastapi import Request

from rental.core.config import Settings
from rental.db.store import RecordStore, build_seed


def create_store(settings: Settings) -> RecordStore:
    """Build the process-wide store from Settings and load its snapshot."""
    store = RecordStore(settings.DATA_FILE, seed=build_seed(settings))
    store.load()
    return store


def get_store(request: Request) -> RecordStore:
    """
    FastAPI dependency returning the store owned by the running application.
    Tests override this to inject a store backed by a temporary file.
    """
    return request.app.state.store
