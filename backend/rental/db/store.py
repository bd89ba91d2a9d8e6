from __future__ import annotations

import asyncio
import copy
import json
import os
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

from rental.core.config import Settings
from rental.core.exceptions import InternalError
from rental.core.logging import get_logger
from rental.core.security import hash_password

logger = get_logger(__name__)

COLLECTIONS = ("tenants", "payments", "images")
BANK_INFO_KEY = "bankInfo"

Record = Dict[str, Any]


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class SeedData:
    """What a brand-new snapshot starts with."""

    tenants: List[Record] = field(default_factory=list)
    bank_info: Record = field(default_factory=dict)


def empty_dataset(bank_info: Optional[Record] = None) -> Dict[str, Any]:
    return {
        "tenants": [],
        "payments": [],
        "images": [],
        BANK_INFO_KEY: dict(bank_info or {}),
    }


class RecordStore:
    """
    The single shared dataset (tenants, payments, images, bank info) and its
    JSON snapshot on disk.

    Reads go straight to the in-memory collections. Every mutation must run
    inside ``transaction()``, which serializes writers and persists the whole
    dataset before the caller reports success.
    """

    def __init__(self, path: str | os.PathLike, seed: Optional[SeedData] = None):
        self.path = Path(path)
        self.seed = seed or SeedData()
        self._data: Dict[str, Any] = empty_dataset(self.seed.bank_info)
        self._lock = asyncio.Lock()

    # -----------------------------
    # Durable snapshot
    # -----------------------------
    def load(self) -> None:
        """
        Read the snapshot, or seed and persist a new one if none exists.

        A corrupt or unreadable snapshot is logged and replaced in memory by an
        empty dataset; the process keeps serving.
        """
        if not self.path.exists():
            self._data = empty_dataset(self.seed.bank_info)
            self._data["tenants"].extend(copy.deepcopy(self.seed.tenants))
            try:
                self.save()
            except InternalError:
                logger.error("Seeded record store could not be written to %s", self.path)
                return
            logger.info("Initialized new record store at %s", self.path)
            return

        try:
            with self.path.open("r", encoding="utf-8") as fh:
                raw = json.load(fh)
            if not isinstance(raw, dict):
                raise ValueError("snapshot root must be a JSON object")
        except (OSError, ValueError) as e:
            logger.error("Failed to load record store %s, starting empty: %s", self.path, e)
            self._data = empty_dataset(self.seed.bank_info)
            return

        data = empty_dataset(self.seed.bank_info)
        for name in COLLECTIONS:
            value = raw.get(name)
            if isinstance(value, list):
                data[name] = [r for r in value if isinstance(r, dict)]
        if isinstance(raw.get(BANK_INFO_KEY), dict):
            data[BANK_INFO_KEY] = raw[BANK_INFO_KEY]
        self._data = data
        logger.info(
            "Loaded record store from %s (%s)",
            self.path,
            ", ".join(f"{k}={v}" for k, v in self.counts().items()),
        )

    def save(self) -> None:
        """Rewrite the whole snapshot. Raises InternalError on any I/O failure."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(self._data, fh, ensure_ascii=False, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except (OSError, TypeError, ValueError) as e:
            logger.exception("Failed to save record store %s", self.path)
            raise InternalError("Failed to save data") from e
        logger.debug("Record store saved to %s", self.path)

    # -----------------------------
    # Mutation scope
    # -----------------------------
    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Dict[str, Any]]:
        """
        Serialize a read-modify-write cycle and persist it.

        On any exception inside the block, or a failed save, the in-memory
        dataset is restored to what it was when the block started.
        """
        async with self._lock:
            before = copy.deepcopy(self._data)
            try:
                yield self._data
                self.save()
            except BaseException:
                self._data = before
                raise

    # -----------------------------
    # Accessors
    # -----------------------------
    @property
    def data(self) -> Dict[str, Any]:
        return self._data

    @property
    def tenants(self) -> List[Record]:
        return self._data["tenants"]

    @property
    def payments(self) -> List[Record]:
        return self._data["payments"]

    @property
    def images(self) -> List[Record]:
        return self._data["images"]

    @property
    def bank_info(self) -> Record:
        return self._data[BANK_INFO_KEY]

    def collection(self, name: str) -> List[Record]:
        if name not in COLLECTIONS:
            raise KeyError(f"Unknown collection: {name}")
        return self._data[name]

    def next_id(self, name: str) -> int:
        ids = [r["id"] for r in self.collection(name) if isinstance(r.get("id"), int)]
        return max(ids, default=0) + 1

    def find(self, name: str, record_id: Any) -> Optional[Record]:
        for record in self.collection(name):
            if record.get("id") == record_id:
                return record
        return None

    def counts(self) -> Dict[str, int]:
        return {name: len(self._data[name]) for name in COLLECTIONS}


def build_seed(settings: Settings) -> SeedData:
    """Seed tenant and default bank details taken from Settings."""
    now = _utcnow_iso()
    tenant = {
        "id": 2,
        "username": settings.SEED_TENANT_USERNAME,
        "password": hash_password(settings.SEED_TENANT_PASSWORD),
        "name": settings.SEED_TENANT_NAME,
        "email": settings.SEED_TENANT_EMAIL,
        "phone": settings.SEED_TENANT_PHONE,
        "room_number": settings.SEED_TENANT_ROOM,
        "lease_start": None,
        "lease_end": None,
        "rent_amount": settings.SEED_TENANT_RENT,
        "role": "tenant",
        "created_at": now,
    }
    bank_info = {
        "bank_name": settings.DEFAULT_BANK_NAME,
        "branch_name": settings.DEFAULT_BRANCH_NAME,
        "account_name": settings.DEFAULT_ACCOUNT_NAME,
        "account_number": settings.DEFAULT_ACCOUNT_NUMBER,
        "updated_at": now,
    }
    return SeedData(tenants=[tenant], bank_info=bank_info)
