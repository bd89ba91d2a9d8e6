# rental/services/query.py
"""
Generic list pipeline shared by every paginated listing:

    scope -> filter -> sort -> paginate -> enrich -> summarize

Each collection plugs in through a CollectionSpec; the pipeline itself knows
nothing about payments, images or tenants.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from rental.auth.identity import Identity
from rental.auth.permissions import is_admin
from rental.core.config import settings
from rental.core.exceptions import ValidationError
from rental.core.roles import PaymentStatus
from rental.db.store import Record, RecordStore
from rental.schemas.common import parse_model

ALL = "all"
MISSING_ROOM = "--"

DATE_FIELDS = frozenset(
    {"created_at", "updated_at", "uploaded_at", "payment_date", "lease_start", "lease_end"}
)

SortValue = Tuple[int, float, str]

# plain decimals only: "nan", "inf" and "1e3" stay text
_DECIMAL = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)")


def numeric_value(value: Any) -> Optional[float]:
    """The finite number a stored value stands for, or None if it is not one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and _DECIMAL.fullmatch(value.strip()):
        number = float(value.strip())
    else:
        return None
    return number if math.isfinite(number) else None


# ---------------------------------------------------------
# Statistics
# ---------------------------------------------------------
def to_number(value: Any) -> float:
    number = numeric_value(value)
    return 0.0 if number is None else number


def _count_only(records: List[Record]) -> Dict[str, Any]:
    return {"total_records": len(records)}


def payment_statistics(records: List[Record]) -> Dict[str, Any]:
    return {
        "total_payments": len(records),
        "pending_payments": sum(1 for r in records if r.get("status") == PaymentStatus.PENDING.value),
        "confirmed_payments": sum(1 for r in records if r.get("status") == PaymentStatus.CONFIRMED.value),
        "total_amount": sum(to_number(r.get("total_amount")) for r in records),
    }


def image_statistics(records: List[Record]) -> Dict[str, Any]:
    return {
        "total_records": len(records),
        "total_file_size": int(sum(to_number(r.get("file_size")) for r in records)),
    }


# ---------------------------------------------------------
# Collection configuration
# ---------------------------------------------------------
@dataclass(frozen=True)
class CollectionSpec:
    name: str
    default_sort: str
    sortable: frozenset
    search_fields: Tuple[str, ...]
    default_limit: int = 10
    # field compared with identity.id for non-admin callers
    owner_field: str = "tenant_id"
    # field matched by the tenant_id filter
    tenant_field: str = "tenant_id"
    status_filter: bool = False
    join_room_number: bool = True
    hidden_fields: Tuple[str, ...] = ()
    summarize: Callable[[List[Record]], Dict[str, Any]] = field(default=_count_only)


PAYMENTS = CollectionSpec(
    name="payments",
    default_sort="created_at",
    sortable=frozenset(
        {
            "id", "created_at", "updated_at", "payment_date", "tenant_name", "status",
            "rent_amount", "water_fee", "electricity_fee", "electricity_usage", "total_amount",
        }
    ),
    search_fields=("tenant_name", "account_last_five"),
    default_limit=settings.PAYMENTS_PAGE_SIZE,
    status_filter=True,
    summarize=payment_statistics,
)

IMAGES = CollectionSpec(
    name="images",
    default_sort="uploaded_at",
    sortable=frozenset({"id", "uploaded_at", "tenant_name", "file_name", "file_size", "file_type"}),
    search_fields=("tenant_name", "file_name"),
    default_limit=settings.IMAGES_PAGE_SIZE,
    summarize=image_statistics,
)

TENANTS = CollectionSpec(
    name="tenants",
    default_sort="created_at",
    sortable=frozenset(
        {"id", "created_at", "name", "username", "room_number", "lease_start", "lease_end", "rent_amount"}
    ),
    search_fields=("name", "username", "room_number", "phone"),
    default_limit=settings.TENANTS_PAGE_SIZE,
    owner_field="id",
    tenant_field="id",
    join_room_number=False,
    hidden_fields=("password",),
)


# ---------------------------------------------------------
# Caller input
# ---------------------------------------------------------
class ListQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: Optional[int] = Field(default=None, ge=1)
    status: str = ALL
    tenant_id: str = ALL
    search: str = ""
    sort_by: Optional[str] = None
    sort_order: str = "DESC"

    @field_validator("status", "tenant_id", mode="before")
    @classmethod
    def _default_all(cls, v: Any) -> str:
        if v is None:
            return ALL
        s = str(v).strip()
        if not s or s.lower() == ALL:
            return ALL
        return s

    @field_validator("search", mode="before")
    @classmethod
    def _normalize_search(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("sort_by", mode="before")
    @classmethod
    def _normalize_sort_by(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        s = str(v).strip()
        return s or None

    @field_validator("sort_order", mode="before")
    @classmethod
    def _normalize_sort_order(cls, v: Any) -> str:
        s = "DESC" if v is None else (str(v).strip().upper() or "DESC")
        if s not in {"ASC", "DESC"}:
            raise ValueError("sort_order must be ASC or DESC")
        return s

    @property
    def descending(self) -> bool:
        return self.sort_order == "DESC"


def parse_list_query(raw: Mapping[str, Any]) -> ListQuery:
    """Build a ListQuery from loose caller input; bad values become ValidationError."""
    try:
        return parse_model(ListQuery, {k: v for k, v in raw.items() if v is not None})
    except ValidationError as e:
        raise ValidationError(f"Invalid query parameters: {e.message}")


# ---------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------
def scope(records: Iterable[Record], identity: Identity, spec: CollectionSpec) -> List[Record]:
    if is_admin(identity):
        return list(records)
    return [r for r in records if r.get(spec.owner_field) == identity.id]


def _matches_search(record: Record, needle: str, fields: Tuple[str, ...]) -> bool:
    for name in fields:
        value = record.get(name)
        if value is not None and needle in str(value).casefold():
            return True
    return False


def _loose_equals(stored: Any, wanted: str) -> bool:
    """Query-string "2", "02" and "2.0" all match 2 in the store."""
    a, b = numeric_value(stored), numeric_value(wanted)
    if a is not None and b is not None:
        return a == b
    return str(stored) == str(wanted)


def apply_filters(records: Iterable[Record], query: ListQuery, spec: CollectionSpec) -> List[Record]:
    result = list(records)

    if spec.status_filter and query.status != ALL:
        result = [r for r in result if r.get("status") == query.status]

    if query.tenant_id != ALL:
        result = [r for r in result if _loose_equals(r.get(spec.tenant_field), query.tenant_id)]

    if query.search:
        needle = query.search.casefold()
        result = [r for r in result if _matches_search(r, needle, spec.search_fields)]

    return result


def parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        s = value.strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _comparable(name: str, value: Any) -> SortValue:
    if name in DATE_FIELDS:
        ts = parse_timestamp(value)
        if ts is not None:
            return (0, ts.timestamp(), "")
    number = numeric_value(value)
    if number is not None:
        return (0, number, "")
    return (1, 0.0, str(value).casefold())


def _sort_value(record: Record, sort_by: str, fallback: Optional[str]) -> Optional[SortValue]:
    for name in (sort_by, fallback):
        if name is None:
            continue
        value = record.get(name)
        if value is None or value == "":
            continue
        return _comparable(name, value)
    return None


def _id_key(record: Record) -> Tuple[int, Any]:
    rid = record.get("id")
    if isinstance(rid, int) and not isinstance(rid, bool):
        return (0, rid)
    return (1, str(rid))


def sort_records(
    records: Iterable[Record],
    sort_by: str,
    *,
    descending: bool = True,
    fallback: Optional[str] = None,
) -> List[Record]:
    """
    Sort by one field, ties broken by id ascending.

    Records with neither the field nor the fallback go last in both orders.
    """
    keyed: List[Tuple[SortValue, Record]] = []
    missing: List[Record] = []
    for record in sorted(records, key=_id_key):
        key = _sort_value(record, sort_by, fallback)
        if key is None:
            missing.append(record)
        else:
            keyed.append((key, record))
    # list.sort is stable with reverse=True as well, so the id order survives ties
    keyed.sort(key=lambda kr: kr[0], reverse=descending)
    return [r for _, r in keyed] + missing


def paginate(records: List[Record], page: int, limit: int) -> Tuple[List[Record], Dict[str, int]]:
    total = len(records)
    start = (page - 1) * limit
    window = records[start:start + limit]
    return window, {
        "current_page": page,
        "per_page": limit,
        "total_pages": math.ceil(total / limit) if total else 0,
        "total_records": total,
    }


def enrich(records: List[Record], store: RecordStore, spec: CollectionSpec) -> List[Record]:
    rooms: Dict[Any, Any] = {}
    if spec.join_room_number:
        rooms = {t.get("id"): t.get("room_number") for t in store.tenants}

    rows = []
    for record in records:
        row = {k: v for k, v in record.items() if k not in spec.hidden_fields}
        if spec.join_room_number:
            room = rooms.get(record.get("tenant_id"))
            row["room_number"] = room if room not in (None, "") else MISSING_ROOM
        rows.append(row)
    return rows


# ---------------------------------------------------------
# Entry point
# ---------------------------------------------------------
def run_query(
    store: RecordStore,
    identity: Identity,
    spec: CollectionSpec,
    query: ListQuery | Mapping[str, Any],
    *,
    max_limit: Optional[int] = None,
) -> Dict[str, Any]:
    if not isinstance(query, ListQuery):
        query = parse_list_query(query)

    max_limit = max_limit or settings.MAX_PAGE_SIZE
    limit = query.limit or spec.default_limit
    if limit > max_limit:
        raise ValidationError(f"limit must be at most {max_limit}")

    sort_by = query.sort_by or spec.default_sort
    if sort_by not in spec.sortable:
        raise ValidationError(
            f"Cannot sort {spec.name} by {sort_by!r}; allowed: {', '.join(sorted(spec.sortable))}"
        )

    records = scope(store.collection(spec.name), identity, spec)
    records = apply_filters(records, query, spec)
    records = sort_records(records, sort_by, descending=query.descending, fallback=spec.default_sort)

    window, pagination = paginate(records, query.page, limit)

    return {
        "data": enrich(window, store, spec),
        "pagination": pagination,
        "statistics": spec.summarize(records),
    }
