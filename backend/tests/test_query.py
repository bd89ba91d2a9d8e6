# tests/test_query.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from rental.auth.identity import Identity
from rental.core.exceptions import ValidationError
from rental.db.store import RecordStore
from rental.services import query

ADMIN = Identity(id="admin", username="admin", role="admin", name="Administrator")
TENANT_2 = Identity(id=2, username="tenant", role="tenant", name="Test Tenant")

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_store(tmp_path, payments=(), images=(), tenants=None) -> RecordStore:
    store = RecordStore(tmp_path / "data.json")
    store.load()
    store.tenants.extend(
        tenants
        if tenants is not None
        else [
            {"id": 2, "username": "tenant", "name": "Test Tenant", "room_number": "101", "password": "h"},
            {"id": 3, "username": "neighbour", "name": "Neighbour", "room_number": "202", "password": "h"},
        ]
    )
    store.payments.extend(payments)
    store.images.extend(images)
    return store


def make_payment(pid: int, tenant_id: int = 2, status: str = "pending", total: float = 100.0) -> dict:
    return {
        "id": pid,
        "tenant_id": tenant_id,
        "tenant_name": "Test Tenant" if tenant_id == 2 else "Neighbour",
        "status": status,
        "total_amount": total,
        "account_last_five": f"{pid:05d}",
        "created_at": (BASE + timedelta(minutes=pid)).isoformat(),
    }


# ---------------------------------------------------------
# Pagination
# ---------------------------------------------------------
def test_second_page_of_25_payments(tmp_path):
    store = make_store(tmp_path, payments=[make_payment(i) for i in range(1, 26)])

    result = query.run_query(store, ADMIN, query.PAYMENTS, {"page": "2", "limit": "10"})

    # newest first: ranks 11-20 are ids 15..6
    assert [r["id"] for r in result["data"]] == list(range(15, 5, -1))
    assert result["pagination"] == {
        "current_page": 2,
        "per_page": 10,
        "total_pages": 3,
        "total_records": 25,
    }


def test_pages_cover_the_filtered_set_exactly_once(tmp_path):
    payments = [make_payment(i, status="confirmed" if i % 3 == 0 else "pending") for i in range(1, 26)]
    store = make_store(tmp_path, payments=payments)
    params = {"status": "pending", "limit": 7, "sort_by": "id", "sort_order": "ASC"}

    first = query.run_query(store, ADMIN, query.PAYMENTS, params)
    total_pages = first["pagination"]["total_pages"]
    seen = []
    for page in range(1, total_pages + 1):
        seen += [r["id"] for r in query.run_query(store, ADMIN, query.PAYMENTS, {**params, "page": page})["data"]]

    expected = [p["id"] for p in payments if p["status"] == "pending"]
    assert seen == expected
    assert total_pages == -(-len(expected) // 7)


def test_page_past_the_end_is_empty(tmp_path):
    store = make_store(tmp_path, payments=[make_payment(i) for i in range(1, 4)])

    result = query.run_query(store, ADMIN, query.PAYMENTS, {"page": 5, "limit": 2})

    assert result["data"] == []
    assert result["pagination"]["total_pages"] == 2
    assert result["pagination"]["total_records"] == 3


def test_empty_collection_has_zero_pages(tmp_path):
    store = make_store(tmp_path)

    result = query.run_query(store, ADMIN, query.IMAGES, {})

    assert result["data"] == []
    assert result["pagination"]["total_pages"] == 0
    assert result["pagination"]["per_page"] == query.IMAGES.default_limit
    assert result["statistics"] == {"total_records": 0, "total_file_size": 0}


# ---------------------------------------------------------
# Scope + filters
# ---------------------------------------------------------
def test_tenant_never_sees_other_tenants_records(tmp_path):
    payments = [make_payment(i, tenant_id=2 if i % 2 else 3) for i in range(1, 11)]
    store = make_store(tmp_path, payments=payments)

    result = query.run_query(store, TENANT_2, query.PAYMENTS, {"tenant_id": "3", "limit": 50})

    assert result["data"] == []
    own = query.run_query(store, TENANT_2, query.PAYMENTS, {"limit": 50})
    assert {r["tenant_id"] for r in own["data"]} == {2}
    assert own["pagination"]["total_records"] == 5


def test_tenant_id_filter_accepts_query_string_values(tmp_path):
    payments = [make_payment(1, tenant_id=2), make_payment(2, tenant_id=3), make_payment(3, tenant_id=3)]
    store = make_store(tmp_path, payments=payments)

    result = query.run_query(store, ADMIN, query.PAYMENTS, {"tenant_id": "3"})

    assert sorted(r["id"] for r in result["data"]) == [2, 3]


@pytest.mark.parametrize("wanted", ["2", "02", "2.0", " 2 "])
def test_tenant_id_filter_compares_numerically(tmp_path, wanted):
    payments = [make_payment(1, tenant_id=2), make_payment(2, tenant_id=3)]
    store = make_store(tmp_path, payments=payments)

    result = query.run_query(store, ADMIN, query.PAYMENTS, {"tenant_id": wanted})

    assert [r["id"] for r in result["data"]] == [1]


def test_tenant_id_filter_with_text_matches_nothing_numeric(tmp_path):
    store = make_store(tmp_path, payments=[make_payment(1, tenant_id=2)])

    result = query.run_query(store, ADMIN, query.PAYMENTS, {"tenant_id": "two"})

    assert result["data"] == []


def test_status_all_is_case_insensitive(tmp_path):
    store = make_store(tmp_path, payments=[make_payment(1), make_payment(2, status="confirmed")])

    result = query.run_query(store, ADMIN, query.PAYMENTS, {"status": "ALL"})

    assert result["pagination"]["total_records"] == 2


def test_search_is_case_insensitive_substring(tmp_path):
    payments = [make_payment(1, tenant_id=2), make_payment(2, tenant_id=3)]
    store = make_store(tmp_path, payments=payments)

    result = query.run_query(store, ADMIN, query.PAYMENTS, {"search": "  neighB "})

    assert [r["id"] for r in result["data"]] == [2]


def test_statistics_describe_the_filtered_set_not_the_page(tmp_path):
    payments = [
        make_payment(1, status="pending", total=100),
        make_payment(2, status="confirmed", total=250.5),
        make_payment(3, status="confirmed", total=49.5),
        make_payment(4, tenant_id=3, status="pending", total=1000),
    ]
    store = make_store(tmp_path, payments=payments)

    result = query.run_query(store, ADMIN, query.PAYMENTS, {"tenant_id": 2, "limit": 1})

    assert len(result["data"]) == 1
    assert result["statistics"] == {
        "total_payments": 3,
        "pending_payments": 1,
        "confirmed_payments": 2,
        "total_amount": 400.0,
    }


# ---------------------------------------------------------
# Enrichment
# ---------------------------------------------------------
def test_room_number_is_joined_and_missing_tenant_shows_placeholder(tmp_path):
    payments = [make_payment(1, tenant_id=2), make_payment(2, tenant_id=99)]
    store = make_store(tmp_path, payments=payments)

    result = query.run_query(store, ADMIN, query.PAYMENTS, {"sort_by": "id", "sort_order": "asc"})

    assert [r["room_number"] for r in result["data"]] == ["101", query.MISSING_ROOM]
    # the store itself is not modified by enrichment
    assert "room_number" not in store.payments[0]


def test_tenant_listing_hides_passwords(tmp_path):
    store = make_store(tmp_path)

    result = query.run_query(store, ADMIN, query.TENANTS, {"sort_by": "room_number", "sort_order": "ASC"})

    assert [r["username"] for r in result["data"]] == ["tenant", "neighbour"]
    assert all("password" not in r for r in result["data"])
    assert result["statistics"] == {"total_records": 2}


def test_image_statistics_sum_file_sizes(tmp_path):
    images = [
        {"id": 1, "tenant_id": 2, "file_size": 300, "uploaded_at": BASE.isoformat()},
        {"id": 2, "tenant_id": 2, "file_size": "200", "uploaded_at": BASE.isoformat()},
        {"id": 3, "tenant_id": 2, "file_size": None, "uploaded_at": BASE.isoformat()},
    ]
    store = make_store(tmp_path, images=images)

    result = query.run_query(store, ADMIN, query.IMAGES, {})

    assert result["statistics"] == {"total_records": 3, "total_file_size": 500}


# ---------------------------------------------------------
# Sorting
# ---------------------------------------------------------
def test_ties_break_by_id_and_missing_values_go_last():
    records = [
        {"id": 4, "tenant_name": "b"},
        {"id": 1},
        {"id": 3, "tenant_name": "a"},
        {"id": 2, "tenant_name": "b"},
    ]

    desc = query.sort_records(records, "tenant_name", descending=True)
    asc = query.sort_records(records, "tenant_name", descending=False)

    assert [r["id"] for r in desc] == [2, 4, 3, 1]
    assert [r["id"] for r in asc] == [3, 2, 4, 1]


def test_dates_sort_chronologically_across_formats():
    records = [
        {"id": 1, "created_at": "2024-03-01T00:00:00Z"},
        {"id": 2, "created_at": "2024-01-15"},
        {"id": 3, "created_at": "2024-02-01T08:00:00+08:00"},
    ]

    result = query.sort_records(records, "created_at", descending=False)

    assert [r["id"] for r in result] == [2, 3, 1]


def test_numeric_fields_sort_numerically():
    records = [{"id": 1, "total_amount": 900}, {"id": 2, "total_amount": "15450"}, {"id": 3, "total_amount": 80.5}]

    result = query.sort_records(records, "total_amount", descending=True)

    assert [r["id"] for r in result] == [2, 1, 3]


def test_names_spelling_special_floats_sort_as_text():
    names = ["Zoe", "Nan", "Amy", "Infinity Lee", "inf"]
    records = [{"id": i, "tenant_name": name} for i, name in enumerate(names, start=1)]

    result = query.sort_records(records, "tenant_name", descending=False)

    assert [r["tenant_name"] for r in result] == ["Amy", "inf", "Infinity Lee", "Nan", "Zoe"]


@pytest.mark.parametrize(
    "value, expected",
    [
        (5, 5.0),
        ("80.5", 80.5),
        (" -3 ", -3.0),
        (".5", 0.5),
        ("nan", None),
        ("inf", None),
        ("-Infinity", None),
        ("1e3", None),
        (float("inf"), None),
        (True, None),
        ("", None),
        (None, None),
    ],
)
def test_numeric_value_accepts_plain_finite_decimals_only(value, expected):
    assert query.numeric_value(value) == expected


def test_statistics_ignore_non_finite_amounts():
    records = [{"total_amount": 100}, {"total_amount": "nan"}, {"total_amount": float("inf")}]

    assert query.payment_statistics(records)["total_amount"] == 100


# ---------------------------------------------------------
# Input validation
# ---------------------------------------------------------
@pytest.mark.parametrize(
    "params",
    [
        {"page": 0},
        {"page": "abc"},
        {"limit": 0},
        {"limit": 101},
        {"sort_order": "sideways"},
        {"sort_by": "password"},
    ],
)
def test_bad_list_parameters_are_validation_errors(tmp_path, params):
    store = make_store(tmp_path, payments=[make_payment(1)])

    with pytest.raises(ValidationError):
        query.run_query(store, ADMIN, query.PAYMENTS, params)
