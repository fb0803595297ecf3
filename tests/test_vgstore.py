from datetime import UTC, datetime
from decimal import Decimal

import pytest

from vanguardscraper import MONEY_FIELDS, HoldingRecord, HoldingStore, StorageError


@pytest.fixture
def store(tmp_path):
    store = HoldingStore.connect(f"sqlite:///{tmp_path / 'vanguard.db'}")
    yield store
    store.close()


def record(name, *values):
    return HoldingRecord(name, *(Decimal(v) for v in values))


def test_decimals_round_trip_exactly(store):
    precise = record(
        "Precise Fund",
        "0.2200",
        "123.456789",
        "0.000000000000000001",
        "98765432109876543210.123456789",
        "-0.10",
        "1E+3",
        "-12345.6700",
    )
    assert store.insert([precise]) == 1

    (row,) = store.fetch_all()
    for f in MONEY_FIELDS:
        got, want = getattr(row, f), getattr(precise, f)
        assert isinstance(got, Decimal)
        assert got.as_tuple() == want.as_tuple()
    assert row.name == "Precise Fund"


def test_each_insert_appends_a_snapshot(store):
    first = datetime(2024, 1, 1, 0, 0, tzinfo=UTC)
    second = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    store.insert([record("A", *["1"] * 7), record("B", *["2"] * 7)], scraped_at=first)
    store.insert([record("A", *["3"] * 7)], scraped_at=second)

    rows = store.fetch_all()
    assert [(r.name, r.scraped_at) for r in rows] == [("A", first), ("B", first), ("A", second)]
    assert [r.id for r in rows] == sorted(r.id for r in rows)


def test_failed_batch_writes_nothing(store):
    good = record("Good", *["1"] * 7)
    bad = HoldingRecord(None, *[Decimal("1")] * 7)  # violates NOT NULL on name

    with pytest.raises(StorageError):
        store.insert([good, bad])

    assert store.fetch_all() == []


def test_float_values_are_refused(store):
    sneaky = HoldingRecord("Float", *[0.1] * 7)

    with pytest.raises(StorageError):
        store.insert([sneaky])
    assert store.fetch_all() == []


def test_empty_batch_is_a_noop(store):
    assert store.insert([]) == 0
    assert store.fetch_all() == []


def test_connect_rejects_bad_url():
    with pytest.raises(StorageError):
        HoldingStore.connect("not a url")
