from dataclasses import dataclass

import pytest

from tagbox.routing import (
    BUCKET_CAPACITY,
    TABLE_SIZE,
    RoutingTable,
    hash_event_id,
    routing_index,
)


@dataclass
class Entry:
    event_id: int
    state: int = 0


def _same_bucket_ids(count):
    target = routing_index(1)
    ids = []
    candidate = 1
    while len(ids) < count:
        if routing_index(candidate) == target:
            ids.append(candidate)
        candidate += 1
    return ids


def test_hash_of_zero_is_zero():
    assert hash_event_id(0) == 0


def test_hash_is_64_bit_and_deterministic():
    for event_id in (1, 2, 12345, 2**63, 2**64 - 1):
        value = hash_event_id(event_id)
        assert 0 <= value < 2**64
        assert value == hash_event_id(event_id)


def test_hash_spreads_consecutive_ids():
    indices = {routing_index(event_id) for event_id in range(1, 200)}
    assert len(indices) > TABLE_SIZE // 2


def test_index_in_range():
    assert all(0 <= routing_index(event_id) < TABLE_SIZE for event_id in range(1000))


def test_insert_and_lookup():
    table = RoutingTable()
    entry = Entry(42)
    assert table.insert(entry)
    assert table.lookup(42) is entry
    assert len(table) == 1
    assert 42 in table


def test_lookup_missing():
    table = RoutingTable()
    assert table.lookup(7) is None
    assert 7 not in table


def test_remove():
    table = RoutingTable()
    table.insert(Entry(5))
    assert table.remove(5)
    assert table.lookup(5) is None
    assert len(table) == 0
    assert not table.remove(5)


def test_zero_id_rejected():
    with pytest.raises(ValueError):
        RoutingTable().insert(Entry(0))


def test_full_bucket_counts_collision():
    table = RoutingTable()
    ids = _same_bucket_ids(BUCKET_CAPACITY + 1)
    for event_id in ids[:BUCKET_CAPACITY]:
        assert table.insert(Entry(event_id))
    assert not table.insert(Entry(ids[-1]))
    assert table.collisions == 1
    assert len(table) == BUCKET_CAPACITY
    assert table.lookup(ids[-1]) is None


def test_slot_reused_after_remove():
    table = RoutingTable()
    ids = _same_bucket_ids(BUCKET_CAPACITY + 1)
    for event_id in ids[:BUCKET_CAPACITY]:
        table.insert(Entry(event_id))
    table.remove(ids[0])
    assert table.insert(Entry(ids[-1]))
    assert table.lookup(ids[-1]).event_id == ids[-1]


def test_utilization_and_full():
    table = RoutingTable()
    assert table.utilization() == 0
    assert not table.is_full()
    inserted = 0
    event_id = 1
    while inserted < TABLE_SIZE * BUCKET_CAPACITY:
        if table.insert(Entry(event_id)):
            inserted += 1
        event_id += 1
    assert table.is_full()
    assert table.utilization() == 100


def test_iteration_yields_all_entries():
    table = RoutingTable()
    for event_id in range(1, 11):
        table.insert(Entry(event_id))
    assert sorted(entry.event_id for entry in table) == list(range(1, 11))