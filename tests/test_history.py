import itertools
import random
import threading

from netstats.history import HistoryStore


def test_first_reporter_sets_canonical_record(clock, make_block):
    store = HistoryStore(clock=clock)
    first = store.add(make_block(10), "nodeA")
    clock.advance(500)
    second = store.add(make_block(10), "nodeB")

    assert first.propagation == 0
    assert second.propagation == 500
    assert first.arrived_at == second.arrived_at
    assert second.received_at == first.received_at + 500

    item = store.search(10)
    assert item.block.received_at == first.received_at
    assert item.block.propagation == 0
    assert [p.node_id for p in item.propagation.values()] == ["nodeA", "nodeB"]


def test_same_node_replay_is_idempotent(clock, make_block):
    store = HistoryStore(clock=clock)
    store.add(make_block(10), "nodeA")
    clock.advance(500)
    once = store.add(make_block(10), "nodeB")
    clock.advance(300)
    twice = store.add(make_block(10), "nodeB")

    assert once == twice
    assert twice.propagation == 500
    assert len(store.search(10).propagation) == 2
    assert len(store) == 1


def test_invalid_reports_are_rejected(make_block):
    store = HistoryStore()
    assert store.add(make_block(0), "a") is None
    assert store.add({"number": 5, "difficulty": 1, "transactions": []}, "a") is None
    assert store.add(None, "a") is None
    assert len(store) == 0
    assert store.best_block() is None
    assert store.best_block_number() == 0


def test_malformed_optional_fields_are_stored(make_block):
    store = HistoryStore()
    first = store.add(make_block(5, timestamp=1.5), "a")
    second = store.add(make_block(6, gasUsed="n/a"), "a")
    assert first.timestamp == 0
    assert second.gas_used == 0
    assert store.heights() == [6, 5]


def test_inter_block_time_from_arrival(clock, make_block):
    store = HistoryStore(clock=clock)
    first = store.add(make_block(10), "a")
    clock.advance(12000)
    second = store.add(make_block(11), "a")
    assert first.inter_block_time == 0
    assert second.inter_block_time == 12000


def test_late_insert_uses_block_timestamps(clock, make_block):
    store = HistoryStore(clock=clock)
    store.add(make_block(10, timestamp=100), "a")
    clock.advance(1000)
    store.add(make_block(12, timestamp=130), "a")
    clock.advance(60000)
    late = store.add(make_block(11, timestamp=114), "a")
    assert late.inter_block_time == 14000

    clock.advance(1000)
    store.add(make_block(15, timestamp=200), "a")
    skewed = store.add(make_block(14, timestamp=120), "a")
    assert skewed.inter_block_time == 0

    lowest = store.add(make_block(5, timestamp=1), "a")
    assert lowest.inter_block_time == 0


def test_stale_report_is_returned_but_not_stored(clock, make_block):
    store = HistoryStore(max_history=10, clock=clock)
    store.add(make_block(100), "a")
    stale = store.add(make_block(80), "a")
    assert stale is not None
    assert stale.number == 80
    assert 80 not in store

    edge = store.add(make_block(91), "a")
    assert edge is not None
    assert 91 in store
    assert len(store) == 2


def test_eviction_drops_lowest_height(make_block):
    store = HistoryStore(max_history=5)
    for height in range(1, 7):
        store.add(make_block(height), "a")
    assert len(store) == 5
    assert 1 not in store
    assert store.heights() == [6, 5, 4, 3, 2]


def test_eviction_when_inserting_below_best(make_block):
    store = HistoryStore(max_history=3)
    for height in (10, 12, 14):
        store.add(make_block(height), "a")
    store.add(make_block(13), "a")
    assert store.heights() == [14, 13, 12]


def test_random_inserts_keep_invariants(make_block):
    store = HistoryStore(max_history=50)
    heights = list(range(1, 300))
    random.shuffle(heights)
    for height in heights:
        store.add(make_block(height), random.choice(["a", "b", "c"]))
        current = store.heights()
        assert len(current) <= 50
        assert current == sorted(set(current), reverse=True)
        assert store.best_block_number() == current[0]


def test_prev_max_block(make_block):
    store = HistoryStore()
    for height in (3, 7, 9):
        store.add(make_block(height), "a")
    assert store.prev_max_block(9).height == 7
    assert store.prev_max_block(8).height == 7
    assert store.prev_max_block(100).height == 9
    assert store.prev_max_block(3) is None
    assert store.search(4) is None
    assert store.best_block().height == 9


def test_snapshot_is_isolated(clock, make_block):
    store = HistoryStore(clock=clock)
    store.add(make_block(1), "a")
    snap = store.snapshot()
    clock.advance(10)
    store.add(make_block(1), "b")
    store.add(make_block(2), "a")
    assert len(snap) == 1
    assert list(snap[0].propagation) == ["a"]
    assert [item.height for item in store.snapshot()] == [2, 1]


def test_concurrent_reporters_single_canonical_record(make_block):
    ticks = itertools.count(1000)
    store = HistoryStore(clock=lambda: next(ticks))
    barrier = threading.Barrier(16)
    results = {}

    def report(node_id):
        barrier.wait()
        results[node_id] = store.add(make_block(42), node_id)

    threads = [threading.Thread(target=report, args=(f"node{i}",)) for i in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    item = store.search(42)
    assert len(store) == 1
    assert len(item.propagation) == 16
    assert sum(1 for r in results.values() if r.propagation == 0) == 1
    assert len({r.arrived_at for r in results.values()}) == 1
