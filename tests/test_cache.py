from equiptrak.client.cache import QueryCache
from equiptrak.client.http import TransportError


def test_begin_marks_new_entry_loading():
    cache = QueryCache()
    seq = cache.begin(("equipment", "c1", None))
    entry = cache.read(("equipment", "c1", None))
    assert seq == 1
    assert entry.status == "loading"
    assert entry.is_fetching is True
    assert entry.data is None


def test_latest_sequence_wins_over_earlier_request():
    cache = QueryCache()
    key = ("service_records", "c1", None)
    first = cache.begin(key)
    second = cache.begin(key)
    assert second > first

    assert cache.resolve(key, second, ["new"]) is True
    assert cache.resolve(key, first, ["old"]) is False
    assert cache.read(key).data == ["new"]
    assert cache.reject(key, first, TransportError("late failure")) is False
    assert cache.read(key).error is None


def test_reject_keeps_previous_data():
    cache = QueryCache()
    key = ("conversations", "c1", None)
    cache.resolve(key, cache.begin(key), ["a"])
    seq = cache.begin(key)
    assert cache.read(key).status == "success"
    cache.reject(key, seq, TransportError("down"))
    entry = cache.read(key)
    assert entry.status == "error"
    assert entry.data == ["a"]
    assert str(entry.error) == "down"


def test_invalidate_by_prefix_drops_in_flight_results():
    cache = QueryCache()
    open_key = ("service_records", "c1", "open")
    other_company = ("service_records", "c2", None)
    in_flight = cache.begin(open_key)
    cache.resolve(other_company, cache.begin(other_company), ["x"])

    assert cache.invalidate(("service_records", "c1")) == 1
    assert cache.read(open_key).is_stale is True
    assert cache.read(other_company).is_stale is False
    assert cache.resolve(open_key, in_flight, ["stale"]) is False

    assert cache.invalidate() == 2


def test_clear_forgets_entries_and_ignores_pending():
    cache = QueryCache()
    key = ("messages", "c1", "conv-1")
    seq = cache.begin(key)
    cache.clear()
    assert len(cache) == 0
    assert cache.resolve(key, seq, ["late"]) is False
    assert cache.read(key) is None
    assert cache.begin(key) > seq
