import threading

import pytest
from PIL import Image

from fastgrid import cache as cache_module
from fastgrid.cache import ThumbnailCache
from fastgrid.renderer import Thumbnail


def make_thumb(color=(255, 0, 0), size=(8, 10)):
    return Thumbnail(image=Image.new("RGB", size, color), scale=1.0)


def test_put_then_get_returns_same_thumbnail():
    cache = ThumbnailCache(max_bytes=10**9, check_every=0)
    thumb = make_thumb()
    cache.put(42, thumb)
    assert cache.get(42) is thumb
    assert 42 in cache
    assert len(cache) == 1


def test_get_on_unwritten_index_is_absent():
    cache = ThumbnailCache(max_bytes=10**9, check_every=0)
    assert cache.get(0) is None
    cache.put(1, make_thumb())
    assert cache.get(0) is None
    assert cache.get(2) is None
    stats = cache.stats()
    assert stats["misses"] == 3
    assert stats["hits"] == 0


def test_never_returns_another_index():
    cache = ThumbnailCache(max_bytes=10**9, check_every=0)
    thumbs = {i: make_thumb((i, i, i)) for i in range(50)}
    for i, t in thumbs.items():
        cache.put(i, t)
    for i, t in thumbs.items():
        assert cache.get(i) is t


def test_keys_must_be_non_negative_ints():
    cache = ThumbnailCache(check_every=0)
    with pytest.raises(TypeError):
        cache.put("42", make_thumb())
    with pytest.raises(TypeError):
        cache.get(True)
    with pytest.raises(ValueError):
        cache.get(-1)


def test_last_write_wins():
    cache = ThumbnailCache(max_bytes=10**9, check_every=0)
    first, second = make_thumb((1, 1, 1)), make_thumb((2, 2, 2))
    cache.put(7, first)
    cache.put(7, second)
    assert cache.get(7) is second
    assert len(cache) == 1
    # byte accounting follows the replacement, not the sum
    assert cache.stats()["bytes"] == 8 * 10 * 3


def test_soft_budget_drops_entries():
    # each thumb is 8*10*3 = 240 bytes; budget holds four
    cache = ThumbnailCache(max_bytes=1000, check_every=0)
    for i in range(10):
        cache.put(i, make_thumb())
    assert len(cache) == 4
    assert cache.stats()["bytes"] <= 1000
    assert cache.stats()["evictions"] == 6
    # whatever survived is still correct for its key
    for i in range(10):
        got = cache.get(i)
        assert got is None or got.image.size == (8, 10)
    # newest write is never the one dropped
    assert cache.get(9) is not None


def test_handle_memory_pressure_drops_about_half():
    cache = ThumbnailCache(max_bytes=10**9, check_every=0)
    for i in range(10):
        cache.put(i, make_thumb())
    dropped = cache.handle_memory_pressure()
    assert dropped == 5
    assert len(cache) == 5


def test_system_memory_probe_triggers_purge(monkeypatch):
    class FakeMemory:
        percent = 97.0

    monkeypatch.setattr(cache_module.psutil, "virtual_memory", lambda: FakeMemory())
    cache = ThumbnailCache(max_bytes=10**9, pressure_percent=90.0, check_every=4)
    for i in range(4):
        cache.put(i, make_thumb())
    # the fourth put probed memory and found it above the threshold
    assert len(cache) == 2


def test_memory_probe_below_threshold_keeps_entries(monkeypatch):
    class FakeMemory:
        percent = 40.0

    monkeypatch.setattr(cache_module.psutil, "virtual_memory", lambda: FakeMemory())
    cache = ThumbnailCache(max_bytes=10**9, pressure_percent=90.0, check_every=1)
    for i in range(8):
        cache.put(i, make_thumb())
    assert len(cache) == 8


def test_clear():
    cache = ThumbnailCache(max_bytes=10**9, check_every=0)
    cache.put(1, make_thumb())
    cache.clear()
    assert len(cache) == 0
    assert cache.get(1) is None
    assert cache.stats()["bytes"] == 0


def test_concurrent_writers_and_readers():
    cache = ThumbnailCache(max_bytes=10**9, check_every=0)
    thumbs = {i: make_thumb((i % 256, 0, 0), (4, 4)) for i in range(400)}
    errors = []

    def writer(start):
        for i in range(start, 400, 4):
            cache.put(i, thumbs[i])

    def reader():
        for _ in range(5):
            for i in range(400):
                got = cache.get(i)
                if got is not None and got is not thumbs[i]:
                    errors.append(i)

    threads = [threading.Thread(target=writer, args=(s,)) for s in range(4)]
    threads += [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(cache) == 400
    for i in range(400):
        assert cache.get(i) is thumbs[i]
