import pytest

from cache.bounded import BoundedCache

def test_capacity_plus_one_evicts_oldest():
    c = BoundedCache(3)
    for k in ("a", "b", "c", "d"):
        c.set(k, k.upper())
    assert len(c) == 3
    assert "a" not in c
    assert c.keys() == ["b", "c", "d"]

def test_reset_moves_key_to_newest():
    c = BoundedCache(2)
    c.set("a", 1)
    c.set("b", 2)
    c.set("a", 3)
    c.set("c", 4)
    assert c.get("a") == 3
    assert c.get("b") is None

def test_get_default_delete_clear():
    c = BoundedCache(2)
    assert c.get("x", "miss") == "miss"
    c.set("x", None)
    assert c.get("x", "miss") is None
    assert c.delete("x")
    assert not c.delete("x")
    c.set("y", 1)
    assert c.clear() == 1
    assert len(c) == 0

def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        BoundedCache(0)
