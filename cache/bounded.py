from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Any, Hashable, List, Optional

_MISSING = object()


class BoundedCache:
    """Fixed-capacity key -> value store, oldest insertion evicted first.

    No TTL. Re-setting an existing key moves it to the newest position.
    Each resolver owns one instance; keys are namespaced by the caller
    (e.g. "verify:package:<ndc11>", "price:<ndc11>").
    """

    def __init__(self, capacity: int = 200):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._data: "OrderedDict[Hashable, Any]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Hashable, default: Optional[Any] = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._data.pop(key, _MISSING)
            self._data[key] = value
            while len(self._data) > self.capacity:
                self._data.popitem(last=False)

    def delete(self, key: Hashable) -> bool:
        with self._lock:
            return self._data.pop(key, _MISSING) is not _MISSING

    def clear(self) -> int:
        with self._lock:
            n = len(self._data)
            self._data.clear()
            return n

    def keys(self) -> List[Hashable]:
        with self._lock:
            return list(self._data.keys())

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
