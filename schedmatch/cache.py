"""
In-process cache for read queries.

Keys are tuples whose first item names the query, e.g.
("classmates", class_id, professor, user_id). Writers drop whole query
families by name after they change the tables those queries read.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Tuple


class QueryCache:
    def __init__(self) -> None:
        self._entries: Dict[Tuple[Any, ...], Any] = {}

    def fetch(self, key: Tuple[Any, ...], loader: Callable[[], Any]) -> Any:
        if key in self._entries:
            return self._entries[key]
        value = loader()
        self._entries[key] = value
        return value

    def invalidate(self, *names: str) -> None:
        for key in list(self._entries):
            if key and key[0] in names:
                del self._entries[key]

    def __contains__(self, key: Tuple[Any, ...]) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
