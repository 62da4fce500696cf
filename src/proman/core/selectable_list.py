"""Single-selection, wraparound list used by the profile picker and choice prompts."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Generic, Protocol, TypeVar


class ListItem(Protocol):
    """Anything a SelectableList can hold: totally ordered, with a short label."""

    @property
    def label(self) -> str: ...

    def __lt__(self, other: Any) -> bool: ...


T = TypeVar("T", bound=ListItem)


class SelectableList(Generic[T]):
    """Ordered, deduplicated items plus a selection cursor.

    Items are kept sorted. Moving past either end wraps around. An empty list
    keeps the cursor at 0 and has no selected item.
    """

    def __init__(self, items: Iterable[T] = ()) -> None:
        self._items: list[T] = _normalize(items)
        self._selected = 0

    def __len__(self) -> int:
        return len(self._items)

    def items(self) -> list[T]:
        return list(self._items)

    def labels(self) -> list[str]:
        return [item.label for item in self._items]

    def next(self) -> None:
        if not self._items:
            return
        self._selected = (self._selected + 1) % len(self._items)

    def previous(self) -> None:
        if not self._items:
            return
        if self._selected == 0:
            self._selected = len(self._items) - 1
        else:
            self._selected -= 1

    def replace_items(self, items: Iterable[T]) -> None:
        """Swap the backing collection.

        A strictly smaller collection moves the cursor to its last item.
        """
        new_items = _normalize(items)
        if len(new_items) < len(self._items):
            self._selected = max(len(new_items) - 1, 0)
        self._items = new_items

    def selected_index(self) -> int:
        return self._selected

    def selected_item(self) -> T | None:
        if not self._items:
            return None
        return self._items[self._selected]

    def select(self, index: int) -> None:
        if not 0 <= index < len(self._items):
            raise IndexError(f"selection {index} out of range for {len(self._items)} items")
        self._selected = index

    def __repr__(self) -> str:
        return f"SelectableList(items={self.labels()!r}, selected={self._selected})"


def _normalize(items: Iterable[T]) -> list[T]:
    unique: list[T] = []
    for item in sorted(items):
        if not unique or unique[-1] != item:
            unique.append(item)
    return unique
