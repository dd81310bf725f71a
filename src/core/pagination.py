"""Offset/limit pagination cursor shared by every list-fetching feature."""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Optional, Sequence, TypeVar

from src.core.exceptions import OeeeCafeError
from src.core.types import Pagination

logger = logging.getLogger("oeeecafe")

T = TypeVar("T")


class CursorState(Enum):
    EMPTY = "empty"
    LOADING = "loading"
    LOADED = "loaded"
    LOADING_MORE = "loading_more"


@dataclass(frozen=True)
class Page(Generic[T]):
    """One fetched page: the items plus the server's pagination block."""

    items: Sequence[T]
    pagination: Pagination


def append_items(existing: Sequence[T], incoming: Sequence[T]) -> list:
    return list(existing) + list(incoming)


class PaginationCursor(Generic[T]):
    """Accumulates pages from ``fetch_page(offset, limit)``.

    States: EMPTY -> LOADING -> LOADED <-> LOADING_MORE. Loading and
    loading-more are mutually exclusive; overlapping calls are no-ops that
    return False. ``refresh`` always wins: it supersedes any in-flight load,
    and an older refresh's result is dropped when a newer one has started.

    The next offset is the server-reported offset plus the number of items
    it returned. ``has_more`` is taken from the server as-is.

    Fetch failures (any OeeeCafeError) are absorbed into ``last_error`` and
    the cursor returns to LOADED, or EMPTY if it holds no items.
    """

    def __init__(self, fetch_page: Callable[[int, int], Page[T]], limit: int,
                 merge: Optional[Callable[[Sequence[T], Sequence[T]], Sequence[T]]] = None,
                 name: str = "cursor"):
        self._fetch_page = fetch_page
        self._limit = limit
        self._merge = merge or append_items
        self._name = name

        self._lock = threading.Lock()
        self._state = CursorState.EMPTY
        self._items: tuple = ()
        self._next_offset = 0
        self._has_more = False
        self._total: Optional[int] = None
        self._last_error: Optional[OeeeCafeError] = None
        self._generation = 0
        self._listeners: list = []

    # --- Observation ---

    @property
    def state(self) -> CursorState:
        with self._lock:
            return self._state

    @property
    def items(self) -> tuple:
        with self._lock:
            return self._items

    @property
    def has_more(self) -> bool:
        with self._lock:
            return self._has_more

    @property
    def next_offset(self) -> int:
        with self._lock:
            return self._next_offset

    @property
    def total(self) -> Optional[int]:
        with self._lock:
            return self._total

    @property
    def last_error(self) -> Optional[OeeeCafeError]:
        with self._lock:
            return self._last_error

    @property
    def is_loading(self) -> bool:
        with self._lock:
            return self._state in (CursorState.LOADING, CursorState.LOADING_MORE)

    def subscribe(self, listener: Callable[["PaginationCursor"], None]) -> Callable[[], None]:
        """Call ``listener(cursor)`` after every state change. Returns an unsubscribe function."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(self)

    # --- Operations ---

    def load_initial(self) -> bool:
        """Fetch the first page unless data is already loaded or a load is running."""
        with self._lock:
            if self._state in (CursorState.LOADING, CursorState.LOADING_MORE):
                return False
            if self._state is CursorState.LOADED and self._items:
                return False
            self._state = CursorState.LOADING
            self._last_error = None
            generation = self._generation
        self._notify()
        return self._replace(generation, "initial load")

    def refresh(self) -> bool:
        """Refetch from offset 0 and replace everything, superseding in-flight loads."""
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._state = CursorState.LOADING
            self._last_error = None
        self._notify()
        return self._replace(generation, "refresh")

    def load_more(self) -> bool:
        """Fetch the next page and merge it in. No-op unless LOADED with more to fetch."""
        with self._lock:
            if self._state is not CursorState.LOADED or not self._has_more:
                return False
            self._state = CursorState.LOADING_MORE
            self._last_error = None
            generation = self._generation
            offset = self._next_offset
        self._notify()

        logger.debug(f"{self._name}: loading more from offset {offset}")
        try:
            page = self._fetch_page(offset, self._limit)
        except OeeeCafeError as e:
            self._fail(generation, e, "load more")
            return False
        except Exception:
            self._abort(generation)
            raise

        with self._lock:
            if generation != self._generation or self._state is not CursorState.LOADING_MORE:
                logger.debug(f"{self._name}: discarding superseded page at offset {offset}")
                return False
            self._items = tuple(self._merge(self._items, page.items))
            self._apply_pagination(page)
            self._state = CursorState.LOADED
        self._notify()
        return True

    def retry(self) -> bool:
        """Repeat whichever load last failed: initial when empty, otherwise load-more."""
        with self._lock:
            state = self._state
            has_items = bool(self._items)
        if state in (CursorState.LOADING, CursorState.LOADING_MORE):
            return False
        if not has_items:
            return self.load_initial()
        return self.load_more()

    # --- Internals ---

    def _replace(self, generation: int, label: str) -> bool:
        try:
            page = self._fetch_page(0, self._limit)
        except OeeeCafeError as e:
            self._fail(generation, e, label)
            return False
        except Exception:
            self._abort(generation)
            raise

        with self._lock:
            if generation != self._generation:
                logger.debug(f"{self._name}: discarding superseded {label}")
                return False
            self._items = tuple(page.items)
            self._apply_pagination(page)
            self._state = CursorState.LOADED
        self._notify()
        return True

    def _apply_pagination(self, page: Page) -> None:
        """Caller holds the lock."""
        self._next_offset = page.pagination.next_offset(len(page.items))
        self._has_more = page.pagination.has_more
        self._total = page.pagination.total

    def _fail(self, generation: int, error: OeeeCafeError, label: str) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._last_error = error
            self._state = CursorState.LOADED if self._items else CursorState.EMPTY
        logger.warning(f"{self._name}: {label} failed - {error.message}")
        self._notify()

    def _abort(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._state = CursorState.LOADED if self._items else CursorState.EMPTY
        self._notify()
