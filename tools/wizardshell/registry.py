"""Page registry — integer slots mapped to live page objects.

The ascending order of the ids *is* the page sequence, independent of the
order in which pages were inserted. Ids are stable handles: inserting or
removing one page never renumbers another.
"""

import bisect
import logging
from typing import Iterator

logger = logging.getLogger(__name__)


class WizardError(Exception):
    """Base exception for wizard shell failures."""


class DuplicateSlot(WizardError):
    """Raised when inserting a page into an occupied slot."""

    def __init__(self, page_id: int):
        super().__init__(f"Page slot {page_id:#x} is already occupied")
        self.page_id = page_id


class PageRegistry:
    """Ordered mapping ``id -> page``."""

    def __init__(self):
        self._pages: dict[int, object] = {}
        self._ids: list[int] = []

    def __contains__(self, page_id: int) -> bool:
        return page_id in self._pages

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._ids))

    def get(self, page_id: int):
        return self._pages.get(page_id)

    def insert_at(self, page_id: int, page) -> None:
        if page_id in self._pages:
            raise DuplicateSlot(page_id)
        self._pages[page_id] = page
        bisect.insort(self._ids, page_id)

    def remove_by_id(self, page_id: int):
        page = self._pages.pop(page_id, None)
        if page is None:
            logger.debug("No page at %#x to remove", page_id)
            return None
        self._ids.remove(page_id)
        return page

    def find_by_content(self, content) -> int | None:
        """Return the id of the page hosting *content* (identity match)."""
        for page_id in self._ids:
            hosted = getattr(self._pages[page_id], "content", None)
            if hosted is not None and hosted is content:
                return page_id
        return None

    def find_by_object_name(self, name: str) -> int | None:
        for page_id in self._ids:
            if self._pages[page_id].objectName() == name:
                return page_id
        return None

    def ordered_ids(self) -> list[int]:
        return list(self._ids)

    def pages(self) -> list:
        return [self._pages[page_id] for page_id in self._ids]

    def find_first_free_slot_at_or_before(self, page_id: int) -> int | None:
        """Highest unoccupied id not above *page_id*, or None once ids run out at 0."""
        slot = page_id
        while slot >= 0 and slot in self._pages:
            slot -= 1
        return slot if slot >= 0 else None

    def successor(self, page_id: int) -> int | None:
        """Next occupied id strictly after *page_id*, computed now."""
        index = bisect.bisect_right(self._ids, page_id)
        if index < len(self._ids):
            return self._ids[index]
        return None

    def predecessor(self, page_id: int) -> int | None:
        index = bisect.bisect_left(self._ids, page_id)
        if index > 0:
            return self._ids[index - 1]
        return None
