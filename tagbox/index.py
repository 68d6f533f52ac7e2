"""The tag index: for each distinct tag, the files that carry it."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from tagbox.tags import Tag

logger = logging.getLogger(__name__)

MAX_TAG_INDEX = 1024


class TagIndex:
    """Maps each distinct tag to the inode ids of the files carrying it.

    Inode ids are kept in the order they were added, without duplicates.
    At most ``capacity`` distinct tags are indexed; tags beyond that are
    skipped with a warning.
    """

    def __init__(self, capacity: int = MAX_TAG_INDEX) -> None:
        if capacity < 0:
            raise ValueError("index capacity must not be negative")
        self.capacity = capacity
        self._entries: dict[Tag, list[int]] = {}

    def add_file(self, inode_id: int, tags: Iterable[Tag]) -> None:
        """Record that file ``inode_id`` carries each of ``tags``."""
        for tag in tags:
            files = self._entries.get(tag)
            if files is None:
                if len(self._entries) >= self.capacity:
                    logger.warning("tag index full, skipping tag %s", tag)
                    continue
                files = self._entries[tag] = []
            if inode_id not in files:
                files.append(inode_id)

    def remove_file(self, inode_id: int) -> None:
        """Drop file ``inode_id`` from every tag; the tags stay indexed."""
        for files in self._entries.values():
            if inode_id in files:
                files.remove(inode_id)

    def clear(self) -> None:
        """Forget every tag and file."""
        self._entries.clear()

    def lookup(self, tag: Tag, limit: int | None = None) -> list[int] | None:
        """Return up to ``limit`` files carrying ``tag``, or None if it is not indexed."""
        if limit is not None and limit < 0:
            raise ValueError("limit must not be negative")
        files = self._entries.get(tag)
        if files is None:
            return None
        return list(files if limit is None else files[:limit])

    def file_count(self, tag: Tag) -> int:
        """Return how many files carry ``tag``."""
        return len(self._entries.get(tag, ()))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, tag: object) -> bool:
        return tag in self._entries

    def __iter__(self) -> Iterator[Tag]:
        """Yield the indexed tags in the order they were first seen."""
        return iter(list(self._entries))