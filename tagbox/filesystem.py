"""A tag-based filesystem: files carry ``key:value`` tags instead of paths."""

from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Iterable

from tagbox.blocks import Bitmap, BlockError, BlockStore
from tagbox.index import TagIndex
from tagbox.inode import MAX_TAGS_PER_FILE, FileInode
from tagbox.layout import BLOCK_SIZE, MAX_FILES, MEM_BLOCKS, format_layout
from tagbox.tags import TRASHED, Tag, parse_tag

logger = logging.getLogger(__name__)

MAX_CONTEXT_TAGS = 16
SINGLE_QUERY_LIMIT = 256


class TagFSError(Exception):
    """Raised when a filesystem operation cannot be carried out."""


class FileNotFound(TagFSError):
    """Raised when no file has the requested inode id."""


class QueryOperator(enum.Enum):
    """How the tags of a multi-tag query combine."""

    AND = "and"
    OR = "or"
    NOT = "not"


@dataclass
class Stats:
    """Counters of filesystem activity."""

    files_created: int = 0
    files_deleted: int = 0
    queries_executed: int = 0
    tags_added: int = 0
    tags_removed: int = 0


def _now() -> int:
    return time.monotonic_ns()


def _cap(files: list[int], limit: int | None) -> list[int]:
    if limit is not None and limit < 0:
        raise ValueError("limit must not be negative")
    return files if limit is None else files[:limit]


class TagFS:
    """An in-memory tag-based filesystem.

    Files are found by the tags they carry. Deleting a file normally moves it
    to the trash by tagging it ``trashed:true``; ``erase`` removes it for good.
    A user context, when set, narrows listings and name lookups to files that
    carry every context tag.
    """

    def __init__(self, total_blocks: int = MEM_BLOCKS) -> None:
        self.superblock = format_layout(total_blocks)
        self.store = BlockStore(self.superblock, capacity=total_blocks)
        slot_count = min(self.superblock.total_inodes, MAX_FILES)
        self._slots: list[FileInode | None] = [None] * slot_count
        self._inode_bitmap = Bitmap(slot_count)
        self.index = TagIndex()
        self.stats = Stats()
        self._next_inode_id = 1
        self._context: tuple[Tag, ...] | None = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------ inodes

    def _find(self, inode_id: int) -> FileInode | None:
        if inode_id == 0:
            return None
        return next(
            (inode for inode in self._slots if inode is not None and inode.inode_id == inode_id),
            None,
        )

    def _require(self, inode_id: int) -> FileInode:
        inode = self._find(inode_id)
        if inode is None:
            raise FileNotFound(f"file not found (inode={inode_id})")
        return inode

    def _files(self) -> Iterable[FileInode]:
        return (inode for inode in self._slots if inode is not None)

    def get_inode(self, inode_id: int) -> FileInode:
        """Return the metadata of file ``inode_id``."""
        with self._lock:
            return self._require(inode_id)

    def create_file(self, tags: Iterable[Tag], data: bytes | None = None) -> int:
        """Create a file carrying ``tags``, optionally with content; return its id."""
        tags = list(tags)
        if len(tags) > MAX_TAGS_PER_FILE:
            raise TagFSError(f"too many tags ({len(tags)} > {MAX_TAGS_PER_FILE})")
        with self._lock:
            slot = self._inode_bitmap.find_free(len(self._slots))
            if slot is None:
                raise TagFSError("no free inodes")
            self._inode_bitmap.set(slot)
            self.superblock.free_inodes -= 1
            inode_id = self._next_inode_id
            self._next_inode_id += 1

            created = _now()
            self._slots[slot] = FileInode(
                inode_id=inode_id,
                creation_time=created,
                modification_time=created,
                tags=tags,
            )
            self.index.add_file(inode_id, tags)
            self.stats.files_created += 1
            logger.info("created file inode=%d with %d tags", inode_id, len(tags))

            if data is not None:
                self.write_content(inode_id, data)
            return inode_id

    # -------------------------------------------------------------------- data

    def read(self, inode_id: int, offset: int = 0, size: int | None = None) -> bytes:
        """Read up to ``size`` bytes from ``offset``; unwritten regions read as zeros."""
        if offset < 0 or (size is not None and size < 0):
            raise ValueError("offset and size must not be negative")
        with self._lock:
            inode = self._require(inode_id)
            if offset >= inode.size:
                return b""
            end = inode.size if size is None else min(offset + size, inode.size)
            out = bytearray()
            position = offset
            while position < end:
                index, block_offset = divmod(position, BLOCK_SIZE)
                chunk = min(BLOCK_SIZE - block_offset, end - position)
                try:
                    block = inode.block_at(self.store, index)
                    if block == 0:
                        out.extend(bytes(chunk))
                    else:
                        contents = self.store.read(block)
                        out.extend(contents[block_offset : block_offset + chunk])
                except BlockError as error:
                    logger.error("read of inode=%d stopped: %s", inode_id, error)
                    break
                position += chunk
            return bytes(out)

    def write(self, inode_id: int, offset: int, data: bytes) -> int:
        """Write ``data`` at ``offset``; return how many bytes were stored.

        Writing stops early when the store runs out of blocks.
        """
        if offset < 0:
            raise ValueError("offset must not be negative")
        payload = memoryview(bytes(data))
        with self._lock:
            inode = self._require(inode_id)
            written = 0
            position = offset
            while written < len(payload):
                index, block_offset = divmod(position, BLOCK_SIZE)
                try:
                    block = inode.ensure_block(self.store, index)
                except BlockError as error:
                    logger.error("failed to allocate block at index %d: %s", index, error)
                    break
                chunk = min(BLOCK_SIZE - block_offset, len(payload) - written)
                contents = bytearray(self.store.read(block))
                contents[block_offset : block_offset + chunk] = payload[written : written + chunk]
                self.store.write(block, contents)
                written += chunk
                position += chunk

            inode.size = max(inode.size, position)
            inode.modification_time = _now()
            return written

    def read_content(self, inode_id: int) -> bytes:
        """Return the whole content of file ``inode_id``."""
        with self._lock:
            self._require(inode_id)
            return self.read(inode_id, 0)

    def write_content(self, inode_id: int, data: bytes) -> None:
        """Write ``data`` from the start of the file, all of it or raise."""
        with self._lock:
            written = self.write(inode_id, 0, data)
        if written != len(data):
            raise TagFSError(f"failed to write file (wrote {written} of {len(data)} bytes)")

    # -------------------------------------------------------------------- tags

    def add_tag(self, inode_id: int, tag: Tag) -> bool:
        """Attach ``tag``; return False if the file already carries it."""
        with self._lock:
            inode = self._require(inode_id)
            if len(inode.tags) >= MAX_TAGS_PER_FILE:
                raise TagFSError(f"max tags reached for inode={inode_id}")
            if tag in inode.tags:
                return False
            inode.tags.append(tag)
            inode.modification_time = _now()
            self.index.add_file(inode_id, [tag])
            self.stats.tags_added += 1
            return True

    def remove_tag(self, inode_id: int, key: str) -> bool:
        """Remove the first tag with ``key``; return whether one was removed.

        The index keeps the old entry until the next rebuild.
        """
        with self._lock:
            inode = self._require(inode_id)
            for position, tag in enumerate(inode.tags):
                if tag.key == key:
                    del inode.tags[position]
                    inode.modification_time = _now()
                    self.stats.tags_removed += 1
                    return True
            return False

    def get_tags(self, inode_id: int) -> list[Tag]:
        """Return a copy of the tags of file ``inode_id``."""
        with self._lock:
            return list(self._require(inode_id).tags)

    def has_tag(self, inode_id: int, tag: Tag) -> bool:
        """Return whether file ``inode_id`` exists and carries ``tag``."""
        with self._lock:
            inode = self._find(inode_id)
            return inode is not None and tag in inode.tags

    # ------------------------------------------------------------------- trash

    def trash(self, inode_id: int) -> bool:
        """Move a file to the trash; return False if it was already there."""
        with self._lock:
            self._require(inode_id)
            return self.add_tag(inode_id, TRASHED)

    def restore(self, inode_id: int) -> bool:
        """Take a file out of the trash; return whether it was trashed."""
        with self._lock:
            self._require(inode_id)
            return self.remove_tag(inode_id, TRASHED.key)

    def erase(self, inode_id: int) -> None:
        """Remove a file for good, releasing its blocks and inode."""
        with self._lock:
            inode = self._require(inode_id)
            slot = self._slots.index(inode)
            inode.release_blocks(self.store)
            self.index.remove_file(inode_id)
            self._slots[slot] = None
            self._inode_bitmap.clear(slot)
            self.superblock.free_inodes += 1
            self.stats.files_deleted += 1
            logger.info("file erased completely (inode=%d)", inode_id)

    # ----------------------------------------------------------------- queries

    def query_single(self, tag: Tag, limit: int | None = None) -> list[int]:
        """Return the files indexed under ``tag``, at most ``limit`` of them."""
        with self._lock:
            files = self.index.lookup(tag, limit)
            if files is None:
                return []
            self.stats.queries_executed += 1
            return files

    def query(
        self,
        tags: Iterable[Tag],
        op: QueryOperator = QueryOperator.AND,
        limit: int | None = None,
    ) -> list[int]:
        """Find files by several tags.

        AND keeps files carrying every tag, OR files carrying any of them,
        NOT files carrying none of them.
        """
        tags = list(tags)
        if not tags:
            raise ValueError("a query needs at least one tag")
        with self._lock:
            if op is QueryOperator.AND:
                candidates = self.query_single(tags[0], MAX_FILES)
                for tag in tags[1:]:
                    if not candidates:
                        break
                    candidates = [file for file in candidates if self.has_tag(file, tag)]
                result = candidates
            elif op is QueryOperator.OR:
                seen: dict[int, None] = {}
                for tag in tags:
                    for file in self.query_single(tag, SINGLE_QUERY_LIMIT):
                        seen.setdefault(file, None)
                result = list(seen)
            else:
                result = [
                    inode.inode_id
                    for inode in self._files()
                    if not any(tag in inode.tags for tag in tags)
                ]
            self.stats.queries_executed += 1
            return _cap(result, limit)

    def find_by_type(self, type_name: str, limit: int | None = None) -> list[int]:
        """Return the files tagged ``type:<type_name>``."""
        return self.query_single(parse_tag(f"type:{type_name}"), limit)

    def find_by_date(self, date: str, limit: int | None = None) -> list[int]:
        """Return the files tagged ``date:<date>``."""
        return self.query_single(parse_tag(f"date:{date}"), limit)

    def find_not_trashed(self, limit: int | None = None) -> list[int]:
        """Return the files that are not in the trash, in table order."""
        with self._lock:
            files = [inode.inode_id for inode in self._files() if TRASHED not in inode.tags]
            return _cap(files, limit)

    def find_by_name(self, name: str) -> int | None:
        """Return the first untrashed file named ``name`` in the current context."""
        with self._lock:
            for file in self.query_single(parse_tag(f"name:{name}"), SINGLE_QUERY_LIMIT):
                if self.has_tag(file, TRASHED):
                    continue
                if self.context_matches(file):
                    return file
            return None

    # ----------------------------------------------------------------- context

    @property
    def context(self) -> tuple[Tag, ...] | None:
        """The tags of the current user context, or None when it is cleared."""
        return self._context

    def set_context(self, tags: Iterable[Tag]) -> None:
        """Show only files that carry every one of ``tags``."""
        tags = tuple(tags)
        if len(tags) > MAX_CONTEXT_TAGS:
            raise TagFSError(f"too many context tags ({len(tags)} > {MAX_CONTEXT_TAGS})")
        with self._lock:
            self._context = tags
        logger.info("context set: %s", " ".join(map(str, tags)))

    def clear_context(self) -> None:
        """Show all files again."""
        with self._lock:
            self._context = None

    def context_matches(self, inode_id: int) -> bool:
        """Return whether file ``inode_id`` is visible in the current context."""
        with self._lock:
            if self._context is None:
                return True
            inode = self._find(inode_id)
            if inode is None:
                return False
            return all(tag in inode.tags for tag in self._context)

    def list_context_files(self, limit: int | None = None) -> list[int]:
        """Return the untrashed files visible in the current context."""
        with self._lock:
            files = [
                inode.inode_id
                for inode in self._files()
                if TRASHED not in inode.tags and self.context_matches(inode.inode_id)
            ]
            return _cap(files, limit)

    # ------------------------------------------------------------------- index

    def rebuild_index(self) -> None:
        """Rebuild the tag index from the tags the files carry now."""
        with self._lock:
            self.index.clear()
            for inode in self._files():
                self.index.add_file(inode.inode_id, inode.tags)