"""File inodes and the mapping from file block indices to storage blocks."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field

from tagbox.blocks import BlockError, BlockStore
from tagbox.layout import BLOCK_SIZE
from tagbox.tags import Tag

logger = logging.getLogger(__name__)

MAX_TAGS_PER_FILE = 32
DIRECT_BLOCKS = 12
_POINTER = struct.Struct("<Q")
PTRS_PER_BLOCK = BLOCK_SIZE // _POINTER.size
MAX_BLOCK_INDEX = DIRECT_BLOCKS + PTRS_PER_BLOCK + PTRS_PER_BLOCK * PTRS_PER_BLOCK


def _pointer_at(store: BlockStore, table_block: int, slot: int) -> int:
    return _POINTER.unpack_from(store.read(table_block), slot * _POINTER.size)[0]


def _set_pointer(store: BlockStore, table_block: int, slot: int, value: int) -> None:
    data = bytearray(store.read(table_block))
    _POINTER.pack_into(data, slot * _POINTER.size, value)
    store.write(table_block, data)


def _pointers(store: BlockStore, table_block: int) -> list[int]:
    data = store.read(table_block)
    return [pointer for (pointer,) in _POINTER.iter_unpack(data)]


def _release(store: BlockStore, block: int) -> bool:
    try:
        store.free(block)
    except BlockError as error:
        logger.error("%s", error)
        return False
    return True


@dataclass
class FileInode:
    """Metadata of one file: identity, size, times, tags and block pointers."""

    inode_id: int
    size: int = 0
    creation_time: int = 0
    modification_time: int = 0
    tags: list[Tag] = field(default_factory=list)
    flags: int = 0
    direct_blocks: list[int] = field(default_factory=lambda: [0] * DIRECT_BLOCKS)
    indirect_block: int = 0
    double_indirect_block: int = 0

    def __post_init__(self) -> None:
        if len(self.tags) > MAX_TAGS_PER_FILE:
            raise ValueError(
                f"too many tags ({len(self.tags)} > {MAX_TAGS_PER_FILE})"
            )
        if len(self.direct_blocks) != DIRECT_BLOCKS:
            raise ValueError(f"an inode has exactly {DIRECT_BLOCKS} direct blocks")

    @staticmethod
    def _check_index(index: int) -> None:
        if index < 0:
            raise ValueError("block index must not be negative")
        if index >= MAX_BLOCK_INDEX:
            raise BlockError(f"block index {index} too large (file too big)")

    def block_at(self, store: BlockStore, index: int) -> int:
        """Return the storage block holding file block ``index``, or 0 if unallocated."""
        self._check_index(index)
        if index < DIRECT_BLOCKS:
            return self.direct_blocks[index]
        index -= DIRECT_BLOCKS

        if index < PTRS_PER_BLOCK:
            if self.indirect_block == 0:
                return 0
            return _pointer_at(store, self.indirect_block, index)
        index -= PTRS_PER_BLOCK

        if self.double_indirect_block == 0:
            return 0
        outer, inner = divmod(index, PTRS_PER_BLOCK)
        level2 = _pointer_at(store, self.double_indirect_block, outer)
        if level2 == 0:
            return 0
        return _pointer_at(store, level2, inner)

    def ensure_block(self, store: BlockStore, index: int) -> int:
        """Return the storage block for file block ``index``, allocating as needed.

        Pointer tables for indirect and double-indirect blocks are allocated
        on demand. Raises BlockError when the store runs out of blocks.
        """
        self._check_index(index)
        if index < DIRECT_BLOCKS:
            if self.direct_blocks[index] == 0:
                self.direct_blocks[index] = store.allocate()
            return self.direct_blocks[index]
        index -= DIRECT_BLOCKS

        if index < PTRS_PER_BLOCK:
            if self.indirect_block == 0:
                self.indirect_block = store.allocate()
            return self._ensure_pointer(store, self.indirect_block, index)
        index -= PTRS_PER_BLOCK

        if self.double_indirect_block == 0:
            self.double_indirect_block = store.allocate()
        outer, inner = divmod(index, PTRS_PER_BLOCK)
        level2 = self._ensure_pointer(store, self.double_indirect_block, outer)
        return self._ensure_pointer(store, level2, inner)

    @staticmethod
    def _ensure_pointer(store: BlockStore, table_block: int, slot: int) -> int:
        block = _pointer_at(store, table_block, slot)
        if block == 0:
            block = store.allocate()
            _set_pointer(store, table_block, slot, block)
        return block

    def release_blocks(self, store: BlockStore) -> int:
        """Free every block the inode owns, tables included; return how many."""
        released = 0
        for position, block in enumerate(self.direct_blocks):
            if block:
                released += _release(store, block)
                self.direct_blocks[position] = 0

        if self.indirect_block:
            if self.indirect_block < store.capacity:
                for block in _pointers(store, self.indirect_block):
                    if block:
                        released += _release(store, block)
            released += _release(store, self.indirect_block)
            self.indirect_block = 0

        if self.double_indirect_block:
            if self.double_indirect_block < store.capacity:
                for level2 in _pointers(store, self.double_indirect_block):
                    if not level2:
                        continue
                    if level2 < store.capacity:
                        for block in _pointers(store, level2):
                            if block:
                                released += _release(store, block)
                    released += _release(store, level2)
            released += _release(store, self.double_indirect_block)
            self.double_indirect_block = 0

        return released