"""Block allocation: a bit set of used blocks and an in-memory block store."""

from __future__ import annotations

import logging

from tagbox.layout import BLOCK_SIZE, MEM_BLOCKS, Superblock

logger = logging.getLogger(__name__)


class BlockError(Exception):
    """Raised when a block cannot be allocated, freed or accessed."""


class Bitmap:
    """A fixed-size set of bits, one per block or inode."""

    def __init__(self, size: int) -> None:
        if size < 0:
            raise ValueError("bitmap size must not be negative")
        self.size = size
        self._bits = bytearray((size + 7) // 8)

    def _check(self, bit: int) -> None:
        if not 0 <= bit < self.size:
            raise IndexError(f"bit {bit} outside bitmap of {self.size} bits")

    def set(self, bit: int) -> None:
        """Mark ``bit`` as used."""
        self._check(bit)
        self._bits[bit // 8] |= 1 << (bit % 8)

    def clear(self, bit: int) -> None:
        """Mark ``bit`` as free."""
        self._check(bit)
        self._bits[bit // 8] &= ~(1 << (bit % 8)) & 0xFF

    def test(self, bit: int) -> bool:
        """Return whether ``bit`` is marked used."""
        self._check(bit)
        return bool(self._bits[bit // 8] & (1 << (bit % 8)))

    def find_free(self, limit: int) -> int | None:
        """Return the lowest free bit below ``limit``, or None if all are used."""
        limit = min(limit, self.size)
        for byte_index, byte in enumerate(self._bits):
            base = byte_index * 8
            if base >= limit:
                break
            if byte == 0xFF:
                continue
            for offset in range(8):
                bit = base + offset
                if bit >= limit:
                    return None
                if not byte & (1 << offset):
                    return bit
        return None

    def __len__(self) -> int:
        return self.size

    def __iter__(self):
        """Yield the indices of the used bits in ascending order."""
        return (bit for bit in range(self.size) if self.test(bit))


class BlockStore:
    """Fixed-size blocks held in memory, with allocation tracked by a bitmap.

    Blocks before the superblock's data area are reserved and never handed out.
    Allocation and release keep the superblock's free-block count up to date.
    """

    def __init__(self, superblock: Superblock, capacity: int = MEM_BLOCKS) -> None:
        self.superblock = superblock
        self.capacity = capacity
        self._blocks = [bytearray(BLOCK_SIZE) for _ in range(capacity)]
        self.bitmap = Bitmap(superblock.total_blocks)
        for block in range(min(superblock.data_blocks_start, superblock.total_blocks)):
            self.bitmap.set(block)

    def _check(self, block: int) -> None:
        if not 0 <= block < self.capacity:
            raise BlockError(f"block {block} out of bounds")

    def allocate(self) -> int:
        """Claim the lowest free block, zero it, and return its number."""
        block = self.bitmap.find_free(self.superblock.total_blocks)
        if block is None:
            raise BlockError("no free blocks")
        if block >= self.capacity:
            raise BlockError(
                f"block allocation out of bounds ({block} >= {self.capacity})"
            )
        self.bitmap.set(block)
        self.superblock.free_blocks -= 1
        self._blocks[block][:] = bytes(BLOCK_SIZE)
        return block

    def free(self, block: int) -> None:
        """Return ``block`` to the pool of free blocks."""
        if block >= self.capacity or block < 0:
            raise BlockError(f"attempt to free invalid block {block}")
        if block < self.superblock.total_blocks:
            self.bitmap.clear(block)
            self.superblock.free_blocks += 1

    def read(self, block: int) -> bytes:
        """Return a copy of the contents of ``block``."""
        self._check(block)
        return bytes(self._blocks[block])

    def write(self, block: int, data: bytes) -> None:
        """Replace the contents of ``block``; shorter data is zero-padded."""
        self._check(block)
        if len(data) > BLOCK_SIZE:
            raise BlockError(
                f"data of {len(data)} bytes does not fit a {BLOCK_SIZE}-byte block"
            )
        self._blocks[block][:] = bytes(data).ljust(BLOCK_SIZE, b"\0")

    def is_used(self, block: int) -> bool:
        """Return whether ``block`` is marked as allocated or reserved."""
        return self.bitmap.test(block)