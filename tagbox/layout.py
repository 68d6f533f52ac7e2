"""On-disk layout of the filesystem: the superblock and block regions."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass

logger = logging.getLogger(__name__)

MAGIC = 0x54414746535632  # "TAGFSV2"
VERSION = 2
BLOCK_SIZE = 4096
INODE_SIZE = 512
MAX_FILES = 65536
MEM_BLOCKS = 128
TAG_INDEX_BLOCKS = 64
MIN_DATA_BLOCKS = 10
INODE_TABLE_BLOCK = 1

_SUPERBLOCK_FORMAT = struct.Struct("<QII8Q")
SUPERBLOCK_HEADER_SIZE = _SUPERBLOCK_FORMAT.size


@dataclass
class Superblock:
    """Filesystem-wide metadata kept in block 0."""

    total_blocks: int
    free_blocks: int
    total_inodes: int
    free_inodes: int
    inode_table_block: int
    data_blocks_start: int
    tag_index_block: int
    root_flags: int = 0
    magic: int = MAGIC
    version: int = VERSION
    block_size: int = BLOCK_SIZE

    def to_bytes(self) -> bytes:
        """Encode the superblock as one zero-padded block."""
        header = _SUPERBLOCK_FORMAT.pack(
            self.magic,
            self.version,
            self.block_size,
            self.total_blocks,
            self.free_blocks,
            self.total_inodes,
            self.free_inodes,
            self.inode_table_block,
            self.data_blocks_start,
            self.tag_index_block,
            self.root_flags,
        )
        return header.ljust(BLOCK_SIZE, b"\0")


def decode_superblock(data: bytes) -> Superblock:
    """Decode a superblock from the start of ``data``."""
    if len(data) < SUPERBLOCK_HEADER_SIZE:
        raise ValueError(
            f"superblock needs {SUPERBLOCK_HEADER_SIZE} bytes, got {len(data)}"
        )
    (
        magic,
        version,
        block_size,
        total_blocks,
        free_blocks,
        total_inodes,
        free_inodes,
        inode_table_block,
        data_blocks_start,
        tag_index_block,
        root_flags,
    ) = _SUPERBLOCK_FORMAT.unpack_from(data)
    return Superblock(
        total_blocks=total_blocks,
        free_blocks=free_blocks,
        total_inodes=total_inodes,
        free_inodes=free_inodes,
        inode_table_block=inode_table_block,
        data_blocks_start=data_blocks_start,
        tag_index_block=tag_index_block,
        root_flags=root_flags,
        magic=magic,
        version=version,
        block_size=block_size,
    )


def format_layout(total_blocks: int) -> Superblock:
    """Plan a fresh filesystem of ``total_blocks`` blocks.

    Layout: superblock, inode table, tag index, data blocks.
    """
    if total_blocks < 0:
        raise ValueError("total_blocks must not be negative")

    reserved = 1 + TAG_INDEX_BLOCKS + MIN_DATA_BLOCKS
    if total_blocks > reserved:
        available_for_inodes = total_blocks - reserved
    else:
        logger.error("not enough blocks for filesystem: %d", total_blocks)
        available_for_inodes = 1

    max_inodes = min(available_for_inodes * BLOCK_SIZE // INODE_SIZE, MAX_FILES)
    inode_blocks = -(-(max_inodes * INODE_SIZE) // BLOCK_SIZE)

    tag_index_block = INODE_TABLE_BLOCK + inode_blocks
    data_blocks_start = tag_index_block + TAG_INDEX_BLOCKS

    if data_blocks_start > total_blocks:
        logger.error("filesystem layout exceeds available blocks")
        data_blocks_start = total_blocks
        free_blocks = 0
    else:
        free_blocks = total_blocks - data_blocks_start

    return Superblock(
        total_blocks=total_blocks,
        free_blocks=free_blocks,
        total_inodes=max_inodes,
        free_inodes=max_inodes,
        inode_table_block=INODE_TABLE_BLOCK,
        data_blocks_start=data_blocks_start,
        tag_index_block=tag_index_block,
    )