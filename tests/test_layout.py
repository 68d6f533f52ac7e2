import pytest

from tagbox.layout import (
    BLOCK_SIZE,
    INODE_SIZE,
    MAGIC,
    MAX_FILES,
    MEM_BLOCKS,
    SUPERBLOCK_HEADER_SIZE,
    TAG_INDEX_BLOCKS,
    VERSION,
    Superblock,
    decode_superblock,
    format_layout,
)


def test_format_sets_identity_fields():
    sb = format_layout(MEM_BLOCKS)
    assert sb.magic == MAGIC
    assert sb.version == VERSION
    assert sb.block_size == BLOCK_SIZE
    assert sb.total_blocks == MEM_BLOCKS
    assert sb.inode_table_block == 1


def test_format_leaves_minimum_data_blocks():
    sb = format_layout(MEM_BLOCKS)
    assert sb.free_blocks == 10


@pytest.mark.parametrize("total", [76, 100, MEM_BLOCKS, 1000, 10000])
def test_format_layout_invariants(total):
    sb = format_layout(total)
    assert sb.data_blocks_start + sb.free_blocks == total
    assert sb.data_blocks_start == sb.tag_index_block + TAG_INDEX_BLOCKS
    inode_bytes = (sb.tag_index_block - sb.inode_table_block) * BLOCK_SIZE
    assert sb.total_inodes * INODE_SIZE <= inode_bytes
    assert inode_bytes - sb.total_inodes * INODE_SIZE < BLOCK_SIZE
    assert sb.free_inodes == sb.total_inodes


def test_format_caps_inode_count():
    sb = format_layout(100000)
    assert sb.total_inodes == MAX_FILES


def test_format_too_small_clamps_data_start():
    sb = format_layout(10)
    assert sb.data_blocks_start == 10
    assert sb.free_blocks == 0
    assert sb.total_inodes == BLOCK_SIZE // INODE_SIZE


def test_format_rejects_negative():
    with pytest.raises(ValueError):
        format_layout(-1)


def test_to_bytes_fills_one_block_and_starts_with_magic():
    raw = format_layout(MEM_BLOCKS).to_bytes()
    assert len(raw) == BLOCK_SIZE
    assert raw[:8] == MAGIC.to_bytes(8, "little")
    assert raw[:7] == b"2VSFGAT"
    assert set(raw[SUPERBLOCK_HEADER_SIZE:]) == {0}


def test_round_trip():
    sb = format_layout(MEM_BLOCKS)
    sb.root_flags = 7
    assert decode_superblock(sb.to_bytes()) == sb


def test_round_trip_custom_values():
    sb = Superblock(
        total_blocks=200,
        free_blocks=3,
        total_inodes=16,
        free_inodes=5,
        inode_table_block=1,
        data_blocks_start=67,
        tag_index_block=3,
        magic=1,
        version=9,
    )
    assert decode_superblock(sb.to_bytes()) == sb


def test_decode_zeroed_block_has_no_magic():
    sb = decode_superblock(bytes(BLOCK_SIZE))
    assert sb.magic == 0
    assert sb.total_blocks == 0


def test_decode_rejects_short_data():
    with pytest.raises(ValueError):
        decode_superblock(bytes(SUPERBLOCK_HEADER_SIZE - 1))