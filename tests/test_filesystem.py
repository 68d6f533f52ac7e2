import pytest

from tagbox.filesystem import FileNotFound, QueryOperator, TagFS, TagFSError
from tagbox.layout import BLOCK_SIZE
from tagbox.tags import Tag, parse_tag


@pytest.fixture
def fs():
    return TagFS()


def tags(*texts):
    return [parse_tag(text) for text in texts]


def test_create_and_read_back(fs):
    file = fs.create_file(tags("name:a.txt", "type:text"), b"hello world")
    assert fs.read_content(file) == b"hello world"
    assert fs.get_inode(file).size == len(b"hello world")


def test_ids_are_unique_and_nonzero(fs):
    first = fs.create_file(tags("type:a"))
    second = fs.create_file(tags("type:a"))
    assert first != 0 and second != 0
    assert first != second


def test_too_many_tags_rejected(fs):
    many = [Tag("k", str(n)) for n in range(33)]
    with pytest.raises(TagFSError):
        fs.create_file(many)


def test_missing_file_raises(fs):
    with pytest.raises(FileNotFound):
        fs.get_inode(999)
    with pytest.raises(FileNotFound):
        fs.read(999)


def test_read_past_end_is_empty(fs):
    file = fs.create_file(tags("type:a"), b"abc")
    assert fs.read(file, 3) == b""
    assert fs.read(file, 1, 1) == b"b"


def test_sparse_write_reads_zeros(fs):
    file = fs.create_file(tags("type:a"))
    free_before = fs.superblock.free_blocks
    written = fs.write(file, BLOCK_SIZE + 5, b"x")
    assert written == 1
    content = fs.read_content(file)
    assert len(content) == BLOCK_SIZE + 6
    assert content[: BLOCK_SIZE + 5] == bytes(BLOCK_SIZE + 5)
    assert content[-1:] == b"x"
    assert fs.superblock.free_blocks == free_before - 1


def test_write_across_blocks_round_trip(fs):
    data = bytes(range(256)) * 20
    file = fs.create_file(tags("type:bin"), data)
    assert fs.read_content(file) == data
    assert fs.read(file, BLOCK_SIZE - 2, 4) == data[BLOCK_SIZE - 2 : BLOCK_SIZE + 2]


def test_running_out_of_blocks(fs):
    free = fs.superblock.free_blocks
    file = fs.create_file(tags("type:big"))
    with pytest.raises(TagFSError):
        fs.write_content(file, bytes((free + 1) * BLOCK_SIZE))
    assert fs.superblock.free_blocks == 0
    assert fs.get_inode(file).size == free * BLOCK_SIZE


def test_add_tag_and_query(fs):
    file = fs.create_file(tags("type:a"))
    project = parse_tag("project:box")
    assert fs.add_tag(file, project) is True
    assert fs.add_tag(file, project) is False
    assert fs.query_single(project) == [file]
    assert fs.get_tags(file) == tags("type:a", "project:box")


def test_remove_tag_and_rebuild(fs):
    file = fs.create_file(tags("type:a", "color:red"))
    assert fs.remove_tag(file, "color") is True
    assert fs.remove_tag(file, "color") is False
    assert not fs.has_tag(file, parse_tag("color:red"))
    assert fs.query_single(parse_tag("color:red")) == [file]
    fs.rebuild_index()
    assert fs.query_single(parse_tag("color:red")) == []
    assert fs.query_single(parse_tag("type:a")) == [file]


def test_trash_and_restore(fs):
    keep = fs.create_file(tags("type:a"))
    gone = fs.create_file(tags("type:a"))
    assert fs.trash(gone) is True
    assert fs.find_not_trashed() == [keep]
    assert fs.restore(gone) is True
    assert fs.find_not_trashed() == [keep, gone]
    assert fs.restore(gone) is False


def test_erase_releases_everything(fs):
    free_blocks = fs.superblock.free_blocks
    free_inodes = fs.superblock.free_inodes
    file = fs.create_file(tags("type:a"), bytes(2 * BLOCK_SIZE))
    fs.erase(file)
    assert fs.superblock.free_blocks == free_blocks
    assert fs.superblock.free_inodes == free_inodes
    assert fs.query_single(parse_tag("type:a")) == []
    with pytest.raises(FileNotFound):
        fs.get_inode(file)
    assert fs.stats.files_deleted == 1


def test_query_operators(fs):
    red = fs.create_file(tags("color:red", "size:small"))
    blue = fs.create_file(tags("color:blue", "size:small"))
    big = fs.create_file(tags("color:red", "size:big"))
    wanted = tags("color:red", "size:small")
    assert fs.query(wanted, QueryOperator.AND) == [red]
    assert fs.query(wanted, QueryOperator.OR) == [red, big, blue]
    assert fs.query(tags("color:red"), QueryOperator.NOT) == [blue]
    assert fs.query(wanted, QueryOperator.OR, limit=1) == [red]


def test_empty_query_rejected(fs):
    with pytest.raises(ValueError):
        fs.query([])


def test_find_by_type_and_date(fs):
    image = fs.create_file(tags("type:image", "date:2025-11-08"))
    fs.create_file(tags("type:code"))
    assert fs.find_by_type("image") == [image]
    assert fs.find_by_date("2025-11-08") == [image]
    assert fs.find_by_type("missing") == []


def test_find_by_name_skips_trash_and_context(fs):
    old = fs.create_file(tags("name:notes", "project:a"))
    new = fs.create_file(tags("name:notes", "project:b"))
    assert fs.find_by_name("notes") == old
    fs.trash(old)
    assert fs.find_by_name("notes") == new
    fs.set_context(tags("project:a"))
    assert fs.find_by_name("notes") is None


def test_context_filters_listing(fs):
    small = fs.create_file(tags("type:image", "size:small"))
    fs.create_file(tags("type:image", "size:large"))
    fs.set_context(tags("type:image", "size:small"))
    assert fs.context == tuple(tags("type:image", "size:small"))
    assert fs.list_context_files() == [small]
    fs.clear_context()
    assert fs.context is None
    assert len(fs.list_context_files()) == 2
    assert fs.context_matches(12345) is True


def test_context_rejects_too_many_tags(fs):
    with pytest.raises(TagFSError):
        fs.set_context([Tag("k", str(n)) for n in range(17)])


def test_stats_count_activity(fs):
    file = fs.create_file(tags("type:a"))
    fs.add_tag(file, parse_tag("x:y"))
    fs.remove_tag(file, "x")
    assert fs.stats.files_created == 1
    assert fs.stats.tags_added == 1
    assert fs.stats.tags_removed == 1


def test_inodes_run_out(fs):
    for _ in range(fs.superblock.free_inodes):
        fs.create_file([])
    assert fs.superblock.free_inodes == 0
    with pytest.raises(TagFSError):
        fs.create_file([])