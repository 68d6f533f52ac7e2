# tagbox

A small tag-based filesystem held in memory. Files have no names or folders.
Each file carries a list of `key:value` tags, such as `type:image`,
`project:demo` or `date:2025-11-08`, and you find files by querying those tags.

## Features

- `tagbox.tags`: the frozen `Tag` dataclass and `parse_tag`, which splits
  text at the first colon. A key may hold up to 31 characters and a value up
  to 63. `parse_tag` cuts longer text to fit, and text with no colon gives
  `Tag("", "")`.
- `tagbox.layout`: `format_layout` plans a filesystem of a given number of
  blocks. The plan puts the superblock first, then the inode table, then a
  64-block tag-index area, then the data blocks. `Superblock.to_bytes` and
  `decode_superblock` convert a superblock to and from one 4096-byte block.
- `tagbox.blocks`: a `Bitmap` and a `BlockStore` of fixed 4096-byte blocks.
  The store never hands out the blocks before the data area. Errors raise
  `BlockError`.
- `tagbox.inode`: `FileInode`, which maps file block indices to store blocks
  through 12 direct blocks, one indirect block and one double-indirect block.
  Pointer tables are allocated when first needed.
- `tagbox.index`: `TagIndex`, which maps each distinct tag to the ids of the
  files that carry it. It holds at most 1024 distinct tags.
- `tagbox.filesystem`: `TagFS`, which ties these parts together. It offers:
  - file creation, reading and writing;
  - adding and removing tags;
  - `AND`, `OR` and `NOT` queries;
  - soft deletion through a `trashed:true` tag, and `erase` to remove a file
    for good;
  - a user context that limits what listings and name lookups can see;
  - activity counters in `fs.stats`.
- `tagbox.routing`: `RoutingTable`, a hash table that tracks objects with an
  `event_id` attribute. It has 64 buckets of 4 slots each.

## Installation

```
pip install .
```

To install with the test dependencies:

```
pip install ".[test]"
```

## Usage

```python
from tagbox.filesystem import TagFS, QueryOperator, FileNotFound
from tagbox.tags import parse_tag

fs = TagFS()

photo = fs.create_file(
    [parse_tag("type:image"), parse_tag("name:cat.jpg"), parse_tag("date:2025-11-08")],
    b"...jpeg bytes...",
)
notes = fs.create_file([parse_tag("type:document"), parse_tag("name:notes.txt")], b"hello")

fs.read_content(notes)                         # b"hello"
fs.write(notes, 5, b", world")                 # 7
fs.read(notes, 0, 12)                          # b"hello, world"

fs.find_by_type("image", 10)                   # [photo]
fs.find_by_date("2025-11-08")                  # [photo]
fs.query([parse_tag("type:image"), parse_tag("type:document")], QueryOperator.OR, 10)
fs.query([parse_tag("type:image")], QueryOperator.NOT)   # [notes]

fs.add_tag(notes, parse_tag("project:demo"))   # True
fs.remove_tag(notes, "project")                # True
fs.get_tags(notes)

# Limit listings and name lookups to files that carry every context tag
fs.set_context([parse_tag("type:image")])
fs.list_context_files(10)                      # [photo]
fs.find_by_name("cat.jpg")                     # photo
fs.clear_context()

# Soft delete, restore, hard delete
fs.trash(photo)
fs.find_not_trashed(10)                        # [notes]
fs.restore(photo)
fs.erase(photo)

try:
    fs.get_tags(photo)
except FileNotFound:
    pass
```

Operations on a missing file raise `FileNotFound`. Other failures raise
`TagFSError`, for example:

- a file with more than 32 tags;
- a context with more than 16 tags;
- no free inodes;
- a `write_content` that could not store every byte.

A plain `write` stops early when the store runs out of blocks, and returns how
many bytes it stored.

`remove_tag` does not update the tag index. The old entry stays until
`fs.rebuild_index()` is called.

### Capacity

`TagFS()` formats 128 blocks by default. With that size, most blocks go to
the inode table and the tag-index area, which leaves 10 data blocks (40 KiB)
for file contents. Pass a larger value to get more room, for example
`TagFS(total_blocks=1024)`.

### Disk layout

```python
from tagbox.layout import format_layout, decode_superblock

sb = format_layout(128)
sb.data_blocks_start, sb.free_blocks          # (118, 10)
raw = sb.to_bytes()                            # a 4096-byte superblock
assert decode_superblock(raw) == sb
```

### Routing table

```python
from dataclasses import dataclass
from tagbox.routing import RoutingTable, routing_index

@dataclass
class Entry:
    event_id: int

table = RoutingTable()
table.insert(Entry(42))      # True; False when the bucket is full (counted in table.collisions)
table.lookup(42)             # Entry(event_id=42)
42 in table                  # True
table.utilization()          # percentage of the 256 slots in use
table.remove(42)             # True
table.is_full()              # False
```

An event id of 0 is rejected with `ValueError`.

## What it does not do

- Everything lives in memory. Nothing is written to or read from a disk, and
  the filesystem is gone when the `TagFS` object is.
- The superblock can be encoded and decoded, but the inode table and the tag
  index have no on-disk form.
- There is no command-line tool. The package is a library only.

## Running the tests

```
pytest
```