"""An in-memory tag-based filesystem with a block store, tag index, tag queries,
user contexts, and a bucketed routing table for events."""

__version__ = "0.1.0"