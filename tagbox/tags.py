"""Tags: the ``key:value`` pairs that describe files."""

from __future__ import annotations

from dataclasses import dataclass

TAG_KEY_SIZE = 32
TAG_VALUE_SIZE = 64
MAX_KEY_LENGTH = TAG_KEY_SIZE - 1
MAX_VALUE_LENGTH = TAG_VALUE_SIZE - 1


@dataclass(frozen=True)
class Tag:
    """A single ``key:value`` label attached to a file."""

    key: str
    value: str

    def __post_init__(self) -> None:
        if len(self.key) > MAX_KEY_LENGTH:
            raise ValueError(
                f"tag key longer than {MAX_KEY_LENGTH} characters: {self.key!r}"
            )
        if len(self.value) > MAX_VALUE_LENGTH:
            raise ValueError(
                f"tag value longer than {MAX_VALUE_LENGTH} characters: {self.value!r}"
            )

    def __str__(self) -> str:
        return f"{self.key}:{self.value}"


def parse_tag(text: str) -> Tag:
    """Parse ``key:value`` text into a tag.

    The key ends at the first colon and the value takes the rest. Over-long
    keys and values are truncated. Text without a colon gives an empty tag.
    A NUL character ends the text.
    """
    text = text.split("\0", 1)[0]
    key, colon, value = text.partition(":")
    if not colon:
        return Tag("", "")
    return Tag(key[:MAX_KEY_LENGTH], value[:MAX_VALUE_LENGTH])


TRASHED = Tag("trashed", "true")