"""Single-line edit buffer with a cursor.

Every operation returns a new buffer, so a cancelled edit is simply dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

_WORD_BOUNDARIES = frozenset(" \t@#")


def _is_boundary(ch: str) -> bool:
    return ch in _WORD_BOUNDARIES


@dataclass(frozen=True)
class EditBuffer:
    text: str = ""
    cursor: int = 0

    @classmethod
    def prefilled(cls, text: str | None) -> EditBuffer:
        """A buffer holding ``text`` with the cursor at the end."""
        text = text or ""
        return cls(text, len(text))

    def __post_init__(self):
        if not 0 <= self.cursor <= len(self.text):
            object.__setattr__(self, "cursor", max(0, min(self.cursor, len(self.text))))

    def insert(self, chars: str) -> EditBuffer:
        text = self.text[: self.cursor] + chars + self.text[self.cursor :]
        return EditBuffer(text, self.cursor + len(chars))

    def backspace(self) -> EditBuffer:
        if self.cursor == 0:
            return self
        return EditBuffer(self.text[: self.cursor - 1] + self.text[self.cursor :], self.cursor - 1)

    def delete_forward(self) -> EditBuffer:
        if self.cursor == len(self.text):
            return self
        return replace(self, text=self.text[: self.cursor] + self.text[self.cursor + 1 :])

    def delete_word(self) -> EditBuffer:
        """Delete the word before the cursor (ctrl+w)."""
        if self.cursor == 0:
            return self
        start = self.word_left().cursor
        return EditBuffer(self.text[:start] + self.text[self.cursor :], start)

    def left(self) -> EditBuffer:
        return replace(self, cursor=max(0, self.cursor - 1))

    def right(self) -> EditBuffer:
        return replace(self, cursor=min(len(self.text), self.cursor + 1))

    def home(self) -> EditBuffer:
        return replace(self, cursor=0)

    def end(self) -> EditBuffer:
        return replace(self, cursor=len(self.text))

    def word_left(self) -> EditBuffer:
        """Jump to the start of the current or previous word."""
        position = self.cursor
        while position > 0 and _is_boundary(self.text[position - 1]):
            position -= 1
        while position > 0 and not _is_boundary(self.text[position - 1]):
            position -= 1
        return replace(self, cursor=position)

    def word_right(self) -> EditBuffer:
        """Jump past the end of the current or next word."""
        position = self.cursor
        while position < len(self.text) and _is_boundary(self.text[position]):
            position += 1
        while position < len(self.text) and not _is_boundary(self.text[position]):
            position += 1
        return replace(self, cursor=position)
