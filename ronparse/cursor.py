"""Positional cursor over an immutable text buffer."""

from typing import Optional

from .errors import InfiniteLoopError, ParseError, format_context

__all__ = ['StringInput', 'MAX_EOF_CHECKS', 'WHITESPACE']

WHITESPACE = ' \t\n\r'
MAX_EOF_CHECKS = 10_000


class StringInput:
    def __init__(self, text: str, max_eof_checks: Optional[int] = MAX_EOF_CHECKS):
        self.text = text
        self.pos = 0
        self.length = len(text)
        self.max_eof_checks = max_eof_checks
        self.eof_checks = 0
        # bare type names read so far, by id; interned once the parse commits
        self.bare_units = {}

    @property
    def position(self) -> int:
        return self.pos

    def eof(self) -> bool:
        """True at or past the end of the buffer.

        Every call is counted; a parse that asks more than ``max_eof_checks``
        times is assumed to be stuck in a combinator loop and aborted.
        """
        self.eof_checks += 1
        if self.max_eof_checks is not None and self.eof_checks > self.max_eof_checks:
            raise InfiniteLoopError('infinite loop', self.pos, self.context())
        return self.pos >= self.length

    def character(self) -> str:
        # Callers guard with eof() first
        return self.text[self.pos]

    def peek(self, offset: int = 0) -> Optional[str]:
        pos = self.pos + offset
        if pos >= self.length:
            return None
        return self.text[pos]

    def startswith(self, literal: str) -> bool:
        return self.text.startswith(literal, self.pos)

    def skip(self, length: int = 1):
        self.pos = min(self.pos + length, self.length)

    def skip_whitespace(self):
        while self.pos < self.length and self.text[self.pos] in WHITESPACE:
            self.pos += 1

    def checkpoint(self) -> int:
        return self.pos

    def rewind(self, checkpoint: int):
        if not 0 <= checkpoint <= self.length:
            raise ParseError(f"invalid checkpoint {checkpoint}", self.pos, self.context())
        self.pos = checkpoint

    def rest(self) -> str:
        return self.text[self.pos:]

    def context(self) -> str:
        return format_context(self.text, self.pos)

    def fail(self, message: str):
        raise ParseError(message, self.pos, self.context())

    def __repr__(self):
        return f"StringInput(pos={self.pos}, rest={self.rest()[:20]!r})"
