"""Exceptions raised by the combinator parser and the stream automaton.

Only fatal conditions are exceptions. An ordinary grammar mismatch is a
``None`` result and never reaches this module.
"""

__all__ = [
    'RonError', 'ParseError', 'TrailingCharactersError', 'InfiniteLoopError',
    'StreamError', 'format_context',
]

CONTEXT_RADIUS = 10


def format_context(text, pos: int, radius: int = CONTEXT_RADIUS) -> str:
    """Render the text around ``pos`` with a caret under the failing column."""
    start = max(0, pos - radius)
    end = min(len(text), pos + radius)
    before, after = text[start:pos], text[pos:end]
    if isinstance(text, (bytes, bytearray, memoryview)):
        # caret column is counted in decoded characters, not bytes
        before = bytes(before).decode('utf-8', errors='replace')
        after = bytes(after).decode('utf-8', errors='replace')
    # Control characters would shift the caret
    excerpt = ''.join(ch if ch >= ' ' else ' ' for ch in before + after)
    return f"  {excerpt}\n  {' ' * len(before)}^"


class RonError(Exception):
    pass


class ParseError(RonError):
    def __init__(self, message: str, offset: int = 0, context: str = ''):
        lines = [f"Failed to parse: {message}", f"  at {offset}"]
        if context:
            lines.append("Input:")
            lines.append(context)
        super().__init__('\n'.join(lines))
        self.reason = message
        self.offset = offset
        self.context = context


class TrailingCharactersError(ParseError):
    pass


class InfiniteLoopError(ParseError):
    pass


class StreamError(RonError):
    def __init__(self, message: str, offset: int = 0, context: str = ''):
        text = f"Stream error at byte {offset}: {message}"
        if context:
            text = f"{text}\n{context}"
        super().__init__(text)
        self.reason = message
        self.offset = offset
        self.context = context
