"""
Incremental byte-stream parser.

A recursive-descent parser cannot stop between two chunks of input, so this
one keeps its whole state in two explicit stacks: a stack of pending grammar
tasks and a stack of partially built values. Each incoming byte is handled by
the task on top; a task that would recurse instead pushes its continuation
(create the field, attach it) followed by the entry task of the sub-grammar.

Supported documents are nested field structures with string leaves, with
``//`` comments allowed wherever whitespace is:

    ( name: "node", child: ( name: "leaf" ) )

Usage:
    parser = StreamParser()
    for chunk in source:
        for value in parser.feed(chunk):
            handle(value)
    parser.close()
"""

import logging
from enum import Enum, auto
from typing import Iterable, List, Union

from .errors import StreamError, format_context
from .values import String, Struct, Value

__all__ = ['Task', 'StreamParser', 'parse_stream']

logger = logging.getLogger(__name__)

WHITESPACE = b' \t\n\r'
OPEN_PAREN = ord('(')
CLOSE_PAREN = ord(')')
COLON = ord(':')
COMMA = ord(',')
DOUBLE_QUOTE = ord('"')
BACKSLASH = ord('\\')
SLASH = ord('/')
NEWLINE = ord('\n')

ESCAPES = {
    ord('n'): b'\n', ord('r'): b'\r', ord('t'): b'\t', ord('0'): b'\0',
    ord('"'): b'"', ord('\\'): b'\\',
}


class Task(Enum):
    READ_VALUE = auto()
    READ_FIELDS = auto()
    READ_FIELD = auto()
    READ_FIELD_COLON = auto()
    READ_FIELD_SEPARATOR = auto()
    READ_STRING = auto()
    READ_STRING_ESCAPE = auto()
    READ_COMMENT_START = auto()
    READ_COMMENT = auto()
    CREATE_FIELD = auto()
    ATTACH_FIELD = auto()


# Tasks that consume no input and run as soon as they reach the top
REDUCTIONS = (Task.CREATE_FIELD, Task.ATTACH_FIELD)


class _StructBuilder:
    __slots__ = ('fields',)

    def __init__(self):
        self.fields = []

    def __repr__(self):
        return f"_StructBuilder({self.fields!r})"


class _Field:
    __slots__ = ('name', 'value')

    def __init__(self, name: str, value: Value):
        self.name = name
        self.value = value

    def __repr__(self):
        return f"_Field({self.name!r}, {self.value!r})"


def _is_whitespace(byte: int) -> bool:
    return byte in WHITESPACE


def _is_name_start(byte: int) -> bool:
    return byte == ord('_') or ord('a') <= byte <= ord('z') or ord('A') <= byte <= ord('Z') or byte >= 0x80


def _is_name_char(byte: int) -> bool:
    return _is_name_start(byte) or ord('0') <= byte <= ord('9')


class StreamParser:
    """Push-based parser fed with byte chunks of any size.

    ``feed`` returns the top-level values completed by the chunk. Between
    calls no input is buffered: everything lives in ``tasks`` and ``stack``.
    Any unexpected byte is fatal and leaves the parser unusable.
    """

    def __init__(self):
        self.tasks: List[Task] = []
        self.stack: list = []
        self.offset = 0
        self.failed = False
        self._chunk = b''
        self._index = 0
        self._handlers = {
            Task.READ_VALUE: self._read_value,
            Task.READ_FIELDS: self._read_fields,
            Task.READ_FIELD: self._read_field,
            Task.READ_FIELD_COLON: self._read_field_colon,
            Task.READ_FIELD_SEPARATOR: self._read_field_separator,
            Task.READ_STRING: self._read_string,
            Task.READ_STRING_ESCAPE: self._read_string_escape,
            Task.READ_COMMENT_START: self._read_comment_start,
            Task.READ_COMMENT: self._read_comment,
        }

    def feed(self, chunk: Union[bytes, bytearray, memoryview, str]) -> List[Value]:
        if self.failed:
            raise StreamError("parser already failed", self.offset)
        if isinstance(chunk, str):
            chunk = chunk.encode('utf-8')
        completed: List[Value] = []
        self._chunk = chunk
        try:
            for index, byte in enumerate(chunk):
                self._index = index
                self.consume(byte)
                self._reduce(completed)
                self.offset += 1
        except StreamError:
            self.failed = True
            raise
        finally:
            self._chunk = b''
        return completed

    def close(self):
        """Signal end of input; raises if a value is still open."""
        if self.failed:
            raise StreamError("parser already failed", self.offset)
        # a trailing line comment may run to the end of the stream
        if self.stack or any(task not in (Task.READ_VALUE, Task.READ_COMMENT) for task in self.tasks):
            self.failed = True
            logger.debug("stream ended inside a value: tasks=%s stack=%r", self.describe(), self.stack)
            raise StreamError("unexpected end of stream", self.offset)
        self.tasks.clear()

    def describe(self) -> List[str]:
        return [task.name for task in self.tasks]

    def consume(self, byte: int):
        if not self.tasks:
            self.tasks.append(Task.READ_VALUE)
        task = self.tasks[-1]
        handler = self._handlers.get(task)
        if handler is None:
            self.fail(f"undefined task {task}")
        handler(byte)

    def fail(self, message: str):
        logger.debug("stream failure: %s tasks=%s stack=%r", message, self.describe(), self.stack)
        context = format_context(self._chunk, self._index) if self._chunk else ''
        raise StreamError(message, self.offset, context)

    def _replace(self, *tasks: Task):
        """Pop the active task and push ``tasks``; the last one runs next."""
        self.tasks.pop()
        self.tasks.extend(tasks)

    def _reduce(self, completed: List[Value]):
        while self.tasks and self.tasks[-1] in REDUCTIONS:
            if self.tasks[-1] is Task.CREATE_FIELD:
                self._create_field()
            else:
                self._attach_field()
        if not self.tasks and self.stack:
            value = self.stack.pop()
            if not isinstance(value, Value) or self.stack:
                self.fail("unbalanced value stack")
            logger.debug("completed top-level %s", value.kind.name)
            completed.append(value)

    # ------------------------------------------
    # Byte consumers
    # ------------------------------------------

    def _skip_insignificant(self, byte: int) -> bool:
        """Swallow whitespace, or enter a ``//`` comment on its first slash."""
        if _is_whitespace(byte):
            return True
        if byte == SLASH:
            self.tasks.append(Task.READ_COMMENT_START)
            return True
        return False

    def _read_value(self, byte: int):
        if self._skip_insignificant(byte):
            return
        if byte == OPEN_PAREN:
            self.stack.append(_StructBuilder())
            self._replace(Task.READ_FIELDS)
            return
        if byte == DOUBLE_QUOTE:
            self.stack.append(bytearray())
            self._replace(Task.READ_STRING)
            return
        self.fail(f"expected value but {chr(byte)!r} ({byte}) occurred")

    def _read_fields(self, byte: int):
        if self._skip_insignificant(byte):
            return
        if byte == CLOSE_PAREN:
            self._finish_struct()
            return
        if _is_name_start(byte):
            self._start_field(byte)
            return
        self.fail(f"expected field name or ')' but {chr(byte)!r} occurred")

    def _read_field(self, byte: int):
        if _is_name_char(byte):
            self.stack[-1].append(byte)
            return
        if _is_whitespace(byte) or byte == SLASH:
            self._replace(Task.READ_FIELD_COLON)
            self._skip_insignificant(byte)
            return
        if byte == COLON:
            self._finish_field_name()
            return
        self.fail(f"expected ':' but {chr(byte)!r} occurred")

    def _read_field_colon(self, byte: int):
        if self._skip_insignificant(byte):
            return
        if byte == COLON:
            self._finish_field_name()
            return
        self.fail(f"expected ':' but {chr(byte)!r} occurred")

    def _read_field_separator(self, byte: int):
        if self._skip_insignificant(byte):
            return
        if byte == COMMA:
            self.tasks.pop()
            return
        if byte == CLOSE_PAREN:
            self.tasks.pop()
            self._finish_struct()
            return
        if _is_name_start(byte):
            self.tasks.pop()
            self._start_field(byte)
            return
        self.fail(f"expected ',' or ')' but {chr(byte)!r} occurred")

    def _read_string(self, byte: int):
        if byte == DOUBLE_QUOTE:
            self.tasks.pop()
            raw = self.stack.pop()
            try:
                self.stack.append(String(raw.decode('utf-8')))
            except UnicodeDecodeError:
                self.fail("string literal is not valid utf-8")
            return
        if byte == BACKSLASH:
            self.tasks.append(Task.READ_STRING_ESCAPE)
            return
        self.stack[-1].append(byte)

    def _read_string_escape(self, byte: int):
        escaped = ESCAPES.get(byte)
        if escaped is None:
            self.fail(f"unknown escape sequence \\{chr(byte)}")
        self.stack[-1].extend(escaped)
        self.tasks.pop()

    def _read_comment_start(self, byte: int):
        if byte != SLASH:
            self.fail(f"expected '/' but {chr(byte)!r} occurred")
        self._replace(Task.READ_COMMENT)

    def _read_comment(self, byte: int):
        if byte == NEWLINE:
            self.tasks.pop()

    # ------------------------------------------
    # Transitions shared by several consumers
    # ------------------------------------------

    def _start_field(self, byte: int):
        self.stack.append(bytearray([byte]))
        self.tasks.append(Task.READ_FIELD)

    def _finish_field_name(self):
        try:
            self.stack[-1] = self.stack[-1].decode('utf-8')
        except UnicodeDecodeError:
            self.fail("field name is not valid utf-8")
        # value first, then build the field, then attach it to the struct
        self._replace(Task.ATTACH_FIELD, Task.CREATE_FIELD, Task.READ_VALUE)

    def _finish_struct(self):
        self.tasks.pop()
        builder = self.stack[-1] if self.stack else None
        if not isinstance(builder, _StructBuilder):
            self.fail("structure expected")
        self.stack[-1] = Struct(None, tuple(builder.fields))

    # ------------------------------------------
    # Reductions
    # ------------------------------------------

    def _create_field(self):
        if len(self.stack) < 2:
            self.fail("expected field key and value")
        value = self.stack.pop()
        if not isinstance(value, Value):
            self.fail("expected field value")
        key = self.stack.pop()
        if not isinstance(key, str):
            self.fail("expected field key to be a string")
        self.stack.append(_Field(key, value))
        self.tasks.pop()

    def _attach_field(self):
        field = self.stack.pop() if self.stack else None
        if not isinstance(field, _Field):
            self.fail("field expected")
        structure = self.stack[-1] if self.stack else None
        if not isinstance(structure, _StructBuilder):
            self.fail("structure expected")
        structure.fields.append((field.name, field.value))
        self._replace(Task.READ_FIELD_SEPARATOR)


def parse_stream(chunks: Iterable[Union[bytes, str]]):
    """Yield every top-level value found in ``chunks``."""
    parser = StreamParser()
    for chunk in chunks:
        yield from parser.feed(chunk)
    parser.close()
