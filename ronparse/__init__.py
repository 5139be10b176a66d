"""
ronparse - parser for RON-style object notation.

Two engines share one value model: a backtracking combinator parser for
complete documents and an incremental byte-stream parser for nested field
structures arriving in chunks.

Usage:
    import ronparse

    value = ronparse.parse('''
    Config(
        name: "demo",       // comments are ignored
        ports: [80, 0x1BB],
        debug: Some(true),
    )
    ''')
    value['ports'].to_python()   # [80.0, 443.0]

    for value in ronparse.parse_stream(chunks):
        ...
"""

from .errors import (
    InfiniteLoopError, ParseError, RonError, StreamError, TrailingCharactersError,
)
from .values import (
    DEFAULT_UNIT_CACHE, Boolean, Char, Kind, List, Map, Number, Option, String,
    Struct, Tuple, UnitStructCache, Value,
)
from .cursor import StringInput
from .parser import Ok, create_parser
from .driver import ParserOptions, load, loads, parse
from .stream import StreamParser, parse_stream

__all__ = [
    'parse', 'loads', 'load', 'ParserOptions', 'create_parser', 'Ok', 'StringInput',
    'StreamParser', 'parse_stream',
    'Value', 'Kind', 'Number', 'String', 'Boolean', 'Char', 'Option', 'Tuple',
    'List', 'Map', 'Struct', 'UnitStructCache', 'DEFAULT_UNIT_CACHE',
    'RonError', 'ParseError', 'TrailingCharactersError', 'InfiniteLoopError',
    'StreamError',
]
