"""
Backtracking recursive-descent parser built from small combinators.

Every parser is a callable ``(StringInput) -> Optional[Ok]``. ``Ok`` wraps a
successful result; ``None`` is an ordinary mismatch and tells ordered choice
to rewind and try the next alternative. A parser that returns ``None`` leaves
the cursor where it found it. Malformed input that a parser has already
committed to (an unknown string escape, an undecodable number) raises
``ParseError`` instead, which aborts the whole parse.

Usage:
    from ronparse.cursor import StringInput
    from ronparse.parser import create_parser

    value = create_parser()(StringInput('( foo: 1.0, bar: "x" )')).value
"""

import functools
import math
from typing import Any, Callable, List, Optional

from .cursor import StringInput
from .values import (
    DEFAULT_UNIT_CACHE, Boolean, Char, Map, Number, Option, String, Struct,
    Tuple, UnitStructCache,
)
from . import values

__all__ = [
    'Ok', 'Parser', 'backtracking', 'one_of', 'comma_separated',
    'skip_insignificant', 'identifier',
    'optional_number_sign', 'positive_number', 'number',
    'quoted_string', 'raw_string', 'string', 'boolean', 'char',
    'Grammar', 'create_parser',
]

# ==========================================
# Results & Combinators
# ==========================================

class Ok:
    __slots__ = ('value',)

    def __init__(self, value: Any):
        self.value = value

    def __repr__(self):
        return f"Ok({self.value!r})"


Parser = Callable[[StringInput], Optional[Ok]]


def backtracking(parser):
    """Rewind the cursor to where ``parser`` started when it returns None."""
    @functools.wraps(parser)
    def wrapper(*args):
        input = args[-1]
        start = input.checkpoint()
        result = parser(*args)
        if result is None:
            input.rewind(start)
        return result
    return wrapper


def one_of(*parsers: Parser) -> Parser:
    """Ordered choice: the first alternative that succeeds wins."""
    def parse(input: StringInput) -> Optional[Ok]:
        start = input.checkpoint()
        for parser in parsers:
            result = parser(input)
            if result is not None:
                return result
            input.rewind(start)
        return None
    return parse


def skip_insignificant(input: StringInput):
    """Skip whitespace and ``//`` line comments."""
    while True:
        input.skip_whitespace()
        if not input.startswith('//'):
            return
        while not input.eof() and input.character() != '\n':
            input.skip(1)


def comma_separated(opening: str, closing: str, element: Parser) -> Parser:
    """``opening element ("," element)* ","? closing`` collected into a list.

    The separator is optional between elements; only a closing token may end
    the list.
    """
    @backtracking
    def parse(input: StringInput) -> Optional[Ok]:
        skip_insignificant(input)
        if not input.startswith(opening):
            return None
        input.skip(len(opening))
        skip_insignificant(input)
        items: List[Any] = []
        if input.startswith(closing):
            input.skip(len(closing))
            return Ok(items)
        while not input.eof():
            result = element(input)
            if result is None:
                return None
            items.append(result.value)
            skip_insignificant(input)
            if input.startswith(','):
                input.skip(1)
                skip_insignificant(input)
            if input.startswith(closing):
                input.skip(len(closing))
                return Ok(items)
        return None
    return parse


def _is_identifier_char(ch: Optional[str]) -> bool:
    return ch is not None and (ch.isalnum() or ch == '_')


def identifier(input: StringInput) -> Optional[str]:
    """Consume a run of letters, digits and underscores not starting with a digit."""
    if input.eof() or input.character().isdigit():
        return None
    start = input.checkpoint()
    while not input.eof() and _is_identifier_char(input.character()):
        input.skip(1)
    if input.position == start:
        return None
    return input.text[start:input.position]


def _keyword(input: StringInput, word: str) -> bool:
    """Consume ``word`` only when it is not the prefix of a longer identifier."""
    if input.startswith(word) and not _is_identifier_char(input.peek(len(word))):
        input.skip(len(word))
        return True
    return False

# ==========================================
# Numbers
# ==========================================

DIGITS = '0123456789'
HEX_DIGITS = '0123456789abcdefABCDEF'
BINARY_DIGITS = '01'


def _take(input: StringInput, alphabet: str) -> str:
    start = input.checkpoint()
    while not input.eof() and input.character() in alphabet:
        input.skip(1)
    return input.text[start:input.position]


def _continues_literal(input: StringInput) -> bool:
    # 0x1.5, 0b012, 3.1.4 or 12abc mix incompatible markers
    ch = input.peek()
    return ch == '.' or _is_identifier_char(ch)


def _decode(input: StringInput, literal: str, base: int, kind: str) -> float:
    """Convert a matched literal; magnitudes past the double range become inf."""
    try:
        if base == 10:
            return float(literal)
        return float(int(literal, base))
    except OverflowError:
        return math.inf
    except ValueError:
        input.fail(f"failed to decode {kind} number literal")


def optional_number_sign(input: StringInput) -> Optional[Ok]:
    """Ok(-1), Ok(1) or Ok(None) when no sign is present. Never fails."""
    input.skip_whitespace()
    ch = input.peek()
    if ch == '+':
        input.skip(1)
        return Ok(1)
    if ch == '-':
        input.skip(1)
        return Ok(-1)
    return Ok(None)


@backtracking
def positive_number(input: StringInput) -> Optional[Ok]:
    """Unsigned hex, binary, float or decimal literal as a float."""
    input.skip_whitespace()

    if input.peek() == '0' and input.peek(1) in ('x', 'X', 'b', 'B'):
        if input.peek(1) in ('x', 'X'):
            base, alphabet, kind = 16, HEX_DIGITS, 'hex'
        else:
            base, alphabet, kind = 2, BINARY_DIGITS, 'binary'
        input.skip(2)
        digits = _take(input, alphabet)
        if not digits or _continues_literal(input):
            return None
        return Ok(_decode(input, digits, base, kind))

    integer = _take(input, DIGITS)
    fraction = None
    if input.peek() == '.':
        input.skip(1)
        fraction = _take(input, DIGITS)
    if not integer and not fraction:
        return None

    exponent = None
    if input.peek() in ('e', 'E'):
        # the marker must directly follow a digit
        if fraction == '':
            return None
        input.skip(1)
        sign = ''
        if input.peek() in ('+', '-'):
            sign = input.peek()
            input.skip(1)
        digits = _take(input, DIGITS)
        if not digits:
            return None
        exponent = sign + digits

    if _continues_literal(input):
        return None

    if fraction is None and exponent is None:
        return Ok(_decode(input, integer.lstrip('0') or '0', 10, 'decimal'))
    literal = f"{integer or '0'}.{fraction or '0'}"
    if exponent is not None:
        literal += 'e' + exponent
    return Ok(_decode(input, literal, 10, 'float'))


@backtracking
def number(input: StringInput) -> Optional[Ok]:
    sign = optional_number_sign(input).value
    result = positive_number(input)
    if result is None:
        return None
    if sign == -1:
        return Ok(Number(-result.value))
    return Ok(Number(result.value))

# ==========================================
# Strings, Booleans & Chars
# ==========================================

STRING_ESCAPES = {'n': '\n', 'r': '\r', 't': '\t', '0': '\0', '"': '"', '\\': '\\'}
CHAR_ESCAPES = dict(STRING_ESCAPES, **{"'": "'"})


@backtracking
def quoted_string(input: StringInput) -> Optional[Ok]:
    input.skip_whitespace()
    if input.peek() != '"':
        return None
    input.skip(1)
    content = []
    while not input.eof():
        ch = input.character()
        if ch == '"':
            input.skip(1)
            return Ok(String(''.join(content)))
        if ch == '\\':
            esc = input.peek(1)
            if esc is None:
                return None
            if esc not in STRING_ESCAPES:
                input.skip(1)
                input.fail(f"unknown escape sequence \\{esc}")
            content.append(STRING_ESCAPES[esc])
            input.skip(2)
            continue
        content.append(ch)
        input.skip(1)
    return None


@backtracking
def raw_string(input: StringInput) -> Optional[Ok]:
    """``r#"..."#``: no escapes, closed by a quote and the same number of hashes."""
    input.skip_whitespace()
    if input.peek() != 'r':
        return None
    input.skip(1)
    hashes = 0
    while input.peek() == '#':
        hashes += 1
        input.skip(1)
    if input.peek() != '"':
        return None
    input.skip(1)
    terminator = '"' + '#' * hashes
    start = input.checkpoint()
    while not input.eof():
        if input.startswith(terminator):
            content = input.text[start:input.position]
            input.skip(len(terminator))
            return Ok(String(content))
        input.skip(1)
    return None


string = one_of(quoted_string, raw_string)


@backtracking
def boolean(input: StringInput) -> Optional[Ok]:
    input.skip_whitespace()
    if _keyword(input, 'true'):
        return Ok(Boolean(True))
    if _keyword(input, 'false'):
        return Ok(Boolean(False))
    return None


@backtracking
def char(input: StringInput) -> Optional[Ok]:
    input.skip_whitespace()
    if input.peek() != "'":
        return None
    input.skip(1)
    ch = input.peek()
    if ch is None or ch == "'":
        return None
    if ch == '\\':
        esc = input.peek(1)
        if esc not in CHAR_ESCAPES:
            return None
        ch = CHAR_ESCAPES[esc]
        input.skip(2)
    else:
        input.skip(1)
    if input.peek() != "'":
        return None
    input.skip(1)
    return Ok(Char(ch))

# ==========================================
# Grammar
# ==========================================

class Grammar:
    """Composite parsers, all recursing into ``value``.

    ``unit_cache`` interns bare type names (``Coin``) so every occurrence
    yields the same ``Struct``; pass None to build a fresh one each time.
    Interning happens in ``document`` after the whole value has parsed, so
    names read by an alternative that later backtracked never reach the
    cache.
    """

    def __init__(self, unit_cache: Optional[UnitStructCache] = DEFAULT_UNIT_CACHE):
        self.unit_cache = unit_cache
        self.tuple_items = comma_separated('(', ')', self.value)
        self.list_items = comma_separated('[', ']', self.value)
        self.struct_fields = comma_separated('(', ')', self.field)
        self.map_entries = comma_separated('{', '}', self.entry)
        # numbers, keywords and quoted forms come before struct so they are
        # never read as type names
        self.alternatives = one_of(
            number, string, boolean, char,
            self.option, self.tuple, self.list, self.struct, self.map,
        )

    def document(self, input: StringInput) -> Optional[Ok]:
        """Top-level entry: one value with its bare type names interned."""
        input.bare_units.clear()
        try:
            result = self.value(input)
        except RecursionError:
            input.fail("maximum nesting depth exceeded")
        if result is not None and input.bare_units:
            result = Ok(self.intern(result.value, input.bare_units))
        input.bare_units.clear()
        return result

    __call__ = document

    @backtracking
    def value(self, input: StringInput) -> Optional[Ok]:
        skip_insignificant(input)
        return self.alternatives(input)

    def intern(self, value, bare_units):
        """Swap the unit structs listed in ``bare_units`` for cached ones."""
        if isinstance(value, Struct):
            if id(value) in bare_units:
                return self.unit_cache.get(value.name)
            if not value.fields:
                return value
            return Struct(value.name, tuple(
                (name, self.intern(item, bare_units)) for name, item in value.fields))
        if isinstance(value, Option):
            if not value.present:
                return value
            return Option(self.intern(value.value, bare_units))
        if isinstance(value, Tuple):
            return Tuple(tuple(self.intern(item, bare_units) for item in value.items))
        if isinstance(value, values.List):
            return values.List(tuple(self.intern(item, bare_units) for item in value.items))
        if isinstance(value, Map):
            return Map(tuple(
                (self.intern(key, bare_units), self.intern(item, bare_units))
                for key, item in value.entries))
        return value

    @backtracking
    def option(self, input: StringInput) -> Optional[Ok]:
        skip_insignificant(input)
        if _keyword(input, 'None'):
            return Ok(Option())
        if not input.startswith('Some('):
            return None
        input.skip(len('Some('))
        inner = self.value(input)
        if inner is None:
            return None
        skip_insignificant(input)
        if not input.startswith(')'):
            return None
        input.skip(1)
        return Ok(Option(inner.value))

    def tuple(self, input: StringInput) -> Optional[Ok]:
        result = self.tuple_items(input)
        if result is None:
            return None
        return Ok(Tuple(tuple(result.value)))

    def list(self, input: StringInput) -> Optional[Ok]:
        result = self.list_items(input)
        if result is None:
            return None
        return Ok(values.List(tuple(result.value)))

    @backtracking
    def field(self, input: StringInput) -> Optional[Ok]:
        skip_insignificant(input)
        name = identifier(input)
        if name is None:
            return None
        skip_insignificant(input)
        if not input.startswith(':'):
            return None
        input.skip(1)
        result = self.value(input)
        if result is None:
            return None
        return Ok((name, result.value))

    @backtracking
    def struct(self, input: StringInput) -> Optional[Ok]:
        skip_insignificant(input)
        name = identifier(input)
        after_name = input.checkpoint()
        skip_insignificant(input)
        if not input.startswith('('):
            if name is None:
                return None
            input.rewind(after_name)
            unit = Struct(name, ())
            if self.unit_cache is not None:
                input.bare_units[id(unit)] = unit
            return Ok(unit)
        fields = self.struct_fields(input)
        if fields is None:
            return None
        return Ok(Struct(name, tuple(fields.value)))

    @backtracking
    def entry(self, input: StringInput) -> Optional[Ok]:
        key = self.value(input)
        if key is None:
            return None
        skip_insignificant(input)
        if not input.startswith(':'):
            return None
        input.skip(1)
        item = self.value(input)
        if item is None:
            return None
        return Ok((key.value, item.value))

    def map(self, input: StringInput) -> Optional[Ok]:
        result = self.map_entries(input)
        if result is None:
            return None
        return Ok(Map(tuple(result.value)))


def create_parser(unit_cache: Optional[UnitStructCache] = DEFAULT_UNIT_CACHE) -> Parser:
    """Top-level document parser bound to ``unit_cache``."""
    return Grammar(unit_cache).document
