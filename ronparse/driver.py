"""One-shot parsing of a complete document."""

import logging
from dataclasses import dataclass
from typing import Optional, TextIO

from .cursor import MAX_EOF_CHECKS, StringInput
from .errors import TrailingCharactersError
from .parser import create_parser, skip_insignificant
from .values import DEFAULT_UNIT_CACHE, UnitStructCache, Value

__all__ = ['ParserOptions', 'parse', 'loads', 'load']

logger = logging.getLogger(__name__)


@dataclass
class ParserOptions:
    # None disables interning of unit structs
    unit_cache: Optional[UnitStructCache] = DEFAULT_UNIT_CACHE
    # None disables the runaway loop guard
    max_eof_checks: Optional[int] = MAX_EOF_CHECKS


def parse(text: str, options: Optional[ParserOptions] = None) -> Value:
    """Parse a whole document; anything but whitespace or comments after the value is an error."""
    if options is None:
        options = ParserOptions()
    input = StringInput(text, options.max_eof_checks)
    result = create_parser(options.unit_cache)(input)
    if result is None:
        logger.debug("no alternative matched %r", text[:40])
        input.fail("failed to parse ron value")
    skip_insignificant(input)
    if not input.eof():
        raise TrailingCharactersError("trailing characters", input.position, input.context())
    return result.value


def loads(source: str, options: Optional[ParserOptions] = None) -> Value:
    """Parse a source string."""
    return parse(source, options)


def load(fp: TextIO, options: Optional[ParserOptions] = None) -> Value:
    """Parse from a file-like object."""
    return parse(fp.read(), options)
