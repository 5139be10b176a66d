"""Value model: a closed set of frozen dataclasses, one per kind of literal.

Composite kinds hold further ``Value`` instances. Trees are immutable once a
parser hands them out.
"""

import threading
import typing
from dataclasses import dataclass
from enum import Enum, auto

__all__ = [
    'Kind', 'Value', 'Number', 'String', 'Boolean', 'Char', 'Option',
    'Tuple', 'List', 'Map', 'Struct', 'UnitStructCache', 'DEFAULT_UNIT_CACHE',
]


class Kind(Enum):
    NUMBER = auto()
    STRING = auto()
    BOOLEAN = auto()
    CHAR = auto()
    OPTION = auto()
    TUPLE = auto()
    LIST = auto()
    MAP = auto()
    STRUCT = auto()


class Value:
    __slots__ = ()
    kind: typing.ClassVar[Kind]

    def to_python(self) -> typing.Any:
        raise NotImplementedError


@dataclass(frozen=True)
class Number(Value):
    value: float
    kind = Kind.NUMBER

    def to_python(self):
        return self.value


@dataclass(frozen=True)
class String(Value):
    value: str
    kind = Kind.STRING

    def to_python(self):
        return self.value


@dataclass(frozen=True)
class Boolean(Value):
    value: bool
    kind = Kind.BOOLEAN

    def to_python(self):
        return self.value


@dataclass(frozen=True)
class Char(Value):
    value: str
    kind = Kind.CHAR

    def to_python(self):
        return self.value


@dataclass(frozen=True)
class Option(Value):
    """``None`` (``value is None``) or ``Some(value)``."""
    value: typing.Optional[Value] = None
    kind = Kind.OPTION

    @property
    def present(self) -> bool:
        return self.value is not None

    def to_python(self):
        return None if self.value is None else self.value.to_python()


@dataclass(frozen=True)
class Tuple(Value):
    items: typing.Tuple[Value, ...] = ()
    kind = Kind.TUPLE

    def to_python(self):
        return tuple(item.to_python() for item in self.items)


@dataclass(frozen=True)
class List(Value):
    items: typing.Tuple[Value, ...] = ()
    kind = Kind.LIST

    def to_python(self):
        return [item.to_python() for item in self.items]


@dataclass(frozen=True)
class Map(Value):
    """Ordered key/value pairs. Keys are arbitrary values and may repeat."""
    entries: typing.Tuple[typing.Tuple[Value, Value], ...] = ()
    kind = Kind.MAP

    def to_python(self):
        pairs = [(key.to_python(), value.to_python()) for key, value in self.entries]
        try:
            return dict(pairs)
        except TypeError:
            # list or map keys are not hashable
            return pairs


@dataclass(frozen=True)
class Struct(Value):
    """A named or anonymous structure.

    Fields keep source order and duplicate names are all retained; lookups
    by name see the last occurrence, matching ``to_python``.
    """
    name: typing.Optional[str] = None
    fields: typing.Tuple[typing.Tuple[str, Value], ...] = ()
    kind = Kind.STRUCT

    @property
    def is_unit(self) -> bool:
        return self.name is not None and not self.fields

    def get(self, field: str, default=None):
        for name, value in reversed(self.fields):
            if name == field:
                return value
        return default

    def __getitem__(self, field: str) -> Value:
        value = self.get(field)
        if value is None:
            raise KeyError(field)
        return value

    def to_python(self):
        return {name: value.to_python() for name, value in self.fields}


class UnitStructCache:
    """Maps a type name to its canonical zero-field ``Struct``.

    Entries are created on first use and never evicted, so every bare
    occurrence of a name resolves to the identical instance.
    """

    def __init__(self):
        self._structs: typing.Dict[str, Struct] = {}
        self._lock = threading.Lock()

    def get(self, name: str) -> Struct:
        with self._lock:
            unit = self._structs.get(name)
            if unit is None:
                unit = self._structs[name] = Struct(name, ())
            return unit

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._structs

    def __len__(self) -> int:
        with self._lock:
            return len(self._structs)


DEFAULT_UNIT_CACHE = UnitStructCache()
