"""
Value parsers: the string-to-type capability the binder calls into.

What this module provides
- ValueParserRegistry: a mapping from target types to converters with the two
  questions the rest of the library asks:
  • supports(type) -> bool: can raw text be turned into this type?
  • parse(type, text) -> value: do it, or raise ConversionError.
- default_parsers: the process-wide registry used when callers pass none.

Built-in converters
- str, int, float, complex, Decimal, Fraction
- bool: true/false, t/f, yes/no, y/n, on/off, 1/0 (case-insensitive)
- Path, PurePath, UUID
- datetime, date, time (ISO 8601 via fromisoformat)
- Enum subclasses: member name (case-insensitive), then member value
- Literal[...]: the textual form of one of the literal values
- Optional[T] / T | None: parsed as T

Custom converters
- register(type, parser) accepts a callable ``parser(text) -> value`` or an object
  exposing ``parse(text)``. Registrations are exact-type matches and take precedence
  over every built-in rule; registered() reports them so the arity inferencer can
  treat such types as single-valued even when they look like collections.
- Converters signal bad input by raising ValueError, TypeError, ArithmeticError or
  LookupError; the registry wraps those into ConversionError.
"""
import builtins
import datetime
import enum
import types
import typing
import uuid
from decimal import Decimal
from fractions import Fraction
from pathlib import Path, PurePath

from .faults import ConversionError
from .utils import rename

_TRUTHY = frozenset({"true", "t", "yes", "y", "on", "1"})
_FALSY = frozenset({"false", "f", "no", "n", "off", "0"})


def _parse_bool(text, /):
    if (folded := text.strip().casefold()) in _TRUTHY:
        return True
    if folded in _FALSY:
        return False
    raise ValueError(f"{text!r} is not a boolean")


def _parse_str(text, /):
    return text


def _enum_parser(cls):
    @rename(f"parse_{cls.__name__.lower()}")
    def parser(text, /):
        folded = text.casefold()
        for name, member in cls.__members__.items():
            if name.casefold() == folded:
                return member
        for member in cls:
            if str(member.value) == text:
                return member
        raise ValueError(f"{text!r} is not one of {', '.join(cls.__members__)}")
    return parser


def _literal_parser(choices):
    @rename("parse_literal")
    def parser(text, /):
        for choice in choices:
            if str(choice) == text:
                return choice
        raise ValueError(f"{text!r} is not one of {', '.join(map(str, choices))}")
    return parser


def unwrap(type, /):
    """
    strip Optional[T] / T | None down to T; any other type is returned unchanged.
    """
    if typing.get_origin(type) in (typing.Union, types.UnionType):
        arguments = [argument for argument in typing.get_args(type) if argument is not types.NoneType]
        if len(arguments) == 1:
            return arguments[0]
    return type


class ValueParserRegistry:
    """
    registry of converters from raw text to typed values.

    lookup order for a type
    1. exact custom registration
    2. exact built-in converter
    3. Optional[T] → lookup of T
    4. Enum subclass → member lookup
    5. Literal[...] → literal choice lookup
    """

    def __init__(self, *, builtins=True):
        self._parsers = dict(_BUILTINS) if builtins else {}
        self._custom = set()

    def register(self, type, parser, /):
        """
        register a custom converter for an exact type (replaces any previous one).

        returns the parser unchanged, e.g. registry.register(Point, Point.fromtext).
        """
        if hasattr(parser, "parse") and callable(parser.parse):
            convert = parser.parse
        elif callable(parser):
            convert = parser
        else:
            raise TypeError("register() parser must be callable or expose a parse() method")
        self._parsers[type] = convert
        self._custom.add(type)
        return parser

    def registered(self, type, /):
        """
        True when a custom converter was registered for exactly this type.
        """
        try:
            return type in self._custom
        except TypeError:
            return False

    def resolve(self, type, /):
        """
        return the converter for a type, or None when no rule applies.
        """
        try:
            return self._parsers[type]
        except KeyError:
            pass
        except TypeError:  # unhashable annotation
            return None
        if (inner := unwrap(type)) is not type:
            return self.resolve(inner)
        if isinstance(type, builtins.type) and issubclass(type, enum.Enum):
            return _enum_parser(type)
        if typing.get_origin(type) is typing.Literal:
            return _literal_parser(typing.get_args(type))
        return None

    def supports(self, type, /):
        return self.resolve(type) is not None

    def parse(self, type, text, /):
        """
        convert raw text into the given type.

        raises
        - ConversionError: no converter exists, or the converter rejected the text.
        """
        if (parser := self.resolve(type)) is None:
            raise ConversionError(f"cannot convert text into {_typename(type)}", type=type, text=text)
        try:
            return parser(text)
        except ConversionError:
            raise
        except (ValueError, TypeError, ArithmeticError, LookupError) as exception:
            raise ConversionError(f"{text!r} is not a valid {_typename(type)}", type=type, text=text) from exception

    def copy(self):
        """
        return an independent registry with the same converters.
        """
        clone = type(self)(builtins=False)
        clone._parsers = dict(self._parsers)
        clone._custom = set(self._custom)
        return clone

    def __repr__(self):
        return f"{type(self).__name__}({len(self._parsers)} parsers, {len(self._custom)} custom)"


def _typename(type, /):
    return getattr(type, "__name__", None) or str(type).replace("typing.", "")


_BUILTINS = {
    str: _parse_str,
    int: int,
    float: float,
    complex: complex,
    bool: _parse_bool,
    Decimal: Decimal,
    Fraction: Fraction,
    Path: Path,
    PurePath: PurePath,
    uuid.UUID: uuid.UUID,
    datetime.datetime: datetime.datetime.fromisoformat,
    datetime.date: datetime.date.fromisoformat,
    datetime.time: datetime.time.fromisoformat,
}


default_parsers = ValueParserRegistry()
"""
process-wide registry used whenever a caller does not supply one.
"""


__all__ = (
    "ValueParserRegistry",
    "default_parsers",
    "unwrap",
)
