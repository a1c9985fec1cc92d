"""
Type-to-arity inference.

Given a member's declared type and a value-parser registry, decide how many
value tokens an option consumes:

- NO_VALUE: presence-only switch (bool, or a sequence of bool for counted flags)
- SINGLE_VALUE: exactly one value
- SINGLE_OR_NO_VALUE: an optional inline value (declared as tuple[bool, T])
- MULTIPLE_VALUE: one value per occurrence, collected into a container

Rules, in priority order (Optional[T] is unwrapped first)
1. bool → NO_VALUE (also list[bool] & co. → NO_VALUE, one True per occurrence)
2. a custom parser registered for the exact type → SINGLE_VALUE
3. sequence of T → MULTIPLE_VALUE, each token parsed as T
4. tuple[bool, T] → SINGLE_OR_NO_VALUE
5. SINGLE_VALUE when the registry supports the type, else UnresolvedArityError

Everything here is a pure function of (type, registry).
"""
import builtins
import collections
import collections.abc
import typing
from enum import Enum

from .faults import FaultCode, UnresolvedArityError
from .parsers import unwrap

# origin → container used to materialize the collected values
_CONTAINERS = {
    list: list,
    tuple: tuple,
    set: set,
    frozenset: frozenset,
    collections.deque: collections.deque,
    collections.abc.Sequence: tuple,
    collections.abc.MutableSequence: list,
    collections.abc.Collection: tuple,
    collections.abc.Iterable: tuple,
    collections.abc.Set: frozenset,
    collections.abc.MutableSet: set,
}


class Arity(Enum):
    NO_VALUE = "no-value"
    SINGLE_VALUE = "single-value"
    SINGLE_OR_NO_VALUE = "single-or-no-value"
    MULTIPLE_VALUE = "multiple-value"

    @property
    def valued(self):
        """
        whether the option may carry a value token at all.
        """
        return self is not Arity.NO_VALUE


def sequence(type, /):
    """
    describe a sequence-like type as (container, element), or None.

    bare containers (list, tuple, ...) hold strings; fixed-size tuples such as
    tuple[int, str] are not sequences; str and bytes never are.
    """
    type = unwrap(type)
    origin = typing.get_origin(type) or type
    try:
        container = _CONTAINERS[origin]
    except (KeyError, TypeError):
        return None
    arguments = typing.get_args(type)
    if origin is tuple and arguments:
        if len(arguments) != 2 or arguments[1] is not Ellipsis:
            return None
    return container, arguments[0] if arguments else str


def switch(type, /):
    """
    return T for tuple[bool, T] (an option with an optional inline value), else None.
    """
    type = unwrap(type)
    if typing.get_origin(type) is not tuple:
        return None
    match typing.get_args(type):
        case (flag, value) if unwrap(flag) is bool and value is not Ellipsis:
            return value
    return None


def is_flag(type, /):
    """
    True for bool and for sequences of bool (counted flags).
    """
    if unwrap(type) is bool:
        return True
    return (shape := sequence(type)) is not None and unwrap(shape[1]) is bool


def infer(type, parsers, /):
    """
    infer the arity of an option whose value type is `type`.

    raises
    - UnresolvedArityError: neither a built-in rule nor the registry can handle the type.
    """
    if is_flag(type):
        return Arity.NO_VALUE
    if parsers.registered(type) or parsers.registered(unwrap(type)):
        return Arity.SINGLE_VALUE
    if (shape := sequence(type)) is not None:
        if parsers.supports(shape[1]):
            return Arity.MULTIPLE_VALUE
        raise _unresolved(shape[1])
    if (value := switch(type)) is not None:
        if parsers.supports(value):
            return Arity.SINGLE_OR_NO_VALUE
        raise _unresolved(value)
    if parsers.supports(type):
        return Arity.SINGLE_VALUE
    raise _unresolved(type)


def describe(type, /):
    """
    readable name of a type for diagnostics (list[int], Color, int | None ...).
    """
    if isinstance(type, builtins.type) and not typing.get_args(type):
        return type.__qualname__
    return str(type).replace("typing.", "").replace("collections.abc.", "")


def _unresolved(type):
    return UnresolvedArityError(
        "could not automatically determine the arity for type %s" % describe(type),
        title="unresolved arity",
        code=FaultCode.UNRESOLVED_ARITY,
        hint="register a value parser for %s or set 'arity' on the declaration" % describe(type),
        type=type,
    )


__all__ = (
    "Arity",
    "infer",
    "sequence",
    "switch",
    "is_flag",
    "describe",
)
