"""
Argosy utilities shared by the declaration, model and binder layers.

Overview
- UnsetType / Unset
  • "not given" marker for tag fields and keyword parameters; None stays a
    legitimate default value for members.

- coalesce(value, default=None)
  • Unset → default; every other value (None and empty containers included) is kept.

- rename(callable, name) / @rename("name")
  • Readable names for generated getters and decorators.

- mirror("attr")
  • Read-only property factory exposing a private backing field (self._attr) as an
    immutable view (tuple, mapping proxy or frozenset for containers).

- kebabize(name) / constantize(name)
  • Word-boundary conversions used to derive option names and value names from members.

Quick examples
    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> coalesce(None, "fallback") is None
    True
    >>> kebabize("MaxRetryCount")
    'max-retry-count'
    >>> constantize("max_retry_count")
    'MAX_RETRY_COUNT'
"""
import builtins
import functools
import re
from collections.abc import Sequence, Mapping, Set
from types import MappingProxyType
from typing import final


@final
class UnsetType:
    """
    Type of the Unset marker. UnsetType() always returns the same falsy instance.

    `str | Unset` builds a union usable in isinstance checks, which is how tag
    sanitizers accept "a string or nothing".
    """

    def __or__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __reduce__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    object, or default when object is Unset (falsy values are kept).
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    rename(callable, name) sets __name__/__qualname__ and returns the callable;
    rename(name) returns a decorator doing the same.
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _freeze(object):
    """
    Return an immutable view of container values.

    - Sequence (non-string) → tuple
    - Mapping               → MappingProxyType
    - Set                   → frozenset
    - anything else         → returned as-is
    """
    if isinstance(object, Sequence) and not isinstance(object, str | tuple):
        return tuple(object)
    if isinstance(object, Mapping) and not isinstance(object, MappingProxyType):
        return MappingProxyType(object)
    if isinstance(object, Set) and not isinstance(object, frozenset):
        return frozenset(object)
    return object


def mirror(name, /):
    """
    Define a read-only property that mirrors a private backing attribute.

    The generated property reads from an attribute named "_{name}" on the
    instance and returns an immutable view for container types, so the public
    surface of compiled models cannot be mutated through it.

    Example
    - Given self._options, declare options = mirror("options") to expose it safely.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _freeze(object.__getattribute__(self, "_" + name))

    return property(getter)


class SpecType(type):
    """
    Metaclass shared by tags, model records, outcomes and Command.

    - every name in __introspectable__ becomes a mirror() property and a field
      of the generated __repr__/__rich_repr__;
    - __typename__ is the hyphenated lowercase class name ("command-option");
    - sealed=True adds _seal(), after which attribute writes and deletes raise
      AttributeError.
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, *, sealed=False, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                field: mirror(field) for field in namespace.get("__introspectable__", ())
            },
            **options
        )

        if "__repr__" not in namespace:
            @rename("__repr__")
            def __repr__(self):
                return "%s(%s)" % (type(self).__typename__, ", ".join("%s=%r" % pair for pair in self.__rich_repr__()))
            self.__repr__ = __repr__

        if "__rich_repr__" not in namespace:
            @rename("__rich_repr__")
            def __rich_repr__(self):
                for field in type(self).__introspectable__:
                    yield field, getattr(self, field)
            self.__rich_repr__ = __rich_repr__

        if sealed:
            @rename("_seal")
            def _seal(self):
                object.__setattr__(self, "_sealed", True)

            @rename("__setattr__")
            def __setattr__(self, name, value, /):
                if getattr(self, "_sealed", False):
                    raise AttributeError(f"{type(self).__typename__} is read-only")
                object.__setattr__(self, name, value)

            @rename("__delattr__")
            def __delattr__(self, name, /):
                if getattr(self, "_sealed", False):
                    raise AttributeError(f"{type(self).__typename__} is read-only")
                object.__delattr__(self, name)

            self._seal = _seal
            self.__setattr__ = __setattr__
            self.__delattr__ = __delattr__

        return self


@functools.cache
def kebabize(name, /):
    """
    Convert an identifier into kebab-case by turning word boundaries into hyphens.

    Word boundaries are underscores, lower-to-upper transitions ("maxSize") and the
    end of an acronym ("HTTPPort" → "http-port"). Leading/trailing separators are
    dropped and runs of separators collapse into a single hyphen.

    Examples
    - kebabize("port")          -> "port"
    - kebabize("max_size")      -> "max-size"
    - kebabize("MaxSize")       -> "max-size"
    - kebabize("HTTPPort")      -> "http-port"
    - kebabize("_private_name") -> "private-name"
    """
    if not isinstance(name, str):
        raise TypeError("kebabize() argument must be a string")
    text = re.sub(r"(?<=[^\W_])(?=[A-Z][a-z])|(?<=[a-z\d])(?=[A-Z])", "-", name)
    return re.sub(r"[-_\s]+", "-", text).strip("-").lower()


@functools.cache
def constantize(name, /):
    """
    Convert an identifier into CONSTANT_CASE (used for value names in help).

    Examples
    - constantize("output_dir") -> "OUTPUT_DIR"
    - constantize("maxSize")    -> "MAX_SIZE"
    """
    return kebabize(name).replace("-", "_").upper()


Unset = UnsetType()


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "kebabize",
    "constantize",

    # Types
    "SpecType",
    "UnsetType",

    # Constants
    "Unset",
)
