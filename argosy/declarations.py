r"""
Argosy declarative tags and the descriptor table reader.

Overview
- Tags
  • Option: a named member (-p/--port), value-bearing or presence-only depending on its type.
  • Argument: a positional member, identified by its order.
  • HelpOption: the help trigger, on a member or on the class through @helper(...).

- Attaching tags to members (both forms may be mixed in one class)
  • as the class-level value, where the tag also acts as a descriptor that
    returns the bound value (or the tag's default) on instances:
        class Serve:
            port: int = Option(default=8080)
            files: list[str] = Argument(0)
  • as typing.Annotated metadata, leaving the class-level value as the default:
        class Serve:
            port: Annotated[int, Option("-p|--port")] = 8080

- members(cls)
  • Reads a declared class (base classes first) into a tuple of Member records:
    name, annotated type, tags, default and declaring class. This table is the
    only input of the model compiler.

Metadata (sanitized on construction)
- template: Unset | str ("-p|--port <PORT>"), non-empty when provided.
- descr: Unset | str, non-empty when provided.
- arity: Unset | Arity (or its string value, e.g. "single-value").
- order: Unset | int (>= 0), Argument only.
- multiple: Unset | bool, Argument only (inferred from the type when Unset).
- default: any value; Unset means "no declared default".
- required/hidden: bool.

Quick example:
    >>> from argosy import Option, Argument, HelpOption, helper
    >>> @helper()
    ... class Copy:
    ...     force: bool = Option("-f|--force", "overwrite existing files")
    ...     sources: list[str] = Argument(0, required=True)
    ...
"""
import inspect
import typing

from .arity import Arity
from .utils import *


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize and validate metadata shared by every tag.

    - template/descr: Unset or a non-empty string after trimming.
    - required/hidden: coerced to bool.

    Raises
    - TypeError: wrong types.
    - ValueError: empty strings.
    """
    for name in ("template", "descr"):
        if name not in metadata:
            continue
        if not isinstance(object := metadata[name], str | Unset):
            raise TypeError(f"{cls.__typename__} {name!r} must be a string")
        elif isinstance(object, str) and not (object := object.strip()):
            raise ValueError(f"{cls.__typename__} {name!r} cannot be empty")
        metadata[name] = object

    for name in ("required", "hidden"):
        if name in metadata:
            metadata[name] = bool(metadata[name])


def _sanitize_option_metadata(cls, metadata, /):
    """
    Internal: validate the option-only fields (arity and value_name).
    """
    arity = metadata["arity"]
    if isinstance(arity, str):
        try:
            arity = Arity(arity)
        except ValueError:
            raise ValueError(f"{cls.__typename__} 'arity' must be one of {', '.join(member.value for member in Arity)}") from None
    if not isinstance(arity, Arity | Unset):
        raise TypeError(f"{cls.__typename__} 'arity' must be an arity")
    metadata["arity"] = arity

    if not isinstance(value_name := metadata["value_name"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'value_name' must be a string")
    elif isinstance(value_name, str) and not (value_name := value_name.strip()):
        raise ValueError(f"{cls.__typename__} 'value_name' cannot be empty")
    metadata["value_name"] = value_name


def _sanitize_argument_metadata(cls, metadata, /):
    """
    Internal: validate the argument-only fields (order, name and multiple).
    """
    if not isinstance(order := metadata["order"], int | Unset) or isinstance(order, bool):
        raise TypeError(f"{cls.__typename__} 'order' must be an integer")
    elif isinstance(order, int) and order < 0:
        raise ValueError(f"{cls.__typename__} 'order' must be a non-negative integer")

    if not isinstance(name := metadata["name"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    elif isinstance(name, str) and not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} 'name' cannot be empty")
    metadata["name"] = name

    if not isinstance(multiple := metadata["multiple"], bool | Unset):
        raise TypeError(f"{cls.__typename__} 'multiple' must be a boolean")


class Declaration(metaclass=SpecType):
    """
    Base for declarative tags.

    A tag placed as a class-level value is a non-data descriptor: reading the
    member on an instance yields the value bound by the parser (stored in the
    instance __dict__) or, before binding, the tag's default (None when Unset).
    """

    __role__ = "declaration"

    _default = Unset
    _owner = Unset
    _member = Unset

    def __set_name__(self, owner, name):
        # one tag instance describes one member
        if self._member is not Unset and (self._owner, self._member) != (owner, name):
            raise TypeError(f"{type(self).__typename__} is already declared on {self._owner.__qualname__}.{self._member}")
        self._owner = owner
        self._member = name

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        try:
            return vars(instance)[self._member]
        except (KeyError, TypeError):
            return coalesce(self._default)


class Option(Declaration):
    """
    Named member specification.

    The template lists the names, separated by '|' or spaces:
      "-p", "--port", "-?" (symbol), "<PORT>" (value name), e.g. "-p|--port <PORT>".
    Without a template the long name is the kebab-case member name and the short
    name its first character.

    The arity is inferred from the member type unless given explicitly; boolean
    members are always presence-only.
    """

    __role__ = "option"

    __introspectable__ = (
        "template",
        "descr",
        "arity",
        "default",
        "required",
        "value_name",
        "hidden",
    )

    def __init__(
            self,
            template=Unset,
            /,
            descr=Unset,
            *,
            arity=Unset,
            default=Unset,
            required=False,
            value_name=Unset,
            hidden=False
    ):
        metadata = {
            "template": template,
            "descr": descr,
            "arity": arity,
            "default": default,
            "required": required,
            "value_name": value_name,
            "hidden": hidden,
        }
        _sanitize_metadata(type(self), metadata)
        _sanitize_option_metadata(type(self), metadata)

        for name, object in metadata.items():
            setattr(self, "_" + name, object)


class Argument(Declaration):
    """
    Positional member specification.

    Arguments are filled in ascending order. When the order is omitted it follows
    the declaration order (one past the greatest order seen so far). Only the last
    argument may collect multiple values; multiplicity is inferred from sequence
    types (list[str], tuple[int, ...], ...) unless given explicitly.
    """

    __role__ = "argument"

    __introspectable__ = (
        "order",
        "name",
        "descr",
        "multiple",
        "default",
        "required",
        "hidden",
    )

    def __init__(
            self,
            order=Unset,
            /,
            name=Unset,
            descr=Unset,
            *,
            multiple=Unset,
            default=Unset,
            required=False,
            hidden=False
    ):
        metadata = {
            "order": order,
            "name": name,
            "descr": descr,
            "multiple": multiple,
            "default": default,
            "required": required,
            "hidden": hidden,
        }
        _sanitize_metadata(type(self), metadata)
        _sanitize_argument_metadata(type(self), metadata)

        for name, object in metadata.items():
            setattr(self, "_" + name, object)


class HelpOption(Declaration):
    """
    Help trigger specification.

    When any of its names shows up before a bare '--', parsing stops and the
    caller receives a HelpRequested outcome instead of bound values.
    """

    __role__ = "help option"

    __introspectable__ = (
        "template",
        "descr",
    )

    _default = False

    def __init__(self, template="-?|-h|--help", /, descr="Show help information"):
        metadata = {
            "template": template,
            "descr": descr,
        }
        _sanitize_metadata(type(self), metadata)

        for name, object in metadata.items():
            setattr(self, "_" + name, object)


def helper(source=Unset, /, *args, **kwargs):
    """
    Class decorator declaring a type-level help trigger.

    Usage
    - @helper                        → default "-?|-h|--help"
    - @helper("-h|--help")           → custom template
    - @helper("--usage", "show usage")

    Behavior
    - Records the HelpOption on the class (in __helpers__); the compiler rejects
      a class that ends up with more than one help trigger (type-level and
      member-level declarations combined).
    """
    if isinstance(source, type):
        return helper()(source)

    if source is not Unset:
        args = (source, *args)
    help = HelpOption(*args, **kwargs)

    @rename("helper")
    def wrapper(cls, /):
        if not isinstance(cls, type):
            raise TypeError("@helper() must be applied to a class")
        if help._owner is not Unset:
            raise TypeError("@helper() must be applied only once")
        help._owner = cls
        cls.__helpers__ = (*cls.__dict__.get("__helpers__", ()), help)
        return cls

    return wrapper


class Member(typing.NamedTuple):
    """
    One row of the descriptor table read from a declared class.
    """
    name: str
    type: typing.Any
    tags: tuple
    default: typing.Any
    owner: type

    @property
    def qualname(self):
        return f"{self.owner.__qualname__}.{self.name}"


def members(cls, /):
    """
    Read the descriptor table of a declared class.

    Rules
    - classes are visited base-first along the MRO; a member redeclared in a
      subclass replaces the inherited one but keeps its original position.
    - a member is any annotated name, or any class attribute holding a tag.
      ClassVar annotations are skipped; unannotated tagged members are typed str.
    - tags come from the class-level value and from Annotated metadata (in
      that order). The default is the class-level value when it is not a tag,
      otherwise the first declared tag default (Unset when none).
    """
    if not isinstance(cls, type):
        raise TypeError("members() argument must be a class")

    table = {}
    for owner in reversed(cls.__mro__):
        if owner is object:
            continue
        namespace = vars(owner)
        annotations = inspect.get_annotations(owner, eval_str=True)
        names = [*annotations, *(name for name, value in namespace.items() if isinstance(value, Declaration) and name not in annotations)]

        for name in names:
            annotation = annotations.get(name, str)
            if typing.get_origin(annotation) is typing.ClassVar:
                continue

            tags = []
            if isinstance(value := namespace.get(name, Unset), Declaration):
                tags.append(value)
                value = Unset
            if typing.get_origin(annotation) is typing.Annotated:
                tags.extend(tag for tag in annotation.__metadata__ if isinstance(tag, Declaration))
                annotation = annotation.__origin__

            for tag in tags:
                if value is not Unset:
                    break
                value = tag._default

            table[name] = Member(name, annotation, tuple(tags), value, owner)

    return tuple(table.values())


__all__ = (
    # Tags
    "Declaration",
    "Option",
    "Argument",
    "HelpOption",

    # Decorators
    "helper",

    # Descriptor table
    "Member",
    "members",
)
