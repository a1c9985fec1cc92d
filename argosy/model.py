"""
Compiled command model: the immutable aggregate the binder consults.

What this module provides
- parse_template(template): split an option template ("-p|--port <PORT>") into
  its short, symbol and long names plus the value name.
- CommandOption: one resolved option (names, arity, value type, flags).
- CommandArgument: one resolved positional argument (order, multiplicity).
- CommandModel: ordered options, arguments sorted by order, the optional help
  trigger, and the name indexes used while tokenizing.

All three types are sealed once constructed: assigning or deleting attributes
raises AttributeError and collections are exposed as tuples or mapping proxies.
Instances are produced by argosy.compiler; building them by hand is possible
but skips every declaration check.
"""
import re

from .arity import Arity
from .faults import FaultCode, InvalidTemplateError
from .utils import *


def parse_template(template, /):
    """
    split an option template into (short, symbol, long, value_name).

    parts are separated by '|' or whitespace:
    - "--name"  → long name (letters, digits, '-' and '_', starting with a letter or digit)
    - "-x"      → short name (one letter or digit)
    - "-?"      → symbol name (one non-alphanumeric character)
    - "<VALUE>" → value name

    missing parts are Unset. at least one name is required, and each kind may
    appear only once.

    raises
    - InvalidTemplateError: unrecognized part, repeated kind, or no name at all.
    """
    if not isinstance(template, str):
        raise TypeError("parse_template() argument must be a string")

    parts = {}
    for part in filter(None, re.split(r"[|\s]+", template)):
        if match := re.fullmatch(r"--([^\W_][\w-]*)", part):
            kind, value = "long", match[1]
        elif re.fullmatch(r"-[^\W_]", part):
            kind, value = "short", part[1]
        elif re.fullmatch(r"-[^\w\s-]", part):
            kind, value = "symbol", part[1]
        elif match := re.fullmatch(r"<([^<>\s]+)>", part):
            kind, value = "value_name", match[1]
        else:
            raise _invalid(template, "unrecognized part %r" % part)
        if kind in parts:
            raise _invalid(template, "%s name given twice" % kind.replace("_name", ""))
        parts[kind] = value

    if not parts.keys() & {"short", "symbol", "long"}:
        raise _invalid(template, "no short, symbol or long name")

    return tuple(parts.get(kind, Unset) for kind in ("short", "symbol", "long", "value_name"))


def _invalid(template, reason):
    return InvalidTemplateError(
        "invalid template %r: %s" % (template, reason),
        title="invalid template",
        code=FaultCode.INVALID_TEMPLATE,
        hint="use '-x', '-?', '--name' and '<VALUE>' parts separated by '|' (for example: -p|--port <PORT>)",
        template=template,
    )


class CommandOption(metaclass=SpecType, sealed=True):
    """
    a resolved option.

    fields
    - member/qualname: the declared member (name, "Class.member")
    - short/symbol/long: names without dashes (Unset when absent)
    - value_name: display name of the value (CONSTANT_CASE by default)
    - arity: Arity
    - type: declared value type; element: type each value token is parsed as;
      container: collection type for counted flags and multi-value options
    - descr, required, hidden, default (Unset when not declared)
    - helper: True for the help trigger
    """

    __introspectable__ = (
        "member",
        "qualname",
        "short",
        "symbol",
        "long",
        "value_name",
        "arity",
        "type",
        "element",
        "container",
        "descr",
        "required",
        "hidden",
        "default",
        "helper",
    )

    def __init__(
            self,
            member,
            /,
            *,
            qualname=Unset,
            short=Unset,
            symbol=Unset,
            long=Unset,
            value_name=Unset,
            arity=Arity.NO_VALUE,
            type=bool,
            element=Unset,
            container=Unset,
            descr=Unset,
            required=False,
            hidden=False,
            default=Unset,
            helper=False
    ):
        if short is Unset and symbol is Unset and long is Unset:
            raise ValueError("an option needs a short, symbol or long name")
        if not isinstance(arity, Arity):
            raise TypeError("CommandOption 'arity' must be an arity")

        self._member = member
        self._qualname = coalesce(qualname, member)
        self._short = short
        self._symbol = symbol
        self._long = long
        self._value_name = coalesce(value_name, constantize(member))
        self._arity = arity
        self._type = type
        self._element = coalesce(element, type)
        self._container = container
        self._descr = coalesce(descr, member)
        self._required = bool(required)
        self._hidden = bool(hidden)
        self._default = default
        self._helper = bool(helper)
        self._seal()

    @property
    def names(self):
        """
        every spelling of this option as typed on a command line ("-p", "--port").
        """
        names = []
        if self._short is not Unset:
            names.append("-" + self._short)
        if self._symbol is not Unset:
            names.append("-" + self._symbol)
        if self._long is not Unset:
            names.append("--" + self._long)
        return tuple(names)

    @property
    def display(self):
        """
        preferred spelling used in messages: the long name when present.
        """
        return self.names[-1]

    @property
    def template(self):
        """
        canonical template text, e.g. "-p|--port <PORT>".
        """
        template = "|".join(self.names)
        if self._arity.valued:
            template += " <%s>" % self._value_name
        return template


class CommandArgument(metaclass=SpecType, sealed=True):
    """
    a resolved positional argument.

    the element type is what each token is parsed as; for multi-value arguments
    the container collects the converted tokens.
    """

    __introspectable__ = (
        "member",
        "qualname",
        "order",
        "name",
        "type",
        "element",
        "container",
        "multiple",
        "descr",
        "required",
        "hidden",
        "default",
    )

    def __init__(
            self,
            member,
            order,
            /,
            *,
            qualname=Unset,
            name=Unset,
            type=str,
            element=Unset,
            container=Unset,
            multiple=False,
            descr=Unset,
            required=False,
            hidden=False,
            default=Unset
    ):
        if not isinstance(order, int) or isinstance(order, bool) or order < 0:
            raise ValueError("CommandArgument 'order' must be a non-negative integer")
        if multiple and container is Unset:
            raise ValueError("a multi-value argument needs a container")

        self._member = member
        self._order = order
        self._qualname = coalesce(qualname, member)
        self._name = coalesce(name, member)
        self._type = type
        self._element = coalesce(element, type)
        self._container = container
        self._multiple = bool(multiple)
        self._descr = coalesce(descr, member)
        self._required = bool(required)
        self._hidden = bool(hidden)
        self._default = default
        self._seal()

    @property
    def display(self):
        return "<%s>%s" % (self._name, "..." if self._multiple else "")


class CommandModel(metaclass=SpecType, sealed=True):
    """
    compiled, validated set of options and arguments for one declared class.

    lookups
    - find_long(name): case-insensitive long-name lookup (helper included)
    - find_short(char): short or symbol name lookup (helper included)
    - find(member): option or argument bound to a member name
    """

    __introspectable__ = (
        "type",
        "options",
        "arguments",
        "helper",
    )

    def __init__(self, type, options, arguments, /, helper=None):
        self._type = type
        self._options = tuple(options)
        self._arguments = tuple(sorted(arguments, key=lambda argument: argument.order))
        self._helper = helper

        longs = {}
        shorts = {}
        for option in self.switches:
            if option.long is not Unset:
                longs.setdefault(option.long.casefold(), option)
            for char in (option.short, option.symbol):
                if char is not Unset:
                    shorts.setdefault(char, option)
        self._longs = longs
        self._shorts = shorts
        self._members = {target.member: target for target in (*self._options, *self._arguments)}
        self._seal()

    @property
    def switches(self):
        """
        options in declaration order, followed by the help trigger when present.
        """
        return self._options + ((self._helper,) if self._helper is not None else ())

    def find_long(self, name, /):
        return self._longs.get(name.casefold())

    def find_short(self, char, /):
        return self._shorts.get(char)

    def find(self, member, /):
        return self._members.get(member)

    def longs(self):
        """
        every long spelling ("--port") known to the model, in declaration order.
        """
        return tuple("--" + option.long for option in self.switches if option.long is not Unset)


__all__ = (
    "parse_template",
    "CommandOption",
    "CommandArgument",
    "CommandModel",
)
