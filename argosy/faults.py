"""
Argosy faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for all issues, grouped by
  phase (declaration vs. parsing) and domain (options, arguments, conversion).
- DeclarationError: programming mistakes found while compiling a declared class
  into a command model. Never recoverable at parse time.
- ParsingError: user-input mistakes found while parsing an argument vector.
  Expected failures the caller can report (usage + exit).
- CommandWarning: soft feedback (e.g., an empty inline value).
- CommandExit: exception group bundling several parse errors at once.
- trigger(): central entry point to surface any fault (respecting shell/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.

UX goals
- Short titles, one-sentence bodies, a single clear hint.
- Messages always name the offending member(s), option or raw text.
- Lowercased tone with readable styling (configurable via __styles__ in __main__).

Integration
- The compiler raises declaration errors directly (they are bugs in the declaration).
- The binder raises parse errors; Command.trigger() decides whether to raise them
  or render them with rich and exit (shell mode).
"""
import copy
import inspect
import sys
import warnings
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType
from typing import final

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - parsing: options (1111x), arguments (1112x), conversion (1113x)
    - warnings (1211x)
    - declaration: per-member (2110x), cross-member (2111x)

    spacing leaves room for future additions without reshuffling existing codes.
    normalize() allows host remapping to custom labels while keeping code-stability.
    """
    # --- option errors (1111x) ---
    UNKNOWN_OPTION              = 11111
    MISSING_OPTION_VALUE        = 11112
    FLAG_ASSIGNMENT             = 11113
    DUPLICATE_OPTION            = 11114
    MISSING_REQUIRED_OPTION     = 11115

    # --- argument errors (1112x) ---
    UNEXPECTED_ARGUMENT         = 11121
    MISSING_REQUIRED_ARGUMENT   = 11122

    # --- conversion errors (1113x) ---
    VALUE_CONVERSION            = 11131

    # --- warnings (1211x) ---
    EMPTY_INLINE_VALUE          = 12111

    # --- per-member declaration errors (2110x) ---
    CONFLICTING_ROLES           = 21101
    INVALID_NO_VALUE_TYPE       = 21102
    UNRESOLVED_ARITY            = 21103
    MULTI_VALUE_TYPE_MISMATCH   = 21104
    INVALID_TEMPLATE            = 21105

    # --- cross-member declaration errors (2111x) ---
    DUPLICATE_ORDER             = 21111
    MULTI_VALUE_NOT_LAST        = 21112
    DUPLICATE_HELP_TRIGGER      = 21113
    AMBIGUOUS_NAME              = 21114

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


_ERROR_STYLES = {
    "code": "bold #00E5FF",  # neon cyan
    "error-title": "bold #FF4DA6",
    "error-message": "#C8C8D0",
    "hint-arrow": "#9CE19C dim",
    "hint": "italic #9CE19C",
}

_WARNING_STYLES = {
    "code": "bold #FFB400",  # amber
    "warning-title": "bold #FFC2E0",
    "warning-message": "#D6D6DE",
    "hint-arrow": "#B8EFAF dim",
    "hint": "italic #B8EFAF",
}


def _styler(options, palette):
    """
    Text factory for one rendering: host __styles__ in __main__ override the
    palette, colorful=False drops every style.
    """
    styles = defaultdict(str, {"prog-name": "bold #E6E6F0"} | palette | getattr(__import__("__main__"), "__styles__", {}))

    def style(fragment, name):
        if not fragment:
            return Text("")
        if not options.get("colorful", True):
            return Text(str(fragment))
        return Text(str(fragment), styles[name])
    return style


def _prog(options):
    tool = options.get("tool")
    return getattr(__import__("__main__"), "__prog__", getattr(tool, "name", "argosy"))


def _render(fault, kind, palette):
    """
    "[ prog — code | Title ]" over the message and its hint.

    fancy renders a titled panel instead; inside a CommandExit the panel width
    is scaled by the "ratio" option.
    """
    options = fault.options
    style = _styler(options, palette)
    code = options.get("code")
    header = Text.assemble(
        "[ ",
        style(_prog(options), "prog-name"),
        " — ",
        style(code.normalize() if code else "", "code"),
        " | ",
        style(options.get("title", kind).title(), kind + "-title"),
        " ]"
    )
    renders = [style(fault.message, kind + "-message")]
    if hint := options.get("hint"):
        renders.append(Text.assemble(style(" → ", "hint-arrow"), style(hint, "hint")))

    if not options.get("fancy"):
        return Group(header, *renders)
    width = None
    if "ratio" in options:
        width = int((console.width - 4) * options["ratio"])
    return Panel(Group(*renders), title=header, title_align="left", width=width)


class CommandException(Exception):
    """
    base fault carrying a message plus a read-only mapping of options.

    options
    - code: FaultCode, title: str, hint: str (rendering)
    - tool, shell, fancy, colorful (runtime, merged in by trigger())
    - any context the raiser wants to expose (member, option, token, ...);
      context options are readable as attributes (error.member, error.token).
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __getattr__(self, name):
        if name.startswith("__") or name == "options":
            raise AttributeError(name)
        try:
            return self.options[name]
        except KeyError:
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}") from None

    def __str__(self):
        return str(self.message) if self.message is not Unset else ""

    def __rich__(self):
        return _render(self, "error", _ERROR_STYLES)

    def __trigger__(self) -> None:
        if not self.options.get("shell"):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class DeclarationError(CommandException, TypeError):
    """
    a declared class cannot be compiled into a command model.

    declaration errors describe a programming mistake and carry the identities
    of the members involved (``Class.member``) for an actionable diagnostic.
    """


class ConflictingRolesError(DeclarationError): ...
class InvalidNoValueTypeError(DeclarationError): ...
class UnresolvedArityError(DeclarationError): ...
class MultiValueTypeMismatchError(DeclarationError): ...
class InvalidTemplateError(DeclarationError): ...
class DuplicateOrderError(DeclarationError): ...
class MultiValueNotLastError(DeclarationError): ...
class DuplicateHelpTriggerError(DeclarationError): ...
class AmbiguousNameError(DeclarationError): ...


class ParsingError(CommandException):
    """
    an argument vector does not match the command model.
    """


class UnknownOptionError(ParsingError): ...
class MissingOptionValueError(ParsingError): ...
class FlagAssignmentError(ParsingError): ...
class DuplicateOptionError(ParsingError): ...
class UnexpectedArgumentError(ParsingError): ...
class ValueConversionError(ParsingError, ValueError): ...
class MissingRequiredArgumentError(ParsingError): ...
class MissingRequiredOptionError(ParsingError): ...


class ConversionError(ValueError):
    """
    raised by a value parser when raw text cannot be converted into a type.

    the binder turns it into a ValueConversionError naming the option or
    argument the text was meant for.
    """

    def __init__(self, message, /, type=Unset, text=Unset):
        super().__init__(message)
        self.type = type
        self.text = text


class CommandWarning(Warning):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return str(self.message) if self.message is not Unset else ""

    def __rich__(self):
        return _render(self, "warning", _WARNING_STYLES)

    def __trigger__(self) -> None:
        if not self.options.get("shell"):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class EmptyOptionValueWarning(CommandWarning): ...


@final
class CommandExit(ExceptionGroup[CommandException]):
    """
    several parse errors surfaced together (value conversion failures).
    """

    def __new__(cls, exceptions, /, **options):
        return super().__new__(cls, "bad exit", tuple(exceptions))

    def __init__(self, exceptions, /, **options):
        super().__init__("bad exit", tuple(exceptions))
        self.options = MappingProxyType(options)

    def derive(self, exceptions):
        return CommandExit(exceptions, **self.options)

    def __rich__(self):
        style = _styler(self.options, {"title": "bold #FF4DA6"})
        header = Text.assemble("[ ", style(_prog(self.options), "prog-name"), " — ", style("Bad Exit", "title"), " ]")
        renders = [copy.replace(exception, **{**self.options, "ratio": 2 / 3}) for exception in self.exceptions]

        if self.options.get("fancy"):
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __trigger__(self) -> None:
        if not self.options.get("shell"):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.exceptions, **{**self.options, **overrides})

    def __init_subclass__(cls, **options):
        raise TypeError("type 'CommandExit' is not an acceptable base type")


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via copy.replace(fault, **options) before triggering.
    - in shell mode, rendering happens via rich console; otherwise, errors are raised
      and warnings go through the warnings module.

    typical options
    - tool, shell, fancy, colorful, title, code, hint, and any other context the
      reporter may want to show (e.g., token/option/member).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings.
    when not found, returns None.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "FaultCode",
    "CommandException",
    "DeclarationError",
    "ConflictingRolesError",
    "InvalidNoValueTypeError",
    "UnresolvedArityError",
    "MultiValueTypeMismatchError",
    "InvalidTemplateError",
    "DuplicateOrderError",
    "MultiValueNotLastError",
    "DuplicateHelpTriggerError",
    "AmbiguousNameError",
    "ParsingError",
    "UnknownOptionError",
    "MissingOptionValueError",
    "FlagAssignmentError",
    "DuplicateOptionError",
    "UnexpectedArgumentError",
    "ValueConversionError",
    "MissingRequiredArgumentError",
    "MissingRequiredOptionError",
    "ConversionError",
    "CommandWarning",
    "EmptyOptionValueWarning",
    "CommandExit",
    "trigger",
    "getdoc",
)
