r"""
Parser/Binder: argument vector + CommandModel → Bound values (or HelpRequested).

Phases
1. help pre-scan: any token naming the help trigger before a bare '--' wins;
   nothing else is tokenized, converted or validated. A help trigger the
   tokenizer meets later (after a '--' taken as an option value) stops it the
   same way, before conversion.
2. tokenization, left to right:
   • '--'                      → every later token is positional
   • '--name', '--name=value', '--name:value'
                               → long option, matched case-insensitively
   • '-x', '-x=value', '-x:value', '-xvalue', '-abc'
                               → short/symbol names; in a cluster every presence-only
                                 option is set and the first valued option takes the
                                 rest of the token as its value
   • '-', '-5', '-1.5'         → positional (negative numbers only when their first
                                 digit is not itself a short name)
   • anything else             → next positional argument (the multi-value last
                                 argument keeps accumulating), then leftovers
3. conversion through the value-parser registry, collecting every failure:
   one failure is raised as ValueConversionError, several as a CommandExit group.
4. required arguments (by order), then required options (by declaration).

Leftover policy (tokens no positional argument can take)
- "collect": keep them as leftovers and continue parsing.
- "stop":    this and every later token become leftovers (subcommand routing).
- "error":   UnexpectedArgumentError.

bind() runs the same pipeline against the model of type(target) and commits the
values with setattr only when everything above succeeded; a failing write rolls
back the writes made before it.
"""
import difflib
import logging
import re
from collections import deque
from collections.abc import Iterable
from types import MappingProxyType

from .arity import Arity, describe
from .compiler import compile_model
from .faults import *
from .parsers import default_parsers
from .utils import *

logger = logging.getLogger(__name__)

_POLICIES = ("collect", "stop", "error")


def _ordinal(number):
    """
    human-friendly ordinal for a 1-based token position ("first", "12th").
    """
    try:
        return (
            "first",
            "second",
            "third",
            "fourth",
            "fifth",
            "sixth",
            "seventh",
            "eighth",
            "ninth",
            "tenth",
        )[number - 1]
    except IndexError:
        pass
    if 10 < number % 100 < 20:
        return f"{number}th"
    return f"{number}%s" % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


class Bound(metaclass=SpecType):
    """
    outcome of a successful parse.

    - values: read-only mapping member name → converted value (matched members,
      plus False for absent plain boolean options without a declared default)
    - leftovers: tokens no positional argument could take
    - target: the instance the values were written onto (bind() only)

    Bound also reads like a mapping over its values: bound["port"], "port" in bound.
    """

    __introspectable__ = (
        "values",
        "leftovers",
        "target",
    )

    def __init__(self, values, leftovers=(), /, target=None):
        self._values = MappingProxyType(dict(values))
        self._leftovers = tuple(leftovers)
        self._target = target

    def __getitem__(self, name):
        return self._values[name]

    def __contains__(self, name):
        return name in self._values

    def __iter__(self):
        return iter(self._values)

    def __len__(self):
        return len(self._values)


class HelpRequested(metaclass=SpecType):
    """
    outcome of a parse that met the help trigger.

    - model: the model parsed against
    - option: the help trigger (a CommandOption with helper=True)
    - token: the raw token that named it
    - index: its 1-based position in the argument vector
    """

    __introspectable__ = (
        "model",
        "option",
        "token",
        "index",
    )

    def __init__(self, model, option, token, index, /):
        self._model = model
        self._option = option
        self._token = token
        self._index = index


def _scan_help(model, tokens):
    """
    find the first token naming the help trigger before a bare '--'.
    """
    if (helper := model.helper) is None:
        return None
    for index, token in enumerate(tokens, 1):
        if token == "--":
            break
        if token.startswith("--"):
            name = re.split(r"[=:]", token[2:], maxsplit=1)[0]
            if helper.long is not Unset and name.casefold() == helper.long.casefold():
                return HelpRequested(model, helper, token, index)
        elif token.startswith("-") and len(token) > 1:
            for char in token[1:]:
                if (option := model.find_short(char)) is helper:
                    return HelpRequested(model, helper, token, index)
                if option is None or option.arity.valued:
                    break
    return None


class _Parser:
    """
    single-use tokenizer state for one argument vector.
    """

    def __init__(self, model, parsers, leftovers, options):
        self.model = model
        self.parsers = parsers
        self.policy = leftovers
        self.options = options
        self.raw = {}  # member → list of (text, label, index)
        self.leftovers = []
        self.cursor = 0
        self.stopped = False
        self.request = None

    def run(self, tokens):
        queue = deque(enumerate(tokens, 1))
        terminated = False
        while queue and not self.stopped and self.request is None:
            index, token = queue.popleft()
            if terminated:
                self.positional(token, index)
            elif token == "--":
                terminated = True
            elif token.startswith("--"):
                self.long(token, index, queue)
            elif token.startswith("-") and token != "-" and not self.negative(token):
                self.short(token, index, queue)
            else:
                self.positional(token, index)
        if self.request is not None:
            # reached past a '--' consumed as a value, which ends the pre-scan early
            logger.debug("help requested by %r at %s position", self.request.token, _ordinal(self.request.index))
            return self.request
        self.leftovers.extend(token for _, token in queue)

        logger.debug(
            "tokenized %d tokens against %s: %d matched members, %d leftovers",
            len(tokens),
            self.model.type.__qualname__,
            len(self.raw),
            len(self.leftovers),
        )

        values = self.convert()
        self.check_required()
        return Bound(values, self.leftovers)

    # --- classification ---

    def negative(self, token):
        return bool(re.fullmatch(r"-(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?", token)) and self.model.find_short(token[1]) is None

    def long(self, token, index, queue):
        match = re.fullmatch(r"--([^=:]+)(?:[=:](.*))?", token, re.DOTALL)
        name = match[1] if match else token[2:]
        if match is None or (option := self.model.find_long(name)) is None:
            raise self.unknown("--" + name, token, index, self.model.longs())
        if option.helper:
            self.request = HelpRequested(self.model, option, token, index)
            return
        self.accept(option, match[2], "--" + name, index, queue)

    def short(self, token, index, queue):
        body = token[1:]
        for position, char in enumerate(body):
            if (option := self.model.find_short(char)) is None:
                candidates = [name for option in self.model.switches for name in option.names if not name.startswith("--")]
                raise self.unknown("-" + char, token, index, candidates)
            if option.helper:
                self.request = HelpRequested(self.model, option, token, index)
                return
            rest = body[position + 1:]
            if not option.arity.valued:
                if rest[:1] in ("=", ":"):
                    self.accept(option, rest[1:], "-" + char, index, queue)
                self.accept(option, None, "-" + char, index, queue)
                continue
            if rest[:1] in ("=", ":"):
                rest = rest[1:]
            elif not rest:
                rest = None
            self.accept(option, rest, "-" + char, index, queue)
            return

    def positional(self, token, index):
        arguments = self.model.arguments
        if self.cursor < len(arguments):
            argument = arguments[self.cursor]
            self.raw.setdefault(argument.member, []).append((token, argument.display, index))
            if not argument.multiple:
                self.cursor += 1
            return

        match self.policy:
            case "collect":
                self.leftovers.append(token)
            case "stop":
                self.leftovers.append(token)
                self.stopped = True
                logger.debug("stopped at leftover %r (%s position)", token, _ordinal(index))
            case "error":
                raise UnexpectedArgumentError(
                    "unexpected argument %r at %s position" % (token, _ordinal(index)),
                    title="unexpected argument",
                    code=FaultCode.UNEXPECTED_ARGUMENT,
                    hint="remove it, or put '--' before arguments that start with a dash",
                    token=token,
                    index=index,
                    docs=getdoc(FaultCode.UNEXPECTED_ARGUMENT),
                )

    # --- values ---

    def accept(self, option, value, name, index, queue):
        if option.arity is Arity.NO_VALUE:
            if value is not None:
                raise FlagAssignmentError(
                    "option %r at %s position does not take a value" % (name, _ordinal(index)),
                    title="option cannot take a value",
                    code=FaultCode.FLAG_ASSIGNMENT,
                    hint="remove everything from the separator (for example: %s)" % name,
                    member=option.member,
                    option=name,
                    index=index,
                    docs=getdoc(FaultCode.FLAG_ASSIGNMENT),
                )
            self.raw.setdefault(option.member, []).append((None, name, index))
            return

        if option.arity is not Arity.MULTIPLE_VALUE and option.member in self.raw:
            raise DuplicateOptionError(
                "option %r at %s position was already given" % (name, _ordinal(index)),
                title="duplicate option",
                code=FaultCode.DUPLICATE_OPTION,
                hint="pass %s only once" % option.display,
                member=option.member,
                option=name,
                index=index,
                docs=getdoc(FaultCode.DUPLICATE_OPTION),
            )

        if option.arity is Arity.SINGLE_OR_NO_VALUE:
            self.raw[option.member] = [(value, name, index)]
            return

        if value is None:
            if not queue:
                raise MissingOptionValueError(
                    "option %r at %s position is missing its value" % (name, _ordinal(index)),
                    title="missing option value",
                    code=FaultCode.MISSING_OPTION_VALUE,
                    hint="pass a value after it (for example: %s <%s>)" % (name, option.value_name),
                    member=option.member,
                    option=name,
                    index=index,
                    docs=getdoc(FaultCode.MISSING_OPTION_VALUE),
                )
            _, value = queue.popleft()
        elif not value:
            trigger(EmptyOptionValueWarning(
                "empty inline value for option %r at %s position" % (name, _ordinal(index)),
                title="empty inline value",
                code=FaultCode.EMPTY_INLINE_VALUE,
                hint="add a value after the separator (for example: %s=<%s>)" % (name, option.value_name),
                member=option.member,
                option=name,
                index=index,
                docs=getdoc(FaultCode.EMPTY_INLINE_VALUE),
            ), **self.options)

        self.raw.setdefault(option.member, []).append((value, name, index))

    def unknown(self, name, token, index, candidates):
        suggestions = difflib.get_close_matches(name, candidates, 5)
        if suggestions:
            hint = "did you mean %r?" % suggestions[0]
        else:
            hint = "check the spelling, or put '--' before arguments that start with a dash"
        return UnknownOptionError(
            "unknown option %r at %s position" % (name, _ordinal(index)),
            title="unknown option",
            code=FaultCode.UNKNOWN_OPTION,
            hint=hint,
            option=name,
            token=token,
            index=index,
            suggestions=tuple(suggestions),
            docs=getdoc(FaultCode.UNKNOWN_OPTION),
        )

    def convert(self):
        values = {}
        failures = []

        def convert(type, text, label, index, member):
            try:
                return self.parsers.parse(type, text)
            except ConversionError as error:
                failures.append(ValueConversionError(
                    "invalid value %r for %s at %s position: %s" % (text, label, _ordinal(index), error),
                    title="invalid value",
                    code=FaultCode.VALUE_CONVERSION,
                    hint="pass a valid %s" % describe(type),
                    member=member,
                    target=label,
                    text=text,
                    index=index,
                    docs=getdoc(FaultCode.VALUE_CONVERSION),
                ))

        for option in self.model.options:
            if (entries := self.raw.get(option.member)) is None:
                if option.arity is Arity.NO_VALUE and option.container is Unset and option.default is Unset:
                    values[option.member] = False
                continue
            match option.arity:
                case Arity.NO_VALUE if option.container is not Unset:
                    values[option.member] = option.container(True for _ in entries)
                case Arity.NO_VALUE:
                    values[option.member] = True
                case Arity.SINGLE_VALUE:
                    (text, label, index), = entries
                    values[option.member] = convert(option.element, text, label, index, option.member)
                case Arity.SINGLE_OR_NO_VALUE:
                    (text, label, index), = entries
                    values[option.member] = (True, None if text is None else convert(option.element, text, label, index, option.member))
                case Arity.MULTIPLE_VALUE:
                    values[option.member] = option.container(convert(option.element, *entry, option.member) for entry in entries)

        for argument in self.model.arguments:
            if (entries := self.raw.get(argument.member)) is None:
                continue
            if argument.multiple:
                values[argument.member] = argument.container(convert(argument.element, *entry, argument.member) for entry in entries)
            else:
                (text, label, index), = entries
                values[argument.member] = convert(argument.element, text, label, index, argument.member)

        if len(failures) == 1:
            raise failures[0]
        elif failures:
            raise CommandExit(failures)
        return values

    def check_required(self):
        for argument in self.model.arguments:
            if argument.required and argument.member not in self.raw:
                raise MissingRequiredArgumentError(
                    "missing required argument %s" % argument.display,
                    title="missing required argument",
                    code=FaultCode.MISSING_REQUIRED_ARGUMENT,
                    hint="pass a value for %s" % argument.display,
                    member=argument.member,
                    docs=getdoc(FaultCode.MISSING_REQUIRED_ARGUMENT),
                )
        for option in self.model.options:
            if option.required and option.member not in self.raw:
                raise MissingRequiredOptionError(
                    "missing required option %s" % option.display,
                    title="missing required option",
                    code=FaultCode.MISSING_REQUIRED_OPTION,
                    hint="pass %s" % option.template,
                    member=option.member,
                    option=option.display,
                    docs=getdoc(FaultCode.MISSING_REQUIRED_OPTION),
                )


def _tokens(tokens):
    if isinstance(tokens, str) or not isinstance(tokens, Iterable):
        raise TypeError("tokens must be an iterable of strings")
    tokens = list(tokens)
    if not all(isinstance(token, str) for token in tokens):
        raise TypeError("tokens must be an iterable of strings")
    return tokens


def parse(model, tokens, /, parsers=Unset, *, leftovers="collect", **options):
    """
    parse an argument vector against a compiled model.

    parameters
    - model: CommandModel (see argosy.compiler.compile_model)
    - tokens: iterable of raw strings
    - parsers: value-parser registry (default_parsers when Unset)
    - leftovers: "collect" | "stop" | "error"
    - options: runtime options (tool, shell, fancy, colorful) merged into the
      warnings emitted while parsing

    returns
    - Bound (without target), or HelpRequested when the help trigger was named.

    raises
    - ParsingError (and subclasses), or CommandExit for several conversion failures.
    """
    if leftovers not in _POLICIES:
        raise ValueError("leftovers must be one of %s" % ", ".join(map(repr, _POLICIES)))
    tokens = _tokens(tokens)
    parsers = coalesce(parsers, default_parsers)

    if (request := _scan_help(model, tokens)) is not None:
        logger.debug("help requested by %r at %s position", request.token, _ordinal(request.index))
        return request

    return _Parser(model, parsers, leftovers, options).run(tokens)


def bind(target, tokens, /, parsers=Unset, *, leftovers="collect", **options):
    """
    parse an argument vector and write the values onto target (all-or-nothing).

    the model is compiled (or fetched from the cache) for type(target) with the
    same registry. returns a Bound carrying the target, or HelpRequested (in
    which case target is left untouched).
    """
    parsers = coalesce(parsers, default_parsers)
    model = compile_model(type(target), parsers)
    outcome = parse(model, tokens, parsers, leftovers=leftovers, **options)
    if isinstance(outcome, HelpRequested):
        return outcome

    written = []
    try:
        for name, value in outcome.values.items():
            state = getattr(target, "__dict__", {})
            written.append((name, name in state, state.get(name, Unset)))
            setattr(target, name, value)
    except Exception:
        for name, present, previous in reversed(written[:-1]):
            if present:
                setattr(target, name, previous)
            else:
                delattr(target, name)
        raise

    logger.debug("bound %d values onto %s", len(outcome), type(target).__qualname__)
    return Bound(outcome.values, outcome.leftovers, target=target)


__all__ = (
    "Bound",
    "HelpRequested",
    "parse",
    "bind",
)
