"""
Argosy command layer: run a declared class as a command-line program.

What this module provides
- Command: wraps a declared class (members tagged with Option, Argument and
  HelpOption) with its compiled model and runtime options:
  • parsers: value-parser registry (default_parsers when omitted)
  • leftovers: "collect" | "stop" | "error" (see argosy.binder)
  • shell: render faults with rich and exit instead of raising
  • fancy/colorful: panel chrome and styling for rendered faults
  • helper: callback receiving a HelpRequested outcome (help rendering lives
    outside this library)
- command(...): create a Command, or a class decorator producing one.
- invoke(object, prompt): run a Command (or a declared class) on a prompt.

Prompt forms
- omitted: sys.argv[1:]
- str: split with shlex.split, like a shell would
- iterable of str: used as-is, like sys.argv

Example
    >>> from argosy import Option, Argument, command, invoke
    >>> @command(shell=True, fancy=True)
    ... class Serve:
    ...     port: int = Option("-p|--port", "port to listen on", default=8080)
    ...     roots: list[str] = Argument(0, descr="directories to serve")
    ...
    >>> bound = invoke(Serve, "--port 9090 www assets")
    >>> bound.target.port, bound.target.roots
    (9090, ['www', 'assets'])
"""
import copy
import logging
import shlex
import sys
from collections.abc import Iterable

from .binder import HelpRequested, bind, parse
from .compiler import compile_model
from .faults import *
from .parsers import default_parsers
from .utils import *

logger = logging.getLogger(__name__)


class Command(metaclass=SpecType):
    """
    A declared class bound to its compiled model and runtime options.

    Calling __invoke__ instantiates the class (without arguments), binds the
    prompt onto the new instance and returns the Bound outcome, or the
    HelpRequested outcome after handing it to the helper callback.

    Faults are surfaced through trigger(): raised as-is outside shell mode,
    rendered with rich on stderr followed by exit status 1 inside shell mode.
    """

    __introspectable__ = (
        "type",
        "name",
        "model",
        "parsers",
        "leftovers",
        "shell",
        "fancy",
        "colorful",
    )

    def __init__(
            self,
            source,
            /,
            *,
            name=Unset,
            parsers=Unset,
            leftovers="collect",
            shell=False,
            fancy=False,
            colorful=False,
            helper=Unset
    ):
        if not isinstance(source, type):
            raise TypeError("Command() argument must be a class")
        if not isinstance(name, str | Unset):
            raise TypeError("Command() 'name' must be a string")
        if helper is not Unset and not callable(helper):
            raise TypeError("Command() 'helper' must be callable")
        if leftovers not in ("collect", "stop", "error"):
            raise ValueError("Command() 'leftovers' must be one of 'collect', 'stop', 'error'")

        self._type = source
        self._name = coalesce(name, kebabize(source.__name__))
        self._parsers = coalesce(parsers, default_parsers)
        self._leftovers = leftovers
        self._shell = bool(shell)
        self._fancy = bool(fancy)
        self._colorful = bool(colorful)
        self._helper = helper
        # declaration errors surface at construction, never at parse time
        self._model = compile_model(source, self._parsers)

    def trigger(self, fault, /, **options):
        """
        surface a fault with this command's runtime options merged in.
        """
        if (
                not hasattr(fault, "__trigger__") or
                not callable(fault.__trigger__) or
                not hasattr(fault, "__replace__") or
                not callable(fault.__replace__)
        ):
            raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
        trigger(fault, **(options | self._runtime()))

    def parse(self, prompt=Unset, /):
        """
        parse a prompt against the model without binding it onto an instance.
        """
        try:
            return parse(self._model, _tokenize(prompt), self._parsers, leftovers=self._leftovers, **self._runtime())
        except (CommandException, CommandExit) as fault:
            self.trigger(fault)

    def __invoke__(self, prompt=Unset):
        tokens = _tokenize(prompt)
        target = self._type()
        try:
            outcome = bind(target, tokens, self._parsers, leftovers=self._leftovers, **self._runtime())
        except (CommandException, CommandExit) as fault:
            return self.trigger(fault)

        if isinstance(outcome, HelpRequested):
            logger.debug("%s: help requested", self._name)
            if self._helper is not Unset:
                self._helper(outcome)
        return outcome

    def _runtime(self):
        return {
            "tool": self,
            "shell": self._shell,
            "fancy": self._fancy,
            "colorful": self._colorful,
        }

    def __replace__(self, /, **overrides):
        options = {
            "name": self._name,
            "parsers": self._parsers,
            "leftovers": self._leftovers,
            "shell": self._shell,
            "fancy": self._fancy,
            "colorful": self._colorful,
            "helper": self._helper,
        }
        return type(self)(overrides.pop("type", self._type), **(options | overrides))


def _tokenize(prompt):
    """
    normalize a prompt (Unset, shell-like string or iterable of strings) into tokens.
    """
    if prompt is Unset:
        return sys.argv[1:]
    if isinstance(prompt, str):
        return shlex.split(prompt)
    if isinstance(prompt, Iterable):
        tokens = list(prompt)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("prompt must be a string or an iterable of strings")
        return tokens
    raise TypeError("prompt must be a string or an iterable of strings")


def command(source=Unset, /, **options):
    """
    Create a Command, or return a class decorator that creates one.

    Forms
    - command(Serve, shell=True) → Command
    - command(existing, name="x") → copy of an existing Command with overrides
    - @command(shell=True) / @command on a class → Command
    """
    @rename("command")
    def wrapper(source, /):
        if isinstance(source, Command):
            return copy.replace(source, **options)
        if not isinstance(source, type):
            raise TypeError("@command() must be applied to a class or a command")
        return Command(source, **options)

    return wrapper(source) if source is not Unset else wrapper


def invoke(object, prompt=Unset, /):
    """
    Run a command on a prompt.

    - object: anything implementing __invoke__(prompt), or a declared class
      (wrapped in a default Command first).
    - prompt: Unset (sys.argv[1:]), a shell-like string, or an iterable of strings.

    Returns the Bound outcome (its target is the populated instance) or the
    HelpRequested outcome.
    """
    if hasattr(object, "__invoke__") and callable(object.__invoke__):
        return object.__invoke__(prompt)
    if isinstance(object, type):
        return invoke(Command(object), prompt)
    target = "argument" if prompt is Unset else "first argument"
    raise TypeError(f"invoke() {target} must implement __invoke__ method or be a class")


__all__ = (
    "Command",
    "command",
    "invoke",
)
