"""
Model compiler: declared class → validated, immutable CommandModel.

Two passes over the descriptor table read by argosy.declarations.members():

pass 1, local (per member, declaration order)
- role resolution: a member may carry at most one role tag.
- options: arity (explicit or inferred), names (template or derived), value name.
- arguments: multiplicity (explicit or inferred), element type, display name.
- help triggers from members and from @helper(...) on the class.

pass 2, global (cross-member, declaration order)
- at most one help trigger.
- implicit argument orders, then unique orders.
- only the last argument may take multiple values.
- short, symbol and long names are unique across the model (long names are
  compared case-insensitively).

Compilation either returns a complete model or raises the first DeclarationError
it meets; nothing partial is cached or returned.

Models are cached per (class, parser registry). The cache is filled without a
lock: a racing duplicate compilation is discarded through setdefault, so
every caller receives the first published model. Registries are held weakly
and their models go with them; classes stay cached (a model refers to its
class) until purge(), which is also needed after registering parsers that
change how an already compiled class resolves.
"""
import logging
import weakref

from .arity import *
from .declarations import Argument, HelpOption, Option, members
from .faults import *
from .model import *
from .parsers import default_parsers, unwrap
from .utils import *

logger = logging.getLogger(__name__)

_cache = {}


def compile_model(cls, /, parsers=Unset):
    """
    compile (or fetch from the cache) the command model of a declared class.

    parameters
    - cls: the declared class.
    - parsers: value-parser registry used for arity inference; the process-wide
      default_parsers when Unset.

    raises
    - TypeError: cls is not a class.
    - DeclarationError (and subclasses): the declaration is inconsistent.
    """
    if not isinstance(cls, type):
        raise TypeError("compile_model() argument must be a class")
    parsers = coalesce(parsers, default_parsers)

    try:
        model = _cache[cls][parsers]
    except KeyError:
        pass
    else:
        logger.debug("model cache hit for %s", cls.__qualname__)
        return model

    model = _compile(cls, parsers)
    published = _publish(cls, parsers, model)
    if published is not model:
        logger.debug("discarded a concurrent compilation of %s", cls.__qualname__)
    return published


def _publish(cls, parsers, model):
    """
    store model unless another one is already cached for (cls, parsers); return
    the cached one.
    """
    return _cache.setdefault(cls, weakref.WeakKeyDictionary()).setdefault(parsers, model)


def purge():
    """
    drop every cached model.
    """
    _cache.clear()
    logger.debug("model cache purged")


def _compile(cls, parsers):
    options = []
    arguments = []
    helpers = [(cls.__qualname__, "help", tag) for tag in getattr(cls, "__helpers__", ())]

    # pass 1: local resolution
    for member in members(cls):
        roles = [tag for tag in member.tags if isinstance(tag, Option | Argument | HelpOption)]
        if len(roles) > 1:
            raise ConflictingRolesError(
                "member %s is tagged as %s" % (member.qualname, " and ".join(type(tag).__role__ for tag in roles)),
                title="conflicting roles",
                code=FaultCode.CONFLICTING_ROLES,
                hint="keep exactly one of Option, Argument or HelpOption on %s" % member.qualname,
                member=member.qualname,
                roles=tuple(type(tag).__role__ for tag in roles),
            )
        if not roles:
            continue

        match roles[0]:
            case Option() as tag:
                options.append(_resolve_option(member, tag, parsers))
            case Argument() as tag:
                arguments.append(_resolve_argument(member, tag, parsers))
            case HelpOption() as tag:
                helpers.append((member.qualname, member.name, tag))

    # pass 2: global validation
    helper = None
    if len(helpers) > 1:
        (first, *_), (second, *_) = helpers[:2]
        raise DuplicateHelpTriggerError(
            "help trigger declared on both %s and %s" % (first, second),
            title="duplicate help trigger",
            code=FaultCode.DUPLICATE_HELP_TRIGGER,
            hint="keep a single HelpOption or @helper() declaration",
            members=(first, second),
        )
    elif helpers:
        helper = _resolve_helper(*helpers[0])

    arguments = _assign_orders(arguments)
    _check_orders(arguments)
    _check_multiple(arguments)
    _check_names(options if helper is None else [*options, helper])

    model = CommandModel(cls, options, arguments, helper=helper)
    logger.debug(
        "compiled %s: %d options, %d arguments, %s help trigger",
        cls.__qualname__,
        len(options),
        len(arguments),
        "with" if helper is not None else "no",
    )
    return model


def _names(member, template):
    """
    (short, symbol, long, value_name) from a template, or derived from the member name.
    """
    if template is not Unset:
        try:
            return parse_template(template)
        except InvalidTemplateError as error:
            raise InvalidTemplateError(
                "%s: %s" % (member.qualname, error),
                **(error.options | {"member": member.qualname})
            ) from None
    if not (long := kebabize(member.name)):
        raise InvalidTemplateError(
            "%s: cannot derive an option name from the member name" % member.qualname,
            title="invalid template",
            code=FaultCode.INVALID_TEMPLATE,
            hint="give %s an explicit template (for example: -x|--name)" % member.qualname,
            member=member.qualname,
        )
    return long[0], Unset, long, Unset


def _resolve_option(member, tag, parsers):
    type = member.type
    arity = tag.arity

    if unwrap(type) is bool:
        if arity not in (Unset, Arity.NO_VALUE):
            logger.debug("boolean option %s ignores its explicit %s arity", member.qualname, arity.value)
        arity = Arity.NO_VALUE
    elif arity is Arity.NO_VALUE:
        if not is_flag(type):
            raise InvalidNoValueTypeError(
                "option %s takes no value but is typed %s" % (member.qualname, describe(type)),
                title="invalid no-value type",
                code=FaultCode.INVALID_NO_VALUE_TYPE,
                hint="type %s as bool (or list[bool] to count occurrences)" % member.qualname,
                member=member.qualname,
                type=type,
            )
    elif arity is Arity.MULTIPLE_VALUE:
        if sequence(type) is None:
            raise MultiValueTypeMismatchError(
                "option %s takes multiple values but is typed %s" % (member.qualname, describe(type)),
                title="multi-value type mismatch",
                code=FaultCode.MULTI_VALUE_TYPE_MISMATCH,
                hint="type %s as a collection such as list[%s]" % (member.qualname, describe(type)),
                member=member.qualname,
                type=type,
            )
    elif arity is Arity.SINGLE_OR_NO_VALUE:
        if switch(type) is None:
            raise _unresolved(member, type, "declare %s as tuple[bool, T] to take an optional inline value" % member.qualname)
    elif arity is Unset:
        try:
            arity = infer(type, parsers)
        except UnresolvedArityError as error:
            raise _unresolved(member, error.type, error.hint) from None

    element, container = type, Unset
    match arity:
        case Arity.NO_VALUE:
            if (shape := sequence(type)) is not None:
                container, element = shape
        case Arity.MULTIPLE_VALUE:
            container, element = sequence(type)
        case Arity.SINGLE_OR_NO_VALUE:
            element = switch(type)
    if arity.valued and not parsers.supports(element):
        raise _unresolved(member, element, "register a value parser for %s" % describe(element))

    short, symbol, long, value_name = _names(member, tag.template)
    return CommandOption(
        member.name,
        qualname=member.qualname,
        short=short,
        symbol=symbol,
        long=long,
        value_name=coalesce(tag.value_name, coalesce(value_name, constantize(member.name))),
        arity=arity,
        type=type,
        element=element,
        container=container,
        descr=coalesce(tag.descr, member.name),
        required=tag.required,
        hidden=tag.hidden,
        default=member.default,
    )


def _resolve_argument(member, tag, parsers):
    """
    keyword fields of a CommandArgument plus its explicit order (or Unset).
    """
    type = member.type
    shape = sequence(type)
    multiple = coalesce(tag.multiple, shape is not None and not parsers.registered(type))

    if multiple and shape is None:
        raise MultiValueTypeMismatchError(
            "argument %s takes multiple values but is typed %s" % (member.qualname, describe(type)),
            title="multi-value type mismatch",
            code=FaultCode.MULTI_VALUE_TYPE_MISMATCH,
            hint="type %s as a collection such as list[%s]" % (member.qualname, describe(type)),
            member=member.qualname,
            type=type,
        )

    container, element = shape if multiple else (Unset, type)
    if not parsers.supports(element):
        raise _unresolved(member, element, "register a value parser for %s" % describe(element))

    return tag.order, member.name, {
        "qualname": member.qualname,
        "name": coalesce(tag.name, member.name),
        "type": type,
        "element": element,
        "container": container,
        "multiple": multiple,
        "descr": coalesce(tag.descr, member.name),
        "required": tag.required,
        "hidden": tag.hidden,
        "default": member.default,
    }


def _resolve_helper(qualname, member, tag):
    short, symbol, long, _ = parse_template(tag.template)
    return CommandOption(
        member,
        qualname=qualname,
        short=short,
        symbol=symbol,
        long=long,
        arity=Arity.NO_VALUE,
        type=bool,
        descr=tag.descr,
        helper=True,
    )


def _unresolved(member, type, hint):
    return UnresolvedArityError(
        "could not automatically determine the arity of %s typed %s" % (member.qualname, describe(type)),
        title="unresolved arity",
        code=FaultCode.UNRESOLVED_ARITY,
        hint=hint,
        member=member.qualname,
        type=type,
    )


def _assign_orders(arguments):
    """
    build the arguments, giving those without an explicit order the next one
    after the greatest order seen so far (0 for the first).
    """
    resolved = []
    latest = -1
    for order, member, fields in arguments:
        order = coalesce(order, latest + 1)
        latest = max(latest, order)
        resolved.append(CommandArgument(member, order, **fields))
    return resolved


def _check_orders(arguments):
    seen = {}
    for argument in arguments:
        if (other := seen.setdefault(argument.order, argument)) is not argument:
            raise DuplicateOrderError(
                "arguments %s and %s share order %d" % (other.qualname, argument.qualname, argument.order),
                title="duplicate argument order",
                code=FaultCode.DUPLICATE_ORDER,
                hint="give %s a distinct order" % argument.qualname,
                members=(other.qualname, argument.qualname),
                order=argument.order,
            )


def _check_multiple(arguments):
    if not arguments:
        return
    last = max(arguments, key=lambda argument: argument.order)
    for argument in arguments:
        if argument.multiple and argument is not last:
            raise MultiValueNotLastError(
                "argument %s takes multiple values but %s comes after it" % (argument.qualname, last.qualname),
                title="multi-value argument not last",
                code=FaultCode.MULTI_VALUE_NOT_LAST,
                hint="move %s to the greatest order or make it single-valued" % argument.qualname,
                member=argument.qualname,
                last=last.qualname,
            )


def _check_names(options):
    seen = {}
    for option in options:
        keys = []
        if option.short is not Unset:
            keys.append((option.short, "-" + option.short))
        if option.symbol is not Unset:
            keys.append((option.symbol, "-" + option.symbol))
        if option.long is not Unset:
            keys.append(("--" + option.long.casefold(), "--" + option.long))
        for key, name in keys:
            if (other := seen.setdefault(key, option)) is not option:
                raise AmbiguousNameError(
                    "options %s and %s both use the name %r" % (other.qualname, option.qualname, name),
                    title="ambiguous option name",
                    code=FaultCode.AMBIGUOUS_NAME,
                    hint="give %s a template with distinct names" % option.qualname,
                    members=(other.qualname, option.qualname),
                    name=name,
                )


__all__ = (
    "compile_model",
    "purge",
)
