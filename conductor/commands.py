"""
Conductor command layer: a named handler plus the specs needed to parse it.

What this module provides
- Command: wraps a Python callable into a unit of work with:
  • a description (explicit, or the callable's docstring),
  • ordered positional Arguments and named Options (keyed by long name),
  • the handler's requirements, read from its annotations once at build time,
  • a parser turning the invocation tail (tokens after the command name) into
    typed values.

Token grammar (left to right)
- "--" ends option scanning; every following token is positional.
- "--name=value", "--name value", "-n=value", "-n value" feed an option;
  flags take no value ("--name=value" on a flag is an error).
- "-" alone and negative numbers ("-1", "-2.5") are positional.
- anything else is positional and consumed by the arguments in order; a
  multiple argument takes every remaining positional token.

After scanning
- options that were not given fall back to their environment variable (when
  declared), then to their default;
- missing required arguments/options, surplus positional tokens, unknown
  options and parse-function failures raise InvalidParameterError, whose
  message always starts with "Parse error: ".

Every command carries the built-in --help/-h flag from construction. Engine
level default options are merged later, when a run begins.
"""
import inspect
import os
import re
from collections import deque

from rich.text import Text

from .arguments import Argument, Option
from .faults import FaultCode, InvalidParameterError
from .injection import inspect_handler
from .utils import *

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _is_switch(token, /):
    """
    True for tokens that look like an option name rather than a value.
    """
    return token.startswith("-") and token != "-" and not re.fullmatch(r"-\d+(\.\d*)?", token)


def _invalid(message, /, **options):
    """
    Build a parse fault; the "Parse error: " prefix is part of the stable message.
    """
    return InvalidParameterError("Parse error: " + message, **options)


class Command(metaclass=IntrospectableType):
    """
    A named unit of work.

    Lifecycle
    - Built from (name, descr, handler); the handler signature is inspected
      once into requirements (see conductor.injection).
    - Specs are added with add_argument()/add_option(), builder style.
    - Each run calls parse(tokens) (which resets the previous values) and then
      invokes the command with the injected values.

    Notes
    - Command instances are callable and forward to the handler unchanged.
    - Re-adding an option with the same long name replaces it.
    - merge_defaults() never overrides what the command declares itself.
    """

    __introspectable__ = (
        "name",
        "descr",
        "arguments",
        "options",
        "values",
    )

    __displayable__ = (
        "name",
        "descr",
        "arguments",
        "options",
    )

    def __new__(cls, name, descr, handler, /, *, arguments=(), options=()):
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} 'name' must be a string")
        elif not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} 'name' cannot be empty")
        elif not re.fullmatch(r"[^\s-]\S*", name):
            raise ValueError(f"{cls.__typename__} 'name' cannot contain spaces or start with '-'")

        if not isinstance(descr, str | Text | None | Unset):
            raise TypeError(f"{cls.__typename__} 'descr' must be a string")
        elif isinstance(descr, str):
            descr = descr.strip()

        requirements = inspect_handler(handler, owner=cls.__typename__)
        if not descr and (inspect.isfunction(handler) or inspect.ismethod(handler)):
            descr = inspect.getdoc(handler)

        self = super().__new__(cls)
        self._name = name
        self._descr = descr or None
        self._callback = handler
        self._requirements = requirements
        self._arguments = []
        self._options = {}
        self._values = {}
        self._provided = set()
        self._defaults = set()

        self.add_option(Option("help", "h", "show this help message and exit", flag=True))
        self.add_argument(*arguments)
        self.add_option(*options)
        return self

    @property
    def requirements(self):
        """
        The handler's declared parameters, in declaration order.
        """
        return self._requirements

    def add_argument(self, *arguments):
        for argument in arguments:
            if not isinstance(argument, Argument) or isinstance(argument, Option):
                raise TypeError(f"{type(self).__typename__} arguments must be argument specs")
            if argument.name in self._options or any(x.name == argument.name for x in self._arguments):
                raise ValueError(f"{type(self).__typename__} name {argument.name!r} is already in use")
            if self._arguments and self._arguments[-1].multiple:
                raise ValueError(f"{type(self).__typename__} argument {argument.name!r} cannot follow a multiple argument")
            if argument.required and not all(x.required for x in self._arguments):
                raise ValueError(f"{type(self).__typename__} required argument {argument.name!r} cannot follow an optional one")
            self._arguments.append(argument)
        return self

    def add_option(self, *options):
        for option in options:
            if not isinstance(option, Option):
                raise TypeError(f"{type(self).__typename__} options must be option specs")
            if any(x.name == option.name for x in self._arguments):
                raise ValueError(f"{type(self).__typename__} name {option.name!r} is already in use")
            for other in self._options.values():
                if option.alias and other.alias == option.alias and other.name != option.name:
                    raise ValueError(f"{type(self).__typename__} alias {option.alias!r} is already in use by {other.name!r}")
            self._options[option.name] = option
            self._defaults.discard(option.name)
        return self

    def merge_defaults(self, *options):
        """
        Add engine level default options this command does not declare itself.

        A default is skipped when its name belongs to one of the command's own
        arguments or options, or when its alias is taken by another option.
        Defaults merged earlier are replaced by name, so repeated merges never
        duplicate them.
        """
        for option in options:
            if not isinstance(option, Option):
                raise TypeError(f"{type(self).__typename__} options must be option specs")
            if option.name not in self._defaults and (
                    option.name in self._options or any(x.name == option.name for x in self._arguments)
            ):
                continue
            if option.alias is not None and any(
                    other.alias == option.alias and other.name != option.name for other in self._options.values()
            ):
                continue
            self._options[option.name] = option
            self._defaults.add(option.name)
        return self

    def _find(self, token):
        if token.startswith("--"):
            return self._options.get(token[2:])
        for option in self._options.values():
            if option.alias is not None and token == "-" + option.alias:
                return option
        return None

    def _convert(self, spec, raw):
        try:
            return spec.convert(raw)
        except Exception as exception:
            raise _invalid(
                'Parameter "%s" invalid: %s' % (spec.name, exception),
                title="invalid parameter",
                code=FaultCode.INVALID_PARAMETER,
                hint="check the value given for %r" % spec.name,
                exception=exception,
            ) from exception

    def _store(self, spec, raws, kind):
        if not raws:
            if spec.required:
                raise _invalid(
                    '%s "%s" is required' % (kind, spec.name),
                    title="missing %s" % kind.lower(),
                    code=FaultCode.MISSING_PARAMETER,
                    hint="run '%s --help' to see the expected inputs" % self._name,
                )
            default = spec.default
            if spec.multiple:
                default = [] if default is None else list(default) if isinstance(default, list | tuple) else [default]
            self._values[spec.name] = default
            return

        if isinstance(spec, Option) and spec.flag:
            values = raws
        else:
            values = [self._convert(spec, raw) for raw in raws]
        self._values[spec.name] = values if spec.multiple else values[-1]
        self._provided.add(spec.name)

    def parse(self, tokens, /):
        """
        Parse the invocation tail into argument and option values.

        Raises
        - InvalidParameterError for any malformed input (see module docs).

        Returns
        - self, so values can be read right away.
        """
        self._values = {}
        self._provided = set()

        tokens = deque(tokens)
        positionals = []
        collected = {}
        literal = False

        while tokens:
            token = tokens.popleft()
            if literal or not _is_switch(token):
                positionals.append(token)
                continue
            if token == "--":
                literal = True
                continue

            key, separator, inline = token.partition("=")
            if (option := self._find(key)) is None:
                raise _invalid(
                    'Option "%s" unknown' % key,
                    title="unknown option",
                    code=FaultCode.UNKNOWN_OPTION,
                    hint="run '%s --help' to see the available options" % self._name,
                )

            if option.flag:
                if separator:
                    raise _invalid(
                        'Flag "%s" does not take a value' % option.name,
                        title="unexpected value",
                        code=FaultCode.UNEXPECTED_VALUE,
                        hint="use '--%s' without '='" % option.name,
                    )
                collected.setdefault(option.name, []).append(True)
                continue

            if separator:
                raw = inline
            elif tokens and not _is_switch(tokens[0]):
                raw = tokens.popleft()
            else:
                raise _invalid(
                    'Option "%s" requires a value' % option.name,
                    title="missing value",
                    code=FaultCode.MISSING_VALUE,
                    hint="use '--%s <value>' or '--%s=<value>'" % (option.name, option.name),
                )
            collected.setdefault(option.name, []).append(raw)

        for argument in self._arguments:
            if argument.multiple:
                raws, positionals = positionals, []
            elif positionals:
                raws = [positionals.pop(0)]
            else:
                raws = []
            self._store(argument, raws, "Argument")

        if positionals:
            raise _invalid(
                "Too many arguments",
                title="surplus arguments",
                code=FaultCode.SURPLUS_ARGUMENTS,
                leftover=positionals,
                hint="remove the extra inputs or quote values containing spaces",
            )

        for option in self._options.values():
            raws = collected.get(option.name, [])
            if not raws and option.env is not None and option.env in os.environ:
                environ = os.environ[option.env]
                raws = [environ.strip().lower() in _TRUTHY] if option.flag else [environ]
            self._store(option, raws, "Option")

        return self

    def value(self, name, /):
        """
        Parsed value of an argument or option (by long name).

        Before the first parse, known names yield their default.
        """
        try:
            return self._values[name]
        except KeyError:
            pass
        for spec in (*self._arguments, *self._options.values()):
            if spec.name == name:
                return [] if spec.multiple and spec.default is None else spec.default
        raise KeyError(f"{type(self).__typename__} {self._name!r} has no parameter {name!r}")

    def provided(self, name, /):
        """
        True when the last parse received a value for name (command line or environment).
        """
        return name in self._provided

    def __call__(self, *args, **kwargs):
        return self._callback(*args, **kwargs)


__all__ = (
    "Command",
)
