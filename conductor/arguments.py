r"""
Conductor argument specifications and decorators.

Overview
- Specs
  • Argument: positional, value-bearing parameter of a command (consumed in
    declaration order).
  • Option: named parameter keyed by its long name (--name), with an optional
    one-letter alias (-n); may be a presence-only flag.

- Decorators
  • @argument(...): build an Argument and bind the decorated function as its
    parse function.
  • @option(...): build an Option and bind the decorated function as its parse
    function.

Parse functions
- Called as parse(name, raw) for every raw token destined for the spec and
  return the typed value. Any exception raised is reported by the command as
  'Parameter "<name>" invalid: <exception text>'.
- When absent, raw strings pass through unchanged.

Metadata (sanitized on construction)
- name: non-empty identifier-like string (letters, digits, '_' and '-'; no
  leading digit or dash).
- descr: Unset | str | Text (short help), non-empty when provided.
- default: any value; not parsed, used as-is when nothing was given.
- required / multiple: booleans. multiple accumulates values into a list.
- Option only
  • alias: Unset | single letter or digit.
  • flag: presence-only switch; cannot be required, multiple or parsed.
  • env: Unset | environment variable consulted when the option is absent.

Quick example:
    >>> from conductor.arguments import argument, option
    >>> @argument("count", "how many", required=True)
    ... def count(name, value):
    ...     return int(value)
    ...
    >>> verbose = Option("verbose", "v", "talk more", flag=True)
"""
import re

from rich.text import Text

from .utils import *


def _sanitize_metadata(cls, metadata, /):
    r"""
    Internal: normalize and validate metadata shared by Argument and Option.

    Responsibilities
    - name: required, stripped, must match r"[^\W\d_][\w-]*".
    - descr: Unset or a non-empty string/Text; Unset becomes None.
    - parse: Unset or a callable; Unset becomes None.

    Raises
    - TypeError: when a field has the wrong type.
    - ValueError: when a string field is empty or malformed.
    """
    if not isinstance(name := metadata["name"], str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    elif not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} 'name' cannot be empty")
    elif not re.fullmatch(r"[^\W\d_][\w-]*", name):
        raise ValueError(f"{cls.__typename__} 'name' must start with a letter and contain only letters, digits, '_' or '-'")
    metadata["name"] = name

    if not isinstance(descr := metadata["descr"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)

    if (parse := metadata["parse"]) is not Unset and not callable(parse):
        raise TypeError(f"{cls.__typename__} 'parse' must be callable")
    metadata["parse"] = coalesce(parse)


def _sanitize_named_metadata(cls, metadata, /):
    """
    Internal: validate option-only metadata (alias, env, flag wiring).

    - alias: Unset or a single letter/digit, given without the leading dash.
    - env: Unset or a non-empty string.
    - flag: presence-only; cannot be combined with required, multiple or parse,
      and its default is always False.
    """
    if not isinstance(alias := metadata["alias"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'alias' must be a string")
    elif isinstance(alias, str) and not re.fullmatch(r"[^\W_]", alias := alias.strip()):
        raise ValueError(f"{cls.__typename__} 'alias' must be a single letter or digit")
    metadata["alias"] = coalesce(alias)

    if not isinstance(env := metadata["env"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'env' must be a string")
    elif isinstance(env, str) and not (env := env.strip()):
        raise ValueError(f"{cls.__typename__} 'env' cannot be empty")
    metadata["env"] = coalesce(env)

    if metadata["flag"]:
        if metadata["required"]:
            raise TypeError(f"flag {cls.__typename__} cannot be required")
        if metadata["multiple"]:
            raise TypeError(f"flag {cls.__typename__} cannot be multiple")
        if metadata["parse"] is not None:
            raise TypeError(f"flag {cls.__typename__} cannot have a 'parse' function")
        metadata["default"] = False


class Argument(metaclass=IntrospectableType):
    """
    Positional parameter specification.

    Arguments are consumed from the command line in the order they were added
    to a command. A multiple argument swallows every remaining positional token
    and therefore must be the last one.
    """

    __introspectable__ = (
        "name",
        "descr",
        "default",
        "required",
        "multiple",
        "parse",
    )

    def __new__(
            cls,
            name,
            /,
            descr=Unset,
            default=None,
            required=False,
            multiple=False,
            *,
            parse=Unset
    ):
        metadata = {
            "name": name,
            "descr": descr,
            "default": default,
            "required": bool(required),
            "multiple": bool(multiple),
            "parse": parse,
        }
        _sanitize_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    def set_parse(self, parse, /):
        """
        Replace the parse function and return the spec (builder style).
        """
        if not callable(parse):
            raise TypeError(f"{type(self).__typename__} 'parse' must be callable")
        self._parse = parse
        return self

    def convert(self, raw, /):
        """
        Turn one raw token into a typed value using the parse function.

        Exceptions raised by the parse function propagate to the caller.
        """
        if self._parse is None:
            return raw
        return self._parse(self._name, raw)


class Option(Argument):
    """
    Named parameter specification.

    Options are looked up by their long name (--name) or alias (-n). Values are
    taken from the same token (--name=value) or the following one
    (--name value). Flags are presence-only and evaluate to True when given.
    """

    __introspectable__ = Argument.__introspectable__ + (
        "alias",
        "flag",
        "env",
    )

    def __new__(
            cls,
            name,
            /,
            alias=Unset,
            descr=Unset,
            default=None,
            required=False,
            multiple=False,
            *,
            flag=False,
            env=Unset,
            parse=Unset
    ):
        metadata = {
            "name": name,
            "alias": alias,
            "descr": descr,
            "default": default,
            "required": bool(required),
            "multiple": bool(multiple),
            "flag": bool(flag),
            "env": env,
            "parse": parse,
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_named_metadata(cls, metadata)

        self = object.__new__(cls)
        for name, value in metadata.items():
            setattr(self, "_" + name, value)
        return self

    @property
    def names(self):
        """
        Command-line spellings of this option, long name first.
        """
        if self._alias is None:
            return ("--" + self._name,)
        return ("--" + self._name, "-" + self._alias)

    def set_parse(self, parse, /):
        if self._flag:
            raise TypeError(f"flag {type(self).__typename__} cannot have a 'parse' function")
        return super().set_parse(parse)


def argument(*args, **kwargs):
    """
    Decorator/factory binding a parse function to a new Argument.

    Usage
        @argument("count", "how many times", required=True)
        def count(name, value):
            return int(value)

    The decorator returns the Argument itself (not the function).
    """
    argument = Argument(*args, **kwargs)

    @rename("argument")
    def wrapper(parse, /):
        if not callable(parse):
            raise TypeError("@argument() must be applied to a callable")
        if argument.parse is not None:
            raise TypeError("@argument() must be applied only once")
        return argument.set_parse(parse)

    return wrapper


def option(*args, **kwargs):
    """
    Decorator/factory binding a parse function to a new Option.

    Usage
        @option("retries", "r", "retry budget", default=3)
        def retries(name, value):
            return int(value)
    """
    option = Option(*args, **kwargs)

    @rename("option")
    def wrapper(parse, /):
        if not callable(parse):
            raise TypeError("@option() must be applied to a callable")
        if option.parse is not None:
            raise TypeError("@option() must be applied only once")
        return option.set_parse(parse)

    return wrapper


__all__ = (
    # Classes (specifications)
    "Argument",
    "Option",

    # Decorators
    "argument",
    "option",
)
