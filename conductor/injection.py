"""
Handler inspection and parameter injection.

A handler declares what it needs through its parameter annotations. The
annotations are read once, when the command is built, into a tuple of
Requirement(name, kind, tag). At run time an Injector turns the requirements
into call arguments, each one resolved independently of its position:

1. the running Cli (tag is Cli or the running cli's class),
2. the running Command (tag is Command or the running command's class),
3. the NamedParameters mapping (tag is NamedParameters),
4. a registry value filed under the tag's type,
5. a registry value filed under an alias matching the tag,
6. otherwise the run fails and the handler is never called.

String annotations (including every annotation under
`from __future__ import annotations`) are evaluated in the handler's module;
those that do not evaluate stay strings and act as registry aliases.
"""
import inspect
from inspect import Parameter
from typing import NamedTuple

from .faults import FaultCode, UnresolvedParameterError
from .utils import *


class NamedParameters(dict):
    """
    String-keyed values injected as a whole into handlers asking for them.
    """

    def __repr__(self):
        return f"named-parameters({dict.__repr__(self)})"


class Requirement(NamedTuple):
    name: str
    kind: object
    tag: object


def _evaluate(annotation, namespace, /):
    """
    Evaluate a string annotation in the handler's globals, or keep it as an alias.
    """
    if not isinstance(annotation, str):
        return annotation
    try:
        return eval(annotation, namespace)
    except (NameError, SyntaxError, AttributeError, TypeError):
        return annotation


def _signature(handler, /):
    """
    Signature with string annotations evaluated; when one of them does not
    evaluate, each is evaluated on its own and the failures stay aliases.
    """
    try:
        return inspect.signature(handler, eval_str=True)
    except (NameError, SyntaxError, AttributeError, TypeError):
        signature = inspect.signature(handler)
    namespace = getattr(inspect.unwrap(handler), "__globals__", None) or {}
    return signature.replace(parameters=[
        parameter.replace(annotation=_evaluate(parameter.annotation, namespace))
        for parameter in signature.parameters.values()
    ])


def inspect_handler(handler, /, *, owner="command"):
    """
    Read the handler's parameter list into a tuple of Requirement.

    Rules
    - every parameter must be annotated (the annotation is the capability tag);
    - *args and **kwargs cannot be injected and are rejected.

    Raises
    - TypeError: non-callable handler, variadic or unannotated parameters.
    - ValueError: handler whose signature cannot be inspected.
    """
    try:
        signature = _signature(handler)
    except TypeError:
        raise TypeError(f"{owner} 'handler' must be callable") from None
    except ValueError:
        raise ValueError(f"{owner} 'handler' must be an inspectable callable") from None

    requirements = []
    for name, parameter in signature.parameters.items():
        if parameter.kind in (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD):
            raise TypeError(f"{owner} 'handler' parameter {name!r} cannot be variadic")
        if parameter.annotation is Parameter.empty:
            raise TypeError(f"{owner} 'handler' parameter {name!r} must be annotated")
        requirements.append(Requirement(name, parameter.kind, parameter.annotation))
    return tuple(requirements)


def _is(tag, instance, /):
    """
    True when tag names the class of instance or one of its bases (object excluded).
    """
    return isinstance(tag, type) and tag is not object and tag in type(instance).__mro__


class Injector:
    """
    Resolves a command's requirements against the running context.

    Parameters
    - cli: the running engine.
    - command: the command being executed.
    - named: the engine's NamedParameters (passed as the same object, not a copy).
    - registry: the engine's Registry.
    """

    def __init__(self, cli, command, named, registry):
        self._cli = cli
        self._command = command
        self._named = named
        self._registry = registry

    def supply(self, requirement, /):
        """
        Return (value, found) for one requirement.
        """
        tag = requirement.tag
        if _is(tag, self._cli):
            return self._cli, True
        if _is(tag, self._command):
            return self._command, True
        if tag is NamedParameters:
            return self._named, True
        return self._registry.lookup(tag)

    def resolve(self):
        """
        Resolve every requirement of the command into (args, kwargs).

        Raises
        - UnresolvedParameterError on the first requirement nothing satisfies;
          no partial result is returned.
        """
        args = ()
        kwargs = {}
        for requirement in self._command.requirements:
            value, found = self.supply(requirement)
            if not found:
                raise UnresolvedParameterError(
                    'Callback parameter of type %s for command "%s" was not found in registry' % (
                        typename(requirement.tag), self._command.name
                    ),
                    title="unresolved parameter",
                    code=FaultCode.UNRESOLVED_PARAMETER,
                    requirement=requirement,
                    hint="register a value for %r with register() or register_as()" % typename(requirement.tag),
                )
            if requirement.kind is Parameter.KEYWORD_ONLY:
                kwargs[requirement.name] = value
            else:
                args += (value,)
        return args, kwargs


__all__ = (
    "NamedParameters",
    "Requirement",
    "Injector",
    "inspect_handler",
)
