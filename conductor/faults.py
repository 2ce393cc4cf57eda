"""
Conductor faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every run-time issue
  the engine can surface. Codes are grouped by domain to keep copy consistent
  and make logs/searches predictable.
- CommandException / CommandWarning: base types that carry message + options and
  know how to render themselves through rich.
- trigger(): central entry point to surface any fault with extra options.

Message contract
- The message of every fatal fault is the exact, stable text callers may match
  against (e.g. 'Command "baz" unknown'). Titles, codes and hints are
  presentation only and never part of the message.

Integration
- The engine builds a fault and hands it to Cli.trigger(), which either calls the
  host's `die` hook with the message, or lets the fault render itself to stderr
  and call the `exit` hook with status 1.
"""
import sys
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the engine (stable identifiers).

    grouping
    - routing (2110x): UNKNOWN_COMMAND
    - injection (2111x): UNRESOLVED_PARAMETER
    - parsing (2112x): INVALID_PARAMETER, MISSING_PARAMETER, UNKNOWN_OPTION,
      MISSING_VALUE, UNEXPECTED_VALUE, SURPLUS_ARGUMENTS
    - execution (2113x): EXECUTION_FAILURE
    - warnings (22xxx): REPLACED_COMMAND

    normalize() allows host remapping through a __codes__ mapping in __main__.
    """
    # --- routing errors ---
    UNKNOWN_COMMAND       = 21101

    # --- injection errors ---
    UNRESOLVED_PARAMETER  = 21111

    # --- parsing errors ---
    INVALID_PARAMETER     = 21121
    MISSING_PARAMETER     = 21122
    UNKNOWN_OPTION        = 21123
    MISSING_VALUE         = 21124
    UNEXPECTED_VALUE      = 21125
    SURPLUS_ARGUMENTS     = 21126

    # --- execution errors ---
    EXECUTION_FAILURE     = 21131

    # --- warnings ---
    REPLACED_COMMAND      = 22101

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _renderer(self, palette, title):
    """
    shared rich rendering for exceptions and warnings: header, message, hint.
    """
    main = __import__("__main__")
    colorful = self.options.get("colorful", False)
    fancy = self.options.get("fancy", False)

    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), styles[style])

    tool = self.options.get("tool")
    prog = text(getattr(main, "__prog__", getattr(tool, "name", "conductor")), "prog-name")

    code = self.options.get("code")
    header = Text.assemble(
        "[ ",
        prog,
        " — ",
        text(code.normalize() if code is not None else "-", "code"),
        " | ",
        text(self.options.get("title", type(self).__name__).title(), title),
        " ]"
    )
    message = text(self.message, title.replace("title", "message"))
    parts = [message]
    if hint := self.options.get("hint"):
        parts.append(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))

    if fancy:
        return Panel(Group(*parts), title=header, title_align="left")
    return Group(header, *parts)


class CommandException(Exception):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return str(self.message)

    def __rich__(self):
        return _renderer(self, {
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        }, "error-title")

    def __trigger__(self) -> None:
        console.print(self)
        self.options.get("exit", sys.exit)(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class UnknownCommandError(CommandException): ...
class UnresolvedParameterError(CommandException): ...
class InvalidParameterError(CommandException): ...
class ExecutionFailureError(CommandException): ...


class CommandWarning(ABC, Warning):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return str(self.message)

    def __rich__(self):
        return _renderer(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #FFB400",  # amber fault code for warnings
            "warning-title": "bold #FFC2E0",
            "warning-message": "#D6D6DE",
            "hint-arrow": "#B8EFAF dim",
            "hint": "italic #B8EFAF",
        }, "warning-title")

    def __trigger__(self) -> None:
        warnings.warn(self, stacklevel=4)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class ReplacedCommandWarning(CommandWarning): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via __replace__(**options) before triggering.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


__all__ = (
    "CommandException",
    "UnknownCommandError",
    "UnresolvedParameterError",
    "InvalidParameterError",
    "ExecutionFailureError",
    "CommandWarning",
    "ReplacedCommandWarning",
    "FaultCode",
    "trigger",
)
