"""
Text descriptions of a Cli and its commands, rendered with rich.

describe(cli)                   application header, usage and the command table.
describe_command(command, cli)  usage line, description, arguments and options.
listing(cli)                    one line per command: name and description.

Every function returns a string; the engine decides where it goes (the output
sink). Rendering is deterministic for a given state: a fixed width and no
colour unless the cli is colorful. A fancy cli wraps the description in a
Panel. Palette entries can be overridden with a __styles__ mapping in
__main__.

Palette keys
- program-name, version, description-section, usage-label, usage-section
- group-label, command-name, command-description
- argument-name, option-name, flag-name, metavar, argument-description
- panel-title
"""
import io
from collections import defaultdict

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .arguments import Option
from .utils import *

WIDTH = 100


def _palette():
    return defaultdict(str, {
        "program-name": "bold #FF4D94",
        "version": "#9CA3AF",
        "description-section": "italic #A3A3A3",
        "usage-label": "bold #00E6FF",
        "usage-section": "bold #36C5F0",
        "group-label": "bold #FFFFFF",
        "command-name": "bold #36C5F0",
        "command-description": "#9CA3AF",
        "argument-name": "bold #FFD600",
        "option-name": "bold #00E6FF",
        "flag-name": "bold #22C55E",
        "metavar": "bold #FFD600",
        "argument-description": "#9CA3AF",
        "panel-title": "bold #FF4D94",
    } | getattr(__import__("__main__"), "__styles__", {}))


class _Renderer:
    """
    Shared styling state for one rendering pass.
    """

    def __init__(self, colorful, fancy):
        self.colorful = bool(colorful)
        self.fancy = bool(fancy)
        self.styles = _palette()

    def text(self, fragment, style=""):
        if not fragment:
            return Text("")
        if not self.colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), self.styles[style])

    def render(self, renderables, title=None):
        buffer = io.StringIO()
        console = Console(
            file=buffer,
            width=WIDTH,
            force_terminal=self.colorful,
            color_system="truecolor" if self.colorful else None,
            highlight=False,
            emoji=False,
        )
        group = Group(*renderables)
        if self.fancy:
            console.print(Panel(group, title=self.text(title, "panel-title") if title else None, title_align="left"))
        else:
            console.print(group)
        return buffer.getvalue()


def _flags(cli):
    return getattr(cli, "colorful", False), getattr(cli, "fancy", False)


def _signature(renderer, spec):
    """
    Usage fragment for one argument or option, e.g. "<name>", "[<name>...]" or "[--verbose]".
    """
    if isinstance(spec, Option):
        names = "|".join(spec.names)
        if spec.flag:
            fragment = renderer.text(names, "flag-name")
        else:
            fragment = Text.assemble(renderer.text(names, "option-name"), " ", renderer.text(f"<{spec.name}>", "metavar"))
    else:
        fragment = renderer.text(f"<{spec.name}>", "metavar")
    if spec.multiple:
        fragment = Text.assemble(fragment, "...")
    if not spec.required:
        fragment = Text.assemble("[", fragment, "]")
    return fragment


def _details(spec):
    details = []
    if spec.required:
        details.append("required")
    elif spec.default is not None and not (isinstance(spec, Option) and spec.flag):
        details.append(f"default: {spec.default!r}")
    if spec.multiple:
        details.append("multiple")
    if isinstance(spec, Option) and spec.env is not None:
        details.append(f"env: {spec.env}")
    return f" ({', '.join(details)})" if details else ""


def describe(cli, /):
    """
    Describe the application: name, version, description, usage and commands.
    """
    renderer = _Renderer(*_flags(cli))
    renders = []

    header = Text.assemble(renderer.text(cli.name, "program-name"))
    if cli.version:
        header.append(" ").append(renderer.text(f"({cli.version})", "version"))
    renders.append(header)
    if cli.descr:
        renders.append(renderer.text(cli.descr, "description-section"))

    renders.append(Text(""))
    renders.append(Text.assemble(renderer.text("Usage", "usage-label"), ":"))
    renders.append(Text.assemble(
        "  ",
        renderer.text(f"{cli.name} <command> [<arguments>] [<options>]", "usage-section"),
    ))

    renders.append(Text(""))
    renders.append(Text.assemble(renderer.text("Available commands", "group-label"), ":"))
    table = Table.grid(padding=(0, 3))
    table.add_column(no_wrap=True)
    table.add_column()
    for name, command in sorted(cli.commands.items()):
        marker = " *" if name == cli.default_command else ""
        table.add_row(
            Text.assemble("  ", renderer.text(name, "command-name"), marker),
            renderer.text(command.descr or "", "command-description"),
        )
    renders.append(table)

    return renderer.render(renders, title=cli.name)


def describe_command(command, cli=Unset, /):
    """
    Describe one command: usage line, description, arguments and options.
    """
    renderer = _Renderer(*_flags(cli))
    renders = []

    prog = f"{cli.name} {command.name}" if cli is not Unset else command.name
    usage = Text.assemble(renderer.text("Usage", "usage-label"), ": ", renderer.text(prog, "program-name"))
    options = sorted(command.options.values(), key=lambda x: x.name)
    for spec in (*options, *command.arguments):
        usage.append(" ").append(_signature(renderer, spec))
    renders.append(usage)

    if command.descr:
        renders.append(Text(""))
        renders.append(renderer.text(command.descr, "description-section"))

    sections = (
        ("Arguments", command.arguments, "argument-name"),
        ("Options", options, "option-name"),
    )
    for label, specs, style in sections:
        if not specs:
            continue
        renders.append(Text(""))
        renders.append(Text.assemble(renderer.text(label, "group-label"), ":"))
        table = Table.grid(padding=(0, 3))
        table.add_column(no_wrap=True)
        table.add_column()
        for spec in specs:
            name = ", ".join(spec.names) if isinstance(spec, Option) else spec.name
            table.add_row(
                Text.assemble("  ", renderer.text(name, "flag-name" if getattr(spec, "flag", False) else style)),
                Text.assemble(renderer.text(spec.descr or "", "argument-description"), _details(spec)),
            )
        renders.append(table)

    return renderer.render(renders, title=prog)


def listing(cli, /):
    """
    One line per command, sorted by name: "<name>  <description>".
    """
    renderer = _Renderer(*_flags(cli))
    table = Table.grid(padding=(0, 3))
    table.add_column(no_wrap=True)
    table.add_column()
    for name, command in sorted(cli.commands.items()):
        table.add_row(renderer.text(name, "command-name"), renderer.text(command.descr or "", "command-description"))
    return renderer.render([table], title=cli.name)


__all__ = (
    "describe",
    "describe_command",
    "listing",
)
