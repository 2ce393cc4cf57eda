"""
Conductor engine: the command table, the registry and one end-to-end run.

A run (run()/run_with()) goes through these steps, in order:

1. heralds: every pending factory is called with the cli, its command is added
   to the table and the herald list ends up empty;
2. default options: the cli-level options are added to every command that
   does not already declare the same name or alias (the command's own
   options win and repeated runs never duplicate them);
3. selection: the first token names the command; without one (or when it is
   empty) the default command is used, and without a default the cli
   description is written to the output sink (a normal, successful outcome);
4. parsing: the remaining tokens are parsed by the command; when --help was
   given the command description is written instead of running it;
5. resolution: every handler parameter is resolved by the Injector;
6. invocation: the handler runs; returning or raising an Exception fails the run.

Fatal faults go through Cli.trigger(): the `die` hook receives the message when
configured, otherwise the fault is printed with rich to stderr and the `exit`
hook (sys.exit by default) is called with 1.

Example:
    >>> app = Cli("greeter", "1.0.0", "Say hello")
    >>> @app.command(arguments=[Argument("who", "whom to greet", "world")])
    ... def hello(command: Command):
    ...     print("hello", command.value("who"))
    >>> app.run("hello there")
    hello there
    0
"""
import shlex
import sys
from collections.abc import Iterable

from rich.text import Text

from .arguments import Argument, Option
from .commands import Command
from .descriptions import describe, describe_command, listing
from .faults import *
from .injection import Injector, NamedParameters
from .registry import Registry
from .utils import *


def _sanitized(tokens, /):
    for token in tokens:
        if not isinstance(token, str):
            raise TypeError("run_with() argument must be an iterable of strings")
        yield token


class Cli(metaclass=IntrospectableType):
    """
    The application: a table of named commands plus everything needed to run them.

    Parameters
    - name: application name (shown in descriptions and fault headers).
    - version, descr: optional metadata shown by describe().
    - output: sink with a write(str) method for descriptions (default: sys.stdout).
    - die: hook called with the message of a fatal fault; expected to stop the run.
    - exit: hook called with the exit status after a fault was printed (default: sys.exit).
    - colorful / fancy: rich styling of descriptions and faults.

    Built-in commands "help" and "list" are added at construction.
    """

    __introspectable__ = (
        "name",
        "version",
        "descr",
        "commands",
        "heralds",
        "default_command",
        "default_options",
        "named",
        "colorful",
        "fancy",
    )

    __displayable__ = (
        "name",
        "version",
        "descr",
        "commands",
        "default_command",
    )

    def __new__(
            cls,
            name,
            /,
            version=Unset,
            descr=Unset,
            *,
            output=Unset,
            die=Unset,
            exit=Unset,
            colorful=False,
            fancy=False
    ):
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} 'name' must be a string")
        elif not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} 'name' cannot be empty")

        if not isinstance(version, str | Unset):
            raise TypeError(f"{cls.__typename__} 'version' must be a string")
        if not isinstance(descr, str | Text | Unset):
            raise TypeError(f"{cls.__typename__} 'descr' must be a string")

        self = super().__new__(cls)
        self._name = name
        self._version = coalesce(version) or None
        self._descr = coalesce(descr) or None
        self._colorful = bool(colorful)
        self._fancy = bool(fancy)
        self._commands = {}
        self._heralds = []
        self._default_command = None
        self._default_options = []
        self._named = NamedParameters()
        self._registry = Registry()
        self._output = None
        self._die = None
        self._exit = None

        self.set_output(output)
        self.set_die(die)
        self.set_exit(exit)
        self.add(
            Command("help", "Show help for the application or one of its commands", _help, arguments=[
                Argument("command", "name of the command to describe"),
            ]),
            Command("list", "List all available commands", _list),
        )
        return self

    @property
    def registry(self):
        return self._registry

    # ---- builders ----

    def add(self, *commands):
        """
        Add commands to the table; a command with a taken name replaces the former one.
        """
        for command in commands:
            if not isinstance(command, Command):
                raise TypeError(f"{type(self).__typename__} add() arguments must be commands")
            if command.name in self._commands:
                trigger(
                    ReplacedCommandWarning(
                        'Command "%s" replaced' % command.name,
                        title="replaced command",
                        code=FaultCode.REPLACED_COMMAND,
                        hint="give the command a different name to keep both",
                    ),
                    tool=self,
                    colorful=self._colorful,
                    fancy=self._fancy,
                )
            self._commands[command.name] = command
        return self

    def new(self, name, descr, handler, /, *, arguments=(), options=()):
        """
        Build a Command from a handler and add it (builder style).
        """
        return self.add(Command(name, descr, handler, arguments=arguments, options=options))

    def command(self, name=Unset, descr=Unset, /, *, arguments=(), options=()):
        """
        Decorator form of new(); the command name defaults to the function name.

        Returns the Command, which stays callable like the decorated function.
        """
        @rename("command")
        def wrapper(handler, /):
            if not callable(handler):
                raise TypeError("@command() must be applied to a callable")
            command = Command(
                coalesce(name, getattr(handler, "__name__", None)),
                descr,
                handler,
                arguments=arguments,
                options=options,
            )
            self.add(command)
            return command

        return wrapper

    def register(self, value, /):
        self._registry.register(value)
        return self

    def register_as(self, alias, value, /):
        self._registry.register_as(alias, value)
        return self

    def register_named(self, name, value, /):
        if not isinstance(name, str):
            raise TypeError(f"{type(self).__typename__} named parameter must be a string")
        elif not (name := name.strip()):
            raise ValueError(f"{type(self).__typename__} named parameter cannot be empty")
        self._named[name] = value
        return self

    def herald(self, *factories):
        """
        Queue command factories; each is called with the cli when the next run begins.
        """
        for factory in factories:
            if not callable(factory):
                raise TypeError(f"{type(self).__typename__} herald() arguments must be callable")
            self._heralds.append(factory)
        return self

    def set_default_command(self, name, /):
        if not isinstance(name, str):
            raise TypeError(f"{type(self).__typename__} default command must be a string")
        elif not (name := name.strip()):
            raise ValueError(f"{type(self).__typename__} default command cannot be empty")
        self._default_command = name
        return self

    def add_default_options(self, *options):
        """
        Declare options merged into every command when a run begins (not before).

        Commands that declare an option or argument of the same name, or an
        option with the same alias, keep their own and skip the default.
        """
        for option in options:
            if not isinstance(option, Option):
                raise TypeError(f"{type(self).__typename__} default options must be options")
            if option.name == "help" or option.alias == "h":
                raise ValueError(f"{type(self).__typename__} default option {option.name!r} clashes with the built-in --help/-h")
            for other in self._default_options:
                if other.name == option.name:
                    raise ValueError(f"{type(self).__typename__} default option {option.name!r} is already declared")
                if option.alias is not None and other.alias == option.alias:
                    raise ValueError(f"{type(self).__typename__} alias {option.alias!r} is already in use by {other.name!r}")
            self._default_options.append(option)
        return self

    def new_default_option(self, *args, **kwargs):
        return self.add_default_options(Option(*args, **kwargs))

    def set_output(self, output, /):
        if output is not Unset and not callable(getattr(output, "write", None)):
            raise TypeError(f"{type(self).__typename__} 'output' must have a write() method")
        self._output = coalesce(output)
        return self

    def set_die(self, die, /):
        if die is not Unset and not callable(die):
            raise TypeError(f"{type(self).__typename__} 'die' must be callable")
        self._die = coalesce(die)
        return self

    def set_exit(self, exit, /):
        if exit is not Unset and not callable(exit):
            raise TypeError(f"{type(self).__typename__} 'exit' must be callable")
        self._exit = coalesce(exit)
        return self

    # ---- running ----

    def write(self, text, /):
        """
        Write text to the output sink (sys.stdout unless one was set).
        """
        (self._output or sys.stdout).write(text)

    def trigger(self, fault, /):
        """
        Route a fatal fault through the die hook, or print it and call the exit hook.

        Returns 1 for the case where the hooks return instead of stopping the run.
        """
        if not isinstance(fault, CommandException):
            raise TypeError(f"{type(self).__typename__} trigger() argument must be a command exception")
        if self._die is not None:
            self._die(fault.message)
        else:
            options = {"exit": self._exit} if self._exit is not None else {}
            trigger(fault, tool=self, colorful=self._colorful, fancy=self._fancy, **options)
        return 1

    def _resolve_heralds(self):
        while self._heralds:
            herald = self._heralds.pop(0)
            if not isinstance(command := herald(self), Command):
                raise TypeError(f"{type(self).__typename__} herald {typename(herald)} must return a command")
            self.add(command)

    def run_with(self, tokens, /):
        """
        Run one command from a list of tokens (program name excluded).

        Returns
        - 0 on success (including the describe paths),
        - 1 after a fatal fault whose hooks returned.
        """
        tokens = list(_sanitized(coalesce(tokens, ()) or ()))

        self._resolve_heralds()
        for command in self._commands.values():
            command.merge_defaults(*self._default_options)

        if tokens and tokens[0] and not tokens[0].startswith("-"):
            name, *tokens = tokens
        else:
            if tokens and not tokens[0]:
                del tokens[0]
            if self._default_command is None:
                self.write(describe(self))
                return 0
            name = self._default_command

        if (command := self._commands.get(name)) is None:
            return self.trigger(UnknownCommandError(
                'Command "%s" unknown' % name,
                title="unknown command",
                code=FaultCode.UNKNOWN_COMMAND,
                hint="run '%s list' to see the available commands" % self._name,
            ))

        try:
            command.parse(tokens)
        except InvalidParameterError as fault:
            return self.trigger(fault)

        if command.value("help"):
            self.write(describe_command(command, self))
            return 0

        try:
            args, kwargs = Injector(self, command, self._named, self._registry).resolve()
        except UnresolvedParameterError as fault:
            return self.trigger(fault)

        try:
            result = command(*args, **kwargs)
        except CommandException as fault:
            return self.trigger(fault)
        except Exception as exception:
            result = exception

        if isinstance(result, Exception):
            return self.trigger(ExecutionFailureError(
                "Failure in execution: %s" % result,
                title="execution failure",
                code=FaultCode.EXECUTION_FAILURE,
                exception=result,
            ))
        return 0

    def run(self, prompt=Unset, /):
        """
        Run one command from a prompt.

        Parameters
        - prompt:
          • Unset: read tokens from sys.argv[1:].
          • str: shell-like string; will be split via shlex.split.
          • Iterable[str]: pre-tokenized sequence.
        """
        if prompt is Unset:
            tokens = sys.argv[1:]
        elif isinstance(prompt, str):
            tokens = shlex.split(prompt)
        elif isinstance(prompt, Iterable):
            tokens = prompt
        else:
            raise TypeError("run() argument must be a string or an iterable of strings")
        return self.run_with(tokens)

    def __invoke__(self, prompt=Unset):
        return self.run(prompt)


def _help(cli: Cli, command: Command):
    """
    Show help for the application or one of its commands.
    """
    if (name := command.value("command")) is None:
        cli.write(describe(cli))
    elif (target := cli.commands.get(name)) is None:
        raise UnknownCommandError(
            'Command "%s" unknown' % name,
            title="unknown command",
            code=FaultCode.UNKNOWN_COMMAND,
            hint="run '%s list' to see the available commands" % cli.name,
        )
    else:
        cli.write(describe_command(target, cli))


def _list(cli: Cli):
    """
    List all available commands.
    """
    cli.write(listing(cli))


def invoke(object, prompt=Unset, /):
    """
    Convenience runner: invoke(cli, prompt) is cli.run(prompt).

    Raises
    - TypeError: when 'object' does not implement __invoke__.
    """
    if hasattr(object, "__invoke__") and callable(object.__invoke__):
        return object.__invoke__(prompt)
    target = "argument" if prompt is Unset else "first argument"
    raise TypeError(f"invoke() {target} must implement __invoke__ method")


__all__ = (
    "Cli",
    "invoke",
)
