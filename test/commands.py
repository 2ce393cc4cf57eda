"""
Commands module behavioral tests (construction, token parsing, parse faults).

Scope
- Validate handler inspection at construction and spec ordering rules.
- Validate the token grammar: long/short options, inline values, flags, "--".
- Validate defaults, environment fallback and multiple values.
- Validate the exact "Parse error: ..." messages.

Conventions
- Test method names follow CamelCase per project convention.
- Commands are parsed directly through Command.parse (no engine involved).
"""

import functools
import os
import unittest
from unittest import TestCase, mock

from conductor import Argument, Command, Option, InvalidParameterError
from conductor.faults import FaultCode


def noop():
    pass


def number(name, raw):
    return int(raw)


class TestCommandConstruction(TestCase):
    """Behavioral tests for Command construction and spec management."""

    def testFreshCommandHasOnlyHelpOption(self):
        command = Command("bar", "do bar", noop)
        self.assertEqual(list(command.options), ["help"])
        self.assertEqual(command.options["help"].names, ("--help", "-h"))

    def testDescrFallsBackToDocstring(self):
        def documented():
            """Copy things around."""

        self.assertEqual(Command("copy", "", documented).descr, "Copy things around.")
        self.assertIsNone(Command("copy", "", lambda: None).descr)

    def testDescrIgnoresClassDocstrings(self):
        class Handler:
            """A callable object."""

            def __call__(self):
                pass

        def scale(factor: int, value: int):
            """Scale a value."""

        self.assertIsNone(Command("call", "", Handler()).descr)
        self.assertIsNone(Command("part", "", functools.partial(scale, 2)).descr)

    def testNameValidation(self):
        with self.assertRaises(TypeError):
            Command(1, "x", noop)
        with self.assertRaises(ValueError):
            Command("", "x", noop)
        with self.assertRaises(ValueError):
            Command("two words", "x", noop)
        with self.assertRaises(ValueError):
            Command("-bar", "x", noop)

    def testNamespacedNameIsAccepted(self):
        self.assertEqual(Command("db:migrate", "x", noop).name, "db:migrate")

    def testHandlerMustBeCallable(self):
        with self.assertRaises(TypeError):
            Command("bar", "x", "not callable")

    def testUnannotatedHandlerParameterRejected(self):
        with self.assertRaises(TypeError):
            Command("bar", "x", lambda thing: None)

    def testVariadicHandlerParameterRejected(self):
        def variadic(*things: int):
            pass

        with self.assertRaises(TypeError):
            Command("bar", "x", variadic)

    def testRequirementsFollowDeclarationOrder(self):
        def handler(first: Command, second: int):
            pass

        command = Command("bar", "x", handler)
        self.assertEqual([r.name for r in command.requirements], ["first", "second"])
        self.assertEqual([r.tag for r in command.requirements], [Command, int])

    def testRequiredArgumentCannotFollowOptional(self):
        with self.assertRaises(ValueError):
            Command("bar", "x", noop, arguments=[Argument("a"), Argument("b", required=True)])

    def testArgumentCannotFollowMultiple(self):
        with self.assertRaises(ValueError):
            Command("bar", "x", noop, arguments=[Argument("a", multiple=True), Argument("b")])

    def testArgumentSpecsOnly(self):
        with self.assertRaises(TypeError):
            Command("bar", "x", noop).add_argument(Option("level"))
        with self.assertRaises(TypeError):
            Command("bar", "x", noop).add_option(Argument("level"))

    def testOptionReplacedByName(self):
        command = Command("bar", "x", noop, options=[Option("level", "l", default="1")])
        command.add_option(Option("level", "l", default="2"))
        self.assertEqual(len(command.options), 2)
        self.assertEqual(command.options["level"].default, "2")

    def testOptionAliasConflictRejected(self):
        command = Command("bar", "x", noop, options=[Option("level", "l")])
        with self.assertRaises(ValueError):
            command.add_option(Option("limit", "l"))

    def testArgumentAndOptionShareNoName(self):
        command = Command("bar", "x", noop, arguments=[Argument("level")])
        with self.assertRaises(ValueError):
            command.add_option(Option("level"))

    def testCommandForwardsCalls(self):
        def add(a: int, b: int):
            return a + b

        self.assertEqual(Command("add", "x", add)(2, 3), 5)

    def testValueBeforeParseYieldsDefault(self):
        command = Command("bar", "x", noop, options=[Option("level", default="info")])
        self.assertEqual(command.value("level"), "info")
        self.assertIs(command.value("help"), False)

    def testImmutableDefaultsKeepTheirType(self):
        command = Command("bar", "x", noop, arguments=[
            Argument("data", "payload", b"ab"),
            Argument("pair", "coordinates", (1, 2)),
        ])
        self.assertEqual(command.arguments[0].default, b"ab")
        self.assertEqual(command.value("data"), b"ab")
        self.assertEqual(command.value("pair"), (1, 2))

        command.parse([])
        self.assertEqual(command.value("data"), b"ab")
        self.assertEqual(command.value("pair"), (1, 2))

    def testValueOfUnknownNameRaises(self):
        with self.assertRaises(KeyError):
            Command("bar", "x", noop).value("nope")


class TestCommandParsing(TestCase):
    """Behavioral tests for Command.parse and its faults."""

    def setUp(self):
        self.command = Command("copy", "copy files", noop, arguments=[
            Argument("src", "source", required=True),
            Argument("dst", "destination", "out"),
        ], options=[
            Option("level", "l", "log level", "info"),
            Option("retries", "r", "retry budget", 3, parse=number),
            Option("verbose", "v", "talk more", flag=True),
        ])

    def assertParseError(self, tokens, message, code=None):
        with self.assertRaises(InvalidParameterError) as context:
            self.command.parse(tokens)
        self.assertEqual(str(context.exception), message)
        if code is not None:
            self.assertEqual(context.exception.options["code"], code)

    def testPositionalsInOrderWithDefaults(self):
        self.command.parse(["a.txt"])
        self.assertEqual(self.command.value("src"), "a.txt")
        self.assertEqual(self.command.value("dst"), "out")
        self.assertTrue(self.command.provided("src"))
        self.assertFalse(self.command.provided("dst"))

    def testOptionSpellings(self):
        for tokens in (
                ["a", "--level=debug"],
                ["a", "--level", "debug"],
                ["a", "-l", "debug"],
                ["a", "-l=debug"],
                ["--level", "debug", "a"],
        ):
            with self.subTest(tokens=tokens):
                self.command.parse(tokens)
                self.assertEqual(self.command.value("level"), "debug")
                self.assertEqual(self.command.value("src"), "a")

    def testOptionParseFunctionApplied(self):
        self.command.parse(["a", "-r", "7"])
        self.assertEqual(self.command.value("retries"), 7)

    def testOptionDefaultIsNotParsed(self):
        self.command.parse(["a"])
        self.assertEqual(self.command.value("retries"), 3)
        self.assertFalse(self.command.provided("retries"))

    def testFlags(self):
        self.command.parse(["a"])
        self.assertIs(self.command.value("verbose"), False)
        self.command.parse(["a", "-v"])
        self.assertIs(self.command.value("verbose"), True)
        self.assertTrue(self.command.provided("verbose"))

    def testParseResetsPreviousValues(self):
        self.command.parse(["a", "b", "--level", "debug"])
        self.command.parse(["c"])
        self.assertEqual(self.command.values["dst"], "out")
        self.assertEqual(self.command.values["level"], "info")
        self.assertFalse(self.command.provided("level"))

    def testDoubleDashEndsOptions(self):
        self.command.parse(["--", "--level", "-v"])
        self.assertEqual(self.command.value("src"), "--level")
        self.assertEqual(self.command.value("dst"), "-v")
        self.assertEqual(self.command.value("level"), "info")

    def testNegativeNumbersArePositional(self):
        self.command.parse(["-5", "-2.5"])
        self.assertEqual(self.command.value("src"), "-5")
        self.assertEqual(self.command.value("dst"), "-2.5")

    def testMissingRequiredArgument(self):
        self.assertParseError([], 'Parse error: Argument "src" is required', FaultCode.MISSING_PARAMETER)

    def testTooManyArguments(self):
        self.assertParseError(["a", "b", "c"], "Parse error: Too many arguments", FaultCode.SURPLUS_ARGUMENTS)

    def testUnknownLongOption(self):
        self.assertParseError(["a", "--nope"], 'Parse error: Option "--nope" unknown', FaultCode.UNKNOWN_OPTION)

    def testUnknownShortOption(self):
        self.assertParseError(["a", "-x=1"], 'Parse error: Option "-x" unknown')

    def testOptionRequiresValue(self):
        self.assertParseError(["a", "--level"], 'Parse error: Option "level" requires a value', FaultCode.MISSING_VALUE)
        self.assertParseError(["a", "--level", "-v"], 'Parse error: Option "level" requires a value')

    def testFlagDoesNotTakeValue(self):
        self.assertParseError(["a", "--verbose=yes"], 'Parse error: Flag "verbose" does not take a value', FaultCode.UNEXPECTED_VALUE)

    def testInvalidParameterCarriesParseMessage(self):
        self.assertParseError(["a", "--retries", "many"],
                              "Parse error: Parameter \"retries\" invalid: invalid literal for int() with base 10: 'many'",
                              FaultCode.INVALID_PARAMETER)

    def testInvalidParameterKeepsException(self):
        with self.assertRaises(InvalidParameterError) as context:
            self.command.parse(["a", "-r", "x"])
        self.assertIsInstance(context.exception.options["exception"], ValueError)

    def testRequiredOption(self):
        command = Command("push", "x", noop, options=[Option("remote", required=True)])
        with self.assertRaises(InvalidParameterError) as context:
            command.parse([])
        self.assertEqual(str(context.exception), 'Parse error: Option "remote" is required')

    def testMultipleArgumentTakesTheRest(self):
        command = Command("cat", "x", noop, arguments=[
            Argument("first", required=True),
            Argument("rest", multiple=True, parse=number),
        ])
        command.parse(["a", "1", "2", "3"])
        self.assertEqual(command.value("first"), "a")
        self.assertEqual(command.value("rest"), [1, 2, 3])
        command.parse(["a"])
        self.assertEqual(command.value("rest"), [])

    def testMultipleOptionAccumulates(self):
        command = Command("tag", "x", noop, options=[Option("tag", "t", multiple=True)])
        command.parse(["-t", "a", "--tag=b", "--tag", "c"])
        self.assertEqual(command.value("tag"), ["a", "b", "c"])

    def testSingleOptionKeepsLastValue(self):
        self.command.parse(["a", "-l", "debug", "-l", "warning"])
        self.assertEqual(self.command.value("level"), "warning")

    def testEnvironmentFallback(self):
        command = Command("login", "x", noop, options=[
            Option("token", env="CONDUCTOR_TEST_TOKEN", default="none"),
            Option("port", env="CONDUCTOR_TEST_PORT", parse=number),
            Option("debug", env="CONDUCTOR_TEST_DEBUG", flag=True),
        ])
        environ = {"CONDUCTOR_TEST_TOKEN": "secret", "CONDUCTOR_TEST_PORT": "8080", "CONDUCTOR_TEST_DEBUG": "yes"}
        with mock.patch.dict(os.environ, environ):
            command.parse([])
            self.assertEqual(command.value("token"), "secret")
            self.assertEqual(command.value("port"), 8080)
            self.assertIs(command.value("debug"), True)
            self.assertTrue(command.provided("token"))

            command.parse(["--token", "given"])
            self.assertEqual(command.value("token"), "given")

    def testEnvironmentFlagFalseyValue(self):
        command = Command("login", "x", noop, options=[Option("debug", env="CONDUCTOR_TEST_DEBUG", flag=True)])
        with mock.patch.dict(os.environ, {"CONDUCTOR_TEST_DEBUG": "0"}):
            command.parse([])
        self.assertIs(command.value("debug"), False)

    def testMissingEnvironmentUsesDefault(self):
        command = Command("login", "x", noop, options=[Option("token", env="CONDUCTOR_TEST_TOKEN", default="none")])
        with mock.patch.dict(os.environ, {}, clear=True):
            command.parse([])
        self.assertEqual(command.value("token"), "none")

    def testParseReturnsCommand(self):
        self.assertIs(self.command.parse(["a"]), self.command)


if __name__ == "__main__":
    unittest.main()
