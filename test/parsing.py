"""
Parser facade tests (merging, hooks, help precedence, entry point, rendering).

Scope
- Validate merging of several destination records under one program root.
- Validate __version__/__description__ hooks and the last active command.
- Validate that help supersedes other faults unless it follows '--'.
- Validate must_parse exit statuses and what it prints.
- Validate usage/help/version renderables.

Conventions
- Test method names follow CamelCase per project convention.
- Output is captured by redirecting stdout/stderr; colour is disabled.
"""

from __future__ import annotations

import contextlib
import dataclasses
import io
import unittest
from unittest import TestCase

from rich.console import Console

from argstruct import (
    arg,
    parse,
    must_parse,
    Config,
    Parser,
    SchemaExit,
    HelpRequested,
    VersionRequested,
    UnknownArgumentError,
    RequiredArgumentError,
    PositionalSubcommandConflictError,
)
from argstruct.render import usage, helper, versioner

PLAIN = Config(program="tool", colorful=False)
QUIET = Config(program="tool", colorful=False, shell=False)


@dataclasses.dataclass
class Serve:
    port: int = arg("-p", "required", default=0, help="port to listen on")
    host: str = arg("env:HOST", default="localhost")


@dataclasses.dataclass
class Main:
    verbose: bool = arg("-v", default=False, help="say more")
    serve: Serve | None = arg("subcommand", default=None, help="run the server")

    def __version__(self):
        return "tool 1.2.3"

    def __description__(self):
        return "a tool that serves"


@dataclasses.dataclass
class Extra:
    workers: int = 1


@dataclasses.dataclass
class Files:
    files: list[str] = arg("positional", default_factory=list)


@dataclasses.dataclass
class Broken:
    mapping: dict[str, int] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass
class AlsoBroken:
    value: int = arg("-xy", default=0)


@dataclasses.dataclass(frozen=True)
class Pinned:
    workers: int = 1


def capture(callable, *args, **kwargs):
    """
    Run 'callable' and return (exit status or None, stdout, stderr).
    """
    stdout, stderr = io.StringIO(), io.StringIO()
    status = None
    with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
        try:
            callable(*args, **kwargs)
        except SystemExit as exit:
            status = exit.code
    return status, stdout.getvalue(), stderr.getvalue()


def render(renderable):
    console = Console(file=io.StringIO(), width=120, color_system=None)
    console.print(renderable)
    return console.file.getvalue()


class TestParser(TestCase):
    """Behavioral tests for Parser and parse()."""

    def testMergesDestinations(self):
        main, extra = Main(), Extra()
        parser = Parser(main, extra, config=PLAIN)
        self.assertEqual([spec.long for spec in parser.root.specs], ["verbose", "workers"])
        self.assertEqual(parser.root.specs[1].path.root, 1)
        self.assertEqual(parser.root.name, "tool")
        self.assertIs(parser.root.children[0].parent, parser.root)

        parser.parse(["--workers", "4", "serve", "-p", "80"], environ={})
        self.assertEqual(extra.workers, 4)
        self.assertEqual(main.serve.port, 80)
        self.assertEqual(parser.command.name, "serve")

    def testHooks(self):
        parser = Parser(Main(), config=PLAIN)
        self.assertEqual(parser.version, "tool 1.2.3")
        self.assertEqual(parser.description, "a tool that serves")
        self.assertIsNone(Parser(Extra(), config=PLAIN).version)

    def testStringArgumentsAreSplit(self):
        extra = Extra()
        parse(extra, args="--workers '8'", environ={}, config=PLAIN)
        self.assertEqual(extra.workers, 8)

    def testDestinationsMustBeRecordInstances(self):
        with self.assertRaises(TypeError):
            Parser(Main)
        with self.assertRaises(TypeError):
            Parser(object())

    def testBuildFaultsFromEveryDestination(self):
        with self.assertRaises(SchemaExit) as context:
            Parser(Broken(), AlsoBroken(), config=PLAIN)
        self.assertEqual(len(context.exception.exceptions), 2)

    def testFrozenDestinationIsABuildFault(self):
        with self.assertRaises(SchemaExit) as context:
            Parser(Pinned(), config=PLAIN)
        self.assertIn("Pinned is frozen", str(context.exception))

    def testPositionalsAndSubcommandsAcrossDestinations(self):
        with self.assertRaises(SchemaExit) as context:
            Parser(Main(), Files(), config=PLAIN)
        self.assertIsInstance(context.exception.exceptions[0], PositionalSubcommandConflictError)

    def testLastCommandSurvivesFailure(self):
        parser = Parser(Main(), config=PLAIN)
        with self.assertRaises(RequiredArgumentError):
            parser.parse(["serve"], environ={})
        self.assertEqual(parser.command.name, "serve")

    def testConfigValidation(self):
        with self.assertRaises(TypeError):
            Config(program=1)
        with self.assertRaises(ValueError):
            Config(program=" ")
        with self.assertRaises(TypeError):
            Config(shell="yes")


class TestHelpPrecedence(TestCase):
    """Help requests supersede other faults."""

    def testHelpSupersedesEarlierFault(self):
        parser = Parser(Main(), config=PLAIN)
        with self.assertRaises(HelpRequested):
            parser.parse(["--unknown", "-h"], environ={})

    def testHelpSupersedesVersion(self):
        parser = Parser(Main(), config=PLAIN)
        with self.assertRaises(HelpRequested):
            parser.parse(["--version", "--help"], environ={})
        with self.assertRaises(VersionRequested):
            parser.parse(["--version"], environ={})

    def testHelpAfterDoubleDashIsIgnored(self):
        parser = Parser(Main(), config=PLAIN)
        with self.assertRaises(UnknownArgumentError):
            parser.parse(["--unknown", "--", "-h"], environ={})

    def testOnlyTheFirstDoubleDashMatters(self):
        parser = Parser(Main(), config=PLAIN)
        with self.assertRaises(UnknownArgumentError):
            parser.parse(["--unknown", "--", "--", "-h"], environ={})


class TestMustParse(TestCase):
    """Behavioral tests for the must_parse() entry point."""

    def testSuccessReturnsParser(self):
        main = Main()
        status, _, _ = capture(must_parse, main, args=["-v"], environ={}, config=PLAIN)
        self.assertIsNone(status)
        self.assertTrue(main.verbose)

    def testHelpExitsZero(self):
        status, stdout, _ = capture(must_parse, Main(), args=["serve", "-h"], environ={}, config=PLAIN)
        self.assertEqual(status, 0)
        self.assertIn("usage: tool serve", stdout)
        self.assertIn("--port", stdout)
        self.assertIn("port to listen on", stdout)

    def testVersionExitsZero(self):
        status, stdout, _ = capture(must_parse, Main(), args=["--version"], environ={}, config=PLAIN)
        self.assertEqual(status, 0)
        self.assertIn("tool 1.2.3", stdout)

    def testFaultExitsOne(self):
        status, _, stderr = capture(must_parse, Main(), args=["--nope"], environ={}, config=PLAIN)
        self.assertEqual(status, 1)
        self.assertIn("usage: tool", stderr)
        self.assertIn("unknown argument --nope", stderr)

    def testBuildFaultExitsOne(self):
        status, _, stderr = capture(must_parse, Broken(), args=[], environ={}, config=PLAIN)
        self.assertEqual(status, 1)
        self.assertIn("fields are not supported", stderr)

    def testNonShellRaises(self):
        with self.assertRaises(UnknownArgumentError) as context:
            must_parse(Main(), args=["--nope"], environ={}, config=QUIET)
        self.assertEqual(context.exception.options["program"], "tool")
        with self.assertRaises(SchemaExit):
            must_parse(Broken(), args=[], environ={}, config=QUIET)


class TestRender(TestCase):
    """Behavioral tests for usage, help and version renderables."""

    def testUsage(self):
        parser = Parser(Main(), config=PLAIN)
        self.assertEqual(usage(parser).plain, "usage: tool [--verbose] <command> [<args>]")
        self.assertEqual(
            usage(parser, parser.root.children[0]).plain,
            "usage: tool serve --port PORT [--host HOST]",
        )

    def testUsagePositionals(self):
        parser = Parser(Files(), config=PLAIN)
        self.assertEqual(usage(parser).plain, "usage: tool [FILES [FILES ...]]")

    def testHelpSections(self):
        main = Main()
        parser = Parser(main, config=PLAIN)
        output = render(helper(parser))
        self.assertIn("a tool that serves", output)
        self.assertIn("--verbose, -v", output)
        self.assertIn("display this help and exit", output)
        self.assertIn("display version and exit", output)
        self.assertIn("commands:", output)
        self.assertIn("run the server", output)

    def testSubcommandHelpShowsDefaultsEnvironmentAndGlobals(self):
        main = Main()
        parser = Parser(main, config=PLAIN)
        parser.parse(["serve", "-p", "1"], environ={})
        output = render(helper(parser, parser.command))
        self.assertIn("[default: localhost]", output)
        self.assertIn("[env: HOST]", output)
        self.assertIn("global options:", output)

    def testVersion(self):
        parser = Parser(Main(), config=PLAIN)
        self.assertEqual(render(versioner(parser)).strip(), "tool 1.2.3")


if __name__ == "__main__":
    unittest.main()
