"""
Argstruct parser facade: destination records in, populated records out.

Overview
- Config: frozen runtime options (program name, shell/fancy/colorful modes).
- Parser: builds one merged command tree from every destination record and
  interprets command lines against it.
- parse(): one-shot Parser(...).parse(...).
- must_parse(): program entry point; renders help, version and faults and
  maps them to exit statuses (0 for help/version, 1 for faults).

Help precedence
- When interpretation fails and '-h' or '--help' appears among the tokens
  before the first '--', the failure is replaced by a help request.

Host hooks
- A destination may define __version__() and/or __description__() methods;
  their results feed the version banner and the help screen.
"""
import dataclasses
import logging
import os
import shlex
import sys
from collections.abc import Iterable

from rich.console import Console

from .faults import *
from .interpreter import ParseSession
from .paths import FieldPath
from .render import helper, usage, versioner
from .schema import collect
from .specs import CommandNode
from .utils import *

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Config:
    """
    Runtime options shared by a parser and everything it renders.

    - program: name shown in usage/help (defaults to the running script's name).
    - shell: render faults and exit instead of raising them.
    - fancy: wrap help, version and faults in panels.
    - colorful: apply the palette (see __styles__ in __main__).
    """
    program: str | UnsetType = Unset
    shell: bool = True
    fancy: bool = False
    colorful: bool = True

    def __post_init__(self):
        if not isinstance(self.program, str | UnsetType):
            raise TypeError("Config() 'program' must be a string")
        if isinstance(self.program, str) and not self.program.strip():
            raise ValueError("Config() 'program' cannot be empty")
        for name in ("shell", "fancy", "colorful"):
            if not isinstance(getattr(self, name), bool):
                raise TypeError(f"Config() {name!r} must be a boolean")


def _program(config):
    if config.program is not Unset:
        return config.program.strip()
    if sys.argv and sys.argv[0]:
        return os.path.basename(sys.argv[0])
    return "program"


def _tokens(args):
    """
    Normalize parse() input into a list of tokens.

    - Unset: sys.argv[1:].
    - str: shell-like string, split via shlex.split.
    - Iterable[str]: taken as is.
    """
    if args is Unset:
        return sys.argv[1:]
    if isinstance(args, str):
        return shlex.split(args)
    if isinstance(args, Iterable):
        tokens = list(args)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("parse() argument must be a string or an iterable of strings")
        return tokens
    raise TypeError("parse() argument must be a string or an iterable of strings")


def _wants_help(tokens):
    for token in tokens:
        if token in ("-h", "--help"):
            return True
        if token == "--":
            return False
    return False


class Parser:
    """
    Command-line parser bound to one or more destination records.

    Each destination (a dataclass instance) contributes its flags, positionals
    and subcommands to a single root command named after the program. The tree
    is built once; parse() may be called many times.

    Raises
    - TypeError: a destination is not a dataclass instance.
    - SchemaExit: the destination records are malformed (every fault at once).
    """

    root = mirror("root")
    roots = mirror("roots")
    config = mirror("config")
    program = mirror("program")
    version = mirror("version")
    description = mirror("description")
    command = mirror("command")

    def __init__(self, *destinations, config=Config()):
        if not isinstance(config, Config):
            raise TypeError("Parser() 'config' must be a Config")
        for destination in destinations:
            if not dataclasses.is_dataclass(destination) or isinstance(destination, type):
                raise TypeError("Parser() destinations must be dataclass instances, not %s" % (
                    type(destination).__qualname__
                ))

        self._config = config
        self._program = _program(config)
        self._roots = destinations
        self._version = None
        self._description = None

        faults = []
        level = {"specs": [], "children": [], "embeds": []}
        for index, destination in enumerate(destinations):
            node, nested = collect(self._program, FieldPath(index), type(destination))
            faults.extend(nested)
            if node is not None:
                level["specs"].extend(node.specs)
                level["children"].extend(node.children)
                level["embeds"].extend(node.embeds)

            if callable(getattr(destination, "__version__", None)):
                self._version = destination.__version__()
            if callable(getattr(destination, "__description__", None)):
                self._description = destination.__description__()

        if not faults and level["children"] and any(spec.positional for spec in level["specs"]):
            faults.append(PositionalSubcommandConflictError(
                "%s cannot have both subcommands and positional arguments" % FieldPath(),
                title="positionals next to subcommands",
                code=FaultCode.POSITIONAL_SUBCOMMAND_CONFLICT,
                hint="move the positional fields into the subcommand records",
                docs=getdoc(FaultCode.POSITIONAL_SUBCOMMAND_CONFLICT),
            ))
        if faults:
            raise SchemaExit(faults, program=self._program)

        self._root = CommandNode(self._program, FieldPath(), **level)
        self._command = self._root
        logger.debug("parser %r ready with %d destinations", self._program, len(destinations))

    def parse(self, args=Unset, /, environ=None):
        """
        Interpret a command line into the destination records.

        Parameters
        - args: Unset (sys.argv[1:]), a shell-like string, or an iterable of strings.
        - environ: mapping consulted for env-backed arguments (os.environ by default).

        Returns the finished ParseSession. The last active command stays
        available as parser.command, also after a failure.
        """
        tokens = _tokens(args)
        session = ParseSession(self._root, self._roots, environ)
        try:
            session.run(tokens)
        except (ParseError, VersionRequested) as exception:
            if _wants_help(tokens):
                raise HelpRequested(
                    "help requested by user",
                    title="help requested",
                    code=FaultCode.HELP_REQUESTED,
                    command=session.command,
                ) from exception
            raise
        finally:
            self._command = session.command
        return session

    def print_usage(self, command=None, /, *, stderr=False):
        Console(stderr=stderr).print(usage(self, command or self._command))

    def print_help(self, command=None, /, *, stderr=False):
        Console(stderr=stderr).print(helper(self, command or self._command))

    def print_version(self):
        Console().print(versioner(self))

    def trigger(self, fault, /, **options):
        """
        Surface a fault with this parser's runtime options (raise, or render and exit).
        """
        trigger(
            fault,
            program=self._program,
            shell=self._config.shell,
            fancy=self._config.fancy,
            colorful=self._config.colorful,
            **options,
        )

    def __rich_repr__(self):
        yield "program", self._program
        yield "roots", self._roots
        yield "version", self._version

    def __repr__(self):
        return "parser(program=%r, roots=%r)" % (self._program, self._roots)


def parse(*destinations, args=Unset, environ=None, config=Config()):
    """
    Build a parser for 'destinations' and interpret 'args' in one go.
    """
    return Parser(*destinations, config=config).parse(args, environ=environ)


def must_parse(*destinations, args=Unset, environ=None, config=Config()):
    """
    Program entry point: parse or leave the process with a proper status.

    - malformed destination records: faults rendered, exit status 1.
    - help requested: help of the last active command on stdout, exit status 0.
    - version requested: version banner on stdout, exit status 0.
    - any parse fault: usage on stderr, then the fault, exit status 1.

    With config.shell set to False faults are raised instead of rendered.
    Returns the parser on success.
    """
    try:
        parser = Parser(*destinations, config=config)
    except SchemaExit as exit:
        trigger(exit, shell=config.shell, fancy=config.fancy, colorful=config.colorful)
        raise

    try:
        parser.parse(args, environ=environ)
    except HelpRequested as signal:
        parser.print_help(signal.options.get("command"))
        sys.exit(0)
    except VersionRequested:
        parser.print_version()
        sys.exit(0)
    except ParseError as fault:
        if config.shell:
            parser.print_usage(fault.options.get("command"), stderr=True)
        parser.trigger(fault)
        raise

    return parser


__all__ = (
    "Config",
    "Parser",
    "parse",
    "must_parse",
)
