"""
Argstruct token interpreter: one left-to-right pass over the command line.

Phases
- setup
  • the session starts at the root command with the root's specs in scope.
  • embedded records of the root are instantiated, then environment-backed
    specs are seeded (so the command line always overrides the environment).
- loop (one token at a time, one token of lookahead)
  • '--' switches every remaining token to positional/subcommand mode.
  • bare tokens are either buffered positionals (leaf commands) or subcommand
    names (commands with children); entering a subcommand widens the scope.
  • '-h'/'--help' and '--version' stop everything with a signal.
  • anything else is a flag: '--name', '-n', '--name=value'.
- post-parse
  • buffered positionals are drained in declaration order.
  • required specs that were never supplied are reported.

The first fault wins: interpretation stops as soon as one is raised. The
command tree is never written to; all per-parse state lives on ParseSession.
"""
import csv
import difflib
import io
import logging
import os
from collections import deque

from .faults import *
from .scalars import coerce, isnumeric
from .specs import CommandNode

logger = logging.getLogger(__name__)


def isflag(token, /):
    """
    True for '-v' or '--user'; '-' and '--' alone are not flags.
    """
    return token.startswith("-") and token.lstrip("-") != ""


class ParseSession:
    """
    Ephemeral state of one interpretation pass.

    Attributes
    - command: the active CommandNode (advances as subcommands are entered).
    - specs: every OptionSpec in scope (root's plus each entered subcommand's).
    - present: OptionSpec → True for every spec supplied (environment included).
    - positionals: bare tokens waiting to be matched against positional specs.
    - truncated: multi-value specs whose previous contents were already
      replaced by command-line values during this pass.
    """

    def __init__(self, root, roots, environ=None):
        if not isinstance(root, CommandNode):
            raise TypeError("ParseSession() root must be a command node")
        self.root = root
        self.roots = roots
        self.environ = os.environ if environ is None else environ
        self.command = root
        self.specs = list(root.specs)
        self.present = {}
        self.positionals = []
        self.truncated = set()

    @property
    def route(self):
        return " ".join(self.command.route)

    def _lookup(self, name):
        """
        Resolve a flag name against the active command and every command above it.

        Enclosing commands are searched first, matching the order specs came
        into scope.
        """
        chain, node = [], self.command
        while node is not None:
            chain.append(node)
            node = node.parent
        for node in reversed(chain):
            if (spec := node.find_option(name)) is not None:
                return spec
        return None

    def run(self, tokens):
        """
        Interpret 'tokens', writing values into the destination records.

        Raises
        - ParseError subclasses for malformed or insufficient input.
        - HelpRequested / VersionRequested when the user asked for them.
        """
        self._instantiate(self.root.embeds)
        self._seed(self.root.specs)

        tokens = deque(tokens)
        positional = False
        while tokens:
            token = tokens.popleft()

            if token == "--" and not positional:
                logger.debug("end of options marker, remaining tokens are positional")
                positional = True
                continue

            if positional or not isflag(token):
                self._dispatch(token)
                continue

            if token in ("-h", "--help"):
                raise HelpRequested(
                    "help requested by user",
                    title="help requested",
                    code=FaultCode.HELP_REQUESTED,
                    command=self.command,
                )
            if token == "--version":
                raise VersionRequested(
                    "version requested by user",
                    title="version requested",
                    code=FaultCode.VERSION_REQUESTED,
                    command=self.command,
                )

            self._option(token, tokens)

        self._drain()
        self._check()
        return self

    def _dispatch(self, token):
        """
        Buffer a bare token as a positional, or enter the subcommand it names.
        """
        if not self.command.children:
            logger.debug("buffering positional %r", token)
            self.positionals.append(token)
            return

        if (child := self.command.find_child(token)) is None:
            names = [child.name for child in self.command.children]
            suggestions = difflib.get_close_matches(token, names, 5)
            try:
                hint = "did you mean %r? you can also run '%s --help' to see available subcommands" % (
                    suggestions[0], self.route
                )
            except IndexError:
                hint = "run '%s --help' to see available subcommands" % self.route
            raise InvalidSubcommandError(
                "invalid subcommand: %s" % token,
                title="invalid subcommand",
                code=FaultCode.INVALID_SUBCOMMAND,
                input=token,
                suggestions=suggestions,
                hint=hint,
                command=self.command,
                docs=getdoc(FaultCode.INVALID_SUBCOMMAND),
            )

        self._enter(child)

    def _enter(self, child):
        logger.debug("entering subcommand %r at %s", child.name, child.path)
        child.path.set(self.roots, child.type())
        self.specs.extend(child.specs)
        self.command = child
        self._instantiate(child.embeds)
        self._seed(child.specs)

    def _instantiate(self, embeds):
        for path, record in embeds:
            if path.get(self.roots) is None:
                logger.debug("instantiating embedded %s at %s", record.__qualname__, path)
                path.set(self.roots, record())

    def _seed(self, specs):
        """
        Fill environment-backed specs before any command-line token is applied.
        """
        for spec in specs:
            if spec.env is None or spec.env not in self.environ:
                continue
            value = self.environ[spec.env]
            logger.debug("seeding %s from environment variable %s", spec.display, spec.env)

            if spec.multiple:
                try:
                    texts = next(csv.reader(io.StringIO(value), strict=True), [])
                except csv.Error as exception:
                    raise self._environment_fault(
                        "error reading a CSV string from environment variable %s with multiple values: %s" % (
                            spec.env, exception
                        ),
                        spec,
                    ) from exception
                try:
                    values = [coerce(spec.scalar, text) for text in texts]
                except (ValueError, TypeError, ArithmeticError) as exception:
                    raise self._environment_fault(
                        "error processing environment variable %s with multiple values: %s" % (
                            spec.env, exception
                        ),
                        spec,
                    ) from exception
                spec.path.set(self.roots, values)
            else:
                try:
                    spec.path.set(self.roots, coerce(spec.scalar, value))
                except (ValueError, TypeError, ArithmeticError) as exception:
                    raise self._environment_fault(
                        "error processing environment variable %s: %s" % (spec.env, exception),
                        spec,
                    ) from exception

            self.present[spec] = True

    def _environment_fault(self, message, spec):
        return EnvironmentValueError(
            message,
            title="bad environment value",
            code=FaultCode.ENVIRONMENT_VALUE,
            variable=spec.env,
            argument=spec,
            hint="fix or unset %s; values given on the command line override it" % spec.env,
            command=self.command,
            docs=getdoc(FaultCode.ENVIRONMENT_VALUE),
        )

    def _option(self, token, tokens):
        """
        Resolve one flag token and consume its value(s) from 'tokens'.
        """
        name, equals, inline = token.lstrip("-").partition("=")
        if not equals:
            inline = None

        if (spec := self._lookup(name)) is None:
            names = [
                "--" + spec.long for spec in self.specs if not spec.positional
            ] + [
                "-" + spec.short for spec in self.specs if spec.short is not None and not spec.positional
            ]
            suggestions = difflib.get_close_matches(token.partition("=")[0], names, 5)
            try:
                hint = "did you mean %r? you can also run '%s --help' to see all options" % (
                    suggestions[0], self.route
                )
            except IndexError:
                hint = "try '%s --help' to see all available options" % self.route
            raise UnknownArgumentError(
                "unknown argument %s" % token,
                title="unknown argument",
                code=FaultCode.UNKNOWN_ARGUMENT,
                input=token,
                suggestions=suggestions,
                hint=hint,
                command=self.command,
                docs=getdoc(FaultCode.UNKNOWN_ARGUMENT),
            )
        logger.debug("matched %r to %s", token, spec.display)
        self.present[spec] = True

        if spec.multiple:
            if inline is not None:
                texts = [inline]
            else:
                texts = []
                while tokens and not isflag(tokens[0]):
                    texts.append(tokens.popleft())
                    if spec.separate:
                        break
            self._extend(spec, texts, token)
            return

        # a bare switch means "true"; coercion still goes through the bool parser
        if inline is None and spec.boolean:
            inline = "true"

        if inline is None:
            if not tokens or (isflag(tokens[0]) and not isnumeric(spec.type, tokens[0])):
                raise MissingValueError(
                    "missing value for %s" % token,
                    title="missing value",
                    code=FaultCode.MISSING_VALUE,
                    input=token,
                    argument=spec,
                    hint="pass a value: %s <value> or %s=<value>" % (token, token),
                    command=self.command,
                    docs=getdoc(FaultCode.MISSING_VALUE),
                )
            inline = tokens.popleft()

        spec.path.set(self.roots, self._coerce(spec, inline, token))

    def _coerce(self, spec, text, source):
        try:
            return coerce(spec.scalar, text)
        except (ValueError, TypeError, ArithmeticError) as exception:
            raise ValueProcessingError(
                "error processing %s: %s" % (source, exception),
                title="invalid value",
                code=FaultCode.VALUE_PROCESSING,
                input=text,
                argument=spec,
                hint="run '%s --help' to see what %s expects" % (self.route, spec.display),
                command=self.command,
                docs=getdoc(FaultCode.VALUE_PROCESSING),
            ) from exception

    def _extend(self, spec, texts, source):
        """
        Add values to a multi-value spec; the first command-line batch replaces
        whatever the field held before (defaults or environment values).
        """
        if not texts:
            return
        values = [self._coerce(spec, text, source) for text in texts]
        if spec in self.truncated:
            values = [*(spec.path.get(self.roots) or ()), *values]
        else:
            self.truncated.add(spec)
        spec.path.set(self.roots, values)

    def _drain(self):
        """
        Match buffered positionals against positional specs in declaration order.
        """
        for spec in self.specs:
            if not spec.positional:
                continue
            if not self.positionals:
                break
            self.present[spec] = True
            if spec.multiple:
                texts, self.positionals = self.positionals, []
                spec.path.set(self.roots, [self._coerce(spec, text, spec.long) for text in texts])
            else:
                spec.path.set(self.roots, self._coerce(spec, self.positionals.pop(0), spec.long))

        if self.positionals:
            raise TooManyPositionalsError(
                "too many positional arguments at '%s'" % self.positionals[0],
                title="too many positionals",
                code=FaultCode.TOO_MANY_POSITIONALS,
                leftover=list(self.positionals),
                hint="remove the extra values or run '%s --help' to see the expected usage" % self.route,
                command=self.command,
                docs=getdoc(FaultCode.TOO_MANY_POSITIONALS),
            )

    def _check(self):
        for spec in self.specs:
            if spec.required and spec not in self.present:
                raise RequiredArgumentError(
                    "%s is required" % spec.display,
                    title="missing required argument",
                    code=FaultCode.REQUIRED_ARGUMENT,
                    argument=spec,
                    hint=(
                        "set %s or pass %s" % (spec.env, spec.display) if spec.env else
                        "pass %s; run '%s --help' to see the expected usage" % (spec.display, self.route)
                    ),
                    command=self.command,
                    docs=getdoc(FaultCode.REQUIRED_ARGUMENT),
                )


def interpret(root, roots, tokens, /, environ=None):
    """
    Interpret 'tokens' against the tree under 'root', writing into 'roots'.

    Returns the finished ParseSession (presence map included).
    """
    return ParseSession(root, roots, environ).run(tokens)


__all__ = (
    "isflag",
    "ParseSession",
    "interpret",
)
