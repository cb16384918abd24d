"""
Argstruct faults: what can go wrong, and how it is shown to the user.

Families
- SchemaError: a destination record cannot be turned into a command tree
  (bad tag, unsupported field type, non-record subcommand, ...). Found while
  building; every one of them is collected and raised as a single SchemaExit.
- ParseError: a command line does not fit the command tree (unknown flag,
  missing value, bad number, ...). Found while interpreting; the first one ends
  the pass.
- CommandSignal: -h/--help and --version. They stop interpretation like a fault
  but are requests, so they live outside the CommandException hierarchy.

Every fault carries a FaultCode plus free-form options (title, hint, program,
command, ...). trigger() merges runtime options into a fault and either raises
it or, in shell mode, prints it to stderr and exits with status 1.

Host hooks read from __main__
- __styles__: palette overrides (see the keys in CommandException.__rich__).
- __codes__: FaultCode -> label shown instead of the number.
- __docs__: FaultCode -> longer explanation, surfaced by getdoc().
- __prog__: program name shown in fault headers.
"""
import copy
import sys
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
    Numeric identifiers for every fault and signal.

    The leading digits tell the family apart: 10xxx are signals, 111xx are
    command-line faults (1110x subcommands, 1111x flags and values, 1112x
    positionals and presence) and 131xx are destination-record faults.
    """
    HELP_REQUESTED                 = 10001
    VERSION_REQUESTED              = 10002

    INVALID_SUBCOMMAND             = 11101

    UNKNOWN_ARGUMENT               = 11111
    MISSING_VALUE                  = 11112
    VALUE_PROCESSING               = 11113
    ENVIRONMENT_VALUE              = 11114

    TOO_MANY_POSITIONALS           = 11121
    REQUIRED_ARGUMENT              = 11122

    NOT_A_RECORD                   = 13101
    TOO_MANY_HYPHENS               = 13102
    SHORT_NAME_LENGTH              = 13103
    UNRECOGNIZED_TAG               = 13104
    UNSUPPORTED_TYPE               = 13105
    POSITIONAL_SUBCOMMAND_CONFLICT = 13106

    def normalize(self):
        """
        Label of this code as displayed: the __codes__ entry if the host has one,
        else the number as a string.
        """
        labels = getattr(__import__("__main__"), "__codes__", {})
        return str(labels.get(self, self.value))


def _palette(defaults):
    return defaultdict(str, defaults | getattr(__import__("__main__"), "__styles__", {}))


def _program(options):
    return getattr(__import__("__main__"), "__prog__", options.get("program", "program"))


class CommandException(Exception):
    """
    Root of every user-facing fault.

    'message' is the one-line description returned by str(); 'options' is a
    read-only mapping of rendering context (title, code, hint, program, shell,
    fancy, colorful) plus whatever the raising site found useful (input,
    suggestions, argument, command).
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(*(() if message is Unset else (message,)))
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        styles = _palette({
            "fault-program": "bold #E6E6F0",
            "fault-code": "bold #00E5FF",
            "fault-title": "bold #FF4DA6",
            "fault-message": "#C8C8D0",
            "fault-arrow": "dim #9CE19C",
            "fault-hint": "italic #9CE19C",
        })
        colorful = self.options.get("colorful", True)

        def text(fragment, style):
            if not fragment:
                return Text("")
            return Text(str(fragment), styles[style] if colorful else "")

        code = self.options.get("code")
        header = Text.assemble(
            "[ ",
            text(_program(self.options), "fault-program"),
            " — ",
            text(code.normalize() if code else "", "fault-code"),
            " | ",
            text(self.options.get("title", "error").title(), "fault-title"),
            " ]",
        )
        body = [text(self.message, "fault-message")]
        if hint := self.options.get("hint"):
            body.append(Text.assemble(text(" → ", "fault-arrow"), text(hint, "fault-hint")))

        if not self.options.get("fancy", False):
            return Group(header, *body)
        # nested inside a SchemaExit panel the width shrinks by 'ratio'
        width = None
        if "ratio" in self.options:
            width = int((console.width - 4) * self.options["ratio"])
        return Panel(Group(*body), title=header, title_align="left", width=width)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class SchemaError(CommandException): ...
class NotARecordError(SchemaError): ...
class TooManyHyphensError(SchemaError): ...
class ShortNameLengthError(SchemaError): ...
class UnrecognizedTagError(SchemaError): ...
class UnsupportedTypeError(SchemaError): ...
class PositionalSubcommandConflictError(SchemaError): ...


class ParseError(CommandException): ...
class InvalidSubcommandError(ParseError): ...
class UnknownArgumentError(ParseError): ...
class MissingValueError(ParseError): ...
class ValueProcessingError(ParseError): ...
class EnvironmentValueError(ParseError): ...
class TooManyPositionalsError(ParseError): ...
class RequiredArgumentError(ParseError): ...


class CommandSignal(Exception):
    """
    Help or version request; `except ParseError` never catches one.
    """

    def __init__(self, message=Unset, /, **options):
        super().__init__(*(() if message is Unset else (message,)))
        self.message = message
        self.options = MappingProxyType(options)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class HelpRequested(CommandSignal): ...
class VersionRequested(CommandSignal): ...


class SchemaExit(ExceptionGroup[SchemaError]):
    """
    Every SchemaError of one build, raised and rendered together.

    str() lists one fault message per line; the rich rendering stacks the
    faults under a single header, each one rendered with the group's options.
    """

    def __new__(cls, exceptions, **options):
        return super().__new__(cls, "bad destination records", exceptions)

    def __init__(self, exceptions, **options):
        super().__init__("bad destination records", tuple(exceptions))
        self.options = MappingProxyType(options)

    def __str__(self):
        return "\n".join(str(exception) for exception in self.exceptions)

    def __rich__(self):
        styles = _palette({
            "fault-program": "bold #E6E6F0",
            "report-title": "bold #FF4DA6",
        })
        colorful = self.options.get("colorful", True)

        def text(fragment, style):
            return Text(str(fragment), styles[style] if colorful else "")

        header = Text.assemble(
            "[ ",
            text(_program(self.options), "fault-program"),
            " — ",
            text(self.message.title(), "report-title"),
            " ]",
        )
        faults = [copy.replace(exception, **self.options, ratio=2/3) for exception in self.exceptions]
        if self.options.get("fancy", False):
            return Panel(Group(*faults), title=header, title_align="left")
        return Group(header, *faults)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.exceptions, **{**self.options, **overrides})


def trigger(fault, /, **options):
    """
    Merge 'options' into 'fault' (via copy.replace) and surface the result.

    Outside shell mode the fault is raised; in shell mode it is printed to
    stderr and the process exits with status 1.

    Raises
    - TypeError: 'fault' lacks __trigger__ or __replace__.
    """
    for method in ("__trigger__", "__replace__"):
        if not callable(getattr(fault, method, None)):
            raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    Look 'code' up in the host's __docs__ mapping; None when it has no entry.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    return getattr(__import__("__main__"), "__docs__", {}).get(code)


__all__ = (
    # Codes
    "FaultCode",

    # Faults
    "CommandException",
    "SchemaError",
    "NotARecordError",
    "TooManyHyphensError",
    "ShortNameLengthError",
    "UnrecognizedTagError",
    "UnsupportedTypeError",
    "PositionalSubcommandConflictError",
    "ParseError",
    "InvalidSubcommandError",
    "UnknownArgumentError",
    "MissingValueError",
    "ValueProcessingError",
    "EnvironmentValueError",
    "TooManyPositionalsError",
    "RequiredArgumentError",
    "SchemaExit",

    # Signals
    "CommandSignal",
    "HelpRequested",
    "VersionRequested",

    # Functions
    "trigger",
    "getdoc",
)
