"""
Scalar coercion: turning one command-line string into one typed value.

Contract
- coerce(type, text) returns a value of 'type' or raises ValueError/TypeError.
- A destination type may bring its own coercion by defining a classmethod
  __parsearg__(text) -> instance; it always wins over the built-in table.
- parseable(hint) decides, from a field type hint, whether the field can be
  filled from the command line at all, and whether it is a boolean switch or
  a multi-value (sequence) field.

Admissible hints
- T                 direct scalar
- T | None          optional scalar (one level of unwrapping)
- list[T]           multi-value, also Sequence[T] / MutableSequence[T] and bare list
- list[T | None]    multi-value with one more level of optional unwrapping

Built-in scalars: str, bool, int, float, complex, Decimal, Fraction, bytes,
UUID, pathlib paths, Enum subclasses, ipaddress types, datetime/date/time.
"""
import builtins
import collections.abc
import datetime
import decimal
import enum
import fractions
import ipaddress
import pathlib
import typing
import uuid
from typing import Protocol, runtime_checkable

from .utils import unwrap_optional


@runtime_checkable
class SupportsParseArg(Protocol):
    """
    Protocol for destination types that know how to parse themselves.

    Implementations raise ValueError when the text is not acceptable.
    """

    @classmethod
    def __parsearg__(cls, text, /): ...


_TRUTHY = frozenset(("1", "t", "T", "true", "TRUE", "True"))
_FALSY = frozenset(("0", "f", "F", "false", "FALSE", "False"))

_NUMERIC = (int, float, complex, decimal.Decimal, fractions.Fraction)

_SEQUENCES = (list, collections.abc.Sequence, collections.abc.MutableSequence)


def _parse_bool(type, text):
    if text in _TRUTHY:
        return True
    if text in _FALSY:
        return False
    raise ValueError("invalid boolean %r (expected true or false)" % text)


def _parse_int(type, text):
    try:
        value = int(text, 10)
    except ValueError:
        # prefixed literals: 0x1f, 0o17, 0b101
        value = int(text, 0)
    return value if type is int else type(value)


def _parse_enum(type, text):
    try:
        return type[text]
    except KeyError:
        pass
    for member in type:
        if str(member.value) == text:
            return member
    raise ValueError("invalid choice %r (expected one of: %s)" % (
        text, ", ".join(member.name for member in type)
    ))


def _parse_decimal(type, text):
    try:
        return type(text)
    except decimal.InvalidOperation:
        raise ValueError("invalid decimal %r" % text) from None


def _construct(type, text):
    return type(text)


def _isoformat(type, text):
    return type.fromisoformat(text)


def _converter(type):
    """
    Return the built-in converter for a concrete class, or None.
    """
    if issubclass(type, bool):
        return _parse_bool
    if issubclass(type, enum.Enum):
        return _parse_enum
    if issubclass(type, int):
        return _parse_int
    if issubclass(type, decimal.Decimal):
        return _parse_decimal
    if issubclass(type, (float, complex, fractions.Fraction, str, uuid.UUID, pathlib.PurePath)):
        return _construct
    if issubclass(type, bytes):
        return lambda type, text: type(text.encode())
    if issubclass(type, (ipaddress.IPv4Address, ipaddress.IPv6Address,
                         ipaddress.IPv4Network, ipaddress.IPv6Network,
                         ipaddress.IPv4Interface, ipaddress.IPv6Interface)):
        return _construct
    if issubclass(type, (datetime.datetime, datetime.date, datetime.time)):
        return _isoformat
    return None


def _custom(type):
    return callable(getattr(type, "__parsearg__", None))


def _direct(hint):
    """
    True when 'hint' is a concrete class with custom or built-in coercion.
    """
    if not isinstance(hint, type):
        return False
    return _custom(hint) or _converter(hint) is not None


def _unwrap_sequence(hint):
    """
    Return (element, True) for a sequence hint, (hint, False) otherwise.
    """
    if hint in _SEQUENCES:
        return str, True
    if typing.get_origin(hint) in _SEQUENCES:
        arguments = typing.get_args(hint)
        return (arguments[0] if arguments else str), True
    return hint, False


def isboolean(hint, /):
    """
    True for bool and bool | None; custom-coerced types are never switches.
    """
    if _custom(hint):
        return False
    hint = unwrap_optional(hint)
    return isinstance(hint, type) and issubclass(hint, bool)


def parseable(hint, /):
    """
    Inspect a field hint and return (parseable, boolean, multiple).
    """
    if _direct(hint):
        return True, isboolean(hint), False

    # look inside optionals
    hint = unwrap_optional(hint)
    # look inside sequences
    hint, multiple = _unwrap_sequence(hint)
    if _direct(hint):
        return True, isboolean(hint) and not multiple, multiple

    # look inside optionals again, in case of list[T | None]
    hint = unwrap_optional(hint)
    if _direct(hint):
        return True, isboolean(hint) and not multiple, multiple

    return False, False, False


def scalar(hint, /):
    """
    Return the class values are coerced into for a parseable hint.
    """
    if _direct(hint):
        return hint
    hint, _ = _unwrap_sequence(unwrap_optional(hint))
    if _direct(hint):
        return hint
    return unwrap_optional(hint)


def coerce(type, text, /):
    """
    Convert 'text' into an instance of 'type'.

    Custom __parsearg__ coercion is tried first, then the built-in table.

    Raises
    - ValueError: the text is not a valid literal for the type.
    - TypeError: the type has no known coercion.
    """
    if not isinstance(text, str):
        raise TypeError("coerce() text must be a string")
    if _custom(type):
        return type.__parsearg__(text)
    if not isinstance(type, builtins.type):
        raise TypeError("cannot parse into %r" % (type,))
    if (converter := _converter(type)) is None:
        raise TypeError("cannot parse into %s" % type.__qualname__)
    return converter(type, text)


def isnumeric(hint, text, /):
    """
    True when 'hint' is a numeric kind and 'text' is a valid literal of it.

    Used to tell a negative number (-5) apart from a flag.
    """
    type = scalar(hint)
    if not isinstance(type, builtins.type) or not issubclass(type, _NUMERIC) or issubclass(type, bool):
        return False
    try:
        coerce(type, text)
    except (ValueError, TypeError, ArithmeticError):
        return False
    return True


__all__ = (
    "SupportsParseArg",
    "coerce",
    "parseable",
    "isboolean",
    "isnumeric",
    "scalar",
)
