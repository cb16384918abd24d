"""
Scalar coercion tests (built-in kinds, custom coercion, admissibility).

Scope
- Validate coerce() for the built-in kinds and its failures.
- Validate that __parsearg__ always wins over built-in coercion.
- Validate parseable() admissibility and its boolean/multiple outputs.
- Validate isnumeric() used for negative number disambiguation.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import collections.abc
import datetime
import decimal
import enum
import pathlib
import unittest
import uuid
from unittest import TestCase

from argstruct import coerce, parseable, isboolean, isnumeric, scalar, SupportsParseArg


class Color(enum.Enum):
    RED = "red"
    GREEN = "green"


class Upper(str):
    @classmethod
    def __parsearg__(cls, text, /):
        return cls(text.upper())


class Switch(int):
    """An int subclass with custom coercion: never treated as a boolean or a number."""

    @classmethod
    def __parsearg__(cls, text, /):
        if text not in ("on", "off"):
            raise ValueError("expected on or off")
        return cls(text == "on")


class TestCoerce(TestCase):
    """Behavioral tests for coerce()."""

    def testStringIsUnchanged(self):
        self.assertEqual(coerce(str, "  spaced "), "  spaced ")

    def testBooleanFamily(self):
        for text in ("1", "t", "T", "true", "TRUE", "True"):
            self.assertIs(coerce(bool, text), True)
        for text in ("0", "f", "F", "false", "FALSE", "False"):
            self.assertIs(coerce(bool, text), False)
        with self.assertRaises(ValueError):
            coerce(bool, "yes")

    def testIntegers(self):
        self.assertEqual(coerce(int, "42"), 42)
        self.assertEqual(coerce(int, "-5"), -5)
        self.assertEqual(coerce(int, "0x1f"), 31)
        with self.assertRaises(ValueError):
            coerce(int, "4.2")

    def testFloatsAndDecimals(self):
        self.assertEqual(coerce(float, "2.5"), 2.5)
        self.assertEqual(coerce(decimal.Decimal, "1.10"), decimal.Decimal("1.10"))
        with self.assertRaises(ValueError):
            coerce(decimal.Decimal, "one")

    def testEnumByNameThenValue(self):
        self.assertIs(coerce(Color, "RED"), Color.RED)
        self.assertIs(coerce(Color, "green"), Color.GREEN)
        with self.assertRaises(ValueError):
            coerce(Color, "blue")

    def testStandardLibraryKinds(self):
        self.assertEqual(coerce(pathlib.Path, "/tmp/x"), pathlib.Path("/tmp/x"))
        self.assertEqual(coerce(datetime.date, "2024-01-02"), datetime.date(2024, 1, 2))
        identifier = uuid.uuid4()
        self.assertEqual(coerce(uuid.UUID, str(identifier)), identifier)
        self.assertEqual(coerce(bytes, "abc"), b"abc")

    def testCustomCoercionWins(self):
        self.assertEqual(coerce(Upper, "abc"), "ABC")
        self.assertIsInstance(coerce(Upper, "abc"), Upper)
        self.assertEqual(coerce(Switch, "on"), 1)
        with self.assertRaises(ValueError):
            coerce(Switch, "1")

    def testProtocolIsRuntimeCheckable(self):
        self.assertIsInstance(Upper("x"), SupportsParseArg)
        self.assertNotIsInstance("x", SupportsParseArg)

    def testUnknownTypeRaisesTypeError(self):
        with self.assertRaises(TypeError):
            coerce(dict, "{}")
        with self.assertRaises(TypeError):
            coerce(list[int], "1")


class TestAdmissibility(TestCase):
    """Behavioral tests for parseable(), isboolean(), scalar() and isnumeric()."""

    def testDirectScalar(self):
        self.assertEqual(parseable(int), (True, False, False))
        self.assertEqual(parseable(bool), (True, True, False))

    def testOptionalScalar(self):
        self.assertEqual(parseable(int | None), (True, False, False))
        self.assertEqual(parseable(bool | None), (True, True, False))

    def testSequences(self):
        self.assertEqual(parseable(list[str]), (True, False, True))
        self.assertEqual(parseable(list[int | None]), (True, False, True))
        self.assertEqual(parseable(list[int] | None), (True, False, True))
        self.assertEqual(parseable(collections.abc.Sequence[float]), (True, False, True))
        self.assertEqual(parseable(list), (True, False, True))
        self.assertEqual(parseable(list[bool]), (True, False, True))

    def testInadmissible(self):
        self.assertEqual(parseable(dict[str, int]), (False, False, False))
        self.assertEqual(parseable(list[list[int]]), (False, False, False))
        self.assertEqual(parseable(int | str), (False, False, False))
        self.assertEqual(parseable(object), (False, False, False))

    def testCustomBooleanIsNotASwitch(self):
        self.assertFalse(isboolean(Switch))
        self.assertTrue(isboolean(bool | None))

    def testScalarUnwraps(self):
        self.assertIs(scalar(list[int | None]), int)
        self.assertIs(scalar(Color | None), Color)
        self.assertIs(scalar(list), str)

    def testNumericDisambiguation(self):
        self.assertTrue(isnumeric(int, "-5"))
        self.assertTrue(isnumeric(float | None, "-2.5"))
        self.assertFalse(isnumeric(int, "-v"))
        self.assertFalse(isnumeric(str, "-5"))
        self.assertFalse(isnumeric(bool, "-1"))


if __name__ == "__main__":
    unittest.main()
