"""
Field path tests (construction, immutability, resolution).

Scope
- Validate child() never aliases or mutates the path it was built from.
- Validate rendering used by build diagnostics ("args", "args.a.b").
- Validate resolution against live destination records and its failures.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import dataclasses
import unittest
from unittest import TestCase

from argstruct import FieldPath


@dataclasses.dataclass
class Inner:
    port: int = 0


@dataclasses.dataclass
class Outer:
    name: str = ""
    inner: Inner | None = None


class TestFieldPath(TestCase):
    """Behavioral tests for FieldPath."""

    def testChildReturnsNewPath(self):
        base = FieldPath(0).child("serve")
        left = base.child("port")
        right = base.child("host")
        self.assertEqual(base.fields, ("serve",))
        self.assertEqual(left.fields, ("serve", "port"))
        self.assertEqual(right.fields, ("serve", "host"))

    def testStringForm(self):
        self.assertEqual(str(FieldPath(0)), "args")
        self.assertEqual(str(FieldPath(1).child("a").child("b")), "args.a.b")

    def testEqualityAndHash(self):
        self.assertEqual(FieldPath(0, ("a",)), FieldPath(0).child("a"))
        self.assertNotEqual(FieldPath(0, ("a",)), FieldPath(1, ("a",)))
        self.assertEqual(len({FieldPath(0).child("a"), FieldPath(0, ["a"])}), 1)

    def testImmutable(self):
        path = FieldPath(0)
        with self.assertRaises(AttributeError):
            path.fields = ("x",)

    def testInvalidRootRejected(self):
        with self.assertRaises(TypeError):
            FieldPath(-1)
        with self.assertRaises(TypeError):
            FieldPath(True)

    def testEmptyFieldRejected(self):
        with self.assertRaises(TypeError):
            FieldPath(0, ("",))

    def testGetAndSet(self):
        roots = [Outer(inner=Inner())]
        path = FieldPath(0).child("inner").child("port")
        path.set(roots, 8080)
        self.assertEqual(roots[0].inner.port, 8080)
        self.assertEqual(path.get(roots), 8080)

    def testRootPathGetsRecord(self):
        roots = [Outer(), Outer(name="second")]
        self.assertIs(FieldPath(1).get(roots), roots[1])

    def testResolveMissingAttributeIsInternalError(self):
        with self.assertRaises(RuntimeError):
            FieldPath(0).child("missing").get([Outer()])

    def testResolveUninstantiatedRecordIsInternalError(self):
        with self.assertRaises(RuntimeError):
            FieldPath(0).child("inner").child("port").set([Outer()], 1)

    def testResolveRootPathRejected(self):
        with self.assertRaises(RuntimeError):
            FieldPath(0).resolve([Outer()])


if __name__ == "__main__":
    unittest.main()
