r"""
Argstruct schema nodes: option specifications and command nodes.

Overview
- OptionSpec: one leaf argument derived from one destination field; either a
  named flag (--name / -n) or a positional, single- or multi-valued.
- CommandNode: the program or one of its subcommands; owns its OptionSpecs,
  its child CommandNodes, and a weak (non-owning) reference to its parent.

Both are produced once by the schema builder and are read-only afterwards:
every field is exposed through a read-only property (see SpecType), and no
per-parse state ever lives on them, so one tree can serve many parses.

Introspection & representation
- SpecType metaclass provides stable __repr__/__rich_repr__ and exposes the
  fields declared in __introspectable__ as read-only properties.
"""
import builtins
import functools
import operator
import re
import weakref
from enum import Enum

from .paths import FieldPath
from .scalars import scalar
from .utils import *


class Kind(Enum):
    FLAG = "flag"
    POSITIONAL = "positional"


class Multiplicity(Enum):
    SINGLE = "single"
    MULTIPLE = "multiple"


class SpecType(type):
    """
    Metaclass for the read-only tree nodes.

    Every name in a class's __introspectable__ becomes a mirror() property over
    "_<name>". __typename__ is the hyphenated class name ("option-spec") and
    prefixes the generated __repr__; __rich_repr__ yields __displayable__ when
    the class sets it, __introspectable__ otherwise.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_names(cls, metadata, /):
    """
    Internal: validate long/short names already normalized by the builder.
    """
    if not isinstance(long := metadata["long"], str) or not long:
        raise TypeError(f"{cls.__typename__} 'long' must be a non-empty string")
    if (short := metadata["short"]) is not None:
        if not isinstance(short, str):
            raise TypeError(f"{cls.__typename__} 'short' must be a string")
        if len(short) != 1:
            raise ValueError(f"{cls.__typename__} 'short' must be exactly one character")
    for name in ("env", "help"):
        if metadata[name] is not None and not isinstance(metadata[name], str):
            raise TypeError(f"{cls.__typename__} {name!r} must be a string")


class OptionSpec(metaclass=SpecType):
    """
    Descriptor for one flag or positional argument.

    Properties
    - path: FieldPath written when the argument is supplied.
    - type: the destination field's type hint; scalar: the class each value is coerced into.
    - long / short: names (short may be None); positionals are known by 'long' only.
    - kind: Kind.FLAG or Kind.POSITIONAL; multiplicity: SINGLE or MULTIPLE.
    - required, separate, boolean: behaviour switches.
    - env: environment variable consulted before the command line (or None).
    - help: description for help output (or None).
    """

    __introspectable__ = (
        "path",
        "type",
        "scalar",
        "long",
        "short",
        "kind",
        "multiplicity",
        "required",
        "separate",
        "env",
        "help",
        "boolean",
    )

    __displayable__ = (
        "long",
        "short",
        "kind",
        "multiplicity",
        "required",
        "env",
        "path",
    )

    def __init__(
            self,
            path,
            type,
            long,
            short=None,
            *,
            positional=False,
            multiple=False,
            required=False,
            separate=False,
            env=None,
            help=None,
            boolean=False,
    ):
        if not isinstance(path, FieldPath):
            raise TypeError(f"{builtins.type(self).__typename__} 'path' must be a field path")

        metadata = {
            "path": path,
            "type": type,
            "scalar": scalar(type),
            "long": long,
            "short": short,
            "kind": Kind.POSITIONAL if positional else Kind.FLAG,
            "multiplicity": Multiplicity.MULTIPLE if multiple else Multiplicity.SINGLE,
            "required": bool(required),
            "separate": bool(separate),
            "env": env,
            "help": help,
            "boolean": bool(boolean),
        }
        _sanitize_names(builtins.type(self), metadata)

        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    @property
    def positional(self):
        return self._kind is Kind.POSITIONAL

    @property
    def multiple(self):
        return self._multiplicity is Multiplicity.MULTIPLE

    @property
    def display(self):
        """
        The name users see: '--long' for flags, bare 'long' for positionals.
        """
        return self._long if self.positional else "--" + self._long


class CommandNode(metaclass=SpecType):
    """
    Node in the tree of program/subcommand definitions.

    Properties
    - name: command name ('serve'); the root carries the program name.
    - help: description shown in the parent's subcommand listing (or None).
    - path: FieldPath of the destination record this command fills.
    - type: the destination record class (None for a merged program root).
    - specs: tuple[OptionSpec, ...] declared directly on this command.
    - children: tuple[CommandNode, ...] subcommands, in declaration order.
    - embeds: tuple[(FieldPath, type), ...] embedded records instantiated on entry.
    - parent: the enclosing CommandNode, or None (weak, non-owning reference).

    Invariant
    - a node never holds both a positional spec and a child.
    """

    __introspectable__ = (
        "name",
        "help",
        "path",
        "type",
        "specs",
        "children",
        "embeds",
    )

    __displayable__ = (
        "name",
        "help",
        "path",
        "specs",
        "children",
    )

    def __init__(self, name, path, type=None, *, help=None, specs=(), children=(), embeds=()):
        if not isinstance(name, str) or not name:
            raise TypeError(f"{builtins.type(self).__typename__} 'name' must be a non-empty string")
        if not isinstance(path, FieldPath):
            raise TypeError(f"{builtins.type(self).__typename__} 'path' must be a field path")

        specs = tuple(specs)
        children = tuple(children)
        if any(spec.positional for spec in specs) and children:
            raise ValueError(f"{path} cannot have both subcommands and positional arguments")

        self._name = name
        self._help = help
        self._path = path
        self._type = type
        self._specs = specs
        self._children = children
        self._embeds = tuple(embeds)
        self._parent = None

        for child in children:
            child._parent = weakref.ref(self)

    @property
    def parent(self):
        return self._parent() if self._parent is not None else None

    @property
    def root(self):
        """
        The program-level command this node hangs under (itself for the root).
        """
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    @property
    def route(self):
        """
        Return the names from the root to this command as a tuple.
        """
        route = [command := self]
        while command.parent:
            route.append(command := command.parent)
        return tuple(step.name for step in reversed(route))

    def find_option(self, name, /):
        """
        Return the flag declared on this command whose long or short name is 'name', or None.
        """
        for spec in self._specs:
            if not spec.positional and name in (spec.long, spec.short):
                return spec
        return None

    def find_child(self, name, /):
        """
        Return the direct subcommand called 'name' (exact match), or None.
        """
        for child in self._children:
            if child._name == name:
                return child
        return None


__all__ = (
    "Kind",
    "Multiplicity",
    "OptionSpec",
    "CommandNode",
)
