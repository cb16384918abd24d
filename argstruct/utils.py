"""
Argstruct utilities shared by the schema, interpreter and rendering layers.

Contents
- Unset / UnsetType: the "not provided" marker, for parameters where None is
  a meaningful value (an optional field, an absent short name).
- coalesce(): swap Unset for a fallback and keep every other value.
- rename(): decorator giving generated methods a proper __name__/__qualname__.
- mirror(): read-only property over a private "_name" attribute; containers
  come back frozen so command trees cannot be edited after the build.
- unwrap_optional(): strip one level of "T | None" from a type hint.

    >>> coalesce(Unset, "prog")
    'prog'
    >>> coalesce(None, "prog") is None
    True
"""
import builtins
import types
import typing
from collections.abc import Mapping, Sequence, Set
from typing import final


@final
class UnsetType:
    """
    Type of the Unset marker; there is exactly one instance per process.

    Unset is falsy, prints as "Unset" and takes part in PEP 604 unions, so
    signatures can spell "str | UnsetType".
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")

    def __or__(self, other, /):
        try:
            return type(self) | other
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __reduce__(self):
        return "Unset"


def coalesce(object, default=None, /):
    """
    Return 'default' when 'object' is Unset, else 'object' (None, 0 and "" included).
    """
    if object is Unset:
        return default
    return object


def rename(name, /):
    """
    Decorator setting __name__ and __qualname__ of the decorated callable to 'name'.

    Used for methods generated inside metaclasses, so tracebacks and
    introspection show "__repr__" rather than a closure path.
    """
    if not isinstance(name, str):
        raise TypeError("rename() argument must be a string")

    def decorator(function):
        if not builtins.callable(function):
            raise TypeError("rename() must decorate a callable")
        function.__name__ = function.__qualname__ = name
        return function

    return decorator


def _frozen(object):
    if isinstance(object, (str, bytes, bytearray)):
        return object
    if isinstance(object, Sequence):
        return tuple(object)
    if isinstance(object, Mapping):
        return types.MappingProxyType(dict(object))
    if isinstance(object, Set):
        return frozenset(object)
    return object


def mirror(name, /):
    """
    Read-only property exposing self._<name>.

    Lists come back as tuples, dicts as mapping proxies and sets as frozensets;
    everything else is returned as is.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")
    attribute = "_" + name

    @rename(name)
    def getter(self):
        return _frozen(getattr(self, attribute))

    return property(getter, doc="read-only view of %s" % attribute)


def unwrap_optional(hint, /):
    """
    Return T for a "T | None" (or Optional[T]) hint; any other hint comes back unchanged.
    """
    if typing.get_origin(hint) in (typing.Union, types.UnionType):
        arguments = [argument for argument in typing.get_args(hint) if argument is not type(None)]
        if len(arguments) == 1 and len(typing.get_args(hint)) == 2:
            return arguments[0]
    return hint


Unset = UnsetType()


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "unwrap_optional",

    # Types
    "UnsetType",

    # Constants
    "Unset",
)
