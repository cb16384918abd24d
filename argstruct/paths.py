"""
Field paths: addressable write targets inside destination records.

A FieldPath names one of the destination records handed to the parser (by its
index) and a chain of attribute names to follow from it. The schema builder
derives paths while walking record shapes and the interpreter resolves the
very same paths against live instances, so a resolution failure is always an
internal bug (RuntimeError), never a user fault.

    >>> path = FieldPath(0).child("serve").child("port")
    >>> str(path)
    'args.serve.port'
"""


class FieldPath:
    """
    Immutable reference to a field nested inside one destination record.

    Attributes
    - root: int, index of the destination record.
    - fields: tuple[str, ...], attribute chain walked from that record.
    """

    __slots__ = ("_root", "_fields")

    def __init__(self, root=0, fields=(), /):
        if not isinstance(root, int) or isinstance(root, bool) or root < 0:
            raise TypeError("FieldPath() root must be a non-negative integer")
        fields = tuple(fields)
        if not all(isinstance(field, str) and field for field in fields):
            raise TypeError("FieldPath() fields must be non-empty strings")
        object.__setattr__(self, "_root", root)
        object.__setattr__(self, "_fields", fields)

    @property
    def root(self):
        return self._root

    @property
    def fields(self):
        return self._fields

    def child(self, name, /):
        """
        Return a new path with 'name' appended; this path is left untouched.
        """
        return FieldPath(self._root, self._fields + (name,))

    def resolve(self, roots, /):
        """
        Walk the live destination records and return (owner, attribute).

        'owner' is the record holding the last attribute of the chain. The
        root path has no attribute to write, so it cannot be resolved this way.
        """
        if not self._fields:
            raise RuntimeError("cannot resolve the root path %s to an attribute" % self)
        owner = roots[self._root]
        for index, field in enumerate(self._fields[:-1]):
            owner = self._step(owner, field, index)
        if owner is None or not hasattr(owner, self._fields[-1]):
            raise RuntimeError("error resolving path %s: %r has no field named %r" % (
                self, type(owner).__name__, self._fields[-1]
            ))
        return owner, self._fields[-1]

    def get(self, roots, /):
        if not self._fields:
            return roots[self._root]
        owner, name = self.resolve(roots)
        return getattr(owner, name)

    def set(self, roots, value, /):
        owner, name = self.resolve(roots)
        setattr(owner, name, value)

    def _step(self, owner, field, index):
        try:
            object = getattr(owner, field)
        except AttributeError:
            raise RuntimeError("error resolving path %s: %r has no field named %r" % (
                self, type(owner).__name__, field
            )) from None
        if object is None:
            # a subcommand or embedded record that was never instantiated
            raise RuntimeError("error resolving path %s: %s is not instantiated" % (
                self, FieldPath(self._root, self._fields[:index + 1])
            ))
        return object

    def __setattr__(self, name, value):
        raise AttributeError("FieldPath is immutable")

    def __eq__(self, other):
        if not isinstance(other, FieldPath):
            return NotImplemented
        return (self._root, self._fields) == (other._root, other._fields)

    def __hash__(self):
        return hash((FieldPath, self._root, self._fields))

    def __str__(self):
        if not self._fields:
            return "args"
        return "args." + ".".join(self._fields)

    def __repr__(self):
        return "field-path(root=%r, fields=%r)" % (self._root, self._fields)

    def __rich_repr__(self):
        yield "root", self._root
        yield "fields", self._fields


__all__ = (
    "FieldPath",
)
