"""
Argstruct schema builder: annotated destination records → command tree.

Scope
- arg(): field helper that stores the argument tag (and help text) in the
  dataclass field metadata.
- collect(): walk one record shape and derive its CommandNode, accumulating
  every fault found on the way instead of stopping at the first one.
- build(): the raising wrapper; all faults of one build surface together as a
  single SchemaExit.

Tag surface (metadata["arg"], comma-separated keys)
- "-"                 ignore the field entirely (the whole tag, not a key)
- "-x" / "--name"     short / long name (long defaults to the lower-cased field name)
- "required"          the argument must be supplied
- "positional"        filled by position instead of by name
- "separate"          multi-value option takes exactly one value per occurrence
- "env[:NAME]"        environment fallback (defaults to the upper-cased field name)
- "subcommand[:name]" the field holds the record of a nested command
- "help[:text]"       deprecated spelling of metadata["help"]
- "embed"             expand the fields of a nested record in place

Conventions
- Fields are visited in dataclass field order; inherited fields come first.
- Fields declared with init=False are not arguments. Frozen records are
  refused, since every argument is written onto a live instance.
- Type hints are resolved with typing.get_type_hints (postponed annotations work).
- A fault names the record and field it comes from (Record.field) or the
  field path (args.a.b) when it concerns a whole level.
"""
import dataclasses
import logging
import typing

from .faults import *
from .paths import FieldPath
from .scalars import parseable
from .specs import CommandNode, OptionSpec
from .utils import Unset, unwrap_optional

logger = logging.getLogger(__name__)


def arg(*keys, help=Unset, **options):
    """
    Declare a destination field carrying an argument tag.

    Keys are joined with commas, so arg("-v", "--verbose") and arg("-v,--verbose")
    are the same tag. Remaining keyword arguments (default, default_factory, ...)
    go to dataclasses.field unchanged.

        >>> @dataclasses.dataclass
        ... class Args:
        ...     verbose: bool = arg("-v", help="say more")
        ...     files: list[str] = arg("positional", default_factory=list)
    """
    for key in keys:
        if not isinstance(key, str):
            raise TypeError("arg() keys must be strings")
    metadata = dict(options.pop("metadata", None) or {})
    if keys:
        metadata["arg"] = ",".join(keys)
    if help is not Unset:
        if not isinstance(help, str):
            raise TypeError("arg() 'help' must be a string")
        metadata["help"] = help
    return dataclasses.field(metadata=metadata, **options)


def _split(tag):
    """
    Yield (key, value) pairs of a tag; value is None when the key has no ':'.
    """
    for key in tag.split(","):
        key, colon, value = key.lstrip(" ").partition(":")
        yield key, value if colon else None


def _record(hint):
    """
    Return the dataclass behind 'hint' (T or T | None), or None.
    """
    hint = unwrap_optional(hint)
    if isinstance(hint, type) and dataclasses.is_dataclass(hint):
        return hint
    return None


def _describe(hint):
    if isinstance(hint, type) and not typing.get_args(hint):
        return hint.__qualname__
    return repr(hint).replace("typing.", "")


def _fault(exception, code, message, title, hint):
    return exception(
        message,
        title=title,
        code=code,
        hint=hint,
        docs=getdoc(code),
    )


def _unconstructible(path, record):
    """
    Fault for a record the interpreter cannot instantiate on its own, or None.
    """
    missing = [
        field.name for field in dataclasses.fields(record)
        if field.init
        and field.default is dataclasses.MISSING
        and field.default_factory is dataclasses.MISSING
    ]
    if not missing:
        return None
    return _fault(
        NotARecordError,
        FaultCode.NOT_A_RECORD,
        "%s must be constructible without arguments but %s.%s has no default" % (
            path, record.__name__, missing[0]
        ),
        "not a record",
        "give every field of %s a default" % record.__name__,
    )


def _mutable(path, record):
    """
    Fault for a frozen record, whose fields the interpreter cannot write, or None.
    """
    if not record.__dataclass_params__.frozen:
        return None
    return _fault(
        NotARecordError,
        FaultCode.NOT_A_RECORD,
        "%s must be a mutable record but %s is frozen" % (path, record.__name__),
        "not a record",
        "drop frozen=True from the  decorator of %s" % record.__name__,
    )


def _walk(record, prefix, level, faults):
    """
    Visit the fields of 'record', filling 'level' (specs/children/embeds) and 'faults'.

    Embedded records are walked recursively with their field path as prefix, so
    their fields land on the same level as the fields of 'record'.
    """
    try:
        hints = typing.get_type_hints(record)
    except (NameError, TypeError) as exception:
        faults.append(_fault(
            UnsupportedTypeError,
            FaultCode.UNSUPPORTED_TYPE,
            "%s: cannot resolve type hints: %s" % (record.__name__, exception),
            "unresolvable type hint",
            "make every annotation of %s importable from its module" % record.__name__,
        ))
        hints = {}

    for field in dataclasses.fields(record):
        tag = field.metadata.get("arg", "")
        # fields left out of __init__ are never written
        if tag == "-" or not field.init:
            continue

        hint = hints.get(field.name, field.type)
        location = "%s.%s" % (record.__name__, field.name)
        destination = prefix.child(field.name)
        keys = list(_split(tag)) if tag else []

        if any(key == "embed" for key, _ in keys):
            if len(keys) != 1:
                faults.append(_fault(
                    UnrecognizedTagError,
                    FaultCode.UNRECOGNIZED_TAG,
                    "%s: embed cannot be combined with other tags" % location,
                    "unrecognized tag",
                    "keep 'embed' alone; annotate the fields of the embedded record instead",
                ))
                continue
            if isinstance(hint, str):
                continue
            if (inner := _record(hint)) is None:
                faults.append(_fault(
                    NotARecordError,
                    FaultCode.NOT_A_RECORD,
                    "embedded fields must be dataclass records but %s is %s" % (destination, _describe(hint)),
                    "not a record",
                    "declare %s as a @dataclass or drop the 'embed' tag" % _describe(hint),
                ))
                continue
            if fault := _mutable(destination, inner):
                faults.append(fault)
                continue
            if fault := _unconstructible(destination, inner):
                faults.append(fault)
                continue
            logger.debug("embedding %s at %s", inner.__qualname__, destination)
            level["embeds"].append((destination, inner))
            _walk(inner, destination, level, faults)
            continue

        metadata = {
            "long": field.name.lower(),
            "short": None,
            "positional": False,
            "required": False,
            "separate": False,
            "env": None,
            "help": field.metadata.get("help"),
        }
        subcommand = None
        abandoned = False

        for key, value in keys:
            match key:
                case _ if key.startswith("---"):
                    faults.append(_fault(
                        TooManyHyphensError,
                        FaultCode.TOO_MANY_HYPHENS,
                        "%s: too many hyphens" % location,
                        "too many hyphens",
                        "use '--%s' for a long name or '-%s' for a short one" % (
                            key.lstrip("-"), key.lstrip("-")[:1]
                        ),
                    ))
                case _ if key.startswith("--") and key != "--":
                    metadata["long"] = key[2:]
                case _ if key.startswith("-") and key != "--":
                    if len(key) != 2:
                        faults.append(_fault(
                            ShortNameLengthError,
                            FaultCode.SHORT_NAME_LENGTH,
                            "%s: short arguments must be one character only" % location,
                            "short name too long",
                            "use '--%s' if you meant a long name" % key[1:],
                        ))
                        abandoned = True
                        break
                    metadata["short"] = key[1:]
                case "required" | "positional" | "separate":
                    metadata[key] = True
                case "help":
                    metadata["help"] = value or ""
                case "env":
                    metadata["env"] = value or field.name.upper()
                case "subcommand":
                    subcommand = value or field.name.lower()
                case _:
                    faults.append(_fault(
                        UnrecognizedTagError,
                        FaultCode.UNRECOGNIZED_TAG,
                        "%s: unrecognized tag %r" % (location, key),
                        "unrecognized tag",
                        "known keys are -x, --name, required, positional, separate, "
                        "env[:NAME], subcommand[:name], help[:text] and embed",
                    ))
                    abandoned = True
                    break

        # an unresolved hint was already reported for the whole record
        if abandoned or isinstance(hint, str):
            continue

        if subcommand is not None:
            child, nested = collect(subcommand, destination, hint, help=metadata["help"])
            faults.extend(nested)
            if child is not None:
                level["children"].append(child)
            continue

        # checked here so a bad record fails whatever the command line holds
        admissible, boolean, multiple = parseable(hint)
        if not admissible:
            faults.append(_fault(
                UnsupportedTypeError,
                FaultCode.UNSUPPORTED_TYPE,
                "%s: %s fields are not supported" % (location, _describe(hint)),
                "unsupported field type",
                "use a scalar, T | None, list[T], or a type with a __parsearg__ classmethod",
            ))
            continue

        spec = OptionSpec(destination, hint, boolean=boolean, multiple=multiple, **metadata)
        logger.debug("derived %r from %s", spec, location)
        level["specs"].append(spec)


def collect(name, path, shape, /, *, help=None):
    """
    Derive the CommandNode for one record shape without raising on bad records.

    Returns
    - (CommandNode, []) on success.
    - (None, faults) when any field (or the level itself) is malformed; every
      field of the level is still visited so the list is complete.
    """
    if not isinstance(path, FieldPath):
        raise TypeError("collect() 'path' must be a field path")

    faults = []
    if (record := _record(shape)) is None:
        faults.append(_fault(
            NotARecordError,
            FaultCode.NOT_A_RECORD,
            "subcommands must be dataclass records but %s is %s" % (path, _describe(shape)),
            "not a record",
            "declare %s as a @dataclass" % _describe(shape),
        ))
        return None, faults

    if fault := _mutable(path, record):
        faults.append(fault)
        return None, faults

    # destination records handed to the parser exist already; nested ones are
    # created by the interpreter on command entry
    if path.fields and (fault := _unconstructible(path, record)):
        faults.append(fault)
        return None, faults

    level = {"specs": [], "children": [], "embeds": []}
    _walk(record, path, level, faults)
    if faults:
        return None, faults

    if any(spec.positional for spec in level["specs"]) and level["children"]:
        faults.append(_fault(
            PositionalSubcommandConflictError,
            FaultCode.POSITIONAL_SUBCOMMAND_CONFLICT,
            "%s cannot have both subcommands and positional arguments" % path,
            "positionals next to subcommands",
            "move the positional fields into the subcommand records",
        ))
        return None, faults

    node = CommandNode(name, path, record, help=help, **level)
    logger.debug(
        "built command %r from %s (%d specs, %d subcommands)",
        name, record.__qualname__, len(node.specs), len(node.children),
    )
    return node, faults


def build(name, path, shape, /, *, help=None):
    """
    Derive the CommandNode for one record shape.

    Raises
    - SchemaExit: every fault found during the walk, reported together.
    """
    node, faults = collect(name, path, shape, help=help)
    if faults:
        raise SchemaExit(faults)
    return node


__all__ = (
    "arg",
    "collect",
    "build",
)
