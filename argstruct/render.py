"""
Argstruct rendering: usage lines, help screens and version banners with rich.

Every function returns a rich renderable and prints nothing; the parser
decides which console (stdout or stderr) receives it.

Palette keys
- usage-label, program-name, usage-section, description-section
- section-label, option-name, positional-name, metavar, argument-description
- default-label, env-label, children, children-description
- program-version, panel-title

Customization
- A __styles__ mapping in __main__ overrides palette entries by key.
- When colorful is False, styling is suppressed.
- When fancy is True, help and version screens are wrapped in a panel.
"""
from collections import defaultdict

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .utils import Unset


def _styles():
    return defaultdict(str, {
        # usage line and description
        "usage-label": "bold #00E6FF",
        "program-name": "bold #FF4D94",
        "usage-section": "#36C5F0",
        "description-section": "italic #A3A3A3",

        # argument tables
        "section-label": "bold #FFFFFF",
        "option-name": "bold #00E6FF",
        "positional-name": "bold #22C55E",
        "metavar": "bold #FFD600",
        "argument-description": "#9CA3AF",
        "default-label": "#737373",
        "env-label": "#737373",

        # subcommand table
        "children": "bold #36C5F0",
        "children-description": "#9CA3AF",

        # version banner and fancy panels
        "program-version": "bold #00E6FF",
        "panel-title": "bold #FF4D94",
    } | getattr(__import__("__main__"), "__styles__", {}))


def _painter(colorful):
    """
    Return the (styler, text) pair used by every renderer.
    """
    styles = _styles()

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), styler(style))

    return styler, text


def _metavar(spec):
    return spec.long.upper().replace("-", "_")


def _default(roots, spec):
    """
    Current value of the destination field, or Unset when it cannot be reached yet.
    """
    object = roots[spec.path.root]
    for field in spec.path.fields:
        if object is None:
            return Unset
        object = getattr(object, field, None)
    return object


def _synopsis(spec, text):
    """
    One usage item: [--name NAME], --name, NAME [NAME ...] and friends.
    """
    if spec.positional:
        item = text(_metavar(spec), "metavar")
        if spec.multiple:
            item = Text.assemble(item, " [", text(_metavar(spec), "metavar"), " ...]")
    else:
        item = text("--" + spec.long, "option-name")
        if not spec.boolean:
            item = Text.assemble(item, " ", text(_metavar(spec), "metavar"))
            if spec.multiple:
                item = Text.assemble(item, " [", text(_metavar(spec), "metavar"), " ...]")
    if spec.required:
        return item
    return Text.assemble("[", item, "]")


def usage(parser, command=None, /):
    """
    Build the usage line of 'command' (the parser's root by default).

        usage: prog serve [--port PORT] [--verbose] FILE [FILE ...]
    """
    command = command or parser.root
    styler, text = _painter(parser.config.colorful)

    line = Text()
    line.append(text("usage", "usage-label")).append(": ")
    line.append(text(" ".join(command.route), "program-name"))

    for spec in filter(lambda x: not x.positional, command.specs):
        line.append(" ").append(_synopsis(spec, text))
    for spec in filter(lambda x: x.positional, command.specs):
        line.append(" ").append(_synopsis(spec, text))
    if command.children:
        line.append(" ").append(text("<command> [<args>]", "usage-section"))
    return line


def _rows(parser, specs, text):
    """
    Lay out name/description rows for the given specs as a borderless grid.
    """
    table = Table.grid(padding=(0, 2))
    table.add_column(no_wrap=True)
    table.add_column()

    for spec in specs:
        if spec.positional:
            name = text(_metavar(spec), "positional-name")
        else:
            names = [text("--" + spec.long, "option-name")]
            if spec.short is not None:
                names.append(text("-" + spec.short, "option-name"))
            name = Text(", ").join(names)
            if not spec.boolean:
                name = Text.assemble(name, " ", text(_metavar(spec), "metavar"))

        description = Text()
        if spec.help:
            description.append(text(spec.help, "argument-description"))
        default = _default(parser.roots, spec)
        if default is not Unset and default is not None and default is not False and default != []:
            description.append(" " if description else "").append(text("[default: %s]" % (default,), "default-label"))
        if spec.env:
            description.append(" " if description else "").append(text("[env: %s]" % spec.env, "env-label"))
        table.add_row(name, description)

    return table


def helper(parser, command=None, /):
    """
    Build the full help screen of 'command' (the parser's root by default).

    Sections, in order: description, usage, positional arguments, options
    (the command's own plus --help and --version), global options (flags
    inherited from enclosing commands) and subcommands.
    """
    command = command or parser.root
    styler, text = _painter(parser.config.colorful)

    renders = []
    if parser.description:
        renders.append(text(parser.description, "description-section"))
    renders.append(usage(parser, command))

    if positionals := [spec for spec in command.specs if spec.positional]:
        renders.append(Text.assemble("\n", text("positional arguments", "section-label"), ":"))
        renders.append(_rows(parser, positionals, text))

    options = [spec for spec in command.specs if not spec.positional]
    renders.append(Text.assemble("\n", text("options", "section-label"), ":"))
    table = _rows(parser, options, text)
    table.add_row(
        Text(", ").join((text("--help", "option-name"), text("-h", "option-name"))),
        text("display this help and exit", "argument-description"),
    )
    if parser.version:
        table.add_row(
            text("--version", "option-name"),
            text("display version and exit", "argument-description"),
        )
    renders.append(table)

    ancestors = []
    parent = command.parent
    while parent is not None:
        ancestors[:0] = [spec for spec in parent.specs if not spec.positional]
        parent = parent.parent
    if ancestors:
        renders.append(Text.assemble("\n", text("global options", "section-label"), ":"))
        renders.append(_rows(parser, ancestors, text))

    if command.children:
        renders.append(Text.assemble("\n", text("commands", "section-label"), ":"))
        table = Table.grid(padding=(0, 2))
        table.add_column(no_wrap=True)
        table.add_column()
        for child in command.children:
            if child.help:
                help = text(child.help, "children-description")
            else:
                help = text(
                    "run '%s --help' for details" % " ".join(child.route), "children-description"
                )
            table.add_row(text(child.name, "children"), help)
        renders.append(table)

    renderable = Group(*renders)
    if parser.config.fancy:
        renderable = Panel(
            renderable,
            title=Text.assemble("[", " ", f"{' '.join(command.route)} HELP".upper(), " ", "]", style=styler("panel-title")),
            title_align="left",
        )
    return renderable


def versioner(parser, /):
    """
    Build the version banner: the version string reported by the destinations.
    """
    styler, text = _painter(parser.config.colorful)
    renderable = text(parser.version or "", "program-version")
    if parser.config.fancy:
        renderable = Panel(
            renderable,
            title=Text.assemble("[", " ", f"{parser.program} VERSION".upper(), " ", "]", style=styler("panel-title")),
            title_align="left",
        )
    return renderable


__all__ = (
    "usage",
    "helper",
    "versioner",
)
