"""ANSI terminal color support for dictctl output."""

import os
import sys


def _supports_color():
    """Detect whether the terminal supports ANSI color."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("DICTCTL_COLOR", "").lower() == "never":
        return False
    if os.environ.get("DICTCTL_COLOR", "").lower() == "always":
        return True
    if not hasattr(sys.stdout, "isatty"):
        return False
    if not sys.stdout.isatty():
        return False
    if sys.platform == "win32":
        # Windows Terminal natively supports ANSI; classic consoles do not
        return bool(os.environ.get("WT_SESSION"))
    return True


# ANSI escape sequences
RESET = "\033[0m"
BOLD = "\033[1m"
DIM = "\033[2m"
RED = "\033[31m"
BLUE = "\033[34m"
CYAN = "\033[36m"


class ColorWriter:
    """Write colorized text, falling back to plain text if unsupported.

    Usage:
        cw = ColorWriter()
        cw.error("Something failed")     # red
        cw.source("wn")                  # blue
        cw.key("shortcake")              # cyan
        cw.bold("HEADER")                # bold
    """

    def __init__(self, force_color=None):
        if force_color is not None:
            self.enabled = force_color
        else:
            self.enabled = _supports_color()

    def _wrap(self, code, text):
        if self.enabled:
            return "{}{}{}".format(code, text, RESET)
        return text

    def error(self, text):
        return self._wrap(RED, text)

    def source(self, text):
        return self._wrap(BLUE, text)

    def key(self, text):
        return self._wrap(CYAN, text)

    def bold(self, text):
        return self._wrap(BOLD, text)

    def dim(self, text):
        return self._wrap(DIM, text)


def format_status(reply, cw):
    """Render a Reply as ``<code> <text>``, colored by outcome."""
    line = str(reply)
    if reply.status.is_positive():
        return cw.dim(line)
    return cw.error(line)


def format_definition(definition, cw):
    """Format one Definition: a bold source header, then its text."""
    header = "{} ({})".format(cw.bold(definition.source.desc),
                              cw.source(definition.source.name))
    return "\n".join([header] + list(definition.text))


def format_match(match, cw):
    return "{} ({})".format(cw.key(match.word), cw.source(match.source.name))


def format_listing(items, cw):
    """Format databases or strategies as aligned ``name  description`` rows."""
    if not items:
        return ""
    width = max(len(item.name) for item in items)
    rows = []
    for item in items:
        pad = " " * (width - len(item.name))
        rows.append("{}{}  {}".format(cw.key(item.name), pad, item.desc))
    return "\n".join(rows)
