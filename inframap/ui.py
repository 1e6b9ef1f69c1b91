"""Styled terminal output."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass


def _color_enabled() -> bool:
    stream = sys.stdout
    isatty = getattr(stream, "isatty", None)
    return "NO_COLOR" not in os.environ and bool(isatty and isatty())


@dataclass(frozen=True)
class _Style:
    color: str | None = None
    bold: bool = False
    italic: bool = False

    def render(self, text: str) -> str:
        if not _color_enabled():
            return text
        codes = []
        if self.bold:
            codes.append("1")
        if self.italic:
            codes.append("3")
        if self.color:
            r, g, b = (int(self.color[i : i + 2], 16) for i in (1, 3, 5))
            codes.append(f"38;2;{r};{g};{b}")
        if not codes:
            return text
        return f"\x1b[{';'.join(codes)}m{text}\x1b[0m"


_ERROR = _Style(color="#DC2626", bold=True)
_WARN = _Style(color="#CA8A04")
_SUCCESS = _Style(color="#16A34A")
_HINT = _Style(color="#6B7280", italic=True)
_BOLD = _Style(bold=True)
_DIM = _Style(color="#9CA3AF")


def format_error(title: str, detail: str = "", suggestion: str = "") -> str:
    """Return a styled multi-line error message."""
    out = _ERROR.render("Error: " + title) + "\n"
    if detail:
        out += "  " + detail + "\n"
    if suggestion:
        out += "  " + _HINT.render("Hint: " + suggestion) + "\n"
    return out


def collector_started(name: str) -> None:
    """Print a status line when a collector begins work."""
    print(f"  {_DIM.render('...')} {name}")


def collector_done(name: str, detail: str = "") -> None:
    """Print a status line when a collector finishes, replacing the previous line."""
    msg = _SUCCESS.render("  OK ") + " " + name
    if detail:
        msg += " " + _DIM.render(detail)
    print(f"\x1b[1A\x1b[2K{msg}")


def collector_skipped(name: str) -> None:
    """Print a status line for a collector that is not enabled."""
    print(f"  {_DIM.render('--')} {_DIM.render(name + ' (skipped)')}")


def success(msg: str) -> None:
    """Print a success message."""
    print(_SUCCESS.render(msg))


def warn(msg: str) -> None:
    """Print a warning message."""
    print(_WARN.render("Warning: " + msg))


def bold(s: str) -> str:
    """Render text in bold."""
    return _BOLD.render(s)


def hint(s: str) -> str:
    """Render text in dim italic."""
    return _HINT.render(s)


def validation_ok(field: str, detail: str) -> None:
    """Print a passing validation line."""
    print(f"  {_SUCCESS.render('OK ')} {field}: {detail}")


def validation_err(field: str, message: str, suggestion: str = "") -> None:
    """Print a failing validation line with an optional hint."""
    print(f"  {_ERROR.render('ERR')} {field}: {message}")
    if suggestion:
        print(f"      {_HINT.render('Hint: ' + suggestion)}")