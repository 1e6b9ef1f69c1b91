"""Small helpers for paths, D2 identifiers and template text."""

from __future__ import annotations

import os
import re
from pathlib import Path

_NON_ID_CHARS = re.compile(r"[^a-zA-Z0-9_-]")
_JINJA_VAR = re.compile(r"\{\{[^}]*\}\}")


def expand_path(path: str) -> str:
    """Expand a leading "~/" to the user's home directory."""
    if path.startswith("~/"):
        try:
            home = Path.home()
        except (RuntimeError, KeyError):
            return path
        return os.path.join(str(home), path[2:])
    return path


def sanitize_id(s: str) -> str:
    """Turn a string into a valid D2 identifier."""
    s = s.lower().replace(" ", "-").replace(".", "-").replace("/", "-")
    s = _NON_ID_CHARS.sub("", s)
    return s or "unknown"


def quote(s: str) -> str:
    """Wrap a string in double quotes for a D2 label."""
    return '"' + s.replace('"', '\\"') + '"'


def strip_jinja2(content: str) -> str:
    """Replace Jinja2 {{ var }} expressions with a parseable placeholder."""
    return _JINJA_VAR.sub("PLACEHOLDER", content)