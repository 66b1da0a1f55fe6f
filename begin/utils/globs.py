"""Glob matching for watch triggers.

Supports ``*`` and ``?`` (never crossing ``/``), ``**`` (any number of
directories), ``[...]`` classes, ``{a,b}`` alternatives and ``!`` negation.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterable
from functools import lru_cache


def normalise(path: str) -> str:
    path = os.path.normpath(path).replace(os.sep, "/")
    return "" if path == "." else path


@lru_cache(maxsize=512)
def compile_glob(pattern: str) -> re.Pattern[str]:
    pattern = normalise(pattern)
    i, n = 0, len(pattern)
    out: list[str] = []
    while i < n:
        ch = pattern[i]
        if ch == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    i += 1
                    out.append("(?:.*/)?")
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                out.append(re.escape(ch))
            else:
                body = pattern[i + 1:end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = end
        elif ch == "{":
            end = pattern.find("}", i + 1)
            if end == -1:
                out.append(re.escape(ch))
            else:
                options = pattern[i + 1:end].split(",")
                out.append("(?:" + "|".join(re.escape(o) for o in options) + ")")
                i = end
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("".join(out) + r"\Z")


def match(pattern: str, path: str) -> bool:
    return compile_glob(pattern).match(normalise(path)) is not None


def match_any(patterns: Iterable[str], path: str) -> bool:
    """Return whether *path* matches *patterns*, honouring ``!`` negations.

    Patterns are applied in order, so a later negation removes an earlier
    match.
    """
    matched = False
    for pattern in patterns:
        if pattern.startswith("!"):
            if matched and match(pattern[1:], path):
                matched = False
        elif not matched and match(pattern, path):
            matched = True
    return matched
