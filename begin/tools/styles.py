"""Style compilation (libsass) and minification (rcssmin)."""

import os
from pathlib import Path
from typing import Iterable

import rcssmin
import sass

from begin.engine.stream import FileRecord
from begin.utils.exceptions import ToolError


def compile_styles(
    records: list[FileRecord],
    include_paths: Iterable[str] = (),
    root: str = ".",
    output_style: str = "expanded",
) -> list[FileRecord]:
    """Compile SCSS/Sass records to CSS.

    Partials (``_name.scss``) are only reachable through imports and are
    dropped from the output.  *include_paths* are resolved against *root*.
    """
    search = [str(Path(root) / path) for path in include_paths]
    out: list[FileRecord] = []
    for record in records:
        name = os.path.basename(record.path)
        if name.startswith("_"):
            continue
        own_dir = str(Path(root) / os.path.dirname(record.source_path))
        try:
            css = sass.compile(
                string=record.text,
                include_paths=[own_dir, *search],
                output_style=output_style,
                indented=record.path.endswith(".sass"),
            )
        except sass.CompileError as exc:
            raise ToolError("compile_styles", f"{record.source_path}: {exc}") from exc
        stem, _ = os.path.splitext(record.path)
        out.append(record.with_contents(css, path=stem + ".css"))
    return out


def minify_styles(records: list[FileRecord], keep_bang_comments: bool = False) -> list[FileRecord]:
    return [
        record.with_contents(rcssmin.cssmin(record.text, keep_bang_comments=keep_bang_comments))
        for record in records
    ]
