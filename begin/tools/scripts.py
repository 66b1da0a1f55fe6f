"""Script minification via rjsmin."""

import rjsmin

from begin.engine.stream import FileRecord
from begin.utils.exceptions import ToolError


def minify_scripts(records: list[FileRecord], keep_bang_comments: bool = False) -> list[FileRecord]:
    out: list[FileRecord] = []
    for record in records:
        try:
            text = record.text
        except UnicodeDecodeError as exc:
            raise ToolError("minify_scripts", f"{record.path} is not UTF-8: {exc}") from exc
        minified = rjsmin.jsmin(text, keep_bang_comments=keep_bang_comments)
        out.append(record.with_contents(minified))
    return out
