"""Markup minification and template-cache compilation."""

import json
import re

from begin.engine.stream import FileRecord

# Elements whose content is whitespace-sensitive.
_PRESERVED = re.compile(
    r"(<(pre|textarea|script|style)\b.*?</\2\s*>)",
    re.IGNORECASE | re.DOTALL,
)
_COMMENT = re.compile(r"<!--(?!\[if).*?-->", re.DOTALL)
_BETWEEN_TAGS = re.compile(r">\s+<")
_WHITESPACE = re.compile(r"\s+")


def collapse_whitespace(markup: str, remove_comments: bool = False) -> str:
    if remove_comments:
        markup = _COMMENT.sub("", markup)
    chunks = _PRESERVED.split(markup)
    out: list[str] = []
    # split() with two groups yields [text, whole, tagname, text, ...]
    for index in range(0, len(chunks), 3):
        text = _WHITESPACE.sub(" ", chunks[index])
        out.append(_BETWEEN_TAGS.sub("><", text))
        if index + 1 < len(chunks):
            out.append(chunks[index + 1])
    return "".join(out).strip()


def minify_markup(
    records: list[FileRecord],
    collapse: bool = True,
    remove_comments: bool = False,
) -> list[FileRecord]:
    if not collapse and not remove_comments:
        return records
    return [
        record.with_contents(collapse_whitespace(record.text, remove_comments))
        for record in records
    ]


def compile_templates(
    records: list[FileRecord],
    filename: str = "templates.js",
    module: str = "templates",
    standalone: bool = True,
) -> list[FileRecord]:
    """Compile view templates into a script that fills a template cache.

    Each template is keyed by its path relative to the templates directory.
    With *standalone* the script declares the module itself.  No template
    produces no script.
    """
    if not records:
        return []
    declaration = f"angular.module({json.dumps(module)}, [])" if standalone else (
        f"angular.module({json.dumps(module)})"
    )
    puts = "".join(
        f"$templateCache.put({json.dumps(record.path.replace(chr(92), '/'))},"
        f"{json.dumps(record.text)});"
        for record in records
    )
    script = (
        f'{declaration}.run(["$templateCache", function($templateCache) {{{puts}}}]);'
    )
    return [FileRecord(path=filename, contents=script.encode("utf-8"))]
