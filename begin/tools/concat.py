"""Concatenation and source-map emission."""

import json
import os
from typing import Any

from begin.engine.stream import FileRecord


def concat(records: list[FileRecord], name: str, separator: str = "\n") -> list[FileRecord]:
    """Join every record into a single file called *name*.

    The joined record carries a source map listing its inputs (with their
    content) in order.  No input produces no output.
    """
    if not records:
        return []

    sources: list[str] = []
    contents: list[str] = []
    for record in records:
        sources.extend(_sources_of(record))
        contents.extend(_contents_of(record))

    joined = separator.join(record.text for record in records) + separator
    source_map = {
        "version": 3,
        "file": os.path.basename(name),
        "sources": sources,
        "sourcesContent": contents,
        "names": [],
        "mappings": "",
    }
    return [FileRecord(path=name, contents=joined.encode("utf-8"), source_map=source_map)]


def write_sourcemaps(records: list[FileRecord], directory: str = ".") -> list[FileRecord]:
    """Emit a ``.map`` file next to every record that carries a source map.

    A ``sourceMappingURL`` comment is appended to the mapped file.  The map
    holds no timestamps, so unchanged inputs produce identical output.
    """
    out: list[FileRecord] = []
    for record in records:
        if record.source_map is None:
            out.append(record)
            continue
        map_path = os.path.normpath(os.path.join(directory, record.path + ".map"))
        url = os.path.relpath(map_path, os.path.dirname(record.path) or ".").replace(os.sep, "/")
        if record.path.endswith(".css"):
            comment = f"\n/*# sourceMappingURL={url} */\n"
        else:
            comment = f"\n//# sourceMappingURL={url}\n"
        out.append(record.with_contents(record.contents + comment.encode("utf-8"), source_map=None))
        out.append(
            FileRecord(
                path=map_path,
                contents=json.dumps(record.source_map, sort_keys=True).encode("utf-8"),
            )
        )
    return out


def _sources_of(record: FileRecord) -> list[str]:
    if record.source_map is not None:
        return list(record.source_map.get("sources", []))
    return [record.source_path.replace(os.sep, "/")]


def _contents_of(record: FileRecord) -> list[Any]:
    if record.source_map is not None:
        return list(record.source_map.get("sourcesContent", []))
    return [record.text]
