"""Documentation generator: doc comments rendered through a Jinja2 template."""

import re
from pathlib import Path

from jinja2 import Environment
from pydantic import BaseModel

from begin.engine.stream import FileRecord

_DOC_BLOCK = re.compile(r"/\*\*(.*?)\*/", re.DOTALL)
_LEADING_STAR = re.compile(r"^[ \t]*\* ?", re.MULTILINE)
_TAG_LINE = re.compile(r"^@(\w+)\s*(.*)$")


class DocBlock(BaseModel):
    source: str
    text: str
    tags: dict[str, str] = {}


DOCS_TEMPLATE = """\
{% for block in blocks -%}
{{ block.text }}

{% endfor -%}
"""


def extract_doc_blocks(records: list[FileRecord]) -> list[DocBlock]:
    """Collect ``/** ... */`` blocks in file order.

    ``@tag value`` lines are lifted out of the text into ``tags``.
    """
    blocks: list[DocBlock] = []
    for record in records:
        for match in _DOC_BLOCK.finditer(record.text):
            body = _LEADING_STAR.sub("", match.group(1)).strip("\n")
            lines: list[str] = []
            tags: dict[str, str] = {}
            for line in body.splitlines():
                tag = _TAG_LINE.match(line.strip())
                if tag:
                    tags[tag.group(1)] = tag.group(2)
                else:
                    lines.append(line.rstrip())
            text = "\n".join(lines).strip()
            if text:
                blocks.append(DocBlock(source=record.source_path, text=text, tags=tags))
    return blocks


def render_docs(
    records: list[FileRecord],
    filename: str = "README.md",
    template_path: str | Path | None = None,
) -> list[FileRecord]:
    """Render the doc blocks of *records* into one document.

    The template at *template_path* is used when it exists; otherwise the
    built-in template simply stacks the blocks.
    """
    source = DOCS_TEMPLATE
    if template_path is not None and Path(template_path).is_file():
        source = Path(template_path).read_text(encoding="utf-8")

    env = Environment(autoescape=False, keep_trailing_newline=True)
    rendered = env.from_string(source).render(blocks=extract_doc_blocks(records))
    return [FileRecord(path=filename, contents=rendered.encode("utf-8"))]
