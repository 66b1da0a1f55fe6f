"""File streams -- the unit pipeline stages read, transform and write.

A :class:`Stream` is a lazy, ordered sequence of :class:`FileRecord` objects
plus the steps to apply to them.  Nothing touches the file system until the
stream is collected (``await stream.collect()``) or written
(``await stream.dest(...)``).

Steps follow a single contract::

    step(records: list[FileRecord], **options) -> list[FileRecord]

and may return an awaitable.  When a step raises, the stream switches to
its error state: the remaining steps are skipped, ``collect`` returns what
it has, and ``dest`` raises :class:`StageError` so the owning task fails.
"""

from __future__ import annotations

import inspect
import os
from collections.abc import Awaitable, Callable, Iterable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict

from begin.utils.exceptions import StageError
from begin.utils.globs import match, normalise
from begin.utils.logging import get_logger

if TYPE_CHECKING:
    from begin.engine.renderer import RenderedFile

logger = get_logger("engine.stream")

_GLOB_CHARS = "*?[{"

Step = Callable[..., Any]


class FileRecord(BaseModel):
    """An in-memory file travelling through a pipeline stage.

    Attributes:
        path: Path relative to ``base``; this is where the record lands
            under the destination directory.
        base: Directory the record was read from ("" for generated files).
        contents: Raw file bytes.
        source_map: Optional source map (v3) describing ``contents``.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    base: str = ""
    contents: bytes = b""
    source_map: dict[str, Any] | None = None

    @property
    def source_path(self) -> str:
        return os.path.join(self.base, self.path) if self.base else self.path

    @property
    def text(self) -> str:
        return self.contents.decode("utf-8")

    def with_contents(self, contents: bytes | str, **changes: Any) -> "FileRecord":
        if isinstance(contents, str):
            contents = contents.encode("utf-8")
        return self.model_copy(update={"contents": contents, **changes})


def glob_parent(pattern: str) -> str:
    """Return the leading directory of *pattern* that contains no glob syntax."""
    parts = pattern.replace(os.sep, "/").split("/")
    static: list[str] = []
    for part in parts[:-1]:
        if any(ch in part for ch in _GLOB_CHARS):
            break
        static.append(part)
    return "/".join(static)


def expand(patterns: Iterable[str], root: str | Path = ".") -> list[tuple[str, str]]:
    """Expand glob *patterns* under *root* into ``(base, relative)`` pairs.

    Matching uses the same glob dialect as watch bindings, so a pattern that
    triggers a rebuild also reads the changed file.  Matches keep pattern
    order (sorted within a pattern) and each file is reported once.
    Patterns starting with ``!`` remove earlier matches.
    """
    root = str(root)
    found: dict[str, tuple[str, str]] = {}
    for pattern in patterns:
        negate = pattern.startswith("!")
        if negate:
            pattern = pattern[1:]
        base = glob_parent(pattern)
        for path in _walk(pattern, root, base):
            if negate:
                found.pop(path, None)
            elif path not in found:
                relative = os.path.relpath(path, base) if base else path
                found[path] = (base, relative)
    return list(found.values())


def _walk(pattern: str, root: str, base: str) -> list[str]:
    """Root-relative paths of the files under *base* matching *pattern*."""
    top = os.path.join(root, base) if base else root
    # Without ``**`` a match sits at a fixed depth below *base*.
    depth = None
    if "**" not in pattern:
        depth = normalise(pattern).count("/") - (base.count("/") + 1 if base else 0)
    paths: list[str] = []
    for dirpath, dirnames, filenames in os.walk(top):
        if depth is not None and _depth(top, dirpath) >= depth:
            dirnames[:] = []
        for filename in filenames:
            path = normalise(os.path.relpath(os.path.join(dirpath, filename), root))
            if match(pattern, path):
                paths.append(path)
    return sorted(paths)


def _depth(top: str, dirpath: str) -> int:
    relative = os.path.relpath(dirpath, top)
    return 0 if relative == "." else relative.count(os.sep) + 1


class Stream:
    """A lazy sequence of file records and the steps to apply to them."""

    def __init__(
        self,
        source: Callable[[], Awaitable[list[FileRecord]]],
        label: str = "",
    ) -> None:
        self._source = source
        self._steps: list[tuple[Step, dict[str, Any]]] = []
        self.label = label
        self.error: BaseException | None = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def src(cls, patterns: Iterable[str], root: str | Path = ".", label: str = "") -> "Stream":
        """Read every file matched by *patterns* (relative to *root*)."""
        patterns = list(patterns)

        async def read() -> list[FileRecord]:
            records = []
            for base, relative in expand(patterns, root):
                full = Path(root) / base / relative
                records.append(FileRecord(path=relative, base=base, contents=full.read_bytes()))
            return records

        return cls(read, label=label)

    @classmethod
    def of(cls, records: Sequence[FileRecord], label: str = "") -> "Stream":
        async def given() -> list[FileRecord]:
            return list(records)

        return cls(given, label=label)

    @classmethod
    def merge(cls, *streams: "Stream", label: str = "") -> "Stream":
        """Concatenate *streams* in argument order.

        An error in any input stream propagates to the merged stream.
        """
        merged = cls(_empty, label=label)

        async def gather() -> list[FileRecord]:
            records: list[FileRecord] = []
            for stream in streams:
                records.extend(await stream.collect())
                if stream.error is not None and merged.error is None:
                    merged.error = stream.error
            return records

        merged._source = gather
        return merged

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def pipe(self, step: Step, **options: Any) -> "Stream":
        self._steps.append((step, options))
        return self

    async def collect(self) -> list[FileRecord]:
        """Run the source and every step; return the resulting records."""
        try:
            records = await self._source()
        except Exception as exc:
            self._fail(exc, "src")
            return []
        if self.error is not None:
            return records

        for step, options in self._steps:
            step_name = getattr(step, "__name__", type(step).__name__)
            try:
                outcome = step(records, **options)
                if inspect.isawaitable(outcome):
                    outcome = await outcome
            except Exception as exc:
                self._fail(exc, step_name)
                break
            records = list(outcome)
            logger.debug("stream_step", stream=self.label, step=step_name, files=len(records))
        return records

    async def dest(self, directory: str | Path, root: str | Path = ".") -> list["RenderedFile"]:
        """Write the collected records under ``root/directory``.

        Raises :class:`StageError` when the stream ended in its error state.
        """
        from begin.engine.renderer import FileRenderer

        records = await self.collect()
        if self.error is not None:
            raise StageError(self.label or "stream", str(self.error)) from self.error
        renderer = FileRenderer(Path(root) / directory)
        return [await renderer.render(record) for record in records]

    # ----- Internal helpers -------------------------------------------------

    def _fail(self, exc: BaseException, step_name: str) -> None:
        self.error = exc
        logger.error("stream_error", stream=self.label, step=step_name, error=str(exc))


async def _empty() -> list[FileRecord]:
    return []
