"""File renderer -- persists pipeline output records to the filesystem.

The :class:`FileRenderer` takes a :class:`FileRecord` and writes its bytes
under the configured ``output_dir`` (keeping the record's relative path),
returning a :class:`RenderedFile` descriptor.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

import aiofiles  # type: ignore[import-untyped]
from pydantic import BaseModel

from begin.engine.stream import FileRecord
from begin.utils.file_utils import ensure_dir
from begin.utils.logging import get_logger

logger = get_logger("engine.renderer")


class RenderedFile(BaseModel):
    """Descriptor for an artifact that has been written to disk.

    Attributes:
        file_path: Path of the written file.
        relative_path: Path relative to the output directory.
        size_bytes: Size of the written file in bytes.
    """

    file_path: str
    relative_path: str
    size_bytes: int


class FileRenderer:
    """Write :class:`FileRecord` content to disk.

    Parameters
    ----------
    output_dir:
        Root directory where artifacts are stored.  Created on first write.
    """

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)

    async def render(self, record: FileRecord) -> RenderedFile:
        """Persist *record* and return a descriptor."""
        file_path = self.output_dir / record.path
        ensure_dir(file_path.parent)

        # Write asynchronously to avoid blocking the event loop.
        async with aiofiles.open(file_path, mode="wb") as fh:
            await fh.write(record.contents)

        rendered = RenderedFile(
            file_path=str(file_path),
            relative_path=record.path,
            size_bytes=os.path.getsize(file_path),
        )
        logger.debug("render_complete", file_path=rendered.file_path, size_bytes=rendered.size_bytes)
        return rendered

    def remove(self, relative_paths: Iterable[str]) -> list[str]:
        """Delete stale artifacts; return the paths that existed."""
        removed: list[str] = []
        for relative in relative_paths:
            path = self.output_dir / relative
            if path.is_file():
                path.unlink()
                removed.append(str(path))
        if removed:
            logger.info("stale_artifacts_removed", count=len(removed))
        return removed
