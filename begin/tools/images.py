"""Image optimization via Pillow."""

import io

from PIL import Image, UnidentifiedImageError

from begin.engine.stream import FileRecord
from begin.utils.exceptions import ToolError

# Pillow save() options per format.
_SAVE_OPTIONS: dict[str, dict] = {
    "PNG": {"optimize": True},
    "JPEG": {"optimize": True, "progressive": True, "quality": 85},
    "GIF": {"optimize": True},
    "WEBP": {"quality": 85, "method": 6},
}


def optimize_images(records: list[FileRecord]) -> list[FileRecord]:
    """Re-encode images with size optimizations.

    A record keeps its original bytes when the re-encoded image is not
    smaller, or when Pillow has no optimizer for its format (e.g. SVG).
    """
    out: list[FileRecord] = []
    for record in records:
        if record.path.lower().endswith(".svg"):
            out.append(record)
            continue
        try:
            with Image.open(io.BytesIO(record.contents)) as image:
                fmt = image.format or ""
                options = _SAVE_OPTIONS.get(fmt)
                if options is None:
                    out.append(record)
                    continue
                buffer = io.BytesIO()
                image.save(buffer, format=fmt, **options)
        except (UnidentifiedImageError, OSError) as exc:
            raise ToolError("optimize_images", f"{record.source_path}: {exc}") from exc

        optimized = buffer.getvalue()
        if len(optimized) < len(record.contents):
            out.append(record.with_contents(optimized))
        else:
            out.append(record)
    return out
