"""Path resolver -- derives the concrete glob lists for every asset category.

The result is a snapshot: it is computed once per engine instance from the
resolved :class:`~begin.core.config.Configuration` and does not follow
later edits.
"""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, ConfigDict

from begin.core.config.models import Configuration


class FileSet(BaseModel):
    """Source and library globs for one asset category."""

    model_config = ConfigDict(frozen=True)

    src: tuple[str, ...] = ()
    lib: tuple[str, ...] = ()


class StyleFileSet(BaseModel):
    """Style globs: the compiled entry points plus both include-path sets."""

    model_config = ConfigDict(frozen=True)

    main: tuple[str, ...] = ()
    include_src: tuple[str, ...] = ()
    include_lib: tuple[str, ...] = ()


class FileSets(BaseModel):
    model_config = ConfigDict(frozen=True)

    html: FileSet
    templates: FileSet
    scripts: FileSet
    styles: StyleFileSet
    images: FileSet


def join_patterns(prefix: list[str], patterns: tuple[str, ...]) -> tuple[str, ...]:
    """Join every pattern onto *prefix*, root segments first."""
    return tuple(os.path.join(*prefix, pattern) for pattern in patterns)


def source_prefix(config: Configuration, scope: Any) -> list[str]:
    """``[client.cwd, scope.cwd]`` with falsy segments left out."""
    prefix: list[str] = []
    if config.client.cwd:
        prefix.append(config.client.cwd)
    cwd = getattr(scope, "cwd", "")
    if cwd:
        prefix.append(cwd)
    return prefix


def library_prefix(config: Configuration) -> list[str]:
    return [config.client.lib] if config.client.lib else []


def build_files(config: Configuration) -> FileSets:
    """Compute the :class:`FileSets` for *config*."""
    client = config.client
    return FileSets(
        html=FileSet(src=join_patterns(source_prefix(config, client.html), client.html.src)),
        templates=FileSet(
            src=join_patterns(source_prefix(config, client.templates), client.templates.src)
        ),
        scripts=FileSet(
            src=join_patterns(source_prefix(config, client.scripts), client.scripts.src),
            lib=join_patterns(library_prefix(config), client.scripts.lib),
        ),
        styles=StyleFileSet(
            main=join_patterns(source_prefix(config, client.styles), client.styles.src),
            include_src=join_patterns(
                [client.cwd] if client.cwd else [], client.styles.include.src
            ),
            include_lib=join_patterns(library_prefix(config), client.styles.include.lib),
        ),
        images=FileSet(src=join_patterns(source_prefix(config, client.images), client.images.src)),
    )
