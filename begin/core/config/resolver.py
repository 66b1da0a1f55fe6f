"""Configuration resolver -- deep-merges caller options over the defaults.

Merge policy:

* nested mappings are merged recursively, key by key;
* any other caller value (scalars *and* arrays) replaces the default leaf;
* keys the defaults do not know about are ignored.

Resolution never raises.  Input that is not a mapping is treated as an
empty mapping, and a leaf that fails validation after the merge is replaced
by its default value (a ``config_leaf_invalid`` warning is logged).
"""

from __future__ import annotations

import copy
import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from begin.core.config.models import Configuration
from begin.utils.logging import get_logger

logger = get_logger("config.resolver")

# Host-facing spellings accepted at the top level of the options mapping.
_KEY_ALIASES: dict[str, str] = {
    "warnExclusions": "warn_exclusions",
}

_MAX_REPAIR_PASSES = 8


def deep_merge(defaults: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Return a new dict with *overrides* merged leaf-by-leaf over *defaults*.

    Only keys present in *defaults* are considered.  Neither argument is
    modified.
    """
    merged: dict[str, Any] = {}
    for key, default in defaults.items():
        if key not in overrides:
            merged[key] = copy.deepcopy(default)
            continue
        value = overrides[key]
        if isinstance(default, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(default, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def default_options(user_options: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Return the default option tree as plain data.

    The default ``server.watch`` globs follow the caller's ``server.cwd``
    when one is given.
    """
    defaults = Configuration().model_dump()
    server = (user_options or {}).get("server")
    if isinstance(server, Mapping) and isinstance(server.get("cwd"), str):
        defaults["server"]["watch"] = (os.path.join(server["cwd"], "**/*.js"), "*.js")
    return defaults


def resolve(user_options: Any = None) -> Configuration:
    """Resolve *user_options* into a complete, immutable :class:`Configuration`.

    Parameters
    ----------
    user_options:
        A (possibly partial, possibly nested) mapping of options, or an
        already resolved :class:`Configuration`.  Anything else is treated
        as ``{}``.
    """
    options = _normalise(user_options)
    defaults = default_options(options)
    merged = deep_merge(defaults, options)

    for _ in range(_MAX_REPAIR_PASSES):
        try:
            return Configuration.model_validate(merged)
        except ValidationError as exc:
            for error in exc.errors():
                path = _leaf_path(error["loc"])
                logger.warning(
                    "config_leaf_invalid",
                    path=".".join(path),
                    error=error["msg"],
                )
                _substitute_default(merged, defaults, path)

    logger.error("config_unrecoverable", detail="falling back to defaults")
    return Configuration.model_validate(defaults)


def load_options(path: str | Path) -> dict[str, Any]:
    """Read an options file (YAML or JSON) for the CLI host.

    A missing file yields ``{}``; a file whose top level is not a mapping
    is ignored with a warning.
    """
    path = Path(path)
    if not path.exists():
        logger.debug("options_file_missing", path=str(path))
        return {}

    text = path.read_text(encoding="utf-8")
    if path.suffix == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("options_file_not_mapping", path=str(path))
        return {}
    return data


# ----- Internal helpers -----------------------------------------------------


def _normalise(user_options: Any) -> dict[str, Any]:
    if isinstance(user_options, Configuration):
        return user_options.model_dump()
    if not isinstance(user_options, Mapping):
        if user_options is not None:
            logger.warning("config_not_mapping", type=type(user_options).__name__)
        return {}
    return {_KEY_ALIASES.get(key, key): value for key, value in user_options.items()}


def _leaf_path(loc: tuple[Any, ...]) -> list[str]:
    """Trim a pydantic error location down to the option key path.

    List indexes are dropped so a bad array element resets the whole
    array.
    """
    path: list[str] = []
    for part in loc:
        if not isinstance(part, str):
            break
        path.append(part)
    return path


def _substitute_default(
    merged: dict[str, Any],
    defaults: Mapping[str, Any],
    path: list[str],
) -> None:
    target: Any = merged
    source: Any = defaults
    for part in path[:-1]:
        if not isinstance(source, Mapping) or part not in source:
            break
        if not isinstance(target.get(part), dict):
            target[part] = copy.deepcopy(source[part])
            return
        target = target[part]
        source = source[part]
    else:
        if path and isinstance(source, Mapping) and path[-1] in source:
            target[path[-1]] = copy.deepcopy(source[path[-1]])
            return
    # The invalid value is not an option leaf; reset the top-level key.
    if path and path[0] in defaults:
        merged[path[0]] = copy.deepcopy(defaults[path[0]])
